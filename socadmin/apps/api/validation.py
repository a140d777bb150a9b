from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, AnyHttpUrl, EmailStr, TypeAdapter, ValidationError


MAX_EMAIL_LENGTH = 255
_URL = TypeAdapter(AnyHttpUrl)


def check_email_length(value: str) -> str:
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email must be less than {MAX_EMAIL_LENGTH} characters")
    return value


def check_optional_url(value: str | None) -> str | None:
    # Empty string clears the endpoint; anything else must parse as an http(s) URL.
    if value is None or value == "":
        return value
    try:
        _URL.validate_python(value)
    except ValidationError as exc:
        raise ValueError("Invalid URL") from exc
    return value


BoundedEmail = Annotated[EmailStr, AfterValidator(check_email_length)]
OptionalUrl = Annotated[str | None, AfterValidator(check_optional_url)]
