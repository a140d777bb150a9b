from __future__ import annotations

from typing import Any, Generic, TypeVar
from uuid import uuid4

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


API_VERSION = "v1"

T = TypeVar("T")


class ResponseMeta(BaseModel):
    # Echo the request id so console error toasts can be matched to server logs.
    request_id: str
    api_version: str = Field(default=API_VERSION)


class ErrorDetail(BaseModel):
    # Gate denials put the console redirect route under details["redirect"].
    code: str
    message: str
    details: dict[str, Any] | None = None


class SuccessEnvelope(BaseModel, Generic[T]):
    # Mutations return the refreshed list as data, reads return the record or list.
    data: T
    meta: ResponseMeta


class ErrorEnvelope(BaseModel):
    error: ErrorDetail
    meta: ResponseMeta


def get_request_id(request: Request) -> str:
    # Middleware assigns the id; fall back for handlers invoked outside it.
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    request.state.request_id = request_id
    return request_id


def success_response(*, request: Request, data: Any) -> dict[str, Any]:
    # Every /v1 route is enveloped; there are no unversioned JSON routes.
    meta = ResponseMeta(request_id=get_request_id(request))
    return {"data": data, "meta": meta.model_dump()}


def error_response(
    *,
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    meta = ResponseMeta(request_id=get_request_id(request))
    error = ErrorDetail(code=code, message=message, details=details)
    return {"error": error.model_dump(exclude_none=True), "meta": meta.model_dump()}


def flat_failure_response(*, request: Request, status_code: int, body: dict[str, Any]) -> JSONResponse:
    """Return a failure body without the envelope.

    The knowledge-base screen and the chat panel render ``{error, success}``
    and ``{error, response}`` bodies as-is, so those routes fail flat. The
    request id still travels in the ``X-Request-Id`` header.
    """
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Request-Id": get_request_id(request)},
    )
