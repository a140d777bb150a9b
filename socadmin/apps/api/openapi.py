from __future__ import annotations

from typing import Any

from socadmin.apps.api.response import ErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(description: str, example: dict[str, Any]) -> dict[str, Any]:
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": example}},
    }


DEFAULT_ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    400: _response(
        "Caller has no company",
        _error_example(
            code="COMPANY_REQUIRED",
            message="You must be associated with a company to manage tenants",
        ),
    ),
    401: _response(
        "Unauthorized",
        _error_example(code="AUTH_UNAUTHORIZED", message="Missing or invalid bearer token"),
    ),
    403: _response(
        "Access gate denied the request",
        _error_example(
            code="AUTH_FORBIDDEN",
            message="Requires manage_users or manage_roles",
            details={"redirect": "/"},
        ),
    ),
    404: _response("Not found", _error_example(code="NOT_FOUND", message="Client not found")),
    409: _response(
        "Conflict",
        _error_example(
            code="ROLE_PROTECTED",
            message='The "Super Admin" role is a built-in role and cannot be deleted',
        ),
    ),
    422: _response(
        "Validation error",
        _error_example(code="REQUEST_VALIDATION_ERROR", message="Validation error"),
    ),
    500: _response(
        "Internal server error",
        _error_example(code="INTERNAL_ERROR", message="Internal server error"),
    ),
}
