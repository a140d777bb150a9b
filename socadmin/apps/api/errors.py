from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from socadmin.apps.api.response import error_response
from socadmin.core.errors import (
    ChatUnavailable,
    ConflictError,
    DatabaseError,
    EmbeddingUnavailable,
    InvalidEmbedding,
    KnowledgeStoreError,
    MissingCompanyError,
    NoEmbeddingsGenerated,
    NotFoundError,
    NothingToSync,
    ProtectedRoleError,
    ProviderConfigError,
    SocAdminError,
)
from socadmin.persistence.guards import TenantPredicateError

logger = logging.getLogger(__name__)


_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}

# Most specific classes first; the first isinstance match wins.
_DOMAIN_ERRORS: tuple[tuple[type[SocAdminError], int, str], ...] = (
    (ProtectedRoleError, 409, "ROLE_PROTECTED"),
    (ConflictError, 409, "CONFLICT"),
    (NotFoundError, 404, "NOT_FOUND"),
    (NothingToSync, 404, "NOTHING_TO_SYNC"),
    (MissingCompanyError, 400, "COMPANY_REQUIRED"),
    (EmbeddingUnavailable, 503, "EMBEDDING_UNAVAILABLE"),
    (ChatUnavailable, 503, "CHAT_UNAVAILABLE"),
    (InvalidEmbedding, 502, "INVALID_EMBEDDING"),
    (NoEmbeddingsGenerated, 500, "NO_EMBEDDINGS"),
    (KnowledgeStoreError, 500, "KNOWLEDGE_STORE_ERROR"),
    (ProviderConfigError, 500, "PROVIDER_CONFIG_ERROR"),
    (DatabaseError, 500, "DATABASE_ERROR"),
)


def _default_code(status_code: int) -> str:
    return _DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def domain_status(exc: SocAdminError) -> tuple[int, str]:
    for error_type, status_code, code in _DOMAIN_ERRORS:
        if isinstance(exc, error_type):
            return status_code, code
    return 500, "INTERNAL_ERROR"


def domain_http_error(exc: SocAdminError) -> HTTPException:
    status_code, code = domain_status(exc)
    return HTTPException(status_code=status_code, detail={"code": code, "message": str(exc)})


def _split_detail(detail: Any, status_code: int) -> tuple[str, str, dict[str, Any] | None]:
    # Structured details carry code/message plus extras such as a redirect route.
    if isinstance(detail, dict):
        code = str(detail.get("code") or _default_code(status_code))
        message = str(detail.get("message") or "Request failed")
        details = {k: v for k, v in detail.items() if k not in {"code", "message"}}
        return code, message, details or None
    if isinstance(detail, str):
        return _default_code(status_code), detail, None
    return _default_code(status_code), "Request failed", None


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    payload = error_response(
        request=request,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": exc.errors()},
    )
    return JSONResponse(content=jsonable(payload), status_code=422)


def jsonable(payload: dict[str, Any]) -> dict[str, Any]:
    # Validation errors may embed exception objects under "ctx".
    return jsonable_encoder(payload, custom_encoder={Exception: str})


async def domain_exception_handler(request: Request, exc: SocAdminError) -> JSONResponse:
    status_code, code = domain_status(exc)
    if status_code >= 500:
        logger.error("domain_error path=%s code=%s", request.url.path, code, exc_info=exc)
    payload = error_response(request=request, code=code, message=str(exc) or code)
    return JSONResponse(content=payload, status_code=status_code)


async def tenant_predicate_exception_handler(request: Request, exc: TenantPredicateError) -> JSONResponse:
    # A query without a scope filter is a server bug, never a client error.
    logger.error("tenant_predicate_missing path=%s message=%s", request.url.path, exc.message)
    payload = error_response(
        request=request,
        code="TENANT_PREDICATE_REQUIRED",
        message="Tenant scope could not be established",
    )
    return JSONResponse(content=payload, status_code=500)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception path=%s", request.url.path, exc_info=exc)
    payload = error_response(request=request, code="INTERNAL_ERROR", message="Internal server error")
    return JSONResponse(content=payload, status_code=500)
