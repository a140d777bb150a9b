from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from starlette.exceptions import HTTPException as StarletteHTTPException

from socadmin.apps.api.errors import (
    domain_exception_handler,
    http_exception_handler,
    tenant_predicate_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from socadmin.apps.api.response import API_VERSION
from socadmin.apps.api.routes.clients import router as clients_router
from socadmin.apps.api.routes.companies import router as companies_router
from socadmin.apps.api.routes.health import router as health_router
from socadmin.apps.api.routes.identity import router as identity_router
from socadmin.apps.api.routes.knowledge import router as knowledge_router
from socadmin.apps.api.routes.rag import router as rag_router
from socadmin.apps.api.routes.roles import router as roles_router
from socadmin.apps.api.routes.users import router as users_router
from socadmin.core.config import get_settings
from socadmin.core.errors import SocAdminError
from socadmin.core.logging import configure_logging
from socadmin.persistence.db import dispose_engine
from socadmin.persistence.guards import TenantPredicateError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="SOC Admin API",
        openapi_url=f"/{API_VERSION}/openapi.json",
        docs_url=f"/{API_VERSION}/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        start = time.monotonic()
        response = await call_next(request)
        latency_ms = (time.monotonic() - start) * 1000.0
        logger.info(
            "request path=%s method=%s status=%s latency_ms=%.1f request_id=%s",
            request.url.path,
            request.method,
            response.status_code,
            latency_ms,
            request_id,
        )
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SocAdminError, domain_exception_handler)
    app.add_exception_handler(TenantPredicateError, tenant_predicate_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    for router in (
        health_router,
        identity_router,
        companies_router,
        clients_router,
        users_router,
        roles_router,
        knowledge_router,
        rag_router,
    ):
        app.include_router(router, prefix=f"/{API_VERSION}")

    def custom_openapi() -> dict:
        # Advertise bearer API keys on every route except health.
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(title="SOC Admin API", version=API_VERSION, routes=app.routes)
        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {})["BearerAuth"] = {"type": "http", "scheme": "bearer"}
        for path, operations in schema.get("paths", {}).items():
            if path == f"/{API_VERSION}/health":
                continue
            for operation in operations.values():
                operation.setdefault("security", [{"BearerAuth": []}])
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi
    logger.info("app_created name=%s auth_enabled=%s", settings.app_name, settings.auth_enabled)
    return app


app = create_app()
