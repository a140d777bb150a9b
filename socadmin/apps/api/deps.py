from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.config import get_settings
from socadmin.domain.models import Client, Profile
from socadmin.domain.permissions import Permission
from socadmin.persistence.db import SessionLocal, get_session
from socadmin.persistence.repos import api_keys as api_keys_repo
from socadmin.persistence.repos import profiles as profiles_repo
from socadmin.services import clients as clients_service
from socadmin.services import rbac
from socadmin.services.access_gate import AccessRequirement, AccessState, evaluate_access
from socadmin.services.auth.api_keys import hash_api_key, parse_key_id

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


class Principal(BaseModel):
    user_id: str
    profile_id: str | None = None
    company_id: str | None = None
    client_id: str | None = None
    role: str | None = None
    # None means the permission set was never resolved; the gate treats it as loading.
    permissions: frozenset[Permission] | None = None
    api_key_id: str | None = None
    auth_method: str = "api_key"

    def has(self, permission: Permission) -> bool:
        return self.permissions is not None and permission in self.permissions


_auth_cache: dict[str, tuple[float, Principal]] = {}
_auth_cache_lock = asyncio.Lock()


def _auth_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden_error(message: str, *, redirect_to: str | None = None) -> HTTPException:
    detail: dict[str, str] = {"code": "AUTH_FORBIDDEN", "message": message}
    if redirect_to is not None:
        detail["redirect"] = redirect_to
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


async def _get_cached_principal(key_hash: str, ttl_s: int) -> Principal | None:
    if ttl_s <= 0:
        return None
    now = time.time()
    async with _auth_cache_lock:
        entry = _auth_cache.get(key_hash)
        if not entry:
            return None
        expires_at, principal = entry
        if expires_at <= now:
            _auth_cache.pop(key_hash, None)
            return None
        return principal


async def _set_cached_principal(key_hash: str, principal: Principal, ttl_s: int) -> None:
    # Short expiry keeps role changes and revocations responsive.
    if ttl_s <= 0:
        return
    async with _auth_cache_lock:
        _auth_cache[key_hash] = (time.time() + ttl_s, principal)


def clear_auth_cache() -> None:
    _auth_cache.clear()


def _parse_bearer_token(header_value: str | None) -> str | None:
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _auth_error("Missing or invalid bearer token")
    return parts[1]


async def _load_permissions(db: AsyncSession, user_id: str) -> frozenset[Permission]:
    # A failed fetch leaves the caller with no permissions rather than an error page.
    try:
        return await rbac.get_permissions(db, user_id)
    except SQLAlchemyError as exc:
        logger.warning("permission_fetch_failed user_id=%s", user_id, exc_info=exc)
        await db.rollback()
        return frozenset()


def _principal_for(
    user_id: str,
    profile: Profile | None,
    permissions: frozenset[Permission],
    *,
    api_key_id: str | None,
    auth_method: str,
) -> Principal:
    return Principal(
        user_id=user_id,
        profile_id=profile.id if profile else None,
        company_id=profile.company_id if profile else None,
        client_id=profile.client_id if profile else None,
        role=profile.role if profile else None,
        permissions=permissions,
        api_key_id=api_key_id,
        auth_method=auth_method,
    )


async def _principal_from_dev_headers(request: Request, db: AsyncSession) -> Principal:
    # Header identities exist only for local development with AUTH_DEV_BYPASS.
    user_id = request.headers.get("X-User-Id")
    if not user_id:
        raise _auth_error("X-User-Id header is required in dev bypass mode")
    try:
        profile = await profiles_repo.get_by_user_id(db, user_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "AUTH_UNAVAILABLE", "message": "Authentication unavailable"},
        ) from exc
    permissions = await _load_permissions(db, user_id)
    return _principal_for(user_id, profile, permissions, api_key_id=None, auth_method="dev_bypass")


async def _touch_last_used(api_key_id: str) -> None:
    # Runs outside the request transaction; failures only cost a stale timestamp.
    async with SessionLocal() as session:
        try:
            await api_keys_repo.touch_last_used(session, api_key_id)
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()


async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal:
    settings = get_settings()
    bearer_token = _parse_bearer_token(request.headers.get(settings.auth_api_key_header))

    if not settings.auth_enabled or not bearer_token:
        if settings.auth_dev_bypass:
            return await _principal_from_dev_headers(request, db)
        if not settings.auth_enabled:
            raise _auth_error("Authentication disabled; set AUTH_DEV_BYPASS=true for dev access")
        raise _auth_error("Missing API key")

    if parse_key_id(bearer_token) is None:
        raise _auth_error("Invalid API key")
    key_hash = hash_api_key(bearer_token)
    cached = await _get_cached_principal(key_hash, settings.auth_cache_ttl_s)
    if cached:
        return cached

    try:
        api_key = await api_keys_repo.get_by_hash(db, key_hash)
        profile = await profiles_repo.get_by_user_id(db, api_key.user_id) if api_key else None
    except SQLAlchemyError as exc:
        logger.error("auth_lookup_failed", exc_info=exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "AUTH_UNAVAILABLE", "message": "Authentication unavailable"},
        ) from exc

    if api_key is None:
        raise _auth_error("Invalid API key")
    if api_key.revoked_at is not None:
        raise _auth_error("API key is revoked")
    if api_key.expires_at is not None and api_key.expires_at <= datetime.now(timezone.utc):
        raise _auth_error("API key expired")
    if profile is None:
        # Keys outlive deleted profiles; such keys authenticate nobody.
        raise _auth_error("API key has no profile")

    permissions = await _load_permissions(db, api_key.user_id)
    principal = _principal_for(
        api_key.user_id, profile, permissions, api_key_id=api_key.id, auth_method="api_key"
    )
    await _set_cached_principal(key_hash, principal, settings.auth_cache_ttl_s)
    asyncio.create_task(_touch_last_used(api_key.id))
    logger.info("auth_success user_id=%s api_key_id=%s", principal.user_id, api_key.id)
    return principal


def require_access(requirement: AccessRequirement):
    # Dependency factory applying the access gate at the route level.
    async def _dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        redirect_to = get_settings().default_redirect_route
        decision = evaluate_access(requirement, principal.permissions, redirect_to=redirect_to)
        if decision.allowed:
            return principal
        logger.info(
            "access_denied user_id=%s path=%s required=%s state=%s",
            principal.user_id,
            request.url.path,
            requirement.describe(),
            decision.state.value,
        )
        message = (
            "Permissions are still loading"
            if decision.state is AccessState.LOADING
            else f"Requires {requirement.describe()}"
        )
        raise _forbidden_error(message, redirect_to=decision.redirect_to or redirect_to)

    return _dependency


async def authorize_client(db: AsyncSession, principal: Principal, client_id: str) -> Client | None:
    """Check that ``client_id`` is visible to the caller.

    Company-wide readers get the tenant row back. Callers without
    view_all_clients only see the tenant pinned to their own profile, and
    get ``None`` because they cannot read the tenant record itself.
    """
    if principal.has(Permission.VIEW_ALL_CLIENTS) or principal.has(Permission.MANAGE_CLIENTS):
        return await clients_service.get_client(db, principal.company_id, client_id)
    if principal.client_id != client_id:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": "Client not found"})
    return None
