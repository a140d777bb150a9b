from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.apps.api.deps import Principal, get_current_principal, get_db, require_access
from socadmin.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from socadmin.apps.api.validation import BoundedEmail
from socadmin.apps.api.response import SuccessEnvelope, success_response
from socadmin.domain.models import Profile
from socadmin.domain.permissions import serialize_permissions
from socadmin.services import identity as identity_service
from socadmin.services.access_gate import USER_ADMIN
from socadmin.services.clients import require_company
from socadmin.services.rbac import is_super_admin

router = APIRouter(tags=["identity"], responses=DEFAULT_ERROR_RESPONSES)


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    display_name: str | None
    email: str | None
    company_id: str | None
    client_id: str | None
    role: str


class MeResponse(BaseModel):
    user_id: str
    auth_method: str
    profile: ProfileResponse | None
    permissions: list[str]
    is_super_admin: bool


class IdentityRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=255)
    email: BoundedEmail
    name: str | None = Field(default=None, max_length=255)

    model_config = {"extra": "forbid"}


def profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        display_name=profile.display_name,
        email=profile.email,
        company_id=profile.company_id,
        client_id=profile.client_id,
        role=profile.role,
    )


@router.get("/me", response_model=SuccessEnvelope[MeResponse])
async def me(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict:
    profile = await identity_service.resolve_profile(db, principal.user_id)
    permissions = principal.permissions or frozenset()
    payload = MeResponse(
        user_id=principal.user_id,
        auth_method=principal.auth_method,
        profile=profile_response(profile) if profile else None,
        permissions=serialize_permissions(permissions),
        is_super_admin=is_super_admin(permissions),
    )
    return success_response(request=request, data=payload)


@router.post("/identities", response_model=SuccessEnvelope[ProfileResponse])
async def register_identity(
    request: Request,
    response: Response,
    payload: IdentityRequest,
    principal: Principal = Depends(require_access(USER_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    profile, created = await identity_service.register_identity(
        db,
        user_id=payload.user_id,
        email=str(payload.email),
        name=payload.name,
        company_id=require_company(principal.company_id),
    )
    response.status_code = 201 if created else 200
    return success_response(request=request, data=profile_response(profile))
