from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.apps.api.deps import Principal, clear_auth_cache, get_db, require_access
from socadmin.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from socadmin.apps.api.response import SuccessEnvelope, success_response
from socadmin.apps.api.routes.identity import ProfileResponse, profile_response
from socadmin.apps.api.routes.roles import RoleResponse, role_response
from socadmin.apps.api.validation import BoundedEmail
from socadmin.domain.permissions import AppRole
from socadmin.services import users as users_service
from socadmin.services.access_gate import USER_ADMIN
from socadmin.services.clients import UNSET
from socadmin.services.users import UserWithRoles

router = APIRouter(prefix="/users", tags=["users"], responses=DEFAULT_ERROR_RESPONSES)


class UserResponse(BaseModel):
    profile: ProfileResponse
    roles: list[RoleResponse]


class UserPatchRequest(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: BoundedEmail | None = None
    client_id: str | None = None
    role: AppRole | None = None

    model_config = {"extra": "forbid"}


class RoleAssignmentRequest(BaseModel):
    role_id: str = Field(min_length=1)

    model_config = {"extra": "forbid"}


def _to_response(user: UserWithRoles) -> UserResponse:
    return UserResponse(profile=profile_response(user.profile), roles=[role_response(r) for r in user.roles])


@router.get("", response_model=SuccessEnvelope[list[UserResponse]])
async def list_users(
    request: Request,
    principal: Principal = Depends(require_access(USER_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    users = await users_service.list_users(db, principal.company_id)
    return success_response(request=request, data=[_to_response(u) for u in users])


@router.patch("/{user_id}", response_model=SuccessEnvelope[list[UserResponse]])
async def update_user(
    user_id: str,
    request: Request,
    payload: UserPatchRequest,
    principal: Principal = Depends(require_access(USER_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    users = await users_service.update_user(
        db,
        principal.company_id,
        user_id,
        display_name=payload.display_name,
        email=str(payload.email) if payload.email is not None else None,
        client_id=payload.client_id if "client_id" in payload.model_fields_set else UNSET,
        role=payload.role.value if payload.role is not None else None,
    )
    clear_auth_cache()
    return success_response(request=request, data=[_to_response(u) for u in users])


@router.post(
    "/{user_id}/roles",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessEnvelope[list[UserResponse]],
)
async def assign_role(
    user_id: str,
    request: Request,
    payload: RoleAssignmentRequest,
    principal: Principal = Depends(require_access(USER_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    users = await users_service.assign_role(db, principal.company_id, user_id, payload.role_id)
    # Cached principals would keep the old permission set until expiry.
    clear_auth_cache()
    return success_response(request=request, data=[_to_response(u) for u in users])


@router.delete("/{user_id}/roles/{role_id}", response_model=SuccessEnvelope[list[UserResponse]])
async def remove_role(
    user_id: str,
    role_id: str,
    request: Request,
    principal: Principal = Depends(require_access(USER_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    users = await users_service.remove_role(db, principal.company_id, user_id, role_id)
    clear_auth_cache()
    return success_response(request=request, data=[_to_response(u) for u in users])
