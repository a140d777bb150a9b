from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.apps.api.deps import Principal, clear_auth_cache, get_db, require_access
from socadmin.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from socadmin.apps.api.response import SuccessEnvelope, success_response
from socadmin.domain.models import Role
from socadmin.domain.permissions import PERMISSION_LABELS, Permission, parse_permissions, serialize_permissions
from socadmin.services import roles as roles_service
from socadmin.services.access_gate import ADMIN_AREA, ROLE_ADMIN

router = APIRouter(prefix="/roles", tags=["roles"], responses=DEFAULT_ERROR_RESPONSES)


class RoleResponse(BaseModel):
    id: str
    name: str
    description: str | None
    permissions: list[str]
    protected: bool


class PermissionResponse(BaseModel):
    id: str
    label: str
    description: str


class RoleCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    permissions: list[Permission] = Field(default_factory=list)

    model_config = {"extra": "forbid", "str_strip_whitespace": True}


class RolePatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    permissions: list[Permission] | None = None

    model_config = {"extra": "forbid", "str_strip_whitespace": True}


def role_response(role: Role) -> RoleResponse:
    return RoleResponse(
        id=role.id,
        name=role.name,
        description=role.description,
        # Unknown stored strings are dropped on the way out.
        permissions=serialize_permissions(parse_permissions(role.permissions_json)),
        protected=roles_service.is_protected_role(role.name),
    )


@router.get("", response_model=SuccessEnvelope[list[RoleResponse]])
async def list_roles(
    request: Request,
    principal: Principal = Depends(require_access(ADMIN_AREA)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    roles = await roles_service.list_roles(db)
    return success_response(request=request, data=[role_response(r) for r in roles])


@router.get("/permissions", response_model=SuccessEnvelope[list[PermissionResponse]])
async def list_permissions(
    request: Request,
    principal: Principal = Depends(require_access(ADMIN_AREA)),
) -> dict:
    payload = [
        PermissionResponse(id=perm.value, label=label, description=description)
        for perm, (label, description) in PERMISSION_LABELS.items()
    ]
    return success_response(request=request, data=payload)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessEnvelope[list[RoleResponse]])
async def create_role(
    request: Request,
    payload: RoleCreateRequest,
    principal: Principal = Depends(require_access(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    roles = await roles_service.create_role(
        db, name=payload.name, description=payload.description, permissions=payload.permissions
    )
    return success_response(request=request, data=[role_response(r) for r in roles])


@router.patch("/{role_id}", response_model=SuccessEnvelope[list[RoleResponse]])
async def update_role(
    role_id: str,
    request: Request,
    payload: RolePatchRequest,
    principal: Principal = Depends(require_access(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    roles = await roles_service.update_role(
        db,
        role_id,
        name=payload.name,
        description=payload.description,
        permissions=payload.permissions,
    )
    clear_auth_cache()
    return success_response(request=request, data=[role_response(r) for r in roles])


@router.delete("/{role_id}", response_model=SuccessEnvelope[list[RoleResponse]])
async def delete_role(
    role_id: str,
    request: Request,
    principal: Principal = Depends(require_access(ROLE_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    roles = await roles_service.delete_role(db, role_id)
    clear_auth_cache()
    return success_response(request=request, data=[role_response(r) for r in roles])
