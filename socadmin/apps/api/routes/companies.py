from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.apps.api.deps import (
    Principal,
    clear_auth_cache,
    get_current_principal,
    get_db,
    require_access,
)
from socadmin.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from socadmin.apps.api.response import SuccessEnvelope, success_response
from socadmin.apps.api.validation import BoundedEmail
from socadmin.domain.models import Company
from socadmin.services import companies as companies_service
from socadmin.services.access_gate import TENANT_ADMIN
from socadmin.services.clients import require_company

router = APIRouter(prefix="/companies", tags=["companies"], responses=DEFAULT_ERROR_RESPONSES)


class CompanyResponse(BaseModel):
    id: str
    name: str
    email: str
    settings: dict[str, Any]
    created_at: str | None


class CompanyCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: BoundedEmail
    settings: dict[str, Any] | None = None

    model_config = {"extra": "forbid"}


class CompanyPatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: BoundedEmail | None = None
    settings: dict[str, Any] | None = None

    model_config = {"extra": "forbid"}


def _to_response(company: Company) -> CompanyResponse:
    return CompanyResponse(
        id=company.id,
        name=company.name,
        email=company.email,
        settings=company.settings_json or {},
        created_at=company.created_at.isoformat() if company.created_at else None,
    )


@router.get("", response_model=SuccessEnvelope[list[CompanyResponse]])
async def list_companies(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict:
    companies = await companies_service.list_companies(db, principal.company_id)
    return success_response(request=request, data=[_to_response(c) for c in companies])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessEnvelope[list[CompanyResponse]])
async def create_company(
    request: Request,
    payload: CompanyCreateRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict:
    # Any signed-in user may found a company; it becomes theirs.
    companies = await companies_service.create_company(
        db,
        actor_user_id=principal.user_id,
        name=payload.name,
        email=str(payload.email),
        settings=payload.settings,
    )
    # The caller's cached principal still carries no company.
    clear_auth_cache()
    return success_response(request=request, data=[_to_response(c) for c in companies])


@router.patch("/{company_id}", response_model=SuccessEnvelope[list[CompanyResponse]])
async def update_company(
    company_id: str,
    request: Request,
    payload: CompanyPatchRequest,
    principal: Principal = Depends(require_access(TENANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    companies = await companies_service.update_company(
        db,
        require_company(principal.company_id),
        company_id,
        name=payload.name,
        email=str(payload.email) if payload.email is not None else None,
        settings=payload.settings,
    )
    return success_response(request=request, data=[_to_response(c) for c in companies])


@router.delete("/{company_id}", response_model=SuccessEnvelope[list[CompanyResponse]])
async def delete_company(
    company_id: str,
    request: Request,
    principal: Principal = Depends(require_access(TENANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    companies = await companies_service.delete_company(db, require_company(principal.company_id), company_id)
    return success_response(request=request, data=[_to_response(c) for c in companies])
