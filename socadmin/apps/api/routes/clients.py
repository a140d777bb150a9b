from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.apps.api.deps import Principal, authorize_client, get_db, require_access
from socadmin.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from socadmin.apps.api.response import SuccessEnvelope, success_response
from socadmin.apps.api.validation import BoundedEmail, OptionalUrl
from socadmin.domain.models import Asset, Client, SecurityLog
from socadmin.services import assets as assets_service
from socadmin.services import clients as clients_service
from socadmin.services.access_gate import ASSET_READ, ASSET_WRITE, CLIENT_READ, LOG_READ, TENANT_ADMIN
from socadmin.services.clients import UNSET, client_settings

router = APIRouter(prefix="/clients", tags=["clients"], responses=DEFAULT_ERROR_RESPONSES)


class ClientResponse(BaseModel):
    id: str
    company_id: str
    name: str
    email: str
    status: str
    edr_endpoint: str | None
    api_key_configured: bool
    created_at: str | None


class ClientCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: BoundedEmail

    model_config = {"extra": "forbid", "str_strip_whitespace": True}


class ClientPatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: BoundedEmail | None = None
    status: Literal["active", "inactive"] | None = None
    api_key: str | None = None
    edr_endpoint: OptionalUrl = None

    model_config = {"extra": "forbid", "str_strip_whitespace": True}


class AssetStatsResponse(BaseModel):
    total: int
    online: int
    offline: int
    vulnerable: int


class EventStatsResponse(BaseModel):
    total: int
    by_severity: dict[str, int]


class ClientStatsResponse(BaseModel):
    assets: AssetStatsResponse
    events: EventStatsResponse
    last_activity: str | None


class AssetResponse(BaseModel):
    id: str
    client_id: str
    name: str
    ip_address: str | None
    status: str
    vulnerabilities: list[dict[str, Any]]


class AssetCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    ip_address: str | None = Field(default=None, max_length=64)
    status: Literal["online", "offline"] = "online"
    vulnerabilities: list[dict[str, Any]] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class SecurityLogResponse(BaseModel):
    id: str
    event_id: str
    timestamp: str | None
    severity: str
    status: str
    host_name: str | None
    process_name: str | None
    source_ip: str | None
    destination_ip: str | None
    mitre_tactic: str | None
    mitre_technique: str | None
    classification: str | None
    description: str | None


def _to_response(client: Client) -> ClientResponse:
    settings = client_settings(client)
    return ClientResponse(
        id=client.id,
        company_id=client.company_id,
        name=client.name,
        email=client.email,
        status=settings.get("status", "active"),
        edr_endpoint=settings.get("edr_endpoint") or None,
        # Never echo the stored EDR credential back to the console.
        api_key_configured=bool(settings.get("api_key")),
        created_at=client.created_at.isoformat() if client.created_at else None,
    )


def _asset_response(asset: Asset) -> AssetResponse:
    return AssetResponse(
        id=asset.id,
        client_id=asset.client_id,
        name=asset.name,
        ip_address=asset.ip_address,
        status=asset.status,
        vulnerabilities=asset.vulnerabilities_json if isinstance(asset.vulnerabilities_json, list) else [],
    )


def _log_response(log: SecurityLog) -> SecurityLogResponse:
    return SecurityLogResponse(
        id=log.id,
        event_id=log.event_id,
        timestamp=log.timestamp.isoformat() if log.timestamp else None,
        severity=log.severity,
        status=log.status,
        host_name=log.host_name,
        process_name=log.process_name,
        source_ip=log.source_ip,
        destination_ip=log.destination_ip,
        mitre_tactic=log.mitre_tactic,
        mitre_technique=log.mitre_technique,
        classification=log.classification,
        description=log.description,
    )


@router.get("", response_model=SuccessEnvelope[list[ClientResponse]])
async def list_clients(
    request: Request,
    search: str | None = Query(default=None, max_length=100),
    status_filter: Literal["active", "inactive"] | None = Query(default=None, alias="status"),
    principal: Principal = Depends(require_access(CLIENT_READ)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    clients = await clients_service.list_clients(db, principal.company_id, search=search, status=status_filter)
    return success_response(request=request, data=[_to_response(c) for c in clients])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessEnvelope[list[ClientResponse]])
async def create_client(
    request: Request,
    payload: ClientCreateRequest,
    principal: Principal = Depends(require_access(TENANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    clients = await clients_service.create_client(
        db, principal.company_id, name=payload.name, email=str(payload.email)
    )
    return success_response(request=request, data=[_to_response(c) for c in clients])


@router.get("/{client_id}", response_model=SuccessEnvelope[ClientResponse])
async def get_client(
    client_id: str,
    request: Request,
    principal: Principal = Depends(require_access(CLIENT_READ)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    client = await clients_service.get_client(db, principal.company_id, client_id)
    return success_response(request=request, data=_to_response(client))


@router.patch("/{client_id}", response_model=SuccessEnvelope[list[ClientResponse]])
async def update_client(
    client_id: str,
    request: Request,
    payload: ClientPatchRequest,
    principal: Principal = Depends(require_access(TENANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    # Absent keys leave settings untouched; explicit nulls clear them.
    provided = payload.model_fields_set
    clients = await clients_service.update_client(
        db,
        principal.company_id,
        client_id,
        name=payload.name,
        email=str(payload.email) if payload.email is not None else None,
        status=payload.status,
        api_key=payload.api_key if "api_key" in provided else UNSET,
        edr_endpoint=payload.edr_endpoint if "edr_endpoint" in provided else UNSET,
    )
    return success_response(request=request, data=[_to_response(c) for c in clients])


@router.delete("/{client_id}", response_model=SuccessEnvelope[list[ClientResponse]])
async def delete_client(
    client_id: str,
    request: Request,
    principal: Principal = Depends(require_access(TENANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    clients = await clients_service.delete_client(db, principal.company_id, client_id)
    return success_response(request=request, data=[_to_response(c) for c in clients])


@router.get("/{client_id}/stats", response_model=SuccessEnvelope[ClientStatsResponse])
async def client_stats(
    client_id: str,
    request: Request,
    principal: Principal = Depends(require_access(CLIENT_READ)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    stats = await clients_service.get_client_stats(db, principal.company_id, client_id)
    payload = ClientStatsResponse(
        assets=AssetStatsResponse(**asdict(stats.assets)),
        events=EventStatsResponse(total=stats.events.total, by_severity=dict(stats.events.by_severity)),
        last_activity=stats.last_activity.isoformat() if stats.last_activity else None,
    )
    return success_response(request=request, data=payload)


@router.get("/{client_id}/assets", response_model=SuccessEnvelope[list[AssetResponse]])
async def list_assets(
    client_id: str,
    request: Request,
    principal: Principal = Depends(require_access(ASSET_READ)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await authorize_client(db, principal, client_id)
    assets = await assets_service.list_assets(db, client_id)
    return success_response(request=request, data=[_asset_response(a) for a in assets])


@router.post(
    "/{client_id}/assets",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessEnvelope[list[AssetResponse]],
)
async def create_asset(
    client_id: str,
    request: Request,
    payload: AssetCreateRequest,
    principal: Principal = Depends(require_access(ASSET_WRITE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await authorize_client(db, principal, client_id)
    assets = await assets_service.create_asset(
        db,
        client_id,
        name=payload.name,
        ip_address=payload.ip_address,
        status=payload.status,
        vulnerabilities=payload.vulnerabilities,
    )
    return success_response(request=request, data=[_asset_response(a) for a in assets])


@router.get("/{client_id}/logs", response_model=SuccessEnvelope[list[SecurityLogResponse]])
async def list_logs(
    client_id: str,
    request: Request,
    severity: Literal["critical", "high", "medium", "low"] | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    principal: Principal = Depends(require_access(LOG_READ)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await authorize_client(db, principal, client_id)
    logs = await assets_service.list_security_logs(db, client_id, severity=severity, limit=limit)
    return success_response(request=request, data=[_log_response(log) for log in logs])
