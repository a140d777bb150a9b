from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.apps.api.deps import Principal, get_db, require_access
from socadmin.apps.api.errors import domain_status
from socadmin.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from socadmin.apps.api.response import SuccessEnvelope, flat_failure_response, success_response
from socadmin.core.errors import SocAdminError
from socadmin.services import clients as clients_service
from socadmin.services import knowledge as knowledge_service
from socadmin.services.access_gate import CLIENT_READ, CLIENT_WRITE
from socadmin.services.knowledge import DocumentInput, IngestResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge", tags=["knowledge"], responses=DEFAULT_ERROR_RESPONSES)


class DocumentPayload(BaseModel):
    content: str = Field(min_length=1)
    metadata: dict[str, Any] | None = None

    model_config = {"extra": "forbid"}


class EmbedDocumentsRequest(BaseModel):
    documents: list[DocumentPayload] = Field(min_length=1)
    client_id: str = Field(alias="clientId", min_length=1)
    ollama_url: str | None = Field(default=None, alias="ollamaUrl")

    model_config = {"extra": "forbid", "populate_by_name": True}


class UploadRequest(BaseModel):
    text: str = Field(min_length=1)
    client_id: str = Field(alias="clientId", min_length=1)
    ollama_url: str | None = Field(default=None, alias="ollamaUrl")

    model_config = {"extra": "forbid", "populate_by_name": True}


class SyncRequest(BaseModel):
    client_id: str = Field(alias="clientId", min_length=1)
    ollama_url: str | None = Field(default=None, alias="ollamaUrl")

    model_config = {"extra": "forbid", "populate_by_name": True}


class IngestResponse(BaseModel):
    success: bool
    message: str
    chunksProcessed: int
    documentsProcessed: int


class ClearResponse(BaseModel):
    success: bool
    deleted: int


class CountResponse(BaseModel):
    clientId: str
    count: int


def _ingest_response(result: IngestResult) -> IngestResponse:
    return IngestResponse(
        success=True,
        message=result.message,
        chunksProcessed=result.chunks_processed,
        documentsProcessed=result.documents_processed,
    )


def _ingest_failure(request: Request, exc: Exception) -> JSONResponse:
    # Ingestion failures keep the flat {error, success} body the console expects.
    status_code = domain_status(exc)[0] if isinstance(exc, SocAdminError) else 500
    return flat_failure_response(
        request=request, status_code=status_code, body={"error": str(exc), "success": False}
    )


@router.post("/embed-documents", response_model=SuccessEnvelope[IngestResponse])
async def embed_documents(
    request: Request,
    payload: EmbedDocumentsRequest,
    principal: Principal = Depends(require_access(CLIENT_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    await clients_service.get_client(db, principal.company_id, payload.client_id)
    documents = [DocumentInput(content=d.content, metadata=dict(d.metadata or {})) for d in payload.documents]
    try:
        result = await knowledge_service.embed_documents(
            db, documents, client_id=payload.client_id, ollama_url=payload.ollama_url
        )
    except (SocAdminError, ValueError) as exc:
        logger.error("embed_documents_failed client_id=%s error=%s", payload.client_id, exc)
        return _ingest_failure(request, exc)
    return success_response(request=request, data=_ingest_response(result))


@router.post("/upload", response_model=SuccessEnvelope[IngestResponse])
async def upload_documents(
    request: Request,
    payload: UploadRequest,
    principal: Principal = Depends(require_access(CLIENT_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    client = await clients_service.get_client(db, principal.company_id, payload.client_id)
    documents = knowledge_service.upload_documents(payload.text, client_name=client.name)
    try:
        result = await knowledge_service.embed_documents(
            db, documents, client_id=client.id, ollama_url=payload.ollama_url
        )
    except (SocAdminError, ValueError) as exc:
        logger.error("upload_failed client_id=%s error=%s", client.id, exc)
        return _ingest_failure(request, exc)
    return success_response(request=request, data=_ingest_response(result))


@router.post("/sync-vulnerabilities", response_model=SuccessEnvelope[IngestResponse])
async def sync_vulnerabilities(
    request: Request,
    payload: SyncRequest,
    principal: Principal = Depends(require_access(CLIENT_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    client = await clients_service.get_client(db, principal.company_id, payload.client_id)
    try:
        result = await knowledge_service.sync_vulnerabilities(
            db, client_id=client.id, client_name=client.name, ollama_url=payload.ollama_url
        )
    except SocAdminError as exc:
        logger.error("vulnerability_sync_failed client_id=%s error=%s", client.id, exc)
        return _ingest_failure(request, exc)
    return success_response(request=request, data=_ingest_response(result))


@router.delete("/{client_id}", response_model=SuccessEnvelope[ClearResponse])
async def clear_knowledge(
    client_id: str,
    request: Request,
    principal: Principal = Depends(require_access(CLIENT_WRITE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await clients_service.get_client(db, principal.company_id, client_id)
    deleted = await knowledge_service.clear_knowledge(db, client_id)
    return success_response(request=request, data=ClearResponse(success=True, deleted=deleted))


@router.get("/{client_id}/count", response_model=SuccessEnvelope[CountResponse])
async def count_knowledge(
    client_id: str,
    request: Request,
    principal: Principal = Depends(require_access(CLIENT_READ)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await clients_service.get_client(db, principal.company_id, client_id)
    total = await knowledge_service.count_knowledge(db, client_id)
    return success_response(request=request, data=CountResponse(clientId=client_id, count=total))
