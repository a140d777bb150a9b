from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.apps.api.deps import Principal, authorize_client, get_db, require_access
from socadmin.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from socadmin.apps.api.response import SuccessEnvelope, flat_failure_response, success_response
from socadmin.services import rag_chat
from socadmin.services.access_gate import CHAT

router = APIRouter(prefix="/rag", tags=["rag"], responses=DEFAULT_ERROR_RESPONSES)


class ChatTurn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    client_id: str | None = Field(default=None, alias="clientId")
    conversation_history: list[ChatTurn] = Field(default_factory=list, alias="conversationHistory")
    ollama_url: str | None = Field(default=None, alias="ollamaUrl")

    model_config = {"extra": "forbid", "populate_by_name": True}


class ChatContext(BaseModel):
    documentsFound: int
    hasContext: bool


class ChatResponse(BaseModel):
    response: str
    context: ChatContext


@router.post("/chat", response_model=SuccessEnvelope[ChatResponse])
async def chat(
    request: Request,
    payload: ChatRequest,
    principal: Principal = Depends(require_access(CHAT)),
    db: AsyncSession = Depends(get_db),
):
    if payload.client_id:
        await authorize_client(db, principal, payload.client_id)
    outcome = await rag_chat.answer_chat(
        db,
        message=payload.message,
        client_id=payload.client_id,
        history=[turn.model_dump() for turn in payload.conversation_history],
        ollama_url=payload.ollama_url,
    )
    if outcome.status_code != 200:
        # The apology body is what the chat panel renders on failure.
        return flat_failure_response(request=request, status_code=outcome.status_code, body=outcome.body)
    return success_response(request=request, data=outcome.body)
