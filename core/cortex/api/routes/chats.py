"""Conversation history and attached-context API routes."""

import traceback
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from cortex.api.orchestrator_store import get_orchestrator, get_owner_id, raise_for_result
from cortex.api.schemas import (
    AddContextRequest,
    ChatDetailResponse,
    ChatEnvelope,
    ChatListResponse,
    ChatMessage,
    ChatSummary,
    CreateChatRequest,
    RenameChatRequest,
    SuccessResponse,
)
from cortex.config import CHAT_PAGE_SIZE
from cortex.engine.orchestrator import ChatOrchestrator
from cortex.utils.logging import logger

router = APIRouter(prefix="/ai/chats", tags=["chats"])


def _server_error(label: str, message: str, e: Exception) -> HTTPException:
    logger.error(f"[{label}] {type(e).__name__}: {e}")
    logger.error(traceback.format_exc())
    return HTTPException(status_code=500, detail=message)


@router.get("", response_model=ChatListResponse)
async def list_chats(
    offset: int = Query(default=0),
    limit: int = Query(default=CHAT_PAGE_SIZE),
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    """Non-empty chats, most recently active first (limit capped at 10)."""
    try:
        result = await orch.list_conversations(owner_id, offset=offset, limit=limit)
    except Exception as e:
        raise _server_error("AI_CHATS_GET_ERROR", "Failed to fetch AI chats", e)
    if not result.success:
        raise_for_result(result)
    return ChatListResponse(chats=[ChatSummary.from_preview(p) for p in result.value])


@router.post("", response_model=ChatEnvelope)
async def create_chat(
    request: Optional[CreateChatRequest] = None,
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    """Create an empty chat. It stays out of listings until a message lands."""
    title = request.title if request else None
    try:
        result = await orch.create_conversation(owner_id, title)
    except Exception as e:
        raise _server_error("AI_CHATS_POST_ERROR", "Failed to create chat", e)
    if not result.success:
        raise_for_result(result)
    return ChatEnvelope(chat=ChatSummary.from_conversation(result.value))


@router.get("/{chat_id}", response_model=ChatDetailResponse)
async def get_chat(
    chat_id: str,
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    try:
        result = await orch.get_conversation(owner_id, chat_id)
    except Exception as e:
        raise _server_error("AI_CHAT_DETAIL_ERROR", "Failed to fetch AI chat detail", e)
    if not result.success:
        raise_for_result(result)

    conversation, messages = result.value
    return ChatDetailResponse(
        chat=ChatSummary.from_conversation(conversation),
        messages=[ChatMessage.from_message(m) for m in messages],
    )


@router.patch("/{chat_id}", response_model=SuccessResponse)
async def rename_chat(
    chat_id: str,
    request: RenameChatRequest,
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    try:
        result = await orch.rename_conversation(owner_id, chat_id, request.title)
    except Exception as e:
        raise _server_error("AI_CHAT_UPDATE_ERROR", "Failed to update chat", e)
    if not result.success:
        raise_for_result(result)
    return SuccessResponse(success=True)


@router.delete("/{chat_id}", response_model=SuccessResponse)
async def delete_chat(
    chat_id: str,
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    try:
        result = await orch.delete_conversation(owner_id, chat_id)
    except Exception as e:
        raise _server_error("AI_CHAT_DELETE_ERROR", "Failed to delete chat", e)
    if not result.success:
        raise_for_result(result)
    return SuccessResponse(success=True)


# ─────────────────────────────────────────────────────────
# ATTACHED CONTEXT
# ─────────────────────────────────────────────────────────


@router.post("/{chat_id}/context", response_model=SuccessResponse)
async def add_context_item(
    chat_id: str,
    request: AddContextRequest,
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    """Attach a note, folder or file. Attaching it again is not an error."""
    try:
        result = await orch.add_context_reference(owner_id, chat_id, request.type, request.item_id)
    except Exception as e:
        raise _server_error("AI_CHAT_CONTEXT_ADD_ERROR", "Failed to add context item", e)
    if not result.success:
        raise_for_result(result)
    return SuccessResponse(success=True)


@router.delete("/{chat_id}/context", response_model=SuccessResponse)
async def remove_context_item(
    chat_id: str,
    item_id: Optional[str] = Query(default=None, alias="itemId"),
    type: Optional[str] = Query(default=None),
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    try:
        result = await orch.remove_context_reference(owner_id, chat_id, type, item_id)
    except Exception as e:
        raise _server_error("AI_CHAT_CONTEXT_REMOVE_ERROR", "Failed to remove context item", e)
    if not result.success:
        raise_for_result(result)
    return SuccessResponse(success=True)
