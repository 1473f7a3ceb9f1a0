"""Chat API routes."""

import traceback

from fastapi import APIRouter, Depends, HTTPException

from cortex.api.orchestrator_store import get_orchestrator, get_owner_id, raise_for_result
from cortex.api.schemas import ChatRequest, ChatResponse, ContextBlock
from cortex.engine.orchestrator import ChatOrchestrator
from cortex.errors import ErrorKind
from cortex.utils.logging import logger

router = APIRouter(prefix="/ai/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def send_message(
    request: ChatRequest,
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    """
    Send a message to Cortex.
    Creates a chat when no chatId is given (or reset is set).
    """
    logger.info(f"Received message: {request.message[:50]}...")

    try:
        references = [item.to_reference() for item in request.context_items]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = await orch.send_message(
            owner_id,
            request.message,
            references=references,
            conversation_id=request.chat_id,
            title_hint=request.title,
            reset=request.reset,
        )
    except Exception as e:
        logger.error(f"[AI_CHAT_ERROR] {type(e).__name__}: {e}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail="Failed to generate AI response")

    if result.kind == ErrorKind.UPSTREAM_GENERATION:
        # The user message is saved; hand back the chat id so the client can resend
        raise HTTPException(
            status_code=502,
            detail={"message": result.error, "chatId": result.value},
        )
    if not result.success:
        raise_for_result(result)

    sent = result.value
    return ChatResponse(
        chat_id=sent.conversation_id,
        reply=sent.reply,
        context=[ContextBlock.from_summary(s) for s in sent.context],
    )
