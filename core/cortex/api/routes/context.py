"""Context candidate search API routes."""

import traceback

from fastapi import APIRouter, Depends, HTTPException, Query

from cortex.api.orchestrator_store import get_orchestrator, get_owner_id, raise_for_result
from cortex.api.schemas import ContextSearchResponse, Suggestion
from cortex.engine.orchestrator import ChatOrchestrator
from cortex.utils.logging import logger

router = APIRouter(prefix="/ai/context", tags=["context"])


@router.get("", response_model=ContextSearchResponse)
async def search_context(
    q: str = Query(default=""),
    owner_id: str = Depends(get_owner_id),
    orch: ChatOrchestrator = Depends(get_orchestrator),
):
    """Notes, folders and files whose title matches q, a bounded number per type."""
    try:
        result = await orch.search_context_candidates(owner_id, q)
    except Exception as e:
        logger.error(f"[AI_CONTEXT_SEARCH_ERROR] {type(e).__name__}: {e}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail="Failed to fetch AI context options")
    if not result.success:
        raise_for_result(result)
    return ContextSearchResponse(items=[Suggestion.from_suggestion(s) for s in result.value])
