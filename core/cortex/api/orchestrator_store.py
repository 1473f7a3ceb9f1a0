"""Shared orchestrator instance and request dependencies for API routes."""

from typing import NoReturn, Optional

from fastapi import Header, HTTPException

from cortex.config import USER_HEADER
from cortex.conversation.store import ConversationStore
from cortex.engine.gateway import GeminiGateway
from cortex.engine.orchestrator import ChatOrchestrator
from cortex.errors import ErrorKind, OperationResult
from cortex.workspace.store import SQLiteWorkspaceStore

orchestrator: Optional[ChatOrchestrator] = None

STATUS_CODES = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.UPSTREAM_GENERATION: 502,
    ErrorKind.PERSISTENCE: 500,
}


async def get_orchestrator() -> ChatOrchestrator:
    """Get or create the orchestrator instance."""
    global orchestrator
    if orchestrator is None:
        orchestrator = ChatOrchestrator(
            conversations=ConversationStore(),
            workspace=SQLiteWorkspaceStore(),
            gateway=GeminiGateway(),
        )
    return orchestrator


async def get_owner_id(x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER)) -> str:
    """Identity of the signed-in user, supplied by the auth layer in front of us."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def raise_for_result(result: OperationResult) -> NoReturn:
    """Translate a failed OperationResult into an HTTP error."""
    raise HTTPException(status_code=STATUS_CODES.get(result.kind, 500), detail=result.error)
