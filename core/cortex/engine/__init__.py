"""Engine module - prompt assembly, generation and turn orchestration."""

from cortex.engine.gateway import GeminiGateway, GenerationGateway
from cortex.engine.orchestrator import ChatOrchestrator, SendResult

__all__ = [
    "GeminiGateway",
    "GenerationGateway",
    "ChatOrchestrator",
    "SendResult",
]
