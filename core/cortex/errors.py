"""
Error taxonomy and the result contract shared by core operations.

Core operations never raise validation or not-found conditions across the
boundary; they return an OperationResult whose `kind` tells the caller what
went wrong. Exceptions are reserved for collaborators (stores, gateways).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Optional


class ErrorKind(str, Enum):
    """Category of a failed operation."""
    UNAUTHENTICATED = "unauthenticated"  # No owning identity - fatal for the request
    NOT_FOUND = "not_found"  # Conversation or reference target missing
    VALIDATION = "validation"  # Empty message, empty title, bad reference type
    UPSTREAM_GENERATION = "upstream_generation"  # Gateway errored or timed out
    DUPLICATE_REFERENCE = "duplicate_reference"  # Absorbed into success, never surfaced
    PERSISTENCE = "persistence"  # Backing store rejected a mutation


class CortexError(Exception):
    """Base class for Cortex exceptions."""


class GenerationError(CortexError):
    """The generation gateway failed to produce a reply."""


@dataclass
class OperationResult:
    """
    Result of a core operation.

    status: "success" | "error"
    kind: error category when status is "error"
    error: user-facing message when status is "error"
    value: payload when status is "success"
    """

    status: Literal["success", "error"]
    value: Any = None
    kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == "success"

    @classmethod
    def ok(cls, value: Any = None) -> "OperationResult":
        return cls(status="success", value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str, value: Any = None) -> "OperationResult":
        return cls(status="error", value=value, kind=kind, error=error)
