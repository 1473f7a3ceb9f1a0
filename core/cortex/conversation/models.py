"""Conversation and message records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from cortex.context.references import ContextReference


class Role(str, Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class Conversation:
    """
    A titled conversation and its current reference set.

    A conversation with no messages is a draft: it can be fetched by id but
    never appears in listings.
    """
    id: str
    owner_id: str
    title: str
    created_at: datetime
    updated_at: datetime
    references: list[ContextReference] = field(default_factory=list)


@dataclass
class ConversationPreview:
    """A conversation as shown in the history list."""
    conversation: Conversation
    message_count: int


@dataclass(frozen=True)
class Message:
    """
    One immutable turn.

    references_at_send_time is a snapshot of what was attached when the
    message was sent, unaffected by later registry changes.
    """
    id: str
    conversation_id: str
    role: Role
    content: str
    created_at: datetime
    references_at_send_time: tuple[ContextReference, ...] = ()
