"""Conversation records and their persistent store."""

from cortex.conversation.models import Conversation, ConversationPreview, Message, Role
from cortex.conversation.store import ConversationStore

__all__ = [
    "Conversation",
    "ConversationPreview",
    "Message",
    "Role",
    "ConversationStore",
]
