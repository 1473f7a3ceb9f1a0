"""Pydantic models for API request/response schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from cortex.context.references import ContextReference, make_reference, reference_to_dict
from cortex.context.resolver import ContextSuggestion
from cortex.context.summarizer import ContextSummary
from cortex.conversation.models import Conversation, ConversationPreview, Message


class CamelModel(BaseModel):
    """Model serialized with camelCase keys, accepting either case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool
    message: str | None = None


class ContextItem(CamelModel):
    """A reference as exchanged with the client."""

    id: str
    type: Literal["note", "folder", "file"]

    @classmethod
    def from_reference(cls, ref: ContextReference) -> "ContextItem":
        return cls(**reference_to_dict(ref))

    def to_reference(self) -> ContextReference:
        return make_reference(self.type, self.id)


class ChatSummary(CamelModel):
    """Conversation metadata, with a message count in listings."""

    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    context_items: list[ContextItem] = []
    message_count: int | None = None

    @classmethod
    def from_conversation(
        cls, conversation: Conversation, message_count: Optional[int] = None
    ) -> "ChatSummary":
        return cls(
            id=conversation.id,
            title=conversation.title,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            context_items=[ContextItem.from_reference(r) for r in conversation.references],
            message_count=message_count,
        )

    @classmethod
    def from_preview(cls, preview: ConversationPreview) -> "ChatSummary":
        return cls.from_conversation(preview.conversation, preview.message_count)


class ChatListResponse(CamelModel):
    chats: list[ChatSummary]


class CreateChatRequest(CamelModel):
    title: str | None = None


class ChatEnvelope(CamelModel):
    chat: ChatSummary


class ChatMessage(CamelModel):
    """A stored message."""

    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    created_at: datetime
    context_items: list[ContextItem] = []

    @classmethod
    def from_message(cls, message: Message) -> "ChatMessage":
        return cls(
            id=message.id,
            role=message.role.value,
            content=message.content,
            created_at=message.created_at,
            context_items=[
                ContextItem.from_reference(r) for r in message.references_at_send_time
            ],
        )


class ChatDetailResponse(CamelModel):
    chat: ChatSummary
    messages: list[ChatMessage]


class RenameChatRequest(CamelModel):
    title: str | None = None


class AddContextRequest(CamelModel):
    """Attach request; missing fields are reported as a 400, not a 422."""

    item_id: str | None = None
    type: str | None = None


class Suggestion(CamelModel):
    id: str
    type: Literal["note", "folder", "file"]
    title: str
    subtitle: str | None = None

    @classmethod
    def from_suggestion(cls, suggestion: ContextSuggestion) -> "Suggestion":
        return cls(**suggestion.to_dict())


class ContextSearchResponse(CamelModel):
    items: list[Suggestion]


class ChatRequest(CamelModel):
    """Chat message request."""

    chat_id: str | None = None
    message: str = ""
    context_items: list[ContextItem] = []
    title: str | None = None
    reset: bool = False


class ContextBlock(CamelModel):
    """A context summary returned alongside a reply."""

    id: str
    type: Literal["note", "folder", "file"]
    title: str
    body: str

    @classmethod
    def from_summary(cls, summary: ContextSummary) -> "ContextBlock":
        return cls(**summary.to_dict())


class ChatResponse(CamelModel):
    """Chat message response."""

    chat_id: str
    reply: str
    context: list[ContextBlock]
