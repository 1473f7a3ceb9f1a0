"""
Main orchestrator that ties the conversation engine together.

FLOW OF A TURN:
- Resolve or create the conversation
- Attach the references sent with the message
- Summarize every attached reference (or fall back to recent notes)
- Persist the user message BEFORE generation, so input is never lost
- Assemble the prompt, call the gateway, persist the assistant reply

Every operation takes the owner id and the conversation id explicitly; the
orchestrator keeps no "current conversation" between calls. Validation and
not-found conditions come back as OperationResult failures.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from cortex.config import CHAT_PAGE_LIMIT, CHAT_PAGE_SIZE, TITLE_PREFIX_LENGTH
from cortex.context.references import ContextReference, dedupe_references, make_reference
from cortex.context.resolver import EntityResolver
from cortex.context.summarizer import ContextSummarizer, ContextSummary
from cortex.conversation.models import Role
from cortex.conversation.store import ConversationStore
from cortex.engine import prompt as prompt_assembler
from cortex.engine.gateway import GenerationGateway
from cortex.errors import ErrorKind, OperationResult
from cortex.utils.locks import KeyedLocks
from cortex.utils.logging import logger
from cortex.workspace.store import WorkspaceStore


@dataclass
class SendResult:
    """Outcome of a successful turn."""
    conversation_id: str
    reply: str
    context: list[ContextSummary] = field(default_factory=list)


def clamp_page(offset: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Normalize list pagination: offset >= 0, 1 <= limit <= CHAT_PAGE_LIMIT."""
    offset = max(offset or 0, 0)
    limit = CHAT_PAGE_SIZE if limit is None else limit
    return offset, min(max(limit, 1), CHAT_PAGE_LIMIT)


class ChatOrchestrator:
    """Boundary operations of the conversation engine."""

    def __init__(
        self,
        conversations: ConversationStore,
        workspace: WorkspaceStore,
        gateway: GenerationGateway,
    ):
        self.conversations = conversations
        self.workspace = workspace
        self.gateway = gateway
        self.resolver = EntityResolver(workspace)
        self.summarizer = ContextSummarizer(self.resolver)
        self._locks = KeyedLocks()

    @staticmethod
    def _unauthenticated(owner_id: Optional[str]) -> Optional[OperationResult]:
        if not owner_id or not owner_id.strip():
            return OperationResult.fail(ErrorKind.UNAUTHENTICATED, "Unauthorized")
        return None

    @staticmethod
    def _chat_not_found() -> OperationResult:
        return OperationResult.fail(ErrorKind.NOT_FOUND, "Chat not found")

    # ─────────────────────────────────────────────────────────
    # CONVERSATIONS
    # ─────────────────────────────────────────────────────────

    async def list_conversations(
        self,
        owner_id: str,
        offset: Optional[int] = 0,
        limit: Optional[int] = CHAT_PAGE_SIZE,
    ) -> OperationResult:
        """One page of non-empty conversations, most recently active first."""
        if denied := self._unauthenticated(owner_id):
            return denied
        offset, limit = clamp_page(offset, limit)
        previews = await asyncio.to_thread(
            self.conversations.list_conversations, owner_id, offset, limit
        )
        return OperationResult.ok(previews)

    async def create_conversation(
        self, owner_id: str, title_hint: Optional[str] = None
    ) -> OperationResult:
        if denied := self._unauthenticated(owner_id):
            return denied
        conversation = await asyncio.to_thread(
            self.conversations.create_conversation, owner_id, title_hint
        )
        return OperationResult.ok(conversation)

    async def get_conversation(self, owner_id: str, conversation_id: str) -> OperationResult:
        """Conversation metadata and its ordered messages as a (conversation, messages) pair."""
        if denied := self._unauthenticated(owner_id):
            return denied
        found = await asyncio.to_thread(
            self.conversations.get_conversation, owner_id, conversation_id
        )
        if found is None:
            return self._chat_not_found()
        return OperationResult.ok(found)

    async def rename_conversation(
        self, owner_id: str, conversation_id: str, title: Optional[str]
    ) -> OperationResult:
        if denied := self._unauthenticated(owner_id):
            return denied
        title = (title or "").strip()
        if not title:
            return OperationResult.fail(ErrorKind.VALIDATION, "Title is required")
        renamed = await asyncio.to_thread(
            self.conversations.rename_conversation, owner_id, conversation_id, title
        )
        if not renamed:
            return self._chat_not_found()
        return OperationResult.ok()

    async def delete_conversation(self, owner_id: str, conversation_id: str) -> OperationResult:
        if denied := self._unauthenticated(owner_id):
            return denied
        async with self._locks.hold(conversation_id):
            deleted = await asyncio.to_thread(
                self.conversations.delete_conversation, owner_id, conversation_id
            )
        if not deleted:
            return self._chat_not_found()
        return OperationResult.ok()

    # ─────────────────────────────────────────────────────────
    # CONTEXT
    # ─────────────────────────────────────────────────────────

    def _parse_reference(self, entity_type: Optional[str], entity_id: Optional[str]):
        try:
            return make_reference(entity_type, entity_id), None
        except ValueError:
            return None, OperationResult.fail(
                ErrorKind.VALIDATION, "itemId and type are required"
            )

    async def add_context_reference(
        self,
        owner_id: str,
        conversation_id: str,
        entity_type: Optional[str],
        entity_id: Optional[str],
    ) -> OperationResult:
        """Attach a reference; attaching one twice is a success."""
        if denied := self._unauthenticated(owner_id):
            return denied
        ref, invalid = self._parse_reference(entity_type, entity_id)
        if invalid:
            return invalid
        async with self._locks.hold(conversation_id):
            try:
                added = await asyncio.to_thread(
                    self.conversations.add_reference, owner_id, conversation_id, ref
                )
            except KeyError:
                return self._chat_not_found()
        if not added:
            logger.debug(f"Reference {ref.key} already attached to {conversation_id}")
        return OperationResult.ok()

    async def remove_context_reference(
        self,
        owner_id: str,
        conversation_id: str,
        entity_type: Optional[str],
        entity_id: Optional[str],
    ) -> OperationResult:
        if denied := self._unauthenticated(owner_id):
            return denied
        ref, invalid = self._parse_reference(entity_type, entity_id)
        if invalid:
            return invalid
        async with self._locks.hold(conversation_id):
            removed = await asyncio.to_thread(
                self.conversations.remove_reference, owner_id, conversation_id, ref
            )
        if not removed:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Context item not found")
        return OperationResult.ok()

    async def search_context_candidates(self, owner_id: str, query: str) -> OperationResult:
        if denied := self._unauthenticated(owner_id):
            return denied
        return OperationResult.ok(await self.resolver.suggest(owner_id, query))

    # ─────────────────────────────────────────────────────────
    # MESSAGES
    # ─────────────────────────────────────────────────────────

    async def send_message(
        self,
        owner_id: str,
        content: Optional[str],
        references: Optional[list[ContextReference]] = None,
        conversation_id: Optional[str] = None,
        title_hint: Optional[str] = None,
        reset: bool = False,
    ) -> OperationResult:
        """
        Run one user turn.

        Without a conversation id (or with reset) a new conversation is
        created, titled by title_hint or the start of the message. If the
        gateway fails, the user message stays persisted, no assistant message
        is written, and the failure's value carries the conversation id.
        The caller decides whether to resend; nothing is retried here.
        """
        if denied := self._unauthenticated(owner_id):
            return denied
        if not content or not content.strip():
            return OperationResult.fail(ErrorKind.VALIDATION, "Message is required")

        references = dedupe_references(references or [])

        if not conversation_id or reset:
            title = title_hint or content.strip()[:TITLE_PREFIX_LENGTH]
            conversation = await asyncio.to_thread(
                self.conversations.create_conversation, owner_id, title
            )
            conversation_id = conversation.id
        elif not await asyncio.to_thread(
            self.conversations.conversation_exists, owner_id, conversation_id
        ):
            return self._chat_not_found()

        async with self._locks.hold(conversation_id):
            return await self._run_turn(owner_id, conversation_id, content, references)

    async def _run_turn(
        self,
        owner_id: str,
        conversation_id: str,
        content: str,
        references: list[ContextReference],
    ) -> OperationResult:
        try:
            for ref in references:
                await asyncio.to_thread(
                    self.conversations.add_reference, owner_id, conversation_id, ref
                )
            found = await asyncio.to_thread(
                self.conversations.get_conversation, owner_id, conversation_id
            )
        except KeyError:
            found = None
        if found is None:
            # Deleted between the existence check and the turn
            return self._chat_not_found()

        conversation, history = found
        # Everything attached now, including references added before this turn
        attached = list(conversation.references)
        summaries = await self.summarizer.summarize(owner_id, attached)

        await asyncio.to_thread(
            self.conversations.append_message,
            owner_id,
            conversation_id,
            Role.USER,
            content,
            attached,
        )

        prompt = prompt_assembler.assemble(summaries, history, content)
        try:
            reply = await self.gateway.generate(prompt)
        except Exception as e:
            # GenerationError, or anything else a custom gateway lets escape
            logger.error(f"Generation failed for chat {conversation_id}: {type(e).__name__}: {e}")
            return OperationResult.fail(
                ErrorKind.UPSTREAM_GENERATION,
                "Failed to generate AI response",
                value=conversation_id,
            )

        await asyncio.to_thread(
            self.conversations.append_message,
            owner_id,
            conversation_id,
            Role.ASSISTANT,
            reply,
            attached,
        )
        logger.info(f"Completed turn in chat {conversation_id} ({len(summaries)} context block(s))")

        return OperationResult.ok(
            SendResult(conversation_id=conversation_id, reply=reply, context=summaries)
        )
