"""
Per-conversation registry of attached context references.

The registry keeps a local view of each conversation's reference set and
updates it optimistically: the view changes first, the backend is called
second, and a failed backend call is undone with the compensating
operation before the failure is returned. Mutations on one conversation are
serialized so a quick remove-then-add can never land out of order.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Optional

from cortex.context.references import ContextReference, dedupe_references
from cortex.errors import ErrorKind, OperationResult
from cortex.utils.locks import KeyedLocks
from cortex.utils.logging import logger

if TYPE_CHECKING:
    from cortex.conversation.store import ConversationStore

ReferenceState = tuple[ContextReference, ...]


@dataclass(frozen=True)
class RegistryOperation:
    """A single add/remove applied to a reference set."""
    action: Literal["add", "remove"]
    reference: ContextReference
    position: Optional[int] = None  # Index a removed reference occupied


def apply_operation(state: ReferenceState, op: RegistryOperation) -> ReferenceState:
    """Return the reference set after op."""
    present = any(ref.key == op.reference.key for ref in state)
    if op.action == "add":
        return state if present else state + (op.reference,)
    return tuple(ref for ref in state if ref.key != op.reference.key)


def compensate_operation(state: ReferenceState, op: RegistryOperation) -> ReferenceState:
    """Return the reference set as it was before op was applied."""
    if op.action == "add":
        return tuple(ref for ref in state if ref.key != op.reference.key)
    if any(ref.key == op.reference.key for ref in state):
        return state
    position = len(state) if op.position is None else min(op.position, len(state))
    return state[:position] + (op.reference,) + state[position:]


class ReferenceBackend(ABC):
    """Remote persistence for a user's conversation references."""

    @abstractmethod
    async def add(self, conversation_id: str, ref: ContextReference) -> bool:
        """Persist ref; False if it was already stored. KeyError if no such conversation."""

    @abstractmethod
    async def remove(self, conversation_id: str, ref: ContextReference) -> bool:
        """Delete ref; False if it was not stored."""


class StoreReferenceBackend(ReferenceBackend):
    """ReferenceBackend over a ConversationStore, bound to one owner."""

    def __init__(self, store: "ConversationStore", owner_id: str):
        self.store = store
        self.owner_id = owner_id

    async def add(self, conversation_id: str, ref: ContextReference) -> bool:
        return await asyncio.to_thread(self.store.add_reference, self.owner_id, conversation_id, ref)

    async def remove(self, conversation_id: str, ref: ContextReference) -> bool:
        return await asyncio.to_thread(
            self.store.remove_reference, self.owner_id, conversation_id, ref
        )


class ContextRegistry:
    """
    Optimistic, de-duplicated reference sets keyed by conversation id.

    `contains` is a synchronous lookup on the local view, cheap enough to
    decide whether a picker entry should render as already attached.
    """

    def __init__(self, backend: ReferenceBackend):
        self.backend = backend
        self._views: dict[str, ReferenceState] = {}
        self._locks = KeyedLocks()

    # --- Local view ---

    def load(self, conversation_id: str, references: list[ContextReference]) -> None:
        """Seed the local view from persisted state."""
        self._views[conversation_id] = tuple(dedupe_references(references))

    def references(self, conversation_id: str) -> list[ContextReference]:
        return list(self._views.get(conversation_id, ()))

    def contains(self, conversation_id: str, ref: ContextReference) -> bool:
        return any(r.key == ref.key for r in self._views.get(conversation_id, ()))

    def forget(self, conversation_id: str) -> None:
        """Drop the local view (conversation deleted or closed)."""
        self._views.pop(conversation_id, None)

    # --- Mutations ---

    async def add(self, conversation_id: str, ref: ContextReference) -> OperationResult:
        """
        Attach ref to the conversation.

        Adding a reference that is already attached is a successful no-op.
        """
        async with self._locks.hold(conversation_id):
            if self.contains(conversation_id, ref):
                return OperationResult.ok(self.references(conversation_id))

            op = RegistryOperation(action="add", reference=ref)
            return await self._commit(conversation_id, op)

    async def remove(self, conversation_id: str, ref: ContextReference) -> OperationResult:
        """Detach ref; NOT_FOUND if it is not attached."""
        async with self._locks.hold(conversation_id):
            state = self._views.get(conversation_id, ())
            position = next((i for i, r in enumerate(state) if r.key == ref.key), None)
            if position is None:
                return OperationResult.fail(
                    ErrorKind.NOT_FOUND,
                    "Context item is not attached to this chat",
                    value=self.references(conversation_id),
                )

            op = RegistryOperation(action="remove", reference=ref, position=position)
            return await self._commit(conversation_id, op)

    async def _commit(self, conversation_id: str, op: RegistryOperation) -> OperationResult:
        """Apply op locally, persist it, and roll back if persistence fails."""
        self._views[conversation_id] = apply_operation(self._views.get(conversation_id, ()), op)

        try:
            if op.action == "add":
                await self.backend.add(conversation_id, op.reference)
                stored = True  # A duplicate in the backend still counts as attached
            else:
                stored = await self.backend.remove(conversation_id, op.reference)
        except KeyError:
            self._rollback(conversation_id, op)
            return OperationResult.fail(
                ErrorKind.NOT_FOUND,
                "Chat not found",
                value=self.references(conversation_id),
            )
        except Exception as e:
            self._rollback(conversation_id, op)
            return OperationResult.fail(
                ErrorKind.PERSISTENCE,
                f"Failed to {op.action} context item: {e}",
                value=self.references(conversation_id),
            )

        if not stored:
            # The backend never had it; the local view was stale, keep it removed
            return OperationResult.fail(
                ErrorKind.NOT_FOUND,
                "Context item is not attached to this chat",
                value=self.references(conversation_id),
            )

        logger.info(
            f"Context {op.action}: {op.reference.entity_type.value}:{op.reference.entity_id} "
            f"(chat {conversation_id})"
        )
        return OperationResult.ok(self.references(conversation_id))

    def _rollback(self, conversation_id: str, op: RegistryOperation) -> None:
        logger.warning(
            f"Rolling back context {op.action} of "
            f"{op.reference.entity_type.value}:{op.reference.entity_id} (chat {conversation_id})"
        )
        self._views[conversation_id] = compensate_operation(
            self._views.get(conversation_id, ()), op
        )
