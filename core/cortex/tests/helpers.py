"""Test doubles and data builders shared by the test modules."""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from cortex.context.registry import ReferenceBackend
from cortex.engine.gateway import GenerationGateway
from cortex.errors import GenerationError
from cortex.workspace.entities import Folder, Note
from cortex.workspace.store import SQLiteWorkspaceStore

OWNER = "user-1"


class ScriptedGateway(GenerationGateway):
    """Gateway double that records prompts and replies (or fails) on demand."""

    def __init__(self, reply: str = "Sure, here you go.", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationError("backend unavailable")
        return self.reply


def make_note(
    store: SQLiteWorkspaceStore,
    title: str,
    content: str = "",
    folder: Optional[Folder] = None,
    minutes_ago: int = 0,
    owner_id: str = OWNER,
) -> Note:
    """Insert a note whose timestamps are `minutes_ago` before a fixed instant."""
    note = Note.create(owner_id, title, content, folder_id=folder.id if folder else None)
    stamp = datetime(2025, 1, 1, 12, 0) - timedelta(minutes=minutes_ago)
    note.created_at = stamp
    note.updated_at = stamp
    return store.add_note(note)


def make_folder(store: SQLiteWorkspaceStore, name: str, owner_id: str = OWNER) -> Folder:
    return store.add_folder(Folder.create(owner_id, name))


class RecordingBackend(ReferenceBackend):
    """In-memory reference backend that records the order calls complete in."""

    def __init__(self, delay: float = 0):
        self.delay = delay
        self.stored: set = set()
        self.calls: list[tuple[str, str]] = []

    async def add(self, conversation_id, ref):
        await asyncio.sleep(self.delay)
        self.calls.append(("add", ref.entity_id))
        if ref.key in self.stored:
            return False
        self.stored.add(ref.key)
        return True

    async def remove(self, conversation_id, ref):
        await asyncio.sleep(self.delay)
        self.calls.append(("remove", ref.entity_id))
        if ref.key not in self.stored:
            return False
        self.stored.discard(ref.key)
        return True
