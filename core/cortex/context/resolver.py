"""
Entity resolver for turning references and search text into workspace entities.

Handles:
- Suggestions: case-insensitive title/name search across notes, folders, files
- Resolution: fetching the entities behind a set of references
- Stale suggestion responses: only the latest query's result is applied
"""

import asyncio
import itertools
import re
from dataclasses import dataclass, field
from typing import Optional

from cortex.config import SUBTITLE_LENGTH, SUGGESTION_LIMIT
from cortex.context.references import (
    ContextReference,
    EntityType,
    dedupe_references,
)
from cortex.utils.logging import logger
from cortex.workspace.entities import File, Folder, Note
from cortex.workspace.store import WorkspaceStore


@dataclass(frozen=True)
class ContextSuggestion:
    """A pickable entity shown in the mention or context menu."""
    entity_type: EntityType
    entity_id: str
    title: str
    subtitle: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.entity_id,
            "type": self.entity_type.value,
            "title": self.title,
            "subtitle": self.subtitle,
        }


@dataclass
class ResolvedEntities:
    """Entities behind a reference set, in reference order per type."""
    notes: list[Note] = field(default_factory=list)
    folders: list[Folder] = field(default_factory=list)
    folder_notes: dict[str, list[Note]] = field(default_factory=dict)
    files: list[File] = field(default_factory=list)


def note_subtitle(content: str) -> str:
    """Content snippet with whitespace runs collapsed."""
    return re.sub(r"\s+", " ", content or "")[:SUBTITLE_LENGTH] or "Note content unavailable"


def _in_order(entities: list, ids: list[str]) -> list:
    by_id = {entity.id: entity for entity in entities}
    return [by_id[i] for i in ids if i in by_id]


class EntityResolver:
    """Reads workspace entities on behalf of the conversation engine."""

    def __init__(self, store: WorkspaceStore, limit: int = SUGGESTION_LIMIT):
        self.store = store
        self.limit = limit

    async def suggest(self, owner_id: str, query: str) -> list[ContextSuggestion]:
        """
        Search notes, folders and files whose title/name contains query.

        At most `limit` results per entity type; notes and folders newest
        first by update time, files newest first by upload time.
        """
        query = (query or "").strip()
        notes, folders, files = await asyncio.gather(
            asyncio.to_thread(self.store.search_notes, owner_id, query, self.limit),
            asyncio.to_thread(self.store.search_folders, owner_id, query, self.limit),
            asyncio.to_thread(self.store.search_files, owner_id, query, self.limit),
        )

        suggestions = [
            ContextSuggestion(EntityType.NOTE, note.id, note.title, note_subtitle(note.content))
            for note in notes
        ]
        suggestions.extend(
            ContextSuggestion(EntityType.FOLDER, folder.id, folder.name, "Folder")
            for folder in folders
        )
        suggestions.extend(
            ContextSuggestion(EntityType.FILE, file.id, file.name, file.type or None)
            for file in files
        )
        return suggestions

    async def resolve(self, owner_id: str, references: list[ContextReference]) -> ResolvedEntities:
        """
        Fetch the entities behind references.

        References whose entity no longer exists are skipped.
        """
        unique = dedupe_references(references)
        note_ids = [r.entity_id for r in unique if r.entity_type is EntityType.NOTE]
        folder_ids = [r.entity_id for r in unique if r.entity_type is EntityType.FOLDER]
        file_ids = [r.entity_id for r in unique if r.entity_type is EntityType.FILE]

        notes, folders, files = await asyncio.gather(
            asyncio.to_thread(self.store.get_notes, owner_id, note_ids),
            asyncio.to_thread(self.store.get_folders, owner_id, folder_ids),
            asyncio.to_thread(self.store.get_files, owner_id, file_ids),
        )
        resolved = ResolvedEntities(
            notes=_in_order(notes, note_ids),
            folders=_in_order(folders, folder_ids),
            files=_in_order(files, file_ids),
        )

        missing = len(unique) - len(resolved.notes) - len(resolved.folders) - len(resolved.files)
        if missing:
            logger.debug(f"Skipped {missing} unavailable context reference(s)")

        if resolved.folders:
            children = await asyncio.to_thread(
                self.store.notes_in_folders, owner_id, [f.id for f in resolved.folders]
            )
            resolved.folder_notes = {folder.id: [] for folder in resolved.folders}
            for note in children:
                resolved.folder_notes[note.folder_id].append(note)

        return resolved

    async def recent_notes(self, owner_id: str, limit: int) -> list[Note]:
        return await asyncio.to_thread(self.store.recent_notes, owner_id, limit)


class SuggestionFeed:
    """
    Suggestion results for a fast-typing user.

    Every request takes a ticket; a response is applied only if its ticket
    is still the latest one issued, whatever order responses arrive in.
    """

    def __init__(self, resolver: EntityResolver, owner_id: str):
        self.resolver = resolver
        self.owner_id = owner_id
        self._tickets = itertools.count(1)
        self._latest = 0
        self.query: Optional[str] = None
        self.results: list[ContextSuggestion] = []

    async def request(self, query: str) -> Optional[list[ContextSuggestion]]:
        """Search for query; None if a newer request superseded this one."""
        ticket = next(self._tickets)
        self._latest = ticket
        results = await self.resolver.suggest(self.owner_id, query)
        if ticket != self._latest:
            logger.debug(f"Discarded stale suggestions for {query!r}")
            return None
        self.query = query
        self.results = results
        return results
