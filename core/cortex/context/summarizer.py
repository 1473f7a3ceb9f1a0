"""
Expansion of context references into titled text blocks.

Rules:
- Note   -> "Note: <title>", body is the note content
- Folder -> "Folder: <name>", body is every child note as "- <title>\\n<content>",
            separated by blank lines (empty folder gives an empty body)
- File   -> "File: <name>", body is the JSON metadata plus its description
- Nothing resolved -> the most recently updated notes, expanded as notes
"""

from dataclasses import dataclass

from cortex.config import FALLBACK_NOTE_COUNT
from cortex.context.references import ContextReference, EntityType
from cortex.context.resolver import EntityResolver
from cortex.utils.logging import logger
from cortex.workspace.entities import File, Folder, Note


@dataclass(frozen=True)
class ContextSummary:
    """One resolved reference rendered for the prompt. Never persisted."""
    entity_type: EntityType
    entity_id: str
    title: str
    body: str

    def to_dict(self) -> dict:
        return {
            "id": self.entity_id,
            "type": self.entity_type.value,
            "title": self.title,
            "body": self.body,
        }


def summarize_note(note: Note) -> ContextSummary:
    return ContextSummary(EntityType.NOTE, note.id, f"Note: {note.title}", note.content or "")


def summarize_folder(folder: Folder, notes: list[Note]) -> ContextSummary:
    body = "\n\n".join(f"- {note.title}\n{note.content or ''}" for note in notes)
    return ContextSummary(EntityType.FOLDER, folder.id, f"Folder: {folder.name}", body)


def summarize_file(file: File) -> ContextSummary:
    body = f"Metadata: {file.metadata_json()}\n{file.description}"
    return ContextSummary(EntityType.FILE, file.id, f"File: {file.name}", body)


class ContextSummarizer:
    """Builds fresh context blocks from the current state of referenced entities."""

    def __init__(self, resolver: EntityResolver, fallback_count: int = FALLBACK_NOTE_COUNT):
        self.resolver = resolver
        self.fallback_count = fallback_count

    async def summarize(
        self, owner_id: str, references: list[ContextReference]
    ) -> list[ContextSummary]:
        """
        Summarize references: notes first, then folders, then files.

        Falls back to recent notes when nothing resolves, so a fresh
        conversation always has some grounding.
        """
        resolved = await self.resolver.resolve(owner_id, references)

        summaries = [summarize_note(note) for note in resolved.notes]
        summaries.extend(
            summarize_folder(folder, resolved.folder_notes.get(folder.id, []))
            for folder in resolved.folders
        )
        summaries.extend(summarize_file(file) for file in resolved.files)

        if not summaries:
            recent = await self.resolver.recent_notes(owner_id, self.fallback_count)
            if recent:
                logger.debug(f"No explicit context; using {len(recent)} recent note(s)")
            summaries = [summarize_note(note) for note in recent]

        return summaries
