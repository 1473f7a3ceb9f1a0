"""
Typed references from a conversation to workspace entities.

A reference is a weak, non-owning pointer: the entity it names may be
deleted at any time, and resolving it then yields nothing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterable, Union


class EntityType(str, Enum):
    """Kind of workspace entity a reference can point at."""
    NOTE = "note"
    FOLDER = "folder"
    FILE = "file"


@dataclass(frozen=True)
class NoteReference:
    entity_id: str
    entity_type: ClassVar[EntityType] = EntityType.NOTE

    @property
    def key(self) -> tuple[EntityType, str]:
        return (self.entity_type, self.entity_id)


@dataclass(frozen=True)
class FolderReference:
    entity_id: str
    entity_type: ClassVar[EntityType] = EntityType.FOLDER

    @property
    def key(self) -> tuple[EntityType, str]:
        return (self.entity_type, self.entity_id)


@dataclass(frozen=True)
class FileReference:
    entity_id: str
    entity_type: ClassVar[EntityType] = EntityType.FILE

    @property
    def key(self) -> tuple[EntityType, str]:
        return (self.entity_type, self.entity_id)


ContextReference = Union[NoteReference, FolderReference, FileReference]

_VARIANTS: dict[EntityType, type] = {
    EntityType.NOTE: NoteReference,
    EntityType.FOLDER: FolderReference,
    EntityType.FILE: FileReference,
}


def make_reference(entity_type: Union[str, EntityType], entity_id: str) -> ContextReference:
    """Build the reference variant for an entity type name."""
    try:
        kind = EntityType(entity_type)
    except ValueError:
        raise ValueError(f"Unknown entity type: {entity_type!r}") from None
    if not entity_id:
        raise ValueError("Entity id is required")
    return _VARIANTS[kind](entity_id)


def reference_to_dict(ref: ContextReference) -> dict:
    return {"id": ref.entity_id, "type": ref.entity_type.value}


def reference_from_dict(data: dict) -> ContextReference:
    return make_reference(data["type"], data["id"])


def dedupe_references(refs: Iterable[ContextReference]) -> list[ContextReference]:
    """Drop repeated (type, id) pairs, keeping first-seen order."""
    seen: set[tuple[EntityType, str]] = set()
    unique = []
    for ref in refs:
        if ref.key in seen:
            continue
        seen.add(ref.key)
        unique.append(ref)
    return unique
