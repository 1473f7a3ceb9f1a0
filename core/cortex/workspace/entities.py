"""
Workspace entities owned by the workspace store.

Notes, folders and files are created and edited elsewhere; the conversation
engine only reads them to build suggestions and context blocks.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def _now() -> datetime:
    return datetime.now()


@dataclass
class Note:
    id: str
    owner_id: str
    title: str
    content: str = ""
    folder_id: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @classmethod
    def create(
        cls,
        owner_id: str,
        title: str,
        content: str = "",
        folder_id: Optional[str] = None,
    ) -> "Note":
        """Factory method to create a new note with generated UUID."""
        now = _now()
        return cls(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            title=title,
            content=content,
            folder_id=folder_id,
            created_at=now,
            updated_at=now,
        )


@dataclass
class Folder:
    id: str
    owner_id: str
    name: str
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @classmethod
    def create(cls, owner_id: str, name: str) -> "Folder":
        now = _now()
        return cls(id=str(uuid.uuid4()), owner_id=owner_id, name=name, created_at=now, updated_at=now)


@dataclass
class File:
    """An uploaded file; only its metadata is ever used as context."""
    id: str
    owner_id: str
    name: str
    type: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)

    @classmethod
    def create(
        cls,
        owner_id: str,
        name: str,
        type: str = "",
        metadata: Optional[dict[str, Any]] = None,
    ) -> "File":
        return cls(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            name=name,
            type=type,
            metadata=metadata or {},
            created_at=_now(),
        )

    @property
    def description(self) -> str:
        return str(self.metadata.get("description") or "")

    def metadata_json(self) -> str:
        return json.dumps(self.metadata, indent=2)
