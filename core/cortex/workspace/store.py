"""
Workspace store interface and its SQLite implementation.

The conversation engine depends only on WorkspaceStore. SQLiteWorkspaceStore
is the local backend used by the API server and the test suite; every query
is scoped to the owning user.
"""

import json
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from cortex.config import WORKSPACE_DB
from cortex.utils.logging import logger
from cortex.workspace.entities import File, Folder, Note


class WorkspaceStore(ABC):
    """Read access to a user's notes, folders and files."""

    @abstractmethod
    def get_notes(self, owner_id: str, note_ids: Iterable[str]) -> list[Note]:
        """Notes with the given ids; missing ids are left out."""

    @abstractmethod
    def get_folders(self, owner_id: str, folder_ids: Iterable[str]) -> list[Folder]:
        """Folders with the given ids; missing ids are left out."""

    @abstractmethod
    def get_files(self, owner_id: str, file_ids: Iterable[str]) -> list[File]:
        """Files with the given ids; missing ids are left out."""

    @abstractmethod
    def notes_in_folders(self, owner_id: str, folder_ids: Iterable[str]) -> list[Note]:
        """Child notes of the folders, oldest first."""

    @abstractmethod
    def recent_notes(self, owner_id: str, limit: int) -> list[Note]:
        """Most recently updated notes first."""

    @abstractmethod
    def search_notes(self, owner_id: str, query: str, limit: int) -> list[Note]:
        """Notes whose title contains query (case-insensitive), newest first."""

    @abstractmethod
    def search_folders(self, owner_id: str, query: str, limit: int) -> list[Folder]:
        """Folders whose name contains query (case-insensitive), newest first."""

    @abstractmethod
    def search_files(self, owner_id: str, query: str, limit: int) -> list[File]:
        """Files whose name contains query (case-insensitive), newest first."""


def _placeholders(values: list) -> str:
    return ",".join("?" for _ in values)


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


class SQLiteWorkspaceStore(WorkspaceStore):
    """SQLite-backed workspace storage."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the workspace store.

        Args:
            db_path: Path to SQLite database. Defaults to ~/.cortex/workspace.db
        """
        if db_path is None:
            Path(WORKSPACE_DB).parent.mkdir(parents=True, exist_ok=True)
            db_path = str(WORKSPACE_DB)

        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        # Full Unicode case folding for title searches
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        return conn

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS folders (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS notes (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    content TEXT,
                    folder_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS files (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT,
                    metadata TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_notes_owner ON notes(owner_id, updated_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_notes_folder ON notes(folder_id)")
            conn.commit()

    # --- Row mapping ---

    @staticmethod
    def _note(row: sqlite3.Row) -> Note:
        return Note(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            content=row["content"] or "",
            folder_id=row["folder_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _folder(row: sqlite3.Row) -> Folder:
        return Folder(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _file(row: sqlite3.Row) -> File:
        return File(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            type=row["type"] or "",
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # --- Writes ---

    def add_note(self, note: Note) -> Note:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO notes
                    (id, owner_id, title, content, folder_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    note.id,
                    note.owner_id,
                    note.title,
                    note.content,
                    note.folder_id,
                    note.created_at.isoformat(timespec="microseconds"),
                    note.updated_at.isoformat(timespec="microseconds"),
                ),
            )
            conn.commit()
        return note

    def add_folder(self, folder: Folder) -> Folder:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO folders (id, owner_id, name, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    folder.id,
                    folder.owner_id,
                    folder.name,
                    folder.created_at.isoformat(timespec="microseconds"),
                    folder.updated_at.isoformat(timespec="microseconds"),
                ),
            )
            conn.commit()
        return folder

    def add_file(self, file: File) -> File:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO files (id, owner_id, name, type, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    file.id,
                    file.owner_id,
                    file.name,
                    file.type,
                    json.dumps(file.metadata),
                    file.created_at.isoformat(timespec="microseconds"),
                ),
            )
            conn.commit()
        return file

    def _delete(self, table: str, owner_id: str, entity_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM {table} WHERE id = ? AND owner_id = ?",
                (entity_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete_note(self, owner_id: str, note_id: str) -> bool:
        return self._delete("notes", owner_id, note_id)

    def delete_folder(self, owner_id: str, folder_id: str) -> bool:
        """Delete a folder; its notes become unfiled."""
        deleted = self._delete("folders", owner_id, folder_id)
        if deleted:
            with self._connect() as conn:
                conn.execute(
                    "UPDATE notes SET folder_id = NULL WHERE folder_id = ? AND owner_id = ?",
                    (folder_id, owner_id),
                )
                conn.commit()
            logger.info(f"Deleted folder {folder_id}")
        return deleted

    def delete_file(self, owner_id: str, file_id: str) -> bool:
        return self._delete("files", owner_id, file_id)

    # --- Lookups ---

    def get_notes(self, owner_id: str, note_ids: Iterable[str]) -> list[Note]:
        ids = list(note_ids)
        if not ids:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM notes WHERE owner_id = ? AND id IN ({_placeholders(ids)})",
                (owner_id, *ids),
            ).fetchall()
        return [self._note(row) for row in rows]

    def get_folders(self, owner_id: str, folder_ids: Iterable[str]) -> list[Folder]:
        ids = list(folder_ids)
        if not ids:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM folders WHERE owner_id = ? AND id IN ({_placeholders(ids)})",
                (owner_id, *ids),
            ).fetchall()
        return [self._folder(row) for row in rows]

    def get_files(self, owner_id: str, file_ids: Iterable[str]) -> list[File]:
        ids = list(file_ids)
        if not ids:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM files WHERE owner_id = ? AND id IN ({_placeholders(ids)})",
                (owner_id, *ids),
            ).fetchall()
        return [self._file(row) for row in rows]

    def notes_in_folders(self, owner_id: str, folder_ids: Iterable[str]) -> list[Note]:
        ids = list(folder_ids)
        if not ids:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM notes
                WHERE owner_id = ? AND folder_id IN ({_placeholders(ids)})
                ORDER BY created_at ASC, id ASC
                """,
                (owner_id, *ids),
            ).fetchall()
        return [self._note(row) for row in rows]

    def recent_notes(self, owner_id: str, limit: int) -> list[Note]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM notes WHERE owner_id = ? ORDER BY updated_at DESC, id ASC LIMIT ?",
                (owner_id, limit),
            ).fetchall()
        return [self._note(row) for row in rows]

    # --- Search ---

    def search_notes(self, owner_id: str, query: str, limit: int) -> list[Note]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM notes
                WHERE owner_id = ? AND (? = '' OR instr(casefold(title), casefold(?)) > 0)
                ORDER BY updated_at DESC, id ASC LIMIT ?
                """,
                (owner_id, query, query, limit),
            ).fetchall()
        return [self._note(row) for row in rows]

    def search_folders(self, owner_id: str, query: str, limit: int) -> list[Folder]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM folders
                WHERE owner_id = ? AND (? = '' OR instr(casefold(name), casefold(?)) > 0)
                ORDER BY updated_at DESC, id ASC LIMIT ?
                """,
                (owner_id, query, query, limit),
            ).fetchall()
        return [self._folder(row) for row in rows]

    def search_files(self, owner_id: str, query: str, limit: int) -> list[File]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM files
                WHERE owner_id = ? AND (? = '' OR instr(casefold(name), casefold(?)) > 0)
                ORDER BY created_at DESC, id ASC LIMIT ?
                """,
                (owner_id, query, query, limit),
            ).fetchall()
        return [self._file(row) for row in rows]
