"""
SQLite-backed storage for conversations, messages and attached references.

Every operation is scoped to an owner. Messages within a conversation are
totally ordered by created_at, which the store keeps strictly increasing;
the insertion sequence breaks any remaining tie.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from cortex.config import CONVERSATIONS_DB, DEFAULT_CHAT_TITLE
from cortex.context.references import (
    ContextReference,
    dedupe_references,
    make_reference,
    reference_from_dict,
    reference_to_dict,
)
from cortex.conversation.models import Conversation, ConversationPreview, Message, Role
from cortex.utils.logging import logger

_TICK = timedelta(microseconds=1)


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class ConversationStore:
    """
    Persistent conversation log.

    Tables:
    - conversations: keyed by id, scoped by owner_id
    - messages: keyed by id, ordered by (created_at, seq)
    - conversation_references: unique on (conversation_id, entity_type, entity_id)
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the conversation store.

        Args:
            db_path: Path to SQLite database. Defaults to ~/.cortex/conversations.db
        """
        if db_path is None:
            Path(CONVERSATIONS_DB).parent.mkdir(parents=True, exist_ok=True)
            db_path = str(CONVERSATIONS_DB)

        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_db(self):
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_conversations_owner
                ON conversations(owner_id, updated_at)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    conversation_id TEXT NOT NULL
                        REFERENCES conversations(id) ON DELETE CASCADE,
                    owner_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    references_json TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_messages_conversation
                ON messages(conversation_id, created_at)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversation_references (
                    conversation_id TEXT NOT NULL
                        REFERENCES conversations(id) ON DELETE CASCADE,
                    entity_type TEXT NOT NULL,
                    entity_id TEXT NOT NULL,
                    added_at TEXT NOT NULL,
                    PRIMARY KEY (conversation_id, entity_type, entity_id)
                )
            """)
            conn.commit()

    # --- Row mapping ---

    def _load_references(self, conn: sqlite3.Connection, conversation_id: str) -> list[ContextReference]:
        rows = conn.execute(
            """
            SELECT entity_type, entity_id FROM conversation_references
            WHERE conversation_id = ? ORDER BY added_at ASC, rowid ASC
            """,
            (conversation_id,),
        ).fetchall()
        return [make_reference(row["entity_type"], row["entity_id"]) for row in rows]

    def _conversation(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            references=self._load_references(conn, row["id"]),
        )

    @staticmethod
    def _message(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=Role(row["role"]),
            content=row["content"],
            created_at=datetime.fromisoformat(row["created_at"]),
            references_at_send_time=tuple(
                reference_from_dict(item) for item in json.loads(row["references_json"])
            ),
        )

    # --- Conversations ---

    def create_conversation(self, owner_id: str, title_hint: Optional[str] = None) -> Conversation:
        """Create an empty (draft) conversation."""
        title = (title_hint or "").strip() or DEFAULT_CHAT_TITLE
        now = datetime.now()
        conversation = Conversation(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            title=title,
            created_at=now,
            updated_at=now,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO conversations (id, owner_id, title, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (conversation.id, owner_id, title, _iso(now), _iso(now)),
            )
            conn.commit()
        logger.info(f"Created conversation {conversation.id}")
        return conversation

    def conversation_exists(self, owner_id: str, conversation_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM conversations WHERE id = ? AND owner_id = ?",
                (conversation_id, owner_id),
            ).fetchone()
        return row is not None

    def get_conversation(
        self, owner_id: str, conversation_id: str
    ) -> Optional[tuple[Conversation, list[Message]]]:
        """Conversation metadata plus its full, ordered message log."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ? AND owner_id = ?",
                (conversation_id, owner_id),
            ).fetchone()
            if not row:
                return None
            conversation = self._conversation(conn, row)
            rows = conn.execute(
                """
                SELECT * FROM messages WHERE conversation_id = ?
                ORDER BY created_at ASC, seq ASC
                """,
                (conversation_id,),
            ).fetchall()
        return conversation, [self._message(r) for r in rows]

    def list_conversations(self, owner_id: str, offset: int, limit: int) -> list[ConversationPreview]:
        """
        One page of non-empty conversations, most recently active first.

        Pages are cut after the empty-conversation filter, so walking offsets
        0, limit, 2*limit... visits every non-empty conversation exactly once.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT c.*, counts.message_count
                FROM conversations c
                JOIN (
                    SELECT conversation_id, COUNT(*) AS message_count
                    FROM messages GROUP BY conversation_id
                ) counts ON counts.conversation_id = c.id
                WHERE c.owner_id = ?
                ORDER BY c.updated_at DESC, c.id ASC
                LIMIT ? OFFSET ?
                """,
                (owner_id, limit, offset),
            ).fetchall()
            return [
                ConversationPreview(
                    conversation=self._conversation(conn, row),
                    message_count=row["message_count"],
                )
                for row in rows
            ]

    def rename_conversation(self, owner_id: str, conversation_id: str, title: str) -> bool:
        """Change the title; updated_at tracks message activity only."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE conversations SET title = ? WHERE id = ? AND owner_id = ?",
                (title, conversation_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete_conversation(self, owner_id: str, conversation_id: str) -> bool:
        """Delete a conversation together with its messages and references."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM conversations WHERE id = ? AND owner_id = ?",
                (conversation_id, owner_id),
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted conversation {conversation_id}")
        return deleted

    # --- Messages ---

    def append_message(
        self,
        owner_id: str,
        conversation_id: str,
        role: Role,
        content: str,
        references: Iterable[ContextReference] = (),
    ) -> Message:
        """
        Append a message and advance the conversation's updated_at.

        Raises:
            KeyError: if the conversation does not exist for this owner
        """
        snapshot = tuple(dedupe_references(references))
        with self._connect() as conn:
            if not conn.execute(
                "SELECT 1 FROM conversations WHERE id = ? AND owner_id = ?",
                (conversation_id, owner_id),
            ).fetchone():
                raise KeyError(conversation_id)

            created_at = datetime.now()
            last = conn.execute(
                "SELECT MAX(created_at) FROM messages WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()[0]
            if last is not None:
                last_at = datetime.fromisoformat(last)
                if created_at <= last_at:
                    created_at = last_at + _TICK

            message = Message(
                id=str(uuid.uuid4()),
                conversation_id=conversation_id,
                role=Role(role),
                content=content,
                created_at=created_at,
                references_at_send_time=snapshot,
            )
            conn.execute(
                """
                INSERT INTO messages
                    (id, conversation_id, owner_id, role, content, references_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    conversation_id,
                    owner_id,
                    message.role.value,
                    content,
                    json.dumps([reference_to_dict(r) for r in snapshot]),
                    _iso(created_at),
                ),
            )
            conn.execute(
                "UPDATE conversations SET updated_at = MAX(updated_at, ?) WHERE id = ?",
                (_iso(created_at), conversation_id),
            )
            conn.commit()
        return message

    # --- References ---

    def list_references(self, owner_id: str, conversation_id: str) -> list[ContextReference]:
        with self._connect() as conn:
            if not conn.execute(
                "SELECT 1 FROM conversations WHERE id = ? AND owner_id = ?",
                (conversation_id, owner_id),
            ).fetchone():
                raise KeyError(conversation_id)
            return self._load_references(conn, conversation_id)

    def add_reference(self, owner_id: str, conversation_id: str, ref: ContextReference) -> bool:
        """
        Attach a reference.

        Returns:
            False when the reference was already attached (the join table's
            primary key rejects the duplicate)

        Raises:
            KeyError: if the conversation does not exist for this owner
        """
        with self._connect() as conn:
            if not conn.execute(
                "SELECT 1 FROM conversations WHERE id = ? AND owner_id = ?",
                (conversation_id, owner_id),
            ).fetchone():
                raise KeyError(conversation_id)
            try:
                conn.execute(
                    """
                    INSERT INTO conversation_references
                        (conversation_id, entity_type, entity_id, added_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (conversation_id, ref.entity_type.value, ref.entity_id, _iso(datetime.now())),
                )
            except sqlite3.IntegrityError:
                return False
            conn.commit()
        return True

    def remove_reference(self, owner_id: str, conversation_id: str, ref: ContextReference) -> bool:
        """Detach a reference; False when it was not attached."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                DELETE FROM conversation_references
                WHERE conversation_id = ? AND entity_type = ? AND entity_id = ?
                  AND conversation_id IN (SELECT id FROM conversations WHERE owner_id = ?)
                """,
                (conversation_id, ref.entity_type.value, ref.entity_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0
