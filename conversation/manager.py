"""
Conversation State Manager — SQLite-backed.

Responsibility:
- Store message history per session_id
- Retrieve history as Message objects (oldest first)
- Persist the assistant's ResponseEnvelope alongside its text

Performance:
- Persistent SQLite connection (no reconnect per query)
- WAL mode for concurrent reads

Prohibitions:
- Never alters business rules
- Never decides confirmation state
"""

import sqlite3
import threading
from datetime import datetime, timezone

from shared.models import Message, ResponseEnvelope


class ConversationManager:
    """SQLite-backed conversation state manager with persistent connection."""

    def __init__(self, db_path: str = "conversations.db"):
        self.db_path = db_path
        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            isolation_level="DEFERRED",
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS conversations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                response TEXT,
                created_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_session_id
            ON conversations(session_id)
        """)
        self._conn.commit()

    def save(self, session_id: str, message: Message) -> None:
        """Persist one message of a session."""
        response = message.response.model_dump_json() if message.response is not None else None
        with self._lock:
            self._conn.execute(
                """INSERT INTO conversations (session_id, role, content, response, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    session_id,
                    message.role,
                    message.content,
                    response,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            self._conn.commit()

    def get_history(self, session_id: str, limit: int = 20) -> list[Message]:
        """Retrieve the latest `limit` messages of a session, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                """SELECT role, content, response
                   FROM conversations
                   WHERE session_id = ?
                   ORDER BY id DESC
                   LIMIT ?""",
                (session_id, limit),
            ).fetchall()

        return [
            Message(
                role=row["role"],
                content=row["content"],
                response=ResponseEnvelope.model_validate_json(row["response"]) if row["response"] else None,
            )
            for row in reversed(rows)
        ]

    def clear_session(self, session_id: str) -> None:
        """Clear all history for a session."""
        with self._lock:
            self._conn.execute("DELETE FROM conversations WHERE session_id = ?", (session_id,))
            self._conn.commit()

    def close(self) -> None:
        """Close the persistent connection."""
        self._conn.close()
