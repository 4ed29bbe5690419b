"""SQLite schema shared by the conversation and ground-rules stores."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite

from diplomat.config import settings

if TYPE_CHECKING:
    from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS ground_rules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    created_by TEXT NOT NULL,
    finalized INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS conversations (
    session_code TEXT PRIMARY KEY,
    participant_a TEXT NOT NULL,
    participant_b TEXT,
    status TEXT NOT NULL,
    mode TEXT NOT NULL,
    engagement_a INTEGER NOT NULL DEFAULT 5,
    engagement_b INTEGER NOT NULL DEFAULT 5,
    ground_rules_id INTEGER REFERENCES ground_rules(id),
    created_at TEXT NOT NULL,
    ended_at TEXT
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_code TEXT NOT NULL REFERENCES conversations(session_code),
    sender TEXT NOT NULL,
    body TEXT NOT NULL,
    kind TEXT NOT NULL,
    fallacy TEXT,
    recipient TEXT,
    timestamp TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_session
    ON messages (session_code, timestamp, id);
"""


class SqliteStore:
    """Base for aiosqlite-backed stores: one short-lived connection per call.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.executescript(SCHEMA)
            await db.commit()
            self._initialised = True
        return db
