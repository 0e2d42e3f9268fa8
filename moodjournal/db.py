# -*- coding: utf-8 -*-
"""SQLite schema and async data access for MoodJournal.

This layer stores exactly what it is handed. ``entry_text`` and comment
``content`` arrive here already encrypted by the codec.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
import os
import uuid

import aiosqlite

DB_PATH = os.environ.get("MOODJOURNAL_DB", "moodjournal.sqlite3")


# ---------------------------------------------------------------------
# Base schema (new installs)
# ---------------------------------------------------------------------

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS journal_entries (
    id                          TEXT PRIMARY KEY,
    user_id                     TEXT NOT NULL,
    entry_text                  TEXT NOT NULL DEFAULT '',
    mood                        TEXT NOT NULL DEFAULT 'neutral',
    status                      TEXT NOT NULL DEFAULT 'published',
    timestamp_started           TEXT NOT NULL,
    created_at                  TEXT NOT NULL,
    updated_at                  TEXT,

    spotify_track_uri           TEXT,
    spotify_track_name          TEXT,
    spotify_track_artist        TEXT,
    spotify_track_album         TEXT,
    spotify_track_image         TEXT,
    spotify_clip_start_seconds  INTEGER,
    spotify_clip_end_seconds    INTEGER,

    weather_temperature         REAL,
    weather_description         TEXT,
    weather_icon                TEXT,
    weather_location            TEXT,

    reflection_question         TEXT,
    reflection_answer           TEXT
);

CREATE TABLE IF NOT EXISTS journal_comments (
    id              TEXT PRIMARY KEY,
    entry_id        TEXT NOT NULL,
    user_id         TEXT NOT NULL,
    content         TEXT NOT NULL DEFAULT '',
    created_at      TEXT NOT NULL,
    updated_at      TEXT,
    FOREIGN KEY (entry_id) REFERENCES journal_entries(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_entries_user ON journal_entries(user_id, timestamp_started);
CREATE INDEX IF NOT EXISTS idx_comments_entry ON journal_comments(entry_id);
"""

# Columns written from models.entry_to_row(); order matters for INSERT.
ENTRY_COLUMNS: Tuple[str, ...] = (
    "user_id",
    "entry_text",
    "mood",
    "status",
    "timestamp_started",
    "spotify_track_uri",
    "spotify_track_name",
    "spotify_track_artist",
    "spotify_track_album",
    "spotify_track_image",
    "spotify_clip_start_seconds",
    "spotify_clip_end_seconds",
    "weather_temperature",
    "weather_description",
    "weather_icon",
    "weather_location",
    "reflection_question",
    "reflection_answer",
)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------
# Migrations (existing installs)
# ---------------------------------------------------------------------

async def _column_exists(db: aiosqlite.Connection, table: str, column: str) -> bool:
    """Return True if `column` is present in `table`."""
    cur = await db.execute(f"PRAGMA table_info({table})")
    rows = await cur.fetchall()
    await cur.close()
    for r in rows:
        # PRAGMA table_info columns: cid, name, type, notnull, default_value, pk
        if len(r) >= 2 and r[1] == column:
            return True
    return False


# Columns added after the first release of the entries table.
_LATE_ENTRY_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("spotify_clip_start_seconds", "INTEGER"),
    ("spotify_clip_end_seconds", "INTEGER"),
    ("reflection_question", "TEXT"),
    ("reflection_answer", "TEXT"),
    ("status", "TEXT NOT NULL DEFAULT 'published'"),
)


async def migrate_db() -> List[str]:
    """Idempotent migrations for DBs that predate clip, reflection or status columns.

    Returns the statements that were applied.
    """
    applied: List[str] = []
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("PRAGMA foreign_keys = ON;")
        for column, col_type in _LATE_ENTRY_COLUMNS:
            if not await _column_exists(db, "journal_entries", column):
                stmt = f"ALTER TABLE journal_entries ADD COLUMN {column} {col_type};"
                await db.execute(stmt)
                applied.append(stmt)
        if applied:
            await db.commit()
    return applied


# ---------------------------------------------------------------------
# Connection / initialization
# ---------------------------------------------------------------------

async def init_db() -> None:
    """Create tables if they don't exist and run lightweight migrations."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()
    await migrate_db()


# ---------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------

async def insert_entry_row(row: Dict[str, object]) -> Tuple[str, str]:
    """Insert an entry row; return (new id, created_at)."""
    entry_id = str(uuid.uuid4())
    created_at = utcnow_iso()
    columns = ("id", "created_at") + ENTRY_COLUMNS
    values = [entry_id, created_at] + [row.get(c) for c in ENTRY_COLUMNS]
    placeholders = ", ".join("?" for _ in columns)
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            f"INSERT INTO journal_entries ({', '.join(columns)}) VALUES ({placeholders})",
            values,
        )
        await db.commit()
    return entry_id, created_at


async def update_entry_row(entry_id: str, user_id: str, row: Dict[str, object]) -> str:
    """Overwrite all writable columns of an entry; return updated_at."""
    updated_at = utcnow_iso()
    columns = tuple(c for c in ENTRY_COLUMNS if c != "user_id")
    assignments = ", ".join(f"{c} = ?" for c in columns)
    values = [row.get(c) for c in columns] + [updated_at, entry_id, user_id]
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            f"UPDATE journal_entries SET {assignments}, updated_at = ? WHERE id = ? AND user_id = ?",
            values,
        )
        await db.commit()
    return updated_at


async def update_entry_text(entry_id: str, user_id: str, entry_text: str,
                            touch: bool = True) -> None:
    """Replace only the stored text of an entry."""
    async with aiosqlite.connect(DB_PATH) as db:
        if touch:
            await db.execute(
                "UPDATE journal_entries SET entry_text = ?, updated_at = ? WHERE id = ? AND user_id = ?",
                (entry_text, utcnow_iso(), entry_id, user_id),
            )
        else:
            await db.execute(
                "UPDATE journal_entries SET entry_text = ? WHERE id = ? AND user_id = ?",
                (entry_text, entry_id, user_id),
            )
        await db.commit()


async def list_entry_rows_for_user(user_id: str, status: Optional[str] = None):
    """Return the entry rows for a user, newest first.

    With *status* only rows in that state are returned; otherwise all of them.
    """
    sql = "SELECT * FROM journal_entries WHERE user_id = ?"
    params: List[object] = [user_id]
    if status is not None:
        sql += " AND status = ?"
        params.append(status)
    sql += " ORDER BY timestamp_started DESC"
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cur = await db.execute(sql, params)
        rows = await cur.fetchall()
        await cur.close()
        return rows


async def list_draft_rows(user_id: str):
    """Return a user's draft rows, most recently edited first."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cur = await db.execute(
            """
            SELECT *
              FROM journal_entries
             WHERE user_id = ? AND status = 'draft'
             ORDER BY COALESCE(updated_at, created_at) DESC
            """,
            (user_id,),
        )
        rows = await cur.fetchall()
        await cur.close()
        return rows


async def get_entry_row(user_id: str, entry_id: str):
    """Return a single entry row (or None) for this user."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cur = await db.execute(
            "SELECT * FROM journal_entries WHERE id = ? AND user_id = ?",
            (entry_id, user_id),
        )
        row = await cur.fetchone()
        await cur.close()
        return row


async def delete_entry_row(entry_id: str, user_id: str) -> None:
    """Delete an entry; its comments are removed via FK cascade."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("PRAGMA foreign_keys = ON;")
        await db.execute(
            "DELETE FROM journal_entries WHERE id = ? AND user_id = ?",
            (entry_id, user_id),
        )
        await db.commit()


# ---------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------

async def insert_comment_row(entry_id: str, user_id: str, content: str,
                             created_at: Optional[str] = None) -> Tuple[str, str]:
    """Insert a comment; return (new id, created_at)."""
    comment_id = f"comment-{uuid.uuid4().hex}"
    created_at = created_at or utcnow_iso()
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """
            INSERT INTO journal_comments (id, entry_id, user_id, content, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (comment_id, entry_id, user_id, content, created_at),
        )
        await db.commit()
    return comment_id, created_at


async def list_comment_rows_for_user(user_id: str):
    """Return every comment row of a user, oldest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cur = await db.execute(
            """
            SELECT id, entry_id, content, created_at, updated_at
              FROM journal_comments
             WHERE user_id = ?
             ORDER BY created_at ASC
            """,
            (user_id,),
        )
        rows = await cur.fetchall()
        await cur.close()
        return rows


async def list_comment_rows(entry_id: str, user_id: str):
    """Return the comment rows of one entry, oldest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cur = await db.execute(
            """
            SELECT id, entry_id, content, created_at, updated_at
              FROM journal_comments
             WHERE entry_id = ? AND user_id = ?
             ORDER BY created_at ASC
            """,
            (entry_id, user_id),
        )
        rows = await cur.fetchall()
        await cur.close()
        return rows


async def update_comment_text(comment_id: str, user_id: str, content: str) -> None:
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            "UPDATE journal_comments SET content = ? WHERE id = ? AND user_id = ?",
            (content, comment_id, user_id),
        )
        await db.commit()


async def delete_comment_row(comment_id: str, entry_id: str, user_id: str) -> None:
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            "DELETE FROM journal_comments WHERE id = ? AND entry_id = ? AND user_id = ?",
            (comment_id, entry_id, user_id),
        )
        await db.commit()
