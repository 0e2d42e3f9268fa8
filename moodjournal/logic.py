# -*- coding: utf-8 -*-
"""Journal service that composes the DB and codec layers.

Every write runs ``content`` through :func:`codec.encrypt_entry` right
before the DB call, and every read runs it through
:func:`codec.decrypt_entry` right after. Nothing here raises on a crypto
failure; DB errors and missing rows propagate to the caller.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional
import json
import os

from . import db
from .codec import decrypt_entry, encrypt_entry, encrypt_text_field
from .crypto import Err, KeyCache, is_tagged, looks_encrypted, try_decrypt
from .logging_utils import configure_logging, get_journal_logger
from .models import (
    DRAFT,
    PUBLISHED,
    JournalComment,
    JournalEntry,
    comment_from_row,
    entry_from_row,
    entry_to_row,
    get_plain_text_content,
    has_meaningful_content,
)

logger = get_journal_logger()

# ---------------------------------------------------------------------
# Config management (JSON on disk)
# ---------------------------------------------------------------------

APP_NAME = "moodjournal"

DEFAULT_CONFIG: Dict[str, object] = {
    # Prefix new ciphertext with the explicit format tag.
    "tag_new_records": True,
    "log_level": "INFO",
    # "text" or "json"
    "log_format": "text",
}


def _config_dir() -> Path:
    """Return the config directory path for this platform."""
    if os.name == "nt":
        base = os.environ.get("APPDATA", os.path.expanduser("~\\AppData\\Roaming"))
        return Path(base) / APP_NAME
    base = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(base) / APP_NAME


def _config_path() -> Path:
    return _config_dir() / "config.json"


def load_config() -> Dict[str, object]:
    """Load the merged configuration (defaults + file)."""
    path = _config_path()
    if not path.exists():
        save_config(DEFAULT_CONFIG)
        return dict(DEFAULT_CONFIG)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    merged = dict(DEFAULT_CONFIG)
    merged.update(data)
    return merged


def save_config(cfg: Dict[str, object]) -> None:
    """Persist *cfg* to the JSON config file."""
    _config_dir().mkdir(parents=True, exist_ok=True)
    with _config_path().open("w", encoding="utf-8") as f:
        json.dump(cfg, f, indent=2)


def apply_logging_config(cfg: Dict[str, object]) -> None:
    configure_logging(str(cfg.get("log_level", "INFO")), str(cfg.get("log_format", "text")))


# ---------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------

@dataclass
class Session:
    """The authenticated user plus the keys cached for them."""

    user_id: str
    keys: KeyCache = field(default_factory=KeyCache)
    tag_new_records: bool = True


def sign_in(user_id: str, cfg: Optional[Dict[str, object]] = None) -> Session:
    """Bind a session to a user id issued by the auth provider."""
    if not user_id:
        raise ValueError("User id required")
    cfg = cfg if cfg is not None else DEFAULT_CONFIG
    return Session(user_id=user_id, tag_new_records=bool(cfg.get("tag_new_records", True)))


def sign_out(sess: Session) -> None:
    """Forget every key cached for this session."""
    sess.keys.invalidate()


# ---------------------------------------------------------------------
# DB bridge
# ---------------------------------------------------------------------

async def init_db() -> None:
    """Initialize the SQLite database (create tables on first run)."""
    await db.init_db()


def _encrypt(sess: Session, record):
    return encrypt_entry(record, sess.user_id, key_cache=sess.keys, tag=sess.tag_new_records)


def _decrypt(sess: Session, record):
    return decrypt_entry(record, sess.user_id, key_cache=sess.keys)


# ---------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------

async def fetch_entries(sess: Session) -> List[JournalEntry]:
    """Return the user's published entries (newest first), decrypted."""
    rows = await db.list_entry_rows_for_user(sess.user_id, status=PUBLISHED)
    comment_rows = await db.list_comment_rows_for_user(sess.user_id)

    comments: Dict[str, List[JournalComment]] = defaultdict(list)
    for r in comment_rows:
        comments[r["entry_id"]].append(_decrypt(sess, comment_from_row(r)))

    out: List[JournalEntry] = []
    for r in rows:
        entry = _decrypt(sess, entry_from_row(r))
        entry.comments = comments.get(entry.id, [])
        out.append(entry)
    return out


async def get_entry(sess: Session, entry_id: str) -> JournalEntry:
    """Return one decrypted entry with its comments, or raise."""
    row = await db.get_entry_row(sess.user_id, entry_id)
    if not row:
        raise ValueError("Entry not found")
    entry = _decrypt(sess, entry_from_row(row))
    comment_rows = await db.list_comment_rows(entry_id, sess.user_id)
    entry.comments = [_decrypt(sess, comment_from_row(r)) for r in comment_rows]
    return entry


async def add_entry(sess: Session, entry: JournalEntry) -> JournalEntry:
    """Store *entry*; return the plaintext entry with its new id."""
    stored = _encrypt(sess, entry)
    row = entry_to_row(stored)
    row["user_id"] = sess.user_id
    entry_id, created_at = await db.insert_entry_row(row)
    logger.info("Entry created", extra_data={"entry_id": entry_id})
    return replace(entry, id=entry_id, created_at=created_at, user_id=sess.user_id)


async def update_entry(sess: Session, entry: JournalEntry) -> JournalEntry:
    """Rewrite *entry*; content is re-encrypted under a fresh nonce."""
    stored = _encrypt(sess, entry)
    updated_at = await db.update_entry_row(entry.id, sess.user_id, entry_to_row(stored))
    return replace(entry, updated_at=updated_at)


async def delete_entry(sess: Session, entry_id: str) -> None:
    await db.delete_entry_row(entry_id, sess.user_id)


# ---------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------

def _is_unsaved(entry_id: str) -> bool:
    return entry_id.startswith(("draft-", "temp-"))


async def fetch_drafts(sess: Session) -> List[JournalEntry]:
    """Return the user's drafts, most recently edited first, decrypted."""
    return [_decrypt(sess, entry_from_row(r)) for r in await db.list_draft_rows(sess.user_id)]


async def save_draft(sess: Session, entry: JournalEntry) -> Optional[JournalEntry]:
    """Store *entry* as a draft; return it, or None if there was nothing to save."""
    if not has_meaningful_content(entry):
        return None
    draft = replace(entry, status=DRAFT)
    if _is_unsaved(entry.id):
        return await add_entry(sess, draft)
    return await update_entry(sess, draft)


async def publish_draft(sess: Session, entry: JournalEntry) -> JournalEntry:
    """Turn *entry* into a published entry. Empty text is rejected."""
    if not get_plain_text_content(entry.content):
        raise ValueError("Cannot publish empty entry")
    published = replace(entry, status=PUBLISHED)
    if _is_unsaved(entry.id):
        return await add_entry(sess, published)
    return await update_entry(sess, published)


async def delete_draft(sess: Session, draft_id: str) -> None:
    if _is_unsaved(draft_id):
        return
    await db.delete_entry_row(draft_id, sess.user_id)


# ---------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------

async def add_comment(sess: Session, entry_id: str, content: str) -> JournalComment:
    """Attach a comment to an entry; its text is encrypted like entry text."""
    if not await db.get_entry_row(sess.user_id, entry_id):
        raise ValueError("Entry not found")
    comment = JournalComment(id="", content=content, created_at=db.utcnow_iso())
    stored = _encrypt(sess, comment)
    comment_id, created_at = await db.insert_comment_row(
        entry_id, sess.user_id, stored.content, comment.created_at
    )
    return replace(comment, id=comment_id, created_at=created_at)


async def delete_comment(sess: Session, entry_id: str, comment_id: str) -> None:
    await db.delete_comment_row(comment_id, entry_id, sess.user_id)


# ---------------------------------------------------------------------
# Legacy upgrade
# ---------------------------------------------------------------------

@dataclass
class MigrationReport:
    upgraded: int = 0
    skipped: int = 0
    unchanged: int = 0


def _upgrade_stored(sess: Session, stored: str, report: MigrationReport) -> Optional[str]:
    """Return the tagged ciphertext for a legacy value, or None to leave it."""
    if not stored or is_tagged(stored):
        report.unchanged += 1
        return None

    plain = stored
    if looks_encrypted(stored):
        key = sess.keys.try_get(sess.user_id)
        opened = key if isinstance(key, Err) else try_decrypt(stored, key.value)
        if isinstance(opened, Err):
            # Could be single-word plaintext or foreign ciphertext; don't guess.
            report.skipped += 1
            return None
        plain = opened.value

    sealed = encrypt_text_field(plain, sess.user_id, key_cache=sess.keys, tag=True)
    if not is_tagged(sealed):
        report.skipped += 1
        return None
    report.upgraded += 1
    return sealed


async def migrate_legacy_entries(sess: Session) -> MigrationReport:
    """Re-store legacy plaintext and untagged ciphertext as tagged ciphertext.

    Values that cannot be decrypted are left exactly as they are.
    """
    report = MigrationReport()
    for r in await db.list_entry_rows_for_user(sess.user_id):
        sealed = _upgrade_stored(sess, r["entry_text"], report)
        if sealed is not None:
            await db.update_entry_text(r["id"], sess.user_id, sealed, touch=False)

    for r in await db.list_comment_rows_for_user(sess.user_id):
        sealed = _upgrade_stored(sess, r["content"], report)
        if sealed is not None:
            await db.update_comment_text(r["id"], sess.user_id, sealed)

    logger.info(
        "Legacy migration finished",
        extra_data={"upgraded": report.upgraded, "skipped": report.skipped, "unchanged": report.unchanged},
    )
    return report
