# -*- coding: utf-8 -*-
"""Journal records and their mapping to ``journal_entries`` rows.

Only ``content`` (and a comment's ``content``) is ever encrypted; mood,
timestamps, track and weather metadata are stored as plain columns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as date_cls, datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Union
import re
import uuid


class Mood(str, Enum):
    HAPPY = "happy"
    CONTENT = "content"
    NEUTRAL = "neutral"
    SAD = "sad"
    ANXIOUS = "anxious"
    ANGRY = "angry"
    EMOTIONAL = "emotional"
    IN_LOVE = "in-love"
    EXCITED = "excited"
    TIRED = "tired"


DRAFT = "draft"
PUBLISHED = "published"


@dataclass
class WeatherData:
    temperature: float
    description: str = ""
    icon: str = ""
    location: str = ""


@dataclass
class SpotifyTrack:
    id: str
    name: str = ""
    artist: str = ""
    album: str = ""
    album_art: str = ""
    uri: str = ""
    clip_start_seconds: int = 0
    clip_end_seconds: int = 30


@dataclass
class JournalComment:
    id: str
    content: str
    created_at: str
    updated_at: Optional[str] = None


@dataclass
class JournalEntry:
    """A single journal entry as the application sees it."""

    id: str
    content: str
    date: str
    timestamp: str
    # A stored mood outside the enum is kept as its raw string.
    mood: Union[Mood, str] = Mood.NEUTRAL
    weather: Optional[WeatherData] = None
    track: Optional[SpotifyTrack] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    user_id: Optional[str] = None
    comments: List[JournalComment] = field(default_factory=list)
    reflection_question: Optional[str] = None
    reflection_answer: Optional[str] = None
    status: str = PUBLISHED


# ---------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------

def parse_mood(value: Any) -> Optional[Mood]:
    """Return the ``Mood`` for *value*, or None if it is empty or unknown."""
    if isinstance(value, Mood):
        return value
    try:
        return Mood(value)
    except ValueError:
        return None


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp (``Z`` suffix allowed) as UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _track_from_row(row: Any) -> Optional[SpotifyTrack]:
    uri = row["spotify_track_uri"]
    if not uri:
        return None
    clip_start = row["spotify_clip_start_seconds"]
    clip_end = row["spotify_clip_end_seconds"]
    return SpotifyTrack(
        id=uri.split(":")[-1],
        name=row["spotify_track_name"] or "",
        artist=row["spotify_track_artist"] or "",
        album=row["spotify_track_album"] or "",
        album_art=row["spotify_track_image"] or "",
        uri=uri,
        clip_start_seconds=0 if clip_start is None else clip_start,
        clip_end_seconds=30 if clip_end is None else clip_end,
    )


def _weather_from_row(row: Any) -> Optional[WeatherData]:
    if row["weather_temperature"] is None:
        return None
    return WeatherData(
        temperature=row["weather_temperature"],
        description=row["weather_description"] or "",
        icon=row["weather_icon"] or "",
        location=row["weather_location"] or "",
    )


def entry_from_row(row: Any) -> JournalEntry:
    """Map a ``journal_entries`` row to a :class:`JournalEntry`.

    ``content`` is copied verbatim; decrypting it is the caller's job.
    """
    started = row["timestamp_started"]
    return JournalEntry(
        id=row["id"],
        content=row["entry_text"] or "",
        date=_parse_timestamp(started).date().isoformat(),
        timestamp=started,
        mood=parse_mood(row["mood"]) or row["mood"] or Mood.NEUTRAL,
        weather=_weather_from_row(row),
        track=_track_from_row(row),
        created_at=row["created_at"],
        updated_at=row["updated_at"] or None,
        user_id=row["user_id"],
        reflection_question=row["reflection_question"] or None,
        reflection_answer=row["reflection_answer"] or None,
        status=row["status"] or PUBLISHED,
    )


def entry_to_row(entry: JournalEntry) -> dict:
    """Build the insert/update column payload for *entry*."""
    track = entry.track
    weather = entry.weather
    return {
        "user_id": entry.user_id,
        "entry_text": entry.content,
        "mood": entry.mood.value if isinstance(entry.mood, Mood) else str(entry.mood),
        "status": entry.status,
        "timestamp_started": entry.timestamp,
        "spotify_track_uri": track.uri or None if track else None,
        "spotify_track_name": track.name or None if track else None,
        "spotify_track_artist": track.artist or None if track else None,
        "spotify_track_album": track.album or None if track else None,
        "spotify_track_image": track.album_art or None if track else None,
        "spotify_clip_start_seconds": track.clip_start_seconds if track else None,
        "spotify_clip_end_seconds": track.clip_end_seconds if track else None,
        "weather_temperature": weather.temperature if weather else None,
        "weather_description": weather.description or None if weather else None,
        "weather_icon": weather.icon or None if weather else None,
        "weather_location": weather.location or None if weather else None,
        "reflection_question": entry.reflection_question,
        "reflection_answer": entry.reflection_answer,
    }


def comment_from_row(row: Any) -> JournalComment:
    return JournalComment(
        id=row["id"],
        content=row["content"] or "",
        created_at=row["created_at"],
        updated_at=row["updated_at"] or None,
    )


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

_TAG_RE = re.compile(r"<[^>]*>")


def create_new_entry(date: Optional[str] = None) -> JournalEntry:
    """Return an unsaved, empty entry dated today (local time) by default."""
    now = datetime.now(timezone.utc)
    local_date = date or date_cls.today().isoformat()
    return JournalEntry(
        id=f"temp-{uuid.uuid4().hex}",
        content="",
        date=local_date,
        timestamp=now.isoformat(),
        mood=Mood.NEUTRAL,
        created_at=now.isoformat(),
    )


def create_new_draft(date: Optional[str] = None) -> JournalEntry:
    """Like :func:`create_new_entry` but unsaved as a draft."""
    entry = create_new_entry(date)
    entry.id = f"draft-{uuid.uuid4().hex}"
    entry.status = DRAFT
    return entry


def get_plain_text_content(html_content: Optional[str]) -> str:
    """Strip HTML tags from editor content."""
    if not html_content:
        return ""
    return _TAG_RE.sub("", html_content).strip()


def has_meaningful_content(entry: JournalEntry) -> bool:
    """True if the entry is worth saving: text, a track, or a non-neutral mood."""
    if get_plain_text_content(entry.content) or entry.track:
        return True
    return bool(entry.mood) and parse_mood(entry.mood) is not Mood.NEUTRAL


def entries_by_date(entries: Iterable[JournalEntry], day: str) -> List[JournalEntry]:
    return [e for e in entries if e.date == day]


def entries_by_mood(entries: Iterable[JournalEntry], mood: Mood) -> List[JournalEntry]:
    wanted = parse_mood(mood)
    return [e for e in entries if wanted is not None and parse_mood(e.mood) is wanted]


def search_entries(entries: Iterable[JournalEntry], query: str) -> List[JournalEntry]:
    """Case-insensitive substring search over content, location and track."""
    needle = query.lower()
    out: List[JournalEntry] = []
    for e in entries:
        haystacks = [e.content]
        if e.weather:
            haystacks.append(e.weather.location)
        if e.track:
            haystacks.extend([e.track.name, e.track.artist])
        if any(needle in (h or "").lower() for h in haystacks):
            out.append(e)
    return out
