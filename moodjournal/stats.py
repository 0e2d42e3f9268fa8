# -*- coding: utf-8 -*-
"""Summary statistics over decrypted journal entries."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from .models import JournalEntry, Mood, parse_mood


@dataclass(frozen=True)
class JournalStats:
    total_entries: int
    mood_counts: Dict[Mood, int]
    longest_streak: int
    most_common_time: Optional[str]


def longest_streak(days: Iterable[str]) -> int:
    """Longest run of consecutive calendar days among ISO *days*."""
    best = 0
    current = 0
    last: Optional[date] = None
    for day in sorted({date.fromisoformat(d) for d in days if d}):
        if last is not None and (day - last).days == 1:
            current += 1
        else:
            current = 1
        best = max(best, current)
        last = day
    return best


def format_hour(hour: int) -> str:
    """``0 -> '12AM'``, ``13 -> '1PM'``."""
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}{suffix}"


def most_common_time(timestamps: Iterable[str]) -> Optional[str]:
    """Most frequent hour of day; the earliest hour wins ties.

    Hours are read in the offset each timestamp was recorded with.
    """
    hours = Counter()
    for ts in timestamps:
        if ts:
            hours[datetime.fromisoformat(ts.replace("Z", "+00:00")).hour] += 1
    if not hours:
        return None
    hour = min(hours, key=lambda h: (-hours[h], h))
    return format_hour(hour)


def compute_stats(entries: Iterable[JournalEntry]) -> JournalStats:
    items: List[JournalEntry] = list(entries)
    moods: Dict[Mood, int] = {m: 0 for m in Mood}
    for e in items:
        mood = parse_mood(e.mood)
        if mood is not None:
            moods[mood] += 1
    return JournalStats(
        total_entries=len(items),
        mood_counts=moods,
        longest_streak=longest_streak(e.date for e in items),
        most_common_time=most_common_time(e.timestamp for e in items),
    )
