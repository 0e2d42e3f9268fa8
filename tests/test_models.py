"""
Unit tests for journal records, row mapping, search helpers and stats.
"""
from datetime import date

import pytest

from moodjournal.models import (
    DRAFT,
    PUBLISHED,
    JournalEntry,
    Mood,
    SpotifyTrack,
    WeatherData,
    create_new_draft,
    create_new_entry,
    entries_by_date,
    entries_by_mood,
    entry_from_row,
    entry_to_row,
    get_plain_text_content,
    has_meaningful_content,
    parse_mood,
    search_entries,
)
from moodjournal.stats import compute_stats, format_hour, longest_streak, most_common_time


def _row(**overrides):
    row = {
        "id": "abc",
        "user_id": "user-42",
        "entry_text": "stored text",
        "mood": "happy",
        "status": "published",
        "timestamp_started": "2024-05-02T23:30:00Z",
        "created_at": "2024-05-02T23:31:00+00:00",
        "updated_at": None,
        "spotify_track_uri": None,
        "spotify_track_name": None,
        "spotify_track_artist": None,
        "spotify_track_album": None,
        "spotify_track_image": None,
        "spotify_clip_start_seconds": None,
        "spotify_clip_end_seconds": None,
        "weather_temperature": None,
        "weather_description": None,
        "weather_icon": None,
        "weather_location": None,
        "reflection_question": None,
        "reflection_answer": None,
    }
    row.update(overrides)
    return row


def _entry(content="", day="2024-05-01", ts=None, mood=Mood.NEUTRAL, **extra):
    return JournalEntry(
        id=f"id-{day}-{content}",
        content=content,
        date=day,
        timestamp=ts or f"{day}T08:00:00+00:00",
        mood=mood,
        **extra,
    )


# ---------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------

def test_entry_from_row_basic():
    entry = entry_from_row(_row())
    assert entry.id == "abc"
    assert entry.content == "stored text"
    assert entry.date == "2024-05-02"
    assert entry.mood is Mood.HAPPY
    assert entry.track is None
    assert entry.weather is None
    assert entry.updated_at is None
    assert entry.comments == []


def test_entry_from_row_date_is_utc():
    entry = entry_from_row(_row(timestamp_started="2024-05-02T23:30:00-05:00"))
    assert entry.date == "2024-05-03"


def test_entry_from_row_track_and_weather():
    entry = entry_from_row(_row(
        spotify_track_uri="spotify:track:6rqhFgbbKwnb9MLmUQDhG6",
        spotify_track_name="Song",
        spotify_track_artist="Artist",
        weather_temperature=0.0,
        weather_location="Oslo",
    ))
    assert entry.track.id == "6rqhFgbbKwnb9MLmUQDhG6"
    assert entry.track.clip_start_seconds == 0
    assert entry.track.clip_end_seconds == 30
    assert entry.weather == WeatherData(temperature=0.0, location="Oslo")


def test_entry_to_row_round_trip():
    entry = _entry(
        "text",
        mood=Mood.IN_LOVE,
        track=SpotifyTrack(id="x", name="N", uri="spotify:track:x", clip_start_seconds=5, clip_end_seconds=20),
        weather=WeatherData(temperature=12.5, description="cloudy", location="Paris"),
        reflection_question="What went well?",
    )
    row = entry_to_row(entry)
    assert row["mood"] == "in-love"
    assert row["spotify_track_artist"] is None
    assert row["spotify_clip_start_seconds"] == 5
    assert row["weather_icon"] is None

    full = _row(**{k: v for k, v in row.items()}, id=entry.id, created_at="now")
    back = entry_from_row(full)
    assert back.track.uri == "spotify:track:x"
    assert back.weather.description == "cloudy"
    assert back.reflection_question == "What went well?"


def test_entry_to_row_without_metadata():
    row = entry_to_row(_entry("x"))
    assert row["spotify_track_uri"] is None
    assert row["weather_temperature"] is None


def test_entry_row_mapping_keeps_status():
    assert entry_from_row(_row()).status == PUBLISHED
    assert entry_from_row(_row(status="draft")).status == DRAFT
    assert entry_to_row(_entry("x", status=DRAFT))["status"] == "draft"


def test_unknown_mood_is_kept_as_text():
    entry = entry_from_row(_row(mood="grateful"))
    assert entry.mood == "grateful"
    assert entry_to_row(entry)["mood"] == "grateful"
    assert entry_from_row(_row(mood=None)).mood is Mood.NEUTRAL


def test_parse_mood():
    assert parse_mood("in-love") is Mood.IN_LOVE
    assert parse_mood(Mood.SAD) is Mood.SAD
    assert parse_mood("grateful") is None
    assert parse_mood(None) is None


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def test_create_new_entry_defaults():
    entry = create_new_entry()
    assert entry.id.startswith("temp-")
    assert entry.content == ""
    assert entry.mood is Mood.NEUTRAL
    assert entry.date == date.today().isoformat()
    assert create_new_entry("2023-01-01").date == "2023-01-01"


def test_create_new_draft():
    draft = create_new_draft("2023-01-01")
    assert draft.id.startswith("draft-")
    assert draft.status == DRAFT
    assert draft.date == "2023-01-01"
    assert create_new_entry().status == PUBLISHED


def test_plain_text_and_meaningful_content():
    assert get_plain_text_content("<p>Hello <b>there</b></p>") == "Hello there"
    assert get_plain_text_content(None) == ""
    assert not has_meaningful_content(_entry("<p></p>"))
    assert has_meaningful_content(_entry("<p>hi</p>"))
    assert has_meaningful_content(_entry("", mood=Mood.SAD))
    assert has_meaningful_content(_entry("", track=SpotifyTrack(id="t")))
    assert has_meaningful_content(_entry("", mood="grateful"))


def test_search_and_filters():
    park = _entry("A walk in the PARK", day="2024-05-01", mood=Mood.HAPPY)
    rain = _entry("stayed in", day="2024-05-02", weather=WeatherData(temperature=3, location="Parkville"))
    song = _entry("music", day="2024-05-02", track=SpotifyTrack(id="s", name="Song", artist="Parker"))
    other = _entry("nothing", day="2024-05-03")
    entries = [park, rain, song, other]

    assert search_entries(entries, "park") == [park, rain, song]
    assert entries_by_date(entries, "2024-05-02") == [rain, song]
    assert entries_by_mood(entries, Mood.HAPPY) == [park]
    assert entries_by_mood(entries, "neutral") == [rain, song, other]
    assert entries_by_mood(entries + [_entry("odd", mood="grateful")], "grateful") == []


# ---------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------

@pytest.mark.parametrize("hour, label", [(0, "12AM"), (9, "9AM"), (12, "12PM"), (23, "11PM")])
def test_format_hour(hour, label):
    assert format_hour(hour) == label


def test_longest_streak():
    assert longest_streak([]) == 0
    assert longest_streak(["2024-01-01"]) == 1
    assert longest_streak(["2024-01-03", "2024-01-01", "2024-01-02", "2024-01-02", "2024-01-05"]) == 3
    assert longest_streak(["2024-02-28", "2024-02-29", "2024-03-01", "2024-03-10"]) == 3


def test_most_common_time_tie_goes_to_earliest_hour():
    assert most_common_time([]) is None
    stamps = ["2024-01-01T21:00:00", "2024-01-02T07:10:00", "2024-01-03T21:30:00", "2024-01-04T07:00:00"]
    assert most_common_time(stamps) == "7AM"
    assert most_common_time(stamps + ["2024-01-05T21:59:00Z"]) == "9PM"


def test_compute_stats():
    entries = [
        _entry("a", day="2024-01-01", mood=Mood.HAPPY, ts="2024-01-01T20:00:00+00:00"),
        _entry("b", day="2024-01-02", mood=Mood.HAPPY, ts="2024-01-02T20:15:00+00:00"),
        _entry("c", day="2024-01-04", mood=Mood.TIRED, ts="2024-01-04T06:00:00+00:00"),
    ]
    stats = compute_stats(entries)
    assert stats.total_entries == 3
    assert stats.mood_counts[Mood.HAPPY] == 2
    assert stats.mood_counts[Mood.TIRED] == 1
    assert stats.mood_counts[Mood.SAD] == 0
    assert len(stats.mood_counts) == len(Mood)
    assert stats.longest_streak == 2
    assert stats.most_common_time == "8PM"

    empty = compute_stats([])
    assert empty.total_entries == 0
    assert empty.longest_streak == 0
    assert empty.most_common_time is None


def test_compute_stats_skips_unknown_moods():
    entries = [_entry("a", mood=Mood.HAPPY), _entry("b", mood="grateful")]
    stats = compute_stats(entries)
    assert stats.total_entries == 2
    assert stats.mood_counts[Mood.HAPPY] == 1
    assert sum(stats.mood_counts.values()) == 1
    assert "grateful" not in stats.mood_counts
