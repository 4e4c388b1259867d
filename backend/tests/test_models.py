# tests for journal models — entry keys, partial payloads, persisted shape

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from protagame.models.journal import (
    JOURNEY_STORY_DATE,
    DailyKey,
    JournalEntry,
    JournalEntryCreate,
    JourneyKey,
    VisualPrompt,
    normalize_date,
    parse_entry_key,
)
from tests.conftest import SAMPLE_VISUAL_PROMPT

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestEntryKey:
    """date string <-> tagged key"""

    def test_daily_key(self):
        key = parse_entry_key("2024-02-29")
        assert isinstance(key, DailyKey)
        assert key.day.isoformat() == "2024-02-29"
        assert key.storage_key == "2024-02-29"

    def test_journey_key(self):
        key = parse_entry_key(JOURNEY_STORY_DATE)
        assert isinstance(key, JourneyKey)
        assert key.storage_key == "journey-story"

    @pytest.mark.parametrize("value", [
        "2024-3-1",
        "2024/03/01",
        "2023-02-29",
        "2024-13-01",
        "journey",
        "",
        "../secrets",
    ])
    def test_invalid_dates_rejected(self, value):
        with pytest.raises(ValueError):
            parse_entry_key(value)

    def test_normalize_round_trips_storage_key(self):
        assert normalize_date("2024-01-05") == "2024-01-05"
        assert normalize_date(JOURNEY_STORY_DATE) == JOURNEY_STORY_DATE

    def test_keys_are_hashable(self):
        keys = {parse_entry_key("2024-01-01"), parse_entry_key("2024-01-01"), JourneyKey()}
        assert len(keys) == 2


class TestJournalEntryCreate:
    """partial payloads only carry what was supplied"""

    def test_update_fields_skips_unset_and_none(self):
        partial = JournalEntryCreate(date="2024-03-01", content="hi", mediaUrl=None)
        assert partial.update_fields() == {"date": "2024-03-01", "content": "hi"}

    def test_update_fields_uses_camel_case(self):
        partial = JournalEntryCreate(
            date="2024-03-01",
            visualPrompt=SAMPLE_VISUAL_PROMPT,
            mediaUrl="https://img/1.png",
            audioFormat="mp3",
        )
        fields = partial.update_fields()
        assert fields["visualPrompt"]["colorPalette"] == "soft blues and peach"
        assert fields["mediaUrl"] == "https://img/1.png"
        assert fields["audioFormat"] == "mp3"

    def test_accepts_snake_case_names(self):
        partial = JournalEntryCreate(date="2024-03-01", media_url="https://img/1.png")
        assert partial.media_url == "https://img/1.png"

    def test_invalid_date_is_validation_error(self):
        with pytest.raises(ValidationError):
            JournalEntryCreate(date="March 1st", content="x")

    def test_key_property(self):
        assert isinstance(JournalEntryCreate(date=JOURNEY_STORY_DATE).key, JourneyKey)


class TestJournalEntry:

    def test_to_document_omits_absent_optionals(self):
        entry = JournalEntry(date="2024-03-01", content="hi", createdAt=NOW, updatedAt=NOW)
        doc = entry.to_document()
        assert doc == {
            "date": "2024-03-01",
            "content": "hi",
            "createdAt": "2024-03-01T12:00:00Z",
            "updatedAt": "2024-03-01T12:00:00Z",
        }

    def test_parses_iso_timestamps(self):
        entry = JournalEntry.model_validate({
            "date": "2024-03-01",
            "content": "hi",
            "createdAt": "2024-03-01T12:00:00+00:00",
            "updatedAt": "2024-03-01T13:00:00+00:00",
        })
        assert entry.updated_at > entry.created_at

    def test_journey_story_flag(self):
        entry = JournalEntry(date=JOURNEY_STORY_DATE, story="arc", createdAt=NOW, updatedAt=NOW)
        assert entry.is_journey_story
        assert entry.content == ""

    def test_visual_prompt_defaults(self):
        vp = VisualPrompt(visualPrompt="a lighthouse")
        assert vp.mood == ""
        assert vp.model_dump(by_alias=True)["cinematicStyle"] == ""
