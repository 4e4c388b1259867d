# journal models — entry record, entry keys, request and response schemas
# field aliases mirror the persisted camelCase json shape

import re
from datetime import date as date_type, datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

# reserved key for the aggregate journey story entry
JOURNEY_STORY_DATE = "journey-story"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DailyKey(BaseModel):
    """key of an entry tied to one calendar day"""
    kind: Literal["daily"] = "daily"
    day: date_type

    model_config = {"frozen": True}

    @property
    def storage_key(self) -> str:
        return self.day.isoformat()


class JourneyKey(BaseModel):
    """key of the single journey story entry"""
    kind: Literal["journey"] = "journey"

    model_config = {"frozen": True}

    @property
    def storage_key(self) -> str:
        return JOURNEY_STORY_DATE


EntryKey = Union[DailyKey, JourneyKey]


def parse_entry_key(value: str) -> EntryKey:
    """parse a stored date string into a tagged entry key.

    only zero-padded YYYY-MM-DD strings naming a real day, or the journey
    story sentinel, are accepted. raises ValueError otherwise.
    """
    if value == JOURNEY_STORY_DATE:
        return JourneyKey()
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise ValueError(f"Invalid entry date: {value!r} (expected YYYY-MM-DD)")
    try:
        return DailyKey(day=date_type.fromisoformat(value))
    except ValueError:
        raise ValueError(f"Invalid entry date: {value!r} (not a calendar day)") from None


def normalize_date(value: str) -> str:
    """validate a date string and return its storage key"""
    return parse_entry_key(value).storage_key


class VisualPrompt(BaseModel):
    """creative direction generated from a journal entry"""
    visual_prompt: str = Field(..., alias="visualPrompt")
    mood: str = ""
    color_palette: str = Field("", alias="colorPalette")
    cinematic_style: str = Field("", alias="cinematicStyle")
    duration: str = ""

    model_config = {"populate_by_name": True}


class JournalEntryCreate(BaseModel):
    """entry payload without timestamps — what callers hand to the store.

    fields left unset (or None) are not written, so a partial payload
    merges over the stored record instead of replacing it.
    """
    date: str
    content: Optional[str] = None
    story: Optional[str] = None
    visual_prompt: Optional[VisualPrompt] = Field(None, alias="visualPrompt")
    media_url: Optional[str] = Field(None, alias="mediaUrl")
    audio_url: Optional[str] = Field(None, alias="audioUrl")
    audio_format: Optional[str] = Field(None, alias="audioFormat")
    audio_generated: Optional[str] = Field(None, alias="audioGenerated")

    model_config = {"populate_by_name": True}

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        return normalize_date(v)

    @property
    def key(self) -> EntryKey:
        return parse_entry_key(self.date)

    def update_fields(self) -> dict:
        """camelCase fields explicitly supplied with a value"""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True, mode="json")


class JournalEntry(BaseModel):
    """the persisted record for one date (or the journey story)"""
    date: str
    content: str = ""
    story: Optional[str] = None
    visual_prompt: Optional[VisualPrompt] = Field(None, alias="visualPrompt")
    media_url: Optional[str] = Field(None, alias="mediaUrl")
    audio_url: Optional[str] = Field(None, alias="audioUrl")
    audio_format: Optional[str] = Field(None, alias="audioFormat")
    audio_generated: Optional[str] = Field(None, alias="audioGenerated")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True}

    @property
    def key(self) -> EntryKey:
        return parse_entry_key(self.date)

    @property
    def is_journey_story(self) -> bool:
        return self.date == JOURNEY_STORY_DATE

    def to_document(self) -> dict:
        """json-ready dict in the persisted shape (absent optionals omitted)"""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class DateRange(BaseModel):
    oldest: str
    newest: str


class JournalStats(BaseModel):
    total_entries: int = Field(0, alias="totalEntries")
    entries_with_media: int = Field(0, alias="entriesWithMedia")
    date_range: Optional[DateRange] = Field(None, alias="dateRange")

    model_config = {"populate_by_name": True}


# api request / response wrappers

class SaveEntryRequest(BaseModel):
    """body for POST /journal — validated by hand so errors match the api contract"""
    date: Optional[str] = None
    content: Optional[str] = None
    story: Optional[str] = None
    visual_prompt: Optional[VisualPrompt] = Field(None, alias="visualPrompt")
    media_url: Optional[str] = Field(None, alias="mediaUrl")

    model_config = {"populate_by_name": True}


class SaveEntryResponse(BaseModel):
    success: bool = True
    message: str
    entry: JournalEntry


class EntryResponse(BaseModel):
    success: bool = True
    entry: Optional[JournalEntry] = None


class EntryListResponse(BaseModel):
    success: bool = True
    entries: list[JournalEntry] = Field(default_factory=list)
    count: int = 0


class StatsResponse(BaseModel):
    success: bool = True
    stats: JournalStats


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Journal entry deleted successfully"
