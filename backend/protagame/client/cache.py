# optimistic entry cache — what the editor shows before persistence confirms it
#
# per-date lifecycle:
#   absent -> loading -> loaded | load_failed -> editing -> save_pending -> saved
# editing is re-entered from saved (or a stuck save_pending) on the next keystroke.
# a failed save leaves the entry in save_pending until the user edits again.

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from protagame.models.journal import JournalEntry, normalize_date
from protagame.services.entry_store import utcnow

logger = logging.getLogger(__name__)


class EntryState(str, Enum):
    ABSENT = "absent"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"
    EDITING = "editing"
    SAVE_PENDING = "save_pending"
    SAVED = "saved"


# states where local content may be ahead of the store
LOCAL_STATES = (EntryState.EDITING, EntryState.SAVE_PENDING)


@dataclass
class CachedEntry:
    """one date's cached record plus its sync bookkeeping"""
    state: EntryState = EntryState.ABSENT
    entry: Optional[JournalEntry] = None
    persisted_content: str = ""
    saved_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def content(self) -> str:
        return self.entry.content if self.entry is not None else ""


class EntryCache:
    """in-memory date -> entry map for one editor session"""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utcnow
        self._entries: dict[str, CachedEntry] = {}

    def __contains__(self, date: str) -> bool:
        return date in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, date: str) -> Optional[CachedEntry]:
        return self._entries.get(date)

    def state(self, date: str) -> EntryState:
        cached = self._entries.get(date)
        return cached.state if cached else EntryState.ABSENT

    def content(self, date: str) -> str:
        cached = self._entries.get(date)
        return cached.content if cached else ""

    def _slot(self, date: str) -> CachedEntry:
        date = normalize_date(date)
        if date not in self._entries:
            self._entries[date] = CachedEntry()
        return self._entries[date]

    def update_content(self, date: str, content: str) -> JournalEntry:
        """synchronous keystroke update; creates a stub entry on first edit"""
        cached = self._slot(date)
        now = self._clock()
        if cached.entry is None:
            cached.entry = JournalEntry(date=normalize_date(date), content=content, createdAt=now, updatedAt=now)
        else:
            cached.entry = cached.entry.model_copy(update={"content": content, "updated_at": now})
        cached.state = EntryState.EDITING
        return cached.entry

    def mark_loading(self, date: str) -> None:
        cached = self._slot(date)
        if cached.state in (EntryState.ABSENT, EntryState.LOAD_FAILED):
            cached.state = EntryState.LOADING

    def mark_loaded(self, date: str, entry: Optional[JournalEntry]) -> bool:
        """apply a fetched record. local edits made while loading win.

        returns True when the fetched record was adopted.
        """
        cached = self._slot(date)
        if cached.state in LOCAL_STATES:
            if entry is not None:
                cached.persisted_content = entry.content
                cached.entry = self._merge_remote(cached.entry, entry, keep_content=True)
            return False

        cached.entry = entry
        cached.persisted_content = entry.content if entry is not None else ""
        cached.state = EntryState.LOADED
        return True

    def mark_load_failed(self, date: str, error: Optional[str] = None) -> None:
        """a failed fetch reads as an empty entry"""
        cached = self._slot(date)
        cached.last_error = error
        if cached.state not in LOCAL_STATES:
            cached.state = EntryState.LOAD_FAILED

    def mark_save_pending(self, date: str) -> None:
        self._slot(date).state = EntryState.SAVE_PENDING

    def mark_saved(self, date: str, saved: JournalEntry, sent_content: str) -> None:
        """record a successful write of sent_content.

        server fields (timestamps, media, story) are adopted; local content is
        kept when the user typed again while the save was in flight.
        """
        cached = self._slot(date)
        cached.persisted_content = sent_content
        cached.saved_at = self._clock()
        cached.last_error = None

        typed_since = cached.entry is not None and cached.entry.content.strip() != sent_content
        cached.entry = self._merge_remote(cached.entry, saved, keep_content=typed_since)
        cached.state = EntryState.EDITING if typed_since else EntryState.SAVED

    def mark_save_failed(self, date: str, error: str) -> None:
        cached = self._slot(date)
        cached.last_error = error

    def merge_fields(self, date: str, entry: JournalEntry) -> None:
        """adopt generated fields from an entry without touching local content"""
        cached = self._slot(date)
        cached.entry = self._merge_remote(cached.entry, entry, keep_content=cached.entry is not None)

    def is_dirty(self, date: str) -> bool:
        """local content differs from what is known to be persisted"""
        cached = self._entries.get(date)
        if cached is None or cached.entry is None:
            return False
        return cached.entry.content.strip() != cached.persisted_content.strip()

    def clear(self) -> None:
        self._entries.clear()

    @staticmethod
    def _merge_remote(local: Optional[JournalEntry], remote: JournalEntry, keep_content: bool) -> JournalEntry:
        if local is None or not keep_content:
            return remote
        return remote.model_copy(update={"content": local.content})
