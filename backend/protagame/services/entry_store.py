# entry store — keyed-by-date journal persistence
# one entry per date, upsert with field-wise merge, createdAt preserved
#
# two interchangeable backends share the same contract:
#   - MongoEntryStore: one document per date in the journal_entries collection
#   - FileEntryStore: one <date>.json file per date under a data directory
#
# same-date writes are last-write-wins. write_sequence() counts completed
# writes per date so the ordering of racing saves is observable.

import asyncio
import json
import logging
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date as date_type, datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pymongo import ReturnDocument

from protagame.models.journal import (
    JOURNEY_STORY_DATE,
    DateRange,
    JournalEntry,
    JournalEntryCreate,
    JournalStats,
    VisualPrompt,
    normalize_date,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def merge_entry(existing: Optional[JournalEntry], partial: JournalEntryCreate, now: datetime) -> JournalEntry:
    """apply a partial payload over an existing record (or create a new one).

    shallow field overwrite: only fields supplied with a value are written,
    createdAt is kept from the existing record.
    """
    fields = partial.update_fields()
    if "content" in fields:
        fields["content"] = fields["content"].strip()

    if existing is not None:
        doc = existing.to_document()
        doc.update(fields)
        doc["createdAt"] = existing.created_at
        doc["updatedAt"] = now
    else:
        doc = {"content": "", **fields, "createdAt": now, "updatedAt": now}

    return JournalEntry.model_validate(doc)


def long_form_date(value: str) -> str:
    """'2024-03-01' -> 'Friday, March 1, 2024'"""
    d = date_type.fromisoformat(value)
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def format_story_text(entries: list[JournalEntry]) -> str:
    """render daily entries as dated prose blocks, oldest first"""
    daily = sorted((e for e in entries if not e.is_journey_story), key=lambda e: e.date)
    return "\n".join(f"**{long_form_date(e.date)}**\n{e.content}\n" for e in daily)


def matches_search(entry: JournalEntry, term: str) -> bool:
    """case-insensitive substring match on content or the visual prompt text"""
    needle = term.lower()
    if needle in (entry.content or "").lower():
        return True
    if entry.visual_prompt is not None:
        return needle in entry.visual_prompt.visual_prompt.lower()
    return False


def compute_stats(entries: list[JournalEntry]) -> JournalStats:
    """aggregate counts; dateRange spans daily entries only"""
    with_media = sum(1 for e in entries if e.media_url and e.media_url.strip())
    dates = sorted(e.date for e in entries if not e.is_journey_story)
    date_range = DateRange(oldest=dates[0], newest=dates[-1]) if dates else None
    return JournalStats(
        totalEntries=len(entries),
        entriesWithMedia=with_media,
        dateRange=date_range,
    )


class EntryStore(ABC):
    """contract shared by every journal persistence backend.

    storage errors propagate to the caller; there are no internal retries.
    a missing key is never an error — lookups return None, deletes False.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utcnow
        self._write_sequence: dict[str, int] = defaultdict(int)

    def write_sequence(self, date: str) -> int:
        """number of writes completed for a date by this store instance"""
        return self._write_sequence.get(date, 0)

    def _record_write(self, date: str) -> None:
        self._write_sequence[date] += 1

    @abstractmethod
    async def save_entry(self, partial: JournalEntryCreate) -> JournalEntry:
        """insert the entry for partial.date or merge partial over it"""

    @abstractmethod
    async def get_entry_by_date(self, date: str) -> Optional[JournalEntry]:
        """point lookup, None when absent"""

    @abstractmethod
    async def get_all_entries(self) -> list[JournalEntry]:
        """every entry, newest date first (journey story included)"""

    @abstractmethod
    async def delete_entry(self, date: str) -> bool:
        """remove the entry for a date, False if there was none"""

    async def get_all_entries_for_story(self) -> str:
        """chronological prose projection used as an llm prompt fragment"""
        return format_story_text(await self.get_all_entries())

    async def get_entries_in_range(self, start: str, end: str) -> list[JournalEntry]:
        """entries with start <= date <= end (string comparison), newest first"""
        return [e for e in await self.get_all_entries() if start <= e.date <= end]

    async def search_entries(self, term: str) -> list[JournalEntry]:
        return [e for e in await self.get_all_entries() if matches_search(e, term)]

    async def get_stats(self) -> JournalStats:
        return compute_stats(await self.get_all_entries())

    async def update_generated_media(
        self,
        date: str,
        visual_prompt: VisualPrompt,
        media_url: Optional[str] = None,
    ) -> Optional[JournalEntry]:
        """attach generated media to an existing entry; None if the date has no entry"""
        existing = await self.get_entry_by_date(date)
        if existing is None:
            logger.error(f"No journal entry found for date: {date}")
            return None

        fields = {"date": date, "visualPrompt": visual_prompt}
        if media_url:
            fields["mediaUrl"] = media_url
        entry = await self.save_entry(JournalEntryCreate(**fields))
        logger.info(f"Generated media attached to journal entry for {date}")
        return entry


class MongoEntryStore(EntryStore):
    """entry store over a motor collection, one document per date.

    upserts go through find_one_and_update so the merge happens inside a
    single-document write; createdAt is only ever set via $setOnInsert.
    """

    def __init__(self, db, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._db = db

    @property
    def collection(self):
        return self._db.journal_entries

    @staticmethod
    def _to_entry(doc: Optional[dict]) -> Optional[JournalEntry]:
        if doc is None:
            return None
        doc = {k: v for k, v in doc.items() if k != "_id"}
        return JournalEntry.model_validate(doc)

    async def ensure_indexes(self) -> None:
        """unique index on date — the only lookup key"""
        try:
            await self.collection.create_index("date", unique=True)
            logger.info("Journal entry indexes ensured")
        except Exception as e:
            logger.error(f"Failed to create indexes: {e}")

    async def save_entry(self, partial: JournalEntryCreate) -> JournalEntry:
        now = self._clock().isoformat()
        fields = partial.update_fields()
        if "content" in fields:
            fields["content"] = fields["content"].strip()

        on_insert = {"createdAt": now}
        if "content" not in fields:
            on_insert["content"] = ""

        doc = await self.collection.find_one_and_update(
            {"date": partial.date},
            {"$set": {**fields, "updatedAt": now}, "$setOnInsert": on_insert},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        self._record_write(partial.date)
        logger.info(f"Journal entry saved: {partial.date}")
        return self._to_entry(doc)

    async def get_entry_by_date(self, date: str) -> Optional[JournalEntry]:
        doc = await self.collection.find_one({"date": normalize_date(date)})
        return self._to_entry(doc)

    async def _find_sorted(self, query: dict, direction: int) -> list[JournalEntry]:
        cursor = self.collection.find(query).sort("date", direction)
        return [self._to_entry(doc) async for doc in cursor]

    async def get_all_entries(self) -> list[JournalEntry]:
        return await self._find_sorted({}, -1)

    async def get_all_entries_for_story(self) -> str:
        entries = await self._find_sorted({"date": {"$ne": JOURNEY_STORY_DATE}}, 1)
        return format_story_text(entries)

    async def get_entries_in_range(self, start: str, end: str) -> list[JournalEntry]:
        return await self._find_sorted({"date": {"$gte": start, "$lte": end}}, -1)

    async def search_entries(self, term: str) -> list[JournalEntry]:
        pattern = {"$regex": re.escape(term), "$options": "i"}
        query = {"$or": [{"content": pattern}, {"visualPrompt.visualPrompt": pattern}]}
        return await self._find_sorted(query, -1)

    async def delete_entry(self, date: str) -> bool:
        date = normalize_date(date)
        result = await self.collection.delete_one({"date": date})
        deleted = result.deleted_count > 0
        if deleted:
            self._record_write(date)
            logger.info(f"Journal entry deleted: {date}")
        return deleted

    async def get_stats(self) -> JournalStats:
        total = await self.collection.count_documents({})
        # non-blank mediaUrl, the same rule compute_stats applies
        with_media = await self.collection.count_documents({"mediaUrl": {"$regex": r"\S"}})

        daily = {"date": {"$ne": JOURNEY_STORY_DATE}}
        oldest = await self.collection.find(daily, {"date": 1}).sort("date", 1).limit(1).to_list(1)
        newest = await self.collection.find(daily, {"date": 1}).sort("date", -1).limit(1).to_list(1)
        date_range = None
        if oldest and newest:
            date_range = DateRange(oldest=oldest[0]["date"], newest=newest[0]["date"])

        return JournalStats(totalEntries=total, entriesWithMedia=with_media, dateRange=date_range)


class FileEntryStore(EntryStore):
    """entry store over a directory of <date>.json files.

    file i/o runs in worker threads. each write goes to its own temp file that
    is renamed over the target, and the read-merge-write for a date holds that
    date's lock, so racing same-date saves serialize instead of interleaving.
    """

    def __init__(self, data_dir, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.data_dir = Path(data_dir)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, date: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(date, threading.Lock())

    def _ensure_data_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _file_path(self, date: str) -> Path:
        return self.data_dir / f"{normalize_date(date)}.json"

    def _read_file(self, path: Path) -> Optional[JournalEntry]:
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as f:
            return JournalEntry.model_validate(json.load(f))

    def _write_file(self, entry: JournalEntry) -> None:
        self._ensure_data_dir()
        path = self._file_path(entry.date)
        fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{entry.date}.", suffix=".json.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entry.to_document(), f, indent=2)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _scan(self) -> list[JournalEntry]:
        self._ensure_data_dir()
        entries = []
        for path in sorted(self.data_dir.glob("*.json"), key=lambda p: p.name, reverse=True):
            try:
                entry = self._read_file(path)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to read file {path.name}: {e}")
                continue
            if entry is not None:
                entries.append(entry)
        return entries

    def _save_sync(self, partial: JournalEntryCreate) -> JournalEntry:
        with self._lock_for(partial.date):
            existing = self._read_file(self._file_path(partial.date))
            entry = merge_entry(existing, partial, self._clock())
            self._write_file(entry)
            return entry

    def _delete_sync(self, date: str) -> bool:
        with self._lock_for(date):
            path = self._file_path(date)
            if not path.exists():
                return False
            path.unlink()
            return True

    async def save_entry(self, partial: JournalEntryCreate) -> JournalEntry:
        entry = await asyncio.to_thread(self._save_sync, partial)
        self._record_write(partial.date)
        logger.info(f"Journal entry saved: {partial.date}")
        return entry

    async def get_entry_by_date(self, date: str) -> Optional[JournalEntry]:
        return await asyncio.to_thread(self._read_file, self._file_path(date))

    async def get_all_entries(self) -> list[JournalEntry]:
        return await asyncio.to_thread(self._scan)

    async def delete_entry(self, date: str) -> bool:
        date = normalize_date(date)
        deleted = await asyncio.to_thread(self._delete_sync, date)
        if deleted:
            self._record_write(date)
            logger.info(f"Journal entry deleted: {date}")
        return deleted

    def list_entry_files(self) -> list[Path]:
        """raw <date>.json paths, oldest first — used by the mongo migration"""
        self._ensure_data_dir()
        return sorted(self.data_dir.glob("*.json"), key=lambda p: p.name)
