# write coalescer — one background save per date per inactivity window
#
# schedule() re-arms a per-date timer; only the last content scheduled before
# the timer fires is saved. the save carries whatever story / visualPrompt /
# mediaUrl the cache holds so a background write never clobbers them.
# failures are logged and dropped — the next edit is the retry.

import asyncio
import logging
from typing import Callable, Optional, Protocol

from protagame.client.cache import EntryCache
from protagame.config import settings
from protagame.models.journal import JournalEntry, JournalEntryCreate

logger = logging.getLogger(__name__)


class EntryWriter(Protocol):
    """anything with the store's save_entry — an EntryStore or the api client"""

    async def save_entry(self, partial: JournalEntryCreate) -> JournalEntry: ...


SavedCallback = Callable[[str, JournalEntry], None]


class WriteCoalescer:
    """debounces content writes per date on the running event loop"""

    def __init__(
        self,
        writer: EntryWriter,
        cache: EntryCache,
        delay: Optional[float] = None,
        on_saved: Optional[SavedCallback] = None,
    ):
        self.writer = writer
        self.cache = cache
        self.delay = settings.AUTOSAVE_DELAY_SECONDS if delay is None else delay
        self.on_saved = on_saved
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._latest: dict[str, str] = {}
        self._in_flight: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, date: str, content: str) -> None:
        """(re)start the inactivity timer for date with the newest content"""
        previous = self._timers.pop(date, None)
        if previous is not None:
            previous.cancel()
        self._latest[date] = content
        loop = asyncio.get_running_loop()
        self._timers[date] = loop.call_later(self.delay, self._fire, date)

    def pending(self, date: str) -> bool:
        """timer armed for date and not yet fired"""
        return date in self._timers

    def in_flight(self, date: str) -> bool:
        return self._in_flight.get(date, 0) > 0

    def cancel(self, date: str) -> Optional[str]:
        """disarm date's timer, returning the content it would have saved"""
        handle = self._timers.pop(date, None)
        if handle is not None:
            handle.cancel()
        return self._latest.pop(date, None)

    def save_now(self, date: str, content: Optional[str] = None) -> Optional[asyncio.Task]:
        """fire-and-forget save of date, skipping the timer"""
        pending = self.cancel(date)
        if content is None:
            content = pending if pending is not None else self.cache.content(date)
        return self._spawn(date, content)

    def _fire(self, date: str) -> None:
        self._timers.pop(date, None)
        content = self._latest.pop(date, None)
        if content is not None:
            self._spawn(date, content)

    def _spawn(self, date: str, content: str) -> Optional[asyncio.Task]:
        if not content.strip():
            return None
        task = asyncio.get_running_loop().create_task(self._save(date, content))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _build_partial(self, date: str, content: str) -> JournalEntryCreate:
        fields = {"date": date, "content": content}
        cached = self.cache.get(date)
        if cached is not None and cached.entry is not None:
            entry = cached.entry
            if entry.story:
                fields["story"] = entry.story
            if entry.visual_prompt is not None:
                fields["visualPrompt"] = entry.visual_prompt
            if entry.media_url:
                fields["mediaUrl"] = entry.media_url
        return JournalEntryCreate(**fields)

    async def _save(self, date: str, content: str) -> Optional[JournalEntry]:
        trimmed = content.strip()
        partial = self._build_partial(date, trimmed)

        self.cache.mark_save_pending(date)
        self._in_flight[date] = self._in_flight.get(date, 0) + 1
        try:
            saved = await self.writer.save_entry(partial)
        except Exception as e:
            logger.warning(f"Auto-save failed for {date}: {e}")
            self.cache.mark_save_failed(date, str(e))
            return None
        finally:
            self._in_flight[date] -= 1
            if not self._in_flight[date]:
                del self._in_flight[date]

        self.cache.mark_saved(date, saved, trimmed)
        if self.on_saved is not None:
            self.on_saved(date, saved)
        return saved

    async def flush(self, date: Optional[str] = None) -> None:
        """fire armed timers now (one date or all) and wait for every save"""
        dates = [date] if date is not None else list(self._timers)
        for d in dates:
            content = self.cancel(d)
            if content is not None:
                self._spawn(d, content)
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """wait until no save is in flight"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """disarm every timer and wait for in-flight saves"""
        for d in list(self._timers):
            self.cancel(d)
        await self.wait_idle()
