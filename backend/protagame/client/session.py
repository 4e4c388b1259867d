# editor session — optimistic cache + write coalescer behind one journal view
#
# typing updates the cache synchronously and re-arms the coalescer; nothing
# waits on the network. navigation shows cached content immediately or empty
# content while a background fetch runs, and a fetch only lands on screen if
# the session is still viewing its date when it resolves.

import asyncio
import logging
from datetime import datetime
from typing import Optional, Protocol

from protagame.client.cache import EntryCache, EntryState
from protagame.client.coalescer import WriteCoalescer
from protagame.models.journal import JournalEntry, JournalEntryCreate, VisualPrompt, normalize_date

logger = logging.getLogger(__name__)


class EntryBackend(Protocol):
    """the slice of the store an editor needs — EntryStore or JournalApiClient"""

    async def save_entry(self, partial: JournalEntryCreate) -> JournalEntry: ...

    async def get_entry_by_date(self, date: str) -> Optional[JournalEntry]: ...


class EditorSession:
    """one ui session over the journal, viewing a single date at a time"""

    def __init__(
        self,
        backend: EntryBackend,
        date: str,
        cache: Optional[EntryCache] = None,
        autosave_delay: Optional[float] = None,
    ):
        self.backend = backend
        self.cache = cache or EntryCache()
        self.coalescer = WriteCoalescer(backend, self.cache, delay=autosave_delay)
        self.current_date = normalize_date(date)
        self.content = ""
        self._fetches: dict[str, asyncio.Task] = {}

    # -- view state --

    @property
    def entry(self) -> Optional[JournalEntry]:
        cached = self.cache.get(self.current_date)
        return cached.entry if cached else None

    @property
    def char_count(self) -> int:
        return len(self.content)

    @property
    def last_saved(self) -> Optional[datetime]:
        cached = self.cache.get(self.current_date)
        return cached.saved_at if cached else None

    @property
    def is_saving(self) -> bool:
        date = self.current_date
        return (
            self.coalescer.in_flight(date)
            or self.cache.state(date) == EntryState.SAVE_PENDING
        )

    @property
    def status_line(self) -> str:
        """'Saving...' until a save lands (a failed save never resolves it)"""
        if self.is_saving:
            return "Saving..."
        if self.last_saved is not None:
            return f"Last saved at {self.last_saved.strftime('%I:%M %p').lstrip('0')}"
        return ""

    # -- actions --

    async def start(self) -> None:
        """load the initial date"""
        task = self._show(self.current_date)
        if task is not None:
            await task

    def type(self, content: str) -> None:
        """keystroke: cache first, then (re)arm the background save"""
        self.cache.update_content(self.current_date, content)
        self.content = content
        self.coalescer.schedule(self.current_date, content)

    def navigate(self, date: str) -> Optional[asyncio.Task]:
        """switch the view to date without waiting on the network.

        returns the background fetch task when one was started.
        """
        date = normalize_date(date)
        leaving = self.current_date
        if date == leaving:
            return None

        if self.cache.is_dirty(leaving):
            # best effort, navigation never waits for it
            self.coalescer.save_now(leaving)

        self.current_date = date
        return self._show(date)

    async def attach_media(self, visual_prompt: VisualPrompt, media_url: Optional[str] = None) -> JournalEntry:
        """explicit save of generated media with the current content.

        errors propagate so the caller can alert the user.
        """
        date = self.current_date
        previous = self.entry
        self.coalescer.cancel(date)

        fields = {"date": date, "visualPrompt": visual_prompt}
        # the view only holds real content once loaded or typed into
        content_known = self.cache.state(date) not in (
            EntryState.ABSENT, EntryState.LOADING, EntryState.LOAD_FAILED,
        )
        if content_known:
            fields["content"] = self.content.strip()
        media_url = media_url or (previous.media_url if previous else None)
        if media_url:
            fields["mediaUrl"] = media_url

        saved = await self.backend.save_entry(JournalEntryCreate(**fields))
        self.cache.mark_saved(date, saved, fields.get("content", saved.content))
        if not content_known and self.current_date == date:
            self.content = saved.content
        return saved

    async def aclose(self) -> None:
        """flush pending saves and drop outstanding fetches"""
        await self.coalescer.flush()
        for task in list(self._fetches.values()):
            task.cancel()
        await asyncio.gather(*self._fetches.values(), return_exceptions=True)
        self._fetches.clear()

    # -- internals --

    def _show(self, date: str) -> Optional[asyncio.Task]:
        state = self.cache.state(date)
        if state in (EntryState.ABSENT, EntryState.LOAD_FAILED):
            self.content = ""
            self.cache.mark_loading(date)
            task = asyncio.get_running_loop().create_task(self._fetch(date))
            self._fetches[date] = task
            task.add_done_callback(lambda t, d=date: self._fetches.pop(d, None))
            return task

        # cached (or already loading) — no new round trip
        self.content = self.cache.content(date)
        return self._fetches.get(date)

    async def _fetch(self, date: str) -> None:
        try:
            entry = await self.backend.get_entry_by_date(date)
        except Exception as e:
            logger.warning(f"Failed to load journal entry for {date}: {e}")
            self.cache.mark_load_failed(date, str(e))
        else:
            self.cache.mark_loaded(date, entry)

        # stale-response guard
        if self.current_date == date:
            self.content = self.cache.content(date)
