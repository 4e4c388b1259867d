# tests for the write coalescer — debounced background saves per date

import asyncio

import pytest
from unittest.mock import AsyncMock

from protagame.client.cache import EntryCache, EntryState
from protagame.client.coalescer import WriteCoalescer
from protagame.models.journal import JournalEntryCreate
from tests.conftest import SAMPLE_VISUAL_PROMPT

DELAY = 0.01


class RecordingWriter:
    """wraps a store and records every partial it is handed"""

    def __init__(self, store):
        self.store = store
        self.calls: list[JournalEntryCreate] = []

    async def save_entry(self, partial):
        self.calls.append(partial)
        return await self.store.save_entry(partial)


@pytest.fixture
def cache():
    return EntryCache()


@pytest.fixture
def writer(store):
    return RecordingWriter(store)


@pytest.fixture
def coalescer(writer, cache):
    return WriteCoalescer(writer, cache, delay=DELAY)


async def _settle(coalescer):
    await asyncio.sleep(DELAY * 5)
    await coalescer.wait_idle()


class TestCoalescing:

    async def test_burst_collapses_to_one_save(self, coalescer, writer, cache, store):
        text = ""
        for ch in "Hello, sea":
            text += ch
            cache.update_content("2024-03-01", text)
            coalescer.schedule("2024-03-01", text)

        assert coalescer.pending("2024-03-01")
        await _settle(coalescer)

        assert len(writer.calls) == 1
        assert writer.calls[0].content == "Hello, sea"
        assert store.write_sequence("2024-03-01") == 1
        assert (await store.get_entry_by_date("2024-03-01")).content == "Hello, sea"
        assert cache.state("2024-03-01") == EntryState.SAVED

    async def test_dates_are_independent(self, coalescer, writer):
        coalescer.schedule("2024-03-01", "one")
        coalescer.schedule("2024-03-02", "two")
        await _settle(coalescer)

        assert sorted(p.date for p in writer.calls) == ["2024-03-01", "2024-03-02"]

    async def test_blank_content_not_saved(self, coalescer, writer):
        coalescer.schedule("2024-03-01", "   ")
        await _settle(coalescer)
        assert writer.calls == []

    async def test_content_trimmed_before_save(self, coalescer, writer):
        coalescer.schedule("2024-03-01", "  padded  ")
        await _settle(coalescer)
        assert writer.calls[0].content == "padded"

    async def test_cancel_returns_pending_content(self, coalescer, writer):
        coalescer.schedule("2024-03-01", "draft")
        assert coalescer.cancel("2024-03-01") == "draft"
        assert not coalescer.pending("2024-03-01")
        await _settle(coalescer)
        assert writer.calls == []

    async def test_flush_saves_without_waiting(self, writer, cache):
        coalescer = WriteCoalescer(writer, cache, delay=60)
        coalescer.schedule("2024-03-01", "now please")
        await coalescer.flush()
        assert [p.content for p in writer.calls] == ["now please"]
        assert not coalescer.pending("2024-03-01")

    async def test_save_now_uses_cache_content(self, coalescer, writer, cache):
        cache.update_content("2024-03-01", "from cache")
        task = coalescer.save_now("2024-03-01")
        await task
        assert writer.calls[0].content == "from cache"

    async def test_aclose_drops_armed_timers(self, writer, cache):
        coalescer = WriteCoalescer(writer, cache, delay=60)
        coalescer.schedule("2024-03-01", "never saved")
        await coalescer.aclose()
        assert writer.calls == []

    async def test_on_saved_callback(self, writer, cache):
        seen = []
        coalescer = WriteCoalescer(writer, cache, delay=DELAY, on_saved=lambda d, e: seen.append((d, e.content)))
        coalescer.schedule("2024-03-01", "hi")
        await _settle(coalescer)
        assert seen == [("2024-03-01", "hi")]


class TestPartialPayload:

    async def test_save_carries_cached_media(self, coalescer, writer, cache, store):
        saved = await store.save_entry(JournalEntryCreate(
            date="2024-03-01",
            content="old",
            story="chapter",
            visualPrompt=SAMPLE_VISUAL_PROMPT,
            mediaUrl="https://img/1.png",
        ))
        cache.mark_loaded("2024-03-01", saved)
        cache.update_content("2024-03-01", "new")
        coalescer.schedule("2024-03-01", "new")
        await _settle(coalescer)

        partial = writer.calls[0]
        assert partial.story == "chapter"
        assert partial.media_url == "https://img/1.png"
        assert partial.visual_prompt.mood == "serene"

        stored = await store.get_entry_by_date("2024-03-01")
        assert stored.content == "new"
        assert stored.media_url == "https://img/1.png"


class TestFailures:

    async def test_failed_save_is_swallowed(self, cache):
        writer = AsyncMock()
        writer.save_entry.side_effect = RuntimeError("network down")
        coalescer = WriteCoalescer(writer, cache, delay=DELAY)

        cache.update_content("2024-03-01", "lost?")
        coalescer.schedule("2024-03-01", "lost?")
        await _settle(coalescer)

        cached = cache.get("2024-03-01")
        assert cached.state == EntryState.SAVE_PENDING
        assert cached.last_error == "network down"
        assert cached.content == "lost?"
        assert not coalescer.in_flight("2024-03-01")

    async def test_next_edit_retries(self, cache, store):
        calls = []

        class FlakyWriter:
            async def save_entry(self, partial):
                calls.append(partial.content)
                if len(calls) == 1:
                    raise RuntimeError("network down")
                return await store.save_entry(partial)

        coalescer = WriteCoalescer(FlakyWriter(), cache, delay=DELAY)

        cache.update_content("2024-03-01", "first")
        coalescer.schedule("2024-03-01", "first")
        await _settle(coalescer)
        cache.update_content("2024-03-01", "first and more")
        coalescer.schedule("2024-03-01", "first and more")
        await _settle(coalescer)

        assert calls == ["first", "first and more"]
        assert cache.state("2024-03-01") == EntryState.SAVED
