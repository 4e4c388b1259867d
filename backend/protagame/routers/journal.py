# journal router — save, fetch, list/search and delete entries by date
# single implicit user: every entry is keyed only by its date

import logging

from fastapi import APIRouter, Depends, HTTPException, status, Query

from protagame.dependencies import get_store, require_valid_date
from protagame.models.journal import (
    JOURNEY_STORY_DATE,
    DeleteResponse,
    EntryListResponse,
    EntryResponse,
    JournalEntryCreate,
    SaveEntryRequest,
    SaveEntryResponse,
    StatsResponse,
)
from protagame.services.entry_store import EntryStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/journal", tags=["journal"])


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@router.post("", response_model=SaveEntryResponse)
async def save_entry(body: SaveEntryRequest, store: EntryStore = Depends(get_store)):
    """create or merge-update the entry for a date.

    the journey story entry needs a story and is saved with empty content;
    every other entry needs a date and non-blank content.
    """
    if body.date == JOURNEY_STORY_DATE:
        if not body.story:
            raise _bad_request("Story content is required for journey stories")
        content = ""
        message = "Journey story saved successfully"
    else:
        if not body.date or not body.content or not body.content.strip():
            raise _bad_request("Date and content are required")
        content = body.content
        message = "Journal entry saved successfully"

    date = require_valid_date(body.date)
    partial = JournalEntryCreate(
        date=date,
        content=content,
        story=body.story,
        visualPrompt=body.visual_prompt,
        mediaUrl=body.media_url,
    )

    try:
        entry = await store.save_entry(partial)
    except Exception as e:
        logger.error(f"Journal save error for {date}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save journal entry",
        )

    return SaveEntryResponse(message=message, entry=entry)


@router.get("", response_model=EntryResponse)
async def get_entry(
    date: str = Query(None, description="entry date, YYYY-MM-DD or journey-story"),
    store: EntryStore = Depends(get_store),
):
    """point lookup — entry is null when nothing was saved for the date"""
    if not date:
        raise _bad_request("Date parameter is required")
    date = require_valid_date(date)

    try:
        entry = await store.get_entry_by_date(date)
    except Exception as e:
        logger.error(f"Journal fetch error for {date}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch journal entry",
        )

    return EntryResponse(entry=entry)


@router.delete("", response_model=DeleteResponse)
async def delete_entry(
    date: str = Query(None, description="entry date to delete"),
    store: EntryStore = Depends(get_store),
):
    """delete the entry for a date, 404 when there is none"""
    if not date:
        raise _bad_request("Date parameter is required")
    date = require_valid_date(date)

    try:
        deleted = await store.delete_entry(date)
    except Exception as e:
        logger.error(f"Journal delete error for {date}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete journal entry",
        )

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Journal entry not found")
    return DeleteResponse()


@router.get("/list", response_model=EntryListResponse)
async def list_entries(
    start: str = Query(None, description="inclusive lower date bound"),
    end: str = Query(None, description="inclusive upper date bound"),
    search: str = Query(None, description="case-insensitive text to find"),
    store: EntryStore = Depends(get_store),
):
    """search wins over a date range; with neither, every entry is returned"""
    try:
        if search:
            entries = await store.search_entries(search)
        elif start and end:
            entries = await store.get_entries_in_range(start, end)
        else:
            entries = await store.get_all_entries()
    except Exception as e:
        logger.error(f"Journal list error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch journal entries",
        )

    return EntryListResponse(entries=entries, count=len(entries))


@router.get("/stats", response_model=StatsResponse)
async def get_stats(store: EntryStore = Depends(get_store)):
    try:
        stats = await store.get_stats()
    except Exception as e:
        logger.error(f"Journal stats error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch journal statistics",
        )
    return StatsResponse(stats=stats)
