# fastapi dependency injection
# provides the configured entry store backend

import logging
from typing import Optional

from fastapi import HTTPException, status

from protagame.config import settings
from protagame.models.journal import normalize_date
from protagame.services.db import db
from protagame.services.entry_store import EntryStore, FileEntryStore, MongoEntryStore

logger = logging.getLogger(__name__)

# store singletons — write sequence counters live on the instance
_mongo_store: Optional[MongoEntryStore] = None
_file_store: Optional[FileEntryStore] = None


def get_mongo_store() -> MongoEntryStore:
    global _mongo_store
    if _mongo_store is None:
        _mongo_store = MongoEntryStore(db)
    return _mongo_store


def get_file_store() -> FileEntryStore:
    global _file_store
    if _file_store is None:
        _file_store = FileEntryStore(settings.JOURNAL_DATA_DIR)
    return _file_store


async def get_store() -> EntryStore:
    """entry store selected by STORAGE_BACKEND"""
    if settings.STORAGE_BACKEND == "file":
        return get_file_store()
    return get_mongo_store()


def require_valid_date(date: str) -> str:
    """normalize a date query/body value or reject it with 400"""
    try:
        return normalize_date(date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
