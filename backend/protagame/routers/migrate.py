# migrate router — one-shot copy of the file store into mongodb

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from protagame.dependencies import get_file_store, get_mongo_store
from protagame.migrate import migrate_journal_data
from protagame.models.media import MigrationResponse
from protagame.services.entry_store import EntryStore, FileEntryStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/migrate", tags=["migrate"])


@router.post("", response_model=MigrationResponse)
async def migrate(
    source: FileEntryStore = Depends(get_file_store),
    target: EntryStore = Depends(get_mongo_store),
):
    """upsert every <date>.json from the data directory into mongodb"""
    logger.info("Starting migration via API endpoint")
    try:
        migrated, errors = await migrate_journal_data(source, target)
    except Exception as e:
        logger.error(f"Migration failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Migration failed: {e}",
        )
    return MigrationResponse(migrated=migrated, errors=errors)
