# migration script — copies the flat-file journal store into mongodb
# each <date>.json is upserted through the mongo entry store
# run once: python -m protagame.migrate

import asyncio
import json
import logging

from protagame.models.journal import JournalEntryCreate
from protagame.services.entry_store import EntryStore, FileEntryStore

logger = logging.getLogger(__name__)

# fields carried over from the file format
MIGRATED_FIELDS = (
    "date", "content", "story", "visualPrompt", "mediaUrl",
    "audioUrl", "audioFormat", "audioGenerated",
)


async def migrate_journal_data(source: FileEntryStore, target: EntryStore) -> tuple[int, int]:
    """upsert every file entry into target. returns (migrated, errors).

    a broken file is logged and counted, the rest still migrate.
    """
    files = source.list_entry_files()
    logger.info(f"Found {len(files)} journal files to migrate from {source.data_dir}")

    migrated = 0
    errors = 0
    for path in files:
        try:
            raw = json.loads(await asyncio.to_thread(path.read_text, encoding="utf-8"))
            partial = JournalEntryCreate.model_validate({k: raw[k] for k in MIGRATED_FIELDS if k in raw})
            await target.save_entry(partial)
            logger.info(f"Migrated: {path.name}")
            migrated += 1
        except Exception as e:
            logger.error(f"Error migrating {path.name}: {e}")
            errors += 1

    logger.info(f"Migration completed: {migrated} migrated, {errors} errors")
    return migrated, errors


async def main():
    from protagame.config import settings
    from protagame.services.db import db
    from protagame.services.entry_store import MongoEntryStore

    await db.connect()
    try:
        target = MongoEntryStore(db)
        await target.ensure_indexes()
        await migrate_journal_data(FileEntryStore(settings.JOURNAL_DATA_DIR), target)
    finally:
        await db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    asyncio.run(main())
