# mongodb connection for the mongo entry store
# one motor client per process, opened in the app lifespan

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from protagame.config import settings

logger = logging.getLogger(__name__)


class Database:
    """lazily connected motor database holding the journal collection"""

    def __init__(self, uri: Optional[str] = None, name: Optional[str] = None):
        self.uri = uri
        self.name = name
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self.db is not None

    async def connect(self):
        """open the client and ping the server; no-op when already connected"""
        if self.is_connected:
            return

        name = self.name or settings.MONGODB_DATABASE
        logger.info(f"Connecting to MongoDB database: {name}")
        self.client = AsyncIOMotorClient(self.uri or settings.MONGODB_URI, maxIdleTimeMS=5000)
        self.db = self.client[name]

        await self.client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def close(self):
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    @property
    def journal_entries(self) -> AsyncIOMotorCollection:
        """one document per entry date"""
        if self.db is None:
            raise RuntimeError("MongoDB is not connected; call connect() first")
        return self.db[settings.JOURNAL_COLLECTION]


# process-wide instance used by the app and the migration script
db = Database()
