# async mongodb client: the cloud side of the persistence interface
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from moodcast.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self.db is not None

    async def connect(self):
        """establish connection to mongodb"""
        if self.client is not None:
            return

        if not settings.MONGODB_URI:
            logger.warning("MONGODB_URI is not set, running with local pattern storage only")
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection, but never block startup on the cloud
        try:
            await self.client.admin.command("ping")
            logger.info("MongoDB connection established")
        except Exception as e:
            logger.warning(f"MongoDB ping failed, cloud sync will be retried later: {e}")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    # collection accessors

    @property
    def journals(self):
        return self.db["journals"]

    @property
    def mood_patterns(self):
        return self.db["mood_patterns"]

    @property
    def users(self):
        return self.db["users"]

    @property
    def user_mood_profiles(self):
        return self.db["user_mood_profiles"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
