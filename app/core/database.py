"""
MongoDB database connection and utilities.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

    @classmethod
    async def connect(cls):
        """Connect to MongoDB."""
        cls.client = AsyncIOMotorClient(settings.MONGO_URI)
        cls.db = cls.client[settings.MONGO_DB_NAME]

        await cls._create_indexes()

        logger.info(f"Connected to MongoDB: {settings.MONGO_DB_NAME}")

    @classmethod
    async def disconnect(cls):
        """Disconnect from MongoDB."""
        if cls.client:
            cls.client.close()
            logger.info("Disconnected from MongoDB")

    @classmethod
    async def _create_indexes(cls):
        """Create database indexes for job lookups and uniqueness guarantees."""
        await cls.db.users.create_index("email", unique=True)

        await cls.db.shops.create_index("shop_id", unique=True)
        await cls.db.shops.create_index("owner_id")

        await cls.db.printers.create_index("printer_id", unique=True)
        await cls.db.printers.create_index("shop_ref")

        # One job per job number, even if two dispatchers race.
        await cls.db.jobs.create_index("job_number", unique=True)
        await cls.db.jobs.create_index([("shop_ref", 1), ("status", 1)])
        await cls.db.jobs.create_index("user_id")

    @classmethod
    def get_collection(cls, name: str):
        """Get a collection by name."""
        return cls.db[name]


def get_db() -> AsyncIOMotorDatabase:
    """Get the database instance."""
    return Database.db
