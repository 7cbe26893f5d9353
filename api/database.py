"""
MongoDB connection lifecycle for the API.
Opens the motor client, exposes the database and reports health.
"""

from typing import Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """
    Async MongoDB manager.
    Owns the client whose connection pool is shared by every request.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Establish connection to MongoDB and return the database."""
        try:
            # tz_aware returns stored datetimes as UTC-aware values
            self.client = AsyncIOMotorClient(self.connection_url, tz_aware=True)
            self.database = self.client[self.database_name]

            # Test connection
            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB", database=self.database_name)
            return self.database

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")


async def health_check(database, users_collection: str, books_collection: str) -> Dict:
    """
    Perform database health check.

    Returns:
        Dictionary with health status
    """
    try:
        await database.command("ping")

        users_count = await database[users_collection].count_documents({})
        books_count = await database[books_collection].count_documents({})

        return {
            "status": "healthy",
            "users_count": users_count,
            "books_count": books_count
        }
    except PyMongoError as e:
        logger.error("Database health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e)
        }
