"""
Credential store: user records with bcrypt password hashes.
"""

import asyncio
from typing import Any, Dict, Optional

import bcrypt
import structlog
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError, PyMongoError

from api import errors

logger = structlog.get_logger(__name__)


class CredentialStore:
    """Persists users as {_id, username, password} with username unique."""

    def __init__(self, collection: AsyncIOMotorCollection, rounds: int = 10):
        self.collection = collection
        self.rounds = rounds
        # Compared against when the username is unknown so both login
        # failure paths do one bcrypt check.
        self._dummy_hash = bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds))

    async def ensure_indexes(self) -> None:
        """Create the unique username index that enforces uniqueness."""
        await self.collection.create_index("username", unique=True)

    async def hash_password(self, password: str) -> str:
        """Hash the password in a worker thread, off the event loop."""
        hashed = await asyncio.to_thread(
            bcrypt.hashpw,
            password.encode("utf-8"),
            bcrypt.gensalt(self.rounds),
        )
        return hashed.decode("utf-8")

    async def register(self, username: str, password: str) -> Dict[str, Any]:
        """
        Store a new user with a one-way hash of the password.

        Args:
            username: Unique username
            password: Plaintext password, never persisted

        Returns:
            The stored user document

        Raises:
            DuplicateUsername: If the username is taken
            InternalError: On any other database failure
        """
        document = {
            "username": username,
            "password": await self.hash_password(password)
        }
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError:
            logger.warning("Registration rejected, username taken", username=username)
            raise errors.DuplicateUsername()
        except PyMongoError as e:
            logger.error("Failed to register user", username=username, error=str(e))
            raise errors.InternalError(detail=str(e))

        logger.info("User registered", username=username, user_id=str(document["_id"]))
        return document

    async def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        """Return the user document, or None when no such user exists."""
        try:
            return await self.collection.find_one({"username": username})
        except PyMongoError as e:
            logger.error("Failed to look up user", username=username, error=str(e))
            raise errors.InternalError(detail=str(e))

    async def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """
        Check a username/password pair.

        An unknown username and a wrong password raise the same
        InvalidCredentials, and both run one bcrypt comparison.
        """
        user = await self.find_by_username(username)
        stored_hash = user["password"].encode("utf-8") if user else self._dummy_hash
        password_ok = await asyncio.to_thread(
            bcrypt.checkpw,
            password.encode("utf-8"),
            stored_hash,
        )

        if user is None or not password_ok:
            logger.info("Login failed", username=username)
            raise errors.InvalidCredentials()
        return user
