"""
Book store: CRUD over the books collection.

Documents are stored as {_id, name, author, price, imageUrl, createdAt}.
Every public method returns a BookResponse or raises an api.errors error.
"""

from datetime import datetime, timezone
from typing import List

import structlog
from bson import ObjectId
from bson import errors as bson_errors
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from api import errors
from api.models import BookCreate, BookResponse, BookUpdate

logger = structlog.get_logger(__name__)


def parse_book_id(book_id: str) -> ObjectId:
    """Convert a path id to an ObjectId, raising InvalidId when malformed."""
    try:
        return ObjectId(book_id)
    except (bson_errors.InvalidId, TypeError):
        raise errors.InvalidId(detail=f"'{book_id}' is not a valid ObjectId")


def utc_now() -> datetime:
    """Current timezone-aware UTC time truncated to MongoDB's millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class BookStore:
    """Database service for book records."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def ensure_indexes(self) -> None:
        """Index createdAt for the newest-first listing."""
        await self.collection.create_index([("createdAt", -1)])

    async def create(self, book: BookCreate) -> BookResponse:
        """
        Insert a new book stamped with the current time.

        Args:
            book: Validated book fields

        Returns:
            The stored book with its assigned id and timestamp
        """
        document = {
            "name": book.name,
            "author": book.author,
            "price": book.price,
            "imageUrl": book.image_url,
            "createdAt": utc_now()
        }
        try:
            await self.collection.insert_one(document)
        except PyMongoError as e:
            logger.error("Failed to insert book", name=book.name, error=str(e))
            raise errors.InternalError(detail=str(e))

        logger.info("Book created", book_id=str(document["_id"]), name=book.name)
        return BookResponse.from_document(document)

    async def list(self) -> List[BookResponse]:
        """Return every book, newest first."""
        try:
            cursor = self.collection.find({}).sort([("createdAt", -1), ("_id", -1)])
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to list books", error=str(e))
            raise errors.InternalError(detail=str(e))

        return [BookResponse.from_document(doc) for doc in documents]

    async def get_by_id(self, book_id: str) -> BookResponse:
        """
        Get a single book by ID.

        Raises:
            InvalidId: If book_id is not an ObjectId
            NotFound: If no book has that id
        """
        object_id = parse_book_id(book_id)
        try:
            document = await self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise errors.InternalError(detail=str(e))

        if document is None:
            raise errors.NotFound(detail=f"No book with ID '{book_id}'")
        return BookResponse.from_document(document)

    async def update(self, book_id: str, changes: BookUpdate) -> BookResponse:
        """
        Merge the provided fields over the stored book.

        Fields left out of changes keep their current value. An update with
        no fields behaves like get_by_id.
        """
        object_id = parse_book_id(book_id)
        fields = changes.to_document()
        try:
            if fields:
                document = await self.collection.find_one_and_update(
                    {"_id": object_id},
                    {"$set": fields},
                    return_document=ReturnDocument.AFTER
                )
            else:
                document = await self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise errors.InternalError(detail=str(e))

        if document is None:
            raise errors.NotFound(detail=f"No book with ID '{book_id}'")

        logger.info("Book updated", book_id=book_id, fields=sorted(fields))
        return BookResponse.from_document(document)

    async def delete(self, book_id: str) -> BookResponse:
        """Remove a book and return what was removed."""
        object_id = parse_book_id(book_id)
        try:
            document = await self.collection.find_one_and_delete({"_id": object_id})
        except PyMongoError as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise errors.InternalError(detail=str(e))

        if document is None:
            raise errors.NotFound(detail=f"No book with ID '{book_id}'")

        logger.info("Book deleted", book_id=book_id)
        return BookResponse.from_document(document)
