"""
Pytest configuration and shared fixtures.
"""

import copy
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from api.config import APIConfig
from api.main import create_app


class FakeCursor:
    """Subset of motor's cursor used by the stores."""

    def __init__(self, documents):
        self._documents = documents

    def sort(self, key_or_list, direction=None):
        keys = [(key_or_list, direction or 1)] if isinstance(key_or_list, str) else key_or_list
        # Stable sorts applied from the least significant key
        for key, order in reversed(keys):
            self._documents.sort(key=lambda doc: doc.get(key), reverse=order == -1)
        return self

    async def to_list(self, length=None):
        documents = [copy.deepcopy(doc) for doc in self._documents]
        return documents if length is None else documents[:length]


class FakeCollection:
    """In-memory stand-in for AsyncIOMotorCollection, honouring unique indexes."""

    def __init__(self):
        self.documents = []
        self.unique_fields = set()

    @staticmethod
    def _matches(document, query):
        return all(document.get(key) == value for key, value in query.items())

    def _find(self, query):
        return next((doc for doc in self.documents if self._matches(doc, query)), None)

    async def create_index(self, keys, unique=False, **kwargs):
        if unique:
            self.unique_fields.add(keys if isinstance(keys, str) else keys[0][0])
        return "index"

    async def insert_one(self, document):
        for field in self.unique_fields:
            if self._find({field: document.get(field)}) is not None:
                raise DuplicateKeyError(f"E11000 duplicate key error: {field}", code=11000)
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query):
        document = self._find(query)
        return copy.deepcopy(document) if document else None

    def find(self, query=None):
        return FakeCursor([doc for doc in self.documents if self._matches(doc, query or {})])

    async def find_one_and_update(self, query, update, return_document=False):
        document = self._find(query)
        if document is None:
            return None
        before = copy.deepcopy(document)
        document.update(update.get("$set", {}))
        return copy.deepcopy(document) if return_document else before

    async def find_one_and_delete(self, query):
        document = self._find(query)
        if document is None:
            return None
        self.documents.remove(document)
        return document

    async def count_documents(self, query):
        return len([doc for doc in self.documents if self._matches(doc, query)])


class FakeDatabase:
    """In-memory stand-in for AsyncIOMotorDatabase."""

    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    async def command(self, name):
        return {"ok": 1.0}


@pytest.fixture
def settings():
    """Configuration with a cheap bcrypt cost for fast tests."""
    return APIConfig(
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        mongodb_database="bookshelf_test",
        log_level="WARNING"
    )


@pytest.fixture
def database():
    return FakeDatabase()


@pytest.fixture
def users_collection(database, settings):
    return database[settings.users_collection]


@pytest.fixture
def books_collection(database, settings):
    return database[settings.books_collection]


@pytest.fixture
def client(settings, database):
    """Test client with the application lifespan running."""
    app = create_app(settings, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    """Register and log in a user, returning an Authorization header."""
    credentials = {"username": "reader", "password": "s3cret"}
    assert client.post("/api/auth/register", json=credentials).status_code == 201
    token = client.post("/api/auth/login", json=credentials).json()["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_book():
    """Sample add-book payload."""
    return {
        "name": "A Light in the Attic",
        "author": "Shel Silverstein",
        "price": 51.77,
        "imageUrl": "https://example.com/attic.jpg"
    }
