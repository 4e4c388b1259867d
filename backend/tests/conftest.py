# shared fixtures for backend api tests
# provides mock db, entry stores on both backends, a fake clock, and httpx test clients

import copy
import re
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from bson import ObjectId
from pymongo import ReturnDocument

from httpx import AsyncClient, ASGITransport

from protagame.main import app
from protagame.dependencies import get_file_store, get_mongo_store, get_store
from protagame.services.entry_store import FileEntryStore, MongoEntryStore


# sample data

SAMPLE_VISUAL_PROMPT = {
    "visualPrompt": "Waves folding over a quiet beach at dusk",
    "mood": "serene",
    "colorPalette": "soft blues and peach",
    "cinematicStyle": "slow dolly along the shoreline",
    "duration": "gentle loop",
}


class FakeClock:
    """deterministic clock — every call advances by step"""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.now
        self.now = self.now + self.step
        return value


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor — supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = data or []
        self._index = 0

    def sort(self, key, direction=1):
        self._data = sorted(self._data, key=lambda d: d.get(key, ""), reverse=direction == -1)
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


_MISSING = object()


def _get_path(doc, key):
    """resolve dotted keys like visualPrompt.visualPrompt"""
    value = doc
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.indexes = []

    def find(self, query=None, projection=None):
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock([copy.deepcopy(d) for d in results])

    async def find_one(self, query=None, projection=None):
        if not query:
            return copy.deepcopy(self._data[0]) if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def find_one_and_update(self, query, update, upsert=False, return_document=ReturnDocument.BEFORE):
        for doc in self._data:
            if self._matches(doc, query):
                before = copy.deepcopy(doc)
                doc.update(copy.deepcopy(update.get("$set", {})))
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before

        if not upsert:
            return None
        doc = {k: v for k, v in query.items() if not isinstance(v, dict) and not k.startswith("$")}
        doc["_id"] = ObjectId()
        doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        doc.update(copy.deepcopy(update.get("$set", {})))
        self._data.append(doc)
        return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else None

    async def insert_one(self, doc):
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for i, doc in enumerate(self._data):
            if self._matches(doc, query):
                del self._data[i]
                result.deleted_count = 1
                break
        return result

    async def count_documents(self, query=None):
        if not query:
            return len(self._data)
        return len([d for d in self._data if self._matches(d, query)])

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return f"{keys}_1"

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            if key == "$or":
                if not any(self._matches(doc, cond) for cond in value):
                    return False
                continue
            doc_val = _get_path(doc, key)
            if isinstance(value, dict):
                if "$exists" in value and (doc_val is not _MISSING) != value["$exists"]:
                    return False
                if doc_val is _MISSING:
                    if any(op in value for op in ("$in", "$gte", "$lte", "$regex")):
                        return False
                    continue
                if "$in" in value and doc_val not in value["$in"]:
                    return False
                if "$ne" in value and doc_val == value["$ne"]:
                    return False
                if "$gte" in value and doc_val < value["$gte"]:
                    return False
                if "$lte" in value and doc_val > value["$lte"]:
                    return False
                if "$regex" in value:
                    flags = re.IGNORECASE if value.get("$options") == "i" else 0
                    if not re.search(value["$regex"], str(doc_val), flags):
                        return False
            elif doc_val is _MISSING or doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.journal_entries = MockCollection([])

    async def connect(self):
        pass

    async def close(self):
        pass


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mongo_store(mock_db, clock):
    return MongoEntryStore(mock_db, clock=clock)


@pytest.fixture
def file_store(tmp_path, clock):
    return FileEntryStore(tmp_path / "journal", clock=clock)


@pytest.fixture(params=["mongo", "file"])
def store(request, mongo_store, file_store):
    """the same contract tests run against both backends"""
    return mongo_store if request.param == "mongo" else file_store


@pytest_asyncio.fixture
async def client(store):
    """httpx async test client with the entry store overridden"""

    async def override_get_store():
        return store

    app.dependency_overrides[get_store] = override_get_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def mongo_client(mongo_store, file_store):
    """client on the mongo backend, with the file store wired in for migrations"""

    async def override_get_store():
        return mongo_store

    app.dependency_overrides[get_store] = override_get_store
    app.dependency_overrides[get_mongo_store] = lambda: mongo_store
    app.dependency_overrides[get_file_store] = lambda: file_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
