# shared fixtures for backend tests
# provides mock db, local/remote stores, journal entry factories, and httpx test client

import json
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock
from datetime import date, datetime, time, timedelta, timezone
from bson import ObjectId

from httpx import AsyncClient, ASGITransport

from moodcast.main import app
from moodcast.dependencies import get_extraction_service, get_pattern_stores, get_prediction_service
from moodcast.models.journal import JournalEntry
from moodcast.services.context_service import ContextualFactorGatherer
from moodcast.services.db import get_db
from moodcast.services.local_store import LocalKeyValueStore
from moodcast.services.pattern_extraction import PatternExtractionService
from moodcast.services.pattern_store import PatternStoreRegistry, PersonalPatternStore
from moodcast.services.prediction_service import MoodPredictionService
from moodcast.services.remote_store import RemoteStore


# test ids
USER_ID = "user_001"
OTHER_USER_ID = "user_002"


# journal documents (as they'd appear from mongodb)

def _journal_doc(user_id: str, day: date, mood, content: str) -> dict:
    return {
        "_id": ObjectId(),
        "id": f"{user_id}-{day.isoformat()}",
        "user_id": user_id,
        "created_at": f"{day.isoformat()}T12:00:00Z",
        "content": content,
        "mood": mood,
    }


# three weeks of june 2025 with a dip every monday
SAMPLE_JOURNALS = [
    _journal_doc(
        USER_ID,
        date(2025, 6, 1) + timedelta(days=i),
        3 if (date(2025, 6, 1) + timedelta(days=i)).weekday() == 0 else 7,
        "Mondays at the office drain me. The commute was long."
        if (date(2025, 6, 1) + timedelta(days=i)).weekday() == 0
        else "Good day overall. Went for a walk after work.",
    )
    for i in range(21)
]

OTHER_USER_JOURNAL = _journal_doc(OTHER_USER_ID, date(2025, 6, 5), 2, "Rough week.")


def make_entry(day: date, mood=None, content: str = "Just an ordinary day.", entry_id: str = None, user_id: str = USER_ID) -> JournalEntry:
    """journal entry created at noon utc on the given day"""
    return JournalEntry(
        id=entry_id or f"{user_id}-{day.isoformat()}",
        user_id=user_id,
        created_at=datetime.combine(day, time(12, 0), tzinfo=timezone.utc),
        content=content,
        mood=mood,
    )


def daily_entries(start: date, days: int, mood: int = 6) -> list[JournalEntry]:
    return [make_entry(start + timedelta(days=i), mood) for i in range(days)]


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor: supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = data or []
        self._index = 0

    def sort(self, *args, **kwargs):
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


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []

    def find(self, query=None, projection=None):
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(list(results))

    async def find_one(self, query=None, projection=None):
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return doc
        return None

    async def replace_one(self, query, doc, upsert=False):
        result = MagicMock()
        result.modified_count = 0
        for i, existing in enumerate(self._data):
            if self._matches(existing, query):
                self._data[i] = dict(doc)
                result.modified_count = 1
                return result
        if upsert:
            self._data.append(dict(doc))
        return result

    async def update_one(self, query, update, upsert=False):
        result = MagicMock()
        result.modified_count = 0
        for doc in self._data:
            if self._matches(doc, query):
                doc.update(update.get("$set", {}))
                result.modified_count = 1
                return result
        if upsert:
            self._data.append({**query, **update.get("$set", {})})
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

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            doc_val = doc.get(key)
            if isinstance(value, dict):
                if "$in" in value:
                    if doc_val not in value["$in"]:
                        return False
                elif "$gte" in value:
                    if doc_val is None or doc_val < value["$gte"]:
                        return False
            elif doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.journals = MockCollection([dict(d) for d in SAMPLE_JOURNALS] + [dict(OTHER_USER_JOURNAL)])
        self.mood_patterns = MockCollection([])
        self.users = MockCollection([])
        self.user_mood_profiles = MockCollection([])

    @property
    def is_connected(self):
        return True

    async def connect(self):
        pass

    async def close(self):
        pass


class FakePatternClient:
    """stand-in for the gemini client: returns a canned reply and records calls"""

    def __init__(self, reply=None, error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls: list[list[str]] = []

    async def extract_patterns(self, entry_texts):
        self.calls.append(list(entry_texts))
        if self.error is not None:
            raise self.error
        if isinstance(self.reply, (dict, list)):
            return json.dumps(self.reply)
        return self.reply or "{}"


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest.fixture
def local_store(tmp_path):
    return LocalKeyValueStore(tmp_path / "local")


@pytest.fixture
def remote(mock_db):
    return RemoteStore(mock_db)


@pytest.fixture
def mock_remote():
    """remote store whose every method is an AsyncMock"""
    remote = MagicMock(spec=RemoteStore)
    remote.load_patterns = AsyncMock(return_value=[])
    remote.load_occupation_type = AsyncMock()
    remote.save_pattern = AsyncMock()
    remote.delete_pattern = AsyncMock()
    remote.save_occupation_type = AsyncMock()
    remote.save_profile = AsyncMock()
    remote.get_entries = AsyncMock(return_value=[])
    return remote


@pytest_asyncio.fixture
async def store(local_store, remote):
    """loaded pattern store for the test user backed by the mock db"""
    pattern_store = PersonalPatternStore(USER_ID, local_store, remote)
    pattern_store.load()
    yield pattern_store
    await pattern_store.wait_for_pending()


@pytest.fixture
def offline_store(local_store):
    """pattern store without a cloud side"""
    pattern_store = PersonalPatternStore(USER_ID, local_store)
    pattern_store.load()
    return pattern_store


@pytest.fixture
def gatherer():
    """context gatherer that never touches the network"""
    return ContextualFactorGatherer(weather_service=None, weather_enabled=False)


@pytest.fixture
def fake_client():
    return FakePatternClient(reply={
        "occupationType": "employee",
        "occupationConfidence": 0.8,
        "significantDates": [],
        "weekdayPatterns": [
            {"dayName": "Monday", "description": "Office days drain energy", "moodImpact": -1.2, "confidence": 0.8},
        ],
        "emotionalTriggers": [],
        "summary": "Energy dips at the start of the work week.",
    })


@pytest_asyncio.fixture
async def client(mock_db, local_store, fake_client):
    """httpx async test client with mocked dependencies"""
    registry = PatternStoreRegistry(local_store, RemoteStore(mock_db))

    async def override_get_db():
        return mock_db

    def override_get_pattern_stores():
        return registry

    async def override_get_prediction_service():
        gatherer = ContextualFactorGatherer(weather_service=None, weather_enabled=False)
        return MoodPredictionService(gatherer, RemoteStore(mock_db), registry)

    async def override_get_extraction_service():
        return PatternExtractionService(fake_client)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pattern_stores] = override_get_pattern_stores
    app.dependency_overrides[get_prediction_service] = override_get_prediction_service
    app.dependency_overrides[get_extraction_service] = override_get_extraction_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await registry.wait_for_pending()
    app.dependency_overrides.clear()
