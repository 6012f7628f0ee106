"""Shared fixtures: isolated SQLite database, in-memory cache, scripted Gemini."""

import json
import os
import tempfile
import uuid
from pathlib import Path

import pytest

# Settings are read once at import time, so the environment goes first
_TEST_DIR = Path(tempfile.mkdtemp(prefix="suno_machine_test_"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["GOOGLE_API_KEY"] = ""
os.environ["STORAGE_BACKEND"] = "database"
os.environ["LOCAL_STORAGE_DIR"] = str(_TEST_DIR / "local")

from app.core.exceptions import CredentialMissingError  # noqa: E402
from app.schemas.artist import Artist  # noqa: E402
from app.services.cache_service import CacheService  # noqa: E402
from app.services.gemini_service import GeminiService  # noqa: E402
from app.services.persistence import InMemoryProfileStore  # noqa: E402
from app.services.studio import Studio, studio_registry  # noqa: E402


class FakeRedis:
    """Just enough of redis.asyncio.Redis for CacheService."""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)
        return len(keys)

    async def aclose(self):
        pass


class ScriptedGemini(GeminiService):
    """
    Gemini service whose network call returns queued responses.

    Queue items are response texts, exceptions to raise, or (asyncio.Event, item)
    pairs that hold the call until the event is set.
    """

    def __init__(self):
        super().__init__()
        self.responses: list = []
        self.requests: list = []

    def queue(self, *items):
        self.responses.extend(items)

    def queue_song(self, title="Paper Lanterns", style="Dream pop with shoegaze guitars", lyrics="[Verse 1]\nLine one\n\n[Chorus]\nLine two"):
        self.queue(json.dumps({"title": title, "style": style, "lyrics": lyrics}))

    async def _call(self, request, api_key):
        if not self.resolve_api_key(api_key):
            raise CredentialMissingError()
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, tuple):
            gate, item = item
            await gate.wait()
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def fake_cache():
    previous = CacheService._client
    CacheService._client = FakeRedis()
    yield CacheService._client
    CacheService._client = previous


@pytest.fixture(autouse=True)
def clean_registry():
    studio_registry.clear()
    yield
    studio_registry.clear()


@pytest.fixture
def gemini():
    return ScriptedGemini()


@pytest.fixture
def artist():
    return Artist(id="1700000000000", name="The Band", style="Warm folk rock with harmonica")


@pytest.fixture
async def studio(gemini):
    store = InMemoryProfileStore({"api_key": "test-key", "display_name": "tester"})
    return await Studio(store, gemini=gemini).start()


@pytest.fixture
def unique_name():
    return f"user_{uuid.uuid4().hex[:8]}"
