"""Tests for the profile document stores."""

import json

import pytest

from app.core.exceptions import PersistenceError
from app.services.persistence import FileProfileStore, InMemoryProfileStore


class TestInMemoryStore:
    async def test_merge_write(self):
        store = InMemoryProfileStore({"display_name": "dj"})
        await store.save(artists=[{"id": "1", "name": "A", "style": "s"}])
        document = await store.load()
        assert document["display_name"] == "dj"
        assert document["artists"][0]["name"] == "A"
        assert document["generation_history"] == {}

    async def test_load_returns_a_copy(self):
        store = InMemoryProfileStore()
        document = await store.load()
        document["artists"].append("junk")
        assert (await store.load())["artists"] == []

    async def test_unknown_field(self):
        with pytest.raises(ValueError):
            await InMemoryProfileStore().save(favourite_colour="blue")


class TestFileStore:
    async def test_fresh_directory_loads_defaults(self, tmp_path):
        document = await FileProfileStore(tmp_path / "new").load()
        assert document["artists"] == []
        assert document["generation_history"] == {}
        assert document["api_key"] == ""

    async def test_writes_one_slot_per_field(self, tmp_path):
        store = FileProfileStore(tmp_path)
        await store.save(artists=[{"id": "1", "name": "A", "style": "s"}], api_key="k")
        assert json.loads((tmp_path / "sunoArtists.json").read_text())[0]["name"] == "A"
        assert json.loads((tmp_path / "sunoApiKey.json").read_text()) == "k"
        assert not (tmp_path / "sunoGenerationHistory.json").exists()

        await store.save(generation_history={"1": {"titles": ["T"], "themes": [], "lyrics": []}})
        document = await store.load()
        assert document["artists"][0]["name"] == "A"
        assert document["generation_history"]["1"]["titles"] == ["T"]

    async def test_corrupt_slot_loads_as_default(self, tmp_path):
        (tmp_path / "sunoArtists.json").write_text("{not json")
        (tmp_path / "sunoGenerationHistory.json").write_text("[]")
        document = await FileProfileStore(tmp_path).load()
        assert document["artists"] == []
        assert document["generation_history"] == {}

    async def test_write_failure_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        with pytest.raises(PersistenceError) as exc:
            await FileProfileStore(blocker / "data").save(api_key="k")
        assert exc.value.hint
