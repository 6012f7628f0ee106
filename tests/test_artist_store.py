"""Tests for the artist roster."""

import pytest

from app.core.exceptions import (
    ArtistNotFoundError,
    ArtistValidationError,
    ConfirmationRequiredError,
    ImportFormatError,
)
from app.schemas.artist import Artist
from app.services.artist_store import ArtistStore


@pytest.fixture
def store():
    return ArtistStore([Artist(id="1", name="The Band", style="Folk rock")])


class TestCreate:
    def test_trims_fields(self):
        store = ArtistStore()
        artist = store.create("  Nova Drift  ", "  Ambient techno  ")
        assert artist.name == "Nova Drift"
        assert artist.style == "Ambient techno"
        assert store.artists == [artist]

    @pytest.mark.parametrize("name", [" The Band ", "the band", "THE BAND"])
    def test_rejects_case_insensitive_duplicate(self, store, name):
        with pytest.raises(ArtistValidationError) as exc:
            store.create(name, "Anything")
        assert exc.value.field == "name"
        assert len(store) == 1
        assert store.form_error == exc.value.message

    def test_accepts_non_colliding_name(self, store):
        store.create("The Bands", "Something else")
        assert store.names() == ["The Band", "The Bands"]

    @pytest.mark.parametrize("name,style,field", [("", "x", "name"), ("   ", "x", "name"), ("A", "  ", "style")])
    def test_rejects_empty_fields(self, name, style, field):
        store = ArtistStore()
        with pytest.raises(ArtistValidationError) as exc:
            store.create(name, style)
        assert exc.value.field == field
        assert len(store) == 0

    def test_success_clears_edit_form(self, store):
        store.begin_edit("1")
        store.create("Other", "Style")
        assert store.editing_id is None
        assert store.form_error is None

    def test_ids_are_unique(self):
        store = ArtistStore()
        first = store.create("A", "s")
        second = store.create("B", "s")
        assert first.id != second.id


class TestUpdate:
    def test_can_keep_own_name(self, store):
        updated = store.update("1", "the band", "Electric folk")
        assert updated.name == "the band"
        assert store.get("1").style == "Electric folk"

    def test_rejects_name_of_another_artist(self, store):
        store.create("Other", "Style")
        with pytest.raises(ArtistValidationError):
            store.update("1", " other ", "Folk")
        assert store.get("1").name == "The Band"

    def test_unknown_id(self, store):
        with pytest.raises(ArtistNotFoundError):
            store.update("missing", "x", "y")


class TestDelete:
    def test_requires_confirmation(self, store):
        with pytest.raises(ConfirmationRequiredError):
            store.delete("1")
        assert len(store) == 1

    def test_clears_edit_form_of_deleted_artist(self, store):
        store.begin_edit("1")
        store.delete("1", confirmed=True)
        assert len(store) == 0
        assert store.editing_id is None

    def test_keeps_edit_form_of_other_artist(self, store):
        other = store.create("Other", "Style")
        store.begin_edit(other.id)
        store.delete("1", confirmed=True)
        assert store.editing_id == other.id


class TestImportMerge:
    def test_later_entry_wins_and_counts_as_update(self):
        store = ArtistStore([Artist(id="1", name="A", style="s1")])
        result = store.import_merge([{"name": "A", "style": "s1"}, {"name": "a", "style": "s2"}])
        assert result.added == 0
        assert result.updated == 1
        assert len(store) == 1
        assert store.get("1").name == "A"
        assert store.get("1").style == "s2"

    def test_adds_new_names_with_fresh_ids(self, store):
        result = store.import_merge([{"id": "1", "name": "Fresh", "style": "New wave"}])
        assert result.added == 1
        assert result.updated == 0
        fresh = store.artists[-1]
        assert fresh.name == "Fresh"
        assert fresh.id != "1"

    def test_same_style_is_not_an_update(self, store):
        result = store.import_merge([{"name": "the band", "style": "Folk rock"}])
        assert (result.added, result.updated) == (0, 0)

    def test_drops_invalid_candidates(self, store):
        result = store.import_merge([
            {"name": "", "style": "x"},
            {"name": 3, "style": "x"},
            {"name": "No style"},
            "not an object",
            {"name": "  Valid  ", "style": ""},
        ])
        assert result.added == 1
        assert store.artists[-1].name == "Valid"

    @pytest.mark.parametrize("payload", [{"name": "A", "style": "s"}, "text", None, 42])
    def test_rejects_non_array_without_mutation(self, store, payload):
        before = store.export()
        with pytest.raises(ImportFormatError):
            store.import_merge(payload)
        assert store.export() == before

    def test_keeps_stored_artists_sharing_a_name(self):
        store = ArtistStore([
            Artist(id="1", name="Echo", style="a"),
            Artist(id="2", name="echo", style="b"),
        ])
        result = store.import_merge([{"name": "ECHO", "style": "c"}])
        assert [(a.id, a.style) for a in store.artists] == [("1", "c"), ("2", "b")]
        assert (result.added, result.updated) == (0, 1)

    def test_rejects_array_without_valid_entries(self, store):
        with pytest.raises(ImportFormatError):
            store.import_merge([{"foo": "bar"}])
        assert len(store) == 1


class TestFromDocuments:
    def test_skips_broken_records(self):
        store = ArtistStore.from_documents([
            {"id": 1700000000000, "name": "A", "style": "s"},
            {"name": "", "style": "s"},
            "junk",
        ])
        assert [a.id for a in store.artists] == ["1700000000000"]

    def test_trims_stored_names(self):
        store = ArtistStore.from_documents([{"id": "1", "name": "  The Band ", "style": "s"}])
        assert store.get("1").name == "The Band"
        with pytest.raises(ArtistValidationError):
            store.create("the band", "Rock")
        result = store.import_merge([{"name": "The Band", "style": "new"}])
        assert (result.added, result.updated) == (0, 1)
        assert len(store) == 1
