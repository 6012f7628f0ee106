"""Tests for the generation history ledger."""

import pytest

from app.core.exceptions import ImportFormatError
from app.services.history_ledger import HistoryLedger, lyric_snippet


@pytest.fixture
def ledger():
    return HistoryLedger({
        "1": {"titles": ["First"], "themes": ["Theme: rain"], "lyrics": ["[Verse 1]\nHello   there\n(Chorus)\nBye"]},
        "2": {"titles": ["Other"], "themes": [], "lyrics": []},
    })


class TestAppends:
    def test_creates_entry_when_absent(self):
        ledger = HistoryLedger()
        ledger.record_title("9", "New")
        assert ledger.entry("9") == {"titles": ["New"], "themes": [], "lyrics": []}

    def test_appends_at_the_end_in_order(self, ledger):
        ledger.record_title("1", "Second")
        ledger.record_lyrics("1", "More words")
        ledger.record_theme("1", "snow")
        entry = ledger.entry("1")
        assert entry["titles"] == ["First", "Second"]
        assert entry["lyrics"][-1] == "More words"
        assert entry["themes"] == ["Theme: rain", "snow"]

    def test_entry_is_a_copy(self, ledger):
        ledger.entry("1")["titles"].append("sneaky")
        assert ledger.entry("1")["titles"] == ["First"]


class TestForget:
    def test_removes_only_that_artist(self, ledger):
        assert ledger.forget("1") is True
        assert "1" not in ledger
        assert ledger.entry("2")["titles"] == ["Other"]

    def test_missing_artist(self, ledger):
        assert ledger.forget("nope") is False
        assert len(ledger) == 2


class TestImportMerge:
    def test_overwrites_matching_keys_and_keeps_others(self, ledger):
        count = ledger.import_merge({"1": {"titles": ["Imported"], "themes": [], "lyrics": []}, "3": {"titles": ["Third"]}})
        assert count == 2
        assert ledger.entry("1")["titles"] == ["Imported"]
        assert ledger.entry("2")["titles"] == ["Other"]
        assert ledger.entry("3") == {"titles": ["Third"], "themes": [], "lyrics": []}

    @pytest.mark.parametrize("payload", [None, [], ["a"], "text", 5])
    def test_rejects_wrong_top_level_shape(self, ledger, payload):
        before = ledger.export_all()
        with pytest.raises(ImportFormatError):
            ledger.import_merge(payload)
        assert ledger.export_all() == before

    def test_rejects_bad_entry_before_any_change(self, ledger):
        before = ledger.export_all()
        with pytest.raises(ImportFormatError):
            ledger.import_merge({"1": {"titles": ["ok"]}, "2": {"titles": "not a list"}})
        assert ledger.export_all() == before

    def test_export_round_trip_is_detached(self, ledger):
        exported = ledger.export_all()
        exported["1"]["titles"].clear()
        assert ledger.entry("1")["titles"] == ["First"]


class TestPromptHelpers:
    def test_lyric_snippet_strips_tags_and_whitespace(self):
        assert lyric_snippet("[Verse 1]\nHello   there\n(Chorus)\nBye", 100) == "Hello there Bye"

    def test_lyric_snippet_truncates(self):
        assert lyric_snippet("abcdefghij", 4) == "abcd"

    def test_prior_lyric_snippets(self, ledger):
        assert ledger.prior_lyric_snippets("1", chars=5) == ["Hello"]

    def test_prior_themes_strip_prefix(self, ledger):
        assert ledger.prior_themes("1") == ["rain"]
        assert ledger.prior_themes("1", strip_prefix=False) == ["Theme: rain"]

    def test_prior_titles_limit_keeps_most_recent(self):
        ledger = HistoryLedger()
        for title in ["a", "b", "c"]:
            ledger.record_title("1", title)
        assert ledger.prior_titles("1", limit=2) == ["b", "c"]

    def test_unknown_artist_has_no_history(self, ledger):
        assert ledger.prior_titles("x") == []
        assert ledger.prior_lyric_snippets("x") == []
