"""Tests for prompt assembly."""

import pytest

from app.services.history_ledger import HistoryLedger
from app.services.prompt_builder import (
    BANNED_THEMES,
    CreativityLevel,
    build_artist_request,
    build_song_request,
    build_theme_request,
)


class TestCreativityLevel:
    def test_five_distinct_instructions(self):
        instructions = {level.instruction for level in CreativityLevel}
        assert len(instructions) == 5

    def test_values_and_labels(self):
        assert [level.value for level in CreativityLevel] == [0, 25, 50, 75, 100]
        assert [level.label for level in CreativityLevel] == [
            "Identical", "Subtle", "Inspired", "Experimental", "Wildcard",
        ]

    def test_off_scale_value_rejected(self):
        with pytest.raises(ValueError):
            CreativityLevel.from_value(60)

    def test_zero_mandates_strict_adherence(self, artist):
        request = build_song_request(artist, creativity=CreativityLevel.IDENTICAL)
        assert "strictly within the artist's existing style" in request.prompt

    def test_hundred_invites_deconstruction(self, artist):
        request = build_song_request(artist, creativity=CreativityLevel.WILDCARD)
        assert "Deconstruct" in request.prompt
        assert "unpredictable" in request.prompt


class TestSongRequest:
    def test_full_schema(self, artist):
        request = build_song_request(artist)
        assert request.required_fields == ("title", "style", "lyrics")
        assert set(request.response_schema["properties"]) == {"title", "style", "lyrics"}
        assert request.response_schema["required"] == ["title", "style", "lyrics"]
        assert "250" in request.response_schema["properties"]["style"]["description"]

    @pytest.mark.parametrize("part", ["title", "style", "lyrics"])
    def test_single_part_narrows_schema(self, artist, part):
        request = build_song_request(artist, part=part)
        assert request.required_fields == (part,)
        assert list(request.response_schema["properties"]) == [part]

    def test_unknown_part(self, artist):
        with pytest.raises(ValueError):
            build_song_request(artist, part="chorus")

    def test_language_and_artist_name_rule(self, artist):
        request = build_song_request(artist, language="Portuguese")
        assert "must be written in Portuguese" in request.prompt
        assert 'MUST NOT mention the artist\'s name ("The Band")' in request.prompt

    def test_instrumental_redefines_lyrics(self, artist):
        request = build_song_request(artist, instrumental=True, language="Portuguese")
        description = request.response_schema["properties"]["lyrics"]["description"]
        assert "non-singable" in description
        assert "INSTRUMENTAL" in request.prompt
        assert "Portuguese" not in request.prompt

    def test_theme_and_denylist(self, artist):
        request = build_song_request(artist, theme="  a lost city  ")
        assert 'Use the following idea or theme: "a lost city"' in request.prompt
        for banned in BANNED_THEMES:
            assert banned in request.prompt

    def test_no_theme_asks_for_new_story(self, artist):
        request = build_song_request(artist)
        assert "completely new and original" in request.prompt

    def test_formatting_rules(self, artist):
        request = build_song_request(artist)
        assert "blank line between sections" in request.prompt
        assert "[Chorus]" in request.prompt

    def test_history_constraints(self, artist):
        ledger = HistoryLedger()
        ledger.record_title(artist.id, "Old Title")
        ledger.record_theme(artist.id, "Theme: summer rain")
        ledger.record_lyrics(artist.id, "[Verse 1]\nWalking   down the line\n[Chorus]\nSing")
        request = build_song_request(artist, history=ledger, snippet_chars=21)
        assert "- Old Title" in request.prompt
        assert "- summer rain" in request.prompt
        assert "- Walking down the line" in request.prompt

    def test_no_history_section_when_empty(self, artist):
        request = build_song_request(artist, history=HistoryLedger())
        assert "AVOID REPEATING" not in request.prompt

    def test_model_is_passed_through(self, artist):
        assert build_song_request(artist, model="gemini-x").model == "gemini-x"


class TestOtherRequests:
    def test_theme_request_is_free_text(self, artist):
        ledger = HistoryLedger()
        ledger.record_theme(artist.id, "ocean")
        request = build_theme_request(artist, ledger, language="Spanish")
        assert request.response_schema is None
        assert not request.expects_json
        assert "- ocean" in request.prompt
        assert "Spanish" in request.prompt

    def test_artist_request_excludes_existing_names(self):
        request = build_artist_request(["The Band", "Nova"], direction="celtic cyberpunk duo")
        assert "[The Band, Nova]" in request.prompt
        assert "celtic cyberpunk duo" in request.prompt
        assert request.required_fields == ("name", "style")

    def test_artist_request_default_direction(self):
        request = build_artist_request([])
        assert "disparate and unconventional genres" in request.prompt
