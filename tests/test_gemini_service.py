"""Tests for the Gemini gateway with the SDK replaced."""

import asyncio
import json

import pytest
from google.api_core import exceptions as google_exceptions

from app.core.exceptions import (
    CredentialMissingError,
    CredentialRejectedError,
    GenerationParseError,
    GenerationServiceError,
)
from app.services import gemini_service as gemini_module
from app.services.gemini_service import GeminiService, decode_json_fields
from app.services.prompt_builder import build_song_request


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel; records calls on the class."""

    calls: list = []
    result = None
    gates: dict = {}

    def __init__(self, model_name):
        self.model_name = model_name
        self._async_client = None

    async def generate_content_async(self, prompt, generation_config=None):
        FakeModel.calls.append((self.model_name, prompt, generation_config))
        gate = FakeModel.gates.get(self._async_client)
        if gate is not None:
            await gate.wait()
        if isinstance(FakeModel.result, Exception):
            raise FakeModel.result
        return FakeResponse(FakeModel.result)


@pytest.fixture
def sdk(monkeypatch):
    configured = []
    FakeModel.calls = []
    FakeModel.result = None
    FakeModel.gates = {}
    monkeypatch.setattr(gemini_module.genai, "configure", lambda api_key: configured.append(api_key))
    # Each configure() yields a fresh client named after the key it was built for
    monkeypatch.setattr(
        gemini_module.genai_client,
        "get_default_generative_async_client",
        lambda: f"client-for-{configured[-1]}",
    )
    monkeypatch.setattr(gemini_module.genai, "GenerativeModel", FakeModel)
    return configured


@pytest.fixture
def service():
    return GeminiService()


class TestDecode:
    def test_strips_code_fence(self):
        text = '```json\n{"title": " T ", "extra": 1}\n```'
        assert decode_json_fields(text, ("title",)) == {"title": "T"}

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"title": 5}', '{"title": "  "}', "{}"])
    def test_rejects_bad_shapes(self, text):
        with pytest.raises(GenerationParseError):
            decode_json_fields(text, ("title",))


class TestGenerate:
    async def test_missing_key_fails_without_network(self, service, sdk, artist):
        with pytest.raises(CredentialMissingError):
            await service.generate_song(build_song_request(artist), api_key="")
        assert FakeModel.calls == []
        assert sdk == []

    async def test_returns_song(self, service, sdk, artist):
        FakeModel.result = json.dumps({"title": "Dust", "style": "Desert blues", "lyrics": "[Verse 1]\nSand"})
        song = await service.generate_song(build_song_request(artist, model="gemini-test"), api_key="k")
        assert song.title == "Dust"
        assert sdk == ["k"]
        model_name, prompt, config = FakeModel.calls[0]
        assert model_name == "gemini-test"
        assert "The Band" in prompt
        assert config is not None

    async def test_style_over_limit_is_parse_error(self, service, sdk, artist):
        FakeModel.result = json.dumps({"title": "T", "style": "x" * 251, "lyrics": "L"})
        with pytest.raises(GenerationParseError):
            await service.generate_song(build_song_request(artist), api_key="k")

    async def test_missing_field_is_parse_error(self, service, sdk, artist):
        FakeModel.result = json.dumps({"title": "T", "style": "S"})
        with pytest.raises(GenerationParseError):
            await service.generate_song(build_song_request(artist), api_key="k")

    async def test_permission_denied_is_rejected_credential(self, service, sdk, artist):
        FakeModel.result = google_exceptions.PermissionDenied("nope")
        with pytest.raises(CredentialRejectedError):
            await service.generate_song(build_song_request(artist), api_key="bad")

    async def test_invalid_key_argument_is_rejected_credential(self, service, sdk, artist):
        FakeModel.result = google_exceptions.InvalidArgument("API key not valid. Please pass a valid API key.")
        with pytest.raises(CredentialRejectedError):
            await service.generate_song(build_song_request(artist), api_key="bad")

    async def test_other_failures_are_service_errors(self, service, sdk, artist):
        FakeModel.result = google_exceptions.ServiceUnavailable("overloaded")
        with pytest.raises(GenerationServiceError) as exc:
            await service.generate_song(build_song_request(artist), api_key="k")
        assert len(FakeModel.calls) == 1
        assert isinstance(exc.value.__cause__, google_exceptions.ServiceUnavailable)

    async def test_empty_text_is_parse_error(self, service, sdk, artist):
        FakeModel.result = "   "
        with pytest.raises(GenerationParseError):
            await service.generate_song(build_song_request(artist), api_key="k")

    async def test_part_returns_single_field(self, service, sdk, artist):
        FakeModel.result = json.dumps({"title": "New Title"})
        fields = await service.generate_part(build_song_request(artist, part="title"), api_key="k")
        assert fields == {"title": "New Title"}


class TestFreeText:
    async def test_suggest_theme_is_verbatim_text(self, service, sdk, artist):
        FakeModel.result = "  A lighthouse keeper who forgets the sea.  "
        theme = await service.suggest_theme(artist, None, api_key="k")
        assert theme == "A lighthouse keeper who forgets the sea."
        assert FakeModel.calls[0][2] is None

    async def test_generate_artist(self, service, sdk):
        FakeModel.result = json.dumps({"name": "Glass Orchard", "style": "Baroque pop meets drill"})
        draft = await service.generate_artist(["The Band"], None, api_key="k")
        assert draft.name == "Glass Orchard"
        assert "[The Band]" in FakeModel.calls[0][1]

    async def test_server_key_is_fallback(self, service, sdk, monkeypatch):
        monkeypatch.setattr(gemini_module.get_settings(), "google_api_key", "server-key")
        assert service.resolve_api_key("") == "server-key"
        assert service.resolve_api_key(" mine ") == "mine"


class TestPerKeyClients:
    async def test_each_key_gets_its_own_client_once(self, service, sdk, artist):
        FakeModel.result = "A theme"
        await service.suggest_theme(artist, None, api_key="alice")
        await service.suggest_theme(artist, None, api_key="bob")
        await service.suggest_theme(artist, None, api_key="alice")
        assert sdk == ["alice", "bob"]

    async def test_slow_call_does_not_block_other_users(self, service, sdk, artist):
        FakeModel.result = "A theme"
        gate = asyncio.Event()
        FakeModel.gates["client-for-alice"] = gate

        slow = asyncio.create_task(service.suggest_theme(artist, None, api_key="alice"))
        await asyncio.sleep(0)
        assert not slow.done()

        assert await service.suggest_theme(artist, None, api_key="bob") == "A theme"
        assert not slow.done()

        gate.set()
        assert await slow == "A theme"
