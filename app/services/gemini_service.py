"""Gemini AI service: the only place songs, themes and artist ideas leave the process."""

import json
import logging
import re
from collections import OrderedDict
from typing import Any, Optional

import google.generativeai as genai
from google.generativeai import client as genai_client
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from app.config import get_settings
from app.core.exceptions import (
    CredentialMissingError,
    CredentialRejectedError,
    GenerationParseError,
    GenerationServiceError,
)
from app.schemas.artist import Artist, ArtistDraft
from app.schemas.song import SongConcept
from app.services.history_ledger import HistoryLedger
from app.services.prompt_builder import (
    STYLE_MAX_CHARS,
    GenerationRequest,
    build_artist_request,
    build_theme_request,
)

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)
_INVALID_KEY_MARKERS = ("api key not valid", "api_key_invalid", "invalid api key")
MAX_CACHED_CLIENTS = 64


def decode_json_fields(text: str, required_fields: tuple[str, ...]) -> dict[str, str]:
    """
    Strictly decode a JSON object holding the required string fields.

    Raises:
        GenerationParseError: on invalid JSON, a non-object, or any missing,
            non-string or blank required field
    """
    raw = text.strip()
    match = _FENCE.search(raw)
    if match:
        raw = match.group(1)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise GenerationParseError(f"Response is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise GenerationParseError("Response is not a JSON object")

    decoded = {}
    for name in required_fields:
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            raise GenerationParseError(f"Response field '{name}' is missing or not a string")
        decoded[name] = value.strip()
    return decoded


class GeminiService:
    """Service for interacting with Google's Gemini AI."""

    def __init__(self):
        self._clients: OrderedDict[str, Any] = OrderedDict()

    @staticmethod
    def resolve_api_key(api_key: Optional[str]) -> Optional[str]:
        """The user's own key wins; the server-wide key is the fallback."""
        key = (api_key or "").strip()
        if key:
            return key
        return get_settings().google_api_key or None

    def _client_for(self, key: str) -> Any:
        """
        The async SDK client bound to one API key.

        genai.configure() is process-global, so a key's client is built right
        after configuring it, with no await in between, and then reused.
        """
        client = self._clients.get(key)
        if client is None:
            genai.configure(api_key=key)
            client = genai_client.get_default_generative_async_client()
            self._clients[key] = client
            if len(self._clients) > MAX_CACHED_CLIENTS:
                self._clients.popitem(last=False)
        else:
            self._clients.move_to_end(key)
        return client

    def _model(self, request: GenerationRequest, key: str) -> genai.GenerativeModel:
        model = genai.GenerativeModel(request.model)
        # Otherwise the model picks up whichever key was configured last
        model._async_client = self._client_for(key)
        return model

    @staticmethod
    def _generation_config(request: GenerationRequest) -> Optional[genai.GenerationConfig]:
        if not request.expects_json:
            return None
        return genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=request.response_schema,
        )

    async def _call(self, request: GenerationRequest, api_key: Optional[str]) -> str:
        key = self.resolve_api_key(api_key)
        if not key:
            raise CredentialMissingError()

        try:
            model = self._model(request, key)
            response = await model.generate_content_async(
                request.prompt,
                generation_config=self._generation_config(request),
            )
        except (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated) as e:
            logger.warning(f"Gemini rejected the API key: {e.__class__.__name__}")
            raise CredentialRejectedError() from e
        except google_exceptions.InvalidArgument as e:
            if any(marker in str(e).lower() for marker in _INVALID_KEY_MARKERS):
                logger.warning("Gemini rejected the API key: invalid key")
                raise CredentialRejectedError() from e
            logger.error(f"Gemini call failed: {e}")
            raise GenerationServiceError(f"Generation failed: {e.message}") from e
        except Exception as e:
            logger.error(f"Gemini call failed: {e}")
            raise GenerationServiceError(f"Generation failed: {e}") from e

        try:
            text = response.text
        except ValueError as e:
            # Blocked or empty candidates
            raise GenerationParseError("Empty response from Gemini") from e
        if not text or not text.strip():
            raise GenerationParseError("Empty response from Gemini")
        return text

    async def generate(self, request: GenerationRequest, api_key: Optional[str]) -> dict[str, str]:
        """Run a schema request and return its strictly decoded fields."""
        text = await self._call(request, api_key)
        return decode_json_fields(text, request.required_fields)

    async def generate_song(self, request: GenerationRequest, api_key: Optional[str]) -> SongConcept:
        fields = await self.generate(request, api_key)
        try:
            song = SongConcept(**fields)
        except ValidationError as e:
            raise GenerationParseError(f"Response does not match the song shape: {e.errors()[0]['msg']}") from e
        logger.info(f"Generated song concept '{song.title}'")
        return song

    async def generate_part(self, request: GenerationRequest, api_key: Optional[str]) -> dict[str, str]:
        fields = await self.generate(request, api_key)
        if len(fields.get("style", "")) > STYLE_MAX_CHARS:
            raise GenerationParseError(f"Style is longer than {STYLE_MAX_CHARS} characters")
        return fields

    async def generate_text(self, request: GenerationRequest, api_key: Optional[str]) -> str:
        text = await self._call(request, api_key)
        return text.strip()

    async def suggest_theme(
        self,
        artist: Artist,
        history: Optional[HistoryLedger],
        api_key: Optional[str],
        language: str = "English",
    ) -> str:
        settings = get_settings()
        request = build_theme_request(
            artist,
            history,
            language=language,
            model=settings.gemini_model,
            history_limit=settings.history_prompt_limit,
        )
        return await self.generate_text(request, api_key)

    async def generate_artist(
        self,
        existing_names: list[str],
        direction: Optional[str],
        api_key: Optional[str],
    ) -> ArtistDraft:
        request = build_artist_request(existing_names, direction, model=get_settings().gemini_model)
        fields = await self.generate(request, api_key)
        return ArtistDraft(name=fields["name"], style=fields["style"])


# Singleton instance
gemini_service = GeminiService()

