"""
Studio controller: the single owner of a signed-in user's roster, history and
credential.

Routers never touch the stores directly. Each mutation goes through a named
operation here, which also writes the changed fields back to the profile
store.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from app.config import Settings, get_settings
from app.core.exceptions import PersistenceError, SessionNotReadyError
from app.database import AsyncSessionLocal
from app.schemas.artist import Artist, ArtistDraft, ArtistImportResult
from app.schemas.song import SongConcept
from app.services.artist_store import ArtistStore
from app.services.gemini_service import GeminiService, gemini_service
from app.services.history_ledger import HistoryLedger
from app.services.persistence import (
    DatabaseProfileStore,
    FileProfileStore,
    InMemoryProfileStore,
    ProfileStore,
    empty_document,
)
from app.services.prompt_builder import CreativityLevel, build_song_request

logger = logging.getLogger(__name__)

SONG_SLOT = "song"
THEME_SLOT = "theme"
ARTIST_IDEA_SLOT = "artist-idea"


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    LOADING_PROFILE = "loading-profile"
    READY = "ready"


@dataclass
class GenerationOutcome:
    """
    What came back from one generation call.

    applied is False when a newer call for the same slot was started in the
    meantime; the result was then discarded and nothing was recorded.
    """

    applied: bool
    token: int
    song: Optional[SongConcept] = None
    value: Optional[str] = None
    draft: Optional[ArtistDraft] = None


class SlotTracker:
    """Per-slot monotonic tokens: the last request started wins."""

    def __init__(self):
        self._latest: dict[str, int] = {}
        self._pending: dict[str, set[int]] = {}

    def issue(self, slot: str) -> int:
        token = self._latest.get(slot, 0) + 1
        self._latest[slot] = token
        self._pending.setdefault(slot, set()).add(token)
        return token

    def finish(self, slot: str, token: int) -> bool:
        """Mark a request done; True if it is still the latest for its slot."""
        self._pending.get(slot, set()).discard(token)
        return self._latest.get(slot) == token

    def latest(self, slot: str) -> int:
        return self._latest.get(slot, 0)

    def in_flight(self, slot: str) -> bool:
        return bool(self._pending.get(slot))

    def busy_slots(self) -> list[str]:
        return sorted(slot for slot, tokens in self._pending.items() if tokens)


class Studio:
    """Application state for one user session."""

    def __init__(
        self,
        store: ProfileStore,
        gemini: Optional[GeminiService] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.gemini = gemini or gemini_service
        self.settings = settings or get_settings()

        self.state = SessionState.AUTHENTICATING
        self.artists = ArtistStore()
        self.history = HistoryLedger()
        self.api_key = ""
        self.display_name = ""
        self.email = ""

        self.current_song: Optional[SongConcept] = None
        self.current_theme = ""
        self.slots = SlotTracker()

    # ============= Session =============

    async def start(self) -> "Studio":
        """Load the profile document; the session is usable once this returns."""
        self.state = SessionState.LOADING_PROFILE
        document = await self.store.load()
        self.artists = ArtistStore.from_documents(document.get("artists") or [])
        self.history = HistoryLedger(document.get("generation_history") or {})
        self.api_key = document.get("api_key") or ""
        self.display_name = document.get("display_name") or ""
        self.email = document.get("email") or ""
        self.state = SessionState.READY
        logger.info(f"Studio ready for {self.display_name or 'local user'}: {len(self.artists)} artists")
        return self

    def end(self) -> None:
        self.state = SessionState.UNAUTHENTICATED

    def _require_ready(self) -> None:
        if self.state != SessionState.READY:
            raise SessionNotReadyError()

    async def _persist(self, **fields: Any) -> None:
        try:
            await self.store.save(**fields)
        except PersistenceError as e:
            # Local state is kept; the next successful write catches the store up
            logger.error(f"Persisting {sorted(fields)} failed ({e.error_code}): {e.message}")
            raise

    async def _persist_artists(self) -> None:
        await self._persist(artists=self.artists.export())

    async def _persist_history(self) -> None:
        await self._persist(generation_history=self.history.export_all())

    def in_flight(self) -> list[str]:
        return self.slots.busy_slots()

    # ============= Artists =============

    async def create_artist(self, name: str, style: str) -> Artist:
        self._require_ready()
        artist = self.artists.create(name, style)
        await self._persist_artists()
        return artist

    async def update_artist(self, artist_id: str, name: str, style: str) -> Artist:
        self._require_ready()
        artist = self.artists.update(artist_id, name, style)
        await self._persist_artists()
        return artist

    async def delete_artist(self, artist_id: str, confirmed: bool = False) -> Artist:
        """Remove an artist together with its history entry, in one write."""
        self._require_ready()
        artist = self.artists.delete(artist_id, confirmed=confirmed)
        self.history.forget(artist.id)
        await self._persist(
            artists=self.artists.export(),
            generation_history=self.history.export_all(),
        )
        return artist

    def begin_edit(self, artist_id: str) -> Artist:
        self._require_ready()
        return self.artists.begin_edit(artist_id)

    def cancel_edit(self) -> None:
        self.artists.cancel_edit()

    async def import_artists(self, records: Any) -> ArtistImportResult:
        self._require_ready()
        result = self.artists.import_merge(records)
        await self._persist_artists()
        return result

    def export_artists(self) -> list[dict[str, Any]]:
        return self.artists.export()

    async def generate_artist_idea(self, direction: Optional[str] = None) -> GenerationOutcome:
        """Suggest a new fictional artist. Nothing is added until the user saves the form."""
        self._require_ready()
        self.artists.cancel_edit()
        token = self.slots.issue(ARTIST_IDEA_SLOT)
        try:
            draft = await self.gemini.generate_artist(
                self.artists.names(), direction, self.api_key
            )
        finally:
            applied = self.slots.finish(ARTIST_IDEA_SLOT, token)
        return GenerationOutcome(applied=applied, token=token, draft=draft)

    # ============= History =============

    async def import_history(self, data: Any) -> int:
        self._require_ready()
        count = self.history.import_merge(data)
        await self._persist_history()
        return count

    def export_history(self) -> dict[str, Any]:
        return self.history.export_all()

    # ============= Credential =============

    async def set_api_key(self, api_key: str) -> None:
        self._require_ready()
        self.api_key = api_key.strip()
        await self._persist(api_key=self.api_key)

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini.resolve_api_key(self.api_key))

    # ============= Generation =============

    def _song_request(
        self,
        artist: Artist,
        theme: Optional[str],
        creativity: int,
        instrumental: bool,
        language: str,
        part: Optional[str] = None,
    ):
        return build_song_request(
            artist,
            theme=theme,
            creativity=CreativityLevel.from_value(creativity),
            instrumental=instrumental,
            language=language,
            history=self.history,
            model=self.settings.gemini_model,
            part=part,
            history_limit=self.settings.history_prompt_limit,
            snippet_chars=self.settings.lyrics_snippet_chars,
        )

    def _still_listed(self, artist_id: str) -> bool:
        """False when the artist was deleted while its generation was in flight."""
        if artist_id in self.artists:
            return True
        logger.info(f"Artist {artist_id} was deleted mid-generation; history not recorded")
        return False

    def _record_song(self, artist_id: str, song: SongConcept, theme: Optional[str]) -> None:
        theme = (theme or "").strip()
        if theme and theme not in self.history.entry(artist_id)["themes"]:
            self.history.record_theme(artist_id, theme)
        self.history.record_title(artist_id, song.title)
        self.history.record_lyrics(artist_id, song.lyrics)

    async def generate_song(
        self,
        artist_id: str,
        theme: Optional[str] = None,
        creativity: int = CreativityLevel.INSPIRED,
        instrumental: bool = False,
        language: str = "English",
    ) -> GenerationOutcome:
        """
        Generate a full song concept for an artist.

        Only the most recently started call for the song slot may replace the
        current song and append to history; earlier ones that finish later
        are dropped.
        """
        self._require_ready()
        artist = self.artists.get(artist_id)
        request = self._song_request(artist, theme, creativity, instrumental, language)

        token = self.slots.issue(SONG_SLOT)
        try:
            song = await self.gemini.generate_song(request, self.api_key)
        finally:
            applied = self.slots.finish(SONG_SLOT, token)

        if not applied:
            logger.info(f"Discarding stale song result (token {token})")
            return GenerationOutcome(applied=False, token=token, song=song)

        self.current_song = song
        if self._still_listed(artist.id):
            self._record_song(artist.id, song, theme)
            await self._persist_history()
        return GenerationOutcome(applied=True, token=token, song=song)

    async def regenerate_part(
        self,
        artist_id: str,
        part: str,
        theme: Optional[str] = None,
        creativity: int = CreativityLevel.INSPIRED,
        instrumental: bool = False,
        language: str = "English",
    ) -> GenerationOutcome:
        """Regenerate one field of the current song, keeping the other two."""
        self._require_ready()
        artist = self.artists.get(artist_id)
        request = self._song_request(artist, theme, creativity, instrumental, language, part=part)

        slot = f"{SONG_SLOT}:{part}"
        token = self.slots.issue(slot)
        try:
            fields = await self.gemini.generate_part(request, self.api_key)
        finally:
            applied = self.slots.finish(slot, token)

        value = fields[part]
        if not applied:
            return GenerationOutcome(applied=False, token=token, value=value)

        if self.current_song is not None:
            self.current_song = self.current_song.model_copy(update={part: value})

        if part != "style" and self._still_listed(artist.id):
            if part == "title":
                self.history.record_title(artist.id, value)
            else:
                self.history.record_lyrics(artist.id, value)
            await self._persist_history()
        return GenerationOutcome(applied=True, token=token, song=self.current_song, value=value)

    async def suggest_theme(self, artist_id: str, language: str = "English") -> GenerationOutcome:
        """Ask for a fresh theme; it becomes the theme field and goes into history."""
        self._require_ready()
        artist = self.artists.get(artist_id)

        token = self.slots.issue(THEME_SLOT)
        try:
            theme = await self.gemini.suggest_theme(artist, self.history, self.api_key, language)
        finally:
            applied = self.slots.finish(THEME_SLOT, token)

        if not applied:
            return GenerationOutcome(applied=False, token=token, value=theme)

        self.current_theme = theme
        if self._still_listed(artist.id):
            self.history.record_theme(artist.id, theme)
            await self._persist_history()
        return GenerationOutcome(applied=True, token=token, value=theme)


def build_profile_store(
    user_id: Optional[int],
    display_name: str = "",
    email: str = "",
    settings: Optional[Settings] = None,
) -> ProfileStore:
    settings = settings or get_settings()
    if settings.storage_backend == "file":
        directory = Path(settings.local_storage_dir)
        if user_id is not None:
            directory = directory / str(user_id)
        return FileProfileStore(directory)
    if settings.storage_backend == "memory" or user_id is None:
        return InMemoryProfileStore(empty_document(display_name, email))
    return DatabaseProfileStore(AsyncSessionLocal, user_id)


class StudioRegistry:
    """One Studio per signed-in user, started on the first request of a session."""

    def __init__(self):
        self._studios: dict[int, Studio] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    async def get_or_start(
        self,
        user_id: int,
        display_name: str = "",
        email: str = "",
        store: Optional[ProfileStore] = None,
    ) -> Studio:
        studio = self._studios.get(user_id)
        if studio is not None and studio.state == SessionState.READY:
            return studio

        lock = self._locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            studio = self._studios.get(user_id)
            if studio is None or studio.state != SessionState.READY:
                studio = Studio(store or build_profile_store(user_id, display_name, email))
                await studio.start()
                self._studios[user_id] = studio
        return studio

    def end(self, user_id: int) -> bool:
        studio = self._studios.pop(user_id, None)
        self._locks.pop(user_id, None)
        if studio is None:
            return False
        studio.end()
        return True

    def clear(self) -> None:
        for studio in self._studios.values():
            studio.end()
        self._studios.clear()
        self._locks.clear()


studio_registry = StudioRegistry()
