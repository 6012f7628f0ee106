"""Per-artist generation history used to keep new songs from repeating old ones."""

import copy
import logging
import re
from typing import Any, Optional

from app.core.exceptions import ImportFormatError

logger = logging.getLogger(__name__)

HISTORY_FIELDS = ("titles", "themes", "lyrics")

# Prefix the theme suggester used to put in front of every theme
THEME_PREFIX = "Theme: "

_SECTION_TAG = re.compile(r"\[[^\]]*\]|\([^)]*\)")
_WHITESPACE = re.compile(r"\s+")


def lyric_snippet(lyrics: str, chars: int) -> str:
    """Strip [..] and (..) tags, collapse whitespace and keep the first `chars` characters."""
    text = _SECTION_TAG.sub(" ", lyrics)
    text = _WHITESPACE.sub(" ", text).strip()
    return text[:chars].rstrip()


def _empty_entry() -> dict[str, list[str]]:
    return {field: [] for field in HISTORY_FIELDS}


class HistoryLedger:
    """
    Map of artist id -> {titles, themes, lyrics}.

    Lists only grow during normal use. Entries go away wholesale when their
    artist is deleted or get replaced wholesale by an import.
    """

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self._entries: dict[str, dict[str, list[str]]] = {}
        for key, value in (data or {}).items():
            if isinstance(value, dict):
                self._entries[str(key)] = {
                    field: [str(item) for item in value.get(field) or [] if isinstance(item, str)]
                    for field in HISTORY_FIELDS
                }

    def __contains__(self, artist_id: object) -> bool:
        return str(artist_id) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def _entry_for(self, artist_id: str) -> dict[str, list[str]]:
        return self._entries.setdefault(str(artist_id), _empty_entry())

    def entry(self, artist_id: str) -> dict[str, list[str]]:
        """Copy of one artist's history (three empty lists when none)."""
        return copy.deepcopy(self._entries.get(str(artist_id), _empty_entry()))

    # ============= Appends =============

    def record_theme(self, artist_id: str, theme: str) -> None:
        self._entry_for(artist_id)["themes"].append(theme)

    def record_title(self, artist_id: str, title: str) -> None:
        self._entry_for(artist_id)["titles"].append(title)

    def record_lyrics(self, artist_id: str, lyrics: str) -> None:
        self._entry_for(artist_id)["lyrics"].append(lyrics)

    def forget(self, artist_id: str) -> bool:
        """Drop the whole entry for an artist. Returns whether one existed."""
        return self._entries.pop(str(artist_id), None) is not None

    # ============= Import / export =============

    def export_all(self) -> dict[str, dict[str, list[str]]]:
        return copy.deepcopy(self._entries)

    @staticmethod
    def _validated(data: Any) -> dict[str, dict[str, list[str]]]:
        if data is None or isinstance(data, list) or not isinstance(data, dict):
            raise ImportFormatError("Invalid history file: must be a JSON object keyed by artist id.")

        cleaned = {}
        for key, value in data.items():
            if not isinstance(value, dict):
                raise ImportFormatError(f"Invalid history entry for artist {key}: must be an object.")
            entry = _empty_entry()
            for field in HISTORY_FIELDS:
                items = value.get(field, [])
                if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
                    raise ImportFormatError(
                        f"Invalid history entry for artist {key}: '{field}' must be a list of strings."
                    )
                entry[field] = list(items)
            cleaned[str(key)] = entry
        return cleaned

    def import_merge(self, data: Any) -> int:
        """
        Overwrite entries per artist key with the imported ones.

        Keys not present in the import are untouched; lists are replaced, not
        unioned. The whole payload is validated before anything changes.
        """
        cleaned = self._validated(data)
        self._entries.update(cleaned)
        logger.info(f"History import merged {len(cleaned)} artist entries")
        return len(cleaned)

    # ============= Prompt helpers =============

    def prior_titles(self, artist_id: str, limit: Optional[int] = None) -> list[str]:
        titles = self._entries.get(str(artist_id), {}).get("titles", [])
        return list(titles[-limit:] if limit else titles)

    def prior_themes(
        self,
        artist_id: str,
        limit: Optional[int] = None,
        strip_prefix: bool = True,
    ) -> list[str]:
        themes = self._entries.get(str(artist_id), {}).get("themes", [])
        if limit:
            themes = themes[-limit:]
        if strip_prefix:
            themes = [t[len(THEME_PREFIX):] if t.startswith(THEME_PREFIX) else t for t in themes]
        return [t.strip() for t in themes if t.strip()]

    def prior_lyric_snippets(
        self,
        artist_id: str,
        limit: Optional[int] = None,
        chars: int = 150,
    ) -> list[str]:
        lyrics = self._entries.get(str(artist_id), {}).get("lyrics", [])
        if limit:
            lyrics = lyrics[-limit:]
        snippets = (lyric_snippet(body, chars) for body in lyrics)
        return [s for s in snippets if s]
