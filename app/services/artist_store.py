"""Artist roster with case-insensitive name uniqueness and import merging."""

import logging
import random
import time
from typing import Any, Optional

from app.core.exceptions import (
    ArtistNotFoundError,
    ArtistValidationError,
    ConfirmationRequiredError,
    ImportFormatError,
)
from app.schemas.artist import Artist, ArtistImportResult

logger = logging.getLogger(__name__)


def new_artist_id(jitter: bool = False) -> str:
    """Timestamp id in milliseconds; imports add a random fraction since many are created at once."""
    millis = time.time_ns() // 1_000_000
    if jitter:
        return f"{millis}.{random.randint(0, 999_999):06d}"
    return str(millis)


def _name_key(name: str) -> str:
    return name.strip().lower()


class ArtistStore:
    """
    Ordered artist roster plus the state of the create/edit form.

    Every mutation goes through a named operation so duplicate-name checks
    live in one place.
    """

    def __init__(self, artists: Optional[list[Artist]] = None):
        self._artists: list[Artist] = list(artists or [])
        self.editing_id: Optional[str] = None
        self.form_error: Optional[str] = None

    @classmethod
    def from_documents(cls, documents: list[dict[str, Any]]) -> "ArtistStore":
        """Load a persisted roster, skipping entries that no longer validate."""
        artists = []
        for doc in documents or []:
            if not isinstance(doc, dict):
                continue
            name, style = doc.get("name"), doc.get("style")
            if not isinstance(name, str) or not isinstance(style, str) or not name.strip():
                continue
            artist_id = doc.get("id")
            artists.append(Artist(
                id=str(artist_id) if artist_id is not None else new_artist_id(jitter=True),
                name=name.strip(),
                style=style,
            ))
        return cls(artists)

    @property
    def artists(self) -> list[Artist]:
        return list(self._artists)

    def __len__(self) -> int:
        return len(self._artists)

    def __contains__(self, artist_id: object) -> bool:
        return any(a.id == artist_id for a in self._artists)

    def get(self, artist_id: str) -> Artist:
        for artist in self._artists:
            if artist.id == str(artist_id):
                return artist
        raise ArtistNotFoundError(str(artist_id))

    def names(self) -> list[str]:
        return [a.name for a in self._artists]

    # ============= Form =============

    def begin_edit(self, artist_id: str) -> Artist:
        artist = self.get(artist_id)
        self.editing_id = artist.id
        self.form_error = None
        return artist

    def cancel_edit(self) -> None:
        self.editing_id = None
        self.form_error = None

    def _validate(self, name: str, style: str, exclude_id: Optional[str] = None) -> tuple[str, str]:
        trimmed_name = (name or "").strip()
        trimmed_style = (style or "").strip()

        if not trimmed_name:
            raise ArtistValidationError("Artist name is required.", field="name")
        if not trimmed_style:
            raise ArtistValidationError("Artist style is required.", field="style")

        key = trimmed_name.lower()
        for artist in self._artists:
            if artist.id != exclude_id and _name_key(artist.name) == key:
                raise ArtistValidationError(
                    f'An artist with the name "{trimmed_name}" already exists.',
                    field="name",
                )
        return trimmed_name, trimmed_style

    def _checked(self, name: str, style: str, exclude_id: Optional[str] = None) -> tuple[str, str]:
        try:
            result = self._validate(name, style, exclude_id)
        except ArtistValidationError as e:
            self.form_error = e.message
            raise
        self.form_error = None
        return result

    # ============= CRUD =============

    def create(self, name: str, style: str) -> Artist:
        trimmed_name, trimmed_style = self._checked(name, style)
        artist = Artist(id=new_artist_id(), name=trimmed_name, style=trimmed_style)
        # Ids are millisecond timestamps; bump on collision with a record made in the same tick
        existing_ids = {a.id for a in self._artists}
        while artist.id in existing_ids:
            artist.id = new_artist_id(jitter=True)
        self._artists.append(artist)
        self.cancel_edit()
        return artist

    def update(self, artist_id: str, name: str, style: str) -> Artist:
        current = self.get(artist_id)
        trimmed_name, trimmed_style = self._checked(name, style, exclude_id=current.id)
        updated = current.model_copy(update={"name": trimmed_name, "style": trimmed_style})
        self._artists = [updated if a.id == current.id else a for a in self._artists]
        self.cancel_edit()
        return updated

    def delete(self, artist_id: str, confirmed: bool = False) -> Artist:
        """Remove an artist. The caller is responsible for dropping its history entry."""
        if not confirmed:
            raise ConfirmationRequiredError("Are you sure you want to delete this artist?")
        artist = self.get(artist_id)
        self._artists = [a for a in self._artists if a.id != artist.id]
        if self.editing_id == artist.id:
            self.cancel_edit()
        return artist

    # ============= Import / export =============

    def export(self) -> list[dict[str, Any]]:
        return [a.model_dump() for a in self._artists]

    def import_merge(self, records: Any) -> ArtistImportResult:
        """
        Merge externally supplied artists into the roster.

        Matching is by trimmed, lowercased name. A match with a different
        style is updated in place; anything else is appended with a fresh id.
        Candidates without a non-empty string name and a string style are
        dropped. Later candidates win over earlier ones with the same name.

        Raises:
            ImportFormatError: if records is not a list or holds no valid
                candidate. The roster is left untouched.
        """
        if not isinstance(records, list):
            raise ImportFormatError("Invalid file format: must be a JSON array.")

        candidates = [
            {"name": r["name"].strip(), "style": r["style"]}
            for r in records
            if isinstance(r, dict)
            and isinstance(r.get("name"), str)
            and r["name"].strip()
            and isinstance(r.get("style"), str)
        ]
        if not candidates:
            raise ImportFormatError("No valid artist data found in the file.")

        merged = list(self._artists)
        # First stored artist wins the name key; legacy duplicates are kept as they are
        index: dict[str, int] = {}
        for position, artist in enumerate(merged):
            index.setdefault(_name_key(artist.name), position)
        added_keys: set[str] = set()
        updated_keys: set[str] = set()

        for candidate in candidates:
            key = _name_key(candidate["name"])
            position = index.get(key)
            if position is None:
                index[key] = len(merged)
                merged.append(Artist(
                    id=new_artist_id(jitter=True),
                    name=candidate["name"],
                    style=candidate["style"],
                ))
                added_keys.add(key)
            elif merged[position].style != candidate["style"]:
                merged[position] = merged[position].model_copy(update={"style": candidate["style"]})
                if key not in added_keys:
                    updated_keys.add(key)

        self._artists = merged
        result = ArtistImportResult(added=len(added_keys), updated=len(updated_keys))
        logger.info(f"Artist import merged: {result.added} added, {result.updated} updated")
        return result
