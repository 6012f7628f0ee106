"""
Backing stores for a studio profile document.

A document is {artists, generation_history, display_name, email, api_key}.
`save` is a merge-write: only the fields passed are replaced.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import PersistenceError
from app.models.profile import Profile

logger = logging.getLogger(__name__)

DOCUMENT_FIELDS = ("artists", "generation_history", "display_name", "email", "api_key")


def empty_document(display_name: str = "", email: str = "") -> dict[str, Any]:
    return {
        "artists": [],
        "generation_history": {},
        "display_name": display_name,
        "email": email,
        "api_key": "",
    }


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - set(DOCUMENT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown profile fields: {sorted(unknown)}")


class ProfileStore(Protocol):
    async def load(self) -> dict[str, Any]: ...

    async def save(self, **fields: Any) -> None: ...


class InMemoryProfileStore:
    """Keeps the document for the lifetime of the process only."""

    def __init__(self, document: Optional[dict[str, Any]] = None):
        self._document = empty_document()
        self._document.update(document or {})

    async def load(self) -> dict[str, Any]:
        return json.loads(json.dumps(self._document))

    async def save(self, **fields: Any) -> None:
        _check_fields(fields)
        self._document.update(json.loads(json.dumps(fields)))


class FileProfileStore:
    """
    Standalone variant: one JSON file per local storage slot.

    Unreadable slots load as their empty default, like a fresh browser.
    """

    SLOTS = {
        "artists": "sunoArtists",
        "generation_history": "sunoGenerationHistory",
        "api_key": "sunoApiKey",
    }

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, field: str) -> Path:
        return self.directory / f"{self.SLOTS[field]}.json"

    def _read_slot(self, field: str, default: Any) -> Any:
        path = self._path(field)
        if not path.exists():
            return default
        try:
            value = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"[FileProfileStore] Ignoring unreadable slot {path.name}: {e}")
            return default
        if not isinstance(value, type(default)):
            logger.warning(f"[FileProfileStore] Ignoring slot {path.name} with unexpected shape")
            return default
        return value

    def _load_sync(self) -> dict[str, Any]:
        document = empty_document()
        for field in self.SLOTS:
            document[field] = self._read_slot(field, document[field])
        return document

    def _save_sync(self, fields: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        for field, value in fields.items():
            if field not in self.SLOTS:
                continue  # Identity fields have no local slot
            path = self._path(field)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(value, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(path)

    async def load(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._load_sync)

    async def save(self, **fields: Any) -> None:
        _check_fields(fields)
        try:
            await asyncio.to_thread(self._save_sync, fields)
        except PermissionError as e:
            logger.error(f"[FileProfileStore] Write refused: {e}")
            raise PersistenceError("Could not write local studio data", "permission-denied") from e
        except OSError as e:
            logger.error(f"[FileProfileStore] Write failed: {e}")
            raise PersistenceError("Could not write local studio data", "unavailable") from e


def _persistence_error(e: SQLAlchemyError, action: str) -> PersistenceError:
    if isinstance(e, (OperationalError, InterfaceError)):
        code = "unavailable"
    elif isinstance(e, IntegrityError):
        code = "corrupt"
    else:
        code = "unknown"
    return PersistenceError(f"Could not {action} the profile document", code)


class DatabaseProfileStore:
    """Cloud variant: the user's row in `profiles`, created at first sign-in."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], user_id: int):
        self.session_factory = session_factory
        self.user_id = user_id

    async def load(self) -> dict[str, Any]:
        try:
            async with self.session_factory() as session:
                profile = await session.get(Profile, self.user_id)
                if profile is None:
                    raise PersistenceError("Profile document does not exist", "corrupt")
                return profile.to_document()
        except SQLAlchemyError as e:
            logger.error(f"[DatabaseProfileStore] load failed for user {self.user_id}: {e}")
            raise _persistence_error(e, "read") from e

    async def save(self, **fields: Any) -> None:
        _check_fields(fields)
        if not fields:
            return
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Profile).where(Profile.user_id == self.user_id)
                )
                profile = result.scalar_one_or_none()
                if profile is None:
                    raise PersistenceError("Profile document does not exist", "corrupt")
                for name, value in fields.items():
                    setattr(profile, name, value)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"[DatabaseProfileStore] save failed for user {self.user_id}: {e}")
            raise _persistence_error(e, "save") from e
