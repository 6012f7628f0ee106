"""Artist schemas for the roster and its import/export."""

from typing import Optional

from pydantic import BaseModel, Field


class Artist(BaseModel):
    """A fictional musical identity used to condition generations."""
    id: str
    name: str
    style: str


class ArtistForm(BaseModel):
    """Create/edit form submission. Trimming and emptiness are checked by the store."""
    name: str = ""
    style: str = ""


class ArtistDraft(BaseModel):
    """AI-suggested artist, shown in the form before the user saves it."""
    name: str = Field(..., min_length=1)
    style: str = Field(..., min_length=1)


class ArtistIdeaRequest(BaseModel):
    """Optional creative direction for the random artist generator."""
    direction: Optional[str] = Field(None, max_length=500)


class ArtistListResponse(BaseModel):
    """Roster plus the edit form state."""
    artists: list[Artist]
    editing_id: Optional[str] = None
    form_error: Optional[str] = None


class ArtistImportResult(BaseModel):
    """Counts reported after an import merge."""
    added: int = 0
    updated: int = 0


class ArtistImportResponse(ArtistImportResult):
    message: str
