"""Song generation schemas."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

SongPart = Literal["title", "style", "lyrics"]


class SongConcept(BaseModel):
    """One generated song: title, style blurb and lyrics (or arrangement)."""
    title: str = Field(..., min_length=1)
    style: str = Field(..., min_length=1, max_length=250)
    lyrics: str = Field(..., min_length=1)


class GenerateSongRequest(BaseModel):
    """Parameters of a song generation."""
    artist_id: str
    theme: Optional[str] = Field(None, max_length=1000)
    creativity: int = 50
    instrumental: bool = False
    language: str = Field("English", min_length=1, max_length=50)

    @field_validator("creativity")
    @classmethod
    def creativity_on_scale(cls, v: int) -> int:
        if v not in (0, 25, 50, 75, 100):
            raise ValueError("Creativity must be one of 0, 25, 50, 75, 100")
        return v


class RegeneratePartRequest(GenerateSongRequest):
    """Regenerate a single field of the current song."""
    part: SongPart


class SuggestThemeRequest(BaseModel):
    artist_id: str
    language: str = Field("English", min_length=1, max_length=50)


class GenerationResponse(BaseModel):
    """
    Result of a generation call.

    `applied` is False when a newer request for the same slot was started
    while this one was in flight; its result was discarded.
    """
    applied: bool
    token: int
    song: Optional[SongConcept] = None


class PartResponse(BaseModel):
    applied: bool
    token: int
    part: SongPart
    value: str
    song: Optional[SongConcept] = None


class ThemeResponse(BaseModel):
    applied: bool
    token: int
    theme: str


class CurrentSongResponse(BaseModel):
    song: Optional[SongConcept] = None
    in_flight: list[str] = []


class CreativityLevelItem(BaseModel):
    value: int
    label: str
    instruction: str
