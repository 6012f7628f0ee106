"""Generation history schemas."""

from pydantic import BaseModel, Field


class GenerationHistoryEntry(BaseModel):
    """Past titles, themes and lyric bodies for one artist, oldest first."""
    titles: list[str] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=list)
    lyrics: list[str] = Field(default_factory=list)


class HistoryImportResponse(BaseModel):
    imported: int
    message: str
