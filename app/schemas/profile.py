"""Profile/credential schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class ApiKeyUpdate(BaseModel):
    api_key: str = Field(..., min_length=1, max_length=255)


class ApiKeyStatus(BaseModel):
    configured: bool
    masked: Optional[str] = None


class StudioStateResponse(BaseModel):
    """Snapshot of the signed-in studio session."""
    session_state: str
    display_name: Optional[str] = None
    artist_count: int
    history_artist_count: int
    api_key_configured: bool
    in_flight: list[str] = []
