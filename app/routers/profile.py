"""Profile: Gemini API key and session state."""

from fastapi import APIRouter

from app.dependencies import CurrentStudio
from app.schemas.auth import MessageResponse
from app.schemas.profile import ApiKeyStatus, ApiKeyUpdate, StudioStateResponse

router = APIRouter()


def _mask(api_key: str) -> str:
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}{'*' * (len(api_key) - 8)}{api_key[-4:]}"


@router.get("/api-key", response_model=ApiKeyStatus, summary="Whether a Gemini key is set")
async def get_api_key(studio: CurrentStudio):
    """The key itself is never returned, only a masked form."""
    if not studio.api_key:
        return ApiKeyStatus(configured=studio.has_api_key)
    return ApiKeyStatus(configured=True, masked=_mask(studio.api_key))


@router.put("/api-key", response_model=ApiKeyStatus, summary="Save your Gemini key")
async def set_api_key(request: ApiKeyUpdate, studio: CurrentStudio):
    await studio.set_api_key(request.api_key)
    return ApiKeyStatus(configured=True, masked=_mask(studio.api_key))


@router.delete("/api-key", response_model=MessageResponse, summary="Remove your Gemini key")
async def delete_api_key(studio: CurrentStudio):
    await studio.set_api_key("")
    return MessageResponse(message="API key removed")


@router.get("/state", response_model=StudioStateResponse, summary="Studio session state")
async def get_state(studio: CurrentStudio):
    return StudioStateResponse(
        session_state=studio.state.value,
        display_name=studio.display_name or None,
        artist_count=len(studio.artists),
        history_artist_count=len(studio.history),
        api_key_configured=studio.has_api_key,
        in_flight=studio.in_flight(),
    )
