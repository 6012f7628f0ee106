"""Song generation: full concepts, single-field regeneration and theme suggestions."""

from fastapi import APIRouter

from app.dependencies import CurrentStudio
from app.schemas.song import (
    CreativityLevelItem,
    CurrentSongResponse,
    GenerateSongRequest,
    GenerationResponse,
    PartResponse,
    RegeneratePartRequest,
    SuggestThemeRequest,
    ThemeResponse,
)
from app.services.prompt_builder import CreativityLevel

router = APIRouter()


@router.get(
    "/creativity-levels",
    response_model=list[CreativityLevelItem],
    summary="The five creativity tiers",
)
async def creativity_levels():
    return [
        CreativityLevelItem(value=level.value, label=level.label, instruction=level.instruction)
        for level in CreativityLevel
    ]


@router.post("/generate", response_model=GenerationResponse, summary="Generate a song concept")
async def generate_song(request: GenerateSongRequest, studio: CurrentStudio):
    """
    Generate a title, style (max 250 chars) and lyrics for an artist.

    If another generation was started while this one ran, this result is
    returned with `applied: false` and is not recorded.
    """
    outcome = await studio.generate_song(
        request.artist_id,
        theme=request.theme,
        creativity=request.creativity,
        instrumental=request.instrumental,
        language=request.language,
    )
    return GenerationResponse(applied=outcome.applied, token=outcome.token, song=outcome.song)


@router.post("/regenerate", response_model=PartResponse, summary="Regenerate one part of the song")
async def regenerate_part(request: RegeneratePartRequest, studio: CurrentStudio):
    outcome = await studio.regenerate_part(
        request.artist_id,
        request.part,
        theme=request.theme,
        creativity=request.creativity,
        instrumental=request.instrumental,
        language=request.language,
    )
    return PartResponse(
        applied=outcome.applied,
        token=outcome.token,
        part=request.part,
        value=outcome.value,
        song=outcome.song,
    )


@router.post("/suggest-theme", response_model=ThemeResponse, summary="Suggest a theme")
async def suggest_theme(request: SuggestThemeRequest, studio: CurrentStudio):
    """Ask Gemini for a fresh theme. It is recorded in the artist's history."""
    outcome = await studio.suggest_theme(request.artist_id, language=request.language)
    return ThemeResponse(applied=outcome.applied, token=outcome.token, theme=outcome.value)


@router.get("/current", response_model=CurrentSongResponse, summary="The song on screen")
async def current_song(studio: CurrentStudio):
    return CurrentSongResponse(song=studio.current_song, in_flight=studio.in_flight())
