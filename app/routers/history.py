"""Generation history: per-artist view and import/export."""

from typing import Any

from fastapi import APIRouter, Body, File, UploadFile

from app.dependencies import CurrentStudio
from app.schemas.history import GenerationHistoryEntry, HistoryImportResponse
from app.services.studio import Studio
from app.utils.json_files import json_download, read_json_upload

router = APIRouter()

HISTORY_EXPORT_FILENAME = "suno_history_backup.json"


async def _import(studio: Studio, data: Any) -> HistoryImportResponse:
    count = await studio.import_history(data)
    return HistoryImportResponse(
        imported=count,
        message=f"History import complete. {count} artist histories imported.",
    )


@router.get("", response_model=dict[str, GenerationHistoryEntry], summary="All generation history")
async def get_history(studio: CurrentStudio):
    return studio.export_history()


@router.get("/export", summary="Download the history as JSON")
async def export_history(studio: CurrentStudio):
    return json_download(studio.export_history(), HISTORY_EXPORT_FILENAME)


@router.post("/import", response_model=HistoryImportResponse, summary="Merge history from JSON")
async def import_history(studio: CurrentStudio, data: Any = Body(...)):
    """
    Merge a JSON object keyed by artist id.

    Each imported artist entry replaces the existing one as a whole; other
    artists keep their history. Anything but an object is rejected before
    any change.
    """
    return await _import(studio, data)


@router.post("/import/file", response_model=HistoryImportResponse, summary="Merge history from a JSON file")
async def import_history_file(studio: CurrentStudio, file: UploadFile = File(...)):
    return await _import(studio, await read_json_upload(file))


@router.get("/{artist_id}", response_model=GenerationHistoryEntry, summary="One artist's history")
async def get_artist_history(artist_id: str, studio: CurrentStudio):
    return studio.history.entry(artist_id)
