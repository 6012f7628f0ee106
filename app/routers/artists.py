"""Artist roster: create, edit, delete, AI suggestions and import/export."""

from typing import Any

from fastapi import APIRouter, Body, File, Query, UploadFile, status

from app.dependencies import CurrentStudio
from app.schemas.artist import (
    Artist,
    ArtistDraft,
    ArtistForm,
    ArtistIdeaRequest,
    ArtistImportResponse,
    ArtistListResponse,
)
from app.services.studio import Studio
from app.utils.json_files import json_download, read_json_upload

router = APIRouter()

ARTISTS_EXPORT_FILENAME = "suno_artists_backup.json"


def _roster(studio: Studio) -> ArtistListResponse:
    return ArtistListResponse(
        artists=studio.artists.artists,
        editing_id=studio.artists.editing_id,
        form_error=studio.artists.form_error,
    )


async def _import(studio: Studio, records: Any) -> ArtistImportResponse:
    result = await studio.import_artists(records)
    return ArtistImportResponse(
        added=result.added,
        updated=result.updated,
        message=f"Import complete. {result.added} new artists added. {result.updated} artists updated.",
    )


@router.get("", response_model=ArtistListResponse, summary="List artists")
async def list_artists(studio: CurrentStudio):
    """The roster in creation order, plus the edit form state."""
    return _roster(studio)


@router.post(
    "",
    response_model=Artist,
    status_code=status.HTTP_201_CREATED,
    summary="Add an artist",
)
async def create_artist(form: ArtistForm, studio: CurrentStudio):
    """
    Add an artist.

    - **name**: trimmed; must not match an existing name, ignoring case
    - **style**: trimmed; required
    """
    return await studio.create_artist(form.name, form.style)


@router.get("/export", summary="Download the roster as JSON")
async def export_artists(studio: CurrentStudio):
    return json_download(studio.export_artists(), ARTISTS_EXPORT_FILENAME)


@router.post("/import", response_model=ArtistImportResponse, summary="Merge artists from JSON")
async def import_artists(studio: CurrentStudio, records: Any = Body(...)):
    """
    Merge a JSON array of `{name, style}` objects into the roster.

    Existing names (ignoring case) get their style updated; new names are
    added. Invalid entries are skipped. A non-array body is rejected without
    touching the roster.
    """
    return await _import(studio, records)


@router.post("/import/file", response_model=ArtistImportResponse, summary="Merge artists from a JSON file")
async def import_artists_file(studio: CurrentStudio, file: UploadFile = File(...)):
    return await _import(studio, await read_json_upload(file))


@router.post("/generate", response_model=ArtistDraft, summary="Suggest a fictional artist")
async def generate_artist(studio: CurrentStudio, request: ArtistIdeaRequest | None = None):
    """Ask Gemini for a new artist concept. It is returned as a draft, not saved."""
    outcome = await studio.generate_artist_idea(request.direction if request else None)
    return outcome.draft


@router.post("/cancel-edit", response_model=ArtistListResponse, summary="Leave edit mode")
async def cancel_edit(studio: CurrentStudio):
    studio.cancel_edit()
    return _roster(studio)


@router.post("/{artist_id}/edit", response_model=ArtistListResponse, summary="Start editing an artist")
async def begin_edit(artist_id: str, studio: CurrentStudio):
    studio.begin_edit(artist_id)
    return _roster(studio)


@router.put("/{artist_id}", response_model=Artist, summary="Update an artist")
async def update_artist(artist_id: str, form: ArtistForm, studio: CurrentStudio):
    """Same rules as create; the artist itself is ignored by the duplicate check."""
    return await studio.update_artist(artist_id, form.name, form.style)


@router.delete("/{artist_id}", response_model=ArtistListResponse, summary="Delete an artist")
async def delete_artist(
    artist_id: str,
    studio: CurrentStudio,
    confirm: bool = Query(False, description="Must be true; deletion also drops the artist's history"),
):
    await studio.delete_artist(artist_id, confirmed=confirm)
    return _roster(studio)
