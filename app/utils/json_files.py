"""JSON file import/export helpers for the manage views."""

import json
from typing import Any

from fastapi import UploadFile
from fastapi.responses import Response

from app.core.exceptions import ImportFormatError

MAX_IMPORT_BYTES = 5 * 1024 * 1024


async def read_json_upload(file: UploadFile) -> Any:
    """Read and parse an uploaded JSON file. Nothing is applied here."""
    raw = await file.read(MAX_IMPORT_BYTES + 1)
    if len(raw) > MAX_IMPORT_BYTES:
        raise ImportFormatError("File is too large to import.")
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportFormatError("File could not be read as text.") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Error importing file: {e.msg} (line {e.lineno})") from e


def json_download(content: Any, filename: str) -> Response:
    """Serve content as a downloadable, pretty-printed JSON file."""
    return Response(
        content=json.dumps(content, indent=2, ensure_ascii=False),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
