"""Serves locally stored uploads behind short-lived signed tokens."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from atreo.errors import NotFoundError, PermissionDeniedError
from atreo.security import verify_file_token
from atreo.services.storage import LocalStorage, get_local_storage

router = APIRouter()


@router.get("/{file_path:path}")
async def download_file(
    file_path: str,
    token: str = Query(default=""),
    storage: LocalStorage = Depends(get_local_storage),
) -> FileResponse:
    """Stream a stored file when ``token`` was signed for exactly this path."""
    if not token or not verify_file_token(token, file_path):
        raise PermissionDeniedError("Invalid or expired file token")
    path = storage.resolve(file_path)
    if not path.is_file():
        raise NotFoundError("File not found")
    return FileResponse(path, filename=path.name)
