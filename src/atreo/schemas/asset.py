"""Pydantic v2 schemas for the asset tree."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CreateFolderRequest(BaseModel):
    name: str = Field(..., max_length=255)
    parent_folder_id: str | None = None
    description: str | None = None


class UpdateAssetRequest(BaseModel):
    """Rename, move (``parent_folder_id``; ``root`` or null for the top level) or retag."""

    name: str | None = Field(default=None, max_length=255)
    parent_folder_id: str | None = None
    description: str | None = None
    tags: list[str] | str | None = None
