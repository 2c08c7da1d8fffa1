"""Pydantic v2 schemas for the module/page permission map."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class PageAccess(BaseModel):
    read: bool = False
    write: bool = False


class ModuleAccess(BaseModel):
    pages: dict[str, PageAccess] = Field(default_factory=dict)


class SetPermissionsRequest(BaseModel):
    """Full replacement of a user's module map."""

    modules: dict[str, ModuleAccess]

    def as_dict(self) -> dict[str, Any]:
        return {name: module.model_dump() for name, module in self.modules.items()}
