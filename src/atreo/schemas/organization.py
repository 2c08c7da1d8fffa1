"""Pydantic v2 schemas for organizations."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OrganizationRequest(BaseModel):
    """Create/replace body; both fields are required and the domain is lowercased."""

    name: str = Field(..., max_length=255)
    domain: str = Field(..., max_length=255)
