"""Pydantic schemas for API request/response models."""

from atreo.schemas.jsonapi import (
    JSONAPIError,
    JSONAPIErrorResponse,
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIResource,
    JSONAPISingleResponse,
)

__all__ = [
    "JSONAPIError",
    "JSONAPIErrorResponse",
    "JSONAPIListResponse",
    "JSONAPIMetaResponse",
    "JSONAPIResource",
    "JSONAPISingleResponse",
]
