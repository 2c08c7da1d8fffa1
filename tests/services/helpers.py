"""Shared constants and request helpers for route tests."""

API = "/api/v1"
PASSWORD = "secret123"


def jsonapi(resource_type, **attributes):
    """Wrap attributes in a JSON:API request envelope."""
    return {"data": {"type": resource_type, "attributes": attributes}}


def error_detail(response):
    return response.json()["errors"][0]["detail"]
