"""Local storage tests: filename hygiene, path containment and signed URLs.

Invariants:
    - Client filenames never carry directories or unusual characters
    - Destinations cannot escape the storage root
    - Stored files are addressed by /uploads/<destination>
    - Signed URLs embed a file token valid for that destination only
"""

from urllib.parse import parse_qs, unquote, urlparse

import pytest

from atreo.errors import NotFoundError
from atreo.security import verify_file_token
from atreo.services.storage import (
    PUBLIC_PREFIX,
    LocalStorage,
    build_destination,
    safe_filename,
)


# --- Filenames ----------------------------------------------------------------

def test_safe_filename_strips_directories():
    assert safe_filename("../../etc/passwd") == "passwd"


def test_safe_filename_replaces_unusual_characters():
    assert safe_filename("my invoice (final).pdf") == "my_invoice_final_.pdf"


def test_safe_filename_defaults_when_empty():
    assert safe_filename(None) == "file"
    assert safe_filename("...") == "file"


def test_build_destination_prefixes_timestamp():
    destination = build_destination("/invoices/", "receipt.pdf")
    folder, name = destination.split("/")
    assert folder == "invoices"
    stamp, rest = name.split("-", 1)
    assert stamp.isdigit()
    assert rest == "receipt.pdf"


# --- LocalStorage -------------------------------------------------------------

def test_resolve_rejects_escape(tmp_path):
    storage = LocalStorage(tmp_path)
    with pytest.raises(NotFoundError):
        storage.resolve("../outside.txt")


def test_destination_of_accepts_public_path():
    assert LocalStorage.destination_of("/uploads/a/b.pdf") == "a/b.pdf"
    assert LocalStorage.destination_of("a/b.pdf") == "a/b.pdf"


async def test_upload_then_delete(tmp_path):
    storage = LocalStorage(tmp_path)
    public = await storage.upload_file(b"%PDF-1.4", "invoices/1-a.pdf")

    assert public == PUBLIC_PREFIX + "invoices/1-a.pdf"
    assert (tmp_path / "invoices" / "1-a.pdf").read_bytes() == b"%PDF-1.4"

    await storage.delete_file(public)
    assert not (tmp_path / "invoices" / "1-a.pdf").exists()


async def test_delete_missing_file_is_quiet(tmp_path):
    storage = LocalStorage(tmp_path)
    await storage.delete_file("/uploads/nothing/here.pdf")
    await storage.delete_file(None)


def test_signed_url_carries_token_for_destination(tmp_path):
    storage = LocalStorage(tmp_path)
    url = urlparse(storage.get_signed_url("/uploads/invoices/1-a.pdf"))

    assert unquote(url.path).endswith("/files/invoices/1-a.pdf")
    token = parse_qs(url.query)["token"][0]
    assert verify_file_token(token, "invoices/1-a.pdf")
