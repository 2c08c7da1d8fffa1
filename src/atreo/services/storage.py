"""Storage backends for uploaded documents.

Files are addressed by a destination such as
``invoices/1700000000000-receipt.pdf``. With Google Cloud Storage configured
they become bucket objects and records keep the object URL. Otherwise they
live under ``upload_dir``, records keep ``/uploads/<destination>`` and the
files router serves them behind signed tokens.
"""

from __future__ import annotations

import logging
import mimetypes
import re
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from urllib.parse import quote

from fastapi import UploadFile
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage as gcs
from google.oauth2 import service_account
from starlette.concurrency import run_in_threadpool

from atreo.config import Settings, get_settings
from atreo.errors import InvalidRequestError, NotFoundError
from atreo.security import create_file_token

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"
GCS_PUBLIC_HOST = "https://storage.googleapis.com/"

PDF_AND_IMAGES = frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"})
DOCUMENT_MIME_TYPES = PDF_AND_IMAGES | {
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str | None) -> str:
    """Strip directory components and unusual characters from a client filename."""
    name = Path(filename or "file").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "file"


def build_destination(prefix: str, filename: str | None) -> str:
    """Return ``<prefix>/<epoch-ms>-<safe name>``."""
    return f"{prefix.strip('/')}/{int(time.time() * 1000)}-{safe_filename(filename)}"


async def read_upload(
    upload: UploadFile,
    allowed_types: frozenset[str],
    max_bytes: int | None = None,
) -> bytes:
    """Read an upload into memory after checking its type and size.

    Raises:
        InvalidRequestError: If the content type is not allowed or the file
            is larger than ``max_bytes``.
    """
    if max_bytes is None:
        max_bytes = get_settings().max_upload_bytes
    if upload.content_type not in allowed_types:
        raise InvalidRequestError(f"File type '{upload.content_type}' is not allowed")
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise InvalidRequestError(
            f"File is too large; the limit is {max_bytes // (1024 * 1024)}MB"
        )
    return data


class Storage(ABC):
    """Base interface for upload backends.

    Records keep whatever ``upload_file`` returned; the other methods accept
    that value or a bare destination.
    """

    @staticmethod
    def destination_of(path_or_url: str) -> str:
        """Accept either a public ``/uploads/...`` path or a bare destination."""
        if path_or_url.startswith(PUBLIC_PREFIX):
            return path_or_url[len(PUBLIC_PREFIX):]
        return path_or_url.lstrip("/")

    @abstractmethod
    async def upload_file(self, data: bytes, destination: str) -> str:
        """Store ``data`` at ``destination`` and return the value to persist."""
        ...

    @abstractmethod
    async def delete_file(self, path_or_url: str | None) -> None:
        """Remove a stored file. Failures are logged and ignored."""
        ...

    @abstractmethod
    def get_signed_url(self, path_or_url: str) -> str:
        """Return a download URL valid for ``signed_url_expires_minutes``."""
        ...


class LocalStorage(Storage):
    """Stores files beneath a root directory.

    Args:
        root: Directory that holds every stored file.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def resolve(self, destination: str) -> Path:
        """Map a destination to an absolute path inside the root.

        Raises:
            NotFoundError: If the destination escapes the storage root.
        """
        path = (self.root / destination).resolve()
        if path != self.root and self.root not in path.parents:
            raise NotFoundError("File not found")
        return path

    async def upload_file(self, data: bytes, destination: str) -> str:
        path = self.resolve(destination)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await run_in_threadpool(_write)
        logger.info("Stored %d bytes at %s", len(data), destination)
        return PUBLIC_PREFIX + destination

    async def delete_file(self, path_or_url: str | None) -> None:
        if not path_or_url:
            return
        try:
            path = self.resolve(self.destination_of(path_or_url))
            await run_in_threadpool(path.unlink, missing_ok=True)
        except Exception:
            logger.warning("Failed to delete stored file %s", path_or_url, exc_info=True)

    def get_signed_url(self, path_or_url: str) -> str:
        """Link to the files route with a token bound to this destination."""
        settings = get_settings()
        destination = self.destination_of(path_or_url)
        token = create_file_token(destination, settings.signed_url_expires_minutes)
        return (
            f"{settings.public_base_url.rstrip('/')}{settings.api_prefix}/files/"
            f"{quote(destination)}?token={token}"
        )


class GCSStorage(Storage):
    """Stores files as objects in a Google Cloud Storage bucket.

    Objects are private; downloads go through V4 signed URLs. Paths saved
    by the local backend (``/uploads/...``) map to the same object name.

    Args:
        bucket: The ``google.cloud.storage`` bucket holding uploads.
    """

    def __init__(self, bucket: gcs.Bucket) -> None:
        self.bucket = bucket
        self.url_prefix = f"{GCS_PUBLIC_HOST}{bucket.name}/"

    @classmethod
    def from_settings(cls, settings: Settings) -> GCSStorage:
        """Build a client from the service-account fields in settings.

        Raises:
            ValueError: If the private key cannot be parsed.
        """
        credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "project_id": settings.gcs_project_id,
                "client_email": settings.gcs_client_email,
                "private_key": settings.gcs_private_key.replace("\\n", "\n"),
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )
        client = gcs.Client(project=settings.gcs_project_id, credentials=credentials)
        return cls(client.bucket(settings.gcs_bucket_name))

    def destination_of(self, path_or_url: str) -> str:
        if path_or_url.startswith(self.url_prefix):
            return path_or_url[len(self.url_prefix):]
        return super().destination_of(path_or_url)

    async def upload_file(self, data: bytes, destination: str) -> str:
        content_type = mimetypes.guess_type(destination)[0] or "application/octet-stream"
        blob = self.bucket.blob(destination)
        await run_in_threadpool(blob.upload_from_string, data, content_type=content_type)
        logger.info("Uploaded %d bytes to gs://%s/%s", len(data), self.bucket.name, destination)
        return self.url_prefix + destination

    async def delete_file(self, path_or_url: str | None) -> None:
        if not path_or_url:
            return
        try:
            blob = self.bucket.blob(self.destination_of(path_or_url))
            await run_in_threadpool(blob.delete)
        except Exception:
            logger.warning("Failed to delete object %s", path_or_url, exc_info=True)

    def get_signed_url(self, path_or_url: str) -> str:
        """Sign a V4 read URL; on failure the stored value is returned as is."""
        minutes = get_settings().signed_url_expires_minutes
        blob = self.bucket.blob(self.destination_of(path_or_url))
        try:
            return blob.generate_signed_url(
                version="v4", expiration=timedelta(minutes=minutes), method="GET"
            )
        except Exception:
            logger.warning("Failed to sign URL for %s", path_or_url, exc_info=True)
            return path_or_url


@lru_cache
def _gcs_storage() -> GCSStorage | None:
    try:
        return GCSStorage.from_settings(get_settings())
    except (ValueError, GoogleAuthError):
        logger.warning("Google Cloud Storage unavailable; using local uploads", exc_info=True)
        return None


def get_local_storage() -> LocalStorage:
    return LocalStorage(get_settings().upload_dir)


def get_storage() -> Storage:
    """FastAPI dependency returning the configured storage backend.

    Google Cloud Storage when its settings are complete, local disk otherwise.
    """
    settings = get_settings()
    if settings.gcs_configured:
        storage = _gcs_storage()
        if storage is not None:
            return storage
    return LocalStorage(settings.upload_dir)
