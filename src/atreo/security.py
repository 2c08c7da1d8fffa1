"""Password hashing, JWT access tokens and at-rest secret encryption."""

from __future__ import annotations

import base64
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import bcrypt
import jwt as pyjwt
from cryptography.fernet import Fernet, InvalidToken

from atreo.config import get_settings
from atreo.errors import AuthenticationError

logger = logging.getLogger(__name__)

DECRYPTION_FAILED = "[Decryption Failed]"


def hash_password(password: str) -> str:
    """Hash a password (or OTP code) with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a plaintext password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Malformed bcrypt hash encountered")
        return False


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    admin_role: str | None = None,
) -> str:
    """Issue a signed access token for a user.

    Args:
        user_id: UUID of the authenticated user (stored as ``sub``).
        email: The user's email.
        role: The user's coarse role.
        admin_role: ``admin`` or ``super-admin`` for admin users.

    Returns:
        The encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "admin_role": admin_role,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expires_hours),
    }
    return pyjwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Decode and validate an access token.

    Raises:
        AuthenticationError: If the token is expired or otherwise invalid.
    """
    settings = get_settings()
    try:
        return pyjwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except pyjwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token has expired") from exc
    except pyjwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid token") from exc


def create_file_token(path: str, expires_minutes: int) -> str:
    """Sign a short-lived token granting read access to one stored file."""
    settings = get_settings()
    payload = {
        "path": path,
        "purpose": "file",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return pyjwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_file_token(token: str, path: str) -> bool:
    """Return True if ``token`` is a live file token for exactly ``path``."""
    settings = get_settings()
    try:
        payload = pyjwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except pyjwt.InvalidTokenError:
        return False
    return payload.get("purpose") == "file" and payload.get("path") == path


@lru_cache
def _fernet() -> Fernet:
    settings = get_settings()
    key = settings.encryption_key
    if not key:
        digest = hashlib.sha256(settings.jwt_secret.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest).decode("ascii")
    return Fernet(key)


def encrypt_secret(value: str | None) -> str | None:
    """Encrypt a credential for storage. Empty values are stored as null."""
    if not value:
        return None
    return _fernet().encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_secret(value: str | None) -> str | None:
    """Decrypt a stored credential, returning a placeholder if it is unreadable."""
    if not value:
        return None
    try:
        return _fernet().decrypt(value.encode("ascii")).decode("utf-8")
    except (InvalidToken, ValueError):
        logger.warning("Failed to decrypt stored credential")
        return DECRYPTION_FAILED
