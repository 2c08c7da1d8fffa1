"""Security primitives: pure tests for hashing, tokens and secret encryption.

Invariants:
    - Password hashes verify only the original plaintext
    - Access tokens carry sub/email/role/admin_role and reject tampering
    - File tokens are bound to exactly one path
    - Stored secrets round-trip; unreadable ciphertext yields a placeholder
"""

import jwt as pyjwt
import pytest

from atreo.config import get_settings
from atreo.errors import AuthenticationError
from atreo.security import (
    DECRYPTION_FAILED,
    create_access_token,
    create_file_token,
    decode_access_token,
    decrypt_secret,
    encrypt_secret,
    hash_password,
    verify_password,
    verify_file_token,
)


# --- Passwords ----------------------------------------------------------------

def test_hash_password_verifies_original():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)


def test_verify_password_rejects_wrong_plaintext():
    hashed = hash_password("s3cret-pass")
    assert not verify_password("other-pass", hashed)


def test_verify_password_handles_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


# --- Access tokens ------------------------------------------------------------

def test_access_token_round_trip():
    token = create_access_token("user-1", "a@example.com", "admin", "super-admin")
    payload = decode_access_token(token)
    assert payload["sub"] == "user-1"
    assert payload["email"] == "a@example.com"
    assert payload["role"] == "admin"
    assert payload["admin_role"] == "super-admin"


def test_access_token_signed_with_other_secret_is_rejected():
    forged = pyjwt.encode({"sub": "user-1"}, "not-the-secret", algorithm="HS256")
    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_access_token(forged)


def test_expired_access_token_is_rejected():
    settings = get_settings()
    expired = pyjwt.encode(
        {"sub": "user-1", "exp": 1}, settings.jwt_secret, algorithm=settings.jwt_algorithm
    )
    with pytest.raises(AuthenticationError, match="expired"):
        decode_access_token(expired)


# --- File tokens --------------------------------------------------------------

def test_file_token_valid_for_its_path():
    token = create_file_token("invoices/1-receipt.pdf", 5)
    assert verify_file_token(token, "invoices/1-receipt.pdf")


def test_file_token_rejected_for_other_path():
    token = create_file_token("invoices/1-receipt.pdf", 5)
    assert not verify_file_token(token, "invoices/2-other.pdf")


def test_access_token_is_not_a_file_token():
    token = create_access_token("user-1", "a@example.com", "user")
    assert not verify_file_token(token, "invoices/1-receipt.pdf")


def test_garbage_file_token_rejected():
    assert not verify_file_token("garbage", "invoices/1-receipt.pdf")


# --- Secret encryption --------------------------------------------------------

def test_encrypt_secret_round_trip():
    ciphertext = encrypt_secret("hunter2")
    assert ciphertext != "hunter2"
    assert decrypt_secret(ciphertext) == "hunter2"


def test_empty_secret_stored_as_none():
    assert encrypt_secret("") is None
    assert encrypt_secret(None) is None
    assert decrypt_secret(None) is None


def test_unreadable_ciphertext_yields_placeholder():
    assert decrypt_secret("definitely-not-fernet") == DECRYPTION_FAILED
