"""Password hashing and session token generation."""

from __future__ import annotations

import base64
import binascii
import secrets

from werkzeug.security import check_password_hash, generate_password_hash

SESSION_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    """Salted hash for a group access password."""
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash; never raises."""
    if not password_hash or password is None:
        return False
    try:
        return check_password_hash(password_hash, password)
    except (ValueError, TypeError):
        return False


def generate_session_id() -> str:
    """Cryptographically random judge session identifier (64 hex chars)."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def decode_legacy_password(encoded: str) -> str | None:
    """Recover a password stored with the old base64 encoding.

    Returns None when the value is not valid base64 text.
    """
    try:
        return base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None
