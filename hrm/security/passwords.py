"""
Password hashing with bcrypt.

bcrypt only looks at the first 72 bytes of a password, so longer ones are
rejected instead of being silently truncated.
"""

from __future__ import annotations

import bcrypt

MAX_PASSWORD_BYTES = 72


class PasswordError(ValueError):
    pass


def hash_password(password: str, rounds: int = 12) -> str:
    raw = password.encode("utf-8")
    if not password.strip():
        raise PasswordError("Password must not be empty")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise PasswordError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, hashed: str | None) -> bool:
    """False for a missing hash, a mismatch or a password bcrypt cannot take."""
    if not hashed:
        return False
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(raw, hashed.encode("ascii"))
