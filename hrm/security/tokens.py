"""
Issue and verify the service's own JWTs.

Two token types are issued after a successful login:

* **access** (short-lived, default 15 minutes): sent as
  ``Authorization: Bearer <token>`` on every API call. Carries ``sub`` (user
  id), ``role`` and ``dept`` for display; the server still reloads the user
  on each request, so a role change takes effect without waiting for expiry.
* **refresh** (default 7 days): exchanged at ``/auth/refresh`` for a new
  pair. Signed with a separate secret so it can never pass as an access token.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Any

import jwt

from hrm.settings import Settings

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when a token cannot be trusted. Do not log the token."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


def _secret_for(token_type: str, settings: Settings) -> str:
    return settings.jwt_refresh_secret if token_type == REFRESH else settings.jwt_secret


def _encode(claims: dict[str, Any], token_type: str, ttl_seconds: int, settings: Settings) -> str:
    now = int(time.time())
    payload = {
        **claims,
        "type": token_type,
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, _secret_for(token_type, settings), algorithm=settings.jwt_algorithm)


def issue_token_pair(user, settings: Settings) -> TokenPair:
    """Issue an access + refresh token for a loaded User row."""
    access = _encode(
        {"sub": str(user.id), "role": user.role_id, "dept": user.department_id},
        ACCESS,
        settings.access_token_ttl_seconds,
        settings,
    )
    refresh = _encode({"sub": str(user.id)}, REFRESH, settings.refresh_token_ttl_seconds, settings)
    logger.info("Issued token pair user_id=%s", user.id)
    return TokenPair(access_token=access, refresh_token=refresh, expires_in=settings.access_token_ttl_seconds)


def decode_token(token: str, settings: Settings, expected_type: str = ACCESS) -> dict[str, Any]:
    """
    Verify signature, issuer and lifetime, then check the token type.

    Raises TokenError on any failure.
    """

    try:
        payload = jwt.decode(
            token,
            _secret_for(expected_type, settings),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        logger.info("Token expired type=%s", expected_type)
        raise TokenError("Token expired") from e
    except jwt.InvalidIssuerError as e:
        logger.info("Token invalid issuer")
        raise TokenError("Invalid token: issuer") from e
    except jwt.InvalidTokenError as e:
        logger.info("Token invalid: %s", type(e).__name__)
        raise TokenError("Invalid token") from e

    if payload.get("type") != expected_type:
        raise TokenError(f"Invalid token: expected {expected_type} token")
    return payload


def user_id_from_claims(payload: dict[str, Any]) -> int:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise TokenError("Invalid token: subject") from e
