"""
Authentication: bearer header -> access token -> current user -> Subject.

The token only identifies the user. Role and department are always read
from the user row, so deactivating a user or changing their role applies to
the next request.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from hrm.authz import Subject
from hrm.models.security import User
from hrm.security.config import SecurityConfig
from hrm.security.tokens import ACCESS, TokenError, decode_token, user_id_from_claims
from hrm.settings import Settings

logger = logging.getLogger(__name__)


class MalformedAuthorization(ValueError):
    pass


def parse_bearer(value: str, prefix: str) -> str:
    """Return the token from ``"<prefix> <token>"``; raise MalformedAuthorization otherwise."""
    scheme, _, token = value.partition(" ")
    if scheme != prefix:
        raise MalformedAuthorization(f"Expected '{prefix} <token>'.")
    token = token.strip()
    if not token:
        raise MalformedAuthorization(f"Missing token after '{prefix}'.")
    return token


def extract_bearer_token(request: Request, config: SecurityConfig) -> str | None:
    """None when the header is absent; 400 when it is present but malformed."""
    header_name = config.auth.authorization_header
    raw = request.headers.get(header_name)
    if not raw:
        logger.info("No %s header path=%s method=%s", header_name, request.url.path, request.method)
        return None

    try:
        return parse_bearer(raw, config.auth.bearer_prefix)
    except MalformedAuthorization as exc:
        logger.warning("Malformed %s header path=%s method=%s", header_name, request.url.path, request.method)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {header_name}. {exc}") from exc


def load_user(db: Session, user_id: int) -> User:
    stmt = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.department), selectinload(User.role))
    )
    user = db.scalars(stmt).one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")
    return user


def subject_for(user: User) -> Subject:
    return Subject(user_id=user.id, role_id=user.role_id, department_id=user.department_id)


def resolve_subject(db: Session, token: str, settings: Settings) -> tuple[User, Subject]:
    """Validate an access token and build the caller's Subject from the current user row."""
    try:
        user_id = user_id_from_claims(decode_token(token, settings, expected_type=ACCESS))
    except TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    user = load_user(db, user_id)
    return user, subject_for(user)
