from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from hrm.authz import PermissionEngine, TargetReference
from hrm.db.session import bind_request_authz, get_db
from hrm.models.security import User
from hrm.security.auth import extract_bearer_token, resolve_subject
from hrm.security.config import SecurityConfig
from hrm.security.context import AuthzContext
from hrm.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_permission_engine(request: Request) -> PermissionEngine:
    engine = getattr(request.app.state, "permission_engine", None)
    if engine is None:
        raise RuntimeError("Permission engine not loaded. Did app startup run?")
    return engine


def get_current_user(request: Request) -> User:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_authz(request: Request) -> AuthzContext:
    authz = getattr(request.state, "authz", None)
    if authz is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return authz


def ensure_permission(
    authz: AuthzContext,
    action: str,
    resource: str,
    target: TargetReference | None = None,
) -> None:
    """Translate a denied decision into 403."""
    if not authz.can(action, resource, target):
        logger.info(
            "Permission denied user=%s role=%s perm=%s:%s target=%s",
            authz.subject.user_id,
            authz.subject.role_id,
            action,
            resource,
            target,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing permission {action}:{resource}",
        )


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    engine: PermissionEngine = Depends(get_permission_engine),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency.

    Runs after routing so it can combine the config rule for (path, method)
    with decorator metadata on the endpoint. The level gate and the
    target-less permissions (from config and decorators) are independent
    checks; a route carrying both needs both.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)

    endpoint = request.scope.get("endpoint")
    decorator_level = int(getattr(endpoint, "__security_min_level__", 0)) if endpoint else 0
    decorator_perms = tuple(getattr(endpoint, "__security_permissions__", ())) if endpoint else ()
    required_perms = rule.permissions + tuple(p for p in decorator_perms if p not in rule.permissions)

    min_level = max(rule.min_level, decorator_level)
    auth_required = rule.auth_required or min_level > 0 or bool(required_perms)
    if not auth_required:
        return

    token = extract_bearer_token(request, config)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    user, subject = resolve_subject(db, token, settings)
    request.state.user = user

    if min_level and not engine.has_level(subject, min_level):
        logger.info("Level gate denied user=%s role=%s required=%s path=%s", user.id, user.role_id, min_level, path)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient role level. Required at least {min_level}",
        )

    authz = AuthzContext(subject=subject, engine=engine)
    for action, resource in required_perms:
        ensure_permission(authz, action, resource)

    request.state.authz = authz
    # get_db binds sessions it opens after this point; this one was opened before authz existed.
    bind_request_authz(db, request)


def ensure_any_grant(authz: AuthzContext, action: str, resource: str) -> None:
    """
    For list endpoints: the caller needs some grant for (action, resource).

    Which rows they see is decided by the row filters in hrm/db/filters.py.
    """
    if authz.grant_for(action, resource) is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing permission {action}:{resource}",
        )
