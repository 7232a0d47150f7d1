from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from hrm.settings import get_settings


_settings = get_settings()

engine = create_engine(
    _settings.resolved_db_url(),
    connect_args={"check_same_thread": False} if _settings.resolved_db_url().startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def bind_request_authz(db: Session, request: Request) -> None:
    """Copy the request's AuthzContext (if any) onto the session for row scoping."""
    authz = getattr(getattr(request, "state", None), "authz", None)
    if authz is not None:
        db.info["authz"] = authz


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Main DB dependency.

    Queries in route handlers stay plain (``select(Employee)``); the
    ``do_orm_execute`` listener in hrm/db/filters.py reads
    ``Session.info["authz"]`` and narrows reads to the caller's scope.
    """

    db = SessionLocal()
    try:
        bind_request_authz(db, request)
        yield db
    finally:
        db.close()
