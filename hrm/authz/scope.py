"""Caller identity, target records and the scope check that relates them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Scope(str, Enum):
    OWN = "own"
    DEPARTMENT = "department"
    ALL = "all"


@dataclass(frozen=True)
class Subject:
    """
    Runtime identity of the caller.

    Resolved per request from an access token; never persisted by the engine.
    """

    user_id: int | str
    role_id: str | None
    department_id: int | str | None = None


@dataclass(frozen=True)
class TargetReference:
    """Attributes of the record being accessed, supplied by the call site."""

    department_id: int | str | None = None
    owner_user_id: int | str | None = None


def parse_scope(value: object) -> Scope | None:
    """
    Parse a stored scope value.

    ``None`` or an empty string means "unset" and returns None (treated as
    ``all`` by the resolver). Unknown values raise ValueError; callers decide
    whether that is a configuration error or an entry to drop.
    """

    if value is None:
        return None
    if isinstance(value, Scope):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    try:
        return Scope(text)
    except ValueError:
        raise ValueError(f"unknown scope {value!r}") from None


def scope_satisfied(scope: Scope | None, subject: Subject, target: TargetReference | None) -> bool:
    if scope is None or scope is Scope.ALL:
        return True

    if target is None:
        return False

    if scope is Scope.OWN:
        if target.owner_user_id is None:
            return False
        return target.owner_user_id == subject.user_id

    if scope is Scope.DEPARTMENT:
        if target.department_id is None or subject.department_id is None:
            return False
        return target.department_id == subject.department_id

    return False
