"""
Role definitions and the in-memory role store.

Key ideas:
- Roles are loaded once (YAML for the built-in set, database at runtime) and
  exposed as an immutable snapshot.
- A refresh builds a complete new snapshot and swaps it in one assignment,
  so a concurrent reader never observes a half-updated role.
- Wildcard (``*``) entries are literal strings unless the loader is asked to
  expand them against the catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import threading
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import yaml

from .catalog import Permission, PermissionCatalog, UnknownPermissionError
from .scope import Scope, parse_scope

logger = logging.getLogger(__name__)

WILDCARD = "*"


# ---- Data structures -----------------------------------------------------------------


@dataclass(frozen=True)
class ScopedPermission:
    """A granted (action, resource) pair plus its optional scope."""

    action: str
    resource: str
    scope: Scope | None = None

    @property
    def permission(self) -> Permission:
        return Permission(self.action, self.resource)

    @property
    def effective_scope(self) -> Scope:
        return self.scope if self.scope is not None else Scope.ALL

    def to_dict(self) -> dict[str, str | None]:
        return {
            "action": self.action,
            "resource": self.resource,
            "scope": self.scope.value if self.scope is not None else None,
        }


@dataclass(frozen=True)
class Role:
    id: str
    name: str
    level: int
    permissions: tuple[ScopedPermission, ...] = ()
    description: str | None = None


class RoleConfigError(ValueError):
    """Raised when role definitions are invalid."""


# ---- Wildcard expansion --------------------------------------------------------------


def expand_wildcards(
    permissions: Iterable[ScopedPermission],
    catalog: PermissionCatalog,
) -> tuple[ScopedPermission, ...]:
    """
    Replace ``*`` entries with the concrete catalog pairs they cover.

    Order is preserved: each wildcard entry is expanded in place, and a pair
    that was already granted earlier in the list is not repeated, so the
    first-match policy of the engine sees the same winner as before.
    """

    result: list[ScopedPermission] = []
    granted: set[tuple[str, str]] = set()

    def _add(entry: ScopedPermission) -> None:
        key = (entry.action, entry.resource)
        if key in granted:
            return
        granted.add(key)
        result.append(entry)

    for entry in permissions:
        if entry.action != WILDCARD and entry.resource != WILDCARD:
            _add(entry)
            continue
        for perm in catalog.permissions():
            if entry.action not in (WILDCARD, perm.action):
                continue
            if entry.resource not in (WILDCARD, perm.resource):
                continue
            _add(ScopedPermission(perm.action, perm.resource, entry.scope))

    return tuple(result)


# ---- Loaders -------------------------------------------------------------------------


def _parse_entry(role_id: str, raw: Any, catalog: PermissionCatalog) -> ScopedPermission:
    if isinstance(raw, str):
        raw = {"permission": raw}
    if not isinstance(raw, dict):
        raise RoleConfigError(f"role {role_id!r}.permissions entries must be mappings or names")

    try:
        scope = parse_scope(raw.get("scope"))
    except ValueError as exc:
        raise RoleConfigError(f"role {role_id!r}: {exc}") from exc

    name = raw.get("permission")
    if name is not None:
        try:
            perm = catalog.lookup(str(name))
        except UnknownPermissionError as exc:
            raise RoleConfigError(f"role {role_id!r}: {exc}") from exc
        return ScopedPermission(perm.action, perm.resource, scope)

    action = str(raw.get("action", "")).strip()
    resource = str(raw.get("resource", "")).strip()
    if not action or not resource:
        raise RoleConfigError(f"role {role_id!r}: entry needs 'permission' or both 'action' and 'resource'")
    if WILDCARD not in (action, resource) and not catalog.has_pair(action, resource):
        raise RoleConfigError(f"role {role_id!r}: {action}:{resource} is not in the catalog")
    return ScopedPermission(action, resource, scope)


def _parse_level(role_id: str, raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise RoleConfigError(f"role {role_id!r}.level must be an integer")
    if raw < 1:
        raise RoleConfigError(f"role {role_id!r}.level must be positive, got {raw}")
    return raw


def load_role_definitions(path: Path, catalog: PermissionCatalog) -> list[Role]:
    """
    Load and validate role definitions from YAML.

    Expected shape:

        roles:
          employee:
            name: Employee
            description: Basic self-service access
            level: 3
            permissions:
              - permission: EMPLOYEE_READ
                scope: own
              - {action: "*", resource: "*", scope: all}
    """

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    roles_raw = raw.get("roles") or {}
    if not isinstance(roles_raw, dict):
        raise RoleConfigError("roles must be a mapping")

    roles: list[Role] = []
    for role_id, role_val in roles_raw.items():
        role_id = str(role_id)
        if not isinstance(role_val, dict):
            raise RoleConfigError(f"role {role_id!r} must be a mapping")

        perms_raw = role_val.get("permissions") or []
        if not isinstance(perms_raw, list):
            raise RoleConfigError(f"role {role_id!r}.permissions must be a list")

        description = role_val.get("description")
        roles.append(
            Role(
                id=role_id,
                name=str(role_val.get("name") or role_id),
                level=_parse_level(role_id, role_val.get("level")),
                permissions=tuple(_parse_entry(role_id, p, catalog) for p in perms_raw),
                description=str(description) if description is not None else None,
            )
        )

    return roles


def role_from_record(
    role_id: str,
    name: str,
    level: Any,
    permissions: Iterable[Mapping[str, Any]] | None,
    description: str | None = None,
) -> Role | None:
    """
    Build a Role from a persisted record, dropping what cannot be trusted.

    Entries with an unknown scope are dropped (denied), never widened to
    ``all``. A role whose level is not a positive integer is skipped.
    """

    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        logger.warning("Skipping role with invalid level role=%s level=%r", role_id, level)
        return None

    entries: list[ScopedPermission] = []
    for raw in permissions or ():
        if not isinstance(raw, Mapping):
            logger.warning("Dropping malformed permission entry role=%s entry=%r", role_id, raw)
            continue
        action = str(raw.get("action") or "").strip()
        resource = str(raw.get("resource") or "").strip()
        if not action or not resource:
            logger.warning("Dropping malformed permission entry role=%s entry=%r", role_id, raw)
            continue
        try:
            scope = parse_scope(raw.get("scope"))
        except ValueError:
            logger.warning(
                "Dropping permission with unknown scope role=%s perm=%s:%s scope=%r",
                role_id,
                action,
                resource,
                raw.get("scope"),
            )
            continue
        entries.append(ScopedPermission(action, resource, scope))

    return Role(id=role_id, name=name, level=level, permissions=tuple(entries), description=description)


# ---- Store ---------------------------------------------------------------------------


def _index(roles: Iterable[Role]) -> tuple[Mapping[str, Role], Mapping[str, Role]]:
    by_id: dict[str, Role] = {}
    by_name: dict[str, Role] = {}
    for role in roles:
        if role.id in by_id:
            raise RoleConfigError(f"duplicate role id {role.id!r}")
        by_id[role.id] = role
        by_name.setdefault(role.name, role)
    return MappingProxyType(by_id), MappingProxyType(by_name)


class RoleStore:
    """
    Read-only view over the current role snapshot.

    Usage:
        store = RoleStore.from_yaml(Path("config/roles.yaml"), HR_PERMISSIONS)
        role = store.get_role("employee")
    """

    def __init__(self, roles: Iterable[Role] = ()) -> None:
        self._snapshot = _index(roles)
        self._write_lock = threading.Lock()

    @classmethod
    def from_yaml(cls, path: Path, catalog: PermissionCatalog, *, expand: bool = True) -> RoleStore:
        roles = load_role_definitions(path, catalog)
        if expand:
            roles = with_expanded_wildcards(roles, catalog)
        return cls(roles)

    def get_role(self, role_id: str | None) -> Role | None:
        """Resolve by id first, then by display name. None if unknown."""
        if role_id is None:
            return None
        by_id, by_name = self._snapshot
        return by_id.get(role_id) or by_name.get(role_id)

    def snapshot(self) -> Mapping[str, Role]:
        return self._snapshot[0]

    def replace(self, roles: Iterable[Role]) -> None:
        """Swap in a new snapshot. Indexes are built before the swap."""
        new_snapshot = _index(roles)
        with self._write_lock:
            self._snapshot = new_snapshot
        logger.info("Role store replaced roles=%s", sorted(new_snapshot[0]))

    def __len__(self) -> int:
        return len(self._snapshot[0])

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._snapshot[0]


def _with_expanded(role: Role, catalog: PermissionCatalog) -> Role:
    return Role(
        id=role.id,
        name=role.name,
        level=role.level,
        permissions=expand_wildcards(role.permissions, catalog),
        description=role.description,
    )


def with_expanded_wildcards(roles: Iterable[Role], catalog: PermissionCatalog) -> list[Role]:
    return [_with_expanded(role, catalog) for role in roles]
