"""
Permission catalog.

Every (action, resource) pair the application understands is declared here
once, under a stable name such as ``EMPLOYEE_READ``. Role definitions refer
to these names; referencing a name that is not in the catalog is a
programming error and fails immediately.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping


@dataclass(frozen=True)
class Permission:
    """A single (action, resource) pair. Identity is the pair itself."""

    action: str
    resource: str

    def __str__(self) -> str:
        return f"{self.action}:{self.resource}"


class UnknownPermissionError(LookupError):
    """Raised when a catalog name is not defined."""


class PermissionCatalog:
    """Immutable, named set of permissions."""

    def __init__(self, entries: Mapping[str, Permission] | Iterable[tuple[str, Permission]]) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries

        by_name: dict[str, Permission] = {}
        seen_pairs: set[Permission] = set()
        for name, perm in items:
            if name in by_name:
                raise ValueError(f"duplicate catalog name {name!r}")
            if perm in seen_pairs:
                raise ValueError(f"duplicate catalog pair {str(perm)!r} (name {name!r})")
            by_name[name] = perm
            seen_pairs.add(perm)

        self._by_name = by_name
        self._pairs = frozenset(seen_pairs)

    def lookup(self, name: str) -> Permission:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownPermissionError(f"permission {name!r} is not in the catalog") from None

    def permissions(self) -> tuple[Permission, ...]:
        """All pairs, in declaration order."""
        return tuple(self._by_name.values())

    def has_pair(self, action: str, resource: str) -> bool:
        return Permission(action, resource) in self._pairs

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)


def _build(resources: Mapping[str, tuple[str, ...]]) -> PermissionCatalog:
    entries: list[tuple[str, Permission]] = []
    for resource, actions in resources.items():
        for action in actions:
            entries.append((f"{resource.upper()}_{action.upper()}", Permission(action, resource)))
    return PermissionCatalog(entries)


HR_PERMISSIONS = _build(
    {
        "employee": ("read", "create", "update", "delete", "import", "export"),
        "department": ("read", "create", "update", "delete"),
        "attendance": ("read", "create", "update", "delete", "approve", "reject"),
        "leave": ("read", "create", "update", "delete", "approve", "reject", "cancel"),
        "payroll": ("read", "create", "update", "delete", "approve", "process"),
        "performance": ("read", "create", "update", "delete"),
        "reports": ("read", "create", "export"),
        "settings": ("read", "update"),
        "users": ("read", "create", "update", "delete", "manage"),
        "roles": ("read", "create", "update", "delete"),
        "audit": ("read", "export"),
    }
)
