from __future__ import annotations

from dataclasses import dataclass

from hrm.authz import PermissionEngine, ScopedPermission, Subject, TargetReference


@dataclass(frozen=True)
class AuthzContext:
    """
    Per-request authorization context.

    Attached to:
    - request.state (FastAPI request lifetime)
    - Session.info (SQLAlchemy session lifetime, read by hrm/db/filters.py)
    """

    subject: Subject
    engine: PermissionEngine

    def can(self, action: str, resource: str, target: TargetReference | None = None) -> bool:
        return self.engine.has_permission(self.subject, action, resource, target)

    def has_level(self, required_level: int) -> bool:
        return self.engine.has_level(self.subject, required_level)

    def grant_for(self, action: str, resource: str) -> ScopedPermission | None:
        return self.engine.find_grant(self.subject, action, resource)


def target_of(record) -> TargetReference:
    """Build a TargetReference from any HR row carrying department_id/owner_user_id."""
    return TargetReference(
        department_id=getattr(record, "department_id", None),
        owner_user_id=getattr(record, "owner_user_id", None),
    )
