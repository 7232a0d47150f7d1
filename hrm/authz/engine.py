"""
Permission decision engine.

Answers two independent questions for a caller:

    has_permission(subject, action, resource, target)?
        Fine-grained: the subject's role must grant exactly (action, resource)
        and the grant's scope must cover the target record.

    has_level(subject, required_level)?
        Coarse: the subject's role level must be at least the threshold.

Call sites that need both combine them explicitly with ``and``. Neither check
raises; misconfiguration (unknown role, missing target identity) is a deny.

This module is pure Python and has no FastAPI dependency.
"""

from __future__ import annotations

import logging

from .roles import RoleStore, ScopedPermission
from .scope import Subject, TargetReference, scope_satisfied

logger = logging.getLogger(__name__)


class PermissionEngine:
    """
    Stateless decisions over a RoleStore.

    Usage:
        engine = PermissionEngine(store)
        allowed = engine.has_permission(subject, "approve", "leave", TargetReference(department_id=3))
    """

    def __init__(self, store: RoleStore) -> None:
        self._store = store

    @property
    def store(self) -> RoleStore:
        return self._store

    def permissions_for(self, subject: Subject) -> tuple[ScopedPermission, ...]:
        role = self._store.get_role(subject.role_id)
        return role.permissions if role is not None else ()

    def find_grant(self, subject: Subject, action: str, resource: str) -> ScopedPermission | None:
        """
        Return the first entry granting exactly (action, resource).

        ``*`` is compared literally; expand wildcards before loading roles if
        that behaviour is wanted.
        """

        role = self._store.get_role(subject.role_id)
        if role is None:
            logger.debug("authz: unknown role role=%s user=%s", subject.role_id, subject.user_id)
            return None

        for entry in role.permissions:
            if entry.action == action and entry.resource == resource:
                return entry
        return None

    def has_permission(
        self,
        subject: Subject,
        action: str,
        resource: str,
        target: TargetReference | None = None,
    ) -> bool:
        grant = self.find_grant(subject, action, resource)
        if grant is None:
            logger.debug(
                "authz: denied (no grant) user=%s role=%s perm=%s:%s",
                subject.user_id,
                subject.role_id,
                action,
                resource,
            )
            return False

        allowed = scope_satisfied(grant.scope, subject, target)
        logger.debug(
            "authz: %s user=%s role=%s perm=%s:%s scope=%s target=%s",
            "allowed" if allowed else "denied (out of scope)",
            subject.user_id,
            subject.role_id,
            action,
            resource,
            grant.effective_scope.value,
            target,
        )
        return allowed

    def level_of(self, subject: Subject) -> int:
        role = self._store.get_role(subject.role_id)
        return role.level if role is not None else 0

    def has_level(self, subject: Subject, required_level: int) -> bool:
        role = self._store.get_role(subject.role_id)
        if role is None:
            return False
        return role.level >= required_level
