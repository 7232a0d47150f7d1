"""Persisted role records: built-in sync and snapshot loading."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrm.authz import PermissionCatalog, Role, role_from_record, with_expanded_wildcards
from hrm.models.security import Role as RoleRecord

logger = logging.getLogger(__name__)


def sync_builtin_roles(db: Session, roles: Iterable[Role]) -> int:
    """
    Insert missing built-in roles and refresh existing system roles.

    Roles created by administrators (is_system=False) are never touched.
    Returns the number of rows inserted or updated. Does not commit.
    """

    changed = 0
    for role in roles:
        record = db.get(RoleRecord, role.id)
        payload = [p.to_dict() for p in role.permissions]

        if record is None:
            db.add(
                RoleRecord(
                    id=role.id,
                    name=role.name,
                    description=role.description,
                    level=role.level,
                    permissions=payload,
                    is_system=True,
                )
            )
            changed += 1
            logger.info("Created built-in role role=%s level=%s", role.id, role.level)
            continue

        if not record.is_system:
            logger.warning("Role id %s exists as a custom role; built-in definition skipped", role.id)
            continue

        if (record.name, record.description, record.level, record.permissions) != (
            role.name,
            role.description,
            role.level,
            payload,
        ):
            record.name = role.name
            record.description = role.description
            record.level = role.level
            record.permissions = payload
            changed += 1
            logger.info("Updated built-in role role=%s level=%s", role.id, role.level)

    db.flush()
    return changed


def load_roles_from_db(
    db: Session,
    catalog: PermissionCatalog | None = None,
) -> list[Role]:
    """
    Build Role objects from the roles table.

    Bad entries are dropped (see role_from_record). When a catalog is given,
    ``*`` entries are expanded against it.
    """

    roles: list[Role] = []
    for record in db.scalars(select(RoleRecord).order_by(RoleRecord.id)).all():
        role = role_from_record(
            record.id,
            record.name,
            record.level,
            record.permissions,
            description=record.description,
        )
        if role is not None:
            roles.append(role)

    if catalog is not None:
        roles = with_expanded_wildcards(roles, catalog)
    return roles
