from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from hrm.db.init_db import build_role_store
from hrm.db.session import get_db
from hrm.models.security import User
from hrm.schemas.security import RoleDetailOut, ScopedPermissionOut, UserOut
from hrm.security.context import AuthzContext
from hrm.security.decorators import require_level, require_permission
from hrm.security.dependencies import get_authz, get_permission_engine
from hrm.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# GET routes are gated in security_config.yaml (level 8 AND read permission).


@router.get("/users", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)) -> list[User]:
    stmt = select(User).options(selectinload(User.department), selectinload(User.role)).order_by(User.id)
    return list(db.scalars(stmt).all())


@router.get("/roles", response_model=list[RoleDetailOut])
def list_roles(request: Request) -> list[RoleDetailOut]:
    engine = get_permission_engine(request)
    roles = sorted(engine.store.snapshot().values(), key=lambda r: (-r.level, r.name))
    return [
        RoleDetailOut(
            id=role.id,
            name=role.name,
            level=role.level,
            description=role.description,
            permissions=[ScopedPermissionOut(**p.to_dict()) for p in role.permissions],
        )
        for role in roles
    ]


@router.post("/roles/reload", response_model=list[RoleDetailOut])
@require_level(9)
@require_permission("update", "roles")
def reload_roles(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    authz: AuthzContext = Depends(get_authz),
) -> list[RoleDetailOut]:
    """Rebuild the role snapshot from the roles table and swap it in."""
    engine = get_permission_engine(request)
    fresh = build_role_store(db, settings)
    engine.store.replace(fresh.snapshot().values())
    logger.info("Roles reloaded by user=%s count=%s", authz.subject.user_id, len(engine.store))
    return list_roles(request)
