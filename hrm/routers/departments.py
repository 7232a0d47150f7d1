from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrm.db.session import get_db
from hrm.models.security import Department
from hrm.schemas.security import DepartmentCreate, DepartmentOut
from hrm.security.context import AuthzContext
from hrm.security.decorators import require_permission
from hrm.security.dependencies import ensure_any_grant, get_authz

router = APIRouter(prefix="/departments", tags=["departments"])


@router.get("", response_model=list[DepartmentOut])
def list_departments(db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> list[Department]:
    ensure_any_grant(authz, "read", "department")
    return list(db.scalars(select(Department).order_by(Department.id)).all())


@router.post("", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
@require_permission("create", "department")
def create_department(body: DepartmentCreate, db: Session = Depends(get_db)) -> Department:
    department = Department(name=body.name, code=body.code.upper(), description=body.description)
    db.add(department)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Department name or code already exists") from exc
    db.refresh(department)
    return department
