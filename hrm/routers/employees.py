from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrm.authz import Scope, TargetReference
from hrm.db.session import get_db
from hrm.models.hr import AttendanceRecord, Employee, LeaveRequest, PayrollRecord, PerformanceReview
from hrm.models.security import User
from hrm.schemas.hr import EmployeeCreate, EmployeeOut, EmployeeUpdate
from hrm.security.context import AuthzContext, target_of
from hrm.security.dependencies import ensure_any_grant, ensure_permission, get_authz

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


def _get_employee(db: Session, id: int) -> Employee:
    employee = db.scalars(select(Employee).where(Employee.id == id)).first()
    if employee is None:
        # Rows outside the caller's read scope are filtered out and look the same
        # as rows that do not exist.
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


@router.get("", response_model=list[EmployeeOut])
def list_employees(db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> list[Employee]:
    ensure_any_grant(authz, "read", "employee")
    return list(db.scalars(select(Employee).order_by(Employee.id)).all())


@router.get("/{id}", response_model=EmployeeOut)
def get_employee(id: int, db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> Employee:
    employee = _get_employee(db, id)
    ensure_permission(authz, "read", "employee", target_of(employee))
    return employee


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
def create_employee(
    body: EmployeeCreate,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> Employee:
    target = TargetReference(department_id=body.department_id, owner_user_id=body.owner_user_id)
    ensure_permission(authz, "create", "employee", target)

    employee = Employee(**body.model_dump())
    db.add(employee)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Employee id, email or linked user already in use",
        ) from exc
    db.refresh(employee)
    logger.info("Employee created id=%s by user=%s", employee.id, authz.subject.user_id)
    return employee


# Fields an own-scope grant may change; everything else needs a wider grant.
SELF_SERVICE_FIELDS = frozenset({"first_name", "last_name", "email"})

_DEPARTMENT_LINKED = (LeaveRequest, AttendanceRecord, PerformanceReview, PayrollRecord)


def _move_linked_rows(db: Session, employee: Employee, department_id: int) -> None:
    """Keep the denormalized department_id of an employee's records and user in step."""
    for model in _DEPARTMENT_LINKED:
        db.execute(update(model).where(model.employee_id == employee.id).values(department_id=department_id))
    if employee.owner_user_id is not None:
        db.execute(update(User).where(User.id == employee.owner_user_id).values(department_id=department_id))


@router.patch("/{id}", response_model=EmployeeOut)
def update_employee(
    id: int,
    body: EmployeeUpdate,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> Employee:
    employee = _get_employee(db, id)
    ensure_permission(authz, "update", "employee", target_of(employee))

    changes = body.model_dump(exclude_unset=True)
    restricted = sorted(
        field for field, value in changes.items()
        if field not in SELF_SERVICE_FIELDS and getattr(employee, field) != value
    )
    if restricted:
        grant = authz.grant_for("update", "employee")
        if grant is None or grant.effective_scope is Scope.OWN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Cannot change {', '.join(restricted)} on your own record",
            )

    new_department = changes.get("department_id")
    moved = "department_id" in restricted
    if moved:
        if new_department is None:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="department_id cannot be null")
        # Moving someone requires update rights over the destination too.
        ensure_permission(
            authz,
            "update",
            "employee",
            TargetReference(department_id=new_department, owner_user_id=employee.owner_user_id),
        )

    for field, value in changes.items():
        setattr(employee, field, value)
    if moved:
        _move_linked_rows(db, employee, new_department)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already in use") from exc
    db.refresh(employee)
    if moved:
        logger.info("Employee moved id=%s department=%s by user=%s", employee.id, new_department, authz.subject.user_id)
    return employee


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_employee(id: int, db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> Response:
    employee = _get_employee(db, id)
    ensure_permission(authz, "delete", "employee", target_of(employee))

    db.delete(employee)
    db.commit()
    logger.info("Employee deleted id=%s by user=%s", id, authz.subject.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
