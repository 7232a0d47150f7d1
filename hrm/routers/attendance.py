from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrm.db.session import get_db
from hrm.models.hr import AttendanceRecord, Employee
from hrm.schemas.hr import AttendanceCreate, AttendanceOut
from hrm.security.context import AuthzContext, target_of
from hrm.security.dependencies import ensure_any_grant, ensure_permission, get_authz

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("", response_model=list[AttendanceOut])
def list_attendance(db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> list[AttendanceRecord]:
    ensure_any_grant(authz, "read", "attendance")
    stmt = select(AttendanceRecord).order_by(AttendanceRecord.work_date.desc(), AttendanceRecord.id)
    return list(db.scalars(stmt).all())


@router.post("", response_model=AttendanceOut, status_code=status.HTTP_201_CREATED)
def record_attendance(
    body: AttendanceCreate,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> AttendanceRecord:
    employee = db.scalars(select(Employee).where(Employee.id == body.employee_id)).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    ensure_permission(authz, "create", "attendance", target_of(employee))

    if body.check_in and body.check_out and body.check_out < body.check_in:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="check_out is before check_in")

    record = AttendanceRecord(
        employee_id=employee.id,
        department_id=employee.department_id,
        owner_user_id=employee.owner_user_id,
        work_date=body.work_date,
        check_in=body.check_in,
        check_out=body.check_out,
        status=body.status,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
