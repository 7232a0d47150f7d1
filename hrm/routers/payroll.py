from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrm.db.session import get_db
from hrm.models.hr import Employee, PayrollRecord
from hrm.schemas.hr import PayrollCreate, PayrollOut
from hrm.security.context import AuthzContext, target_of
from hrm.security.dependencies import ensure_any_grant, ensure_permission, get_authz

router = APIRouter(prefix="/payrolls", tags=["payroll"])


@router.get("", response_model=list[PayrollOut])
def list_payrolls(db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> list[PayrollRecord]:
    ensure_any_grant(authz, "read", "payroll")
    stmt = select(PayrollRecord).order_by(PayrollRecord.period_start.desc(), PayrollRecord.id)
    return list(db.scalars(stmt).all())


@router.post("", response_model=PayrollOut, status_code=status.HTTP_201_CREATED)
def create_payroll(
    body: PayrollCreate,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> PayrollRecord:
    employee = db.scalars(select(Employee).where(Employee.id == body.employee_id)).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    ensure_permission(authz, "create", "payroll", target_of(employee))

    if body.period_end < body.period_start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="period_end is before period_start")
    if body.deductions > body.gross_amount:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="deductions exceed gross amount")

    record = PayrollRecord(
        employee_id=employee.id,
        department_id=employee.department_id,
        owner_user_id=employee.owner_user_id,
        period_start=body.period_start,
        period_end=body.period_end,
        gross_amount=body.gross_amount,
        deductions=body.deductions,
        net_amount=round(body.gross_amount - body.deductions, 2),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
