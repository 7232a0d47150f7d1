from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrm.db.session import get_db
from hrm.models.hr import (
    LEAVE_APPROVED,
    LEAVE_CANCELLED,
    LEAVE_PENDING,
    LEAVE_REJECTED,
    Employee,
    LeaveRequest,
)
from hrm.schemas.hr import LeaveRequestCreate, LeaveRequestOut
from hrm.security.context import AuthzContext, target_of
from hrm.security.dependencies import ensure_any_grant, ensure_permission, get_authz

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leave-requests", tags=["leave_requests"])


def _get_leave_request(db: Session, id: int) -> LeaveRequest:
    leave = db.scalars(select(LeaveRequest).where(LeaveRequest.id == id)).first()
    if leave is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Leave request not found")
    return leave


def _review(db: Session, authz: AuthzContext, id: int, action: str, new_status: str) -> LeaveRequest:
    leave = _get_leave_request(db, id)
    ensure_permission(authz, action, "leave", target_of(leave))

    if leave.status != LEAVE_PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Leave request is {leave.status}; only pending requests can be reviewed",
        )

    leave.status = new_status
    leave.reviewed_by_id = authz.subject.user_id
    leave.reviewed_at = datetime.utcnow()
    db.commit()
    db.refresh(leave)
    logger.info("Leave request %s id=%s by user=%s", new_status, id, authz.subject.user_id)
    return leave


@router.get("", response_model=list[LeaveRequestOut])
def list_leave_requests(db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> list[LeaveRequest]:
    ensure_any_grant(authz, "read", "leave")
    return list(db.scalars(select(LeaveRequest).order_by(LeaveRequest.id)).all())


@router.post("", response_model=LeaveRequestOut, status_code=status.HTTP_201_CREATED)
def create_leave_request(
    body: LeaveRequestCreate,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> LeaveRequest:
    employee = db.scalars(select(Employee).where(Employee.id == body.employee_id)).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    ensure_permission(authz, "create", "leave", target_of(employee))

    leave = LeaveRequest(
        employee_id=employee.id,
        department_id=employee.department_id,
        owner_user_id=employee.owner_user_id,
        leave_type=body.leave_type,
        start_date=body.start_date,
        end_date=body.end_date,
        reason=body.reason,
        status=LEAVE_PENDING,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


@router.post("/{id}/approve", response_model=LeaveRequestOut)
def approve_leave_request(id: int, db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> LeaveRequest:
    return _review(db, authz, id, "approve", LEAVE_APPROVED)


@router.post("/{id}/reject", response_model=LeaveRequestOut)
def reject_leave_request(id: int, db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> LeaveRequest:
    return _review(db, authz, id, "reject", LEAVE_REJECTED)


@router.post("/{id}/cancel", response_model=LeaveRequestOut)
def cancel_leave_request(id: int, db: Session = Depends(get_db), authz: AuthzContext = Depends(get_authz)) -> LeaveRequest:
    leave = _get_leave_request(db, id)
    ensure_permission(authz, "cancel", "leave", target_of(leave))

    if leave.status not in (LEAVE_PENDING, LEAVE_APPROVED):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Leave request is {leave.status}")

    leave.status = LEAVE_CANCELLED
    db.commit()
    db.refresh(leave)
    return leave
