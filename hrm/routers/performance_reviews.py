from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrm.db.session import get_db
from hrm.models.hr import Employee, PerformanceReview
from hrm.schemas.hr import PerformanceReviewCreate, PerformanceReviewOut
from hrm.security.context import AuthzContext, target_of
from hrm.security.dependencies import ensure_any_grant, ensure_permission, get_authz

router = APIRouter(prefix="/performance-reviews", tags=["performance_reviews"])


@router.get("", response_model=list[PerformanceReviewOut])
def list_performance_reviews(
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> list[PerformanceReview]:
    ensure_any_grant(authz, "read", "performance")
    return list(db.scalars(select(PerformanceReview).order_by(PerformanceReview.id)).all())


@router.post("", response_model=PerformanceReviewOut, status_code=status.HTTP_201_CREATED)
def create_performance_review(
    body: PerformanceReviewCreate,
    db: Session = Depends(get_db),
    authz: AuthzContext = Depends(get_authz),
) -> PerformanceReview:
    employee = db.scalars(select(Employee).where(Employee.id == body.employee_id)).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    ensure_permission(authz, "create", "performance", target_of(employee))

    if employee.owner_user_id is not None and employee.owner_user_id == authz.subject.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot review yourself")

    review = PerformanceReview(
        employee_id=employee.id,
        department_id=employee.department_id,
        owner_user_id=employee.owner_user_id,
        reviewer_id=authz.subject.user_id,
        review_date=body.review_date,
        rating=body.rating,
        comments=body.comments,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    return review
