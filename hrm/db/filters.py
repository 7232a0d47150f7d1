from __future__ import annotations

from sqlalchemy import event, false
from sqlalchemy.orm import Session, with_loader_criteria

from hrm.authz import Scope


@event.listens_for(Session, "do_orm_execute")
def _apply_scope_filters(execute_state) -> None:
    """
    Transparent read scoping.

    Keeps route queries plain:
        db.scalars(select(LeaveRequest)).all()
    still returns only the rows the caller's ``read`` grant covers:
    - scope all (or unset) -> no filter
    - scope department     -> rows of the caller's department
    - scope own            -> rows owned by the caller
    - no read grant        -> no rows
    """

    if not execute_state.is_select:
        return

    authz = execute_state.session.info.get("authz")
    if authz is None:
        return

    # Local import to avoid cycles.
    from hrm.models.hr import AttendanceRecord, Employee, LeaveRequest, PayrollRecord, PerformanceReview  # noqa: WPS433

    scoped_models = (
        (Employee, "employee"),
        (LeaveRequest, "leave"),
        (AttendanceRecord, "attendance"),
        (PerformanceReview, "performance"),
        (PayrollRecord, "payroll"),
    )

    options = []
    for model, resource in scoped_models:
        option = _read_criteria(model, authz, resource)
        if option is not None:
            options.append(option)

    if options:
        execute_state.statement = execute_state.statement.options(*options)


def _read_criteria(model, authz, resource: str):
    grant = authz.grant_for("read", resource)
    if grant is None:
        return with_loader_criteria(model, false(), include_aliases=True)

    scope = grant.effective_scope
    if scope is Scope.ALL:
        return None

    if scope is Scope.DEPARTMENT:
        dept_id = authz.subject.department_id
        if dept_id is None:
            return with_loader_criteria(model, false(), include_aliases=True)
        return with_loader_criteria(model, model.department_id == dept_id, include_aliases=True)

    user_id = authz.subject.user_id
    return with_loader_criteria(model, model.owner_user_id == user_id, include_aliases=True)
