from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrm.authz import HR_PERMISSIONS, RoleStore, load_role_definitions
from hrm.db.base import Base
from hrm.db.roles import load_roles_from_db, sync_builtin_roles
from hrm.db.session import SessionLocal, engine
from hrm.models.hr import AttendanceRecord, Employee, LeaveRequest, PayrollRecord, PerformanceReview
from hrm.models.security import Department, User
from hrm.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def init_db(settings: Settings | None = None) -> None:
    """
    Create tables, sync built-in roles, and seed demo data on an empty database.
    """

    settings = settings or get_settings()
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        prepare_database(db, settings)
        db.commit()


def prepare_database(db: Session, settings: Settings) -> None:
    builtin = load_role_definitions(settings.resolved_roles_config_path(), HR_PERMISSIONS)
    changed = sync_builtin_roles(db, builtin)
    logger.info("Built-in roles synced changed=%s total=%s", changed, len(builtin))

    if settings.seed_demo_data and not _has_seed_data(db):
        seed_demo_data(db)
        logger.info("Demo data seeded")


def build_role_store(db: Session, settings: Settings) -> RoleStore:
    catalog = HR_PERMISSIONS if settings.expand_wildcards else None
    return RoleStore(load_roles_from_db(db, catalog))


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Department.id).limit(1)).first() is not None


def seed_demo_data(db: Session) -> None:
    # Departments
    hr = Department(name="Human Resources", code="HR", description="HR Department")
    it = Department(name="Information Technology", code="IT", description="IT Department")
    fin = Department(name="Finance", code="FIN", description="Finance Department")
    db.add_all([hr, it, fin])
    db.flush()

    # Users (roles come from sync_builtin_roles)
    users = [
        User(username="sam_super", email="sam.super@example.com", phone="+15550000000", department_id=hr.id, role_id="super_admin"),
        User(username="alice_admin", email="alice.admin@example.com", phone="+15550000001", department_id=hr.id, role_id="admin"),
        User(username="harry_hr", email="harry.hr@example.com", phone="+15550000002", department_id=hr.id, role_id="hr_admin"),
        User(username="mona_mgr_it", email="mona.itmgr@example.com", phone="+15550000003", department_id=it.id, role_id="dept_manager"),
        User(username="ed_it", email="ed.it@example.com", phone="+15550000004", department_id=it.id, role_id="employee"),
        User(username="fran_fin", email="fran.fin@example.com", phone="+15550000005", department_id=fin.id, role_id="employee"),
        User(username="vic_viewer", email="vic.viewer@example.com", phone="+15550000006", department_id=None, role_id="viewer"),
    ]
    db.add_all(users)
    db.flush()
    by_name = {u.username: u for u in users}

    # Employees
    ed = Employee(
        employee_id="E-1001",
        first_name="Ed",
        last_name="Engineer",
        email="ed.engineer@example.com",
        department_id=it.id,
        owner_user_id=by_name["ed_it"].id,
        position="Software Engineer",
        salary=120000.00,
        hire_date=date(2022, 6, 1),
    )
    ivy = Employee(
        employee_id="E-1002",
        first_name="Ivy",
        last_name="IT",
        email="ivy.it@example.com",
        department_id=it.id,
        position="IT Analyst",
        salary=85000.00,
        hire_date=date(2023, 2, 15),
    )
    mona = Employee(
        employee_id="E-1003",
        first_name="Mona",
        last_name="Manager",
        email="mona.manager@example.com",
        department_id=it.id,
        owner_user_id=by_name["mona_mgr_it"].id,
        position="IT Manager",
        salary=140000.00,
        hire_date=date(2020, 1, 6),
    )
    fran = Employee(
        employee_id="E-2001",
        first_name="Fran",
        last_name="Finance",
        email="fran.finance@example.com",
        department_id=fin.id,
        owner_user_id=by_name["fran_fin"].id,
        position="Accountant",
        salary=90000.00,
        hire_date=date(2021, 9, 10),
    )
    db.add_all([ed, ivy, mona, fran])
    db.flush()

    db.add_all(
        [
            LeaveRequest(
                employee_id=ed.id,
                department_id=it.id,
                owner_user_id=ed.owner_user_id,
                leave_type="annual",
                start_date=date(2026, 7, 1),
                end_date=date(2026, 7, 10),
                reason="Summer vacation",
            ),
            LeaveRequest(
                employee_id=fran.id,
                department_id=fin.id,
                owner_user_id=fran.owner_user_id,
                leave_type="sick",
                start_date=date(2026, 3, 2),
                end_date=date(2026, 3, 3),
            ),
            AttendanceRecord(
                employee_id=ed.id,
                department_id=it.id,
                owner_user_id=ed.owner_user_id,
                work_date=date(2026, 1, 5),
                check_in=datetime(2026, 1, 5, 9, 0),
                check_out=datetime(2026, 1, 5, 17, 30),
            ),
            AttendanceRecord(
                employee_id=fran.id,
                department_id=fin.id,
                owner_user_id=fran.owner_user_id,
                work_date=date(2026, 1, 5),
                check_in=datetime(2026, 1, 5, 8, 45),
                check_out=datetime(2026, 1, 5, 17, 0),
            ),
            PerformanceReview(
                employee_id=ed.id,
                department_id=it.id,
                owner_user_id=ed.owner_user_id,
                review_date=date(2025, 12, 15),
                rating=5,
                comments="Excellent performance.",
            ),
            PerformanceReview(
                employee_id=ivy.id,
                department_id=it.id,
                review_date=date(2025, 11, 20),
                rating=3,
                comments="Meets expectations.",
            ),
            PerformanceReview(
                employee_id=fran.id,
                department_id=fin.id,
                owner_user_id=fran.owner_user_id,
                review_date=date(2025, 10, 10),
                rating=4,
                comments="Strong performer.",
            ),
            PayrollRecord(
                employee_id=ed.id,
                department_id=it.id,
                owner_user_id=ed.owner_user_id,
                period_start=date(2026, 1, 1),
                period_end=date(2026, 1, 31),
                gross_amount=10000.00,
                deductions=2500.00,
                net_amount=7500.00,
            ),
            PayrollRecord(
                employee_id=fran.id,
                department_id=fin.id,
                owner_user_id=fran.owner_user_id,
                period_start=date(2026, 1, 1),
                period_end=date(2026, 1, 31),
                gross_amount=7500.00,
                deductions=1800.00,
                net_amount=5700.00,
            ),
        ]
    )
    db.flush()
