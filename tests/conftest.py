"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other. API tests build the app
against a separate in-memory database seeded with the demo data.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


TEST_DB_URL = "sqlite:///:memory:"
REPO_ROOT = Path(__file__).resolve().parents[1]
ROLES_PATH = REPO_ROOT / "config" / "roles.yaml"
SECURITY_CONFIG_PATH = REPO_ROOT / "config" / "security_config.yaml"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from hrm.db.base import Base
    import hrm.models.hr  # noqa: F401
    import hrm.models.security  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def role_store():
    """Built-in roles from config/roles.yaml, wildcards expanded."""
    from hrm.authz import HR_PERMISSIONS, RoleStore

    return RoleStore.from_yaml(ROLES_PATH, HR_PERMISSIONS)


@dataclass
class ApiEnv:
    client: TestClient
    session_factory: sessionmaker
    token_for: Callable[[str], str]
    user_id: Callable[[str], int]

    def headers(self, username: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token_for(username)}"}

    def department_pk(self, code: str) -> int:
        from hrm.models.security import Department

        with self.session_factory() as db:
            return db.scalars(select(Department.id).where(Department.code == code)).one()

    def employee_pk(self, employee_code: str) -> int:
        from hrm.models.hr import Employee

        with self.session_factory() as db:
            return db.scalars(select(Employee.id).where(Employee.employee_id == employee_code)).one()

    def leave_pk(self, employee_code: str) -> int:
        """Id of the first leave request filed for the given employee."""
        from hrm.models.hr import LeaveRequest

        employee_id = self.employee_pk(employee_code)
        with self.session_factory() as db:
            stmt = select(LeaveRequest.id).where(LeaveRequest.employee_id == employee_id).order_by(LeaveRequest.id)
            return db.scalars(stmt).first()


@pytest.fixture
def api():
    """
    TestClient over a seeded in-memory database.

    Startup (lifespan) is skipped; app.state is filled in here so the app
    never touches the on-disk database.
    """
    from hrm.authz import PermissionEngine
    from hrm.db.base import Base
    from hrm.db.init_db import build_role_store, prepare_database
    from hrm.db.session import bind_request_authz, get_db
    from hrm.main import create_app
    from hrm.models.security import User
    from hrm.security.config import load_security_config
    from hrm.security.tokens import issue_token_pair
    from hrm.settings import get_settings

    settings = get_settings()
    test_engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    TestSession = sessionmaker(bind=test_engine, autocommit=False, autoflush=False, class_=Session)

    with TestSession() as db:
        prepare_database(db, settings.model_copy(update={"seed_demo_data": True}))
        db.commit()
        store = build_role_store(db, settings)

    app = create_app()
    app.state.security_config = load_security_config(SECURITY_CONFIG_PATH)
    app.state.permission_engine = PermissionEngine(store)

    def _get_test_db(request: Request):
        db = TestSession()
        try:
            bind_request_authz(db, request)
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    # Cheapest bcrypt cost keeps password tests fast.
    fast_settings = settings.model_copy(update={"password_hash_rounds": 4})
    app.dependency_overrides[get_settings] = lambda: fast_settings

    def user_id(username: str) -> int:
        with TestSession() as db:
            return db.scalars(select(User.id).where(User.username == username)).one()

    def token_for(username: str) -> str:
        with TestSession() as db:
            user = db.scalars(select(User).where(User.username == username)).one()
            return issue_token_pair(user, settings).access_token

    yield ApiEnv(client=TestClient(app), session_factory=TestSession, token_for=token_for, user_id=user_id)

    app.dependency_overrides.clear()
    test_engine.dispose()
