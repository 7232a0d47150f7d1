from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from hrm.authz import PermissionEngine
from hrm.db import filters as _filters  # noqa: F401  (register SQLAlchemy filters)
from hrm.db.init_db import build_role_store, init_db
from hrm.db.session import SessionLocal
from hrm.logging_config import configure_app_logging
from hrm.routers import (
    admin,
    attendance,
    auth,
    departments,
    employees,
    health,
    leave_requests,
    payroll,
    performance_reviews,
)
from hrm.security.config import load_security_config
from hrm.security.dependencies import enforce_security
from hrm.settings import get_settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        app.state.security_config = load_security_config(settings.resolved_security_config_path())
        logger.info("Loaded security config: %s", settings.resolved_security_config_path())

        init_db(settings)
        logger.info("Database initialized (tables ensured, roles synced)")

        with SessionLocal() as db:
            store = build_role_store(db, settings)
        app.state.permission_engine = PermissionEngine(store)
        logger.info("Role store loaded roles=%s", len(store))

        yield

    # Global dependency: authentication and level gates for every route.
    app = FastAPI(title="HRM", dependencies=[Depends(enforce_security)], lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(departments.router)
    app.include_router(employees.router)
    app.include_router(leave_requests.router)
    app.include_router(attendance.router)
    app.include_router(performance_reviews.router)
    app.include_router(payroll.router)
    app.include_router(admin.router)

    return app


app = create_app()
