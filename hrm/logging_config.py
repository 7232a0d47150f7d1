from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level for the ``hrm`` logger tree.

    Uvicorn installs its own handlers; when running without it (scripts,
    tests, ``python -m``) a plain stream handler is added so messages are
    not lost. Set ``HRM_LOG_LEVEL=DEBUG`` to see individual authorization
    decisions.
    """

    normalized = level.upper()
    app_logger = logging.getLogger("hrm")
    app_logger.setLevel(normalized)

    if not logging.getLogger().handlers and not app_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)
        app_logger.propagate = False
