"""Logging setup shared by the API and CLI entry points."""

from __future__ import annotations

import logging

from workforce_payroll.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once, using LOG_LEVEL when no level is given."""
    resolved = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, resolved, logging.INFO), format=LOG_FORMAT)
    # SQL echo is controlled separately by the engine
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
