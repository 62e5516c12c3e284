"""Logging configuration for scripts."""

from __future__ import annotations

import logging
from typing import Optional

from .config import log_level


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging with a plain single-line format.

    ``level`` defaults to ``BOLAO_LOG_LEVEL`` (``INFO`` when unset).
    """

    level_name = (level or log_level()).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
