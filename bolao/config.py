"""Environment-driven settings."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from dotenv import load_dotenv

from .scoring.payouts import PercentConfig

_PERCENT_ENV = {
    "top_pct": ("BOLAO_TOP_PCT", "65"),
    "second_pct": ("BOLAO_SECOND_PCT", "10"),
    "lowest_pct": ("BOLAO_LOWEST_PCT", "7"),
    "admin_fee_pct": ("BOLAO_ADMIN_FEE_PCT", "18"),
}


def default_percent_config(environ: Optional[Mapping[str, str]] = None) -> PercentConfig:
    """Return the fallback percentage split.

    Values come from ``BOLAO_TOP_PCT``, ``BOLAO_SECOND_PCT``,
    ``BOLAO_LOWEST_PCT`` and ``BOLAO_ADMIN_FEE_PCT``; unset variables use
    the 65/10/7/18 split. The result is validated, so a bad environment
    raises :class:`~bolao.errors.ConfigurationError`.
    """

    if environ is None:
        load_dotenv()
        environ = os.environ
    values = {
        field: environ.get(env_name) or default
        for field, (env_name, default) in _PERCENT_ENV.items()
    }
    return PercentConfig(**values)


def log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    if environ is None:
        load_dotenv()
        environ = os.environ
    return str(environ.get("BOLAO_LOG_LEVEL", "INFO")).upper()


__all__ = ["default_percent_config", "log_level"]
