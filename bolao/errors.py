"""Exceptions raised by the scoring core and the reprocessing workflows."""

from __future__ import annotations

from typing import Any, Optional


class BolaoError(Exception):
    """Base class for every error raised by :mod:`bolao`."""


class ConfigurationError(BolaoError, ValueError):
    """Percentage configuration is invalid (negative or not summing to 100)."""


class InputValidationError(BolaoError, ValueError):
    """A single participation or draw record is structurally malformed.

    Parameters
    ----------
    message : str
        Human readable description of the problem.
    record_id : Optional[Any], default: None
        Identifier of the offending record, when known.
    """

    def __init__(self, message: str, *, record_id: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_id = record_id


class DrawProcessingError(BolaoError):
    """Computing or persisting the results of one draw failed."""

    def __init__(self, draw_id: Any, message: str) -> None:
        super().__init__(f"Draw {draw_id!r}: {message}")
        self.draw_id = draw_id
        self.message = message


class ReprocessError(BolaoError):
    """The core inputs of a reprocessing pass could not be read."""


__all__ = [
    "BolaoError",
    "ConfigurationError",
    "InputValidationError",
    "DrawProcessingError",
    "ReprocessError",
]
