"""Utility helpers for the models package."""

from __future__ import annotations

import secrets
import string
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

TICKET_ALPHABET = string.ascii_uppercase + string.digits


def generate_ticket_code(
    session: Optional[Session] = None,
    prefix: str = "TK",
    length: int = 6,
    max_attempts: int = 32,
) -> str:
    """Return a ticket code such as ``TK-7Q2ZK9``.

    When a session is provided, the helper retries if the generated value is
    already present (or pending) in ``Participation.ticket_code``.
    """

    from .participation import Participation

    for _ in range(max_attempts):
        suffix = "".join(secrets.choice(TICKET_ALPHABET) for _ in range(length))
        candidate = f"{prefix}-{suffix}"

        if session is None:
            return candidate

        if any(
            isinstance(obj, Participation) and obj.ticket_code == candidate
            for obj in session.new
        ):
            continue

        exists = session.scalar(
            select(Participation.id).where(Participation.ticket_code == candidate)
        )
        if exists is None:
            return candidate

    raise RuntimeError("Unable to generate a unique ticket code after multiple attempts")
