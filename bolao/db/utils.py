from pathlib import Path
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Resolve 'sqlite:///./relative/path' to an absolute sqlite:/// URL.

    Keeps other URL forms unchanged.
    """
    prefix = "sqlite:///./"
    if not url.startswith(prefix):
        return url
    rel = url[len(prefix) :]
    return f"sqlite:///{(project_root / rel).resolve()}"


def dt_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert a datetime to an ISO 8601 string in UTC, or return None.

    Naive values (SQLite drops the offset) are taken to be UTC already.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def money_str(amount: Optional[Decimal]) -> Optional[str]:
    """Render a money amount with two decimals for JSON payloads."""
    if amount is None:
        return None
    return f"{Decimal(amount):.2f}"
