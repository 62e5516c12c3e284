from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from bolao.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to ``target_revision``."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_tables() -> None:
    """Print the tables present in the configured database."""
    insp = inspect(make_engine())
    tables = sorted(insp.get_table_names())
    print("Current tables:", ", ".join(tables) or "(none)")


def main(argv: Optional[list[str]] = None) -> None:
    """Migrate to the given revision (``head`` by default) and list the tables."""
    args = sys.argv[1:] if argv is None else argv
    upgrade_db(args[0] if args else "head")
    print_tables()


if __name__ == "__main__":
    main()
