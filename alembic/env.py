from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy.engine import Connection, Engine
from dotenv import load_dotenv

# Ensure project root is on path and load environment variables
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from bolao.db.engine import DEFAULT_SQLITE_URL, make_engine  # noqa: E402
from bolao.db.utils import resolve_sqlite_url  # noqa: E402
from bolao.models import Base  # noqa: E402 - import registers every table

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    """Pick the URL from ``-x db_url=...``, then ``DB_URL``, then the default."""

    x_args = context.get_x_argument(as_dictionary=True)
    url = x_args.get("db_url") or os.getenv("DB_URL")
    if url:
        return resolve_sqlite_url(url, ROOT_DIR)
    return DEFAULT_SQLITE_URL


DATABASE_URL = _database_url()

# ConfigParser interpolation treats % specially.
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def run_migrations_offline() -> None:
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=DATABASE_URL.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable: Engine | Connection = make_engine(database_url=DATABASE_URL)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.engine.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
