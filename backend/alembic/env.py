"""
Alembic environment for the queueskip schema.

Migrations use the synchronous driver. The URL comes from DATABASE_URL_SYNC
unless overridden on the command line:

    alembic -x url=sqlite:///./queueskip.db upgrade head
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

import queueskip.models  # noqa: F401  registers every table on Base.metadata
from queueskip.core.config import get_settings
from queueskip.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("url") or get_settings().DATABASE_URL_SYNC


def _configure(url: str, **kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        # SQLite cannot ALTER constraints in place
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


url = _database_url()
if context.is_offline_mode():
    _configure(url, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    connectable = create_engine(url, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(url, connection=connection)
        with context.begin_transaction():
            context.run_migrations()
