"""Alembic environment configuration for document engine migrations.

Migrations are run programmatically (see dealdocs.persistence.migrate), which
passes an open connection through config.attributes. When invoked through the
alembic CLI instead, DEALDOCS_DATABASE_URL is used.
"""

from __future__ import annotations

import logging

from alembic import context

from dealdocs.persistence.db import create_db_engine, get_database_url
from dealdocs.persistence.schema import metadata

logger = logging.getLogger(__name__)

target_metadata = metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL and not an Engine.
    Calls to context.execute() emit SQL to stdout.
    """
    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    Uses the connection handed over by run_upgrade, or creates an engine
    from the environment.
    """
    connection = context.config.attributes.get("connection")
    if connection is not None:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()
        return

    engine = create_db_engine(get_database_url())
    with engine.connect() as conn:
        context.configure(connection=conn, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
