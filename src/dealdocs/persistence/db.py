"""Relational store connectivity and connection helpers.

Provides engine creation and transactional connection management.

Environment Variables:
    DEALDOCS_DATABASE_URL: SQLAlchemy connection string (PostgreSQL in
        production, SQLite for local runs)

Design Requirements:
    - Fail closed on missing configuration
    - Every write happens inside an explicit transaction
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = logging.getLogger(__name__)

DEALDOCS_DATABASE_URL_ENV = "DEALDOCS_DATABASE_URL"

_engine: Engine | None = None


class DatabaseConfigError(Exception):
    """Raised when database configuration is missing or invalid.

    This is a fail-closed error - operations requiring the database
    should not proceed without valid configuration.
    """

    pass


def is_database_configured() -> bool:
    """Check if a relational store is configured via environment.

    Returns:
        True if DEALDOCS_DATABASE_URL is set, False otherwise.
    """
    return bool(os.environ.get(DEALDOCS_DATABASE_URL_ENV))


def _normalize_url(url: str) -> str:
    """Rewrite the legacy postgres:// scheme SQLAlchemy no longer accepts.

    Args:
        url: Original database URL.

    Returns:
        URL with a scheme SQLAlchemy recognizes.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_database_url() -> str:
    """Get the database URL from environment.

    Returns:
        Database connection string.

    Raises:
        DatabaseConfigError: If the environment variable is not set.
    """
    url = os.environ.get(DEALDOCS_DATABASE_URL_ENV)

    if not url:
        raise DatabaseConfigError(
            f"Database URL not configured. Set {DEALDOCS_DATABASE_URL_ENV} environment variable."
        )

    return _normalize_url(url)


def create_db_engine(url: str) -> Engine:
    """Create an engine for the given URL.

    SQLite engines get no pool sizing; everything else gets a small
    pre-pinged pool.

    Args:
        url: SQLAlchemy connection string.

    Returns:
        SQLAlchemy Engine.
    """
    url = _normalize_url(url)
    if url.startswith("sqlite"):
        return create_engine(url, echo=False)
    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=False,
    )


def get_engine() -> Engine:
    """Get or create the process-wide database engine.

    Returns:
        SQLAlchemy Engine.

    Raises:
        DatabaseConfigError: If DEALDOCS_DATABASE_URL is not set.
    """
    global _engine

    if _engine is None:
        _engine = create_db_engine(get_database_url())
        logger.info("Created database engine")

    return _engine


@contextmanager
def begin_conn(engine: Engine | None = None) -> Generator[Connection, None, None]:
    """Context manager for a database connection with transaction.

    Opens a connection, begins a transaction, yields the connection, and
    commits on success or rolls back on error.

    Args:
        engine: Engine to use (default: process-wide engine).

    Yields:
        SQLAlchemy Connection in a transaction.

    Raises:
        DatabaseConfigError: If database is not configured.
        SQLAlchemyError: If database operation fails.
    """
    engine = engine if engine is not None else get_engine()
    with engine.connect() as conn, conn.begin():
        yield conn


def reset_engine() -> None:
    """Reset the global engine instance.

    Used for testing to ensure fresh engine creation.
    """
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
