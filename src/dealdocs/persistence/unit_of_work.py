"""Units of work: one transaction, one bundle of repositories.

Every engine operation opens a unit of work, uses the repositories it yields
and either commits on normal exit or rolls back when an exception escapes.
The SQL implementation maps this onto a database transaction; the in-memory
implementation stages changes on a snapshot and swaps it in on commit.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from dealdocs.persistence.db import begin_conn, get_engine, is_database_configured
from dealdocs.persistence.memory import InMemoryState
from dealdocs.persistence.repositories import (
    DealsRepository,
    DocumentMovesRepository,
    DocumentRepairsRepository,
    DocumentsRepository,
    InMemoryDealsRepository,
    InMemoryDocumentMovesRepository,
    InMemoryDocumentRepairsRepository,
    InMemoryDocumentsRepository,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repositories:
    """Repositories bound to a single transaction."""

    deals: DealsRepository | InMemoryDealsRepository
    documents: DocumentsRepository | InMemoryDocumentsRepository
    moves: DocumentMovesRepository | InMemoryDocumentMovesRepository
    repairs: DocumentRepairsRepository | InMemoryDocumentRepairsRepository


class UnitOfWork(Protocol):
    """Opens a transaction and yields the repository bundle."""

    def begin(self) -> AbstractContextManager[Repositories]: ...


class SqlUnitOfWork:
    """Unit of work over a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def begin(self) -> Generator[Repositories, None, None]:
        """Open a connection and transaction.

        Commits on success, rolls back if the block raises.

        Yields:
            Repositories bound to the open transaction.
        """
        with begin_conn(self.engine) as conn:
            yield Repositories(
                deals=DealsRepository(conn),
                documents=DocumentsRepository(conn),
                moves=DocumentMovesRepository(conn),
                repairs=DocumentRepairsRepository(conn),
            )


class InMemoryUnitOfWork:
    """Unit of work over an in-memory state.

    Transactions are serialized by a re-entrant lock and see a snapshot of
    the committed state; the snapshot replaces the committed state only when
    the block exits normally.
    """

    def __init__(self, state: InMemoryState | None = None) -> None:
        self.state = state if state is not None else InMemoryState()
        self._lock = threading.RLock()

    @contextmanager
    def begin(self) -> Generator[Repositories, None, None]:
        with self._lock:
            staged = self.state.snapshot()
            yield Repositories(
                deals=InMemoryDealsRepository(staged),
                documents=InMemoryDocumentsRepository(staged),
                moves=InMemoryDocumentMovesRepository(staged),
                repairs=InMemoryDocumentRepairsRepository(staged),
            )
            self._commit(staged)

    def _commit(self, staged: InMemoryState) -> None:
        self.state.deals = staged.deals
        self.state.documents = staged.documents
        self.state.document_moves = staged.document_moves
        self.state.document_repairs = staged.document_repairs
        self.state.sequences = staged.sequences


def get_unit_of_work() -> SqlUnitOfWork | InMemoryUnitOfWork:
    """Factory to get the appropriate unit of work.

    Returns the SQL unit of work if a database is configured, otherwise an
    in-memory fallback.
    """
    if is_database_configured():
        return SqlUnitOfWork(get_engine())
    logger.warning("No database configured; using in-memory document storage")
    return InMemoryUnitOfWork()
