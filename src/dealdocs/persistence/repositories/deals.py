"""Deals repository.

The document engine only reads deals (existence checks, names for the
mismatch heuristic); create is provided for seeding and tests.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select

from dealdocs.models.deal import Deal
from dealdocs.persistence.schema import deals

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from dealdocs.persistence.memory import InMemoryState

logger = logging.getLogger(__name__)


class DealsRepository:
    """Repository for deal persistence operations."""

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with a connection.

        Args:
            conn: SQLAlchemy connection (must be in a transaction).
        """
        self._conn = conn

    def create(self, *, name: str) -> Deal:
        """Create a new deal.

        Args:
            name: Deal name.

        Returns:
            Created deal.
        """
        now = datetime.now(UTC)
        result = self._conn.execute(insert(deals).values(name=name, created_at=now))
        deal_id = result.inserted_primary_key[0]
        return Deal(id=deal_id, name=name, created_at=now)

    def get(self, deal_id: int) -> Deal | None:
        """Get a deal by ID.

        Args:
            deal_id: Deal primary key.

        Returns:
            Deal, or None if not found.
        """
        row = self._conn.execute(select(deals).where(deals.c.id == deal_id)).fetchone()
        if row is None:
            return None
        return _row_to_deal(row)

    def exists(self, deal_id: int) -> bool:
        row = self._conn.execute(select(deals.c.id).where(deals.c.id == deal_id)).fetchone()
        return row is not None

    def list_all(self) -> list[Deal]:
        """List every deal ordered by ID."""
        rows = self._conn.execute(select(deals).order_by(deals.c.id)).fetchall()
        return [_row_to_deal(row) for row in rows]


def _row_to_deal(row: Any) -> Deal:
    return Deal(id=row.id, name=row.name, created_at=row.created_at)


class InMemoryDealsRepository:
    """In-memory fallback repository for when no database is configured.

    Used for development/testing without database dependency.
    """

    def __init__(self, state: InMemoryState) -> None:
        self._state = state

    def create(self, *, name: str) -> Deal:
        """Create a new deal in memory."""
        deal_id = self._state.next_id("deals")
        row = {"id": deal_id, "name": name, "created_at": datetime.now(UTC)}
        self._state.deals[deal_id] = row
        return Deal(**row)

    def get(self, deal_id: int) -> Deal | None:
        """Get a deal by ID from memory."""
        row = self._state.deals.get(deal_id)
        if row is None:
            return None
        return Deal(**row)

    def exists(self, deal_id: int) -> bool:
        return deal_id in self._state.deals

    def list_all(self) -> list[Deal]:
        """List deals from memory."""
        return [Deal(**self._state.deals[k]) for k in sorted(self._state.deals)]
