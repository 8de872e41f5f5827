"""Append-only audit logs: document moves and repair corrections.

Neither repository exposes update or delete. Rows are kept after the
document they describe is deleted.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select

from dealdocs.models.records import DocumentMove, DocumentRepair, RepairAction
from dealdocs.persistence.schema import document_moves, document_repairs

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from dealdocs.persistence.memory import InMemoryState

logger = logging.getLogger(__name__)


class DocumentMovesRepository:
    """Repository for the document_moves audit table."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def append(
        self, *, document_id: int, from_deal_id: int, to_deal_id: int, reason: str
    ) -> DocumentMove:
        """Insert a move record.

        Args:
            document_id: Moved document.
            from_deal_id: Previous owning deal.
            to_deal_id: New owning deal.
            reason: Operator-supplied reason.

        Returns:
            Created move record.
        """
        now = datetime.now(UTC)
        values = {
            "document_id": document_id,
            "from_deal_id": from_deal_id,
            "to_deal_id": to_deal_id,
            "reason": reason,
            "moved_at": now,
        }
        result = self._conn.execute(insert(document_moves).values(**values))
        return DocumentMove(id=result.inserted_primary_key[0], **values)

    def list_for_document(self, document_id: int) -> list[DocumentMove]:
        """List moves of one document, oldest first."""
        rows = self._conn.execute(
            select(document_moves)
            .where(document_moves.c.document_id == document_id)
            .order_by(document_moves.c.moved_at, document_moves.c.id)
        ).fetchall()
        return [DocumentMove(**row._mapping) for row in rows]


class DocumentRepairsRepository:
    """Repository for the document_repairs audit table."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def append(
        self,
        *,
        document_id: int,
        action: RepairAction,
        previous_value: str | None,
        new_value: str | None,
        strategy: str | None = None,
        confidence: str | None = None,
        score: float | None = None,
    ) -> DocumentRepair:
        """Insert a repair record."""
        values = _repair_values(
            document_id, action, previous_value, new_value, strategy, confidence, score
        )
        result = self._conn.execute(insert(document_repairs).values(**values))
        return DocumentRepair(id=result.inserted_primary_key[0], **values)

    def list_for_document(self, document_id: int) -> list[DocumentRepair]:
        """List repairs of one document, oldest first."""
        rows = self._conn.execute(
            select(document_repairs)
            .where(document_repairs.c.document_id == document_id)
            .order_by(document_repairs.c.repaired_at, document_repairs.c.id)
        ).fetchall()
        return [DocumentRepair(**row._mapping) for row in rows]


def _repair_values(
    document_id: int,
    action: RepairAction,
    previous_value: str | None,
    new_value: str | None,
    strategy: str | None,
    confidence: str | None,
    score: float | None,
) -> dict[str, Any]:
    return {
        "document_id": document_id,
        "action": RepairAction(action).value,
        "previous_value": previous_value,
        "new_value": new_value,
        "strategy": strategy,
        "confidence": confidence,
        "score": score,
        "repaired_at": datetime.now(UTC),
    }


class InMemoryDocumentMovesRepository:
    """In-memory fallback for the document_moves audit table."""

    def __init__(self, state: InMemoryState) -> None:
        self._state = state

    def append(
        self, *, document_id: int, from_deal_id: int, to_deal_id: int, reason: str
    ) -> DocumentMove:
        row = {
            "id": self._state.next_id("document_moves"),
            "document_id": document_id,
            "from_deal_id": from_deal_id,
            "to_deal_id": to_deal_id,
            "reason": reason,
            "moved_at": datetime.now(UTC),
        }
        self._state.document_moves.append(row)
        return DocumentMove(**row)

    def list_for_document(self, document_id: int) -> list[DocumentMove]:
        return [
            DocumentMove(**r) for r in self._state.document_moves if r["document_id"] == document_id
        ]


class InMemoryDocumentRepairsRepository:
    """In-memory fallback for the document_repairs audit table."""

    def __init__(self, state: InMemoryState) -> None:
        self._state = state

    def append(
        self,
        *,
        document_id: int,
        action: RepairAction,
        previous_value: str | None,
        new_value: str | None,
        strategy: str | None = None,
        confidence: str | None = None,
        score: float | None = None,
    ) -> DocumentRepair:
        row = {
            "id": self._state.next_id("document_repairs"),
            **_repair_values(
                document_id, action, previous_value, new_value, strategy, confidence, score
            ),
        }
        self._state.document_repairs.append(row)
        return DocumentRepair(**row)

    def list_for_document(self, document_id: int) -> list[DocumentRepair]:
        return [
            DocumentRepair(**r)
            for r in self._state.document_repairs
            if r["document_id"] == document_id
        ]
