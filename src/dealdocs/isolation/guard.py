"""Deal isolation guard.

Every read, update, delete and move of a document is scoped to its owning
deal. An ownership violation is a caller or data-integrity fault: it is
logged for audit and raised immediately, never retried.

A move is the only way a document changes deals. It reassigns the document
and appends a document_moves row in the same transaction; if either write
fails, neither is kept.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dealdocs.errors import CrossDealAccessError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from dealdocs.models.document import DocumentSummary
    from dealdocs.models.records import DocumentMove
    from dealdocs.persistence.unit_of_work import Repositories, UnitOfWork

logger = logging.getLogger(__name__)


class DealIsolationGuard:
    """Enforces deal-scoped access to documents."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def assert_ownership(self, document_id: int, expected_deal_id: int) -> None:
        """Check that a document belongs to the expected deal.

        Raises:
            NotFoundError: If the document does not exist.
            CrossDealAccessError: If it belongs to a different deal.
        """
        with self._uow.begin() as repos:
            self.check(repos, document_id, expected_deal_id)

    def check(self, repos: Repositories, document_id: int, expected_deal_id: int) -> int:
        """Ownership check inside a caller's transaction.

        Returns:
            The owning deal id (equal to expected_deal_id).
        """
        actual_deal_id = repos.documents.get_deal_id(document_id)
        if actual_deal_id is None:
            raise NotFoundError("document", document_id)
        if actual_deal_id != expected_deal_id:
            logger.warning(
                "Cross-deal access denied: document %s belongs to deal %s, requested via deal %s",
                document_id,
                actual_deal_id,
                expected_deal_id,
            )
            raise CrossDealAccessError(document_id, expected_deal_id, actual_deal_id)
        return actual_deal_id

    def move(
        self,
        document_id: int,
        new_deal_id: int,
        reason: str,
        *,
        from_deal_id: int | None = None,
    ) -> DocumentMove:
        """Reassign a document to another deal and record the move.

        Args:
            document_id: Document to move.
            new_deal_id: Target deal; must exist.
            reason: Why the document is being moved (required).
            from_deal_id: When given, the document must currently belong to it.

        Returns:
            The appended move record.

        Raises:
            ValidationError: If the reason is blank or the target is the
                current deal.
            NotFoundError: If the document or the target deal does not exist.
            CrossDealAccessError: If from_deal_id does not own the document.
        """
        if not reason or not reason.strip():
            raise ValidationError("A reason is required to move a document")

        with self._uow.begin() as repos:
            if from_deal_id is not None:
                current_deal_id = self.check(repos, document_id, from_deal_id)
            else:
                current_deal_id = repos.documents.get_deal_id(document_id)
                if current_deal_id is None:
                    raise NotFoundError("document", document_id)

            if current_deal_id == new_deal_id:
                raise ValidationError(
                    f"Document {document_id} already belongs to deal {new_deal_id}",
                    details={"document_id": document_id, "deal_id": new_deal_id},
                )
            if not repos.deals.exists(new_deal_id):
                raise NotFoundError("deal", new_deal_id)

            repos.documents.reassign_deal(document_id, new_deal_id)
            move = repos.moves.append(
                document_id=document_id,
                from_deal_id=current_deal_id,
                to_deal_id=new_deal_id,
                reason=reason.strip(),
            )

        logger.info(
            "Moved document %s from deal %s to deal %s", document_id, current_deal_id, new_deal_id
        )
        return move

    def list_for_deal(self, deal_id: int) -> list[DocumentSummary]:
        """List the documents a deal owns, read in one transaction.

        Raises:
            NotFoundError: If the deal does not exist.
        """
        with self._uow.begin() as repos:
            if not repos.deals.exists(deal_id):
                raise NotFoundError("deal", deal_id)
            return repos.documents.list_for_deal(deal_id)

    def history(self, document_id: int) -> list[DocumentMove]:
        """Moves recorded for a document, oldest first (kept after deletion)."""
        with self._uow.begin() as repos:
            return repos.moves.list_for_document(document_id)
