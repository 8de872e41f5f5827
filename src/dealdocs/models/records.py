"""Append-only audit records: deal moves and repair corrections.

Rows of both kinds are inserted once and never updated or deleted. They are
kept even after the document they describe is deleted.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class DocumentMove(BaseModel):
    """Record of a document being reassigned from one deal to another."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int
    document_id: int
    from_deal_id: int
    to_deal_id: int
    reason: Annotated[str, Field(min_length=1)]
    moved_at: datetime


class RepairAction(str, Enum):
    """Kind of correction applied by the audit runner."""

    PATH_REWRITE = "path_rewrite"
    BLOB_MIGRATION = "blob_migration"


class DocumentRepair(BaseModel):
    """Record of a single correction applied to a document.

    Attributes:
        id: Record primary key.
        document_id: Corrected document.
        action: What was changed.
        previous_value: File path before the change.
        new_value: File path (or migration source) after the change.
        strategy: Resolver strategy that produced the evidence.
        confidence: Resolver confidence tier.
        score: Match score of the winning candidate, if scored.
        repaired_at: When the correction was applied.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int
    document_id: int
    action: RepairAction
    previous_value: str | None = None
    new_value: str | None = None
    strategy: str | None = None
    confidence: str | None = None
    score: float | None = None
    repaired_at: datetime
