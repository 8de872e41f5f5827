"""In-memory backing state for development and tests.

Rows are plain dicts that are replaced, never mutated in place, so a
shallow copy of the state is a consistent snapshot. The in-memory unit of
work stages a transaction on such a copy and swaps it in on commit.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class InMemoryState:
    """All tables held in memory."""

    deals: dict[int, dict[str, Any]] = field(default_factory=dict)
    documents: dict[int, dict[str, Any]] = field(default_factory=dict)
    document_moves: list[dict[str, Any]] = field(default_factory=list)
    document_repairs: list[dict[str, Any]] = field(default_factory=list)
    sequences: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        value = self.sequences.get(table, 0) + 1
        self.sequences[table] = value
        return value

    def snapshot(self) -> InMemoryState:
        """Copy containers; rows are shared because they are never mutated."""
        return InMemoryState(
            deals=dict(self.deals),
            documents=dict(self.documents),
            document_moves=list(self.document_moves),
            document_repairs=list(self.document_repairs),
            sequences=copy.copy(self.sequences),
        )
