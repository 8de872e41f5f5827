"""Content/deal mismatch heuristic.

A document is suspected to be attached to the wrong deal when its file name
contains a keyword that belongs to exactly one other deal's name and none of
its own deal's keywords. Suspicions are reported for manual resolution and
never corrected automatically.
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING

from dealdocs.errors import IntegrityWarning, IntegrityWarningKind

if TYPE_CHECKING:
    from dealdocs.models.deal import Deal
    from dealdocs.models.document import DocumentSummary

_WORD = re.compile(r"[a-z0-9]+")

# Words common to deal names and document titles; they identify no company.
GENERIC_TERMS = frozenset(
    {
        "and", "the", "for", "inc", "llc", "ltd", "corp", "company", "group",
        "holdings", "partners", "capital", "fund", "ventures", "investment",
        "investments", "deal", "series", "seed", "round", "offering",
        "memorandum", "deck", "pitch", "final", "draft", "copy", "report",
        "financial", "financials", "model", "term", "sheet", "agreement",
        "subscription", "cap", "table", "legal", "diligence", "investor",
        "update", "summary", "overview", "presentation", "pdf", "doc", "docx",
        "xls", "xlsx", "ppt", "pptx", "csv", "txt",
    }
)


def name_keywords(name: str) -> set[str]:
    """Distinctive lower-cased words longer than two characters."""
    return {
        word
        for word in _WORD.findall(name.lower())
        if len(word) > 2 and not word.isdigit() and word not in GENERIC_TERMS
    }


class DealNameIndex:
    """Keyword index over deal names."""

    def __init__(self, deals: Iterable[Deal]) -> None:
        self.names: dict[int, str] = {}
        self._keywords: dict[int, set[str]] = {}
        self._owners: dict[str, set[int]] = defaultdict(set)
        for deal in deals:
            self.names[deal.id] = deal.name
            keywords = name_keywords(deal.name)
            self._keywords[deal.id] = keywords
            for keyword in keywords:
                self._owners[keyword].add(deal.id)

    def check(self, document: DocumentSummary) -> IntegrityWarning | None:
        """Return a suspected-mismatch warning for the document, if any."""
        own_keywords = self._keywords.get(document.deal_id, set())
        file_keywords = name_keywords(document.file_name)
        if file_keywords & own_keywords:
            return None

        for keyword in sorted(file_keywords):
            owners = self._owners.get(keyword, set())
            if len(owners) != 1 or document.deal_id in owners:
                continue
            (suspected_deal_id,) = owners
            return IntegrityWarning(
                kind=IntegrityWarningKind.SUSPECTED_DEAL_MISMATCH,
                document_id=document.id,
                message=(
                    f"File name mentions '{keyword}' from deal "
                    f"'{self.names[suspected_deal_id]}' but the document belongs to "
                    f"deal '{self.names.get(document.deal_id, document.deal_id)}'"
                ),
                details={
                    "keyword": keyword,
                    "recorded_deal_id": document.deal_id,
                    "recorded_deal_name": self.names.get(document.deal_id),
                    "suspected_deal_id": suspected_deal_id,
                    "suspected_deal_name": self.names[suspected_deal_id],
                },
            )
        return None
