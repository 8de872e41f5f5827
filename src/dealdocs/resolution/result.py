"""Resolution result: a tagged outcome rather than a boolean.

Callers branch on the confidence tier. Only HIGH and MEDIUM results are
eligible for automatic repair; a LOW result is evidence, not proof.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Confidence(str, Enum):
    """Coarse trust label attached to a resolver match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def at_least(self, other: Confidence) -> bool:
        return self.rank >= other.rank


_CONFIDENCE_RANK = {Confidence.LOW: 1, Confidence.MEDIUM: 2, Confidence.HIGH: 3}


class ResolutionStrategy(str, Enum):
    """Strategy that produced a resolution (or EXHAUSTED when none did)."""

    DIRECT_PATH = "direct_path"
    IDENTIFIER_MATCH = "identifier_match"
    SIMILARITY_MATCH = "similarity_match"
    KEYWORD_MATCH = "keyword_match"
    EXHAUSTED = "exhausted"


STRATEGY_CONFIDENCE = {
    ResolutionStrategy.DIRECT_PATH: Confidence.HIGH,
    ResolutionStrategy.IDENTIFIER_MATCH: Confidence.HIGH,
    ResolutionStrategy.SIMILARITY_MATCH: Confidence.MEDIUM,
    ResolutionStrategy.KEYWORD_MATCH: Confidence.LOW,
}


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a recorded path to bytes on disk.

    Attributes:
        found: Whether any strategy located a file.
        strategy: Strategy that matched, or EXHAUSTED.
        confidence: Tier of the matching strategy; None when not found.
        path: Absolute path of the located file.
        score: Match score for scored strategies (similarity, keyword).
        searched_paths: Direct-path candidates probed, in order.
    """

    found: bool
    strategy: ResolutionStrategy
    confidence: Confidence | None = None
    path: str | None = None
    score: float | None = None
    searched_paths: tuple[str, ...] = ()

    @classmethod
    def matched(
        cls,
        strategy: ResolutionStrategy,
        path: str,
        *,
        score: float | None = None,
        searched_paths: tuple[str, ...] = (),
    ) -> Resolution:
        return cls(
            found=True,
            strategy=strategy,
            confidence=STRATEGY_CONFIDENCE[strategy],
            path=path,
            score=score,
            searched_paths=searched_paths,
        )

    @classmethod
    def not_found(cls, searched_paths: tuple[str, ...] = ()) -> Resolution:
        return cls(
            found=False, strategy=ResolutionStrategy.EXHAUSTED, searched_paths=searched_paths
        )

    @property
    def auto_repairable(self) -> bool:
        """True when the match may be applied without human review."""
        return self.found and self.confidence is not None and self.confidence.at_least(
            Confidence.MEDIUM
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "found": self.found,
            "strategy": self.strategy.value,
            "confidence": self.confidence.value if self.confidence else None,
            "path": self.path,
            "score": round(self.score, 4) if self.score is not None else None,
            "searched_paths": list(self.searched_paths),
        }
