"""Path resolver: locate a document's bytes on disk from stale metadata.

Strategies run in order and short-circuit on the first success:

1. Direct path (high): the recorded path as-is, re-rooted under each search
   root, under the deal's subdirectory, then the bare file name under each root.
2. Identifier match (high): a UUID-shaped token from the recorded name,
   searched for in every root listing.
3. Name similarity (medium): normalized edit-distance ratio above threshold.
4. Keyword overlap (low): Jaccard overlap of name keywords above threshold.

Roots that are missing or unreadable are skipped. A filesystem error inside
a strategy abandons that strategy only; the chain continues with the next.
Within a strategy, candidates are taken in root order, then lexical file
name order, so ties always resolve the same way.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dealdocs.resolution.listing import ListingCache
from dealdocs.resolution.matching import (
    DEFAULT_MAX_KEYWORDS,
    extract_identifier,
    extract_keywords,
    jaccard,
    similarity_ratio,
)
from dealdocs.resolution.result import Resolution, ResolutionStrategy

if TYPE_CHECKING:
    from dealdocs.config import EngineConfig

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.70
DEFAULT_KEYWORD_THRESHOLD = 0.50


class PathResolver:
    """Resolves recorded document paths against ordered search roots."""

    def __init__(
        self,
        search_roots: Iterable[str | os.PathLike[str]],
        *,
        base_dir: str | os.PathLike[str] | None = None,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        keyword_threshold: float = DEFAULT_KEYWORD_THRESHOLD,
        max_keywords: int = DEFAULT_MAX_KEYWORDS,
    ) -> None:
        """Initialize the resolver.

        Args:
            search_roots: Ordered base directories. Blank entries are skipped;
                relative entries are interpreted against base_dir.
            base_dir: Directory relative recorded paths and roots are
                interpreted against (default: current working directory).
            similarity_threshold: Ratio a similarity match must exceed.
            keyword_threshold: Ratio a keyword match must exceed.
            max_keywords: Keywords kept per name.
        """
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        roots: list[Path] = []
        for root in search_roots:
            if not str(root).strip():
                continue
            path = Path(root)
            if not path.is_absolute():
                path = self.base_dir / path
            if path not in roots:
                roots.append(path)
        self.search_roots: tuple[Path, ...] = tuple(roots)
        self.similarity_threshold = similarity_threshold
        self.keyword_threshold = keyword_threshold
        self.max_keywords = max_keywords

    @classmethod
    def from_config(cls, config: EngineConfig) -> PathResolver:
        return cls(
            config.search_roots,
            base_dir=config.base_dir,
            similarity_threshold=config.similarity_threshold,
            keyword_threshold=config.keyword_threshold,
        )

    def resolve(
        self,
        file_path: str | None,
        file_name: str | None = None,
        *,
        deal_id: int | None = None,
        cache: ListingCache | None = None,
    ) -> Resolution:
        """Locate the file behind a recorded path and display name.

        Never raises for filesystem problems; an exhausted chain is reported
        as a not-found Resolution.

        Args:
            file_path: Recorded path (possibly stale, relative or blank).
            file_name: Display name of the document.
            deal_id: Owning deal, enables the deal subdirectory probe.
            cache: Listing cache shared across a run (default: a fresh one).

        Returns:
            Resolution describing the outcome.
        """
        cache = cache if cache is not None else ListingCache()
        recorded = (file_path or "").strip()
        display = (file_name or "").strip()
        names = _target_names(recorded, display)

        candidates = self.direct_candidates(recorded, display, deal_id=deal_id)
        searched = tuple(str(c) for c in candidates)

        strategies: Sequence[tuple[ResolutionStrategy, Callable[[], Resolution | None]]] = (
            (ResolutionStrategy.DIRECT_PATH, lambda: self._direct(candidates, searched)),
            (ResolutionStrategy.IDENTIFIER_MATCH, lambda: self._identifier(names, cache, searched)),
            (ResolutionStrategy.SIMILARITY_MATCH, lambda: self._similarity(names, cache, searched)),
            (ResolutionStrategy.KEYWORD_MATCH, lambda: self._keywords(names, cache, searched)),
        )
        for strategy, attempt in strategies:
            try:
                resolution = attempt()
            except OSError as e:
                logger.warning("Resolver strategy %s skipped: %s", strategy.value, e)
                continue
            if resolution is not None:
                logger.debug(
                    "Resolved %r via %s (%s) -> %s",
                    recorded or display,
                    resolution.strategy.value,
                    resolution.confidence.value if resolution.confidence else None,
                    resolution.path,
                )
                return resolution

        return Resolution.not_found(searched)

    def direct_candidates(
        self, file_path: str, file_name: str = "", *, deal_id: int | None = None
    ) -> list[Path]:
        """Build the ordered, de-duplicated direct-path probe list.

        Re-rooted candidates that escape their root are dropped.
        """
        candidates: list[tuple[Path, Path | None]] = []
        basename = _basename(file_path)
        display = _basename(file_name)

        if file_path:
            candidates.extend(self._recorded_probes(file_path))

        for root in self.search_roots:
            if deal_id is not None and basename:
                candidates.append((root / f"deal-{deal_id}" / basename, root))
            if basename:
                candidates.append((root / basename, root))
            if display and display != basename:
                candidates.append((root / display, root))

        unique: list[Path] = []
        for candidate, base in candidates:
            if candidate in unique or (base is not None and not _within(base, candidate)):
                continue
            unique.append(candidate)
        return unique

    def recorded_location_exists(self, file_path: str | None) -> bool:
        """Existence check of the recorded path, as-is or re-rooted.

        This is the audit's cheap classification probe, not a resolution:
        no basename or fuzzy fallbacks are attempted.
        """
        recorded = (file_path or "").strip()
        if not recorded:
            return False
        probes = [
            probe
            for probe, base in self._recorded_probes(recorded)
            if base is None or _within(base, probe)
        ]
        for probe in probes:
            try:
                if probe.is_file():
                    return True
            except OSError:
                continue
        return False

    def _recorded_probes(self, file_path: str) -> list[tuple[Path, Path | None]]:
        """Locations the recorded path may denote, each paired with its base.

        A path with a leading separator is probed as-is when it is absolute
        on this system, then with the separator stripped, re-rooted under
        base_dir and every search root (``/uploads/x.pdf`` lives in
        ``./uploads/x.pdf``). A base of None means no containment check.
        """
        recorded = Path(file_path)
        probes: list[tuple[Path, Path | None]] = []
        if file_path.startswith(("/", "\\")):
            if recorded.is_absolute():
                probes.append((recorded, None))
            relative = Path(file_path.replace("\\", "/").lstrip("/"))
        elif recorded.is_absolute():
            return [(recorded, None)]
        else:
            relative = recorded
        if not relative.parts:
            return probes
        for base in (self.base_dir, *self.search_roots):
            probes.append((base / relative, base))
        return probes

    def to_recorded_path(self, path: str) -> str:
        """Express a resolved absolute path the way paths are recorded.

        Paths under base_dir become relative POSIX paths; others stay absolute.
        """
        resolved = Path(path)
        try:
            return resolved.relative_to(self.base_dir).as_posix()
        except ValueError:
            return resolved.as_posix()

    def diagnostics(
        self, file_path: str | None, file_name: str | None = None, *, deal_id: int | None = None
    ) -> dict[str, Any]:
        """Operator view of a resolution: root health plus the outcome."""
        cache = ListingCache()
        roots = []
        for root in self.search_roots:
            exists = root.is_dir()
            readable = exists and os.access(root, os.R_OK | os.X_OK)
            roots.append(
                {
                    "path": str(root),
                    "exists": exists,
                    "readable": readable,
                    "file_count": len(cache.listing(str(root))) if readable else 0,
                }
            )
        resolution = self.resolve(file_path, file_name, deal_id=deal_id, cache=cache)
        return {
            "file_path": file_path,
            "file_name": file_name,
            "deal_id": deal_id,
            "search_roots": roots,
            "resolution": resolution.to_dict(),
        }

    def _direct(self, candidates: list[Path], searched: tuple[str, ...]) -> Resolution | None:
        for candidate in candidates:
            try:
                if candidate.is_file():
                    return Resolution.matched(
                        ResolutionStrategy.DIRECT_PATH, str(candidate), searched_paths=searched
                    )
            except OSError as e:
                logger.debug("Direct probe %s failed: %s", candidate, e)
        return None

    def _identifier(
        self, names: list[str], cache: ListingCache, searched: tuple[str, ...]
    ) -> Resolution | None:
        identifiers = [i for i in (extract_identifier(n) for n in names) if i]
        if not identifiers:
            return None
        for root, entry in self._entries(cache):
            lowered = entry.lower()
            if any(identifier in lowered for identifier in identifiers):
                return Resolution.matched(
                    ResolutionStrategy.IDENTIFIER_MATCH, str(root / entry), searched_paths=searched
                )
        return None

    def _similarity(
        self, names: list[str], cache: ListingCache, searched: tuple[str, ...]
    ) -> Resolution | None:
        if not names:
            return None
        for root, entry in self._entries(cache):
            score = max(similarity_ratio(name, entry) for name in names)
            if score > self.similarity_threshold:
                return Resolution.matched(
                    ResolutionStrategy.SIMILARITY_MATCH,
                    str(root / entry),
                    score=score,
                    searched_paths=searched,
                )
        return None

    def _keywords(
        self, names: list[str], cache: ListingCache, searched: tuple[str, ...]
    ) -> Resolution | None:
        targets = [k for k in (extract_keywords(n, self.max_keywords) for n in names) if k]
        if not targets:
            return None
        for root, entry in self._entries(cache):
            candidate = extract_keywords(entry, self.max_keywords)
            score = max(jaccard(target, candidate) for target in targets)
            if score > self.keyword_threshold:
                return Resolution.matched(
                    ResolutionStrategy.KEYWORD_MATCH,
                    str(root / entry),
                    score=score,
                    searched_paths=searched,
                )
        return None

    def _entries(self, cache: ListingCache) -> Iterable[tuple[Path, str]]:
        for root in self.search_roots:
            for entry in cache.listing(str(root)):
                yield root, entry


def _within(base: Path, candidate: Path) -> bool:
    """True if candidate, once normalized, stays inside base."""
    return Path(os.path.normpath(candidate)).is_relative_to(Path(os.path.normpath(base)))


def _basename(path: str) -> str:
    """Last path component, accepting both separator styles."""
    return path.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1] if path else ""


def _target_names(file_path: str, file_name: str) -> list[str]:
    names: list[str] = []
    for name in (_basename(file_path), _basename(file_name)):
        if name and name not in names:
            names.append(name)
    return names
