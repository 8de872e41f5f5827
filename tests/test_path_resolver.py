"""Tests for the path resolver strategy chain."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import write_file

from dealdocs.resolution import (
    Confidence,
    ListingCache,
    PathResolver,
    ResolutionStrategy,
)

IDENTIFIER = "3f2504e0-4f89-11d3-9a0c-0305e82c3301"


@pytest.fixture
def resolver(tmp_path: Path, primary_root: Path, secondary_root: Path) -> PathResolver:
    return PathResolver([primary_root, secondary_root], base_dir=tmp_path)


class TestDirectPath:
    """Tests for the direct-path strategy."""

    def test_recorded_path_as_is(self, resolver: PathResolver, tmp_path: Path) -> None:
        """A recorded path relative to the base directory resolves with high confidence."""
        target = write_file(tmp_path / "uploads" / "x.pdf")

        resolution = resolver.resolve("uploads/x.pdf", "x.pdf")

        assert resolution.found is True
        assert resolution.strategy is ResolutionStrategy.DIRECT_PATH
        assert resolution.confidence is Confidence.HIGH
        assert resolution.path == str(target)

    def test_absolute_recorded_path(self, resolver: PathResolver, tmp_path: Path) -> None:
        """An absolute recorded path is probed as-is."""
        target = write_file(tmp_path / "elsewhere" / "deck.pdf")

        resolution = resolver.resolve(str(target), "deck.pdf")

        assert resolution.strategy is ResolutionStrategy.DIRECT_PATH
        assert resolution.path == str(target)

    @pytest.mark.parametrize(
        "recorded", ["/uploads/2024/report.pdf", "\\uploads\\2024\\report.pdf"]
    )
    def test_leading_separator_is_rerooted(
        self, resolver: PathResolver, tmp_path: Path, recorded: str
    ) -> None:
        """A web-style /uploads/... path is found under the base directory."""
        target = write_file(tmp_path / "uploads" / "2024" / "report.pdf")

        resolution = resolver.resolve(recorded, "report.pdf", deal_id=1)

        assert resolution.strategy is ResolutionStrategy.DIRECT_PATH
        assert resolution.confidence is Confidence.HIGH
        assert resolution.path == str(target)
        assert resolver.recorded_location_exists(recorded) is True

    def test_basename_under_later_root(self, resolver: PathResolver, secondary_root: Path) -> None:
        """A stale directory is recovered by probing the bare name under each root."""
        target = write_file(secondary_root / "x.pdf")

        resolution = resolver.resolve("old/location/x.pdf", "x.pdf")

        assert resolution.strategy is ResolutionStrategy.DIRECT_PATH
        assert resolution.path == str(target)

    def test_deal_subdirectory(self, resolver: PathResolver, primary_root: Path) -> None:
        """With a known deal, <root>/deal-<id>/<name> is probed."""
        target = write_file(primary_root / "deal-7" / "x.pdf")

        resolution = resolver.resolve("x.pdf", "x.pdf", deal_id=7)

        assert resolution.strategy is ResolutionStrategy.DIRECT_PATH
        assert resolution.path == str(target)

    def test_display_name_under_root(self, resolver: PathResolver, secondary_root: Path) -> None:
        """The display name is probed when it differs from the path's basename."""
        target = write_file(secondary_root / "Deck.pdf")

        resolution = resolver.resolve("legacy/abc123", "Deck.pdf")

        assert resolution.strategy is ResolutionStrategy.DIRECT_PATH
        assert resolution.path == str(target)

    def test_searched_paths_are_reported(self, resolver: PathResolver, tmp_path: Path) -> None:
        """Probed candidates are listed in order, starting with the recorded path."""
        resolution = resolver.resolve("uploads/none.pdf", "none.pdf")

        assert resolution.searched_paths[0] == str(tmp_path / "uploads" / "none.pdf")
        assert len(resolution.searched_paths) == len(set(resolution.searched_paths))


class TestIdentifierMatch:
    """Tests for the identifier strategy."""

    def test_identifier_match_beats_similar_decoy(
        self, resolver: PathResolver, primary_root: Path, secondary_root: Path
    ) -> None:
        """A renamed file carrying the identifier wins over a merely similar name."""
        write_file(primary_root / f"{IDENTIFIER.replace('-', '')}-pitchx.pdf")
        target = write_file(secondary_root / f"renamed_{IDENTIFIER.upper()}.pdf")

        resolution = resolver.resolve(f"uploads/old/{IDENTIFIER}-pitch.pdf", "pitch.pdf")

        assert resolution.strategy is ResolutionStrategy.IDENTIFIER_MATCH
        assert resolution.confidence is Confidence.HIGH
        assert resolution.path == str(target)


class TestSimilarityMatch:
    """Tests for the normalized-name similarity strategy."""

    def test_match_in_second_root(
        self, resolver: PathResolver, primary_root: Path, secondary_root: Path
    ) -> None:
        """term_sheet_v2.pdf finds term-sheet-v2-final.pdf in the second root."""
        write_file(primary_root / "unrelated.xlsx")
        target = write_file(secondary_root / "term-sheet-v2-final.pdf")

        resolution = resolver.resolve("uploads/term_sheet_v2.pdf", "term_sheet_v2.pdf")

        assert resolution.strategy is ResolutionStrategy.SIMILARITY_MATCH
        assert resolution.confidence is Confidence.MEDIUM
        assert resolution.path == str(target)
        assert resolution.score == pytest.approx(14 / 19)
        assert resolution.auto_repairable is True

    def test_ties_resolve_in_lexical_order(
        self, resolver: PathResolver, secondary_root: Path
    ) -> None:
        """Equally scoring candidates resolve to the lexically first name."""
        write_file(secondary_root / "term-sheet-v2-final.pdf")
        expected = write_file(secondary_root / "term-sheet-v2-draft.pdf")

        resolution = resolver.resolve("uploads/term_sheet_v2.pdf", "term_sheet_v2.pdf")

        assert resolution.path == str(expected)

    def test_threshold_is_configurable(
        self, tmp_path: Path, primary_root: Path, secondary_root: Path
    ) -> None:
        """Raising the threshold rejects the renamed file."""
        write_file(secondary_root / "term-sheet-v2-final.pdf")
        strict = PathResolver(
            [primary_root, secondary_root], base_dir=tmp_path, similarity_threshold=0.9
        )

        resolution = strict.resolve("uploads/term_sheet_v2.pdf", "term_sheet_v2.pdf")

        assert resolution.strategy is not ResolutionStrategy.SIMILARITY_MATCH


class TestKeywordMatch:
    """Tests for the keyword-overlap strategy."""

    def test_reordered_title_matches_with_low_confidence(
        self, resolver: PathResolver, primary_root: Path
    ) -> None:
        """A reordered title is only a low-confidence, non-repairable match."""
        target = write_file(primary_root / "Memorandum-Offering-Winkler-final.pdf")

        resolution = resolver.resolve(
            "docs/Winkler Offering Memorandum.pdf", "Winkler Offering Memorandum.pdf"
        )

        assert resolution.strategy is ResolutionStrategy.KEYWORD_MATCH
        assert resolution.confidence is Confidence.LOW
        assert resolution.path == str(target)
        assert resolution.score == pytest.approx(0.8)
        assert resolution.auto_repairable is False


class TestExhaustion:
    """Tests for unresolvable inputs and unhealthy roots."""

    def test_nothing_found(self, resolver: PathResolver) -> None:
        """An exhausted chain reports not found without a confidence tier."""
        resolution = resolver.resolve("uploads/x.pdf", "x.pdf")

        assert resolution.found is False
        assert resolution.strategy is ResolutionStrategy.EXHAUSTED
        assert resolution.confidence is None
        assert resolution.path is None

    def test_blank_missing_and_unreadable_roots_are_skipped(self, tmp_path: Path) -> None:
        """Blank, missing and non-directory roots are skipped, not fatal."""
        not_a_directory = write_file(tmp_path / "plain-file", b"data")
        good_root = tmp_path / "good"
        target = write_file(good_root / "term-sheet-v2-final.pdf")
        resolver = PathResolver(
            ["", tmp_path / "missing", not_a_directory, good_root], base_dir=tmp_path
        )

        resolution = resolver.resolve("uploads/term_sheet_v2.pdf", "term_sheet_v2.pdf")

        assert len(resolver.search_roots) == 3
        assert resolution.path == str(target)

    def test_traversal_outside_roots_is_not_followed(self, tmp_path: Path) -> None:
        """Recorded paths escaping the base directory or a root are not probed."""
        base = tmp_path / "app"
        root = base / "uploads"
        root.mkdir(parents=True)
        secret = write_file(tmp_path / "secret.txt", b"secret")
        resolver = PathResolver([root], base_dir=base)

        resolution = resolver.resolve("../secret.txt", "secret.txt")

        assert resolution.found is False
        assert str(secret) not in resolution.searched_paths
        assert str(root / ".." / "secret.txt") not in resolution.searched_paths

    def test_listing_cache_is_shared(self, resolver: PathResolver, primary_root: Path) -> None:
        """A supplied cache holds one listing per scanned root."""
        write_file(primary_root / "a.pdf")
        cache = ListingCache()

        resolver.resolve("uploads/zzz.pdf", "zzz.pdf", cache=cache)
        resolver.resolve("uploads/yyy.pdf", "yyy.pdf", cache=cache)

        assert len(cache) == 2


class TestHelpers:
    """Tests for existence probes, recorded-path conversion and diagnostics."""

    def test_recorded_location_exists_as_is_and_re_rooted(
        self, resolver: PathResolver, tmp_path: Path, secondary_root: Path
    ) -> None:
        """The existence probe accepts as-is and re-rooted locations only."""
        write_file(tmp_path / "uploads" / "a.pdf")
        write_file(secondary_root / "nested" / "b.pdf")
        write_file(secondary_root / "c.pdf")

        assert resolver.recorded_location_exists("uploads/a.pdf") is True
        assert resolver.recorded_location_exists("nested/b.pdf") is True
        assert resolver.recorded_location_exists("somewhere/c.pdf") is False
        assert resolver.recorded_location_exists("") is False
        assert resolver.recorded_location_exists(None) is False

    def test_to_recorded_path(self, resolver: PathResolver, tmp_path: Path) -> None:
        """Paths under the base directory are recorded relative, POSIX style."""
        assert resolver.to_recorded_path(str(tmp_path / "archive" / "x.pdf")) == "archive/x.pdf"
        assert resolver.to_recorded_path("/opt/other/x.pdf") == "/opt/other/x.pdf"

    def test_diagnostics(
        self, resolver: PathResolver, primary_root: Path, secondary_root: Path
    ) -> None:
        """Diagnostics report root health and the resolution."""
        write_file(secondary_root / "x.pdf")

        diagnostics = resolver.diagnostics("uploads/x.pdf", "x.pdf")

        assert [r["path"] for r in diagnostics["search_roots"]] == [
            str(primary_root),
            str(secondary_root),
        ]
        assert diagnostics["search_roots"][1]["file_count"] == 1
        assert diagnostics["search_roots"][1]["readable"] is True
        assert diagnostics["resolution"]["found"] is True
        assert diagnostics["resolution"]["strategy"] == "direct_path"
        assert diagnostics["resolution"]["confidence"] == "high"
