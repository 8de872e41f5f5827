"""Tests for engine configuration from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from dealdocs.config import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_SEARCH_ROOTS,
    EngineConfig,
)
from dealdocs.errors import ConfigError


class TestEngineConfigFromEnv:
    """Tests for EngineConfig.from_env."""

    def test_defaults_when_unset(self) -> None:
        """Unset variables fall back to documented defaults."""
        config = EngineConfig.from_env({})

        assert config.search_roots == tuple(Path(p) for p in DEFAULT_SEARCH_ROOTS)
        assert config.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES == 50 * 1024 * 1024
        assert config.similarity_threshold == 0.70
        assert config.keyword_threshold == 0.50
        assert config.audit_workers == 1
        assert config.magic_headers == {"application/pdf": b"%PDF"}

    def test_search_roots_are_ordered_and_blank_entries_dropped(self) -> None:
        """Search roots keep their order; empty segments are skipped."""
        raw = os.pathsep.join(["/srv/b", "", "/srv/a", "  "])
        config = EngineConfig.from_env({"DEALDOCS_SEARCH_ROOTS": raw})

        assert config.search_roots == (Path("/srv/b"), Path("/srv/a"))

    def test_numeric_overrides(self) -> None:
        """Numeric variables are parsed."""
        config = EngineConfig.from_env(
            {
                "DEALDOCS_MAX_UPLOAD_BYTES": "1024",
                "DEALDOCS_SIMILARITY_THRESHOLD": "0.8",
                "DEALDOCS_KEYWORD_THRESHOLD": "0.6",
                "DEALDOCS_AUDIT_WORKERS": "4",
            }
        )

        assert config.max_upload_bytes == 1024
        assert config.similarity_threshold == 0.8
        assert config.keyword_threshold == 0.6
        assert config.audit_workers == 4

    def test_unparseable_value_fails_closed(self) -> None:
        """A value that cannot be parsed raises ConfigError."""
        with pytest.raises(ConfigError, match="DEALDOCS_MAX_UPLOAD_BYTES"):
            EngineConfig.from_env({"DEALDOCS_MAX_UPLOAD_BYTES": "fifty megabytes"})

    @pytest.mark.parametrize(
        "env",
        [
            {"DEALDOCS_MAX_UPLOAD_BYTES": "0"},
            {"DEALDOCS_SIMILARITY_THRESHOLD": "1.5"},
            {"DEALDOCS_KEYWORD_THRESHOLD": "-0.1"},
            {"DEALDOCS_AUDIT_WORKERS": "0"},
        ],
    )
    def test_out_of_range_value_fails_closed(self, env: dict[str, str]) -> None:
        """Values outside their valid range raise ConfigError."""
        with pytest.raises(ConfigError):
            EngineConfig.from_env(env)

    def test_reads_process_environment_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an explicit mapping, os.environ is used."""
        monkeypatch.setenv("DEALDOCS_AUDIT_WORKERS", "3")

        assert EngineConfig.from_env().audit_workers == 3
