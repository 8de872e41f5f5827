"""Engine configuration.

Environment Variables:
    DEALDOCS_DATABASE_URL: SQLAlchemy URL of the relational store. When unset,
        the engine runs on in-memory repositories (dev/test).
    DEALDOCS_SEARCH_ROOTS: Ordered search roots, separated by os.pathsep
        (default: data/uploads, uploads, public/uploads).
    DEALDOCS_MAX_UPLOAD_BYTES: Upload size ceiling in bytes (default: 50 MiB).
    DEALDOCS_SIMILARITY_THRESHOLD: Name-similarity acceptance ratio (default: 0.70).
    DEALDOCS_KEYWORD_THRESHOLD: Keyword-overlap acceptance ratio (default: 0.50).
    DEALDOCS_AUDIT_WORKERS: Audit worker pool size (default: 1, sequential).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dealdocs.errors import ConfigError

DEALDOCS_SEARCH_ROOTS_ENV = "DEALDOCS_SEARCH_ROOTS"
DEALDOCS_MAX_UPLOAD_BYTES_ENV = "DEALDOCS_MAX_UPLOAD_BYTES"
DEALDOCS_SIMILARITY_THRESHOLD_ENV = "DEALDOCS_SIMILARITY_THRESHOLD"
DEALDOCS_KEYWORD_THRESHOLD_ENV = "DEALDOCS_KEYWORD_THRESHOLD"
DEALDOCS_AUDIT_WORKERS_ENV = "DEALDOCS_AUDIT_WORKERS"

DEFAULT_SEARCH_ROOTS = ("data/uploads", "uploads", "public/uploads")
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024  # 50 MB
DEFAULT_SIMILARITY_THRESHOLD = 0.70
DEFAULT_KEYWORD_THRESHOLD = 0.50
DEFAULT_AUDIT_WORKERS = 1

PDF_MEDIA_TYPE = "application/pdf"
DEFAULT_MAGIC_HEADERS: Mapping[str, bytes] = {PDF_MEDIA_TYPE: b"%PDF"}


@dataclass(frozen=True)
class EngineConfig:
    """Startup configuration for the document engine.

    Attributes:
        search_roots: Ordered base directories the resolver scans.
        max_upload_bytes: Maximum accepted payload size.
        magic_headers: Required leading bytes per MIME type.
        similarity_threshold: Ratio a name-similarity match must exceed.
        keyword_threshold: Ratio a keyword-overlap match must exceed.
        audit_workers: Worker pool size for the audit runner.
        base_dir: Directory relative paths are interpreted against.
    """

    search_roots: tuple[Path, ...] = tuple(Path(p) for p in DEFAULT_SEARCH_ROOTS)
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    magic_headers: Mapping[str, bytes] = field(
        default_factory=lambda: dict(DEFAULT_MAGIC_HEADERS)
    )
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    keyword_threshold: float = DEFAULT_KEYWORD_THRESHOLD
    audit_workers: int = DEFAULT_AUDIT_WORKERS
    base_dir: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        if self.max_upload_bytes <= 0:
            raise ConfigError(f"max_upload_bytes must be positive, got {self.max_upload_bytes}")
        for name in ("similarity_threshold", "keyword_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise ConfigError(f"{name} must be in [0, 1), got {value}")
        if self.audit_workers < 1:
            raise ConfigError(f"audit_workers must be at least 1, got {self.audit_workers}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ).

        Returns:
            EngineConfig with defaults for unset variables.

        Raises:
            ConfigError: If a variable is set but cannot be parsed.
        """
        env = os.environ if environ is None else environ

        roots_raw = env.get(DEALDOCS_SEARCH_ROOTS_ENV)
        if roots_raw is None:
            search_roots = tuple(Path(p) for p in DEFAULT_SEARCH_ROOTS)
        else:
            # Empty entries are dropped, not treated as the working directory.
            search_roots = tuple(Path(p) for p in roots_raw.split(os.pathsep) if p.strip())

        return cls(
            search_roots=search_roots,
            max_upload_bytes=_parse(
                env, DEALDOCS_MAX_UPLOAD_BYTES_ENV, int, DEFAULT_MAX_UPLOAD_BYTES
            ),
            similarity_threshold=_parse(
                env, DEALDOCS_SIMILARITY_THRESHOLD_ENV, float, DEFAULT_SIMILARITY_THRESHOLD
            ),
            keyword_threshold=_parse(
                env, DEALDOCS_KEYWORD_THRESHOLD_ENV, float, DEFAULT_KEYWORD_THRESHOLD
            ),
            audit_workers=_parse(env, DEALDOCS_AUDIT_WORKERS_ENV, int, DEFAULT_AUDIT_WORKERS),
        )


def _parse(env: Mapping[str, str], key: str, cast: type, default: object) -> object:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {key}: {raw!r}") from e
