"""Pytest configuration and fixtures for dealdocs tests.

Search roots live in per-test temporary directories. Service-level tests run
on the in-memory unit of work; SQL tests use an in-process SQLite database.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from dealdocs.config import EngineConfig
from dealdocs.engine import DocumentEngine
from dealdocs.models.document import DocumentSummary
from dealdocs.persistence.db import reset_engine
from dealdocs.persistence.schema import create_schema
from dealdocs.persistence.unit_of_work import InMemoryUnitOfWork, SqlUnitOfWork

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"

DEALDOCS_ENV_VARS = (
    "DEALDOCS_DATABASE_URL",
    "DEALDOCS_SEARCH_ROOTS",
    "DEALDOCS_MAX_UPLOAD_BYTES",
    "DEALDOCS_SIMILARITY_THRESHOLD",
    "DEALDOCS_KEYWORD_THRESHOLD",
    "DEALDOCS_AUDIT_WORKERS",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Start every test without DEALDOCS_* configuration or a cached engine."""
    for name in DEALDOCS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def primary_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def secondary_root(tmp_path: Path) -> Path:
    root = tmp_path / "archive"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, primary_root: Path, secondary_root: Path) -> EngineConfig:
    """Engine config with two search roots, relative paths resolved against tmp_path."""
    return EngineConfig(search_roots=(primary_root, secondary_root), base_dir=tmp_path)


@pytest.fixture
def uow() -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork()


@pytest.fixture
def engine(config: EngineConfig, uow: InMemoryUnitOfWork) -> DocumentEngine:
    return DocumentEngine.build(config, uow)


@pytest.fixture
def sql_engine():
    """In-process SQLite engine shared across connections."""
    db = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(db)
    yield db
    db.dispose()


@pytest.fixture
def sql_uow(sql_engine) -> SqlUnitOfWork:
    return SqlUnitOfWork(sql_engine)


def create_deals(uow, *names: str) -> list[int]:
    """Create deals in order and return their ids."""
    with uow.begin() as repos:
        return [repos.deals.create(name=name).id for name in names]


def seed_file_document(
    uow,
    deal_id: int,
    file_name: str,
    file_path: str | None,
    *,
    file_size: int = 0,
    file_type: str = "application/pdf",
) -> DocumentSummary:
    """Insert a legacy file-backed (or pathless) record with no blob."""
    with uow.begin() as repos:
        return repos.documents.create(
            deal_id=deal_id,
            file_name=file_name,
            file_type=file_type,
            data=None,
            file_path=file_path,
            file_size=file_size,
        )


def write_file(path: Path, data: bytes = PDF_BYTES) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path
