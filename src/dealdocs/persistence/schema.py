"""Table definitions for the document engine.

The same definitions back the SQL repositories and the SQLite create_all
path; PostgreSQL deployments are migrated with Alembic (revision 0001).

document_moves and document_repairs carry no foreign key to documents so
that their rows survive document deletion.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

metadata = MetaData()

deals = Table(
    "deals",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

documents = Table(
    "documents",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("deal_id", Integer, ForeignKey("deals.id"), nullable=False),
    Column("file_name", Text, nullable=False),
    Column("file_type", String(255), nullable=False),
    Column("file_size", Integer, nullable=False),
    Column("file_path", Text, nullable=True),
    Column("file_data", LargeBinary, nullable=True),
    Column("uploaded_at", DateTime(timezone=True), nullable=False),
    Column("uploaded_by", Integer, nullable=True),
    Column("document_type", String(64), nullable=False, server_default="other"),
    Column("description", Text, nullable=True),
    Index("idx_documents_deal_id", "deal_id"),
)

document_moves = Table(
    "document_moves",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("document_id", Integer, nullable=False),
    Column("from_deal_id", Integer, nullable=False),
    Column("to_deal_id", Integer, nullable=False),
    Column("reason", Text, nullable=False),
    Column("moved_at", DateTime(timezone=True), nullable=False),
    Index("idx_document_moves_document_id", "document_id"),
    Index("idx_document_moves_moved_at", "moved_at"),
)

document_repairs = Table(
    "document_repairs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("document_id", Integer, nullable=False),
    Column("action", String(32), nullable=False),
    Column("previous_value", Text, nullable=True),
    Column("new_value", Text, nullable=True),
    Column("strategy", String(32), nullable=True),
    Column("confidence", String(16), nullable=True),
    Column("score", Float, nullable=True),
    Column("repaired_at", DateTime(timezone=True), nullable=False),
    Index("idx_document_repairs_document_id", "document_id"),
)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet (SQLite / tests)."""
    metadata.create_all(engine)
