"""Document storage foundation: deals, documents and the append-only audit logs.

Revision ID: 0001
Revises:
Create Date: 2026-10-16

Creates:
- deals: owning context for documents
- documents: metadata plus optional inline payload (file_data)
- document_moves: append-only record of deal reassignments
- document_repairs: append-only record of audit runner corrections

Audit tables reference documents by id only, without a foreign key, so
their rows survive document deletion.
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create document storage tables and indexes."""

    op.create_table(
        "deals",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("deal_id", sa.Integer, sa.ForeignKey("deals.id"), nullable=False),
        sa.Column("file_name", sa.Text, nullable=False),
        sa.Column("file_type", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer, nullable=False),
        sa.Column("file_path", sa.Text, nullable=True),
        sa.Column("file_data", sa.LargeBinary, nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("uploaded_by", sa.Integer, nullable=True),
        sa.Column("document_type", sa.String(64), nullable=False, server_default="other"),
        sa.Column("description", sa.Text, nullable=True),
    )
    op.create_index("idx_documents_deal_id", "documents", ["deal_id"])

    op.create_table(
        "document_moves",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("document_id", sa.Integer, nullable=False),
        sa.Column("from_deal_id", sa.Integer, nullable=False),
        sa.Column("to_deal_id", sa.Integer, nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("moved_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_document_moves_document_id", "document_moves", ["document_id"])
    op.create_index("idx_document_moves_moved_at", "document_moves", ["moved_at"])

    op.create_table(
        "document_repairs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("document_id", sa.Integer, nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("previous_value", sa.Text, nullable=True),
        sa.Column("new_value", sa.Text, nullable=True),
        sa.Column("strategy", sa.String(32), nullable=True),
        sa.Column("confidence", sa.String(16), nullable=True),
        sa.Column("score", sa.Float, nullable=True),
        sa.Column("repaired_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_document_repairs_document_id", "document_repairs", ["document_id"])


def downgrade() -> None:
    """Drop document storage tables."""

    op.drop_index("idx_document_repairs_document_id", table_name="document_repairs")
    op.drop_table("document_repairs")
    op.drop_index("idx_document_moves_moved_at", table_name="document_moves")
    op.drop_index("idx_document_moves_document_id", table_name="document_moves")
    op.drop_table("document_moves")
    op.drop_index("idx_documents_deal_id", table_name="documents")
    op.drop_table("documents")
    op.drop_table("deals")
