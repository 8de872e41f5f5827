"""Documents repository.

Row-level CRUD for document metadata and the inline payload. Payload bytes
are only loaded when explicitly requested; listings carry the payload
length instead.

Metadata patches are restricted: deal_id changes only through the audited
move (reassign_deal, called by the isolation guard), and uploaded_at never
changes.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, or_, select, update

from dealdocs.errors import ValidationError
from dealdocs.models.document import Document, DocumentSummary, DocumentType
from dealdocs.persistence.schema import documents

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from dealdocs.persistence.memory import InMemoryState

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset({"file_name", "document_type", "description", "file_path"})
_MOVE_ONLY_FIELDS = frozenset({"deal_id"})
_IMMUTABLE_FIELDS = frozenset({"id", "uploaded_at"})


def validate_metadata_patch(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a metadata patch and normalize its values.

    Args:
        changes: Field name to new value.

    Returns:
        Normalized changes ready to persist.

    Raises:
        ValidationError: If the patch touches a protected or unknown field,
            or carries an invalid value.
    """
    if not changes:
        raise ValidationError("Metadata patch is empty")

    for key in changes:
        if key in _MOVE_ONLY_FIELDS:
            raise ValidationError(
                "deal_id can only be changed through a document move",
                details={"field": key},
            )
        if key in _IMMUTABLE_FIELDS:
            raise ValidationError(f"{key} is immutable", details={"field": key})
        if key not in PATCHABLE_FIELDS:
            raise ValidationError(f"Unknown document field: {key}", details={"field": key})

    normalized = dict(changes)
    if "file_name" in normalized:
        file_name = normalized["file_name"]
        if not isinstance(file_name, str) or not file_name.strip():
            raise ValidationError(
                "file_name must be a non-empty string", details={"field": "file_name"}
            )
    if "document_type" in normalized:
        try:
            normalized["document_type"] = DocumentType(normalized["document_type"]).value
        except ValueError as e:
            raise ValidationError(
                f"Invalid document_type: {normalized['document_type']!r}",
                details={"field": "document_type"},
            ) from e
    return normalized


_SUMMARY_COLUMNS = (
    documents.c.id,
    documents.c.deal_id,
    documents.c.file_name,
    documents.c.file_type,
    documents.c.file_size,
    documents.c.file_path,
    func.coalesce(func.length(documents.c.file_data), 0).label("blob_size"),
    documents.c.uploaded_at,
    documents.c.uploaded_by,
    documents.c.document_type,
    documents.c.description,
)


class DocumentsRepository:
    """Repository for document persistence operations."""

    def __init__(self, conn: Connection) -> None:
        """Initialize repository with a connection.

        Args:
            conn: SQLAlchemy connection (must be in a transaction).
        """
        self._conn = conn

    def create(
        self,
        *,
        deal_id: int,
        file_name: str,
        file_type: str,
        data: bytes | None = None,
        file_path: str | None = None,
        file_size: int | None = None,
        uploaded_by: int | None = None,
        document_type: DocumentType = DocumentType.OTHER,
        description: str | None = None,
    ) -> DocumentSummary:
        """Insert a document row.

        Args:
            deal_id: Owning deal.
            file_name: Display name.
            file_type: MIME type.
            data: Inline payload (None for file-backed records).
            file_path: Recorded path for file-backed records.
            file_size: Recorded size (default: payload length).
            uploaded_by: Uploader identifier.
            document_type: Business classification.
            description: Free-form description.

        Returns:
            Created document metadata.
        """
        now = datetime.now(UTC)
        size = file_size if file_size is not None else len(data or b"")
        result = self._conn.execute(
            insert(documents).values(
                deal_id=deal_id,
                file_name=file_name,
                file_type=file_type,
                file_size=size,
                file_path=file_path,
                file_data=data,
                uploaded_at=now,
                uploaded_by=uploaded_by,
                document_type=DocumentType(document_type).value,
                description=description,
            )
        )
        document_id = result.inserted_primary_key[0]
        return DocumentSummary(
            id=document_id,
            deal_id=deal_id,
            file_name=file_name,
            file_type=file_type,
            file_size=size,
            file_path=file_path,
            blob_size=len(data or b""),
            uploaded_at=now,
            uploaded_by=uploaded_by,
            document_type=document_type,
            description=description,
        )

    def get(self, document_id: int, *, include_blob: bool = False) -> Document | None:
        """Get a document by ID.

        Args:
            document_id: Document primary key.
            include_blob: Load the inline payload as well.

        Returns:
            Document (blob_data None unless requested), or None if not found.
        """
        columns = _SUMMARY_COLUMNS + ((documents.c.file_data,) if include_blob else ())
        row = self._conn.execute(
            select(*columns).where(documents.c.id == document_id)
        ).fetchone()
        if row is None:
            return None
        blob = bytes(row.file_data) if include_blob and row.file_data is not None else None
        return Document(**_summary_fields(row), blob_data=blob)

    def get_deal_id(self, document_id: int) -> int | None:
        """Return the owning deal of a document, or None if it does not exist."""
        row = self._conn.execute(
            select(documents.c.deal_id).where(documents.c.id == document_id)
        ).fetchone()
        return None if row is None else row.deal_id

    def list_for_deal(self, deal_id: int) -> list[DocumentSummary]:
        """List documents owned by a deal, newest first."""
        rows = self._conn.execute(
            select(*_SUMMARY_COLUMNS)
            .where(documents.c.deal_id == deal_id)
            .order_by(documents.c.uploaded_at.desc(), documents.c.id.desc())
        ).fetchall()
        return [DocumentSummary(**_summary_fields(row)) for row in rows]

    def list_all(self) -> list[DocumentSummary]:
        """List the whole corpus ordered by ID."""
        rows = self._conn.execute(
            select(*_SUMMARY_COLUMNS).order_by(documents.c.id)
        ).fetchall()
        return [DocumentSummary(**_summary_fields(row)) for row in rows]

    def update_metadata(
        self, document_id: int, changes: Mapping[str, Any]
    ) -> DocumentSummary | None:
        """Patch mutable metadata fields.

        Raises:
            ValidationError: If the patch touches a protected field.
        """
        values = validate_metadata_patch(changes)
        result = self._conn.execute(
            update(documents).where(documents.c.id == document_id).values(**values)
        )
        if result.rowcount == 0:
            return None
        return self.get(document_id)

    def set_blob(self, document_id: int, data: bytes) -> bool:
        """Write the inline payload if the record has none yet.

        The condition is evaluated by the UPDATE itself, so two concurrent
        promotions of the same record write at most once.

        Returns:
            True if the payload was written, False if a blob already existed
            or the document does not exist.
        """
        result = self._conn.execute(
            update(documents)
            .where(documents.c.id == document_id)
            .where(
                or_(
                    documents.c.file_data.is_(None),
                    func.length(documents.c.file_data) == 0,
                )
            )
            .values(file_data=data, file_size=len(data))
        )
        return result.rowcount > 0

    def reassign_deal(self, document_id: int, new_deal_id: int) -> bool:
        """Change the owning deal. Only the isolation guard's move calls this."""
        result = self._conn.execute(
            update(documents).where(documents.c.id == document_id).values(deal_id=new_deal_id)
        )
        return result.rowcount > 0

    def delete(self, document_id: int, deal_id: int) -> bool:
        """Delete a document row, provided it is still owned by deal_id.

        Returns:
            True if deleted, False if not found under that deal.
        """
        result = self._conn.execute(
            delete(documents)
            .where(documents.c.id == document_id)
            .where(documents.c.deal_id == deal_id)
        )
        return result.rowcount > 0


def _summary_fields(row: Any) -> dict[str, Any]:
    return {
        "id": row.id,
        "deal_id": row.deal_id,
        "file_name": row.file_name,
        "file_type": row.file_type,
        "file_size": row.file_size,
        "file_path": row.file_path,
        "blob_size": int(row.blob_size or 0),
        "uploaded_at": row.uploaded_at,
        "uploaded_by": row.uploaded_by,
        "document_type": row.document_type,
        "description": row.description,
    }


class InMemoryDocumentsRepository:
    """In-memory fallback repository for when no database is configured.

    Used for development/testing without database dependency.
    """

    def __init__(self, state: InMemoryState) -> None:
        self._state = state

    def create(
        self,
        *,
        deal_id: int,
        file_name: str,
        file_type: str,
        data: bytes | None = None,
        file_path: str | None = None,
        file_size: int | None = None,
        uploaded_by: int | None = None,
        document_type: DocumentType = DocumentType.OTHER,
        description: str | None = None,
    ) -> DocumentSummary:
        """Insert a document row in memory."""
        document_id = self._state.next_id("documents")
        row = {
            "id": document_id,
            "deal_id": deal_id,
            "file_name": file_name,
            "file_type": file_type,
            "file_size": file_size if file_size is not None else len(data or b""),
            "file_path": file_path,
            "file_data": data,
            "uploaded_at": datetime.now(UTC),
            "uploaded_by": uploaded_by,
            "document_type": DocumentType(document_type).value,
            "description": description,
        }
        self._state.documents[document_id] = row
        return _row_to_summary(row)

    def get(self, document_id: int, *, include_blob: bool = False) -> Document | None:
        row = self._state.documents.get(document_id)
        if row is None:
            return None
        blob = row["file_data"] if include_blob else None
        return Document(**_row_to_summary(row).model_dump(), blob_data=blob)

    def get_deal_id(self, document_id: int) -> int | None:
        row = self._state.documents.get(document_id)
        return None if row is None else row["deal_id"]

    def list_for_deal(self, deal_id: int) -> list[DocumentSummary]:
        rows = [r for r in self._state.documents.values() if r["deal_id"] == deal_id]
        rows.sort(key=lambda r: (r["uploaded_at"], r["id"]), reverse=True)
        return [_row_to_summary(r) for r in rows]

    def list_all(self) -> list[DocumentSummary]:
        return [_row_to_summary(self._state.documents[k]) for k in sorted(self._state.documents)]

    def update_metadata(
        self, document_id: int, changes: Mapping[str, Any]
    ) -> DocumentSummary | None:
        values = validate_metadata_patch(changes)
        row = self._state.documents.get(document_id)
        if row is None:
            return None
        updated = {**row, **values}
        self._state.documents[document_id] = updated
        return _row_to_summary(updated)

    def set_blob(self, document_id: int, data: bytes) -> bool:
        row = self._state.documents.get(document_id)
        if row is None or row["file_data"]:
            return False
        self._state.documents[document_id] = {**row, "file_data": data, "file_size": len(data)}
        return True

    def reassign_deal(self, document_id: int, new_deal_id: int) -> bool:
        row = self._state.documents.get(document_id)
        if row is None:
            return False
        self._state.documents[document_id] = {**row, "deal_id": new_deal_id}
        return True

    def delete(self, document_id: int, deal_id: int) -> bool:
        row = self._state.documents.get(document_id)
        if row is None or row["deal_id"] != deal_id:
            return False
        del self._state.documents[document_id]
        return True


def _row_to_summary(row: dict[str, Any]) -> DocumentSummary:
    fields = {k: v for k, v in row.items() if k != "file_data"}
    return DocumentSummary(**fields, blob_size=len(row["file_data"] or b""))
