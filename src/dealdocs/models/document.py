"""Document model: metadata plus the optional inline payload.

A document is backed by exactly one authoritative byte source at read time.
The storage mode is derived from the row, never stored:

- BLOB: the blob column is non-empty
- FILE: no blob, but a non-empty file path is recorded
- UNRESOLVED: neither
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DocumentType(str, Enum):
    """Business classification of a deal document."""

    PITCH_DECK = "pitch_deck"
    FINANCIAL_MODEL = "financial_model"
    LEGAL_DOCUMENT = "legal_document"
    DILIGENCE_REPORT = "diligence_report"
    INVESTOR_REPORT = "investor_report"
    TERM_SHEET = "term_sheet"
    CAP_TABLE = "cap_table"
    SUBSCRIPTION_AGREEMENT = "subscription_agreement"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: str | None) -> DocumentType:
        """Map a stored value to a member; unknown legacy values become OTHER."""
        if value is None:
            return cls.OTHER
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class StorageMode(str, Enum):
    """Where a document's bytes live."""

    BLOB = "blob"
    FILE = "file"
    UNRESOLVED = "unresolved"


def derive_storage_mode(blob_size: int, file_path: str | None) -> StorageMode:
    """Derive the storage mode from the blob length and recorded path.

    Args:
        blob_size: Length of the inline payload (0 when absent).
        file_path: Recorded relative path, possibly None or blank.

    Returns:
        BLOB when the payload is non-empty, FILE when a non-blank path is
        recorded, otherwise UNRESOLVED.
    """
    if blob_size > 0:
        return StorageMode.BLOB
    if file_path is not None and file_path.strip():
        return StorageMode.FILE
    return StorageMode.UNRESOLVED


class DocumentSummary(BaseModel):
    """Document metadata without the payload.

    Attributes:
        id: Immutable integer primary key.
        deal_id: Owning deal; changes only through an audited move.
        file_name: Display name (correctable by repair tooling).
        file_type: MIME type string.
        file_size: Recorded byte length (informational).
        file_path: Recorded relative path for file-backed records.
        blob_size: Length of the inline payload, 0 when absent.
        uploaded_at: Upload timestamp, immutable.
        uploaded_by: Uploader identifier, if known.
        document_type: Business classification.
        description: Free-form description.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Annotated[int, Field(description="Document primary key")]
    deal_id: Annotated[int, Field(description="Owning deal")]
    file_name: Annotated[str, Field(description="Display name")]
    file_type: Annotated[str, Field(description="MIME type")]
    file_size: Annotated[int, Field(ge=0, description="Recorded byte length")]
    file_path: Annotated[str | None, Field(default=None, description="Recorded path")]
    blob_size: Annotated[int, Field(default=0, ge=0, description="Inline payload length")]
    uploaded_at: Annotated[datetime, Field(description="Upload timestamp")]
    uploaded_by: Annotated[int | None, Field(default=None, description="Uploader")]
    document_type: Annotated[
        DocumentType, Field(default=DocumentType.OTHER, description="Classification")
    ]
    description: Annotated[str | None, Field(default=None, description="Description")]

    @field_validator("document_type", mode="before")
    @classmethod
    def _coerce_document_type(cls, v: object) -> object:
        if v is None or isinstance(v, str):
            return DocumentType.coerce(v)
        return v

    @property
    def storage_mode(self) -> StorageMode:
        return derive_storage_mode(self.blob_size, self.file_path)

    @property
    def has_db_data(self) -> bool:
        return self.blob_size > 0

    @property
    def has_file_path(self) -> bool:
        return self.file_path is not None and bool(self.file_path.strip())

    def to_dict(self) -> dict[str, object]:
        """JSON-safe representation including the derived storage mode."""
        data = self.model_dump(mode="json")
        data["storage_mode"] = self.storage_mode.value
        return data


class Document(DocumentSummary):
    """Document metadata together with the inline payload, if any."""

    blob_data: Annotated[bytes | None, Field(default=None, description="Inline payload")]

    def summary(self) -> DocumentSummary:
        """Drop the payload."""
        return DocumentSummary.model_validate(self.model_dump(exclude={"blob_data"}))
