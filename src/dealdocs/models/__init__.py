"""Document engine data models."""

from dealdocs.models.deal import Deal
from dealdocs.models.document import (
    Document,
    DocumentSummary,
    DocumentType,
    StorageMode,
    derive_storage_mode,
)
from dealdocs.models.records import DocumentMove, DocumentRepair, RepairAction

__all__ = [
    "Deal",
    "Document",
    "DocumentMove",
    "DocumentRepair",
    "DocumentSummary",
    "DocumentType",
    "RepairAction",
    "StorageMode",
    "derive_storage_mode",
]
