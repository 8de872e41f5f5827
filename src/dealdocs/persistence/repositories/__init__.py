"""Repositories for the document engine tables."""

from dealdocs.persistence.repositories.audit_log import (
    DocumentMovesRepository,
    DocumentRepairsRepository,
    InMemoryDocumentMovesRepository,
    InMemoryDocumentRepairsRepository,
)
from dealdocs.persistence.repositories.deals import DealsRepository, InMemoryDealsRepository
from dealdocs.persistence.repositories.documents import (
    PATCHABLE_FIELDS,
    DocumentsRepository,
    InMemoryDocumentsRepository,
    validate_metadata_patch,
)

__all__ = [
    "PATCHABLE_FIELDS",
    "DealsRepository",
    "DocumentMovesRepository",
    "DocumentRepairsRepository",
    "DocumentsRepository",
    "InMemoryDealsRepository",
    "InMemoryDocumentMovesRepository",
    "InMemoryDocumentRepairsRepository",
    "InMemoryDocumentsRepository",
    "validate_metadata_patch",
]
