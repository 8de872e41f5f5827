"""Binary store: dual-mode document storage.

New documents are always written blob-backed. Reads go through a single
path that prefers the inline blob and falls back to resolving the recorded
file path for legacy file-backed records. Metadata without bytes surfaces
as GoneError, never as an empty payload.

Filesystem bytes are never written or deleted here; legacy files are
managed outside the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dealdocs.errors import (
    GoneError,
    IntegrityWarning,
    IntegrityWarningKind,
    NotFoundError,
    ValidationError,
)
from dealdocs.models.document import DocumentType, StorageMode
from dealdocs.models.records import RepairAction
from dealdocs.resolution.result import Confidence
from dealdocs.storage.validation import PayloadRules

if TYPE_CHECKING:
    from collections.abc import Mapping

    from dealdocs.isolation.guard import DealIsolationGuard
    from dealdocs.models.document import Document, DocumentSummary
    from dealdocs.persistence.unit_of_work import UnitOfWork
    from dealdocs.resolution.listing import ListingCache
    from dealdocs.resolution.resolver import PathResolver
    from dealdocs.resolution.result import Resolution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievedDocument:
    """Bytes of a document together with what the caller needs to serve them.

    Attributes:
        document_id: Document the bytes belong to.
        deal_id: Owning deal.
        data: Document bytes.
        file_name: Display name.
        file_type: MIME type.
        source: BLOB or FILE.
        resolution: Resolver outcome for file-backed reads.
        warnings: Non-fatal integrity faults noticed while reading.
    """

    document_id: int
    deal_id: int
    data: bytes
    file_name: str
    file_type: str
    source: StorageMode
    resolution: Resolution | None = None
    warnings: tuple[IntegrityWarning, ...] = field(default_factory=tuple)


def size_mismatch_warning(document_id: int, recorded: int, actual: int) -> IntegrityWarning | None:
    """Warning for a recorded size that differs from the byte source, if any."""
    if recorded == actual:
        return None
    return IntegrityWarning(
        kind=IntegrityWarningKind.SIZE_MISMATCH,
        document_id=document_id,
        message=f"Recorded size {recorded} does not match actual size {actual}",
        details={"recorded_size": recorded, "actual_size": actual},
    )


class BinaryStore:
    """Stores and serves document bytes.

    Args:
        uow: Unit of work providing the repositories.
        resolver: Path resolver for file-backed records.
        guard: Isolation guard for deal-scoped entry points.
        rules: Payload validation rules.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        resolver: PathResolver,
        guard: DealIsolationGuard,
        *,
        rules: PayloadRules | None = None,
    ) -> None:
        self._uow = uow
        self.resolver = resolver
        self.guard = guard
        self.rules = rules if rules is not None else PayloadRules()

    def store(
        self,
        deal_id: int,
        file_name: str,
        file_type: str,
        data: bytes,
        *,
        uploaded_by: int | None = None,
        document_type: DocumentType | str = DocumentType.OTHER,
        description: str | None = None,
    ) -> DocumentSummary:
        """Validate a payload and persist it as a new blob-backed document.

        Args:
            deal_id: Owning deal; must exist.
            file_name: Display name.
            file_type: Declared MIME type.
            data: Payload bytes.
            uploaded_by: Uploader identifier.
            document_type: Business classification.
            description: Free-form description.

        Returns:
            Metadata of the created document.

        Raises:
            ValidationError: On empty, oversized or malformed input.
            NotFoundError: If the deal does not exist.
        """
        self.rules.validate(file_name, file_type, data)
        try:
            doc_type = DocumentType(document_type)
        except ValueError as e:
            raise ValidationError(
                f"Invalid document_type: {document_type!r}", details={"field": "document_type"}
            ) from e

        with self._uow.begin() as repos:
            if not repos.deals.exists(deal_id):
                raise NotFoundError("deal", deal_id)
            document = repos.documents.create(
                deal_id=deal_id,
                file_name=file_name.strip(),
                file_type=file_type or "application/octet-stream",
                data=data,
                uploaded_by=uploaded_by,
                document_type=doc_type,
                description=description,
            )

        logger.info(
            "Stored document %s for deal %s (%d bytes, %s)",
            document.id,
            deal_id,
            len(data),
            document.file_type,
        )
        return document

    def retrieve(
        self,
        document_id: int,
        deal_id: int | None = None,
        *,
        cache: ListingCache | None = None,
    ) -> RetrievedDocument:
        """Return a document's bytes from its authoritative source.

        Blob data is preferred. Otherwise the recorded path is resolved and
        the located file is read. A low-confidence match is still served,
        with a warning attached.

        Args:
            document_id: Document to read.
            deal_id: Caller's deal; when given, ownership is enforced.
            cache: Listing cache to share across a batch of reads.

        Returns:
            RetrievedDocument with bytes and metadata.

        Raises:
            NotFoundError: If the document does not exist.
            CrossDealAccessError: If deal_id does not own the document.
            GoneError: If metadata exists but no byte source does.
        """
        with self._uow.begin() as repos:
            if deal_id is not None:
                self.guard.check(repos, document_id, deal_id)
            document = repos.documents.get(document_id, include_blob=True)
        if document is None:
            raise NotFoundError("document", document_id)

        if document.blob_data:
            return self._from_blob(document)
        return self._from_file(document, cache)

    def delete(self, document_id: int, deal_id: int) -> None:
        """Delete a document after checking ownership.

        Removes the metadata row and its blob. Files on disk are left alone.

        Raises:
            NotFoundError: If the document does not exist.
            CrossDealAccessError: If deal_id does not own the document.
        """
        with self._uow.begin() as repos:
            self.guard.check(repos, document_id, deal_id)
            if not repos.documents.delete(document_id, deal_id):
                raise NotFoundError("document", document_id)
        logger.info("Deleted document %s from deal %s", document_id, deal_id)

    def update_metadata(
        self, document_id: int, deal_id: int, changes: Mapping[str, Any]
    ) -> DocumentSummary:
        """Patch mutable metadata after checking ownership.

        Raises:
            ValidationError: If the patch touches deal_id, uploaded_at or an
                unknown field.
            NotFoundError: If the document does not exist.
            CrossDealAccessError: If deal_id does not own the document.
        """
        with self._uow.begin() as repos:
            self.guard.check(repos, document_id, deal_id)
            updated = repos.documents.update_metadata(document_id, changes)
        if updated is None:
            raise NotFoundError("document", document_id)
        return updated

    def promote_to_blob(
        self, document_id: int, data: bytes, *, resolution: Resolution | None = None
    ) -> bool:
        """Copy bytes into the blob column of a file-backed record.

        A no-op when the record already has a blob. The original file and
        file_path are left in place.

        Args:
            document_id: Record to promote.
            data: Bytes read from the resolved file.
            resolution: Resolver outcome the bytes came from (recorded in
                the repair log).

        Returns:
            True if the blob was written, False if one already existed.

        Raises:
            ValidationError: If data is empty.
            NotFoundError: If the document does not exist.
        """
        if not data:
            raise ValidationError(
                "Cannot promote an empty payload", details={"document_id": document_id}
            )

        with self._uow.begin() as repos:
            document = repos.documents.get(document_id)
            if document is None:
                raise NotFoundError("document", document_id)
            if document.has_db_data:
                return False
            if not repos.documents.set_blob(document_id, data):
                return False
            repos.repairs.append(
                document_id=document_id,
                action=RepairAction.BLOB_MIGRATION,
                previous_value=document.file_path,
                new_value=resolution.path if resolution is not None else document.file_path,
                strategy=resolution.strategy.value if resolution is not None else None,
                confidence=_confidence_value(resolution),
                score=resolution.score if resolution is not None else None,
            )

        logger.info("Promoted document %s to blob storage (%d bytes)", document_id, len(data))
        return True

    def rewrite_path(self, document_id: int, resolution: Resolution) -> DocumentSummary:
        """Point a record's file_path at a resolved location.

        Only high and medium confidence resolutions are accepted.

        Raises:
            ValidationError: If the resolution is not found or low confidence.
            NotFoundError: If the document does not exist.
        """
        if not resolution.auto_repairable or resolution.path is None:
            raise ValidationError(
                "Only high or medium confidence matches can be applied",
                details={
                    "document_id": document_id,
                    "confidence": _confidence_value(resolution),
                },
            )
        new_path = self.resolver.to_recorded_path(resolution.path)

        with self._uow.begin() as repos:
            document = repos.documents.get(document_id)
            if document is None:
                raise NotFoundError("document", document_id)
            updated = repos.documents.update_metadata(document_id, {"file_path": new_path})
            repos.repairs.append(
                document_id=document_id,
                action=RepairAction.PATH_REWRITE,
                previous_value=document.file_path,
                new_value=new_path,
                strategy=resolution.strategy.value,
                confidence=_confidence_value(resolution),
                score=resolution.score,
            )

        logger.info(
            "Rewrote path of document %s: %r -> %r (%s)",
            document_id,
            document.file_path,
            new_path,
            resolution.strategy.value,
        )
        return updated

    def describe(self, document_id: int, deal_id: int | None = None) -> dict[str, Any]:
        """Storage diagnostics for one record, without its bytes."""
        with self._uow.begin() as repos:
            if deal_id is not None:
                self.guard.check(repos, document_id, deal_id)
            document = repos.documents.get(document_id)
        if document is None:
            raise NotFoundError("document", document_id)

        info = document.summary().to_dict()
        info["has_db_data"] = document.has_db_data
        info["has_file_path"] = document.has_file_path
        info["resolution"] = None
        if document.storage_mode is StorageMode.FILE:
            resolution = self.resolver.resolve(
                document.file_path, document.file_name, deal_id=document.deal_id
            )
            info["resolution"] = resolution.to_dict()
        return info

    def _from_blob(self, document: Document) -> RetrievedDocument:
        data = document.blob_data or b""
        warnings = []
        mismatch = size_mismatch_warning(document.id, document.file_size, len(data))
        if mismatch is not None:
            logger.warning("Document %s: %s", document.id, mismatch.message)
            warnings.append(mismatch)
        return RetrievedDocument(
            document_id=document.id,
            deal_id=document.deal_id,
            data=data,
            file_name=document.file_name,
            file_type=document.file_type,
            source=StorageMode.BLOB,
            warnings=tuple(warnings),
        )

    def _from_file(self, document: Document, cache: ListingCache | None) -> RetrievedDocument:
        if not document.has_file_path:
            raise self._gone(document)

        resolution = self.resolver.resolve(
            document.file_path, document.file_name, deal_id=document.deal_id, cache=cache
        )
        if not resolution.found or resolution.path is None:
            raise self._gone(document, searched_paths=resolution.searched_paths)

        try:
            data = Path(resolution.path).read_bytes()
        except OSError as e:
            raise self._gone(
                document, searched_paths=resolution.searched_paths, read_error=str(e)
            ) from e

        warnings: list[IntegrityWarning] = []
        if resolution.confidence is Confidence.LOW:
            logger.warning(
                "Document %s served from low-confidence match %s", document.id, resolution.path
            )
            warnings.append(
                IntegrityWarning(
                    kind=IntegrityWarningKind.LOW_CONFIDENCE_MATCH,
                    document_id=document.id,
                    message="Content located by keyword match; verify before relying on it",
                    details=resolution.to_dict(),
                )
            )
        mismatch = size_mismatch_warning(document.id, document.file_size, len(data))
        if mismatch is not None:
            logger.warning("Document %s: %s", document.id, mismatch.message)
            warnings.append(mismatch)

        return RetrievedDocument(
            document_id=document.id,
            deal_id=document.deal_id,
            data=data,
            file_name=document.file_name,
            file_type=document.file_type,
            source=StorageMode.FILE,
            resolution=resolution,
            warnings=tuple(warnings),
        )

    def _gone(
        self,
        document: DocumentSummary,
        *,
        searched_paths: tuple[str, ...] = (),
        read_error: str | None = None,
    ) -> GoneError:
        error = GoneError(
            document.id,
            file_name=document.file_name,
            recorded_size=document.file_size,
            has_db_data=document.has_db_data,
            has_file_path=document.has_file_path,
            expected_path=document.file_path,
            searched_paths=searched_paths,
            read_error=read_error,
        )
        logger.error(
            "Content gone for document %s (path=%r, has_db_data=%s, has_file_path=%s)",
            document.id,
            document.file_path,
            document.has_db_data,
            document.has_file_path,
        )
        return error


def _confidence_value(resolution: Resolution | None) -> str | None:
    if resolution is None or resolution.confidence is None:
        return None
    return resolution.confidence.value
