"""Tests for the dual-mode binary store."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import PDF_BYTES, create_deals, seed_file_document, write_file

from dealdocs.config import EngineConfig
from dealdocs.engine import DocumentEngine
from dealdocs.errors import (
    CrossDealAccessError,
    GoneError,
    IntegrityWarningKind,
    NotFoundError,
    ValidationError,
)
from dealdocs.models import DocumentType, RepairAction, StorageMode
from dealdocs.persistence.unit_of_work import InMemoryUnitOfWork
from dealdocs.resolution import Confidence, ResolutionStrategy
from dealdocs.storage import PayloadRules


@pytest.fixture
def deal_ids(uow: InMemoryUnitOfWork) -> list[int]:
    return create_deals(uow, "Winkler Holdings", "Acme Robotics")


class TestStore:
    """Tests for writing new documents."""

    def test_blob_round_trip(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        """A stored payload is blob-backed and read back unchanged."""
        deal_id = deal_ids[0]

        summary = engine.store.store(
            deal_id, "a.txt", "text/plain", b"0123456789", uploaded_by=42,
            document_type=DocumentType.TERM_SHEET, description="notes",
        )
        retrieved = engine.store.retrieve(summary.id, deal_id)

        assert summary.storage_mode is StorageMode.BLOB
        assert summary.file_size == 10
        assert summary.blob_size == 10
        assert summary.file_path is None
        assert summary.document_type is DocumentType.TERM_SHEET
        assert retrieved.data == b"0123456789"
        assert retrieved.source is StorageMode.BLOB
        assert retrieved.warnings == ()

    def test_new_documents_are_listed_for_their_deal(
        self, engine: DocumentEngine, deal_ids: list[int]
    ) -> None:
        """Stored documents appear in their deal's listing only."""
        summary = engine.store.store(deal_ids[0], "a.txt", "text/plain", b"data")

        assert [d.id for d in engine.guard.list_for_deal(deal_ids[0])] == [summary.id]
        assert engine.guard.list_for_deal(deal_ids[1]) == []

    def test_empty_payload_rejected(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        with pytest.raises(ValidationError, match="empty"):
            engine.store.store(deal_ids[0], "a.txt", "text/plain", b"")

    def test_blank_file_name_rejected(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        with pytest.raises(ValidationError):
            engine.store.store(deal_ids[0], "   ", "text/plain", b"data")

    def test_oversized_payload_rejected(
        self, tmp_path: Path, uow: InMemoryUnitOfWork, deal_ids: list[int]
    ) -> None:
        """Payloads above the configured ceiling are rejected before storage."""
        small = DocumentEngine.build(
            EngineConfig(search_roots=(), max_upload_bytes=8, base_dir=tmp_path), uow
        )

        with pytest.raises(ValidationError) as exc_info:
            small.store.store(deal_ids[0], "a.txt", "text/plain", b"123456789")

        assert exc_info.value.details["max_bytes"] == 8
        assert small.guard.list_for_deal(deal_ids[0]) == []

    def test_pdf_magic_header_enforced(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        """A declared PDF must start with the PDF header."""
        with pytest.raises(ValidationError, match="application/pdf"):
            engine.store.store(deal_ids[0], "deck.pdf", "application/pdf", b"hello")

    def test_pdf_extension_enforced_when_mislabelled(
        self, engine: DocumentEngine, deal_ids: list[int]
    ) -> None:
        """A *.pdf name is checked as a PDF whatever the declared type."""
        with pytest.raises(ValidationError):
            engine.store.store(deal_ids[0], "deck.pdf", "application/octet-stream", b"hello")

    def test_valid_pdf_accepted(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        summary = engine.store.store(
            deal_ids[0], "deck.pdf", "application/pdf; charset=binary", PDF_BYTES
        )

        assert summary.blob_size == len(PDF_BYTES)

    def test_unknown_deal_rejected(self, engine: DocumentEngine) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            engine.store.store(99, "a.txt", "text/plain", b"data")

        assert exc_info.value.details == {"resource": "deal", "id": 99}

    def test_invalid_document_type_rejected(
        self, engine: DocumentEngine, deal_ids: list[int]
    ) -> None:
        with pytest.raises(ValidationError):
            engine.store.store(deal_ids[0], "a.txt", "text/plain", b"data", document_type="memo")


class TestPayloadRules:
    """Tests for the payload validator on its own."""

    def test_custom_magic_header(self) -> None:
        rules = PayloadRules(max_bytes=100, magic_headers={"image/png": b"\x89PNG"})

        rules.validate("logo.png", "image/png", b"\x89PNG....")
        with pytest.raises(ValidationError):
            rules.validate("logo.png", "image/png", b"GIF89a")

    def test_untyped_payload_only_checked_for_size(self) -> None:
        PayloadRules(max_bytes=4).validate("notes", "", b"abcd")


class TestRetrieveFileBacked:
    """Tests for reading legacy file-backed records."""

    def test_reads_resolved_file(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        primary_root: Path,
    ) -> None:
        """A file at its recorded path is served with no warnings."""
        write_file(primary_root / "deck.pdf")
        doc = seed_file_document(
            uow, deal_ids[0], "deck.pdf", "uploads/deck.pdf", file_size=len(PDF_BYTES)
        )

        retrieved = engine.store.retrieve(doc.id, deal_ids[0])

        assert retrieved.data == PDF_BYTES
        assert retrieved.source is StorageMode.FILE
        assert retrieved.resolution is not None
        assert retrieved.resolution.strategy is ResolutionStrategy.DIRECT_PATH
        assert retrieved.warnings == ()

    def test_missing_file_raises_gone(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int]
    ) -> None:
        """Metadata with an unresolvable path is gone, not empty."""
        doc = seed_file_document(uow, deal_ids[0], "x.pdf", "uploads/x.pdf", file_size=2048)

        with pytest.raises(GoneError) as exc_info:
            engine.store.retrieve(doc.id, deal_ids[0])

        error = exc_info.value
        assert error.http_status == 410
        assert error.has_db_data is False
        assert error.has_file_path is True
        assert error.expected_path == "uploads/x.pdf"
        assert error.recorded_size == 2048
        assert len(error.searched_paths) > 0
        assert error.recommendations == [
            "Document needs to be re-uploaded - no valid data source found",
            "Update file path or restore missing file",
        ]

    def test_pathless_record_raises_gone(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int]
    ) -> None:
        doc = seed_file_document(uow, deal_ids[0], "x.pdf", None)

        with pytest.raises(GoneError) as exc_info:
            engine.store.retrieve(doc.id)

        assert exc_info.value.has_file_path is False
        assert exc_info.value.recommendations == [
            "Document needs to be re-uploaded - no valid data source found"
        ]

    def test_size_mismatch_is_a_warning(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        primary_root: Path,
    ) -> None:
        """A wrong recorded size never blocks the read."""
        write_file(primary_root / "deck.pdf")
        doc = seed_file_document(uow, deal_ids[0], "deck.pdf", "uploads/deck.pdf", file_size=999)

        retrieved = engine.store.retrieve(doc.id, deal_ids[0])

        assert retrieved.data == PDF_BYTES
        assert [w.kind for w in retrieved.warnings] == [IntegrityWarningKind.SIZE_MISMATCH]
        assert retrieved.warnings[0].details == {
            "recorded_size": 999,
            "actual_size": len(PDF_BYTES),
        }

    def test_low_confidence_match_served_with_warning(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        secondary_root: Path,
    ) -> None:
        """A keyword match is served, flagged for review."""
        write_file(secondary_root / "Memorandum-Offering-Winkler-final.pdf")
        doc = seed_file_document(
            uow,
            deal_ids[0],
            "Winkler Offering Memorandum.pdf",
            "uploads/Winkler Offering Memorandum.pdf",
            file_size=len(PDF_BYTES),
        )

        retrieved = engine.store.retrieve(doc.id, deal_ids[0])

        assert retrieved.data == PDF_BYTES
        assert retrieved.resolution is not None
        assert retrieved.resolution.confidence is Confidence.LOW
        assert [w.kind for w in retrieved.warnings] == [IntegrityWarningKind.LOW_CONFIDENCE_MATCH]


class TestScopedAccess:
    """Tests for deal-scoped reads, patches and deletes."""

    def test_cross_deal_read_rejected(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        summary = engine.store.store(deal_ids[0], "a.txt", "text/plain", b"data")

        with pytest.raises(CrossDealAccessError) as exc_info:
            engine.store.retrieve(summary.id, deal_ids[1])

        assert exc_info.value.expected_deal_id == deal_ids[1]
        assert exc_info.value.actual_deal_id == deal_ids[0]

    def test_unknown_document(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        with pytest.raises(NotFoundError):
            engine.store.retrieve(999, deal_ids[0])

    def test_delete_keeps_file_on_disk(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        primary_root: Path,
    ) -> None:
        """Deleting a file-backed record removes the row, not the file."""
        target = write_file(primary_root / "deck.pdf")
        doc = seed_file_document(uow, deal_ids[0], "deck.pdf", "uploads/deck.pdf")

        engine.store.delete(doc.id, deal_ids[0])

        assert target.exists()
        with pytest.raises(NotFoundError):
            engine.store.retrieve(doc.id)

    def test_delete_through_wrong_deal_rejected(
        self, engine: DocumentEngine, deal_ids: list[int]
    ) -> None:
        summary = engine.store.store(deal_ids[0], "a.txt", "text/plain", b"data")

        with pytest.raises(CrossDealAccessError):
            engine.store.delete(summary.id, deal_ids[1])

        assert engine.store.retrieve(summary.id, deal_ids[0]).data == b"data"

    def test_update_metadata(self, engine: DocumentEngine, deal_ids: list[int]) -> None:
        summary = engine.store.store(deal_ids[0], "a.txt", "text/plain", b"data")

        updated = engine.store.update_metadata(
            summary.id,
            deal_ids[0],
            {"description": "Q3 notes", "document_type": "investor_report"},
        )

        assert updated.description == "Q3 notes"
        assert updated.document_type is DocumentType.INVESTOR_REPORT
        assert updated.uploaded_at == summary.uploaded_at

    @pytest.mark.parametrize("field", ["deal_id", "uploaded_at", "id", "file_data"])
    def test_update_metadata_rejects_protected_fields(
        self, engine: DocumentEngine, deal_ids: list[int], field: str
    ) -> None:
        summary = engine.store.store(deal_ids[0], "a.txt", "text/plain", b"data")

        with pytest.raises(ValidationError):
            engine.store.update_metadata(summary.id, deal_ids[0], {field: 2})

        assert engine.store.describe(summary.id)["deal_id"] == deal_ids[0]


class TestCorrections:
    """Tests for promote_to_blob and rewrite_path."""

    def test_promote_to_blob_is_idempotent(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        primary_root: Path,
    ) -> None:
        """The first promotion writes the blob; later ones are no-ops."""
        target = write_file(primary_root / "deck.pdf")
        doc = seed_file_document(uow, deal_ids[0], "deck.pdf", "uploads/deck.pdf")

        assert engine.store.promote_to_blob(doc.id, PDF_BYTES) is True
        assert engine.store.promote_to_blob(doc.id, b"other") is False

        retrieved = engine.store.retrieve(doc.id, deal_ids[0])
        assert retrieved.source is StorageMode.BLOB
        assert retrieved.data == PDF_BYTES
        assert target.exists()
        assert engine.store.describe(doc.id)["file_path"] == "uploads/deck.pdf"
        with uow.begin() as repos:
            repairs = repos.repairs.list_for_document(doc.id)
        assert [r.action for r in repairs] == [RepairAction.BLOB_MIGRATION]

    def test_promote_rejects_empty_payload(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int]
    ) -> None:
        doc = seed_file_document(uow, deal_ids[0], "deck.pdf", "uploads/deck.pdf")

        with pytest.raises(ValidationError):
            engine.store.promote_to_blob(doc.id, b"")

    def test_rewrite_path_rejects_low_confidence(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        secondary_root: Path,
    ) -> None:
        write_file(secondary_root / "Memorandum-Offering-Winkler-final.pdf")
        path = "uploads/Winkler Offering Memorandum.pdf"
        doc = seed_file_document(uow, deal_ids[0], "Winkler Offering Memorandum.pdf", path)
        resolution = engine.resolver.resolve(path, doc.file_name)

        with pytest.raises(ValidationError):
            engine.store.rewrite_path(doc.id, resolution)

        assert engine.store.describe(doc.id)["file_path"] == path

    def test_rewrite_path_applies_medium_confidence(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        secondary_root: Path,
    ) -> None:
        """A similarity match is recorded relative to the base directory and logged."""
        write_file(secondary_root / "term-sheet-v2-final.pdf")
        doc = seed_file_document(
            uow, deal_ids[0], "term_sheet_v2.pdf", "uploads/term_sheet_v2.pdf"
        )
        resolution = engine.resolver.resolve(doc.file_path, doc.file_name)

        updated = engine.store.rewrite_path(doc.id, resolution)

        assert updated.file_path == "archive/term-sheet-v2-final.pdf"
        with uow.begin() as repos:
            (repair,) = repos.repairs.list_for_document(doc.id)
        assert repair.action is RepairAction.PATH_REWRITE
        assert repair.previous_value == "uploads/term_sheet_v2.pdf"
        assert repair.new_value == "archive/term-sheet-v2-final.pdf"
        assert repair.confidence == "medium"
        assert repair.strategy == "similarity_match"


class TestDescribe:
    def test_file_backed_record_includes_resolution(
        self, engine: DocumentEngine, uow: InMemoryUnitOfWork, deal_ids: list[int],
        primary_root: Path,
    ) -> None:
        write_file(primary_root / "deck.pdf")
        doc = seed_file_document(uow, deal_ids[0], "deck.pdf", "uploads/deck.pdf")

        info = engine.store.describe(doc.id, deal_ids[0])

        assert info["storage_mode"] == "file"
        assert info["has_db_data"] is False
        assert info["has_file_path"] is True
        assert info["resolution"]["found"] is True

    def test_blob_record_has_no_resolution(
        self, engine: DocumentEngine, deal_ids: list[int]
    ) -> None:
        summary = engine.store.store(deal_ids[0], "a.txt", "text/plain", b"data")

        info = engine.store.describe(summary.id)

        assert info["storage_mode"] == "blob"
        assert info["resolution"] is None
        assert "blob_data" not in info
