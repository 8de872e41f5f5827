"""Audit & repair runner.

Walks the whole document corpus and, per record:

1. classifies storage health (cheap existence probe, no resolution)
2. checks the recorded size against the blob, when there is one
3. flags a suspected content/deal mismatch (never corrected)
4. migration pass: promotes filesystem_ok records to blob storage
5. repair pass: rewrites file_path of filesystem_broken records when the
   resolver finds a high or medium confidence match; low confidence
   matches are only flagged

Each record is handled by narrow single-row writes through the binary store,
so a crash leaves processed records corrected and the rest untouched, and a
re-run is safe. The migration and repair passes are not chained within one
run: a record repaired in this run is migrated by the next one.

A problem with one record is recorded in the report and the run continues.
A store-level failure aborts the run with AuditAbortedError carrying the
partial report.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from dealdocs.audit.mismatch import DealNameIndex
from dealdocs.audit.report import (
    AuditReport,
    RecordAction,
    RecordAudit,
    RecordStatus,
    classify,
)
from dealdocs.errors import (
    AuditAbortedError,
    DocumentEngineError,
    IntegrityWarning,
    IntegrityWarningKind,
)
from dealdocs.persistence.db import DatabaseConfigError
from dealdocs.resolution.listing import ListingCache
from dealdocs.storage.binary_store import size_mismatch_warning

if TYPE_CHECKING:
    from dealdocs.models.document import DocumentSummary
    from dealdocs.persistence.unit_of_work import UnitOfWork
    from dealdocs.resolution.resolver import PathResolver
    from dealdocs.storage.binary_store import BinaryStore

logger = logging.getLogger(__name__)

_FATAL_ERRORS = (SQLAlchemyError, DatabaseConfigError)


class AuditRunner:
    """Batch audit over the full document corpus.

    Args:
        uow: Unit of work used to read the corpus.
        store: Binary store; all corrections go through its write surface.
        resolver: Path resolver used for existence probes and resolution.
        workers: Worker pool size; 1 processes records sequentially.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        store: BinaryStore,
        resolver: PathResolver,
        *,
        workers: int = 1,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self._uow = uow
        self.store = store
        self.resolver = resolver
        self.workers = workers

    def run(
        self, *, migrate: bool = False, repair: bool = False, dry_run: bool = False
    ) -> AuditReport:
        """Audit the corpus and optionally apply corrections.

        Args:
            migrate: Promote filesystem_ok records to blob storage.
            repair: Rewrite broken paths on high/medium confidence matches.
            dry_run: Report what would change without writing.

        Returns:
            The completed report.

        Raises:
            AuditAbortedError: If the store fails mid-run.
        """
        report = AuditReport(migrate=migrate, repair=repair, dry_run=dry_run)
        # One listing cache per run; directory contents can change between runs.
        cache = ListingCache()

        try:
            with self._uow.begin() as repos:
                documents = repos.documents.list_all()
                deals = repos.deals.list_all()
        except _FATAL_ERRORS as e:
            raise self._abort(report, e) from e

        index = DealNameIndex(deals)
        report.deal_names = dict(index.names)
        logger.info(
            "Auditing %d documents (migrate=%s, repair=%s, dry_run=%s, workers=%d)",
            len(documents),
            migrate,
            repair,
            dry_run,
            self.workers,
        )

        def process(document: DocumentSummary) -> RecordAudit:
            return self.audit_record(
                document, index, cache, migrate=migrate, repair=repair, dry_run=dry_run
            )

        try:
            if self.workers == 1:
                for document in documents:
                    report.add(process(document))
            else:
                with ThreadPoolExecutor(max_workers=self.workers) as executor:
                    futures = [executor.submit(process, d) for d in documents]
                    try:
                        for future in futures:
                            report.add(future.result())
                    except BaseException:
                        executor.shutdown(wait=True, cancel_futures=True)
                        raise
        except _FATAL_ERRORS as e:
            raise self._abort(report, e) from e

        report.finish()
        logger.info(
            "Audit finished: %d documents, %d problems, %d errors",
            report.total,
            len(report.problems),
            len(report.errors),
        )
        return report

    def audit_record(
        self,
        document: DocumentSummary,
        index: DealNameIndex,
        cache: ListingCache,
        *,
        migrate: bool = False,
        repair: bool = False,
        dry_run: bool = False,
    ) -> RecordAudit:
        """Classify one record and apply the enabled passes to it."""
        exists = document.has_file_path and self.resolver.recorded_location_exists(
            document.file_path
        )
        storage_type, status = classify(document, exists)
        record = RecordAudit(
            document_id=document.id,
            deal_id=document.deal_id,
            file_name=document.file_name,
            file_path=document.file_path,
            recorded_size=document.file_size,
            storage_type=storage_type,
            status=status,
        )

        if status is RecordStatus.BLOB_OK:
            mismatch = size_mismatch_warning(document.id, document.file_size, document.blob_size)
            if mismatch is not None:
                record.warnings.append(mismatch)

        suspected = index.check(document)
        if suspected is not None:
            logger.warning("Document %s: %s", document.id, suspected.message)
            record.warnings.append(suspected)

        try:
            if status is RecordStatus.FILESYSTEM_OK and migrate:
                self._migrate(document, record, cache, dry_run)
            elif status is RecordStatus.FILESYSTEM_BROKEN and repair:
                self._repair(document, record, cache, dry_run)
        except (DocumentEngineError, OSError) as e:
            logger.error("Audit of document %s failed: %s", document.id, e)
            record.error = str(e)

        return record

    def _migrate(
        self, document: DocumentSummary, record: RecordAudit, cache: ListingCache, dry_run: bool
    ) -> None:
        resolution = self.resolver.resolve(
            document.file_path, document.file_name, deal_id=document.deal_id, cache=cache
        )
        record.resolution = resolution
        if not resolution.auto_repairable or resolution.path is None:
            record.actions.append(RecordAction.UNRESOLVED)
            return

        data = Path(resolution.path).read_bytes()
        mismatch = size_mismatch_warning(document.id, document.file_size, len(data))
        if mismatch is not None:
            record.warnings.append(mismatch)

        if dry_run:
            record.actions.append(RecordAction.WOULD_MIGRATE)
        elif self.store.promote_to_blob(document.id, data, resolution=resolution):
            record.actions.append(RecordAction.MIGRATED)

    def _repair(
        self, document: DocumentSummary, record: RecordAudit, cache: ListingCache, dry_run: bool
    ) -> None:
        resolution = self.resolver.resolve(
            document.file_path, document.file_name, deal_id=document.deal_id, cache=cache
        )
        record.resolution = resolution
        if not resolution.found:
            record.actions.append(RecordAction.UNRESOLVED)
        elif not resolution.auto_repairable:
            record.actions.append(RecordAction.FLAGGED_FOR_REVIEW)
            record.warnings.append(
                IntegrityWarning(
                    kind=IntegrityWarningKind.LOW_CONFIDENCE_MATCH,
                    document_id=document.id,
                    message="Candidate found by keyword match only; review before repairing",
                    details=resolution.to_dict(),
                )
            )
        elif dry_run:
            record.actions.append(RecordAction.WOULD_REWRITE_PATH)
        else:
            self.store.rewrite_path(document.id, resolution)
            record.actions.append(RecordAction.PATH_REWRITTEN)

    def _abort(self, report: AuditReport, error: Exception) -> AuditAbortedError:
        report.aborted = True
        report.abort_reason = str(error)
        report.finish()
        logger.error("Audit aborted after %d documents: %s", report.total, error)
        return AuditAbortedError(f"Audit aborted: {error}", report=report)
