"""Audit report: per-record health and the aggregate operator view.

Every record lands in exactly one storage type:

- blob: inline payload present (status blob_ok)
- filesystem: no payload, non-blank path (filesystem_ok / filesystem_broken)
- missing: neither (no_path when a blank path is recorded, missing when none)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from dealdocs.errors import IntegrityWarning, IntegrityWarningKind

if TYPE_CHECKING:
    from dealdocs.models.document import DocumentSummary
    from dealdocs.resolution.result import Resolution

BLOB_SHARE_TARGET = 0.80


class StorageType(str, Enum):
    """Where a record's bytes are expected to come from."""

    BLOB = "blob"
    FILESYSTEM = "filesystem"
    MISSING = "missing"


class RecordStatus(str, Enum):
    """Health of a single record."""

    BLOB_OK = "blob_ok"
    FILESYSTEM_OK = "filesystem_ok"
    FILESYSTEM_BROKEN = "filesystem_broken"
    NO_PATH = "no_path"
    MISSING = "missing"


PROBLEM_STATUSES = frozenset(
    {RecordStatus.FILESYSTEM_BROKEN, RecordStatus.NO_PATH, RecordStatus.MISSING}
)


class RecordAction(str, Enum):
    """What the runner did (or would do, in a dry run) to a record."""

    MIGRATED = "migrated"
    WOULD_MIGRATE = "would_migrate"
    PATH_REWRITTEN = "path_rewritten"
    WOULD_REWRITE_PATH = "would_rewrite_path"
    FLAGGED_FOR_REVIEW = "flagged_for_review"
    UNRESOLVED = "unresolved"


@dataclass
class RecordAudit:
    """Audit outcome of one document.

    Attributes:
        document_id: Audited document.
        deal_id: Owning deal at audit time.
        file_name: Display name.
        file_path: Recorded path at audit time.
        recorded_size: Recorded byte length.
        storage_type: Classified storage type.
        status: Classified health.
        actions: Corrections applied or proposed.
        resolution: Resolver outcome, when the record needed one.
        warnings: Integrity warnings raised for the record.
        error: Failure message if processing the record failed.
    """

    document_id: int
    deal_id: int
    file_name: str
    file_path: str | None
    recorded_size: int
    storage_type: StorageType
    status: RecordStatus
    actions: list[RecordAction] = field(default_factory=list)
    resolution: Resolution | None = None
    warnings: list[IntegrityWarning] = field(default_factory=list)
    error: str | None = None

    @property
    def is_problem(self) -> bool:
        return self.status in PROBLEM_STATUSES

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "document_id": self.document_id,
            "deal_id": self.deal_id,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "recorded_size": self.recorded_size,
            "storage_type": self.storage_type.value,
            "status": self.status.value,
            "actions": [a.value for a in self.actions],
            "resolution": self.resolution.to_dict() if self.resolution else None,
            "warnings": [w.to_dict() for w in self.warnings],
            "error": self.error,
        }


def classify(document: DocumentSummary, file_exists: bool) -> tuple[StorageType, RecordStatus]:
    """Classify a record from its blob length, recorded path and existence probe.

    Args:
        document: Record metadata.
        file_exists: Result of the recorded-location existence check; only
            consulted for filesystem records.

    Returns:
        Storage type and status.
    """
    if document.has_db_data:
        return StorageType.BLOB, RecordStatus.BLOB_OK
    if document.has_file_path:
        status = RecordStatus.FILESYSTEM_OK if file_exists else RecordStatus.FILESYSTEM_BROKEN
        return StorageType.FILESYSTEM, status
    if document.file_path is not None:
        return StorageType.MISSING, RecordStatus.NO_PATH
    return StorageType.MISSING, RecordStatus.MISSING


@dataclass
class AuditReport:
    """Aggregate result of an audit run.

    Records are kept sorted by document id so the serialized report does
    not depend on worker scheduling.
    """

    migrate: bool = False
    repair: bool = False
    dry_run: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    records: list[RecordAudit] = field(default_factory=list)
    deal_names: dict[int, str] = field(default_factory=dict)
    aborted: bool = False
    abort_reason: str | None = None

    def add(self, record: RecordAudit) -> None:
        self.records.append(record)

    def finish(self) -> None:
        self.records.sort(key=lambda r: r.document_id)
        self.finished_at = datetime.now(UTC)

    @property
    def total(self) -> int:
        return len(self.records)

    @property
    def status_counts(self) -> dict[str, int]:
        counts = Counter(r.status.value for r in self.records)
        return {status.value: counts.get(status.value, 0) for status in RecordStatus}

    @property
    def storage_counts(self) -> dict[str, int]:
        counts = Counter(r.storage_type.value for r in self.records)
        return {kind.value: counts.get(kind.value, 0) for kind in StorageType}

    @property
    def action_counts(self) -> dict[str, int]:
        counts = Counter(a.value for r in self.records for a in r.actions)
        return {action.value: counts.get(action.value, 0) for action in RecordAction}

    @property
    def problems(self) -> list[RecordAudit]:
        return [r for r in self.records if r.is_problem]

    @property
    def suspected_mismatches(self) -> list[RecordAudit]:
        return [
            r
            for r in self.records
            if any(w.kind is IntegrityWarningKind.SUSPECTED_DEAL_MISMATCH for w in r.warnings)
        ]

    @property
    def errors(self) -> list[RecordAudit]:
        return [r for r in self.records if r.error is not None]

    @property
    def has_findings(self) -> bool:
        """True when anything needs operator attention."""
        return bool(
            self.aborted
            or self.problems
            or self.errors
            or any(r.warnings for r in self.records)
        )

    def recommendations(self) -> list[str]:
        """Operator recommendations derived from the counts."""
        counts = self.status_counts
        recommendations: list[str] = []

        missing = counts[RecordStatus.MISSING.value] + counts[RecordStatus.NO_PATH.value]
        if missing:
            recommendations.append(
                f"{missing} document(s) need to be re-uploaded - no valid data source found"
            )
        broken = [r for r in self.records if r.status is RecordStatus.FILESYSTEM_BROKEN]
        unrepaired = [r for r in broken if RecordAction.PATH_REWRITTEN not in r.actions]
        if unrepaired:
            recommendations.append(
                f"{len(unrepaired)} document(s) have broken file paths - "
                "update file path or restore missing file"
            )
        flagged = self.action_counts[RecordAction.FLAGGED_FOR_REVIEW.value]
        if flagged:
            recommendations.append(
                f"{flagged} low-confidence match(es) need manual review before repair"
            )
        if self.suspected_mismatches:
            recommendations.append(
                f"{len(self.suspected_mismatches)} document(s) may be attached to the wrong "
                "deal - review and move manually"
            )
        if self.total:
            share = self.storage_counts[StorageType.BLOB.value] / self.total
            if share < BLOB_SHARE_TARGET:
                recommendations.append(
                    f"Consider migrating filesystem documents to database storage "
                    f"({share:.0%} currently stored in the database)"
                )
        return recommendations

    def deal_summaries(self) -> list[dict[str, Any]]:
        """Per deal: document count and issue count, ordered by deal id."""
        summaries: dict[int, dict[str, Any]] = {}
        for record in self.records:
            summary = summaries.setdefault(
                record.deal_id,
                {
                    "deal_id": record.deal_id,
                    "deal_name": self.deal_names.get(record.deal_id),
                    "documents": 0,
                    "issues": 0,
                },
            )
            summary["documents"] += 1
            if record.is_problem or record.warnings or record.error:
                summary["issues"] += 1
        return [summaries[k] for k in sorted(summaries)]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "options": {"migrate": self.migrate, "repair": self.repair, "dry_run": self.dry_run},
            "started_at": _isoformat(self.started_at),
            "finished_at": _isoformat(self.finished_at),
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "summary": {
                "total": self.total,
                "storage": self.storage_counts,
                "status": self.status_counts,
                "actions": self.action_counts,
                "problems": len(self.problems),
                "suspected_mismatches": len(self.suspected_mismatches),
                "errors": len(self.errors),
            },
            "problems": [r.to_dict() for r in self.problems],
            "suspected_mismatches": [r.to_dict() for r in self.suspected_mismatches],
            "errors": [r.to_dict() for r in self.errors],
            "deals": self.deal_summaries(),
            "recommendations": self.recommendations(),
            "records": [r.to_dict() for r in self.records],
        }


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")
