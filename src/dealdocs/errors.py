"""Error types for the document engine.

Every failure the engine raises derives from DocumentEngineError and carries
a machine-readable code, a human-readable message, structured details and the
HTTP status the route layer should map it to:

- ValidationError: bad, oversized or malformed input (400)
- CrossDealAccessError: document accessed through a deal that does not own it (403)
- NotFoundError: referenced deal or document does not exist (404)
- GoneError: metadata exists but the bytes do not (410)

IntegrityWarning is not raised. It is a record attached to read results and
audit reports for faults that must never block the read path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dealdocs.audit.report import AuditReport


class DocumentEngineError(Exception):
    """Base exception for document engine operations.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable error message.
        details: Additional structured context (no document bytes).
        http_status: Status code the route layer should respond with.
    """

    code = "DOCUMENT_ENGINE_ERROR"
    http_status = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DocumentEngineError):
    """Raised when an upload or patch is rejected before touching storage."""

    code = "VALIDATION_FAILED"
    http_status = 400


class NotFoundError(DocumentEngineError):
    """Raised when a referenced deal or document does not exist."""

    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource: str, resource_id: int) -> None:
        super().__init__(
            f"{resource.capitalize()} {resource_id} not found",
            details={"resource": resource, "id": resource_id},
        )
        self.resource = resource
        self.resource_id = resource_id


class CrossDealAccessError(DocumentEngineError):
    """Raised when a document is touched through a deal that does not own it.

    This is a caller or data-integrity fault, never a transient one, and is
    never retried.
    """

    code = "CROSS_DEAL_ACCESS"
    http_status = 403

    def __init__(self, document_id: int, expected_deal_id: int, actual_deal_id: int) -> None:
        super().__init__(
            f"Document {document_id} belongs to deal {actual_deal_id}, "
            f"not deal {expected_deal_id}",
            details={
                "document_id": document_id,
                "expected_deal_id": expected_deal_id,
                "actual_deal_id": actual_deal_id,
            },
        )
        self.document_id = document_id
        self.expected_deal_id = expected_deal_id
        self.actual_deal_id = actual_deal_id


class GoneError(DocumentEngineError):
    """Raised when a document's metadata exists but its content does not.

    Distinct from NotFoundError: the record is real, so callers should offer
    a re-upload instead of treating it as a missing resource.
    """

    code = "CONTENT_GONE"
    http_status = 410

    def __init__(
        self,
        document_id: int,
        *,
        file_name: str,
        recorded_size: int,
        has_db_data: bool,
        has_file_path: bool,
        expected_path: str | None = None,
        searched_paths: tuple[str, ...] = (),
        read_error: str | None = None,
    ) -> None:
        recommendations = _gone_recommendations(has_file_path)
        details: dict[str, Any] = {
            "document_id": document_id,
            "file_name": file_name,
            "expected_path": expected_path,
            "recorded_size": recorded_size,
            "has_db_data": has_db_data,
            "has_file_path": has_file_path,
            "searched_paths": list(searched_paths),
            "recommendations": recommendations,
        }
        if read_error is not None:
            details["read_error"] = read_error

        super().__init__(
            f"Content of document {document_id} is no longer available", details=details
        )
        self.document_id = document_id
        self.file_name = file_name
        self.expected_path = expected_path
        self.recorded_size = recorded_size
        self.has_db_data = has_db_data
        self.has_file_path = has_file_path
        self.searched_paths = searched_paths
        self.recommendations = recommendations


def _gone_recommendations(has_file_path: bool) -> list[str]:
    recommendations = ["Document needs to be re-uploaded - no valid data source found"]
    if has_file_path:
        recommendations.append("Update file path or restore missing file")
    return recommendations


class ConfigError(Exception):
    """Raised when engine configuration is missing or invalid.

    Fail closed: the engine does not start with a configuration it cannot
    interpret.
    """

    pass


class AuditAbortedError(Exception):
    """Raised when an audit run hits a fatal error (e.g. the store is unreachable).

    Records processed before the failure keep their corrections; the partial
    report is attached so the operator sees what was done.
    """

    def __init__(self, message: str, *, report: AuditReport) -> None:
        super().__init__(message)
        self.report = report


class IntegrityWarningKind(str, Enum):
    """Kinds of non-fatal integrity faults."""

    SIZE_MISMATCH = "size_mismatch"
    SUSPECTED_DEAL_MISMATCH = "suspected_deal_mismatch"
    LOW_CONFIDENCE_MATCH = "low_confidence_match"


@dataclass(frozen=True)
class IntegrityWarning:
    """A non-fatal integrity fault, recorded and reported but never raised.

    Attributes:
        kind: Fault category.
        document_id: Affected document.
        message: Human-readable description.
        details: Structured context for operators.
    """

    kind: IntegrityWarningKind
    document_id: int
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "document_id": self.document_id,
            "message": self.message,
            "details": self.details,
        }
