"""Corpus audit, migration and path repair."""

from dealdocs.audit.mismatch import DealNameIndex
from dealdocs.audit.report import (
    AuditReport,
    RecordAction,
    RecordAudit,
    RecordStatus,
    StorageType,
)
from dealdocs.audit.runner import AuditRunner

__all__ = [
    "AuditReport",
    "AuditRunner",
    "DealNameIndex",
    "RecordAction",
    "RecordAudit",
    "RecordStatus",
    "StorageType",
]
