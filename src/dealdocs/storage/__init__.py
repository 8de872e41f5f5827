"""Document byte storage: blob-in-database with legacy file fallback."""

from dealdocs.storage.binary_store import BinaryStore, RetrievedDocument
from dealdocs.storage.validation import PayloadRules

__all__ = ["BinaryStore", "PayloadRules", "RetrievedDocument"]
