"""Deal-scoped access control for documents."""

from dealdocs.isolation.guard import DealIsolationGuard

__all__ = ["DealIsolationGuard"]
