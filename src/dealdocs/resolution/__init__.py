"""Path resolution for legacy file-backed documents."""

from dealdocs.resolution.listing import ListingCache
from dealdocs.resolution.resolver import PathResolver
from dealdocs.resolution.result import (
    Confidence,
    Resolution,
    ResolutionStrategy,
)

__all__ = [
    "Confidence",
    "ListingCache",
    "PathResolver",
    "Resolution",
    "ResolutionStrategy",
]
