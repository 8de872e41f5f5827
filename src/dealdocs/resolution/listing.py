"""Per-run cache of search-root directory listings.

A cache instance must not outlive a single audit run or request: filesystem
state can change between runs.
"""

from __future__ import annotations

import logging
import os
import threading

logger = logging.getLogger(__name__)


class ListingCache:
    """Thread-safe cache of sorted regular-file names per directory.

    Unreadable or missing directories list as empty and are remembered as
    such for the lifetime of the cache.
    """

    def __init__(self) -> None:
        self._listings: dict[str, tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def listing(self, root: str) -> tuple[str, ...]:
        """Return the lexically sorted regular-file names directly under root."""
        with self._lock:
            cached = self._listings.get(root)
            if cached is not None:
                return cached
            names = _scan(root)
            self._listings[root] = names
            return names

    def __len__(self) -> int:
        return len(self._listings)


def _scan(root: str) -> tuple[str, ...]:
    try:
        with os.scandir(root) as entries:
            names = [entry.name for entry in entries if _is_regular_file(entry)]
    except OSError as e:
        logger.debug("Skipping unreadable search root %s: %s", root, e)
        return ()
    return tuple(sorted(names))


def _is_regular_file(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_file()
    except OSError:
        return False
