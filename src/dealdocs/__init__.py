"""Deal document storage and resolution engine.

Stores uploaded deal documents as database blobs, serves them back
byte-exact, and reconciles legacy records whose bytes still live on the
filesystem under stale or renamed paths.
"""

__version__ = "0.4.0"
