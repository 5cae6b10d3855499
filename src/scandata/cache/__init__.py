"""Local cache of the scanner's reference data bundle.

This module decides whether the extracted reference data is present and
fresh, and refreshes it from a ZIP archive.

Key components:
- BundleCache: Main cache interface
- CacheConfig: Configuration management
- inventory: Required bundle files
- clock: Last-update marker and staleness
- extractor: Archive extraction
"""

from scandata.cache.config import CacheConfig
from scandata.cache.errors import (
    CacheDirectoryError,
    CacheError,
    CacheLockError,
    ExtractError,
    MarkerWriteError,
    UnreadableArchiveError,
    WriteFailedError,
)
from scandata.cache.manager import BundleCache, CacheState

__all__ = [
    "BundleCache",
    "CacheConfig",
    "CacheState",
    "CacheError",
    "ExtractError",
    "UnreadableArchiveError",
    "WriteFailedError",
    "CacheDirectoryError",
    "MarkerWriteError",
    "CacheLockError",
]
