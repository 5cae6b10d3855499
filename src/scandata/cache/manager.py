"""Bundle cache facade used by the scanner before loading reference data.

The cache is not safe against concurrent refreshes: nothing here locks the
cache directory. Callers that share a cache between processes must
serialize ``refresh`` themselves (the CLI holds a file lock for this).
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from scandata.cache import clock, inventory
from scandata.cache.config import CacheConfig, get_global_config
from scandata.cache.errors import MarkerWriteError
from scandata.cache.extractor import extract

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    """Lifecycle state of a cache directory."""

    ABSENT = "absent"
    INCOMPLETE = "incomplete"
    STALE_COMPLETE = "stale"
    FRESH_COMPLETE = "fresh"


class BundleCache:
    """Local cache of the scanner's reference data bundle.

    Tracks whether the extracted data files are complete and fresh, and
    refreshes them from a local ZIP archive.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        cache_dir: Optional[Union[str, Path]] = None,
        archive_path: Optional[Union[str, Path]] = None,
    ):
        """Initialize the bundle cache.

        Args:
            config: Cache configuration (uses global if None)
            cache_dir: Override the configured cache directory
            archive_path: Override the configured bundle archive
        """
        self.config = config or get_global_config()
        self.cache_dir = (
            Path(cache_dir).expanduser() if cache_dir else self.config.cache_dir
        )
        self.archive_path = (
            Path(archive_path).expanduser() if archive_path else self.config.archive_path
        )
        self.files = self.config.files
        self.window = self.config.window

    @property
    def marker_path(self) -> Path:
        """Location of the last-update marker."""
        return clock.marker_path(self.cache_dir)

    def is_complete(self) -> bool:
        """Check that every inventory file is present."""
        return inventory.is_complete(self.cache_dir, self.files)

    def missing_files(self) -> List[str]:
        """List inventory files missing from the cache."""
        return inventory.missing_files(self.cache_dir, self.files)

    def last_update(self) -> Optional[datetime]:
        """Time of the last successful refresh, if known."""
        return clock.read_marker(self.cache_dir)

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """Check whether the freshness window has elapsed since the last refresh."""
        return clock.is_stale(self.cache_dir, now, self.window)

    def needs_refresh(self, now: Optional[datetime] = None) -> bool:
        """Check if the cache must be refreshed before use.

        An incomplete cache always needs a refresh, whatever the marker says.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            True if files are missing or the cache is stale
        """
        if not self.is_complete():
            return True
        return self.is_stale(now)

    def archive_available(self, archive_path: Optional[Union[str, Path]] = None) -> bool:
        """Check whether a local bundle archive exists.

        Args:
            archive_path: Archive to check (defaults to the configured archive)
        """
        path = Path(archive_path) if archive_path else self.archive_path
        return path.exists()

    def refresh(
        self,
        archive_path: Optional[Union[str, Path]] = None,
        now: Optional[datetime] = None,
    ) -> List[Path]:
        """Replace the cached data files with the contents of a bundle archive.

        The marker is only written once extraction has succeeded, so a failed
        refresh leaves the cache reporting that it needs a refresh. An
        unreadable archive changes nothing on disk, not even the cache
        directory; a write failure can leave some members already replaced.

        Args:
            archive_path: Archive to extract (defaults to the configured archive)
            now: Refresh time to record (defaults to the current UTC time)

        Returns:
            Paths of the extracted files

        Raises:
            UnreadableArchiveError: If the archive is missing or invalid
            WriteFailedError: If a member cannot be written
            CacheDirectoryError: If the cache directory cannot be created
            MarkerWriteError: If the last-update marker cannot be written
        """
        path = Path(archive_path) if archive_path else self.archive_path
        logger.info(f"Refreshing {self.cache_dir} from {path}")

        extracted = extract(path, self.cache_dir)

        try:
            clock.write_marker(self.cache_dir, now)
        except OSError as e:
            logger.error(f"Cannot write last-update marker {self.marker_path}: {e}")
            raise MarkerWriteError(
                f"Cannot write last-update marker {self.marker_path}: {e}"
            ) from e

        missing = self.missing_files()
        if missing:
            logger.warning(f"Bundle {path} did not provide: {', '.join(missing)}")

        return extracted

    def state(self, now: Optional[datetime] = None) -> CacheState:
        """Classify the cache directory.

        Args:
            now: Reference time (defaults to the current UTC time)
        """
        exists = self.cache_dir.is_dir()
        complete = exists and self.is_complete()
        stale = complete and self.is_stale(now)
        return self._classify(exists, complete, stale)

    @staticmethod
    def _classify(exists: bool, complete: bool, stale: bool) -> CacheState:
        if not exists:
            return CacheState.ABSENT
        if not complete:
            return CacheState.INCOMPLETE
        if stale:
            return CacheState.STALE_COMPLETE
        return CacheState.FRESH_COMPLETE

    def get_status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Get a summary of the cache for display.

        The marker is read once and every time-dependent field is derived
        from that single reading.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            Status dict with cache information
        """
        now = clock.as_utc(now)
        last_update = self.last_update()
        missing = self.missing_files()
        complete = not missing

        age = remaining = None
        stale = True
        if last_update is not None:
            age = now - last_update
            remaining = max(timedelta(0), self.window - age)
            stale = last_update < now - self.window

        state = self._classify(self.cache_dir.is_dir(), complete, stale)

        return {
            "cache_dir": str(self.cache_dir),
            "archive_path": str(self.archive_path),
            "archive_available": self.archive_available(),
            "state": state.value,
            "files": {name: name not in missing for name in self.files},
            "last_update": last_update.isoformat() if last_update else None,
            "age_seconds": int(age.total_seconds()) if age is not None else None,
            "stale_in_seconds": (
                int(remaining.total_seconds()) if remaining is not None else None
            ),
            "needs_refresh": not complete or stale,
        }
