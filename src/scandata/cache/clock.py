"""Last-update marker handling and staleness checks.

The marker is a single-line text file holding the time of the last
successful refresh as an RFC 3339 timestamp (UTC, second resolution).
A marker that is missing or cannot be parsed means the cache has never
been refreshed, which always makes it stale.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MARKER_FILENAME = ".last_update"
FRESHNESS_WINDOW = timedelta(days=5)

# Format written by older releases, e.g. "2017-01-04 09:21:10 +0100"
_LEGACY_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def marker_path(cache_dir: Path) -> Path:
    """Return the location of the last-update marker for a cache directory."""
    return Path(cache_dir) / MARKER_FILENAME


def as_utc(moment: Optional[datetime]) -> datetime:
    """Normalize a datetime to UTC, treating naive values as UTC."""
    if moment is None:
        return datetime.now(timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_timestamp(text: str) -> Optional[datetime]:
    """Parse marker content into an aware UTC datetime.

    Args:
        text: Raw marker content

    Returns:
        Parsed datetime, or None if the content is not a timestamp
    """
    text = text.strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.strptime(text, _LEGACY_FORMAT)
        except ValueError:
            return None

    try:
        return as_utc(parsed)
    except OverflowError:
        # Offsets at the edges of the datetime range, e.g. 0001-01-01T00:00:00+01:00
        return None


def format_timestamp(moment: datetime) -> str:
    """Serialize a datetime the way it is stored in the marker."""
    return as_utc(moment).replace(microsecond=0).isoformat()


def read_marker(cache_dir: Path) -> Optional[datetime]:
    """Read the time of the last successful refresh.

    Args:
        cache_dir: Cache directory holding the marker

    Returns:
        Last update time, or None if the marker is absent or malformed
    """
    path = marker_path(cache_dir)
    if not path.is_file():
        return None

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read last-update marker {path}: {e}")
        return None

    moment = parse_timestamp(content)
    if moment is None:
        logger.warning(f"Ignoring malformed last-update marker {path}")
    return moment


def write_marker(cache_dir: Path, now: Optional[datetime] = None) -> Path:
    """Record ``now`` as the time of the last successful refresh.

    Overwrites any existing marker. Raises OSError if the marker cannot be
    written.

    Args:
        cache_dir: Cache directory holding the marker
        now: Refresh time (defaults to the current UTC time)

    Returns:
        Path to the marker file
    """
    path = marker_path(cache_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_timestamp(as_utc(now)) + "\n", encoding="utf-8")
    return path


def is_stale(
    cache_dir: Path,
    now: Optional[datetime] = None,
    window: timedelta = FRESHNESS_WINDOW,
) -> bool:
    """Check if the cache is older than the freshness window.

    A marker exactly ``window`` old is still fresh.

    Args:
        cache_dir: Cache directory holding the marker
        now: Reference time (defaults to the current UTC time)
        window: Freshness window

    Returns:
        True if the cache needs to be refreshed
    """
    last_update = read_marker(cache_dir)
    if last_update is None:
        return True
    return last_update < as_utc(now) - window


def marker_age(cache_dir: Path, now: Optional[datetime] = None) -> Optional[timedelta]:
    """Get time elapsed since the last refresh, or None if never refreshed."""
    last_update = read_marker(cache_dir)
    if last_update is None:
        return None
    return as_utc(now) - last_update


def time_until_stale(
    cache_dir: Path,
    now: Optional[datetime] = None,
    window: timedelta = FRESHNESS_WINDOW,
) -> Optional[timedelta]:
    """Get time remaining before the cache becomes stale.

    Returns:
        Remaining time (zero once stale), or None if never refreshed
    """
    age = marker_age(cache_dir, now)
    if age is None:
        return None
    return max(timedelta(0), window - age)
