"""Exceptions raised by the bundle cache."""

from pathlib import Path
from typing import Optional, Union


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass


class ExtractError(CacheError):
    """Raised when a bundle archive cannot be extracted into the cache."""

    pass


class UnreadableArchiveError(ExtractError):
    """Raised when the archive is missing or is not a valid ZIP file."""

    def __init__(self, archive_path: Union[str, Path], reason: str = ""):
        self.archive_path = Path(archive_path)
        message = f"Cannot read bundle archive {self.archive_path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class WriteFailedError(ExtractError):
    """Raised when an archive member cannot be written to the cache directory."""

    def __init__(self, member: str, reason: str = ""):
        self.member = member
        message = f"Failed to write archive member {member!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CacheDirectoryError(ExtractError):
    """Raised when the cache directory cannot be created."""

    pass


class MarkerWriteError(CacheError):
    """Raised when the last-update marker cannot be written."""

    pass


class CacheLockError(CacheError):
    """Raised when unable to acquire the cache refresh lock."""

    def __init__(self, message: str, lock_path: Optional[Path] = None):
        self.lock_path = lock_path
        super().__init__(message)
