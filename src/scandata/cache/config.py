"""Cache configuration management."""

import json
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional, Tuple

from scandata.cache.clock import FRESHNESS_WINDOW
from scandata.cache.inventory import BUNDLE_FILES

DEFAULT_HOME = Path.home() / ".scandata"


@dataclass
class CacheConfig:
    """Configuration for the local data bundle cache.

    Attributes:
        cache_dir: Directory the bundle is extracted into (~/.scandata/data)
        archive_path: Local bundle archive used for refreshes (~/.scandata/data.zip)
        files: Filenames that must be present for the cache to be complete
        freshness_window: Seconds after a refresh before the cache is stale (5 days)
        lock_timeout: Seconds to wait for the refresh lock
    """

    cache_dir: Path = DEFAULT_HOME / "data"
    archive_path: Path = DEFAULT_HOME / "data.zip"
    files: Tuple[str, ...] = field(default=BUNDLE_FILES)
    freshness_window: int = int(FRESHNESS_WINDOW.total_seconds())
    lock_timeout: int = 30

    def __post_init__(self):
        """Normalize paths and validate the inventory."""
        self.cache_dir = Path(self.cache_dir).expanduser()
        self.archive_path = Path(self.archive_path).expanduser()
        self.files = tuple(self.files)
        if not self.files:
            raise ValueError("Bundle inventory cannot be empty")
        if self.freshness_window < 0:
            raise ValueError(
                f"freshness_window must be non-negative, got {self.freshness_window}"
            )

    @property
    def window(self) -> timedelta:
        """Freshness window as a timedelta."""
        return timedelta(seconds=self.freshness_window)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from file.

        Args:
            config_path: Path to config file. If None, uses default location.

        Returns:
            CacheConfig instance
        """
        if config_path is None:
            config_path = DEFAULT_HOME / "config.json"
        config_path = Path(config_path)

        if not config_path.exists():
            return cls()

        with open(config_path, "r") as f:
            data = json.load(f)

        if "files" in data:
            data["files"] = tuple(data["files"])

        return cls(**data)

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Args:
            config_path: Path to config file. If None, uses default location.
        """
        if config_path is None:
            config_path = DEFAULT_HOME / "config.json"
        config_path = Path(config_path)

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "cache_dir": str(self.cache_dir),
            "archive_path": str(self.archive_path),
            "files": list(self.files),
            "freshness_window": self.freshness_window,
            "lock_timeout": self.lock_timeout,
        }

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create configuration from environment variables.

        Environment variables:
            SCANDATA_CACHE_DIR: Cache directory path
            SCANDATA_ARCHIVE: Bundle archive path
            SCANDATA_FRESHNESS_WINDOW: Freshness window in seconds
            SCANDATA_LOCK_TIMEOUT: Refresh lock timeout in seconds

        Returns:
            CacheConfig instance
        """
        config = cls()

        if os.getenv("SCANDATA_CACHE_DIR"):
            config.cache_dir = Path(os.getenv("SCANDATA_CACHE_DIR")).expanduser()

        if os.getenv("SCANDATA_ARCHIVE"):
            config.archive_path = Path(os.getenv("SCANDATA_ARCHIVE")).expanduser()

        if os.getenv("SCANDATA_FRESHNESS_WINDOW"):
            config.freshness_window = int(os.getenv("SCANDATA_FRESHNESS_WINDOW"))

        if os.getenv("SCANDATA_LOCK_TIMEOUT"):
            config.lock_timeout = int(os.getenv("SCANDATA_LOCK_TIMEOUT"))

        return config


# Global cache configuration instance
_global_config: Optional[CacheConfig] = None


def get_global_config() -> CacheConfig:
    """Get global cache configuration.

    Returns:
        Global CacheConfig instance
    """
    global _global_config
    if _global_config is None:
        # Config file wins, otherwise environment and defaults
        config_path = DEFAULT_HOME / "config.json"
        if config_path.exists():
            _global_config = CacheConfig.load(config_path)
        else:
            _global_config = CacheConfig.from_env()
    return _global_config


def set_global_config(config: Optional[CacheConfig]) -> None:
    """Set global cache configuration.

    Args:
        config: CacheConfig instance to use globally, or None to reset
    """
    global _global_config
    _global_config = config
