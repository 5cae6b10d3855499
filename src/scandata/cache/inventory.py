"""Inventory of the files a complete data bundle must provide."""

import os
from pathlib import Path
from typing import Iterable, List, Tuple

# Files shipped in data.zip, in the order they are reported
BUNDLE_FILES: Tuple[str, ...] = (
    "plugins.json",
    "themes.json",
    "timthumbs.txt",
    "user-agents.txt",
    "wordpresses.json",
    "wp_versions.xml",
)


def _is_present(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def missing_files(cache_dir: Path, files: Iterable[str] = BUNDLE_FILES) -> List[str]:
    """List required bundle files that are absent from the cache directory.

    A file only counts as present if it is a regular, readable file located
    directly under ``cache_dir``.

    Args:
        cache_dir: Cache directory to inspect
        files: Required filenames (defaults to BUNDLE_FILES)

    Returns:
        Missing filenames, in inventory order
    """
    cache_dir = Path(cache_dir)
    return [name for name in files if not _is_present(cache_dir / name)]


def is_complete(cache_dir: Path, files: Iterable[str] = BUNDLE_FILES) -> bool:
    """Check whether every required bundle file exists in the cache directory.

    A missing cache directory is simply not complete.
    """
    return not missing_files(cache_dir, files)
