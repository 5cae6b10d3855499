"""Extraction of data bundle archives into the cache directory."""

import logging
import posixpath
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import Dict, List

from scandata.cache.errors import (
    CacheDirectoryError,
    UnreadableArchiveError,
    WriteFailedError,
)

logger = logging.getLogger(__name__)


def member_filename(member_name: str) -> str:
    """Return the flat filename an archive member is extracted to.

    Directory structure inside the archive is discarded, so
    ``data/plugins.json`` lands in the cache root as ``plugins.json``.

    Examples:
        >>> member_filename('data/plugins.json')
        'plugins.json'
        >>> member_filename('themes.json')
        'themes.json'
    """
    # ZIP names use forward slashes, but some tools write backslashes
    return posixpath.basename(member_name.replace("\\", "/"))


def extract(archive_path: Path, cache_dir: Path) -> List[Path]:
    """Unpack every member of a ZIP archive into the cache directory.

    Members are written in archive order. An existing file with the same
    name is deleted before the member is written. There is no rollback:
    if a member fails to write, the members before it stay extracted. The
    cache directory is only created once the archive has been opened.

    Args:
        archive_path: Path to the bundle archive
        cache_dir: Directory to extract into (created if missing)

    Returns:
        Paths of the extracted files, in archive order

    Raises:
        UnreadableArchiveError: If the archive is missing or not a valid ZIP
        WriteFailedError: If a member cannot be written
        CacheDirectoryError: If the cache directory cannot be created
    """
    archive_path = Path(archive_path)
    cache_dir = Path(cache_dir)

    # Open the archive first so an unreadable archive leaves the cache untouched
    try:
        archive = zipfile.ZipFile(archive_path)
    except (OSError, zipfile.BadZipFile) as e:
        raise UnreadableArchiveError(archive_path, str(e)) from e

    extracted: List[Path] = []
    seen: Dict[str, str] = {}

    with archive:
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create cache directory {cache_dir}: {e}")
            raise CacheDirectoryError(
                f"Cannot create cache directory {cache_dir}: {e}"
            ) from e

        for info in archive.infolist():
            if info.is_dir():
                continue

            filename = member_filename(info.filename)
            if not filename:
                continue

            if filename in seen:
                logger.warning(
                    f"Archive member {info.filename!r} overwrites {seen[filename]!r} "
                    f"(both extract to {filename})"
                )
            seen[filename] = info.filename

            destination = cache_dir / filename
            logger.debug(f"Extracting {info.filename} -> {destination}")
            _extract_member(archive, info, destination, archive_path)
            if destination not in extracted:
                extracted.append(destination)

    logger.info(f"Extracted {len(extracted)} files from {archive_path} into {cache_dir}")
    return extracted


def _extract_member(
    archive: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    destination: Path,
    archive_path: Path,
) -> None:
    """Replace ``destination`` with the contents of one archive member."""
    try:
        if destination.exists() or destination.is_symlink():
            logger.debug(f"Deleting existing {destination}")
            destination.unlink()
    except OSError as e:
        logger.error(f"Cannot remove existing file {destination}: {e}")
        raise WriteFailedError(info.filename, str(e)) from e

    try:
        source = archive.open(info)
    except (zipfile.BadZipFile, RuntimeError, NotImplementedError) as e:
        # Encrypted members raise RuntimeError, unknown compression NotImplementedError
        raise UnreadableArchiveError(archive_path, f"{info.filename}: {e}") from e

    try:
        with source, open(destination, "wb") as target:
            shutil.copyfileobj(source, target)
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        # Corrupt deflate data raises zlib.error, truncated streams EOFError
        raise UnreadableArchiveError(archive_path, f"{info.filename}: {e}") from e
    except OSError as e:
        logger.error(f"Error writing {destination}: {e}")
        raise WriteFailedError(info.filename, str(e)) from e
