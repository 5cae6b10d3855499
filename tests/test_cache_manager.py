"""Unit tests for the bundle cache facade."""

import zipfile
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from scandata.cache import (
    BundleCache,
    CacheConfig,
    CacheState,
    MarkerWriteError,
    UnreadableArchiveError,
    WriteFailedError,
)
from scandata.cache.clock import marker_path, read_marker, write_marker

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
FILES = ("plugins.json", "themes.json")


def make_archive(path, members):
    """Write a ZIP archive with the given {name: content} members."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return path


@pytest.fixture
def cache_config(tmp_path):
    """Create test cache configuration."""
    return CacheConfig(
        cache_dir=tmp_path / "data",
        archive_path=tmp_path / "data.zip",
        files=FILES,
    )


@pytest.fixture
def cache(cache_config):
    """Create test bundle cache."""
    return BundleCache(cache_config)


@pytest.fixture
def archive(cache_config):
    """Bundle archive providing every inventory file."""
    return make_archive(
        cache_config.archive_path,
        {"plugins.json": '{"akismet": {}}', "themes.json": '{"twentyten": {}}'},
    )


class TestBundleCacheInitialization:
    """Test bundle cache construction."""

    def test_uses_config(self, cache, cache_config):
        assert cache.cache_dir == cache_config.cache_dir
        assert cache.archive_path == cache_config.archive_path
        assert cache.files == FILES
        assert cache.window == timedelta(days=5)

    def test_overrides(self, cache_config, tmp_path):
        """Test that explicit paths override the config."""
        cache = BundleCache(
            cache_config,
            cache_dir=tmp_path / "other",
            archive_path=str(tmp_path / "other.zip"),
        )

        assert cache.cache_dir == tmp_path / "other"
        assert cache.archive_path == tmp_path / "other.zip"

    def test_does_not_create_directory(self, cache):
        """Test that the cache directory is only created by a refresh."""
        assert not cache.cache_dir.exists()


class TestNeedsRefresh:
    """Test refresh decisions."""

    def test_empty_cache_needs_refresh(self, cache):
        assert cache.needs_refresh(NOW) is True

    def test_incomplete_cache_needs_refresh_even_if_fresh(self, cache):
        """Test that missing files win over a fresh marker."""
        cache.cache_dir.mkdir()
        (cache.cache_dir / "plugins.json").write_text("{}")
        write_marker(cache.cache_dir, NOW)

        assert cache.is_stale(NOW) is False
        assert cache.needs_refresh(NOW) is True

    def test_complete_without_marker_needs_refresh(self, cache):
        cache.cache_dir.mkdir()
        for name in FILES:
            (cache.cache_dir / name).write_text("{}")

        assert cache.is_complete() is True
        assert cache.needs_refresh(NOW) is True

    def test_complete_and_fresh(self, cache, archive):
        cache.refresh(now=NOW)
        assert cache.needs_refresh(NOW) is False

    def test_staleness_triggers_refresh(self, cache, archive):
        """Test that a complete cache goes stale as time passes."""
        cache.refresh(now=NOW)

        assert cache.needs_refresh(NOW + timedelta(days=6)) is True

    def test_custom_window(self, cache_config, archive):
        cache_config.freshness_window = 3600
        cache = BundleCache(cache_config)
        cache.refresh(now=NOW)

        assert cache.needs_refresh(NOW + timedelta(minutes=30)) is False
        assert cache.needs_refresh(NOW + timedelta(hours=2)) is True


class TestRefresh:
    """Test refreshing the cache from an archive."""

    def test_refresh_populates_cache(self, cache, archive):
        """Test refreshing an empty cache."""
        assert cache.needs_refresh(NOW) is True

        extracted = cache.refresh(now=NOW)

        assert [p.name for p in extracted] == ["plugins.json", "themes.json"]
        assert cache.is_complete() is True
        assert cache.is_stale(NOW) is False
        assert (cache.cache_dir / "plugins.json").read_text() == '{"akismet": {}}'
        assert (cache.cache_dir / "themes.json").read_text() == '{"twentyten": {}}'
        assert cache.last_update() == NOW

    def test_refresh_explicit_archive(self, cache, tmp_path):
        other = make_archive(
            tmp_path / "other.zip", {"plugins.json": "{}", "themes.json": "{}"}
        )

        cache.refresh(other, now=NOW)

        assert cache.is_complete() is True

    def test_refresh_is_idempotent(self, cache, archive):
        """Test that refreshing twice gives the same files and the latest marker."""
        cache.refresh(now=NOW)
        first = sorted(p.name for p in cache.cache_dir.iterdir())

        later = NOW + timedelta(hours=3)
        cache.refresh(now=later)
        second = sorted(p.name for p in cache.cache_dir.iterdir())

        assert first == second
        assert cache.last_update() == later

    def test_missing_archive(self, cache):
        """Test that a missing archive fails without writing a marker."""
        with pytest.raises(UnreadableArchiveError):
            cache.refresh(now=NOW)

        assert not marker_path(cache.cache_dir).exists()
        assert cache.needs_refresh(NOW) is True

    def test_failed_refresh_keeps_absent_state(self, cache):
        """Test that an unreadable archive does not create the cache directory."""
        assert cache.state(NOW) == CacheState.ABSENT

        with pytest.raises(UnreadableArchiveError):
            cache.refresh(now=NOW)

        assert cache.state(NOW) == CacheState.ABSENT
        assert not cache.cache_dir.exists()

    def test_corrupt_archive_member(self, cache, cache_config):
        """Test that corrupt member data surfaces as an unreadable archive."""
        with zipfile.ZipFile(
            cache_config.archive_path, "w", compression=zipfile.ZIP_DEFLATED
        ) as zf:
            zf.writestr("plugins.json", b"signature " * 2000)
            data_size = zf.getinfo("plugins.json").compress_size

        raw = bytearray(cache_config.archive_path.read_bytes())
        data_start = 30 + len("plugins.json") + int.from_bytes(raw[28:30], "little")
        for offset in range(data_start + 2, data_start + min(42, data_size)):
            raw[offset] ^= 0xFF
        cache_config.archive_path.write_bytes(bytes(raw))

        with pytest.raises(UnreadableArchiveError):
            cache.refresh(now=NOW)

        assert read_marker(cache.cache_dir) is None

    def test_failed_refresh_keeps_previous_marker(self, cache, archive, tmp_path):
        cache.refresh(now=NOW)
        bad = tmp_path / "bad.zip"
        bad.write_text("garbage")

        with pytest.raises(UnreadableArchiveError):
            cache.refresh(bad, now=NOW + timedelta(days=1))

        assert read_marker(cache.cache_dir) == NOW

    def test_write_failure_leaves_cache_unmarked(self, cache, archive):
        """Test that a partial extraction is not marked as fresh."""
        with patch(
            "scandata.cache.manager.extract",
            side_effect=WriteFailedError("themes.json", "disk full"),
        ):
            with pytest.raises(WriteFailedError):
                cache.refresh(now=NOW)

        assert read_marker(cache.cache_dir) is None
        assert cache.needs_refresh(NOW) is True

    def test_marker_write_failure(self, cache, archive):
        with patch(
            "scandata.cache.manager.clock.write_marker",
            side_effect=PermissionError("read-only"),
        ):
            with pytest.raises(MarkerWriteError):
                cache.refresh(now=NOW)

    def test_nested_archive_members(self, cache, cache_config):
        """Test that nested members land directly in the cache directory."""
        make_archive(
            cache_config.archive_path,
            {"data/plugins.json": "{}", "data/themes.json": "{}"},
        )

        cache.refresh(now=NOW)

        assert (cache.cache_dir / "plugins.json").is_file()
        assert not (cache.cache_dir / "data").exists()
        assert cache.is_complete() is True

    def test_archive_missing_inventory_file(self, cache, cache_config, caplog):
        """Test that a partial archive still marks the refresh but stays incomplete."""
        make_archive(cache_config.archive_path, {"plugins.json": "{}"})

        with caplog.at_level("WARNING"):
            cache.refresh(now=NOW)

        assert cache.last_update() == NOW
        assert cache.missing_files() == ["themes.json"]
        assert cache.needs_refresh(NOW) is True
        assert "themes.json" in caplog.text


class TestArchiveAvailable:
    """Test archive presence checks."""

    def test_not_available(self, cache):
        assert cache.archive_available() is False

    def test_available(self, cache, archive):
        assert cache.archive_available() is True

    def test_explicit_path(self, cache, tmp_path):
        other = tmp_path / "other.zip"
        assert cache.archive_available(other) is False

        other.write_bytes(b"")
        assert cache.archive_available(other) is True


class TestCacheState:
    """Test state classification."""

    def test_absent(self, cache):
        assert cache.state(NOW) == CacheState.ABSENT

    def test_incomplete(self, cache):
        cache.cache_dir.mkdir()
        assert cache.state(NOW) == CacheState.INCOMPLETE

    def test_fresh(self, cache, archive):
        cache.refresh(now=NOW)
        assert cache.state(NOW) == CacheState.FRESH_COMPLETE

    def test_stale(self, cache, archive):
        cache.refresh(now=NOW)
        assert cache.state(NOW + timedelta(days=6)) == CacheState.STALE_COMPLETE

    def test_refresh_from_stale(self, cache, archive):
        cache.refresh(now=NOW)
        later = NOW + timedelta(days=6)

        cache.refresh(now=later)

        assert cache.state(later) == CacheState.FRESH_COMPLETE


class TestGetStatus:
    """Test status summaries."""

    def test_status_empty(self, cache):
        status = cache.get_status(NOW)

        assert status["state"] == "absent"
        assert status["files"] == {"plugins.json": False, "themes.json": False}
        assert status["last_update"] is None
        assert status["stale_in_seconds"] is None
        assert status["needs_refresh"] is True
        assert status["archive_available"] is False

    def test_status_fresh(self, cache, archive):
        cache.refresh(now=NOW)

        status = cache.get_status(NOW + timedelta(days=1))

        assert status["state"] == "fresh"
        assert status["files"] == {"plugins.json": True, "themes.json": True}
        assert status["last_update"] == NOW.isoformat()
        assert status["stale_in_seconds"] == 4 * 86400
        assert status["age_seconds"] == 86400
        assert status["needs_refresh"] is False
        assert status["archive_available"] is True

    def test_status_stale(self, cache, archive):
        cache.refresh(now=NOW)

        status = cache.get_status(NOW + timedelta(days=6))

        assert status["state"] == "stale"
        assert status["age_seconds"] == 6 * 86400
        assert status["stale_in_seconds"] == 0
        assert status["needs_refresh"] is True

    def test_status_reads_marker_once(self, cache, archive):
        """Test that one status summary reads the marker a single time."""
        cache.refresh(now=NOW)

        with patch(
            "scandata.cache.manager.clock.read_marker", wraps=read_marker
        ) as mock_read:
            status = cache.get_status(NOW)

        assert mock_read.call_count == 1
        assert status["age_seconds"] == 0
