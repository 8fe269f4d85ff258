"""
Tests for resource lookup.
"""

import sys
import zipfile

import pytest

from natives import (
    ArchiveReadError,
    HostPlatform,
    OsFamily,
    ResourceLocator,
    ResourceNotFoundError,
)
from natives.resources import default_roots

from conftest import FALLBACK_BYTES, LIBRARY_BYTES


class TestEmbeddedRoots:
    """Test lookup in embedded resource roots."""

    def test_root_resource(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        with locator.open("libyoga64.so") as stream:
            assert stream.read() == LIBRARY_BYTES

    def test_leading_slash(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        with locator.open("/libyoga64.so") as stream:
            assert stream.read() == LIBRARY_BYTES

    def test_platform_fallback_subtree(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        with locator.open("libfallback64.so") as stream:
            assert stream.read() == FALLBACK_BYTES

    def test_root_wins_over_fallback(self, resource_root, unix64):
        (resource_root / "libfallback64.so").write_bytes(b"root copy")
        locator = ResourceLocator([resource_root], platform=unix64)
        with locator.open("libfallback64.so") as stream:
            assert stream.read() == b"root copy"

    def test_fallback_is_per_platform(self, resource_root):
        mac = HostPlatform(OsFamily.MAC, is_64bit=True)
        locator = ResourceLocator([resource_root], platform=mac)
        with pytest.raises(ResourceNotFoundError):
            locator.open("libfallback64.so")

    def test_roots_searched_in_order(self, tmp_path, unix64):
        first, second = tmp_path / "a", tmp_path / "b"
        first.mkdir()
        second.mkdir()
        (second / "lib.so").write_bytes(b"second")
        locator = ResourceLocator([str(first), second], platform=unix64)
        with locator.open("lib.so") as stream:
            assert stream.read() == b"second"

    def test_missing_everywhere(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        with pytest.raises(ResourceNotFoundError) as excinfo:
            locator.open("libmissing64.so")
        assert excinfo.value.source_path == "libmissing64.so"
        assert len(excinfo.value.searched) == 2

    def test_not_found_is_file_not_found(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        with pytest.raises(FileNotFoundError):
            locator.open("libmissing64.so")

    def test_directories_are_not_resources(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        with pytest.raises(ResourceNotFoundError):
            locator.open("natives")

    def test_fresh_stream_per_open(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        first = locator.open("libyoga64.so")
        first.read()
        with locator.open("libyoga64.so") as second:
            assert second.read() == LIBRARY_BYTES
        first.close()

    def test_exists(self, resource_root, unix64):
        locator = ResourceLocator([resource_root], platform=unix64)
        assert locator.exists("libyoga64.so")
        assert locator.exists("libfallback64.so")
        assert not locator.exists("libmissing64.so")


class TestArchive:
    """Test reading from a natives archive."""

    @pytest.fixture
    def archive(self, tmp_path):
        path = tmp_path / "natives.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("libyoga64.so", LIBRARY_BYTES)
            zf.writestr("linux/libnested64.so", b"nested")
        return path

    def test_read_entry(self, archive, unix64):
        locator = ResourceLocator([], archive=archive, platform=unix64)
        with locator.open("libyoga64.so") as stream:
            assert stream.read() == LIBRARY_BYTES

    def test_nested_entry(self, archive, unix64):
        locator = ResourceLocator([], archive=archive, platform=unix64)
        with locator.open("linux/libnested64.so") as stream:
            assert stream.read() == b"nested"

    def test_archive_ignores_embedded_roots(self, archive, resource_root, unix64):
        locator = ResourceLocator([resource_root], archive=archive, platform=unix64)
        with pytest.raises(ResourceNotFoundError):
            locator.open("libfallback64.so")

    def test_missing_entry(self, archive, unix64):
        locator = ResourceLocator([], archive=archive, platform=unix64)
        with pytest.raises(ResourceNotFoundError):
            locator.open("libmissing64.so")

    def test_missing_archive(self, tmp_path, unix64):
        locator = ResourceLocator([], archive=tmp_path / "nope.zip", platform=unix64)
        with pytest.raises(ArchiveReadError):
            locator.open("libyoga64.so")

    def test_corrupt_archive(self, tmp_path, unix64):
        bogus = tmp_path / "bogus.zip"
        bogus.write_bytes(b"not a zip file")
        locator = ResourceLocator([], archive=bogus, platform=unix64)
        with pytest.raises(ArchiveReadError):
            locator.open("libyoga64.so")
        assert not locator.exists("libyoga64.so")


class TestDefaultRoots:
    """Test roots taken from sys.path."""

    def test_directories_on_sys_path(self, resource_root, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, "path", [str(resource_root), str(tmp_path / "missing")])
        assert default_roots() == [resource_root]

    def test_zipapp_on_sys_path(self, tmp_path, unix64, monkeypatch):
        app = tmp_path / "game.pyz"
        with zipfile.ZipFile(app, "w") as zf:
            zf.writestr("__main__.py", "")
            zf.writestr("natives/linux/libyoga64.so", LIBRARY_BYTES)
        monkeypatch.setattr(sys, "path", [str(app)])

        locator = ResourceLocator(platform=unix64)

        with locator.open("libyoga64.so") as stream:
            assert stream.read() == LIBRARY_BYTES

    def test_plain_files_on_sys_path_ignored(self, tmp_path, monkeypatch):
        stray = tmp_path / "notes.txt"
        stray.write_text("not an archive")
        monkeypatch.setattr(sys, "path", [str(stray)])
        assert default_roots() == []
