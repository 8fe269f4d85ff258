"""
Pytest configuration and shared fixtures for natives tests.

Every fixture keeps the filesystem inside ``tmp_path``: the resource tree, the
temp/home/working-directory candidates and the library path.
"""

import getpass
import threading
import time
import zipfile
from pathlib import Path
import sys

import pytest

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

from natives import (
    HostPlatform,
    LoaderConfig,
    LoadRegistry,
    OsFamily,
    ResourceLocator,
    SharedLibraryLoader,
    WritableLocationResolver,
)


LIBRARY_BYTES = b"\x7fELF" + bytes(range(256)) * 40
FALLBACK_BYTES = b"\x7fELF fallback" * 100


# =============================================================================
# Helpers
# =============================================================================

def write_corrupt_zip(path, entry, data):
    """Write a stored zip holding ``entry`` with one data byte flipped.

    The archive opens fine; reading the entry fails its CRC check.
    """
    with zipfile.ZipFile(path, "w", zipfile.ZIP_STORED) as archive:
        archive.writestr(entry, data)
    raw = bytearray(path.read_bytes())
    offset = raw.find(data) + len(data) // 2
    raw[offset] ^= 0xFF
    path.write_bytes(bytes(raw))
    return path


class RecordingLinker:
    """Link primitive double that records every path it is asked to link.

    Paths containing any of ``fail_on`` raise OSError like a failed dlopen.
    """

    def __init__(self, fail_on=(), delay=0.0):
        self.calls = []
        self.fail_on = tuple(fail_on)
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self, path):
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.calls.append(path)
        if any(marker in path for marker in self.fail_on):
            raise OSError(f"cannot open shared object file: {path}")
        return ("handle", path)


class CountingLocator(ResourceLocator):
    """ResourceLocator that counts how often each resource is opened."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.opens = {}

    def open(self, source_path):
        self.opens[source_path] = self.opens.get(source_path, 0) + 1
        return super().open(source_path)


class DenyingResolver(WritableLocationResolver):
    """Resolver whose probe rejects every candidate."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.probed = []

    def can_write(self, file):
        self.probed.append(Path(file))
        return False


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def fixed_user(monkeypatch):
    """Pin the user name used in the temp directory candidate."""
    monkeypatch.setattr(getpass, "getuser", lambda: "tester")


@pytest.fixture
def unix64():
    return HostPlatform(OsFamily.UNIX, is_64bit=True, os_name="Linux")


@pytest.fixture
def resource_root(tmp_path):
    """Resource tree with one library at the root and one in the Linux fallback subtree."""
    root = tmp_path / "resources"
    root.mkdir()
    (root / "libyoga64.so").write_bytes(LIBRARY_BYTES)
    fallback = root / "natives" / "linux"
    fallback.mkdir(parents=True)
    (fallback / "libfallback64.so").write_bytes(FALLBACK_BYTES)
    return root


@pytest.fixture
def sandbox_dirs(tmp_path):
    """Isolated temp, home and working directories."""
    dirs = {name: tmp_path / name for name in ("tmp", "home", "cwd")}
    for path in dirs.values():
        path.mkdir()
    return dirs


@pytest.fixture
def config():
    return LoaderConfig()


@pytest.fixture
def locator(resource_root, unix64):
    return CountingLocator([resource_root], platform=unix64)


@pytest.fixture
def resolver(config, sandbox_dirs):
    return WritableLocationResolver(
        config,
        temp_root=sandbox_dirs["tmp"],
        home=sandbox_dirs["home"],
        cwd=sandbox_dirs["cwd"],
        environ={},
    )


@pytest.fixture
def registry():
    return LoadRegistry()


@pytest.fixture
def linker():
    return RecordingLinker()


@pytest.fixture
def loader(config, unix64, locator, resolver, registry, linker):
    return SharedLibraryLoader(
        config=config,
        platform=unix64,
        locator=locator,
        resolver=resolver,
        registry=registry,
        linker=linker,
    )
