"""Locate the raw bytes of bundled native libraries.

Resources are addressed by slash-separated paths. Without an archive they are
looked up under one or more embedded roots (directories or
``importlib.resources`` traversables), first at the given path and then under
the platform's fallback subtree. With an archive, the single named entry is
read from that zip file instead.
"""

from __future__ import annotations

import importlib.resources
import logging
import sys
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Iterable, Optional, Sequence, Union

from .errors import ArchiveReadError, ResourceNotFoundError
from .osinfo import PlatformInfo, current_platform

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable


__all__ = ['ResourceLocator', 'default_roots']

logger = logging.getLogger("natives.resources")


def default_roots(resource_package: Optional[str] = None) -> list:
    """Return the embedded roots searched when none are given explicitly.

    A configured package wins; otherwise every directory on ``sys.path`` is a
    root, mirroring how modules themselves are found. Zip files on
    ``sys.path`` (zipapps, eggs) are read in place through ``zipfile.Path``.
    """
    if resource_package:
        return [importlib.resources.files(resource_package)]

    roots: list = []
    for entry in sys.path:
        path = Path(entry or '.')
        if path.is_dir():
            roots.append(path)
        elif path.is_file() and zipfile.is_zipfile(path):
            roots.append(zipfile.Path(path))
    return roots


def _split(source_path: str) -> list[str]:
    return [part for part in source_path.replace('\\', '/').split('/') if part]


class ResourceLocator:
    """Open fresh byte streams for resource paths.

    Streams are single-pass, so every :meth:`open` returns a new one.

    Args:
        roots: Embedded roots, searched in order. Defaults to
            :func:`default_roots`.
        archive: Zip archive to read from instead of the embedded roots.
        platform: Supplies the OS-specific fallback subtree.
    """

    def __init__(
        self,
        roots: Optional[Iterable[Union[str, Path, "Traversable"]]] = None,
        archive: Optional[Union[str, Path]] = None,
        platform: Optional[PlatformInfo] = None,
    ):
        if roots is None:
            roots = default_roots()
        self.roots = [Path(r) if isinstance(r, str) else r for r in roots]
        self.archive = Path(archive) if archive is not None else None
        self.platform = platform if platform is not None else current_platform()

    def __repr__(self) -> str:
        if self.archive is not None:
            return f"ResourceLocator(archive={str(self.archive)!r})"
        return f"ResourceLocator(roots={len(self.roots)})"

    def open(self, source_path: str) -> BinaryIO:
        """Open ``source_path`` for binary reading.

        Raises:
            ResourceNotFoundError: The resource exists nowhere.
            ArchiveReadError: The configured archive cannot be opened.
        """
        if self.archive is not None:
            return self._open_from_archive(source_path)

        searched = []
        for path in self._lookup_paths(source_path):
            for root in self.roots:
                node = root
                for part in path:
                    node = node / part
                searched.append(str(node))
                try:
                    if node.is_file():
                        return node.open('rb')
                except OSError as e:
                    logger.debug(f"Skipping unreadable resource {node}: {e}")

        raise ResourceNotFoundError(source_path, searched)

    def exists(self, source_path: str) -> bool:
        """Return True if :meth:`open` would succeed."""
        try:
            stream = self.open(source_path)
        except (ResourceNotFoundError, ArchiveReadError):
            return False
        stream.close()
        return True

    def _lookup_paths(self, source_path: str) -> Sequence[list[str]]:
        paths = [_split(source_path)]
        fallback = self.platform.fallback_root
        if fallback:
            paths.append(_split(fallback) + _split(source_path))
        return paths

    def _open_from_archive(self, source_path: str) -> BinaryIO:
        entry = '/'.join(_split(source_path))
        try:
            archive = zipfile.ZipFile(self.archive)
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveReadError(str(self.archive), source_path) from e

        try:
            info = archive.getinfo(entry)
        except KeyError:
            archive.close()
            raise ResourceNotFoundError(source_path, [f"{self.archive}!{entry}"]) from None

        # The entry stream keeps the archive file open until it is closed
        try:
            return archive.open(info)
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveReadError(str(self.archive), source_path) from e
        finally:
            archive.close()
