"""Load shared libraries bundled as resources.

The loader maps a logical library name to the platform's filename, extracts
the file to the first writable location (keyed by its CRC so unchanged files
are reused across runs), links it into the process and remembers the result.
Each library is linked at most once per :class:`LoadRegistry`.

Example:
    >>> from natives import SharedLibraryLoader
    >>> loader = SharedLibraryLoader()
    >>> path = loader.load('yoga')        # e.g. /tmp/natives-loaderalice/1a2b3c4d/libyoga64.so
    >>> loader.get_handle('yoga').YGNodeNew
"""

from __future__ import annotations

import ctypes
import logging
import threading
import uuid
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional, Union

from .checksum import READ_ERRORS
from .config import LoaderConfig
from .errors import LibraryLoadError, NativesError, NoWritableLocationError
from .extraction import ExtractionCache
from .locations import WritableLocationResolver
from .naming import map_name
from .osinfo import OsFamily, PlatformInfo, current_platform
from .resources import ResourceLocator, default_roots


__all__ = ['SharedLibraryLoader', 'LoadRegistry', 'LoadedLibrary', 'default_registry']

logger = logging.getLogger("natives.loader")

# Maps a binary image into the process; raises OSError on failure
Linker = Callable[[str], Any]

# Failures that move the search on to the next location
_ATTEMPT_ERRORS = (NativesError,) + READ_ERRORS


# =============================================================================
# Registry
# =============================================================================

@dataclass(frozen=True)
class LoadedLibrary:
    """A library that has been linked into the process.

    ``path`` is None when the platform linked it without an extracted file.
    """

    name: str
    path: Optional[Path]
    handle: Any = None


class LoadRegistry:
    """Libraries loaded in this process, guarded by a single lock.

    The lock is held for the whole resolution of a library, so checking the
    registry and recording a new entry happen atomically for every name. It
    is reentrant: a link step may load its own dependencies.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._libraries: dict[str, LoadedLibrary] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._libraries

    def __len__(self) -> int:
        return len(self._libraries)

    def get(self, name: str) -> Optional[LoadedLibrary]:
        return self._libraries.get(name)

    def record(self, name: str, path: Optional[Path] = None, handle: Any = None) -> LoadedLibrary:
        """Record ``name`` as loaded. An existing entry is kept and returned."""
        entry = self._libraries.get(name)
        if entry is None:
            entry = LoadedLibrary(name, path, handle)
            self._libraries[name] = entry
        return entry

    def names(self) -> list[str]:
        return sorted(self._libraries)

    def clear(self) -> None:
        """Forget every entry. Linked libraries stay mapped; only for tests."""
        with self.lock:
            self._libraries.clear()


_default_registry = LoadRegistry()


def default_registry() -> LoadRegistry:
    """Registry shared by loaders created without an explicit one."""
    return _default_registry


def _basename(source_path: str) -> str:
    return PurePosixPath(source_path.replace('\\', '/')).name


# =============================================================================
# Loader
# =============================================================================

class SharedLibraryLoader:
    """Loads the correct native libraries for the current platform.

    iOS libraries must be statically linked into the executable, so loading
    there only records the name. On Android the platform's own search is used.

    Args:
        natives_archive: Zip archive to fetch natives from instead of the
            embedded resources. Handy for testing a shared library on the fly.
        config: Loader settings. Defaults to :meth:`LoaderConfig.load`.
        platform: Platform to load for. Defaults to the host.
        locator: Resource source. Built from ``config`` when omitted.
        resolver: Candidate locations. Built from ``config`` when omitted.
        registry: Loaded-library registry. Defaults to the process-wide one.
        linker: Link primitive. Defaults to ``ctypes.CDLL``.
    """

    def __init__(
        self,
        natives_archive: Optional[Union[str, Path]] = None,
        *,
        config: Optional[LoaderConfig] = None,
        platform: Optional[PlatformInfo] = None,
        locator: Optional[ResourceLocator] = None,
        resolver: Optional[WritableLocationResolver] = None,
        registry: Optional[LoadRegistry] = None,
        linker: Optional[Linker] = None,
    ):
        if config is None:
            config = LoaderConfig.load(archive=natives_archive)
        elif natives_archive is not None:
            config = replace(config, archive=natives_archive)
        self.config = config
        self.platform = platform if platform is not None else current_platform()

        if locator is None:
            roots = [] if config.archive else default_roots(config.resource_package)
            locator = ResourceLocator(roots, archive=config.archive, platform=self.platform)
        self.locator = locator
        self.resolver = resolver if resolver is not None else WritableLocationResolver(config)
        self.extraction = ExtractionCache(locator, config)
        self.registry = registry if registry is not None else default_registry()
        self.linker = linker if linker is not None else ctypes.CDLL

    def map_name(self, library_name: str) -> str:
        """Platform-specific filename for ``library_name``. See :func:`natives.naming.map_name`."""
        return map_name(library_name, self.platform)

    # =========================================================================
    # Registry access
    # =========================================================================

    def is_loaded(self, library_name: str) -> bool:
        return library_name in self.registry

    def set_loaded(self, library_name: str, path: Optional[Union[str, Path]] = None, handle: Any = None) -> None:
        """Mark a library as loaded, for applications that link it themselves."""
        with self.registry.lock:
            self.registry.record(library_name, Path(path) if path is not None else None, handle)

    def get_handle(self, library_name: str) -> Any:
        """Return the link primitive's handle for a loaded library, or None."""
        entry = self.registry.get(library_name)
        return entry.handle if entry is not None else None

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, library_name: str, library_filename: Optional[str] = None) -> Optional[Path]:
        """Load a shared library for the platform the application is running on.

        Args:
            library_name: Platform independent library name.
            library_filename: Filename for this OS. Defaults to
                :meth:`map_name` of ``library_name``, or ``lib<name>.so``
                on Android.

        Returns:
            The file the library was extracted to and loaded from, or None if
            the platform loaded it by other means (iOS, Android).

        Raises:
            LibraryLoadError: Every strategy failed. Failures are not
                remembered, so a later call retries the whole chain.
        """
        family = self.platform.os_family
        if library_filename is None:
            if family is OsFamily.ANDROID:
                # dlopen wants the soname; the package installer unpacked it
                library_filename = f'lib{library_name}.so'
            else:
                library_filename = self.map_name(library_name)

        with self.registry.lock:
            entry = self.registry.get(library_name)
            if entry is not None:
                return entry.path

            if family is OsFamily.IOS:
                # Statically linked into the executable
                self.registry.record(library_name)
                return None

            if family is OsFamily.ANDROID:
                try:
                    handle = self.linker(library_filename)
                except OSError as e:
                    raise LibraryLoadError(library_filename, self.platform.description, [e]) from e
                self.registry.record(library_name, None, handle)
                logger.info(f"Loaded {library_name} via platform library search")
                return None

            path, handle = self._load_file(library_filename)
            self.registry.record(library_name, path, handle)
            logger.info(f"Loaded {library_name} from {path}")
            return path

    def _load_file(self, source_path: str) -> tuple[Path, Any]:
        """Extract ``source_path`` and link it, trying every location in turn."""
        causes: list[BaseException] = []
        file_name = _basename(source_path)

        try:
            source_crc = self.extraction.source_crc(source_path)
        except _ATTEMPT_ERRORS as e:
            logger.debug(f"Cannot read {source_path}: {e}")
            causes.append(e)
            source_crc = None

        if source_crc is not None:
            tried = []
            any_writable = False
            for candidate in self.resolver.candidates(source_crc, file_name):
                if not self.resolver.can_write(candidate):
                    logger.debug(f"Not writable: {candidate}")
                    tried.append(str(candidate))
                    continue
                any_writable = True
                loaded = self._try_load(source_path, source_crc, candidate, causes)
                if loaded is not None:
                    return loaded

            if not any_writable:
                causes.append(NoWritableLocationError(file_name, tried))
                sandboxed = self.resolver.sandbox_fallback(source_crc, file_name)
                if sandboxed is not None:
                    loaded = self._try_load(source_path, source_crc, sandboxed, causes)
                    if loaded is not None:
                        return loaded

        # Pre-installed copy on the library path, e.g. for restricted environments
        fallback = self._library_path_file(source_path)
        if fallback is not None and fallback.is_file():
            try:
                return fallback, self.linker(str(fallback.absolute()))
            except OSError as e:
                logger.debug(f"Linking {fallback} failed: {e}")
                causes.append(e)

        raise LibraryLoadError(
            source_path, self.platform.description, causes
        ) from (causes[-1] if causes else None)

    def _try_load(
        self,
        source_path: str,
        source_crc: str,
        extracted_file: Path,
        causes: list[BaseException],
    ) -> Optional[tuple[Path, Any]]:
        try:
            path = self.extraction.ensure_extracted(source_path, extracted_file, source_crc)
            handle = self.linker(str(path.absolute()))
        except _ATTEMPT_ERRORS as e:
            logger.debug(f"Loading {source_path} from {extracted_file} failed: {e}")
            causes.append(e)
            return None
        return path, handle

    def _library_path_file(self, source_path: str) -> Optional[Path]:
        if self.config.library_path is None:
            return None
        return self.config.library_path / source_path

    # =========================================================================
    # Extraction without linking
    # =========================================================================

    def extract_file(self, source_path: str, dir_name: Optional[str] = None) -> Path:
        """Extract a resource into a writable cache directory.

        The file is only rewritten if missing or its CRC differs. If
        extraction fails and the file exists on the library path, that file
        is returned instead.

        Args:
            source_path: Resource to extract.
            dir_name: Subdirectory to extract into. Defaults to the CRC of
                the resource.

        Returns:
            The extracted file.
        """
        try:
            source_crc = self.extraction.source_crc(source_path)
            if dir_name is None:
                dir_name = source_crc

            file_name = _basename(source_path)
            extracted = self.resolver.find_writable(dir_name, file_name)
            if extracted is None:
                extracted = self.resolver.find_writable(uuid.uuid4().hex, file_name)
                if extracted is None:
                    raise NoWritableLocationError(file_name)
            return self.extraction.ensure_extracted(source_path, extracted, source_crc)
        except NativesError:
            fallback = self._library_path_file(source_path)
            if fallback is not None and fallback.is_file():
                return fallback
            raise

    def extract_resource_to_directory(self, source_path: str, target_directory: Union[str, Path]) -> Path:
        """Extract a resource into ``target_directory`` unless an identical copy is there.

        For callers that link the file themselves.
        """
        destination = Path(target_directory) / _basename(source_path)
        return self.extraction.ensure_extracted(source_path, destination)
