"""
natives - Native Shared Library Loader

Loads the right native shared library for the running platform from a
platform independent name:
- Platform filename mapping (``yoga`` -> ``libyoga64.so``, ``yoga64.dll``, ...)
- CRC-keyed extraction cache, reused across runs and processes
- Fallback chain of writable locations (temp, home, working directory, sandbox)
- At most one link per library per process, safe across threads

Modules:
- loader: SharedLibraryLoader and the loaded-library registry
- naming / checksum / resources / locations / extraction: the building blocks
- config: TOML and environment configuration

Example:
    >>> import natives
    >>> natives.map_name('yoga')
    'libyoga64.so'
    >>> natives.load('yoga')
    PosixPath('/tmp/natives-loaderalice/5e0e1ec2/libyoga64.so')
    >>> natives.is_loaded('yoga')
    True
"""

import threading
from pathlib import Path
from typing import Optional, Union

__version__ = '0.1.0'

from .config import LoaderConfig
from .errors import (
    NativesError,
    ConfigError,
    InvalidInputError,
    ResourceNotFoundError,
    ArchiveReadError,
    ExtractionError,
    NoWritableLocationError,
    LibraryLoadError,
)
from .osinfo import OsFamily, HostPlatform, current_platform
from .checksum import crc
from .resources import ResourceLocator
from .locations import WritableLocationResolver
from .extraction import ExtractionCache
from .loader import SharedLibraryLoader, LoadRegistry, LoadedLibrary, default_registry
from . import naming


__all__ = [
    '__version__',
    # Loader
    'SharedLibraryLoader',
    'LoadRegistry',
    'LoadedLibrary',
    'default_registry',
    'get_loader',
    'map_name',
    'load',
    'is_loaded',
    'extract_resource_to_directory',
    # Building blocks
    'LoaderConfig',
    'OsFamily',
    'HostPlatform',
    'current_platform',
    'crc',
    'ResourceLocator',
    'WritableLocationResolver',
    'ExtractionCache',
    # Errors
    'NativesError',
    'ConfigError',
    'InvalidInputError',
    'ResourceNotFoundError',
    'ArchiveReadError',
    'ExtractionError',
    'NoWritableLocationError',
    'LibraryLoadError',
]


# =============================================================================
# Module-level convenience API
# =============================================================================

_default_loader: Optional[SharedLibraryLoader] = None
_default_loader_lock = threading.Lock()


def get_loader() -> SharedLibraryLoader:
    """Return the process-wide loader, created on first use."""
    global _default_loader
    with _default_loader_lock:
        if _default_loader is None:
            _default_loader = SharedLibraryLoader()
        return _default_loader


def map_name(library_name: str) -> str:
    """Platform-specific filename for ``library_name`` on the host."""
    return naming.map_name(library_name)


def load(library_name: str, library_filename: Optional[str] = None) -> Optional[Path]:
    """Load ``library_name`` with the default loader. See :meth:`SharedLibraryLoader.load`."""
    return get_loader().load(library_name, library_filename)


def is_loaded(library_name: str) -> bool:
    return library_name in default_registry()


def extract_resource_to_directory(source_path: str, target_directory: Union[str, Path]) -> Path:
    """Extract a resource without linking it. See :meth:`SharedLibraryLoader.extract_resource_to_directory`."""
    return get_loader().extract_resource_to_directory(source_path, target_directory)
