"""Exception hierarchy for natives-loader.

Every error raised on purpose by this package derives from
:class:`NativesError`, so callers can catch the whole family at once.
"""

from typing import Optional, Sequence


__all__ = [
    'NativesError',
    'ConfigError',
    'InvalidInputError',
    'ResourceNotFoundError',
    'ArchiveReadError',
    'ExtractionError',
    'NoWritableLocationError',
    'LibraryLoadError',
]


class NativesError(Exception):
    """Base class for natives-loader errors."""
    pass


class ConfigError(NativesError):
    """Raised when a configuration file or value is invalid."""
    pass


class InvalidInputError(NativesError, ValueError):
    """Raised when a required stream or argument is missing."""
    pass


class ResourceNotFoundError(NativesError, FileNotFoundError):
    """Raised when a resource exists in none of the searched locations."""

    def __init__(self, source_path: str, searched: Sequence[str] = ()):
        self.source_path = source_path
        self.searched = list(searched)
        message = f"Unable to read file for extraction: {source_path}"
        if self.searched:
            message += f" (searched: {', '.join(self.searched)})"
        super().__init__(message)


class ArchiveReadError(NativesError):
    """Raised when the configured natives archive cannot be opened."""

    def __init__(self, archive: str, source_path: str):
        self.archive = archive
        self.source_path = source_path
        super().__init__(f"Error reading '{source_path}' in archive: {archive}")


class ExtractionError(NativesError):
    """Raised when copying a resource to its destination fails."""

    def __init__(self, source_path: str, destination: str):
        self.source_path = source_path
        self.destination = destination
        super().__init__(f"Error extracting file: {source_path}\nTo: {destination}")


class NoWritableLocationError(NativesError):
    """Raised when no candidate directory can be written and executed."""

    def __init__(self, file_name: str, tried: Sequence[str] = ()):
        self.file_name = file_name
        self.tried = list(tried)
        super().__init__(
            f"Unable to find writable path to extract {file_name}. "
            f"Is the user home directory writable?"
        )


class LibraryLoadError(NativesError):
    """Raised when every strategy for loading a shared library failed.

    Attributes:
        library_filename: Platform-specific filename that was requested.
        target: Platform description (OS name and bitness).
        causes: Every failure collected along the fallback chain, in order.
    """

    def __init__(
        self,
        library_filename: str,
        target: str,
        causes: Optional[Sequence[BaseException]] = None,
    ):
        self.library_filename = library_filename
        self.target = target
        self.causes = list(causes or ())
        message = f"Couldn't load shared library '{library_filename}' for target: {target}"
        if self.causes:
            chain = '; '.join(f"{type(c).__name__}: {c}" for c in self.causes)
            message += f" (causes: {chain})"
        super().__init__(message)
