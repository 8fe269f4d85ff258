"""Content-addressed extraction of resources to the filesystem."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from .checksum import READ_ERRORS, crc, file_crc
from .config import LoaderConfig
from .errors import ExtractionError
from .locations import can_execute
from .resources import ResourceLocator


__all__ = ['ExtractionCache']

logger = logging.getLogger("natives.extraction")


class ExtractionCache:
    """Keep byte-identical copies of resources on disk.

    A destination whose CRC already matches the source is left untouched, so
    repeated launches and concurrent processes extracting the same fingerprint
    never rewrite it needlessly. Writers racing on one destination write
    identical bytes.
    """

    def __init__(self, locator: ResourceLocator, config: Optional[LoaderConfig] = None):
        self.locator = locator
        self.config = config if config is not None else LoaderConfig()

    def source_crc(self, source_path: str) -> str:
        """Fingerprint a fresh stream of ``source_path``."""
        with self.locator.open(source_path) as stream:
            return crc(stream, self.config.chunk_size, self.config.strict_checksum)

    def ensure_extracted(
        self,
        source_path: str,
        destination: Union[str, Path],
        source_crc: Optional[str] = None,
    ) -> Path:
        """Extract ``source_path`` to ``destination`` unless an identical copy is there.

        Args:
            source_path: Resource path understood by the locator.
            destination: File to create or refresh.
            source_crc: Fingerprint of the source if the caller already has it.

        Returns:
            ``destination`` as a Path.

        Raises:
            ExtractionError: Reading the source or writing the destination failed.
            ResourceNotFoundError: The source does not exist.
        """
        destination = Path(destination)
        if source_crc is None:
            source_crc = self.source_crc(source_path)

        if destination.exists():
            extracted_crc = file_crc(destination, self.config.chunk_size, self.config.strict_checksum)
            if extracted_crc == source_crc:
                logger.debug(f"Cache hit for {source_path} at {destination}")
                return destination
            logger.debug(
                f"Stale copy at {destination} (crc {extracted_crc}, expected {source_crc})"
            )

        with self.locator.open(source_path) as stream:
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                with open(destination, 'wb') as output:
                    shutil.copyfileobj(stream, output, self.config.chunk_size)
            except READ_ERRORS as e:
                raise ExtractionError(source_path, str(destination.absolute())) from e

        can_execute(destination)
        logger.debug(f"Extracted {source_path} to {destination}")
        return destination
