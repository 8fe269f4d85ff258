"""CRC32 fingerprints used to key the extraction cache.

The fingerprint is the unsigned CRC32 of the stream rendered in lowercase hex
without padding, so directories created by earlier runs keep matching.
"""

import contextlib
import logging
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .errors import InvalidInputError


__all__ = ['crc', 'file_crc', 'DEFAULT_CHUNK_SIZE', 'READ_ERRORS']

logger = logging.getLogger("natives.checksum")

DEFAULT_CHUNK_SIZE = 4096

# Zip entry streams report corrupt data as BadZipFile, not OSError
READ_ERRORS = (OSError, zipfile.BadZipFile)


def crc(stream: Optional[BinaryIO], chunk_size: int = DEFAULT_CHUNK_SIZE, strict: bool = False) -> str:
    """Return the CRC32 of the remaining bytes in ``stream``.

    A read error part way through closes the stream and yields the checksum
    of what was read before it. A truncated read therefore fingerprints the
    truncated prefix instead of failing; pass ``strict=True`` to get the
    error instead. Archive entries failing their CRC check count as read
    errors.

    Args:
        stream: Binary stream, consumed to exhaustion. Not closed on success.
        chunk_size: Bytes per read.
        strict: Re-raise read errors after closing the stream.

    Returns:
        Lowercase hexadecimal checksum.

    Raises:
        InvalidInputError: If ``stream`` is None.
    """
    if stream is None:
        raise InvalidInputError("input cannot be None.")

    value = 0
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            value = zlib.crc32(chunk, value)
    except READ_ERRORS as e:
        with contextlib.suppress(*READ_ERRORS):
            stream.close()
        if strict:
            raise
        logger.warning(f"Read failed while checksumming, using partial checksum: {e}")

    return format(value & 0xFFFFFFFF, 'x')


def file_crc(path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE, strict: bool = False) -> Optional[str]:
    """Return the CRC32 of a file on disk, or None if it cannot be opened."""
    try:
        stream = open(path, 'rb')
    except OSError:
        return None
    with stream:
        return crc(stream, chunk_size=chunk_size, strict=strict)
