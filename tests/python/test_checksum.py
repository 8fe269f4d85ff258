"""
Tests for CRC fingerprints.
"""

import io
import zipfile
import zlib

import pytest

from natives import InvalidInputError
from natives.checksum import crc, file_crc

from conftest import LIBRARY_BYTES, write_corrupt_zip


class FailingStream(io.BytesIO):
    """Stream that raises after handing out its first chunk."""

    def __init__(self, data):
        super().__init__(data)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise OSError("device went away")
        return super().read(size)


class TestCrc:
    """Test stream checksums."""

    def test_known_value(self):
        assert crc(io.BytesIO(b"hello")) == "3610a686"

    def test_independent_copies_match(self):
        data = bytes(range(256)) * 100
        assert crc(io.BytesIO(data)) == crc(io.BytesIO(bytes(data)))

    def test_differs_on_change(self):
        assert crc(io.BytesIO(b"abc")) != crc(io.BytesIO(b"abd"))

    def test_empty_stream(self):
        assert crc(io.BytesIO(b"")) == "0"

    def test_no_zero_padding(self):
        """Fingerprints are unpadded hex, matching existing cache directories."""
        data = next(
            bytes([i]) for i in range(256) if zlib.crc32(bytes([i])) < 0x10000000
        )
        assert crc(io.BytesIO(data)) == format(zlib.crc32(data), "x")
        assert len(crc(io.BytesIO(data))) < 8

    def test_chunk_size_does_not_matter(self):
        data = b"x" * 10000
        assert crc(io.BytesIO(data), chunk_size=7) == crc(io.BytesIO(data), chunk_size=4096)

    def test_none_rejected(self):
        with pytest.raises(InvalidInputError):
            crc(None)

    def test_none_is_value_error(self):
        with pytest.raises(ValueError):
            crc(None)


class TestTruncatedRead:
    """A failing read yields the checksum of what was read so far."""

    def test_partial_checksum(self):
        data = b"a" * 10 + b"b" * 10
        stream = FailingStream(data)
        assert crc(stream, chunk_size=10) == format(zlib.crc32(b"a" * 10), "x")

    def test_stream_closed_on_error(self):
        stream = FailingStream(b"a" * 20)
        crc(stream, chunk_size=10)
        assert stream.closed

    def test_strict_raises(self):
        stream = FailingStream(b"a" * 20)
        with pytest.raises(OSError):
            crc(stream, chunk_size=10, strict=True)
        assert stream.closed

    def test_corrupt_archive_entry(self, tmp_path):
        archive = write_corrupt_zip(tmp_path / "natives.zip", "libyoga64.so", LIBRARY_BYTES)
        with zipfile.ZipFile(archive) as zf:
            stream = zf.open("libyoga64.so")
            value = crc(stream)
        assert value != format(zlib.crc32(LIBRARY_BYTES), "x")
        assert stream.closed

    def test_corrupt_archive_entry_strict(self, tmp_path):
        archive = write_corrupt_zip(tmp_path / "natives.zip", "libyoga64.so", LIBRARY_BYTES)
        with zipfile.ZipFile(archive) as zf:
            with pytest.raises(zipfile.BadZipFile):
                crc(zf.open("libyoga64.so"), strict=True)

    def test_success_leaves_stream_open(self):
        stream = io.BytesIO(b"data")
        crc(stream)
        assert not stream.closed


class TestFileCrc:
    """Test file checksums."""

    def test_matches_stream(self, tmp_path):
        path = tmp_path / "lib.so"
        path.write_bytes(b"payload")
        assert file_crc(path) == crc(io.BytesIO(b"payload"))

    def test_missing_file(self, tmp_path):
        assert file_crc(tmp_path / "missing.so") is None
