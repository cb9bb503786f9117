from __future__ import annotations

import io
import zlib

import pytest

from gboot.checksum import crc32_file, crc32_stream
from gboot.errors import ReadError, StorageError


def test_known_vector():
    assert crc32_stream(io.BytesIO(b"123456789")) == 0xCBF43926


def test_empty_file_is_crc_of_zero_bytes(firmware):
    assert crc32_file(firmware(b"")) == 0 == zlib.crc32(b"")


@pytest.mark.parametrize("block_size", [1, 3, 255, 256, 257, 1 << 20])
def test_block_size_does_not_change_result(firmware, block_size):
    content = bytes(range(256)) * 13 + b"tail"
    assert crc32_file(firmware(content), block_size) == zlib.crc32(content)


def test_missing_file_is_storage_error(tmp_path):
    with pytest.raises(StorageError):
        crc32_file(tmp_path / "nope.bin")


def test_directory_is_storage_error(tmp_path):
    with pytest.raises(StorageError):
        crc32_file(tmp_path)


class FlakyReader(io.RawIOBase):
    def __init__(self):
        self.calls = 0

    def read(self, n=-1):
        self.calls += 1
        if self.calls > 1:
            raise OSError(5, "Input/output error")
        return b"x" * n


def test_read_failure_mid_stream_is_read_error():
    with pytest.raises(ReadError):
        crc32_stream(FlakyReader(), 16)


def test_block_size_must_be_positive():
    with pytest.raises(ValueError):
        crc32_stream(io.BytesIO(b"abc"), 0)
