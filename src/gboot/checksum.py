from __future__ import annotations

import os
import zlib
from typing import BinaryIO, Union

from .constants import DEFAULT_CHUNK_SIZE
from .errors import ReadError, StorageError

PathLike = Union[str, "os.PathLike[str]"]


def crc32_stream(f: BinaryIO, block_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Running IEEE CRC-32 over everything left in ``f``.

    The result depends only on the bytes read, never on ``block_size``.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")

    crc = 0
    while True:
        try:
            block = f.read(block_size)
        except OSError as exc:
            raise ReadError(f"read failed mid-stream: {exc}") from exc
        if not block:
            break
        crc = zlib.crc32(block, crc)
    return crc & 0xFFFFFFFF


def crc32_file(path: PathLike, block_size: int = DEFAULT_CHUNK_SIZE) -> int:
    try:
        f = open(path, "rb")
    except OSError as exc:
        raise StorageError(f"cannot open {os.fspath(path)}: {exc}") from exc
    with f:
        return crc32_stream(f, block_size)
