from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator

from .constants import DEFAULT_CHUNK_SIZE, MAX_IMAGE_SIZE, SIZE_FORMAT

_U32 = struct.Struct(SIZE_FORMAT)


@dataclass(frozen=True, slots=True)
class Chunk:
    offset: int
    payload: bytes

    @property
    def end(self) -> int:
        return self.offset + len(self.payload)


def encode_u32(value: int) -> bytes:
    if not 0 <= value <= MAX_IMAGE_SIZE:
        raise ValueError(f"value does not fit in 32 bits: {value}")
    return _U32.pack(value)


def iter_chunks(image: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Chunk]:
    """Yield ``image`` as consecutive, non-overlapping chunks of at most ``chunk_size`` bytes."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    view = memoryview(image)
    for offset in range(0, len(image), chunk_size):
        yield Chunk(offset=offset, payload=bytes(view[offset : offset + chunk_size]))


def chunk_count(size: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    return -(-size // chunk_size)
