from __future__ import annotations

VERSION = "1.2.0"

SIZE_FORMAT = "!I"  # firmware size and checksum, network byte order
MAX_IMAGE_SIZE = 0xFFFFFFFF

ACK_TOKEN = b"ACK"
CRC_OK_TOKEN = b"CRC_OK"

DEFAULT_PORT = 5000
DEFAULT_CHUNK_SIZE = 256
DEFAULT_RETRY_DELAY_S = 3.0
DEFAULT_MAX_ATTEMPTS: int | None = None  # retry forever
