from __future__ import annotations

import enum
import logging
import math
import os
import time
from dataclasses import dataclass, field
from typing import Callable, Union

from .checksum import crc32_file
from .constants import (
    ACK_TOKEN,
    CRC_OK_TOKEN,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PORT,
    DEFAULT_RETRY_DELAY_S,
    MAX_IMAGE_SIZE,
)
from .errors import (
    ConnectionClosed,
    ImageTooLarge,
    InputError,
    ProtocolError,
    RetriesExhausted,
    StorageError,
)
from .framing import chunk_count, encode_u32, iter_chunks
from .net import Connector, RetryPolicy, TcpConnection, connect_with_retry, tcp_connect
from .progress import ProgressReporter
from .result import Outcome, TransferResult

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class TransferState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    HEADER_SENT = "header_sent"
    SENDING = "sending"
    CHECKSUM_SENT = "checksum_sent"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TransferConfig:
    port: int = DEFAULT_PORT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    retry_delay_s: float = DEFAULT_RETRY_DELAY_S
    max_attempts: int | None = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if not (math.isfinite(self.retry_delay_s) and self.retry_delay_s >= 0):
            raise ValueError(f"retry_delay_s must be a finite, non-negative number, got {self.retry_delay_s}")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(delay_s=self.retry_delay_s, max_attempts=self.max_attempts)


@dataclass(slots=True)
class FirmwareSender:
    """Drives one firmware transfer from file to verification.

    ``run`` never raises for the documented failure modes; every path ends in
    a ``TransferResult`` and a closed connection.
    """

    path: PathLike
    host: str
    config: TransferConfig = field(default_factory=TransferConfig)
    progress: ProgressReporter = field(default_factory=ProgressReporter)
    connect: Connector = tcp_connect
    sleep: Callable[[float], None] = time.sleep

    state: TransferState = field(default=TransferState.IDLE, init=False)
    attempts: int = field(default=0, init=False)
    chunks_sent: int = field(default=0, init=False)
    chunks_acked: int = field(default=0, init=False)
    bytes_acked: int = field(default=0, init=False)
    total_bytes: int = field(default=0, init=False)
    checksum: int | None = field(default=None, init=False)
    start_ts: float = field(default=0.0, init=False, repr=False)

    def run(self) -> TransferResult:
        self._reset()

        try:
            image = self._load_image()
            self.checksum = crc32_file(self.path, self.config.chunk_size)
        except InputError as exc:
            return self._fail(Outcome.INPUT_ERROR, str(exc))
        logger.info("computed firmware CRC32: 0x%08X", self.checksum)

        self._set_state(TransferState.CONNECTING)
        try:
            conn, self.attempts = connect_with_retry(
                (self.host, self.config.port),
                self.config.retry_policy,
                connect=self.connect,
                sleep=self.sleep,
            )
        except RetriesExhausted as exc:
            self.attempts = exc.attempts
            return self._fail(Outcome.CONNECTIVITY_ERROR, str(exc))

        with conn:
            try:
                self._send_image(conn, image)
                conn.send(encode_u32(self.checksum))
            except (ProtocolError, ConnectionClosed, OSError) as exc:
                return self._fail(Outcome.TRANSMISSION_FAILURE, f"transmission failed: {exc}")
            self._set_state(TransferState.CHECKSUM_SENT)
            logger.info("firmware upload completed, sent CRC32: 0x%08X", self.checksum)

            try:
                self._expect(conn, CRC_OK_TOKEN)
            except (ProtocolError, ConnectionClosed, OSError) as exc:
                return self._fail(
                    Outcome.CHECKSUM_MISMATCH,
                    f"CRC32 verification failed, firmware might be corrupted: {exc}",
                )

        self._set_state(TransferState.VERIFIED)
        return self._result(Outcome.SUCCESS, "CRC32 verification passed, firmware transfer complete")

    def _reset(self) -> None:
        self.state = TransferState.IDLE
        self.attempts = 0
        self.chunks_sent = 0
        self.chunks_acked = 0
        self.bytes_acked = 0
        self.total_bytes = 0
        self.checksum = None
        self.start_ts = time.monotonic()

    def _load_image(self) -> bytes:
        try:
            with open(self.path, "rb") as f:
                image = f.read()
        except FileNotFoundError as exc:
            raise StorageError(f"firmware file {os.fspath(self.path)} not found") from exc
        except OSError as exc:
            raise StorageError(f"cannot read firmware file {os.fspath(self.path)}: {exc}") from exc

        if len(image) > MAX_IMAGE_SIZE:
            raise ImageTooLarge(len(image), MAX_IMAGE_SIZE)
        self.total_bytes = len(image)
        logger.info("sending firmware file: %s, size: %d bytes", os.fspath(self.path), self.total_bytes)
        return image

    def _send_image(self, conn: TcpConnection, image: bytes) -> None:
        conn.send(encode_u32(len(image)))
        self._set_state(TransferState.HEADER_SENT)

        logger.debug("sending %d bytes in %d chunks", len(image), chunk_count(len(image), self.config.chunk_size))
        self.progress.start(len(image))
        self._set_state(TransferState.SENDING)
        try:
            for chunk in iter_chunks(image, self.config.chunk_size):
                conn.send(chunk.payload)
                self.chunks_sent += 1
                self._expect(conn, ACK_TOKEN)
                self.chunks_acked += 1
                self.bytes_acked += len(chunk.payload)
                self.progress.advance(len(chunk.payload))
                logger.debug("chunk %d acked (%d/%d bytes)", self.chunks_acked, self.bytes_acked, len(image))
        finally:
            self.progress.finish()

    @staticmethod
    def _expect(conn: TcpConnection, token: bytes) -> None:
        received = conn.recv_exact(len(token))
        if received != token:
            raise ProtocolError(token, received)

    def _set_state(self, state: TransferState) -> None:
        logger.debug("state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, outcome: Outcome, detail: str) -> TransferResult:
        self._set_state(TransferState.FAILED)
        logger.debug("transfer failed: %s", detail)
        return self._result(outcome, detail)

    def _result(self, outcome: Outcome, detail: str) -> TransferResult:
        return TransferResult(
            outcome=outcome,
            detail=detail,
            total_bytes=self.total_bytes,
            bytes_acked=self.bytes_acked,
            chunks_sent=self.chunks_sent,
            chunks_acked=self.chunks_acked,
            checksum=self.checksum,
            attempts=self.attempts,
            duration_s=max(0.0, time.monotonic() - self.start_ts),
        )


def send_firmware(
    path: PathLike,
    host: str,
    config: TransferConfig | None = None,
    *,
    progress: ProgressReporter | None = None,
    connect: Connector | None = None,
    sleep: Callable[[float], None] | None = None,
) -> TransferResult:
    sender = FirmwareSender(
        path,
        host,
        config=config or TransferConfig(),
        progress=progress or ProgressReporter(),
        connect=connect or tcp_connect,
        sleep=sleep or time.sleep,
    )
    return sender.run()
