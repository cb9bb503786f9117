from __future__ import annotations

import socket
import threading
import zlib
from pathlib import Path
from typing import Callable

import pytest

from gboot.constants import ACK_TOKEN, CRC_OK_TOKEN


class ScriptedSocket:
    """In-memory stand-in for a connected TCP socket.

    ``replies`` is called whenever the sender reads and nothing is buffered;
    it returns the bytes the peer sends back, or b"" to simulate a hangup.
    """

    def __init__(self, replies: Callable[["ScriptedSocket"], bytes]):
        self.replies = replies
        self.writes: list[bytes] = []
        self.pending = b""
        self.closed = False

    @property
    def header(self) -> bytes:
        return self.writes[0]

    @property
    def payload_writes(self) -> list[bytes]:
        return self.writes[1:]

    def sendall(self, data: bytes) -> None:
        if self.closed:
            raise OSError("socket is closed")
        self.writes.append(bytes(data))

    def recv(self, bufsize: int) -> bytes:
        if not self.pending:
            self.pending = self.replies(self)
        out, self.pending = self.pending[:bufsize], self.pending[bufsize:]
        return out

    def close(self) -> None:
        self.closed = True


class PeerScript:
    """Reply policy for ScriptedSocket: ACK ``ack_count`` chunks, then ``bad_ack``."""

    def __init__(
        self,
        image_size: int,
        chunk_size: int,
        *,
        ack_count: int | None = None,
        bad_ack: bytes = b"NAK",
        verdict: bytes = CRC_OK_TOKEN,
    ):
        self.chunks = -(-image_size // chunk_size)
        self.ack_count = self.chunks if ack_count is None else ack_count
        self.bad_ack = bad_ack
        self.verdict = verdict
        self.reads = 0

    def __call__(self, sock: ScriptedSocket) -> bytes:
        self.reads += 1
        if self.reads <= self.chunks:
            return ACK_TOKEN if self.reads <= self.ack_count else self.bad_ack
        return self.verdict


class RecordingConnector:
    """Refuses the first ``refusals`` attempts, then hands out ``sock``."""

    def __init__(self, sock: ScriptedSocket | None = None, refusals: int = 0):
        self.sock = sock
        self.refusals = refusals
        self.calls: list[tuple[str, int]] = []

    def __call__(self, addr: tuple[str, int]) -> ScriptedSocket:
        self.calls.append(addr)
        if len(self.calls) <= self.refusals or self.sock is None:
            raise ConnectionRefusedError(111, "Connection refused")
        return self.sock


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeDevice:
    """Loopback TCP receiver speaking the device side of the upload protocol."""

    def __init__(self, *, ack: bytes = ACK_TOKEN, verdict: bytes | None = None, chunk_size: int = 256):
        self.ack = ack
        self.verdict = verdict
        self.chunk_size = chunk_size
        self.received = bytearray()
        self.declared_size: int | None = None
        self.received_crc: int | None = None
        self.error: BaseException | None = None
        self.listener = socket.create_server(("127.0.0.1", 0))
        self.port = self.listener.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self) -> "FakeDevice":
        self.thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.thread.join(timeout=10.0)
        self.listener.close()

    def _recv_exact(self, conn: socket.socket, n: int) -> bytes:
        buf = b""
        while len(buf) < n:
            part = conn.recv(n - len(buf))
            if not part:
                raise ConnectionError("sender closed early")
            buf += part
        return buf

    def _serve(self) -> None:
        try:
            conn, _ = self.listener.accept()
            with conn:
                self.declared_size = int.from_bytes(self._recv_exact(conn, 4), "big")
                while len(self.received) < self.declared_size:
                    want = min(self.chunk_size, self.declared_size - len(self.received))
                    self.received += self._recv_exact(conn, want)
                    conn.sendall(self.ack)
                    if self.ack != ACK_TOKEN:
                        return
                self.received_crc = int.from_bytes(self._recv_exact(conn, 4), "big")
                verdict = self.verdict
                if verdict is None:
                    ok = zlib.crc32(bytes(self.received)) & 0xFFFFFFFF == self.received_crc
                    verdict = CRC_OK_TOKEN if ok else b"CRC_NO"
                conn.sendall(verdict)
        except BaseException as exc:  # surfaced to the test through .error
            self.error = exc


@pytest.fixture
def firmware(tmp_path: Path) -> Callable[[bytes], Path]:
    def make(content: bytes, name: str = "firmware.bin") -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return make


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
