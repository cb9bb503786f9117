from __future__ import annotations

import logging
import math
import socket
import time
from dataclasses import dataclass
from typing import Callable, Protocol, Tuple

from .constants import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY_S
from .errors import ConnectionClosed, RetriesExhausted

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


class StreamSocket(Protocol):
    def sendall(self, data: bytes) -> None: ...

    def recv(self, bufsize: int) -> bytes: ...

    def close(self) -> None: ...


Connector = Callable[[Address], StreamSocket]


def tcp_connect(addr: Address) -> socket.socket:
    # No timeout: reads and writes block until the peer answers or drops.
    return socket.create_connection(addr)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    delay_s: float = DEFAULT_RETRY_DELAY_S
    max_attempts: int | None = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if not (math.isfinite(self.delay_s) and self.delay_s >= 0):
            raise ValueError(f"delay_s must be a finite, non-negative number, got {self.delay_s}")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def allows(self, attempt: int) -> bool:
        return self.max_attempts is None or attempt < self.max_attempts


class TcpConnection:
    def __init__(self, sock: StreamSocket, addr: Address):
        self.sock = sock
        self.addr = addr
        self.closed = False

    def send(self, data: bytes) -> None:
        self.sock.sendall(data)

    def recv_exact(self, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            part = self.sock.recv(n - len(buf))
            if not part:
                raise ConnectionClosed(n, bytes(buf))
            buf += part
        return bytes(buf)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.sock.close()
        except OSError as exc:
            logger.debug("error closing connection to %s:%d: %s", *self.addr, exc)

    def __enter__(self) -> "TcpConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def connect_with_retry(
    addr: Address,
    policy: RetryPolicy,
    *,
    connect: Connector = tcp_connect,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[TcpConnection, int]:
    """Connect to ``addr``, sleeping ``policy.delay_s`` between failed attempts.

    Returns the connection and the number of attempts it took. Raises
    ``RetriesExhausted`` only when the policy carries an attempt bound.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            sock = connect(addr)
        except OSError as exc:
            if not policy.allows(attempt):
                raise RetriesExhausted(attempt, exc) from exc
            logger.warning(
                "connection to %s:%d failed: %s, retrying in %g seconds...",
                addr[0],
                addr[1],
                exc,
                policy.delay_s,
            )
            sleep(policy.delay_s)
            continue
        logger.info("connected to %s:%d (attempt %d)", addr[0], addr[1], attempt)
        return TcpConnection(sock, addr), attempt
