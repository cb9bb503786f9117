from __future__ import annotations

import enum
from dataclasses import asdict, dataclass


class Outcome(enum.Enum):
    SUCCESS = "success"
    INPUT_ERROR = "input_error"
    CONNECTIVITY_ERROR = "connectivity_error"
    TRANSMISSION_FAILURE = "transmission_failure"
    CHECKSUM_MISMATCH = "checksum_mismatch"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    Outcome.SUCCESS: 0,
    Outcome.INPUT_ERROR: 1,
    Outcome.TRANSMISSION_FAILURE: 3,
    Outcome.CHECKSUM_MISMATCH: 4,
    Outcome.CONNECTIVITY_ERROR: 5,
}


@dataclass(frozen=True, slots=True)
class TransferResult:
    outcome: Outcome
    detail: str = ""
    total_bytes: int = 0
    bytes_acked: int = 0
    chunks_sent: int = 0
    chunks_acked: int = 0
    checksum: int | None = None
    attempts: int = 0
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["outcome"] = self.outcome.value
        payload["checksum"] = None if self.checksum is None else f"0x{self.checksum:08X}"
        return payload
