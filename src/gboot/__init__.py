"""gboot: firmware delivery over TCP

The sender side of a small firmware update protocol:
- a 4-byte big-endian size header, then the image in bounded chunks
- one ``ACK`` per chunk before the next chunk goes out
- a trailing IEEE CRC-32 that the receiver answers with ``CRC_OK``

Protocol framing, the transfer state machine and console presentation live
in separate modules so each can be tested without the others.
"""

from .constants import VERSION
from .result import Outcome, TransferResult
from .sender import FirmwareSender, TransferConfig, TransferState, send_firmware

__version__ = VERSION

__all__ = [
    "FirmwareSender",
    "Outcome",
    "TransferConfig",
    "TransferResult",
    "TransferState",
    "send_firmware",
]
