from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from typing import TextIO

from .constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PORT,
    DEFAULT_RETRY_DELAY_S,
    VERSION,
)
from .progress import ProgressReporter, TextProgressBar
from .result import Outcome, TransferResult
from .sender import TransferConfig, send_firmware

IPV4_RE = re.compile(
    r"^((25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)

VERSION_TEXT = f"Firmware Sender Version: {VERSION}"

GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

_HEADLINES = {
    Outcome.SUCCESS: "Success: CRC32 verification passed, firmware transfer complete.",
    Outcome.CHECKSUM_MISMATCH: "Error: CRC32 verification failed, firmware might be corrupted!",
    Outcome.TRANSMISSION_FAILURE: "Error: Transmission failed, incorrect ACK received",
    Outcome.CONNECTIVITY_ERROR: "Error: Could not connect to the server",
    Outcome.INPUT_ERROR: "Error: Firmware could not be prepared for sending",
}


def is_valid_ipv4(ip: str) -> bool:
    return IPV4_RE.fullmatch(ip) is not None


def positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return n


def render_result(result: TransferResult, out: TextIO, *, color: bool = False) -> None:
    headline = _HEADLINES[result.outcome]
    if color:
        headline = f"{GREEN if result.ok else RED}{headline}{RESET}"
    print(headline, file=out)
    if not result.ok and result.detail:
        print(f"  {result.detail}", file=out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gboot",
        description="Send a firmware image to a device over TCP and verify its CRC32.",
        epilog="gboot version  or  gboot -v  (to check version)",
    )
    parser.add_argument("firmware", help="path to the firmware image")
    parser.add_argument("server_ip", help="IPv4 address of the receiving device")
    parser.add_argument("-v", "--version", action="version", version=VERSION_TEXT)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--chunk-size", type=positive_int, default=DEFAULT_CHUNK_SIZE)
    parser.add_argument(
        "--retry-delay",
        type=float,
        default=DEFAULT_RETRY_DELAY_S,
        help="seconds to wait between connection attempts",
    )
    parser.add_argument(
        "--max-attempts",
        type=positive_int,
        default=DEFAULT_MAX_ATTEMPTS,
        help="give up after this many connection attempts (default: retry forever)",
    )
    parser.add_argument("--no-progress", action="store_true", help="do not draw the progress bar")
    parser.add_argument("--json", action="store_true", help="print the result as JSON")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if argv[:1] == ["version"]:
        print(VERSION_TEXT)
        return 0

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")

    if not is_valid_ipv4(args.server_ip):
        print(f"Error: Invalid IP address format: {args.server_ip}", file=sys.stderr)
        return Outcome.INPUT_ERROR.exit_code

    try:
        config = TransferConfig(
            port=args.port,
            chunk_size=args.chunk_size,
            retry_delay_s=args.retry_delay,
            max_attempts=args.max_attempts,
        )
    except ValueError as exc:
        parser.error(str(exc))

    progress: ProgressReporter
    if args.no_progress or args.json:
        progress = ProgressReporter()
    else:
        progress = TextProgressBar(sys.stderr)

    result = send_firmware(args.firmware, args.server_ip, config, progress=progress)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        render_result(result, sys.stdout, color=sys.stdout.isatty())
    return result.outcome.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
