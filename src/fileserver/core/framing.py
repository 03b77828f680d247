"""
=============================================================================
DELIMITER FRAMING OVER A BYTE STREAM
=============================================================================

TCP delivers bytes, not messages. A client that sends

    GET /file1.html HTTP/1.0\\r\\n\\r\\n

may arrive as one recv() or as five; the "\\r\\n\\r\\n" that ends the header
block can even be split down the middle:

    recv() → b"GET /file1.html HTTP/1.0\\r"
    recv() → b"\\n\\r"
    recv() → b"\\n"

The functions here turn that stream into bounded, delimiter-terminated
frames using nothing but Transport.receive().

=============================================================================
ONE BYTE AT A TIME
=============================================================================

Both readers pull a single byte per receive() call:

    ┌─────────────────────────────────────────────────────────────────┐
    │   frame = b""                                                    │
    │   while len(frame) < max_length:                                 │
    │       receive 1 byte ──► 0 bytes? peer closed, stop              │
    │       frame += byte                                              │
    │       frame ends with delimiter? stop                            │
    └─────────────────────────────────────────────────────────────────┘

Reading a bigger chunk would be faster, but anything read past the
delimiter belongs to the NEXT frame (e.g. a request body) and would be lost
when the function returns. Reading one byte never overshoots, and a
delimiter split across deliveries is still found because the check runs
after every byte.

=============================================================================
"""

import logging
from typing import Protocol, Union

from .result import ErrorKind, Result


logger = logging.getLogger(__name__)


DEFAULT_MAX_LENGTH = 4096

LINE_DELIMITER = b"\n"
HEADER_TERMINATOR = b"\r\n\r\n"


class Receiver(Protocol):
    """Anything with Transport's raw receive primitive."""

    def receive(self, buffer: Union[bytearray, memoryview]) -> Result[int]:
        ...


def read_until(
    transport: Receiver,
    delimiter: bytes,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> Result[bytes]:
    """
    Read until `delimiter`, `max_length` bytes, or end of stream.

    Returns:
        The accumulated bytes, delimiter included when it was seen. A
        receive failure is returned as-is.
    """
    if not delimiter:
        return Result.failure(ErrorKind.INVALID_ARGUMENT, "delimiter must not be empty")
    if max_length <= 0:
        return Result.failure(
            ErrorKind.INVALID_ARGUMENT, f"max_length must be positive: {max_length}"
        )

    frame = bytearray()
    octet = bytearray(1)

    while len(frame) < max_length:
        received = transport.receive(octet)
        if not received:
            return Result.from_failure(received.error)
        if received.value == 0:
            logger.debug(f"End of stream after {len(frame)} bytes")
            break

        frame += octet
        if frame.endswith(delimiter):
            break

    return Result.success(bytes(frame))


def read_line(transport: Receiver, max_length: int = DEFAULT_MAX_LENGTH) -> Result[bytes]:
    """Read one "\\n"-terminated line (terminator included)."""
    return read_until(transport, LINE_DELIMITER, max_length)
