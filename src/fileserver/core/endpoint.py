"""
=============================================================================
IPv4 ENDPOINTS
=============================================================================

An Endpoint is an immutable IPv4 address + port pair.

    Endpoint.parse("127.0.0.1", 8080)
        │
        ├── address  b"\\x7f\\x00\\x00\\x01"   4 bytes, network order
        ├── port     8080                  host order int
        │
        ├── host     "127.0.0.1"           dotted-decimal text
        ├── ip_value 2130706433            host order int
        └── str()    "127.0.0.1:8080"

BYTE ORDER
──────────
Network byte order is big-endian. The address bytes are stored exactly as
they travel on the wire, so `inet_aton`/`inet_ntoa` never reorder them.
The port is kept as a plain int; the socket layer converts it to network
order (htons) when `to_native()` hands it over, and back (ntohs) when
`from_native()` reads it from accept/getsockname/getpeername.

=============================================================================
"""

import re
import socket
from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidAddressError


# Four dot-separated decimal octets. Range (0-255) is checked separately.
_DOTTED_QUAD = re.compile(r"([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})")

MAX_PORT = 65535


@dataclass(frozen=True, order=True)
class Endpoint:
    """
    IPv4 address and port.

    Equality and ordering are structural (address bytes, then port).
    Use Endpoint.parse() to build one from text.
    """

    address: bytes
    port: int

    LOCALHOST = "127.0.0.1"
    ANY = "0.0.0.0"

    def __post_init__(self):
        if not isinstance(self.address, bytes) or len(self.address) != 4:
            raise InvalidAddressError(f"IPv4 address must be 4 bytes: {self.address!r}")
        if not 0 <= self.port <= MAX_PORT:
            raise InvalidAddressError(f"Port out of range: {self.port}")

    @classmethod
    def parse(cls, text: str, port: int) -> "Endpoint":
        """
        Build an Endpoint from dotted-decimal text and a port.

        Raises:
            InvalidAddressError: text is not four octets 0-255, or the port
                                 is outside 0-65535.
        """
        match = _DOTTED_QUAD.fullmatch(text) if isinstance(text, str) else None
        if match is None:
            raise InvalidAddressError(f"Invalid IPv4 address supplied: {text!r}")

        octets = [int(group) for group in match.groups()]
        if any(octet > 255 for octet in octets):
            raise InvalidAddressError(f"Invalid IPv4 address supplied: {text!r}")

        return cls(bytes(octets), int(port))

    @classmethod
    def from_string(cls, text: str) -> "Endpoint":
        """Parse the "a.b.c.d:port" form produced by str()."""
        host, sep, port = text.rpartition(":")
        if not sep or not port.isdigit():
            raise InvalidAddressError(f"Expected 'a.b.c.d:port': {text!r}")
        return cls.parse(host, int(port))

    # =========================================================================
    # NATIVE CONVERSION
    # =========================================================================

    def to_native(self) -> Tuple[str, int]:
        """Address tuple accepted by socket.bind()/connect()."""
        return (socket.inet_ntoa(self.address), self.port)

    @classmethod
    def from_native(cls, addr: Tuple[str, int]) -> "Endpoint":
        """Build an Endpoint from an AF_INET address tuple."""
        host, port = addr[0], addr[1]
        try:
            packed = socket.inet_aton(host)
        except OSError as e:
            raise InvalidAddressError(f"Invalid IPv4 address supplied: {host!r}") from e
        return cls(packed, port)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def host(self) -> str:
        return socket.inet_ntoa(self.address)

    @property
    def ip_value(self) -> int:
        return int.from_bytes(self.address, "big")

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"
