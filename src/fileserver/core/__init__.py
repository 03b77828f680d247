"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The low-level building blocks the file server is made of. Nothing in here
knows about HTTP; everything above this package talks to the network only
through a Transport.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Binds the listening Transport (random-port fallback)              │
    │  • Serial accept loop, one connection at a time                      │
    │  • SIGTERM / SIGINT → CancellationToken                              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                 ┌──────────────────┼──────────────────┐
                 ▼                  ▼                  ▼
    ┌──────────────────┐ ┌──────────────────┐ ┌──────────────────┐
    │     POLLER       │ │    TRANSPORT     │ │     FRAMING      │
    │  readiness wait  │ │  state machine   │ │  read_until()    │
    │  with timeout    │ │  over a Handle   │ │  read_line()     │
    └──────────────────┘ └──────────────────┘ └──────────────────┘
                                    │
                 ┌──────────────────┼──────────────────┐
                 ▼                  ▼                  ▼
    ┌──────────────────┐ ┌──────────────────┐ ┌──────────────────┐
    │     HANDLE       │ │    ENDPOINT      │ │  RESULT / ERRORS │
    │  owns one socket │ │  IPv4 + port     │ │  Failure kinds   │
    └──────────────────┘ └──────────────────┘ └──────────────────┘

=============================================================================
"""

from .endpoint import Endpoint
from .errors import (
    FileServerError,
    InvalidAddressError,
    NoFreePortError,
    ResultError,
    ServerStartError,
    SocketCreateError,
)
from .framing import HEADER_TERMINATOR, read_line, read_until
from .handle import Handle
from .poller import Events, Poller
from .result import ErrorKind, Failure, Result
from .socket_server import CancellationToken, SocketServer, bind_listener
from .transport import SocketOptions, Transport, TransportState, TransportType

__all__ = [
    # Ownership and addressing
    "Handle",
    "Endpoint",

    # Outcomes
    "Result",
    "Failure",
    "ErrorKind",

    # Exceptions
    "FileServerError",
    "InvalidAddressError",
    "SocketCreateError",
    "NoFreePortError",
    "ServerStartError",
    "ResultError",

    # Transport
    "Transport",
    "TransportType",
    "TransportState",
    "SocketOptions",

    # Framing
    "read_until",
    "read_line",
    "HEADER_TERMINATOR",

    # Multiplexing
    "Poller",
    "Events",

    # Server loop
    "SocketServer",
    "CancellationToken",
    "bind_listener",
]
