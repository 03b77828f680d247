"""
=============================================================================
TRANSPORT: A STATE-VALIDATED SOCKET
=============================================================================

Transport wraps one socket Handle with a lifecycle state and turns every
socket call into a Result. It is the only place in the package that talks
to the socket API directly.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │               bind()              listen()                           │
    │   CREATED ───────────► BOUND ───────────────► LISTENING              │
    │      │                                           │                   │
    │      │ connect()                                 │ accept()          │
    │      ▼                                           ▼                   │
    │   CONNECTED ◄──────────────────────── new Transport (+ peer)         │
    │      │                                                               │
    │      │ send()/receive()  (no state change)                           │
    │      ▼                                                               │
    │   CLOSED  ◄── full shutdown()/close() from any state                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every operation checks its source state BEFORE touching the OS. Calling
accept() on a socket that is not listening returns an INVALID_STATE
failure instead of making a system call that would fail (or worse, block).

=============================================================================
WHY RESULTS INSTEAD OF EXCEPTIONS?
=============================================================================

On a server, "address in use", "connection reset" and "peer went away" are
ordinary events, not bugs. Returning them as values keeps the accept loop
free of try/except around every call and makes the failure handling visible
at each call site:

    result = transport.bind(endpoint)
    if not result:
        logger.error(f"bind failed: {result.error}")

The only exception raised for an OS failure is SocketCreateError, when the
OS refuses to hand out a socket at all.

=============================================================================
PARTIAL WRITES
=============================================================================

send() maps straight onto send(2): it returns how many bytes the kernel
accepted, which may be fewer than requested. send_all() loops until the
whole buffer has been transferred and is what the connection pipeline uses.

=============================================================================
"""

import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set, Tuple, Union

from .endpoint import Endpoint
from .errors import SocketCreateError
from .handle import Handle
from .result import ErrorKind, Failure, Result, bad_descriptor


logger = logging.getLogger(__name__)


DEFAULT_BACKLOG = 128
DEFAULT_RECEIVE_SIZE = 4096

Buffer = Union[bytearray, memoryview]


class TransportType(Enum):
    """Protocol family of a transport."""
    STREAM = "stream"        # TCP
    DATAGRAM = "datagram"    # UDP (type only, no datagram I/O)

    @property
    def socket_type(self) -> int:
        return socket.SOCK_STREAM if self is TransportType.STREAM else socket.SOCK_DGRAM


class TransportState(Enum):
    """Transport lifecycle states."""
    CREATED = "created"        # Socket allocated, nothing else done
    BOUND = "bound"            # Address assigned
    LISTENING = "listening"    # Queueing incoming connections
    CONNECTED = "connected"    # Connected or accepted, ready for I/O
    CLOSED = "closed"          # Shut down or closed


@dataclass
class SocketOptions:
    """
    Socket options applied by Transport.set_options().

    SO_REUSEADDR lets a restarted server bind its port while old
    connections are still in TIME_WAIT. SO_REUSEPORT lets several sockets
    share one port and is missing on some platforms, in which case it is
    skipped. TCP_NODELAY disables Nagle's algorithm.
    """

    reuse_addr: bool = True
    reuse_port: bool = False
    keep_alive: bool = False
    no_delay: bool = False
    blocking: bool = True
    send_buffer_size: Optional[int] = None
    recv_buffer_size: Optional[int] = None


class Transport:
    """
    A socket with a validated lifecycle.

    Usage (server side):
        listener = Transport.create_bind(Endpoint.parse("127.0.0.1", 8080)).unwrap()
        listener.listen().unwrap()
        result = listener.accept()
        if result:
            client, peer = result.value
            with client:
                client.send_all(b"hello")

    Usage (client side):
        conn = Transport.create_connect(endpoint).unwrap()
        conn.send_all(b"GET /file1.html HTTP/1.0\\r\\n\\r\\n")
    """

    def __init__(
        self,
        type: TransportType = TransportType.STREAM,
        handle: Optional[Handle] = None,
        state: TransportState = TransportState.CREATED,
    ):
        """
        Allocate a new socket, or adopt `handle` if one is given.

        Raises:
            SocketCreateError: The OS refused to create a socket.
        """
        self._type = type
        self._state = state
        self._last_error: Optional[Failure] = None
        # Directions already shut down: "read" and/or "write"
        self._shut: Set[str] = set()

        if handle is not None:
            # Ownership moves into this transport; the caller's handle
            # is left empty.
            self._handle = Handle(handle.release())
            return

        try:
            sock = socket.socket(socket.AF_INET, type.socket_type)
        except OSError as e:
            raise SocketCreateError(f"Unable to create socket: {e}") from e
        self._handle = Handle(sock)

    # =========================================================================
    # FACTORIES
    # =========================================================================

    @classmethod
    def create(cls, type: TransportType = TransportType.STREAM) -> "Result[Transport]":
        """Allocate a transport, returning a failure instead of raising."""
        try:
            return Result.success(cls(type))
        except SocketCreateError as e:
            return Result.failure(ErrorKind.IO_ERROR, str(e))

    @classmethod
    def create_bind(
        cls,
        endpoint: Endpoint,
        type: TransportType = TransportType.STREAM,
        options: Optional[SocketOptions] = None,
    ) -> "Result[Transport]":
        """Allocate, optionally configure, and bind a transport."""
        created = cls.create(type)
        if not created:
            return created
        transport = created.value

        if options is not None:
            configured = transport.set_options(options)
            if not configured:
                transport.close()
                return Result.from_failure(configured.error)

        bound = transport.bind(endpoint)
        if not bound:
            transport.close()
            return Result.from_failure(bound.error)
        return Result.success(transport)

    @classmethod
    def create_connect(
        cls,
        endpoint: Endpoint,
        type: TransportType = TransportType.STREAM,
    ) -> "Result[Transport]":
        """Allocate a transport and connect it to `endpoint`."""
        created = cls.create(type)
        if not created:
            return created
        transport = created.value

        connected = transport.connect(endpoint)
        if not connected:
            transport.close()
            return Result.from_failure(connected.error)
        return Result.success(transport)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def type(self) -> TransportType:
        return self._type

    @property
    def handle(self) -> Handle:
        return self._handle

    @property
    def is_valid(self) -> bool:
        return self._handle.is_valid

    @property
    def last_error(self) -> Optional[Failure]:
        """The most recent failure observed on this transport."""
        return self._last_error

    def fileno(self) -> int:
        return self._handle.fileno()

    def __repr__(self) -> str:
        return (f"Transport(type={self._type.value}, state={self._state.value}, "
                f"fileno={self.fileno()})")

    # =========================================================================
    # FAILURE BOOKKEEPING
    # =========================================================================

    def _fail(self, failure: Failure) -> Result:
        self._last_error = failure
        logger.debug(f"fd={self.fileno()} {failure}")
        return Result.from_failure(failure)

    def _fail_state(self, operation: str, expected: str) -> Result:
        return self._fail(Failure(
            ErrorKind.INVALID_STATE,
            f"{operation} requires state {expected}, transport is {self._state.value}",
        ))

    def _fail_os(self, exc: OSError, operation: str) -> Result:
        return self._fail(Failure.from_os_error(exc, operation))

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def set_options(self, options: SocketOptions) -> Result[None]:
        """Apply socket options. Options the platform lacks are skipped."""
        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("setsockopt"))

        settings = [
            (socket.SOL_SOCKET, "SO_REUSEADDR", int(options.reuse_addr)),
            (socket.SOL_SOCKET, "SO_KEEPALIVE", int(options.keep_alive)),
        ]
        if options.reuse_port:
            settings.append((socket.SOL_SOCKET, "SO_REUSEPORT", 1))
        if options.no_delay and self._type is TransportType.STREAM:
            settings.append((socket.IPPROTO_TCP, "TCP_NODELAY", 1))
        if options.send_buffer_size is not None:
            settings.append((socket.SOL_SOCKET, "SO_SNDBUF", options.send_buffer_size))
        if options.recv_buffer_size is not None:
            settings.append((socket.SOL_SOCKET, "SO_RCVBUF", options.recv_buffer_size))

        for level, name, value in settings:
            option = getattr(socket, name, None)
            if option is None:
                logger.debug(f"{name} not available on this platform, skipping")
                continue
            try:
                sock.setsockopt(level, option, value)
            except OSError as e:
                return self._fail_os(e, f"setsockopt({name})")

        try:
            sock.setblocking(options.blocking)
        except OSError as e:
            return self._fail_os(e, "setblocking")
        return Result.success()

    # =========================================================================
    # LIFECYCLE OPERATIONS
    # =========================================================================

    def bind(self, endpoint: Endpoint) -> Result[None]:
        """CREATED → BOUND."""
        if self._state is not TransportState.CREATED:
            return self._fail_state("bind", "created")
        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("bind"))

        try:
            sock.bind(endpoint.to_native())
        except OSError as e:
            return self._fail_os(e, f"bind to {endpoint}")

        self._state = TransportState.BOUND
        return Result.success()

    def listen(self, backlog: int = DEFAULT_BACKLOG) -> Result[None]:
        """BOUND → LISTENING. Stream transports only."""
        if self._type is not TransportType.STREAM:
            return self._fail(Failure(
                ErrorKind.UNSUPPORTED_OPERATION,
                f"listen is not supported on {self._type.value} transports",
            ))
        if self._state is not TransportState.BOUND:
            return self._fail_state("listen", "bound")
        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("listen"))

        try:
            sock.listen(backlog)
        except OSError as e:
            return self._fail_os(e, "listen")

        self._state = TransportState.LISTENING
        return Result.success()

    def accept(self) -> "Result[Tuple[Transport, Endpoint]]":
        """
        Wait for a connection on a LISTENING transport.

        Returns a new CONNECTED transport that owns the client socket, plus
        the peer's endpoint. This transport keeps listening.
        """
        if self._state is not TransportState.LISTENING:
            return self._fail_state("accept", "listening")
        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("accept"))

        try:
            client_sock, client_addr = sock.accept()
        except OSError as e:
            return self._fail_os(e, "accept")

        client = Transport(
            self._type,
            handle=Handle(client_sock),
            state=TransportState.CONNECTED,
        )
        return Result.success((client, Endpoint.from_native(client_addr)))

    def connect(self, endpoint: Endpoint) -> Result[None]:
        """CREATED → CONNECTED. Stream transports only."""
        if self._type is not TransportType.STREAM:
            return self._fail(Failure(
                ErrorKind.UNSUPPORTED_OPERATION,
                f"connect is not supported on {self._type.value} transports",
            ))
        if self._state is not TransportState.CREATED:
            return self._fail_state("connect", "created")
        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("connect"))

        try:
            sock.connect(endpoint.to_native())
        except OSError as e:
            return self._fail_os(e, f"connect to {endpoint}")

        self._state = TransportState.CONNECTED
        return Result.success()

    # =========================================================================
    # I/O
    # =========================================================================

    def _io_socket(
        self, operation: str, direction: str,
    ) -> Tuple[Optional[socket.socket], Optional[Result]]:
        if self._type is not TransportType.STREAM:
            return None, self._fail(Failure(
                ErrorKind.UNSUPPORTED_OPERATION,
                f"{operation} is not supported on {self._type.value} transports",
            ))
        if self._state is not TransportState.CONNECTED:
            return None, self._fail_state(operation, "connected")
        if direction in self._shut:
            return None, self._fail(Failure(
                ErrorKind.INVALID_STATE,
                f"{operation} after the {direction} side was shut down",
            ))
        sock = self._handle.sock
        if sock is None:
            return None, self._fail(bad_descriptor(operation))
        return sock, None

    def send(self, data: bytes) -> Result[int]:
        """Send once. The count returned may be less than len(data)."""
        sock, failed = self._io_socket("send", "write")
        if failed is not None:
            return failed
        try:
            return Result.success(sock.send(data))
        except OSError as e:
            return self._fail_os(e, "send")

    def send_all(self, data: bytes) -> Result[int]:
        """Send until every byte of `data` has been transferred."""
        view = memoryview(data)
        total = 0
        while total < len(view):
            sent = self.send(view[total:])
            if not sent:
                return sent
            total += sent.value
        return Result.success(total)

    def receive(self, buffer: Buffer) -> Result[int]:
        """
        Receive into `buffer`.

        Returns the number of bytes written into the buffer; 0 means the
        peer performed an orderly shutdown. Blocks until data or EOF.
        """
        sock, failed = self._io_socket("receive", "read")
        if failed is not None:
            return failed
        try:
            return Result.success(sock.recv_into(buffer))
        except OSError as e:
            return self._fail_os(e, "receive")

    def receive_bytes(self, max_length: int = DEFAULT_RECEIVE_SIZE) -> Result[bytes]:
        """Receive up to `max_length` bytes. b"" means end of stream."""
        if max_length <= 0:
            return self._fail(Failure(
                ErrorKind.INVALID_ARGUMENT, f"max_length must be positive: {max_length}",
            ))
        buffer = bytearray(max_length)
        received = self.receive(buffer)
        if not received:
            return Result.from_failure(received.error)
        return Result.success(bytes(buffer[:received.value]))

    # =========================================================================
    # ADDRESSES
    # =========================================================================

    def local_endpoint(self) -> Result[Endpoint]:
        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("getsockname"))
        try:
            return Result.success(Endpoint.from_native(sock.getsockname()))
        except OSError as e:
            return self._fail_os(e, "getsockname")

    def remote_endpoint(self) -> Result[Endpoint]:
        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("getpeername"))
        try:
            return Result.success(Endpoint.from_native(sock.getpeername()))
        except OSError as e:
            return self._fail_os(e, "getpeername")

    # =========================================================================
    # SHUTDOWN / CLOSE
    # =========================================================================

    def shutdown(self, read: bool = True, write: bool = True) -> Result[None]:
        """
        Shut down one or both directions.

        Once both directions are shut the transport is CLOSED. A half-close
        (write=False or read=False) keeps the state, so a client can shut
        its write side and still receive the reply. The descriptor stays
        owned until close(). At least one of `read` and `write` must be set.
        """
        if read and write:
            how = socket.SHUT_RDWR
        elif read:
            how = socket.SHUT_RD
        elif write:
            how = socket.SHUT_WR
        else:
            return self._fail(Failure(
                ErrorKind.INVALID_ARGUMENT, "shutdown needs at least one of read/write",
            ))

        if self._state is TransportState.CLOSED:
            return self._fail_state("shutdown", "other than closed")

        sock = self._handle.sock
        if sock is None:
            return self._fail(bad_descriptor("shutdown"))

        try:
            sock.shutdown(how)
        except OSError as e:
            return self._fail_os(e, "shutdown")

        if read:
            self._shut.add("read")
        if write:
            self._shut.add("write")
        if self._shut == {"read", "write"}:
            self._state = TransportState.CLOSED
        return Result.success()

    def close(self) -> None:
        """Release the socket. Safe to call repeatedly."""
        self._handle.close()
        self._state = TransportState.CLOSED

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
