"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

This module owns the one long-lived resource of the server: the listening
Transport. It binds it (falling back to a random free port when the
preferred one is taken), accepts connections one at a time, hands each to
a connection handler, and shuts down cleanly when asked to.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Transport()                  CREATED
    2. bind()      transport.bind(endpoint)     BOUND
    3. listen()    transport.listen(backlog)    LISTENING
    4. accept()    transport.accept()           → new CONNECTED transport
    5. close()     transport.close()            CLOSED

=============================================================================
SERIAL SERVING
=============================================================================

Connections are served strictly one after another, in the order they were
accepted:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       Accept Loop Flow                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   while not token.is_cancelled:                                      │
    │       │                                                              │
    │       ├──► poller.poll(poll_interval)                                │
    │       │       └── nothing ready? loop, re-check token                │
    │       │                                                              │
    │       └──► accept()                                                  │
    │               └── with client:                                       │
    │                       handler(client, peer)   read, decide, respond  │
    │                   (client closed here, even if the handler failed)   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A slow client stalls everyone behind it. There is no read timeout.

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) are caught. The handler
does exactly one thing: cancel the token. Everything else (closing the
listener, restoring handlers, logging) happens afterwards in ordinary
control flow.

Because the loop waits on the poller with a timeout instead of blocking in
accept() forever, a cancelled token is noticed within `poll_interval`
seconds even if no client ever connects again. A request that is already
being processed is always finished first.

=============================================================================
"""

import errno
import logging
import random
import signal
import threading
from typing import TYPE_CHECKING, Callable, Dict, Optional

from .endpoint import Endpoint
from .errors import NoFreePortError, ServerStartError
from .poller import Events, Poller
from .result import Result
from .transport import SocketOptions, Transport, TransportType

if TYPE_CHECKING:
    from ..config import ServerConfig


logger = logging.getLogger(__name__)


ConnectionHandler = Callable[[Transport, Endpoint], None]

PROBE_PORT_MIN = 1024
PROBE_PORT_MAX = 65535

# Bind failures that another port could fix. Anything else (e.g. an address
# not present on this host) fails the same way on every port.
PROBE_ERRNOS = frozenset({errno.EADDRINUSE, errno.EACCES})


class CancellationToken:
    """
    A one-way flag that asks the accept loop to stop.

    Safe to set from a signal handler or from another thread. `reason`
    records what cancelled it (a signal number, or None for a direct call).
    """

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[int] = None

    def cancel(self, reason: Optional[int] = None) -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[int]:
        return self._reason

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


def bind_listener(
    endpoint: Endpoint,
    attempts: int = 100,
    options: Optional[SocketOptions] = None,
    rng: Optional[random.Random] = None,
) -> Result[Transport]:
    """
    Bind a stream transport to `endpoint`, or to a random free port.

    The preferred port is tried first. If it is in use or not permitted,
    up to `attempts` random ports in 1024-65535 on the same address are
    tried. Other bind failures are returned without probing.
    The transport that succeeded is returned still bound, so there is no
    window in which another process can grab the port.

    Returns:
        The bound transport, or the last bind failure.
    """
    bound = Transport.create_bind(endpoint, TransportType.STREAM, options)
    if bound or endpoint.port == 0 or bound.error.errno not in PROBE_ERRNOS:
        return bound

    logger.warning(f"Port {endpoint.port} unavailable ({bound.error}), probing for a free port")
    rng = rng or random.Random()

    for _ in range(attempts):
        candidate = Endpoint(endpoint.address, rng.randint(PROBE_PORT_MIN, PROBE_PORT_MAX))
        bound = Transport.create_bind(candidate, TransportType.STREAM, options)
        if bound:
            return bound
        logger.debug(f"Probe of {candidate} failed: {bound.error}")

    return bound


class SocketServer:
    """
    Serial TCP accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)         Main entry point (blocks)                  │
    │        │                                                             │
    │        ├──► _open_listener()   bind (with port fallback) + listen    │
    │        ├──► _setup_signals()   SIGTERM/SIGINT → token.cancel()       │
    │        ├──► _accept_loop()     poll, accept, handle, close           │
    │        └──► _cleanup()         restore signals, close listener       │
    │                                                                      │
    │    shutdown()             token.cancel()                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(client: Transport, peer: Endpoint):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(
        self,
        config: "ServerConfig",
        token: Optional[CancellationToken] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (host, port, backlog, ...).
            token: Cancellation token; a fresh one is created if omitted.
            rng: Random source for port probing.

        The listening socket is not created until start().
        """
        self.config = config
        self._token = token or CancellationToken()
        self._rng = rng

        self._listener: Optional[Transport] = None
        self._endpoint: Optional[Endpoint] = None
        self._running = False

        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()
        self._original_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def endpoint(self) -> Optional[Endpoint]:
        """The endpoint actually bound (after port fallback), once started."""
        return self._endpoint

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _open_listener(self) -> Transport:
        """
        Bind and listen.

        Raises:
            NoFreePortError: No port could be bound.
            ServerStartError: listen() failed.
        """
        preferred = Endpoint.parse(self.config.host, self.config.port)
        options = SocketOptions(reuse_addr=self.config.reuse_addr)

        logger.info(f"Attempting to bind to {preferred}")
        bound = bind_listener(preferred, self.config.port_probe_attempts, options, self._rng)
        if not bound and bound.error.errno not in PROBE_ERRNOS:
            raise ServerStartError(f"Failed to bind {preferred}: {bound.error}")
        if not bound:
            raise NoFreePortError(
                f"Could not find an available port on {preferred.host}: {bound.error}"
            )

        listener = bound.value
        listening = listener.listen(self.config.backlog)
        if not listening:
            listener.close()
            raise ServerStartError(f"Failed to listen on socket: {listening.error}")
        return listener

    def _setup_signals(self):
        """
        Route SIGTERM and SIGINT to the cancellation token.

        Signal handlers can only be installed from the main thread; when the
        server runs elsewhere (tests, embedding), shutdown() is the way out.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            self._token.cancel(signum)

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: ConnectionHandler):
        """
        Start accepting connections. Blocks until the token is cancelled.

        Args:
            connection_handler: Called as handler(client, peer) for every
                                accepted connection. The client transport is
                                closed after the handler returns or raises.

        Raises:
            NoFreePortError, ServerStartError: The server could not start.
        """
        self._shutdown_event.clear()
        self._listener = self._open_listener()
        self._endpoint = self._listener.local_endpoint().value_or(None)
        self._running = True
        self._setup_signals()

        logger.info(f"Server listening on {self._endpoint}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _accept_loop(self, connection_handler: ConnectionHandler):
        with Poller() as poller:
            poller.add(
                self._listener,
                Events.READABLE,
                lambda fd, events: self._accept_one(connection_handler),
            )
            while not self._token.is_cancelled:
                logger.debug("Waiting for connection")
                if poller.poll(self.config.poll_interval):
                    poller.process_events()

        if self._token.reason is not None:
            signal_name = signal.Signals(self._token.reason).name
            logger.info(f"Received {signal_name}, shutting down...")

    def _accept_one(self, connection_handler: ConnectionHandler):
        accepted = self._listener.accept()
        if not accepted:
            if not self._token.is_cancelled:
                logger.error(f"Failed to accept connection: {accepted.error}")
            return

        client, peer = accepted.value
        logger.debug(f"Accepted connection from {peer}")

        with client:
            try:
                connection_handler(client, peer)
            except Exception as e:
                logger.exception(f"Failed to process connection from {peer}: {e}")

        logger.debug("Connection processed and closed")

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call from any thread and more than once. The connection in
        progress, if any, is completed first.
        """
        logger.info("Shutting down socket server...")
        self._token.cancel()

    def _cleanup(self):
        self._restore_signals()

        if self._listener is not None:
            stopped = self._listener.shutdown()
            if not stopped:
                logger.debug(f"Listener shutdown: {stopped.error}")
            self._listener.close()
            self._listener = None

        self._running = False
        self._ready_event.clear()
        self._shutdown_event.set()
        logger.info("Server shutting down gracefully")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait until the listener is accepting. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Wait for the accept loop to finish. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
