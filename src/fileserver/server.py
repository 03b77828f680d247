"""
=============================================================================
FILE SERVER
=============================================================================

Ties the pieces together: the socket server accepts, this module reads one
request off each connection, answers it, and writes an access log line.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    FILE SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   FileServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │RequestParser │    │ FileHandler  │        │
    │    │ (accept loop)│    │ (header blk) │    │ (200/400/404)│        │
    │    └──────────────┘    └──────────────┘    └──────────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CONNECTION, START TO FINISH
=============================================================================

    1. read_until(b"\\r\\n\\r\\n", max_header_size)
           receive failed ─────────────────────────────► 400
    2. parse request line + headers
           unterminated / < 3 tokens ──────────────────► 400
    3. FileHandler.handle(request)
           bad name → 404, POST/unknown → 400, missing → 404, else 200
    4. send_all(response)       (HEAD: headers only)
           failure is logged; nothing else can be done
    5. access log line
    6. the socket server closes the connection

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

from .config import ServerConfig
from .core import CancellationToken, Endpoint, SocketServer, Transport
from .core.framing import HEADER_TERMINATOR, read_until
from .handlers import FileHandler
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    Method,
    RequestParser,
    bad_request,
    error_response,
)


logger = logging.getLogger(__name__)

# Namespaced so it can be routed separately:
#   logging.getLogger("fileserver.access").addHandler(file_handler)
access_logger = logging.getLogger("fileserver.access")


@dataclass
class RequestLog:
    """
    One access log entry per connection.

    method/path/version are "-" when the request could not be parsed.
    content_length is the Content-Length that was announced, which for
    HEAD is larger than what was actually sent.
    """

    client: str
    method: str
    path: str
    version: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "client": self.client,
            "method": self.method,
            "path": self.path,
            "version": self.version,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Common log format plus the processing time."""
        return (
            f'{self.client} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class FileServer:
    """
    Serial HTTP/1.0 file server.

    Usage:
        server = FileServer(ServerConfig(port=8080, serve_root="data"))
        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.config = config or ServerConfig()
        self._parser = RequestParser(self.config.max_header_size)
        self._files = FileHandler(self.config.serve_root)
        self._socket_server = SocketServer(self.config, token)

    @property
    def endpoint(self) -> Optional[Endpoint]:
        """Where the server is actually listening (after port fallback)."""
        return self._socket_server.endpoint

    @property
    def token(self) -> CancellationToken:
        return self._socket_server.token

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            NoFreePortError, ServerStartError: The server could not start.
        """
        self._setup_logging()

        if not self._files.root_exists:
            logger.warning(f"Serving root does not exist: {self._files.root_dir}")

        logger.info(
            f"Starting file server on {self.config.host}:{self.config.port}, "
            f"serving {self._files.root_dir}"
        )
        self._socket_server.start(self.process_connection)
        logger.info("Server stopped")

    def shutdown(self):
        """Stop after the connection in progress, if any. Thread-safe."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("fileserver").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def process_connection(self, transport: Transport, peer: Endpoint) -> HTTPStatus:
        """
        Read one request from `transport`, answer it, log it.

        The transport is left open; closing it is the caller's job.

        Returns:
            The status that was sent (or attempted).
        """
        logger.info(f"Processing connection from {peer}")
        start_time = time.time()

        request: Optional[HTTPRequest] = None
        include_body = False

        block = read_until(transport, HEADER_TERMINATOR, self.config.max_header_size)
        if not block:
            logger.error(f"Failed to receive request data: {block.error}")
            response = bad_request()
        else:
            logger.debug(f"Received request data: {block.value!r}")
            try:
                request = self._parser.parse(block.value)
            except HTTPParseError as e:
                logger.error(f"Unable to parse request from {peer}: {e}")
                response = error_response(HTTPStatus(e.status_code))
            else:
                logger.info(
                    f"Successfully parsed request: "
                    f"{request.raw_method} {request.path} {request.version}"
                )
                response = self._files.handle(request)
                include_body = request.method is Method.GET

        self._send_response(transport, response, include_body)

        duration_ms = (time.time() - start_time) * 1000
        self._log_access(peer, request, response, duration_ms)
        return response.status

    def _send_response(self, transport: Transport, response: HTTPResponse, include_body: bool):
        logger.info(f"Sending {response.status_line}")
        sent = transport.send_all(response.to_bytes(include_body))
        if not sent:
            logger.error(f"Failed to send response: {sent.error}")
            return
        logger.debug(f"Successfully sent {sent.value} bytes")

    def _log_access(
        self,
        peer: Endpoint,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        duration_ms: float,
    ):
        entry = RequestLog(
            client=str(peer),
            method=request.raw_method if request else "-",
            path=request.path if request else "-",
            version=request.version if request else "-",
            status_code=int(response.status),
            content_length=response.content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.config.log_format == "json":
            access_logger.info(json.dumps(entry.to_dict()))
        else:
            access_logger.info(entry.to_text())
