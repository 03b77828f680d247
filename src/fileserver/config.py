"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m fileserver --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── FILESERVER_PORT=3000 python -m fileserver                 │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Configuration is validated once at startup (fail fast), not lazily on the
first request.

=============================================================================
"""

import os
from dataclasses import dataclass

from .core.endpoint import Endpoint


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    NETWORK SETTINGS
    - host, port, backlog, port_probe_attempts, poll_interval, reuse_addr

    HTTP SETTINGS
    - serve_root, max_header_size

    LOGGING
    - log_level, log_format
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Dotted-decimal IPv4 address to listen on (loopback by default)."""

    port: int = 1701
    """
    Preferred port. If it is taken, random ports are probed instead.
    0 asks the OS for any free port.
    """

    backlog: int = 128
    """Maximum number of queued connections."""

    port_probe_attempts: int = 100
    """How many random ports to try when the preferred one is unavailable."""

    poll_interval: float = 0.5
    """
    Seconds the accept loop waits for a connection before re-checking
    whether shutdown was requested. Upper bound on shutdown latency.
    """

    reuse_addr: bool = True
    """Set SO_REUSEADDR on the listening socket (fast restarts)."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    serve_root: str = "data"
    """Directory requested files are resolved under."""

    max_header_size: int = 4096
    """Largest request header block accepted, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        FILESERVER_HOST        Listen address (default: 127.0.0.1)
        FILESERVER_PORT        Preferred port (default: 1701)
        FILESERVER_ROOT        Serving root (default: data)
        FILESERVER_LOG_LEVEL   Logging level (default: INFO)
        FILESERVER_LOG_FORMAT  Access log format (default: text)
        """
        return cls(
            host=os.getenv("FILESERVER_HOST", "127.0.0.1"),
            port=int(os.getenv("FILESERVER_PORT", "1701")),
            serve_root=os.getenv("FILESERVER_ROOT", "data"),
            log_level=os.getenv("FILESERVER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("FILESERVER_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        # InvalidAddressError is a ValueError
        Endpoint.parse(self.host, self.port)

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.port_probe_attempts < 0:
            raise ValueError("port_probe_attempts must be >= 0")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.max_header_size < 16:
            raise ValueError("max_header_size must be >= 16")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
