"""
=============================================================================
FILESERVER - A Minimal HTTP/1.0 File Server Over a Safe Socket Layer
=============================================================================

Two layers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. SOCKET LAYER (fileserver.core)                                  │
    │      - Handle: single owner of one OS socket                         │
    │      - Endpoint: IPv4 address + port value                           │
    │      - Transport: state-checked bind/listen/accept/send/receive,     │
    │        every failure returned as a Result                            │
    │      - Framing: delimiter-terminated reads over a byte stream        │
    │      - Poller: readiness notification with timeouts                  │
    │      - SocketServer: serial accept loop with graceful shutdown       │
    │                                                                      │
    │   2. FILE SERVING (fileserver.http, fileserver.handlers)             │
    │      - GET / HEAD for /fileN.html and /imageN.jpg                    │
    │      - 200, 400 and 404 only; one request per connection             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m fileserver)
    ├── server.py            # FileServer: connection pipeline + access log
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Socket layer
    │   ├── handle.py
    │   ├── endpoint.py
    │   ├── result.py
    │   ├── errors.py
    │   ├── transport.py
    │   ├── framing.py
    │   ├── poller.py
    │   └── socket_server.py
    ├── http/                # Request parsing, response serialization
    └── handlers/
        └── files.py         # Servable names and file lookup

=============================================================================
QUICK START
=============================================================================

    from fileserver import FileServer, ServerConfig

    server = FileServer(ServerConfig(port=8080, serve_root="data"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import FileServer

__all__ = ["FileServer", "ServerConfig", "__version__"]
