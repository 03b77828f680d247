"""
=============================================================================
HTTP PROTOCOL SUBSET
=============================================================================

The slice of HTTP/1.0 the file server speaks: one request per connection,
three methods recognized, three status codes produced.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   CLIENT                                         SERVER              │
    │      │                                              │                │
    │      │   GET /file1.html HTTP/1.0                   │                │
    │      │  ─────────────────────────────────────────►  │                │
    │      │                                              │                │
    │      │                   HTTP/1.0 200 OK            │                │
    │      │                   Content-Length: 10         │                │
    │      │                   Content-Type: text/html    │                │
    │      │  ◄─────────────────────────────────────────  │                │
    │      │                                        close()                │
    └─────────────────────────────────────────────────────────────────────┘

    request.py       header block → HTTPRequest (or HTTPParseError)
    response.py      HTTPResponse → bytes
    status_codes.py  200 / 400 / 404 with reason phrases
    mime_types.py    file extension → Content-Type

=============================================================================
"""

from .mime_types import get_mime_type
from .request import HTTPParseError, HTTPRequest, Method, RequestParser, parse_request
from .response import (
    HTTPResponse,
    bad_request,
    error_response,
    file_response,
    not_found,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "Method",
    "parse_request",

    # Response building
    "HTTPResponse",
    "file_response",
    "error_response",
    "bad_request",
    "not_found",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
]
