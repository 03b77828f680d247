"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the header block read off a connection into an HTTPRequest.

Only a small subset of HTTP/1.0 is understood. The server never reads a
request body, so "request" here means the request line plus headers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HEADER BLOCK STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /file1.html HTTP/1.0\r\n        ← request line               │
    │    ─┬─ ─────┬───── ────┬───                                         │
    │     │       │          │                                             │
    │   Method   Path     Version                                          │
    │                                                                      │
    │    Host: localhost\r\n                 ← headers (parsed, unused)    │
    │    User-Agent: curl/8.0\r\n                                          │
    │    \r\n                                ← blank line ends the block   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHAT COUNTS AS MALFORMED (→ 400)
=============================================================================

    - The block does not end with the blank line (peer closed early, or
      the size limit was reached first)
    - The request line has fewer than three whitespace-separated tokens

An unknown method is NOT a parse error: it parses to Method.INVALID and the
server decides what to do with it. The path is kept exactly as sent; it is
checked against the servable file names later, never URL-decoded.

=============================================================================
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from ..core.framing import HEADER_TERMINATOR


logger = logging.getLogger(__name__)


class Method(Enum):
    """Request methods the server recognizes. Anything else is INVALID."""
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    INVALID = "INVALID"

    @classmethod
    def parse(cls, token: str) -> "Method":
        """
        Map a method token to a Method. Matching is case-sensitive, as
        method names are in HTTP.

            >>> Method.parse("GET")
            <Method.GET: 'GET'>
            >>> Method.parse("get")
            <Method.INVALID: 'INVALID'>
        """
        try:
            return cls(token)
        except ValueError:
            return cls.INVALID


class HTTPParseError(Exception):
    """
    Raised when a header block cannot be parsed.

    Carries the HTTP status code to answer with. The file server only ever
    uses 400 Bad Request for parse failures.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request line plus headers.

    Attributes:
        method:     Recognized method, or Method.INVALID
        path:       Request target exactly as sent ("/file1.html")
        version:    Version token exactly as sent ("HTTP/1.0")
        headers:    Header name (lowercase) → value; a repeated header keeps
                    the last value
        raw_method: The method token as sent, useful when method is INVALID
    """

    method: Method
    path: str
    version: str
    headers: Dict[str, str] = field(default_factory=dict)
    raw_method: str = ""

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses a header block into an HTTPRequest.

    Usage:
        parser = RequestParser(max_header_size=4096)
        try:
            request = parser.parse(block)
        except HTTPParseError as e:
            ...  # answer with e.status_code
    """

    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_header_size: int = 4096):
        self.max_header_size = max_header_size

    def parse(self, block: bytes) -> HTTPRequest:
        """
        Parse a header block (request line, headers, blank line).

        Raises:
            HTTPParseError: The block is oversized, unterminated, or has an
                            unusable request line.
        """
        if len(block) > self.max_header_size:
            raise HTTPParseError(f"Header block too large: {len(block)} bytes")

        if not block.endswith(HEADER_TERMINATOR):
            raise HTTPParseError("Incomplete request: no header terminator")

        text = block[:-len(HEADER_TERMINATOR)].decode("utf-8", errors="replace")
        lines = text.split("\r\n")

        method, path, version, raw_method = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            raw_method=raw_method,
        )

    def _parse_request_line(self, line: str) -> Tuple[Method, str, str, str]:
        """
        Split "METHOD SP PATH SP VERSION" on whitespace.

        Runs of spaces or tabs between tokens are tolerated and tokens past
        the third are ignored.
        """
        tokens = line.split()
        if len(tokens) < 3:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        raw_method, path, version = tokens[:3]
        return Method.parse(raw_method), path, version, raw_method

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            match = self.HEADER_PATTERN.match(line)
            if not match:
                logger.debug(f"Ignoring malformed header line: {line!r}")
                continue
            name, value = match.groups()
            headers[name.strip().lower()] = value.strip()
        return headers


def parse_request(block: bytes, max_header_size: int = 4096) -> HTTPRequest:
    """Convenience wrapper around RequestParser(max_header_size).parse(block)."""
    return RequestParser(max_header_size).parse(block)
