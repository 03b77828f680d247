"""
=============================================================================
HTTP RESPONSE SERIALIZATION
=============================================================================

Every response the server sends has the same shape:

    HTTP/1.0 200 OK\\r\\n                  ← status line
    Content-Length: 10\\r\\n               ← byte length of the body
    Content-Type: text/html\\r\\n          ← from the file extension
    \\r\\n                                 ← blank line
    <file bytes>                         ← GET only

Errors use the same layout with an empty body:

    HTTP/1.0 404 Not Found\\r\\n
    Content-Length: 0\\r\\n
    Content-Type: text/html\\r\\n
    \\r\\n

A HEAD request gets exactly the GET headers (Content-Length included) and
no body. That is why the header block and the body are serialized
separately: header_bytes() is the same for both methods.

=============================================================================
"""

from dataclasses import dataclass

from .status_codes import HTTPStatus


HTTP_VERSION = "HTTP/1.0"
ERROR_CONTENT_TYPE = "text/html"


@dataclass
class HTTPResponse:
    """
    A response about to be written to a connection.

    Built, serialized, sent, and dropped; nothing keeps a reference to it.
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = ERROR_CONTENT_TYPE
    body: bytes = b""
    version: str = HTTP_VERSION

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.0 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        return len(self.body)

    def header_bytes(self) -> bytes:
        """Status line, headers and the terminating blank line."""
        lines = [
            self.status_line,
            f"Content-Length: {self.content_length}",
            f"Content-Type: {self.content_type}",
            "",
            "",
        ]
        return "\r\n".join(lines).encode("latin-1")

    def to_bytes(self, include_body: bool = True) -> bytes:
        """
        Serialize the response.

        Args:
            include_body: False for HEAD; the headers still describe the body.
        """
        if include_body:
            return self.header_bytes() + self.body
        return self.header_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def file_response(content: bytes, content_type: str) -> HTTPResponse:
    """200 OK carrying `content`."""
    return HTTPResponse(HTTPStatus.OK, content_type, content)


def error_response(status: HTTPStatus) -> HTTPResponse:
    """An empty-bodied error response."""
    return HTTPResponse(status, ERROR_CONTENT_TYPE, b"")


def bad_request() -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST)


def not_found() -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND)
