"""
=============================================================================
EXCEPTIONS
=============================================================================

Exceptions are reserved for conditions the server cannot recover from or
for programming mistakes. Expected failures on a socket (address in use,
connection reset, peer gone) are returned as Result values instead, see
result.py.

    FileServerError
    ├── InvalidAddressError     Endpoint text is not dotted-decimal IPv4
    ├── SocketCreateError       The OS refused to allocate a socket
    ├── NoFreePortError         Port probing gave up
    ├── ServerStartError        Listening socket could not be set up
    └── ResultError             Result.unwrap() on a failure

=============================================================================
"""


class FileServerError(Exception):
    """Base exception for the fileserver package."""
    pass


class InvalidAddressError(FileServerError, ValueError):
    """Raised when an endpoint cannot be built from the given address text."""
    pass


class SocketCreateError(FileServerError):
    """Raised when no socket handle can be allocated."""
    pass


class NoFreePortError(FileServerError):
    """Raised when neither the preferred port nor any probed port is free."""
    pass


class ServerStartError(FileServerError):
    """Raised when the listening transport cannot be put into service."""
    pass


class ResultError(FileServerError):
    """
    Raised by Result.unwrap() when the result holds a failure.

    The failure is kept on the exception so callers that escalate a
    result into an exception do not lose the classification.
    """

    def __init__(self, failure):
        super().__init__(str(failure))
        self.failure = failure
