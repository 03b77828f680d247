"""
=============================================================================
SOCKET HANDLE OWNERSHIP
=============================================================================

A Handle owns exactly one OS-level socket and releases it exactly once.

In Python the native descriptor lives inside a `socket.socket` object; the
integer the kernel uses is `sock.fileno()`. The Handle sits on top of that
object and adds the single-owner discipline the rest of the package relies
on:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      Handle Lifecycle                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Handle()                 empty, fileno == -1                       │
    │      │                                                               │
    │      ├──► acquire(sock)    take ownership                            │
    │      │                                                               │
    │      ├──► release()        give the socket away WITHOUT closing      │
    │      │                     (the handle becomes empty)                │
    │      │                                                               │
    │      └──► reset()/close()  close the owned socket, become empty      │
    │                            (safe to call any number of times)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Copying a Handle is refused: two owners of one descriptor would both try
to close it, and the second close could hit a descriptor number the OS has
already handed to somebody else.

=============================================================================
"""

import logging
import socket
from typing import Optional


logger = logging.getLogger(__name__)


INVALID_DESCRIPTOR = -1


class Handle:
    """
    Exclusive owner of one socket.

    Usage:
        with Handle(socket.socket()) as handle:
            ...  # socket is closed when the block exits

        sock = handle.release()  # hand off; caller now owns sock
    """

    __slots__ = ("_sock",)

    def __init__(self, sock: Optional[socket.socket] = None):
        self._sock: Optional[socket.socket] = None
        if sock is not None:
            self.acquire(sock)

    @classmethod
    def from_descriptor(cls, fd: int, family: int = socket.AF_INET,
                        type: int = socket.SOCK_STREAM) -> "Handle":
        """Take ownership of a raw descriptor number."""
        if fd < 0:
            return cls()
        return cls(socket.socket(family, type, fileno=fd))

    # =========================================================================
    # OWNERSHIP
    # =========================================================================

    def acquire(self, sock: socket.socket) -> None:
        """
        Take ownership of `sock`.

        Anything the handle owned before is closed first.
        """
        if sock is self._sock:
            return
        self.reset()
        self._sock = sock

    def release(self) -> Optional[socket.socket]:
        """Give up ownership without closing. Returns the socket (or None)."""
        sock, self._sock = self._sock, None
        return sock

    def reset(self, sock: Optional[socket.socket] = None) -> None:
        """Close the owned socket, if any, then own `sock` (default: nothing)."""
        old, self._sock = self._sock, sock
        if old is None or old is sock:
            return
        try:
            old.close()
        except OSError as e:
            # The handle is already empty, so the descriptor is never
            # closed a second time.
            logger.warning(f"Closing descriptor failed: {e}")

    def close(self) -> None:
        self.reset()

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def sock(self) -> Optional[socket.socket]:
        """The owned socket object (borrowed, do not close it directly)."""
        return self._sock

    def fileno(self) -> int:
        if self._sock is None:
            return INVALID_DESCRIPTOR
        return self._sock.fileno()

    @property
    def is_valid(self) -> bool:
        return self.fileno() >= 0

    def __bool__(self) -> bool:
        return self.is_valid

    def __repr__(self) -> str:
        return f"Handle(fileno={self.fileno()})"

    # =========================================================================
    # NO COPIES
    # =========================================================================

    def __copy__(self):
        raise TypeError("Handle cannot be copied; use release() to transfer ownership")

    def __deepcopy__(self, memo):
        raise TypeError("Handle cannot be copied; use release() to transfer ownership")

    def __reduce__(self):
        raise TypeError("Handle cannot be pickled")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "Handle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
