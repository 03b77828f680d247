"""
=============================================================================
RESULT VALUES
=============================================================================

Every OS-facing operation on a Transport returns a Result instead of
raising. A Result either carries a value or a Failure describing what went
wrong:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Result[T]                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Result.success(value)        Result.failure(kind, detail, errno)  │
    │        │                                │                            │
    │        ▼                                ▼                            │
    │   result.ok     → True            result.ok     → False              │
    │   result.value  → value           result.error  → Failure(...)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Callers branch on `result.ok` (or simply `if result:`) and translate the
failure into whatever makes sense at their level. The connection pipeline,
for example, turns a receive failure into a 400 response rather than letting
it escape.

=============================================================================
"""

import errno as errno_codes
import os
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from .errors import ResultError


T = TypeVar("T")


class ErrorKind(Enum):
    """Classification of a failure."""
    INVALID_ADDRESS = "invalid_address"              # Malformed endpoint text
    INVALID_STATE = "invalid_state"                  # Wrong transport state
    UNSUPPORTED_OPERATION = "unsupported_operation"  # e.g. listen on datagram
    INVALID_ARGUMENT = "invalid_argument"            # Bad caller-supplied value
    IO_ERROR = "io_error"                            # OS call failed
    PARSE_ERROR = "parse_error"                      # Malformed request
    NOT_FOUND = "not_found"                          # No readable file
    BAD_REQUEST = "bad_request"                      # Unsupported method


@dataclass(frozen=True)
class Failure:
    """
    What went wrong, in a form that can be logged and branched on.

    Attributes:
        kind: Error classification.
        detail: Human-readable description.
        errno: OS error number, when the failure came from a system call.
    """

    kind: ErrorKind
    detail: str
    errno: Optional[int] = None

    @classmethod
    def from_os_error(cls, exc: OSError, operation: str) -> "Failure":
        """Build an IO_ERROR failure from an OSError raised by `operation`."""
        code = exc.errno
        reason = exc.strerror or str(exc)
        return cls(ErrorKind.IO_ERROR, f"{operation} failed: {reason}", code)

    @property
    def errno_name(self) -> Optional[str]:
        """Symbolic name of the errno, e.g. 'EADDRINUSE'."""
        if self.errno is None:
            return None
        return errno_codes.errorcode.get(self.errno, str(self.errno))

    def __str__(self) -> str:
        if self.errno is not None:
            return f"{self.kind.value}: {self.detail} [{self.errno_name}]"
        return f"{self.kind.value}: {self.detail}"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation: a value on success, a Failure otherwise."""

    value: Optional[T] = None
    error: Optional[Failure] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        detail: str,
        errno: Optional[int] = None,
    ) -> "Result[T]":
        return cls(error=Failure(kind, detail, errno))

    @classmethod
    def from_failure(cls, failure: Failure) -> "Result[T]":
        """Re-wrap an existing failure, e.g. to propagate it with a new type."""
        return cls(error=failure)

    @classmethod
    def from_os_error(cls, exc: OSError, operation: str) -> "Result[T]":
        return cls(error=Failure.from_os_error(exc, operation))

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> T:
        """Return the value, or raise ResultError carrying the failure."""
        if self.error is not None:
            raise ResultError(self.error)
        return self.value

    def value_or(self, default: T) -> T:
        return self.value if self.error is None else default


def bad_descriptor(operation: str) -> Failure:
    """Failure used when an operation is attempted on an empty handle."""
    return Failure(
        ErrorKind.IO_ERROR,
        f"{operation} failed: {os.strerror(errno_codes.EBADF)}",
        errno_codes.EBADF,
    )
