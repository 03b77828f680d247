"""
Unit tests for Result and Failure.
"""

import errno

import pytest

from fileserver.core.errors import ResultError
from fileserver.core.result import ErrorKind, Failure, Result, bad_descriptor


class TestResult:

    def test_success(self):
        result = Result.success(42)

        assert result
        assert result.ok
        assert result.unwrap() == 42
        assert result.value_or(0) == 42

    def test_success_without_value(self):
        result = Result.success()

        assert result
        assert result.unwrap() is None

    def test_failure(self):
        result = Result.failure(ErrorKind.INVALID_ARGUMENT, "bad value")

        assert not result
        assert result.error.kind is ErrorKind.INVALID_ARGUMENT
        assert result.value_or("fallback") == "fallback"

    def test_unwrap_failure_raises(self):
        failure = Failure(ErrorKind.NOT_FOUND, "gone")

        with pytest.raises(ResultError) as exc_info:
            Result.from_failure(failure).unwrap()

        assert exc_info.value.failure is failure

    def test_from_os_error(self):
        exc = OSError(errno.ECONNREFUSED, "Connection refused")
        result = Result.from_os_error(exc, "connect")

        assert result.error.kind is ErrorKind.IO_ERROR
        assert result.error.errno == errno.ECONNREFUSED
        assert result.error.errno_name == "ECONNREFUSED"
        assert "connect failed: Connection refused" in str(result.error)


class TestFailure:

    def test_str_without_errno(self):
        assert str(Failure(ErrorKind.INVALID_STATE, "not listening")) == "invalid_state: not listening"

    def test_bad_descriptor(self):
        failure = bad_descriptor("send")

        assert failure.kind is ErrorKind.IO_ERROR
        assert failure.errno == errno.EBADF
        assert failure.errno_name == "EBADF"
