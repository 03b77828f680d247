"""
Unit tests for Transport: state validation and loopback I/O.
"""

import errno

import pytest

from fileserver.core.endpoint import Endpoint
from fileserver.core.errors import ResultError
from fileserver.core.handle import Handle
from fileserver.core.result import ErrorKind
from fileserver.core.transport import (
    SocketOptions,
    Transport,
    TransportState,
    TransportType,
)


class TestTransportState:
    """Operations must be rejected from the wrong state without an OS call."""

    def test_new_transport_is_created(self):
        with Transport() as transport:
            assert transport.state is TransportState.CREATED
            assert transport.type is TransportType.STREAM
            assert transport.is_valid
            assert transport.last_error is None

    def test_accept_on_non_listening_transport(self):
        with Transport() as transport:
            result = transport.accept()

            assert not result
            assert result.error.kind is ErrorKind.INVALID_STATE
            assert transport.last_error == result.error

    def test_accept_on_bound_transport(self, loopback):
        with Transport.create_bind(loopback).unwrap() as transport:
            assert transport.state is TransportState.BOUND
            assert transport.accept().error.kind is ErrorKind.INVALID_STATE

    def test_listen_requires_bound(self):
        with Transport() as transport:
            assert transport.listen().error.kind is ErrorKind.INVALID_STATE

    def test_bind_twice_is_invalid_state(self, loopback):
        with Transport.create_bind(loopback).unwrap() as transport:
            assert transport.bind(loopback).error.kind is ErrorKind.INVALID_STATE

    def test_io_requires_connected(self):
        with Transport() as transport:
            assert transport.send(b"x").error.kind is ErrorKind.INVALID_STATE
            assert transport.receive(bytearray(1)).error.kind is ErrorKind.INVALID_STATE
            assert transport.receive_bytes().error.kind is ErrorKind.INVALID_STATE

    def test_datagram_listen_unsupported(self, loopback):
        with Transport.create_bind(loopback, TransportType.DATAGRAM).unwrap() as transport:
            result = transport.listen()

            assert result.error.kind is ErrorKind.UNSUPPORTED_OPERATION
            assert transport.state is TransportState.BOUND

    def test_datagram_io_unsupported(self, listener):
        with Transport(TransportType.DATAGRAM) as transport:
            connected = transport.connect(listener.local_endpoint().unwrap())
            assert connected.error.kind is ErrorKind.UNSUPPORTED_OPERATION
            assert transport.state is TransportState.CREATED

            assert transport.send(b"hi").error.kind is ErrorKind.UNSUPPORTED_OPERATION
            assert transport.receive_bytes().error.kind is ErrorKind.UNSUPPORTED_OPERATION

    def test_listen_moves_to_listening(self, listener):
        assert listener.state is TransportState.LISTENING


class TestTransportErrors:
    """OS failures come back as IO_ERROR results."""

    def test_bind_address_in_use(self, listener):
        taken = listener.local_endpoint().unwrap()

        result = Transport.create_bind(taken)

        assert not result
        assert result.error.kind is ErrorKind.IO_ERROR
        assert result.error.errno == errno.EADDRINUSE
        assert result.error.errno_name == "EADDRINUSE"

    def test_connect_refused(self, loopback):
        # Bind without listening: connections to it are refused
        with Transport.create_bind(loopback).unwrap() as placeholder:
            target = placeholder.local_endpoint().unwrap()
            result = Transport.create_connect(target)

        assert result.error.kind is ErrorKind.IO_ERROR
        assert result.error.errno == errno.ECONNREFUSED

    def test_unwrap_raises(self):
        with Transport() as transport:
            with pytest.raises(ResultError) as exc_info:
                transport.accept().unwrap()

        assert exc_info.value.failure.kind is ErrorKind.INVALID_STATE

    def test_shutdown_needs_a_direction(self, connected_pair):
        server_side, _ = connected_pair
        result = server_side.shutdown(read=False, write=False)

        assert result.error.kind is ErrorKind.INVALID_ARGUMENT
        assert server_side.state is TransportState.CONNECTED

    def test_receive_bytes_rejects_non_positive_length(self, connected_pair):
        server_side, _ = connected_pair
        assert server_side.receive_bytes(0).error.kind is ErrorKind.INVALID_ARGUMENT


class TestTransportLifecycle:
    """Close, shutdown and ownership."""

    def test_double_close_is_safe(self):
        transport = Transport()
        transport.close()
        transport.close()

        assert transport.state is TransportState.CLOSED
        assert not transport.is_valid
        assert transport.fileno() == -1

    def test_operations_after_close_fail(self, loopback):
        transport = Transport()
        transport.close()

        assert transport.bind(loopback).error.kind is ErrorKind.INVALID_STATE
        assert transport.local_endpoint().error.errno == errno.EBADF

    def test_shutdown_marks_closed_and_keeps_descriptor(self, connected_pair):
        server_side, _ = connected_pair

        assert server_side.shutdown()
        assert server_side.state is TransportState.CLOSED
        assert server_side.is_valid

    def test_second_shutdown_is_invalid_state(self, connected_pair):
        server_side, _ = connected_pair
        server_side.shutdown()

        result = server_side.shutdown()

        assert result.error.kind is ErrorKind.INVALID_STATE
        assert server_side.last_error is result.error

    def test_half_close_then_receive_reply(self, connected_pair):
        server_side, client = connected_pair

        assert client.shutdown(read=False, write=True)
        assert client.state is TransportState.CONNECTED
        assert server_side.receive_bytes().unwrap() == b""

        server_side.send_all(b"resp")

        assert client.receive_bytes(10).unwrap() == b"resp"

    def test_send_after_write_side_shut(self, connected_pair):
        _, client = connected_pair
        client.shutdown(read=False, write=True)

        assert client.send(b"late").error.kind is ErrorKind.INVALID_STATE

    def test_both_half_closes_mark_closed(self, connected_pair):
        _, client = connected_pair

        assert client.shutdown(read=False, write=True)
        assert client.shutdown(read=True, write=False)

        assert client.state is TransportState.CLOSED

    def test_adopts_handle(self):
        donor = Transport()
        fd = donor.fileno()
        handle = Handle(donor.handle.release())

        adopted = Transport(handle=handle)

        assert adopted.fileno() == fd
        assert not handle.is_valid
        adopted.close()

    def test_set_options(self, loopback):
        options = SocketOptions(reuse_addr=True, keep_alive=True, no_delay=True)
        result = Transport.create_bind(loopback, options=options)

        assert result
        result.value.close()


class TestTransportIO:
    """Data transfer over a real loopback connection."""

    def test_endpoints(self, listener, connected_pair):
        server_side, client = connected_pair

        assert client.remote_endpoint().unwrap() == listener.local_endpoint().unwrap()
        assert server_side.remote_endpoint().unwrap() == client.local_endpoint().unwrap()

    def test_accept_reports_peer(self, listener):
        client = Transport.create_connect(listener.local_endpoint().unwrap()).unwrap()
        accepted, peer = listener.accept().unwrap()

        assert accepted.state is TransportState.CONNECTED
        assert peer == client.local_endpoint().unwrap()
        assert listener.state is TransportState.LISTENING

        accepted.close()
        client.close()

    def test_send_and_receive(self, connected_pair):
        server_side, client = connected_pair

        assert client.send_all(b"hello").unwrap() == 5

        buffer = bytearray(16)
        received = server_side.receive(buffer).unwrap()
        assert bytes(buffer[:received]) == b"hello"

    def test_send_all_large_payload(self, connected_pair):
        server_side, client = connected_pair
        payload = bytes(range(256)) * 64  # 16 KiB

        assert client.send_all(payload).unwrap() == len(payload)
        client.shutdown(read=False, write=True)

        data = bytearray()
        while True:
            chunk = server_side.receive_bytes(4096).unwrap()
            if not chunk:
                break
            data += chunk
        assert bytes(data) == payload

    def test_receive_after_peer_close_is_eof(self, connected_pair):
        server_side, client = connected_pair
        client.close()

        assert server_side.receive_bytes().unwrap() == b""
