"""
Unit tests for the accept loop, cancellation and port fallback.
"""

import errno
import random
import signal
import socket
import threading
import time

import pytest

from fileserver.config import ServerConfig
from fileserver.core.endpoint import Endpoint
from fileserver.core.errors import NoFreePortError, ServerStartError
from fileserver.core.socket_server import CancellationToken, SocketServer, bind_listener
from fileserver.core.transport import TransportState


def fetch(endpoint: Endpoint, payload: bytes = b"") -> bytes:
    with socket.create_connection(endpoint.to_native(), timeout=5.0) as s:
        if payload:
            s.sendall(payload)
        chunks = []
        while True:
            chunk = s.recv(1024)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def server_config() -> ServerConfig:
    return ServerConfig(host="127.0.0.1", port=0, poll_interval=0.05)


def start_in_thread(server: SocketServer, handler) -> threading.Thread:
    thread = threading.Thread(target=server.start, args=(handler,), daemon=True)
    thread.start()
    assert server.wait_until_ready(timeout=5.0)
    return thread


class TestCancellationToken:

    def test_starts_uncancelled(self):
        token = CancellationToken()

        assert not token.is_cancelled
        assert token.reason is None
        assert not token.wait(0)

    def test_cancel(self):
        token = CancellationToken()
        token.cancel(signal.SIGINT)

        assert token.is_cancelled
        assert token.reason == signal.SIGINT
        assert token.wait(0)

    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel(signal.SIGTERM)
        token.cancel(signal.SIGINT)

        assert token.reason == signal.SIGTERM


class TestBindListener:

    def test_binds_preferred_port(self, loopback):
        bound = bind_listener(loopback)

        assert bound
        assert bound.value.state is TransportState.BOUND
        bound.value.close()

    def test_falls_back_to_random_port(self, listener):
        taken = listener.local_endpoint().unwrap()

        bound = bind_listener(taken, attempts=50, rng=random.Random(1701))

        assert bound
        chosen = bound.value.local_endpoint().unwrap()
        assert chosen.address == taken.address
        assert chosen.port != taken.port
        assert 1024 <= chosen.port <= 65535
        bound.value.close()

    def test_no_attempts_left(self, listener):
        taken = listener.local_endpoint().unwrap()

        bound = bind_listener(taken, attempts=0)

        assert not bound
        assert bound.error.errno == errno.EADDRINUSE

    def test_unusable_address_is_not_probed(self):
        class CountingRandom(random.Random):
            draws = 0

            def randint(self, a, b):
                self.draws += 1
                return super().randint(a, b)

        rng = CountingRandom(1701)
        # TEST-NET-3, never assigned to a local interface
        bound = bind_listener(Endpoint.parse("203.0.113.7", 1701), attempts=50, rng=rng)

        assert not bound
        assert bound.error.errno == errno.EADDRNOTAVAIL
        assert rng.draws == 0


class TestSocketServer:

    def test_serves_connections_serially(self, server_config):
        server = SocketServer(server_config)
        order = []

        def handler(client, peer):
            order.append(peer)
            client.send_all(f"conn {len(order)}".encode())

        thread = start_in_thread(server, handler)
        try:
            assert fetch(server.endpoint) == b"conn 1"
            assert fetch(server.endpoint) == b"conn 2"
            assert fetch(server.endpoint) == b"conn 3"
        finally:
            server.shutdown()
            thread.join(timeout=5.0)

        assert len(order) == 3
        assert not thread.is_alive()
        assert not server.is_running

    def test_endpoint_reports_actual_port(self, server_config):
        server = SocketServer(server_config)
        assert server.endpoint is None

        thread = start_in_thread(server, lambda client, peer: None)
        try:
            assert server.endpoint.host == "127.0.0.1"
            assert server.endpoint.port != 0
        finally:
            server.shutdown()
            thread.join(timeout=5.0)

    def test_stops_within_poll_interval(self, server_config):
        token = CancellationToken()
        server = SocketServer(server_config, token)
        thread = start_in_thread(server, lambda client, peer: None)

        start = time.monotonic()
        token.cancel()

        assert server.wait_for_shutdown(timeout=2.0)
        assert time.monotonic() - start < 1.0
        thread.join(timeout=1.0)
        assert not thread.is_alive()

    def test_handler_exception_does_not_stop_loop(self, server_config):
        server = SocketServer(server_config)
        calls = []

        def handler(client, peer):
            calls.append(peer)
            if len(calls) == 1:
                raise RuntimeError("boom")
            client.send_all(b"still here")

        thread = start_in_thread(server, handler)
        try:
            # The failing connection is closed without a reply
            assert fetch(server.endpoint) == b""
            assert fetch(server.endpoint) == b"still here"
        finally:
            server.shutdown()
            thread.join(timeout=5.0)

    def test_listener_closed_after_shutdown(self, server_config):
        server = SocketServer(server_config)
        thread = start_in_thread(server, lambda client, peer: None)
        endpoint = server.endpoint

        server.shutdown()
        thread.join(timeout=5.0)

        with pytest.raises(ConnectionRefusedError):
            socket.create_connection(endpoint.to_native(), timeout=1.0)

    def test_no_free_port_is_fatal(self, listener):
        taken = listener.local_endpoint().unwrap()
        config = ServerConfig(host=taken.host, port=taken.port, port_probe_attempts=0)

        with pytest.raises(NoFreePortError):
            SocketServer(config).start(lambda client, peer: None)

    def test_unusable_address_is_a_start_error(self):
        config = ServerConfig(host="203.0.113.7", port=1701)

        with pytest.raises(ServerStartError):
            SocketServer(config).start(lambda client, peer: None)


class TestSignals:
    """Signal handlers only cancel the token and are restored afterwards."""

    def test_signal_cancels_token(self, server_config):
        token = CancellationToken()
        server = SocketServer(server_config, token)
        original = signal.getsignal(signal.SIGTERM)

        server._setup_signals()
        try:
            signal.raise_signal(signal.SIGTERM)
            assert token.wait(1.0)
            assert token.reason == signal.SIGTERM
        finally:
            server._restore_signals()

        assert signal.getsignal(signal.SIGTERM) is original

    def test_not_installed_off_main_thread(self, server_config):
        server = SocketServer(server_config)
        before = signal.getsignal(signal.SIGINT)

        thread = threading.Thread(target=server._setup_signals)
        thread.start()
        thread.join()

        assert signal.getsignal(signal.SIGINT) is before
        assert server._original_handlers == {}
