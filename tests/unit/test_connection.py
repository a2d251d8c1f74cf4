"""
Unit tests for Connection.
"""

import socket
import threading
import time

import pytest

from staticserver.core.connection import DRAIN_TIMEOUT, Connection


@pytest.fixture
def pair():
    """(Connection, peer socket) over a socket pair."""
    server_sock, peer = socket.socketpair()
    conn = Connection(server_sock, ("127.0.0.1", 40000), idle_timeout=2.0)
    yield conn, peer
    conn.close()
    peer.close()


class TestConnection:
    """Tests for Connection class."""

    def test_client_ip(self, pair):
        conn, _ = pair
        assert conn.client_ip == "127.0.0.1"

    def test_streams_share_the_socket(self, pair):
        conn, peer = pair
        peer.sendall(b"GET / HTTP/1.1\r\n")
        assert conn.rfile.readline() == b"GET / HTTP/1.1\r\n"

        conn.wfile.write(b"hello")
        conn.wfile.flush()
        assert peer.recv(5) == b"hello"


class TestClose:
    """Tests for Connection.close()."""

    def test_close_is_idempotent(self, pair):
        conn, _ = pair
        conn.close()
        conn.close()
        assert conn.closed
        assert conn.socket.fileno() == -1

    def test_peer_sees_eof(self, pair):
        conn, peer = pair
        peer.settimeout(5.0)
        conn.close()
        assert peer.recv(1) == b""

    def test_pending_response_flushed(self, pair):
        conn, peer = pair
        peer.settimeout(5.0)
        conn.wfile.write(b"last words")
        conn.close()

        received = b""
        while True:
            data = peer.recv(1024)
            if not data:
                break
            received += data
        assert received == b"last words"

    def test_silent_peer_does_not_block(self, pair):
        """A peer that neither sends nor closes costs at most the drain window."""
        conn, _ = pair
        started = time.monotonic()
        conn.close()
        assert time.monotonic() - started < DRAIN_TIMEOUT + 1.5

    def test_flooding_peer_does_not_block(self, pair):
        """A peer that never stops sending cannot keep close() reading."""
        conn, peer = pair
        flooding = threading.Event()

        def flood():
            chunk = b"x" * 4096
            try:
                while True:
                    peer.sendall(chunk)
                    flooding.set()
            except OSError:
                pass  # close() ended the connection

        thread = threading.Thread(target=flood, daemon=True)
        thread.start()
        assert flooding.wait(5.0)

        started = time.monotonic()
        conn.close()
        assert time.monotonic() - started < DRAIN_TIMEOUT + 1.5

        thread.join(timeout=5.0)
        assert not thread.is_alive()
