"""
Integration tests for the TCP listener.
"""

import socket
import threading

import pytest

from httpframe.config import ServerConfig
from httpframe.core import Connection, ConnectionState, SocketServer


class TestBind:
    """Tests for SocketServer.bind()."""

    def test_port_zero_reports_real_port(self):
        """Test that binding to port 0 exposes the chosen port."""
        listener = SocketServer(ServerConfig(port=0))

        host, port = listener.bind()
        try:
            assert host == "127.0.0.1"
            assert port != 0
            assert listener.address == (host, port)
        finally:
            listener._close()

    def test_port_in_use(self):
        """Test that a taken port raises OSError from bind()."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as other:
            other.bind(("127.0.0.1", 0))
            other.listen(1)
            taken = other.getsockname()[1]

            with pytest.raises(OSError):
                SocketServer(ServerConfig(port=taken)).bind()


class TestAcceptLoop:
    """Tests for start() and shutdown()."""

    def test_accepts_and_stops(self):
        """Test that each client becomes a Connection and shutdown() ends start()."""
        listener = SocketServer(ServerConfig(port=0, timeout=2.0))
        accepted = []
        got_one = threading.Event()

        def on_connection(conn: Connection):
            accepted.append(conn)
            conn.close()
            got_one.set()

        thread = threading.Thread(target=listener.start, args=(on_connection,), daemon=True)
        thread.start()
        assert listener.ready.wait(timeout=5.0)

        with socket.create_connection(listener.address, timeout=5):
            assert got_one.wait(timeout=5.0)

        listener.shutdown()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        assert not listener.ready.is_set()
        assert listener.connections_accepted == 1
        assert accepted[0].state is ConnectionState.CLOSED
        assert accepted[0].client_ip == "127.0.0.1"

    def test_shutdown_before_any_client(self):
        """Test that an idle listener still notices shutdown()."""
        listener = SocketServer(ServerConfig(port=0))
        thread = threading.Thread(target=listener.start, args=(lambda conn: None,), daemon=True)
        thread.start()
        assert listener.ready.wait(timeout=5.0)

        listener.shutdown()
        listener.shutdown()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
