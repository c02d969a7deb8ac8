"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket of the demo server and hands every accepted
client socket to a callback as a Connection. Nothing HTTP happens here.

    bind()     resolve host, create socket, bind, listen
                    │
                    ▼  ready is set, address holds the real port
    start()    accept ──► Connection ──► callback ──► accept ──► ...
                    │
                    ▼  shutdown() from any thread or SIGINT/SIGTERM
    close      listening socket released, signal handlers restored

The accept call wakes up once a second so a shutdown request is seen even
when no client ever connects. Connections already handed to the callback
are not tracked: they finish on their own threads.
=============================================================================
"""

import logging
import signal
import socket
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Accepts TCP connections until asked to stop.

    Usage:
        listener = SocketServer(ServerConfig(port=0))
        listener.bind()
        print(listener.address)       # ("127.0.0.1", 49731)
        listener.start(on_connection) # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.connections_accepted = 0

        # Set while the socket is listening; tests wait on it
        self.ready = threading.Event()

        self._listener: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None
        self._stop = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        """(host, port) actually bound; the configured pair before bind()."""
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    # =========================================================================
    # SETUP
    # =========================================================================

    def bind(self) -> Tuple[str, int]:
        """
        Create the listening socket.

        The host is resolved with getaddrinfo(), so "::1" or "localhost"
        work as well as dotted IPv4 addresses. The first address returned
        is used.

        Returns:
            The bound (host, port); with port 0 the OS-chosen port.

        Raises:
            OSError: If the host cannot be resolved or the port is taken.
        """
        family, _, _, _, sockaddr = socket.getaddrinfo(
            self.config.host,
            self.config.port,
            type=socket.SOCK_STREAM,
            flags=socket.AI_PASSIVE,
        )[0]

        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            # Restarting right after a stop must not fail on TIME_WAIT
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            # Responses are a few small writes; send each one at once
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.settimeout(ACCEPT_POLL_INTERVAL)
            sock.bind(sockaddr)
            sock.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {self.config.host}:{self.config.port}: {e}")
            sock.close()
            raise

        self._listener = sock
        self._bound_address = sock.getsockname()[:2]
        return self._bound_address

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        """
        Turn SIGINT/SIGTERM into shutdown() for the duration of the block.

        Only the main thread may install signal handlers; elsewhere (a
        server started from a test thread) this is a no-op.
        """
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, stopping")
            self.shutdown()

        previous = {
            sig: signal.signal(sig, on_signal)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    # =========================================================================
    # SERVING
    # =========================================================================

    def start(self, on_connection: Callable[[Connection], None]):
        """
        Accept connections until shutdown(). Binds first if needed.

        Args:
            on_connection: Called in the accepting thread for each new
                           Connection; it must not block for long and owns
                           the Connection from then on.
        """
        if self._listener is None:
            self.bind()

        self._stop.clear()
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self.ready.set()

        try:
            with self._signal_handlers():
                self._accept_until_stopped(on_connection)
        finally:
            self._close()

    def _accept_until_stopped(self, on_connection: Callable[[Connection], None]):
        while not self._stop.is_set():
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stop.is_set():
                    logger.error(f"accept() failed: {e}")
                return

            self.connections_accepted += 1
            logger.debug(f"Accepted connection from {peer[0]}:{peer[1]}")
            on_connection(Connection(client, peer, timeout=self.config.timeout))

    def shutdown(self):
        """Ask the accept loop to stop. Safe from any thread, any number of times."""
        if not self._stop.is_set():
            logger.info("Shutting down listener")
        self._stop.set()

    def _close(self):
        self.ready.clear()
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        logger.info(
            f"Listener closed after {self.connections_accepted} connection(s)"
        )
