"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket for the framer.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

recv() may hand back half a request line or three requests at once. The
framer does not care: it works on a buffered file object and asks for
"one line" or "N bytes", and the buffer waits for enough data.

    socket ──makefile("rb")──► reader   (readline / read)
    socket ──makefile("wb")──► writer   (write / flush)

=============================================================================
ONE REQUEST, ONE RESPONSE, CLOSE
=============================================================================

    accept ──► parse request ──► write response ──► close
                    │
                    └── parse error ─────────────────► close

There is no keep-alive: the connection is always closed after the
response, and on every error path. Using the Connection as a context
manager guarantees that.
=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)

# Upper bounds for discarding unread request bytes on close
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, for logging."""
    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Parsing the request
    PROCESSING = "processing"  # Handler is running
    WRITING = "writing"        # Response being written
    CLOSED = "closed"          # Socket released


class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for log lines.
        state: Current lifecycle state.
        created_at: Timestamp when the connection was accepted.
    """

    def __init__(
        self,
        sock: socket.socket,
        address: tuple,
        timeout: Optional[float] = None,
    ):
        self.socket = sock
        self.address = address
        self.id = uuid.uuid4().hex[:8]
        self.state = ConnectionState.NEW
        self.created_at = time.time()

        # None = blocking without a deadline
        self.socket.settimeout(timeout)

        self._reader: Optional[BinaryIO] = None
        self._writer: Optional[BinaryIO] = None

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary reader over the socket (created on first use)."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        return self._reader

    @property
    def writer(self) -> BinaryIO:
        """Buffered binary writer over the socket (created on first use)."""
        if self._writer is None:
            self._writer = self.socket.makefile("wb")
        return self._writer

    def close(self):
        """
        Close the connection.

        ┌─────────────────────────────────────────────────────────────────┐
        │   1. Flush and close the file objects                          │
        │   2. shutdown(SHUT_WR)   → FIN to the client                   │
        │   3. Drain briefly       → unread request bytes would make     │
        │                            close() send RST and cut off the    │
        │                            tail of our response                │
        │   4. close()             → release the file descriptor         │
        └─────────────────────────────────────────────────────────────────┘

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        for stream in (self._writer, self._reader):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as e:
                logger.debug(f"[{self.id}] Error closing stream: {e}")

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.2f}ms")

    def _drain(self) -> int:
        """
        Discard what the peer still sends, bounded by DRAIN_TIMEOUT seconds
        overall and DRAIN_LIMIT bytes. Returns the number of bytes dropped.
        """
        drained = 0
        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # socket.timeout included
        return drained

    def __enter__(self):
        """
        Allows:

            with conn:
                request = parser.parse(conn.reader)
                Response(conn.writer).write(b"...")
            # closed here, whatever happened
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
