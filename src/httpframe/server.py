"""
=============================================================================
DEMO SERVER
=============================================================================

Runs the framer over real TCP connections: one request and one response
per connection, one thread per connection.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept──► _handle_connection(conn)                  │
    │                                   │                                  │
    │                                   └──► Thread(_process_connection)   │
    │                                              │                       │
    │            ┌─────────────────────────────────┘                       │
    │            ▼                                                         │
    │      RequestParser.parse(conn.reader)  ── ParseError ──► close      │
    │            │                                                         │
    │            ▼                                                         │
    │      handler(request, Response(conn.writer))                        │
    │            │                                                         │
    │            ▼                                                         │
    │      response.write(...)  (by the handler, or empty body after it)  │
    │            │                                                         │
    │            ▼                                                         │
    │      close                                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

No state is shared between connection threads. A malformed request never
gets an automatic error response: the connection is simply closed.
=============================================================================
"""

import logging
import threading
import time
from typing import Callable, Optional

from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer
from .http import (
    HTTPStatus,
    ParseError,
    Request,
    RequestParser,
    Response,
    StreamIOError,
    resolve_status,
)


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("httpframe.access")

Handler = Callable[[Request, Response], None]


def demo_handler(request: Request, response: Response) -> None:
    """
    Default handler: a fixed 201 JSON-typed reply.

        HTTP/1.1 201 Created \\r\\n
        Content-Type: application/json\\r\\n
        x-multi-header: one,two\\r\\n
        \\r\\n
        hello
    """
    response.set_header("Content-Type", "application/json")
    response.header("x-multi-header", "one")
    response.header("x-multi-header", "two")
    response.status(HTTPStatus.CREATED)
    response.write(b"hello")


class HTTPServer:
    """
    Thread-per-connection server around the framer.

    =========================================================================
    USAGE
    =========================================================================

        def handler(request, response):
            body = request.body.read()
            response.set_header("Content-Length", str(len(body)))
            response.status(200).write(body)

        server = HTTPServer(ServerConfig(port=8080), handler)
        server.run()  # blocks until Ctrl+C / SIGTERM / shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, handler: Optional[Handler] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = handler or demo_handler

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_line_size=self.config.max_line_size)

    @property
    def address(self):
        """Bound (host, port) once running."""
        return self._socket_server.address

    @property
    def ready(self) -> threading.Event:
        """Set once the server is accepting connections."""
        return self._socket_server.ready

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None, configure_logging: bool = True):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.
            configure_logging: Call logging.basicConfig() with the
                               configured level.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        if configure_logging:
            self._setup_logging()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting new connections; in-flight ones finish on their own."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = self.config.log_level_value

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("httpframe").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Give each connection its own thread."""
        thread = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()

    def _process_connection(self, conn: Connection):
        """
        Handle exactly one request on conn, then close it.

        The connection is closed on every path, including parse errors,
        stream errors and handler crashes.
        """
        with conn:
            started = time.perf_counter()

            conn.state = ConnectionState.READING
            try:
                request = self._parser.parse(conn.reader)
            except ParseError as e:
                logger.warning(f"[{conn.id}] Malformed request from {conn.client_ip}: {e}")
                return
            except StreamIOError as e:
                logger.warning(f"[{conn.id}] Read failed from {conn.client_ip}: {e}")
                return

            conn.state = ConnectionState.PROCESSING
            response = Response(conn.writer)
            try:
                self.handler(request, response)
                if not response.written:
                    conn.state = ConnectionState.WRITING
                    response.write(b"")
            except StreamIOError as e:
                logger.warning(f"[{conn.id}] Write failed to {conn.client_ip}: {e}")
                return
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                return

            duration_ms = (time.perf_counter() - started) * 1000
            sent_status, _ = resolve_status(response.status_code)
            access_logger.info(
                f'{conn.client_ip} "{request.method} {request.target.geturl()} {request.version}" '
                f"{sent_status} {response.bytes_written} {duration_ms:.2f}ms"
            )


def create_app(config: Optional[ServerConfig] = None, handler: Optional[Handler] = None) -> HTTPServer:
    """Factory for HTTPServer instances."""
    return HTTPServer(config, handler)
