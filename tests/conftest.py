"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
from typing import Callable, Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpframe import HTTPServer, ServerConfig
from httpframe.http import Request, Response


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html, application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


class FailingWriter(io.RawIOBase):
    """Writable stream that raises after a number of successful writes."""

    def __init__(self, fail_after: int):
        super().__init__()
        self.fail_after = fail_after
        self.chunks: list = []

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if len(self.chunks) >= self.fail_after:
            raise BrokenPipeError("peer went away")
        self.chunks.append(bytes(data))
        return len(data)


@pytest.fixture
def failing_writer() -> Callable[[int], FailingWriter]:
    """Factory for streams that fail on the (n+1)-th write."""
    return FailingWriter


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def echo_handler(request: Request, response: Response) -> None:
    """Echo the body back, with the request line in headers."""
    body = request.body.read()
    response.set_header("X-Method", request.method)
    response.set_header("X-Target", request.target.geturl())
    response.set_header("Content-Length", str(len(body)))
    response.status(200).write(body)


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def make_server(free_port: int) -> Generator[Callable[..., TestServer], None, None]:
    """Start a server with a given handler; stopped after the test."""
    started = []

    def _make(handler=None) -> TestServer:
        server = HTTPServer(
            ServerConfig(host="127.0.0.1", port=free_port, log_level="WARNING", timeout=5.0),
            handler,
        )
        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield _make

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(make_server) -> TestServer:
    """A running server with the echo handler."""
    return make_server(echo_handler)
