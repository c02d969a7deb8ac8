"""
=============================================================================
httpframe: MINIMAL HTTP/1.1 MESSAGE FRAMER
=============================================================================

Reads one request from a byte stream, writes one response back.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bytes ──► RequestParser ──► Request(method, target, version,       │
    │                                       headers, body)                 │
    │                                                                      │
    │   Response(status, headers) ──► write(body) ──► bytes               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    import io
    from httpframe import parse_request, Response

    request = parse_request(b"GET /hello HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")

    out = io.BytesIO()
    Response(out).status(201).header("X-Multi", "a").header("X-Multi", "b").write(b"hi")
    out.getvalue()  # b"HTTP/1.1 201 Created \\r\\nX-Multi: a,b\\r\\n\\r\\nhi"

Run the demo server:

    python -m httpframe --port 8080
=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .http import (
    Headers,
    HTTPStatus,
    Request,
    RequestParser,
    Response,
    parse_request,
    write_response,
)
from .server import HTTPServer, demo_handler

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "demo_handler",
    "Headers",
    "HTTPStatus",
    "Request",
    "RequestParser",
    "Response",
    "parse_request",
    "write_response",
    "__version__",
]
