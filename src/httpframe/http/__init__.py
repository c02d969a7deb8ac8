"""
=============================================================================
HTTP/1.1 MESSAGE FRAMING
=============================================================================

Turns a byte stream into a Request and a Response back into bytes.
Nothing in here touches sockets: the parser reads from any binary stream
with readline()/read(), the writer writes to anything with write().

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         MODULE COMPONENTS                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   headers.py       Headers multimap (name → [values])               │
    │   request.py       RequestParser, Request, BodyReader               │
    │   response.py      Response builder, write_response()               │
    │   status_codes.py  HTTPStatus, reason phrases, 200 OK fallback      │
    │   errors.py        ParseError family, StreamIOError                 │
    │                                                                      │
    │        stream ──► RequestParser ──► Request                          │
    │                                                                      │
    │        Response ──► write_response() ──► stream                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parser and the writer do not know about each other; the only thing
they share is the Headers type.
=============================================================================
"""

from .errors import (
    HTTPFramingError,
    ParseError,
    MalformedRequestLine,
    InvalidRequestURI,
    TruncatedHeaders,
    MalformedContentLength,
    MalformedHeaderLine,
    LineTooLong,
    StreamIOError,
    ResponseAlreadyWritten,
)
from .headers import Headers
from .request import BodyReader, Request, RequestParser, parse_request
from .response import Response, format_status_line, write_response
from .status_codes import HTTPStatus, STATUS_PHRASES, reason_phrase, resolve_status

__all__ = [
    # Errors
    "HTTPFramingError",
    "ParseError",
    "MalformedRequestLine",
    "InvalidRequestURI",
    "TruncatedHeaders",
    "MalformedContentLength",
    "MalformedHeaderLine",
    "LineTooLong",
    "StreamIOError",
    "ResponseAlreadyWritten",

    # Header multimap
    "Headers",

    # Request parsing
    "BodyReader",
    "Request",
    "RequestParser",
    "parse_request",

    # Response writing
    "Response",
    "format_status_line",
    "write_response",

    # Status codes
    "HTTPStatus",
    "STATUS_PHRASES",
    "reason_phrase",
    "resolve_status",
]
