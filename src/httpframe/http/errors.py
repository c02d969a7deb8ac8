"""
=============================================================================
FRAMING ERRORS
=============================================================================

Every failure the framer can report is a subclass of HTTPFramingError.

    HTTPFramingError
    ├── ParseError                  Request could not be framed
    │   ├── MalformedRequestLine    Not exactly METHOD SP TARGET SP VERSION
    │   ├── InvalidRequestURI       Target is not a URI reference
    │   ├── TruncatedHeaders        Stream ended inside the header block
    │   ├── MalformedContentLength  Zero/many values or not a number
    │   ├── MalformedHeaderLine     Header line without "name:"
    │   └── LineTooLong             Line exceeds the parser's limit
    ├── StreamIOError               Read/write on the connection failed
    └── ResponseAlreadyWritten      Response.write() called twice

All parse errors are terminal for the connection. The stream position is
undefined afterwards, so the only safe thing to do is close the socket.
=============================================================================
"""


class HTTPFramingError(Exception):
    """Base class for all framer errors."""


class ParseError(HTTPFramingError):
    """
    Raised when a request cannot be framed.

    Unlike HTTP-level errors there is no status code attached: the framer
    never decides what to answer. The connection handler closes the socket.
    """


class MalformedRequestLine(ParseError):
    """The request line does not split into three non-empty tokens."""


class InvalidRequestURI(ParseError):
    """The request target cannot be parsed as a URI reference."""


class TruncatedHeaders(ParseError):
    """The stream ended (or failed) before the blank line ending the headers."""


class MalformedContentLength(ParseError):
    """Content-Length is multi-valued, empty or not a non-negative integer."""


class MalformedHeaderLine(ParseError):
    """A header line has no colon or an empty field name."""


class LineTooLong(ParseError):
    """A request or header line is longer than the configured limit."""

    def __init__(self, limit: int):
        super().__init__(f"Line exceeds {limit} bytes")
        self.limit = limit


class StreamIOError(HTTPFramingError):
    """
    Raised when the underlying byte stream fails.

    The original OSError (if any) is chained as __cause__. For writes,
    bytes_written tells how much reached the stream before the failure.
    """

    def __init__(self, message: str, bytes_written: int = 0):
        super().__init__(message)
        self.bytes_written = bytes_written


class ResponseAlreadyWritten(HTTPFramingError):
    """A Response is written exactly once; this is the second attempt."""
