"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads exactly one HTTP/1.1 request from a binary stream and turns it into
a Request object.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │    POST /api/items?draft=1 HTTP/1.1\r\n                        │ │
    │  │    ─┬── ───────┬────────── ────┬───                            │ │
    │  │   Method     Target         Version                            │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: example.com\r\n                                       │ │
    │  │    Accept: text/html, application/json\r\n   ← two values     │ │
    │  │    Content-Length: 5\r\n                                       │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (exactly Content-Length bytes) ──────────────────────────┐ │
    │  │    hello                                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
READING FROM A STREAM, NOT A BUFFER
=============================================================================

The parser does not slurp the whole request into memory. It reads the
request line and headers line by line, then hands back a BodyReader that
is bounded to Content-Length:

    connection stream: [request line][headers][\r\n][body ....][next bytes]
                        ◄──────── consumed by parse() ─────────►
                                                    ◄─ BodyReader ─►
                                                                   ▲
                                      never read past here ────────┘

Bytes after the body belong to whoever owns the connection.

=============================================================================
KNOWN SIMPLIFICATIONS
=============================================================================

1. COMMA SPLITTING: every comma in a header value separates two values.
   "Date: Tue, 15 Nov 1994 08:12:31 GMT" becomes ["Tue", "15 Nov 1994 ..."]
   and quoted strings are split too. This is intentional: the response
   writer joins values with commas, so the two sides mirror each other.

2. NO CHUNKED BODIES: without Content-Length there is no body at all.

3. NO FOLDING: continuation lines (leading whitespace) are not merged.

=============================================================================
"""

import io
import logging
import re
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, List, Optional, Union
from urllib.parse import SplitResult, parse_qs, urlsplit

from .errors import (
    InvalidRequestURI,
    LineTooLong,
    MalformedContentLength,
    MalformedHeaderLine,
    MalformedRequestLine,
    StreamIOError,
    TruncatedHeaders,
)
from .headers import Headers


logger = logging.getLogger(__name__)


# Content-Length must fit a signed 64-bit integer (an unsigned 63-bit value)
MAX_CONTENT_LENGTH = 2 ** 63 - 1
MAX_CONTENT_LENGTH_DIGITS = len(str(MAX_CONTENT_LENGTH))

DEFAULT_MAX_LINE_SIZE = 64 * 1024

# Largest single read handed to the underlying stream
READ_CHUNK_SIZE = 64 * 1024


class BodyReader(io.RawIOBase):
    """
    Read-only view over the next `length` bytes of a stream.

    =========================================================================
    BOUNDED READING
    =========================================================================

        stream:  ... [ b o d y ][ n e x t ... ]
                     ◄─length─►
                     read() returns these, then b"" forever

    - A zero-length reader is exhausted from the start.
    - Reading after the boundary returns b"" (end of input), never an error.
    - The underlying stream is never read beyond the boundary.
    - Closing the reader does not close the underlying stream.

    Being an io.RawIOBase, it supports read(), readall(), readinto() and
    can be wrapped in io.BufferedReader like any other raw stream.
    =========================================================================
    """

    def __init__(self, stream: Optional[BinaryIO], length: int = 0):
        super().__init__()
        self._stream = stream
        self._length = length
        self._remaining = length

    @property
    def length(self) -> int:
        """Declared body size in bytes."""
        return self._length

    @property
    def remaining(self) -> int:
        """Bytes not yet read from the body."""
        return self._remaining

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        """
        Read up to size bytes; all remaining bytes when size is negative.

        size is clamped to what is left of the body and to READ_CHUNK_SIZE,
        so the buffer never follows a size the peer declared. Like any raw
        stream, a read may return fewer bytes than asked for.
        """
        if size is None or size < 0:
            return self.readall()
        return super().read(min(size, self._remaining, READ_CHUNK_SIZE))

    def readinto(self, buffer) -> int:
        if self._remaining <= 0 or self._stream is None:
            return 0

        view = memoryview(buffer).cast("B")
        size = min(len(view), self._remaining)
        if size == 0:
            return 0

        try:
            data = self._stream.read(size)
        except OSError as e:
            raise StreamIOError(f"Failed to read request body: {e}") from e

        if not data:
            # Peer went away before sending everything it announced
            raise StreamIOError(
                f"Connection closed after {self._length - self._remaining} "
                f"of {self._length} body bytes"
            )

        n = len(data)
        view[:n] = data
        self._remaining -= n
        return n


@dataclass(frozen=True)
class Request:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:   First request-line token, as sent ("GET", "POST", ...)
        target:   Request target split into scheme/netloc/path/query/
                  fragment. Origin-form targets ("/a?b=1") have empty
                  scheme and netloc.
        version:  Third request-line token ("HTTP/1.1")
        headers:  Header multimap, names exactly as received
        body:     BodyReader bounded to Content-Length (empty when the
                  header is absent or zero)

    The object is frozen: its attributes cannot be reassigned. Freezing is
    shallow. headers is still a plain Headers dict that a handler may
    mutate; take headers.copy() to keep the parsed values apart.
    =========================================================================
    """

    method: str
    target: SplitResult
    version: str
    headers: Headers = field(default_factory=Headers)
    body: BodyReader = field(default_factory=lambda: BodyReader(None, 0))

    @property
    def path(self) -> str:
        """Target path ("" for targets such as "*")."""
        return self.target.path

    @property
    def query(self) -> str:
        """Raw query string without the leading "?"."""
        return self.target.query

    @property
    def query_params(self) -> Dict[str, List[str]]:
        """
        Query string as a dict of lists.

            "?a=1&a=2&b=" → {"a": ["1", "2"], "b": [""]}
        """
        return parse_qs(self.target.query, keep_blank_values=True)

    @property
    def content_length(self) -> Optional[int]:
        """Declared body length, or None when Content-Length was absent."""
        value = self.headers.first("Content-Length")
        return int(value) if value is not None else None

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a header (exact-case lookup), or default."""
        return self.headers.first(name, default)


class RequestParser:
    """
    Parses one HTTP request from a binary stream.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Binary stream
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Request line ─────────────────────────────────────────────►   │
        │     │  split on " " into exactly 3 tokens                          │
        │     │  else MalformedRequestLine                                   │
        │     ▼                                                              │
        │  2. Target ───────────────────────────────────────────────────►   │
        │     │  urlsplit() + sanity checks, else InvalidRequestURI          │
        │     ▼                                                              │
        │  3. Header lines until "\r\n" ────────────────────────────────►   │
        │     │  "Name: v1, v2" → add(Name, v1), add(Name, v2)               │
        │     │  EOF / I/O error → TruncatedHeaders                          │
        │     ▼                                                              │
        │  4. Content-Length ───────────────────────────────────────────►   │
        │     │  one value, digits only, < 2**63                             │
        │     │  else MalformedContentLength                                 │
        │     ▼                                                              │
        │  5. Request(method, target, version, headers, BodyReader)          │
        └───────────────────────────────────────────────────────────────────┘

    The stream only needs readline(limit) and read(n). socket.makefile("rb"),
    io.BufferedReader and io.BytesIO all qualify.

    Nothing is rolled back on error: after a ParseError the stream position
    is undefined and the connection should be closed.
    ==========================================================================
    """

    # Content-Length: ASCII digits only. int() alone would also accept
    # "+5", " 5" and "5_0".
    CONTENT_LENGTH_PATTERN = re.compile(r"[0-9]+")

    # "%" must introduce a two-digit hex escape
    BAD_PERCENT_PATTERN = re.compile(r"%(?![0-9A-Fa-f]{2})")

    CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x20\x7f]")

    def __init__(self, max_line_size: int = DEFAULT_MAX_LINE_SIZE):
        """
        Args:
            max_line_size: Longest request or header line accepted, in
                           bytes, terminator included.
        """
        self.max_line_size = max_line_size

    def parse(self, stream: BinaryIO) -> Request:
        """
        Parse a request from stream.

        Consumes the request line and the header block. The body is not
        read here: it is returned as a BodyReader over the same stream.

        Args:
            stream: Readable binary stream positioned at a request line.

        Returns:
            Parsed Request.

        Raises:
            ParseError: If the request cannot be framed.
            StreamIOError: If the stream fails or is closed before the
                           request line.
        """
        method, target, version = self._parse_request_line(stream)
        headers = self._parse_headers(stream)
        body = self._make_body(stream, headers)

        logger.debug(f"Parsed request line: {method} {target.geturl()} {version}")

        return Request(
            method=method,
            target=target,
            version=version,
            headers=headers,
            body=body,
        )

    # =========================================================================
    # LINE READING
    # =========================================================================

    def _read_line(self, stream: BinaryIO) -> Optional[bytes]:
        """
        Read one line and strip its terminator.

        Returns None at end of stream (including a final line that never
        got its terminator). Raises OSError as-is; callers decide which
        error kind a failed read maps to.
        """
        line = stream.readline(self.max_line_size + 1)

        if not line.endswith(b"\n"):
            if len(line) > self.max_line_size:
                raise LineTooLong(self.max_line_size)
            return None

        if len(line) > self.max_line_size:
            raise LineTooLong(self.max_line_size)

        if line.endswith(b"\r\n"):
            return line[:-2]
        return line[:-1]  # bare LF

    def _parse_request_line(self, stream: BinaryIO) -> tuple[str, SplitResult, str]:
        """
        Parse "METHOD SP TARGET SP VERSION".

        Tokens are separated by exactly one space, so "GET  / HTTP/1.1"
        (two spaces) yields an empty token and is rejected.
        """
        try:
            raw = self._read_line(stream)
        except OSError as e:
            raise StreamIOError(f"Failed to read request line: {e}") from e

        if raw is None:
            raise StreamIOError("Connection closed before a complete request line")

        line = raw.decode("latin-1")
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise MalformedRequestLine(f"Invalid request line: {line!r}")

        method, uri, version = parts
        return method, self._parse_target(uri), version

    def _parse_target(self, uri: str) -> SplitResult:
        """
        Parse the request target as a URI reference.

        Both absolute ("http://host/path?q") and origin-form ("/path?q")
        targets are accepted. The checks below only reject strings that
        are not URIs at all.
        """
        if self.CONTROL_CHARS_PATTERN.search(uri):
            raise InvalidRequestURI(f"Invalid request URI: {uri!r}")

        if self.BAD_PERCENT_PATTERN.search(uri):
            raise InvalidRequestURI(f"Invalid percent-escape in request URI: {uri!r}")

        try:
            target = urlsplit(uri)
            target.port  # raises ValueError for "host:notaport"
        except ValueError as e:
            raise InvalidRequestURI(f"Invalid request URI: {uri!r}: {e}") from e

        return target

    # =========================================================================
    # HEADERS
    # =========================================================================

    def _parse_headers(self, stream: BinaryIO) -> Headers:
        """
        Read header lines up to and including the blank line.

            "X-Foo: a, b ,c"   → X-Foo: ["a", "b", "c"]
            "X-Foo: d"         → X-Foo: ["a", "b", "c", "d"]
        """
        headers = Headers()

        while True:
            try:
                raw = self._read_line(stream)
            except OSError as e:
                raise TruncatedHeaders(f"Failed to read headers: {e}") from e

            if raw is None:
                raise TruncatedHeaders("Connection closed before end of headers")

            if not raw:
                return headers  # blank line ends the header block

            name, values = self._parse_header_line(raw.decode("latin-1"))
            for value in values:
                headers.add(name, value)

    def _parse_header_line(self, line: str) -> tuple[str, List[str]]:
        """Split "Name: v1, v2" into ("Name", ["v1", "v2"])."""
        name, sep, raw_value = line.partition(":")
        name = name.strip()
        if not sep or not name:
            raise MalformedHeaderLine(f"Invalid header line: {line!r}")

        values = [value.strip() for value in raw_value.strip().split(",")]
        return name, values

    # =========================================================================
    # BODY
    # =========================================================================

    def _make_body(self, stream: BinaryIO, headers: Headers) -> BodyReader:
        """
        Build the body reader from Content-Length.

            absent  → empty reader (no chunked or read-until-close bodies)
            0       → empty reader
            N > 0   → reader bounded to the next N bytes of stream
        """
        if "Content-Length" not in headers:
            return BodyReader(None, 0)

        values = headers["Content-Length"]
        if len(values) != 1:
            raise MalformedContentLength(
                f"Content-Length must have a single value, got {values!r}"
            )

        value = values[0]
        if not self.CONTENT_LENGTH_PATTERN.fullmatch(value):
            raise MalformedContentLength(f"Invalid Content-Length: {value!r}")

        # Bound the digit count before int(): huge strings hit the
        # interpreter's int conversion limit. Leading zeros count too.
        if len(value) > MAX_CONTENT_LENGTH_DIGITS:
            raise MalformedContentLength(
                f"Content-Length has {len(value)} digits, at most "
                f"{MAX_CONTENT_LENGTH_DIGITS} allowed"
            )

        length = int(value)
        if length > MAX_CONTENT_LENGTH:
            raise MalformedContentLength(f"Content-Length out of range: {value}")

        if length == 0:
            return BodyReader(None, 0)
        return BodyReader(stream, length)


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    source: Union[bytes, BinaryIO],
    max_line_size: int = DEFAULT_MAX_LINE_SIZE,
) -> Request:
    """
    Parse a request from raw bytes or a binary stream.

    Raw bytes are wrapped in io.BytesIO, which is handy in tests:

        request = parse_request(b"GET / HTTP/1.1\\r\\n\\r\\n")
    """
    stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    return RequestParser(max_line_size=max_line_size).parse(stream)
