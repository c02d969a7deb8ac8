"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Serializes a status code, a header multimap and a body onto a binary
stream.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 201 Created \r\n            ← status line (note the space
    Content-Type: application/json\r\n      before CRLF)
    X-Multi: one,two\r\n                 ← several values, one line,
    \r\n                                    bare comma between them
    hello                                ← body bytes, verbatim

    ┌──────────────────────────────────────────────────────────────────┐
    │ Rule                         │ Behavior                         │
    ├──────────────────────────────┼──────────────────────────────────┤
    │ Unknown status code          │ written as "200 OK"              │
    │ Header with empty value list │ skipped                          │
    │ Header order                 │ dict order, not guaranteed       │
    │ Content-Length               │ never computed or injected       │
    │ Write error                  │ stop at once, raise StreamIOError│
    └──────────────────────────────┴──────────────────────────────────┘

Multi-value joining is the mirror image of the parser's comma splitting:
"X-Multi: one,two" parses back into ["one", "two"].

=============================================================================
"""

from typing import BinaryIO, List, Optional, Union

from .errors import ResponseAlreadyWritten, StreamIOError
from .headers import Headers
from .status_codes import HTTPStatus, resolve_status


HTTP_VERSION = "HTTP/1.1"

# Header text is written byte-for-byte; the parser decodes the same way
HEADER_ENCODING = "latin-1"


def format_status_line(status_code: int) -> str:
    """
    Build the status line, CRLF included.

        format_status_line(404)   → "HTTP/1.1 404 Not Found \\r\\n"
        format_status_line(9999)  → "HTTP/1.1 200 OK \\r\\n"
    """
    code, phrase = resolve_status(status_code)
    return f"{HTTP_VERSION} {code} {phrase} \r\n"


def format_header_lines(headers: Headers) -> List[str]:
    """One "Name: v1,v2\\r\\n" line per key that has at least one value."""
    return [
        f"{name}: {','.join(values)}\r\n"
        for name, values in headers.items()
        if values
    ]


def write_response(
    stream: BinaryIO,
    status_code: int,
    headers: Headers,
    body: bytes = b"",
) -> int:
    """
    Serialize a response onto stream.

    =====================================================================
    WRITE ORDER
    =====================================================================

        1. status line
        2. header lines (one write each)
        3. blank line
        4. body
        5. flush (if the stream has one)

    Every header line is encoded before anything is written, so an
    unencodable header raises UnicodeEncodeError without touching the
    stream. The first OSError from the stream aborts the remaining steps.
    =====================================================================

    Args:
        stream: Writable binary stream (e.g. socket.makefile("wb")).
        status_code: Status to send; unknown codes become 200.
        headers: Header multimap.
        body: Body bytes, written as-is.

    Returns:
        Total number of bytes written.

    Raises:
        StreamIOError: On the first write/flush failure. bytes_written
                       holds what was written before it.
    """
    chunks = [format_status_line(status_code).encode(HEADER_ENCODING)]
    chunks.extend(line.encode(HEADER_ENCODING) for line in format_header_lines(headers))
    chunks.append(b"\r\n")
    if body:
        chunks.append(bytes(body))

    written = 0
    try:
        for chunk in chunks:
            n = stream.write(chunk)
            # Raw streams may accept fewer bytes than offered
            written += len(chunk) if n is None else n
            if n is not None and n < len(chunk):
                raise OSError(f"Short write: {n} of {len(chunk)} bytes")

        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()
    except OSError as e:
        raise StreamIOError(f"Failed to write response: {e}", bytes_written=written) from e

    return written


class Response:
    """
    Mutable response builder bound to an output stream.

    =========================================================================
    LIFECYCLE
    =========================================================================

        Response(stream)                   created per request
            .status(201)                   any number of times
            .header("X-Multi", "one")      add a value
            .header("X-Multi", "two")
            .set_header("X-Multi", "one")  replace all values
            .write(b"hello")               exactly once, then done

    Status defaults to 200. Nothing reaches the stream before write().
    =========================================================================
    """

    def __init__(
        self,
        stream: BinaryIO,
        status_code: int = HTTPStatus.OK,
        headers: Optional[Headers] = None,
    ):
        self.headers = headers if headers is not None else Headers()
        self._status_code = status_code
        self._stream = stream
        self._written = False
        self._bytes_written = 0

    # =========================================================================
    # STATUS AND HEADERS
    # =========================================================================

    @property
    def status_code(self) -> int:
        """The status code as set by the caller (before any fallback)."""
        return self._status_code

    @property
    def status_line(self) -> str:
        """Exact status line write() will emit, CRLF included."""
        return format_status_line(self._status_code)

    def status(self, code: int) -> "Response":
        """Set the status code. Returns self for chaining."""
        self._status_code = code
        return self

    def header(self, name: str, value: str) -> "Response":
        """Append a header value. Returns self for chaining."""
        self.headers.add(name, value)
        return self

    def set_header(self, name: str, value: str) -> "Response":
        """Replace all values of a header. Returns self for chaining."""
        self.headers.set(name, value)
        return self

    # =========================================================================
    # WRITING
    # =========================================================================

    @property
    def written(self) -> bool:
        """True once write() has been attempted."""
        return self._written

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def write(self, body: Union[bytes, bytearray, str] = b"") -> int:
        """
        Write the whole response: status line, headers, blank line, body.

        String bodies are encoded as UTF-8. The response is marked as
        written even when the stream fails, since part of it may already
        be on the wire. A UnicodeEncodeError from a header leaves it
        unwritten.

        Returns:
            Total bytes written.

        Raises:
            ResponseAlreadyWritten: On a second call.
            StreamIOError: If the stream fails.
        """
        if self._written:
            raise ResponseAlreadyWritten("Response has already been written")

        if isinstance(body, str):
            body = body.encode("utf-8")

        try:
            self._bytes_written = write_response(
                self._stream, self._status_code, self.headers, body
            )
        except StreamIOError as e:
            self._written = True
            self._bytes_written = e.bytes_written
            raise

        self._written = True
        return self._bytes_written
