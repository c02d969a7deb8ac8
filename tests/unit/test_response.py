"""
Unit tests for HTTP response writing.
"""

import http.client
import io

import pytest

from httpframe.http.errors import ResponseAlreadyWritten, StreamIOError
from httpframe.http.headers import Headers
from httpframe.http.request import parse_request
from httpframe.http.response import (
    Response,
    format_header_lines,
    format_status_line,
    write_response,
)
from httpframe.http.status_codes import HTTPStatus


class FakeSocket:
    """Just enough of a socket for http.client.HTTPResponse."""

    def __init__(self, data: bytes):
        self._data = data

    def makefile(self, mode, *args, **kwargs):
        return io.BytesIO(self._data)


class TestStatusLine:
    """Tests for status line formatting."""

    def test_known_status(self):
        """Test status line generation."""
        assert format_status_line(200) == "HTTP/1.1 200 OK \r\n"
        assert format_status_line(HTTPStatus.NOT_FOUND) == "HTTP/1.1 404 Not Found \r\n"

    def test_unknown_status_falls_back(self):
        """Test that an unknown code is written as 200 OK."""
        stream = io.BytesIO()
        write_response(stream, 9999, Headers())

        assert stream.getvalue() == b"HTTP/1.1 200 OK \r\n\r\n"


class TestWriteResponse:
    """Tests for write_response()."""

    def test_full_response(self):
        """Test the exact bytes of a simple response."""
        stream = io.BytesIO()
        headers = Headers().set("Content-Type", "text/plain")

        n = write_response(stream, 201, headers, b"hello")

        expected = (
            b"HTTP/1.1 201 Created \r\n"
            b"Content-Type: text/plain\r\n"
            b"\r\n"
            b"hello"
        )
        assert stream.getvalue() == expected
        assert n == len(expected)

    def test_multi_value_header_joined(self):
        """Test that several values go on one line joined by a comma."""
        stream = io.BytesIO()
        write_response(stream, 200, Headers({"X-Multi": ["one", "two"]}))

        assert b"X-Multi: one,two\r\n" in stream.getvalue()
        assert stream.getvalue().count(b"X-Multi") == 1

    def test_empty_value_list_skipped(self):
        """Test that a key with no values is not written."""
        lines = format_header_lines(Headers({"X-None": [], "X-One": ["1"]}))

        assert lines == ["X-One: 1\r\n"]

    def test_no_content_length_injected(self):
        """Test that Content-Length is never added automatically."""
        stream = io.BytesIO()
        write_response(stream, 200, Headers(), b"hello")

        assert b"Content-Length" not in stream.getvalue()

    def test_empty_body(self):
        """Test that a response may end right after the blank line."""
        stream = io.BytesIO()
        write_response(stream, 204, Headers())

        assert stream.getvalue() == b"HTTP/1.1 204 No Content \r\n\r\n"

    def test_multi_value_parses_back(self):
        """Test that joined values split back into the same list."""
        stream = io.BytesIO()
        write_response(stream, 200, Headers({"X-Multi": ["one", "two"]}))

        # Reuse the request parser on the header block
        head = stream.getvalue().split(b"\r\n", 1)[1]
        request = parse_request(b"GET / HTTP/1.1\r\n" + head)

        assert request.headers["X-Multi"] == ["one", "two"]

    def test_failure_on_status_line(self, failing_writer):
        """Test that a failing first write leaves nothing else written."""
        stream = failing_writer(0)

        with pytest.raises(StreamIOError) as exc_info:
            write_response(stream, 200, Headers({"X-A": ["1"]}), b"body")

        assert exc_info.value.bytes_written == 0
        assert stream.chunks == []
        assert isinstance(exc_info.value.__cause__, BrokenPipeError)

    def test_failure_on_headers(self, failing_writer):
        """Test that a header write failure aborts the blank line and body."""
        stream = failing_writer(1)

        with pytest.raises(StreamIOError) as exc_info:
            write_response(stream, 201, Headers({"X-A": ["1"]}), b"body")

        assert stream.chunks == [b"HTTP/1.1 201 Created \r\n"]
        assert exc_info.value.bytes_written == len(b"HTTP/1.1 201 Created \r\n")

    def test_failure_on_body(self, failing_writer):
        """Test that bytes_written counts everything before the body."""
        stream = failing_writer(3)

        with pytest.raises(StreamIOError) as exc_info:
            write_response(stream, 200, Headers({"X-A": ["1"]}), b"body")

        assert b"".join(stream.chunks) == b"HTTP/1.1 200 OK \r\nX-A: 1\r\n\r\n"
        assert exc_info.value.bytes_written == len(b"".join(stream.chunks))

    def test_unencodable_header(self):
        """Test that a header outside latin-1 fails before any write."""
        stream = io.BytesIO()

        with pytest.raises(UnicodeEncodeError):
            write_response(stream, 200, Headers({"X-Emoji": ["☃"]}))

        assert stream.getvalue() == b""


class TestResponse:
    """Tests for the Response builder."""

    def test_defaults(self):
        """Test that a fresh response is a 200 with no headers."""
        response = Response(io.BytesIO())

        assert response.status_code == 200
        assert response.status_line == "HTTP/1.1 200 OK \r\n"
        assert len(response.headers) == 0
        assert not response.written

    def test_chaining(self):
        """Test that setters return the response."""
        stream = io.BytesIO()
        response = Response(stream)

        response.status(404).set_header("Content-Type", "text/plain").write(b"nope")

        assert stream.getvalue().startswith(b"HTTP/1.1 404 Not Found \r\n")
        assert stream.getvalue().endswith(b"\r\n\r\nnope")

    def test_header_accumulates(self):
        """Test that header() adds and set_header() replaces."""
        response = Response(io.BytesIO())

        response.header("X-Multi", "one").header("X-Multi", "two")
        assert response.headers["X-Multi"] == ["one", "two"]

        response.set_header("X-Multi", "three")
        assert response.headers["X-Multi"] == ["three"]

    def test_status_line_tracks_status(self):
        """Test that status_line shows what write() will send."""
        response = Response(io.BytesIO()).status(9999)

        assert response.status_code == 9999
        assert response.status_line == "HTTP/1.1 200 OK \r\n"

    def test_str_body_encoded_as_utf8(self):
        """Test that a str body is written as UTF-8."""
        stream = io.BytesIO()
        Response(stream).write("café")

        assert stream.getvalue().endswith("café".encode("utf-8"))

    def test_write_once(self):
        """Test that a second write is refused."""
        stream = io.BytesIO()
        response = Response(stream)
        n = response.write(b"one")

        with pytest.raises(ResponseAlreadyWritten):
            response.write(b"two")

        assert response.written
        assert response.bytes_written == n == len(stream.getvalue())
        assert stream.getvalue().endswith(b"one")

    def test_failed_write_counts_as_written(self, failing_writer):
        """Test that a response is spent after a stream failure."""
        response = Response(failing_writer(1))

        with pytest.raises(StreamIOError):
            response.write(b"hello")

        assert response.written
        assert response.bytes_written == len(b"HTTP/1.1 200 OK \r\n")
        with pytest.raises(ResponseAlreadyWritten):
            response.write(b"hello")

    def test_encoding_error_leaves_response_unwritten(self):
        """Test that a bad header can be fixed and the write retried."""
        stream = io.BytesIO()
        response = Response(stream).set_header("X-Bad", "☃")

        with pytest.raises(UnicodeEncodeError):
            response.write()

        assert not response.written

        response.set_header("X-Bad", "fixed")
        response.write()
        assert b"X-Bad: fixed\r\n" in stream.getvalue()


class TestStdlibClient:
    """Tests that http.client reads what the writer produces."""

    def test_demo_response(self):
        """Test the demo response shape through http.client."""
        stream = io.BytesIO()
        response = Response(stream)
        response.set_header("Content-Type", "application/json")
        response.header("x-multi-header", "one")
        response.header("x-multi-header", "two")
        response.status(HTTPStatus.CREATED).write(b"hello")

        parsed = http.client.HTTPResponse(FakeSocket(stream.getvalue()))
        parsed.begin()

        assert parsed.status == 201
        assert parsed.reason == "Created"
        assert parsed.getheader("Content-Type") == "application/json"
        assert parsed.getheader("x-multi-header") == "one,two"
        assert parsed.read() == b"hello"
