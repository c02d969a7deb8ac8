"""
Unit tests for the status code table.
"""

import pytest

from httpframe.http.status_codes import (
    HTTPStatus,
    STATUS_PHRASES,
    reason_phrase,
    resolve_status,
)


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test that common statuses have the standard phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.CREATED.phrase == "Created"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.IM_A_TEAPOT.phrase == "I'm a teapot"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_every_member_has_phrase(self):
        """Test that the enum and the phrase table agree."""
        assert {int(s) for s in HTTPStatus} == set(STATUS_PHRASES)

    def test_status_categories(self):
        """Test status category helpers."""
        assert HTTPStatus.CONTINUE.is_informational
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.FOUND.is_redirect
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error

        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error
        assert not HTTPStatus.OK.is_error


class TestPhraseLookup:
    """Tests for reason_phrase() and resolve_status()."""

    @pytest.mark.parametrize("code,phrase", [
        (100, "Continue"),
        (204, "No Content"),
        (301, "Moved Permanently"),
        (429, "Too Many Requests"),
        (511, "Network Authentication Required"),
    ])
    def test_known_codes(self, code, phrase):
        """Test lookups with plain integers."""
        assert reason_phrase(code) == phrase
        assert resolve_status(code) == (code, phrase)

    @pytest.mark.parametrize("code", [9999, 0, 103, 299, 306, 509, 600])
    def test_unknown_codes_fall_back_to_200(self, code):
        """Test that unknown codes become 200 OK instead of failing."""
        assert reason_phrase(code) is None
        assert resolve_status(code) == (200, "OK")

    def test_table_is_read_only(self):
        """Test that the shared table cannot be modified at runtime."""
        with pytest.raises(TypeError):
            STATUS_PHRASES[299] = "Custom"  # type: ignore[index]
