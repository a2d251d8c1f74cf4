"""
Unit tests for HTTP request parsing.
"""

import io

import pytest

from staticserver.http.request import (
    HTTPParseError,
    HTTPRequest,
    RequestParser,
    decode_path,
)


def stream(data: bytes) -> io.BufferedReader:
    return io.BufferedReader(io.BytesIO(data))


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self):
        """Test parsing a simple GET request."""
        request = RequestParser().parse(stream(
            b"GET /index.html HTTP/1.1\r\n"
            b"Host: localhost:8080\r\n"
            b"\r\n"
        ), ("10.0.0.5", 51000))

        assert request.method == "GET"
        assert request.path == "/index.html"
        assert request.target == "/index.html"
        assert request.version == "HTTP/1.1"
        assert request.headers == {"host": "localhost:8080"}
        assert request.client_address == ("10.0.0.5", 51000)

    def test_end_of_stream_returns_none(self):
        """An empty stream is a clean close, not an error."""
        assert RequestParser().parse(stream(b"")) is None

    def test_only_blank_lines_returns_none(self):
        assert RequestParser().parse(stream(b"\r\n\r\n\n")) is None

    def test_blank_lines_before_request_skipped(self):
        request = RequestParser().parse(stream(b"\r\n\r\nGET /a.html HTTP/1.1\r\n\r\n"))
        assert request.path == "/a.html"

    def test_header_names_lowercased_values_stripped(self):
        request = RequestParser().parse(stream(
            b"GET / HTTP/1.1\r\n"
            b"Content-TYPE:   text/plain  \r\n"
            b"\r\n"
        ))
        assert request.headers["content-type"] == "text/plain"
        assert "Content-TYPE" not in request.headers

    def test_header_split_on_first_colon(self):
        request = RequestParser().parse(stream(
            b"GET / HTTP/1.1\r\nHost: localhost:8080\r\n\r\n"
        ))
        assert request.headers["host"] == "localhost:8080"

    def test_malformed_header_skipped(self):
        request = RequestParser().parse(stream(
            b"GET / HTTP/1.1\r\n"
            b"this line has no colon\r\n"
            b"Accept: */*\r\n"
            b"\r\n"
        ))
        assert request.headers == {"accept": "*/*"}

    def test_repeated_header_last_wins(self):
        request = RequestParser().parse(stream(
            b"GET / HTTP/1.1\r\n"
            b"Connection: keep-alive\r\n"
            b"connection: close\r\n"
            b"\r\n"
        ))
        assert request.headers["connection"] == "close"
        assert request.wants_close

    def test_version_is_optional(self):
        request = RequestParser().parse(stream(b"GET /about\r\n\r\n"))
        assert request.path == "/about"
        assert request.version is None

    def test_trailing_space_on_request_line(self):
        request = RequestParser().parse(stream(b"GET /a.html HTTP/1.0 \r\n\r\n"))
        assert request.version == "HTTP/1.0"

    def test_headers_end_at_eof(self):
        """A request cut off before the blank line is still usable."""
        request = RequestParser().parse(stream(b"GET / HTTP/1.1\r\nHost: x\r\n"))
        assert request.headers == {"host": "x"}

    def test_single_token_request_line(self):
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(stream(b"GARBAGE\r\n\r\n"))
        assert exc_info.value.status_code == 400

    def test_parse_error_carries_headers(self):
        """Connection: close on a malformed request must not be lost."""
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(stream(b"GET\r\nConnection: close\r\n\r\n"))
        assert exc_info.value.headers == {"connection": "close"}

    def test_stream_stays_in_sync_after_error(self):
        parser = RequestParser()
        s = stream(
            b"BROKEN\r\nX-Junk: 1\r\n\r\n"
            b"GET /next.html HTTP/1.1\r\n\r\n"
        )
        with pytest.raises(HTTPParseError):
            parser.parse(s)

        request = parser.parse(s)
        assert request.path == "/next.html"
        assert "x-junk" not in request.headers

    def test_pipelined_requests(self):
        parser = RequestParser()
        s = stream(
            b"GET /one.html HTTP/1.1\r\n\r\n"
            b"GET /two.html HTTP/1.1\r\n\r\n"
        )
        assert parser.parse(s).path == "/one.html"
        assert parser.parse(s).path == "/two.html"
        assert parser.parse(s) is None

    def test_percent_decoding(self):
        request = RequestParser().parse(stream(b"GET /guide%20v2.html HTTP/1.1\r\n\r\n"))
        assert request.path == "/guide v2.html"
        assert request.target == "/guide%20v2.html"

    def test_query_kept_in_path(self):
        """The resolver strips the query, not the parser."""
        request = RequestParser().parse(stream(b"GET /a.html?x=1 HTTP/1.1\r\n\r\n"))
        assert request.path == "/a.html?x=1"

    def test_bad_escape_rejected(self):
        with pytest.raises(HTTPParseError):
            RequestParser().parse(stream(b"GET /%zz.html HTTP/1.1\r\n\r\n"))

    def test_line_too_long(self):
        parser = RequestParser(max_line_size=256)
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(stream(b"GET /" + b"a" * 400 + b" HTTP/1.1\r\n\r\n"))
        assert exc_info.value.status_code == 400
        assert exc_info.value.fatal

    def test_line_too_long_leaves_tail_unread(self):
        """Only max_line_size bytes are consumed; the rest is not a request."""
        parser = RequestParser(max_line_size=256)
        s = stream(b"GET /" + b"a" * 400 + b"GET /next.html HTTP/1.1\r\n\r\n")
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(s)
        assert exc_info.value.fatal
        assert s.read(1) == b"a"

    def test_header_line_too_long_is_fatal(self):
        parser = RequestParser(max_line_size=64)
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(stream(b"GET / HTTP/1.1\r\nX-Long: " + b"v" * 100 + b"\r\n\r\n"))
        assert exc_info.value.fatal

    def test_ordinary_parse_error_not_fatal(self):
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(stream(b"GARBAGE\r\n\r\n"))
        assert not exc_info.value.fatal

    def test_invalid_utf8_request_line(self):
        with pytest.raises(HTTPParseError):
            RequestParser().parse(stream(b"GET /\xff\xfe HTTP/1.1\r\n\r\n"))


class TestDecodePath:
    """Tests for decode_path()."""

    def test_plain_path_unchanged(self):
        assert decode_path("/docs/a.html") == "/docs/a.html"

    def test_utf8_escapes(self):
        assert decode_path("/caf%C3%A9.html") == "/café.html"

    def test_plus_is_not_a_space(self):
        assert decode_path("/a+b.html") == "/a+b.html"

    def test_encoded_dots_decoded(self):
        assert decode_path("/%2e%2e/secret.txt") == "/../secret.txt"

    @pytest.mark.parametrize("raw", ["/%zz", "/a%4", "/100%", "/%ff.html"])
    def test_invalid_rejected(self, raw):
        with pytest.raises(HTTPParseError):
            decode_path(raw)


class TestHTTPRequest:
    """Tests for HTTPRequest class."""

    def test_wants_close_case_insensitive(self):
        request = HTTPRequest(method="GET", path="/", headers={"connection": "CLOSE"})
        assert request.wants_close

    def test_keep_alive_header_not_close(self):
        request = HTTPRequest(method="GET", path="/", headers={"connection": "keep-alive"})
        assert not request.wants_close
