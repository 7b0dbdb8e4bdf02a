"""
Unit tests for HTTP response serialization.
"""

from datetime import datetime, timezone

from fileserver.http import (
    HTTPResponse,
    HTTPStatus,
    ResponseBuilder,
    error_response,
    format_http_date,
    interim_continue,
)


def split(raw: bytes):
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestBufferedResponse:
    """Tests for responses with an in-memory body."""

    def test_status_line(self):
        response = HTTPResponse(status=404, body=b"File not found")
        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_content_length(self):
        status, headers, body = split(HTTPResponse(body=b"hello").to_bytes())

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "5"
        assert "Transfer-Encoding" not in headers
        assert body == b"hello"

    def test_empty_body(self):
        _, headers, body = split(HTTPResponse(body=b"").to_bytes())

        assert headers["Content-Length"] == "0"
        assert body == b""

    def test_date_and_server(self):
        _, headers, _ = split(HTTPResponse().to_bytes(server_name="test/1"))

        assert headers["Server"] == "test/1"
        assert headers["Date"].endswith(" GMT")

    def test_header_order_kept(self):
        response = HTTPResponse(headers={"Content-Type": "text/plain", "X-A": "1"})
        lines = response.head_bytes().decode("latin-1").split("\r\n")

        assert lines[1] == "Content-Type: text/plain"
        assert lines[2] == "X-A: 1"

    def test_unknown_status_phrase(self):
        """Codes outside the table still get a well-formed status line."""
        assert HTTPResponse(status=418).status_line == "HTTP/1.1 418 Client Error"


class TestStreamedResponse:
    """Tests for responses with a lazy body."""

    def test_chunked_encoding(self):
        response = HTTPResponse(body=iter([b"hello", b"", b" world!"]))

        _, headers, body = split(response.to_bytes())

        assert headers["Transfer-Encoding"] == "chunked"
        assert "Content-Length" not in headers
        assert body == b"5\r\nhello\r\n7\r\n world!\r\n0\r\n\r\n"

    def test_chunk_size_is_hex(self):
        response = HTTPResponse(body=iter([b"x" * 255]))
        assert b"\r\n\r\nff\r\n" in response.to_bytes()

    def test_empty_stream(self):
        _, _, body = split(HTTPResponse(body=iter([])).to_bytes())
        assert body == b"0\r\n\r\n"

    def test_close_delimited(self):
        """Without chunking the stream is sent raw."""
        response = HTTPResponse(body=iter([b"ab", b"cd"]), version="HTTP/1.0",
                                chunked=False)

        _, headers, body = split(response.to_bytes())

        assert "Transfer-Encoding" not in headers
        assert "Content-Length" not in headers
        assert body == b"abcd"

    def test_close_releases_stream(self):
        class Closable:
            closed = False

            def __iter__(self):
                return iter([b"x"])

            def close(self):
                self.closed = True

        body = Closable()
        HTTPResponse(body=body).close()
        assert body.closed


class TestBodilessResponses:
    """Tests for statuses and methods without a body."""

    def test_no_content(self):
        response = HTTPResponse(status=HTTPStatus.NO_CONTENT, body=b"ignored",
                                headers={"Content-Length": "7"})

        status, headers, body = split(response.to_bytes())

        assert status == "HTTP/1.1 204 No Content"
        assert "Content-Length" not in headers
        assert body == b""

    def test_head_only(self):
        """HEAD keeps the framing headers but sends no body."""
        response = HTTPResponse(body=b"hello", head_only=True)

        _, headers, body = split(response.to_bytes())

        assert headers["Content-Length"] == "5"
        assert body == b""

    def test_interim_continue(self):
        assert interim_continue() == b"HTTP/1.1 100 Continue\r\n\r\n"


class TestResponseBuilder:
    """Tests for ResponseBuilder and helpers."""

    def test_text(self):
        response = ResponseBuilder().status(404).text("File not found").build()

        assert response.status == 404
        assert response.headers["Content-Type"] == "text/plain"
        assert response.body == b"File not found"

    def test_text_keeps_undecodable_bytes(self):
        """Surrogate-escaped text (from a bytes filename) encodes back to its bytes."""
        response = ResponseBuilder().text("caf\udce9.txt").build()
        assert response.body == b"caf\xe9.txt"

    def test_version_controls_chunking(self):
        response = ResponseBuilder().version("HTTP/1.0").text("x").build()

        assert response.version == "HTTP/1.0"
        assert response.chunked is False

    def test_close_connection(self):
        assert ResponseBuilder().close_connection().build().headers["Connection"] == "close"
        assert "Connection" not in ResponseBuilder().build().headers

    def test_error_response(self):
        status, headers, body = split(error_response(400, "Bad request").to_bytes())

        assert status == "HTTP/1.1 400 Bad Request"
        assert headers["Connection"] == "close"
        assert headers["Content-Type"] == "text/plain"
        assert body == b"Bad request"

    def test_format_http_date(self):
        dt = datetime(2026, 10, 17, 9, 5, 3, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Sat, 17 Oct 2026 09:05:03 GMT"
