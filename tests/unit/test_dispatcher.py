"""
Unit tests for the request dispatcher.
"""

import pytest

from fileserver.dispatcher import Dispatcher
from fileserver.errors import HttpFault
from fileserver.handlers import Handler, ResponseDescriptor


class FakeConnection:
    """Records what the dispatcher sends."""

    def __init__(self, fail_after: int = None):
        self.sent = []
        self.fail_after = fail_after
        self.response_started = False

    def send_head(self, data: bytes):
        self.response_started = True
        self.send_all(data)

    def send_all(self, data: bytes):
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            raise BrokenPipeError("client went away")
        self.sent.append(data)

    def send_stream(self, chunks):
        total = 0
        for chunk in chunks:
            self.send_all(chunk)
            total += len(chunk)
        return total

    @property
    def data(self) -> bytes:
        return b"".join(self.sent)


class RaisingHandler(Handler):
    def __init__(self, exc):
        super().__init__(resolver=None)
        self.exc = exc

    def handle(self, request):
        raise self.exc


@pytest.fixture
def dispatcher(resolver) -> Dispatcher:
    return Dispatcher(resolver, chunk_size=4)


def with_handler(dispatcher: Dispatcher, method: str, handler: Handler) -> Dispatcher:
    handlers = dict(dispatcher.handlers)
    handlers[method] = handler
    dispatcher._handlers = handlers
    return dispatcher


class TestRouting:
    """Tests for handler selection."""

    def test_method_table(self, dispatcher):
        """Exactly GET, PUT and DELETE have handlers."""
        assert set(dispatcher.handlers) == {"GET", "PUT", "DELETE"}

    def test_method_table_read_only(self, dispatcher):
        """The method table cannot be modified."""
        with pytest.raises(TypeError):
            dispatcher.handlers["POST"] = dispatcher.handlers["GET"]

    def test_methods_case_sensitive(self, dispatcher, request_factory):
        """"get" is not GET."""
        descriptor = dispatcher.dispatch(request_factory("get", "/"))

        assert descriptor.status == 405
        assert descriptor.body == "Method get not allowed."

    @pytest.mark.parametrize("method", ["POST", "PATCH", "OPTIONS", "BREW"])
    def test_unknown_method(self, dispatcher, request_factory, method):
        """Any other method gets 405 naming the method."""
        descriptor = dispatcher.dispatch(request_factory(method, "/"))

        assert descriptor.status == 405
        assert descriptor.body == f"Method {method} not allowed."


class TestFaultNormalization:
    """Tests for turning exceptions into responses."""

    def test_forbidden_passthrough(self, dispatcher, request_factory):
        """A structured fault keeps its status and body."""
        descriptor = dispatcher.dispatch(request_factory("GET", "/../etc/passwd"))

        assert descriptor.status == 403
        assert descriptor.body == "Forbidden"

    def test_custom_http_fault(self, dispatcher, request_factory):
        """Arbitrary HttpFault codes are passed through verbatim."""
        with_handler(dispatcher, "GET", RaisingHandler(HttpFault(418, "teapot")))

        descriptor = dispatcher.dispatch(request_factory("GET", "/"))

        assert descriptor.status == 418
        assert descriptor.body == "teapot"

    def test_unstructured_error_is_500(self, dispatcher, request_factory):
        """Any other exception becomes 500 with its text as body."""
        with_handler(dispatcher, "GET", RaisingHandler(PermissionError("denied")))

        descriptor = dispatcher.dispatch(request_factory("GET", "/"))

        assert descriptor.status == 500
        assert descriptor.body == "denied"

    def test_empty_message_uses_class_name(self, dispatcher, request_factory):
        """An exception without text is described by its type."""
        with_handler(dispatcher, "GET", RaisingHandler(RuntimeError()))

        descriptor = dispatcher.dispatch(request_factory("GET", "/"))

        assert descriptor.status == 500
        assert descriptor.body == "RuntimeError"

    def test_unstructured_error_logged(self, dispatcher, request_factory, caplog):
        """500s are logged with a traceback."""
        with_handler(dispatcher, "GET", RaisingHandler(ValueError("boom")))

        with caplog.at_level("ERROR", logger="fileserver.dispatcher"):
            dispatcher.dispatch(request_factory("GET", "/x"))

        record = caplog.records[-1]
        assert "boom" in record.message
        assert record.exc_info is not None

    def test_invalid_percent_encoding_is_500(self, dispatcher, request_factory):
        """Undecodable paths fall into the generic fault branch."""
        descriptor = dispatcher.dispatch(request_factory("GET", "/%ff"))
        assert descriptor.status == 500

    def test_non_empty_directory_delete(self, dispatcher, root_dir, request_factory):
        """Filesystem errors from handlers surface as 500."""
        (root_dir / "sub").mkdir()
        (root_dir / "sub" / "a").write_bytes(b"x")

        descriptor = dispatcher.dispatch(request_factory("DELETE", "/sub"))

        assert descriptor.status == 500
        assert descriptor.body

    def test_callable(self, dispatcher, request_factory):
        """The dispatcher can be used directly as a handler function."""
        assert dispatcher(request_factory("GET", "/missing")).status == 404


class TestBuildResponse:
    """Tests for Dispatcher.build_response()."""

    def test_default_content_type(self, dispatcher, request_factory):
        """Content-Type defaults to text/plain."""
        response = dispatcher.build_response(
            ResponseDescriptor(status=404, body="File not found"),
            request_factory("GET", "/x"),
        )

        assert response.headers["Content-Type"] == "text/plain"
        assert response.body == b"File not found"

    def test_explicit_content_type(self, dispatcher, request_factory):
        response = dispatcher.build_response(
            ResponseDescriptor(body=b"{}", content_type="application/json"),
            request_factory("GET", "/x.json"),
        )
        assert response.headers["Content-Type"] == "application/json"

    def test_no_body(self, dispatcher, request_factory):
        """A None body is sent as empty."""
        response = dispatcher.build_response(
            ResponseDescriptor(status=204), request_factory("PUT", "/x")
        )
        assert response.body == b""

    def test_extra_headers_kept(self, dispatcher, request_factory):
        response = dispatcher.build_response(
            ResponseDescriptor(body="x", headers={"X-Request-ID": "abc"}),
            request_factory("GET", "/"),
        )
        assert response.headers["X-Request-ID"] == "abc"

    def test_connection_header(self, dispatcher, request_factory):
        """The Connection header reflects the keep-alive decision."""
        request = request_factory("GET", "/")

        kept = dispatcher.build_response(ResponseDescriptor(body="x"), request, True)
        closed = dispatcher.build_response(ResponseDescriptor(body="x"), request, False)

        assert kept.headers["Connection"] == "keep-alive"
        assert closed.headers["Connection"] == "close"

    def test_http10_stream_forces_close(self, dispatcher, request_factory):
        """A stream has no length on HTTP/1.0, so the connection must close."""
        descriptor = ResponseDescriptor(body=iter([b"abc"]))

        response = dispatcher.build_response(
            descriptor, request_factory("GET", "/", version="HTTP/1.0"), True
        )

        assert response.headers["Connection"] == "close"
        assert response.chunked is False

    def test_http11_stream_is_chunked(self, dispatcher, request_factory):
        response = dispatcher.build_response(
            ResponseDescriptor(body=iter([b"abc"])), request_factory("GET", "/"), True
        )
        assert response.chunked is True
        assert response.headers["Connection"] == "keep-alive"


class TestEmit:
    """Tests for Dispatcher.emit()."""

    def test_buffered_body(self, dispatcher, request_factory):
        """A buffered body is sent with Content-Length."""
        conn = FakeConnection()

        keep_alive = dispatcher.emit(
            ResponseDescriptor(status=404, body="File not found"),
            request_factory("GET", "/x"),
            conn,
        )

        head, _, body = conn.data.partition(b"\r\n\r\n")
        assert keep_alive is True
        assert head.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert b"Content-Length: 14" in head
        assert b"Content-Type: text/plain" in head
        assert body == b"File not found"

    def test_streamed_file(self, dispatcher, root_dir, request_factory):
        """A file download is chunk-encoded on HTTP/1.1."""
        (root_dir / "a.txt").write_bytes(b"hello world")
        request = request_factory("GET", "/a.txt")
        descriptor = dispatcher.dispatch(request)
        conn = FakeConnection()

        dispatcher.emit(descriptor, request, conn)

        head, _, body = conn.data.partition(b"\r\n\r\n")
        assert b"Transfer-Encoding: chunked" in head
        assert b"Content-Length" not in head
        assert body == b"4\r\nhell\r\n4\r\no wo\r\n3\r\nrld\r\n0\r\n\r\n"
        assert descriptor.body.closed

    def test_stream_closed_on_send_failure(self, dispatcher, root_dir, request_factory):
        """The file is released even if the client disconnects."""
        (root_dir / "a.txt").write_bytes(b"hello world")
        request = request_factory("GET", "/a.txt")
        descriptor = dispatcher.dispatch(request)

        with pytest.raises(OSError):
            dispatcher.emit(descriptor, request, FakeConnection(fail_after=1))

        assert descriptor.body.closed

    def test_no_content(self, dispatcher, request_factory):
        """204 responses carry no body or length."""
        conn = FakeConnection()

        dispatcher.emit(ResponseDescriptor(status=204), request_factory("PUT", "/x"), conn)

        head, _, body = conn.data.partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 204 No Content")
        assert b"Content-Length" not in head
        assert body == b""

    def test_http10_stream_closes(self, dispatcher, root_dir, request_factory):
        """On HTTP/1.0 a stream is raw bytes and the connection closes."""
        (root_dir / "a.txt").write_bytes(b"hello")
        request = request_factory("GET", "/a.txt", version="HTTP/1.0")
        conn = FakeConnection()

        keep_alive = dispatcher.emit(dispatcher.dispatch(request), request, conn, True)

        head, _, body = conn.data.partition(b"\r\n\r\n")
        assert keep_alive is False
        assert head.startswith(b"HTTP/1.0 200 OK")
        assert b"Connection: close" in head
        assert body == b"hello"

    def test_head_sends_no_body(self, dispatcher, request_factory):
        """A HEAD response stops after the header section."""
        conn = FakeConnection()

        dispatcher.emit(
            ResponseDescriptor(status=405, body="Method HEAD not allowed."),
            request_factory("HEAD", "/"),
            conn,
        )

        head, _, body = conn.data.partition(b"\r\n\r\n")
        assert b"Content-Length: 24" in head
        assert body == b""

    def test_marks_response_started(self, dispatcher, request_factory):
        conn = FakeConnection()

        dispatcher.emit(ResponseDescriptor(body="ok"), request_factory("GET", "/"), conn)

        assert conn.response_started

    def test_unencodable_header_sends_nothing(self, dispatcher, request_factory):
        """A header that fails to encode leaves the connection free for a 500."""
        conn = FakeConnection()
        descriptor = ResponseDescriptor(body="ok", headers={"X-Price": "€5"})

        with pytest.raises(UnicodeEncodeError):
            dispatcher.emit(descriptor, request_factory("GET", "/"), conn)

        assert conn.sent == []
        assert not conn.response_started

    def test_surrogate_escaped_text_body(self, dispatcher, request_factory):
        """A str body holding an undecodable filename goes out as the original bytes."""
        conn = FakeConnection()

        dispatcher.emit(
            ResponseDescriptor(body="caf\udce9.txt"), request_factory("GET", "/"), conn
        )

        _, _, body = conn.data.partition(b"\r\n\r\n")
        assert body == b"caf\xe9.txt"
