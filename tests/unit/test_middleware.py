"""
Unit tests for the middleware pipeline and access logging.
"""

import json

import pytest

from fileserver.handlers import ResponseDescriptor
from fileserver.middleware import (
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
)
from fileserver.middleware.logging import body_length


def final_handler(request):
    return ResponseDescriptor(status=200, body="ok")


class Recorder(Middleware):
    """Appends before/after markers to a shared list."""

    def __init__(self, label, calls):
        self.label = label
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(f"{self.label}-before")
        descriptor = next(request)
        self.calls.append(f"{self.label}-after")
        return descriptor


class Deny(Middleware):
    def __call__(self, request, next):
        return ResponseDescriptor(status=403, body="Forbidden")


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_empty_pipeline(self, request_factory):
        handle = MiddlewarePipeline().wrap(final_handler)
        assert handle(request_factory("GET", "/")).body == "ok"

    def test_order(self, request_factory):
        """First added runs outermost."""
        calls = []

        pipeline = MiddlewarePipeline()
        pipeline.add(Recorder("outer", calls)).add(Recorder("inner", calls))
        pipeline.wrap(final_handler)(request_factory("GET", "/"))

        assert calls == ["outer-before", "inner-before", "inner-after", "outer-after"]

    def test_short_circuit(self, request_factory):
        pipeline = MiddlewarePipeline().add(Deny())
        descriptor = pipeline.wrap(final_handler)(request_factory("GET", "/"))

        assert descriptor.status == 403

    def test_len_and_iter(self):
        pipeline = MiddlewarePipeline().add(Deny())

        assert len(pipeline) == 1
        assert [m.name for m in pipeline] == ["Deny"]


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def test_text_line(self, request_factory, caplog):
        handle = MiddlewarePipeline().add(LoggingMiddleware()).wrap(final_handler)

        with caplog.at_level("INFO", logger="fileserver.access"):
            handle(request_factory("GET", "/a.txt?x=1"))

        line = caplog.records[-1].message
        assert line.startswith("127.0.0.1 - - [")
        assert '"GET /a.txt?x=1" 200 2 ' in line

    def test_json_line(self, request_factory, caplog):
        handle = MiddlewarePipeline().add(
            LoggingMiddleware(log_format="json")
        ).wrap(final_handler)

        with caplog.at_level("INFO", logger="fileserver.access"):
            descriptor = handle(request_factory("PUT", "/b.txt"))

        entry = json.loads(caplog.records[-1].message)
        assert entry["method"] == "PUT"
        assert entry["path"] == "/b.txt"
        assert entry["status_code"] == 200
        assert entry["request_id"] == descriptor.headers["X-Request-ID"]

    def test_request_id_header(self, request_factory):
        handle = MiddlewarePipeline().add(LoggingMiddleware()).wrap(final_handler)
        descriptor = handle(request_factory("GET", "/"))

        assert len(descriptor.headers["X-Request-ID"]) == 8

    def test_request_id_disabled(self, request_factory):
        handle = MiddlewarePipeline().add(
            LoggingMiddleware(include_request_id=False)
        ).wrap(final_handler)

        assert "X-Request-ID" not in handle(request_factory("GET", "/")).headers


class TestBodyLength:
    """Tests for body_length()."""

    @pytest.mark.parametrize("body, expected", [
        (None, 0),
        ("", 0),
        ("café", 5),
        ("caf\udce9", 4),
        (b"abc", 3),
        (iter([b"abc"]), None),
    ])
    def test_lengths(self, body, expected):
        assert body_length(ResponseDescriptor(body=body)) == expected
