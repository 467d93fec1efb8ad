"""
Unit tests for middleware composition.
"""

import pytest

from httpkit.http import Request, Response, text_response
from httpkit.middleware import (
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    function_middleware,
)


class Tracer(Middleware):
    """Records before/after events into a shared list."""

    def __init__(self, label: str, events: list):
        self.label = label
        self.events = events

    def process(self, request, next):
        self.events.append(f"{self.label}:before")
        response = next(request)
        self.events.append(f"{self.label}:after")
        return response.with_added_header("X-Trace", self.label)


class ShortCircuit(Middleware):
    def __init__(self, label: str, events: list):
        self.label = label
        self.events = events

    def process(self, request, next):
        self.events.append(f"{self.label}:short")
        return text_response("from short-circuit", status=418)


def tracing_handler(events: list):
    def handler(request: Request) -> Response:
        events.append("H")
        return text_response("handled")
    return handler


class TestOrdering:
    """Registration order on the way in, reverse on the way out."""

    def test_before_and_after_order(self):
        """A, B, C run before H in order, and after it in reverse."""
        events = []
        pipeline = MiddlewarePipeline().use(
            Tracer("A", events), Tracer("B", events), Tracer("C", events)
        )

        pipeline.process(Request.create("GET", "/"), tracing_handler(events))

        assert events == [
            "A:before", "B:before", "C:before",
            "H",
            "C:after", "B:after", "A:after",
        ]

    def test_innermost_header_added_first(self):
        """Headers appended on the way out show the LIFO unwinding."""
        events = []
        pipeline = MiddlewarePipeline().use(Tracer("A", events), Tracer("B", events))

        response = pipeline.process(Request.create("GET", "/"), tracing_handler(events))

        assert response.headers.get("X-Trace") == ["B", "A"]

    def test_wrap_is_reusable(self):
        """The composed chain gives the same trace on every call."""
        events = []
        pipeline = MiddlewarePipeline().use(Tracer("A", events), Tracer("B", events))
        chain = pipeline.wrap(tracing_handler(events))

        chain(Request.create("GET", "/"))
        first = list(events)
        events.clear()
        chain(Request.create("GET", "/"))

        assert events == first


class TestShortCircuit:
    """A unit that skips next stops downstream layers only."""

    def test_downstream_skipped_upstream_sees_response(self):
        """B short-circuits: C and H never run, A still unwinds."""
        events = []
        pipeline = MiddlewarePipeline().use(
            Tracer("A", events), ShortCircuit("B", events), Tracer("C", events)
        )

        response = pipeline.process(Request.create("GET", "/"), tracing_handler(events))

        assert events == ["A:before", "B:short", "A:after"]
        assert response.status == 418
        assert response.text == "from short-circuit"
        assert response.headers.get("X-Trace") == ["A"]


class TestEmptyPipeline:

    def test_wrap_returns_handler_itself(self):
        """No middleware means the handler is the chain."""
        def handler(request):
            return text_response("direct")

        assert MiddlewarePipeline().wrap(handler) is handler

    def test_process_equals_direct_call(self):
        request = Request.create("GET", "/")
        response = MiddlewarePipeline().process(request, lambda r: text_response("direct"))

        assert response.status == 200
        assert response.text == "direct"


class TestRequestReplacement:

    def test_downstream_sees_new_request_upstream_keeps_original(self):
        """A layer may hand on a new request; the original stays untouched."""
        seen = {}

        @function_middleware
        def tag(request, next):
            seen["outer"] = request
            return next(request.with_attribute("user", "ada"))

        def handler(request):
            seen["inner"] = request
            return text_response(request.attribute("user"))

        pipeline = MiddlewarePipeline().add(tag)
        response = pipeline.process(Request.create("GET", "/"), handler)

        assert response.text == "ada"
        assert seen["inner"].attribute("user") == "ada"
        assert seen["outer"].attribute("user") is None


class TestFunctionMiddleware:

    def test_name_defaults_to_function_name(self):
        def add_header(request, next):
            return next(request)

        assert FunctionMiddleware(add_header).name == "add_header"
        assert FunctionMiddleware(add_header, name="custom").name == "custom"

    def test_decorator_produces_middleware(self):
        @function_middleware
        def powered_by(request, next):
            return next(request).with_header("X-Powered-By", "httpkit")

        assert isinstance(powered_by, Middleware)
        response = MiddlewarePipeline().add(powered_by).process(
            Request.create("GET", "/"), lambda r: text_response("ok")
        )
        assert response.header("X-Powered-By") == "httpkit"

    def test_middleware_is_callable(self):
        """mw(request, next) delegates to process()."""
        events = []
        tracer = Tracer("A", events)

        response = tracer(Request.create("GET", "/"), lambda r: text_response("ok"))

        assert events == ["A:before", "A:after"]
        assert response.header("X-Trace") == "A"


class TestPipelineContainer:

    def test_len_and_iter(self):
        events = []
        a, b = Tracer("A", events), Tracer("B", events)
        pipeline = MiddlewarePipeline().add(a).add(b)

        assert len(pipeline) == 2
        assert list(pipeline) == [a, b]

    def test_middleware_base_is_abstract(self):
        with pytest.raises(TypeError):
            Middleware()
