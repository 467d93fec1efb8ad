"""
Unit tests for Response, its constructors, and ResponseBuilder.
"""

import json
from dataclasses import FrozenInstanceError

import pytest

from httpkit.http import (
    Cookie,
    CookieJar,
    HTTPStatus,
    Response,
    ResponseBuilder,
    accepted,
    bad_request,
    created,
    download,
    file_response,
    forbidden,
    html_response,
    inline,
    internal_error,
    json_response,
    method_not_allowed,
    no_content,
    not_found,
    ok,
    permanent_redirect,
    redirect,
    see_other,
    stream,
    temporary_redirect,
    text_response,
    too_many_requests,
    unauthorized,
    xml_response,
)


class TestResponseValue:
    """Tests for the Response value itself."""

    def test_defaults(self):
        response = Response()

        assert response.status == 200
        assert response.reason == "OK"
        assert response.content == b""
        assert len(response.headers) == 0
        assert len(response.cookies) == 0

    @pytest.mark.parametrize("status", [99, 600, 0, -1])
    def test_invalid_status(self, status):
        with pytest.raises(ValueError):
            Response(status=status)

    def test_immutable(self):
        response = text_response("x")

        with pytest.raises(FrozenInstanceError):
            response.status = 404

    def test_with_methods_leave_original(self):
        """Every mutator returns a new value."""
        original = text_response("x")

        changed = (original
            .with_status(201)
            .with_header("X-A", "1")
            .with_added_header("X-A", "2")
            .with_simple_cookie("theme", "dark"))

        assert original.status == 200
        assert "X-A" not in original.headers
        assert not original.has_cookie("theme")
        assert changed.status == 201
        assert changed.headers.get("X-A") == ["1", "2"]
        assert changed.get_cookie("theme").value == "dark"

    def test_with_headers_replaces_named_only(self):
        response = text_response("x", headers={"X-Keep": "1"})

        updated = response.with_headers({"Content-Type": "text/csv", "X-New": "2"})

        assert updated.header("Content-Type") == "text/csv"
        assert updated.header("X-Keep") == "1"
        assert updated.header("X-New") == "2"

    def test_without_header_and_cookie(self):
        response = text_response("x").with_simple_cookie("a", "1")

        stripped = response.without_header("Content-Type").without_cookie("a")

        assert not stripped.has_header("Content-Type")
        assert not stripped.has_cookie("a")

    def test_cookie_jar_is_private_copy(self):
        jar = CookieJar([Cookie("a", "1")])
        response = Response(cookies=jar)

        jar.set(Cookie("b", "2"))

        assert not response.has_cookie("b")

    def test_with_expired_cookie(self):
        response = ok().with_expired_cookie("theme")

        assert response.get_cookie("theme").is_expired

    def test_outbound_headers_include_set_cookie(self):
        response = ok().with_simple_cookie("a", "1").with_simple_cookie("b", "2")

        lines = response.outbound_headers().get("Set-Cookie")

        assert [line.split(";")[0] for line in lines] == ["a=1", "b=2"]
        assert "Set-Cookie" not in response.headers

    def test_with_body(self):
        response = ok("old").with_body("new")

        assert response.text == "new"

    def test_str_rendering(self):
        rendered = str(text_response("hello", status=404))

        assert rendered.startswith("HTTP/1.1 404 Not Found\r\n")
        assert "Content-Type: text/plain; charset=UTF-8\r\n" in rendered
        assert rendered.endswith("\r\n\r\nhello")

    def test_str_truncates_large_body(self):
        rendered = str(ok("x" * 2000))

        assert rendered.endswith("x" * 1024 + "... (truncated)")

    def test_streaming_body(self):
        response = stream(["a"])

        assert response.is_streaming
        assert response.content == b""


class TestContentConstructors:

    def test_json(self):
        response = json_response({"name": "Ada", "tags": ["x"]}, status=201)

        assert response.status == 201
        assert response.header("Content-Type") == "application/json"
        assert json.loads(response.text) == {"name": "Ada", "tags": ["x"]}
        assert response.text == '{"name":"Ada","tags":["x"]}'

    def test_json_keeps_unicode(self):
        assert json_response({"city": "Zürich"}).content == '{"city":"Zürich"}'.encode("utf-8")

    def test_json_not_serializable(self):
        with pytest.raises(TypeError):
            json_response({"obj": object()})

    @pytest.mark.parametrize("factory, content_type", [
        (html_response, "text/html; charset=UTF-8"),
        (text_response, "text/plain; charset=UTF-8"),
        (xml_response, "application/xml; charset=UTF-8"),
    ])
    def test_text_types(self, factory, content_type):
        response = factory("<x/>")

        assert response.header("Content-Type") == content_type
        assert response.text == "<x/>"

    def test_user_headers_override_defaults(self):
        response = json_response({}, headers={"content-type": "application/problem+json"})

        assert response.headers.get("Content-Type") == ["application/problem+json"]


class TestFileConstructors:

    def test_file_response(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        response = file_response(path)

        assert response.header("Content-Type") == "text/plain"
        assert response.content == b"hello"

    def test_download(self, tmp_path):
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF-1.4")

        response = download(path, "Q3 report.pdf")

        assert response.header("Content-Type") == "application/pdf"
        assert response.header("Content-Disposition") == 'attachment; filename="Q3 report.pdf"'
        assert response.header("Content-Length") == "8"
        assert response.header("Cache-Control") == "no-cache, private"

    def test_inline(self, tmp_path):
        path = tmp_path / "logo.png"
        path.write_bytes(b"\x89PNG")

        response = inline(path)

        assert response.header("Content-Disposition") == 'inline; filename="logo.png"'
        assert response.header("Cache-Control") == "public, max-age=86400"

    @pytest.mark.parametrize("factory", [file_response, download, inline])
    def test_missing_file(self, tmp_path, factory):
        with pytest.raises(FileNotFoundError):
            factory(tmp_path / "missing.txt")


class TestStreamConstructor:

    def test_defaults(self):
        response = stream(lambda size: b"")

        assert response.header("Transfer-Encoding") == "chunked"
        assert response.header("Cache-Control") == "no-cache, private"
        assert response.header("Content-Type") == "text/plain"

    def test_reads_producer(self):
        response = stream(["one", "two"], headers={"Content-Type": "text/event-stream"})

        assert response.body.read() == b"one"
        assert response.body.read() == b"two"
        assert response.body.read() == b""
        assert response.header("Content-Type") == "text/event-stream"


class TestRedirects:

    @pytest.mark.parametrize("factory, status", [
        (redirect, 302),
        (permanent_redirect, 301),
        (see_other, 303),
        (temporary_redirect, 307),
    ])
    def test_redirect_statuses(self, factory, status):
        response = factory("/login")

        assert response.status == status
        assert response.header("Location") == "/login"
        assert response.content == b""


class TestStatusShortcuts:

    @pytest.mark.parametrize("factory, status, body", [
        (bad_request, 400, "Bad Request"),
        (unauthorized, 401, "Unauthorized"),
        (forbidden, 403, "Forbidden"),
        (not_found, 404, "Not Found"),
        (internal_error, 500, "Internal Server Error"),
    ])
    def test_error_defaults(self, factory, status, body):
        response = factory()

        assert response.status == status
        assert response.text == body

    def test_created_with_location(self):
        response = created("/users/42", '{"id":42}')

        assert response.status == 201
        assert response.header("Location") == "/users/42"
        assert response.text == '{"id":42}'

    def test_created_without_location(self):
        assert not created().has_header("Location")

    def test_accepted_and_no_content(self):
        assert accepted().status == 202
        assert no_content().status == 204
        assert no_content().content == b""

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET", "POST"])

        assert response.status == 405
        assert response.header("Allow") == "GET, POST"

    def test_too_many_requests(self):
        response = too_many_requests(retry_after=30)

        assert response.status == 429
        assert response.header("Retry-After") == "30"
        assert not too_many_requests().has_header("Retry-After")


class TestResponseBuilder:
    """Tests for the fluent builder."""

    def test_build_json(self):
        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json({"id": 42})
            .header("Location", "/users/42")
            .cookie(Cookie("seen", "1"))
            .build())

        assert response.status == 201
        assert response.text == '{"id":42}'
        assert response.header("Content-Type") == "application/json"
        assert response.header("Location") == "/users/42"
        assert response.get_cookie("seen").value == "1"

    def test_no_cache(self):
        response = ResponseBuilder().text("x").no_cache().build()

        assert response.header("Cache-Control") == "no-store, no-cache, must-revalidate"
        assert response.header("Pragma") == "no-cache"

    def test_cache(self):
        assert ResponseBuilder().cache(60).build().header("Cache-Control") == "public, max-age=60"

    def test_file_content_type(self):
        response = ResponseBuilder().file(b"a,b", "export.csv").build()

        assert response.header("Content-Type") == "text/csv; charset=utf-8"

    def test_redirect(self):
        response = ResponseBuilder().redirect("/next", HTTPStatus.SEE_OTHER).build()

        assert response.status == 303
        assert response.header("Location") == "/next"

    def test_html(self):
        response = ResponseBuilder().html("<p>hi</p>").build()

        assert response.header("Content-Type") == "text/html; charset=UTF-8"


class TestHTTPStatus:

    def test_phrases(self):
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert Response(status=429).reason == "Too Many Requests"

    def test_unnamed_code_falls_back_to_class(self):
        assert Response(status=418).reason == "Client Error"
        assert Response(status=299).reason == "Success"

    def test_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.FOUND.is_redirect
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.BAD_GATEWAY.is_server_error
        assert HTTPStatus.BAD_REQUEST.is_error
        assert not HTTPStatus.OK.is_error
