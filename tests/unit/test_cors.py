"""
Unit tests for CORS middleware.
"""

from httpkit.http import Request, text_response
from httpkit.middleware import CORSConfig, CORSMiddleware


def request_from(origin=None, method="GET"):
    headers = {"Origin": origin} if origin else {}
    return Request.create(method, "https://api.example.com/items", headers=headers)


class TestPreflight:

    def test_preflight_answered_without_handler(self):
        """OPTIONS from an allowed origin: 204 with the three headers."""
        calls = []

        def handler(request):
            calls.append(request)
            return text_response("should not run")

        cors = CORSMiddleware(CORSConfig(allow_origins=["https://a.com"]))

        response = cors.process(request_from("https://a.com", "OPTIONS"), handler)

        assert response.status == 204
        assert response.header("Access-Control-Allow-Origin") == "https://a.com"
        assert response.header("Access-Control-Allow-Methods") == "GET, POST, PUT, DELETE, OPTIONS, PATCH"
        assert response.header("Access-Control-Allow-Headers") == (
            "Content-Type, Authorization, X-Requested-With, Accept"
        )
        assert calls == []

    def test_preflight_max_age_only_when_positive(self, ok_handler):
        default = CORSMiddleware().process(request_from("https://a.com", "OPTIONS"), ok_handler)
        cached = CORSMiddleware(CORSConfig(max_age=600)).process(
            request_from("https://a.com", "OPTIONS"), ok_handler
        )

        assert "Access-Control-Max-Age" not in default.headers
        assert cached.header("Access-Control-Max-Age") == "600"

    def test_preflight_without_origin_is_bare_204(self, ok_handler):
        response = CORSMiddleware().process(request_from(method="OPTIONS"), ok_handler)

        assert response.status == 204
        assert "Access-Control-Allow-Origin" not in response.headers


class TestActualRequest:

    def test_no_origin_passes_through(self, ok_handler):
        response = CORSMiddleware().process(request_from(), ok_handler)

        assert response.text == "handled"
        assert not any(name.startswith("Access-Control") for name in response.headers.names())

    def test_disallowed_origin_unchanged(self, ok_handler):
        cors = CORSMiddleware(CORSConfig(allow_origins=["https://a.com"]))

        response = cors.process(request_from("https://evil.com"), ok_handler)

        assert response.status == 200
        assert "Access-Control-Allow-Origin" not in response.headers

    def test_wildcard_echoes_origin(self, ok_handler):
        response = CORSMiddleware().process(request_from("https://b.com"), ok_handler)

        assert response.header("Access-Control-Allow-Origin") == "https://b.com"
        assert "Access-Control-Allow-Methods" not in response.headers

    def test_credentials_and_expose_headers(self, ok_handler):
        cors = CORSMiddleware(CORSConfig(
            allow_origins=["https://a.com"],
            allow_credentials=True,
            expose_headers=["X-Total-Count", "X-Request-ID"],
        ))

        response = cors.process(request_from("https://a.com"), ok_handler)

        assert response.header("Access-Control-Allow-Credentials") == "true"
        assert response.header("Access-Control-Expose-Headers") == "X-Total-Count, X-Request-ID"

    def test_error_response_still_marked(self, server):
        """Headers go on whatever response comes back, errors included."""
        server.add_middleware(CORSMiddleware())
        server.add_middleware(lambda request, next: text_response("nope", status=403))

        response = server.handle(request_from("https://a.com"), lambda r: text_response("x"))

        assert response.status == 403
        assert response.header("Access-Control-Allow-Origin") == "https://a.com"


class TestConfig:

    def test_is_origin_allowed(self):
        config = CORSConfig(allow_origins=["https://a.com"])

        assert config.is_origin_allowed("https://a.com")
        assert not config.is_origin_allowed("https://b.com")
        assert CORSConfig().is_origin_allowed("https://anything.test")
