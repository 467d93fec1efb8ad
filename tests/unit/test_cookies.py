"""
Unit tests for Cookie and CookieJar.
"""

import pytest

from httpkit.http import Cookie, CookieJar

NOW = 1_700_000_000  # Tue, 14 Nov 2023 22:13:20 GMT


class TestCookieHeader:

    def test_session_cookie(self):
        """max_age 0: no Max-Age and no Expires."""
        header = Cookie("theme", "dark").to_header_string(NOW)

        assert header == "theme=dark; Path=/; HttpOnly; SameSite=Lax"

    def test_persistent_cookie(self):
        header = Cookie("theme", "dark", max_age=2592000).to_header_string(NOW)

        assert header == (
            "theme=dark; Max-Age=2592000; Expires=Thu, 14 Dec 2023 22:13:20 GMT; "
            "Path=/; HttpOnly; SameSite=Lax"
        )

    def test_all_attributes(self):
        cookie = Cookie(
            "sid", "abc", path="/app", domain="example.com",
            secure=True, http_only=False, same_site="Strict",
        )

        assert cookie.to_header_string(NOW) == (
            "sid=abc; Domain=example.com; Path=/app; Secure; SameSite=Strict"
        )

    def test_value_encoded(self):
        assert Cookie("msg", "a b;c").to_header_string(NOW).startswith("msg=a+b%3Bc;")

    def test_expired_cookie_in_past(self):
        cookie = Cookie.expired("theme")

        assert cookie.is_expired
        assert "Expires=Tue, 14 Nov 2023 22:13:19 GMT" in cookie.to_header_string(NOW)

    @pytest.mark.parametrize("name", ["", "a=b", "a b", "a;b"])
    def test_invalid_name(self, name):
        with pytest.raises(ValueError):
            Cookie(name, "x")


class TestCookieParsing:

    def test_round_trip(self):
        original = Cookie("theme", "dark mode", max_age=2592000, domain="example.com", secure=True)

        parsed = Cookie.from_string(original.to_header_string(NOW))

        assert parsed == original

    def test_http_only_only_when_present(self):
        assert not Cookie.from_string("a=1; Path=/").http_only
        assert Cookie.from_string("a=1; HttpOnly").http_only

    def test_unknown_attributes_skipped(self):
        cookie = Cookie.from_string("a=1; Priority=High; Max-Age=bogus")

        assert cookie.value == "1"
        assert cookie.max_age == 0


class TestCookieJar:

    def test_set_replaces_same_name(self):
        jar = CookieJar()
        jar.set(Cookie("a", "1")).set(Cookie("a", "2"))

        assert len(jar) == 1
        assert jar.get("a").value == "2"

    def test_remove_and_clear(self):
        jar = CookieJar([Cookie("a", "1"), Cookie("b", "2")])

        jar.remove("a")
        assert not jar.has("a")
        assert "b" in jar

        jar.clear()
        assert len(jar) == 0

    def test_copy_is_independent(self):
        jar = CookieJar([Cookie("a", "1")])
        copy = jar.copy()

        copy.set(Cookie("b", "2"))

        assert not jar.has("b")
        assert copy != jar

    def test_from_request_headers(self):
        jar = CookieJar.from_request_headers(["theme=dark; lang=en", "flag; x=a%20b"])

        assert jar.get("theme").value == "dark"
        assert jar.get("lang").value == "en"
        assert jar.get("x").value == "a b"
        assert not jar.has("flag")

    def test_to_response_headers_in_order(self):
        jar = CookieJar([Cookie("b", "2"), Cookie("a", "1")])

        lines = jar.to_response_headers(NOW)

        assert [line.split("=")[0] for line in lines] == ["b", "a"]
