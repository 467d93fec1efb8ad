"""
Unit tests for the Headers multimap, Uri and body streams.
"""

import pytest

from httpkit.http import Headers
from httpkit.http.stream import CallbackStream, Stream, stream_for
from httpkit.http.uri import Uri


class TestHeaders:

    def test_case_insensitive_lookup(self):
        headers = Headers({"Content-Type": "text/html"})

        assert headers.first("content-type") == "text/html"
        assert "CONTENT-TYPE" in headers
        assert headers.names() == ["Content-Type"]

    def test_multi_valued(self):
        headers = Headers([("Set-Cookie", "a=1"), ("set-cookie", "b=2")])

        assert headers.get("Set-Cookie") == ["a=1", "b=2"]
        assert headers.get_line("Set-Cookie") == "a=1, b=2"
        assert len(headers) == 1

    def test_copy_on_write(self):
        original = Headers({"X-A": "1"})

        replaced = original.with_header("X-A", "2")
        added = original.with_added_header("X-A", "3")
        removed = original.without_header("x-a")

        assert original.get("X-A") == ["1"]
        assert replaced.get("X-A") == ["2"]
        assert added.get("X-A") == ["1", "3"]
        assert "X-A" not in removed

    def test_merged_replaces(self):
        headers = Headers({"Content-Type": "text/plain", "X-A": "1"})

        merged = headers.merged({"content-type": "application/json"})

        assert merged.first("Content-Type") == "application/json"
        assert merged.first("X-A") == "1"

    def test_returned_lists_are_copies(self):
        headers = Headers({"X-A": "1"})

        headers.get("X-A").append("2")

        assert headers.get("X-A") == ["1"]

    def test_missing(self):
        headers = Headers()

        assert headers.get("X-Missing") == []
        assert headers.first("X-Missing", "fallback") == "fallback"
        assert headers.get_line("X-Missing") == ""

    @pytest.mark.parametrize("value", ["a\r\nInjected: yes", "line\nbreak"])
    def test_rejects_crlf(self, value):
        with pytest.raises(ValueError):
            Headers({"X-A": value})

    @pytest.mark.parametrize("name", ["", "Bad Name", "Bad:Name"])
    def test_rejects_invalid_name(self, name):
        with pytest.raises(ValueError):
            Headers().with_header(name, "x")

    def test_iteration_order(self):
        headers = Headers([("B", "1"), ("A", "2"), ("B", "3")])

        assert list(headers) == [("B", ["1", "3"]), ("A", ["2"])]


class TestUri:

    def test_parse_components(self):
        uri = Uri.parse("https://user@Example.com:8443/api/users?page=2#top")

        assert uri.scheme == "https"
        assert uri.user_info == "user"
        assert uri.host == "example.com"
        assert uri.port == 8443
        assert uri.path == "/api/users"
        assert uri.query == "page=2"
        assert uri.fragment == "top"

    def test_default_port_dropped(self):
        assert str(Uri.parse("http://a.com:80/x")) == "http://a.com/x"
        assert Uri.parse("https://a.com:443/") == Uri.parse("https://a.com/")

    def test_path_only(self):
        uri = Uri.parse("/search?q=python")

        assert uri.host == ""
        assert str(uri) == "/search?q=python"

    def test_with_methods(self):
        uri = Uri.parse("http://a.com/x").with_path("/y").with_query("?a=1").with_port(8080)

        assert str(uri) == "http://a.com:8080/y?a=1"

    def test_invalid_port(self):
        with pytest.raises(ValueError):
            Uri(host="a.com", port=70000)


class TestStreams:

    def test_stream_read_and_rewind(self):
        body = Stream.from_bytes("hello")

        assert body.read(2) == b"he"
        assert body.getvalue() == b"hello"
        body.rewind()
        assert body.read() == b"hello"
        assert body.size == 5

    def test_stream_from_file(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"\x00\x01")

        body = Stream.from_file(path)

        assert body.getvalue() == b"\x00\x01"
        body.close()

    def test_callback_stream_callable(self):
        chunks = iter([b"a", "b", b""])
        body = CallbackStream(lambda size: next(chunks))

        assert body.read() == b"a"
        assert body.read() == b"b"
        assert body.read() == b""
        assert body.eof()
        assert body.read() == b""

    def test_callback_stream_iterable(self):
        body = CallbackStream(["x", "y"])

        assert not body.is_seekable()
        assert body.getvalue() == b""
        assert body.read() + body.read() == b"xy"

    def test_stream_for(self):
        existing = Stream.from_bytes(b"x")

        assert stream_for(existing) is existing
        assert stream_for(None).getvalue() == b""
        assert stream_for("text").getvalue() == b"text"
        with pytest.raises(TypeError):
            stream_for(42)
