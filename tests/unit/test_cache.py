"""
Unit tests for the response cache middleware.
"""

from httpkit.http import Cookie, Request, json_response, stream, text_response
from httpkit.middleware import CacheMiddleware
from httpkit.middleware.cache import (
    default_cache_key,
    max_age_of,
    restore_response,
    snapshot_response,
)
from httpkit.storage import MemoryStorage


def get(path="/products"):
    return Request.create("GET", f"http://shop.test{path}")


class CountingHandler:
    def __init__(self, response_factory):
        self.calls = 0
        self.response_factory = response_factory

    def __call__(self, request):
        self.calls += 1
        return self.response_factory()


class TestHitAndMiss:

    def test_second_request_served_from_cache(self, storage):
        handler = CountingHandler(lambda: json_response({"id": 1}, headers={"X-Source": "origin"}))
        cache = CacheMiddleware(storage)

        first = cache.process(get(), handler)
        second = cache.process(get(), handler)

        assert handler.calls == 1
        assert second.status == first.status
        assert second.text == '{"id":1}'
        assert second.header("X-Source") == "origin"

    def test_miss_stores_with_default_ttl(self, storage):
        cache = CacheMiddleware(storage, ttl=120)

        cache.process(get(), CountingHandler(lambda: text_response("fresh")))

        [(_, key, snapshot, ttl)] = storage.sets()
        assert key == default_cache_key(get())
        assert ttl == 120
        assert snapshot["status"] == 200

    def test_ttl_from_max_age(self, storage):
        cache = CacheMiddleware(storage, ttl=120)
        handler = CountingHandler(
            lambda: text_response("x", headers={"Cache-Control": "public, max-age=30"})
        )

        cache.process(get(), handler)

        assert storage.sets()[0][3] == 30

    def test_different_uris_different_entries(self, storage):
        handler = CountingHandler(lambda: text_response("x"))
        cache = CacheMiddleware(storage)

        cache.process(get("/a"), handler)
        cache.process(get("/b"), handler)

        assert handler.calls == 2

    def test_custom_key(self, storage):
        cache = CacheMiddleware(storage, cache_key_resolver=lambda req: f"page:{req.path}")

        cache.process(get("/about"), CountingHandler(lambda: text_response("x")))

        assert storage.sets()[0][1] == "page:/about"

    def test_cookies_survive_cache(self, storage):
        cache = CacheMiddleware(storage)
        handler = CountingHandler(lambda: text_response("x").with_simple_cookie("theme", "dark"))

        cache.process(get(), handler)
        cached = cache.process(get(), handler)

        assert cached.get_cookie("theme").value == "dark"

    def test_cached_cookies_keep_every_attribute(self, storage):
        cookies = [
            Cookie("c", "v", path=None, same_site=None),
            Cookie("sid", "a b", path="/app", domain="shop.test", secure=True,
                   http_only=False, same_site="Strict", max_age=600),
        ]
        cache = CacheMiddleware(storage)
        handler = CountingHandler(lambda: text_response("x").with_cookie(cookies[0]).with_cookie(cookies[1]))

        fresh = cache.process(get(), handler)
        cached = cache.process(get(), handler)

        assert handler.calls == 1
        assert cached.cookies == fresh.cookies
        assert cached.outbound_headers(now=1_700_000_000).get("Set-Cookie") == \
            fresh.outbound_headers(now=1_700_000_000).get("Set-Cookie")

    def test_expires_in_memory_storage(self, clock):
        storage = MemoryStorage(clock=clock)
        handler = CountingHandler(lambda: text_response("x"))
        cache = CacheMiddleware(storage, ttl=10)

        cache.process(get(), handler)
        clock.advance(11)
        cache.process(get(), handler)

        assert handler.calls == 2


class TestNotCached:

    def test_non_get_bypasses_cache(self, storage):
        handler = CountingHandler(lambda: text_response("created", status=201))
        cache = CacheMiddleware(storage)
        post = Request.create("POST", "http://shop.test/products")

        cache.process(post, handler)
        cache.process(post, handler)

        assert handler.calls == 2
        assert storage.calls == []

    def test_no_store_private_no_cache(self, storage):
        cache = CacheMiddleware(storage)
        for directive in ("no-store", "private, max-age=60", "no-cache"):
            cache.process(
                get(),
                CountingHandler(lambda: text_response("x", headers={"Cache-Control": directive})),
            )

        assert storage.sets() == []

    def test_cache_control_ignored_when_disabled(self, storage):
        cache = CacheMiddleware(storage, respect_cache_control=False)

        cache.process(get(), CountingHandler(
            lambda: text_response("x", headers={"Cache-Control": "no-store"})
        ))

        assert len(storage.sets()) == 1

    def test_streaming_response_never_cached(self, storage):
        cache = CacheMiddleware(storage)

        response = cache.process(get(), CountingHandler(lambda: stream(["a", "b"])))

        assert storage.sets() == []
        assert response.body.read() == b"a"

    def test_uncacheable_status(self, storage):
        cache = CacheMiddleware(storage)

        cache.process(get(), CountingHandler(lambda: text_response("boom", status=500)))

        assert storage.sets() == []

    def test_blacklisted_header(self, storage):
        cache = CacheMiddleware(storage, header_blacklist=["Set-Cookie", "X-User"])

        cache.process(get(), CountingHandler(lambda: text_response("x", headers={"X-User": "7"})))

        assert storage.sets() == []


class TestHelpers:

    def test_max_age_of(self):
        assert max_age_of(text_response("x", headers={"Cache-Control": "max-age=90"})) == 90
        assert max_age_of(text_response("x", headers={"Cache-Control": "max-age=0"})) is None
        assert max_age_of(text_response("x")) is None

    def test_snapshot_restore(self):
        original = json_response({"ok": True}, status=404).with_added_header("X-A", "1")

        restored = restore_response(snapshot_response(original))

        assert restored.status == 404
        assert restored.content == original.content
        assert restored.headers == original.headers
