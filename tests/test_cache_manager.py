from pathlib import Path

from fieldlog.cache_manager import (
    cached,
    clear_cache,
    get_cache_stats,
    load_cache,
    make_cache_key,
    save_cache,
    set_cache_namespace,
)
from fieldlog.config import config


def test_make_cache_key_is_deterministic():
    first = make_cache_key("wikipedia", "https://wiki.test", "Vulpes vulpes")
    second = make_cache_key("wikipedia", "https://wiki.test", "Vulpes vulpes")
    other = make_cache_key("wikipedia", "https://wiki.test", "Erithacus rubecula")

    assert first == second
    assert first != other
    assert first.startswith("wikipedia_")


def test_diskcache_round_trip(isolated_cache):
    namespace = set_cache_namespace("pytest_cache")
    assert Path(namespace).exists()

    payload = {"query": {"pages": {}}}
    save_cache("unit_test_key", payload)
    assert load_cache("unit_test_key") == payload
    assert load_cache("missing_key") is None


def test_expired_entry_is_a_miss(isolated_cache):
    save_cache("unit_test_key", {"value": 42})
    assert load_cache("unit_test_key", max_age=3600) == {"value": 42}
    assert load_cache("unit_test_key", max_age=-1) is None


def test_clear_cache_by_pattern(isolated_cache):
    save_cache("wikipedia_abc", 1)
    save_cache("flickr_def", 2)

    # Each entry is stored with its metadata
    assert clear_cache("wikipedia") == 2
    assert load_cache("wikipedia_abc") is None
    assert load_cache("flickr_def") == 2


def test_cache_stats(isolated_cache):
    save_cache(make_cache_key("wikipedia", "a"), 1)
    save_cache(make_cache_key("wikipedia", "b"), 2)
    save_cache(make_cache_key("flickr", "a"), 3)

    stats = get_cache_stats()
    assert stats["entry_count"] == 3
    assert stats["prefix_counts"] == {"wikipedia": 2, "flickr": 1}
    assert stats["total_size_bytes"] > 0


class TestCachedDecorator:
    def test_caches_by_arguments(self, isolated_cache):
        calls = []

        @cached(prefix="square")
        def square(x):
            calls.append(x)
            return {"result": x * x}

        assert square(3) == {"result": 9}
        assert square(3) == {"result": 9}
        assert square(4) == {"result": 16}
        assert calls == [3, 4]

    def test_refresh_cache(self, isolated_cache):
        calls = []

        @cached(prefix="square")
        def square(x):
            calls.append(x)
            return {"result": x * x}

        square(3)
        square(3, refresh_cache=True)
        assert calls == [3, 3]

    def test_disabled_cache(self, isolated_cache, monkeypatch):
        monkeypatch.setattr(config, "use_cache", False)
        calls = []

        @cached(prefix="square")
        def square(x):
            calls.append(x)
            return {"result": x * x}

        square(3)
        square(3)
        assert calls == [3, 3]

    def test_clear_function_cache(self, isolated_cache):
        @cached(prefix="square")
        def square(x):
            return {"result": x * x}

        square(3)
        assert square.clear_cache() == 2
