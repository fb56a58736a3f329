"""Tests for the per-invocation tool result cache."""

import math

from agentloop.engine.tool_result_cache import (
    CACHE_HIT_MARKER,
    ToolResultCache,
    build_cache_key,
    mark_cached,
)


def test_cache_key_is_order_independent() -> None:
    assert build_cache_key("t", {"a": 1, "b": [1, 2]}) == build_cache_key(
        "t", {"b": [1, 2], "a": 1}
    )


def test_cache_key_distinguishes_tools_and_args() -> None:
    assert build_cache_key("t", {"a": 1}) == 't:{"a":1}'
    assert build_cache_key("t", {"a": 1}) != build_cache_key("u", {"a": 1})
    assert build_cache_key("t", {"a": 1}) != build_cache_key("t", {"a": 2})


def test_unserializable_args_have_no_key() -> None:
    assert build_cache_key("t", {"a": object()}) is None
    assert build_cache_key("t", {"a": math.nan}) is None


def test_exempt_tools_get_no_key() -> None:
    cache = ToolResultCache(exempt_tools={"git_status"})

    invocation = cache.invocation_for("c1", "git_status", {})

    assert invocation.cache_key is None
    cache.store(invocation, "clean")
    assert cache.lookup(invocation) is None
    assert len(cache) == 0


def test_store_and_lookup() -> None:
    cache = ToolResultCache()
    first = cache.invocation_for("c1", "read", {"path": "a"})
    repeat = cache.invocation_for("c2", "read", {"path": "a"})

    assert cache.lookup(first) is None
    cache.store(first, "content")

    assert cache.lookup(repeat) == "content"
    assert cache.is_exempt("read") is False


def test_mark_cached_prefixes_marker() -> None:
    assert mark_cached("data") == f"{CACHE_HIT_MARKER}\ndata"
