"""
Brief: Tests for cache backend alias lookup and loading.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

import pytest

from dohgate.plugins.cache.base import CachePlugin, cache_aliases
from dohgate.plugins.cache.in_memory_ttl import InMemoryTTLCache
from dohgate.plugins.cache.none import NullCache
from dohgate.plugins.cache.redis_cache import RedisCache
from dohgate.plugins.cache.registry import (
    _index,
    cache_backend_aliases,
    get_cache_plugin_class,
    load_cache_plugin,
)


def test_alias_table_covers_every_backend() -> None:
    reg = cache_backend_aliases()
    assert reg["in_memory_ttl"] is InMemoryTTLCache
    assert reg["memory"] is InMemoryTTLCache
    assert reg["local"] is InMemoryTTLCache
    assert reg["redis"] is RedisCache
    assert reg["shared"] is RedisCache
    assert reg["none"] is NullCache


def test_alias_lookup_is_normalized() -> None:
    assert get_cache_plugin_class(" In-Memory-TTL ") is InMemoryTTLCache


def test_alias_table_is_a_copy() -> None:
    cache_backend_aliases()["bogus"] = NullCache
    with pytest.raises(KeyError):
        get_cache_plugin_class("bogus")


def test_duplicate_alias_is_rejected() -> None:
    @cache_aliases("memory")
    class Clash(CachePlugin):
        pass

    with pytest.raises(ValueError):
        _index((InMemoryTTLCache, Clash))


def test_unknown_alias_lists_known_names() -> None:
    with pytest.raises(KeyError) as ei:
        get_cache_plugin_class("memroy")
    assert "memory" in str(ei.value)


def test_load_defaults_to_in_memory() -> None:
    assert isinstance(load_cache_plugin(None), InMemoryTTLCache)
    assert isinstance(load_cache_plugin({}), InMemoryTTLCache)
    assert isinstance(load_cache_plugin({"module": "  "}), InMemoryTTLCache)


def test_load_passes_config() -> None:
    cache = load_cache_plugin({"module": "memory", "config": {"ttl_ms": 5000, "maxsize": 10}})
    assert cache.ttl_ms == 5000
    assert cache.maxsize == 10


def test_each_load_returns_a_fresh_instance() -> None:
    assert load_cache_plugin("memory") is not load_cache_plugin("memory")


def test_load_rejects_bad_config_type() -> None:
    with pytest.raises(TypeError):
        load_cache_plugin(42)


def test_load_by_alias_string() -> None:
    assert isinstance(load_cache_plugin("off"), NullCache)
