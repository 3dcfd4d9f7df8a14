"""
Brief: Tests for the null (disabled) cache plugin.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

from dohgate.binding import DohResponse
from dohgate.plugins.cache.none import NullCache
from dohgate.plugins.cache.registry import load_cache_plugin


def test_null_cache_never_returns_entries() -> None:
    cache = NullCache()
    cache.store("k", DohResponse(200, (), b"x"))
    assert cache.lookup("k") is None


def test_null_cache_aliases_load() -> None:
    for alias in ("none", "off", "disabled", "null"):
        assert isinstance(load_cache_plugin(alias), NullCache)
    assert isinstance(load_cache_plugin({"module": None}), NullCache)
