"""Cache plugins.

Brief: Defines the CachePlugin interface and the response cache backends.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

from .base import CachePlugin, CacheRecord, cache_aliases
from .in_memory_ttl import InMemoryTTLCache
from .registry import load_cache_plugin

__all__ = [
    "CachePlugin",
    "CacheRecord",
    "InMemoryTTLCache",
    "cache_aliases",
    "load_cache_plugin",
]
