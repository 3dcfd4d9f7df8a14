from __future__ import annotations

from dohgate.binding import DohResponse

from .base import CachePlugin, CacheRecord, cache_aliases


@cache_aliases("none", "off", "disabled", "no_cache", "null")
class NullCache(CachePlugin):
    """Null cache plugin that never stores anything.

    Brief:
      This implementation disables caching while keeping the gateway
      pipeline unchanged: every lookup is a miss.

    Example:
      cache:
        module: none
    """

    def __init__(self, **config: object) -> None:
        pass

    def lookup(self, key: str) -> CacheRecord | None:
        return None

    def store(self, key: str, response: DohResponse) -> None:
        return None
