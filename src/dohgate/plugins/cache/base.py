from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from dohgate.binding import DohResponse


def cache_aliases(*aliases: str):
    """Brief: Decorator naming the aliases a cache backend answers to in config.

    Inputs:
      - *aliases: Variable number of alias strings.

    Outputs:
      - Callable that applies the aliases to a CachePlugin subclass and returns it.

    Example:
      >>> from dohgate.plugins.cache.base import CachePlugin, cache_aliases
      >>> @cache_aliases('none', 'null')
      ... class NullCache(CachePlugin):
      ...     pass
      >>> NullCache.aliases
      ('none', 'null')
    """

    def _wrap(cls: type) -> type:
        cls.aliases = tuple(aliases)
        return cls

    return _wrap


@dataclass(frozen=True)
class CacheRecord:
    """Brief: A stored HTTP response.

    Inputs:
      - status: HTTP status code.
      - headers: All (name, value) pairs of the stored response, duplicates kept.
      - body: Response payload.
      - expires: Absolute expiry (epoch seconds), or None when the backend
        governs freshness itself.

    Outputs:
      - CacheRecord instance.
    """

    status: int
    headers: Tuple[Tuple[str, str], ...]
    body: bytes
    expires: Optional[float] = None

    @classmethod
    def from_response(
        cls, response: DohResponse, expires: Optional[float] = None
    ) -> "CacheRecord":
        return cls(
            status=int(response.status),
            headers=tuple(response.headers),
            body=bytes(response.body),
            expires=expires,
        )

    def to_response(self) -> DohResponse:
        return DohResponse(self.status, self.headers, self.body)


class CachePlugin:
    """Base class for DoH response caches.

    Brief:
      CachePlugin provides the two-operation interface the gateway uses:
      lookup() and store(). Subclasses must implement both. Keys are opaque
      strings produced by dohgate.binding.cache_key_for().

    Inputs:
      - None.

    Outputs:
      - CachePlugin instance.
    """

    aliases: tuple[str, ...] = ()

    def lookup(self, key: str) -> CacheRecord | None:
        """Brief: Lookup a cached response.

        Inputs:
          - key: Cache key string.

        Outputs:
          - CacheRecord | None: Cached record if present and fresh; otherwise None.

        Raises:
          - dohgate.errors.CacheBackendError when the backend is unavailable.
        """

        raise NotImplementedError(
            "CachePlugin.lookup() must be implemented by a subclass"
        )

    def store(self, key: str, response: DohResponse) -> None:
        """Brief: Store a response under key.

        Inputs:
          - key: Cache key string.
          - response: Response to copy into the cache; never mutated.

        Outputs:
          - None.

        Raises:
          - dohgate.errors.CacheBackendError when the backend is unavailable.
        """

        raise NotImplementedError(
            "CachePlugin.store() must be implemented by a subclass"
        )
