from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from dohgate.binding import DohResponse

from .base import CachePlugin, CacheRecord, cache_aliases

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 60_000


class InMemoryTTLCacheConfig(BaseModel):
    """Brief: Typed configuration model for InMemoryTTLCache.

    Inputs:
      - ttl_ms: Fixed lifetime of every stored response in milliseconds.
      - maxsize: Optional capacity bound; when full, the oldest inserted entry
        is evicted.

    Outputs:
      - InMemoryTTLCacheConfig instance with normalized field types.
    """

    ttl_ms: int = Field(default=DEFAULT_TTL_MS, gt=0)
    maxsize: Optional[int] = Field(default=None, gt=0)

    model_config = ConfigDict(extra="forbid")


@cache_aliases("in_memory_ttl", "memory", "local", "ttl")
class InMemoryTTLCache(CachePlugin):
    """Process-local response cache with a fixed TTL.

    Brief:
      Records live in a dict guarded by an RLock for the lifetime of the
      instance. There is no background sweep: an expired record is removed by
      the first lookup that finds it.

    Inputs:
      - clock: Optional callable returning epoch seconds (defaults to time.time).
      - **config: See InMemoryTTLCacheConfig.

    Outputs:
      - InMemoryTTLCache instance.

    Example use in YAML config:

        cache:
          module: in_memory_ttl
          config:
            ttl_ms: 60000
    """

    def __init__(
        self, *, clock: Optional[Callable[[], float]] = None, **config: object
    ) -> None:
        self._config_model = InMemoryTTLCacheConfig(**config)
        self.ttl_ms: int = int(self._config_model.ttl_ms)
        self.maxsize: Optional[int] = self._config_model.maxsize
        self._clock: Callable[[], float] = clock or time.time
        self._store: Dict[str, CacheRecord] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def lookup(self, key: str) -> CacheRecord | None:
        """Brief: Return the record for key unless it is missing or expired.

        Inputs:
          - key: Cache key string.

        Outputs:
          - CacheRecord | None. An expired record is deleted before returning None.
        """

        now = self._clock()
        with self._lock:
            record = self._store.get(key)
            if record is None:
                return None
            if record.expires is not None and record.expires <= now:
                del self._store[key]
                logger.debug("InMemoryTTLCache TTL eviction: key=%r", key)
                return None
            return record

    def store(self, key: str, response: DohResponse) -> None:
        """Brief: Copy response into the cache with expiry = now + ttl_ms.

        Inputs:
          - key: Cache key string.
          - response: Response to copy.

        Outputs:
          - None.
        """

        record = CacheRecord.from_response(
            response, expires=self._clock() + self.ttl_ms / 1000.0
        )
        with self._lock:
            # Re-insert so dict order tracks insertion age for maxsize eviction.
            self._store.pop(key, None)
            self._store[key] = record
            if self.maxsize is not None:
                while len(self._store) > self.maxsize:
                    oldest = next(iter(self._store))
                    del self._store[oldest]
                    logger.debug("InMemoryTTLCache capacity eviction: key=%r", oldest)
