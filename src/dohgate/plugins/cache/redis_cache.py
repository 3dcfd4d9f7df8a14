from __future__ import annotations

import hashlib
import importlib
import json
import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from dohgate.binding import DohResponse
from dohgate.errors import CacheBackendError

from .base import CachePlugin, CacheRecord, cache_aliases

logger = logging.getLogger(__name__)

_DIRECTIVE_RE = re.compile(r"^\s*([A-Za-z-]+)\s*(?:=\s*\"?(\d+)\"?)?\s*$")


def _import_redis() -> Any:
    """Brief: Import the optional `redis` dependency.

    Inputs:
      - None.

    Outputs:
      - redis module.

    Notes:
      - Imported lazily so the package works without `redis` installed when
        the shared backend is not configured.
    """

    try:
        return importlib.import_module("redis")
    except Exception as exc:  # pragma: no cover
        raise ImportError(
            "RedisCache requires the optional 'redis' dependency. "
            "Install it with: pip install redis"
        ) from exc


def freshness_seconds(response: DohResponse) -> int:
    """Brief: Derive a shared-cache lifetime from Cache-Control.

    Inputs:
      - response: Response about to be stored.

    Outputs:
      - int: s-maxage (preferred) or max-age in seconds; 0 when the response
        is no-store/private or carries no positive lifetime.

    Example:
      >>> freshness_seconds(DohResponse(200, [("Cache-Control", "max-age=30")]))
      30
    """

    max_age: Optional[int] = None
    s_maxage: Optional[int] = None
    for name, value in response.headers:
        if name.lower() != "cache-control":
            continue
        for directive in value.split(","):
            m = _DIRECTIVE_RE.match(directive)
            if not m:
                continue
            token = m.group(1).lower()
            if token in ("no-store", "private"):
                return 0
            if m.group(2) is None:
                continue
            if token == "s-maxage":
                s_maxage = int(m.group(2))
            elif token == "max-age":
                max_age = int(m.group(2))
    ttl = s_maxage if s_maxage is not None else max_age
    return max(0, ttl or 0)


class RedisCacheConfig(BaseModel):
    """Brief: Typed configuration model for RedisCache.

    Inputs:
      - url: Redis URL; takes precedence over host/port/db when set.
      - host, port, db, username, password: Connection parameters.
      - socket_timeout: Optional socket timeout seconds.
      - namespace: Prefix for every Redis key.

    Outputs:
      - RedisCacheConfig instance.
    """

    url: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0)
    username: Optional[str] = None
    password: Optional[str] = None
    socket_timeout: Optional[float] = Field(default=None, gt=0)
    namespace: str = "dohgate:responses:"

    model_config = ConfigDict(extra="forbid")


@cache_aliases("redis", "valkey", "shared")
class RedisCache(CachePlugin):
    """Shared response cache backed by Redis/Valkey.

    Brief:
      Each response is stored as a Redis hash. Redis owns eviction: the key
      expiry is taken from the stored response's own Cache-Control header,
      and this class applies no TTL of its own.

    Inputs:
      - client: Optional pre-built Redis client (mainly for tests).
      - **config: See RedisCacheConfig.

    Outputs:
      - RedisCache instance.

    Example:
      cache:
        module: redis
        config:
          url: redis://localhost:6379/0
    """

    def __init__(self, *, client: Any = None, **config: object) -> None:
        self._config_model = RedisCacheConfig(**config)
        cfg = self._config_model
        self.namespace: str = cfg.namespace or "dohgate:responses:"

        redis = _import_redis()
        self._errors = (redis.exceptions.RedisError, OSError)

        if client is not None:
            self._client = client
        elif cfg.url and cfg.url.strip():
            self._client = redis.Redis.from_url(
                cfg.url.strip(),
                decode_responses=False,
                socket_timeout=cfg.socket_timeout,
            )
        else:
            self._client = redis.Redis(
                host=cfg.host,
                port=cfg.port,
                db=cfg.db,
                username=cfg.username or None,
                password=cfg.password or None,
                socket_timeout=cfg.socket_timeout,
                decode_responses=False,
            )

    def _redis_key(self, key: str) -> str:
        # Hash so arbitrarily long URLs map onto bounded Redis keys.
        return f"{self.namespace}{hashlib.sha256(key.encode('utf-8')).hexdigest()}"

    def lookup(self, key: str) -> CacheRecord | None:
        """Brief: Fetch a stored response; Redis has already dropped stale ones.

        Inputs:
          - key: Cache key string.

        Outputs:
          - CacheRecord | None.

        Raises:
          - CacheBackendError on connection or protocol errors.
        """

        redis_key = self._redis_key(key)
        try:
            status, headers_blob, body = self._client.hmget(redis_key, "s", "h", "b")
        except self._errors as exc:
            raise CacheBackendError(f"redis lookup failed: {exc}") from exc
        if status is None or headers_blob is None or body is None:
            return None
        if isinstance(headers_blob, (bytes, bytearray)):
            headers_blob = bytes(headers_blob).decode("utf-8", errors="replace")
        try:
            headers = tuple((str(k), str(v)) for k, v in json.loads(headers_blob))
            return CacheRecord(status=int(status), headers=headers, body=bytes(body))
        except (ValueError, TypeError):
            logger.warning("Dropping corrupt cache entry %s", redis_key)
            try:
                self._client.delete(redis_key)
            except self._errors:
                pass
            return None

    def store(self, key: str, response: DohResponse) -> None:
        """Brief: Store response with the lifetime its Cache-Control allows.

        Inputs:
          - key: Cache key string.
          - response: Response to copy.

        Outputs:
          - None. Responses without a positive lifetime are not stored.

        Raises:
          - CacheBackendError on connection or protocol errors.
        """

        ttl = freshness_seconds(response)
        if ttl <= 0:
            return
        redis_key = self._redis_key(key)
        mapping = {
            "s": int(response.status),
            "h": json.dumps([list(pair) for pair in response.headers]),
            "b": bytes(response.body),
        }
        try:
            self._client.hset(redis_key, mapping=mapping)
            self._client.expire(redis_key, ttl)
        except self._errors as exc:
            raise CacheBackendError(f"redis store failed: {exc}") from exc
