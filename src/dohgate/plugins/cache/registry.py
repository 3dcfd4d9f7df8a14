"""Cache backend selection by alias.

Brief:
  The gateway ships a fixed set of response caches. Each class declares its
  names through @cache_aliases; this module indexes those names and builds
  the backend a ``cache:`` config section asks for.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple, Type

from .base import CachePlugin
from .in_memory_ttl import InMemoryTTLCache
from .none import NullCache
from .redis_cache import RedisCache

BACKENDS: Tuple[Type[CachePlugin], ...] = (InMemoryTTLCache, RedisCache, NullCache)

DEFAULT_BACKEND = "in_memory_ttl"
DISABLED_BACKEND = "none"


def _normalize(alias: str) -> str:
    return alias.strip().lower().replace("-", "_")


def _index(backends: Tuple[Type[CachePlugin], ...]) -> Dict[str, Type[CachePlugin]]:
    by_alias: Dict[str, Type[CachePlugin]] = {}
    for cls in backends:
        for alias in cls.aliases:
            key = _normalize(alias)
            owner = by_alias.setdefault(key, cls)
            if owner is not cls:
                raise ValueError(
                    f"cache alias {key!r} claimed by both {owner.__name__} and {cls.__name__}"
                )
    return by_alias


_BY_ALIAS = _index(BACKENDS)


def cache_backend_aliases() -> Dict[str, Type[CachePlugin]]:
    """Return a copy of the alias -> backend class table."""

    return dict(_BY_ALIAS)


def get_cache_plugin_class(alias: str) -> Type[CachePlugin]:
    """Brief: Look up a backend class by one of its aliases.

    Inputs:
      - alias: Case-insensitive name; '-' and '_' are interchangeable.

    Outputs:
      - CachePlugin subclass.

    Raises:
      - KeyError: no backend claims the alias (message lists the known ones).
    """

    try:
        return _BY_ALIAS[_normalize(str(alias))]
    except KeyError:
        known = ", ".join(sorted(_BY_ALIAS))
        raise KeyError(f"unknown cache backend {alias!r}; known: {known}") from None


def _backend_name(cfg: Mapping[str, object]) -> str:
    if "module" not in cfg:
        return DEFAULT_BACKEND
    module = cfg["module"]
    if module is None:
        # An explicit null switches caching off.
        return DISABLED_BACKEND
    name = str(module).strip()
    return name or DEFAULT_BACKEND


def load_cache_plugin(cfg: Optional[object]) -> CachePlugin:
    """Brief: Build the cache backend named by a config section.

    Inputs:
      - cfg: One of
        - None: the default in-memory TTL cache.
        - str: a backend alias.
        - dict: {"module": <alias or null>, "config": <dict>}; a missing
          module means the default, a null module disables caching.

    Outputs:
      - A fresh CachePlugin instance owned by the caller.

    Example:
      cache:
        module: redis
        config: {url: "redis://localhost:6379/0"}
    """

    if cfg is None:
        return get_cache_plugin_class(DEFAULT_BACKEND)()
    if isinstance(cfg, str):
        return get_cache_plugin_class(cfg)()
    if isinstance(cfg, dict):
        options = cfg.get("config")
        cls = get_cache_plugin_class(_backend_name(cfg))
        return cls(**(options if isinstance(options, dict) else {}))
    raise TypeError("cache config must be a mapping, string, or null")
