"""Configuration parsing helpers for dohgate.

Brief:
  Centralizes:
    - reading and schema-validating the YAML config file
    - reading the DOH_UPSTREAMS environment override (once, at startup)
    - building the gateway's collaborators (settings, cache plugin, resolver)

Inputs:
  - YAML config paths and parsed dicts, an environment mapping

Outputs:
  - Normalized config dicts and constructed components
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..gateway import GatewaySettings
from ..plugins.cache.base import CachePlugin
from ..plugins.cache.registry import load_cache_plugin
from ..upstream import DEFAULT_UPSTREAMS, UpstreamResolver, parse_upstreams
from .config_schema import validate_config

UPSTREAMS_ENV_VAR = "DOH_UPSTREAMS"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8053


def parse_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Brief: Read and schema-validate a YAML config file.

    Inputs:
      - config_path: Path to YAML file, or None for an empty configuration.

    Outputs:
      - dict: Validated configuration mapping ({} for an empty document).

    Raises:
      - OSError when the file cannot be read.
      - ValueError when the document is not a mapping or fails validation.
    """

    if config_path is None:
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)
    if cfg is None:
        cfg = {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{config_path}: top-level config must be a mapping")
    validate_config(cfg)
    return cfg


def resolve_upstreams(
    cfg: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
) -> List[str]:
    """Brief: Determine the upstream list from environment, config, or defaults.

    Inputs:
      - cfg: Parsed configuration mapping.
      - environ: Environment mapping (defaults to os.environ).

    Outputs:
      - list[str]: DOH_UPSTREAMS when set and non-empty, else cfg['upstreams'],
        else DEFAULT_UPSTREAMS.

    Example:
      >>> resolve_upstreams({}, {"DOH_UPSTREAMS": "https://a/q,https://b/q"})
      ['https://a/q', 'https://b/q']
    """

    env = os.environ if environ is None else environ
    from_env = parse_upstreams(env.get(UPSTREAMS_ENV_VAR))
    if from_env:
        return from_env
    from_cfg = parse_upstreams(cfg.get("upstreams"))
    if from_cfg:
        return from_cfg
    return list(DEFAULT_UPSTREAMS)


def build_settings(cfg: Mapping[str, Any]) -> GatewaySettings:
    """Build GatewaySettings from the optional ``doh`` section."""

    return GatewaySettings(**dict(cfg.get("doh") or {}))


def build_cache(cfg: Mapping[str, Any]) -> CachePlugin:
    """Build the cache plugin named by the ``cache`` section (default in-memory)."""

    if "cache" not in cfg:
        return load_cache_plugin(None)
    cache_cfg = cfg.get("cache")
    if cache_cfg is None:
        return load_cache_plugin("none")
    return load_cache_plugin(cache_cfg)


def build_resolver(
    cfg: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
) -> UpstreamResolver:
    """Build the default upstream resolver from ``upstream`` plus the upstream list."""

    up = dict(cfg.get("upstream") or {})
    return UpstreamResolver(
        resolve_upstreams(cfg, environ),
        timeout_ms=int(up.get("timeout_ms", 1500)),
        method=str(up.get("method", "POST")),
        verify=bool(up.get("verify", True)),
    )


def server_address(cfg: Mapping[str, Any]) -> Dict[str, Any]:
    """Brief: Extract listener settings from the ``server`` section.

    Outputs:
      - dict with host, port, cert_file, key_file.
    """

    srv = dict(cfg.get("server") or {})
    return {
        "host": str(srv.get("host") or DEFAULT_HOST),
        "port": int(srv.get("port") or DEFAULT_PORT),
        "cert_file": srv.get("cert_file") or None,
        "key_file": srv.get("key_file") or None,
    }
