from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Mapping, Optional

from . import __version__
from .config.config_parser import (
    build_cache,
    build_resolver,
    build_settings,
    parse_config_file,
    server_address,
)
from .config.logging_config import init_logging
from .doh_api import create_doh_app, serve_doh
from .gateway import DohGateway

logger = logging.getLogger("dohgate.main")

_UVICORN_LEVELS = {
    "debug": "debug",
    "info": "info",
    "warn": "warning",
    "warning": "warning",
    "error": "error",
    "crit": "critical",
    "critical": "critical",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dohgate", description="Caching DNS-over-HTTPS (RFC 8484) gateway"
    )
    parser.add_argument("--config", default=None, help="Path to YAML config")
    parser.add_argument("--host", default=None, help="Override server.host")
    parser.add_argument("--port", type=int, default=None, help="Override server.port")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warn", "error", "crit"],
        help="Override logging.level",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate configuration, build components and exit without serving",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def build_gateway(cfg: Mapping, environ: Optional[Mapping[str, str]] = None) -> DohGateway:
    """
    Build a DohGateway from a validated config mapping.

    Inputs:
      - cfg: dict loaded from YAML
      - environ: environment mapping for DOH_UPSTREAMS (defaults to os.environ)
    Outputs:
      - DohGateway owning a fresh cache plugin instance
    """
    resolver = build_resolver(cfg, environ)
    gateway = DohGateway(resolver, build_cache(cfg), settings=build_settings(cfg))
    logger.info(
        "Gateway ready: path=%s cache=%s upstreams=%s",
        gateway.settings.path,
        type(gateway.cache).__name__,
        ", ".join(resolver.upstreams),
    )
    return gateway


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = parse_config_file(args.config)
    except (OSError, ValueError) as exc:
        print(f"dohgate: cannot load config: {exc}", file=sys.stderr)
        return 2

    log_cfg = dict(cfg.get("logging") or {})
    if args.log_level:
        log_cfg["level"] = args.log_level
    init_logging(log_cfg)

    try:
        gateway = build_gateway(cfg)
    except (ValueError, TypeError, KeyError, ImportError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    if args.check:
        return 0

    addr = server_address(cfg)
    if args.host:
        addr["host"] = args.host
    if args.port:
        addr["port"] = args.port

    serve_doh(
        create_doh_app(gateway),
        addr["host"],
        addr["port"],
        cert_file=addr["cert_file"],
        key_file=addr["key_file"],
        log_level=_UVICORN_LEVELS.get(str(log_cfg.get("level", "info")).lower(), "info"),
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
