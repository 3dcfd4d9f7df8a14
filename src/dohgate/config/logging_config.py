"""Root logger setup from the ``logging`` config section.

Brief:
  Lines look like ``2026-01-02T03:04:05Z [warn] dohgate.gateway: message``.
  Syslog lines drop the timestamp because the daemon stamps them itself.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

LEVEL_NAMES: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_SHORT_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "crit",
}


class TagFormatter(logging.Formatter):
    """Brief: Format records with a ``[level]`` tag and optional UTC stamp.

    Inputs:
      - stamped: Prefix each line with an ISO-8601 UTC timestamp.
    """

    converter = time.gmtime

    def __init__(self, stamped: bool = True) -> None:
        fmt = "%(level_tag)s %(name)s: %(message)s"
        if stamped:
            fmt = "%(asctime)s " + fmt
        super().__init__(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%SZ")

    def format(self, record: logging.LogRecord) -> str:
        name = _SHORT_NAMES.get(record.levelno, f"lvl{record.levelno}")
        record.level_tag = f"[{name}]"
        return super().format(record)


def resolve_level(name: Optional[str]) -> int:
    """Map a config level name to a logging level; unknown names mean info."""

    return LEVEL_NAMES.get(str(name or "info").strip().lower(), logging.INFO)


def _file_handler(path: str) -> logging.Handler:
    target = Path(path).expanduser().resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(target, mode="a", encoding="utf-8")


def _syslog_handler(spec: Any) -> Optional[logging.Handler]:
    options: Mapping[str, Any] = spec if isinstance(spec, dict) else {}
    address = options.get("address", "/dev/log")
    facility_name = str(options.get("facility", "user")).lower()
    facility = logging.handlers.SysLogHandler.facility_names.get(
        facility_name, logging.handlers.SysLogHandler.LOG_USER
    )
    try:
        return logging.handlers.SysLogHandler(address=address, facility=facility)
    except OSError as exc:  # pragma: no cover - host dependent
        logging.getLogger(__name__).warning("syslog unavailable at %s: %s", address, exc)
        return None


def init_logging(cfg: Optional[Mapping[str, Any]]) -> None:
    """
    Brief: Replace the root logger's handlers according to ``cfg``.

    Inputs:
      - cfg: Mapping with optional keys
        - level: debug, info, warn, error or crit (default info)
        - stderr: log to stderr (default True)
        - file: append to this path, creating parent directories
        - syslog: true, or {"address": ..., "facility": ...}

    Outputs:
      - None. Python warnings are routed through logging as well.
    """
    cfg = cfg or {}
    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.setLevel(resolve_level(cfg.get("level")))

    stamped: List[logging.Handler] = []
    if cfg.get("stderr", True):
        stamped.append(logging.StreamHandler(sys.stderr))
    file_path = cfg.get("file")
    if isinstance(file_path, str) and file_path.strip():
        stamped.append(_file_handler(file_path.strip()))
    for handler in stamped:
        handler.setFormatter(TagFormatter())
        root.addHandler(handler)

    if cfg.get("syslog"):
        syslog = _syslog_handler(cfg["syslog"])
        if syslog is not None:
            syslog.setFormatter(TagFormatter(stamped=False))
            root.addHandler(syslog)

    logging.captureWarnings(True)
