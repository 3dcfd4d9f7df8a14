"""JSON Schema-based validation for dohgate YAML configuration.

Brief:
  Every section is optional; an empty document is a valid configuration.
  Per-plugin cache settings are validated later by the plugin's own
  pydantic model, so the schema only checks the outer shape of ``cache``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

logger = logging.getLogger(__name__)

_LEVELS = ["debug", "info", "warn", "warning", "error", "crit", "critical"]

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "server": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "host": {"type": "string", "minLength": 1},
                "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                "cert_file": {"type": ["string", "null"]},
                "key_file": {"type": ["string", "null"]},
            },
        },
        "doh": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "path": {"type": "string", "pattern": "^/"},
                "content_type_policy": {"enum": ["strict", "lenient"]},
                "cache_max_age": {"type": "integer", "minimum": 0},
            },
        },
        "upstreams": {
            "oneOf": [
                {"type": "string"},
                {"type": "array", "items": {"type": "string", "minLength": 1}},
            ]
        },
        "upstream": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "timeout_ms": {"type": "integer", "minimum": 1},
                "method": {"enum": ["GET", "POST", "get", "post"]},
                "verify": {"type": "boolean"},
            },
        },
        "cache": {
            "oneOf": [
                {"type": "null"},
                {"type": "string", "minLength": 1},
                {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "module": {"type": ["string", "null"]},
                        "config": {"type": ["object", "null"]},
                    },
                },
            ]
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "level": {"enum": _LEVELS},
                "stderr": {"type": "boolean"},
                "file": {"type": ["string", "null"]},
                "syslog": {
                    "oneOf": [
                        {"type": "boolean"},
                        {
                            "type": "object",
                            "properties": {
                                "address": {"type": "string"},
                                "facility": {"type": "string"},
                            },
                        },
                    ]
                },
            },
        },
    },
}


class ConfigValidationError(ValueError):
    """Brief: Raised when a configuration document fails schema validation.

    Inputs:
      - errors: Human-readable error lines, one per violation.
    """

    def __init__(self, errors: List[str]) -> None:
        super().__init__("Invalid configuration:\n  " + "\n  ".join(errors))
        self.errors = list(errors)


def validate_config(cfg: Dict[str, Any]) -> None:
    """Brief: Validate a parsed YAML mapping against CONFIG_SCHEMA.

    Inputs:
      - cfg: Parsed configuration mapping.

    Outputs:
      - None.

    Raises:
      - ConfigValidationError listing every violation, sorted by path.
    """

    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = sorted(
        validator.iter_errors(cfg), key=lambda e: [str(p) for p in e.absolute_path]
    )
    if not errors:
        return
    lines = []
    for err in errors:
        where = ".".join(str(p) for p in err.absolute_path) or "<root>"
        lines.append(f"{where}: {err.message}")
    logger.debug("Config validation failed: %s", lines)
    raise ConfigValidationError(lines)
