"""
Brief: Tests for the dohgate CLI entrypoint.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

import dohgate.main as main_mod
from dohgate.gateway import DohGateway
from dohgate.plugins.cache.in_memory_ttl import InMemoryTTLCache


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch) -> Dict[str, Any]:
    """
    Brief: Replace serve_doh with a recorder so main() never binds a socket.

    Outputs:
      - dict filled with the serve_doh arguments.
    """
    seen: Dict[str, Any] = {}

    def fake_serve(app, host, port, **kwargs):
        seen.update({"app": app, "host": host, "port": port, **kwargs})

    monkeypatch.setattr(main_mod, "serve_doh", fake_serve)
    return seen


def test_main_defaults_serve(served, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DOH_UPSTREAMS", raising=False)
    assert main_mod.main([]) == 0
    assert served["host"] == "127.0.0.1"
    assert served["port"] == 8053
    assert served["cert_file"] is None
    assert served["log_level"] == "info"


def test_main_cli_overrides(served, tmp_path) -> None:
    cfg = tmp_path / "c.yaml"
    cfg.write_text(
        "server:\n  host: 0.0.0.0\n  port: 9000\n  cert_file: /c.pem\n  key_file: /k.pem\n",
        encoding="utf-8",
    )
    rc = main_mod.main(["--config", str(cfg), "--port", "9443", "--log-level", "warn"])
    assert rc == 0
    assert served["host"] == "0.0.0.0"
    assert served["port"] == 9443
    assert served["cert_file"] == "/c.pem"
    assert served["log_level"] == "warning"


def test_main_check_does_not_serve(served) -> None:
    assert main_mod.main(["--check"]) == 0
    assert served == {}


def test_main_bad_config_file_returns_2(served, tmp_path, capsys) -> None:
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("nonsense: true\n", encoding="utf-8")
    assert main_mod.main(["--config", str(cfg)]) == 2
    assert "cannot load config" in capsys.readouterr().err
    assert served == {}


def test_main_missing_config_file_returns_2(served, tmp_path) -> None:
    assert main_mod.main(["--config", str(tmp_path / "missing.yaml")]) == 2


def test_main_bad_plugin_config_returns_2(served, tmp_path) -> None:
    cfg = tmp_path / "c.yaml"
    cfg.write_text("cache:\n  module: memory\n  config:\n    ttl_ms: -1\n", encoding="utf-8")
    assert main_mod.main(["--config", str(cfg)]) == 2
    assert served == {}


def test_build_gateway_uses_env_upstreams() -> None:
    gw = main_mod.build_gateway({}, {"DOH_UPSTREAMS": "https://x/q"})
    assert isinstance(gw, DohGateway)
    assert isinstance(gw.cache, InMemoryTTLCache)
    assert gw.resolver.upstreams == ["https://x/q"]
