"""
Brief: Tests for the default UpstreamResolver and upstream list parsing.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

from typing import Dict, List

import pytest

from dohgate import upstream
from dohgate.codec import encode_query
from dohgate.errors import ResolutionError
from dohgate.transports.doh import DoHError

QUERY = encode_query("example.com", "A", txid=0x4242)
GOOD = QUERY[:2] + b"\x81\x80" + QUERY[4:]


def _fake_doh(responses: Dict[str, object], calls: List[str]):
    def fake(url, query, **kwargs):
        calls.append(url)
        result = responses[url]
        if isinstance(result, Exception):
            raise result
        return result, {"content-type": "application/dns-message"}

    return fake


def test_parse_upstreams_delimiters_and_dedup() -> None:
    text = " https://a/q,https://b/q;https://c/q\nhttps://a/q "
    assert upstream.parse_upstreams(text) == ["https://a/q", "https://b/q", "https://c/q"]
    assert upstream.parse_upstreams(["https://a/q", "", "https://a/q"]) == ["https://a/q"]
    assert upstream.parse_upstreams(None) == []
    assert upstream.parse_upstreams("") == []


def test_parse_upstreams_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        upstream.parse_upstreams(42)


def test_empty_list_falls_back_to_defaults() -> None:
    assert upstream.UpstreamResolver([]).upstreams == list(upstream.DEFAULT_UPSTREAMS)
    assert upstream.UpstreamResolver(None).upstreams == list(upstream.DEFAULT_UPSTREAMS)


def test_first_good_answer_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[str] = []
    monkeypatch.setattr(
        upstream, "doh_query", _fake_doh({"https://a/q": GOOD, "https://b/q": GOOD}, calls)
    )
    resolver = upstream.UpstreamResolver(["https://a/q", "https://b/q"])
    assert resolver(QUERY, {"client_ip": "192.0.2.1"}) == GOOD
    assert calls == ["https://a/q"]


def test_failover_skips_errors_short_and_mismatched(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Brief: Transport errors, short answers and ID mismatches move on to the next upstream.

    Inputs:
      - monkeypatch: pytest fixture

    Outputs:
      - None
    """
    calls: List[str] = []
    responses = {
        "https://a/q": DoHError("HTTP 503"),
        "https://b/q": b"\x00\x01",
        "https://c/q": b"\x99\x99" + GOOD[2:],
        "https://d/q": GOOD,
    }
    monkeypatch.setattr(upstream, "doh_query", _fake_doh(responses, calls))
    resolver = upstream.UpstreamResolver(list(responses))
    assert resolver(QUERY) == GOOD
    assert calls == list(responses)


def test_all_upstreams_failing_raises_resolution_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: List[str] = []
    responses = {"https://a/q": DoHError("down"), "https://b/q": DoHError("down")}
    monkeypatch.setattr(upstream, "doh_query", _fake_doh(responses, calls))
    with pytest.raises(ResolutionError):
        upstream.UpstreamResolver(list(responses))(QUERY)
    assert calls == list(responses)


def test_options_are_forwarded(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: List[dict] = []

    def fake(url, query, **kwargs):
        seen.append(kwargs)
        return GOOD, {}

    monkeypatch.setattr(upstream, "doh_query", fake)
    upstream.UpstreamResolver(["https://a/q"], timeout_ms=900, method="get", verify=False)(QUERY)
    assert seen == [{"method": "GET", "timeout_ms": 900, "verify": False}]
