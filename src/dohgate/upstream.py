"""Default resolver collaborator: ordered failover across upstream DoH servers.

Brief:
  UpstreamResolver is the callable the gateway hands decoded queries to. It
  forwards each query to the configured upstream URLs in order and returns
  the first usable answer. Ranking, racing and geo-aware selection are not
  done here.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Mapping, Optional, Sequence

from .codec import DNS_HEADER_LEN
from .errors import ResolutionError
from .transports.doh import DoHError, doh_query

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAMS: tuple[str, ...] = (
    "https://cloudflare-dns.com/dns-query",
    "https://dns.google/dns-query",
)

_UPSTREAM_SPLIT_RE = re.compile(r"[\s,;]+")


def parse_upstreams(value: Optional[object]) -> List[str]:
    """Brief: Normalize an upstream list from a delimited string or sequence.

    Inputs:
      - value: 'https://a/dns-query, https://b/dns-query', a list of URLs, or None.

    Outputs:
      - list[str]: Non-empty, de-duplicated URLs in their original order.

    Example:
      >>> parse_upstreams("https://a/q;https://b/q  https://a/q")
      ['https://a/q', 'https://b/q']
    """

    if value is None:
        return []
    if isinstance(value, str):
        items: Sequence[object] = _UPSTREAM_SPLIT_RE.split(value)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise TypeError("upstreams must be a string or a list of strings")

    out: List[str] = []
    for item in items:
        url = str(item or "").strip()
        if url and url not in out:
            out.append(url)
    return out


class UpstreamResolver:
    """Brief: Forward DNS queries to upstream DoH servers with failover.

    Inputs:
      - upstreams: Ordered upstream URLs; empty falls back to DEFAULT_UPSTREAMS.
      - timeout_ms: Per-upstream socket timeout.
      - method: 'POST' or 'GET' for upstream requests.
      - verify: Verify upstream TLS certificates.

    Outputs:
      - Callable (query_bytes, metadata) -> response_bytes.

    Example:
      >>> resolver = UpstreamResolver(["https://dns.google/dns-query"])
    """

    def __init__(
        self,
        upstreams: Optional[Sequence[str]] = None,
        *,
        timeout_ms: int = 1500,
        method: str = "POST",
        verify: bool = True,
    ) -> None:
        self.upstreams: List[str] = parse_upstreams(list(upstreams or [])) or list(
            DEFAULT_UPSTREAMS
        )
        self.timeout_ms = int(timeout_ms)
        self.method = str(method or "POST").upper()
        self.verify = bool(verify)

    def __call__(self, query: bytes, metadata: Optional[Mapping[str, Any]] = None) -> bytes:
        """Brief: Resolve one query.

        Inputs:
          - query: Wire-format DNS query.
          - metadata: Opaque client hints; accepted and unused.

        Outputs:
          - bytes: First upstream answer at least one DNS header long whose
            transaction ID matches the query.

        Raises:
          - ResolutionError when every upstream fails.
        """

        last_error: Optional[str] = None
        for url in self.upstreams:
            try:
                body, _headers = doh_query(
                    url,
                    query,
                    method=self.method,
                    timeout_ms=self.timeout_ms,
                    verify=self.verify,
                )
            except DoHError as exc:
                last_error = f"{url}: {exc}"
                logger.warning("Upstream %s failed: %s", url, exc)
                continue
            if len(body) < DNS_HEADER_LEN:
                last_error = f"{url}: short answer ({len(body)} bytes)"
                logger.warning("Upstream %s returned a short answer", url)
                continue
            if body[:2] != query[:2]:
                last_error = f"{url}: transaction ID mismatch"
                logger.warning("Upstream %s answered with a mismatched ID", url)
                continue
            return body

        raise ResolutionError(f"all upstreams failed (last: {last_error})")
