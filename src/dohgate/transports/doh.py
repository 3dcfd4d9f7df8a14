import http.client
import importlib.metadata
import ssl
import urllib.parse
from typing import Dict, Optional, Tuple

from dohgate.binding import DNS_MESSAGE_CT
from dohgate.codec import b64url_encode

try:
    DOHGATE_VERSION = importlib.metadata.version("dohgate")
except (
    Exception
):  # pragma: no cover - metadata is unavailable when running from a source tree
    DOHGATE_VERSION = "unknown"


class DoHError(Exception):
    """
    Brief: DNS-over-HTTPS transport error.

    Inputs:
    - message: Description of the error

    Outputs:
    - Exception instance
    """


def _build_ssl_ctx(
    verify: bool = True, ca_file: Optional[str] = None
) -> ssl.SSLContext:
    """
    Brief: Build SSLContext for HTTPS connections.

    Inputs:
    - verify: whether to verify TLS certs
    - ca_file: optional CA bundle path

    Outputs:
    - ssl.SSLContext
    """
    if not verify:
        return ssl._create_unverified_context()
    return (
        ssl.create_default_context(cafile=ca_file)
        if ca_file
        else ssl.create_default_context()
    )


def doh_query(
    url: str,
    query: bytes,
    *,
    method: str = "POST",
    headers: Optional[Dict[str, str]] = None,
    timeout_ms: int = 1500,
    verify: bool = True,
    ca_file: Optional[str] = None,
) -> Tuple[bytes, Dict[str, str]]:
    """
    Brief: Perform one DNS-over-HTTPS exchange (RFC 8484) with an upstream.

    Inputs:
    - url: Upstream DoH endpoint, e.g. https://dns.google/dns-query
    - query: Wire-format DNS query bytes
    - method: 'POST' or 'GET'
    - headers: Optional extra headers to include
    - timeout_ms: Socket timeout per request
    - verify: Verify TLS certificates (HTTPS only)
    - ca_file: Optional CA bundle path for verification

    Outputs:
    - (body, resp_headers): response body bytes and lower-cased headers

    Notes:
    - POST sends the body as application/dns-message.
    - GET appends ?dns=<base64url> and sends Accept: application/dns-message.
    - Raises DoHError for non-200 responses or network/TLS errors.
    """
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("https", "http"):
        raise DoHError(f"Unsupported URL scheme: {parsed.scheme}")
    if not parsed.hostname:
        raise DoHError(f"Missing host in upstream URL: {url!r}")

    timeout = timeout_ms / 1000.0
    path = parsed.path or "/dns-query"
    extra_headers = {k: v for (k, v) in (headers or {}).items()}

    if not any(k.lower() == "user-agent" for k in extra_headers):
        extra_headers["User-Agent"] = f"dohgate/{DOHGATE_VERSION}"

    if method.upper() == "GET":
        qs = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
        qs = [(k, v) for (k, v) in qs if k != "dns"] + [("dns", b64url_encode(query))]
        target = path + "?" + urllib.parse.urlencode(qs)
        body = None
        hdrs = {"Accept": DNS_MESSAGE_CT, **extra_headers}
    else:
        target = path + ("?" + parsed.query if parsed.query else "")
        body = query
        hdrs = {
            "Content-Type": DNS_MESSAGE_CT,
            "Accept": DNS_MESSAGE_CT,
            **extra_headers,
        }

    try:
        if parsed.scheme == "https":
            conn = http.client.HTTPSConnection(
                parsed.hostname,
                parsed.port or 443,
                timeout=timeout,
                context=_build_ssl_ctx(verify=verify, ca_file=ca_file),
            )
        else:
            conn = http.client.HTTPConnection(
                parsed.hostname,
                parsed.port or 80,
                timeout=timeout,
            )
        try:
            conn.request(method.upper(), target, body=body, headers=hdrs)
            resp = conn.getresponse()
            data = resp.read()
            if resp.status != 200:
                raise DoHError(f"HTTP {resp.status}: {resp.reason}")
            headers_out = {k.lower(): v for k, v in resp.getheaders()}
            return data, headers_out
        finally:
            conn.close()
    except ssl.SSLError as e:
        raise DoHError(f"TLS error: {e}") from e
    except (OSError, http.client.HTTPException) as e:
        raise DoHError(f"Network error: {e}") from e
