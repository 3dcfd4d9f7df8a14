"""RFC 8484 HTTP binding for DNS messages.

Brief:
  Framework-neutral mapping between HTTP requests/responses and wire-format
  DNS messages. The HTTP adapter (see dohgate.doh_api) materializes the
  request body exactly once into a DohRequest; everything downstream shares
  those bytes by reference.

Inputs:
  - DohRequest values built by the HTTP adapter.

Outputs:
  - Decoded DNS query bytes, cache keys and DohResponse values.
"""

from __future__ import annotations

import hashlib
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple

from .codec import DNS_HEADER_LEN, b64url_decode
from .errors import ClientInputError

DNS_MESSAGE_CT = "application/dns-message"
DEFAULT_DOH_PATH = "/dns-query"

CORS_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "GET, POST, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type"),
)

DOH_HEADERS: Tuple[Tuple[str, str], ...] = (("Content-Type", DNS_MESSAGE_CT),) + CORS_HEADERS

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")

_REASONS = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
    502: "Bad Gateway",
    504: "Gateway Timeout",
}

Headers = Tuple[Tuple[str, str], ...]


def _freeze_headers(headers: Optional[Iterable[Tuple[str, str]]]) -> Headers:
    if headers is None:
        return ()
    if isinstance(headers, Mapping):
        headers = headers.items()
    return tuple((str(k), str(v)) for k, v in headers)


@dataclass(frozen=True)
class DohRequest:
    """Brief: Immutable view of an inbound HTTP request.

    Inputs:
      - method: HTTP method.
      - url: Absolute request URL (scheme://host/path?query).
      - headers: Ordered (name, value) pairs; lookups are case-insensitive.
      - body: Request body, already read in full.
      - metadata: Opaque client hints (client IP, coarse geolocation) passed
        through to the resolver untouched.

    Outputs:
      - DohRequest instance.
    """

    method: str
    url: str
    headers: Headers = ()
    body: bytes = b""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", str(self.method).upper())
        object.__setattr__(self, "headers", _freeze_headers(self.headers))
        object.__setattr__(self, "body", bytes(self.body or b""))

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        wanted = name.lower()
        for k, v in self.headers:
            if k.lower() == wanted:
                return v
        return default

    @property
    def parsed_url(self) -> urllib.parse.SplitResult:
        return urllib.parse.urlsplit(self.url)


@dataclass(frozen=True)
class DohResponse:
    """Brief: Immutable HTTP response carrying a DNS message or an error.

    Inputs:
      - status: HTTP status code.
      - headers: Ordered (name, value) pairs, duplicates preserved.
      - body: Response payload.

    Outputs:
      - DohResponse instance.
    """

    status: int
    headers: Headers = ()
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", int(self.status))
        object.__setattr__(self, "headers", _freeze_headers(self.headers))
        object.__setattr__(self, "body", bytes(self.body or b""))

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        wanted = name.lower()
        for k, v in self.headers:
            if k.lower() == wanted:
                return v
        return default


def _media_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def check_route(request: DohRequest, path: str = DEFAULT_DOH_PATH) -> None:
    """Brief: Validate the request path and method before anything is read.

    Raises:
      - ClientInputError(404) for a path other than ``path``.
      - ClientInputError(405) for a method other than GET/POST/OPTIONS.
    """

    if request.parsed_url.path != path:
        raise ClientInputError(f"unknown path {request.parsed_url.path!r}", 404)
    if request.method not in ALLOWED_METHODS:
        raise ClientInputError(f"method {request.method} not allowed", 405)


def decode_query(request: DohRequest, *, content_type_policy: str = "strict") -> bytes:
    """Brief: Recover the wire-format DNS query from a GET or POST request.

    Inputs:
      - request: DohRequest with method GET or POST.
      - content_type_policy: 'strict' rejects a POST whose media type is not
        application/dns-message with 400; 'lenient' accepts any.

    Outputs:
      - bytes: DNS query message.

    Raises:
      - ClientInputError: missing/malformed ``dns`` parameter, bad content
        type, empty body, message shorter than a DNS header, or a method
        that carries no query.
    """

    if request.method == "GET":
        params = urllib.parse.parse_qs(request.parsed_url.query)
        values = params.get("dns")
        if not values or not values[0]:
            raise ClientInputError("missing dns parameter")
        try:
            query = b64url_decode(values[0])
        except ValueError as exc:
            raise ClientInputError(f"malformed dns parameter: {exc}") from exc
    elif request.method == "POST":
        if content_type_policy == "strict":
            ctype = _media_type(request.header("content-type"))
            if ctype != DNS_MESSAGE_CT:
                raise ClientInputError(f"unsupported content type {ctype!r}")
        query = request.body
    else:
        raise ClientInputError(f"method {request.method} carries no query", 405)

    if len(query) < DNS_HEADER_LEN:
        raise ClientInputError(f"DNS message too short ({len(query)} bytes)")
    return query


def cache_key_for(request: DohRequest, query: bytes) -> str:
    """Brief: Derive the cache key for a decoded request.

    Inputs:
      - request: GET or POST DohRequest.
      - query: The decoded DNS query bytes.

    Outputs:
      - str: GET -> normalized URL with sorted query parameters;
        POST -> URL without query plus a SHA-256 digest of the body.
    """

    parts = request.parsed_url
    base = f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path}"
    if request.method == "GET":
        pairs = sorted(urllib.parse.parse_qsl(parts.query, keep_blank_values=True))
        return f"{base}?{urllib.parse.urlencode(pairs)}"
    return f"{base}#post:{hashlib.sha256(query).hexdigest()}"


def dns_message_response(message: bytes, *, cache_max_age: int = 60) -> DohResponse:
    """Build the 200 response carrying a DNS answer."""

    headers = DOH_HEADERS
    if cache_max_age > 0:
        headers = headers + (("Cache-Control", f"max-age={int(cache_max_age)}"),)
    return DohResponse(200, headers, message)


def preflight_response() -> DohResponse:
    """CORS preflight answer: 204, no body."""

    return DohResponse(204, CORS_HEADERS, b"")


def error_response(status: int) -> DohResponse:
    """Brief: Build a generic error response.

    Outputs:
      - DohResponse with CORS headers, a text/plain reason phrase and, for
        405, an Allow header. Internal detail never reaches the body.
    """

    headers = (("Content-Type", "text/plain; charset=utf-8"),) + CORS_HEADERS
    if status == 405:
        headers = headers + (("Allow", ", ".join(ALLOWED_METHODS)),)
    reason = _REASONS.get(status, "Error")
    return DohResponse(status, headers, reason.encode("ascii"))
