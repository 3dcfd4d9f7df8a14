"""DNS query message construction and base64url transport encoding.

Brief:
  Builds single-question RFC 1035 query messages from a domain name and a
  record type mnemonic, and provides the unpadded base64url encoding RFC 8484
  uses to carry a message in the ``dns`` query parameter of a GET request.

Inputs:
  - Domain names and record type mnemonics supplied by clients.

Outputs:
  - Wire-format query bytes and base64url strings.
"""

from __future__ import annotations

import base64
import random
import re
import struct
from typing import Optional, Tuple

from dnslib import QTYPE, DNSError, DNSRecord

RECORD_TYPES: Tuple[str, ...] = ("A", "AAAA", "NS", "CNAME", "MX", "TXT", "PTR", "SOA")

QTYPE_CODES = {
    "A": 1,
    "NS": 2,
    "CNAME": 5,
    "SOA": 6,
    "PTR": 12,
    "MX": 15,
    "TXT": 16,
    "AAAA": 28,
}

QCLASS_IN = 1
FLAGS_STANDARD_QUERY_RD = 0x0100
DNS_HEADER_LEN = 12
MAX_QUERY_LEN = 512
MAX_LABEL_LEN = 63
MAX_NAME_LEN = 255

_LABEL_RE = re.compile(r"^[A-Za-z0-9-]+$")
_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")
_HEADER = struct.Struct("!HHHHHH")
_QTAIL = struct.Struct("!HH")


def _split_labels(domain: str) -> list[str]:
    name = domain[:-1] if domain.endswith(".") else domain
    return name.split(".")


def is_valid_domain(domain: str) -> bool:
    """Brief: Check a user-entered domain before it is encoded.

    Inputs:
      - domain: Dot-separated name; a single trailing dot is tolerated.

    Outputs:
      - bool: True when every label is 1-63 letters, digits or hyphens and the
        encoded name fits in 255 octets.

    Example:
      >>> is_valid_domain("example.com")
      True
      >>> is_valid_domain("bad..name")
      False
    """

    if not isinstance(domain, str) or not domain or domain == ".":
        return False
    labels = _split_labels(domain)
    encoded_len = 1
    for label in labels:
        if not label or len(label) > MAX_LABEL_LEN or not _LABEL_RE.match(label):
            return False
        encoded_len += 1 + len(label)
    return encoded_len <= MAX_NAME_LEN


def qtype_code(record_type: str) -> int:
    """Return the IANA type code for a mnemonic, falling back to A (1)."""

    return QTYPE_CODES.get(str(record_type or "").strip().upper(), QTYPE_CODES["A"])


def encode_query(domain: str, record_type: str, *, txid: Optional[int] = None) -> bytes:
    """Brief: Build a wire-format DNS query with exactly one question.

    Inputs:
      - domain: Dot-separated ASCII name, validated by the caller.
      - record_type: One of RECORD_TYPES; unknown types are sent as A.
      - txid: Optional fixed 16-bit transaction ID (random when omitted).

    Outputs:
      - bytes: Header (RD set, QDCOUNT=1) followed by QNAME/QTYPE/QCLASS=IN,
        exactly as long as the data written.

    Example:
      >>> encode_query("example.com", "A", txid=0)[12:]
      b'\\x07example\\x03com\\x00\\x00\\x01\\x00\\x01'
    """

    if txid is None:
        txid = random.getrandbits(16)

    buf = bytearray(_HEADER.pack(txid & 0xFFFF, FLAGS_STANDARD_QUERY_RD, 1, 0, 0, 0))
    for label in _split_labels(domain):
        if not label:
            raise ValueError(f"empty label in domain {domain!r}")
        try:
            raw = label.encode("ascii")
        except UnicodeEncodeError:
            raise ValueError(f"non-ASCII label in domain {domain!r}") from None
        if len(raw) > MAX_LABEL_LEN:
            raise ValueError(f"label longer than {MAX_LABEL_LEN} octets: {label!r}")
        buf.append(len(raw))
        buf += raw
    buf.append(0)
    buf += _QTAIL.pack(qtype_code(record_type), QCLASS_IN)

    if len(buf) > MAX_QUERY_LEN:
        raise ValueError(f"query exceeds {MAX_QUERY_LEN} bytes")
    return bytes(buf)


def b64url_encode(data: bytes) -> str:
    """Brief: Base64url-encode without '=' padding per RFC 8484.

    Example:
      >>> b64url_encode(b"\\x01\\x02")
      'AQI'
    """

    return base64.urlsafe_b64encode(bytes(data)).decode("ascii").rstrip("=")


def b64url_decode(s: str) -> bytes:
    """Brief: Decode unpadded (or padded) base64url text.

    Inputs:
      - s: base64url string, '=' padding optional.

    Outputs:
      - bytes: decoded binary.

    Raises:
      - ValueError: input is not a str or contains characters outside the
        base64url alphabet, or has an impossible length.

    Example:
      >>> b64url_decode('AQI')
      b'\\x01\\x02'
    """

    if not isinstance(s, str):
        raise ValueError("input must be str")
    text = s.rstrip("=")
    if not _B64URL_RE.match(text):
        raise ValueError("invalid base64url character")
    pad = "=" * ((4 - len(text) % 4) % 4)
    return base64.urlsafe_b64decode(text + pad)


def describe_query(message: bytes) -> Optional[Tuple[str, str]]:
    """Brief: Summarize the first question of a message for log lines.

    Inputs:
      - message: Wire-format DNS message.

    Outputs:
      - (qname, qtype_name) or None when the message cannot be parsed.
    """

    try:
        record = DNSRecord.parse(message)
    except (DNSError, ValueError, IndexError, struct.error):
        return None
    if not record.questions:
        return None
    q = record.questions[0]
    return str(q.qname).rstrip(".") or ".", QTYPE.get(q.qtype, str(q.qtype))
