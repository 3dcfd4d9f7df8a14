"""
Brief: Tests for dohgate.codec query construction and base64url helpers.

Inputs:
  - None

Outputs:
  - None
"""

from __future__ import annotations

import os
import struct

import pytest
from dnslib import CLASS, DNSRecord

from dohgate import codec


def test_example_com_a_wire_layout() -> None:
    """
    Brief: encode_query('example.com', 'A') matches the RFC 1035 layout byte for byte.

    Inputs:
      - None

    Outputs:
      - None; asserts header fields and question bytes.
    """
    msg = codec.encode_query("example.com", "A", txid=0xBEEF)
    assert msg[:2] == b"\xbe\xef"
    assert struct.unpack("!HHHHH", msg[2:12]) == (0x0100, 1, 0, 0, 0)
    assert msg[12:] == b"\x07example\x03com\x00" + b"\x00\x01" + b"\x00\x01"
    assert len(msg) == 12 + 13 + 4


@pytest.mark.parametrize("rtype", codec.RECORD_TYPES)
def test_encoded_query_parses_with_expected_question(rtype: str) -> None:
    """
    Brief: Every supported type decodes to one question with the right code.

    Inputs:
      - rtype: record type mnemonic

    Outputs:
      - None; asserts on the dnslib-parsed message.
    """
    record = DNSRecord.parse(codec.encode_query("sub.example-1.org", rtype))
    assert record.header.q == 1
    assert (record.header.a, record.header.auth, record.header.ar) == (0, 0, 0)
    assert record.header.rd == 1
    assert record.header.qr == 0
    assert str(record.q.qname) == "sub.example-1.org."
    assert record.q.qtype == codec.QTYPE_CODES[rtype]
    assert record.q.qclass == CLASS.IN


def test_type_codes_match_iana() -> None:
    assert codec.QTYPE_CODES == {
        "A": 1,
        "NS": 2,
        "CNAME": 5,
        "SOA": 6,
        "PTR": 12,
        "MX": 15,
        "TXT": 16,
        "AAAA": 28,
    }


@pytest.mark.parametrize("rtype", ["SRV", "", "bogus", None])
def test_unknown_type_falls_back_to_a(rtype) -> None:
    msg = codec.encode_query("example.com", rtype, txid=1)
    assert msg[-4:] == b"\x00\x01\x00\x01"


def test_lowercase_type_is_accepted() -> None:
    assert codec.encode_query("example.com", "aaaa", txid=1)[-4:-2] == b"\x00\x1c"


def test_trailing_dot_does_not_add_empty_label() -> None:
    assert codec.encode_query("example.com.", "A", txid=7) == codec.encode_query(
        "example.com", "A", txid=7
    )


def test_transaction_id_is_random_16_bit(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Brief: Without txid, the ID comes from random.getrandbits(16).

    Inputs:
      - monkeypatch: pytest fixture

    Outputs:
      - None
    """
    monkeypatch.setattr(codec.random, "getrandbits", lambda n: 0xABCD)
    assert codec.encode_query("example.com", "A")[:2] == b"\xab\xcd"


@pytest.mark.parametrize(
    "domain", ["bad..name", "", "café.com", ("a" * 64) + ".com"]
)
def test_invalid_domains_raise(domain: str) -> None:
    with pytest.raises(ValueError):
        codec.encode_query(domain, "A")


@pytest.mark.parametrize(
    "domain,expected",
    [
        ("example.com", True),
        ("example.com.", True),
        ("xn--bcher-kva.example", True),
        ("a-b.c-d.e", True),
        ("bad..name", False),
        ("under_score.com", False),
        ("space here.com", False),
        ("", False),
        (".", False),
        (("a" * 63) + ".com", True),
        (("a" * 64) + ".com", False),
        (".".join(["a" * 63] * 4), False),
    ],
)
def test_is_valid_domain(domain: str, expected: bool) -> None:
    assert codec.is_valid_domain(domain) is expected


def test_b64url_encode_strips_padding_and_uses_url_alphabet() -> None:
    assert codec.b64url_encode(b"\xfb\xff") == "-_8"
    assert codec.b64url_encode(b"") == ""
    assert "=" not in codec.b64url_encode(b"\x00")


def test_b64url_roundtrip_lengths_0_to_512() -> None:
    """
    Brief: decode(encode(b)) == b for random payloads of every length up to 512.

    Inputs:
      - None

    Outputs:
      - None
    """
    for n in range(0, 513):
        data = os.urandom(n)
        assert codec.b64url_decode(codec.b64url_encode(data)) == data


def test_b64url_decode_accepts_padded_input() -> None:
    assert codec.b64url_decode("AQI=") == b"\x01\x02"


@pytest.mark.parametrize("bad", ["AQ+/", "A", "!!!!", "AQI*"])
def test_b64url_decode_rejects_malformed(bad: str) -> None:
    with pytest.raises(ValueError):
        codec.b64url_decode(bad)


def test_b64url_decode_rejects_non_str() -> None:
    with pytest.raises(ValueError):
        codec.b64url_decode(b"AQI")  # type: ignore[arg-type]


def test_describe_query() -> None:
    assert codec.describe_query(codec.encode_query("example.com", "MX")) == (
        "example.com",
        "MX",
    )
    assert codec.describe_query(b"\x00\x01garbage") is None
