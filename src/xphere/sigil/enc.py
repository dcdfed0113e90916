"""
Xphere canonical encoding and hashing.

Nodes recompute every identifier and signature payload themselves, so the
output here has to match theirs byte for byte.

Provides:
- ``string``: the canonical text form of any value (hashing/signing input)
- SHA-256 ``hash``, RIPEMD-160 ``short_hash``, 4-char double-hash ``checksum``
- self-checksummed 44-char ``id_hash`` (the address format)
- 14-char ``hextime`` and 78-char ``time_hash`` / ``tx_hash`` identifiers
- validity predicates that never raise
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from Crypto.Hash import RIPEMD160

from ..utils import is_hex, sha256_hex, utime

SHORT_HASH_SIZE = 40
ID_HASH_SIZE = 44
HASH_SIZE = 64
HEX_TIME_SIZE = 14
TIME_HASH_SIZE = 78
ZERO_ADDRESS = "0" * ID_HASH_SIZE

_HEX_TIME_MASK = (1 << (HEX_TIME_SIZE * 4)) - 1


# ---------------------------------------------------------------------------
# Canonical string
# ---------------------------------------------------------------------------

def _js_number(value: float) -> str:
    """Format a float the way JavaScript's Number#toString does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    if value < 0:
        return "-" + _js_number(-value)

    # repr() yields the shortest round-tripping digits, same as JS
    _, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0") or "0"
    k = len(digits)
    n = exponent + len(digit_tuple)

    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return "0." + "0" * (-n) + digits

    e = n - 1
    mantissa = digits[0] + ("." + digits[1:] if k > 1 else "")
    return f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def _scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _js_number(value)
    return str(value)


def _json(value: Any) -> str:
    if isinstance(value, Mapping):
        members = (f"{_json(str(k))}:{_json(v)}" for k, v in value.items())
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_json(v) for v in value) + "]"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, float) and not math.isfinite(value):
        return "null"
    if value is None or isinstance(value, (bool, int, float)):
        return _scalar(value)
    return json.dumps(str(value), ensure_ascii=False)


def compact_json(value: Any) -> str:
    """Compact JSON as JavaScript's ``JSON.stringify`` writes it, without the canonical escapes."""
    return _json(value)


def _escape_wide(text: str) -> str:
    # Escape per UTF-16 code unit so astral characters become surrogate pairs.
    out = []
    for ch in text:
        cp = ord(ch)
        if cp > 0xFFFF:
            cp -= 0x10000
            out.append("\\u%04x\\u%04x" % (0xD800 + (cp >> 10), 0xDC00 + (cp & 0x3FF)))
        elif cp > 0xFF:
            out.append("\\u%04x" % cp)
        else:
            out.append(ch)
    return "".join(out)


def string(value: Any) -> str:
    """Canonical text form of ``value``.

    Containers are serialized as compact JSON in their given key order (the
    caller owns key ordering), scalars are stringified. Forward slashes are
    escaped as ``\\/`` and every code unit above 0xFF as ``\\uXXXX``.
    """
    if isinstance(value, (Mapping, list, tuple)):
        text = _json(value)
    else:
        text = _scalar(value)
    return _escape_wide(text.replace("/", "\\/"))


# ---------------------------------------------------------------------------
# Hashes
# ---------------------------------------------------------------------------

def hash(value: Any) -> str:  # noqa: A001 - mirrors the network's naming
    return sha256_hex(string(value).encode("utf-8"))


def short_hash(value: Any) -> str:
    return RIPEMD160.new(hash(value).encode("utf-8")).hexdigest()


def checksum(hex_string: str) -> str:
    return hash(hash(hex_string))[:4]


def id_hash(value: Any) -> str:
    short = short_hash(value)
    return short + checksum(short)


def hextime(utime_value: Optional[int] = None) -> str:
    if isinstance(utime_value, float) and utime_value.is_integer():
        utime_value = int(utime_value)
    if not isinstance(utime_value, int) or isinstance(utime_value, bool):
        utime_value = utime()
    return format(utime_value & _HEX_TIME_MASK, "0%dx" % HEX_TIME_SIZE)


def time_hash(value: Any, utime_value: Optional[int] = None) -> str:
    return hextime(utime_value) + hash(value)


def tx_hash(tx: Mapping[str, Any]) -> str:
    """Transaction id: the hash of ``tx`` re-hashed under its own timestamp prefix."""
    return time_hash(hash(tx), tx.get("timestamp"))


def space_id(writer: str, space: str) -> str:
    return hash([writer, space])


def cid(writer: str, space: str) -> str:
    return space_id(writer, space)


# ---------------------------------------------------------------------------
# Validity
# ---------------------------------------------------------------------------

def time_hash_validity(value: Any) -> bool:
    return is_hex(value) and len(value) == TIME_HASH_SIZE


def id_hash_validity(value: Any) -> bool:
    return (
        is_hex(value)
        and len(value) == ID_HASH_SIZE
        and checksum(value[:SHORT_HASH_SIZE]) == value[-4:]
    )


__all__ = [
    "SHORT_HASH_SIZE",
    "ID_HASH_SIZE",
    "HASH_SIZE",
    "HEX_TIME_SIZE",
    "TIME_HASH_SIZE",
    "ZERO_ADDRESS",
    "string",
    "compact_json",
    "hash",
    "short_hash",
    "checksum",
    "id_hash",
    "hextime",
    "time_hash",
    "tx_hash",
    "space_id",
    "cid",
    "is_hex",
    "time_hash_validity",
    "id_hash_validity",
]
