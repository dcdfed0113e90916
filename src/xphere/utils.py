from __future__ import annotations

import hashlib
import math
import random
import re
import time as _time
from decimal import Decimal
from typing import Any, Iterable, Sequence, TypeVar

T = TypeVar("T")

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_LEADING_ZERO_HEX_RE = re.compile(r"^0[0-9a-fA-F]+$")
_JS_NUMBER_RE = re.compile(
    r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$|^0[xX][0-9a-fA-F]+$|^0[oO][0-7]+$|^0[bB][01]+$"
)
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_IP_RE = re.compile(
    r"^(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\."
    r"(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)(:([0-9]{1,5}))?$"
)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def utime() -> int:
    """Current unix time in microseconds, at millisecond resolution."""
    return int(_time.time() * 1000) * 1000


def is_hex(value: Any) -> bool:
    return isinstance(value, str) and bool(_HEX_RE.match(value)) and len(value) % 2 == 0


def is_ip(value: str) -> bool:
    return bool(_IP_RE.match(value))


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return float(value)
    if isinstance(value, float):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or _LEADING_ZERO_HEX_RE.match(text) or not _JS_NUMBER_RE.match(text):
        return None
    prefix = text[:2].lower()
    if prefix in ("0x", "0o", "0b"):
        return float(int(text, 0))
    return float(text)


def is_int(value: Any) -> bool:
    """True for integral numbers and numeric strings; strings with a leading zero are rejected."""
    if isinstance(value, int) and not isinstance(value, bool):
        return True
    number = _to_number(value)
    return number is not None and math.isfinite(number) and number.is_integer()


def parse_int(value: Any, default: int = 0) -> int:
    """Parse the leading integer of ``value`` (``"12.5"`` -> 12), or return ``default``."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if value is None or value == "":
        return default
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else default


def wrapped_endpoint(endpoint: str) -> str:
    """Give a bare host a scheme: ``http://`` for IPv4 addresses, ``https://`` otherwise."""
    endpoint = endpoint.rstrip("/")
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    if endpoint.startswith("//"):
        return "https:" + endpoint
    return ("http://" if is_ip(endpoint) else "https://") + endpoint


def unique(items: Iterable[T]) -> list[T]:
    """Deduplicate by value equality, keeping first-seen order. Works for unhashable items."""
    result: list[T] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


def shuffle(items: Sequence[T]) -> list[T]:
    shuffled = list(items)
    random.shuffle(shuffled)
    return shuffled


def merge(first: Iterable[T], second: Iterable[T]) -> list[T]:
    return unique([*first, *second])


def random_slice(items: Sequence[T], size: int) -> list[T]:
    if size <= 0:
        return []
    return shuffle(items)[:size]


def apply_decimal(value: int | str, decimal: int) -> str:
    """Render an integer amount of base units with ``decimal`` places, trimming trailing zeros."""
    big = int(Decimal(str(value)))
    divisor = 10 ** decimal
    sign = "-" if big < 0 else ""
    integer_part, fractional_part = divmod(abs(big), divisor)

    if fractional_part == 0:
        return f"{sign}{integer_part}"

    fractional = str(fractional_part).rjust(decimal, "0").rstrip("0")
    return f"{sign}{integer_part}.{fractional}"
