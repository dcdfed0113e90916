"""
Transaction Builder - Sign, broadcast and confirm Xphere transactions.

Envelopes carry the payload under ``transaction`` or ``request`` together
with ``public_key`` and ``signature``. ``from`` is always re-derived from
the signing key and the signature covers ``enc.tx_hash(payload)``.

The submission workflow signs once, then loops::

    Broadcast -> Polling -> Confirmed
        ^           |
        +-- Resent -+

resending the very same signed envelope until the lookup shows it landed.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import (
    DO_NOT_RETRY_CODE,
    RetryLimitExceeded,
    RpcError,
    SubmissionCancelled,
    UpstreamError,
    ValidationError,
)
from ..models import ContractCode, DispatchResult, RpcResponse, parse_code
from ..sigil import enc, sign
from ..utils import parse_int, utime
from .rpc import Rpc

logger = logging.getLogger(__name__)

TRANSACTION_DELAY = 2_000_000  # µs added to transaction timestamps
DEFAULT_POLL_INTERVAL = 2.0


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------

def signed_data(item: Mapping[str, Any], private_key: Optional[str] = None, kind: str = "transaction") -> dict[str, Any]:
    """
    Sign ``item`` into an envelope.

    Args:
        item: Payload fields; it is copied, never modified
        private_key: 64-hex seed; a throwaway key is used when omitted
        kind: "transaction" or "request"

    Returns:
        ``{kind: payload, "public_key": ..., "signature": ...}``

    Raises:
        ValidationError: If the key or the payload is malformed
    """
    if not isinstance(item, Mapping):
        raise ValidationError(f"A {kind} must be a mapping, got {type(item).__name__}")
    if private_key is None:
        private_key = sign.private_key()
    if not sign.key_validity(private_key):
        raise ValidationError("Invalid private key: expected 64 hex characters.")

    public_key = sign.public_key(private_key)
    payload = dict(item)
    payload["from"] = sign.address(public_key)

    timestamp = payload.get("timestamp")
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        payload["timestamp"] = utime() + (TRANSACTION_DELAY if kind == "transaction" else 0)

    return {
        kind: payload,
        "public_key": public_key,
        "signature": sign.signature(enc.tx_hash(payload), private_key),
    }


def signed_request(item: Mapping[str, Any], private_key: Optional[str] = None) -> dict[str, Any]:
    return signed_data(item, private_key, "request")


def signed_transaction(item: Mapping[str, Any], private_key: Optional[str] = None) -> dict[str, Any]:
    return signed_data(item, private_key, "transaction")


def simple_request(item: Any) -> dict[str, Any]:
    return {"request": item}


def envelope_validity(envelope: Mapping[str, Any]) -> bool:
    """Check that an envelope's signature and ``from`` match its public key."""
    payload = envelope.get("transaction", envelope.get("request"))
    public_key = envelope.get("public_key")
    if not isinstance(payload, Mapping) or not sign.key_validity(public_key):
        return False
    return payload.get("from") == sign.address(public_key) and sign.signature_validity(
        enc.tx_hash(payload), public_key, envelope.get("signature")
    )


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

class SubmissionState(str, enum.Enum):
    SIGNED = "signed"
    BROADCAST = "broadcast"
    POLLING = "polling"
    RESENT = "resent"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class SubmissionResult:
    state: SubmissionState
    thash: str
    attempts: int
    response: DispatchResult
    lookup: RpcResponse


def _enter(state: SubmissionState, thash: str, attempt: int = 0) -> None:
    level = logging.WARNING if state is SubmissionState.RESENT else logging.INFO
    logger.log(level, "%s %s (attempt %d)", state.value, thash, attempt)


def lookup_finalized(response: RpcResponse) -> bool:
    """A lookup counts as final when it is a 200 with a non-empty mapping and no null fields."""
    data = response.data
    return (
        response.ok
        and isinstance(data, Mapping)
        and len(data) > 0
        and all(value is not None for value in data.values())
    )


async def _sleep(seconds: float, cancel: Optional[asyncio.Event]) -> None:
    if cancel is None:
        await asyncio.sleep(seconds)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return
    raise SubmissionCancelled()


def _check_cancel(cancel: Optional[asyncio.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise SubmissionCancelled()


def _round_timestamp(response: RpcResponse) -> int:
    data = response.data if isinstance(response.data, Mapping) else {}
    main = data.get("main") if isinstance(data.get("main"), Mapping) else {}
    block = main.get("block") if isinstance(main.get("block"), Mapping) else {}
    return parse_int(block.get("s_timestamp"))


async def wait_for_finality(
    rpc: Rpc,
    timestamp: int,
    lookup: Mapping[str, Any],
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    cancel: Optional[asyncio.Event] = None,
) -> tuple[bool, Optional[RpcResponse]]:
    """
    Poll until the chain has moved past ``timestamp``, then run ``lookup`` once.

    Returns:
        (finalized, lookup response); the response is None when the lookup itself failed
    """
    while True:
        await _sleep(poll_interval, cancel)
        try:
            round_info = await rpc.round()
        except RpcError as exc:
            logger.warning("Round query failed, polling again: %s", exc)
            continue
        if _round_timestamp(round_info) > timestamp:
            break

    _check_cancel(cancel)
    try:
        response = await rpc.request(signed_request(lookup))
    except RpcError as exc:
        logger.warning("Lookup failed, treating as not finalized: %s", exc)
        return False, None
    return lookup_finalized(response), response


async def submit_transaction(
    rpc: Rpc,
    item: Mapping[str, Any],
    private_key: str,
    lookup: Mapping[str, Any],
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: Optional[int] = None,
    cancel: Optional[asyncio.Event] = None,
) -> SubmissionResult:
    """
    Sign ``item`` once and broadcast it until ``lookup`` shows it on chain.

    Args:
        rpc: Client to submit through
        item: Transaction payload
        private_key: 64-hex signing seed
        lookup: Request payload whose response has no null fields once the transaction landed
        poll_interval: Seconds between round queries
        max_attempts: Broadcast bound; None retries forever
        cancel: Set it to stop the loop

    Raises:
        UpstreamError: The network answered with the do-not-retry code
        RetryLimitExceeded: ``max_attempts`` broadcasts went by without confirmation
        SubmissionCancelled: ``cancel`` was set
    """
    if max_attempts is not None and max_attempts <= 0:
        raise ValidationError("max_attempts must be positive")

    signed = signed_transaction(item, private_key)
    payload = signed["transaction"]
    thash = enc.tx_hash(payload)
    timestamp = payload["timestamp"]
    _enter(SubmissionState.SIGNED, thash)
    attempts = 0

    while max_attempts is None or attempts < max_attempts:
        _check_cancel(cancel)
        attempts += 1
        _enter(SubmissionState.BROADCAST, thash, attempts)
        result = await rpc.broadcast_transaction(signed)

        if result.code == DO_NOT_RETRY_CODE:
            raise UpstreamError(result.msg, code=result.code, data=result.data, endpoint=result.endpoint)

        if result.ok:
            _enter(SubmissionState.POLLING, thash, attempts)
            finalized, response = await wait_for_finality(rpc, timestamp, lookup, poll_interval, cancel)
            if finalized and response is not None:
                _enter(SubmissionState.CONFIRMED, thash, attempts)
                return SubmissionResult(SubmissionState.CONFIRMED, thash, attempts, result, response)
        else:
            logger.warning("Broadcast of %s answered %s: %s", thash, result.code, result.msg)
            await _sleep(poll_interval, cancel)

        _enter(SubmissionState.RESENT, thash, attempts)

    raise RetryLimitExceeded(data={"thash": thash, "attempts": attempts})


def code_lookup(code: ContractCode) -> dict[str, Any]:
    return {"type": "GetCode", "ctype": code.ctype, "target": code.mid}


async def publish_code(
    rpc: Rpc,
    code: str | Mapping[str, Any],
    private_key: str,
    kind: str = "Register",
    **options: Any,
) -> SubmissionResult:
    """
    Register (or publish) a compiled code document and wait until the node serves it.

    ``code`` is the compiled JSON document, in either key schema.
    """
    parsed = parse_code(code)
    compiled = code if isinstance(code, str) else enc.compact_json(dict(code))
    item = {"type": kind, "code": compiled, "timestamp": utime() + 1_000_000}
    return await submit_transaction(rpc, item, private_key, code_lookup(parsed), **options)
