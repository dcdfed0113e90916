"""
RPC client for Xphere nodes.

Wraps a ``Dispatcher`` with the node's HTTP surface:
- single-endpoint calls (ping, round, peer listing, request, sendtransaction)
- aggregates over every endpoint: merged peer lists, best round,
  transaction broadcast to static endpoints plus sampled peers
- fee estimation from the node-reported weight
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

import httpx

from ..config import ClientConfig
from ..errors import ConsensusFailure, UpstreamError
from ..models import DispatchResult, PeerList, RoundSnapshot, RpcResponse, SUCCESS_CODE, peer_host
from ..sigil import enc
from ..utils import is_int, merge, parse_int, random_slice, unique
from .dispatch import Dispatcher, Predicate

logger = logging.getLogger(__name__)

FEE_UNIT = 1_000_000_000
FEE_SURCHARGE = 336


def fee_for(weight: int, length: int) -> int:
    """Fee for a payload of ``length`` bytes that the network weighed at ``weight``."""
    if weight == length:
        return (length + FEE_SURCHARGE) * FEE_UNIT
    return weight * FEE_UNIT


def payload_length(signed: Mapping[str, Any]) -> int:
    return len(enc.compact_json(signed).encode("utf-8"))


def choose_broadcast_result(results: Sequence[DispatchResult]) -> DispatchResult:
    """
    Reduce broadcast results to one.

    The first 200 wins; failing that, the numerically highest code among the
    rest; failing that (no result carries a code), the first result.
    """
    if not results:
        raise ConsensusFailure("Broadcast reached no endpoint", partial=[])

    for result in results:
        if result.code == SUCCESS_CODE:
            return result

    coded = [result for result in results if result.code is not None]
    if coded:
        return max(coded, key=lambda result: result.code)
    return results[0]


def _block(data: Any, chain: str) -> Optional[dict[str, Any]]:
    if not isinstance(data, Mapping):
        return None
    chain_data = data.get(chain)
    block = chain_data.get("block") if isinstance(chain_data, Mapping) else None
    if not isinstance(block, Mapping) or not is_int(block.get("height")):
        return None
    return dict(block)


def _peer_values(peers: Any) -> list[Any]:
    if isinstance(peers, Mapping):
        return list(peers.values())
    if isinstance(peers, list):
        return list(peers)
    return []


def _require_ok(response: RpcResponse) -> RpcResponse:
    if not response.ok:
        raise UpstreamError(response.msg, code=response.code, data=response.data)
    return response


class Rpc:
    """
    Async client for one Xphere network.

    Args:
        config: Endpoint pool and request settings
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``)
        dispatcher: Use an existing dispatcher instead of building one
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        dispatcher: Optional[Dispatcher] = None,
    ) -> None:
        self.dispatcher = dispatcher or Dispatcher(config, transport=transport)

    @property
    def config(self) -> ClientConfig:
        return self.dispatcher.config

    # ---------- single endpoint ----------

    async def get(self, path: str, payload: Optional[Mapping[str, Any]] = None) -> RpcResponse:
        return await self.dispatcher.fetch("GET", path, payload or {})

    async def post(self, path: str, payload: Optional[Mapping[str, Any]] = None) -> RpcResponse:
        return await self.dispatcher.fetch("POST", path, payload or {})

    async def ping(self) -> RpcResponse:
        return await self.get("ping")

    async def round(self) -> RpcResponse:
        return await self.get("round", {"chain_type": "all"})

    async def tracker(self) -> RpcResponse:
        return await self.get("peer")

    async def peer(self) -> list[Any]:
        response = _require_ok(await self.tracker())
        data = response.data if isinstance(response.data, Mapping) else {}
        return _peer_values(data.get("peers"))

    async def request(self, signed_request: Mapping[str, Any]) -> RpcResponse:
        return await self.get("request", signed_request)

    async def send_transaction(self, signed_transaction: Mapping[str, Any]) -> RpcResponse:
        return await self.post("sendtransaction", signed_transaction)

    # ---------- fan-out ----------

    async def race_request(
        self,
        signed_request: Mapping[str, Any],
        predicate: Optional[Predicate] = None,
    ) -> RpcResponse:
        return await self.dispatcher.race("GET", "request", signed_request, predicate)

    async def send_transaction_to_all(self, signed_transaction: Mapping[str, Any]) -> list[DispatchResult]:
        return await self.dispatcher.all("POST", "sendtransaction", signed_transaction)

    async def tracker_from_all(self) -> PeerList:
        """Peers and known hosts merged across every endpoint, deduplicated by value."""
        results = await self.dispatcher.all("GET", "peer", {})
        peers: list[Any] = []
        known_hosts: list[str] = []

        for result in results:
            data = result.data
            if not isinstance(data, Mapping):
                continue
            if isinstance(data.get("peers"), (Mapping, list)) and isinstance(data.get("known_hosts"), list):
                peers.extend(_peer_values(data["peers"]))
                known_hosts.extend(data["known_hosts"])

        if not peers:
            raise ConsensusFailure("No endpoint returned a peer list", partial=results)
        return PeerList(peers=unique(peers), known_hosts=unique(known_hosts))

    async def peer_from_all(self) -> list[Any]:
        results = await self.dispatcher.all("GET", "peer", {})
        peers: list[Any] = []

        for result in results:
            if isinstance(result.data, Mapping):
                peers.extend(_peer_values(result.data.get("peers")))

        if not peers:
            raise ConsensusFailure("No endpoint returned a peer list", partial=results)
        return unique(peers)

    async def best_round(self) -> RoundSnapshot:
        """Highest main height and highest resource height, each taken independently."""
        results = await self.dispatcher.all("GET", "round", {"chain_type": "all"})
        mains = [block for block in (_block(r.data, "main") for r in results if r.ok) if block]
        resources = [block for block in (_block(r.data, "resource") for r in results if r.ok) if block]

        if not mains or not resources:
            raise ConsensusFailure("No endpoint returned round data", partial={"main": None, "resource": None})

        return RoundSnapshot(
            main=max(mains, key=lambda block: int(block["height"])),
            resource=max(resources, key=lambda block: int(block["height"])),
        )

    async def broadcast_targets(self) -> list[str]:
        """Static endpoints plus a random sample of discovered peers, capped at the broadcast limit."""
        peers = await self.peer_from_all()
        static = list(self.config.endpoints)
        room = self.config.broadcast_limit - len(static)
        sampled = [peer_host(peer) for peer in random_slice(peers, room)]
        return merge(static, [host for host in sampled if host])[: self.config.broadcast_limit]

    async def broadcast_transaction(self, signed_transaction: Mapping[str, Any]) -> DispatchResult:
        targets = await self.broadcast_targets()
        logger.debug("Broadcasting transaction to %d endpoints", len(targets))
        results = await self.dispatcher.all("POST", "sendtransaction", signed_transaction, endpoints=targets)
        return choose_broadcast_result(results)

    async def estimated_fee(self, signed_transaction: Mapping[str, Any]) -> int:
        length = payload_length(signed_transaction)
        response = await self.dispatcher.race("POST", "weight", signed_transaction, is_int)
        weight = parse_int(response.data)
        logger.debug("Payload length %d, weight %d", length, weight)
        return fee_for(weight, length)
