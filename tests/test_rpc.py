"""Tests for the RPC surface and its aggregates (pneuma/rpc.py)."""

from __future__ import annotations

import pytest

from xphere.errors import ConsensusFailure, UpstreamError
from xphere.models import DispatchResult
from xphere.pneuma.rpc import choose_broadcast_result, fee_for, payload_length
from xphere.pneuma.tx import signed_transaction
from xphere.sigil import enc

from .conftest import RFC_SEED, FakeNetwork, delayed, form_fields, ok


def _round(main: int, resource: int) -> dict[str, object]:
    return ok({
        "main": {"block": {"height": main, "s_timestamp": 0}},
        "resource": {"block": {"height": resource}},
    })


class TestFee:
    """fee_for / payload_length."""

    def test_weight_equal_to_length_adds_surcharge(self) -> None:
        assert fee_for(200, 200) == 536_000_000_000

    def test_weight_differs_from_length(self) -> None:
        assert fee_for(500, 200) == 500_000_000_000

    def test_payload_length_counts_utf8_bytes(self) -> None:
        assert payload_length({"a": "b"}) == len('{"a":"b"}')
        assert payload_length({"a": chr(0xD55C)}) == len('{"a":""}') + 3

    def test_payload_length_uses_javascript_number_form(self) -> None:
        assert payload_length({"a": 1.0}) == len('{"a":1}')
        assert payload_length({"a": 1e21}) == len('{"a":1e+21}')


class TestChooseBroadcastResult:
    """Tie-break over broadcast results."""

    def test_first_success_wins(self) -> None:
        results = [
            DispatchResult(endpoint="a", code=503),
            DispatchResult(endpoint="b", code=200),
            DispatchResult(endpoint="c", code=200),
        ]
        assert choose_broadcast_result(results).endpoint == "b"

    def test_highest_code_when_nothing_succeeded(self) -> None:
        results = [
            DispatchResult(endpoint="a", code=500),
            DispatchResult(endpoint="b", code=503),
            DispatchResult(endpoint="c", code=404),
        ]
        assert choose_broadcast_result(results).code == 503

    def test_first_result_when_nothing_has_a_code(self) -> None:
        results = [
            DispatchResult(endpoint="a", msg="Transport error"),
            DispatchResult(endpoint="b", msg="Condition not met"),
        ]
        assert choose_broadcast_result(results).endpoint == "a"

    def test_empty(self) -> None:
        with pytest.raises(ConsensusFailure):
            choose_broadcast_result([])


class TestSingleEndpoint:
    """Calls that hit one random endpoint."""

    @pytest.mark.asyncio
    async def test_round_asks_for_all_chains(self, network: FakeNetwork) -> None:
        network.route("n1.test", "round", _round(3, 4))

        response = await network.rpc(["n1.test"]).round()

        assert response.data["main"]["block"]["height"] == 3
        assert network.calls[0].url.params["chain_type"] == "all"

    @pytest.mark.asyncio
    async def test_ping(self, network: FakeNetwork) -> None:
        network.route("n1.test", "ping", ok("pong"))
        assert (await network.rpc(["n1.test"]).ping()).data == "pong"

    @pytest.mark.asyncio
    async def test_peer_accepts_mapping_or_list(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": {"x": "p1.test", "y": "p2.test"}, "known_hosts": []}))
        assert await network.rpc(["n1.test"]).peer() == ["p1.test", "p2.test"]

    @pytest.mark.asyncio
    async def test_peer_raises_on_error_envelope(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", {"code": 500, "msg": "down"})
        with pytest.raises(UpstreamError):
            await network.rpc(["n1.test"]).peer()

    @pytest.mark.asyncio
    async def test_request_sends_envelope_as_query(self, network: FakeNetwork) -> None:
        network.route("n1.test", "request", ok({"balance": "5"}))
        envelope = {"request": {"type": "GetBalance"}, "public_key": "ab", "signature": "cd"}

        response = await network.rpc(["n1.test"]).request(envelope)

        assert response.data == {"balance": "5"}
        assert network.calls[0].url.params["request"] == enc.string({"type": "GetBalance"})

    @pytest.mark.asyncio
    async def test_send_transaction_posts(self, network: FakeNetwork) -> None:
        network.route("n1.test", "sendtransaction", ok())
        signed = signed_transaction({"type": "Send"}, RFC_SEED)

        await network.rpc(["n1.test"]).send_transaction(signed)

        assert network.calls[0].method == "POST"
        assert form_fields(network.calls[0])["signature"] == signed["signature"]


class TestAggregates:
    """Fan-out aggregates."""

    @pytest.mark.asyncio
    async def test_best_round_takes_each_maximum_independently(self, network: FakeNetwork) -> None:
        network.route("n1.test", "round", _round(10, 3))
        network.route("n2.test", "round", _round(7, 9))
        network.route("n3.test", "round", _round(15, 4))

        snapshot = await network.rpc(["n1.test", "n2.test", "n3.test"]).best_round()

        assert snapshot.main_height == 15
        assert snapshot.resource_height == 9

    @pytest.mark.asyncio
    async def test_best_round_ignores_failures(self, network: FakeNetwork) -> None:
        network.route("n1.test", "round", _round(10, 3))
        network.route("n2.test", "round", {"code": 500})
        network.route("n3.test", "round", ok({"main": {"block": {"height": "x"}}}))

        snapshot = await network.rpc(["n1.test", "n2.test", "n3.test"]).best_round()

        assert (snapshot.main_height, snapshot.resource_height) == (10, 3)

    @pytest.mark.asyncio
    async def test_best_round_without_data(self, network: FakeNetwork) -> None:
        network.route("n1.test", "round", {"code": 500})

        with pytest.raises(ConsensusFailure) as exc_info:
            await network.rpc(["n1.test", "n2.test"]).best_round()

        assert exc_info.value.partial == {"main": None, "resource": None}

    @pytest.mark.asyncio
    async def test_tracker_from_all_merges_and_deduplicates(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": ["p1.test", "p2.test"], "known_hosts": ["k1"]}))
        network.route("n2.test", "peer", ok({"peers": {"a": "p2.test", "b": "p3.test"}, "known_hosts": ["k1", "k2"]}))
        network.route("n3.test", "peer", {"code": 500})

        peers = await network.rpc(["n1.test", "n2.test", "n3.test"]).tracker_from_all()

        assert peers.peers == ["p1.test", "p2.test", "p3.test"]
        assert peers.known_hosts == ["k1", "k2"]

    @pytest.mark.asyncio
    async def test_tracker_from_all_without_peers(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": [], "known_hosts": []}))

        with pytest.raises(ConsensusFailure) as exc_info:
            await network.rpc(["n1.test"]).tracker_from_all()

        assert len(exc_info.value.partial) == 1

    @pytest.mark.asyncio
    async def test_peer_from_all(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": [{"host": "p1.test"}]}))
        network.route("n2.test", "peer", ok({"peers": [{"host": "p1.test"}, {"host": "p2.test"}]}))

        peers = await network.rpc(["n1.test", "n2.test"]).peer_from_all()

        assert peers == [{"host": "p1.test"}, {"host": "p2.test"}]

    @pytest.mark.asyncio
    async def test_broadcast_targets_capped_at_limit(self, network: FakeNetwork) -> None:
        peers = [f"p{i}.test" for i in range(5)]
        network.route("n1.test", "peer", ok({"peers": peers}))
        network.route("n2.test", "peer", ok({"peers": peers}))

        targets = await network.rpc(["n1.test", "n2.test"], broadcast_limit=3).broadcast_targets()

        assert len(targets) == 3
        assert targets[:2] == ["https://n1.test", "https://n2.test"]
        assert targets[2] in peers

    @pytest.mark.asyncio
    async def test_broadcast_targets_limit_below_static_count(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": ["p1.test"]}))

        targets = await network.rpc(["n1.test", "n2.test"], broadcast_limit=1).broadcast_targets()

        assert targets == ["https://n1.test"]

    @pytest.mark.asyncio
    async def test_broadcast_transaction_tie_break(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": ["p1.test"]}))
        network.route("n1.test", "sendtransaction", {"code": 500, "msg": "a"})
        network.route("n2.test", "sendtransaction", {"code": 503, "msg": "b"})
        network.route("p1.test", "sendtransaction", {"code": 404, "msg": "c"})
        signed = signed_transaction({"type": "Send"}, RFC_SEED)

        result = await network.rpc(["n1.test", "n2.test"]).broadcast_transaction(signed)

        assert result.code == 503
        assert result.endpoint == "https://n2.test"
        assert sorted(network.hosts_called("sendtransaction")) == ["n1.test", "n2.test", "p1.test"]

    @pytest.mark.asyncio
    async def test_broadcast_transaction_success(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": ["p1.test"]}))
        network.route("n1.test", "sendtransaction", {"code": 500})
        network.route("p1.test", "sendtransaction", ok("accepted"))
        signed = signed_transaction({"type": "Send"}, RFC_SEED)

        result = await network.rpc(["n1.test"]).broadcast_transaction(signed)

        assert result.ok
        assert result.endpoint == "p1.test"

    @pytest.mark.asyncio
    async def test_broadcast_survives_unparseable_peer_host(self, network: FakeNetwork) -> None:
        network.route("n1.test", "peer", ok({"peers": [{"host": "host:port"}]}))
        network.route("n1.test", "sendtransaction", ok("accepted"))
        signed = signed_transaction({"type": "Send"}, RFC_SEED)

        result = await network.rpc(["n1.test"]).broadcast_transaction(signed)

        assert result.ok
        assert result.endpoint == "https://n1.test"

    @pytest.mark.asyncio
    async def test_broadcast_without_peers_fails(self, network: FakeNetwork) -> None:
        signed = signed_transaction({"type": "Send"}, RFC_SEED)
        with pytest.raises(ConsensusFailure):
            await network.rpc(["n1.test"]).broadcast_transaction(signed)

    @pytest.mark.asyncio
    async def test_race_request(self, network: FakeNetwork) -> None:
        network.route("n1.test", "request", ok({"balance": None}))
        network.route("n2.test", "request", delayed(0.05, ok({"balance": "7"})))

        response = await network.rpc(["n1.test", "n2.test"]).race_request(
            {"request": {"type": "GetBalance"}}, predicate=lambda data: data["balance"] is not None
        )

        assert response.data == {"balance": "7"}

    @pytest.mark.asyncio
    async def test_send_transaction_to_all(self, network: FakeNetwork) -> None:
        network.route("n1.test", "sendtransaction", ok())
        network.route("n2.test", "sendtransaction", {"code": 500})
        signed = signed_transaction({"type": "Send"}, RFC_SEED)

        results = await network.rpc(["n1.test", "n2.test"]).send_transaction_to_all(signed)

        assert [r.code for r in results] == [200, 500]


class TestEstimatedFee:
    """Rpc.estimated_fee."""

    @pytest.mark.asyncio
    async def test_weight_equal_to_length(self, network: FakeNetwork) -> None:
        signed = signed_transaction({"type": "Send", "amount": "1"}, RFC_SEED)
        length = payload_length(signed)
        network.route("n1.test", "weight", ok(str(length)))

        fee = await network.rpc(["n1.test"]).estimated_fee(signed)

        assert fee == (length + 336) * 1_000_000_000

    @pytest.mark.asyncio
    async def test_non_integer_weight_is_skipped(self, network: FakeNetwork) -> None:
        signed = signed_transaction({"type": "Send", "amount": "1"}, RFC_SEED)
        network.route("n1.test", "weight", ok("abc"))
        network.route("n2.test", "weight", delayed(0.05, ok("100000")))

        fee = await network.rpc(["n1.test", "n2.test"]).estimated_fee(signed)

        assert fee == 100000 * 1_000_000_000
        assert form_fields(network.calls[0])["transaction"] == enc.string(signed["transaction"])
