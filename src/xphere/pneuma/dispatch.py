"""
Fan-out dispatch across the configured endpoint pool.

Two patterns, both built on ``Dispatcher.send`` (one request, one endpoint):

- ``race``: ask every endpoint at once; the first 200 response whose data
  satisfies the predicate wins and the remaining requests are cancelled.
  Cancellation is cooperative, so a node may still process a request that
  was already sent. If nothing wins, the first failure to *arrive* is
  raised, which makes the error non-deterministic across runs when several
  endpoints fail.
- ``all``: ask every endpoint and wait for every one of them; returns one
  ``DispatchResult`` per endpoint, never raises for endpoint failures.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional

import httpx

from ..config import ClientConfig
from ..errors import (
    ConditionNotMet,
    ConsensusFailure,
    MalformedResponse,
    NetworkTimeout,
    RpcError,
    TransportFailure,
    UpstreamError,
)
from ..models import CONDITION_NOT_MET, DispatchResult, RpcResponse
from .transport import build_request, open_client

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]


def _always(_: Any) -> bool:
    return True


def _satisfies(predicate: Predicate, data: Any) -> bool:
    try:
        return bool(predicate(data))
    except Exception as exc:
        logger.debug("Predicate raised %r; treating as not satisfied", exc)
        return False


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


class Dispatcher:
    """
    Sends requests to the endpoints of a ``ClientConfig``.

    Args:
        config: Endpoint pool and per-request settings (default: built-in endpoints)
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._transport = transport

    def with_config(self, config: ClientConfig) -> "Dispatcher":
        return type(self)(config, transport=self._transport)

    def _targets(self, endpoints: Optional[Sequence[str]]) -> list[str]:
        return list(self.config.endpoints if endpoints is None else endpoints)

    # ---------- single request ----------

    async def send(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        method: str,
        path: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> RpcResponse:
        """
        Perform one request and classify the outcome.

        Returns:
            The node's envelope, whatever its code (structured errors pass through)

        Raises:
            NetworkTimeout: No answer within ``config.timeout``
            TransportFailure: Connection-level error
            MalformedResponse: 2xx answer without a ``{code, ...}`` envelope
            UpstreamError: Non-2xx answer without an envelope
        """
        try:
            request = build_request(client, endpoint, method, path, payload, self.config)
        except httpx.InvalidURL as exc:
            # peer hosts come from remote nodes and may not form a valid URL
            raise TransportFailure(f"Invalid endpoint URL: {exc}", endpoint=endpoint) from exc

        try:
            response = await asyncio.wait_for(client.send(request), timeout=self.config.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise NetworkTimeout(endpoint=endpoint) from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(str(exc) or type(exc).__name__, endpoint=endpoint) from exc

        envelope = RpcResponse.from_envelope(_decode_body(response))
        if envelope is not None:
            return envelope
        if response.is_success:
            raise MalformedResponse(endpoint=endpoint)
        raise UpstreamError(
            response.reason_phrase or "HTTP error",
            code=response.status_code,
            data=response.text,
            endpoint=endpoint,
        )

    async def fetch(self, method: str, path: str, payload: Optional[Mapping[str, Any]] = None) -> RpcResponse:
        """Send to one randomly chosen endpoint."""
        endpoint = random.choice(self.config.endpoints)
        async with open_client(self.config, self._transport) as client:
            return await self.send(client, endpoint, method, path, payload)

    # ---------- fan-out ----------

    async def race(
        self,
        method: str,
        path: str,
        payload: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
        endpoints: Optional[Sequence[str]] = None,
    ) -> RpcResponse:
        """
        First satisfying response from any endpoint.

        Raises:
            RpcError: The first observed failure when no endpoint satisfied the predicate
            ConditionNotMet: Every endpoint answered 200 but none satisfied the predicate
            ConsensusFailure: There were no endpoints to ask
        """
        targets = self._targets(endpoints)
        if not targets:
            raise ConsensusFailure("No endpoints to dispatch to", partial=[])
        predicate = predicate or _always

        first_failure: Optional[RpcError] = None
        async with open_client(self.config, self._transport) as client:
            tasks = {
                asyncio.ensure_future(self.send(client, endpoint, method, path, payload)): endpoint
                for endpoint in targets
            }
            pending = set(tasks)
            try:
                while pending:
                    done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                    for task in done:
                        endpoint = tasks[task]
                        try:
                            response = task.result()
                        except RpcError as exc:
                            logger.debug("race %s %s: %s failed: %s", method, path, endpoint, exc)
                            first_failure = first_failure or exc
                            continue

                        if response.ok and _satisfies(predicate, response.data):
                            logger.debug("race %s %s: won by %s", method, path, endpoint)
                            return response
                        if not response.ok and first_failure is None:
                            first_failure = UpstreamError(
                                response.msg, code=response.code, data=response.data, endpoint=endpoint
                            )
            finally:
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)

        if first_failure is not None:
            raise first_failure
        raise ConditionNotMet()

    async def all(
        self,
        method: str,
        path: str,
        payload: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
        endpoints: Optional[Sequence[str]] = None,
    ) -> list[DispatchResult]:
        """One ``DispatchResult`` per endpoint, in target order, after every request has settled."""
        targets = self._targets(endpoints)
        if not targets:
            return []
        predicate = predicate or _always

        async with open_client(self.config, self._transport) as client:
            results = await asyncio.gather(
                *(self._settle(client, endpoint, method, path, payload, predicate) for endpoint in targets)
            )
        return list(results)

    async def _settle(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        method: str,
        path: str,
        payload: Optional[Mapping[str, Any]],
        predicate: Predicate,
    ) -> DispatchResult:
        try:
            response = await self.send(client, endpoint, method, path, payload)
        except RpcError as exc:
            logger.debug("all %s %s: %s failed: %s", method, path, endpoint, exc)
            return DispatchResult.from_error(endpoint, exc)

        if not response.ok:
            return DispatchResult(endpoint=endpoint, code=response.code, msg=response.msg, data=response.data)
        if not _satisfies(predicate, response.data):
            return DispatchResult(endpoint=endpoint, msg=CONDITION_NOT_MET)
        return DispatchResult(endpoint=endpoint, code=response.code, data=response.data)
