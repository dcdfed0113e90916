"""Shared fixtures: an in-memory network of fake Xphere nodes behind httpx.MockTransport."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable
from urllib.parse import parse_qs

import httpx
import pytest

from xphere.config import ClientConfig
from xphere.pneuma.rpc import Rpc

# RFC 8032, test 1
RFC_SEED = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
RFC_PUBLIC_KEY = "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"
RFC_ADDRESS = "11fbbe3a48963e0a1692186f1a27b95cdc8fbce642ea"


def ok(data: Any = None) -> dict[str, Any]:
    return {"code": 200, "data": data}


def delayed(seconds: float, result: Any, done: list[str] | None = None, tag: str = "") -> Callable[..., Any]:
    """Responder that answers after ``seconds`` and records ``tag`` in ``done`` once it has."""

    async def responder(request: httpx.Request) -> Any:
        await asyncio.sleep(seconds)
        if done is not None:
            done.append(tag)
        return result

    return responder


def form_fields(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode("utf-8")).items()}


class FakeNetwork:
    """
    Routes requests by (host, path) to canned answers.

    An answer may be a dict (sent as a 200 JSON body), an ``httpx.Response``,
    an exception instance (raised as a transport error), or a callable taking
    the request and returning any of those (sync or async).
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[httpx.Request] = []

    def route(self, host: str, path: str, answer: Any) -> "FakeNetwork":
        self.routes[(host, path)] = answer
        return self

    def hosts_called(self, path: str) -> list[str]:
        return [r.url.host for r in self.calls if r.url.path.lstrip("/") == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        answer = self.routes.get((request.url.host, request.url.path.lstrip("/")))
        if answer is None:
            return httpx.Response(404, json={"code": 404, "msg": "Not found"})

        if callable(answer):
            answer = answer(request)
            if inspect.isawaitable(answer):
                answer = await answer

        if isinstance(answer, BaseException):
            raise answer
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def rpc(self, hosts: list[str], **config: Any) -> Rpc:
        endpoints = [f"https://{host}" for host in hosts]
        return Rpc(ClientConfig(endpoints=endpoints, **config), transport=self.transport())


@pytest.fixture()
def network() -> FakeNetwork:
    return FakeNetwork()
