"""
HTTP request shaping for node calls.

GET payloads travel as query parameters and POST payloads as an
url-encoded form; in both cases each value is first rendered with
``enc.string`` so that nested objects reach the node in canonical form.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from ..config import ClientConfig
from ..errors import ValidationError
from ..sigil import enc
from ..utils import wrapped_endpoint


def endpoint_url(endpoint: str, path: str) -> str:
    return f"{wrapped_endpoint(endpoint)}/{path.lstrip('/')}"


def encode_payload(payload: Mapping[str, Any] | None) -> dict[str, str]:
    return {str(key): enc.string(value) for key, value in (payload or {}).items()}


def build_request(
    client: httpx.AsyncClient,
    endpoint: str,
    method: str,
    path: str,
    payload: Mapping[str, Any] | None,
    config: ClientConfig,
) -> httpx.Request:
    method = method.upper()
    fields = encode_payload(payload)
    headers = dict(config.headers) or None
    url = endpoint_url(endpoint, path)

    if method == "GET":
        return client.build_request("GET", url, params=fields or None, headers=headers)
    if method == "POST":
        return client.build_request("POST", url, data=fields, headers=headers)
    raise ValidationError(f"Unsupported method: {method}")


def open_client(config: ClientConfig, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """One short-lived client per dispatch call; connections are not shared across calls."""
    return httpx.AsyncClient(transport=transport, timeout=config.timeout)
