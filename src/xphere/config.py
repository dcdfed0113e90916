"""
Client configuration: endpoint pool, timeout, headers and broadcast fan-out.

``ClientConfig`` is immutable. Build it once (directly or with
``ClientConfig.from_env()``) and derive variants with ``with_overrides``;
every dispatch call reads the config it was given and nothing else.

Environment (optionally loaded from ~/.xphere/.env):
  XPHERE_ENDPOINTS        comma-separated base URLs
  XPHERE_TIMEOUT          per-request timeout in seconds
  XPHERE_BROADCAST_LIMIT  max endpoints a transaction is fanned out to
  PRIVATE_KEY             64-hex Ed25519 seed (read only, never written)
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

from .errors import ValidationError
from .sigil.sign import key_validity

XPHERE_DIR = Path.home() / ".xphere"
XPHERE_ENV = XPHERE_DIR / ".env"

DEFAULT_ENDPOINTS: tuple[str, ...] = (
    "https://xphere-main.zigap.io",
    "https://mello.zigap.io",
    "https://joy.zigap.io",
    "https://jenny.zigap.io",
)
DEFAULT_TIMEOUT = 30.0
DEFAULT_BROADCAST_LIMIT = 32

EndpointsLike = Union[str, Iterable[str], Mapping[str, str], None]


def _normalize_endpoints(endpoints: EndpointsLike) -> tuple[str, ...]:
    if endpoints is None:
        return ()
    if isinstance(endpoints, str):
        values: Iterable[Any] = [endpoints]
    elif isinstance(endpoints, Mapping):
        values = endpoints.values()
    else:
        values = endpoints

    result: list[str] = []
    for value in values:
        text = str(value).strip()
        if text and text not in result:
            result.append(text)
    return tuple(result)


@dataclass(frozen=True)
class ClientConfig:
    endpoints: tuple[str, ...] = ()
    timeout: float = DEFAULT_TIMEOUT
    headers: Mapping[str, str] = field(default_factory=dict)
    broadcast_limit: int = DEFAULT_BROADCAST_LIMIT

    def __post_init__(self) -> None:
        object.__setattr__(self, "endpoints", _normalize_endpoints(self.endpoints) or DEFAULT_ENDPOINTS)
        object.__setattr__(self, "headers", dict(self.headers or {}))

        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            raise ValidationError(f"timeout must be a positive number of seconds, got {self.timeout!r}")
        if isinstance(self.broadcast_limit, bool) or not isinstance(self.broadcast_limit, int) or self.broadcast_limit <= 0:
            raise ValidationError(f"broadcast_limit must be a positive integer, got {self.broadcast_limit!r}")

    def with_overrides(self, **changes: Any) -> "ClientConfig":
        """Copy of this config with some fields replaced."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None, **overrides: Any) -> "ClientConfig":
        """Build a config from ``XPHERE_*`` variables; explicit ``overrides`` win."""
        env_path = env_path or XPHERE_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        values: dict[str, Any] = {}
        endpoints = os.environ.get("XPHERE_ENDPOINTS")
        if endpoints:
            values["endpoints"] = [e for e in endpoints.split(",") if e.strip()]
        timeout = os.environ.get("XPHERE_TIMEOUT")
        if timeout:
            try:
                values["timeout"] = float(timeout)
            except ValueError as exc:
                raise ValidationError(f"XPHERE_TIMEOUT is not a number: {timeout!r}") from exc
        limit = os.environ.get("XPHERE_BROADCAST_LIMIT")
        if limit:
            try:
                values["broadcast_limit"] = int(limit)
            except ValueError as exc:
                raise ValidationError(f"XPHERE_BROADCAST_LIMIT is not an integer: {limit!r}") from exc

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load the signing seed from the environment or ~/.xphere/.env.

    Raises:
        ValidationError: If PRIVATE_KEY is missing or malformed
    """
    env_path = env_path or XPHERE_ENV

    if env_path.exists():
        load_dotenv(env_path, override=True)

    private_key = os.environ.get("PRIVATE_KEY", "").strip()
    if not private_key:
        raise ValidationError(f"PRIVATE_KEY not found. Set it in the environment or in {env_path}")

    private_key = private_key.removeprefix("0x")
    if not key_validity(private_key):
        raise ValidationError("PRIVATE_KEY must be 64 hex characters.")

    return private_key
