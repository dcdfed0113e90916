"""Shared plumbing for network commands."""

from __future__ import annotations

import asyncio
import functools
import json
import sys
from typing import Any, Awaitable, Callable, Optional, TypeVar

import click

from ..config import ClientConfig
from ..errors import XphereError
from ..pneuma.rpc import Rpc

T = TypeVar("T")


def network_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``--endpoint`` (repeatable) and ``--timeout`` to a command."""

    @click.option(
        "--endpoint",
        "endpoints",
        multiple=True,
        help="Node base URL (repeatable; default: XPHERE_ENDPOINTS or built-in set)",
    )
    @click.option("--timeout", type=float, default=None, help="Per-request timeout in seconds")
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return func(*args, **kwargs)

    return wrapper


def build_rpc(endpoints: tuple[str, ...] = (), timeout: Optional[float] = None) -> Rpc:
    config = ClientConfig.from_env(endpoints=list(endpoints) or None, timeout=timeout)
    return Rpc(config)


def run(coro: Awaitable[T]) -> T:
    """Run a coroutine to completion, turning library errors into a red message and exit code."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except XphereError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)


def parse_value(text: str) -> Any:
    """Parse a command-line argument as JSON, falling back to the raw string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def parse_object(text: str, what: str = "value") -> dict[str, Any]:
    value = parse_value(text)
    if not isinstance(value, dict):
        click.secho(f"ERROR: {what} must be a JSON object", fg="red")
        sys.exit(2)
    return value


def echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, ensure_ascii=False))
