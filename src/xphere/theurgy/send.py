"""
Theurgy Send - Estimate fees and submit transactions.

`send` signs the transaction once with PRIVATE_KEY, broadcasts it to the
configured endpoints plus sampled peers, and keeps resending the same
envelope until LOOKUP shows it on chain (or --max-attempts runs out).
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..config import load_private_key
from ..errors import ValidationError
from ..pneuma.tx import signed_transaction, submit_transaction
from ..utils import apply_decimal
from .common import build_rpc, network_options, parse_object, run

FEE_DECIMALS = 18


def _private_key() -> str:
    try:
        return load_private_key()
    except ValidationError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)


@click.command()
@click.argument("transaction")
@network_options
def fee(transaction: str, endpoints: tuple[str, ...], timeout: Optional[float]) -> None:
    """Estimate the fee of TRANSACTION (a JSON object)."""
    item = parse_object(transaction, "TRANSACTION")
    rpc = build_rpc(endpoints, timeout)

    signed = signed_transaction(item, _private_key())
    amount = run(rpc.estimated_fee(signed))

    click.echo(f"  Fee: {amount}")
    click.echo(f"       {apply_decimal(amount, FEE_DECIMALS)} XP")


@click.command()
@click.argument("transaction")
@click.option("--lookup", required=True, help="Request (JSON object) whose result confirms the transaction")
@click.option("--max-attempts", type=int, default=None, help="Give up after this many broadcasts")
@click.option("--poll-interval", type=float, default=2.0, show_default=True, help="Seconds between round checks")
@network_options
def send(
    transaction: str,
    lookup: str,
    max_attempts: Optional[int],
    poll_interval: float,
    endpoints: tuple[str, ...],
    timeout: Optional[float],
) -> None:
    """Sign TRANSACTION, broadcast it and wait until LOOKUP confirms it."""
    item = parse_object(transaction, "TRANSACTION")
    lookup_item = parse_object(lookup, "--lookup")
    rpc = build_rpc(endpoints, timeout)

    click.echo("=== Xphere Send ===")
    click.echo("")

    result = run(
        submit_transaction(
            rpc,
            item,
            _private_key(),
            lookup_item,
            poll_interval=poll_interval,
            max_attempts=max_attempts,
        )
    )

    click.secho("SUCCESS: Transaction confirmed!", fg="green")
    click.echo(f"  TX: {result.thash}")
    click.echo(f"  Attempts: {result.attempts}")
    click.echo(f"  Accepted by: {result.response.endpoint}")
