"""
Theurgy Digest - Inspect canonical encodings and signatures offline.
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..sigil import enc, sign
from .common import parse_value


@click.command("hash")
@click.argument("value")
@click.option("--utime", type=int, default=None, help="Microsecond timestamp for the time-hash (default: now)")
def hash_command(value: str, utime: Optional[int]) -> None:
    """
    Show the canonical string and hashes of VALUE.

    VALUE is parsed as JSON when possible, otherwise used as a plain string.
    """
    parsed = parse_value(value)

    click.echo(f"  String:     {enc.string(parsed)}")
    click.echo(f"  Hash:       {enc.hash(parsed)}")
    click.echo(f"  Short hash: {enc.short_hash(parsed)}")
    click.echo(f"  Id hash:    {enc.id_hash(parsed)}")
    click.echo(f"  Time hash:  {enc.time_hash(parsed, utime)}")


@click.command()
@click.argument("value")
@click.option("--public-key", required=True, help="Signer public key (64 hex)")
@click.option("--signature", required=True, help="Detached signature (128 hex)")
def verify(value: str, public_key: str, signature: str) -> None:
    """Check that SIGNATURE signs VALUE under PUBLIC_KEY."""
    if sign.signature_validity(parse_value(value), public_key, signature):
        click.secho("Signature valid.", fg="green")
        click.echo(f"  Signer address: {sign.address(public_key)}")
    else:
        click.secho("Signature invalid.", fg="red")
        sys.exit(1)
