"""
Theurgy Keygen - Create a new Ed25519 identity.

Prints the seed, public key and address. Nothing is written to disk:
store the private key yourself (e.g. PRIVATE_KEY in ~/.xphere/.env).
"""

from __future__ import annotations

import click

from ..sigil import sign
from .common import echo_json


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the key pair as JSON")
def keygen(as_json: bool) -> None:
    """Generate a new key pair."""
    pair = sign.key_pair()

    if as_json:
        echo_json(pair.to_dict())
        return

    click.echo("=== Xphere Keygen ===")
    click.echo("")
    click.echo(f"  Private key: {pair.private_key}")
    click.echo(f"  Public key:  {pair.public_key}")
    click.echo(f"  Address:     {pair.address}")
    click.echo("")
    click.secho("Keep the private key secret; it is not saved anywhere.", fg="yellow")
