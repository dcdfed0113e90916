"""
Xphere CLI

Command-line interface for the Xphere network client.

Identity = Ed25519 seed (PRIVATE_KEY, 64 hex). The CLI only ever reads
it; keys are printed once by `keygen` and stored by the user.

Commands:
  keygen   - Generate a new key pair
  whoami   - Show the address of PRIVATE_KEY
  hash     - Canonical string and hashes of a JSON value
  verify   - Check a signature
  round    - Best round across endpoints
  peers    - Merged peer list across endpoints
  fee      - Estimate the fee of a transaction
  send     - Sign, broadcast and confirm a transaction
  info     - Show configuration
"""

from __future__ import annotations

import logging
import sys

import click

from . import __version__
from .config import ClientConfig, load_private_key
from .errors import ValidationError, XphereError
from .sigil import sign


# ============ Banner ============


def _print_banner(compact: bool = False) -> None:
    """Print the Xphere CLI banner.

    Args:
        compact: If True, print a single-line banner (for subcommands).
    """
    if compact:
        click.echo(
            click.style("  ◆ ", fg="cyan")
            + click.style("X P H E R E", fg="bright_white", bold=True)
            + click.style(f"  v{__version__}", dim=True)
        )
        click.echo()
        return

    border = click.style("  ◆ ═══════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("          X P H E R E", fg="bright_white", bold=True)
        + click.style(f"        v{__version__}", dim=True)
    )
    click.secho("        ─── Network Client ───", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="xphere")
@click.option("--verbose", "-v", is_flag=True, help="Log dispatch and submission progress")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Xphere - network client."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.keygen import keygen
from .theurgy.digest import hash_command, verify
from .theurgy.survey import peers, round_command
from .theurgy.send import fee, send

cli.add_command(keygen)
cli.add_command(hash_command)
cli.add_command(verify)
cli.add_command(round_command)
cli.add_command(peers)
cli.add_command(fee)
cli.add_command(send)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show the address of the configured key."""
    try:
        pk = load_private_key()
    except ValidationError as exc:
        click.echo(f"No key found: {exc}")
        click.echo("Run 'xphere keygen' and set PRIVATE_KEY.")
        sys.exit(exc.exit_code)
    click.echo(f"Address: {sign.address(sign.public_key(pk))}")


# ============ Info ============


@cli.command()
def info() -> None:
    """Show configuration."""
    _print_banner(compact=True)

    try:
        config = ClientConfig.from_env()
    except XphereError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(exc.exit_code)

    click.secho("  Endpoints ──────────────────────────────", fg="cyan")
    for endpoint in config.endpoints:
        click.echo(f"    {endpoint}")
    click.echo()
    click.echo(click.style("  Timeout:          ", dim=True) + f"{config.timeout:g}s")
    click.echo(click.style("  Broadcast limit:  ", dim=True) + str(config.broadcast_limit))

    try:
        pk = load_private_key()
        click.echo(click.style("  Address:          ", dim=True) + sign.address(sign.public_key(pk)))
    except ValidationError:
        click.echo(
            click.style("  Address:          ", dim=True)
            + click.style("not configured", fg="yellow")
            + click.style("  (run: xphere keygen)", dim=True)
        )


# ============ Entry Points ============


def main() -> None:
    """Xphere CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
