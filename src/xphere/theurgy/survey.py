"""
Theurgy Survey - Query every endpoint and aggregate.

- round: freshest main and resource heights (each may come from a different node)
- peers: peer hosts merged across nodes
"""

from __future__ import annotations

from typing import Optional

import click

from .common import build_rpc, echo_json, network_options, run


@click.command("round")
@network_options
@click.option("--json", "as_json", is_flag=True, help="Print the full block records as JSON")
def round_command(endpoints: tuple[str, ...], timeout: Optional[float], as_json: bool) -> None:
    """Show the best round seen across endpoints."""
    rpc = build_rpc(endpoints, timeout)
    snapshot = run(rpc.best_round())

    if as_json:
        echo_json(snapshot.to_dict())
        return

    click.echo(f"  Main height:     {snapshot.main_height}")
    click.echo(f"  Resource height: {snapshot.resource_height}")


@click.command()
@network_options
@click.option("--json", "as_json", is_flag=True, help="Print peers and known hosts as JSON")
def peers(endpoints: tuple[str, ...], timeout: Optional[float], as_json: bool) -> None:
    """List peers reported by the endpoints."""
    rpc = build_rpc(endpoints, timeout)
    peer_list = run(rpc.tracker_from_all())

    if as_json:
        echo_json(peer_list.to_dict())
        return

    hosts = peer_list.hosts()
    click.echo(f"Peers: {len(hosts)}")
    for host in hosts:
        click.echo(f"  {host}")
    if peer_list.known_hosts:
        click.echo(f"Known hosts: {len(peer_list.known_hosts)}")
        for host in peer_list.known_hosts:
            click.echo(f"  {host}")
