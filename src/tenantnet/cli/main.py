"""
TenantNet operator CLI.

Usage:
    tenantnet [OPTIONS] COMMAND [ARGS]...

Commands:
    assign    Assign (or show) a VM's static IP
    release   Release a VM's static IP
    show      Show one tenant's network
    list      List all tenant networks
    version   Show version information
"""

import asyncio
from typing import Annotated

import typer

from tenantnet.cli.formatters import (
    format_assignment,
    format_network_detail,
    format_network_table,
)
from tenantnet.cli.output import console, print_error, print_success
from tenantnet.config import config
from tenantnet.db.base import close_database, initialize_database
from tenantnet.models.enums import LogLevel
from tenantnet.network.engine import ReconciliationEngine
from tenantnet.network.exceptions import TenantNetworkError
from tenantnet.utils.logger import configure_logging

app = typer.Typer(
    name="tenantnet",
    help="Tenant virtual network and static IP management",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main(
    db_file: Annotated[
        str | None,
        typer.Option("--db", help="SQLite database file", envvar="TENANTNET_DB_FILE"),
    ] = None,
    log_level: Annotated[
        LogLevel | None,
        typer.Option("--log-level", "-l", help="Log verbosity"),
    ] = None,
):
    """
    TenantNet CLI.

    Assign and release per-tenant VM addresses on libvirt networks.
    """
    config.load_from_env()
    if db_file:
        config.DB_FILE = db_file
    if log_level:
        config.LOG_LEVEL = log_level
    configure_logging(config.LOG_LEVEL, config.LOG_FILE)


def _run(coro_factory):
    """Open the store, build the engine, run one coroutine, close the store."""

    async def _runner():
        engine = ReconciliationEngine.from_config(config)
        return await coro_factory(engine)

    initialize_database(config.DB_FILE)
    try:
        return asyncio.run(_runner())
    except (TenantNetworkError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(1)
    finally:
        close_database()


@app.command("assign")
def assign(
    tenant_id: Annotated[str, typer.Argument(help="Tenant (user) ID")],
    vm_name: Annotated[str, typer.Argument(help="VM name")],
    username: Annotated[
        str | None, typer.Option("--username", "-u", help="Tenant display name")
    ] = None,
):
    """Assign a static IP to a VM, creating the tenant network if needed."""
    result = _run(lambda engine: engine.assign_static_ip(tenant_id, vm_name, username))
    console.print(format_assignment(tenant_id, vm_name, result))


@app.command("release")
def release(
    tenant_id: Annotated[str, typer.Argument(help="Tenant (user) ID")],
    vm_name: Annotated[str, typer.Argument(help="VM name")],
):
    """Release a VM's static IP. Succeeds if nothing is allocated."""
    _run(lambda engine: engine.release_static_ip(tenant_id, vm_name))
    print_success(f"Released {tenant_id}/{vm_name}")


@app.command("show")
def show(
    tenant_id: Annotated[str, typer.Argument(help="Tenant (user) ID")],
):
    """Show a tenant's network and allocations."""
    network = _run(lambda engine: engine.get_network(tenant_id))
    if network is None:
        print_error(f"Tenant {tenant_id} has no network.")
        raise typer.Exit(1)
    console.print(format_network_detail(network))


@app.command("list")
def list_networks():
    """List all tenant networks."""
    networks = _run(lambda engine: engine.list_networks())
    if not networks:
        console.print("[yellow]No tenant networks.[/yellow]")
        return
    console.print(format_network_table(networks))
    console.print(
        f"[dim]{len(networks)}/{config.pool_capacity} subnets in use[/dim]"
    )


@app.command("version")
def version():
    """Show version information."""
    from tenantnet import __version__

    console.print(f"TenantNet v{__version__}")


if __name__ == "__main__":
    app()
