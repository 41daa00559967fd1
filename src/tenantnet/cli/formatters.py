"""Rich renderables for tenant networks."""

from rich.panel import Panel
from rich.table import Table

from tenantnet.models.network import StaticIPAssignment, TenantNetworkInfo


def format_network_table(networks: list[TenantNetworkInfo]) -> Table:
    table = Table(title="Tenant Networks")
    table.add_column("Tenant", style="bold")
    table.add_column("User")
    table.add_column("Network")
    table.add_column("Subnet")
    table.add_column("Gateway")
    table.add_column("VMs", justify="right")

    for net in networks:
        table.add_row(
            net.tenant_id,
            net.username or "-",
            net.network_name,
            net.subnet_cidr,
            net.gateway,
            str(len(net.allocations)),
        )
    return table


def format_network_detail(network: TenantNetworkInfo) -> Panel:
    lines = [
        f"[bold]Network:[/bold] {network.network_name}",
        f"[bold]Subnet:[/bold]  {network.subnet_cidr}",
        f"[bold]Gateway:[/bold] {network.gateway}",
        f"[bold]DHCP:[/bold]    {network.dhcp_range.start} - {network.dhcp_range.end}",
    ]
    if network.username:
        lines.insert(0, f"[bold]User:[/bold]    {network.username}")

    if network.allocations:
        lines.append("")
        lines.append("[bold]Allocations:[/bold]")
        for alloc in network.allocations:
            created = alloc.created_at.strftime("%Y-%m-%d %H:%M")
            lines.append(
                f"  {alloc.vm_name:<24} {alloc.ip_address:<15} "
                f"{alloc.mac_address}  [dim]{created}[/dim]"
            )
    else:
        lines.append("[dim]No allocations.[/dim]")

    return Panel("\n".join(lines), title=f"Tenant {network.tenant_id}")


def format_assignment(tenant_id: str, vm_name: str, result: StaticIPAssignment) -> Panel:
    body = (
        f"[bold]Network:[/bold] {result.network_name}\n"
        f"[bold]IP:[/bold]      {result.ip_address}\n"
        f"[bold]MAC:[/bold]     {result.mac_address}"
    )
    return Panel(body, title=f"{tenant_id}/{vm_name}")
