"""
TenantNet - per-tenant virtual network and static IP allocation for VMs.

Each tenant gets one isolated /24 on the hypervisor's virtual network
manager; each VM of that tenant gets a stable IP and a deterministic MAC,
kept in sync with the network's DHCP static host table.
"""

__version__ = "0.1.0"
