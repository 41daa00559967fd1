"""
Per-tenant VM address and MAC assignment.
"""

from __future__ import annotations

import hashlib
import ipaddress
import re

from tenantnet.models.network import IPAllocation, TenantNetworkInfo
from tenantnet.network.exceptions import AddressSpaceExhausted

DEFAULT_MAC_PREFIX = "52:54:00"

_VM_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,255}$")


def validate_vm_name(vm_name: str) -> None:
    """
    Reject VM names that are not 1-255 chars of [A-Za-z0-9_-].

    Raises:
        ValueError: If the name is invalid.
    """
    if not vm_name or not _VM_NAME_PATTERN.fullmatch(vm_name):
        raise ValueError(
            f"Invalid VM name {vm_name!r}. Use 1-255 alphanumeric characters, "
            f"hyphens, and underscores."
        )


def generate_mac_address(
    tenant_id: str, vm_name: str, prefix: str = DEFAULT_MAC_PREFIX
) -> str:
    """
    Derive a MAC from sha256("{tenant_id}-{vm_name}").

    The first three digest bytes follow the fixed OUI prefix. Pure function:
    the same pair always yields the same MAC, before or after persistence.
    """
    digest = hashlib.sha256(f"{tenant_id}-{vm_name}".encode("utf-8")).digest()
    return ":".join([prefix.lower()] + [f"{b:02x}" for b in digest[:3]])


class AddressAllocator:
    """
    Finds or creates the (ip, mac) pair for a VM in one tenant network.

    Works on a TenantNetworkInfo snapshot and never writes it; the caller
    persists the returned allocation. Callers must hold the tenant's lock
    across assign() and the persist, or two VMs can pick the same address.
    """

    def __init__(
        self,
        offset_start: int = 10,
        offset_end: int = 254,
        mac_prefix: str = DEFAULT_MAC_PREFIX,
    ):
        self.offset_start = offset_start
        self.offset_end = offset_end
        self.mac_prefix = mac_prefix

    @classmethod
    def from_config(cls, config) -> AddressAllocator:
        return cls(
            offset_start=config.ADDRESS_OFFSET_START,
            offset_end=config.ADDRESS_OFFSET_END,
            mac_prefix=config.MAC_PREFIX,
        )

    def assign(self, network: TenantNetworkInfo, vm_name: str) -> tuple[IPAllocation, bool]:
        """
        Return the VM's allocation and whether it was newly created.

        An existing allocation is returned unchanged. Otherwise the lowest
        free address in [offset_start, offset_end] is chosen.

        Raises:
            AddressSpaceExhausted: No free address remains.
        """
        existing = network.find_allocation(vm_name)
        if existing is not None:
            return existing, False

        allocation = IPAllocation(
            vm_name=vm_name,
            ip_address=self.next_free_address(network),
            mac_address=generate_mac_address(network.tenant_id, vm_name, self.mac_prefix),
        )
        return allocation, True

    def next_free_address(self, network: TenantNetworkInfo) -> str:
        subnet = ipaddress.IPv4Network(network.subnet_cidr)
        base = subnet.network_address
        used = network.used_addresses

        for offset in range(self.offset_start, self.offset_end + 1):
            candidate = str(base + offset)
            if candidate not in used:
                return candidate

        raise AddressSpaceExhausted(network.network_name, network.subnet_cidr)
