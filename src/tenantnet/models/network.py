"""
Pydantic models for tenant networks and static IP allocations.

These are the value objects passed between the registry, the allocators
and callers. The peewee TenantNetwork row stores allocations as a JSON
list of IPAllocation dumps.
"""

import datetime

from pydantic import BaseModel, Field


class IPAllocation(BaseModel):
    """One VM's address within its tenant subnet."""

    vm_name: str
    ip_address: str
    mac_address: str
    created_at: datetime.datetime = Field(default_factory=datetime.datetime.now)


class DHCPRange(BaseModel):
    """Inclusive DHCP range served by a tenant network."""

    start: str
    end: str


class TenantNetworkInfo(BaseModel):
    """
    Read-only snapshot of a tenant network record.

    The allocators operate on this snapshot rather than on the database row.
    """

    tenant_id: str
    username: str | None = None
    network_name: str
    subnet_cidr: str
    gateway: str
    dhcp_range: DHCPRange
    allocations: list[IPAllocation] = Field(default_factory=list)
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    def find_allocation(self, vm_name: str) -> IPAllocation | None:
        """Return the allocation for vm_name, if any."""
        return next((a for a in self.allocations if a.vm_name == vm_name), None)

    @property
    def used_addresses(self) -> set[str]:
        return {a.ip_address for a in self.allocations}


class StaticIPAssignment(BaseModel):
    """Result of assign_static_ip, consumed when building a VM's NIC config."""

    network_name: str
    ip_address: str
    mac_address: str
