"""
TenantNetwork database model.

One row per tenant, holding the tenant's subnet, its derived gateway and
DHCP range, and the ordered list of VM allocations as a JSON document.
"""

import datetime
import json

import peewee

from tenantnet.db.base import BaseModel
from tenantnet.models.network import DHCPRange, IPAllocation, TenantNetworkInfo


# =============================================================================
# TenantNetwork Model
# =============================================================================


class TenantNetwork(BaseModel):
    """
    Represents a tenant's isolated virtual network.

    Uniqueness of tenant_id, network_name and subnet_cidr is enforced by
    the database, so a second process racing for the same subnet fails
    with IntegrityError instead of sharing it.

    Attributes:
        tenant_id: Owning tenant (unique).
        network_name: Control-plane network name (unique).
        subnet_cidr: Tenant /24 (unique).
        allocations: JSON list of IPAllocation dumps, in creation order.
    """

    # -------------------------------------------------------------------------
    # Identification
    # -------------------------------------------------------------------------

    tenant_id = peewee.CharField(unique=True)
    username = peewee.CharField(null=True)
    network_name = peewee.CharField(unique=True)

    # -------------------------------------------------------------------------
    # Addressing (derived from subnet_cidr, never set independently)
    # -------------------------------------------------------------------------

    subnet_cidr = peewee.CharField(unique=True)
    gateway = peewee.CharField()
    dhcp_start = peewee.CharField()
    dhcp_end = peewee.CharField()

    # -------------------------------------------------------------------------
    # VM Allocations (stored as JSON)
    # -------------------------------------------------------------------------

    allocations = peewee.TextField(default="[]")

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------

    created_at = peewee.DateTimeField(default=datetime.datetime.now)
    updated_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "tenant_networks"

    def save(self, *args, **kwargs):
        self.updated_at = datetime.datetime.now()
        return super().save(*args, **kwargs)

    # =========================================================================
    # JSON Field Accessors
    # =========================================================================

    def get_allocations(self) -> list[IPAllocation]:
        """Parse stored allocations JSON. Returns an empty list if unset."""
        if not self.allocations:
            return []
        return [IPAllocation.model_validate(item) for item in json.loads(self.allocations)]

    def set_allocations(self, allocations: list[IPAllocation]) -> None:
        """Store allocations as JSON, preserving order."""
        self.allocations = json.dumps([a.model_dump(mode="json") for a in allocations])

    # =========================================================================
    # Snapshot
    # =========================================================================

    def to_info(self) -> TenantNetworkInfo:
        """Build a detached snapshot of this record."""
        return TenantNetworkInfo(
            tenant_id=self.tenant_id,
            username=self.username,
            network_name=self.network_name,
            subnet_cidr=self.subnet_cidr,
            gateway=self.gateway,
            dhcp_range=DHCPRange(start=self.dhcp_start, end=self.dhcp_end),
            allocations=self.get_allocations(),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
