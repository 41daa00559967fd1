"""
Reconciliation engine: the two operations VM lifecycle code calls.

assign_static_ip walks

    REQUEST_RECEIVED -> NETWORK_ENSURED -> ALLOCATION_RESERVED -> RESERVATION_SYNCED

and may fail from any state. The allocation is persisted before the DHCP
sync, so a failure (or crash) after ALLOCATION_RESERVED leaves a stored but
unsynced allocation. Calling assign_static_ip again for the same VM finds
it, re-checks network liveness and redoes only the sync.

release_static_ip removes the stored allocation first, then deletes the
DHCP host entry best-effort. A failed delete is only logged: the address is
already free, and the next upsert into that slot deletes before adding.
"""

from __future__ import annotations

from tenantnet.models.enums import ReconcileState
from tenantnet.models.network import StaticIPAssignment, TenantNetworkInfo
from tenantnet.network.address import AddressAllocator, validate_vm_name
from tenantnet.network.control_plane import ControlPlaneAdapter, DHCPHost
from tenantnet.network.exceptions import (
    AllocationNotFound,
    CapacityExhausted,
    ControlPlaneUnavailable,
    TenantNetworkError,
)
from tenantnet.network.registry import NetworkRegistry
from tenantnet.network.subnet import SubnetAllocator
from tenantnet.utils.logger import get_logger

logger = get_logger(__name__)


def _validate_tenant_id(tenant_id: str) -> None:
    if not tenant_id or not tenant_id.strip():
        raise ValueError("tenant_id must be a non-empty string")


class ReconciliationEngine:
    """
    Keeps tenant networks and VM DHCP reservations in sync with the store.

    Every operation runs under the tenant's lock, so requests for one
    tenant are serialized while different tenants proceed concurrently.
    """

    def __init__(
        self,
        registry: NetworkRegistry,
        address_allocator: AddressAllocator,
        control_plane: ControlPlaneAdapter,
    ):
        self.registry = registry
        self.address_allocator = address_allocator
        self.control_plane = control_plane

    @classmethod
    def from_config(
        cls, config, control_plane: ControlPlaneAdapter | None = None
    ) -> ReconciliationEngine:
        """
        Build an engine from a NetworkConfig.

        The database must already be initialized. Without an explicit
        control_plane, virsh is used.
        """
        config.validate()
        if control_plane is None:
            from tenantnet.network.virsh import VirshControlPlane

            control_plane = VirshControlPlane.from_config(config)

        registry = NetworkRegistry(SubnetAllocator.from_config(config), control_plane)
        return cls(registry, AddressAllocator.from_config(config), control_plane)

    # =========================================================================
    # Public Operations
    # =========================================================================

    async def assign_static_ip(
        self, tenant_id: str, vm_name: str, username: str | None = None
    ) -> StaticIPAssignment:
        """
        Assign (or return the existing) IP and MAC for a tenant's VM.

        Idempotent: repeated calls for the same pair return the same
        address and MAC, and re-sync the DHCP host entry.

        Raises:
            ValueError: Invalid tenant ID or VM name.
            CapacityExhausted: No subnet or no address left.
            ControlPlaneUnavailable: A control-plane call failed; retry the call.
            ConflictingState: The tenant's network could not be made live.
        """
        _validate_tenant_id(tenant_id)
        validate_vm_name(vm_name)

        state = ReconcileState.REQUEST_RECEIVED
        async with self.registry.tenant_lock(tenant_id):
            try:
                network = await self.registry.get_or_create(tenant_id, username)
                state = ReconcileState.NETWORK_ENSURED

                allocation, created = self.address_allocator.assign(network, vm_name)
                if created:
                    network = await self.registry.add_allocation(tenant_id, allocation)
                state = ReconcileState.ALLOCATION_RESERVED

                await self._upsert_dhcp_host(
                    network.network_name,
                    DHCPHost(
                        mac=allocation.mac_address,
                        name=allocation.vm_name,
                        ip=allocation.ip_address,
                    ),
                )
                state = ReconcileState.RESERVATION_SYNCED

            except CapacityExhausted as e:
                logger.error(f"Capacity exhausted for {tenant_id}/{vm_name}: {e}")
                raise
            except TenantNetworkError as e:
                logger.warning(
                    f"assign_static_ip({tenant_id}, {vm_name}) failed after "
                    f"{state.value}: {e}"
                )
                raise

        logger.debug(f"{tenant_id}/{vm_name} reached {state.value}")
        return StaticIPAssignment(
            network_name=network.network_name,
            ip_address=allocation.ip_address,
            mac_address=allocation.mac_address,
        )

    async def release_static_ip(self, tenant_id: str, vm_name: str) -> None:
        """
        Release a VM's address. No-op if the VM has no allocation.

        Only store errors propagate; DHCP cleanup failures are logged.
        """
        _validate_tenant_id(tenant_id)

        async with self.registry.tenant_lock(tenant_id):
            network = await self.registry.get(tenant_id)
            if network is None:
                logger.debug(f"release: tenant {tenant_id} has no network")
                return

            try:
                allocation = await self.registry.remove_allocation(tenant_id, vm_name)
            except AllocationNotFound:
                logger.debug(f"release: {tenant_id}/{vm_name} has no allocation")
                return

            host = DHCPHost(
                mac=allocation.mac_address,
                name=allocation.vm_name,
                ip=allocation.ip_address,
            )
            try:
                await self.control_plane.delete_dhcp_host(network.network_name, host)
            except ControlPlaneUnavailable as e:
                logger.warning(
                    f"Could not remove DHCP host {host.mac} from "
                    f"{network.network_name}, leaving it for the next upsert: {e}"
                )

    # =========================================================================
    # Inspection
    # =========================================================================

    async def get_network(self, tenant_id: str) -> TenantNetworkInfo | None:
        return await self.registry.get(tenant_id)

    async def list_networks(self) -> list[TenantNetworkInfo]:
        return await self.registry.list_networks()

    # =========================================================================
    # DHCP Sync
    # =========================================================================

    async def _upsert_dhcp_host(self, network_name: str, host: DHCPHost) -> None:
        """
        Clear the host's slot, then add it.

        The slot is any entry on the same IP or with the same MAC. A stale
        entry left by a failed release holds the IP under another VM's MAC,
        and would make the add fail on every retry.
        """
        for pattern in (DHCPHost(ip=host.ip), DHCPHost(mac=host.mac)):
            if await self.control_plane.delete_dhcp_host(network_name, pattern):
                logger.debug(f"Cleared DHCP host matching {pattern} on {network_name}")
        await self.control_plane.add_dhcp_host(network_name, host)
