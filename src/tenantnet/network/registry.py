"""
Durable registry of tenant networks.

The registry owns every TenantNetwork row: nothing else writes the
allocations document. It also owns the locks that keep concurrent
requests from colliding:

Locking:
========
- Per-tenant lock (tenant_lock): serializes everything touching one tenant,
  i.e. network creation and the scan-then-append of a new allocation.
  The engine holds it for the whole assign/release operation. Locks are
  held weakly, so a tenant's entry is dropped when nobody holds or awaits it.
- Subnet lock (_subnet_lock): a short critical section around picking a
  free /24. The chosen subnet is parked in _pending_subnets until its row
  is written, so other tenants can pick the next one while this tenant's
  network is being defined on the control plane.
- Database uniqueness on tenant_id, network_name and subnet_cidr covers
  writers in other processes.

Crash Recovery:
===============
Network creation is define -> start -> autostart -> persist. If the process
dies before persisting, the retry picks the same lowest free octet, hence
the same network name; define then reports "already exists" with matching
parameters, which counts as success.

If that tenant never retries, the defined network keeps its octet's bridge
(tnbr<octet>) and gateway. First-fit offers the octet to the next tenant,
whose start then fails on the taken bridge and address, and every later
creation stops at the same octet until the network is undefined by hand
(virsh net-destroy + net-undefine). Creation failures after define log the
network name for that cleanup.
"""

from __future__ import annotations

import asyncio
import weakref

import peewee

from tenantnet.db.base import db, run_in_executor
from tenantnet.db.network import TenantNetwork
from tenantnet.models.network import IPAllocation, TenantNetworkInfo
from tenantnet.network.control_plane import ControlPlaneAdapter, NetworkDefinition
from tenantnet.network.exceptions import (
    AllocationNotFound,
    ConflictingState,
    ControlPlaneUnavailable,
)
from tenantnet.network.subnet import (
    SubnetAllocator,
    SubnetPlan,
    bridge_name_for,
    network_name_for,
)
from tenantnet.utils.logger import get_logger

logger = get_logger(__name__)


def definition_for(network_name: str, plan: SubnetPlan) -> NetworkDefinition:
    """Control-plane parameters for a tenant subnet."""
    return NetworkDefinition(
        name=network_name,
        bridge=bridge_name_for(plan.octet),
        gateway=plan.gateway,
        netmask=plan.netmask,
        dhcp_start=plan.dhcp_start,
        dhcp_end=plan.dhcp_end,
    )


# =============================================================================
# Blocking Store Helpers (run in worker threads)
# =============================================================================


def _load_record(tenant_id: str) -> TenantNetworkInfo | None:
    record = TenantNetwork.get_or_none(TenantNetwork.tenant_id == tenant_id)
    return record.to_info() if record else None


def _list_records() -> list[TenantNetworkInfo]:
    query = TenantNetwork.select().order_by(TenantNetwork.subnet_cidr)
    return [record.to_info() for record in query]


def _used_subnets() -> set[str]:
    return {row.subnet_cidr for row in TenantNetwork.select(TenantNetwork.subnet_cidr)}


def _create_record(
    tenant_id: str, username: str | None, network_name: str, plan: SubnetPlan
) -> TenantNetworkInfo:
    try:
        with db.atomic(lock_type="IMMEDIATE"):
            record = TenantNetwork.create(
                tenant_id=tenant_id,
                username=username,
                network_name=network_name,
                subnet_cidr=plan.cidr,
                gateway=plan.gateway,
                dhcp_start=plan.dhcp_start,
                dhcp_end=plan.dhcp_end,
            )
    except peewee.IntegrityError as e:
        # Another process may have created this tenant's network first
        existing = _load_record(tenant_id)
        if existing is not None:
            return existing
        raise ConflictingState(
            f"subnet {plan.cidr} or network {network_name} was claimed concurrently",
            tenant_id,
        ) from e
    return record.to_info()


def _append_allocation(tenant_id: str, allocation: IPAllocation) -> TenantNetworkInfo:
    with db.atomic(lock_type="IMMEDIATE"):
        record = TenantNetwork.get_or_none(TenantNetwork.tenant_id == tenant_id)
        if record is None:
            raise ConflictingState("network record disappeared", tenant_id)

        allocations = record.get_allocations()
        for existing in allocations:
            if existing.vm_name == allocation.vm_name:
                if existing.ip_address != allocation.ip_address:
                    raise ConflictingState(
                        f"VM {allocation.vm_name} already holds {existing.ip_address}",
                        tenant_id,
                    )
                return record.to_info()
            if existing.ip_address == allocation.ip_address:
                raise ConflictingState(
                    f"{allocation.ip_address} already assigned to {existing.vm_name}",
                    tenant_id,
                )

        allocations.append(allocation)
        record.set_allocations(allocations)
        record.save()
        return record.to_info()


def _pop_allocation(tenant_id: str, vm_name: str) -> IPAllocation:
    with db.atomic(lock_type="IMMEDIATE"):
        record = TenantNetwork.get_or_none(TenantNetwork.tenant_id == tenant_id)
        if record is None:
            raise AllocationNotFound(tenant_id, vm_name)

        allocations = record.get_allocations()
        removed = next((a for a in allocations if a.vm_name == vm_name), None)
        if removed is None:
            raise AllocationNotFound(tenant_id, vm_name)

        record.set_allocations([a for a in allocations if a.vm_name != vm_name])
        record.save()
        return removed


# =============================================================================
# Registry
# =============================================================================


class NetworkRegistry:
    """Tenant network records plus the locks that guard them."""

    def __init__(
        self, subnet_allocator: SubnetAllocator, control_plane: ControlPlaneAdapter
    ):
        self.subnet_allocator = subnet_allocator
        self.control_plane = control_plane

        # Entries vanish once no holder or waiter references the lock
        self._tenant_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._subnet_lock = asyncio.Lock()
        self._pending_subnets: set[str] = set()

    def tenant_lock(self, tenant_id: str) -> asyncio.Lock:
        """Return the lock serializing all work on one tenant."""
        lock = self._tenant_locks.get(tenant_id)
        if lock is None:
            lock = asyncio.Lock()
            self._tenant_locks[tenant_id] = lock
        return lock

    def _require_lock(self, tenant_id: str) -> None:
        lock = self._tenant_locks.get(tenant_id)
        if lock is None or not lock.locked():
            raise RuntimeError(f"tenant_lock({tenant_id!r}) must be held")

    # --- Queries ---

    async def get(self, tenant_id: str) -> TenantNetworkInfo | None:
        return await run_in_executor(_load_record, tenant_id)

    async def list_networks(self) -> list[TenantNetworkInfo]:
        return await run_in_executor(_list_records)

    async def find_allocation(self, tenant_id: str, vm_name: str) -> IPAllocation | None:
        network = await self.get(tenant_id)
        if network is None:
            return None
        return network.find_allocation(vm_name)

    # --- Network Creation ---

    async def get_or_create(
        self, tenant_id: str, username: str | None = None
    ) -> TenantNetworkInfo:
        """
        Return the tenant's network, creating it on first use.

        An existing network is checked for liveness and restarted if needed.
        The caller must hold tenant_lock(tenant_id).

        Raises:
            SubnetPoolExhausted: No free /24 left.
            ControlPlaneUnavailable: A control-plane call failed.
            ConflictingState: Network could not be made live, or another
                process claimed the chosen subnet.
        """
        self._require_lock(tenant_id)

        network = await self.get(tenant_id)
        if network is not None:
            await self.ensure_live(network)
            return network

        plan = await self._reserve_subnet(tenant_id)
        network_name = network_name_for(tenant_id, plan.octet)
        defined = False
        try:
            definition = definition_for(network_name, plan)

            await self.control_plane.define_network(definition)
            defined = True
            await self.control_plane.start_network(network_name)
            await self.control_plane.autostart_network(network_name)

            network = await run_in_executor(
                _create_record, tenant_id, username, network_name, plan
            )
        except Exception as e:
            if defined:
                logger.warning(
                    f"Network {network_name} ({plan.cidr}) is defined but not recorded "
                    f"after {type(e).__name__}; it holds bridge {definition.bridge} "
                    f"until tenant {tenant_id} retries or it is undefined by hand"
                )
            raise
        finally:
            self._pending_subnets.discard(plan.cidr)

        logger.info(
            f"Created network {network.network_name} ({network.subnet_cidr}) "
            f"for tenant {tenant_id}"
        )
        return network

    async def _reserve_subnet(self, tenant_id: str) -> SubnetPlan:
        async with self._subnet_lock:
            used = await run_in_executor(_used_subnets)
            plan = self.subnet_allocator.allocate(used | self._pending_subnets)
            self._pending_subnets.add(plan.cidr)

        logger.debug(f"Reserved subnet {plan.cidr} for tenant {tenant_id}")
        return plan

    async def ensure_live(self, network: TenantNetworkInfo) -> None:
        """
        Make sure a recorded network is active, healing it once if not.

        Heal = start; if start fails, define + start + autostart.

        Raises:
            ConflictingState: Still not live after the heal attempt.
        """
        name = network.network_name
        if await self.control_plane.is_live(name):
            return

        logger.warning(f"Network {name} of tenant {network.tenant_id} is not live, restarting")
        try:
            await self.control_plane.start_network(name)
        except ControlPlaneUnavailable as e:
            logger.warning(f"Start of {name} failed ({e.detail}), redefining")
            plan = SubnetPlan.from_cidr(network.subnet_cidr)
            await self.control_plane.define_network(definition_for(name, plan))
            await self.control_plane.start_network(name)
            await self.control_plane.autostart_network(name)

        if not await self.control_plane.is_live(name):
            raise ConflictingState(
                f"network {name} is recorded but could not be made live",
                network.tenant_id,
            )

    # --- Allocation Mutations ---

    async def add_allocation(
        self, tenant_id: str, allocation: IPAllocation
    ) -> TenantNetworkInfo:
        """
        Append an allocation and persist the document.

        Re-adding the identical allocation is a no-op. The caller must hold
        tenant_lock(tenant_id).

        Raises:
            ConflictingState: VM or IP already taken by another entry.
        """
        self._require_lock(tenant_id)
        network = await run_in_executor(_append_allocation, tenant_id, allocation)
        logger.info(
            f"Allocated {allocation.ip_address} ({allocation.mac_address}) to "
            f"{allocation.vm_name} in {network.network_name}"
        )
        return network

    async def remove_allocation(self, tenant_id: str, vm_name: str) -> IPAllocation:
        """
        Remove a VM's allocation and persist the document.

        Raises:
            AllocationNotFound: Tenant or VM has no allocation.
        """
        self._require_lock(tenant_id)
        allocation = await run_in_executor(_pop_allocation, tenant_id, vm_name)
        logger.info(f"Released {allocation.ip_address} from {vm_name} (tenant {tenant_id})")
        return allocation
