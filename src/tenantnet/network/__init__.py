"""
Tenant network allocation engine.

Re-exports the engine, its components and the error taxonomy:
    from tenantnet.network import ReconciliationEngine, CapacityExhausted
"""

from tenantnet.network.address import (
    AddressAllocator,
    generate_mac_address,
    validate_vm_name,
)
from tenantnet.network.control_plane import (
    ControlPlaneAdapter,
    DHCPHost,
    NetworkDefinition,
)
from tenantnet.network.engine import ReconciliationEngine
from tenantnet.network.exceptions import (
    AddressSpaceExhausted,
    AllocationNotFound,
    CapacityExhausted,
    ConflictingState,
    ControlPlaneUnavailable,
    SubnetPoolExhausted,
    TenantNetworkError,
)
from tenantnet.network.registry import NetworkRegistry
from tenantnet.network.subnet import SubnetAllocator, SubnetPlan, network_name_for
from tenantnet.network.virsh import VirshControlPlane

__all__ = [
    # Engine
    "ReconciliationEngine",
    "NetworkRegistry",
    # Allocators
    "SubnetAllocator",
    "SubnetPlan",
    "AddressAllocator",
    "generate_mac_address",
    "validate_vm_name",
    "network_name_for",
    # Control plane
    "ControlPlaneAdapter",
    "VirshControlPlane",
    "NetworkDefinition",
    "DHCPHost",
    # Exceptions
    "TenantNetworkError",
    "CapacityExhausted",
    "SubnetPoolExhausted",
    "AddressSpaceExhausted",
    "ControlPlaneUnavailable",
    "ConflictingState",
    "AllocationNotFound",
]
