"""
Subnet pool allocation for tenant networks.

Tenant subnets are /24 blocks inside a fixed /16:

    10.{base_octet}.{octet}.0/24   for octet in [subnet_min, subnet_max]

Layout of one tenant /24 (e.g. octet 10, base 200):
    - Network:    10.200.10.0
    - Gateway:    10.200.10.1   (bridge address on the hypervisor)
    - DHCP range: 10.200.10.2 - 10.200.10.254
    - VM pool:    10.200.10.10 - 10.200.10.254 (see AddressAllocator)

Allocation is deterministic first-fit: the lowest free octet always wins,
so a retried creation after a crash lands on the same subnet and network
name it picked the first time.
"""

from __future__ import annotations

import hashlib
import ipaddress
from dataclasses import dataclass

from tenantnet.network.exceptions import SubnetPoolExhausted

NETMASK = "255.255.255.0"
PREFIX_LEN = 24

NETWORK_NAME_PREFIX = "tenant"
BRIDGE_NAME_PREFIX = "tnbr"


@dataclass(frozen=True)
class SubnetPlan:
    """
    A tenant /24 and the addresses derived from it.

    gateway and DHCP range are always computed, never set independently.
    """

    network: ipaddress.IPv4Network

    @classmethod
    def from_cidr(cls, cidr: str) -> SubnetPlan:
        network = ipaddress.IPv4Network(cidr, strict=True)
        if network.prefixlen != PREFIX_LEN:
            raise ValueError(f"Tenant subnet must be a /{PREFIX_LEN}, got {cidr}")
        return cls(network)

    @property
    def cidr(self) -> str:
        return str(self.network)

    @property
    def octet(self) -> int:
        """Third octet identifying this subnet within the /16."""
        return self.network.network_address.packed[2]

    @property
    def gateway(self) -> str:
        return str(self.network.network_address + 1)

    @property
    def dhcp_start(self) -> str:
        return str(self.network.network_address + 2)

    @property
    def dhcp_end(self) -> str:
        return str(self.network.network_address + 254)

    @property
    def netmask(self) -> str:
        return NETMASK


# =============================================================================
# Naming
# =============================================================================


def network_name_for(tenant_id: str, octet: int) -> str:
    """
    Control-plane network name: "tenant-{sha256(tenant_id)[:8]}-{octet}".

    Hashing keeps arbitrary tenant IDs out of the name; the octet makes the
    name unique across tenants even on a hash prefix collision.
    """
    digest = hashlib.sha256(tenant_id.encode("utf-8")).hexdigest()[:8]
    return f"{NETWORK_NAME_PREFIX}-{digest}-{octet}"


def bridge_name_for(octet: int) -> str:
    """Bridge device name, e.g. "tnbr10". Linux limits interface names to 15 chars."""
    return f"{BRIDGE_NAME_PREFIX}{octet}"


# =============================================================================
# Allocator
# =============================================================================


class SubnetAllocator:
    """
    Picks the next free /24 from the configured octet range.

    Stateless: the set of used subnets is passed in on every call.
    """

    def __init__(self, base_octet: int, subnet_min: int, subnet_max: int):
        if subnet_min > subnet_max:
            raise ValueError(
                f"subnet_min ({subnet_min}) must not exceed subnet_max ({subnet_max})"
            )
        self.base_octet = base_octet
        self.subnet_min = subnet_min
        self.subnet_max = subnet_max

    @classmethod
    def from_config(cls, config) -> SubnetAllocator:
        return cls(config.BASE_OCTET, config.SUBNET_MIN, config.SUBNET_MAX)

    @property
    def capacity(self) -> int:
        return self.subnet_max - self.subnet_min + 1

    def plan_for_octet(self, octet: int) -> SubnetPlan:
        return SubnetPlan.from_cidr(f"10.{self.base_octet}.{octet}.0/{PREFIX_LEN}")

    def allocate(self, used_subnets: set[str]) -> SubnetPlan:
        """
        Return the lowest-octet subnet not in used_subnets.

        Raises:
            SubnetPoolExhausted: Every subnet in the range is in use.
        """
        for octet in range(self.subnet_min, self.subnet_max + 1):
            plan = self.plan_for_octet(octet)
            if plan.cidr not in used_subnets:
                return plan
        raise SubnetPoolExhausted(self.base_octet, self.subnet_min, self.subnet_max)
