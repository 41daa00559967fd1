"""
Interface to the external virtual network manager.

The engine only depends on ControlPlaneAdapter; the libvirt implementation
lives in tenantnet.network.virsh. Adapters report failed or timed-out calls
as ControlPlaneUnavailable.

There is no native upsert for DHCP host entries. The engine builds it from
delete_dhcp_host + add_dhcp_host so every adapter gets the same semantics.
The delete side clears the whole slot (any entry on the same IP, then any
entry with the same MAC), because add rejects a duplicate of either.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class NetworkDefinition:
    """Parameters of a tenant network on the control plane."""

    name: str
    bridge: str
    gateway: str
    netmask: str
    dhcp_start: str
    dhcp_end: str


@dataclass(frozen=True)
class DHCPHost:
    """
    A static DHCP host entry (MAC -> IP binding).

    As a delete pattern, fields left as None match any value, so
    DHCPHost(ip=...) selects whatever entry holds that address.
    """

    mac: str | None = None
    name: str | None = None
    ip: str | None = None

    def matches(self, other: "DHCPHost") -> bool:
        """True if every field set on this pattern equals other's."""
        return all(
            mine is None or mine == theirs
            for mine, theirs in (
                (self.mac, other.mac),
                (self.name, other.name),
                (self.ip, other.ip),
            )
        )


class ControlPlaneAdapter(ABC):
    """Abstract virtual network manager used by the reconciliation engine."""

    @abstractmethod
    async def define_network(self, definition: NetworkDefinition) -> None:
        """
        Define a persistent network.

        Succeeds without change if a network with this name is already
        defined with the same bridge, gateway and DHCP range.

        Raises:
            ControlPlaneUnavailable: The call failed or timed out.
            ConflictingState: The name exists with different parameters.
        """

    @abstractmethod
    async def start_network(self, name: str) -> None:
        """Start a defined network. Already-active counts as success."""

    @abstractmethod
    async def autostart_network(self, name: str) -> None:
        """Mark a network to start with the hypervisor."""

    @abstractmethod
    async def is_live(self, name: str) -> bool:
        """
        Return True if the network exists and is active.

        A network that is not defined at all returns False.
        """

    @abstractmethod
    async def add_dhcp_host(self, network_name: str, host: DHCPHost) -> None:
        """Append a static host entry to the live and persistent config."""

    @abstractmethod
    async def delete_dhcp_host(self, network_name: str, host: DHCPHost) -> bool:
        """
        Remove the static host entry matching every field set on host.

        Returns:
            False if no matching entry existed, True if one was removed.
        """
