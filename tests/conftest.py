"""
Pytest configuration and fixtures.
"""

from dataclasses import dataclass, field

import pytest

from tenantnet.config import NetworkConfig
from tenantnet.db.base import close_database, initialize_database
from tenantnet.network.control_plane import (
    ControlPlaneAdapter,
    DHCPHost,
    NetworkDefinition,
)
from tenantnet.network.engine import ReconciliationEngine
from tenantnet.network.exceptions import ConflictingState, ControlPlaneUnavailable


@dataclass
class FakeNetwork:
    definition: NetworkDefinition
    active: bool = False
    autostart: bool = False
    hosts: list[DHCPHost] = field(default_factory=list)


class FakeControlPlane(ControlPlaneAdapter):
    """
    In-memory control plane.

    Records every call in `calls`. `fail(op, times)` makes the next `times`
    calls of `op` raise ControlPlaneUnavailable. Like libvirt, add rejects an
    entry whose MAC or IP is already present, and delete removes one entry
    matching the fields set on the pattern.
    """

    def __init__(self):
        self.networks: dict[str, FakeNetwork] = {}
        self.calls: list[tuple] = []
        self._failures: dict[str, int] = {}

    def fail(self, op: str, times: int = 1) -> None:
        self._failures[op] = times

    def _maybe_fail(self, op: str, name: str) -> None:
        remaining = self._failures.get(op, 0)
        if remaining:
            self._failures[op] = remaining - 1
            raise ControlPlaneUnavailable(op, name, "injected failure")

    def ops(self, *names: str) -> list[str]:
        return [c[0] for c in self.calls if not names or c[0] in names]

    async def define_network(self, definition: NetworkDefinition) -> None:
        self.calls.append(("define", definition.name))
        self._maybe_fail("define", definition.name)
        existing = self.networks.get(definition.name)
        if existing is not None:
            if existing.definition != definition:
                raise ConflictingState(f"{definition.name} defined differently")
            return
        self.networks[definition.name] = FakeNetwork(definition)

    async def start_network(self, name: str) -> None:
        self.calls.append(("start", name))
        self._maybe_fail("start", name)
        if name not in self.networks:
            raise ControlPlaneUnavailable("start", name, "network not found")
        self.networks[name].active = True

    async def autostart_network(self, name: str) -> None:
        self.calls.append(("autostart", name))
        self._maybe_fail("autostart", name)
        self.networks[name].autostart = True

    async def is_live(self, name: str) -> bool:
        self.calls.append(("is_live", name))
        self._maybe_fail("is_live", name)
        net = self.networks.get(name)
        return net is not None and net.active

    async def add_dhcp_host(self, network_name: str, host: DHCPHost) -> None:
        self.calls.append(("add_host", network_name, host))
        self._maybe_fail("add_host", network_name)
        net = self.networks[network_name]
        if not net.active:
            raise ControlPlaneUnavailable("add_host", network_name, "network is not active")
        if any(h.mac == host.mac or h.ip == host.ip for h in net.hosts):
            raise ControlPlaneUnavailable(
                "add_host", network_name, "there is an existing dhcp host entry"
            )
        net.hosts.append(host)

    async def delete_dhcp_host(self, network_name: str, host: DHCPHost) -> bool:
        self.calls.append(("delete_host", network_name, host))
        self._maybe_fail("delete_host", network_name)
        net = self.networks[network_name]
        for existing in net.hosts:
            if host.matches(existing):
                net.hosts.remove(existing)
                return True
        return False


@pytest.fixture
def database(tmp_path):
    """Fresh SQLite store per test."""
    initialize_database(str(tmp_path / "tenantnet.db"))
    yield
    close_database()


@pytest.fixture
def net_config():
    """Small pool: third octets 10-12 in 10.200.0.0/16."""
    return NetworkConfig(BASE_OCTET=200, SUBNET_MIN=10, SUBNET_MAX=12)


@pytest.fixture
def control_plane():
    return FakeControlPlane()


@pytest.fixture
def engine(database, net_config, control_plane):
    return ReconciliationEngine.from_config(net_config, control_plane=control_plane)
