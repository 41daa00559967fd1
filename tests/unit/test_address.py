"""
Unit tests for VM address and MAC assignment.
"""

import pytest

from tenantnet.models.network import DHCPRange, IPAllocation, TenantNetworkInfo
from tenantnet.network.address import (
    AddressAllocator,
    generate_mac_address,
    validate_vm_name,
)
from tenantnet.network.exceptions import AddressSpaceExhausted, CapacityExhausted


def _network(allocations=None, tenant_id="userA"):
    return TenantNetworkInfo(
        tenant_id=tenant_id,
        network_name="tenant-abcdef01-10",
        subnet_cidr="10.200.10.0/24",
        gateway="10.200.10.1",
        dhcp_range=DHCPRange(start="10.200.10.2", end="10.200.10.254"),
        allocations=allocations or [],
    )


def _alloc(vm_name, ip):
    return IPAllocation(vm_name=vm_name, ip_address=ip, mac_address="52:54:00:00:00:01")


@pytest.mark.unit
def test_mac_is_deterministic_and_locally_administered():
    mac = generate_mac_address("userA", "vm1")

    assert mac == generate_mac_address("userA", "vm1")
    assert mac.startswith("52:54:00:")
    assert len(mac.split(":")) == 6
    # 0x52: locally administered, unicast
    assert int(mac.split(":")[0], 16) & 0x02
    assert not int(mac.split(":")[0], 16) & 0x01


@pytest.mark.unit
def test_mac_depends_on_tenant_and_vm():
    assert generate_mac_address("userA", "vm1") != generate_mac_address("userA", "vm2")
    assert generate_mac_address("userA", "vm1") != generate_mac_address("userB", "vm1")


@pytest.mark.unit
def test_mac_custom_prefix():
    mac = generate_mac_address("userA", "vm1", prefix="02:AA:BB")
    assert mac.startswith("02:aa:bb:")


@pytest.mark.unit
def test_first_address_is_offset_ten():
    allocation, created = AddressAllocator().assign(_network(), "vm1")

    assert created is True
    assert allocation.ip_address == "10.200.10.10"
    assert allocation.mac_address == generate_mac_address("userA", "vm1")


@pytest.mark.unit
def test_existing_allocation_returned_unchanged():
    existing = _alloc("vm1", "10.200.10.42")

    allocation, created = AddressAllocator().assign(_network([existing]), "vm1")

    assert created is False
    assert allocation == existing


@pytest.mark.unit
def test_used_addresses_are_skipped():
    used = [_alloc("vm1", "10.200.10.10"), _alloc("vm2", "10.200.10.11")]

    allocation, _ = AddressAllocator().assign(_network(used), "vm3")

    assert allocation.ip_address == "10.200.10.12"


@pytest.mark.unit
def test_freed_hole_is_reused():
    used = [_alloc("vm1", "10.200.10.10"), _alloc("vm3", "10.200.10.12")]

    allocation, _ = AddressAllocator().assign(_network(used), "vm4")

    assert allocation.ip_address == "10.200.10.11"


@pytest.mark.unit
def test_exhausted_subnet_raises_capacity_error():
    allocator = AddressAllocator(offset_start=10, offset_end=11)
    used = [_alloc("vm1", "10.200.10.10"), _alloc("vm2", "10.200.10.11")]

    with pytest.raises(AddressSpaceExhausted) as exc_info:
        allocator.assign(_network(used), "vm3")

    assert isinstance(exc_info.value, CapacityExhausted)
    assert exc_info.value.subnet_cidr == "10.200.10.0/24"


@pytest.mark.unit
def test_full_range_holds_245_vms():
    allocator = AddressAllocator()
    network = _network()
    for i in range(245):
        allocation, _ = allocator.assign(network, f"vm{i}")
        network.allocations.append(allocation)

    assert network.allocations[-1].ip_address == "10.200.10.254"
    with pytest.raises(AddressSpaceExhausted):
        allocator.assign(network, "one-too-many")


@pytest.mark.unit
@pytest.mark.parametrize("name", ["vm1", "web_01", "A-b-C", "x" * 255])
def test_valid_vm_names(name):
    validate_vm_name(name)


@pytest.mark.unit
@pytest.mark.parametrize("name", ["", "vm 1", "vm;rm -rf", "vm'1", "x" * 256, "ünïcode", "vm1\n"])
def test_invalid_vm_names(name):
    with pytest.raises(ValueError):
        validate_vm_name(name)
