"""
Unit tests for subnet pool allocation.
"""

import pytest

from tenantnet.network.exceptions import CapacityExhausted, SubnetPoolExhausted
from tenantnet.network.subnet import (
    SubnetAllocator,
    SubnetPlan,
    bridge_name_for,
    network_name_for,
)


@pytest.mark.unit
def test_plan_derives_gateway_and_dhcp_range():
    plan = SubnetPlan.from_cidr("10.200.10.0/24")

    assert plan.octet == 10
    assert plan.gateway == "10.200.10.1"
    assert plan.dhcp_start == "10.200.10.2"
    assert plan.dhcp_end == "10.200.10.254"
    assert plan.netmask == "255.255.255.0"


@pytest.mark.unit
def test_plan_rejects_non_24():
    with pytest.raises(ValueError):
        SubnetPlan.from_cidr("10.200.0.0/16")


@pytest.mark.unit
def test_first_fit_returns_lowest_free_octet():
    allocator = SubnetAllocator(base_octet=200, subnet_min=10, subnet_max=20)

    assert allocator.allocate(set()).cidr == "10.200.10.0/24"
    assert allocator.allocate({"10.200.10.0/24"}).cidr == "10.200.11.0/24"
    # A freed hole below a used subnet is filled first
    used = {"10.200.11.0/24", "10.200.12.0/24"}
    assert allocator.allocate(used).cidr == "10.200.10.0/24"


@pytest.mark.unit
def test_pool_exhaustion_is_capacity_error():
    allocator = SubnetAllocator(base_octet=200, subnet_min=10, subnet_max=12)
    used = {f"10.200.{octet}.0/24" for octet in (10, 11, 12)}

    with pytest.raises(SubnetPoolExhausted) as exc_info:
        allocator.allocate(used)

    assert isinstance(exc_info.value, CapacityExhausted)
    assert allocator.capacity == 3


@pytest.mark.unit
def test_subnets_outside_range_are_ignored():
    allocator = SubnetAllocator(base_octet=200, subnet_min=10, subnet_max=10)

    plan = allocator.allocate({"10.200.9.0/24", "10.201.10.0/24"})

    assert plan.cidr == "10.200.10.0/24"


@pytest.mark.unit
def test_inverted_range_rejected():
    with pytest.raises(ValueError):
        SubnetAllocator(base_octet=200, subnet_min=20, subnet_max=10)


@pytest.mark.unit
def test_network_name_hashes_tenant_and_keeps_octet():
    name = network_name_for("user-42@example.com", 17)

    assert name.startswith("tenant-")
    assert name.endswith("-17")
    assert "@" not in name
    assert len(name.split("-")[1]) == 8
    assert name == network_name_for("user-42@example.com", 17)
    assert name != network_name_for("user-43@example.com", 17)


@pytest.mark.unit
def test_bridge_name_fits_interface_limit():
    assert bridge_name_for(254) == "tnbr254"
    assert len(bridge_name_for(254)) <= 15
