"""Tenant network exception classes."""


class TenantNetworkError(Exception):
    """Base exception for tenant network operations."""

    pass


class CapacityExhausted(TenantNetworkError):
    """No free subnet or no free address. Terminal, never retried."""

    pass


class SubnetPoolExhausted(CapacityExhausted):
    """Every /24 in the configured pool is taken."""

    def __init__(self, base_octet: int, subnet_min: int, subnet_max: int):
        self.base_octet = base_octet
        self.subnet_min = subnet_min
        self.subnet_max = subnet_max
        super().__init__(
            f"No remaining tenant network capacity in "
            f"10.{base_octet}.{subnet_min}-{subnet_max}.0/24. "
            f"Please contact an administrator."
        )


class AddressSpaceExhausted(CapacityExhausted):
    """A tenant subnet has no free VM address left."""

    def __init__(self, network_name: str, subnet_cidr: str):
        self.network_name = network_name
        self.subnet_cidr = subnet_cidr
        super().__init__(
            f"No IP addresses remaining in tenant network {network_name} ({subnet_cidr})"
        )


class ControlPlaneUnavailable(TenantNetworkError):
    """A control-plane call failed or timed out. Caller may retry the operation."""

    def __init__(self, operation: str, network_name: str, detail: str):
        self.operation = operation
        self.network_name = network_name
        self.detail = detail
        super().__init__(f"{operation} failed for network {network_name}: {detail}")


class ConflictingState(TenantNetworkError):
    """Stored state and control-plane state disagree and could not be healed."""

    def __init__(self, message: str, tenant_id: str | None = None):
        self.tenant_id = tenant_id
        if tenant_id is not None:
            message = f"Tenant {tenant_id}: {message}"
        super().__init__(message)


class AllocationNotFound(TenantNetworkError):
    """No allocation exists for the VM name."""

    def __init__(self, tenant_id: str, vm_name: str):
        self.tenant_id = tenant_id
        self.vm_name = vm_name
        super().__init__(f"No allocation for VM {vm_name} of tenant {tenant_id}")
