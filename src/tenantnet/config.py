"""
TenantNet configuration.

This module defines the configuration dataclass for the allocation engine,
providing a centralized place for all configurable parameters.

Configuration can be modified at runtime by importing the global config
instance and updating its attributes before building the engine.

Usage:
    from tenantnet.config import config

    # Modify configuration before use
    config.SUBNET_MAX = 100
    config.LOG_LEVEL = LogLevel.DEBUG

Environment overrides are applied by config.load_from_env().
"""

import os
from dataclasses import dataclass

from tenantnet.models.enums import LogLevel
from tenantnet.utils.logger import get_logger

logger = get_logger(__name__)

# Octets 0, 1 and 255 are never handed out as subnet octets
OCTET_FLOOR = 2
OCTET_CEILING = 254


def clamp_octet(value: str | int | None, fallback: int) -> int:
    """
    Coerce a configured octet into [OCTET_FLOOR, OCTET_CEILING].

    Non-numeric or missing values yield the fallback.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        return fallback
    return min(OCTET_CEILING, max(OCTET_FLOOR, number))


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class NetworkConfig:
    """
    Tenant network engine configuration.

    Attributes:
        BASE_OCTET: Second octet of the tenant /16 (10.BASE_OCTET.0.0/16).
        SUBNET_MIN: Lowest third octet handed out as a tenant /24.
        SUBNET_MAX: Highest third octet handed out as a tenant /24.
        DB_FILE: Path to the SQLite database file.
        CONTROL_PLANE_TIMEOUT_SECONDS: Upper bound for every virsh call.
        LOG_LEVEL: Logging verbosity level.
    """

    # -------------------------------------------------------------------------
    # Subnet Pool
    # -------------------------------------------------------------------------

    BASE_OCTET: int = 200
    SUBNET_MIN: int = 10
    SUBNET_MAX: int = 250

    # -------------------------------------------------------------------------
    # Address Allocation
    # -------------------------------------------------------------------------

    # VM addresses are drawn from subnet offsets [START, END]
    ADDRESS_OFFSET_START: int = 10
    ADDRESS_OFFSET_END: int = 254

    # QEMU's locally administered OUI
    MAC_PREFIX: str = "52:54:00"

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    DB_FILE: str = "/var/lib/tenantnet/tenantnet.db"

    # -------------------------------------------------------------------------
    # Control Plane (libvirt)
    # -------------------------------------------------------------------------

    VIRSH_PATH: str = "virsh"
    LIBVIRT_URI: str = ""  # Empty = virsh default connection
    CONTROL_PLANE_TIMEOUT_SECONDS: float = 10.0

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    LOG_LEVEL: LogLevel = LogLevel.INFO
    LOG_FILE: str = ""

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @property
    def pool_capacity(self) -> int:
        """Number of tenants the subnet pool can hold."""
        return max(0, self.SUBNET_MAX - self.SUBNET_MIN + 1)

    def validate(self) -> None:
        """
        Check the configuration for inconsistent values.

        Raises:
            ValueError: If bounds are inverted or out of range.
        """
        for name in ("BASE_OCTET", "SUBNET_MIN", "SUBNET_MAX"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"{name}={value} is not a valid octet")
        if self.SUBNET_MIN > self.SUBNET_MAX:
            raise ValueError(
                f"SUBNET_MIN ({self.SUBNET_MIN}) must not exceed "
                f"SUBNET_MAX ({self.SUBNET_MAX})"
            )
        if not 2 <= self.ADDRESS_OFFSET_START <= self.ADDRESS_OFFSET_END <= 254:
            raise ValueError(
                f"Address offsets {self.ADDRESS_OFFSET_START}-"
                f"{self.ADDRESS_OFFSET_END} must lie within 2-254"
            )
        if len(self.MAC_PREFIX.split(":")) != 3:
            raise ValueError(f"MAC_PREFIX must have 3 octets, got {self.MAC_PREFIX!r}")
        if self.CONTROL_PLANE_TIMEOUT_SECONDS <= 0:
            raise ValueError("CONTROL_PLANE_TIMEOUT_SECONDS must be positive")

    def load_from_env(self, environ: dict[str, str] | None = None) -> "NetworkConfig":
        """
        Apply environment overrides in place.

        TENANTNET_* names take precedence over the older USER_VNET_* names.
        Octet values are clamped into 2-254. A timeout or log level that does
        not parse is ignored with a warning.

        Returns:
            self, for chaining.
        """
        env = os.environ if environ is None else environ

        def _pick(*names: str) -> str | None:
            for name in names:
                if env.get(name):
                    return env[name]
            return None

        raw = _pick("TENANTNET_BASE_OCTET", "USER_VNET_BASE_OCTET")
        if raw is not None:
            self.BASE_OCTET = clamp_octet(raw, self.BASE_OCTET)
        raw = _pick("TENANTNET_SUBNET_MIN", "USER_VNET_MIN_SUBNET")
        if raw is not None:
            self.SUBNET_MIN = clamp_octet(raw, self.SUBNET_MIN)
        raw = _pick("TENANTNET_SUBNET_MAX", "USER_VNET_MAX_SUBNET")
        if raw is not None:
            self.SUBNET_MAX = clamp_octet(raw, self.SUBNET_MAX)

        raw = _pick("TENANTNET_DB_FILE")
        if raw is not None:
            self.DB_FILE = raw
        raw = _pick("TENANTNET_VIRSH_PATH")
        if raw is not None:
            self.VIRSH_PATH = raw
        raw = _pick("TENANTNET_LIBVIRT_URI", "LIBVIRT_DEFAULT_URI")
        if raw is not None:
            self.LIBVIRT_URI = raw
        raw = _pick("TENANTNET_CONTROL_PLANE_TIMEOUT")
        if raw is not None:
            try:
                self.CONTROL_PLANE_TIMEOUT_SECONDS = float(raw)
            except ValueError:
                logger.warning(
                    f"Ignoring TENANTNET_CONTROL_PLANE_TIMEOUT={raw!r}: not a number, "
                    f"keeping {self.CONTROL_PLANE_TIMEOUT_SECONDS}s"
                )
        raw = _pick("TENANTNET_LOG_LEVEL")
        if raw is not None:
            try:
                self.LOG_LEVEL = LogLevel(raw.lower())
            except ValueError:
                logger.warning(
                    f"Ignoring TENANTNET_LOG_LEVEL={raw!r}: expected one of "
                    f"{[level.value for level in LogLevel]}, keeping {self.LOG_LEVEL.value}"
                )
        raw = _pick("TENANTNET_LOG_FILE")
        if raw is not None:
            self.LOG_FILE = raw

        return self


# =============================================================================
# Global Instance
# =============================================================================

# Global config instance - modify before building the engine
config = NetworkConfig()
