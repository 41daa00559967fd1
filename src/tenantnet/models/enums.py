"""
Enumeration types for TenantNet.
"""

from enum import Enum


class LogLevel(str, Enum):
    """
    Logging verbosity levels.

    Levels (from most to least verbose):
        - FULL: Complete trace with detailed stack information
        - DEBUG: Debug messages and above
        - INFO: Informational messages and above
        - WARNING: Only warnings and errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"


class ReconcileState(str, Enum):
    """
    Progress of a single assign_static_ip call.

    State transitions:
        REQUEST_RECEIVED -> NETWORK_ENSURED -> ALLOCATION_RESERVED
            -> RESERVATION_SYNCED
        Any -> FAILED
    """

    REQUEST_RECEIVED = "request_received"
    NETWORK_ENSURED = "network_ensured"  # Tenant network recorded and live
    ALLOCATION_RESERVED = "allocation_reserved"  # IP/MAC persisted, DHCP not yet synced
    RESERVATION_SYNCED = "reservation_synced"  # DHCP host entry written
    FAILED = "failed"
