"""Durable store for tenant networks (peewee + SQLite)."""

from tenantnet.db.base import close_database, db, initialize_database
from tenantnet.db.network import TenantNetwork

__all__ = ["db", "initialize_database", "close_database", "TenantNetwork"]
