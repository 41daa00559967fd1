"""
Database base configuration and utilities.

This module provides the foundation for TenantNet's durable store using
Peewee ORM with SQLite backend.

Components:
    - db: Global SQLite database instance
    - BaseModel: Base class for all TenantNet database models
    - initialize_database: Database setup function
    - run_in_executor: Async wrapper for blocking DB operations
"""

import asyncio
import os

import peewee

from tenantnet.utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Database Instance
# =============================================================================

# Global database instance - path set via initialize_database()
db = peewee.SqliteDatabase(None)


# =============================================================================
# Base Model
# =============================================================================


class BaseModel(peewee.Model):
    """Base model sharing the global database connection."""

    class Meta:
        database = db


# =============================================================================
# Database Lifecycle
# =============================================================================


def initialize_database(db_path: str) -> None:
    """
    Connect to the database and create tables.

    Args:
        db_path: Path to the SQLite database file.

    Raises:
        peewee.OperationalError: If database connection fails.
    """
    # Import models here to avoid circular imports
    from tenantnet.db.network import TenantNetwork

    logger.debug(f"Initializing database at: {db_path}")

    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    try:
        if not db.is_closed():
            db.close()
        # WAL lets readers in worker threads proceed while one writer commits
        db.init(db_path, pragmas={"journal_mode": "wal", "busy_timeout": 5000})
        db.connect()
        db.create_tables([TenantNetwork], safe=True)

        logger.info(f"Database initialized: {db_path}")
        logger.debug(f"Database contains {TenantNetwork.select().count()} tenant networks")

    except peewee.OperationalError as e:
        logger.error(f"Failed to initialize database '{db_path}': {e}")
        raise


def close_database() -> None:
    """Close the database connection if open."""
    if not db.is_closed():
        db.close()
        logger.debug("Database connection closed")


# =============================================================================
# Async Utilities
# =============================================================================


async def run_in_executor(func, *args, **kwargs):
    """
    Run a blocking database function in a worker thread.

    Use this in async contexts to avoid blocking the event loop.

    Example:
        network = await run_in_executor(TenantNetwork.get_or_none, ...)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
