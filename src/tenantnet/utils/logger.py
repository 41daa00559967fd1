"""
Logging setup for TenantNet.

All modules log through loguru. Call configure_logging() once at process
start (the CLI does this); modules get a named logger via get_logger().
"""

import sys

from loguru import logger as _logger

from tenantnet.models.enums import LogLevel

_LEVEL_MAP = {
    LogLevel.FULL: "TRACE",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO",
    LogLevel.WARNING: "WARNING",
}

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

_logger.configure(extra={"name": "tenantnet"})


def configure_logging(level: LogLevel | str = LogLevel.INFO, log_file: str = "") -> None:
    """
    Reset loguru sinks for the given verbosity.

    Args:
        level: LogLevel (or its string value).
        log_file: Optional file path; when set, logs are also written there.
    """
    level = LogLevel(level)
    loguru_level = _LEVEL_MAP.get(level, "INFO")

    _logger.remove()
    _logger.add(
        sys.stderr,
        level=loguru_level,
        format=_FORMAT,
        backtrace=level == LogLevel.FULL,
        diagnose=level == LogLevel.FULL,
    )
    if log_file:
        _logger.add(
            log_file,
            level=loguru_level,
            format=_FORMAT,
            rotation="10 MB",
            retention=5,
        )


def get_logger(name: str):
    """Return a loguru logger bound to a module name."""
    return _logger.bind(name=name)
