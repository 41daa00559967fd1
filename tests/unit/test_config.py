"""
Unit tests for configuration loading.
"""

import pytest
from loguru import logger

from tenantnet.config import NetworkConfig, clamp_octet
from tenantnet.models.enums import LogLevel


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,expected",
    [("10", 10), (0, 2), ("300", 254), ("abc", 200), (None, 200), ("254", 254)],
)
def test_clamp_octet(raw, expected):
    assert clamp_octet(raw, 200) == expected


@pytest.mark.unit
def test_defaults():
    cfg = NetworkConfig()

    assert cfg.BASE_OCTET == 200
    assert cfg.SUBNET_MIN == 10
    assert cfg.SUBNET_MAX == 250
    assert cfg.pool_capacity == 241
    cfg.validate()


@pytest.mark.unit
def test_legacy_env_names():
    cfg = NetworkConfig().load_from_env(
        {
            "USER_VNET_BASE_OCTET": "150",
            "USER_VNET_MIN_SUBNET": "1",
            "USER_VNET_MAX_SUBNET": "999",
        }
    )

    assert cfg.BASE_OCTET == 150
    assert cfg.SUBNET_MIN == 2
    assert cfg.SUBNET_MAX == 254


@pytest.mark.unit
def test_prefixed_env_names_take_precedence():
    cfg = NetworkConfig().load_from_env(
        {
            "USER_VNET_MIN_SUBNET": "30",
            "TENANTNET_SUBNET_MIN": "40",
            "TENANTNET_DB_FILE": "/tmp/x.db",
            "TENANTNET_CONTROL_PLANE_TIMEOUT": "2.5",
            "TENANTNET_LOG_LEVEL": "DEBUG",
        }
    )

    assert cfg.SUBNET_MIN == 40
    assert cfg.DB_FILE == "/tmp/x.db"
    assert cfg.CONTROL_PLANE_TIMEOUT_SECONDS == 2.5
    assert cfg.LOG_LEVEL == LogLevel.DEBUG


@pytest.mark.unit
def test_empty_env_leaves_defaults():
    cfg = NetworkConfig().load_from_env({})
    assert cfg == NetworkConfig()


@pytest.mark.unit
def test_inverted_bounds_rejected():
    cfg = NetworkConfig(SUBNET_MIN=50, SUBNET_MAX=40)
    with pytest.raises(ValueError, match="SUBNET_MIN"):
        cfg.validate()


@pytest.mark.unit
def test_bad_mac_prefix_rejected():
    with pytest.raises(ValueError, match="MAC_PREFIX"):
        NetworkConfig(MAC_PREFIX="52:54").validate()


@pytest.mark.unit
def test_unparseable_env_values_are_ignored_with_warning():
    messages = []
    handler_id = logger.add(messages.append, level="WARNING", format="{message}")
    try:
        cfg = NetworkConfig().load_from_env(
            {
                "TENANTNET_CONTROL_PLANE_TIMEOUT": "soon",
                "TENANTNET_LOG_LEVEL": "verbose",
            }
        )
    finally:
        logger.remove(handler_id)

    assert cfg.CONTROL_PLANE_TIMEOUT_SECONDS == 10.0
    assert cfg.LOG_LEVEL == LogLevel.INFO
    assert any("TENANTNET_CONTROL_PLANE_TIMEOUT" in m for m in messages)
    assert any("TENANTNET_LOG_LEVEL" in m for m in messages)
