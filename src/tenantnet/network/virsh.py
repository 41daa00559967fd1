"""
libvirt control plane driven through the virsh CLI.

Every call is an argv list passed to asyncio.create_subprocess_exec; no
value is ever formatted into a shell string. Network and host XML are built
with ElementTree. Each call is bounded by a timeout. Any failure to run
virsh or a non-zero exit becomes ControlPlaneUnavailable, except for the
few libvirt responses that mean the desired state already holds:

    net-define  "already exists"  -> verify parameters, then success
    net-start   "already active"  -> success
    net-update delete  "couldn't locate" / "not found"  -> entry absent
"""

from __future__ import annotations

import asyncio
import os
import re
import tempfile
import xml.etree.ElementTree as ET

from tenantnet.network.control_plane import (
    ControlPlaneAdapter,
    DHCPHost,
    NetworkDefinition,
)
from tenantnet.network.exceptions import ConflictingState, ControlPlaneUnavailable
from tenantnet.utils.logger import get_logger

logger = get_logger(__name__)

_ACTIVE_PATTERN = re.compile(r"^Active:\s+yes\s*$", re.IGNORECASE | re.MULTILINE)
_MISSING_NETWORK_MARKERS = ("network not found", "no network with matching name")
_MISSING_HOST_MARKERS = ("couldn't locate", "not found", "no matching")


# =============================================================================
# XML Builders
# =============================================================================


def build_network_xml(definition: NetworkDefinition) -> str:
    """Render an isolated bridge network with a DHCP range."""
    network = ET.Element("network")
    ET.SubElement(network, "name").text = definition.name
    ET.SubElement(
        network, "bridge", name=definition.bridge, stp="on", delay="0"
    )
    ip = ET.SubElement(
        network, "ip", address=definition.gateway, netmask=definition.netmask
    )
    dhcp = ET.SubElement(ip, "dhcp")
    ET.SubElement(dhcp, "range", start=definition.dhcp_start, end=definition.dhcp_end)
    return ET.tostring(network, encoding="unicode")


def build_host_xml(host: DHCPHost) -> str:
    """
    Render a single <host/> entry for net-update ip-dhcp-host.

    Unset fields are left out; libvirt then matches a delete on the
    attributes that are present.
    """
    attrs = {"mac": host.mac, "name": host.name, "ip": host.ip}
    element = ET.Element("host", {k: v for k, v in attrs.items() if v is not None})
    return ET.tostring(element, encoding="unicode")


def definition_matches(xml_text: str, definition: NetworkDefinition) -> bool:
    """Compare a dumped network XML against the expected bridge, gateway and range."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError:
        return False

    bridge = root.find("bridge")
    if bridge is None or bridge.get("name") != definition.bridge:
        return False

    for ip in root.findall("ip"):
        if ip.get("address") != definition.gateway:
            continue
        if ip.get("netmask", definition.netmask) != definition.netmask:
            continue
        dhcp_range = ip.find("dhcp/range")
        if dhcp_range is None:
            continue
        if (
            dhcp_range.get("start") == definition.dhcp_start
            and dhcp_range.get("end") == definition.dhcp_end
        ):
            return True
    return False


# =============================================================================
# Adapter
# =============================================================================


class VirshControlPlane(ControlPlaneAdapter):
    """ControlPlaneAdapter backed by `virsh`."""

    def __init__(
        self,
        virsh_path: str = "virsh",
        uri: str = "",
        timeout: float = 10.0,
    ):
        self.virsh_path = virsh_path
        self.uri = uri
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> VirshControlPlane:
        return cls(
            virsh_path=config.VIRSH_PATH,
            uri=config.LIBVIRT_URI,
            timeout=config.CONTROL_PLANE_TIMEOUT_SECONDS,
        )

    # --- Process Execution ---

    def _base_command(self) -> list[str]:
        cmd = [self.virsh_path]
        if self.uri:
            cmd += ["--connect", self.uri]
        return cmd

    async def _run(
        self, operation: str, network_name: str, *args: str
    ) -> tuple[int, str, str]:
        """
        Run one virsh command and return (returncode, stdout, stderr).

        Raises:
            ControlPlaneUnavailable: Binary missing or timeout.
        """
        cmd = self._base_command() + list(args)
        logger.debug(f"virsh {operation}: {' '.join(args[:2])} ({network_name})")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ControlPlaneUnavailable(operation, network_name, str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise ControlPlaneUnavailable(
                operation, network_name, f"timed out after {self.timeout}s"
            ) from e

        return (
            proc.returncode,
            stdout.decode(errors="replace"),
            stderr.decode(errors="replace"),
        )

    async def _run_checked(self, operation: str, network_name: str, *args: str) -> str:
        returncode, stdout, stderr = await self._run(operation, network_name, *args)
        if returncode != 0:
            raise ControlPlaneUnavailable(
                operation, network_name, stderr.strip() or f"exit code {returncode}"
            )
        return stdout

    # --- Network Lifecycle ---

    async def define_network(self, definition: NetworkDefinition) -> None:
        xml_text = build_network_xml(definition)

        # net-define reads a file path; the XML never touches a command line
        fd, path = tempfile.mkstemp(prefix="tenantnet-", suffix=".xml")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(xml_text)
            returncode, _, stderr = await self._run(
                "net-define", definition.name, "net-define", path
            )
        finally:
            os.unlink(path)

        if returncode == 0:
            logger.info(f"Defined network {definition.name} ({definition.gateway})")
            return

        if "already exists" not in stderr.lower():
            raise ControlPlaneUnavailable(
                "net-define", definition.name, stderr.strip() or f"exit code {returncode}"
            )

        existing = await self._run_checked(
            "net-dumpxml", definition.name, "net-dumpxml", definition.name
        )
        if not definition_matches(existing, definition):
            raise ConflictingState(
                f"network {definition.name} already defined with different parameters"
            )
        logger.debug(f"Network {definition.name} already defined with matching parameters")

    async def start_network(self, name: str) -> None:
        returncode, _, stderr = await self._run("net-start", name, "net-start", name)
        if returncode == 0:
            logger.info(f"Started network {name}")
            return
        if "already active" in stderr.lower():
            logger.debug(f"Network {name} already active")
            return
        raise ControlPlaneUnavailable(
            "net-start", name, stderr.strip() or f"exit code {returncode}"
        )

    async def autostart_network(self, name: str) -> None:
        await self._run_checked("net-autostart", name, "net-autostart", name)

    async def is_live(self, name: str) -> bool:
        returncode, stdout, stderr = await self._run("net-info", name, "net-info", name)
        if returncode != 0:
            if any(marker in stderr.lower() for marker in _MISSING_NETWORK_MARKERS):
                return False
            raise ControlPlaneUnavailable(
                "net-info", name, stderr.strip() or f"exit code {returncode}"
            )
        return bool(_ACTIVE_PATTERN.search(stdout))

    # --- DHCP Host Entries ---

    async def add_dhcp_host(self, network_name: str, host: DHCPHost) -> None:
        await self._run_checked(
            "net-update add-last",
            network_name,
            "net-update",
            network_name,
            "add-last",
            "ip-dhcp-host",
            build_host_xml(host),
            "--live",
            "--config",
        )
        logger.debug(f"Added DHCP host {host.mac} -> {host.ip} on {network_name}")

    async def delete_dhcp_host(self, network_name: str, host: DHCPHost) -> bool:
        returncode, _, stderr = await self._run(
            "net-update delete",
            network_name,
            "net-update",
            network_name,
            "delete",
            "ip-dhcp-host",
            build_host_xml(host),
            "--live",
            "--config",
        )
        if returncode == 0:
            logger.debug(f"Deleted DHCP host matching {host} on {network_name}")
            return True
        if any(marker in stderr.lower() for marker in _MISSING_HOST_MARKERS):
            return False
        raise ControlPlaneUnavailable(
            "net-update delete", network_name, stderr.strip() or f"exit code {returncode}"
        )
