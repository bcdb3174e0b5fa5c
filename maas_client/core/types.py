"""
Core types for the MAAS API.

These dataclasses provide type safety and IDE support for API responses.
"""

import posixpath
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Union

from maas_client.core.errors import NotValidError

# Decoded response bodies are left as the plain json tree.
JSONValue = Union[dict[str, "JSONValue"], list["JSONValue"], str, int, float, bool, None]


# =============================================================================
# Capabilities
# =============================================================================


NETWORKS_MANAGEMENT = "networks-management"
STATIC_IP_ADDRESSES = "static-ipaddresses"
IPV6_DEPLOYMENT_UBUNTU = "ipv6-deployment-ubuntu"
DEVICES_MANAGEMENT = "devices-management"
STORAGE_DEPLOYMENT_UBUNTU = "storage-deployment-ubuntu"
NETWORK_DEPLOYMENT_UBUNTU = "network-deployment-ubuntu"


# =============================================================================
# Version
# =============================================================================


@dataclass(frozen=True, order=True)
class Version:
    """A protocol version. Only major.minor take part in negotiation."""

    major: int
    minor: int
    patch: int = 0

    @classmethod
    def parse(cls, value: str) -> "Version":
        """Parse "2.0" or "2.0.1"."""
        parts = value.split(".") if value else []
        if len(parts) not in (2, 3) or not all(p.isascii() and p.isdecimal() for p in parts):
            raise NotValidError(f"bad version {value!r}")
        numbers = [int(p) for p in parts]
        return cls(*numbers)

    @property
    def major_minor(self) -> str:
        return f"{self.major}.{self.minor}"

    def __str__(self) -> str:
        if self.patch:
            return f"{self.major}.{self.minor}.{self.patch}"
        return self.major_minor


# =============================================================================
# Network Types
# =============================================================================


@dataclass
class VLAN:
    """A VLAN on a fabric."""

    id: int
    name: str
    fabric: str
    vid: int = 0
    mtu: int = 1500
    dhcp_on: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VLAN":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            fabric=data.get("fabric") or "",
            vid=data.get("vid", 0),
            mtu=data.get("mtu", 1500),
            dhcp_on=data.get("dhcp_on", False),
        )


@dataclass
class Fabric:
    """A network fabric."""

    id: int
    name: str
    class_type: str | None = None
    vlans: list[VLAN] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Fabric":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            class_type=data.get("class_type"),
            vlans=[VLAN.from_dict(v) for v in data.get("vlans") or []],
        )


@dataclass
class Subnet:
    """A subnet within a space."""

    id: int
    name: str
    cidr: str
    gateway_ip: str | None = None
    dns_servers: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Subnet":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            cidr=data.get("cidr") or "",
            gateway_ip=data.get("gateway_ip"),
            dns_servers=data.get("dns_servers") or [],
        )


@dataclass
class Space:
    """A network space."""

    id: int
    name: str
    subnets: list[Subnet] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Space":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            subnets=[Subnet.from_dict(s) for s in data.get("subnets") or []],
        )


@dataclass
class Zone:
    """A physical availability zone."""

    name: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Zone":
        """Create from API response dict."""
        return cls(name=data["name"], description=data.get("description") or "")


# =============================================================================
# Boot Resource Types
# =============================================================================


@dataclass
class BootResource:
    """An image the controller can boot machines with."""

    id: int
    name: str
    type: str
    architecture: str
    subarches: list[str] = field(default_factory=list)
    kernel_flavor: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BootResource":
        """Create from API response dict."""
        subarches = data.get("subarches") or ""
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            type=data.get("type") or "",
            architecture=data.get("architecture") or "",
            # Reported as a comma separated string.
            subarches=[s for s in subarches.split(",") if s],
            kernel_flavor=data.get("kflavor"),
        )


# =============================================================================
# Node Types
# =============================================================================


def _zone_name(data: dict[str, Any]) -> str | None:
    zone = data.get("zone")
    if isinstance(zone, dict):
        return zone.get("name")
    return zone


@dataclass
class Device:
    """A non-deployable node registered with the controller."""

    system_id: str
    hostname: str
    fqdn: str = ""
    parent: str | None = None
    owner: str | None = None
    ip_addresses: list[str] = field(default_factory=list)
    zone: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Device":
        """Create from API response dict."""
        return cls(
            system_id=data["system_id"],
            hostname=data.get("hostname") or "",
            fqdn=data.get("fqdn") or "",
            parent=data.get("parent"),
            owner=data.get("owner"),
            ip_addresses=data.get("ip_addresses") or [],
            zone=_zone_name(data),
        )


@dataclass
class Machine:
    """A deployable machine."""

    system_id: str
    hostname: str
    fqdn: str = ""
    architecture: str | None = None
    status_name: str | None = None
    status_message: str | None = None
    cpu_count: int = 0
    memory: int = 0
    ip_addresses: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    zone: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Machine":
        """Create from API response dict."""
        return cls(
            system_id=data["system_id"],
            hostname=data.get("hostname") or "",
            fqdn=data.get("fqdn") or "",
            architecture=data.get("architecture"),
            status_name=data.get("status_name"),
            status_message=data.get("status_message"),
            cpu_count=data.get("cpu_count", 0),
            memory=data.get("memory", 0),
            ip_addresses=data.get("ip_addresses") or [],
            tags=data.get("tag_names") or [],
            zone=_zone_name(data),
        )


# =============================================================================
# File Types
# =============================================================================


@dataclass
class File:
    """A file stored on the controller."""

    filename: str
    anon_resource_uri: str | None = None
    content: str | None = None  # base64, only present on single-file reads

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "File":
        """Create from API response dict."""
        return cls(
            filename=data["filename"],
            anon_resource_uri=data.get("anon_resource_uri"),
            content=data.get("content"),
        )


# =============================================================================
# Request Arguments
# =============================================================================


@dataclass
class AllocateMachineArgs:
    """Constraints for allocating a machine. Empty values are not sent."""

    hostname: str = ""
    architecture: str = ""
    min_cpu_count: int = 0
    min_memory: int = 0  # MB
    tags: list[str] = field(default_factory=list)
    not_tags: list[str] = field(default_factory=list)
    # Network names, "ip:<address>" or "vlan:<tag>" (1-4094).
    networks: list[str] = field(default_factory=list)
    not_networks: list[str] = field(default_factory=list)
    zone: str = ""
    not_in_zone: list[str] = field(default_factory=list)
    agent_name: str = ""
    comment: str = ""
    dry_run: bool = False


@dataclass
class AddFileArgs:
    """
    A file to upload. Exactly one of ``content`` or ``reader`` is given;
    a reader also needs the number of bytes to read in ``length``.
    """

    filename: str
    content: bytes | None = None
    reader: BinaryIO | None = None
    length: int = 0

    def validate(self) -> None:
        """
        Check the filename has no directory part and the content source is unambiguous.

        Raises:
            NotValidError: On any violation

        """
        directory, _ = posixpath.split(self.filename)
        if directory:
            raise NotValidError(f"paths in filename {self.filename!r} not valid")
        if not self.filename:
            raise NotValidError("missing filename")
        if self.content is None:
            if self.reader is None:
                raise NotValidError("missing content or reader")
            if self.length == 0:
                raise NotValidError("missing length")
        else:
            if self.reader is not None:
                raise NotValidError("specifying content and reader not valid")
            if self.length != 0:
                raise NotValidError("specifying length and content not valid")

    def read_content(self) -> bytes:
        """Return the content, reading at most ``length`` bytes from the reader."""
        if self.content is not None:
            return self.content
        chunks = []
        remaining = self.length
        while remaining > 0:
            chunk = self.reader.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)
