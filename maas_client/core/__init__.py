"""
Core layer - Session, transport and error handling.

This layer provides:
- Version negotiation and the request primitives (Controller)
- Signed HTTP transport
- The semantic error taxonomy and per-operation error policies
- Typed dataclasses for API records
"""

from maas_client.core.controller import SUPPORTED_API_VERSIONS, Controller, RequestSequencer, VersionNegotiator
from maas_client.core.errors import (
    BadRequestError,
    CannotCompleteError,
    DeserializationError,
    ErrorKind,
    MAASError,
    NoMatchError,
    NotValidError,
    PermissionDeniedError,
    ServerError,
    TransportError,
    UnexpectedError,
    UnsupportedVersionError,
)
from maas_client.core.transport import Transport, URLParams
from maas_client.core.types import (
    VLAN,
    AddFileArgs,
    AllocateMachineArgs,
    BootResource,
    Device,
    Fabric,
    File,
    Machine,
    Space,
    Subnet,
    Version,
    Zone,
)

__all__ = [
    "SUPPORTED_API_VERSIONS",
    "VLAN",
    "AddFileArgs",
    "AllocateMachineArgs",
    "BadRequestError",
    "BootResource",
    "CannotCompleteError",
    "Controller",
    "DeserializationError",
    "Device",
    "ErrorKind",
    "Fabric",
    "File",
    "MAASError",
    "Machine",
    "NoMatchError",
    "NotValidError",
    "PermissionDeniedError",
    "RequestSequencer",
    "ServerError",
    "Space",
    "Subnet",
    "Transport",
    "TransportError",
    "URLParams",
    "UnexpectedError",
    "UnsupportedVersionError",
    "Version",
    "VersionNegotiator",
    "Zone",
]
