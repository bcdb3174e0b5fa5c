"""
MAAS SDK - High-level client with nice ergonomics.

This layer provides a clean, typed interface for common MAAS operations.
Built on top of the core Controller session.
"""

import base64
import binascii
import builtins
import threading
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from maas_client.core.controller import Controller, TransportFactory
from maas_client.core.errors import (
    DeserializationError,
    NotValidError,
    OperationClass,
    ResponseDecodeError,
    TransportError,
    UnexpectedError,
    translate,
)
from maas_client.core.transport import URLParams
from maas_client.core.types import (
    AddFileArgs,
    AllocateMachineArgs,
    BootResource,
    Device,
    Fabric,
    File,
    Machine,
    Space,
    Version,
    Zone,
)

T = TypeVar("T")


class MAASClient:
    """
    High-level MAAS API client with typed methods and nice ergonomics.

    The session is negotiated on first use.

    Example:
        client = MAASClient(base_url="http://maas:5240/MAAS", api_key=key)

        machine = client.machines.allocate(AllocateMachineArgs(zone="rack-1"))
        client.machines.release([machine.system_id], comment="done")

        if client.supports(DEVICES_MANAGEMENT):
            devices = client.devices.list()

    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        versions: Sequence[str] | None = None,
        transport_factory: TransportFactory | None = None,
        controller: Controller | None = None,
    ):
        """
        Initialize the MAAS client.

        Args:
            base_url: Controller URL (or MAAS_URL env var)
            api_key: MAAS API key (or MAAS_API_KEY env var)
            versions: Candidate API versions (or MAAS_API_VERSIONS env var)
            transport_factory: Override for building the transport
            controller: An already negotiated session to use as-is

        """
        self._base_url = base_url
        self._api_key = api_key
        self._versions = versions
        self._transport_factory = transport_factory
        self._controller = controller
        self._lock = threading.Lock()

        # Sub-clients for different domains
        self.boot_resources = BootResourceOperations(self)
        self.fabrics = FabricOperations(self)
        self.spaces = SpaceOperations(self)
        self.zones = ZoneOperations(self)
        self.devices = DeviceOperations(self)
        self.machines = MachineOperations(self)
        self.files = FileOperations(self)

    @property
    def controller(self) -> Controller:
        """Get the session, connecting on first access."""
        if self._controller is None:
            with self._lock:
                if self._controller is None:
                    self._controller = Controller.connect(
                        base_url=self._base_url,
                        api_key=self._api_key,
                        versions=self._versions,
                        transport_factory=self._transport_factory,
                    )
        return self._controller

    @property
    def api_version(self) -> Version:
        return self.controller.api_version

    @property
    def capabilities(self) -> frozenset[str]:
        return self.controller.capabilities

    def supports(self, capability: str) -> bool:
        """Check whether the controller reported a capability."""
        return capability in self.controller.capabilities


class _Operations:
    """Shared plumbing for the operation groups."""

    def __init__(self, client: MAASClient):
        self._client = client

    @property
    def _controller(self) -> Controller:
        return self._client.controller

    def _call(self, operation: OperationClass, path: str, request: Callable[..., T], *args: Any) -> T:
        """Run a primitive, translating failures with the operation's policy."""
        try:
            return request(path, *args)
        except (TransportError, ResponseDecodeError) as e:
            raise translate(operation, e, path) from e

    def _read_list(self, path: str, parser: Callable[[dict[str, Any]], T], params: URLParams | None = None) -> list[T]:
        if params is None:
            source = self._call(OperationClass.READ, path, self._controller.get)
        else:
            source = self._call(OperationClass.READ, path, self._controller.get_query, params)
        if not isinstance(source, list):
            raise DeserializationError(f"{path} response: expected list, got {type(source).__name__}")
        return [_parse(parser, item, path) for item in source]


def _parse(parser: Callable[[dict[str, Any]], T], data: Any, context: str) -> T:
    try:
        return parser(data)
    except (KeyError, TypeError, AttributeError) as e:
        raise DeserializationError(f"{context} response: bad record: {e!r}") from e


# =============================================================================
# Read-only Collections
# =============================================================================


class BootResourceOperations(_Operations):
    """Boot images known to the controller."""

    def list(self) -> builtins.list[BootResource]:
        return self._read_list("boot-resources", BootResource.from_dict)


class FabricOperations(_Operations):
    def list(self) -> builtins.list[Fabric]:
        return self._read_list("fabrics", Fabric.from_dict)


class SpaceOperations(_Operations):
    def list(self) -> builtins.list[Space]:
        return self._read_list("spaces", Space.from_dict)


class ZoneOperations(_Operations):
    def list(self) -> builtins.list[Zone]:
        return self._read_list("zones", Zone.from_dict)


# =============================================================================
# Device Operations
# =============================================================================


class DeviceOperations(_Operations):
    """Operations for managing devices."""

    def list(
        self,
        hostname: str = "",
        mac_addresses: builtins.list[str] | None = None,
        system_ids: builtins.list[str] | None = None,
        domain: str = "",
        zone: str = "",
        agent_name: str = "",
    ) -> builtins.list[Device]:
        """
        List devices matching all of the given criteria.

        Args:
            hostname: Exact hostname
            mac_addresses: Any of these MAC addresses
            system_ids: Any of these system IDs
            domain: Domain name
            zone: Zone name
            agent_name: Agent name the devices were created with

        Returns:
            List of Devices

        """
        params = URLParams()
        params.maybe_add("hostname", hostname)
        params.maybe_add_many("mac_address", mac_addresses)
        params.maybe_add_many("id", system_ids)
        params.maybe_add("domain", domain)
        params.maybe_add("zone", zone)
        params.maybe_add("agent_name", agent_name)
        return self._read_list("devices", Device.from_dict, params)

    def create(
        self,
        mac_addresses: builtins.list[str],
        hostname: str = "",
        domain: str = "",
        parent: str = "",
    ) -> Device:
        """
        Create a device.

        Args:
            mac_addresses: At least one MAC address
            hostname: Hostname, generated by the controller if empty
            domain: Domain name
            parent: System ID of the parent node

        Returns:
            The created Device

        Raises:
            NotValidError: If no MAC address is given
            BadRequestError: If the controller rejects the arguments

        """
        if not mac_addresses:
            raise NotValidError("at least one MAC address must be specified")
        params = URLParams()
        params.maybe_add("hostname", hostname)
        params.maybe_add("domain", domain)
        params.maybe_add_many("mac_addresses", mac_addresses)
        params.maybe_add("parent", parent)
        result = self._call(OperationClass.DEVICE_CREATE, "devices", self._controller.post, "create", params)
        return _parse(Device.from_dict, result, "devices")

    def delete(self, system_id: str) -> None:
        """
        Delete a device.

        Raises:
            NoMatchError: If the device does not exist
            PermissionDeniedError: If the user may not delete it

        """
        if not system_id:
            raise NotValidError("missing system ID")
        self._call(OperationClass.DEVICE_DELETE, f"devices/{system_id}", self._controller.delete)


# =============================================================================
# Machine Operations
# =============================================================================


class MachineOperations(_Operations):
    """Operations for listing, allocating and releasing machines."""

    def list(
        self,
        hostnames: builtins.list[str] | None = None,
        mac_addresses: builtins.list[str] | None = None,
        system_ids: builtins.list[str] | None = None,
        domain: str = "",
        zone: str = "",
        agent_name: str = "",
    ) -> builtins.list[Machine]:
        """List machines matching all of the given criteria."""
        params = URLParams()
        params.maybe_add_many("hostname", hostnames)
        params.maybe_add_many("mac_address", mac_addresses)
        params.maybe_add_many("id", system_ids)
        params.maybe_add("domain", domain)
        params.maybe_add("zone", zone)
        params.maybe_add("agent_name", agent_name)
        return self._read_list("machines", Machine.from_dict, params)

    def allocate(self, args: AllocateMachineArgs | None = None) -> Machine:
        """
        Allocate a machine matching the constraints.

        Args:
            args: Allocation constraints; any machine if omitted

        Returns:
            The allocated Machine

        Raises:
            NoMatchError: If no machine satisfies the constraints

        """
        args = args or AllocateMachineArgs()
        params = URLParams()
        params.maybe_add("name", args.hostname)
        params.maybe_add("arch", args.architecture)
        params.maybe_add_int("cpu_count", args.min_cpu_count)
        params.maybe_add_int("mem", args.min_memory)
        params.maybe_add_many("tags", args.tags)
        params.maybe_add_many("not_tags", args.not_tags)
        params.maybe_add_many("networks", args.networks)
        params.maybe_add_many("not_networks", args.not_networks)
        params.maybe_add("zone", args.zone)
        params.maybe_add_many("not_in_zone", args.not_in_zone)
        params.maybe_add("agent_name", args.agent_name)
        params.maybe_add("comment", args.comment)
        params.maybe_add_bool("dry_run", args.dry_run)
        result = self._call(OperationClass.MACHINE_ALLOCATE, "machines", self._controller.post, "allocate", params)
        return _parse(Machine.from_dict, result, "machines")

    def release(self, system_ids: builtins.list[str], comment: str = "") -> None:
        """
        Release machines back to the pool.

        Raises:
            BadRequestError: If any of the machines cannot be found
            PermissionDeniedError: If the user may not release any of them
            CannotCompleteError: If any machine's state forbids release

        """
        params = URLParams()
        params.maybe_add_many("machines", system_ids)
        params.maybe_add("comment", comment)
        self._call(OperationClass.MACHINE_RELEASE, "machines", self._controller.post, "release", params)


# =============================================================================
# File Operations
# =============================================================================


class FileOperations(_Operations):
    """Operations for files stored on the controller."""

    def list(self, prefix: str = "") -> builtins.list[File]:
        params = URLParams()
        params.maybe_add("prefix", prefix)
        return self._read_list("files", File.from_dict, params)

    def get(self, filename: str) -> File:
        """
        Get a file record by name. The record carries base64 content.

        Raises:
            NotValidError: If filename is empty
            NoMatchError: If there is no such file

        """
        if not filename:
            raise NotValidError("missing filename")
        path = f"files/{filename}"
        source = self._call(OperationClass.FILE_GET, path, self._controller.get)
        return _parse(File.from_dict, source, "files")

    def read(self, filename: str) -> bytes:
        """Read a file's content."""
        record = self.get(filename)
        if record.content is None:
            params = URLParams([("filename", filename)])
            return self._call(OperationClass.FILE_GET, "files", self._controller.get_raw, "get", params)
        try:
            return base64.b64decode(record.content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DeserializationError(f"files/{filename} response: bad content encoding") from e

    def add(self, args: AddFileArgs) -> None:
        """
        Upload a file.

        Raises:
            NotValidError: If the arguments are inconsistent
            BadRequestError: If the controller rejects the upload

        """
        args.validate()
        try:
            content = args.read_content()
        except OSError as e:
            raise UnexpectedError(f"cannot read file content: {e}") from e
        params = URLParams([("filename", args.filename)])
        self._call(OperationClass.FILE_CREATE, "files", self._controller.post_file, "create", params, content)

    def delete(self, filename: str) -> None:
        """
        Delete a file.

        Raises:
            NoMatchError: If there is no such file
            PermissionDeniedError: If the user may not delete it

        """
        if not filename:
            raise NotValidError("missing filename")
        self._call(OperationClass.FILE_DELETE, f"files/{filename}", self._controller.delete)
