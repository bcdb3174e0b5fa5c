"""
Controller session for the MAAS API.

Handles version negotiation, the credential check, and the request
primitives every resource operation is built on.
"""

import json
import logging
import os
import threading
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from maas_client.core.errors import (
    MAASError,
    NotValidError,
    OperationClass,
    ResponseDecodeError,
    TransportError,
    UnexpectedError,
    UnsupportedVersionError,
    translate,
)
from maas_client.core.schema import FieldMap, List, String, coerce_response
from maas_client.core.transport import Transport, URLParams, ensure_trailing_slash
from maas_client.core.types import JSONValue, Version

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_BASE_URL = "http://localhost:5240/MAAS"

# Most desirable first; tried in order.
SUPPORTED_API_VERSIONS: tuple[str, ...] = ("2.0",)

VERSION_SCHEMA = FieldMap({"capabilities": List(String())})

TransportFactory = Callable[[str, str, str], Any]


class RequestSequencer:
    """Hands out request numbers for log correlation. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


class Controller:
    """
    An authenticated, version-negotiated session.

    Use ``Controller.connect()`` to build one; the constructor is for the
    negotiator and tests. The API version and capabilities never change for
    the lifetime of the instance.
    """

    def __init__(
        self,
        transport: Any,
        api_version: Version,
        capabilities: frozenset[str] = frozenset(),
        sequencer: RequestSequencer | None = None,
    ):
        self._transport = transport
        self._api_version = api_version
        self._capabilities = frozenset(capabilities)
        self._sequencer = sequencer or RequestSequencer()

    @classmethod
    def connect(
        cls,
        base_url: str | None = None,
        api_key: str | None = None,
        versions: Sequence[str] | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> "Controller":
        """
        Connect to a controller, negotiating the API version.

        Args:
            base_url: Controller URL (or MAAS_URL env var)
            api_key: MAAS API key (or MAAS_API_KEY env var)
            versions: Candidate versions, most preferred first (or MAAS_API_VERSIONS env var)
            transport_factory: Callable building a transport from (base_url, api_key, version)

        Raises:
            NotValidError: If the API key is missing or malformed
            PermissionDeniedError: If the controller rejects the credentials
            UnsupportedVersionError: If no candidate version is served

        """
        base_url = base_url or os.environ.get("MAAS_URL", DEFAULT_BASE_URL)
        api_key = api_key or os.environ.get("MAAS_API_KEY")
        if not api_key:
            raise NotValidError("MAAS_API_KEY environment variable not set")
        if versions is None:
            env_versions = os.environ.get("MAAS_API_VERSIONS", "")
            versions = [v.strip() for v in env_versions.split(",") if v.strip()] or SUPPORTED_API_VERSIONS
        negotiator = VersionNegotiator(base_url, api_key, versions, transport_factory or Transport)
        return negotiator.negotiate()

    @property
    def api_version(self) -> Version:
        return self._api_version

    @property
    def capabilities(self) -> frozenset[str]:
        return self._capabilities

    @property
    def api_url(self) -> str:
        return getattr(self._transport, "api_url", "")

    # =========================================================================
    # Session Bootstrap
    # =========================================================================

    def read_capabilities(self) -> frozenset[str]:
        """Fetch and validate the version document."""
        parsed = self.get("version")
        valid = coerce_response(VERSION_SCHEMA, parsed, "version response")
        return frozenset(valid["capabilities"])

    def check_credentials(self) -> None:
        """Ask the controller who we are; a 401 means the key was rejected."""
        try:
            self.get_op("users", "whoami")
        except (TransportError, ResponseDecodeError) as e:
            raise translate(OperationClass.CREDENTIAL_CHECK, e, "users/") from e

    # =========================================================================
    # Request Primitives
    # =========================================================================

    def get(self, path: str) -> JSONValue:
        """GET a resource and decode the JSON body."""
        return self._get(path, "", None)

    def get_query(self, path: str, params: URLParams) -> JSONValue:
        """GET a resource with query parameters."""
        return self._get(path, "", params)

    def get_op(self, path: str, op: str) -> JSONValue:
        """GET a resource sub-operation, e.g. users/?op=whoami."""
        return self._get(path, op, None)

    def get_raw(self, path: str, op: str = "", params: URLParams | None = None) -> bytes:
        """GET a resource and return the undecoded body."""
        path = ensure_trailing_slash(path)
        request_id = self._sequencer.next()
        if logger.isEnabledFor(logging.DEBUG):
            query = URLParams(params.values if params else [])
            if op:
                query.add("op", op)
            suffix = f"?{query.encode()}" if query else ""
            logger.debug("request %x: GET %s%s%s", request_id, self.api_url, path, suffix)
        try:
            data = self._transport.get(path, op, params)
        except TransportError as e:
            logger.debug("response %x: error: %s", request_id, e)
            raise
        logger.debug("response %x: %r", request_id, data)
        return data

    def post(self, path: str, op: str, params: URLParams | None = None) -> JSONValue:
        """POST a sub-operation with form parameters and decode the JSON body."""
        path = ensure_trailing_slash(path)
        return _decode(path, self._post_raw(path, op, params, None))

    def post_file(self, path: str, op: str, params: URLParams | None, content: bytes) -> bytes:
        """POST a sub-operation with exactly one file attached as "file"."""
        if not isinstance(content, bytes):
            raise NotValidError("file content must be bytes")
        return self._post_raw(path, op, params, {"file": content})

    def delete(self, path: str) -> None:
        """DELETE a resource."""
        path = ensure_trailing_slash(path)
        request_id = self._sequencer.next()
        logger.debug("request %x: DELETE %s%s", request_id, self.api_url, path)
        try:
            self._transport.delete(path)
        except TransportError as e:
            logger.debug("response %x: error: %s", request_id, e)
            raise
        logger.debug("response %x: complete", request_id)

    def _get(self, path: str, op: str, params: URLParams | None) -> JSONValue:
        data = self.get_raw(path, op, params)
        return _decode(ensure_trailing_slash(path), data)

    def _post_raw(
        self,
        path: str,
        op: str,
        params: URLParams | None,
        files: dict[str, bytes] | None,
    ) -> bytes:
        path = ensure_trailing_slash(path)
        params = params or URLParams()
        request_id = self._sequencer.next()
        logger.debug("request %x: POST %s%s?op=%s, params=%s", request_id, self.api_url, path, op, params.encode())
        try:
            data = self._transport.post(path, op, params, files)
        except TransportError as e:
            logger.debug("response %x: error: %s", request_id, e)
            raise
        logger.debug("response %x: %r", request_id, data)
        return data


def _decode(path: str, data: bytes) -> JSONValue:
    try:
        return json.loads(data)
    except ValueError as e:
        raise ResponseDecodeError(path, e) from e


# =============================================================================
# Version Negotiation
# =============================================================================


class NegotiationState(str, Enum):
    TRYING = "trying"
    NEGOTIATED = "negotiated"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"


class CandidateRejected(Exception):
    """Soft failure: this version is not served, try the next one."""


class VersionNegotiator:
    """
    Tries candidate API versions in order until one works.

    Failures reading the version document are soft and move on to the next
    candidate. Credential and transport setup failures are hard and abort
    negotiation, since they would fail the same way for every version.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        versions: Sequence[str] = SUPPORTED_API_VERSIONS,
        transport_factory: TransportFactory = Transport,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.versions = list(versions)
        self.transport_factory = transport_factory
        self.state = NegotiationState.TRYING

    def negotiate(self) -> Controller:
        # Bad entries are a programming error, not a negotiation outcome.
        candidates = [(v, Version.parse(v)) for v in self.versions]

        self.state = NegotiationState.TRYING
        controller: Controller | None = None
        failure: MAASError | None = None
        index = 0
        while self.state is NegotiationState.TRYING:
            if index >= len(candidates):
                self.state = NegotiationState.EXHAUSTED
                break
            version_string, version = candidates[index]
            try:
                controller = self._attempt(version_string, version)
                self.state = NegotiationState.NEGOTIATED
            except CandidateRejected as e:
                logger.debug("read version failed for %s: %s", version_string, e.__cause__)
                index += 1
            except MAASError as e:
                failure = e
                self.state = NegotiationState.ABORTED

        if self.state is NegotiationState.NEGOTIATED and controller is not None:
            logger.debug("negotiated API %s at %s", controller.api_version, self.base_url)
            return controller
        if failure is not None:
            raise failure
        raise UnsupportedVersionError(
            f"controller at {self.base_url} does not support any of {self.versions}",
            details={"base_url": self.base_url, "versions": self.versions},
        )

    def _attempt(self, version_string: str, version: Version) -> Controller:
        try:
            transport = self.transport_factory(self.base_url, self.api_key, version_string)
        except NotValidError:
            raise
        except Exception as e:
            raise UnexpectedError(f"cannot create transport for {self.base_url}: {e}") from e

        probe = Controller(transport, version)
        try:
            capabilities = probe.read_capabilities()
        except (MAASError, TransportError, ResponseDecodeError) as e:
            raise CandidateRejected(version_string) from e

        controller = Controller(transport, version, capabilities, probe._sequencer)
        controller.check_credentials()
        return controller
