"""
Semantic error taxonomy and per-operation error translation.

The same HTTP status means different things for different operations (409 on
allocate is "no match", 409 on release is "cannot complete"), so translation
is driven by a small policy table per operation class rather than one global
switch.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Semantic category of a failure."""

    NOT_VALID = "not-valid"
    PERMISSION_DENIED = "permission-denied"
    NO_MATCH = "no-match"
    BAD_REQUEST = "bad-request"
    CANNOT_COMPLETE = "cannot-complete"
    UNSUPPORTED_VERSION = "unsupported-version"
    UNEXPECTED = "unexpected"


class MAASError(Exception):
    """Base error class for all client errors."""

    kind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message, "kind": self.kind.value}
        if self.details:
            result["details"] = self.details
        return result


class NotValidError(MAASError):
    """Malformed input detected locally, before any network call."""

    kind = ErrorKind.NOT_VALID


class PermissionDeniedError(MAASError):
    """The server rejected the authenticated identity."""

    kind = ErrorKind.PERMISSION_DENIED


class NoMatchError(MAASError):
    """The requested resource or constraints cannot be satisfied."""

    kind = ErrorKind.NO_MATCH


class BadRequestError(MAASError):
    """The server rejected the request as malformed."""

    kind = ErrorKind.BAD_REQUEST


class CannotCompleteError(MAASError):
    """The resource's current state forbids the action."""

    kind = ErrorKind.CANNOT_COMPLETE


class UnsupportedVersionError(MAASError):
    """No candidate protocol version is served by the controller."""

    kind = ErrorKind.UNSUPPORTED_VERSION


class UnexpectedError(MAASError):
    """Any transport, decode or status outcome not otherwise classified."""

    kind = ErrorKind.UNEXPECTED


class DeserializationError(UnexpectedError):
    """A decoded response did not match its declared schema."""


# =============================================================================
# Raw Failures
# =============================================================================


class TransportError(Exception):
    """The request did not produce an HTTP response."""


class ServerError(TransportError):
    """Non-2xx response, carrying the status and the raw body text."""

    def __init__(self, status_code: int, body_message: str = "", headers: dict[str, str] | None = None):
        super().__init__(f"ServerError: {status_code} ({body_message})")
        self.status_code = status_code
        self.body_message = body_message
        self.headers = headers or {}


class ResponseDecodeError(Exception):
    """A successful response body was not valid JSON."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"cannot decode response from {path}: {cause}")
        self.path = path


ERROR_CLASSES: dict[ErrorKind, type[MAASError]] = {
    cls.kind: cls
    for cls in (
        NotValidError,
        PermissionDeniedError,
        NoMatchError,
        BadRequestError,
        CannotCompleteError,
        UnsupportedVersionError,
        UnexpectedError,
    )
}


# =============================================================================
# Error Translation
# =============================================================================


class OperationClass(str, Enum):
    """Call sites that own a status-code policy."""

    CREDENTIAL_CHECK = "credential-check"
    READ = "read"
    DEVICE_CREATE = "device-create"
    DEVICE_DELETE = "device-delete"
    MACHINE_ALLOCATE = "machine-allocate"
    MACHINE_RELEASE = "machine-release"
    FILE_GET = "file-get"
    FILE_CREATE = "file-create"
    FILE_DELETE = "file-delete"


class ErrorPolicy:
    """Maps server status codes to error kinds for one operation class."""

    def __init__(self, operation: OperationClass, statuses: dict[int, ErrorKind] | None = None):
        self.operation = operation
        self.statuses = dict(statuses or {})

    def kind_for(self, status: int) -> ErrorKind:
        """Unmapped statuses always degrade to unexpected."""
        return self.statuses.get(status, ErrorKind.UNEXPECTED)


POLICIES: dict[OperationClass, ErrorPolicy] = {
    policy.operation: policy
    for policy in (
        ErrorPolicy(OperationClass.CREDENTIAL_CHECK, {401: ErrorKind.PERMISSION_DENIED}),
        ErrorPolicy(OperationClass.READ),
        ErrorPolicy(OperationClass.DEVICE_CREATE, {400: ErrorKind.BAD_REQUEST}),
        ErrorPolicy(
            OperationClass.DEVICE_DELETE,
            {403: ErrorKind.PERMISSION_DENIED, 404: ErrorKind.NO_MATCH},
        ),
        ErrorPolicy(OperationClass.MACHINE_ALLOCATE, {409: ErrorKind.NO_MATCH}),
        ErrorPolicy(
            OperationClass.MACHINE_RELEASE,
            {
                400: ErrorKind.BAD_REQUEST,
                403: ErrorKind.PERMISSION_DENIED,
                409: ErrorKind.CANNOT_COMPLETE,
            },
        ),
        ErrorPolicy(OperationClass.FILE_GET, {404: ErrorKind.NO_MATCH}),
        ErrorPolicy(OperationClass.FILE_CREATE, {400: ErrorKind.BAD_REQUEST}),
        ErrorPolicy(
            OperationClass.FILE_DELETE,
            {403: ErrorKind.PERMISSION_DENIED, 404: ErrorKind.NO_MATCH},
        ),
    )
}


def translate(operation: OperationClass, error: Exception, path: str = "") -> MAASError:
    """
    Translate a failure raised by a request primitive into a semantic error.

    Args:
        operation: The operation class whose policy applies
        error: The exception raised by the primitive
        path: Resource path, recorded in the error details

    Returns:
        A MAASError; callers raise it ``from error``

    """
    if isinstance(error, MAASError):
        return error

    details: dict[str, Any] = {"operation": operation.value}
    if path:
        details["path"] = path

    if isinstance(error, ServerError):
        details["status"] = error.status_code
        kind = POLICIES[operation].kind_for(error.status_code)
        if kind is not ErrorKind.UNEXPECTED:
            return ERROR_CLASSES[kind](error.body_message or str(error), details)

    target = f"{operation.value} {path}" if path else operation.value
    return UnexpectedError(f"{target}: {error}", details)
