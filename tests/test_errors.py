"""Tests for the error taxonomy and the per-operation error policies."""

import pytest

from maas_client.core.errors import (
    POLICIES,
    BadRequestError,
    ErrorKind,
    NoMatchError,
    OperationClass,
    ResponseDecodeError,
    ServerError,
    TransportError,
    UnexpectedError,
    translate,
)

# =============================================================================
# Policy Table
# =============================================================================


MAPPED = [
    (OperationClass.CREDENTIAL_CHECK, 401, ErrorKind.PERMISSION_DENIED),
    (OperationClass.DEVICE_CREATE, 400, ErrorKind.BAD_REQUEST),
    (OperationClass.DEVICE_DELETE, 403, ErrorKind.PERMISSION_DENIED),
    (OperationClass.DEVICE_DELETE, 404, ErrorKind.NO_MATCH),
    (OperationClass.MACHINE_ALLOCATE, 409, ErrorKind.NO_MATCH),
    (OperationClass.MACHINE_RELEASE, 400, ErrorKind.BAD_REQUEST),
    (OperationClass.MACHINE_RELEASE, 403, ErrorKind.PERMISSION_DENIED),
    (OperationClass.MACHINE_RELEASE, 409, ErrorKind.CANNOT_COMPLETE),
    (OperationClass.FILE_GET, 404, ErrorKind.NO_MATCH),
    (OperationClass.FILE_CREATE, 400, ErrorKind.BAD_REQUEST),
    (OperationClass.FILE_DELETE, 403, ErrorKind.PERMISSION_DENIED),
    (OperationClass.FILE_DELETE, 404, ErrorKind.NO_MATCH),
]


@pytest.mark.parametrize(("operation", "status", "kind"), MAPPED)
def test_mapped_status_yields_kind(operation, status, kind):
    error = translate(operation, ServerError(status, "server says no"), "some/path")
    assert error.kind is kind
    assert error.message == "server says no"
    assert error.details == {"operation": operation.value, "path": "some/path", "status": status}


UNMAPPED = [
    (operation, status)
    for operation in OperationClass
    for status in (400, 401, 403, 404, 409, 418, 500, 502, 503)
    if status not in POLICIES[operation].statuses
]


@pytest.mark.parametrize(("operation", "status"), UNMAPPED)
def test_unmapped_status_is_unexpected(operation, status):
    error = translate(operation, ServerError(status, "boom"))
    assert isinstance(error, UnexpectedError)
    assert error.kind is ErrorKind.UNEXPECTED
    assert error.details["status"] == status


def test_same_status_differs_per_operation():
    conflict = ServerError(409, "conflict")
    assert translate(OperationClass.MACHINE_ALLOCATE, conflict).kind is ErrorKind.NO_MATCH
    assert translate(OperationClass.MACHINE_RELEASE, conflict).kind is ErrorKind.CANNOT_COMPLETE


def test_read_policy_maps_nothing():
    assert POLICIES[OperationClass.READ].statuses == {}


# =============================================================================
# Non-server Failures
# =============================================================================


def test_connection_error_is_unexpected_with_context():
    error = translate(OperationClass.MACHINE_ALLOCATE, TransportError("Connection error: refused"), "machines")
    assert isinstance(error, UnexpectedError)
    assert "machine-allocate machines" in error.message
    assert "refused" in error.message


def test_decode_error_is_unexpected():
    cause = ResponseDecodeError("zones/", ValueError("Expecting value"))
    error = translate(OperationClass.READ, cause, "zones")
    assert error.kind is ErrorKind.UNEXPECTED


def test_semantic_error_is_not_downgraded():
    original = NoMatchError("gone")
    assert translate(OperationClass.READ, original) is original


def test_empty_body_falls_back_to_error_text():
    error = translate(OperationClass.FILE_CREATE, ServerError(400))
    assert isinstance(error, BadRequestError)
    assert "400" in error.message


def test_to_dict():
    error = BadRequestError("bad mac", details={"status": 400})
    assert error.to_dict() == {"error": "bad mac", "kind": "bad-request", "details": {"status": 400}}
    assert NoMatchError("x").to_dict() == {"error": "x", "kind": "no-match"}
