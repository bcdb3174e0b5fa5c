"""Pytest configuration - loads .env for live tests and provides a scripted transport."""

import json
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from maas_client.core.controller import Controller
from maas_client.core.errors import ServerError
from maas_client.core.types import Version
from maas_client.sdk import MAASClient

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


VALID_KEY = "consumer:token:secret"


class FakeTransport:
    """
    Transport double answering from a script keyed by (method, path, op).

    Values may be bytes, an exception to raise, or any JSON-serialisable
    value. Unscripted requests get a 404.
    """

    def __init__(self, responses: dict[tuple[str, str, str], Any] | None = None):
        self.responses = dict(responses or {})
        self.calls: list[dict[str, Any]] = []
        self.api_url = "http://maas.test/MAAS/api/2.0/"

    def _respond(self, method: str, path: str, op: str, **extra: Any) -> Any:
        self.calls.append({"method": method, "path": path, "op": op, **extra})
        key = (method, path, op)
        if key not in self.responses:
            raise ServerError(404, f"no such resource {path}")
        result = self.responses[key]
        if isinstance(result, Exception):
            raise result
        if isinstance(result, bytes) or result is None:
            return result
        return json.dumps(result).encode()

    def get(self, path, op="", params=None):
        return self._respond("GET", path, op, params=params)

    def post(self, path, op, params=None, files=None):
        return self._respond("POST", path, op, params=params, files=files)

    def delete(self, path):
        self._respond("DELETE", path, "")


def healthy_responses(capabilities: list[str] | None = None) -> dict[tuple[str, str, str], Any]:
    """Responses for a controller that negotiates cleanly."""
    return {
        ("GET", "version/", ""): {"capabilities": capabilities or ["networks-management"], "version": "2.0.0"},
        ("GET", "users/", "whoami"): {"username": "admin"},
    }


@pytest.fixture
def make_transport():
    """Build a FakeTransport from a response script."""
    return FakeTransport


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(healthy_responses())


@pytest.fixture
def controller(transport) -> Controller:
    return Controller(transport, Version(2, 0), frozenset({"networks-management"}))


@pytest.fixture
def client(controller) -> MAASClient:
    return MAASClient(controller=controller)
