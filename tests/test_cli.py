"""
MAAS CLI tests.

In-process tests run every command against a scripted transport. The live
smoke tests at the bottom exercise the installed CLI against a REAL
controller and are skipped unless credentials are configured.

Requires for live tests: MAAS_API_KEY and MAAS_URL environment variables
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest
from conftest import FakeTransport, healthy_responses

from maas_client import cli
from maas_client.core.controller import Controller
from maas_client.core.errors import ServerError
from maas_client.core.types import Version
from maas_client.sdk import MAASClient

# =============================================================================
# Configuration
# =============================================================================

API_KEY = os.environ.get("MAAS_API_KEY")
BASE_URL = os.environ.get("MAAS_URL")

CLI_TIMEOUT = 60  # Timeout in seconds for CLI commands


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def cli_transport(monkeypatch) -> FakeTransport:
    """Route the CLI's client through a scripted transport."""
    transport = FakeTransport(healthy_responses(["networks-management", "devices-management"]))
    controller = Controller(transport, Version(2, 0), frozenset({"networks-management", "devices-management"}))
    monkeypatch.setattr(cli, "MAASClient", lambda **_kwargs: MAASClient(controller=controller))
    return transport


def run(capsys, *argv: str):
    cli.main(list(argv))
    return json.loads(capsys.readouterr().out)


# =============================================================================
# In-process Commands
# =============================================================================


def test_version(cli_transport, capsys):
    assert run(capsys, "version") == {
        "api_version": "2.0",
        "capabilities": ["devices-management", "networks-management"],
    }


def test_machines_list(cli_transport, capsys):
    cli_transport.responses[("GET", "machines/", "")] = [{"system_id": "abc", "hostname": "node-1"}]
    output = run(capsys, "machines", "list", "--hostname", "node-1", "--hostname", "node-2")
    assert output["total_count"] == 1
    assert output["data"][0]["system_id"] == "abc"
    assert cli_transport.calls[0]["params"].get_all("hostname") == ["node-1", "node-2"]


def test_machines_allocate(cli_transport, capsys):
    cli_transport.responses[("POST", "machines/", "allocate")] = {"system_id": "abc", "hostname": "node-1"}
    output = run(capsys, "machines", "allocate", "--zone", "rack-1", "--cpu-count", "2", "--dry-run")
    assert output["system_id"] == "abc"
    assert cli_transport.calls[0]["params"].values == [("cpu_count", "2"), ("zone", "rack-1"), ("dry_run", "true")]


def test_machines_allocate_no_match_exits_with_error(cli_transport, capsys):
    cli_transport.responses[("POST", "machines/", "allocate")] = ServerError(409, "no machines available")
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["machines", "allocate"])
    assert exc_info.value.code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["kind"] == "no-match"
    assert output["error"] == "no machines available"


def test_machines_release(cli_transport, capsys):
    cli_transport.responses[("POST", "machines/", "release")] = []
    output = run(capsys, "machines", "release", "a", "b", "--comment", "done")
    assert output["success"] is True
    assert cli_transport.calls[0]["params"].get_all("machines") == ["a", "b"]


def test_devices_create_and_delete(cli_transport, capsys):
    cli_transport.responses[("POST", "devices/", "create")] = {"system_id": "d1", "hostname": "printer"}
    cli_transport.responses[("DELETE", "devices/d1/", "")] = None
    assert run(capsys, "devices", "create", "aa:bb:cc:dd:ee:ff", "--hostname", "printer")["system_id"] == "d1"
    assert run(capsys, "devices", "delete", "d1")["success"] is True


def test_files_roundtrip(cli_transport, capsys, tmp_path):
    local = tmp_path / "seed.yaml"
    local.write_bytes(b"#cloud-config\n")
    cli_transport.responses[("POST", "files/", "create")] = b""
    assert run(capsys, "files", "add", str(local))["success"] is True
    assert cli_transport.calls[0]["files"] == {"file": b"#cloud-config\n"}

    cli_transport.responses[("GET", "files/seed.yaml/", "")] = {"filename": "seed.yaml", "content": "eA=="}
    target = tmp_path / "out.yaml"
    assert run(capsys, "files", "get", "seed.yaml", "--output", str(target))["size"] == 1
    assert target.read_bytes() == b"x"


def test_files_add_missing_local_path(cli_transport, capsys, tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["files", "add", str(tmp_path / "absent.yaml")])
    assert exc_info.value.code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["kind"] == "not-valid"
    assert "absent.yaml" in output["error"]
    assert cli_transport.calls == []


def test_files_get_unwritable_output(cli_transport, capsys, tmp_path):
    cli_transport.responses[("GET", "files/seed.yaml/", "")] = {"filename": "seed.yaml", "content": "eA=="}
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["files", "get", "seed.yaml", "--output", str(tmp_path / "no-such-dir" / "out.yaml")])
    assert exc_info.value.code == 1
    assert json.loads(capsys.readouterr().out)["kind"] == "not-valid"


def test_files_delete_missing(cli_transport, capsys):
    with pytest.raises(SystemExit):
        cli.main(["files", "delete", "absent"])
    assert json.loads(capsys.readouterr().out)["kind"] == "no-match"


@pytest.mark.parametrize("group", ["fabrics", "spaces", "zones", "boot-resources"])
def test_list_groups(cli_transport, capsys, group):
    cli_transport.responses[("GET", f"{group}/", "")] = []
    assert run(capsys, group, "list") == {"data": [], "total_count": 0}


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 0
    assert "usage: maas" in capsys.readouterr().out


# =============================================================================
# Live Smoke Tests
# =============================================================================


@pytest.fixture(scope="session")
def require_credentials():
    """Skip test if credentials not available."""
    if not API_KEY or not BASE_URL:
        pytest.skip("MAAS_API_KEY and MAAS_URL required")
    return True


def run_cli(*args: str) -> subprocess.CompletedProcess:
    """Run the CLI in a subprocess with the current environment."""
    cmd = [sys.executable, "-m", "maas_client.cli"] + list(args)
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        env=os.environ.copy(),
        timeout=CLI_TIMEOUT,
        cwd=Path(__file__).resolve().parent.parent,
    )


def test_live_version(require_credentials):
    result = run_cli("version")
    assert result.returncode == 0, result.stdout + result.stderr
    output = json.loads(result.stdout)
    assert output["api_version"]
    assert isinstance(output["capabilities"], list)


def test_live_zones(require_credentials):
    result = run_cli("zones", "list")
    assert result.returncode == 0, result.stdout + result.stderr
    assert "data" in json.loads(result.stdout)
