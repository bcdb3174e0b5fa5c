"""
MAAS CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- Pretty formatting for human output
- JSON output for piping/automation
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from maas_client.core.errors import MAASError, NotValidError
from maas_client.core.types import AddFileArgs, AllocateMachineArgs
from maas_client.sdk import MAASClient

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: MAASError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line)
    print("-" * len(header_line))

    for row in rows:
        print("  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths)))


def records_output(records: list[Any], headers: list[str], fields: list[str], widths: list[int]) -> None:
    """Print a table on a TTY, otherwise a JSON list of the full records."""
    if is_tty():
        if not records:
            print("Nothing found.")
            return
        table_output(headers, [[getattr(r, f) or "" for f in fields] for r in records], widths)
    else:
        success_output({"data": [dataclasses.asdict(r) for r in records], "total_count": len(records)})


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_version(client: MAASClient, args: argparse.Namespace) -> None:
    """Show the negotiated API version and capabilities."""
    success_output(
        {
            "api_version": str(client.api_version),
            "capabilities": sorted(client.capabilities),
        }
    )


def cmd_machines_list(client: MAASClient, args: argparse.Namespace) -> None:
    """List machines."""
    machines = client.machines.list(
        hostnames=args.hostname,
        system_ids=args.id,
        zone=args.zone or "",
    )
    records_output(
        machines,
        ["System ID", "Hostname", "Status", "Zone"],
        ["system_id", "hostname", "status_name", "zone"],
        [10, 30, 16, 16],
    )


def cmd_machines_allocate(client: MAASClient, args: argparse.Namespace) -> None:
    """Allocate a machine."""
    machine = client.machines.allocate(
        AllocateMachineArgs(
            hostname=args.hostname or "",
            architecture=args.arch or "",
            min_cpu_count=args.cpu_count or 0,
            min_memory=args.mem or 0,
            tags=args.tag or [],
            zone=args.zone or "",
            comment=args.comment or "",
            dry_run=args.dry_run,
        )
    )
    success_output(dataclasses.asdict(machine))


def cmd_machines_release(client: MAASClient, args: argparse.Namespace) -> None:
    """Release machines."""
    client.machines.release(args.system_ids, comment=args.comment or "")
    success_output({"success": True, "message": f"Released {len(args.system_ids)} machine(s)"})


def cmd_devices_list(client: MAASClient, args: argparse.Namespace) -> None:
    """List devices."""
    devices = client.devices.list(hostname=args.hostname or "", zone=args.zone or "")
    records_output(
        devices,
        ["System ID", "Hostname", "Parent"],
        ["system_id", "hostname", "parent"],
        [10, 30, 10],
    )


def cmd_devices_create(client: MAASClient, args: argparse.Namespace) -> None:
    """Create a device."""
    device = client.devices.create(
        args.mac_addresses,
        hostname=args.hostname or "",
        domain=args.domain or "",
        parent=args.parent or "",
    )
    success_output(dataclasses.asdict(device))


def cmd_devices_delete(client: MAASClient, args: argparse.Namespace) -> None:
    """Delete a device."""
    client.devices.delete(args.system_id)
    success_output({"success": True, "message": f"Device {args.system_id} deleted"})


def cmd_files_list(client: MAASClient, args: argparse.Namespace) -> None:
    """List files."""
    files = client.files.list(prefix=args.prefix or "")
    records_output(files, ["Filename"], ["filename"], [60])


def cmd_files_get(client: MAASClient, args: argparse.Namespace) -> None:
    """Download a file to disk or stdout."""
    content = client.files.read(args.filename)
    if args.output == "-":
        sys.stdout.buffer.write(content)
        sys.stdout.flush()
    else:
        target = Path(args.output or args.filename)
        try:
            target.write_bytes(content)
        except OSError as e:
            error_output(NotValidError(f"cannot write {target}: {e.strerror or e}"))
        success_output({"success": True, "filename": args.filename, "size": len(content)})


def cmd_files_add(client: MAASClient, args: argparse.Namespace) -> None:
    """Upload a local file."""
    path = Path(args.path)
    filename = args.name or path.name
    try:
        content = path.read_bytes()
    except OSError as e:
        error_output(NotValidError(f"cannot read {path}: {e.strerror or e}"))
    client.files.add(AddFileArgs(filename=filename, content=content))
    success_output({"success": True, "message": f"File {filename} added"})


def cmd_files_delete(client: MAASClient, args: argparse.Namespace) -> None:
    """Delete a file."""
    client.files.delete(args.filename)
    success_output({"success": True, "message": f"File {args.filename} deleted"})


def cmd_fabrics_list(client: MAASClient, args: argparse.Namespace) -> None:
    """List fabrics."""
    records_output(client.fabrics.list(), ["ID", "Name", "Class"], ["id", "name", "class_type"], [6, 30, 16])


def cmd_spaces_list(client: MAASClient, args: argparse.Namespace) -> None:
    """List spaces."""
    records_output(client.spaces.list(), ["ID", "Name"], ["id", "name"], [6, 30])


def cmd_zones_list(client: MAASClient, args: argparse.Namespace) -> None:
    """List zones."""
    records_output(client.zones.list(), ["Name", "Description"], ["name", "description"], [20, 50])


def cmd_boot_resources_list(client: MAASClient, args: argparse.Namespace) -> None:
    """List boot resources."""
    records_output(
        client.boot_resources.list(),
        ["ID", "Name", "Architecture", "Type"],
        ["id", "name", "architecture", "type"],
        [6, 30, 16, 10],
    )


# =============================================================================
# Main CLI
# =============================================================================


def _list_group(subparsers: Any, name: str, help_text: str, func: Any) -> argparse.ArgumentParser:
    group = subparsers.add_parser(name, help=help_text)
    group.set_defaults(func=lambda _c, _a: group.print_help())
    group_sub = group.add_subparsers(dest="subcommand")
    g_list = group_sub.add_parser("list", help=f"List {name}")
    g_list.set_defaults(func=func)
    return group


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="maas",
        description="MAAS CLI - Command-line interface for the MAAS API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output Modes:
  TTY (human):  Pretty tables
  Pipe:         Full JSON

Examples:
  maas version
  maas machines allocate --zone rack-1 --cpu-count 4
  maas machines release abc123 --comment "done"
  maas files add ./cloud-init.yaml
""",
    )
    parser.add_argument("--url", help="Controller URL (overrides MAAS_URL)")
    parser.add_argument("--api-version", action="append", help="Candidate API version, repeatable")
    parser.add_argument("--debug", action="store_true", help="Log requests and responses")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Version ==========
    version = subparsers.add_parser("version", help="Show API version and capabilities")
    version.set_defaults(func=cmd_version)

    # ========== Machines ==========
    machines = subparsers.add_parser("machines", help="List, allocate and release machines")
    machines.set_defaults(func=lambda _c, _a: machines.print_help())
    machines_sub = machines.add_subparsers(dest="subcommand")

    m_list = machines_sub.add_parser("list", help="List machines")
    m_list.add_argument("--hostname", action="append", help="Hostname, repeatable")
    m_list.add_argument("--id", action="append", help="System ID, repeatable")
    m_list.add_argument("--zone", "-z", help="Zone name")
    m_list.set_defaults(func=cmd_machines_list)

    m_allocate = machines_sub.add_parser("allocate", help="Allocate a machine")
    m_allocate.add_argument("--hostname", help="Specific hostname")
    m_allocate.add_argument("--arch", help="Architecture")
    m_allocate.add_argument("--cpu-count", type=int, help="Minimum CPU count")
    m_allocate.add_argument("--mem", type=int, help="Minimum memory in MB")
    m_allocate.add_argument("--tag", action="append", help="Required tag, repeatable")
    m_allocate.add_argument("--zone", "-z", help="Zone name")
    m_allocate.add_argument("--comment", "-c", help="Comment for the event log")
    m_allocate.add_argument("--dry-run", action="store_true", help="Check constraints without allocating")
    m_allocate.set_defaults(func=cmd_machines_allocate)

    m_release = machines_sub.add_parser("release", help="Release machines")
    m_release.add_argument("system_ids", nargs="+", help="System IDs")
    m_release.add_argument("--comment", "-c", help="Comment for the event log")
    m_release.set_defaults(func=cmd_machines_release)

    # ========== Devices ==========
    devices = subparsers.add_parser("devices", help="List, create and delete devices")
    devices.set_defaults(func=lambda _c, _a: devices.print_help())
    devices_sub = devices.add_subparsers(dest="subcommand")

    d_list = devices_sub.add_parser("list", help="List devices")
    d_list.add_argument("--hostname", help="Hostname")
    d_list.add_argument("--zone", "-z", help="Zone name")
    d_list.set_defaults(func=cmd_devices_list)

    d_create = devices_sub.add_parser("create", help="Create a device")
    d_create.add_argument("mac_addresses", nargs="+", help="MAC addresses")
    d_create.add_argument("--hostname", help="Hostname")
    d_create.add_argument("--domain", help="Domain name")
    d_create.add_argument("--parent", help="Parent system ID")
    d_create.set_defaults(func=cmd_devices_create)

    d_delete = devices_sub.add_parser("delete", help="Delete a device")
    d_delete.add_argument("system_id", help="System ID")
    d_delete.set_defaults(func=cmd_devices_delete)

    # ========== Files ==========
    files = subparsers.add_parser("files", help="Manage stored files")
    files.set_defaults(func=lambda _c, _a: files.print_help())
    files_sub = files.add_subparsers(dest="subcommand")

    f_list = files_sub.add_parser("list", help="List files")
    f_list.add_argument("--prefix", "-p", help="Filename prefix")
    f_list.set_defaults(func=cmd_files_list)

    f_get = files_sub.add_parser("get", help="Download a file")
    f_get.add_argument("filename", help="Stored filename")
    f_get.add_argument("--output", "-o", help="Local path (or - for stdout)")
    f_get.set_defaults(func=cmd_files_get)

    f_add = files_sub.add_parser("add", help="Upload a file")
    f_add.add_argument("path", help="Local file")
    f_add.add_argument("--name", "-n", help="Stored filename (defaults to the local name)")
    f_add.set_defaults(func=cmd_files_add)

    f_delete = files_sub.add_parser("delete", help="Delete a file")
    f_delete.add_argument("filename", help="Stored filename")
    f_delete.set_defaults(func=cmd_files_delete)

    # ========== Networks ==========
    _list_group(subparsers, "fabrics", "List fabrics", cmd_fabrics_list)
    _list_group(subparsers, "spaces", "List spaces", cmd_spaces_list)
    _list_group(subparsers, "zones", "List zones", cmd_zones_list)
    _list_group(subparsers, "boot-resources", "List boot resources", cmd_boot_resources_list)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # Create client; the session is negotiated on the first command call
    client = MAASClient(base_url=args.url, versions=args.api_version)

    try:
        args.func(client, args)
    except MAASError as e:
        error_output(e)


if __name__ == "__main__":
    main()
