"""Command-line interface for pinsync."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from importlib.metadata import PackageNotFoundError, version

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from pinsync import (
    ConfigError,
    PinNotFoundError,
    PinSync,
    PinSyncError,
    PinValidationError,
    RemoteUnavailableError,
    StorageError,
    load_config,
)
from pinsync.format import format_sync_time

_Command = Callable[[argparse.Namespace, PinSync, Console], Awaitable[int]]


def _package_version() -> str:
    try:
        return version("pinsync")
    except PackageNotFoundError:
        return "0.0.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pinsync")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default="./pinsync.json", help="Path to pinsync.json")
    common.add_argument("--offline", action="store_true", help="Skip the network and work from local storage")
    common.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", parents=[common], help="Show saved pins, newest first")

    add_parser = subparsers.add_parser("add", parents=[common], help="Pin a location")
    add_parser.add_argument("name", nargs="?", default="", help="Pin name (placeholder used when empty)")
    add_parser.add_argument("--lat", type=float, required=True, help="Latitude in degrees")
    add_parser.add_argument("--lon", type=float, required=True, help="Longitude in degrees")

    rename_parser = subparsers.add_parser("rename", parents=[common], help="Rename a pin")
    rename_parser.add_argument("pin_id")
    rename_parser.add_argument("name")

    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete a pin")
    delete_parser.add_argument("pin_id")

    subparsers.add_parser("sync", parents=[common], help="Upload pending changes to the account")
    subparsers.add_parser("status", parents=[common], help="Show account and sync state")

    login_parser = subparsers.add_parser("login", parents=[common], help="Sign in to an account")
    login_parser.add_argument("--username", required=True)
    login_parser.add_argument("--password", default=None, help="Prompted for when omitted")

    signup_parser = subparsers.add_parser("signup", parents=[common], help="Create an account")
    signup_parser.add_argument("--username", required=True)
    signup_parser.add_argument("--password", default=None, help="Prompted for when omitted")
    signup_parser.add_argument("--full-name", default=None)

    logout_parser = subparsers.add_parser("logout", parents=[common], help="Sign out")
    logout_parser.add_argument(
        "--keep-local-copy",
        action="store_true",
        help="Copy the account's cached pins onto this device before signing out",
    )

    merge_parser = subparsers.add_parser("merge", parents=[common], help="Move device-only pins into the account")
    merge_parser.add_argument("--yes", "-y", action="store_true", help="Skip the confirmation prompt")

    return parser


async def _run_list(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    pins = await pinsync.list_pins()
    if not pins:
        console.print("No pins saved yet.")
        return 0

    table = Table(title=f"{len(pins)} pin(s)")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Latitude", justify="right")
    table.add_column("Longitude", justify="right")
    table.add_column("Pinned")
    table.add_column("Owner")
    for pin in pins:
        table.add_row(
            pin.id,
            pin.name,
            f"{pin.latitude:.6f}",
            f"{pin.longitude:.6f}",
            pin.created_at,
            pin.owner_label or "",
        )
    console.print(table)
    return 0


async def _run_add(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    pin = await pinsync.add_pin(args.name, args.lat, args.lon)
    console.print(f"Pinned {pin.name} ({pin.id})")
    return 0


async def _run_rename(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    pin = await pinsync.rename_pin(args.pin_id, args.name)
    console.print(f"Renamed {pin.id} to {pin.name}")
    return 0


async def _run_delete(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    await pinsync.delete_pin(args.pin_id)
    console.print(f"Deleted {args.pin_id}")
    return 0


async def _run_sync(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    status = await pinsync.status()
    if not status.signed_in:
        console.print("Sign in to back up and sync pins.")
        return 0
    if status.local_only_count > 0:
        console.print(
            f"{status.local_only_count} pin(s) on this device are not in your account; run 'pinsync merge' to add them."
        )
    synced = await pinsync.sync_now()
    await pinsync.list_pins()
    status = await pinsync.status()
    if status.pending:
        console.print("Changes are still pending; they will sync when the network is back.")
    elif synced:
        console.print(f"Synced. Last sync: {format_sync_time(status.last_sync_at)}")
    else:
        console.print(f"Nothing to sync. Last sync: {format_sync_time(status.last_sync_at)}")
    return 0


async def _run_status(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    identity = await pinsync.current_identity()
    status = await pinsync.status()
    console.print(f"Account:     {identity.display_name if identity is not None else 'not signed in'}")
    console.print(f"Pending:     {'yes' if status.pending else 'no'}")
    console.print(f"Last sync:   {format_sync_time(status.last_sync_at)}")
    if status.signed_in:
        console.print(f"Device-only: {status.local_only_count} pin(s)")
    return 0


def _password(args: argparse.Namespace, console: Console) -> str:
    if args.password is not None:
        return args.password
    return Prompt.ask("Password", password=True, console=console)


async def _run_login(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    identity = await pinsync.sign_in(args.username, _password(args, console))
    console.print(f"Signed in as {identity.display_name}")
    count = await pinsync.local_only_count()
    if count:
        console.print(f"{count} pin(s) on this device are not in your account; run 'pinsync merge' to add them.")
    return 0


async def _run_signup(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    identity = await pinsync.sign_up(args.username, _password(args, console), full_name=args.full_name)
    console.print(f"Account created; signed in as {identity.display_name}")
    return 0


async def _run_logout(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    await pinsync.sign_out(keep_local_copy=args.keep_local_copy)
    if args.keep_local_copy:
        console.print("Signed out; a copy of your pins stays on this device.")
    else:
        console.print("Signed out.")
    return 0


async def _run_merge(args: argparse.Namespace, pinsync: PinSync, console: Console) -> int:
    identity = await pinsync.current_identity()
    if identity is None:
        console.print("Sign in before merging device pins into an account.")
        return 2
    count = await pinsync.local_only_count()
    if count == 0:
        console.print("No device-only pins to merge.")
        return 0
    confirmed = args.yes or Confirm.ask(
        f"Move {count} pin(s) stored on this device into {identity.display_name}? "
        "Decline if they belong to someone else using this device.",
        console=console,
        default=False,
    )
    if not confirmed:
        console.print("Merge cancelled.")
        return 2
    result = await pinsync.merge_local_pins(confirmed=True)
    console.print(
        f"Merged {result.local_count} device pin(s) into the account "
        f"({result.merged_count} total, {result.duplicates_dropped} duplicate(s) dropped)."
    )
    return 0


_COMMANDS: dict[str, _Command] = {
    "list": _run_list,
    "add": _run_add,
    "rename": _run_rename,
    "delete": _run_delete,
    "sync": _run_sync,
    "status": _run_status,
    "login": _run_login,
    "signup": _run_signup,
    "logout": _run_logout,
    "merge": _run_merge,
}


async def _run(args: argparse.Namespace, console: Console) -> int:
    config = load_config(args.config)
    pinsync = await PinSync.from_config(config, online=False if args.offline else None)
    try:
        return await _COMMANDS[args.command](args, pinsync, console)
    finally:
        await pinsync.aclose()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(message)s", stream=sys.stderr)

    try:
        return asyncio.run(_run(args, console))
    except (ConfigError, PinValidationError, PinNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3
    except RemoteUnavailableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 4
    except StorageError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 5
    except PinSyncError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:  # pragma: no cover - defensive fallback
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
