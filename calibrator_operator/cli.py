"""Command-line operator for a running calibration runtime."""
from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Callable, Optional

from calibration.logging_utils import configure_logging
from calibration.package import CalibrationPackage, PackageFormatError
from calibration.status import ConnectionStatus
from simple_tcp import POLL_INTERVAL

from .client import ClientEvent, ClientEventKind, OperatorClient
from .preferences import OperatorPreferences, default_config_dir

EXIT_OK = 0
EXIT_CONNECTION = 1
EXIT_USAGE = 2

_SWITCHES = {"on": True, "off": False, "true": True, "false": False, "1": True, "0": False}


def _switch(value: str) -> bool:
    try:
        return _SWITCHES[value.strip().lower()]
    except KeyError:
        raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}") from None


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and calibrate a running CAVE runtime")
    parser.add_argument("--host", help="Runtime host (default: last saved host or localhost)")
    parser.add_argument("--port", type=int, help="Runtime port (default: saved port)")
    parser.add_argument("--save-host", action="store_true", help="Remember --host for later sessions")
    parser.add_argument("--timeout", type=float, default=5.0, help="Seconds to wait for the runtime")
    parser.add_argument("--config-dir", type=Path, default=None, help="Directory holding operator_settings.json")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("status", help="Print the runtime's current calibration summary")
    pull = commands.add_parser("pull", help="Save the runtime's calibration to a file")
    pull.add_argument("output", type=Path)
    push = commands.add_parser("push", help="Merge a calibration file by camera name and apply it")
    push.add_argument("file", type=Path)
    helpers = commands.add_parser("helpers", help="Show or hide calibration helpers")
    helpers.add_argument("state", type=_switch)
    lock = commands.add_parser("lock", help="Lock or unlock the cameras")
    lock.add_argument("state", type=_switch)
    solo = commands.add_parser("solo", help="Render only one virtual display (-1 for all)")
    solo.add_argument("display", type=int)
    return parser.parse_args(argv)


def wait_for(
    client: OperatorClient,
    predicate: Callable[[ClientEvent], bool],
    timeout: float,
    interval: float = POLL_INTERVAL,
) -> bool:
    """Tick ``client`` until an event matches or the connection drops."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        for event in client.refresh():
            if predicate(event):
                return True
        if not client.has_status(ConnectionStatus.CONNECTED):
            return False
        time.sleep(interval)
    return False


def _is_kind(kind: ClientEventKind) -> Callable[[ClientEvent], bool]:
    return lambda event: event.kind is kind


def format_summary(client: OperatorClient) -> str:
    package = client.package
    lines = [
        f"status: {client.status.value}",
        f"timestamp: {package.timestamp or '-'}",
        f"output target: {package.output_target.name.lower()}",
        f"highest virtual display: {package.highest_virtual_display}",
        f"show helpers: {'on' if client.show_helpers else 'off'}",
        f"lock cameras: {'on' if client.lock_cameras else 'off'}",
        f"only camera display: {client.single_render_display}",
    ]
    if package.is_empty:
        lines.append("cameras: none detected")
    for calibration in package.calibrations:
        correction = "on" if calibration.projection_correction else "off"
        lines.append(f"  {calibration.name}: display {calibration.virtual_display}, correction {correction}")
    return "\n".join(lines)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(debug=args.debug)
    preferences = OperatorPreferences(args.config_dir or default_config_dir())
    client = OperatorClient(preferences=preferences, port=args.port)

    if not client.connect(args.host, save=args.save_host and bool(args.host)):
        print(f"error: unable to connect to {args.host or client.saved_host}", file=sys.stderr)
        return EXIT_CONNECTION
    try:
        # ONLY_CAMERA_DISPLAY closes the sync burst that starts with the package.
        synced = wait_for(client, _is_kind(ClientEventKind.ONLY_CAMERA_DISPLAY), args.timeout)
        if not synced or client.status is not ConnectionStatus.INITIALIZED:
            print("error: runtime did not answer the sync request", file=sys.stderr)
            return EXIT_CONNECTION
        return _run_command(args, client)
    finally:
        client.disconnect()


def _run_command(args: argparse.Namespace, client: OperatorClient) -> int:
    if args.command == "status":
        print(format_summary(client))
        return EXIT_OK
    if args.command == "pull":
        try:
            client.save(args.output)
        except OSError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return EXIT_USAGE
        print(f"saved {len(client.package.calibrations)} calibration(s) to {args.output}")
        return EXIT_OK
    if args.command == "push":
        return _push(client, args.file, args.timeout)

    if args.command == "helpers":
        sent, kind = client.send_show_helpers(args.state), ClientEventKind.SHOW_HELPERS
    elif args.command == "lock":
        sent, kind = client.send_lock_cameras(args.state), ClientEventKind.LOCK_CAMERAS
    else:
        sent, kind = client.send_single_render_display(args.display), ClientEventKind.ONLY_CAMERA_DISPLAY
    if not sent or not wait_for(client, _is_kind(kind), args.timeout):
        print("error: runtime did not confirm the change", file=sys.stderr)
        return EXIT_CONNECTION
    print(format_summary(client))
    return EXIT_OK


def _push(client: OperatorClient, file: Path, timeout: float) -> int:
    before: CalibrationPackage = client.package
    try:
        merged = client.load(file)
    except (OSError, PackageFormatError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    if merged.calibrations == before.calibrations:
        print("warning: no camera in the file matched the runtime", file=sys.stderr)
    if not client.send_package() or not wait_for(client, _is_kind(ClientEventKind.PACKAGE_RECEIVED), timeout):
        print("error: runtime did not confirm the calibration", file=sys.stderr)
        return EXIT_CONNECTION
    print(format_summary(client))
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
