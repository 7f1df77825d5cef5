"""Headless runtime host: serves an in-memory environment for calibration."""
from __future__ import annotations

import argparse
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Optional

from calibration.logging_utils import LOGGER_NAME, configure_logging
from calibration.messages import DEFAULT_PORT, LOCALHOST
from calibration.package import OutputTarget
from version import is_dev_build

from .calibrator import RuntimeCalibrator
from .environment import InMemoryEnvironment

PORT_ENV_VAR = "CAVE_CALIBRATION_PORT"


def _default_port() -> int:
    raw = os.environ.get(PORT_ENV_VAR)
    try:
        return int(raw) if raw else DEFAULT_PORT
    except ValueError:
        return DEFAULT_PORT


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Host a headless calibration runtime")
    parser.add_argument("--host", default=LOCALHOST, help="Interface to bind (default: loopback)")
    parser.add_argument("--port", type=int, default=_default_port(), help="TCP port for the operator")
    parser.add_argument("--cameras", type=int, default=4, help="Number of synthetic cameras")
    parser.add_argument(
        "--output-target",
        choices=[target.name.lower() for target in OutputTarget],
        default=OutputTarget.DISPLAY.name.lower(),
    )
    parser.add_argument("--build-id", help="Override the build identifier keying the stored calibration")
    parser.add_argument("--data-dir", type=Path, help="Directory holding stored calibrations")
    parser.add_argument("--interactive", action="store_true", help="Skip restoring the stored calibration")
    parser.add_argument("--tick-rate", type=float, default=60.0, help="Message handling ticks per second")
    parser.add_argument("--debug", action="store_true", default=is_dev_build(), help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file name in the log directory")
    return parser.parse_args(argv)


def run(calibrator: RuntimeCalibrator, stop_event: threading.Event, tick_interval: float) -> None:
    while not stop_event.is_set():
        calibrator.tick()
        stop_event.wait(tick_interval)
    calibrator.tick()


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(debug=args.debug, filename=args.log_file)
    logger = logging.getLogger(LOGGER_NAME)

    environment = InMemoryEnvironment.with_cameras(args.cameras, OutputTarget[args.output_target.upper()])
    calibrator = RuntimeCalibrator(
        environment,
        port=args.port,
        host=args.host,
        build_id=args.build_id,
        data_dir=args.data_dir,
    )
    if not calibrator.start(interactive=args.interactive):
        print(f"error: unable to listen on {args.host}:{args.port}", file=sys.stderr)
        return 1
    logger.info("Runtime host ready (build %s, %d camera(s))", calibrator.build_id, args.cameras)

    stop_event = threading.Event()
    try:
        run(calibrator, stop_event, 1.0 / max(args.tick_rate, 1.0))
    except KeyboardInterrupt:
        logger.info("Runtime host interrupted")
    finally:
        calibrator.stop()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
