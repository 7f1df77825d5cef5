"""Reading and writing calibration packages on disk.

The runtime keeps the last applied package under a file name derived from
the build identifier, so a calibration written by one build is never
reapplied by another whose field layout may differ.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .package import CalibrationPackage, PackageFormatError

DATA_DIR_ENV_VAR = "CAVE_CALIBRATION_DATA_DIR"
APP_DIR_NAME = "CAVECalibration"
CALIBRATION_SUFFIX = ".calibration.json"

_LOGGER = logging.getLogger("CAVE.Calibration.Persistence")


def default_data_dir() -> Path:
    """Resolve the persistent application data directory.

    Strategy:
    - Use CAVE_CALIBRATION_DATA_DIR if set.
    - Otherwise XDG_DATA_HOME (or ~/.local/share), then tempdir, under ``CAVECalibration``.
    """
    env_override = os.environ.get(DATA_DIR_ENV_VAR)
    if env_override:
        return Path(env_override).expanduser()
    data_home = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    for base in (data_home, Path(tempfile.gettempdir())):
        target = base / APP_DIR_NAME
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue
    return Path(tempfile.gettempdir()) / APP_DIR_NAME


def calibration_file_path(build_id: str, data_dir: Optional[Path] = None) -> Path:
    if not build_id or any(sep in build_id for sep in ("/", "\\")) or build_id in {".", ".."}:
        raise ValueError(f"Invalid build identifier for calibration file: {build_id!r}")
    base = Path(data_dir) if data_dir is not None else default_data_dir()
    return base / f"{build_id}{CALIBRATION_SUFFIX}"


def save_package(package: CalibrationPackage, path: Path) -> None:
    """Write ``package`` as pretty-printed JSON at an explicit path."""
    write_raw(package.to_json(pretty=True) + "\n", path)


def load_package(path: Path) -> CalibrationPackage:
    """Read a package; raises ``OSError`` or ``PackageFormatError``."""
    text = Path(path).read_text(encoding="utf-8")
    return CalibrationPackage.from_json(text)


def write_raw(text: str, path: Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")


def try_load_from_disk(build_id: str, data_dir: Optional[Path] = None) -> Optional[CalibrationPackage]:
    """Return the package persisted for ``build_id`` or ``None`` when unavailable."""
    try:
        path = calibration_file_path(build_id, data_dir)
    except ValueError as exc:
        _LOGGER.debug("No persisted calibration: %s", exc)
        return None
    try:
        package = load_package(path)
    except FileNotFoundError:
        _LOGGER.debug("No persisted calibration at %s", path)
        return None
    except (OSError, PackageFormatError) as exc:
        _LOGGER.debug("Ignoring unreadable calibration at %s: %s", path, exc)
        return None
    if package.is_empty:
        _LOGGER.debug("Ignoring empty calibration at %s", path)
        return None
    return package
