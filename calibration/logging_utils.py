"""Logging setup shared by the calibration runtime and its operators.

Every module logs under the ``CAVE.Calibration`` hierarchy. ``configure_logging``
attaches one console handler and, when a session file name is given, one
rotating session log; both share the ``[CAVE-Calibration]`` line format.
"""
from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "CAVE.Calibration"
LOG_TAG = "CAVE-Calibration"
LOG_DIR_ENV_VAR = "CAVE_CALIBRATION_LOG_DIR"
LOG_LEVEL_ENV_VAR = "CAVE_CALIBRATION_LOG_LEVEL"

SESSION_LOG_MAX_BYTES = 512 * 1024
SESSION_LOG_FORMAT = f"[%(asctime)s] [{LOG_TAG}] %(message)s"


def resolve_logs_dir(log_dir_name: str = "CAVECalibration") -> Path:
    """
    Resolve the directory to store calibration logs.

    Strategy:
    - Use CAVE_CALIBRATION_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    candidates = []

    env_override = os.environ.get(LOG_DIR_ENV_VAR)
    if env_override:
        candidates.append(Path(env_override).expanduser())

    state_home = Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    cache_home = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    candidates.append(state_home / log_dir_name / "logs")
    candidates.append(cache_home / log_dir_name / "logs")
    candidates.append(Path.cwd() / "logs" / log_dir_name)

    for target in candidates:
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def session_formatter() -> logging.Formatter:
    return logging.Formatter(SESSION_LOG_FORMAT, "%H:%M:%S")


def open_session_log(path: Path, *, sessions: int = 5) -> RotatingFileHandler:
    """Open ``path`` as a session log that keeps ``sessions`` files in total.

    The current file counts as one session, so ``sessions=1`` keeps no backups.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=SESSION_LOG_MAX_BYTES,
        backupCount=max(1, sessions) - 1,
        encoding="utf-8",
    )
    handler.setFormatter(session_formatter())
    return handler


def log_level_for(debug: bool) -> int:
    """``--debug`` wins; otherwise CAVE_CALIBRATION_LOG_LEVEL names the level."""
    if debug:
        return logging.DEBUG
    name = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    *,
    debug: bool = False,
    log_dir: Optional[Path] = None,
    filename: Optional[str] = None,
    retention: int = 5,
) -> logging.Logger:
    """Attach console (and optionally rotating file) handlers to the package logger.

    Safe to call repeatedly; handlers are only added once.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level_for(debug))
    if not any(getattr(handler, "_cave_console", False) for handler in logger.handlers):
        console = logging.StreamHandler()
        console._cave_console = True  # type: ignore[attr-defined]
        console.setFormatter(session_formatter())
        logger.addHandler(console)
    if filename and not any(getattr(handler, "_cave_file", False) for handler in logger.handlers):
        file_handler = open_session_log((log_dir or resolve_logs_dir()) / filename, sessions=retention)
        file_handler._cave_file = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)
    logger.propagate = False
    return logger
