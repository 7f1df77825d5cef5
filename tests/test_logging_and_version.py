from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

import version
from calibration import logging_utils


def test_package_loggers_share_the_root_name():
    assert logging_utils.LOGGER_NAME == "CAVE.Calibration"
    assert logging.getLogger("CAVE.Calibration.Runtime").parent is logging.getLogger(logging_utils.LOGGER_NAME)


def test_log_level_for_debug_flag(monkeypatch):
    monkeypatch.delenv(logging_utils.LOG_LEVEL_ENV_VAR, raising=False)

    assert logging_utils.log_level_for(True) == logging.DEBUG
    assert logging_utils.log_level_for(False) == logging.INFO


@pytest.mark.parametrize(
    "value, debug, expected",
    [
        ("warning", False, logging.WARNING),
        (" error ", False, logging.ERROR),
        ("warning", True, logging.DEBUG),
        ("chatty", False, logging.INFO),
        ("", False, logging.INFO),
    ],
)
def test_log_level_for_env_override(monkeypatch, value, debug, expected):
    monkeypatch.setenv(logging_utils.LOG_LEVEL_ENV_VAR, value)

    assert logging_utils.log_level_for(debug) == expected


def test_resolve_logs_dir_prefers_env_override(monkeypatch, tmp_path: Path):
    monkeypatch.setenv(logging_utils.LOG_DIR_ENV_VAR, str(tmp_path / "logs"))

    assert logging_utils.resolve_logs_dir() == tmp_path / "logs"
    assert (tmp_path / "logs").is_dir()


def test_session_log_counts_the_current_file_as_a_session(tmp_path: Path):
    handler = logging_utils.open_session_log(tmp_path / "sessions" / "runtime.log", sessions=3)
    single = logging_utils.open_session_log(tmp_path / "single.log", sessions=0)
    try:
        assert isinstance(handler, RotatingFileHandler)
        assert handler.backupCount == 2
        assert single.backupCount == 0
        assert handler.maxBytes == logging_utils.SESSION_LOG_MAX_BYTES
        assert Path(handler.baseFilename) == tmp_path / "sessions" / "runtime.log"
        assert handler.formatter._fmt == logging_utils.SESSION_LOG_FORMAT
    finally:
        handler.close()
        single.close()


def test_configure_logging_adds_handlers_once(monkeypatch, tmp_path: Path):
    monkeypatch.delenv(logging_utils.LOG_LEVEL_ENV_VAR, raising=False)
    logger = logging_utils.configure_logging(debug=True, log_dir=tmp_path, filename="operator.log")
    logging_utils.configure_logging(debug=True, log_dir=tmp_path, filename="operator.log")

    consoles = [h for h in logger.handlers if getattr(h, "_cave_console", False)]
    files = [h for h in logger.handlers if getattr(h, "_cave_file", False)]
    assert len(consoles) == 1
    assert len(files) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False

    logging.getLogger("CAVE.Calibration.Runtime").info("runtime ready")
    files[0].flush()
    assert "[CAVE-Calibration] runtime ready" in (tmp_path / "operator.log").read_text(encoding="utf-8")


@pytest.mark.parametrize(
    "override, env, expected",
    [
        ("release-7", None, "release-7"),
        (None, "nightly 42", "nightly_42"),
        (None, None, f"v{version.__version__}"),
        ("  ", None, f"v{version.__version__}"),
        ("../evil", None, ".._evil"),
    ],
)
def test_resolve_build_id(monkeypatch, override, env, expected):
    if env is None:
        monkeypatch.delenv(version.BUILD_ID_ENV_VAR, raising=False)
    else:
        monkeypatch.setenv(version.BUILD_ID_ENV_VAR, env)

    assert version.resolve_build_id(override) == expected


@pytest.mark.parametrize("value, expected", [(None, False), ("1", True), ("yes", True), ("0", False)])
def test_is_dev_build(monkeypatch, value, expected):
    if value is None:
        monkeypatch.delenv(version.DEV_MODE_ENV_VAR, raising=False)
    else:
        monkeypatch.setenv(version.DEV_MODE_ENV_VAR, value)

    assert version.is_dev_build() is expected
