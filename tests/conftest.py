from __future__ import annotations

import logging
import os
import threading
import time
from typing import Callable

import pytest

from calibration.logging_utils import LOGGER_NAME
from calibrator_runtime import InMemoryEnvironment, RuntimeCalibrator


def pytest_runtest_setup(item):
    if item.get_closest_marker("pyqt_required"):
        if not os.getenv("PYQT_TESTS"):
            pytest.skip("PYQT_TESTS not set; skipping PyQt-dependent test")


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """configure_logging() detaches the package logger from root; undo that per test."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


def _pump(predicate: Callable[[], bool], *tickers: Callable[[], object], timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        for tick in tickers:
            tick()
        if predicate():
            return True
        time.sleep(0.005)
    return False


@pytest.fixture
def pump():
    """Call each ticker until ``predicate`` holds or the deadline passes."""
    return _pump


@pytest.fixture
def running_runtime(tmp_path):
    """A loopback runtime with three cameras, ticked on its own thread."""
    environment = InMemoryEnvironment.with_cameras(3)
    calibrator = RuntimeCalibrator(environment, port=0, build_id="test-build", data_dir=tmp_path / "data")
    assert calibrator.start(interactive=True)
    stop_event = threading.Event()

    def _run() -> None:
        while not stop_event.is_set():
            calibrator.tick()
            stop_event.wait(0.005)

    ticker = threading.Thread(target=_run, name="RuntimeTicker", daemon=True)
    ticker.start()
    try:
        yield calibrator, environment
    finally:
        stop_event.set()
        ticker.join(timeout=2.0)
        calibrator.stop()
