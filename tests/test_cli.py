from __future__ import annotations

import socket
import threading
from pathlib import Path

import pytest

from calibration import CalibrationPackage, CameraCalibration
from calibration.persistence import load_package, save_package
from calibrator_operator import cli
from calibrator_runtime import host


def _operator_args(calibrator, tmp_path: Path, *command: str) -> list[str]:
    return ["--port", str(calibrator.port), "--config-dir", str(tmp_path / "config"), "--timeout", "3", *command]


def test_status_prints_summary(running_runtime, tmp_path, capsys):
    calibrator, _ = running_runtime

    assert cli.main(_operator_args(calibrator, tmp_path, "status")) == cli.EXIT_OK

    out = capsys.readouterr().out
    assert "status: initialized" in out
    assert "highest virtual display: 2" in out
    assert "  Left: display 1, correction off" in out


def test_helpers_switch_waits_for_echo(running_runtime, tmp_path, capsys):
    calibrator, environment = running_runtime

    assert cli.main(_operator_args(calibrator, tmp_path, "helpers", "on")) == cli.EXIT_OK

    assert "show helpers: on" in capsys.readouterr().out
    assert environment.helpers_visible is True


def test_solo_reports_effective_display(running_runtime, tmp_path, capsys):
    calibrator, environment = running_runtime

    assert cli.main(_operator_args(calibrator, tmp_path, "solo", "7")) == cli.EXIT_OK

    assert "only camera display: -1" in capsys.readouterr().out
    assert environment.single_display == -1


def test_pull_then_push(running_runtime, tmp_path, capsys):
    calibrator, environment = running_runtime
    pulled = tmp_path / "pulled.json"

    assert cli.main(_operator_args(calibrator, tmp_path, "pull", str(pulled))) == cli.EXIT_OK
    package = load_package(pulled)
    assert [c.name for c in package.calibrations] == ["Front", "Left", "Right"]

    edited = tmp_path / "edited.json"
    save_package(package.with_calibration(CameraCalibration("Front", virtual_display=6)), edited)
    assert cli.main(_operator_args(calibrator, tmp_path, "push", str(edited))) == cli.EXIT_OK

    assert environment.cameras[0].virtual_display == 6
    assert load_package(calibrator.calibration_path).find("Front").virtual_display == 6
    assert "  Front: display 6" in capsys.readouterr().out


def test_push_rejects_unreadable_file(running_runtime, tmp_path, capsys):
    calibrator, _ = running_runtime
    bad = tmp_path / "bad.json"
    bad.write_text("nope", encoding="utf-8")

    assert cli.main(_operator_args(calibrator, tmp_path, "push", str(bad))) == cli.EXIT_USAGE
    assert "error:" in capsys.readouterr().err


def test_save_host_is_remembered(running_runtime, tmp_path):
    calibrator, _ = running_runtime
    args = ["--host", "127.0.0.1", "--save-host", *_operator_args(calibrator, tmp_path, "status")]

    assert cli.main(args) == cli.EXIT_OK

    assert (tmp_path / "config" / "operator_settings.json").exists()


def test_unreachable_runtime_exits_with_connection_error(tmp_path, capsys):
    scratch = socket.socket()
    scratch.bind(("127.0.0.1", 0))
    port = scratch.getsockname()[1]
    scratch.close()

    code = cli.main(["--port", str(port), "--config-dir", str(tmp_path), "--timeout", "0.5", "status"])

    assert code == cli.EXIT_CONNECTION
    assert "unable to connect" in capsys.readouterr().err


@pytest.mark.parametrize("value, expected", [("on", True), ("OFF", False), ("1", True), ("false", False)])
def test_switch_parsing(value, expected):
    assert cli._switch(value) is expected


def test_switch_rejects_garbage():
    with pytest.raises(SystemExit):
        cli._parse_args(["helpers", "maybe"])


def test_format_summary_for_disconnected_client():
    from calibrator_operator import OperatorClient

    summary = cli.format_summary(OperatorClient())

    assert "status: disconnected" in summary
    assert "cameras: none detected" in summary


def test_host_arguments_default_to_loopback(monkeypatch):
    monkeypatch.delenv(host.PORT_ENV_VAR, raising=False)

    args = host._parse_args([])

    assert args.host == "127.0.0.1"
    assert args.port == 55555
    assert args.cameras == 4
    assert args.interactive is False


def test_host_port_from_environment(monkeypatch):
    monkeypatch.setenv(host.PORT_ENV_VAR, "6100")

    assert host._parse_args([]).port == 6100


def test_host_run_ticks_until_stopped():
    class _CountingCalibrator:
        def __init__(self, stop_event: threading.Event) -> None:
            self.ticks = 0
            self._stop_event = stop_event

        def tick(self) -> int:
            self.ticks += 1
            if self.ticks == 3:
                self._stop_event.set()
            return 0

    stop_event = threading.Event()
    calibrator = _CountingCalibrator(stop_event)

    host.run(calibrator, stop_event, 0.001)

    assert calibrator.ticks == 4


def test_host_main_reports_busy_port(tmp_path, capsys):
    with socket.create_server(("127.0.0.1", 0)) as busy:
        port = busy.getsockname()[1]
        code = host.main(["--port", str(port), "--data-dir", str(tmp_path), "--interactive"])

    assert code == 1
    assert "unable to listen" in capsys.readouterr().err


def test_host_main_serves_until_interrupted(monkeypatch, tmp_path):
    stored = CalibrationPackage(calibrations=(CameraCalibration("Front", virtual_display=3),))
    save_package(stored, tmp_path / "host-test.calibration.json")
    seen = {}

    def fake_run(calibrator, stop_event, tick_interval):
        seen["port"] = calibrator.port
        seen["display"] = calibrator.snapshot_package().find("Front").virtual_display
        seen["interval"] = tick_interval
        raise KeyboardInterrupt

    monkeypatch.setattr(host, "run", fake_run)

    code = host.main(["--port", "0", "--data-dir", str(tmp_path), "--build-id", "host-test", "--tick-rate", "20"])

    assert code == 0
    assert seen["port"] > 0
    assert seen["display"] == 3
    assert seen["interval"] == pytest.approx(0.05)
