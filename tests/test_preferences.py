from __future__ import annotations

import json
from pathlib import Path

from calibrator_operator import OperatorPreferences
from calibrator_operator import preferences as prefs_module


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    prefs = OperatorPreferences(tmp_path)

    assert prefs.host == "127.0.0.1"
    assert prefs.port == 55555
    assert prefs.last_folder == ""
    assert prefs.default_folder() is None
    assert not prefs.path.exists()


def test_round_trip(tmp_path: Path) -> None:
    prefs = OperatorPreferences(tmp_path / "nested")
    prefs.host = "10.0.0.7"
    prefs.port = 6001
    prefs.save()

    reloaded = OperatorPreferences(tmp_path / "nested")

    assert (reloaded.host, reloaded.port) == ("10.0.0.7", 6001)
    assert json.loads(prefs.path.read_text(encoding="utf-8"))["host"] == "10.0.0.7"


def test_corrupt_file_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / prefs_module.PREFERENCES_FILE).write_text("{oops", encoding="utf-8")

    prefs = OperatorPreferences(tmp_path)

    assert prefs.host == "127.0.0.1"
    assert prefs.port == 55555


def test_invalid_values_are_sanitized(tmp_path: Path) -> None:
    (tmp_path / prefs_module.PREFERENCES_FILE).write_text(
        json.dumps({"host": "   ", "port": 70000, "last_folder": 12}),
        encoding="utf-8",
    )

    prefs = OperatorPreferences(tmp_path)

    assert prefs.host == "127.0.0.1"
    assert prefs.port == 55555
    assert prefs.last_folder == ""


def test_remember_host_persists(tmp_path: Path) -> None:
    OperatorPreferences(tmp_path).remember_host(" 192.168.1.4 ")

    assert OperatorPreferences(tmp_path).host == "192.168.1.4"


def test_remember_folder_of(tmp_path: Path) -> None:
    folder = tmp_path / "calibrations"
    folder.mkdir()
    prefs = OperatorPreferences(tmp_path / "config")

    prefs.remember_folder_of(folder / "wall.json")

    assert OperatorPreferences(tmp_path / "config").default_folder() == folder.resolve()


def test_default_config_dir_env_override(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv(prefs_module.CONFIG_DIR_ENV_VAR, str(tmp_path))

    assert prefs_module.default_config_dir() == tmp_path
    assert OperatorPreferences.default().path == tmp_path / prefs_module.PREFERENCES_FILE


def test_default_config_dir_uses_xdg(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv(prefs_module.CONFIG_DIR_ENV_VAR, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert prefs_module.default_config_dir() == tmp_path / "CAVECalibration"
