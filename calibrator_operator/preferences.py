"""Operator preferences persisted between sessions."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from calibration.messages import DEFAULT_PORT, LOCALHOST

PREFERENCES_FILE = "operator_settings.json"
CONFIG_DIR_ENV_VAR = "CAVE_CALIBRATION_CONFIG_DIR"


def default_config_dir() -> Path:
    env_override = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_override:
        return Path(env_override).expanduser()
    config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return config_home / "CAVECalibration"


@dataclass
class OperatorPreferences:
    """Simple JSON-backed preferences store."""

    config_dir: Path
    host: str = LOCALHOST
    port: int = DEFAULT_PORT
    last_folder: str = ""

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir)
        self._path = self.config_dir / PREFERENCES_FILE
        self._load()

    @classmethod
    def default(cls) -> "OperatorPreferences":
        return cls(default_config_dir())

    @property
    def path(self) -> Path:
        return self._path

    # Persistence ---------------------------------------------------------

    def _load(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (json.JSONDecodeError, OSError):
            return
        if not isinstance(data, dict):
            return
        host = data.get("host")
        self.host = host.strip() if isinstance(host, str) and host.strip() else LOCALHOST
        try:
            port = int(data.get("port", DEFAULT_PORT))
        except (TypeError, ValueError):
            port = DEFAULT_PORT
        self.port = port if 0 < port < 65536 else DEFAULT_PORT
        folder = data.get("last_folder")
        self.last_folder = folder if isinstance(folder, str) else ""

    def save(self) -> None:
        payload: Dict[str, Any] = {
            "host": str(self.host or LOCALHOST),
            "port": int(self.port),
            "last_folder": str(self.last_folder or ""),
        }
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Helpers -------------------------------------------------------------

    def remember_host(self, host: str) -> None:
        self.host = host.strip() or LOCALHOST
        self.save()

    def remember_folder_of(self, file_path: Path) -> None:
        self.last_folder = str(Path(file_path).expanduser().resolve().parent)
        self.save()

    def default_folder(self) -> Optional[Path]:
        if not self.last_folder:
            return None
        folder = Path(self.last_folder)
        return folder if folder.is_dir() else None
