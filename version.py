"""Version and build identity for the calibration sync tools."""
from __future__ import annotations

import os
import re

__version__ = "1.0.0"

BUILD_ID_ENV_VAR = "CAVE_CALIBRATION_BUILD_ID"
DEV_MODE_ENV_VAR = "CAVE_CALIBRATION_DEV_MODE"

_UNSAFE_BUILD_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def resolve_build_id(override: str | None = None) -> str:
    """Return the identifier used to key persisted calibrations.

    An explicit override wins, then the environment, then the package version.
    Characters that are unsafe in a file name are replaced with ``_``.
    """
    raw = override or os.getenv(BUILD_ID_ENV_VAR) or f"v{__version__}"
    token = _UNSAFE_BUILD_CHARS.sub("_", raw.strip())
    return token or f"v{__version__}"


def is_dev_build() -> bool:
    value = os.getenv(DEV_MODE_ENV_VAR)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}
