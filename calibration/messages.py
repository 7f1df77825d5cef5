"""Message vocabulary shared by the runtime and the operator."""
from __future__ import annotations

from enum import IntEnum

LOCALHOST = "127.0.0.1"
DEFAULT_PORT = 55555

NO_DISPLAY = -1


class MessageType(IntEnum):
    DISCONNECT = 1
    SYNC = 10
    CALIBRATION = 11
    SHOW_HELPERS = 30
    LOCK_CAMERAS = 31
    ONLY_CAMERA_DISPLAY = 32


def describe(message_type: int) -> str:
    try:
        return MessageType(message_type).name
    except ValueError:
        return f"UNKNOWN({message_type})"
