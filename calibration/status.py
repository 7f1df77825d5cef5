"""Operator connection status and its transition table."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class InvalidTransition(ValueError):
    """Raised when an event is not legal in the current status."""


class ConnectionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTION_FAILED = "connection_failed"
    CONNECTED = "connected"
    INITIALIZED = "initialized"

    @property
    def is_connected(self) -> bool:
        return self in (ConnectionStatus.CONNECTED, ConnectionStatus.INITIALIZED)

    def satisfies(self, required: "ConnectionStatus") -> bool:
        """``INITIALIZED`` satisfies ``CONNECTED``; ``CONNECTION_FAILED`` satisfies ``DISCONNECTED``."""
        if self is required:
            return True
        if required is ConnectionStatus.CONNECTED:
            return self is ConnectionStatus.INITIALIZED
        if required is ConnectionStatus.DISCONNECTED:
            return self is ConnectionStatus.CONNECTION_FAILED
        return False


class ConnectionEvent(Enum):
    DIAL_SUCCEEDED = "dial_succeeded"
    DIAL_FAILED = "dial_failed"
    PACKAGE_RECEIVED = "package_received"
    DISCONNECTED = "disconnected"


_S = ConnectionStatus
_E = ConnectionEvent

TRANSITIONS: Dict[Tuple[ConnectionStatus, ConnectionEvent], ConnectionStatus] = {
    (_S.DISCONNECTED, _E.DIAL_SUCCEEDED): _S.CONNECTED,
    (_S.DISCONNECTED, _E.DIAL_FAILED): _S.CONNECTION_FAILED,
    (_S.CONNECTION_FAILED, _E.DIAL_SUCCEEDED): _S.CONNECTED,
    (_S.CONNECTION_FAILED, _E.DIAL_FAILED): _S.CONNECTION_FAILED,
    (_S.CONNECTED, _E.PACKAGE_RECEIVED): _S.INITIALIZED,
    (_S.INITIALIZED, _E.PACKAGE_RECEIVED): _S.INITIALIZED,
    (_S.CONNECTED, _E.DISCONNECTED): _S.DISCONNECTED,
    (_S.INITIALIZED, _E.DISCONNECTED): _S.DISCONNECTED,
    (_S.DISCONNECTED, _E.DISCONNECTED): _S.DISCONNECTED,
    (_S.CONNECTION_FAILED, _E.DISCONNECTED): _S.DISCONNECTED,
}


def advance(status: ConnectionStatus, event: ConnectionEvent) -> ConnectionStatus:
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransition(f"{event.value} is not valid while {status.value}") from None
