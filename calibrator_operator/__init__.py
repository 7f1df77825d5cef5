"""Operator side of remote calibration: mirrors and edits runtime state."""

from .client import ClientEvent, ClientEventKind, OperatorClient
from .preferences import OperatorPreferences

__all__ = ["ClientEvent", "ClientEventKind", "OperatorClient", "OperatorPreferences"]
