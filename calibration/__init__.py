"""Calibration package model, message vocabulary and persistence."""

from .messages import DEFAULT_PORT, LOCALHOST, NO_DISPLAY, MessageType
from .package import (
    CalibrationPackage,
    CameraCalibration,
    OutputTarget,
    PackageFormatError,
    Point,
    ProjectionQuad,
    highest_virtual_display,
    merge_calibrations,
)
from .status import ConnectionEvent, ConnectionStatus, InvalidTransition, advance

__all__ = [
    "CalibrationPackage",
    "CameraCalibration",
    "ConnectionEvent",
    "ConnectionStatus",
    "DEFAULT_PORT",
    "InvalidTransition",
    "LOCALHOST",
    "MessageType",
    "NO_DISPLAY",
    "OutputTarget",
    "PackageFormatError",
    "Point",
    "ProjectionQuad",
    "advance",
    "highest_virtual_display",
    "merge_calibrations",
]
