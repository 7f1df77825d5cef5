"""Runtime side of remote calibration: serves and applies calibrations."""

from .calibrator import RestoreResult, RestoreStatus, RuntimeCalibrator
from .environment import CalibrationEnvironment, InMemoryEnvironment

__all__ = [
    "CalibrationEnvironment",
    "InMemoryEnvironment",
    "RestoreResult",
    "RestoreStatus",
    "RuntimeCalibrator",
]
