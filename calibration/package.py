"""Calibration package model exchanged over the wire and persisted to disk.

Packages are immutable snapshots. Edits produce new values through
``with_calibration`` / ``with_output_target`` and never mutate a package that
may already be queued for sending.

The JSON shape uses camelCase keys::

    {
      "timestamp": "2024-05-01T12:00:00.000000+02:00",
      "outputTarget": 0,
      "highestVirtualDisplay": 3,
      "calibrations": [
        {
          "name": "Front",
          "virtualDisplay": 0,
          "outputTarget": 0,
          "viewportSize": 0.25,
          "projectionCorrection": false,
          "projectionQuad": {"bottomLeft": {"x": 0.0, "y": 0.0}, ...}
        }
      ]
    }

``highestVirtualDisplay`` is always derived from ``calibrations``; the value
found in a document is ignored on load.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from .messages import NO_DISPLAY

JsonDict = Dict[str, Any]


class PackageFormatError(ValueError):
    """Raised when a document cannot be decoded into a package."""


class OutputTarget(IntEnum):
    DISPLAY = 0  # one camera per virtual display
    VIEWPORT = 1  # cameras share one display in split viewports


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> JsonDict:
        return {"x": float(self.x), "y": float(self.y)}

    @classmethod
    def from_dict(cls, data: Any, key: str) -> "Point":
        if not isinstance(data, Mapping):
            raise PackageFormatError(f"{key} must be an object with x/y")
        return cls(_number(data.get("x", 0.0), f"{key}.x"), _number(data.get("y", 0.0), f"{key}.y"))


@dataclass(frozen=True)
class ProjectionQuad:
    """Corner positions of the corrected projection, in viewport units."""

    bottom_left: Point = Point(0.0, 0.0)
    top_left: Point = Point(0.0, 1.0)
    top_right: Point = Point(1.0, 1.0)
    bottom_right: Point = Point(1.0, 0.0)

    _KEYS = (
        ("bottom_left", "bottomLeft"),
        ("top_left", "topLeft"),
        ("top_right", "topRight"),
        ("bottom_right", "bottomRight"),
    )

    def to_dict(self) -> JsonDict:
        return {json_key: getattr(self, attr).to_dict() for attr, json_key in self._KEYS}

    @classmethod
    def from_dict(cls, data: Any) -> "ProjectionQuad":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise PackageFormatError("projectionQuad must be an object")
        defaults = cls()
        corners = {}
        for attr, json_key in cls._KEYS:
            raw = data.get(json_key)
            corners[attr] = getattr(defaults, attr) if raw is None else Point.from_dict(raw, json_key)
        return cls(**corners)


@dataclass(frozen=True)
class CameraCalibration:
    """Per-camera settings, matched across packages by ``name``."""

    name: str
    virtual_display: int = 0
    output_target: OutputTarget = OutputTarget.DISPLAY
    viewport_size: float = 1.0
    projection_correction: bool = False
    projection_quad: ProjectionQuad = field(default_factory=ProjectionQuad)

    def to_dict(self) -> JsonDict:
        return {
            "name": self.name,
            "virtualDisplay": int(self.virtual_display),
            "outputTarget": int(self.output_target),
            "viewportSize": float(self.viewport_size),
            "projectionCorrection": bool(self.projection_correction),
            "projectionQuad": self.projection_quad.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CameraCalibration":
        if not isinstance(data, Mapping):
            raise PackageFormatError("calibration entries must be objects")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise PackageFormatError("calibration entry is missing a name")
        return cls(
            name=name,
            virtual_display=_integer(data.get("virtualDisplay", 0), "virtualDisplay"),
            output_target=_output_target(data.get("outputTarget", 0)),
            viewport_size=_number(data.get("viewportSize", 1.0), "viewportSize"),
            projection_correction=_boolean(data.get("projectionCorrection", False), "projectionCorrection"),
            projection_quad=ProjectionQuad.from_dict(data.get("projectionQuad")),
        )


@dataclass(frozen=True)
class CalibrationPackage:
    timestamp: str = ""
    output_target: OutputTarget = OutputTarget.DISPLAY
    calibrations: Tuple[CameraCalibration, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "calibrations", tuple(self.calibrations))
        object.__setattr__(self, "output_target", OutputTarget(self.output_target))

    @classmethod
    def capture(
        cls,
        output_target: OutputTarget,
        calibrations: Iterable[CameraCalibration],
        *,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ) -> "CalibrationPackage":
        """Snapshot live state with a fresh timestamp."""
        return cls(timestamp=clock().isoformat(), output_target=output_target, calibrations=tuple(calibrations))

    @property
    def is_empty(self) -> bool:
        return len(self.calibrations) == 0

    @property
    def highest_virtual_display(self) -> int:
        return highest_virtual_display(self.calibrations)

    def find(self, name: str) -> Optional[CameraCalibration]:
        for calibration in self.calibrations:
            if calibration.name == name:
                return calibration
        return None

    def with_calibration(self, calibration: CameraCalibration) -> "CalibrationPackage":
        """Return a copy with the calibration of the same name replaced."""
        if self.find(calibration.name) is None:
            raise KeyError(calibration.name)
        updated = tuple(calibration if item.name == calibration.name else item for item in self.calibrations)
        return replace(self, calibrations=updated)

    def with_output_target(self, output_target: OutputTarget) -> "CalibrationPackage":
        return replace(self, output_target=OutputTarget(output_target))

    def merged_from(self, source: "CalibrationPackage") -> "CalibrationPackage":
        """Overwrite calibrations whose names appear in ``source``."""
        return replace(self, calibrations=merge_calibrations(source.calibrations, self.calibrations))

    # Serialization --------------------------------------------------------

    def to_dict(self) -> JsonDict:
        return {
            "timestamp": self.timestamp,
            "outputTarget": int(self.output_target),
            "highestVirtualDisplay": self.highest_virtual_display,
            "calibrations": [calibration.to_dict() for calibration in self.calibrations],
        }

    def to_json(self, *, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Any) -> "CalibrationPackage":
        if not isinstance(data, Mapping):
            raise PackageFormatError("package document must be a JSON object")
        timestamp = data.get("timestamp", "")
        if timestamp is None:
            timestamp = ""
        if not isinstance(timestamp, str):
            raise PackageFormatError("timestamp must be a string")
        raw_calibrations = data.get("calibrations")
        if raw_calibrations is None:
            raw_calibrations = []
        if not isinstance(raw_calibrations, list):
            raise PackageFormatError("calibrations must be a list")
        return cls(
            timestamp=timestamp,
            output_target=_output_target(data.get("outputTarget", 0)),
            calibrations=tuple(CameraCalibration.from_dict(item) for item in raw_calibrations),
        )

    @classmethod
    def from_json(cls, text: str) -> "CalibrationPackage":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PackageFormatError(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data)


def highest_virtual_display(calibrations: Iterable[CameraCalibration]) -> int:
    return max((calibration.virtual_display for calibration in calibrations), default=NO_DISPLAY)


def merge_calibrations(
    source: Iterable[CameraCalibration],
    target: Iterable[CameraCalibration],
) -> Tuple[CameraCalibration, ...]:
    """Replace entries of ``target`` by the same-named entries of ``source``.

    Order and membership follow ``target``; unmatched source entries are dropped.
    """
    by_name = {calibration.name: calibration for calibration in source}
    return tuple(by_name.get(calibration.name, calibration) for calibration in target)


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PackageFormatError(f"{key} must be a number")
    return float(value)


def _boolean(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise PackageFormatError(f"{key} must be true or false")
    return value


def _integer(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise PackageFormatError(f"{key} must be an integer")
    return value


def _output_target(value: Any) -> OutputTarget:
    try:
        return OutputTarget(_integer(value, "outputTarget"))
    except ValueError as exc:
        if isinstance(exc, PackageFormatError):
            raise
        raise PackageFormatError(f"unknown outputTarget {value!r}") from exc
