"""Boundary between the calibrator and the live projection environment."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Protocol, Sequence, Tuple

from calibration.messages import NO_DISPLAY
from calibration.package import CalibrationPackage, CameraCalibration, OutputTarget, merge_calibrations

SCREEN_NAMES = ("Front", "Left", "Right", "Floor", "Ceiling", "Back")


class CalibrationEnvironment(Protocol):
    """Hooks the runtime calibrator needs from the rendering environment."""

    @property
    def output_target(self) -> OutputTarget: ...

    @property
    def lock_cameras(self) -> bool: ...

    def collect_calibrations(self) -> Sequence[CameraCalibration]: ...

    def apply_package(self, package: CalibrationPackage) -> None: ...

    def set_lock_cameras(self, locked: bool) -> bool: ...

    def set_helpers_visible(self, visible: bool) -> bool: ...

    def render_single_display(self, display: int) -> int: ...


@dataclass
class InMemoryEnvironment:
    """Headless environment keeping camera calibrations in memory.

    Used by the runtime host command and by tests; a rendering engine would
    provide its own implementation of :class:`CalibrationEnvironment`.
    """

    cameras: List[CameraCalibration] = field(default_factory=list)
    output_target: OutputTarget = OutputTarget.DISPLAY
    lock_cameras: bool = False
    locked_to_center: bool = False
    helpers_visible: bool = False
    single_display: int = NO_DISPLAY

    @classmethod
    def with_cameras(cls, count: int, output_target: OutputTarget = OutputTarget.DISPLAY) -> "InMemoryEnvironment":
        names = [SCREEN_NAMES[i] if i < len(SCREEN_NAMES) else f"Camera {i}" for i in range(max(0, count))]
        environment = cls(cameras=[CameraCalibration(name=name) for name in names])
        environment.set_output_target(output_target, keep_virtual_displays=False)
        return environment

    def collect_calibrations(self) -> Tuple[CameraCalibration, ...]:
        return tuple(self.cameras)

    def apply_package(self, package: CalibrationPackage) -> None:
        self.cameras = list(merge_calibrations(package.calibrations, self.cameras))
        self.set_output_target(package.output_target)

    def set_output_target(self, output_target: OutputTarget, keep_virtual_displays: bool = True) -> None:
        if not self.cameras:
            self.output_target = OutputTarget(output_target)
            return
        viewport_size = 1.0 / len(self.cameras)  # only used by split viewports
        self.cameras = [
            replace(
                camera,
                output_target=OutputTarget(output_target),
                viewport_size=viewport_size,
                virtual_display=camera.virtual_display if keep_virtual_displays else index,
            )
            for index, camera in enumerate(self.cameras)
        ]
        self.output_target = OutputTarget(output_target)

    def set_lock_cameras(self, locked: bool) -> bool:
        self.lock_cameras = bool(locked)
        if self.lock_cameras:
            self.lock_cameras_to_center()
        return self.lock_cameras

    def lock_cameras_to_center(self) -> None:
        self.lock_cameras = True
        self.locked_to_center = True

    def set_helpers_visible(self, visible: bool) -> bool:
        self.helpers_visible = bool(visible)
        return self.helpers_visible

    def render_single_display(self, display: int) -> int:
        displays = {camera.virtual_display for camera in self.cameras}
        self.single_display = display if display in displays else NO_DISPLAY
        return self.single_display

    def enabled_cameras(self) -> List[str]:
        if self.single_display == NO_DISPLAY:
            return [camera.name for camera in self.cameras]
        return [camera.name for camera in self.cameras if camera.virtual_display == self.single_display]
