"""Runtime side of the calibration sync protocol."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional

from calibration.messages import DEFAULT_PORT, LOCALHOST, NO_DISPLAY, MessageType, describe
from calibration.package import CalibrationPackage, PackageFormatError
from calibration.persistence import calibration_file_path, try_load_from_disk, write_raw
from simple_tcp import Message, PayloadError, SimpleTcpServer
from version import resolve_build_id

from .environment import CalibrationEnvironment

_LOGGER = logging.getLogger("CAVE.Calibration.Runtime")


class RestoreStatus(Enum):
    RESTORED = "restored"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RestoreResult:
    status: RestoreStatus
    package: Optional[CalibrationPackage] = None

    @property
    def restored(self) -> bool:
        return self.status is RestoreStatus.RESTORED


class RuntimeCalibrator:
    """Serves the live calibration to one operator and applies its edits.

    All protocol handling happens in :meth:`tick`, which must be called from
    the thread that owns the environment (typically once per frame).
    """

    def __init__(
        self,
        environment: CalibrationEnvironment,
        *,
        port: int = DEFAULT_PORT,
        host: str = LOCALHOST,
        build_id: Optional[str] = None,
        data_dir: Optional[Path] = None,
        server: Optional[SimpleTcpServer] = None,
    ) -> None:
        self._environment = environment
        self._port = port
        self._host = host
        self._build_id = resolve_build_id(build_id)
        self._data_dir = data_dir
        self._server = server or SimpleTcpServer(name="CalibrationServer")
        self._show_helpers = False
        self._only_camera_display = environment.render_single_display(NO_DISPLAY)
        self._handlers: Dict[int, Callable[[Message], None]] = {
            MessageType.CALIBRATION: self._handle_calibration,
            MessageType.SYNC: self._handle_sync,
            MessageType.SHOW_HELPERS: self._handle_show_helpers,
            MessageType.LOCK_CAMERAS: self._handle_lock_cameras,
            MessageType.ONLY_CAMERA_DISPLAY: self._handle_only_camera_display,
        }

    # Public API -----------------------------------------------------------

    @property
    def build_id(self) -> str:
        return self._build_id

    @property
    def port(self) -> Optional[int]:
        return self._server.port

    @property
    def show_helpers(self) -> bool:
        return self._show_helpers

    @property
    def only_camera_display(self) -> int:
        return self._only_camera_display

    @property
    def calibration_path(self) -> Path:
        return calibration_file_path(self._build_id, self._data_dir)

    def has_operator(self) -> bool:
        return self._server.is_connected()

    def start(self, *, interactive: bool = False) -> bool:
        """Listen for an operator and, when deployed, restore the last calibration.

        Returns ``False`` if the port could not be bound; the runtime keeps
        running with whatever configuration it has.
        """
        listening = self._server.listen(self._port, self._host)
        if not listening:
            _LOGGER.error("Failed to listen on port %s; remote calibration unavailable", self._port)
        if not interactive:
            self.restore_from_disk()
        return listening

    def restore_from_disk(self) -> RestoreResult:
        package = try_load_from_disk(self._build_id, self._data_dir)
        if package is None:
            _LOGGER.info("No stored calibration for build %s; using default configuration", self._build_id)
            return RestoreResult(RestoreStatus.NOT_FOUND)
        self._environment.apply_package(package)
        _LOGGER.info("Restored %d camera calibration(s) for build %s", len(package.calibrations), self._build_id)
        return RestoreResult(RestoreStatus.RESTORED, package)

    def tick(self) -> int:
        """Handle every queued message in arrival order; never blocks."""
        handled = 0
        while True:
            message = self._server.poll()
            if message is None:
                return handled
            handled += 1
            try:
                self._execute(message)
            except Exception:
                _LOGGER.exception("Calibration message %s handler failed", describe(message.type))

    def snapshot_package(self) -> CalibrationPackage:
        return CalibrationPackage.capture(
            self._environment.output_target,
            self._environment.collect_calibrations(),
        )

    def stop(self) -> None:
        self._server.send_message(Message(MessageType.DISCONNECT))
        self._server.stop()

    # Message handling -----------------------------------------------------

    def _execute(self, message: Message) -> None:
        handler = self._handlers.get(message.type)
        if handler is None:
            _LOGGER.warning("Received unknown calibration message: %s", message.type)
            return
        try:
            handler(message)
        except PayloadError as exc:
            _LOGGER.warning("Dropped %s message with bad payload: %s", describe(message.type), exc)

    def _handle_calibration(self, message: Message) -> None:
        text = message.as_text()
        try:
            package = CalibrationPackage.from_json(text)
        except PackageFormatError as exc:
            _LOGGER.error("Rejected calibration package: %s", exc)
            return
        if package.is_empty:
            _LOGGER.warning("Rejected calibration package without cameras")
            return
        self._environment.apply_package(package)
        try:
            write_raw(text, self.calibration_path)
        except OSError as exc:
            _LOGGER.error("Failed to write calibration to disk: %s", exc)
        # Echo the canonical state so the operator sees any normalization.
        self._handle_sync(message)

    def _handle_sync(self, _message: Message) -> None:
        package = self.snapshot_package()
        self._server.send_message(Message.from_text(MessageType.CALIBRATION, package.to_json()))
        self._server.send_message(Message.from_bool(MessageType.SHOW_HELPERS, self._show_helpers))
        self._server.send_message(Message.from_bool(MessageType.LOCK_CAMERAS, self._environment.lock_cameras))
        self._server.send_message(Message.from_int(MessageType.ONLY_CAMERA_DISPLAY, self._only_camera_display))

    def _handle_show_helpers(self, message: Message) -> None:
        self._show_helpers = self._environment.set_helpers_visible(message.as_bool())
        self._server.send_message(Message.from_bool(MessageType.SHOW_HELPERS, self._show_helpers))

    def _handle_lock_cameras(self, message: Message) -> None:
        locked = self._environment.set_lock_cameras(message.as_bool())
        self._server.send_message(Message.from_bool(MessageType.LOCK_CAMERAS, locked))

    def _handle_only_camera_display(self, message: Message) -> None:
        self._only_camera_display = self._environment.render_single_display(message.as_int())
        self._server.send_message(Message.from_int(MessageType.ONLY_CAMERA_DISPLAY, self._only_camera_display))
