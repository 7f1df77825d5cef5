"""Operator side of the calibration sync protocol."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from calibration.messages import DEFAULT_PORT, LOCALHOST, NO_DISPLAY, MessageType, describe
from calibration.package import CalibrationPackage, CameraCalibration, PackageFormatError
from calibration.persistence import load_package, save_package
from calibration.status import ConnectionEvent, ConnectionStatus, advance
from simple_tcp import DEFAULT_CONNECT_TIMEOUT, Message, PayloadError, SimpleTcpClient

from .preferences import OperatorPreferences

PathLike = Union[str, Path]
EndpointFactory = Callable[[], SimpleTcpClient]

_LOGGER = logging.getLogger("CAVE.Calibration.Operator")


class ClientEventKind(Enum):
    STATUS_CHANGED = "status_changed"
    PACKAGE_RECEIVED = "package_received"
    SHOW_HELPERS = "show_helpers"
    LOCK_CAMERAS = "lock_cameras"
    ONLY_CAMERA_DISPLAY = "only_camera_display"


@dataclass(frozen=True)
class ClientEvent:
    kind: ClientEventKind
    value: Any = None


def _default_endpoint() -> SimpleTcpClient:
    return SimpleTcpClient(closed_message_type=MessageType.DISCONNECT, name="CalibrationClient")


class OperatorClient:
    """Mirrors the runtime's calibration state and pushes edits back.

    ``show_helpers``, ``lock_cameras`` and ``single_render_display`` only
    change when the runtime echoes them; the ``send_*`` methods never update
    them locally. Call :meth:`refresh` once per UI tick.
    """

    def __init__(
        self,
        *,
        preferences: Optional[OperatorPreferences] = None,
        port: Optional[int] = None,
        endpoint_factory: Optional[EndpointFactory] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self._preferences = preferences
        if port is None:
            port = preferences.port if preferences is not None else DEFAULT_PORT
        self._port = port
        self._endpoint_factory = endpoint_factory or _default_endpoint
        self._connect_timeout = connect_timeout
        self._endpoint: Optional[SimpleTcpClient] = None
        self._status = ConnectionStatus.DISCONNECTED
        self._package = CalibrationPackage()
        self._show_helpers = False
        self._lock_cameras = False
        self._single_render_display = NO_DISPLAY

    # State ---------------------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def package(self) -> CalibrationPackage:
        return self._package

    @property
    def show_helpers(self) -> bool:
        return self._show_helpers

    @property
    def lock_cameras(self) -> bool:
        return self._lock_cameras

    @property
    def single_render_display(self) -> int:
        return self._single_render_display

    @property
    def saved_host(self) -> str:
        if self._preferences is not None and self._preferences.host:
            return self._preferences.host
        return LOCALHOST

    def has_status(self, status: ConnectionStatus) -> bool:
        return self._status.satisfies(status)

    # Connection ----------------------------------------------------------

    def local_connect(self) -> bool:
        return self.connect(LOCALHOST, save=False)

    def connect(self, host: Optional[str] = None, save: bool = False) -> bool:
        """Dial the runtime once and request a full sync on success."""
        host = (host or self.saved_host).strip()
        # Ends any previous session, cached package included.
        self.disconnect()

        endpoint = self._endpoint_factory()
        if endpoint.connect(host, self._port, self._connect_timeout):
            self._endpoint = endpoint
            self._status = advance(self._status, ConnectionEvent.DIAL_SUCCEEDED)
            self.sync()
            connected = True
        else:
            self._status = advance(self._status, ConnectionEvent.DIAL_FAILED)
            connected = False

        if save and self._preferences is not None:
            self._preferences.remember_host(host)
        return connected

    def disconnect(self) -> None:
        self._teardown()
        self._status = advance(self._status, ConnectionEvent.DISCONNECTED)
        self._package = CalibrationPackage()

    def refresh(self) -> List[ClientEvent]:
        """Apply every queued runtime message; returns what changed."""
        endpoint = self._endpoint
        if endpoint is None or not self._status.is_connected:
            return []
        events: List[ClientEvent] = []
        while self._status.is_connected:
            message = endpoint.poll()
            if message is None:
                break
            event = self._execute(message)
            if event is not None:
                events.append(event)
        return events

    # Outbound ------------------------------------------------------------

    def sync(self) -> bool:
        return self._send(Message(MessageType.SYNC))

    def send_package(self, package: Optional[CalibrationPackage] = None) -> bool:
        if self._status is not ConnectionStatus.INITIALIZED:
            _LOGGER.warning("Refusing to send a calibration package before the runtime has synced")
            return False
        package = package if package is not None else self._package
        if package.is_empty:
            _LOGGER.warning("Refusing to send a calibration package without cameras")
            return False
        return self._send(Message.from_text(MessageType.CALIBRATION, package.to_json()))

    def propose_package(self, package: CalibrationPackage) -> CalibrationPackage:
        """Install a locally edited package; the runtime sees it on :meth:`send_package`."""
        self._package = package
        return package

    def edit_calibration(self, calibration: CameraCalibration) -> CalibrationPackage:
        return self.propose_package(self._package.with_calibration(calibration))

    def send_show_helpers(self, value: bool) -> bool:
        return self._send(Message.from_bool(MessageType.SHOW_HELPERS, value))

    def send_lock_cameras(self, value: bool) -> bool:
        return self._send(Message.from_bool(MessageType.LOCK_CAMERAS, value))

    def send_single_render_display(self, display: int) -> bool:
        return self._send(Message.from_int(MessageType.ONLY_CAMERA_DISPLAY, display))

    # Files ---------------------------------------------------------------

    def load(self, file: Optional[PathLike]) -> CalibrationPackage:
        """Overwrite cached calibrations with same-named ones from ``file``.

        Raises ``OSError`` or ``PackageFormatError`` when the file is unusable.
        """
        if not file:
            return self._package
        source = load_package(Path(file))
        self._package = self._package.merged_from(source)
        if self._preferences is not None:
            self._preferences.remember_folder_of(Path(file))
        return self._package

    def save(self, file: Optional[PathLike]) -> None:
        if not file:
            return
        save_package(self._package, Path(file))
        if self._preferences is not None:
            self._preferences.remember_folder_of(Path(file))

    # Internal helpers ----------------------------------------------------

    def _send(self, message: Message) -> bool:
        endpoint = self._endpoint
        if endpoint is None:
            return False
        return endpoint.send_message(message)

    def _teardown(self) -> None:
        endpoint = self._endpoint
        self._endpoint = None
        if endpoint is not None:
            endpoint.stop()

    def _execute(self, message: Message) -> Optional[ClientEvent]:
        try:
            if message.type == MessageType.DISCONNECT:
                self.disconnect()
                return ClientEvent(ClientEventKind.STATUS_CHANGED, self._status)
            if message.type == MessageType.CALIBRATION:
                return self._receive_package(message)
            if message.type == MessageType.SHOW_HELPERS:
                self._show_helpers = message.as_bool()
                return ClientEvent(ClientEventKind.SHOW_HELPERS, self._show_helpers)
            if message.type == MessageType.LOCK_CAMERAS:
                self._lock_cameras = message.as_bool()
                return ClientEvent(ClientEventKind.LOCK_CAMERAS, self._lock_cameras)
            if message.type == MessageType.ONLY_CAMERA_DISPLAY:
                self._single_render_display = message.as_int()
                return ClientEvent(ClientEventKind.ONLY_CAMERA_DISPLAY, self._single_render_display)
        except PayloadError as exc:
            _LOGGER.warning("Dropped %s message with bad payload: %s", describe(message.type), exc)
            return None
        _LOGGER.warning("Received unknown calibration message: %s", message.type)
        return None

    def _receive_package(self, message: Message) -> Optional[ClientEvent]:
        try:
            package = CalibrationPackage.from_json(message.as_text())
        except PackageFormatError as exc:
            _LOGGER.warning("Ignored malformed calibration package from runtime: %s", exc)
            return None
        self._package = package
        self._status = advance(self._status, ConnectionEvent.PACKAGE_RECEIVED)
        return ClientEvent(ClientEventKind.PACKAGE_RECEIVED, package)
