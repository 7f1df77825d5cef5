"""Drives an OperatorClient from the Qt event loop for editor front-ends."""
from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from calibration.status import ConnectionStatus

from .client import ClientEvent, ClientEventKind, OperatorClient


class QtOperatorBridge(QObject):
    """Ticks the client on a QTimer and re-emits its events as Qt signals."""

    status_changed = pyqtSignal(str)
    package_received = pyqtSignal(object)
    show_helpers_changed = pyqtSignal(bool)
    lock_cameras_changed = pyqtSignal(bool)
    only_camera_display_changed = pyqtSignal(int)

    _REFRESH_INTERVAL_MS = 50

    def __init__(self, client: OperatorClient, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._client = client
        self._last_status: ConnectionStatus = client.status
        self._refresh_timer = QTimer(self)
        self._refresh_timer.setInterval(self._REFRESH_INTERVAL_MS)
        self._refresh_timer.timeout.connect(self.refresh)

    @property
    def client(self) -> OperatorClient:
        return self._client

    def start(self) -> None:
        self._refresh_timer.start()

    def stop(self) -> None:
        self._refresh_timer.stop()

    def connect_to(self, host: Optional[str] = None, save: bool = False) -> bool:
        connected = self._client.connect(host, save=save)
        self._publish_status()
        return connected

    def disconnect_from(self) -> None:
        self._client.disconnect()
        self._publish_status()

    def refresh(self) -> None:
        for event in self._client.refresh():
            self._dispatch(event)
        self._publish_status()

    def _dispatch(self, event: ClientEvent) -> None:
        if event.kind is ClientEventKind.PACKAGE_RECEIVED:
            self.package_received.emit(event.value)
        elif event.kind is ClientEventKind.SHOW_HELPERS:
            self.show_helpers_changed.emit(bool(event.value))
        elif event.kind is ClientEventKind.LOCK_CAMERAS:
            self.lock_cameras_changed.emit(bool(event.value))
        elif event.kind is ClientEventKind.ONLY_CAMERA_DISPLAY:
            self.only_camera_display_changed.emit(int(event.value))

    def _publish_status(self) -> None:
        status = self._client.status
        if status is self._last_status:
            return
        self._last_status = status
        self.status_changed.emit(status.value)
