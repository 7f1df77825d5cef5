"""Listening endpoint that serves exactly one client at a time."""
from __future__ import annotations

import logging
import selectors
import socket
from typing import Optional

from .endpoint import POLL_INTERVAL, SimpleTcpEndpoint

_LOGGER = logging.getLogger("CAVE.Calibration.Transport")

_LISTENER = "listener"
_CLIENT = "client"


class SimpleTcpServer(SimpleTcpEndpoint):
    """Accepts one client, reads its frames, then waits for the next one.

    Pending connections are polled every ``POLL_INTERVAL`` seconds so that
    ``stop()`` is observed promptly. A second client dialing in while one is
    being served is accepted and closed immediately.
    """

    def __init__(self, *, closed_message_type: Optional[int] = None, name: str = "SimpleTcpServer") -> None:
        super().__init__(closed_message_type=closed_message_type, name=name)
        self._listener: Optional[socket.socket] = None
        self.host: Optional[str] = None
        self.port: Optional[int] = None

    def listen(self, port: int, host: str = "127.0.0.1") -> bool:
        if self._listener is not None:
            return True
        try:
            listener = socket.create_server((host, port), backlog=1)
        except OSError as exc:
            _LOGGER.error("Failed to listen on %s:%s (%s)", host, port, exc)
            return False
        listener.settimeout(POLL_INTERVAL)
        self._listener = listener
        self.host = host
        self.port = listener.getsockname()[1]
        self._start_worker(self._accept_loop)
        _LOGGER.info("Calibration server listening on %s:%s", self.host, self.port)
        return True

    def is_listening(self) -> bool:
        return self._listener is not None

    # Internal helpers -----------------------------------------------------

    def _release(self) -> None:
        listener = self._listener
        self._listener = None
        if listener is None:
            return
        try:
            listener.close()
        except OSError as exc:
            _LOGGER.debug("Error closing listener: %s", exc)
        _LOGGER.info("Calibration server on %s:%s stopped", self.host, self.port)

    def _accept_loop(self) -> None:
        listener = self._listener
        if listener is None:
            return
        while not self._stop_event.is_set():
            try:
                conn, peer = listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if not self._stop_event.is_set():
                    _LOGGER.warning("Calibration server stopped accepting connections: %s", exc)
                return
            self._attach(conn)
            _LOGGER.info("Calibration operator connected from %s:%s", *peer[:2])
            try:
                self._serve_client(listener, conn)
            finally:
                self._detach()
            _LOGGER.info("Calibration operator %s:%s disconnected", *peer[:2])

    def _serve_client(self, listener: socket.socket, conn: socket.socket) -> None:
        with selectors.DefaultSelector() as selector:
            selector.register(listener, selectors.EVENT_READ, _LISTENER)
            selector.register(conn, selectors.EVENT_READ, _CLIENT)
            while not self._stop_event.is_set():
                for key, _events in selector.select(timeout=POLL_INTERVAL):
                    if key.data == _LISTENER:
                        self._refuse_pending(listener)
                    elif not self._receive_one():
                        return

    @staticmethod
    def _refuse_pending(listener: socket.socket) -> None:
        try:
            extra, peer = listener.accept()
        except OSError:
            return
        _LOGGER.warning("Refused calibration connection from %s:%s; an operator is already connected", *peer[:2])
        extra.close()
