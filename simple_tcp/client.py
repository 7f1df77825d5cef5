"""Dialing endpoint used by the operator side of a connection."""
from __future__ import annotations

import logging
import socket
from typing import Callable, Optional

from .endpoint import SimpleTcpEndpoint

DEFAULT_CONNECT_TIMEOUT = 2.0

ConnectFn = Callable[[tuple, float], socket.socket]

_LOGGER = logging.getLogger("CAVE.Calibration.Transport")


class SimpleTcpClient(SimpleTcpEndpoint):
    """Single-shot dialer; one instance serves one connection attempt."""

    def __init__(
        self,
        *,
        closed_message_type: Optional[int] = None,
        connect: Optional[ConnectFn] = None,
        name: str = "SimpleTcpClient",
    ) -> None:
        super().__init__(closed_message_type=closed_message_type, name=name)
        self._connect = connect or socket.create_connection
        self._used = False

    def connect(self, host: str, port: int, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> bool:
        """Dial once; returns ``False`` on failure and never retries."""
        if self._used:
            raise RuntimeError("SimpleTcpClient instances cannot be reused; create a new one per connection")
        self._used = True
        try:
            sock = self._connect((host, port), timeout)
        except OSError as exc:
            _LOGGER.warning("Connect failed to %s:%s: %s", host, port, exc)
            return False
        self._attach(sock)
        self._start_worker(self._read_loop)
        _LOGGER.info("Connected to calibration server %s:%s", host, port)
        return True

    def _read_loop(self) -> None:
        try:
            while not self._stop_event.is_set() and self._receive_one():
                pass
        finally:
            # Sends now report failure instead of writing into a dead socket.
            self._detach()
