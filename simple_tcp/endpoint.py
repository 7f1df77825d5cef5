"""Shared plumbing for the one-connection TCP endpoints."""
from __future__ import annotations

import logging
import queue
import socket
import threading
from typing import BinaryIO, List, Optional

from .framing import FrameError, StreamClosed, read_message, write_message
from .message import Message

POLL_INTERVAL = 0.02
JOIN_TIMEOUT = 2.0

_LOGGER = logging.getLogger("CAVE.Calibration.Transport")


class SimpleTcpEndpoint:
    """Bridges a blocking framed socket to a non-blocking, poll-friendly queue.

    A single background worker reads frames and deposits them in
    ``message_queue``; the owning driver drains the queue once per tick from
    its own thread. ``send_message`` may be called from any thread.

    When ``closed_message_type`` is set, a message of that type is enqueued
    after the last received frame whenever the peer closes the stream, so the
    consumer observes the disconnect in arrival order.
    """

    def __init__(self, *, closed_message_type: Optional[int] = None, name: str = "SimpleTcp") -> None:
        self.message_queue: "queue.SimpleQueue[Message]" = queue.SimpleQueue()
        self._closed_message_type = closed_message_type
        self._name = name
        self._stop_event = threading.Event()
        self._send_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._sock: Optional[socket.socket] = None
        self._reader: Optional[BinaryIO] = None
        self._writer: Optional[BinaryIO] = None

    # Public API -----------------------------------------------------------

    def is_connected(self) -> bool:
        return self._writer is not None

    def send_message(self, message: Message) -> bool:
        """Write one frame; returns ``False`` when no stream is open."""
        with self._send_lock:
            writer = self._writer
            if writer is None:
                return False
            try:
                write_message(writer, message.type, message.payload)
            except (OSError, ValueError) as exc:
                _LOGGER.debug("%s send of message %s failed: %s", self._name, message.type, exc)
                return False
        return True

    def poll(self) -> Optional[Message]:
        """Return the oldest queued message without blocking, or ``None``."""
        try:
            return self.message_queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[Message]:
        messages = []
        while True:
            message = self.poll()
            if message is None:
                return messages
            messages.append(message)

    def stop(self) -> None:
        """Stop the worker, join it and release the socket. Safe to repeat."""
        self._stop_event.set()
        self._interrupt()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=JOIN_TIMEOUT)
            if thread.is_alive():
                _LOGGER.warning("%s worker did not exit cleanly within %.1fs", self._name, JOIN_TIMEOUT)
        self._thread = None
        self._detach()
        self._release()

    # Worker helpers -------------------------------------------------------

    def _start_worker(self, target) -> None:
        self._stop_event.clear()
        thread = threading.Thread(target=target, name=f"{self._name}-Worker", daemon=True)
        self._thread = thread
        thread.start()

    def _attach(self, sock: socket.socket) -> None:
        sock.settimeout(None)
        with self._send_lock:
            self._sock = sock
            self._reader = sock.makefile("rb", buffering=0)
            self._writer = sock.makefile("wb")

    def _detach(self) -> None:
        with self._send_lock:
            sock, reader, writer = self._sock, self._reader, self._writer
            self._sock = None
            self._reader = None
            self._writer = None
        for handle in (writer, reader, sock):
            if handle is None:
                continue
            try:
                handle.close()
            except OSError as exc:
                _LOGGER.debug("%s error while closing %r: %s", self._name, handle, exc)

    def _interrupt(self) -> None:
        sock = self._sock
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # already disconnected
            pass

    def _release(self) -> None:
        """Hook for subclasses owning extra resources (e.g. a listener)."""

    def _receive_one(self) -> bool:
        """Read and enqueue one frame; ``False`` ends the connection."""
        reader = self._reader
        if reader is None:
            return False
        try:
            message = read_message(reader)
        except StreamClosed as exc:
            if not self._stop_event.is_set():
                _LOGGER.debug("%s stream closed by peer: %s", self._name, exc)
                if self._closed_message_type is not None:
                    self.message_queue.put(Message(self._closed_message_type))
            return False
        except FrameError as exc:
            _LOGGER.warning("%s dropped connection after malformed frame: %s", self._name, exc)
            if self._closed_message_type is not None:
                self.message_queue.put(Message(self._closed_message_type))
            return False
        self.message_queue.put(message)
        return True
