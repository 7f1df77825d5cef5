"""Length-prefixed frame codec shared by both ends of a connection.

Each frame is ``[type:int32][length:int32][payload]`` in little-endian byte
order. There is no checksum; integrity relies on the stream transport.
"""
from __future__ import annotations

import struct
from typing import BinaryIO

from .message import Message

HEADER_FORMAT = "<ii"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 8 bytes
MAX_FRAME_SIZE = 16 * 1024 * 1024


class StreamClosed(ConnectionError):
    """The stream ended before a complete frame could be read."""


class FrameError(ValueError):
    """A frame header was structurally invalid."""


def encode_frame(message_type: int, payload: bytes = b"") -> bytes:
    if len(payload) > MAX_FRAME_SIZE:
        raise FrameError(f"Payload of {len(payload)} bytes exceeds {MAX_FRAME_SIZE} bytes")
    try:
        header = struct.pack(HEADER_FORMAT, message_type, len(payload))
    except struct.error as exc:
        raise FrameError(f"Cannot encode frame header for type {message_type}: {exc}") from exc
    return header + payload


def write_message(stream: BinaryIO, message_type: int, payload: bytes = b"") -> None:
    """Write one frame with a single call and flush it."""
    stream.write(encode_frame(message_type, payload))
    stream.flush()


def read_message(stream: BinaryIO) -> Message:
    """Block until one full frame is available and return it."""
    header = _read_exact(stream, HEADER_SIZE)
    message_type, length = struct.unpack(HEADER_FORMAT, header)
    if length < 0:
        raise FrameError(f"Negative payload length {length} for message type {message_type}")
    if length > MAX_FRAME_SIZE:
        raise FrameError(f"Payload length {length} for message type {message_type} exceeds {MAX_FRAME_SIZE} bytes")
    payload = _read_exact(stream, length) if length else b""
    return Message(message_type, payload)


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        try:
            chunk = stream.read(remaining)
        except (OSError, ValueError) as exc:
            # ValueError: the file object was closed underneath us
            raise StreamClosed(str(exc) or "stream closed") from exc
        if not chunk:
            raise StreamClosed(f"stream closed with {size - remaining}/{size} bytes read")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)
