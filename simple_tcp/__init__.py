"""Framed message transport over a single TCP stream."""

from .client import DEFAULT_CONNECT_TIMEOUT, SimpleTcpClient
from .endpoint import POLL_INTERVAL, SimpleTcpEndpoint
from .framing import MAX_FRAME_SIZE, FrameError, StreamClosed, encode_frame, read_message, write_message
from .message import Message, PayloadError
from .server import SimpleTcpServer

__all__ = [
    "DEFAULT_CONNECT_TIMEOUT",
    "FrameError",
    "MAX_FRAME_SIZE",
    "Message",
    "PayloadError",
    "POLL_INTERVAL",
    "SimpleTcpClient",
    "SimpleTcpEndpoint",
    "SimpleTcpServer",
    "StreamClosed",
    "encode_frame",
    "read_message",
    "write_message",
]
