"""Immutable typed messages carried by the framed transport."""
from __future__ import annotations

import struct
from dataclasses import dataclass

_BOOL_FORMAT = "<?"
_INT_FORMAT = "<i"
_INT_SIZE = struct.calcsize(_INT_FORMAT)


class PayloadError(ValueError):
    """Raised when a payload cannot be read as the requested type."""


@dataclass(frozen=True)
class Message:
    """A message tag plus its raw payload bytes."""

    type: int
    payload: bytes = b""

    def __post_init__(self) -> None:
        if not isinstance(self.payload, bytes):
            object.__setattr__(self, "payload", bytes(self.payload))

    @classmethod
    def from_bool(cls, message_type: int, value: bool) -> "Message":
        return cls(message_type, struct.pack(_BOOL_FORMAT, bool(value)))

    @classmethod
    def from_int(cls, message_type: int, value: int) -> "Message":
        try:
            payload = struct.pack(_INT_FORMAT, int(value))
        except struct.error as exc:
            raise PayloadError(f"Integer payload out of range: {value}") from exc
        return cls(message_type, payload)

    @classmethod
    def from_text(cls, message_type: int, value: str) -> "Message":
        return cls(message_type, value.encode("utf-8"))

    def as_bool(self) -> bool:
        if len(self.payload) != 1:
            raise PayloadError(f"Expected 1-byte boolean payload, got {len(self.payload)} bytes")
        return self.payload != b"\x00"

    def as_int(self) -> int:
        if len(self.payload) != _INT_SIZE:
            raise PayloadError(f"Expected {_INT_SIZE}-byte integer payload, got {len(self.payload)} bytes")
        return struct.unpack(_INT_FORMAT, self.payload)[0]

    def as_text(self) -> str:
        try:
            return self.payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise PayloadError(f"Payload is not valid UTF-8: {exc}") from exc

    def __repr__(self) -> str:
        return f"Message(type={self.type}, payload=<{len(self.payload)} bytes>)"
