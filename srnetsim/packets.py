"""Data units exchanged between the layers of the simulated network."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum

PAYLOAD_SIZE = 20


class Entity(IntEnum):
    """One of the two hosts at the ends of the simulated link."""

    A = 0
    B = 1

    def peer(self) -> Entity:
        """Return the host at the other end of the link."""
        return Entity((self + 1) % 2)


class EventType(IntEnum):
    """Kinds of events scheduled by the emulator."""

    TIMER_INTERRUPT = 0
    FROM_LAYER5 = 1
    FROM_LAYER3 = 2


def _check_size(data: bytes, what: str) -> bytes:
    data = bytes(data)
    if len(data) != PAYLOAD_SIZE:
        raise ValueError(f"{what} must be {PAYLOAD_SIZE} bytes, got {len(data)}")
    return data


@dataclass(frozen=True)
class Message:
    """Application data handed from layer 5 to the transport layer."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _check_size(self.data, "message data"))

    @classmethod
    def from_letter(cls, letter: str) -> Message:
        """Build a message made of one letter repeated over the whole payload."""
        if not isinstance(letter, str) or len(letter) != 1:
            raise ValueError("letter must be a single character")
        return cls(letter.encode("latin-1") * PAYLOAD_SIZE)


@dataclass
class Packet:
    """Transport-layer packet carried by the simulated network."""

    seqnum: int
    acknum: int
    checksum: int = 0
    payload: bytes = field(default=bytes(PAYLOAD_SIZE))

    def __post_init__(self) -> None:
        self.payload = _check_size(self.payload, "payload")

    def copy(self) -> Packet:
        """Return an independent copy of this packet."""
        return replace(self)