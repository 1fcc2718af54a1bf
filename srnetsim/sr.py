"""Selective-repeat sender and receiver running on top of the emulator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TextIO

from .emulator import Config, Statistics
from .packets import PAYLOAD_SIZE, Entity, Message, Packet

RTT = 16.0
WINDOW_SIZE = 6
SEQ_SPACE = 7
NOT_IN_USE = -1

_ACK_PAYLOAD = b"0" * PAYLOAD_SIZE


class Network(Protocol):
    config: Config
    stats: Statistics
    out: TextIO

    def start_timer(self, entity: Entity, increment: float) -> bool: ...

    def stop_timer(self, entity: Entity) -> bool: ...

    def to_layer3(self, entity: Entity, packet: Packet) -> None: ...

    def to_layer5(self, entity: Entity, data: bytes) -> None: ...


def compute_checksum(packet: Packet) -> int:
    """Sum of the sequence number, the acknowledgement number and the payload bytes."""
    return packet.seqnum + packet.acknum + sum(packet.payload)


def is_corrupted(packet: Packet) -> bool:
    """Return True if the stored checksum does not match the packet's contents."""
    return packet.checksum != compute_checksum(packet)


def _make_packet(seqnum: int, acknum: int, payload: bytes) -> Packet:
    packet = Packet(seqnum=seqnum, acknum=acknum, payload=payload)
    packet.checksum = compute_checksum(packet)
    return packet


@dataclass
class _Slot:
    packet: Packet
    acked: bool = False


class Sender:
    """Host A: buffers up to a window of packets and acknowledges them one by one."""

    def __init__(self, network: Network) -> None:
        self.network = network
        self.window: list[_Slot] = []
        self.next_seqnum = 0

    def _trace(self, level: int, text: str) -> None:
        if self.network.config.trace > level:
            self.network.out.write(text)

    def output(self, message: Message) -> None:
        """Send a new message, or count it as dropped if the window is full."""
        if len(self.window) >= WINDOW_SIZE:
            self._trace(0, "----A: New message arrives, send window is full\n")
            self.network.stats.window_full += 1
            return

        self._trace(
            1,
            "----A: New message arrives, send window is not full, "
            "send new messge to layer3!\n",
        )
        packet = _make_packet(self.next_seqnum, NOT_IN_USE, message.data)
        self.window.append(_Slot(packet))
        self._trace(0, f"Sending packet {packet.seqnum} to layer 3\n")
        self.network.to_layer3(Entity.A, packet)

        if len(self.window) == 1:
            self.network.start_timer(Entity.A, RTT)

        self.next_seqnum = (self.next_seqnum + 1) % SEQ_SPACE

    def input(self, packet: Packet) -> None:
        """Handle an acknowledgement arriving from the receiver."""
        if is_corrupted(packet):
            self._trace(0, "----A: corrupted ACK is received, do nothing!\n")
            return

        self._trace(0, f"----A: uncorrupted ACK {packet.acknum} is received\n")
        stats = self.network.stats
        stats.total_acks_received += 1

        slot = next(
            (s for s in self.window if s.packet.seqnum == packet.acknum), None
        )
        if slot is None:
            return
        if slot.acked:
            self._trace(0, "----A: duplicate ACK received, do nothing!\n")
            return

        self._trace(0, f"----A: ACK {packet.acknum} is not a duplicate\n")
        stats.new_acks += 1
        slot.acked = True

        self.network.stop_timer(Entity.A)
        while self.window and self.window[0].acked:
            self.window.pop(0)
        if self.window:
            self.network.start_timer(Entity.A, RTT)

    def timer_interrupt(self) -> None:
        """Resend every unacknowledged packet in the window and restart the timer."""
        self._trace(0, "----A: time out, resend all unACKed packets in buffer\n")
        for slot in self.window:
            if not slot.acked:
                self.network.out.write(f"---A: resending packet {slot.packet.seqnum}\n")
                self.network.to_layer3(Entity.A, slot.packet)
                self.network.stats.packets_resent += 1
        self.network.start_timer(Entity.A, RTT)


class Receiver:
    """Host B: buffers packets that arrive out of order and delivers them in order."""

    def __init__(self, network: Network) -> None:
        self.network = network
        self.expected_seqnum = 0
        self.next_seqnum = 1
        self._buffer: dict[int, Packet] = {}

    def _trace(self, level: int, text: str) -> None:
        if self.network.config.trace > level:
            self.network.out.write(text)

    def _send_ack(self, acknum: int) -> None:
        ack = _make_packet(self.next_seqnum, acknum, _ACK_PAYLOAD)
        self.next_seqnum = (self.next_seqnum + 1) % SEQ_SPACE
        self.network.to_layer3(Entity.B, ack)

    def input(self, packet: Packet) -> None:
        """Handle a data packet arriving from the sender."""
        seq = packet.seqnum
        diff = (seq - self.expected_seqnum) % SEQ_SPACE

        if is_corrupted(packet) or diff >= WINDOW_SIZE:
            self._trace(
                0,
                "----B: packet corrupted or not expected sequence number, "
                "resend ACK!\n",
            )
            self._send_ack((self.expected_seqnum - 1) % SEQ_SPACE)
            return

        slot = seq % WINDOW_SIZE
        is_new = slot not in self._buffer
        if is_new:
            if diff == 0:
                self._trace(0, f"----B: packet {seq} is correctly received, send ACK!\n")
            else:
                self._trace(
                    0,
                    f"----B: packet {seq} correctly received but out of order, "
                    "buffered!\n",
                )
            self.network.stats.packets_received += 1
            self._buffer[slot] = packet
        else:
            self._trace(
                0, f"----B: duplicate packet {seq}, already buffered, resend ACK!\n"
            )

        self._send_ack(seq)

        if is_new:
            while (ready := self._buffer.pop(self.expected_seqnum % WINDOW_SIZE, None)):
                self.network.to_layer5(Entity.B, ready.payload)
                self.expected_seqnum = (self.expected_seqnum + 1) % SEQ_SPACE

    def output(self, message: Message) -> None:
        """The link carries data from A to B only, so B sends no messages."""

    def timer_interrupt(self) -> None:
        """B runs no timer in a one-way transfer."""