import io

import pytest

from srnetsim.emulator import Config, Emulator, Statistics
from srnetsim.packets import Entity, Message, Packet
from srnetsim.sr import (
    NOT_IN_USE,
    RTT,
    SEQ_SPACE,
    WINDOW_SIZE,
    Receiver,
    Sender,
    compute_checksum,
    is_corrupted,
)


class FakeNetwork:
    def __init__(self):
        self.config = Config(trace=0)
        self.stats = Statistics()
        self.out = io.StringIO()
        self.sent = []
        self.delivered = []
        self.timer = None
        self.timer_starts = []

    def start_timer(self, entity, increment):
        self.timer_starts.append((entity, increment))
        if self.timer is not None:
            return False
        self.timer = increment
        return True

    def stop_timer(self, entity):
        running = self.timer is not None
        self.timer = None
        return running

    def to_layer3(self, entity, packet):
        self.sent.append((entity, packet.copy()))

    def to_layer5(self, entity, data):
        self.delivered.append((entity, data))


def ack(acknum):
    packet = Packet(seqnum=0, acknum=acknum, payload=b"0" * 20)
    packet.checksum = compute_checksum(packet)
    return packet


def data_packet(seqnum, letter="a"):
    packet = Packet(seqnum=seqnum, acknum=NOT_IN_USE, payload=letter.encode() * 20)
    packet.checksum = compute_checksum(packet)
    return packet


def test_checksum_detects_payload_corruption():
    packet = data_packet(3)
    assert not is_corrupted(packet)
    packet.payload = b"Z" + packet.payload[1:]
    assert is_corrupted(packet)


def test_checksum_detects_header_corruption():
    packet = data_packet(2)
    packet.seqnum = 999999
    assert is_corrupted(packet)
    other = data_packet(2)
    other.acknum = 999999
    assert is_corrupted(other)


def test_sender_output_sends_and_starts_timer():
    net = FakeNetwork()
    sender = Sender(net)
    sender.output(Message.from_letter("a"))
    assert len(net.sent) == 1
    entity, packet = net.sent[0]
    assert entity == Entity.A
    assert packet.seqnum == 0
    assert packet.acknum == NOT_IN_USE
    assert not is_corrupted(packet)
    assert net.timer_starts == [(Entity.A, RTT)]


def test_sender_timer_started_only_for_first_packet():
    net = FakeNetwork()
    sender = Sender(net)
    for letter in "abc":
        sender.output(Message.from_letter(letter))
    assert len(net.timer_starts) == 1
    assert [p.seqnum for _, p in net.sent] == [0, 1, 2]


def test_sender_window_full_drops_message():
    net = FakeNetwork()
    sender = Sender(net)
    for _ in range(WINDOW_SIZE + 2):
        sender.output(Message.from_letter("x"))
    assert len(net.sent) == WINDOW_SIZE
    assert net.stats.window_full == 2


def test_sender_sequence_numbers_wrap():
    net = FakeNetwork()
    sender = Sender(net)
    for i in range(SEQ_SPACE + 1):
        sender.output(Message.from_letter("m"))
        sender.input(ack(i % SEQ_SPACE))
    assert [p.seqnum for _, p in net.sent] == [i % SEQ_SPACE for i in range(SEQ_SPACE + 1)]
    assert net.stats.new_acks == SEQ_SPACE + 1


def test_sender_in_order_ack_empties_window_and_stops_timer():
    net = FakeNetwork()
    sender = Sender(net)
    sender.output(Message.from_letter("a"))
    sender.input(ack(0))
    assert sender.window == []
    assert net.timer is None
    assert net.stats.new_acks == 1
    assert net.stats.total_acks_received == 1


def test_sender_out_of_order_ack_keeps_window():
    net = FakeNetwork()
    sender = Sender(net)
    sender.output(Message.from_letter("a"))
    sender.output(Message.from_letter("b"))
    sender.input(ack(1))
    assert len(sender.window) == 2
    assert net.timer == RTT
    sender.input(ack(0))
    assert sender.window == []
    assert net.stats.new_acks == 2


def test_sender_duplicate_ack_is_ignored():
    net = FakeNetwork()
    sender = Sender(net)
    sender.output(Message.from_letter("a"))
    sender.output(Message.from_letter("b"))
    sender.input(ack(1))
    sender.input(ack(1))
    assert net.stats.new_acks == 1
    assert net.stats.total_acks_received == 2


def test_sender_corrupted_ack_is_ignored():
    net = FakeNetwork()
    sender = Sender(net)
    sender.output(Message.from_letter("a"))
    bad = ack(0)
    bad.acknum = 999999
    sender.input(bad)
    assert net.stats.total_acks_received == 0
    assert len(sender.window) == 1


def test_sender_timeout_resends_only_unacked():
    net = FakeNetwork()
    sender = Sender(net)
    for letter in "abc":
        sender.output(Message.from_letter(letter))
    sender.input(ack(1))
    net.sent.clear()
    net.timer = None
    sender.timer_interrupt()
    assert [p.seqnum for _, p in net.sent] == [0, 2]
    assert net.stats.packets_resent == 2
    assert net.timer == RTT


def test_receiver_in_order_delivery_and_ack():
    net = FakeNetwork()
    receiver = Receiver(net)
    receiver.input(data_packet(0, "a"))
    assert net.delivered == [(Entity.B, b"a" * 20)]
    entity, reply = net.sent[0]
    assert entity == Entity.B
    assert reply.acknum == 0
    assert reply.seqnum == 1
    assert not is_corrupted(reply)
    assert net.stats.packets_received == 1


def test_receiver_buffers_out_of_order():
    net = FakeNetwork()
    receiver = Receiver(net)
    receiver.input(data_packet(1, "b"))
    assert net.delivered == []
    assert net.sent[-1][1].acknum == 1
    receiver.input(data_packet(0, "a"))
    assert net.delivered == [(Entity.B, b"a" * 20), (Entity.B, b"b" * 20)]
    assert receiver.expected_seqnum == 2


def test_receiver_corrupted_packet_acks_previous():
    net = FakeNetwork()
    receiver = Receiver(net)
    bad = data_packet(0)
    bad.payload = b"Z" + bad.payload[1:]
    receiver.input(bad)
    assert net.delivered == []
    assert net.sent[0][1].acknum == SEQ_SPACE - 1
    assert net.stats.packets_received == 0


def test_receiver_duplicate_packet_reacked_not_redelivered():
    net = FakeNetwork()
    receiver = Receiver(net)
    receiver.input(data_packet(2, "c"))
    receiver.input(data_packet(2, "c"))
    assert net.stats.packets_received == 1
    assert [p.acknum for _, p in net.sent] == [2, 2]
    assert [p.seqnum for _, p in net.sent] == [1, 2]


def test_receiver_output_and_timer_do_nothing():
    net = FakeNetwork()
    receiver = Receiver(net)
    receiver.output(Message.from_letter("a"))
    receiver.timer_interrupt()
    assert net.sent == []
    assert net.delivered == []


def test_full_run_without_loss_delivers_in_order():
    config = Config(num_messages=5, mean_interval=1000.0, trace=0)
    emulator = Emulator(config, out=io.StringIO())
    stats = emulator.run(Sender(emulator), Receiver(emulator))
    assert emulator.delivered == [
        (Entity.B, Message.from_letter(c).data) for c in "abcde"
    ]
    assert stats.messages_delivered == 5
    assert stats.window_full == 0
    assert stats.new_acks == 5


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_full_run_counts_are_consistent(seed):
    config = Config(num_messages=10, mean_interval=5.0, trace=0, seed=seed)
    emulator = Emulator(config, out=io.StringIO())
    stats = emulator.run(Sender(emulator), Receiver(emulator))
    assert stats.messages_delivered + stats.window_full == 10
    assert stats.new_acks == stats.messages_delivered