"""Discrete-event emulator of an unreliable, order-preserving network link."""

from __future__ import annotations

import bisect
import random as _random
import sys
from dataclasses import dataclass
from typing import Iterator, Optional, Protocol, TextIO

from .packets import Entity, EventType, Message, Packet

_EVENT_NAMES = {
    EventType.TIMER_INTERRUPT: ", timerinterrupt  ",
    EventType.FROM_LAYER5: ", fromlayer5 ",
    EventType.FROM_LAYER3: ", fromlayer3 ",
}


class Endpoint(Protocol):
    def output(self, message: Message) -> None: ...

    def input(self, packet: Packet) -> None: ...

    def timer_interrupt(self) -> None: ...


@dataclass
class Config:
    """Parameters of a simulation run."""

    num_messages: int = 0
    loss_prob: float = 0.0
    corrupt_prob: float = 0.0
    corrupt_direction: int = 0
    mean_interval: float = 0.0
    trace: int = 3
    seed: int = 9999
    bidirectional: bool = False


@dataclass
class Statistics:
    """Counters updated by the emulator and by the protocol."""

    window_full: int = 0
    total_acks_received: int = 0
    packets_resent: int = 0
    new_acks: int = 0
    packets_received: int = 0
    messages_delivered: int = 0
    to_layer3: int = 0
    lost: int = 0
    corrupted: int = 0


@dataclass(eq=False)
class Event:
    """A scheduled occurrence at one of the hosts."""

    time: float
    type: EventType
    entity: Entity
    packet: Optional[Packet] = None


class EventList:
    """Events kept in order of time; a new event goes before others at the same time."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def insert(self, event: Event) -> None:
        index = bisect.bisect_left(self._events, event.time, key=lambda e: e.time)
        self._events.insert(index, event)

    def pop(self) -> Event:
        """Remove and return the earliest event; raise IndexError if empty."""
        if not self._events:
            raise IndexError("pop from empty event list")
        return self._events.pop(0)

    def find_timer(self, entity: Entity) -> Optional[Event]:
        return next(
            (
                e
                for e in self._events
                if e.type == EventType.TIMER_INTERRUPT and e.entity == entity
            ),
            None,
        )

    def remove(self, event: Event) -> None:
        for index, candidate in enumerate(self._events):
            if candidate is event:
                del self._events[index]
                return
        raise ValueError("event is not in the list")

    def last_arrival_time(self, entity: Entity) -> Optional[float]:
        """Time of the last packet in flight towards ``entity``, if any."""
        last = None
        for event in self._events:
            if event.type == EventType.FROM_LAYER3 and event.entity == entity:
                last = event.time
        return last


class Emulator:
    """Emulates layer 3 and below, the timers and the layer-5 message source."""

    def __init__(self, config: Config, out: Optional[TextIO] = None) -> None:
        self.config = config
        self.out = out if out is not None else sys.stdout
        self.stats = Statistics()
        self.events = EventList()
        self.time = 0.0
        self.nsim = 0
        self.delivered: list[tuple[Entity, bytes]] = []
        self._rng = _random.Random(config.seed)

    def _say(self, text: str) -> None:
        self.out.write(text)

    def random(self) -> float:
        """Return a uniform random number in [0, 1]."""
        value = self._rng.random()
        if self.config.trace > 3:
            self._say(f"RANDOM NUMBER GENERAION CALLED: {value:f}\n")
        return value

    def check_generator(self) -> float:
        """Sample the generator and fail if its mean is implausible."""
        average = sum(self.random() for _ in range(1000)) / 1000.0
        if average < 0.25 or average > 0.75:
            raise RuntimeError(
                "random number generation differs from what the emulator expects"
            )
        return average

    def _generate_next_arrival(self) -> None:
        if self.config.trace > 2:
            self._say("          GENERATE NEXT ARRIVAL: creating new arrival\n")
        delay = self.config.mean_interval * self.random() * 2
        entity = Entity.A
        if self.config.bidirectional and self.random() > 0.5:
            entity = Entity.B
        self.events.insert(Event(self.time + delay, EventType.FROM_LAYER5, entity))

    def start_timer(self, entity: Entity, increment: float) -> bool:
        """Schedule a timer interrupt; return False if one is already running."""
        if self.config.trace > 1:
            self._say(f"          START TIMER: starting timer at {self.time:f}\n")
        if self.events.find_timer(entity) is not None:
            self._say("Warning: attempt to start a timer that is already started\n")
            return False
        self.events.insert(
            Event(self.time + increment, EventType.TIMER_INTERRUPT, Entity(entity))
        )
        return True

    def stop_timer(self, entity: Entity) -> bool:
        """Cancel the running timer; return False if there was none."""
        if self.config.trace > 1:
            self._say(f"          STOP TIMER: stopping timer at {self.time:f}\n")
        timer = self.events.find_timer(entity)
        if timer is None:
            self._say("Warning: unable to cancel your timer. It wasn't running.\n")
            return False
        self.events.remove(timer)
        return True

    def _affects(self, entity: Entity) -> bool:
        direction = self.config.corrupt_direction
        return not (entity == Entity.B and direction == Entity.A) and not (
            entity == Entity.A and direction == Entity.B
        )

    def to_layer3(self, entity: Entity, packet: Packet) -> None:
        """Send a packet from ``entity`` into the network."""
        entity = Entity(entity)
        self.stats.to_layer3 += 1

        if self.random() < self.config.loss_prob and self._affects(entity):
            self.stats.lost += 1
            if self.config.trace > 0:
                self._say("          TOLAYER3: packet being lost\n")
            return

        copy = packet.copy()
        if self.config.trace > 2:
            self._say(
                f"          TOLAYER3: seq: {copy.seqnum}, ack {copy.acknum}, "
                f"check: {copy.checksum} {copy.payload.decode('latin-1')}\n"
            )

        destination = entity.peer()
        last = self.events.last_arrival_time(destination)
        start = self.time if last is None else last
        arrival = Event(
            start + 1 + 9 * self.random(), EventType.FROM_LAYER3, destination, copy
        )

        if self.random() < self.config.corrupt_prob and self._affects(entity):
            self.stats.corrupted += 1
            choice = self.random()
            if choice < 0.75:
                copy.payload = b"Z" + copy.payload[1:]
            elif choice < 0.875:
                copy.seqnum = 999999
            else:
                copy.acknum = 999999
            if self.config.trace > 0:
                self._say("          TOLAYER3: packet being corrupted\n")

        if self.config.trace > 2:
            self._say("          TOLAYER3: scheduling arrival on other side\n")
        self.events.insert(arrival)

    def to_layer5(self, entity: Entity, data: bytes) -> None:
        """Deliver data to the application at ``entity``."""
        entity = Entity(entity)
        data = bytes(data)
        if self.config.trace > 2:
            self._say(
                "          TOLAYER5: data received by application at "
                f"{entity.name}: {data.decode('latin-1')}\n"
            )
        self.delivered.append((entity, data))
        self.stats.messages_delivered += 1

    def _trace_event(self, event: Event) -> None:
        self._say(
            f"\nEVENT time: {event.time:f},  type: {int(event.type)}"
            f"{_EVENT_NAMES[event.type]} entity: {int(event.entity)}\n"
        )

    def run(self, sender: Endpoint, receiver: Endpoint) -> Statistics:
        """Run the simulation until no events remain and return the statistics."""
        self.check_generator()
        self.time = 0.0
        self._generate_next_arrival()
        endpoints = {Entity.A: sender, Entity.B: receiver}
        trace = self.config.trace

        while self.events:
            event = self.events.pop()
            if trace >= 2:
                self._trace_event(event)
            self.time = event.time
            endpoint = endpoints[event.entity]
            if event.type == EventType.FROM_LAYER5:
                if self.nsim < self.config.num_messages:
                    self._generate_next_arrival()
                    message = Message.from_letter(chr(ord("a") + self.nsim % 26))
                    if trace > 2:
                        self._say(
                            "          MAINLOOP: data given to student: "
                            f"{message.data.decode('latin-1')}\n"
                        )
                    self.nsim += 1
                    endpoint.output(message)
                elif trace > 2:
                    self._say("          FROM_LAYER5: no more messages to send: \n")
            elif event.type == EventType.FROM_LAYER3:
                endpoint.input(event.packet.copy())
            else:
                endpoint.timer_interrupt()
        return self.stats