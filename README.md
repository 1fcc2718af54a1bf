# srnetsim

A discrete-event emulator of an unreliable network link, together with a
Selective Repeat reliable transport protocol that runs on top of it.

The emulator models the layers below transport. A packet sent from one host
to the other arrives 1 to 10 time units after the last packet already in
flight towards that host, so packets are never reordered. Packets may be lost,
and may be corrupted: the first payload byte replaced by `Z`, or the sequence
or acknowledgement number set to `999999`. The emulator also generates
messages from the application layer, one letter (`a` to `z` in turn) repeated
over a 20-byte payload, and drives the retransmission timer.

The protocol uses a send window of 6 packets, a sequence space of 7, a
retransmission timeout of 16 time units and an additive checksum over the
sequence number, the acknowledgement number and the payload bytes. The sender
acknowledges packets individually and, on timeout, resends every packet in its
window that is still unacknowledged. The receiver buffers packets that arrive
out of order and delivers them to the application in sequence.

## Installation

```
pip install .
```

## Running a simulation

```
srnetsim
```

The command prompts for its settings and reads them from standard input, in
this order:

1. the number of messages to simulate;
2. the packet loss probability (0.0 for none);
3. the packet corruption probability (0.0 for none);
4. only when loss or corruption is non-zero: the direction they apply to,
   `0` for A→B, `1` for A←B, `2` for both;
5. the average time between messages from the sender's application;
6. the trace level (0 is quiet, higher values print more detail).

Settings can be piped in as well:

```
printf '1000\n0.2\n0.2\n2\n10\n0\n' | srnetsim
```

A missing or malformed value ends the command with exit status 1. The random
generator is seeded with 9999, so the same settings give the same run.

At the end it prints a report: the time the simulation stopped, how many
messages were attempted, how many were dropped because the send window was
full, the number of new acknowledgements received at A, the number of
retransmissions, the number of correct packets received at B, and the number
of messages delivered to the application.

## Using the library

```python
from srnetsim.emulator import Config, Emulator
from srnetsim.sr import Sender, Receiver
from srnetsim.cli import format_report

emulator = Emulator(Config(num_messages=200, loss_prob=0.1, corrupt_prob=0.1,
                           corrupt_direction=2, mean_interval=10.0, trace=0))
emulator.run(Sender(emulator), Receiver(emulator))
print(format_report(emulator))
```

`Emulator.run` first samples the generator with `check_generator`, which
raises `RuntimeError` if the mean of 1000 draws falls outside [0.25, 0.75],
then processes events until none remain and returns the `Statistics`. The
messages handed to the application are kept in `Emulator.delivered` as
`(entity, data)` pairs. Trace output goes to the `out` stream given to
`Emulator` (standard output by default).

- `srnetsim.packets`: `Entity` (`A`, `B`, with `peer()`), `EventType`,
  `Message` (with `Message.from_letter`) and `Packet` (with `copy()`).
  Payloads are exactly 20 bytes; anything else raises `ValueError`.
- `srnetsim.emulator`: `Config`, `Statistics`, `Event`, `EventList` and
  `Emulator`, which offers `start_timer`, `stop_timer`, `to_layer3`,
  `to_layer5` and `random` to the protocol.
- `srnetsim.sr`: `Sender` and `Receiver`, with `compute_checksum` and
  `is_corrupted`.
- `srnetsim.cli`: `read_config`, `format_report` and `main`.

## Limitations

Data flows from A to B only. `Config.bidirectional` lets message arrivals be
scheduled at B, but `Receiver.output` and `Receiver.timer_interrupt` do
nothing, so such messages are not sent.

## Tests

```
pip install .[test]
pytest
```