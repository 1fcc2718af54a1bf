"""Command-line front end: reads the simulation parameters and reports results."""

from __future__ import annotations

import argparse
import sys
from typing import Iterator, Optional, Sequence, TextIO

from .emulator import Config, Emulator
from .sr import Receiver, Sender


def _tokens(stream: TextIO) -> Iterator[str]:
    for line in stream:
        yield from line.split()


def _next(tokens: Iterator[str], convert, what: str):
    try:
        token = next(tokens)
    except StopIteration:
        raise ValueError(f"unexpected end of input while reading {what}") from None
    try:
        return convert(token)
    except ValueError:
        raise ValueError(f"invalid value for {what}: {token!r}") from None


def read_config(stream: TextIO, out: TextIO) -> Config:
    """Prompt on ``out`` and read the simulation parameters from ``stream``."""
    tokens = _tokens(stream)
    out.write("-----  Stop and Wait Network Simulator Version 1.1 -------- \n\n")
    out.write("Enter the number of messages to simulate: ")
    out.flush()
    num_messages = _next(tokens, int, "number of messages")
    out.write("Enter  packet loss probability [enter 0.0 for no loss]:")
    out.flush()
    loss_prob = _next(tokens, float, "loss probability")
    out.write("Enter packet corruption probability [0.0 for no corruption]:")
    out.flush()
    corrupt_prob = _next(tokens, float, "corruption probability")
    corrupt_direction = 0
    if loss_prob != 0.0 or corrupt_prob != 0.0:
        out.write(
            "If you want loss or corruption to only occur in one direction, "
            "choose the direction: 0 A->B, 1 A<-B, 2 A<->B (both directions) :"
        )
        out.flush()
        corrupt_direction = _next(tokens, int, "corruption direction")
    out.write("Enter average time between messages from sender's layer5 [ > 0.0]:")
    out.flush()
    mean_interval = _next(tokens, float, "average time between messages")
    out.write("Enter TRACE:")
    out.flush()
    trace = _next(tokens, int, "trace level")
    return Config(
        num_messages=num_messages,
        loss_prob=loss_prob,
        corrupt_prob=corrupt_prob,
        corrupt_direction=corrupt_direction,
        mean_interval=mean_interval,
        trace=trace,
    )


def format_report(emulator: Emulator) -> str:
    """Return the end-of-run summary for a finished simulation."""
    stats = emulator.stats
    return (
        f" Simulator terminated at time {emulator.time:f}\n"
        f" after attempting to send {emulator.nsim} msgs from layer5\n"
        f"number of messages dropped due to full window:  {stats.window_full} \n"
        "number of valid (not corrupt or duplicate) acknowledgements received at A:  "
        f"{stats.new_acks} \n"
        "(note: a single acknowledgement may have acknowledged more than one packet"
        " - if cumulative acknowledgements are used)\n"
        f"number of packet resends by A:  {stats.packets_resent} \n"
        f"number of correct packets received at B:  {stats.packets_received} \n"
        "number of messages delivered to application:  "
        f"{stats.messages_delivered} \n"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one simulation with parameters read from standard input."""
    parser = argparse.ArgumentParser(
        prog="srnetsim",
        description="Simulate a selective-repeat transfer over a lossy link.",
    )
    parser.parse_args(argv)

    out = sys.stdout
    try:
        config = read_config(sys.stdin, out)
    except ValueError as error:
        out.write(f"\n{error}\n")
        return 1

    emulator = Emulator(config, out)
    try:
        emulator.run(Sender(emulator), Receiver(emulator))
    except RuntimeError as error:
        out.write(f"{error}\n")
        return 1
    out.write(format_report(emulator))
    return 0