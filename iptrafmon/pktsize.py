"""Packet size distribution of an interface."""

from __future__ import annotations

from .log import genatime

SIZES = 20


class SizeDistribution:
    """Counts of incoming and outgoing packets in twenty size brackets.

    The brackets divide the MTU evenly; a last counter holds the packets
    that are larger than every bracket.
    """

    def __init__(self, mtu):
        if mtu < SIZES:
            raise ValueError(f"MTU must be at least {SIZES} bytes")
        self.mtu = mtu
        self.interval = mtu // SIZES
        self.size_in = [0] * (SIZES + 1)
        self.size_out = [0] * (SIZES + 1)
        self.maxsize_in = 0
        self.maxsize_out = 0

    @property
    def oversized_in(self):
        return self.size_in[SIZES]

    @property
    def oversized_out(self):
        return self.size_out[SIZES]

    def update(self, length, outgoing):
        """Count one packet of ``length`` bytes; return its bracket index."""
        if length < 1:
            index = SIZES
        else:
            index = min((length - 1) // self.interval, SIZES)
        if outgoing:
            self.size_out[index] += 1
            self.maxsize_out = max(self.maxsize_out, length)
        else:
            self.size_in[index] += 1
            self.maxsize_in = max(self.maxsize_in, length)
        return index

    def bucket_ranges(self):
        """``(first, last)`` byte sizes of each bracket, oversized excluded."""
        return [(self.interval * i + 1, self.interval * (i + 1))
                for i in range(SIZES)]

    def format_log(self, ifname, seconds, now):
        """The log report of the distribution, generated at time ``now``."""
        lines = [
            f"*** Packet Size Distribution, generated {genatime(now)}\n\n",
            f"Interface: {ifname}   MTU: {self.mtu}\n\n",
            "Packet Size (bytes)\tIn\t\tOut\n",
        ]
        for (first, last), count_in, count_out in zip(
                self.bucket_ranges(), self.size_in, self.size_out):
            lines.append(f"{first} to {last}:\t\t{count_in:8d}\t{count_out:8d}\n")
        lines.append(f"\nRunning time: {seconds} seconds\n")
        return "".join(lines)