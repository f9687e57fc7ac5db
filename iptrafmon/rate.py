"""Per-flow byte rates as a simple moving average, and their display forms."""

from enum import Enum

_SUFFIXES = ("k", "M", "G", "T", "P", "E", "Z", "Y")


class ActivityMode(Enum):
    """Unit in which activity rates are shown."""

    KBITS = 0
    KBYTES = 1


class Rate:
    """Simple moving average over the last ``n`` byte-per-second samples.

    The average is recomputed from the whole window on every sample, which
    keeps the integer rounding error small.
    """

    def __init__(self, n):
        if n < 1:
            raise ValueError("a rate window needs at least one sample")
        self.n = n
        self.reset()

    def reset(self):
        """Forget every sample and set the average to zero."""
        self.index = 0
        self.average = 0
        self.rates = [0] * self.n

    def add_rate(self, nbytes, msecs):
        """Record ``nbytes`` seen during ``msecs`` milliseconds."""
        if msecs <= 0:
            raise ValueError("the sampling interval must be positive")
        self.rates[self.index] = nbytes * 1000 // msecs
        self.index = self.index + 1 if self.index + 1 < self.n else 0
        self.average = sum(self.rates) // self.n


def format_rate(rate, mode):
    """Format a byte-per-second rate with a scaled unit suffix."""
    if mode is ActivityMode.KBITS:
        scaled = rate
        step = 0
        divider = 1000
        bits = rate * 8
        while scaled >= 100_000_000:
            scaled //= 1000
            step += 1
            divider *= 1000
        if step >= len(_SUFFIXES):
            return "error"
        return f"{bits / divider:9.2f} {_SUFFIXES[step]}bps"

    step = 0
    while rate > 99 * (1 << 20):
        rate >>= 10
        step += 1
    if step >= len(_SUFFIXES):
        return "error"
    return f"{rate / 1024:9.2f} {_SUFFIXES[step]}Bps"


def format_rate_no_units(rate, mode):
    """Format a byte-per-second rate in kbit/s or KiB/s without a unit."""
    if mode is ActivityMode.KBITS:
        return f"{rate * 8 / 1000:8.1f}"
    return f"{rate / 1024:8.1f}"


def format_rate_pps(rate):
    """Format a packets-per-second rate."""
    return f"{rate:9d} pps"