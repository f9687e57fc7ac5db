"""Program settings and their binary configuration file."""

from __future__ import annotations

import os
import re
import struct
from dataclasses import dataclass, fields

from .rate import ActivityMode

# Flag word (bit 0 upwards) followed by four 64-bit timer values.
_LAYOUT = struct.Struct("<I4xqqqq")
_FLAG_BITS = (
    "color",
    "logging",
    "revlook",
    "servnames",
    "promisc",
    "actmode",
    "mac",
    "v6inv4asv6",
)
_TIMEOUT = re.compile(r"[ \t\n\v\f\r]*\+?[0-9]+")
_UINT_MAX = 0xFFFFFFFF


@dataclass
class Options:
    """User-configurable settings; timers are in minutes except as noted."""

    revlook: bool = False
    promisc: bool = False
    servnames: bool = False
    color: bool = True
    logging: bool = False
    actmode: ActivityMode = ActivityMode.KBITS
    mac: bool = False
    timeout: int = 15
    logspan: int = 3600  # seconds
    updrate: int = 0  # seconds
    closedint: int = 0
    v6inv4asv6: bool = True

    def toggle(self, name):
        """Flip an on/off setting, or switch the activity mode."""
        if name == "actmode":
            self.actmode = (ActivityMode.KBYTES
                            if self.actmode is ActivityMode.KBITS
                            else ActivityMode.KBITS)
        elif name in _FLAG_BITS:
            setattr(self, name, not getattr(self, name))
        else:
            raise ValueError(f"{name!r} is not a toggleable setting")
        return getattr(self, name)

    def _pack(self):
        flags = 0
        for bit, name in enumerate(_FLAG_BITS):
            value = getattr(self, name)
            if name == "actmode":
                value = value.value
            if value:
                flags |= 1 << bit
        return _LAYOUT.pack(flags, self.timeout, self.logspan,
                            self.updrate, self.closedint)

    @classmethod
    def _unpack(cls, data):
        flags, timeout, logspan, updrate, closedint = _LAYOUT.unpack(data)
        values = {}
        for bit, name in enumerate(_FLAG_BITS):
            on = bool(flags & (1 << bit))
            values[name] = ActivityMode(int(on)) if name == "actmode" else on
        return cls(timeout=timeout, logspan=logspan, updrate=updrate,
                   closedint=closedint, **values)


def load_options(path):
    """Load settings from ``path``; defaults fill whatever the file lacks."""
    defaults = Options()
    try:
        with open(path, "rb") as fd:
            data = fd.read(_LAYOUT.size)
    except FileNotFoundError:
        return defaults
    if not data:
        return defaults
    merged = data + defaults._pack()[len(data):]
    return Options._unpack(merged)


def save_options(options, path):
    """Write settings to ``path``, readable and writable by the owner only."""
    fd = os.open(path, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o600)
    with os.fdopen(fd, "wb") as out:
        out.write(options._pack())


def parse_timeout(text, allow_zero):
    """Parse a timer value typed by the user as an unsigned integer."""
    if _TIMEOUT.fullmatch(text) is None:
        raise ValueError("Invalid timeout value")
    value = int(text.strip())
    if value > _UINT_MAX or (not allow_zero and value == 0):
        raise ValueError("Invalid timeout value")
    return value


__all__ = [f.name for f in fields(Options)] and [
    "Options", "load_options", "save_options", "parse_timeout"]