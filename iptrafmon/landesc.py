"""Descriptions of LAN hosts keyed by MAC address, in ``ethers`` format."""

from __future__ import annotations

import os
import re

_MAC = re.compile(r"[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5}")
_MAC_LEN = 17
_SPACES = " \t\n\v\f\r"
_HEADER = "# see man ethers for syntax\n\n"


def check_mac_addr(mac):
    """True if ``mac`` is six colon-separated two-digit hex bytes."""
    return len(mac) == _MAC_LEN and _MAC.fullmatch(mac) is not None


class HostDescriptions:
    """An ordered set of (MAC address, description) pairs.

    Lines skipped while parsing are recorded in ``skipped``.
    """

    def __init__(self):
        self._entries = []
        self.skipped = []

    def parse(self, lines):
        """Add unique entries from ethers-style lines; return skip messages."""
        messages = []
        for raw in lines:
            if not raw or raw[0] in "\n#":
                continue
            line = raw.split("\n", 1)[0]
            mac = line[:_MAC_LEN]
            if not check_mac_addr(mac):
                messages.append(f"Not a mac '{mac}' address, skipped")
                continue
            rest = line[_MAC_LEN:]
            if not rest or rest[0] not in _SPACES:
                messages.append("Missing mandatory space between mac and "
                                "host/ip address, skipped")
                continue
            desc = rest.lstrip(_SPACES)
            if not desc:
                messages.append("Missing description, skipped")
                continue
            if any(m == mac or d == desc for m, d in self._entries):
                continue
            self._entries.append((mac, desc))
        self.skipped.extend(messages)
        return messages

    def add(self, mac, desc):
        """Append a description for ``mac``."""
        self._entries.append((mac[:_MAC_LEN], desc))

    def remove(self, mac):
        """Remove the first description of ``mac``."""
        for index, (entry_mac, _desc) in enumerate(self._entries):
            if entry_mac == mac:
                del self._entries[index]
                return
        raise KeyError(mac)

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)


def _parse_file(descs, path):
    if path is None:
        return
    try:
        with open(path, encoding="utf-8", errors="replace") as fd:
            descs.parse(fd)
    except OSError:
        pass


def load_eth_desc(path, ethers_path="/etc/ethers"):
    """Load descriptions from ``path``, merged with the system ethers file."""
    descs = HostDescriptions()
    _parse_file(descs, path)
    _parse_file(descs, ethers_path)
    return descs


def save_eth_desc(descs, path):
    """Write descriptions to ``path`` in ethers format."""
    with open(os.fspath(path), "w", encoding="utf-8") as fd:
        fd.write(_HEADER)
        for mac, desc in descs:
            fd.write(f"{mac} {desc}\n")