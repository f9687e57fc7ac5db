"""Accounting for fragmented IPv4 datagrams.

Fragments are not reassembled; their sizes are accumulated per datagram
following the hole-descriptor scheme of RFC 815, and reported once the
first fragment (the one holding the TCP/UDP ports) has been seen.
"""

import struct
from dataclasses import dataclass, field

_IPV4 = struct.Struct("!BBHHHBBH4s4s")
_PORTS = struct.Struct("!HH")
_IPPROTO_TCP = 6
_IPPROTO_UDP = 17
_U32 = 0xFFFFFFFF


@dataclass(frozen=True)
class IPv4Header:
    """The fields of an IPv4 header that fragment accounting needs."""

    ihl: int
    tot_len: int
    ident: int
    frag_off: int
    protocol: int
    saddr: int
    daddr: int
    version: int = 4

    @classmethod
    def from_bytes(cls, data):
        """Parse the fixed part of an IPv4 header."""
        if len(data) < _IPV4.size:
            raise ValueError("truncated IPv4 header")
        (vihl, _tos, tot_len, ident, frag_off, _ttl, protocol, _check,
         saddr, daddr) = _IPV4.unpack_from(data)
        return cls(
            ihl=vihl & 0x0F,
            tot_len=tot_len,
            ident=ident,
            frag_off=frag_off,
            protocol=protocol,
            saddr=int.from_bytes(saddr, "big"),
            daddr=int.from_bytes(daddr, "big"),
            version=vihl >> 4,
        )

    def frag_offset(self):
        """Offset of this fragment in bytes."""
        return (self.frag_off & 0x1FFF) * 8

    def is_first_fragment(self):
        return (self.frag_off & 0x1FFF) == 0

    def is_fragmented(self):
        return (self.frag_off & 0x3FFF) != 0

    def more_fragments(self):
        return (self.frag_off & 0x2000) != 0


@dataclass(frozen=True)
class FragmentResult:
    """What a fragment contributes to the traffic counters.

    ``nbytes`` is 0 until the first fragment of the datagram has arrived.
    """

    nbytes: int
    sport: int = 0
    dport: int = 0
    firstin: bool = False


@dataclass
class _Datagram:
    holes: list = field(default_factory=lambda: [(0, 65535)])
    firstin: bool = False
    sport: int = 0
    dport: int = 0
    bcount: int = 0


class FragmentTracker:
    """Keeps hole lists for datagrams whose fragments are still arriving."""

    def __init__(self):
        self._datagrams = {}

    def process(self, header, data):
        """Account one fragment; ``data`` is the whole IP packet."""
        key = (header.saddr, header.daddr, header.protocol, header.ident)
        dgram = self._datagrams.get(key)
        if dgram is None:
            dgram = self._datagrams[key] = _Datagram()

        offset = header.frag_offset()
        lastbyte = (offset + header.tot_len - header.ihl * 4 - 1) & _U32

        if header.is_first_fragment():
            dgram.firstin = True
            if header.protocol in (_IPPROTO_TCP, _IPPROTO_UDP):
                start = header.ihl * 4
                if len(data) < start + _PORTS.size:
                    raise ValueError("first fragment too short for ports")
                dgram.sport, dgram.dport = _PORTS.unpack_from(data, start)

        match = next(
            (i for i, (low, high) in enumerate(dgram.holes)
             if offset <= high and lastbyte >= low),
            None,
        )
        if match is not None:
            low, high = dgram.holes.pop(match)
            if offset > low:
                dgram.holes.append((low, offset - 1))
            if lastbyte < high and header.more_fragments():
                dgram.holes.append((lastbyte + 1, high))

        dgram.bcount += header.tot_len

        if not dgram.firstin:
            return FragmentResult(0)

        nbytes = dgram.bcount
        dgram.bcount = 0
        if not dgram.holes:
            del self._datagrams[key]
        return FragmentResult(nbytes, dgram.sport, dgram.dport, True)

    def clear(self):
        """Drop every datagram being tracked."""
        self._datagrams.clear()

    def __len__(self):
        return len(self._datagrams)