"""The list of recent non-TCP packets shown by the IP traffic monitor."""

from __future__ import annotations

import ipaddress
import socket
import struct
from collections import deque

from .othpdesc import (
    ETH_P_RARP,
    IPPROTO_ICMP,
    IPPROTO_ICMPV6,
    IPPROTO_OSPFIGP,
    OtherEntry,
    format_mac,
)
from .packet import ARPHRD_ETHER, ARPHRD_FDDI, ETH_P_ARP, IPPROTO_UDP

DEFAULT_LIMIT = 512

_FQDN_MAX = 99
_SNAME_MAX = 9
_ETH_ADDRS = 12
_FDDI_ADDRS = 13
_UDP_PORTS = struct.Struct("!HH")
_OSPF = struct.Struct("!BBH4sI")
_ARP = struct.Struct("!HHBBH6s4s6s4s")


class OtherProtoTable:
    """Keeps the most recent ``limit`` entries; older ones are dropped.

    Every entry added is numbered from 1 upwards in its ``index``.
    """

    def __init__(self, limit=DEFAULT_LIMIT):
        if limit < 1:
            raise ValueError("the table must hold at least one entry")
        self.limit = limit
        self.lastpos = 0
        self._entries = deque(maxlen=limit)

    def add(self, entry):
        """Append ``entry``, numbering it, and return it."""
        self.lastpos += 1
        entry.index = self.lastpos
        self._entries.append(entry)
        return entry

    @property
    def head(self):
        return self._entries[0] if self._entries else None

    @property
    def tail(self):
        return self._entries[-1] if self._entries else None

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)


def _numeric(addr):
    if isinstance(addr, tuple):
        addr = addr[0]
    return str(ipaddress.ip_address(addr) if isinstance(addr, str) else addr)


def _host_name(resolve, addr):
    if resolve is None:
        name = _numeric(addr)
    else:
        name = resolve.revname(addr)[0]
    return name[:_FQDN_MAX]


def _hardware_addresses(pkt):
    """``(source, destination)`` MAC strings, empty for other link types."""
    if pkt.hatype == ARPHRD_ETHER and pkt.eth_offset is not None:
        base = pkt.eth_offset
        if len(pkt.buf) < base + _ETH_ADDRS:
            raise ValueError("truncated Ethernet header")
        return (format_mac(pkt.buf[base + 6:base + 12]),
                format_mac(pkt.buf[base:base + 6]))
    if pkt.hatype == ARPHRD_FDDI and pkt.fddi_offset is not None:
        base = pkt.fddi_offset
        if len(pkt.buf) < base + _FDDI_ADDRS:
            raise ValueError("truncated FDDI header")
        return (format_mac(pkt.buf[base + 7:base + 13]),
                format_mac(pkt.buf[base + 1:base + 7]))
    return "", ""


def _need(payload, size, what):
    if len(payload) < size:
        raise ValueError(f"truncated {what} header")


def _fill_ip_details(entry, protocol, payload):
    if protocol in (IPPROTO_ICMP, IPPROTO_ICMPV6):
        _need(payload, 2, "ICMP")
        entry.icmp_type, entry.icmp_code = payload[0], payload[1]
    elif protocol == IPPROTO_UDP:
        _need(payload, _UDP_PORTS.size, "UDP")
        sport, dport = _UDP_PORTS.unpack_from(payload)
        entry.s_sname = str(sport)[:_SNAME_MAX]
        entry.d_sname = str(dport)[:_SNAME_MAX]
    elif protocol == IPPROTO_OSPFIGP:
        _need(payload, _OSPF.size, "OSPF")
        version, ospf_type, _length, routerid, area = _OSPF.unpack_from(payload)
        entry.ospf_version = version
        entry.ospf_type = ospf_type
        entry.ospf_area = area
        entry.ospf_routerid = socket.inet_ntoa(routerid)


def _fill_arp_details(entry, protocol, payload):
    if protocol not in (ETH_P_ARP, ETH_P_RARP):
        return
    _need(payload, _ARP.size, "ARP")
    (_hrd, _pro, _hln, _pln, opcode, sha, sip, tha, tip) = _ARP.unpack_from(payload)
    entry.arp_opcode = opcode
    if protocol == ETH_P_ARP:
        entry.arp_src_ip = socket.inet_ntoa(sip)
        entry.arp_dest_ip = socket.inet_ntoa(tip)
    else:
        entry.rarp_src_mac = sha
        entry.rarp_dest_mac = tha


def entry_from_packet(pkt, saddr, daddr, is_ip, protocol, payload, ifname,
                      resolve=None, show_mac=False):
    """Build the entry describing a processed non-TCP packet.

    ``payload`` starts at the transport header for IP packets and at the
    network header otherwise. ``resolve`` is a Resolver, or None to show
    numeric addresses. Raises ValueError if a header is truncated.
    """
    payload = bytes(payload)
    entry = OtherEntry(protocol=protocol, iface=ifname,
                       pkt_length=pkt.length, is_ip=bool(is_ip))
    entry.fragment = not pkt.is_first_fragment()

    if show_mac or not is_ip:
        entry.smacaddr, entry.dmacaddr = _hardware_addresses(pkt)

    if is_ip:
        entry.saddr = saddr
        entry.daddr = daddr
        entry.s_fqdn = _host_name(resolve, saddr)
        entry.d_fqdn = _host_name(resolve, daddr)
        if not entry.fragment:
            _fill_ip_details(entry, protocol, payload)
    else:
        entry.linkproto = pkt.hatype
        _fill_arp_details(entry, protocol, payload)
    return entry