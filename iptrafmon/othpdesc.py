"""Descriptions of non-TCP traffic: ICMP, UDP, OSPF, ARP and non-IP frames."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import NamedTuple

from .packet import (
    ARPHRD_ETHER,
    ARPHRD_FDDI,
    ETH_P_ARP,
    IPPROTO_IPV6,
    IPPROTO_TCP,
    IPPROTO_UDP,
)

ETH_P_RARP = 0x8035

IPPROTO_ICMP = 1
IPPROTO_IGMP = 2
IPPROTO_IGP = 9
IPPROTO_GRE = 47
IPPROTO_ICMPV6 = 58
IPPROTO_IGRP = 88
IPPROTO_OSPFIGP = 89

ARPOP_REQUEST = 1
ARPOP_REPLY = 2
ARPOP_RREQUEST = 3
ARPOP_RREPLY = 4

OSPF_TYPE_HELLO = 1
OSPF_TYPE_DB = 2
OSPF_TYPE_LSR = 3
OSPF_TYPE_LSU = 4
OSPF_TYPE_LSA = 5

_PROTOCOLS_FILE = "/etc/protocols"

_PACKET_TYPES = {
    0x6001: "DEC MOP dump/load",
    0x6002: "DEC MOP remote console",
    0x6003: "DEC DECnet Phase IV",
    0x6004: "DEC LAT",
    0x6005: "DEC DECnet Diagnostics",
    0x6006: "DEC DECnet Customer Use",
    0x6007: "DEC DECnet SCA",
    0x8137: "IPX",
}

_ICMP_TYPES = {
    0: "echo rply",
    8: "echo req",
    3: "dest unrch",
    4: "src qnch",
    5: "redirct",
    11: "time excd",
    12: "param prob",
    13: "timestmp req",
    15: "info req",
    16: "info rep",
    17: "addr mask req",
    18: "addr mask rep",
}

_ICMP_UNREACH_CODES = {
    0: "ntwk",
    1: "host",
    2: "proto",
    3: "port",
    4: "DF set",
    5: "src rte fail",
    6: "net unkn",
    7: "host unkn",
    8: "src isltd",
    9: "net comm denied",
    10: "host comm denied",
    11: "net unrch for TOS",
    12: "host unrch for TOS",
    13: "pkt fltrd",
    14: "prec violtn",
    15: "prec cutoff",
}

_ICMP6_TYPES = {
    1: "dest unrch",
    2: "pkt too big",
    3: "time exceeded",
    4: "param prob",
    128: "echo req",
    129: "echo rply",
    130: "mbrship query",
    131: "mbrship report",
    132: "mbrship reduc",
    133: "router sol",
    134: "router adv",
    135: "neigh sol",
    136: "neigh adv",
    137: "redirect",
}

_ICMP6_UNREACH_CODES = {
    0: "no route",
    1: "admin",
    2: "not beyondsp",
    3: "unreach addr",
    4: "no port",
}

_OSPF_TYPES = {
    OSPF_TYPE_HELLO: "hlo",
    OSPF_TYPE_DB: "DB desc",
    OSPF_TYPE_LSR: "LSR",
    OSPF_TYPE_LSU: "LSU",
    OSPF_TYPE_LSA: "LSA",
}

_IP_PROTOCOL_NAMES = {
    IPPROTO_UDP: "UDP",
    IPPROTO_ICMP: "ICMP",
    IPPROTO_OSPFIGP: "OSPF",
    IPPROTO_IGP: "IGP",
    IPPROTO_IGMP: "IGMP",
    IPPROTO_IGRP: "IGRP",
    IPPROTO_GRE: "GRE",
    IPPROTO_ICMPV6: "ICMPv6",
    IPPROTO_IPV6: "IPv6 tun",
}


@dataclass
class OtherEntry:
    """One non-TCP packet as shown in the lower window of the IP monitor.

    ``icmp_type`` and ``icmp_code`` serve both ICMP and ICMPv6; opcodes are
    in host byte order.
    """

    protocol: int
    iface: str
    pkt_length: int
    is_ip: bool = True
    fragment: bool = False
    saddr: object = None
    daddr: object = None
    s_fqdn: str = ""
    d_fqdn: str = ""
    smacaddr: str = ""
    dmacaddr: str = ""
    linkproto: int = 0
    icmp_type: int = 0
    icmp_code: int = 0
    s_sname: str = ""
    d_sname: str = ""
    ospf_version: int = 0
    ospf_type: int = 0
    ospf_area: int = 0
    ospf_routerid: str = ""
    arp_opcode: int = 0
    arp_src_ip: str = "0.0.0.0"
    arp_dest_ip: str = "0.0.0.0"
    rarp_src_mac: bytes = bytes(6)
    rarp_dest_mac: bytes = bytes(6)
    index: int = 0


class _Formatted(NamedTuple):
    protname: str
    description: str
    additional: str
    text: str


def format_mac(raw):
    """Colon-separated lower-case hex form of a hardware address."""
    return ":".join(f"{byte:02x}" for byte in bytes(raw))


def packet_lookup(protocol):
    """Name of a known non-IP frame type, or None."""
    return _PACKET_TYPES.get(protocol)


def icmp_description(icmp_type, code):
    """``(description, additional)`` for an ICMP type and code."""
    description = _ICMP_TYPES.get(icmp_type, "bad/unkn")
    additional = _ICMP_UNREACH_CODES.get(code, "") if icmp_type == 3 else ""
    return description, additional


def icmp6_description(icmp_type, code):
    """``(description, additional)`` for an ICMPv6 type and code."""
    description = _ICMP6_TYPES.get(icmp_type, "bad/unkn")
    additional = _ICMP6_UNREACH_CODES.get(code, "") if icmp_type == 1 else ""
    return description, additional


def ospf_description(version, ospf_type, area, routerid):
    """``(protname, description, additional)`` for an OSPF packet."""
    protname = "OSPF" + {2: "v2", 3: "v3"}.get(version, "")
    description = _OSPF_TYPES.get(ospf_type, "")
    return protname, description, f"a={area} r={routerid}"


@functools.lru_cache(maxsize=None)
def _protocol_table():
    table = {}
    try:
        with open(_PROTOCOLS_FILE, encoding="utf-8", errors="replace") as fd:
            for line in fd:
                fields = line.split("#", 1)[0].split()
                if len(fields) < 2 or not fields[1].isdigit():
                    continue
                number = int(fields[1])
                if number not in table:
                    table[number] = fields[2] if len(fields) > 2 else fields[0]
    except OSError:
        pass
    return table


def _protocol_alias(number):
    return _protocol_table().get(number)


def _format_non_ip(entry):
    if entry.protocol == ETH_P_ARP:
        msg = "ARP "
        if entry.arp_opcode == ARPOP_REQUEST:
            msg += "request for " + entry.arp_dest_ip
        elif entry.arp_opcode == ARPOP_REPLY:
            msg += "reply from " + entry.arp_src_ip
    elif entry.protocol == ETH_P_RARP:
        msg = "RARP "
        if entry.arp_opcode == ARPOP_RREQUEST:
            msg += "request for " + format_mac(entry.rarp_dest_mac)
        elif entry.arp_opcode == ARPOP_RREPLY:
            msg += "reply from " + format_mac(entry.rarp_src_mac)
    else:
        name = packet_lookup(entry.protocol)
        msg = (f"Non-IP ({name})" if name is not None
               else f"Non-IP (0x{entry.protocol:x})")

    protname = msg
    msg += f" ({entry.pkt_length} bytes)"
    if entry.linkproto in (ARPHRD_ETHER, ARPHRD_FDDI):
        msg += f" from {entry.smacaddr} to {entry.dmacaddr} on {entry.iface}"
    return _Formatted(protname, "", "", msg)


def format_entry(entry, show_mac):
    """Describe ``entry``: its protocol name, description, detail and text line."""
    if not entry.is_ip:
        return _format_non_ip(entry)

    description = additional = ""
    unknown = False
    protname = _IP_PROTOCOL_NAMES.get(entry.protocol)
    if protname is None:
        protname = _protocol_alias(entry.protocol)
        if protname is None:
            protname = "IP protocol"
            unknown = True

    if entry.fragment:
        description = "fragment"
    elif entry.protocol == IPPROTO_ICMP:
        description, additional = icmp_description(entry.icmp_type, entry.icmp_code)
    elif entry.protocol == IPPROTO_ICMPV6:
        description, additional = icmp6_description(entry.icmp_type, entry.icmp_code)
    elif entry.protocol == IPPROTO_OSPFIGP:
        protname, description, additional = ospf_description(
            entry.ospf_version, entry.ospf_type, entry.ospf_area,
            entry.ospf_routerid)

    parts = [protname, " "]
    if description:
        parts.append(description + " ")
    if additional:
        parts.append(f"({additional}) ")
    if unknown:
        parts.append(f"{entry.protocol} ")
    parts.append(f"({entry.pkt_length} bytes) ")
    if entry.protocol == IPPROTO_UDP and not entry.fragment:
        parts.append(f"from {entry.s_fqdn[:40]}:{entry.s_sname} "
                     f"to {entry.d_fqdn[:40]}:{entry.d_sname}")
    else:
        parts.append(f"from {entry.s_fqdn[:40]} to {entry.d_fqdn[:40]}")
    if entry.smacaddr and show_mac:
        parts.append(f" (src HWaddr {entry.smacaddr})")
    parts.append(f" on {entry.iface}")
    return _Formatted(protname, description, additional, "".join(parts))


def format_log_message(entry, protname, description, additional, with_mac):
    """The log line describing ``entry``."""
    parts = [f"{protname}; {entry.iface}; {entry.pkt_length} bytes;"]
    if entry.smacaddr and with_mac:
        parts.append(f" source MAC address {entry.smacaddr};")
    if entry.is_ip:
        if ((entry.protocol == IPPROTO_UDP and not entry.fragment)
                or entry.protocol == IPPROTO_TCP):
            parts.append(f" from {entry.s_fqdn}:{entry.s_sname} "
                         f"to {entry.d_fqdn}:{entry.d_sname}")
        else:
            parts.append(f" from {entry.s_fqdn} to {entry.d_fqdn}")
    else:
        parts.append(f" from {entry.smacaddr} to {entry.dmacaddr} ")
    if description:
        parts.append(f"; {description}")
    if additional:
        parts.append(f" ({additional})")
    return "".join(parts)