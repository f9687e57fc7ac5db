"""Link-layer stripping, IP header checks and filtering of captured packets."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum

from .ipfrag import FragmentTracker, IPv4Header

PACKET_HOST = 0
PACKET_BROADCAST = 1
PACKET_MULTICAST = 2
PACKET_OTHERHOST = 3
PACKET_OUTGOING = 4
PACKET_LOOPBACK = 5
PACKET_USER = 6
PACKET_KERNEL = 7

ARPHRD_ETHER = 1
ARPHRD_DLCI = 15
ARPHRD_INFINIBAND = 32
ARPHRD_SLIP = 256
ARPHRD_CSLIP = 257
ARPHRD_SLIP6 = 258
ARPHRD_CSLIP6 = 259
ARPHRD_PPP = 512
ARPHRD_TUNNEL = 768
ARPHRD_FRAD = 770
ARPHRD_LOOPBACK = 772
ARPHRD_FDDI = 774
ARPHRD_SIT = 776
ARPHRD_IPGRE = 778
ARPHRD_NONE = 0xFFFE

ETH_P_IP = 0x0800
ETH_P_ARP = 0x0806
ETH_P_IPV6 = 0x86DD
ETH_P_8021Q = 0x8100
ETH_P_8021AD = 0x88A8
ETH_P_QINQ1 = 0x9100
ETH_P_QINQ2 = 0x9200
ETH_P_QINQ3 = 0x9300

IPPROTO_TCP = 6
IPPROTO_UDP = 17
IPPROTO_IPV6 = 41

ETH_HLEN = 14
FDDI_HLEN = 21
INFINIBAND_HLEN = 24
FRAD_HLEN = 4
IPV6_HLEN = 40
VLAN_HLEN = 4

_VLAN_PROTOCOLS = frozenset(
    {ETH_P_8021Q, ETH_P_QINQ1, ETH_P_QINQ2, ETH_P_QINQ3, ETH_P_8021AD})
_BARE_IP_LINKS = frozenset(
    {ARPHRD_SLIP, ARPHRD_CSLIP, ARPHRD_SLIP6, ARPHRD_CSLIP6, ARPHRD_PPP,
     ARPHRD_TUNNEL, ARPHRD_SIT, ARPHRD_NONE, ARPHRD_IPGRE})
_PORTS = struct.Struct("!HH")
_U16 = struct.Struct("!H")


class PacketResult(IntEnum):
    INVALID_PACKET = 0
    PACKET_OK = 1
    CHECKSUM_ERROR = 2
    PACKET_FILTERED = 3
    MORE_FRAGMENTS = 4


@dataclass
class Packet:
    """A captured frame and the header offsets found while processing it.

    ``length`` is the on-wire length; processing reduces it by the link and
    tunnel headers that are stripped, as ``payload_offset`` moves forward.
    """

    buf: bytes
    protocol: int
    hatype: int
    pkttype: int = PACKET_HOST
    length: int | None = None
    caplen: int = field(init=False)
    payload_offset: int | None = field(default=None, init=False)
    eth_offset: int | None = field(default=None, init=False)
    fddi_offset: int | None = field(default=None, init=False)
    ip_offset: int | None = field(default=None, init=False)
    ip6_offset: int | None = field(default=None, init=False)

    def __post_init__(self):
        self.buf = bytes(self.buf)
        self.caplen = len(self.buf)
        if self.length is None:
            self.length = self.caplen

    @property
    def payload(self):
        """Bytes from the network-layer header on, or None before processing."""
        if self.payload_offset is None:
            return None
        return self.buf[self.payload_offset:]

    def _l3_offset(self, offset):
        if offset is None:
            raise ValueError("packet has not been processed")
        return offset

    def ip_header_len(self):
        """Length of the IPv4 or IPv6 header, 0 for other protocols."""
        if self.protocol == ETH_P_IP:
            return (self.buf[self._l3_offset(self.ip_offset)] & 0x0F) * 4
        if self.protocol == ETH_P_IPV6:
            return IPV6_HLEN
        return 0

    def ip_protocol(self):
        """The transport protocol number carried by the IP header, or 0."""
        if self.protocol == ETH_P_IP:
            return self.buf[self._l3_offset(self.ip_offset) + 9]
        if self.protocol == ETH_P_IPV6:
            return self.buf[self._l3_offset(self.ip6_offset) + 6]
        return 0

    def is_first_fragment(self):
        """True unless this is a non-initial IPv4 fragment."""
        if self.protocol == ETH_P_IP:
            offset = self._l3_offset(self.ip_offset)
            (frag_off,) = _U16.unpack_from(self.buf, offset + 6)
            return (frag_off & 0x1FFF) == 0
        return True


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of processing a packet.

    ``total_bytes`` is set where ports were looked up for TCP/UDP over IPv4:
    the accumulated size of the datagram's fragments, or the packet length.
    """

    result: PacketResult
    total_bytes: int | None = None
    sport: int = 0
    dport: int = 0


def verify_ipv4_checksum(header):
    """Check the ones'-complement checksum of an IPv4 header."""
    header = bytes(header)
    if not header:
        raise ValueError("empty IPv4 header")
    hlen = (header[0] & 0x0F) * 4
    if len(header) < hlen:
        raise ValueError("truncated IPv4 header")
    total = sum(_U16.unpack_from(header, pos)[0] for pos in range(0, hlen - 1, 2))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return (~total & 0xFFFF) == 0


def _adjust(pkt):
    """Skip the link-layer header; False for an unknown link type."""
    hatype = pkt.hatype
    if hatype in (ARPHRD_ETHER, ARPHRD_LOOPBACK):
        pkt.eth_offset = 0
        hlen = ETH_HLEN
    elif hatype in _BARE_IP_LINKS:
        hlen = 0
    elif hatype in (ARPHRD_FRAD, ARPHRD_DLCI):
        hlen = FRAD_HLEN
    elif hatype == ARPHRD_FDDI:
        pkt.fddi_offset = 0
        hlen = FDDI_HLEN
    elif hatype == ARPHRD_INFINIBAND:
        hlen = INFINIBAND_HLEN
    else:
        pkt.payload_offset = None
        return False
    pkt.payload_offset = hlen
    pkt.length -= hlen
    return True


def _set_l3(pkt):
    if pkt.protocol == ETH_P_IP:
        pkt.ip_offset, pkt.ip6_offset = pkt.payload_offset, None
    elif pkt.protocol == ETH_P_IPV6:
        pkt.ip_offset, pkt.ip6_offset = None, pkt.payload_offset
    else:
        pkt.ip_offset = pkt.ip6_offset = None


def _ports(data, offset):
    if len(data) < offset + _PORTS.size:
        return None
    return _PORTS.unpack_from(data, offset)


class PacketProcessor:
    """Classifies packets, extracting ports and applying the filters.

    ``ip_filter(saddr, daddr, sport, dport, protocol)`` and
    ``nonip_filter(protocol)`` return True to accept; None accepts all.
    """

    def __init__(self, ip_filter=None, nonip_filter=None):
        self.ip_filter = ip_filter
        self.nonip_filter = nonip_filter
        self._fragments = FragmentTracker()

    def process(self, pkt, want_ports=True, v6inv4asv6=False):
        """Process ``pkt`` in place; each packet is to be processed once."""
        invalid = ProcessResult(PacketResult.INVALID_PACKET)
        if not _adjust(pkt):
            return invalid

        sport = dport = 0
        total = None
        while True:
            _set_l3(pkt)
            if pkt.protocol == ETH_P_IP:
                data = pkt.buf[pkt.ip_offset:]
                if len(data) < 20 or len(data) < (data[0] & 0x0F) * 4:
                    return invalid
                if not verify_ipv4_checksum(data):
                    return ProcessResult(PacketResult.CHECKSUM_ERROR)
                ip = IPv4Header.from_bytes(data)
                f_sport = f_dport = 0
                if want_ports and ip.protocol in (IPPROTO_TCP, IPPROTO_UDP):
                    if ip.is_fragmented():
                        try:
                            frag = self._fragments.process(ip, data)
                        except ValueError:
                            return invalid
                        total = frag.nbytes
                        if not frag.firstin:
                            return ProcessResult(PacketResult.MORE_FRAGMENTS, total)
                        sport, dport = frag.sport, frag.dport
                    else:
                        ports = _ports(data, ip.ihl * 4)
                        if ports is None:
                            return invalid
                        sport, dport = ports
                        total = pkt.length
                    f_sport, f_dport = sport, dport
                if self.ip_filter is not None and not self.ip_filter(
                        ip.saddr, ip.daddr, f_sport, f_dport, ip.protocol):
                    return ProcessResult(PacketResult.PACKET_FILTERED)
                if v6inv4asv6 and ip.protocol == IPPROTO_IPV6:
                    hlen = ip.ihl * 4
                    pkt.protocol = ETH_P_IPV6
                    pkt.payload_offset += hlen
                    pkt.length -= hlen
                    continue
                break
            if pkt.protocol == ETH_P_IPV6:
                data = pkt.buf[pkt.ip6_offset:]
                if len(data) < IPV6_HLEN:
                    return invalid
                if want_ports:
                    if data[6] in (IPPROTO_TCP, IPPROTO_UDP):
                        ports = _ports(data, IPV6_HLEN)
                        if ports is None:
                            return invalid
                        sport, dport = ports
                    else:
                        sport = dport = 0
                break
            if pkt.protocol in _VLAN_PROTOCOLS:
                pkt.payload_offset += VLAN_HLEN
                pkt.length -= VLAN_HLEN
                if len(pkt.buf) < pkt.payload_offset + _U16.size:
                    return invalid
                (pkt.protocol,) = _U16.unpack_from(pkt.buf, pkt.payload_offset)
                continue
            if self.nonip_filter is not None and not self.nonip_filter(pkt.protocol):
                return ProcessResult(PacketResult.PACKET_FILTERED)
            break
        return ProcessResult(PacketResult.PACKET_OK, total, sport, dport)

    def reset(self):
        """Forget every partially seen fragmented datagram."""
        self._fragments.clear()


_PKTTYPE_NAMES = {
    PACKET_HOST: "PACKET_HOST",
    PACKET_BROADCAST: "PACKET_BROADCAST",
    PACKET_MULTICAST: "PACKET_MULTICAST",
    PACKET_OTHERHOST: "PACKET_OTHERHOST",
    PACKET_OUTGOING: "PACKET_OUTGOING",
    PACKET_LOOPBACK: "PACKET_LOOPBACK",
    PACKET_USER: "PACKET_USER",
    PACKET_KERNEL: "PACKET_KERNEL",
}

_L2_NAMES = {
    0: "ARPHRD_NETROM", 0xFFFE: "ARPHRD_NONE", 0xFFFF: "ARPHRD_VOID",
    1: "ARPHRD_ETHER", 2: "ARPHRD_EETHER", 3: "ARPHRD_AX25",
    4: "ARPHRD_PRONET", 5: "ARPHRD_CHAOS", 6: "ARPHRD_IEEE802",
    7: "ARPHRD_ARCNET", 8: "ARPHRD_APPLETLK", 15: "ARPHRD_DLCI",
    19: "ARPHRD_ATM", 23: "ARPHRD_METRICOM", 24: "ARPHRD_IEEE1394",
    27: "ARPHRD_EUI64", 32: "ARPHRD_INFINIBAND", 256: "ARPHRD_SLIP",
    257: "ARPHRD_CSLIP", 258: "ARPHRD_SLIP6", 259: "ARPHRD_CSLIP6",
    260: "ARPHRD_RSRVD", 264: "ARPHRD_ADAPT", 270: "ARPHRD_ROSE",
    271: "ARPHRD_X25", 272: "ARPHRD_HWX25", 280: "ARPHRD_CAN",
    512: "ARPHRD_PPP", 513: "ARPHRD_CISCO", 516: "ARPHRD_LAPB",
    517: "ARPHRD_DDCMP", 518: "ARPHRD_RAWHDLC", 519: "ARPHRD_RAWIP",
    768: "ARPHRD_TUNNEL", 769: "ARPHRD_TUNNEL6", 770: "ARPHRD_FRAD",
    771: "ARPHRD_SKIP", 772: "ARPHRD_LOOPBACK", 773: "ARPHRD_LOCALTLK",
    774: "ARPHRD_FDDI", 775: "ARPHRD_BIF", 776: "ARPHRD_SIT",
    777: "ARPHRD_IPDDP", 778: "ARPHRD_IPGRE", 779: "ARPHRD_PIMREG",
    780: "ARPHRD_HIPPI", 781: "ARPHRD_ASH", 782: "ARPHRD_ECONET",
    783: "ARPHRD_IRDA", 784: "ARPHRD_FCPP", 785: "ARPHRD_FCAL",
    786: "ARPHRD_FCPL", 787: "ARPHRD_FCFABRIC", 800: "ARPHRD_IEEE802_TR",
    801: "ARPHRD_IEEE80211", 802: "ARPHRD_IEEE80211_PRISM",
    803: "ARPHRD_IEEE80211_RADIOTAP", 804: "ARPHRD_IEEE802154",
    805: "ARPHRD_IEEE802154_MONITOR", 820: "ARPHRD_PHONET",
    821: "ARPHRD_PHONET_PIPE", 822: "ARPHRD_CAIF", 823: "ARPHRD_IP6GRE",
    824: "ARPHRD_NETLINK", 825: "ARPHRD_6LOWPAN", 826: "ARPHRD_VSOCKMON",
}

_L3_NAMES = {
    0x0001: "ETH_P_802_3", 0x0002: "ETH_P_AX25", 0x0003: "ETH_P_ALL",
    0x0004: "ETH_P_802_2", 0x0005: "ETH_P_SNAP", 0x0006: "ETH_P_DDCMP",
    0x0007: "ETH_P_WAN_PPP", 0x0008: "ETH_P_PPP_MP",
    0x0009: "ETH_P_LOCALTALK", 0x000C: "ETH_P_CAN", 0x000D: "ETH_P_CANFD",
    0x0010: "ETH_P_PPPTALK", 0x0011: "ETH_P_TR_802_2",
    0x0015: "ETH_P_MOBITEX", 0x0016: "ETH_P_CONTROL", 0x0017: "ETH_P_IRDA",
    0x0018: "ETH_P_ECONET", 0x0019: "ETH_P_HDLC", 0x001A: "ETH_P_ARCNET",
    0x001B: "ETH_P_DSA", 0x001C: "ETH_P_TRAILER", 0x0060: "ETH_P_LOOP",
    0x00F5: "ETH_P_PHONET", 0x00F6: "ETH_P_IEEE802154",
    0x00F7: "ETH_P_CAIF", 0x00F8: "ETH_P_XDSA", 0x00F9: "ETH_P_MAP",
    0x0200: "ETH_P_PUP", 0x0201: "ETH_P_PUPAT", 0x0800: "ETH_P_IP",
    0x0805: "ETH_P_X25", 0x0806: "ETH_P_ARP", 0x08FF: "ETH_P_BPQ",
    0x0A00: "ETH_P_IEEEPUP", 0x0A01: "ETH_P_IEEEPUPAT",
    0x22EB: "ETH_P_ERSPAN2", 0x22F0: "ETH_P_TSN", 0x4305: "ETH_P_BATMAN",
    0x6000: "ETH_P_DEC", 0x6001: "ETH_P_DNA_DL", 0x6002: "ETH_P_DNA_RC",
    0x6003: "ETH_P_DNA_RT", 0x6004: "ETH_P_LAT", 0x6005: "ETH_P_DIAG",
    0x6006: "ETH_P_CUST", 0x6007: "ETH_P_SCA", 0x6558: "ETH_P_TEB",
    0x8035: "ETH_P_RARP", 0x809B: "ETH_P_ATALK", 0x80F3: "ETH_P_AARP",
    0x8100: "ETH_P_8021Q", 0x8137: "ETH_P_IPX", 0x86DD: "ETH_P_IPV6",
    0x8808: "ETH_P_PAUSE", 0x8809: "ETH_P_SLOW", 0x883E: "ETH_P_WCCP",
    0x8847: "ETH_P_MPLS_UC", 0x8848: "ETH_P_MPLS_MC",
    0x884C: "ETH_P_ATMMPOA", 0x8863: "ETH_P_PPP_DISC",
    0x8864: "ETH_P_PPP_SES", 0x886C: "ETH_P_LINK_CTL",
    0x8884: "ETH_P_ATMFATE", 0x888E: "ETH_P_PAE", 0x88A2: "ETH_P_AOE",
    0x88A8: "ETH_P_8021AD", 0x88B5: "ETH_P_802_EX1",
    0x88BE: "ETH_P_ERSPAN", 0x88C7: "ETH_P_PREAUTH", 0x88CA: "ETH_P_TIPC",
    0x88CC: "ETH_P_LLDP", 0x88E5: "ETH_P_MACSEC", 0x88E7: "ETH_P_8021AH",
    0x88F5: "ETH_P_MVRP", 0x88F7: "ETH_P_1588", 0x88F8: "ETH_P_NCSI",
    0x88FB: "ETH_P_PRP", 0x8906: "ETH_P_FCOE", 0x890D: "ETH_P_TDLS",
    0x8914: "ETH_P_FIP", 0x8915: "ETH_P_IBOE", 0x8917: "ETH_P_80221",
    0x892F: "ETH_P_HSR", 0x894F: "ETH_P_NSH", 0x9000: "ETH_P_LOOPBACK",
    0x9100: "ETH_P_QINQ1", 0x9200: "ETH_P_QINQ2", 0x9300: "ETH_P_QINQ3",
    0xDADA: "ETH_P_EDSA", 0xDADB: "ETH_P_DSA_8021Q", 0xED3E: "ETH_P_IFE",
    0xFBFB: "ETH_P_AF_IUCV",
}


def pkttype_name(pkttype):
    """Name of a packet-socket packet type, or None if unknown."""
    return _PKTTYPE_NAMES.get(pkttype)


def l2_type_name(hatype):
    """Name of an ARPHRD link type, or None if unknown."""
    return _L2_NAMES.get(hatype)


def l3_proto_name(protocol):
    """Name of an ETH_P protocol number, or None if unknown."""
    return _L3_NAMES.get(protocol)


def packet_dump(pkt):
    """A hex dump of ``pkt`` with its header positions marked."""
    if pkt is None or pkt.caplen == 0:
        return ""
    out = []
    if pkt.caplen != pkt.length:
        out.append(f"length: {pkt.caplen} (out of {pkt.length}) bytes\n")
    else:
        out.append(f"length: {pkt.caplen} bytes\n")

    name = pkttype_name(pkt.pkttype)
    out.append(f"type: {name}" if name else f"type: {pkt.pkttype:02x}")
    name = l2_type_name(pkt.hatype)
    out.append(f", L2-proto: {name}" if name else f", L2-proto: 0x{pkt.hatype:04x}")
    name = l3_proto_name(pkt.protocol)
    out.append(f", L3-proto: {name}" if name else f", L3-proto: 0x{pkt.protocol:04x}")
    out.append("\n")

    for pos, byte in enumerate(pkt.buf[:pkt.caplen]):
        if pos % 16 == 0:
            if pos > 0:
                out.append("\n")
            out.append(f"0x{pos:04x}:")
        if pos % 8 == 0:
            out.append(" ")
        out.append(" ")
        if pos == pkt.eth_offset:
            out.append("^")
        elif pos == pkt.ip_offset:
            out.append("&")
        elif pos == pkt.ip6_offset:
            out.append("*")
        else:
            out.append(" ")
        out.append(f"{byte:02x}")
    out.append("\n\n")
    return "".join(out)