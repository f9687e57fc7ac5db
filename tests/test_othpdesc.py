import pytest

from iptrafmon.othpdesc import (
    OtherEntry,
    format_entry,
    format_log_message,
    format_mac,
    icmp6_description,
    icmp_description,
    ospf_description,
    packet_lookup,
)


def test_format_mac_pinned():
    assert format_mac(b"\x02\x00\x00\x00\x00\x01") == "02:00:00:00:00:01"


@pytest.mark.parametrize("raw", [bytes(6), b"\xff" * 6, bytes(range(10, 16))])
def test_format_mac_round_trip(raw):
    text = format_mac(raw)
    assert bytes.fromhex(text.replace(":", "")) == raw
    assert text.count(":") == 5


def test_packet_lookup():
    assert packet_lookup(0x8137) == "IPX"
    assert packet_lookup(0x6004) == "DEC LAT"
    assert packet_lookup(0x0800) is None


@pytest.mark.parametrize("icmp_type, code, expected", [
    (0, 0, ("echo rply", "")),
    (8, 0, ("echo req", "")),
    (3, 3, ("dest unrch", "port")),
    (3, 4, ("dest unrch", "DF set")),
    (3, 99, ("dest unrch", "")),
    (11, 0, ("time excd", "")),
    (14, 0, ("bad/unkn", "")),
])
def test_icmp_description(icmp_type, code, expected):
    assert icmp_description(icmp_type, code) == expected


@pytest.mark.parametrize("icmp_type, code, expected", [
    (1, 0, ("dest unrch", "no route")),
    (1, 4, ("dest unrch", "no port")),
    (128, 0, ("echo req", "")),
    (135, 0, ("neigh sol", "")),
    (200, 0, ("bad/unkn", "")),
])
def test_icmp6_description(icmp_type, code, expected):
    assert icmp6_description(icmp_type, code) == expected


def test_ospf_description():
    protname, description, additional = ospf_description(2, 1, 0, "10.0.0.1")
    assert protname == "OSPFv2"
    assert description == "hlo"
    assert additional == "a=0 r=10.0.0.1"


def test_ospf_unknown_version_and_type():
    protname, description, _ = ospf_description(7, 9, 1, "10.0.0.2")
    assert protname == "OSPF"
    assert description == ""


def _udp(**kw):
    values = dict(protocol=17, iface="eth0", pkt_length=60,
                  s_fqdn="192.0.2.1", d_fqdn="192.0.2.2",
                  s_sname="domain", d_sname="4000")
    values.update(kw)
    return OtherEntry(**values)


def test_udp_entry_shows_ports():
    result = format_entry(_udp(), show_mac=False)
    assert result.protname == "UDP"
    assert "192.0.2.1:domain" in result.text
    assert "192.0.2.2:4000" in result.text
    assert result.text.endswith("eth0")


def test_udp_fragment_has_no_ports():
    result = format_entry(_udp(fragment=True), show_mac=False)
    assert result.description == "fragment"
    assert "domain" not in result.text
    assert "fragment" in result.text


def test_icmp_entry_description():
    entry = OtherEntry(protocol=1, iface="eth0", pkt_length=84,
                       s_fqdn="192.0.2.1", d_fqdn="192.0.2.2",
                       icmp_type=3, icmp_code=3)
    result = format_entry(entry, show_mac=False)
    assert result.protname == "ICMP"
    assert (result.description, result.additional) == ("dest unrch", "port")
    assert "(port)" in result.text


def test_mac_shown_only_when_requested():
    entry = _udp(smacaddr="02:00:00:00:00:01")
    assert "src HWaddr" in format_entry(entry, show_mac=True).text
    assert "src HWaddr" not in format_entry(entry, show_mac=False).text


def test_fqdn_truncated_to_forty_chars():
    long_name = "h" * 60
    result = format_entry(_udp(s_fqdn=long_name), show_mac=False)
    assert "h" * 40 in result.text
    assert "h" * 41 not in result.text


def test_arp_request():
    entry = OtherEntry(protocol=0x0806, iface="eth0", pkt_length=42,
                       is_ip=False, linkproto=1, arp_opcode=1,
                       arp_dest_ip="192.0.2.1",
                       smacaddr="02:00:00:00:00:01",
                       dmacaddr="ff:ff:ff:ff:ff:ff")
    result = format_entry(entry, show_mac=False)
    assert result.protname == "ARP request for 192.0.2.1"
    assert result.text.startswith(result.protname)
    assert "ff:ff:ff:ff:ff:ff" in result.text


def test_rarp_reply_shows_mac():
    raw = b"\x02\x00\x00\x00\x00\x07"
    entry = OtherEntry(protocol=0x8035, iface="eth0", pkt_length=42,
                       is_ip=False, arp_opcode=4, rarp_src_mac=raw)
    result = format_entry(entry, show_mac=False)
    assert result.protname.startswith("RARP reply from ")
    assert result.protname.endswith(format_mac(raw))


def test_non_ip_known_and_unknown():
    known = OtherEntry(protocol=0x8137, iface="eth0", pkt_length=64, is_ip=False)
    unknown = OtherEntry(protocol=0x1234, iface="eth0", pkt_length=64, is_ip=False)
    assert "IPX" in format_entry(known, show_mac=False).protname
    assert "0x1234" in format_entry(unknown, show_mac=False).protname


def test_non_ip_without_known_link_omits_macs():
    entry = OtherEntry(protocol=0x8137, iface="ppp0", pkt_length=64,
                       is_ip=False, linkproto=512)
    assert "ppp0" not in format_entry(entry, show_mac=False).text


def test_log_message_udp():
    entry = _udp()
    msg = format_log_message(entry, "UDP", "", "", with_mac=False)
    assert msg.startswith("UDP; eth0;")
    assert "192.0.2.1:domain" in msg
    assert "(" not in msg


def test_log_message_with_description_and_mac():
    entry = OtherEntry(protocol=1, iface="eth0", pkt_length=84,
                       s_fqdn="192.0.2.1", d_fqdn="192.0.2.2",
                       smacaddr="02:00:00:00:00:01")
    msg = format_log_message(entry, "ICMP", "dest unrch", "port", with_mac=True)
    assert "source MAC address 02:00:00:00:00:01" in msg
    assert "dest unrch" in msg
    assert msg.endswith("(port)")
    plain = format_log_message(entry, "ICMP", "dest unrch", "port", with_mac=False)
    assert "source MAC address" not in plain