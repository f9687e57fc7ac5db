# iptrafmon

`iptrafmon` is a library of parts for building an IP traffic monitor. You give
it packets that you have captured. It decodes them, accounts for fragments,
counts them and formats them for display or for a log file.

## What is inside

- `iptrafmon.packet`: `Packet` holds a captured frame with its link type
  (`hatype`), its protocol number and its on-wire length.
  `PacketProcessor.process` skips the link-layer header. It knows Ethernet,
  loopback, FDDI, SLIP/PPP, tunnels, frame relay and InfiniBand, and it removes
  802.1Q, QinQ and 802.1ad VLAN tags. It checks the IPv4 header checksum and
  finds TCP/UDP ports. It can treat IPv6-in-IPv4 as IPv6 if you ask it to. The
  optional `ip_filter` and `nonip_filter` callables decide which packets are
  kept. The method returns a `ProcessResult`, which holds a `PacketResult`
  together with the ports and the byte count. `verify_ipv4_checksum` checks a
  header on its own. `packet_dump` returns an annotated hex dump as a string.
  `pkttype_name`, `l2_type_name` and `l3_proto_name` give the symbolic names of
  numeric identifiers.
- `iptrafmon.ipfrag`: `FragmentTracker` keeps one hole list per datagram, as in
  RFC 815. It adds up the sizes of the fragments of an IPv4 datagram and reports
  the total in a `FragmentResult` once the first fragment, which carries the
  ports, has arrived. `IPv4Header.from_bytes` decodes the fields it needs.
- `iptrafmon.rate`: `Rate` is a simple moving average of bytes per second over
  the last `n` samples. `format_rate`, `format_rate_no_units` and
  `format_rate_pps` format rates in bits or in bytes, chosen with
  `ActivityMode`, using k/M/G/... suffixes.
- `iptrafmon.parseproto`: parses protocol lists such as `1,6-17,89`.
  `iter_proto_ranges` yields `(low, high)` pairs, and `high` is 0 for a single
  protocol. `validate_ranges` returns them all as a list. A bad token raises
  `ProtoRangeError`, whose `result` is a `ParseResult` and whose `bad_token`
  shows the token that failed.
- `iptrafmon.cmdline`: a small getopt-style option parser. You declare options
  with `opt_bool`, `opt_string`, `opt_integer`, `opt_group` and `opt_help`.
  `parse_opts` returns a dict keyed by each option's `dest`, and it raises
  `UsageError` on a bad command line. `format_usage` builds the help text.
- `iptrafmon.log`: `TrafficLog` appends timestamped lines to a file. It can
  reopen the file at a new path with `request_rotate` followed by
  `check_rotate`, and it is a context manager. `gen_instance_logname`,
  `genatime` and `write_daemon_err` name log files, format timestamps and
  append daemon error messages.
- `iptrafmon.options`: `Options` holds the program settings, and `toggle`
  flips its on/off settings. `load_options` and `save_options` read and write a
  small binary settings file. `parse_timeout` checks a timer value that a user
  has typed.
- `iptrafmon.landesc`: MAC address descriptions in `ethers` format.
  `HostDescriptions` holds them and records the lines it skipped. It parses,
  adds and removes entries. `load_eth_desc` merges a descriptions file with the
  system ethers file, and `save_eth_desc` writes one. `check_mac_addr`
  validates an address.
- `iptrafmon.othpdesc`: `OtherEntry` describes one non-TCP packet. Supported
  packets are UDP, ICMP, ICMPv6, OSPF, ARP, RARP and other link-layer frames.
  `format_entry` builds the display line and `format_log_message` builds the
  log line. `icmp_description`, `icmp6_description`, `ospf_description`,
  `packet_lookup` and `format_mac` are the helpers behind them.
- `iptrafmon.othptab`: `OtherProtoTable` keeps the most recent entries (512 by
  default) and numbers each one as it is added. `entry_from_packet` builds an
  `OtherEntry` from a processed `Packet`.
- `iptrafmon.revname`: `Resolver.revname` returns a host name and a
  `ResolveState`. Lookups run in background threads. Until a lookup finishes,
  and whenever lookups are turned off, you get the numeric address instead.
- `iptrafmon.pktsize`: `SizeDistribution` counts incoming and outgoing packets
  in twenty size brackets sized from the MTU, plus one bracket for larger
  packets. `format_log` writes a text report.

## Example

```python
from iptrafmon.packet import ARPHRD_ETHER, ETH_P_IP, Packet, PacketProcessor
from iptrafmon.pktsize import SizeDistribution
from iptrafmon.rate import ActivityMode, Rate, format_rate

rate = Rate(5)
rate.add_rate(150_000, 1000)   # 150 kB seen over the last 1000 ms
print(format_rate(rate.average, ActivityMode.KBITS))

sizes = SizeDistribution(1500)
sizes.update(64, outgoing=False)
sizes.update(1500, outgoing=True)
print(sizes.format_log("eth0", 60, 0))

processor = PacketProcessor()
# frame = bytes of an Ethernet frame you captured
# result = processor.process(Packet(frame, ETH_P_IP, ARPHRD_ETHER))
```

## What it does not do

The package does not capture packets, change interface modes or draw any
screen. It also has no command to run. Capturing frames, driving the display
and reading the keyboard are left to the program that uses these parts.

## Requirements

Python 3.10 or newer. The package uses only the standard library.