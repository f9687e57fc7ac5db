"""Building blocks for an IP traffic monitor: packet decoding, fragment
accounting, flow rates, packet size counts, descriptions and logging."""

__version__ = "0.1.0"