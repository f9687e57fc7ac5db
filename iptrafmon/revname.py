"""Reverse DNS lookups that run in the background.

Until a lookup finishes the numeric address is handed out, so callers
never wait on the network.
"""

from __future__ import annotations

import ipaddress
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

_WORKERS = 4


class ResolveState(Enum):
    """How far the lookup of an address has come."""

    RESOLVED = "resolved"
    RESOLVING = "resolving"
    NOT_RESOLVED = "not resolved"


def _to_ip(addr):
    if isinstance(addr, tuple):
        addr = addr[0]
    if isinstance(addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return addr
    return ipaddress.ip_address(addr)


def _lookup(ip):
    numeric = str(ip)
    try:
        name = socket.gethostbyaddr(numeric)[0]
    except (OSError, UnicodeError):
        return numeric, ResolveState.NOT_RESOLVED
    return name, ResolveState.RESOLVED


class Resolver:
    """Turns IP addresses into host names, resolving asynchronously."""

    def __init__(self, lookup):
        self.lookup = bool(lookup)
        self._lock = threading.Lock()
        self._cache = {}
        self._pending = {}
        self._executor = (ThreadPoolExecutor(max_workers=_WORKERS,
                                             thread_name_prefix="revname")
                          if self.lookup else None)

    def revname(self, addr):
        """Return ``(name, state)`` for an address string, object or sockaddr tuple."""
        ip = _to_ip(addr)
        numeric = str(ip)
        if not self.lookup:
            return numeric, ResolveState.RESOLVED
        with self._lock:
            cached = self._cache.get(ip)
            if cached is not None:
                return cached
            future = self._pending.get(ip)
            if future is None:
                self._pending[ip] = self._executor.submit(_lookup, ip)
            elif future.done():
                del self._pending[ip]
                result = future.result()
                self._cache[ip] = result
                return result
        return numeric, ResolveState.RESOLVING

    def close(self):
        """Stop looking up names; later calls return numeric addresses."""
        self.lookup = False
        with self._lock:
            executor, self._executor = self._executor, None
            self._pending.clear()
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()