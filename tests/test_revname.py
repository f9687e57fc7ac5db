import ipaddress
import time

import pytest

from iptrafmon.revname import ResolveState, Resolver


def _wait_done(resolver, addr, timeout=15.0):
    deadline = time.monotonic() + timeout
    while True:
        name, state = resolver.revname(addr)
        if state is not ResolveState.RESOLVING or time.monotonic() > deadline:
            return name, state
        time.sleep(0.05)


def test_no_lookup_returns_numeric():
    resolver = Resolver(False)
    assert resolver.revname("192.0.2.5") == ("192.0.2.5", ResolveState.RESOLVED)


def test_no_lookup_ipv6_and_tuple():
    resolver = Resolver(False)
    addr = ipaddress.ip_address("2001:db8::1")
    assert resolver.revname(addr) == (str(addr), ResolveState.RESOLVED)
    assert resolver.revname(("192.0.2.9", 80)) == ("192.0.2.9", ResolveState.RESOLVED)


def test_invalid_address_raises():
    resolver = Resolver(False)
    with pytest.raises(ValueError):
        resolver.revname("not-an-address")


def test_async_lookup_first_returns_numeric_then_finishes():
    with Resolver(True) as resolver:
        name, state = resolver.revname("127.0.0.1")
        assert state is ResolveState.RESOLVING
        assert name == "127.0.0.1"
        final_name, final_state = _wait_done(resolver, "127.0.0.1")
        assert final_state in (ResolveState.RESOLVED, ResolveState.NOT_RESOLVED)
        assert final_name
        assert resolver.revname("127.0.0.1") == (final_name, final_state)


def test_close_disables_lookups():
    resolver = Resolver(True)
    resolver.close()
    assert resolver.lookup is False
    assert resolver.revname("192.0.2.7") == ("192.0.2.7", ResolveState.RESOLVED)