import pytest

from iptrafmon.options import Options, load_options, parse_timeout, save_options
from iptrafmon.rate import ActivityMode


def test_defaults():
    opts = Options()
    assert opts.color is True
    assert opts.v6inv4asv6 is True
    assert opts.revlook is False
    assert opts.actmode is ActivityMode.KBITS
    assert opts.timeout == 15
    assert opts.logspan == 3600
    assert opts.updrate == 0
    assert opts.closedint == 0


def test_toggle_flag():
    opts = Options()
    assert opts.toggle("revlook") is True
    assert opts.revlook is True
    assert opts.toggle("revlook") is False


def test_toggle_actmode():
    opts = Options()
    assert opts.toggle("actmode") is ActivityMode.KBYTES
    assert opts.toggle("actmode") is ActivityMode.KBITS


def test_toggle_rejects_timer():
    with pytest.raises(ValueError):
        Options().toggle("timeout")


def test_missing_file_gives_defaults(tmp_path):
    assert load_options(tmp_path / "none.conf") == Options()


def test_round_trip(tmp_path):
    path = tmp_path / "iptraf.conf"
    opts = Options(revlook=True, mac=True, color=False,
                   actmode=ActivityMode.KBYTES, timeout=3, logspan=120,
                   updrate=2, closedint=5)
    save_options(opts, path)
    assert load_options(path) == opts


def test_file_layout(tmp_path):
    path = tmp_path / "iptraf.conf"
    save_options(Options(), path)
    data = path.read_bytes()
    assert len(data) == 40
    assert data[:4] == b"\x81\x00\x00\x00"


def test_file_permissions(tmp_path):
    path = tmp_path / "iptraf.conf"
    save_options(Options(), path)
    assert path.stat().st_mode & 0o077 == 0


def test_short_file_keeps_default_timers(tmp_path):
    path = tmp_path / "iptraf.conf"
    path.write_bytes(b"\x00\x00\x00\x00")
    opts = load_options(path)
    assert opts.color is False
    assert opts.v6inv4asv6 is False
    assert opts.timeout == Options().timeout
    assert opts.logspan == Options().logspan


def test_parse_timeout_values():
    assert parse_timeout("15", False) == 15
    assert parse_timeout("0", True) == 0


@pytest.mark.parametrize("text", ["", "abc", "1x", "-5"])
def test_parse_timeout_invalid(text):
    with pytest.raises(ValueError):
        parse_timeout(text, True)


def test_parse_timeout_zero_not_allowed():
    with pytest.raises(ValueError):
        parse_timeout("0", False)