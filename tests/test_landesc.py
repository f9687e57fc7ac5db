import pytest

from iptrafmon.landesc import (
    HostDescriptions,
    check_mac_addr,
    load_eth_desc,
    save_eth_desc,
)

MAC1 = "02:00:00:00:00:01"
MAC2 = "02:00:00:00:00:02"


@pytest.mark.parametrize("mac", [MAC1, "0A:bc:DE:f0:12:34"])
def test_valid_mac(mac):
    assert check_mac_addr(mac) is True


@pytest.mark.parametrize("mac", ["", "02:00:00:00:00", "02:00:00:00:00:0g",
                                 "02-00-00-00-00-01", "02:00:00:00:00:011"])
def test_invalid_mac(mac):
    assert check_mac_addr(mac) is False


def test_parse_skips_comments_and_blank_lines():
    descs = HostDescriptions()
    messages = descs.parse(["# comment\n", "\n", f"{MAC1} router\n"])
    assert messages == []
    assert list(descs) == [(MAC1, "router")]


def test_parse_strips_leading_whitespace_of_description():
    descs = HostDescriptions()
    descs.parse([f"{MAC1}\t   printer\n"])
    assert list(descs) == [(MAC1, "printer")]


def test_parse_reports_bad_lines():
    descs = HostDescriptions()
    messages = descs.parse(["zz:00:00:00:00:01 x\n", f"{MAC1}x\n", f"{MAC2}   \n"])
    assert len(descs) == 0
    assert messages[0] == "Not a mac 'zz:00:00:00:00:01' address, skipped"
    assert messages[2] == "Missing description, skipped"
    assert descs.skipped == messages


def test_parse_ignores_duplicates():
    descs = HostDescriptions()
    descs.parse([f"{MAC1} alpha\n", f"{MAC1} beta\n", f"{MAC2} alpha\n"])
    assert list(descs) == [(MAC1, "alpha")]


def test_add_and_remove():
    descs = HostDescriptions()
    descs.add(MAC1, "one")
    descs.add(MAC2, "two")
    descs.remove(MAC1)
    assert list(descs) == [(MAC2, "two")]
    with pytest.raises(KeyError):
        descs.remove(MAC1)


def test_load_merges_files(tmp_path):
    own = tmp_path / "ethernet.desc"
    ethers = tmp_path / "ethers"
    own.write_text(f"{MAC1} gateway\n")
    ethers.write_text(f"{MAC1} other\n{MAC2} laptop\n")
    descs = load_eth_desc(own, ethers)
    assert list(descs) == [(MAC1, "gateway"), (MAC2, "laptop")]


def test_load_missing_files(tmp_path):
    descs = load_eth_desc(tmp_path / "a", tmp_path / "b")
    assert len(descs) == 0


def test_save_and_reload(tmp_path):
    path = tmp_path / "ethernet.desc"
    descs = HostDescriptions()
    descs.add(MAC1, "gateway")
    descs.add(MAC2, "laptop")
    save_eth_desc(descs, path)
    assert path.read_text().startswith("# see man ethers for syntax\n\n")
    again = load_eth_desc(path, tmp_path / "none")
    assert list(again) == list(descs)