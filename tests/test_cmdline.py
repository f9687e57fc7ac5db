import pytest

from iptrafmon.cmdline import (
    OptionType,
    UsageError,
    format_usage,
    opt_bool,
    opt_group,
    opt_help,
    opt_integer,
    opt_string,
    parse_opts,
)

OPTIONS = [
    opt_help("help"),
    opt_group(""),
    opt_string("i", None, "iface", "iface", "start the IP traffic monitor"),
    opt_bool("g", None, "general", "start the general interface statistics"),
    opt_bool("B", None, "background", "run in background"),
    opt_integer("t", None, "minutes",
                "run only for the specified <n> number of minutes"),
    opt_string("L", "logfile", "logfile", "logfile",
               "specifies an alternate log file"),
]


def test_defaults():
    assert parse_opts([], OPTIONS) == {
        "help": 0,
        "iface": None,
        "general": 0,
        "background": 0,
        "minutes": 0,
        "logfile": None,
    }


def test_string_separate_and_attached():
    assert parse_opts(["-i", "eth0"], OPTIONS)["iface"] == "eth0"
    assert parse_opts(["-ieth0"], OPTIONS)["iface"] == "eth0"


def test_clustered_flags():
    values = parse_opts(["-gB"], OPTIONS)
    assert values["general"] == 1
    assert values["background"] == 1


def test_repeated_flag_counts():
    assert parse_opts(["-g", "-g"], OPTIONS)["general"] == 2


def test_integer_option():
    assert parse_opts(["-t", "5"], OPTIONS)["minutes"] == 5


def test_bad_integer():
    with pytest.raises(UsageError, match="invalid number"):
        parse_opts(["-t", "5x"], OPTIONS)


def test_unknown_option():
    with pytest.raises(UsageError):
        parse_opts(["-q"], OPTIONS)


def test_missing_argument():
    with pytest.raises(UsageError):
        parse_opts(["-i"], OPTIONS)


def test_long_options_and_prefixes():
    assert parse_opts(["--help"], OPTIONS)["help"] == 1
    assert parse_opts(["--he"], OPTIONS)["help"] == 1
    assert parse_opts(["--logfile=x.log"], OPTIONS)["logfile"] == "x.log"
    assert parse_opts(["--logfile", "y.log"], OPTIONS)["logfile"] == "y.log"


def test_long_flag_rejects_value():
    with pytest.raises(UsageError):
        parse_opts(["--help=yes"], OPTIONS)


def test_positionals_ignored_and_double_dash_stops():
    values = parse_opts(["extra", "-g", "--", "-B"], OPTIONS)
    assert values["general"] == 1
    assert values["background"] == 0


def test_option_helpers():
    assert opt_integer("t", None, "m", "x").argh == "n"
    assert opt_help("h").type is OptionType.BOOL
    assert opt_help("h").long_name == "help"


def test_usage_header_and_alignment():
    text = format_usage(["prog", "prog -B", ""], OPTIONS)
    assert text.startswith("usage: prog\n   or: prog -B\n\n")
    help_line = next(line for line in text.splitlines()
                     if "show this help message" in line)
    assert help_line.index("show this help message") == 26
    assert "-t <n>" in text
    assert text.endswith("\n\n")


def test_usage_long_option_wraps():
    opts = [opt_string("x", "a-very-long-option-name", "x", "value", "long help")]
    text = format_usage(["prog"], opts)
    assert "--a-very-long-option-name <value>\n" in text
    assert "\n" + " " * 26 + "long help\n" in text


def test_usage_group_heading():
    text = format_usage(["prog"], [opt_group("Logging"), opt_bool("g", None, "g", "x")])
    assert "\nLogging\n" in text