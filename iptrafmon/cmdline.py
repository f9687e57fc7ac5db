"""A small declarative command-line option parser with getopt semantics."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_USAGE_OPTS_WIDTH = 24
_USAGE_GAP = 2
_INTEGER = re.compile(r"[ \t\n\v\f\r]*[+-]?[0-9]+")


class OptionType(Enum):
    BOOL = "bool"
    GROUP = "group"
    STRING = "string"
    INTEGER = "integer"


class UsageError(Exception):
    """The command line could not be parsed."""


@dataclass(frozen=True)
class Option:
    type: OptionType
    short_name: str | None = None
    long_name: str | None = None
    dest: str | None = None
    argh: str | None = None
    help: str = ""

    @property
    def takes_argument(self):
        return self.type in (OptionType.STRING, OptionType.INTEGER)


def opt_bool(short_name, long_name, dest, help):
    return Option(OptionType.BOOL, short_name, long_name, dest, None, help)


def opt_string(short_name, long_name, dest, argh, help):
    return Option(OptionType.STRING, short_name, long_name, dest, argh, help)


def opt_integer(short_name, long_name, dest, help):
    return Option(OptionType.INTEGER, short_name, long_name, dest, "n", help)


def opt_group(help):
    return Option(OptionType.GROUP, help=help)


def opt_help(dest):
    return opt_bool("h", "help", dest, "show this help message")


def format_usage(usage, options):
    """Render the usage lines and option table as text."""
    usage = list(usage)
    lines = [f"usage: {usage[0]}\n"] if usage else []
    for extra in usage[1:]:
        if not extra:
            break
        lines.append(f"   or: {extra}\n")

    if not options or options[0].type is not OptionType.GROUP:
        lines.append("\n")

    for opt in options:
        if opt.type is OptionType.GROUP:
            lines.append("\n")
            if opt.help:
                lines.append(f"{opt.help}\n")
            continue

        head = "    "
        if opt.short_name:
            head += f"-{opt.short_name}"
        if opt.short_name and opt.long_name:
            head += ", "
        if opt.long_name:
            head += f"--{opt.long_name}"
        if opt.argh:
            head += f" <{opt.argh}>"

        if len(head) <= _USAGE_OPTS_WIDTH:
            pad = _USAGE_OPTS_WIDTH - len(head)
        else:
            head += "\n"
            pad = _USAGE_OPTS_WIDTH
        lines.append(f"{head}{' ' * (pad + _USAGE_GAP)}{opt.help}\n")

    lines.append("\n")
    return "".join(lines)


def _parse_integer(text):
    match = _INTEGER.match(text)
    if match is None:
        value, rest = 0, text
    else:
        value, rest = int(match.group()), text[match.end():]
    if rest:
        raise UsageError(f"invalid number -- {rest}")
    return value


def _apply(values, opt, argument):
    if opt.type is OptionType.BOOL:
        values[opt.dest] += 1
    elif opt.type is OptionType.INTEGER:
        values[opt.dest] = _parse_integer(argument)
    elif opt.type is OptionType.STRING:
        values[opt.dest] = argument


def _match_long(name, by_long):
    if name in by_long:
        return by_long[name]
    candidates = {opt for long_name, opt in by_long.items()
                  if long_name.startswith(name)}
    if len(candidates) == 1:
        return candidates.pop()
    if candidates:
        raise UsageError(f"option '--{name}' is ambiguous")
    raise UsageError(f"unrecognized option '--{name}'")


def parse_opts(argv, options):
    """Parse ``argv`` (without the program name) into a dict keyed by dest.

    Flags count how often they were given, integers default to 0 and
    strings to None. Arguments that are not options are ignored.
    """
    values = {}
    by_short = {}
    by_long = {}
    for opt in options:
        if opt.type is OptionType.GROUP:
            continue
        values.setdefault(opt.dest, None if opt.type is OptionType.STRING else 0)
        if opt.short_name:
            by_short[opt.short_name] = opt
        if opt.long_name:
            by_long[opt.long_name] = opt

    args = iter(argv)
    for arg in args:
        if arg == "--":
            break
        if arg.startswith("--"):
            name, has_value, inline = arg[2:].partition("=")
            opt = _match_long(name, by_long)
            if opt.takes_argument:
                argument = inline if has_value else next(args, None)
                if argument is None:
                    raise UsageError(f"option '--{opt.long_name}' requires an argument")
            elif has_value:
                raise UsageError(f"option '--{opt.long_name}' doesn't allow an argument")
            else:
                argument = None
            _apply(values, opt, argument)
        elif arg.startswith("-") and arg != "-":
            rest = arg[1:]
            while rest:
                letter, rest = rest[0], rest[1:]
                opt = by_short.get(letter)
                if opt is None:
                    raise UsageError(f"invalid option -- '{letter}'")
                argument = None
                if opt.takes_argument:
                    if rest:
                        argument, rest = rest, ""
                    else:
                        argument = next(args, None)
                        if argument is None:
                            raise UsageError(
                                f"option requires an argument -- '{letter}'")
                _apply(values, opt, argument)
    return values