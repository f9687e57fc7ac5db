"""Parsing of user-entered IP protocol numbers and ranges, e.g. ``1,6-17``."""

import re
from enum import IntEnum

_TOKEN_MAX = 5
_SPACES = " \t\n\v\f\r"
_NUMBER = re.compile(r"\+?[0-9]+")
_MAX_PROTO = 255


class ParseResult(IntEnum):
    RANGE_OK = 0
    COMMA_EXPECTED = 1
    INVALID_RANGE = 2
    OUT_OF_RANGE = 4
    NO_MORE_TOKENS = 5


class ProtoRangeError(ValueError):
    """A protocol list could not be parsed; ``bad_token`` shows where."""

    def __init__(self, result, bad_token):
        self.result = ParseResult(result)
        self.bad_token = bad_token
        reason = self.result.name.lower().replace("_", " ")
        super().__init__(f"{reason}: {bad_token!r}")


class _Tokenizer:
    def __init__(self, text):
        self.text = text.split("\0", 1)[0]
        self.pos = 0

    def next(self):
        text, start = self.text, self.pos
        if start < len(text) and text[start] in ",-":
            self.pos += 1
            return text[start]
        end = start
        while end < len(text) and text[end] not in _SPACES and text[end] not in ",-":
            end += 1
        self.pos = end
        return text[start:end][:_TOKEN_MAX]


def _parse_number(token):
    if _NUMBER.fullmatch(token) is None:
        return None
    return int(token)


def iter_proto_ranges(text):
    """Yield ``(low, high)`` pairs from a protocol list.

    ``high`` is 0 for a single protocol. Parsing stops at the end of the
    text or at the first whitespace. Raises ProtoRangeError on bad input.
    """
    tokens = _Tokenizer(text)
    while True:
        first = tokens.next()
        if not first:
            return

        separator = tokens.next()
        second = 0
        if separator == "-":
            right = tokens.next()
            if not right:
                raise ProtoRangeError(ParseResult.INVALID_RANGE, "-")
            second = _parse_number(right)
            if second is None:
                raise ProtoRangeError(ParseResult.INVALID_RANGE, right)
            error = None
            if second > _MAX_PROTO:
                error = ProtoRangeError(ParseResult.OUT_OF_RANGE, right)
            following = tokens.next()
            if following and following != ",":
                error = ProtoRangeError(ParseResult.COMMA_EXPECTED, following)
            if error is not None:
                raise error
        elif separator not in ("", ","):
            raise ProtoRangeError(ParseResult.COMMA_EXPECTED, separator)

        low = _parse_number(first)
        if low is None:
            raise ProtoRangeError(ParseResult.INVALID_RANGE, first)
        if low > _MAX_PROTO:
            raise ProtoRangeError(ParseResult.OUT_OF_RANGE, first)

        if second and low > second:
            low, second = second, low
        yield low, second


def validate_ranges(text):
    """Return every range in ``text``, raising ProtoRangeError if any is bad."""
    return list(iter_proto_ranges(text))