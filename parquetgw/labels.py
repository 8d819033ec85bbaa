"""Label sets, label matchers and a parser for metric selectors."""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping

METRIC_NAME_LABEL = "__name__"

_METRIC_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_QUOTES = ('"', "'", "`")
_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
}
_HEX_WIDTHS = {"x": 2, "u": 4, "U": 8}
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class MatchType(enum.Enum):
    """How a matcher compares a label value."""

    EQUAL = "="
    NOT_EQUAL = "!="
    REGEX = "=~"
    NOT_REGEX = "!~"


@dataclass(frozen=True)
class Matcher:
    """A condition on the value of one label."""

    type: MatchType
    name: str
    value: str
    _regex: re.Pattern | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.type in (MatchType.REGEX, MatchType.NOT_REGEX):
            try:
                pattern = re.compile(self.value, re.DOTALL)
            except re.error as exc:
                raise ValueError(f"invalid regular expression {self.value!r}: {exc}") from exc
            object.__setattr__(self, "_regex", pattern)

    def matches(self, value: str) -> bool:
        """Return whether the label value satisfies this matcher."""
        if self.type is MatchType.EQUAL:
            return value == self.value
        if self.type is MatchType.NOT_EQUAL:
            return value != self.value
        matched = self._regex.fullmatch(value) is not None
        return matched if self.type is MatchType.REGEX else not matched

    def __str__(self) -> str:
        return f"{self.name}{self.type.value}{json.dumps(self.value, ensure_ascii=False)}"


@dataclass(frozen=True, order=True)
class Label:
    """One name/value pair of a label set."""

    name: str
    value: str


def labels_from_map(mapping: Mapping[str, str]) -> tuple[Label, ...]:
    """Build a label set sorted by label name."""
    return tuple(sorted(Label(name, value) for name, value in mapping.items()))


class _Scanner:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str) -> ValueError:
        return ValueError(f"{message} at position {self.pos} in {self.text!r}")

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def take(self, pattern: re.Pattern) -> str | None:
        match = pattern.match(self.text, self.pos)
        if match is None:
            return None
        self.pos = match.end()
        return match.group()

    def take_literal(self, literal: str) -> bool:
        if self.text.startswith(literal, self.pos):
            self.pos += len(literal)
            return True
        return False

    def string(self) -> str:
        quote = self.peek()
        if quote == "`":
            end = self.text.find("`", self.pos + 1)
            if end < 0:
                raise self.error("unterminated raw string")
            value = self.text[self.pos + 1 : end]
            self.pos = end + 1
            return value
        if quote not in ('"', "'"):
            raise self.error("expected quoted string")
        self.pos += 1
        out: list[str] = []
        while True:
            if self.pos >= len(self.text):
                raise self.error("unterminated quoted string")
            char = self.text[self.pos]
            self.pos += 1
            if char == quote:
                return "".join(out)
            if char == "\n":
                raise self.error("newline in quoted string")
            out.append(self._escape(quote) if char == "\\" else char)

    def _escape(self, quote: str) -> str:
        char = self.peek()
        if not char:
            raise self.error("unterminated escape sequence")
        self.pos += 1
        if char == quote:
            return char
        if char in _ESCAPES:
            return _ESCAPES[char]
        width = _HEX_WIDTHS.get(char)
        if width is not None:
            digits = self.text[self.pos : self.pos + width]
            if len(digits) != width or not set(digits) <= _HEX_DIGITS:
                raise self.error(f"invalid escape sequence \\{char}")
            self.pos += width
            try:
                return chr(int(digits, 16))
            except ValueError as exc:
                raise self.error(f"invalid code point {digits}") from exc
        if char in "01234567":
            digits = self.text[self.pos - 1 : self.pos + 2]
            if len(digits) != 3 or not set(digits) <= set("01234567"):
                raise self.error("invalid octal escape sequence")
            self.pos += 2
            return chr(int(digits, 8))
        raise self.error(f"unknown escape sequence \\{char}")


def _parse_matcher(scanner: _Scanner, existing: list[Matcher]) -> Matcher:
    if scanner.peek() in _QUOTES:
        label = scanner.string()
        scanner.skip_ws()
        if scanner.peek() in (",", "}"):
            if any(m.name == METRIC_NAME_LABEL for m in existing):
                raise ValueError(f"metric name must not be set twice in {scanner.text!r}")
            return Matcher(MatchType.EQUAL, METRIC_NAME_LABEL, label)
    else:
        label = scanner.take(_LABEL_NAME_RE)
        if label is None:
            raise scanner.error("expected label name")
        scanner.skip_ws()
    for op in (MatchType.REGEX, MatchType.NOT_REGEX, MatchType.NOT_EQUAL, MatchType.EQUAL):
        if scanner.take_literal(op.value):
            break
    else:
        raise scanner.error("expected label matching operator")
    scanner.skip_ws()
    if scanner.peek() not in _QUOTES:
        raise scanner.error("expected quoted label value")
    return Matcher(op, label, scanner.string())


def _parse_matcher_block(scanner: _Scanner) -> list[Matcher]:
    matchers: list[Matcher] = []
    while True:
        scanner.skip_ws()
        if scanner.take_literal("}"):
            return matchers
        matchers.append(_parse_matcher(scanner, matchers))
        scanner.skip_ws()
        if scanner.take_literal(","):
            continue
        if scanner.take_literal("}"):
            return matchers
        raise scanner.error("expected ',' or '}'")


def parse_metric_selector(text: str) -> list[Matcher]:
    """Parse a selector such as ``up{job="api"}`` into its matchers."""
    scanner = _Scanner(text)
    scanner.skip_ws()
    name = scanner.take(_METRIC_NAME_RE)
    scanner.skip_ws()
    matchers: list[Matcher] = []
    if scanner.take_literal("{"):
        matchers = _parse_matcher_block(scanner)
    elif name is None:
        raise scanner.error("expected metric name or '{'")
    scanner.skip_ws()
    if scanner.peek():
        raise scanner.error("unexpected character")
    if name is not None:
        if any(m.name == METRIC_NAME_LABEL for m in matchers):
            raise ValueError(f"metric name must not be set twice in {text!r}")
        matchers.append(Matcher(MatchType.EQUAL, METRIC_NAME_LABEL, name))
    if all(m.matches("") for m in matchers):
        raise ValueError("vector selector must contain at least one non-empty matcher")
    return matchers


def parse_metric_selectors(texts: Iterable[str]) -> list[list[Matcher]]:
    """Parse several selectors, one matcher list per selector."""
    return [parse_metric_selector(text) for text in texts]


class MatcherList(list):
    """A list of matchers that grows by parsing selectors, as used by flags."""

    def add(self, value: str) -> None:
        """Parse a selector and append its matchers."""
        self.extend(parse_metric_selector(value))

    def __str__(self) -> str:
        return "".join(f"{matcher}," for matcher in self)