"""Parsing of query parameters: timestamps, durations, limits and matchers."""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Mapping, Sequence, Union

from parquetgw.labels import Matcher, parse_metric_selectors

Form = Mapping[str, Union[str, Sequence[str]]]

_INT64_MAX = (1 << 63) - 1
_INT64_MIN = -(1 << 63)
_NANOS_PER_SECOND = 1_000_000_000

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_RE = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_SPECIAL_RE = re.compile(r"[+-]?(?:inf|infinity|nan)", re.IGNORECASE)
_INT_RE = re.compile(r"[+-]?[0-9]+")
_RFC3339_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})"
    r"(?:\.([0-9]+))?(Z|[+-][0-9]{2}:[0-9]{2})"
)

_MILLI = 1_000_000
_DURATION_UNITS = {
    "ms": (0, _MILLI),
    "s": (1, 1000 * _MILLI),
    "m": (2, 60 * 1000 * _MILLI),
    "h": (3, 60 * 60 * 1000 * _MILLI),
    "d": (4, 24 * 60 * 60 * 1000 * _MILLI),
    "w": (5, 7 * 24 * 60 * 60 * 1000 * _MILLI),
    "y": (6, 365 * 24 * 60 * 60 * 1000 * _MILLI),
}
_DURATION_TOKEN_RE = re.compile(r"([0-9]*)([^0-9]*)")


class ParamError(ValueError):
    """Raised when a request parameter cannot be parsed."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _form_values(form: Form, key: str) -> list[str]:
    value = form.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _form_value(form: Form, key: str) -> str:
    values = _form_values(form, key)
    return values[0] if values else ""


def _parse_float(text: str) -> float | None:
    if _SPECIAL_RE.fullmatch(text):
        return float(text)
    if _HEX_RE.fullmatch(text):
        try:
            value = float.fromhex(text)
        except OverflowError:
            return None
    elif _DECIMAL_RE.fullmatch(text):
        value = float(text)
    else:
        return None
    return None if math.isinf(value) else value


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _parse_rfc3339(text: str) -> datetime | None:
    match = _RFC3339_RE.fullmatch(text)
    if match is None:
        return None
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, zone = match.group(7), match.group(8)
    micros = int(fraction[:6].ljust(6, "0")) if fraction else 0
    try:
        if zone == "Z":
            tz = timezone.utc
        else:
            hours, minutes = int(zone[1:3]), int(zone[4:6])
            if minutes >= 60:
                return None
            offset = timedelta(hours=hours, minutes=minutes)
            tz = timezone(-offset if zone[0] == "-" else offset)
        return datetime(year, month, day, hour, minute, second, micros, tzinfo=tz)
    except ValueError:
        return None


def parse_time(text: str) -> datetime:
    """Parse a Unix timestamp in seconds (millisecond precision) or an RFC 3339 time."""
    number = _parse_float(text)
    if number is not None:
        if not math.isfinite(number):
            raise ParamError(f"cannot parse {_quote(text)} to a valid timestamp")
        fraction, whole = math.modf(number)
        millis = _round_half_away(fraction * 1000)
        try:
            return _EPOCH + timedelta(seconds=int(whole), milliseconds=millis)
        except OverflowError as exc:
            raise ParamError(f"cannot parse {_quote(text)} to a valid timestamp") from exc
    parsed = _parse_rfc3339(text)
    if parsed is not None:
        return parsed
    raise ParamError(f"cannot parse {_quote(text)} to a valid timestamp")


def parse_time_param(form: Form, param: str, default: datetime) -> datetime:
    """Parse a time parameter, falling back to default when it is absent or empty."""
    value = _form_value(form, param)
    if value == "":
        return default
    try:
        return parse_time(value)
    except ParamError as exc:
        raise ParamError(f"invalid time value for '{param}': {exc}") from exc


def _parse_prometheus_duration(text: str) -> int:
    """Parse a duration such as ``1h30m`` and return it in nanoseconds."""
    if text == "0":
        return 0
    if text == "":
        raise ParamError("empty duration string")
    total = 0
    last_pos = len(_DURATION_UNITS)
    rest = text
    while rest:
        match = _DURATION_TOKEN_RE.match(rest)
        digits, unit_text = match.group(1), match.group(2)
        if not digits or not unit_text:
            raise ParamError(f"not a valid duration string: {_quote(text)}")
        unit = _DURATION_UNITS.get(unit_text)
        if unit is None:
            raise ParamError(f"unknown unit {_quote(unit_text)} in duration {_quote(text)}")
        pos, mult = unit
        if pos >= last_pos:
            raise ParamError(f"not a valid duration string: {_quote(text)}")
        last_pos = pos
        amount = int(digits)
        if amount > (1 << 63) // mult:
            raise ParamError(f"invalid value {_quote(digits)} for unit {_quote(unit_text)}")
        total += amount * mult
        if total > _INT64_MAX:
            raise ParamError(f"duration {_quote(text)} overflows")
        rest = rest[match.end():]
    return total


def parse_duration(text: str) -> timedelta:
    """Parse a duration given as float seconds or in the ``1h30m`` form."""
    number = _parse_float(text)
    if number is not None and not math.isnan(number):
        nanos = number * _NANOS_PER_SECOND
        if nanos > float(_INT64_MAX) or nanos < float(_INT64_MIN):
            raise ParamError(
                f"cannot parse {_quote(text)} to a valid duration. It overflows int64"
            )
        return timedelta(seconds=number)
    try:
        nanos = _parse_prometheus_duration(text)
    except ParamError as exc:
        raise ParamError(f"cannot parse {_quote(text)} to a valid duration") from exc
    return timedelta(microseconds=nanos // 1000)


def parse_duration_param(form: Form, param: str, default: timedelta) -> timedelta:
    """Parse a duration parameter, falling back to default when it is absent or empty."""
    value = _form_value(form, param)
    if value == "":
        return default
    try:
        return parse_duration(value)
    except ParamError as exc:
        raise ParamError(f"invalid duration value for '{param}': {exc}") from exc


def parse_limit_param(form: Form) -> int:
    """Parse the ``limit`` parameter; absent means 0, which is no limit."""
    value = _form_value(form, "limit")
    if value == "":
        return 0
    if not _INT_RE.fullmatch(value):
        raise ParamError(f"cannot parse {_quote(value)} to a valid limit")
    limit = int(value)
    if not _INT64_MIN <= limit <= _INT64_MAX:
        raise ParamError(f"cannot parse {_quote(value)} to a valid limit")
    if limit < 0:
        raise ParamError("limit must be non-negative")
    return limit


def _parse_matcher_sets(selectors: list[str]) -> list[list[Matcher]]:
    try:
        matcher_sets = parse_metric_selectors(selectors)
    except ValueError as exc:
        raise ParamError(str(exc)) from exc
    for matchers in matcher_sets:
        if all(matcher.matches("") for matcher in matchers):
            raise ParamError("match[] must contain at least one non-empty matcher")
    return matcher_sets


def parse_matchers_for_series(form: Form) -> list[list[Matcher]]:
    """Parse the required ``match[]`` selectors of a series request."""
    selectors = _form_values(form, "match[]")
    if not selectors:
        raise ParamError("no match[] parameter provided")
    return _parse_matcher_sets(selectors)


def parse_matchers_for_labels(form: Form) -> list[list[Matcher]]:
    """Parse the optional ``match[]`` selectors of a label names or values request."""
    return _parse_matcher_sets(_form_values(form, "match[]"))