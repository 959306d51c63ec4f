#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Parsing of the RFC 5545 `RRULE`/`EXRULE` value syntax, the inverse of
`recur.rule.RRule.to_text`."""

import datetime
import logging
import re
from collections.abc import Callable
from typing import Any

from recur.constants import (
    PART_SEPARATOR,
    RULE_PREFIXES,
    UNTIL_DATE_FORMAT,
    UNTIL_DATETIME_FORMAT,
    UTC_SUFFIX,
    VALUE_SEPARATOR,
)
from recur.exceptions import InvalidConfiguration, ParseError
from recur.rule import RRule
from recur.vocabulary import Frequency, Weekday, WeekdayNum
from recur.zones import UTC, resolve_zone

logger = logging.getLogger(__name__)

BYDAY_REGEX = r"^([+-]?\d{1,2})?(MO|TU|WE|TH|FR|SA|SU)$"
"""Pattern that matches a weekday with an optional ordinal, eg `-1FR`."""
UNTIL_REGEX = r"^\d{8}(T\d{6}Z?)?$"


def _integer(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ParseError(f"Expected an integer, got {value!r}")


def _integers(value: str) -> tuple[int, ...]:
    return tuple(_integer(item) for item in value.split(VALUE_SEPARATOR))


def _frequency(value: str) -> Frequency:
    try:
        return Frequency(value.lower())
    except ValueError:
        raise ParseError(f"Unknown frequency: {value!r}")


def _weekday(value: str) -> Weekday:
    try:
        return Weekday[value.upper()]
    except KeyError:
        raise ParseError(f"Unknown weekday: {value!r}")


def _weekday_nums(value: str) -> tuple[WeekdayNum, ...]:
    days = []
    for item in value.split(VALUE_SEPARATOR):
        match = re.match(BYDAY_REGEX, item.strip().upper())
        if match is None:
            raise ParseError(f"Invalid BYDAY value: {item!r}")
        ordinal, weekday = match.groups()
        days.append(WeekdayNum(int(ordinal or 0), Weekday[weekday]))
    return tuple(days)


def _until(value: str) -> datetime.date | datetime.datetime:
    value = value.upper()
    if re.match(UNTIL_REGEX, value) is None:
        raise ParseError(f"Invalid UNTIL value: {value!r}")
    try:
        if "T" not in value:
            return datetime.datetime.strptime(value, UNTIL_DATE_FORMAT).date()
        until = datetime.datetime.strptime(
            value.removesuffix(UTC_SUFFIX), UNTIL_DATETIME_FORMAT
        )
    except ValueError:
        raise ParseError(f"Invalid UNTIL value: {value!r}")
    return until.replace(tzinfo=UTC) if value.endswith(UTC_SUFFIX) else until


_PARTS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "FREQ": ("freq", _frequency),
    "INTERVAL": ("interval", _integer),
    "COUNT": ("count", _integer),
    "UNTIL": ("until", _until),
    "WKST": ("wkst", _weekday),
    "BYSETPOS": ("bysetpos", _integers),
    "BYMONTH": ("bymonth", _integers),
    "BYMONTHDAY": ("bymonthday", _integers),
    "BYYEARDAY": ("byyearday", _integers),
    "BYWEEKNO": ("byweekno", _integers),
    "BYDAY": ("byday", _weekday_nums),
    "BYHOUR": ("byhour", _integers),
    "BYMINUTE": ("byminute", _integers),
    "BYSECOND": ("bysecond", _integers),
}
"""Maps the name of each rule part to the `RRule` field it sets and its parser."""


def parse_rule(text: str, zone: datetime.tzinfo | str | None = None) -> RRule:
    """
    Parse an RFC 5545 recurrence rule, eg `FREQ=MONTHLY;BYDAY=-1FR;COUNT=12`.

    Parameters
    ----------
    text
        The rule value, optionally prefixed by `RRULE:` or `EXRULE:`. Part names are
        case-insensitive and parts may come in any order.
    zone
        The zone of the parsed rule, in which a floating `UNTIL` is read. Defaults to
        UTC.

    Raises
    ------
    ParseError if the text is malformed, has unknown or repeated parts, lacks `FREQ`,
    sets both `COUNT` and `UNTIL` or contains values outside their range.
    """
    body = text.strip()
    for prefix in RULE_PREFIXES:
        if body.upper().startswith(prefix):
            body = body[len(prefix) :]
            break

    values: dict[str, str] = {}
    for part in body.split(PART_SEPARATOR):
        if not part.strip():
            continue
        name, separator, value = part.partition("=")
        name = name.strip().upper()
        if not separator or not value.strip():
            raise ParseError(f"Malformed rule part: {part!r}")
        if name not in _PARTS:
            raise ParseError(f"Unknown rule part: {name}")
        if name in values:
            raise ParseError(f"Rule part {name} is repeated")
        values[name] = value.strip()

    if "FREQ" not in values:
        raise ParseError(f"Rule has no FREQ part: {text!r}")
    if "COUNT" in values and "UNTIL" in values:
        raise ParseError("Both COUNT and UNTIL cannot be set. Choose one.")

    fields: dict[str, Any] = {"zone": UTC if zone is None else resolve_zone(zone)}
    for name, value in values.items():
        field, parse = _PARTS[name]
        fields[field] = parse(value)
    try:
        rule = RRule(**fields)
    except InvalidConfiguration as e:
        raise ParseError(str(e)) from e
    logger.debug(f"Parsed {text!r} into {rule.to_text()}")
    return rule
