#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""An immutable RFC 5545 recurrence rule with a fluent builder.

Start from a frequency and chain builder calls, each of which returns a new rule::

    rule = RRule.of(Frequency.DAILY).by_week_day(TU, TH).with_count(3)

Attach a start to obtain the occurrences::

    occurrences = list(rule.from_(datetime.datetime(2007, 1, 1)))

Rules can be joined with, or have exceptions taken from, other rules::

    rule = RRule.of(Frequency.DAILY).by_week_day(TU, TH).join(
        RRule.of(Frequency.DAILY).by_week_day(MO)
    )
"""

import dataclasses
import datetime
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from itertools import islice

from recur.combinator import difference, union
from recur.constants import (
    BY_HOUR_RANGE,
    BY_MINUTE_RANGE,
    BY_MONTH_DAY_RANGE,
    BY_MONTH_RANGE,
    BY_SECOND_RANGE,
    BY_SET_POS_RANGE,
    BY_WEEK_NO_RANGE,
    BY_YEAR_DAY_RANGE,
    MAX_IDLE_YEARS,
    PART_SEPARATOR,
    UTC_SUFFIX,
    VALUE_SEPARATOR,
    WEEKDAY_ORDINAL_RANGE,
)
from recur.exceptions import InvalidConfiguration, RecurrenceExhausted
from recur.expansion import expand
from recur.vocabulary import Frequency, Weekday, WeekdayNum
from recur.zones import UTC, localize, project, resolve_zone, to_frame

logger = logging.getLogger(__name__)

Instant = datetime.date | datetime.datetime
"""A start or until value. Naive datetimes are wall-clock times in the rule zone."""

_SIGNED_FILTERS = {
    "bysetpos": BY_SET_POS_RANGE,
    "bymonthday": BY_MONTH_DAY_RANGE,
    "byyearday": BY_YEAR_DAY_RANGE,
    "byweekno": BY_WEEK_NO_RANGE,
}
_UNSIGNED_FILTERS = {
    "bymonth": BY_MONTH_RANGE,
    "byhour": BY_HOUR_RANGE,
    "byminute": BY_MINUTE_RANGE,
    "bysecond": BY_SECOND_RANGE,
}


def _check_integers(name: str, values: tuple, bounds: tuple[int, int], signed: bool):
    low, high = bounds
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidConfiguration(f"{name} values must be integers, got {value!r}")
        if not low <= (abs(value) if signed else value) <= high:
            allowed = f"±[{low}, {high}]" if signed else f"[{low}, {high}]"
            raise InvalidConfiguration(f"{name} value {value} is outside {allowed}")


def _as_weekday_num(day: Weekday | WeekdayNum) -> WeekdayNum:
    if isinstance(day, WeekdayNum):
        ordinal, weekday = day
    elif isinstance(day, int) and not isinstance(day, bool):
        ordinal, weekday = 0, day
    else:
        raise InvalidConfiguration(f"Expected a weekday, got {day!r}")
    try:
        weekday = Weekday(weekday)
    except ValueError:
        raise InvalidConfiguration(f"Invalid weekday: {weekday!r}")
    if ordinal and not 1 <= abs(ordinal) <= WEEKDAY_ORDINAL_RANGE[1]:
        raise InvalidConfiguration(f"Weekday ordinal {ordinal} is outside ±[1, 53]")
    return WeekdayNum(ordinal, weekday)


def format_until(until: Instant, zone: datetime.tzinfo) -> str:
    """Format an `UNTIL` value: a date, or a time converted to UTC.

    A naive `until` is read on the wall clock of `zone`.
    """
    if not isinstance(until, datetime.datetime):
        return f"{until.year:04d}{until.month:02d}{until.day:02d}"
    if until.tzinfo is None:
        until = localize(until, zone)
    until = until.astimezone(UTC)
    return (
        f"{until.year:04d}{until.month:02d}{until.day:02d}"
        f"T{until.hour:02d}{until.minute:02d}{until.second:02d}{UTC_SUFFIX}"
    )


@dataclass(frozen=True)
class RRule:
    """
    A recurrence rule, as described in RFC 5545.

    Parameters
    ----------
    freq
        The base period of the rule.
    interval
        The number of periods between repetitions. For example, when using YEARLY, an
        interval of 2 means once every two years, but with HOURLY, it means once every
        two hours.
    wkst
        The first day of the week. This affects recurrences based on weekly periods
        and week numbers.
    count
        How many occurrences will be generated. Must not be set if `until` is set.
    until
        The last occurrence is the greatest one that is less than or equal to this
        value. A date includes the whole day.
    bysetpos
        Each integer specifies an occurrence number, corresponding to the nth
        occurrence of the rule inside the frequency period. For example, a bysetpos of
        -1 combined with a MONTHLY frequency and a byday of (MO, TU, WE, TH, FR) results
        in the last work day of every month.
    bymonth
        The months to apply the recurrence to.
    bymonthday
        The days of the month to apply the recurrence to. Negative values count from
        the end of the month.
    byyearday
        The days of the year to apply the recurrence to.
    byweekno
        The week numbers to apply the recurrence to. Week 1 is the first week
        containing at least four days of the new year, as in ISO 8601.
    byday
        The weekdays to apply the recurrence to. A non-zero ordinal selects the nth
        occurrence of the weekday in the period: with MONTHLY, or with YEARLY and
        bymonth, FR(+1) is the first Friday of the month.
    byhour, byminute, bysecond
        The hours, minutes and seconds to apply the recurrence to.
    zone
        The timezone whose wall clock the occurrences are generated in.
    joins
        Rules whose occurrences are added to this rule, with an optional start.
    excepts
        Rules whose occurrences are removed from this rule, with an optional start.

    Notes
    -----
    1. Values are validated eagerly: constructing or building a rule with an invalid
    value raises `InvalidConfiguration`.
    2. Empty filters impose no constraint.
    """

    freq: Frequency
    interval: int = 1
    wkst: Weekday = Weekday.MO
    count: int | None = None
    until: Instant | None = None
    bysetpos: tuple[int, ...] = ()
    bymonth: tuple[int, ...] = ()
    bymonthday: tuple[int, ...] = ()
    byyearday: tuple[int, ...] = ()
    byweekno: tuple[int, ...] = ()
    byday: tuple[WeekdayNum, ...] = ()
    byhour: tuple[int, ...] = ()
    byminute: tuple[int, ...] = ()
    bysecond: tuple[int, ...] = ()
    zone: datetime.tzinfo = dataclasses.field(default_factory=lambda: UTC, hash=False)
    joins: tuple[tuple["RRule", Instant | None], ...] = ()
    excepts: tuple[tuple["RRule", Instant | None], ...] = ()

    def __post_init__(self):
        try:
            object.__setattr__(self, "freq", Frequency(self.freq))
        except ValueError:
            raise InvalidConfiguration(f"Unknown frequency: {self.freq!r}")
        try:
            object.__setattr__(self, "wkst", Weekday(self.wkst))
        except ValueError:
            raise InvalidConfiguration(f"Invalid week start: {self.wkst!r}")
        if isinstance(self.interval, bool) or not isinstance(self.interval, int):
            raise InvalidConfiguration(
                f"Interval must be an integer: {self.interval!r}"
            )
        if self.interval < 1:
            raise InvalidConfiguration(
                f"Interval must be positive, got {self.interval}"
            )
        if self.count is not None:
            if isinstance(self.count, bool) or not isinstance(self.count, int):
                raise InvalidConfiguration(f"Count must be an integer: {self.count!r}")
            if self.count < 1:
                raise InvalidConfiguration(f"Count must be positive, got {self.count}")
            if self.until is not None:
                raise InvalidConfiguration("Both 'count' and 'until' cannot be set.")
        if self.until is not None and not isinstance(self.until, datetime.date):
            raise InvalidConfiguration(
                f"Until must be a date or datetime: {self.until!r}"
            )
        for name, bounds in _SIGNED_FILTERS.items():
            object.__setattr__(self, name, tuple(getattr(self, name)))
            _check_integers(name, getattr(self, name), bounds, signed=True)
        for name, bounds in _UNSIGNED_FILTERS.items():
            object.__setattr__(self, name, tuple(getattr(self, name)))
            _check_integers(name, getattr(self, name), bounds, signed=False)
        object.__setattr__(self, "byday", tuple(map(_as_weekday_num, self.byday)))
        object.__setattr__(self, "zone", resolve_zone(self.zone))
        for name in ("joins", "excepts"):
            pairs = tuple(tuple(pair) for pair in getattr(self, name))
            for rule, start in pairs:
                if not isinstance(rule, RRule):
                    raise InvalidConfiguration(f"Cannot combine with {rule!r}")
                if start is not None and not isinstance(start, datetime.date):
                    raise InvalidConfiguration(f"Invalid start override: {start!r}")
            object.__setattr__(self, name, pairs)

    @classmethod
    def of(cls, freq: Frequency) -> "RRule":
        """A rule repeating every `freq` period, without bound or filters."""
        return cls(freq=freq)

    def __str__(self) -> str:
        return self.to_text()

    def with_week_start(self, day: Weekday) -> "RRule":
        """Set the first day of the week."""
        return dataclasses.replace(self, wkst=day)

    def with_interval(self, interval: int) -> "RRule":
        return dataclasses.replace(self, interval=interval)

    def with_count(self, count: int) -> "RRule":
        """Bound the rule to `count` occurrences, dropping any `until` bound."""
        return dataclasses.replace(self, count=count, until=None)

    def with_until(self, until: Instant) -> "RRule":
        """Bound the rule to occurrences on or before `until`, dropping any `count`
        bound."""
        return dataclasses.replace(self, until=until, count=None)

    def by_set_pos(self, *positions: int) -> "RRule":
        return dataclasses.replace(self, bysetpos=positions)

    def by_month(self, *months: int) -> "RRule":
        return dataclasses.replace(self, bymonth=months)

    def by_month_day(self, *days: int) -> "RRule":
        return dataclasses.replace(self, bymonthday=days)

    def by_year_day(self, *days: int) -> "RRule":
        return dataclasses.replace(self, byyearday=days)

    def by_week_no(self, *weeks: int) -> "RRule":
        return dataclasses.replace(self, byweekno=weeks)

    def by_week_day(self, *days: Weekday | WeekdayNum) -> "RRule":
        """Restrict the rule to the given weekdays. Plain weekdays match every
        occurrence in the period, `FR(-1)` only the last one."""
        return dataclasses.replace(self, byday=days)

    def by_hour(self, *hours: int) -> "RRule":
        return dataclasses.replace(self, byhour=hours)

    def by_minute(self, *minutes: int) -> "RRule":
        return dataclasses.replace(self, byminute=minutes)

    def by_second(self, *seconds: int) -> "RRule":
        return dataclasses.replace(self, bysecond=seconds)

    def in_zone(self, zone: datetime.tzinfo | str) -> "RRule":
        """Generate occurrences on the wall clock of `zone`, a `tzinfo` or an IANA
        name."""
        return dataclasses.replace(self, zone=zone)

    def join(self, rule: "RRule", start: Instant | None = None) -> "RRule":
        """Add the occurrences of `rule`. If `start` is not given, `rule` starts at the
        start passed to `from_`."""
        return dataclasses.replace(self, joins=((rule, start),) + self.joins)

    def except_(self, rule: "RRule", start: Instant | None = None) -> "RRule":
        """Remove the occurrences of `rule`. If `start` is not given, `rule` starts at
        the start passed to `from_`."""
        return dataclasses.replace(self, excepts=((rule, start),) + self.excepts)

    def _wall_clock_times(
        self,
        start: datetime.datetime,
        zone: datetime.tzinfo,
        max_idle_years: int,
    ) -> Iterator[datetime.datetime]:
        occurrences = expand(self, start, zone=zone, max_idle_years=max_idle_years)

        def sources(pairs) -> Iterable[Iterator[datetime.datetime]]:
            for rule, override in pairs:
                rule_start = start if override is None else to_frame(override, zone)
                yield rule._wall_clock_times(rule_start, zone, max_idle_years)

        if self.joins:
            occurrences = union(occurrences, *sources(self.joins))
        if self.excepts:
            occurrences = difference(occurrences, *sources(self.excepts))
        return occurrences

    def from_(
        self, start: Instant, *, max_idle_years: int = MAX_IDLE_YEARS
    ) -> Iterator[datetime.datetime]:
        """
        Generate the occurrences of the rule on or after `start`.

        Parameters
        ----------
        start
            A timezone-aware datetime, a naive datetime read on the wall clock of
            `zone`, or a date (midnight).
        max_idle_years
            The sequence ends if no occurrence is found within this many years.

        Returns
        -------
        A strictly increasing, single-pass iterator of timezone-aware datetimes in
        `zone`. Joined and excepted rules are evaluated on the same wall clock.

        Raises
        ------
        InvalidConfiguration if the interval of an hourly, minutely or secondly rule
        never lands on its own `byhour`, `byminute` or `bysecond` values.

        Notes
        -----
        A rule with neither `count` nor `until` is infinite: bound the consumption,
        for example with `itertools.islice`, otherwise iteration never ends.

        `count` is applied to wall-clock times. Two times that fall inside the same
        daylight-saving gap localize to one instant and only the first is kept, so
        such a rule may yield fewer than `count` occurrences.
        """
        frame_start = to_frame(start, self.zone)
        logger.debug(f"Expanding {self.to_text()} from {frame_start.isoformat()}")
        return project(
            self._wall_clock_times(frame_start, self.zone, max_idle_years), self.zone
        )

    def nth(self, n: int, start: Instant) -> datetime.datetime:
        """Return the `n`-th occurrence (1-based) on or after `start`.

        Example
        -------
            RRule.of(Frequency.WEEKLY).by_week_day(FR).nth(3, datetime.date(2013, 1, 1))
            returns the third Friday of January 2013.

        Raises
        ------
        RecurrenceExhausted if the rule has fewer than `n` occurrences.
        """
        if n < 1:
            raise InvalidConfiguration(f"Occurrences are numbered from 1, got {n}")
        occurrence = next(islice(self.from_(start), n - 1, None), None)
        if occurrence is None:
            raise RecurrenceExhausted(
                f"{self.to_text()} has fewer than {n} occurrences"
            )
        return occurrence

    def to_text(self) -> str:
        """Serialise the rule to the RFC 5545 `RRULE` value syntax.

        Joins, excepts and the zone are not part of the syntax and are not written.
        """
        parts = [f"FREQ={self.freq.token}"]
        if self.interval != 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        elif self.until is not None:
            parts.append(f"UNTIL={format_until(self.until, self.zone)}")
        if self.wkst is not Weekday.MO:
            parts.append(f"WKST={self.wkst.name}")
        for name in (
            "bysetpos",
            "bymonth",
            "bymonthday",
            "byyearday",
            "byweekno",
            "byday",
            "byhour",
            "byminute",
            "bysecond",
        ):
            values = getattr(self, name)
            if values:
                parts.append(f"{name.upper()}={VALUE_SEPARATOR.join(map(str, values))}")
        return PART_SEPARATOR.join(parts)
