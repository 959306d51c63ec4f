#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Expansion of a single recurrence rule into the wall-clock times it designates.

The expansion follows RFC 5545, section 3.3.10. Periods of the rule frequency are
anchored at or before the start and advanced by the rule interval. Every day of a
period (or, for hourly and finer rules, the period itself) is a candidate, which
survives if it matches every `by_*` filter that is set. The survivors of a period
are combined with the times of day selected by `by_hour`, `by_minute` and
`by_second`, narrowed by `by_set_pos` and emitted in chronological order until the
`count` or `until` bound is reached.

All computations happen on naive datetimes, which represent wall-clock times in
the zone of the rule (see `recur.zones`).
"""

import calendar
import datetime
import functools
import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass
from itertools import product
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from recur.constants import MAX_IDLE_YEARS
from recur.exceptions import InvalidConfiguration
from recur.vocabulary import Frequency, Weekday, WeekdayNum
from recur.zones import to_frame

if TYPE_CHECKING:
    from recur.rule import RRule

logger = logging.getLogger(__name__)

_SUB_DAILY_STEPS = {
    Frequency.HOURLY: datetime.timedelta(hours=1),
    Frequency.MINUTELY: datetime.timedelta(minutes=1),
    Frequency.SECONDLY: datetime.timedelta(seconds=1),
}
_UNIT_CYCLES = {
    Frequency.HOURLY: ("hour", 24),
    Frequency.MINUTELY: ("minute", 60),
    Frequency.SECONDLY: ("second", 60),
}
_ORDINAL_FREQUENCIES = {Frequency.MONTHLY, Frequency.YEARLY}
_ONE_DAY = datetime.timedelta(days=1)


@functools.lru_cache(maxsize=512)
def _week_one_start(year: int, week_start: Weekday) -> datetime.date:
    """First day of week 1 of `year`: the first week with at least four days in
    the year."""
    if year > datetime.MAXYEAR:
        return datetime.date.max
    if year < datetime.MINYEAR:
        return datetime.date.min
    jan_1 = datetime.date(year, 1, 1)
    offset = Weekday(jan_1.weekday()).offset_from(week_start)
    if offset > 3:
        return jan_1 + datetime.timedelta(days=7 - offset)
    return jan_1 - datetime.timedelta(days=offset)


def week_number(day: datetime.date, week_start: Weekday) -> tuple[int, int]:
    """Return the week number of `day` and the number of weeks in its week-year."""
    year = day.year
    week_one = _week_one_start(year, week_start)
    if day < week_one:
        year -= 1
        week_one = _week_one_start(year, week_start)
    elif day >= _week_one_start(year + 1, week_start):
        year += 1
        week_one = _week_one_start(year, week_start)
    weeks = (_week_one_start(year + 1, week_start) - week_one).days // 7
    return (day - week_one).days // 7 + 1, weeks


def _matches(value: int, length: int, allowed: frozenset[int]) -> bool:
    """Check `value` (1-based) against positive and end-relative positions."""
    return value in allowed or value - length - 1 in allowed


@dataclass(frozen=True)
class ExpansionPlan:
    """The filters of a rule once the defaults implied by its start are applied.

    Notes
    -----
    1. `by_weekday` holds weekdays without ordinal. Ordinals only apply to monthly
    and yearly rules and are kept in `by_nth_weekday`; finer rules treat them as
    plain weekdays.
    2. For daily and coarser rules `by_hour`, `by_minute` and `by_second` are never
    empty and expand each surviving day into times. For finer rules the fields at or
    above the rule frequency filter the period and may be empty.
    """

    freq: Frequency
    interval: int
    week_start: Weekday
    by_set_pos: tuple[int, ...]
    by_month: frozenset[int]
    by_month_day: frozenset[int]
    by_year_day: frozenset[int]
    by_week_no: frozenset[int]
    by_weekday: frozenset[Weekday]
    by_nth_weekday: frozenset[WeekdayNum]
    by_hour: tuple[int, ...]
    by_minute: tuple[int, ...]
    by_second: tuple[int, ...]

    @classmethod
    def from_rule(cls, rule: "RRule", start: datetime.datetime) -> "ExpansionPlan":
        freq = rule.freq
        ordinals_apply = freq in _ORDINAL_FREQUENCIES
        by_weekday = {
            d.weekday for d in rule.byday if d.ordinal == 0 or not ordinals_apply
        }
        by_nth_weekday = {d for d in rule.byday if d.ordinal != 0 and ordinals_apply}
        by_month = set(rule.bymonth)
        by_month_day = set(rule.bymonthday)
        day_filters = (rule.byweekno, rule.byyearday, rule.bymonthday, rule.byday)
        if not any(day_filters):
            if freq is Frequency.YEARLY:
                by_month = by_month or {start.month}
                by_month_day = {start.day}
            elif freq is Frequency.MONTHLY:
                by_month_day = {start.day}
            elif freq is Frequency.WEEKLY:
                by_weekday = {Weekday(start.weekday())}

        def times(values: tuple[int, ...], default: int, coarsest: Frequency):
            if values:
                return tuple(sorted(set(values)))
            return (default,) if freq.rank >= coarsest.rank else ()

        return cls(
            freq=freq,
            interval=rule.interval,
            week_start=rule.wkst,
            by_set_pos=rule.bysetpos,
            by_month=frozenset(by_month),
            by_month_day=frozenset(by_month_day),
            by_year_day=frozenset(rule.byyearday),
            by_week_no=frozenset(rule.byweekno),
            by_weekday=frozenset(by_weekday),
            by_nth_weekday=frozenset(by_nth_weekday),
            by_hour=times(rule.byhour, start.hour, Frequency.DAILY),
            by_minute=times(rule.byminute, start.minute, Frequency.HOURLY),
            by_second=times(rule.bysecond, start.second, Frequency.MINUTELY),
        )

    def day_survives(self, day: datetime.date) -> bool:
        """Check if `day` matches every day-level filter of the plan."""
        if self.by_month and day.month not in self.by_month:
            return False
        if self.by_week_no:
            number, weeks = week_number(day, self.week_start)
            if not _matches(number, weeks, self.by_week_no):
                return False
        if self.by_year_day:
            year_length = 366 if calendar.isleap(day.year) else 365
            if not _matches(day.timetuple().tm_yday, year_length, self.by_year_day):
                return False
        if self.by_month_day:
            month_length = calendar.monthrange(day.year, day.month)[1]
            if not _matches(day.day, month_length, self.by_month_day):
                return False
        if self.by_weekday or self.by_nth_weekday:
            weekday = Weekday(day.weekday())
            if weekday not in self.by_weekday and not self._nth_weekday_survives(
                day, weekday
            ):
                return False
        return True

    def _nth_weekday_survives(self, day: datetime.date, weekday: Weekday) -> bool:
        if not self.by_nth_weekday:
            return False
        # ordinals count inside the month, unless the rule is yearly over whole years
        if self.freq is Frequency.MONTHLY or self.by_month:
            first = day.replace(day=1)
            last = day.replace(day=calendar.monthrange(day.year, day.month)[1])
        else:
            first = datetime.date(day.year, 1, 1)
            last = datetime.date(day.year, 12, 31)
        from_start = (day - first).days // 7 + 1
        from_end = -((last - day).days // 7) - 1
        return (
            WeekdayNum(from_start, weekday) in self.by_nth_weekday
            or WeekdayNum(from_end, weekday) in self.by_nth_weekday
        )

    def select(self, candidates: list[datetime.datetime]) -> list[datetime.datetime]:
        """Apply `by_set_pos` to the sorted survivors of a period."""
        if not self.by_set_pos or not candidates:
            return candidates
        selected = set()
        for position in self.by_set_pos:
            index = position - 1 if position > 0 else len(candidates) + position
            if 0 <= index < len(candidates):
                selected.add(candidates[index])
        return sorted(selected)

    def periods(
        self, start: datetime.datetime
    ) -> Iterator[tuple[datetime.datetime, list[datetime.datetime]]]:
        """Yield the start of each period together with its selected survivors.

        Periods are yielded in chronological order starting with the one containing
        `start`. The sequence ends when the calendar runs out of representable dates.
        """
        if self.freq.is_sub_daily:
            yield from self._sub_daily_periods(start)
        else:
            yield from self._calendar_periods(start)

    def _period_floor(self, day: datetime.date) -> datetime.date:
        if self.freq is Frequency.YEARLY:
            return day.replace(month=1, day=1)
        if self.freq is Frequency.MONTHLY:
            return day.replace(day=1)
        if self.freq is Frequency.WEEKLY:
            offset = Weekday(day.weekday()).offset_from(self.week_start)
            return day - datetime.timedelta(days=offset)
        return day

    def _period_days(self, floor: datetime.date, index: int) -> list[datetime.date]:
        step = index * self.interval
        if self.freq is Frequency.YEARLY:
            first = floor.replace(year=floor.year + step)
            length = 366 if calendar.isleap(first.year) else 365
        elif self.freq is Frequency.MONTHLY:
            first = floor + relativedelta(months=step)
            length = calendar.monthrange(first.year, first.month)[1]
        elif self.freq is Frequency.WEEKLY:
            first = floor + datetime.timedelta(weeks=step)
            length = 7
        else:
            first = floor + datetime.timedelta(days=step)
            length = 1
        return [first + datetime.timedelta(days=i) for i in range(length)]

    def _calendar_periods(
        self, start: datetime.datetime
    ) -> Iterator[tuple[datetime.datetime, list[datetime.datetime]]]:
        times = [
            datetime.time(hour, minute, second)
            for hour, minute, second in product(
                self.by_hour, self.by_minute, self.by_second
            )
        ]
        floor = self._period_floor(start.date())
        index = 0
        while True:
            try:
                days = self._period_days(floor, index)
            except (OverflowError, ValueError):
                logger.debug(f"Calendar exhausted after {index} {self.freq} periods")
                return
            candidates = [
                datetime.datetime.combine(day, time)
                for day in days
                if self.day_survives(day)
                for time in times
            ]
            yield datetime.datetime.combine(days[0], datetime.time()), self.select(
                candidates
            )
            index += 1

    def _sub_daily_skip_to(
        self, current: datetime.datetime
    ) -> datetime.datetime | None:
        """The earliest time at which a period could pass the filters, if the period
        starting at `current` does not."""
        if not self.day_survives(current.date()):
            return datetime.datetime.combine(current.date() + _ONE_DAY, datetime.time())
        if self.by_hour and current.hour not in self.by_hour:
            return current.replace(minute=0, second=0) + datetime.timedelta(hours=1)
        if self.freq is Frequency.HOURLY:
            return None
        if self.by_minute and current.minute not in self.by_minute:
            return current.replace(second=0) + datetime.timedelta(minutes=1)
        if self.freq is Frequency.MINUTELY:
            return None
        if self.by_second and current.second not in self.by_second:
            return current + datetime.timedelta(seconds=1)
        return None

    def _sub_daily_candidates(
        self, current: datetime.datetime
    ) -> list[datetime.datetime]:
        if self.freq is Frequency.HOURLY:
            return [
                current.replace(minute=minute, second=second)
                for minute, second in product(self.by_minute, self.by_second)
            ]
        if self.freq is Frequency.MINUTELY:
            return [current.replace(second=second) for second in self.by_second]
        return [current]

    def _sub_daily_periods(
        self, start: datetime.datetime
    ) -> Iterator[tuple[datetime.datetime, list[datetime.datetime]]]:
        step = _SUB_DAILY_STEPS[self.freq] * self.interval
        if self.freq is Frequency.HOURLY:
            current = start.replace(minute=0, second=0)
        elif self.freq is Frequency.MINUTELY:
            current = start.replace(second=0)
        else:
            current = start
        while True:
            try:
                skip_to = self._sub_daily_skip_to(current)
                if skip_to is None:
                    yield current, self.select(self._sub_daily_candidates(current))
                    current += step
                else:
                    yield current, []
                    # advance whole steps so periods stay aligned on the start
                    current += step * max(1, -((current - skip_to) // step))
            except OverflowError:
                logger.debug(f"Calendar exhausted at {current.isoformat()}")
                return


def expand(
    rule: "RRule",
    start: datetime.datetime,
    *,
    zone: datetime.tzinfo | None = None,
    max_idle_years: int = MAX_IDLE_YEARS,
) -> Iterator[datetime.datetime]:
    """
    Generate the wall-clock times designated by `rule`, on or after `start`.

    Parameters
    ----------
    rule
        The recurrence rule to expand. Its joins and excepts are ignored here, see
        `recur.rule.RRule.from_`.
    start
        A naive datetime in the generation frame. Microseconds are discarded.
    zone
        The zone whose wall clock the generation frame represents, used to convert
        `rule.until`. Defaults to `rule.zone`.
    max_idle_years
        If no period produces a survivor within this many calendar years, the rule is
        considered unsatisfiable and the sequence ends.

    Returns
    -------
    A strictly increasing iterator of naive datetimes. The iterator is infinite if
    the rule has neither `count` nor `until`.

    Raises
    ------
    InvalidConfiguration if the rule is hourly, minutely or secondly and its
    interval never lands on any of its `byhour`, `byminute` or `bysecond` values.
    """
    zone = rule.zone if zone is None else zone
    start = start.replace(microsecond=0)
    until = None
    if rule.until is not None:
        until = to_frame(rule.until, zone, end_of_day=True)
        if until < start:
            return iter(())
    plan = ExpansionPlan.from_rule(rule, start)
    _check_reachable(plan, start)
    return _bounded(rule, plan, start, until, max_idle_years)


def _check_reachable(plan: ExpansionPlan, start: datetime.datetime) -> None:
    """Reject an hourly, minutely or secondly rule whose own `by_*` values are never
    hit when stepping from `start` by the interval.

    Stepping by `interval` units only visits values congruent to the start value
    modulo gcd(interval, units per cycle).
    """
    if plan.freq not in _UNIT_CYCLES:
        return
    name, cycle = _UNIT_CYCLES[plan.freq]
    allowed = getattr(plan, f"by_{name}")
    step = math.gcd(plan.interval, cycle)
    origin = getattr(start, name)
    if allowed and all((value - origin) % step for value in allowed):
        raise InvalidConfiguration(
            f"{plan.freq.token} every {plan.interval} from {start.isoformat()} never "
            f"reaches BY{name.upper()}={','.join(map(str, allowed))}"
        )


def _bounded(
    rule: "RRule",
    plan: ExpansionPlan,
    start: datetime.datetime,
    until: datetime.datetime | None,
    max_idle_years: int,
) -> Iterator[datetime.datetime]:
    remaining = rule.count
    last_productive_year = start.year
    for period_start, candidates in plan.periods(start):
        if until is not None and period_start > until:
            return
        if not candidates:
            if period_start.year - last_productive_year > max_idle_years:
                logger.warning(
                    f"No occurrence of {rule.to_text()} within {max_idle_years} "
                    f"years of {last_productive_year}, ending the expansion."
                )
                return
            continue
        last_productive_year = period_start.year
        for candidate in candidates:
            if candidate < start:
                continue
            if until is not None and candidate > until:
                return
            yield candidate
            if remaining is not None:
                remaining -= 1
                if remaining == 0:
                    return
