#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Frequencies and weekdays used to describe recurrence rules."""

from enum import IntEnum, StrEnum, auto
from typing import NamedTuple


class Frequency(StrEnum):
    """The base period of a recurrence rule, finest first."""

    SECONDLY = auto()
    MINUTELY = auto()
    HOURLY = auto()
    DAILY = auto()
    WEEKLY = auto()
    MONTHLY = auto()
    YEARLY = auto()

    @property
    def rank(self) -> int:
        """Position of the frequency when ordered by period length."""
        return list(Frequency).index(self)

    @property
    def is_sub_daily(self) -> bool:
        return self.rank < Frequency.DAILY.rank

    @property
    def token(self) -> str:
        """The RFC 5545 `FREQ` value."""
        return self.name


class Weekday(IntEnum):
    """Days of the week, numbered like `datetime.date.weekday`."""

    MO = 0
    TU = 1
    WE = 2
    TH = 3
    FR = 4
    SA = 5
    SU = 6

    def __call__(self, ordinal: int) -> "WeekdayNum":
        """The `ordinal`-th occurrence of this weekday in a period, eg
        `FR(-1)` is the last Friday."""
        return WeekdayNum(ordinal, self)

    def offset_from(self, week_start: "Weekday") -> int:
        """Position of the day inside a week starting on `week_start`."""
        return (self - week_start) % 7


class WeekdayNum(NamedTuple):
    """A weekday, optionally restricted to its n-th occurrence in a period.

    Parameters
    ----------
    ordinal
        0 selects every occurrence of `weekday`. A positive value counts from the
        start of the period, a negative value from its end (-1 is the last).
    weekday
        The day of the week.
    """

    ordinal: int
    weekday: Weekday

    def __str__(self) -> str:
        if self.ordinal == 0:
            return self.weekday.name
        return f"{self.ordinal}{self.weekday.name}"


MO, TU, WE, TH, FR, SA, SU = Weekday
