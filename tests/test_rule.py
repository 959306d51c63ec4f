#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import dataclasses
import datetime
from itertools import islice

import pytest
from dateutil.rrule import rrulestr

from recur.exceptions import InvalidConfiguration, RecurrenceExhausted
from recur.parser import parse_rule
from recur.rule import RRule
from recur.vocabulary import FR, MO, SU, TH, TU, Frequency, Weekday, WeekdayNum
from recur.zones import UTC
from tests.conftest import create_test_datetime


def _utc(*args: int) -> datetime.datetime:
    return create_test_datetime(*args).replace(tzinfo=UTC)


def test_rules_are_immutable():
    rule = RRule.of(Frequency.DAILY)
    bounded = rule.with_count(3)
    assert rule.count is None
    assert bounded.count == 3
    with pytest.raises(dataclasses.FrozenInstanceError):
        rule.count = 3


def test_rules_are_hashable():
    rule = RRule.of(Frequency.DAILY).by_week_day(FR(-1))
    assert rule.zone is UTC
    assert hash(rule) == hash(RRule.of(Frequency.DAILY).by_week_day(FR(-1)))
    assert len({rule, rule.with_count(2), rule.in_zone("Europe/Paris")}) == 3


def test_count_and_until_replace_each_other():
    until = datetime.date(2020, 2, 1)
    rule = RRule.of(Frequency.DAILY).with_count(3).with_until(until)
    assert (rule.count, rule.until) == (None, until)
    rule = rule.with_count(5)
    assert (rule.count, rule.until) == (5, None)
    with pytest.raises(InvalidConfiguration, match="Both 'count' and 'until'"):
        RRule(freq=Frequency.DAILY, count=1, until=until)


def test_builders_replace_filters():
    rule = RRule.of(Frequency.MONTHLY).by_month_day(1, 2).by_month_day(-1)
    assert rule.bymonthday == (-1,)
    rule = rule.by_week_day(MO, FR(-1))
    assert rule.byday == (WeekdayNum(0, MO), WeekdayNum(-1, FR))


@pytest.mark.parametrize(
    "build",
    [
        lambda: RRule.of(Frequency.DAILY).with_interval(0),
        lambda: RRule.of(Frequency.DAILY).with_count(0),
        lambda: RRule.of(Frequency.DAILY).by_month(13),
        lambda: RRule.of(Frequency.DAILY).by_month(-1),
        lambda: RRule.of(Frequency.DAILY).by_month_day(0),
        lambda: RRule.of(Frequency.DAILY).by_month_day(-32),
        lambda: RRule.of(Frequency.DAILY).by_year_day(367),
        lambda: RRule.of(Frequency.DAILY).by_week_no(54),
        lambda: RRule.of(Frequency.DAILY).by_set_pos(0),
        lambda: RRule.of(Frequency.DAILY).by_hour(24),
        lambda: RRule.of(Frequency.DAILY).by_minute(60),
        lambda: RRule.of(Frequency.DAILY).by_second(61),
        lambda: RRule.of(Frequency.DAILY).by_week_day(FR(54)),
        lambda: RRule.of(Frequency.DAILY).by_week_day(7),
        lambda: RRule.of(Frequency.DAILY).in_zone("Nowhere/Special"),
        lambda: RRule.of(Frequency.DAILY).with_until("2020-01-01"),
        lambda: RRule.of(Frequency.DAILY).join("FREQ=DAILY"),
        lambda: RRule(freq="fortnightly"),
    ],
)
def test_invalid_values_are_rejected(build):
    with pytest.raises(InvalidConfiguration):
        build()


def test_empty_filter_means_no_constraint(start: datetime.datetime):
    rule = RRule.of(Frequency.DAILY).by_month().with_count(3)
    assert rule.bymonth == ()
    assert len(list(rule.from_(start))) == 3


def test_from_returns_aware_occurrences(start: datetime.datetime):
    rule = RRule.of(Frequency.WEEKLY).by_week_day(TU, TH).with_count(3)
    assert list(rule.from_(start)) == [
        _utc(2020, 1, 2),
        _utc(2020, 1, 7),
        _utc(2020, 1, 9),
    ]


def test_from_accepts_dates_and_aware_datetimes(new_york: datetime.tzinfo):
    rule = RRule.of(Frequency.DAILY).by_hour(12).with_count(1)
    assert list(rule.from_(datetime.date(2020, 1, 1))) == [_utc(2020, 1, 1, 12)]
    # 10:00 in New York is 15:00 UTC, after the 12:00 UTC occurrence
    aware = datetime.datetime(2020, 1, 1, 10, tzinfo=new_york)
    assert list(rule.from_(aware)) == [_utc(2020, 1, 2, 12)]


def test_start_is_only_included_if_it_matches():
    rule = RRule.of(Frequency.WEEKLY).by_week_day(FR).with_count(1)
    # a Wednesday
    assert list(rule.from_(datetime.date(2020, 1, 1))) == [_utc(2020, 1, 3)]


def test_join_merges_occurrences():
    rule = (
        RRule.of(Frequency.DAILY)
        .by_week_day(TU, TH)
        .join(RRule.of(Frequency.DAILY).by_week_day(MO))
    )
    occurrences = list(islice(rule.from_(datetime.date(2006, 12, 31)), 5))
    assert occurrences == [
        _utc(2007, 1, 1),
        _utc(2007, 1, 2),
        _utc(2007, 1, 4),
        _utc(2007, 1, 8),
        _utc(2007, 1, 9),
    ]


def test_join_collapses_shared_occurrences(start: datetime.datetime):
    daily = RRule.of(Frequency.DAILY).with_count(4)
    rule = daily.join(RRule.of(Frequency.DAILY).with_interval(2).with_count(3))
    assert list(rule.from_(start)) == [_utc(2020, 1, d) for d in (1, 2, 3, 4, 5)]


def test_join_with_itself_adds_nothing(start: datetime.datetime):
    daily = RRule.of(Frequency.DAILY)
    joined = daily.join(daily)
    assert list(islice(joined.from_(start), 20)) == list(
        islice(daily.from_(start), 20)
    )


def test_except_never_yields_excluded_occurrences(start: datetime.datetime):
    every_third_day = RRule.of(Frequency.DAILY).with_interval(3)
    rule = RRule.of(Frequency.DAILY).except_(every_third_day)
    occurrences = list(islice(rule.from_(start), 20))
    excluded = set(islice(every_third_day.from_(start), 30))
    assert not excluded.intersection(occurrences)
    assert occurrences[:4] == [_utc(2020, 1, d) for d in (2, 3, 5, 6)]


def test_join_with_own_start(start: datetime.datetime):
    rule = RRule.of(Frequency.YEARLY).with_count(1).join(
        RRule.of(Frequency.YEARLY).with_count(1), datetime.date(2010, 6, 1)
    )
    assert list(rule.from_(start)) == [_utc(2010, 6, 1), _utc(2020, 1, 1)]


def test_except_removes_occurrences(start: datetime.datetime):
    rule = (
        RRule.of(Frequency.DAILY)
        .with_count(14)
        .except_(RRule.of(Frequency.WEEKLY).by_week_day(Weekday.SA, SU))
    )
    occurrences = list(rule.from_(start))
    assert len(occurrences) == 10
    assert all(occurrence.weekday() < 5 for occurrence in occurrences)


def test_except_with_later_start(start: datetime.datetime):
    rule = RRule.of(Frequency.DAILY).with_count(5).except_(
        RRule.of(Frequency.DAILY), datetime.date(2020, 1, 4)
    )
    assert list(rule.from_(start)) == [_utc(2020, 1, d) for d in (1, 2, 3)]


def test_nested_joins(start: datetime.datetime):
    inner = RRule.of(Frequency.MONTHLY).by_month_day(15).with_count(1)
    middle = RRule.of(Frequency.MONTHLY).by_month_day(10).with_count(1).join(inner)
    rule = RRule.of(Frequency.MONTHLY).with_count(1).join(middle)
    assert list(rule.from_(start)) == [_utc(2020, 1, d) for d in (1, 10, 15)]


def test_nth():
    rule = RRule.of(Frequency.WEEKLY).by_week_day(FR)
    assert rule.nth(3, datetime.date(2013, 1, 1)) == _utc(2013, 1, 18)
    with pytest.raises(RecurrenceExhausted):
        rule.with_count(2).nth(3, datetime.date(2013, 1, 1))
    with pytest.raises(InvalidConfiguration):
        rule.nth(0, datetime.date(2013, 1, 1))


def test_daily_at_nine_keeps_local_time_across_dst(new_york: datetime.tzinfo):
    rule = RRule.of(Frequency.DAILY).by_hour(9).in_zone(new_york).with_count(3)
    occurrences = list(rule.from_(datetime.date(2021, 3, 13)))
    assert [o.hour for o in occurrences] == [9, 9, 9]
    assert [o.utcoffset() for o in occurrences] == [
        datetime.timedelta(hours=-5),
        datetime.timedelta(hours=-4),
        datetime.timedelta(hours=-4),
    ]
    assert occurrences[1].timestamp() - occurrences[0].timestamp() == 23 * 3600


def test_hourly_across_spring_forward(new_york: datetime.tzinfo):
    rule = RRule.of(Frequency.HOURLY).in_zone("America/New_York")
    occurrences = list(islice(rule.from_(datetime.date(2021, 3, 14)), 4))
    assert [o.hour for o in occurrences] == [0, 1, 3, 4]


def test_ambiguous_time_resolves_to_daylight_time(new_york: datetime.tzinfo):
    rule = RRule.of(Frequency.DAILY).by_hour(1).in_zone(new_york).with_count(1)
    (occurrence,) = rule.from_(datetime.date(2021, 11, 7))
    assert occurrence.utcoffset() == datetime.timedelta(hours=-4)


def test_until_in_utc_is_compared_in_zone(new_york: datetime.tzinfo):
    until = datetime.datetime(2021, 6, 3, 13, tzinfo=UTC)
    rule = RRule.of(Frequency.DAILY).by_hour(9).in_zone(new_york).with_until(until)
    occurrences = list(rule.from_(datetime.date(2021, 6, 1)))
    # 09:00 EDT is 13:00 UTC
    assert [o.day for o in occurrences] == [1, 2, 3]


@pytest.mark.parametrize(
    "rule, text",
    [
        (RRule.of(Frequency.DAILY), "FREQ=DAILY"),
        (
            RRule.of(Frequency.MONTHLY).by_week_day(FR(-1)).with_count(12),
            "FREQ=MONTHLY;COUNT=12;BYDAY=-1FR",
        ),
        (
            RRule.of(Frequency.WEEKLY)
            .with_interval(2)
            .with_week_start(SU)
            .by_week_day(TU, TH),
            "FREQ=WEEKLY;INTERVAL=2;WKST=SU;BYDAY=TU,TH",
        ),
        (
            RRule.of(Frequency.DAILY).with_until(datetime.date(2020, 1, 31)),
            "FREQ=DAILY;UNTIL=20200131",
        ),
        (
            RRule.of(Frequency.DAILY).with_until(create_test_datetime(2020, 1, 31, 9)),
            "FREQ=DAILY;UNTIL=20200131T090000Z",
        ),
        (
            RRule.of(Frequency.DAILY)
            .in_zone("Europe/Paris")
            .with_until(create_test_datetime(2020, 1, 31, 9)),
            "FREQ=DAILY;UNTIL=20200131T080000Z",
        ),
        (
            RRule.of(Frequency.YEARLY)
            .by_set_pos(1, -1)
            .by_month(3)
            .by_month_day(1, -1)
            .by_year_day(100)
            .by_week_no(-1)
            .by_hour(9)
            .by_minute(30)
            .by_second(15),
            "FREQ=YEARLY;BYSETPOS=1,-1;BYMONTH=3;BYMONTHDAY=1,-1;BYYEARDAY=100;"
            "BYWEEKNO=-1;BYHOUR=9;BYMINUTE=30;BYSECOND=15",
        ),
    ],
)
def test_to_text(rule: RRule, text: str):
    assert rule.to_text() == text
    assert str(rule) == text


@pytest.mark.parametrize(
    "text",
    [
        "FREQ=DAILY;INTERVAL=2;COUNT=5",
        "FREQ=WEEKLY;INTERVAL=2;COUNT=8;WKST=SU;BYDAY=TU,TH",
        "FREQ=MONTHLY;COUNT=12;BYDAY=-1FR",
        "FREQ=MONTHLY;COUNT=6;BYSETPOS=-1;BYDAY=MO,TU,WE,TH,FR",
        "FREQ=YEARLY;COUNT=5;BYWEEKNO=20;BYDAY=MO",
        "FREQ=YEARLY;COUNT=6;BYMONTH=1,7;BYDAY=1SU",
        "FREQ=HOURLY;INTERVAL=5;COUNT=10;BYDAY=SA",
        "FREQ=DAILY;UNTIL=20200110T120000Z;BYHOUR=8,12",
        "FREQ=YEARLY;COUNT=4;BYMONTH=2;BYMONTHDAY=-1",
        "FREQ=MONTHLY;COUNT=5;BYMONTHDAY=31",
    ],
)
def test_agrees_with_dateutil(text: str, start: datetime.datetime):
    expected = list(rrulestr(text, dtstart=start.replace(tzinfo=UTC)))
    rule = parse_rule(text)
    assert list(rule.from_(start)) == expected
    assert list(parse_rule(rule.to_text()).from_(start)) == expected


def test_zoned_until_round_trips_through_utc(new_york: datetime.tzinfo):
    rule = (
        RRule.of(Frequency.DAILY)
        .in_zone(new_york)
        .with_until(datetime.datetime(2021, 3, 20, 9, tzinfo=new_york))
    )
    # 09:00 EDT is 13:00 UTC
    assert rule.to_text() == "FREQ=DAILY;UNTIL=20210320T130000Z"
    start = create_test_datetime(2021, 3, 10, 9)
    occurrences = list(rule.from_(start))
    assert [o.day for o in occurrences] == list(range(10, 21))
    expected = list(rrulestr(rule.to_text(), dtstart=start.replace(tzinfo=new_york)))
    assert occurrences == expected
    reparsed = parse_rule(rule.to_text(), zone="America/New_York")
    assert list(reparsed.from_(start)) == occurrences


@pytest.mark.parametrize(
    "rule",
    [
        RRule.of(Frequency.HOURLY).with_interval(2).by_hour(1, 3),
        RRule.of(Frequency.MINUTELY).with_interval(2).by_minute(15),
        RRule.of(Frequency.SECONDLY).with_interval(10).by_second(5, 25),
    ],
)
def test_unreachable_sub_daily_filters_are_rejected(
    rule: RRule, start: datetime.datetime
):
    with pytest.raises(InvalidConfiguration, match="never reaches"):
        rule.from_(start)
    with pytest.raises(InvalidConfiguration):
        rule.nth(1, start)
    with pytest.raises(InvalidConfiguration):
        RRule.of(Frequency.DAILY).with_count(1).join(rule).from_(start)
