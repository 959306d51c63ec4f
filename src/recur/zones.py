#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
"""Conversion between the wall-clock frame recurrences are generated in and
timezone-aware instants."""

import datetime
import logging
from collections.abc import Iterable, Iterator

from dateutil import tz

from recur.exceptions import InvalidConfiguration

logger = logging.getLogger(__name__)

UTC = tz.UTC

_UTC_KEYS = {"UTC", "Etc/UTC", "Etc/Universal", "Universal", "Zulu", "Etc/Zulu"}


def resolve_zone(zone: datetime.tzinfo | str) -> datetime.tzinfo:
    """Return a `tzinfo` for `zone`, which is either a `tzinfo` or an IANA name.

    Raises
    ------
    InvalidConfiguration if `zone` names an unknown timezone.
    """
    if isinstance(zone, datetime.tzinfo):
        return zone
    if not isinstance(zone, str):
        raise InvalidConfiguration(
            f"Expected a tzinfo or an IANA zone name, got {zone!r}"
        )
    if zone.upper() in {"UTC", "Z"}:
        return UTC
    resolved = tz.gettz(zone)
    if resolved is None:
        raise InvalidConfiguration(f"Unknown timezone: {zone}")
    return resolved


def is_utc(zone: datetime.tzinfo) -> bool:
    """Check if `zone` is equivalent to UTC, in which case generated instants do
    not need to be reinterpreted."""
    if isinstance(zone, tz.tzutc) or zone is datetime.timezone.utc:
        return True
    key = getattr(zone, "key", None) or getattr(zone, "_filename", None)
    return key is not None and str(key).split("zoneinfo/")[-1] in _UTC_KEYS


def to_frame(
    value: datetime.date | datetime.datetime,
    zone: datetime.tzinfo,
    *,
    end_of_day: bool = False,
) -> datetime.datetime:
    """Convert `value` to the naive wall-clock frame of `zone`.

    Parameters
    ----------
    value
        A timezone-aware datetime is converted to the wall clock of `zone`. A naive
        datetime is assumed to already be expressed in `zone`. A date is expanded to
        midnight, or to the last second of the day if `end_of_day` is set.
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(zone)
        return value.replace(tzinfo=None, fold=0)
    if isinstance(value, datetime.date):
        if end_of_day:
            return datetime.datetime.combine(value, datetime.time(23, 59, 59))
        return datetime.datetime.combine(value, datetime.time())
    raise InvalidConfiguration(f"Expected a date or datetime, got {value!r}")


def localize(wall_clock: datetime.datetime, zone: datetime.tzinfo) -> datetime.datetime:
    """Attach `zone` to a naive wall-clock time.

    Times inside a daylight-saving gap are moved forward by the length of the gap
    and ambiguous times resolve to their first occurrence.
    """
    if is_utc(zone):
        return wall_clock.replace(tzinfo=UTC)
    return tz.resolve_imaginary(wall_clock.replace(tzinfo=zone, fold=0))


def project(
    wall_clock_times: Iterable[datetime.datetime], zone: datetime.tzinfo
) -> Iterator[datetime.datetime]:
    """Reinterpret naive wall-clock times as local times in `zone`.

    The fields of each time (year to microsecond) are kept and the zone offset
    valid at that wall-clock time is attached, so a rule firing at 09:00 keeps
    firing at 09:00 local time across daylight-saving transitions. Times that do
    not strictly advance in absolute time once localized (two wall-clock times
    sharing a gap) are dropped.
    """
    if is_utc(zone):
        for wall_clock in wall_clock_times:
            yield wall_clock.replace(tzinfo=UTC)
        return

    previous = None
    for wall_clock in wall_clock_times:
        local = localize(wall_clock, zone)
        instant = local.astimezone(UTC)
        if previous is not None and instant <= previous:
            logger.debug(
                f"Dropping {local.isoformat()}: not after {previous.isoformat()}"
            )
            continue
        previous = instant
        yield local
