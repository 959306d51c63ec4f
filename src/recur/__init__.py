#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
from importlib.metadata import PackageNotFoundError, version  # pragma: no cover

from recur.exceptions import (
    ConfigError,
    InvalidConfiguration,
    ParseError,
    RecurrenceExhausted,
)
from recur.parser import parse_rule
from recur.rule import RRule
from recur.vocabulary import FR, MO, SA, SU, TH, TU, WE, Frequency, Weekday, WeekdayNum

try:
    # Change here if project is renamed and does not equal the package name
    dist_name = "recur"
    __version__ = version(dist_name)
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
finally:
    del version, PackageNotFoundError

__all__ = [
    "ConfigError",
    "FR",
    "Frequency",
    "InvalidConfiguration",
    "MO",
    "ParseError",
    "RRule",
    "RecurrenceExhausted",
    "SA",
    "SU",
    "TH",
    "TU",
    "WE",
    "Weekday",
    "WeekdayNum",
    "parse_rule",
]
