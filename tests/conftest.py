#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
import datetime

import pytest

from recur.zones import resolve_zone


def create_test_datetime(
    year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0
) -> datetime.datetime:
    return datetime.datetime(year, month, day, hour, minute, second)


@pytest.fixture()
def start() -> datetime.datetime:
    # a Wednesday
    return create_test_datetime(2020, 1, 1)


@pytest.fixture()
def new_york() -> datetime.tzinfo:
    return resolve_zone("America/New_York")
