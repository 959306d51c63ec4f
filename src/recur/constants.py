#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
PACKAGE_NAME = "recur"
CONFIGS_ROOT = f"{PACKAGE_NAME}.configs"
ENGINE_CONFIG_NAME = "engine.yaml"
MAX_IDLE_YEARS = 100
"""Number of calendar years an expansion may advance without producing an
occurrence before it is considered exhausted."""
RULE_PREFIXES = ("RRULE:", "EXRULE:")
UNTIL_DATETIME_FORMAT = "%Y%m%dT%H%M%S"
UNTIL_DATE_FORMAT = "%Y%m%d"
UTC_SUFFIX = "Z"
PART_SEPARATOR = ";"
VALUE_SEPARATOR = ","

BY_MONTH_RANGE = (1, 12)
BY_MONTH_DAY_RANGE = (1, 31)
BY_YEAR_DAY_RANGE = (1, 366)
BY_WEEK_NO_RANGE = (1, 53)
BY_SET_POS_RANGE = (1, 366)
BY_HOUR_RANGE = (0, 23)
BY_MINUTE_RANGE = (0, 59)
BY_SECOND_RANGE = (0, 59)
WEEKDAY_ORDINAL_RANGE = (1, 53)
