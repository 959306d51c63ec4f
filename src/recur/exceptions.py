#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
class InvalidConfiguration(ValueError):
    """Raised when a recurrence rule is built with an invalid value, for example
    an interval smaller than one or a `by_month` value outside [1, 12].

    Notes
    -----
    1. Validation is eager: the error is raised by the builder call (or the
    constructor) that introduces the bad value, never during expansion.
    2. Holding both `count` and `until` is prevented by the builder, which clears
    one when the other is set. Constructing a rule directly with both raises this
    error."""


class ParseError(ValueError):
    pass


class RecurrenceExhausted(LookupError):
    pass


class ConfigError(ValueError):
    pass
