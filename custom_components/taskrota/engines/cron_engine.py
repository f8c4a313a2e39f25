"""Cron Engine - Pure logic for matching dates against cron expressions.

This engine parses standard five-field cron expressions
(minute hour day-of-month month day-of-week) and answers whether a calendar
date fires. Each field is `*`, `*/N` (step), or a comma list whose items may
be single values or `a-b` ranges.

Day-of-month and day-of-week follow cron OR semantics: when both are
restricted a date matches if either one does; when only one is restricted,
only that one is enforced.

ARCHITECTURE: Pure logic, no I/O. Parsed expressions are immutable and
cached, so repeated evaluation on every render stays cheap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from functools import lru_cache

from .. import const
from ..utils.dt_utils import dt_weekday

# =============================================================================
# EXCEPTIONS
# =============================================================================


class CronParseError(ValueError):
    """Raised when a cron expression does not have exactly five fields.

    Callers must surface this instead of treating the schedule as
    "never runs".

    Attributes:
        expression: The offending cron expression
    """

    def __init__(self, expression: str) -> None:
        """Initialize CronParseError."""
        self.expression = expression
        super().__init__(
            f"Invalid cron expression: {expression!r} "
            f"(expected {const.CRON_FIELD_COUNT} fields)"
        )


# =============================================================================
# PARSED STRUCTURES
# =============================================================================


@dataclass(frozen=True)
class CronField:
    """One parsed cron field.

    Attributes:
        any: True for `*`
        step: Step size for `*/N`, matching values divisible by N
        values: Explicit values from a comma list
    """

    any: bool = False
    step: int | None = None
    values: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_restricted(self) -> bool:
        """Whether the field narrows anything (not `*` and not an empty list)."""
        if self.any:
            return False
        if self.step is not None:
            return True
        return bool(self.values)

    def matches(self, value: int) -> bool:
        """Check a single value against this field.

        An empty value list (e.g. a list of unparsable tokens) matches.
        """
        if self.any:
            return True
        if self.step is not None:
            return value % self.step == 0
        if self.values:
            return value in self.values
        return True

    @property
    def single_value(self) -> int | None:
        """The only value of the field, when it names exactly one."""
        if not self.any and self.step is None and len(self.values) == 1:
            return next(iter(self.values))
        return None


@dataclass(frozen=True)
class CronExpression:
    """A parsed five-field cron expression."""

    expression: str
    minute: CronField
    hour: CronField
    day_of_month: CronField
    month: CronField
    day_of_week: CronField

    def matches_date(self, value: date) -> bool:
        """Return True when the expression fires at some time on `value`.

        Minute and hour describe the time of day, not which dates fire, so
        only day-of-month, month and day-of-week are evaluated.
        """
        if not self.month.matches(value.month):
            return False

        dom_match = self.day_of_month.matches(value.day)
        dow_match = self.day_of_week.matches(dt_weekday(value))

        if not self.day_of_month.is_restricted:
            return dow_match
        if not self.day_of_week.is_restricted:
            return dom_match
        return dom_match or dow_match

    def matches_datetime(self, value: datetime) -> bool:
        """Return True when the expression fires exactly at `value` (minute precision)."""
        return (
            self.minute.matches(value.minute)
            and self.hour.matches(value.hour)
            and self.matches_date(value.date())
        )

    @property
    def time_of_day(self) -> time | None:
        """The firing time when minute and hour each name a single value."""
        minute = self.minute.single_value
        hour = self.hour.single_value
        if minute is None or hour is None:
            return None
        try:
            return time(hour, minute)
        except ValueError:
            return None


# =============================================================================
# PARSING
# =============================================================================


def _parse_field(token: str, minimum: int, maximum: int, is_day_of_week: bool) -> CronField:
    """Parse one cron field token.

    Unparsable list items are dropped rather than raising; a field left with
    no values matches everything.
    """
    if token == const.CRON_WILDCARD:
        return CronField(any=True)

    if token.startswith(const.CRON_STEP_PREFIX):
        try:
            step = int(token[len(const.CRON_STEP_PREFIX) :])
        except ValueError:
            step = 1
        return CronField(step=max(1, step))

    values: set[int] = set()
    for item in token.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            if "-" in item:
                low_str, high_str = item.split("-", 1)
                low = max(int(low_str), minimum)
                high = min(int(high_str), maximum)
                values.update(range(low, high + 1))
            else:
                values.add(int(item))
        except ValueError:
            const.LOGGER.debug("Ignoring unparsable cron item %r", item)
            continue

    values = {v for v in values if minimum <= v <= maximum}
    if is_day_of_week:
        # Both 0 and 7 mean Sunday
        values = {v % const.DAYS_PER_WEEK for v in values}

    return CronField(values=frozenset(values))


@lru_cache(maxsize=256)
def parse_cron_expression(expression: str) -> CronExpression:
    """Parse a five-field cron expression.

    Args:
        expression: e.g. "0 9 15 * 1"

    Returns:
        Immutable CronExpression

    Raises:
        CronParseError: If the expression does not split into exactly five fields
    """
    tokens = expression.strip().split() if isinstance(expression, str) else []
    if len(tokens) != const.CRON_FIELD_COUNT:
        raise CronParseError(str(expression))

    fields = [
        _parse_field(
            token,
            minimum,
            maximum,
            is_day_of_week=name == const.CRON_FIELD_DAY_OF_WEEK,
        )
        for token, (name, minimum, maximum) in zip(
            tokens, const.CRON_FIELD_BOUNDS, strict=True
        )
    ]
    return CronExpression(expression.strip(), *fields)


def cron_matches_date(cron: str | CronExpression, value: date) -> bool:
    """Return True when a cron expression fires on a calendar date.

    Raises:
        CronParseError: If `cron` is a malformed expression string
    """
    parsed = cron if isinstance(cron, CronExpression) else parse_cron_expression(cron)
    return parsed.matches_date(value)
