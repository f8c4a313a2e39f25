"""Schedule Engine for TaskRota.

Decides whether a schedule fires on a calendar date.

- `RecurrenceEngine` evaluates a recurrence rule (daily / weekly / monthly /
  yearly, with interval, weekday, month-day and set-position filters, start
  and end boundaries and occurrence limits).
- Cron expressions are delegated to `cron_engine`; cron wins over a rule when
  a schedule carries both.
- Exact-date overrides are checked first, in order: schedule include,
  schedule exclude, rule include, rule exclude.

Monthly and yearly rules count whole calendar months and years from the start;
without a day-within-month filter every day of a qualifying period fires.

Malformed rules never raise: fields that cannot be evaluated match.
Malformed cron expressions raise `CronParseError`.

IMPORTANT: Only import from const.py, type_defs.py, utils and sibling engines.
"""

from __future__ import annotations

from collections.abc import Container, Iterator, Mapping
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from dateutil.relativedelta import relativedelta

from .. import const
from ..utils.dt_utils import (
    dt_date_part,
    dt_days_between,
    dt_iter_days,
    dt_months_between,
    dt_nth_weekday_of_month,
    dt_parse_date,
    dt_weekday,
    dt_weeks_between,
)
from .cron_engine import CronExpression, parse_cron_expression

if TYPE_CHECKING:
    from ..type_defs import RecurrenceRuleData, ScheduleData


def _date_set(values: list[str] | None) -> frozenset[str]:
    """Normalize an include/exclude list to a set of `YYYY-MM-DD` strings."""
    if not values or not isinstance(values, (list, tuple, set, frozenset)):
        return frozenset()
    return frozenset(part for part in (dt_date_part(v) for v in values) if part)


def _end_config(rule: RecurrenceRuleData) -> Mapping[str, Any]:
    end = rule.get(const.DATA_RULE_END)
    return end if isinstance(end, Mapping) else {}


def _int_entries(
    values: Any, minimum: int, maximum: int, extra: Container[int] = ()
) -> list[int]:
    """Coerce list entries to ints, keeping those in [minimum, maximum] or `extra`."""
    if not isinstance(values, (list, tuple, set, frozenset)):
        return []
    result: list[int] = []
    for value in values:
        try:
            number = int(value)
        except (TypeError, ValueError):
            continue
        if minimum <= number <= maximum or number in extra:
            result.append(number)
    return result


class RecurrenceEngine:
    """Evaluates a single recurrence rule against calendar dates.

    The engine is immutable after construction and safe to share. Dates before
    the rule's start never match; the start date defaults to the evaluated
    date itself when the rule has none.
    """

    def __init__(self, rule: RecurrenceRuleData) -> None:
        """Initialize the recurrence engine with a rule.

        Args:
            rule: RecurrenceRuleData TypedDict.

        Note:
            Invalid interval values (<=0 or non-numeric) are coerced to 1.
            Weekday, month-day and set-position entries are coerced to int;
            entries that cannot be coerced or fall out of range are ignored.
        """
        if not isinstance(rule, Mapping):
            rule = {}
        self._rule = rule
        self._frequency = rule.get(const.DATA_RULE_FREQUENCY) or const.FREQUENCY_DAILY

        try:
            interval = int(rule.get(const.DATA_RULE_INTERVAL) or const.DEFAULT_INTERVAL)
        except (TypeError, ValueError, OverflowError):
            interval = const.DEFAULT_INTERVAL
        self._interval = max(1, interval)

        self._by_weekday = _int_entries(rule.get(const.DATA_RULE_BY_WEEKDAY), 0, 6)
        self._by_monthday = _int_entries(
            rule.get(const.DATA_RULE_BY_MONTHDAY), 1, 31, extra=range(-31, 0)
        )
        self._by_set_position = _int_entries(
            rule.get(const.DATA_RULE_BY_SET_POSITION), 1, 5, extra=(const.SET_POSITION_LAST,)
        )

        self._start_date = dt_parse_date(rule.get(const.DATA_RULE_START_DATE))
        self._end_boundary = self._resolve_end_boundary(rule)

        end = _end_config(rule)
        self._max_occurrences: int | None = None
        if end.get(const.DATA_RULE_END_TYPE) == const.END_TYPE_AFTER_OCCURRENCES:
            occurrences = end.get(const.DATA_RULE_END_OCCURRENCES)
            if isinstance(occurrences, int):
                self._max_occurrences = occurrences

        self._include_dates = _date_set(rule.get(const.DATA_RULE_INCLUDE_DATES))
        self._exclude_dates = _date_set(rule.get(const.DATA_RULE_EXCLUDE_DATES))

    @staticmethod
    def _resolve_end_boundary(rule: RecurrenceRuleData) -> date | None:
        """Return the inclusive last date of the rule, if bounded by date."""
        end = _end_config(rule)
        boundary = None
        if end.get(const.DATA_RULE_END_TYPE) == const.END_TYPE_AFTER_DATE:
            boundary = end.get(const.DATA_RULE_END_DATE_VALUE)
        return dt_parse_date(boundary or rule.get(const.DATA_RULE_END_DATE))

    @property
    def frequency(self) -> str:
        """Rule frequency (FREQUENCY_* constant)."""
        return self._frequency

    @property
    def interval(self) -> int:
        """Validated interval (>= 1)."""
        return self._interval

    @property
    def start_date(self) -> date | None:
        """First date the rule can fire on, when the rule sets one."""
        return self._start_date

    @property
    def has_date_overrides(self) -> bool:
        """Whether include/exclude dates can change the plain rule result."""
        return bool(self._include_dates or self._exclude_dates)

    # =========================================================================
    # Public evaluation
    # =========================================================================

    def matches(self, target: date) -> bool:
        """Return True when the rule fires on `target`."""
        target_iso = target.isoformat()
        if target_iso in self._include_dates:
            return True
        if target_iso in self._exclude_dates:
            return False

        index = self.occurrence_index(target)
        if index is None:
            return False
        if self._max_occurrences is not None:
            return index < self._max_occurrences
        return True

    def occurrence_index(self, target: date) -> int | None:
        """Return the zero-based interval period containing `target`.

        Ignores exact-date overrides and occurrence limits.

        Returns:
            The period index, or None when the rule does not fire on `target`.
        """
        start = self._start_date or target
        if target < start:
            return None
        if self._end_boundary and target > self._end_boundary:
            return None

        if self._frequency == const.FREQUENCY_WEEKLY:
            return self._weekly_index(start, target)
        if self._frequency == const.FREQUENCY_MONTHLY:
            return self._monthly_index(start, target)
        if self._frequency == const.FREQUENCY_YEARLY:
            return self._yearly_index(start, target)
        return self._daily_index(start, target)

    # =========================================================================
    # Private: per-frequency evaluation
    # =========================================================================

    def _daily_index(self, start: date, target: date) -> int | None:
        days = dt_days_between(start, target)
        if days % self._interval != 0:
            return None
        return days // self._interval

    def _weekly_index(self, start: date, target: date) -> int | None:
        if self._by_weekday and dt_weekday(target) not in self._by_weekday:
            return None
        weeks = dt_weeks_between(start, target)
        if weeks % self._interval != 0:
            return None
        return weeks // self._interval

    def _monthly_index(self, start: date, target: date) -> int | None:
        if not self._matches_month_position(target):
            return None
        months = dt_months_between(start, target)
        if months % self._interval != 0:
            return None
        return months // self._interval

    def _yearly_index(self, start: date, target: date) -> int | None:
        years = target.year - start.year
        if years % self._interval != 0:
            return None
        return years // self._interval

    def _matches_month_position(self, target: date) -> bool:
        """Check the day-within-month filters of a monthly rule.

        Priority: by_monthday, then by_set_position + by_weekday. A rule with
        neither matches any day of a qualifying month.
        """
        if self._by_monthday:
            last_day = (target + relativedelta(day=31)).day
            for monthday in self._by_monthday:
                if monthday == target.day:
                    return True
                if monthday < 0 and last_day + monthday + 1 == target.day:
                    return True
            return False

        if self._by_set_position and self._by_weekday:
            weekday = dt_weekday(target)
            if weekday not in self._by_weekday:
                return False
            return any(
                dt_nth_weekday_of_month(target.year, target.month, weekday, position)
                == target
                for position in self._by_set_position
            )

        return True


# =============================================================================
# Schedule Matching
# =============================================================================


class ScheduleMatcher:
    """Evaluates a full schedule definition against calendar dates.

    Precedence: schedule include → schedule exclude → cron (if present)
    → rule (its own include/exclude first) → no schedule information (False).

    The cron expression is parsed on construction, so a malformed expression
    raises `CronParseError` before any date is evaluated.
    """

    def __init__(self, schedule: ScheduleData | None) -> None:
        """Initialize the matcher.

        Raises:
            CronParseError: If the schedule's cron expression is malformed
        """
        schedule = schedule or {}
        self._include_dates = _date_set(schedule.get(const.DATA_SCHEDULE_INCLUDE_DATES))
        self._exclude_dates = _date_set(schedule.get(const.DATA_SCHEDULE_EXCLUDE_DATES))

        cron_expression = schedule.get(const.DATA_SCHEDULE_CRON_EXPRESSION)
        self._cron: CronExpression | None = (
            parse_cron_expression(cron_expression) if cron_expression else None
        )

        rule = schedule.get(const.DATA_SCHEDULE_RULE)
        self._rule_engine: RecurrenceEngine | None = (
            RecurrenceEngine(rule) if rule and self._cron is None else None
        )
        # (start, end, count) of the last count_between call
        self._last_count: tuple[date, date, int] | None = None

    @property
    def rule_engine(self) -> RecurrenceEngine | None:
        """The rule engine, when the schedule is rule-driven."""
        return self._rule_engine

    @property
    def has_date_overrides(self) -> bool:
        """Whether any include/exclude list can alter the plain rule result."""
        return bool(
            self._include_dates
            or self._exclude_dates
            or (self._rule_engine and self._rule_engine.has_date_overrides)
        )

    def matches(self, target: date) -> bool:
        """Return True when the schedule fires on `target`."""
        target_iso = target.isoformat()
        if target_iso in self._include_dates:
            return True
        if target_iso in self._exclude_dates:
            return False
        if self._cron is not None:
            return self._cron.matches_date(target)
        if self._rule_engine is not None:
            return self._rule_engine.matches(target)
        return False

    def iter_dates(
        self, start: date, max_days: int = const.MAX_OCCURRENCE_PROBE_DAYS
    ) -> Iterator[date]:
        """Lazily yield firing dates, probing at most `max_days` days from `start`."""
        if max_days <= 0:
            return
        last = start + timedelta(days=max_days - 1)
        for day in dt_iter_days(start, last):
            if self.matches(day):
                yield day

    def count_between(self, start: date, end: date) -> int:
        """Count the firing dates in `[start, end)`.

        A later call with the same `start` and a later `end` resumes from the
        previous end, so walking forward day by day stays linear.
        """
        if end <= start:
            return 0
        count = 0
        resume = start
        if self._last_count is not None:
            last_start, last_end, last_count = self._last_count
            if last_start == start and last_end <= end:
                resume, count = last_end, last_count
        if resume < end:
            count += sum(
                1 for day in dt_iter_days(resume, end - timedelta(days=1)) if self.matches(day)
            )
        self._last_count = (start, end, count)
        return count


# =============================================================================
# Module-level evaluation API
# =============================================================================


def rule_matches_date(rule: RecurrenceRuleData, value: date | str) -> bool:
    """Return True when a recurrence rule fires on a date.

    Never raises; an unparsable date does not match.
    """
    target = dt_parse_date(value)
    if target is None:
        return False
    return RecurrenceEngine(rule).matches(target)


def does_schedule_run_on_date(schedule: ScheduleData | None, value: date | str) -> bool:
    """Return True when a schedule fires on a date.

    Raises:
        CronParseError: If the schedule's cron expression is malformed
    """
    target = dt_parse_date(value)
    if target is None or not schedule:
        return False
    return ScheduleMatcher(schedule).matches(target)


def iter_schedule_dates(
    schedule: ScheduleData | None,
    start: date,
    max_days: int = const.MAX_OCCURRENCE_PROBE_DAYS,
) -> Iterator[date]:
    """Lazily yield the dates a schedule fires on, probing at most `max_days` days."""
    return ScheduleMatcher(schedule).iter_dates(start, max_days)


def count_occurrences_between(schedule: ScheduleData | None, start: date, end: date) -> int:
    """Count the dates in `[start, end)` on which a schedule fires."""
    return ScheduleMatcher(schedule).count_between(start, end)


def get_schedule_time_of_day(schedule: ScheduleData | None) -> str | None:
    """Return the schedule's time-of-day string.

    Priority: schedule `due_time`, rule `start_time`, rule `time_of_day`.
    """
    if not schedule:
        return None
    rule = schedule.get(const.DATA_SCHEDULE_RULE) or {}
    return (
        schedule.get(const.DATA_SCHEDULE_DUE_TIME)
        or rule.get(const.DATA_RULE_START_TIME)
        or rule.get(const.DATA_RULE_TIME_OF_DAY)
        or None
    )
