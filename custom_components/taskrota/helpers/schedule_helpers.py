"""Schedule description helpers for TaskRota.

Read-only shaping of schedules for display: human-readable summaries,
upcoming occurrence dates and date-times, and a one-way rule → cron
converter used when a rule-based schedule is exported as cron.
"""

from __future__ import annotations

from datetime import date
from itertools import islice
from typing import TYPE_CHECKING

from .. import const
from ..engines.cron_engine import parse_cron_expression
from ..engines.schedule_engine import ScheduleMatcher, get_schedule_time_of_day
from ..utils.dt_utils import (
    dt_combine_local,
    dt_format_time_label,
    dt_parse_date,
    parse_time_of_day,
)

if TYPE_CHECKING:
    from ..type_defs import RecurrenceRuleData, ScheduleData


# ==============================================================================
# Descriptions
# ==============================================================================


def _every_text(interval: int, unit: str) -> str:
    """Return "Every day" / "Every 2 days" style prefixes."""
    if interval > 1:
        return f"Every {interval} {unit}s"
    return f"Every {unit}"


def describe_schedule(schedule: ScheduleData | None) -> str:
    """Return a human-readable summary of a schedule.

    A cached `description` wins. Cron schedules are echoed verbatim.

    Examples:
        "Every week on Monday, Wednesday at 5:00 PM (UTC)"
        "Every 2 days"
        "Every month on day(s) 1, 15"
    """
    if not schedule:
        return const.DISPLAY_NO_SCHEDULE
    if schedule.get(const.DATA_SCHEDULE_DESCRIPTION):
        return schedule[const.DATA_SCHEDULE_DESCRIPTION]
    if schedule.get(const.DATA_SCHEDULE_CRON_EXPRESSION):
        return f"{const.DISPLAY_CRON_PREFIX}{schedule[const.DATA_SCHEDULE_CRON_EXPRESSION]}"

    rule = schedule.get(const.DATA_SCHEDULE_RULE)
    if not rule:
        return const.DISPLAY_NO_SCHEDULE

    try:
        interval = max(1, int(rule.get(const.DATA_RULE_INTERVAL) or 1))
    except (TypeError, ValueError):
        interval = 1

    time_of_day = parse_time_of_day(get_schedule_time_of_day(schedule))
    time_suffix = f" at {dt_format_time_label(time_of_day)}" if time_of_day else ""
    timezone = schedule.get(const.DATA_SCHEDULE_TIMEZONE)
    suffix = f"{time_suffix} ({timezone})" if timezone else time_suffix

    frequency = rule.get(const.DATA_RULE_FREQUENCY)
    by_weekday = rule.get(const.DATA_RULE_BY_WEEKDAY) or []
    by_monthday = rule.get(const.DATA_RULE_BY_MONTHDAY) or []

    if frequency == const.FREQUENCY_DAILY:
        return f"{_every_text(interval, 'day')}{suffix}"

    if frequency == const.FREQUENCY_WEEKLY:
        if by_weekday:
            names = ", ".join(
                const.WEEKDAY_NAMES[d % const.DAYS_PER_WEEK] for d in by_weekday
            )
            return f"{_every_text(interval, 'week')} on {names}{suffix}"
        return f"{_every_text(interval, 'week')}{suffix}"

    if frequency == const.FREQUENCY_MONTHLY:
        if by_monthday:
            days = ", ".join(str(d) for d in by_monthday)
            return f"{_every_text(interval, 'month')} on day(s) {days}{suffix}"
        return f"{_every_text(interval, 'month')}{suffix}"

    return f"{_every_text(interval, 'year')}{suffix}"


# ==============================================================================
# Upcoming Occurrences
# ==============================================================================


def get_next_occurrences(
    schedule: ScheduleData | None,
    start: str | date,
    count: int = const.DEFAULT_OCCURRENCE_COUNT,
) -> list[str]:
    """Return up to `count` firing dates on or after `start`.

    Probes at most MAX_OCCURRENCE_PROBE_DAYS days, so sparse schedules may
    return fewer than `count` dates.

    Raises:
        CronParseError: If the schedule's cron expression is malformed
    """
    start_date = dt_parse_date(start)
    if start_date is None or count <= 0:
        return []
    matcher = ScheduleMatcher(schedule)
    return [
        day.isoformat()
        for day in islice(
            matcher.iter_dates(start_date, const.MAX_OCCURRENCE_PROBE_DAYS), count
        )
    ]


def get_next_execution_datetimes(
    schedule: ScheduleData | None,
    start: str | date,
    count: int = const.DEFAULT_OCCURRENCE_COUNT,
) -> list[str]:
    """Return upcoming firing date-times as local ISO 8601 strings.

    Each date from get_next_occurrences() is combined with the schedule's
    time of day (see get_schedule_time_of_day(); cron schedules fall back to
    the cron's own minute/hour). Midnight is used when no time is known.
    """
    time_of_day = parse_time_of_day(get_schedule_time_of_day(schedule))
    if time_of_day is None and schedule and schedule.get(
        const.DATA_SCHEDULE_CRON_EXPRESSION
    ):
        time_of_day = parse_cron_expression(
            schedule[const.DATA_SCHEDULE_CRON_EXPRESSION]
        ).time_of_day

    return [
        dt_combine_local(date.fromisoformat(day), time_of_day).isoformat()
        for day in get_next_occurrences(schedule, start, count)
    ]


# ==============================================================================
# Cron Conversion
# ==============================================================================


def build_cron_expression_from_rule(rule: RecurrenceRuleData) -> str | None:
    """Build a cron expression approximating a recurrence rule.

    One-way convenience only: start/end boundaries, set positions and
    weekly intervals are not representable and are dropped.

    Returns:
        Cron string, or None when the rule's time of day is unparsable.

    Examples:
        daily, interval 2, 09:00 → "0 9 */2 * *"
        weekly on Mon+Wed, 17:00 → "0 17 * * 1,3"
        monthly on the 15th, 12:00 → "0 12 15 */1 *"
    """
    raw_time = (
        rule.get(const.DATA_RULE_START_TIME)
        or rule.get(const.DATA_RULE_TIME_OF_DAY)
        or "00:00"
    )
    time_of_day = parse_time_of_day(raw_time)
    if time_of_day is None:
        return None

    try:
        interval = max(1, int(rule.get(const.DATA_RULE_INTERVAL) or 1))
    except (TypeError, ValueError):
        interval = 1

    minute, hour = time_of_day.minute, time_of_day.hour
    frequency = rule.get(const.DATA_RULE_FREQUENCY)

    if frequency == const.FREQUENCY_DAILY:
        return f"{minute} {hour} */{interval} * *"
    if frequency == const.FREQUENCY_WEEKLY:
        by_weekday = rule.get(const.DATA_RULE_BY_WEEKDAY) or []
        dow = ",".join(str(d) for d in by_weekday) if by_weekday else "*"
        return f"{minute} {hour} * * {dow}"
    if frequency == const.FREQUENCY_MONTHLY:
        by_monthday = rule.get(const.DATA_RULE_BY_MONTHDAY) or []
        dom = ",".join(str(d) for d in by_monthday) if by_monthday else "1"
        return f"{minute} {hour} {dom} */{interval} *"
    return f"{minute} {hour} 1 1 *"
