"""Tests for utils/dt_utils.py date and time helpers."""

from datetime import date, time
from zoneinfo import ZoneInfo

import pytest

from custom_components.taskrota.utils import dt_utils
from custom_components.taskrota.utils.dt_utils import (
    dt_combine_local,
    dt_date_part,
    dt_format_time_label,
    dt_has_time_component,
    dt_iter_days,
    dt_months_between,
    dt_nth_weekday_of_month,
    dt_parse_date,
    dt_weekday,
    dt_weeks_between,
    parse_time_of_day,
)

# =============================================================================
# Parsing
# =============================================================================


class TestDateParsing:
    """Test date parsing and truncation."""

    def test_date_part_strips_time(self) -> None:
        """ISO datetimes are truncated to their date part."""
        assert dt_date_part("2024-03-10T09:00:00") == "2024-03-10"
        assert dt_date_part("2024-03-10") == "2024-03-10"
        assert dt_date_part("") is None
        assert dt_date_part(None) is None

    @pytest.mark.parametrize(
        "value",
        ["2024-03-10", "2024-03-10T23:59:00+05:00", "03/10/2024", date(2024, 3, 10)],
    )
    def test_parse_accepted_formats(self, value: object) -> None:
        """All supported inputs parse to the same calendar date."""
        assert dt_parse_date(value) == date(2024, 3, 10)  # type: ignore[arg-type]

    def test_parse_garbage_returns_none(self) -> None:
        """Unparsable input yields None rather than raising."""
        assert dt_parse_date("next tuesday") is None
        assert dt_parse_date(None) is None

    def test_has_time_component(self) -> None:
        """Only strings with a T separator carry a time."""
        assert dt_has_time_component("2024-03-10T17:00:00")
        assert not dt_has_time_component("2024-03-10")
        assert not dt_has_time_component(None)


# =============================================================================
# Calendar arithmetic
# =============================================================================


class TestCalendarArithmetic:
    """Test weekday numbering and period arithmetic."""

    def test_weekday_is_sunday_based(self) -> None:
        """0 is Sunday and 6 is Saturday."""
        assert dt_weekday(date(2024, 3, 10)) == 0
        assert dt_weekday(date(2024, 3, 11)) == 1
        assert dt_weekday(date(2024, 3, 16)) == 6

    def test_months_between_ignores_day(self) -> None:
        """Jan 31 to Feb 1 is one calendar month."""
        assert dt_months_between(date(2024, 1, 31), date(2024, 2, 1)) == 1
        assert dt_months_between(date(2023, 11, 15), date(2024, 2, 15)) == 3

    def test_weeks_between_floors(self) -> None:
        """Partial weeks do not count."""
        assert dt_weeks_between(date(2024, 3, 4), date(2024, 3, 10)) == 0
        assert dt_weeks_between(date(2024, 3, 4), date(2024, 3, 11)) == 1

    def test_iter_days_inclusive(self) -> None:
        """Both bounds are yielded; an inverted range yields nothing."""
        days = list(dt_iter_days(date(2024, 2, 28), date(2024, 3, 1)))
        assert days == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]
        assert list(dt_iter_days(date(2024, 3, 2), date(2024, 3, 1))) == []

    def test_nth_weekday_of_month(self) -> None:
        """First Monday of March 2024 is the 4th; there is no 5th Monday in Feb."""
        assert dt_nth_weekday_of_month(2024, 3, 1, 1) == date(2024, 3, 4)
        assert dt_nth_weekday_of_month(2024, 2, 1, 5) is None
        assert dt_nth_weekday_of_month(2024, 3, 5, -1) == date(2024, 3, 29)

    def test_last_weekday_of_month_leap_year(self) -> None:
        """Last Thursday of February 2024 is the 29th."""
        assert dt_nth_weekday_of_month(2024, 2, 4, -1) == date(2024, 2, 29)


# =============================================================================
# Time of day
# =============================================================================


class TestTimeOfDay:
    """Test time parsing, combination and labels."""

    def test_parse_time_of_day(self) -> None:
        """HH:MM and HH:MM:SS parse; out-of-range values do not."""
        assert parse_time_of_day("17:30") == time(17, 30)
        assert parse_time_of_day("07:05:09") == time(7, 5, 9)
        assert parse_time_of_day("25:00") is None
        assert parse_time_of_day("soon") is None
        assert parse_time_of_day(None) is None

    def test_combine_local_uses_explicit_timezone(self) -> None:
        """The offset follows the zone's rules on that date."""
        result = dt_combine_local(
            date(2024, 1, 15), time(9, 0), ZoneInfo("America/New_York")
        )
        assert result.isoformat() == "2024-01-15T09:00:00-05:00"

    def test_combine_local_uses_default_timezone(self) -> None:
        """Without an explicit zone the configured default applies."""
        dt_utils.set_default_timezone(ZoneInfo("Europe/Berlin"))
        result = dt_combine_local(date(2024, 7, 1), time(8, 0))
        assert result.isoformat() == "2024-07-01T08:00:00+02:00"

    def test_combine_local_defaults_to_midnight(self) -> None:
        """A missing time of day means midnight."""
        assert dt_combine_local(date(2024, 3, 10)).isoformat() == "2024-03-10T00:00:00+00:00"

    def test_format_time_label(self) -> None:
        """Labels use a 12-hour clock."""
        assert dt_format_time_label(time(17, 0)) == "5:00 PM"
        assert dt_format_time_label(time(0, 5)) == "12:05 AM"
        assert dt_format_time_label(time(12, 30)) == "12:30 PM"
