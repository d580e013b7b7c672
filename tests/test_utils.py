"""Tests for dt_utils and math_utils."""

from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfoNotFoundError

import pytest

from habitcore.utils.dt_utils import (
    dt_days_between,
    dt_end_of_week,
    dt_iter_days,
    dt_parse_date,
    dt_start_of_week,
    dt_weekday,
    get_time_zone,
    is_valid_time_zone,
)
from habitcore.utils.math_utils import (
    calculate_percentage,
    calculate_progress,
    clamp,
    round_half_up,
)


class TestParseDate:
    """Tests for dt_parse_date()."""

    @pytest.mark.parametrize(
        "value",
        [
            "2024-01-05",
            "2024-01-05T23:59:00+00:00",
            "2024-01-05T01:00:00-08:00",  # calendar date as written
            date(2024, 1, 5),
            datetime(2024, 1, 5, 12, 0, tzinfo=UTC),
        ],
    )
    def test_valid(self, value: object) -> None:
        assert dt_parse_date(value) == date(2024, 1, 5)  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", [None, "", "tomorrow", "2024-13-01", 20240105])
    def test_invalid(self, value: object) -> None:
        assert dt_parse_date(value) is None  # type: ignore[arg-type]


class TestDayArithmetic:
    """Calendar-day helpers."""

    def test_days_between(self) -> None:
        assert dt_days_between(date(2024, 1, 4), date(2024, 1, 1)) == 3
        assert dt_days_between(date(2024, 3, 1), date(2024, 2, 28)) == 2  # leap year
        assert dt_days_between(date(2024, 1, 1), date(2024, 1, 4)) == -3

    @pytest.mark.parametrize(
        ("day", "expected"),
        [
            (date(2024, 1, 7), 0),  # Sunday
            (date(2024, 1, 1), 1),  # Monday
            (date(2024, 1, 6), 6),  # Saturday
        ],
    )
    def test_weekday_is_sunday_based(self, day: date, expected: int) -> None:
        assert dt_weekday(day) == expected

    def test_start_of_week_monday(self) -> None:
        assert dt_start_of_week(date(2024, 1, 10), 1) == date(2024, 1, 8)
        assert dt_start_of_week(date(2024, 1, 8), 1) == date(2024, 1, 8)
        assert dt_start_of_week(date(2024, 1, 7), 1) == date(2024, 1, 1)

    def test_start_of_week_sunday(self) -> None:
        assert dt_start_of_week(date(2024, 1, 10), 0) == date(2024, 1, 7)
        assert dt_start_of_week(date(2024, 1, 7), 0) == date(2024, 1, 7)

    def test_end_of_week(self) -> None:
        assert dt_end_of_week(date(2024, 1, 10), 1) == date(2024, 1, 14)

    def test_iter_days(self) -> None:
        assert list(dt_iter_days(date(2024, 2, 28), date(2024, 3, 1))) == [
            date(2024, 2, 28),
            date(2024, 2, 29),
            date(2024, 3, 1),
        ]
        assert list(dt_iter_days(date(2024, 1, 2), date(2024, 1, 1))) == []


class TestTimeZones:
    """Timezone resolution."""

    def test_default(self) -> None:
        assert str(get_time_zone(None)) == "UTC"

    def test_unknown(self) -> None:
        assert is_valid_time_zone("Europe/Paris") is True
        assert is_valid_time_zone("Nowhere/Special") is False
        with pytest.raises(ZoneInfoNotFoundError):
            get_time_zone("Nowhere/Special")


class TestMath:
    """Rounding and percentages."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(2.5, 3), (3.5, 4), (2.4999, 2), (0.5, 1), (-2.5, -3), (7.0, 7)],
    )
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected

    def test_percentage(self) -> None:
        assert calculate_percentage(1, 3) == 33
        assert calculate_percentage(1, 8) == 13
        assert calculate_percentage(40, 30) == 133
        assert calculate_percentage(5, 0) == 0

    def test_progress_clamped(self) -> None:
        assert calculate_progress(3, 6) == 0.5
        assert calculate_progress(9, 6) == 1.0
        assert calculate_progress(-1, 6) == 0.0
        assert calculate_progress(1, 0) == 0.0

    def test_clamp(self) -> None:
        assert clamp(150, 0, 100) == 100
        assert clamp(-10, 0, 100) == 0
