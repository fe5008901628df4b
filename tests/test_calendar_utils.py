from datetime import date, datetime, timezone

import pytest

from hr_ledger.exceptions import InvalidRangeError
from hr_ledger.utils.calendar_utils import (from_date_key, month_bounds, previous_month, to_date_key,
                                           working_days, working_days_elapsed_in_month)


def test_full_week_counts_five_working_days():
    # Monday 2024-02-19 .. Sunday 2024-02-25
    assert working_days(date(2024, 2, 19), date(2024, 2, 25)) == 5


@pytest.mark.parametrize("start, end, expected", [
    (date(2024, 2, 19), date(2024, 2, 19), 1),   # single Monday
    (date(2024, 2, 24), date(2024, 2, 25), 0),   # weekend only
    (date(2024, 2, 23), date(2024, 2, 26), 2),   # Friday over the weekend to Monday
    (date(2024, 2, 1), date(2024, 2, 29), 21),   # leap-year February
    (date(2024, 2, 17), date(2024, 3, 2), 10),   # two weeks starting on a Saturday
])
def test_working_days_ranges(start, end, expected):
    assert working_days(start, end) == expected


def test_end_before_start_is_rejected():
    with pytest.raises(InvalidRangeError) as exc_info:
        working_days(date(2024, 2, 20), date(2024, 2, 19))
    assert exc_info.value.code == "validation_error"


def test_date_keys_normalize_dates_and_datetimes():
    assert to_date_key(date(2024, 3, 4)) == "2024-03-04"
    assert to_date_key(datetime(2024, 3, 4, 23, 59, tzinfo=timezone.utc)) == "2024-03-04"
    assert to_date_key("2024-03-04T10:00:00") == "2024-03-04"
    assert from_date_key("2024-03-04") == date(2024, 3, 4)


def test_month_helpers():
    assert month_bounds(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
    assert previous_month(date(2024, 1, 15)) == (12, 2023)
    assert previous_month(date(2024, 3, 31)) == (2, 2024)
    # Thursday 2024-02-08: Feb 1, 2, 5, 6, 7, 8
    assert working_days_elapsed_in_month(date(2024, 2, 8)) == 6
