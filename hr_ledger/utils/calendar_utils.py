import calendar
from datetime import date, datetime, timedelta
from typing import Tuple, Union
from hr_ledger.exceptions import InvalidRangeError

DATE_KEY_FORMAT = "%Y-%m-%d"


def working_days(start_date: date, end_date: date) -> int:
    """
    Count the Monday-Friday days in the inclusive range [start_date, end_date].
    Raises InvalidRangeError when end_date is before start_date.
    """
    if end_date < start_date:
        raise InvalidRangeError()

    total_days = (end_date - start_date).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * 5

    # weekday() is 0 for Monday, 5/6 for the weekend
    first_weekday = start_date.weekday()
    for offset in range(remainder):
        if (first_weekday + offset) % 7 < 5:
            count += 1
    return count


def to_date_key(value: Union[date, datetime, str]) -> str:
    """Normalize a calendar date to the YYYY-MM-DD key stored in the database."""
    if isinstance(value, str):
        return from_date_key(value).strftime(DATE_KEY_FORMAT)
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime(DATE_KEY_FORMAT)


def from_date_key(key: str) -> date:
    return datetime.strptime(key[:10], DATE_KEY_FORMAT).date()


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_month(today: date) -> Tuple[int, int]:
    """Return (month, year) of the calendar month before today's."""
    last_of_previous = today.replace(day=1) - timedelta(days=1)
    return last_of_previous.month, last_of_previous.year


def working_days_elapsed_in_month(today: date) -> int:
    return working_days(today.replace(day=1), today)
