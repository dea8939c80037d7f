"""Calendar-aware month arithmetic for LendPool.

Interest is billed per elapsed calendar month rather than per fixed 30-day
period, so every duration in the ledger goes through months_between().
"""
import calendar
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from lendpool.config import DATE_FORMAT_STORAGE, MONTHS_DECIMALS
from lendpool.exceptions import InvalidInputError


def to_date(value):
    """Coerce a date, datetime or ISO 8601 string into a date.
    
    Args:
        value: date, datetime, "YYYY-MM-DD" or a full ISO timestamp.
        
    Returns:
        datetime.date
        
    Raises:
        InvalidInputError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value, DATE_FORMAT_STORAGE).date()
        except ValueError:
            pass
        try:
            return date_parser.isoparse(value).date()
        except ValueError:
            raise InvalidInputError("date", value, "is not an ISO 8601 date")
    raise InvalidInputError("date", value, "is not a date")


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given calendar month."""
    return calendar.monthrange(year, month)[1]


def _previous_month(year: int, month: int):
    if month == 1:
        return year - 1, 12
    return year, month - 1


def months_between(start, end) -> float:
    """Fractional calendar months elapsed between two dates.
    
    Whole months come from the year/month fields. The day-of-month
    difference is then folded in: when the end day falls before the start
    day one whole month is given back and the partial month is measured
    against the length of the month preceding the end date; when it falls
    after, the extra days are measured against the end date's own month.
    
    Args:
        start: Start date (anything accepted by to_date).
        end: End date (anything accepted by to_date).
        
    Returns:
        Months rounded to two decimal places. Negative when end < start;
        callers must reject that as invalid input.
    """
    start = to_date(start)
    end = to_date(end)
    
    year_diff = end.year - start.year
    month_diff = end.month - start.month
    day_diff = end.day - start.day
    
    total_months = year_diff * 12 + month_diff
    
    if day_diff < 0:
        total_months -= 1
        prev_days = days_in_month(*_previous_month(end.year, end.month))
        total_months += (prev_days + day_diff) / prev_days
    elif day_diff > 0:
        total_months += day_diff / days_in_month(end.year, end.month)
    
    quantum = Decimal(1).scaleb(-MONTHS_DECIMALS)
    return float(Decimal(str(total_months)).quantize(quantum, rounding=ROUND_HALF_UP))


def add_months(start, months) -> date:
    """Advance a date by whole calendar months.
    
    Fractional months are truncated. The day is clamped to the end of the
    target month (Jan 31 + 1 month -> Feb 28/29).
    """
    return to_date(start) + relativedelta(months=int(months))
