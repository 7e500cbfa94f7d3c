"""
Leave Rules

Pure date and accrual arithmetic shared by the leave balance store and the
absence validator (Convention collective IDCC 3239, particuliers employeurs).

- Business days: Monday to Friday, excluding French public holidays. Used to
  size an absence and to consume paid leave.
- Working days ("jours ouvrables"): Monday to Saturday. Used for accrual, where
  24 working days count as one month of effective work (Code du travail L3141-4).
- Leave year: a 12-month acquisition period starting on the 1st of
  `settings.leave.leave_year_start_month` (June by default), labelled "YYYY-YYYY".

Nothing in this module touches the database.
"""
import math
from datetime import date, timedelta
from functools import lru_cache
from typing import Any, Optional, Tuple

from app.core.config import settings

# date.weekday(): Monday == 0 ... Sunday == 6
_SATURDAY = 5
_SUNDAY = 6


def _easter_sunday(year: int) -> date:
    # Anonymous Gregorian algorithm (Meeus/Jones/Butcher)
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


@lru_cache(maxsize=64)
def get_french_public_holidays(year: int) -> Tuple[date, ...]:
    """Return the French public holidays of `year` (metropolitan calendar)."""
    easter = _easter_sunday(year)
    return (
        date(year, 1, 1),    # Jour de l'an
        date(year, 5, 1),    # Fête du travail
        date(year, 5, 8),    # Victoire 1945
        date(year, 7, 14),   # Fête nationale
        date(year, 8, 15),   # Assomption
        date(year, 11, 1),   # Toussaint
        date(year, 11, 11),  # Armistice
        date(year, 12, 25),  # Noël
        easter,
        easter + timedelta(days=1),   # Lundi de Pâques
        easter + timedelta(days=39),  # Ascension
        easter + timedelta(days=50),  # Lundi de Pentecôte
    )


def is_public_holiday(day: date) -> bool:
    return day in get_french_public_holidays(day.year)


def count_business_days(start: date, end: date) -> int:
    """
    Count business days in [start, end], both ends included.
    Saturdays, Sundays and public holidays are excluded. Returns 0 if start > end.
    """
    if start > end:
        return 0

    holidays = set()
    for year in range(start.year, end.year + 1):
        holidays.update(get_french_public_holidays(year))

    count = 0
    current = start
    while current <= end:
        if current.weekday() < _SATURDAY and current not in holidays:
            count += 1
        current += timedelta(days=1)
    return count


def count_working_days(start: date, end: date) -> int:
    """Count Monday-to-Saturday days in [start, end] (accrual basis, holidays included)."""
    if start > end:
        return 0
    count = 0
    current = start
    while current <= end:
        if current.weekday() != _SUNDAY:
            count += 1
        current += timedelta(days=1)
    return count


def get_leave_year(day: date, start_month: Optional[int] = None) -> str:
    """
    Map a date to the label of the leave year containing it.

    With the default June boundary: 2024-05-31 -> "2023-2024", 2024-06-01 -> "2024-2025".
    """
    start_month = start_month or settings.leave.leave_year_start_month
    if day.month >= start_month:
        return f"{day.year}-{day.year + 1}"
    return f"{day.year - 1}-{day.year}"


def _parse_leave_year(leave_year: str) -> int:
    try:
        first, second = (int(part) for part in leave_year.split("-"))
    except ValueError:
        raise ValueError(f"Invalid leave year label: {leave_year!r}") from None
    if second != first + 1:
        raise ValueError(f"Invalid leave year label: {leave_year!r}")
    return first


def get_leave_year_start_date(leave_year: str, start_month: Optional[int] = None) -> date:
    """First day of a leave year, e.g. "2025-2026" -> 2025-06-01 with the default boundary."""
    start_month = start_month or settings.leave.leave_year_start_month
    return date(_parse_leave_year(leave_year), start_month, 1)


def get_leave_year_end_date(leave_year: str, start_month: Optional[int] = None) -> date:
    """Last day of a leave year, e.g. "2025-2026" -> 2026-05-31 with the default boundary."""
    start = get_leave_year_start_date(leave_year, start_month)
    return date(start.year + 1, start.month, 1) - timedelta(days=1)


def calculate_justification_due_date(sick_start_date: date) -> date:
    """Deadline for the sick-leave certificate (48h by default)."""
    return sick_start_date + timedelta(days=settings.leave.justification_grace_days)


def date_ranges_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """Inclusive overlap test between [start1, end1] and [start2, end2]."""
    return start1 <= end2 and start2 <= end1


def is_in_main_leave_period(day: date) -> bool:
    """True between May and October, when the main leave should be taken."""
    return settings.leave.main_period_first_month <= day.month <= settings.leave.main_period_last_month


def count_business_days_outside_main_period(start: date, end: date) -> int:
    """Business days of [start, end] falling outside May-October."""
    count = 0
    current = start
    while current <= end:
        if current.weekday() < _SATURDAY and not is_public_holiday(current) and not is_in_main_leave_period(current):
            count += 1
        current += timedelta(days=1)
    return count


# ---------------------------------------------------------------------------
# Accrual
# ---------------------------------------------------------------------------

def _days_from_months(months: float) -> float:
    policy = settings.leave
    base = min(months * policy.days_per_month, policy.max_acquired_days)
    # Rounded up in the employee's favour (L3141-7)
    return float(math.ceil(base))


def calculate_acquired_days(
    contract_start: date,
    weekly_hours: float,
    leave_year_start: date,
    as_of: date,
) -> float:
    """
    Paid-leave days acquired on a contract within one leave year, as of `as_of`.

    Every 24 working days worked since max(contract start, leave year start) earn
    2.5 days, capped at 30 and rounded up. Part-time contracts accrue like full-time
    ones; a contract without weekly hours accrues nothing. `as_of` is capped at the
    last day of the leave year.
    """
    if not weekly_hours or weekly_hours <= 0:
        return 0.0

    start_month = leave_year_start.month
    leave_year_end = get_leave_year_end_date(get_leave_year(leave_year_start, start_month), start_month)
    effective_start = max(contract_start, leave_year_start)
    effective_end = min(as_of, leave_year_end)
    if effective_start > effective_end:
        return 0.0

    months_worked = count_working_days(effective_start, effective_end) // settings.leave.working_days_per_month
    return _days_from_months(months_worked)


def calculate_acquired_from_months(months: float) -> float:
    """Acquired days for a manually reported number of months (history carry-in)."""
    if months <= 0:
        return 0.0
    return _days_from_months(months)


def calculate_default_months_worked(start_date: date, today: Optional[date] = None) -> int:
    """Suggested months worked in the current leave year for a contract starting on `start_date`."""
    today = today or date.today()
    if start_date > today:
        return 0
    leave_year_start = get_leave_year_start_date(get_leave_year(today))
    effective_start = max(start_date, leave_year_start)
    working_days = count_working_days(effective_start, today)
    return min(working_days // settings.leave.working_days_per_month, settings.leave.max_months_worked)


def calculate_remaining_days(balance: Any) -> float:
    """acquired + adjustment - taken, for any object exposing those three attributes."""
    return (balance.acquired_days or 0.0) + (balance.adjustment_days or 0.0) - (balance.taken_days or 0.0)


def calculate_fractionnement(days_outside_main_period: float) -> int:
    """Extra days owed when part of the main leave is taken outside May-October."""
    if days_outside_main_period >= 6:
        return 2
    if days_outside_main_period >= 3:
        return 1
    return 0
