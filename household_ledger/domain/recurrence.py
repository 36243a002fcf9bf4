"""Recurrence calculator for scheduled payments"""

from datetime import date, timedelta
from typing import Union

from dateutil.relativedelta import relativedelta

from household_ledger.domain.models import Frequency, PaymentType

# relativedelta clamps to the last valid day of the target month (Jan 31 + 1 month -> Feb 28/29)
_STEPS = {
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.BIWEEKLY: timedelta(days=14),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.ANNUAL: relativedelta(years=1),
}


def next_occurrence(current: date, frequency: Union[Frequency, str]) -> date:
    """
    Return the next due date after `current` for the given frequency.

    `once` returns `current` unchanged; callers must not spawn an
    occurrence for one-time payments.

    Example:
        next_occurrence(date(2024, 1, 31), "monthly") -> date(2024, 2, 29)
        next_occurrence(date(2024, 1, 15), "quarterly") -> date(2024, 4, 15)
    """
    step = _STEPS.get(Frequency(frequency))
    if step is None:
        return current
    return current + step


def compute_next_due_date(due_date: date, payment_type: str, frequency: str) -> date:
    """Derive next_due_date stored on a payment"""
    if payment_type == PaymentType.ONCE.value:
        return due_date
    return next_occurrence(due_date, frequency)
