"""Unit tests for recurrence date math"""

import pytest
from datetime import date
from household_ledger.domain.models import Frequency, PaymentType
from household_ledger.domain.recurrence import compute_next_due_date, next_occurrence


def test_weekly_and_biweekly_steps():
    """Test fixed-length steps"""
    assert next_occurrence(date(2024, 1, 1), "weekly") == date(2024, 1, 8)
    assert next_occurrence(date(2024, 1, 1), "biweekly") == date(2024, 1, 15)


def test_monthly_clamps_to_month_end():
    """Test Jan 31 + 1 month lands on the last day of February"""
    assert next_occurrence(date(2024, 1, 31), "monthly") == date(2024, 2, 29)
    assert next_occurrence(date(2023, 1, 31), "monthly") == date(2023, 2, 28)
    assert next_occurrence(date(2024, 3, 31), "monthly") == date(2024, 4, 30)


def test_quarterly_and_annual():
    assert next_occurrence(date(2024, 1, 15), "quarterly") == date(2024, 4, 15)
    assert next_occurrence(date(2024, 11, 30), "quarterly") == date(2025, 2, 28)
    assert next_occurrence(date(2024, 2, 29), "annual") == date(2025, 2, 28)


def test_once_returns_input():
    assert next_occurrence(date(2024, 5, 5), "once") == date(2024, 5, 5)


def test_year_rollover():
    assert next_occurrence(date(2024, 12, 25), "weekly") == date(2025, 1, 1)
    assert next_occurrence(date(2024, 12, 15), "monthly") == date(2025, 1, 15)


def test_unknown_frequency_rejected():
    with pytest.raises(ValueError):
        next_occurrence(date(2024, 1, 1), "daily")


def test_compute_next_due_date():
    """Test one-time payments keep their due date"""
    assert compute_next_due_date(date(2024, 1, 10), "once", "once") == date(2024, 1, 10)
    assert compute_next_due_date(date(2024, 1, 10), "recurring", "monthly") == date(2024, 2, 10)
    assert compute_next_due_date(date(2024, 1, 10), "variable", "once") == date(2024, 1, 10)


def test_compute_next_due_date_accepts_enum_members():
    assert compute_next_due_date(date(2024, 1, 31), PaymentType.ONCE, Frequency.ONCE) == date(2024, 1, 31)
    assert compute_next_due_date(date(2024, 1, 31), PaymentType.RECURRING, Frequency.MONTHLY) == date(2024, 2, 29)
