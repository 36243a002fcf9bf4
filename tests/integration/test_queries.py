"""Integration tests for payment listing, upcoming, overdue and period summaries"""

import pytest
from datetime import date
from decimal import Decimal
from household_ledger.domain.exceptions import HouseholdNotFoundError, InvalidError
from household_ledger.domain.models import PaymentFilters
from household_ledger.services.payments import PaymentService
from household_ledger.services.queries import PaymentQueries


@pytest.fixture
def queries(db, clock) -> PaymentQueries:
    return PaymentQueries(db, clock=clock)


@pytest.fixture
def ledger_month(db, clock, household, payment_data):
    """Payments around 2024-03-15, keyed by what their effective status will be"""
    service = PaymentService(db, clock=clock)
    created = {
        "overdue": service.create(household, payment_data("100", date(2024, 3, 1), payee="Gas Co")),
        "scheduled": service.create(household, payment_data("200", date(2024, 3, 20), payee="Water Utility")),
        "paid": service.create(household, payment_data("50", date(2024, 3, 10), payee="Phone")),
        "later": service.create(household, payment_data("75", date(2024, 4, 30), payee="Insurance")),
        "cancelled": service.create(household, payment_data("30", date(2024, 3, 18), payee="Gym")),
        "partial": service.create(household, payment_data("100", date(2024, 3, 25), payee="Power Utility")),
    }
    service.settle(household, created["paid"].id, date(2024, 3, 10), Decimal("50"))
    service.cancel(household, created["cancelled"].id)
    service.settle(household, created["partial"].id, date(2024, 3, 15), Decimal("40"))
    return created


def _payees(payments):
    return [p.payee for p in payments]


def test_upcoming_includes_open_payments_in_window(queries, household, ledger_month):
    assert _payees(queries.upcoming(household, days=30)) == ["Water Utility", "Power Utility"]
    assert _payees(queries.upcoming(household, days=60)) == ["Water Utility", "Power Utility", "Insurance"]
    assert _payees(queries.upcoming(household)) == ["Water Utility", "Power Utility"]


def test_upcoming_rejects_negative_window(queries, household):
    with pytest.raises(InvalidError):
        queries.upcoming(household, days=-1)


def test_overdue_is_derived_from_due_date(queries, household, ledger_month):
    overdue = queries.overdue(household)
    assert _payees(overdue) == ["Gas Co"]
    assert overdue[0].status == "scheduled"
    assert queries.status_of(overdue[0]) == "overdue"


@pytest.mark.parametrize(
    "status,expected",
    [
        ("overdue", ["Gas Co"]),
        ("scheduled", ["Water Utility", "Insurance"]),
        ("partial", ["Power Utility"]),
        ("paid", ["Phone"]),
        ("cancelled", ["Gym"]),
    ],
)
def test_list_by_effective_status(queries, household, ledger_month, status, expected):
    page = queries.list_payments(household, PaymentFilters(status=status))
    assert _payees(page.items) == expected


def test_list_filters(queries, household, ledger_month, category):
    search = queries.list_payments(household, PaymentFilters(search="utility"))
    assert _payees(search.items) == ["Water Utility", "Power Utility"]

    window = queries.list_payments(
        household, PaymentFilters(start_date=date(2024, 3, 10), end_date=date(2024, 3, 20))
    )
    assert _payees(window.items) == ["Phone", "Gym", "Water Utility"]

    by_category = queries.list_payments(household, PaymentFilters(category_id=category.id))
    assert by_category.total == 6

    overdue_only = queries.list_payments(household, PaymentFilters(overdue_only=True))
    assert _payees(overdue_only.items) == ["Gas Co"]


def test_list_pagination(queries, household, ledger_month):
    first = queries.list_payments(household, PaymentFilters(limit=4))
    second = queries.list_payments(household, PaymentFilters(limit=4, offset=4))

    assert (first.total, first.limit, first.offset, first.has_more) == (6, 4, 0, True)
    assert len(second.items) == 2
    assert second.has_more is False
    assert queries.list_payments(household, PaymentFilters(limit=500)).limit == 100


def test_list_rejects_unknown_status(queries, household):
    with pytest.raises(InvalidError):
        queries.list_payments(household, PaymentFilters(status="late"))


def test_unknown_household(queries, household):
    with pytest.raises(HouseholdNotFoundError):
        queries.list_payments("household_nobody")


def test_period_summary(queries, household, ledger_month):
    summary = queries.summary(household, date(2024, 3, 1), date(2024, 3, 31))

    assert summary.total_scheduled == Decimal("450.00")
    assert summary.total_paid == Decimal("90.00")
    assert summary.total_overdue == Decimal("100.00")
    assert summary.counts_by_status == {
        "cancelled": 1,
        "overdue": 1,
        "paid": 1,
        "partial": 1,
        "scheduled": 1,
    }


def test_period_summary_rejects_inverted_range(queries, household):
    with pytest.raises(InvalidError):
        queries.summary(household, date(2024, 3, 31), date(2024, 3, 1))
