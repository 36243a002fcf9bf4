"""Unit tests for payment lifecycle rules"""

import pytest
import uuid
from datetime import date
from decimal import Decimal
from household_ledger.domain import lifecycle
from household_ledger.domain.exceptions import (
    AlreadySettledError,
    ImmutableStateError,
    InvalidError,
    NotSettledError,
    PaymentCancelledError,
)
from household_ledger.domain.models import PaymentData
from household_ledger.domain.money import percentage, positive_money, to_money

TODAY = date(2024, 3, 15)


def _data(**overrides) -> PaymentData:
    values = dict(
        payee="  Landlord  ",
        amount=Decimal("1200"),
        due_date=date(2024, 4, 1),
        payment_type="recurring",
        spending_category_id=uuid.uuid4(),
        frequency="monthly",
    )
    values.update(overrides)
    return PaymentData(**values)


def test_validate_payment_data_normalizes():
    """Test payee trimmed and amount quantized"""
    data = lifecycle.validate_payment_data(_data(notes="  "))
    assert data.payee == "Landlord"
    assert data.amount == Decimal("1200.00")
    assert data.notes is None


def test_blank_payee_rejected():
    with pytest.raises(InvalidError):
        lifecycle.validate_payment_data(_data(payee="   "))


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_non_positive_amount_rejected(amount):
    with pytest.raises(InvalidError):
        lifecycle.validate_payment_data(_data(amount=amount))


def test_recurring_requires_frequency():
    with pytest.raises(InvalidError, match="Frequency is required"):
        lifecycle.validate_payment_data(_data(frequency=None))


def test_unknown_payment_type_rejected():
    with pytest.raises(InvalidError):
        lifecycle.validate_payment_data(_data(payment_type="sometimes"))


def test_one_time_defaults_frequency():
    data = lifecycle.validate_payment_data(_data(payment_type="once", frequency=None))
    assert data.frequency == "once"


@pytest.mark.parametrize(
    "status,due_date,expected",
    [
        ("scheduled", date(2024, 3, 14), "overdue"),
        ("scheduled", date(2024, 3, 15), "scheduled"),
        ("partial", date(2024, 3, 1), "overdue"),
        ("paid", date(2024, 3, 1), "paid"),
        ("cancelled", date(2024, 3, 1), "cancelled"),
        ("overdue", date(2024, 4, 1), "scheduled"),
    ],
)
def test_effective_status(status, due_date, expected):
    """Test overdue derived from due date at read time"""
    assert lifecycle.effective_status(status, due_date, TODAY) == expected


def test_state_guards():
    with pytest.raises(ImmutableStateError):
        lifecycle.ensure_updatable("paid")
    with pytest.raises(PaymentCancelledError):
        lifecycle.ensure_updatable("cancelled")
    with pytest.raises(AlreadySettledError):
        lifecycle.ensure_settleable("paid")
    with pytest.raises(PaymentCancelledError):
        lifecycle.ensure_settleable("cancelled")
    with pytest.raises(NotSettledError):
        lifecycle.ensure_revertible("scheduled")

    lifecycle.ensure_updatable("overdue")
    lifecycle.ensure_settleable("partial")
    lifecycle.ensure_revertible("partial")


def test_validate_settlement():
    assert lifecycle.validate_settlement(TODAY, Decimal("10"), TODAY) == Decimal("10.00")
    with pytest.raises(InvalidError, match="future"):
        lifecycle.validate_settlement(date(2024, 3, 16), Decimal("10"), TODAY)
    with pytest.raises(InvalidError):
        lifecycle.validate_settlement(TODAY, Decimal("0"), TODAY)


def test_settlement_and_reverted_status():
    assert lifecycle.settlement_status(Decimal("100"), Decimal("100")) == "paid"
    assert lifecycle.settlement_status(Decimal("100"), Decimal("150")) == "paid"
    assert lifecycle.settlement_status(Decimal("100"), Decimal("40")) == "partial"
    assert lifecycle.reverted_status(date(2024, 3, 1), TODAY) == "overdue"
    assert lifecycle.reverted_status(date(2024, 3, 20), TODAY) == "scheduled"


def test_money_helpers():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(7) == Decimal("7.00")
    with pytest.raises(InvalidError):
        to_money(10.5)
    with pytest.raises(InvalidError):
        to_money("ten")
    with pytest.raises(InvalidError):
        positive_money("0.001")
    assert percentage(Decimal("25"), Decimal("200")) == Decimal("12.50")
    assert percentage(Decimal("5"), Decimal("0")) == Decimal("0.00")
