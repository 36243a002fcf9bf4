"""Payment lifecycle rules - status transitions and field validation"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional

from household_ledger.domain.exceptions import (
    AlreadySettledError,
    ImmutableStateError,
    InvalidError,
    NotSettledError,
    PaymentCancelledError,
)
from household_ledger.domain.models import Frequency, PaymentData, PaymentStatus, PaymentType
from household_ledger.domain.money import positive_money

PAYMENT_TYPES = {t.value for t in PaymentType}
FREQUENCIES = {f.value for f in Frequency}
STATUSES = {s.value for s in PaymentStatus}

# Statuses that still represent money owed
OPEN_STATUSES = (PaymentStatus.SCHEDULED.value, PaymentStatus.PARTIAL.value, PaymentStatus.OVERDUE.value)
SETTLED_STATUSES = (PaymentStatus.PAID.value, PaymentStatus.PARTIAL.value)


def validate_payment_type(payment_type: str, frequency: Optional[str]) -> str:
    """Check type/frequency pair and return the effective frequency"""
    if payment_type not in PAYMENT_TYPES:
        raise InvalidError("Payment type must be one of: once, recurring, variable")
    frequency = frequency or Frequency.ONCE.value
    if frequency not in FREQUENCIES:
        raise InvalidError(f"Unsupported frequency: {frequency}")
    if payment_type == PaymentType.RECURRING.value and frequency == Frequency.ONCE.value:
        raise InvalidError(
            "Frequency is required for recurring payments and must be one of: "
            "weekly, biweekly, monthly, quarterly, annual"
        )
    return frequency


def validate_payment_data(data: PaymentData) -> PaymentData:
    """Normalize creation input; raises InvalidError before anything is written"""
    payee = (data.payee or "").strip()
    if not payee:
        raise InvalidError("Payee is required")
    frequency = validate_payment_type(data.payment_type, data.frequency)
    notes = data.notes.strip() if data.notes else None
    return replace(
        data,
        payee=payee,
        amount=positive_money(data.amount),
        frequency=frequency,
        notes=notes or None,
    )


def effective_status(status: str, due_date: date, today: date) -> str:
    """Overdue is derived: an open payment whose due date has passed"""
    if status in OPEN_STATUSES and due_date < today:
        return PaymentStatus.OVERDUE.value
    if status == PaymentStatus.OVERDUE.value:
        # Stored overdue whose due date moved into the future again
        return PaymentStatus.SCHEDULED.value
    return status


def ensure_updatable(status: str) -> None:
    if status == PaymentStatus.PAID.value:
        raise ImmutableStateError("Cannot update a paid payment")
    if status == PaymentStatus.CANCELLED.value:
        raise PaymentCancelledError("Cannot update a cancelled payment")


def ensure_settleable(status: str) -> None:
    if status == PaymentStatus.PAID.value:
        raise AlreadySettledError("Payment already marked as paid")
    if status == PaymentStatus.CANCELLED.value:
        raise PaymentCancelledError("Cannot mark cancelled payment as paid")


def ensure_revertible(status: str) -> None:
    if status not in SETTLED_STATUSES:
        raise NotSettledError("Payment is not marked as paid")


def validate_settlement(paid_date: date, paid_amount: Decimal, today: date) -> Decimal:
    if paid_date > today:
        raise InvalidError("Paid date cannot be in the future")
    return positive_money(paid_amount, "paid_amount")


def settlement_status(amount: Decimal, paid_amount: Decimal) -> str:
    if paid_amount >= amount:
        return PaymentStatus.PAID.value
    return PaymentStatus.PARTIAL.value


def reverted_status(due_date: date, today: date) -> str:
    if due_date < today:
        return PaymentStatus.OVERDUE.value
    return PaymentStatus.SCHEDULED.value
