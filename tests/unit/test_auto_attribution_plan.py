"""Unit tests for the greedy auto-attribution planner"""

import uuid
from datetime import date
from decimal import Decimal
from household_ledger.domain.auto_attribution import (
    covering_incomes,
    order_incomes,
    plan_auto_attributions,
    rank_suggestions,
    suggestion_confidence,
)
from household_ledger.domain.models import AttributionSuggestion, IncomeSnapshot, PaymentSnapshot


def _payment(amount: str, due: date) -> PaymentSnapshot:
    return PaymentSnapshot(id=uuid.uuid4(), due_date=due, amount=Decimal(amount))


def _income(remaining: str, scheduled: date) -> IncomeSnapshot:
    return IncomeSnapshot(id=uuid.uuid4(), scheduled_date=scheduled, remaining_amount=Decimal(remaining))


def test_earliest_payment_takes_earliest_fitting_income():
    """Test 50 -> first income (60), 80 -> second income (100)"""
    small_income = _income("60", date(2024, 1, 1))
    large_income = _income("100", date(2024, 1, 2))
    first = _payment("50", date(2024, 1, 1))
    second = _payment("80", date(2024, 1, 5))

    plan = plan_auto_attributions([second, first], [large_income, small_income])

    assert [(p.payment_id, p.income_event_id, p.amount) for p in plan] == [
        (first.id, small_income.id, Decimal("50")),
        (second.id, large_income.id, Decimal("80")),
    ]


def test_capacity_decrements_within_pass():
    income = _income("100", date(2024, 1, 1))
    payments = [_payment("60", date(2024, 1, 1)), _payment("60", date(2024, 1, 2)), _payment("40", date(2024, 1, 3))]

    plan = plan_auto_attributions(payments, [income])

    assert [p.payment_id for p in plan] == [payments[0].id, payments[2].id]


def test_no_partial_matches():
    """Test a payment larger than every income is skipped"""
    plan = plan_auto_attributions(
        [_payment("500", date(2024, 1, 1))],
        [_income("300", date(2024, 1, 1)), _income("300", date(2024, 1, 2))],
    )
    assert plan == []


def test_empty_inputs():
    assert plan_auto_attributions([], [_income("10", date(2024, 1, 1))]) == []
    assert plan_auto_attributions([_payment("10", date(2024, 1, 1))], []) == []


def test_suggestion_confidence_bands():
    assert suggestion_confidence(Decimal("100"), Decimal("100"), funds_before_due=True) == "high"
    assert suggestion_confidence(Decimal("100"), Decimal("100"), funds_before_due=False) == "medium"
    assert suggestion_confidence(Decimal("50"), Decimal("100"), funds_before_due=True) == "medium"
    assert suggestion_confidence(Decimal("49.99"), Decimal("100"), funds_before_due=True) == "low"


def test_rank_suggestions_by_confidence_then_date():
    def suggestion(confidence: str, day: int) -> AttributionSuggestion:
        return AttributionSuggestion(
            income_event_id=uuid.uuid4(),
            income_event_name=f"income {day}",
            scheduled_date=date(2024, 1, day),
            available_amount=Decimal("10"),
            suggested_amount=Decimal("10"),
            confidence=confidence,
        )

    ranked = rank_suggestions([suggestion("low", 1), suggestion("high", 9), suggestion("medium", 2), suggestion("high", 3)])

    assert [(s.confidence, s.scheduled_date.day) for s in ranked] == [
        ("high", 3),
        ("high", 9),
        ("medium", 2),
        ("low", 1),
    ]


def test_covering_incomes_keeps_date_order_and_skips_short_capacity():
    payment = _payment("50", date(2024, 2, 1))
    later = _income("100", date(2024, 1, 20))
    short = _income("40", date(2024, 1, 5))
    earlier = _income("50", date(2024, 1, 10))
    ordered = order_incomes([later, short, earlier])
    capacity = {i.id: i.remaining_amount for i in ordered}

    assert [i.id for i in covering_incomes(payment, ordered, capacity)] == [earlier.id, later.id]

    capacity[earlier.id] = Decimal("10")
    assert [i.id for i in covering_incomes(payment, ordered, capacity)] == [later.id]
