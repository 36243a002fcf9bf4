"""Greedy auto-attribution planner - pure ordering and first-fit matching"""

from decimal import Decimal
from typing import Dict, List

from household_ledger.domain.models import (
    AttributionSuggestion,
    IncomeSnapshot,
    PaymentSnapshot,
    PlannedAttribution,
)


def order_payments(payments: List[PaymentSnapshot]) -> List[PaymentSnapshot]:
    """Earliest obligation first"""
    return sorted(payments, key=lambda p: (p.due_date, p.id))


def order_incomes(incomes: List[IncomeSnapshot]) -> List[IncomeSnapshot]:
    """Earliest funds first"""
    return sorted(incomes, key=lambda i: (i.scheduled_date, i.id))


def covering_incomes(
    payment: PaymentSnapshot,
    ordered_incomes: List[IncomeSnapshot],
    capacity: Dict,
) -> List[IncomeSnapshot]:
    """Incomes whose tracked capacity covers the payment in full, in order"""
    return [i for i in ordered_incomes if capacity[i.id] >= payment.amount]


def plan_auto_attributions(
    payments: List[PaymentSnapshot],
    incomes: List[IncomeSnapshot],
) -> List[PlannedAttribution]:
    """
    Match unattributed payments to income events, first fit by order.

    Rules:
    - Payments ordered by (due_date, id): earliest obligation first
    - Income ordered by (scheduled_date, id): earliest funds first
    - Each payment takes the first income whose remaining capacity covers
      its full amount; capacity is decremented for later payments in the pass
    - No partial attributions; a payment with no fit is skipped

    Example:
        payments 50 (Jan 1), 80 (Jan 5); income 60 (Jan 1), 100 (Jan 2)
        -> 50 against the 60 income (10 left), 80 against the 100 income (20 left)
    """
    ordered_incomes = order_incomes(incomes)
    capacity: Dict = {i.id: i.remaining_amount for i in ordered_incomes}
    plan = []

    for payment in order_payments(payments):
        candidates = covering_incomes(payment, ordered_incomes, capacity)
        if not candidates:
            continue
        income = candidates[0]
        capacity[income.id] -= payment.amount
        plan.append(
            PlannedAttribution(
                payment_id=payment.id,
                income_event_id=income.id,
                amount=payment.amount,
            )
        )

    return plan


_CONFIDENCE_RANK = {"high": 0, "medium": 1, "low": 2}


def rank_suggestions(suggestions: List[AttributionSuggestion]) -> List[AttributionSuggestion]:
    """Sort by confidence, then by when the funds arrive"""
    return sorted(
        suggestions,
        key=lambda s: (_CONFIDENCE_RANK[s.confidence], s.scheduled_date, s.income_event_id),
    )


def suggestion_confidence(
    available: Decimal,
    payment_amount: Decimal,
    funds_before_due: bool,
) -> str:
    """
    Confidence bands:
    - high: funds arrive by the due date and cover the whole payment
    - medium: funds cover at least half of the payment
    - low: anything smaller
    """
    if funds_before_due and available >= payment_amount:
        return "high"
    if available * 2 >= payment_amount:
        return "medium"
    return "low"
