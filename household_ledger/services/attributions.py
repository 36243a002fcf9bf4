"""Attribution ledger - earmarks income for payments under conservation invariants"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from sqlalchemy.orm import Session

from household_ledger.domain.auto_attribution import rank_suggestions, suggestion_confidence
from household_ledger.domain.exceptions import (
    AlreadyAttributedError,
    AttributionNotFoundError,
    IncomeEventNotFoundError,
    InsufficientIncomeError,
    InvalidError,
    OverAttributedError,
    PaymentNotFoundError,
)
from household_ledger.domain.models import (
    AttributionSuggestion,
    AttributionType,
    AuditAction,
    CapacityCheck,
    SplitItem,
)
from household_ledger.domain.money import ZERO, percentage, positive_money, to_money
from household_ledger.infrastructure.audit import AuditSink, attribution_snapshot
from household_ledger.infrastructure.database.models import IncomeEvent, Payment, PaymentAttribution
from household_ledger.infrastructure.database.repositories import (
    AttributionRepository,
    IncomeEventRepository,
    PaymentRepository,
)
from household_ledger.infrastructure.database.session import transaction
from household_ledger.infrastructure.observability.metrics import record_attribution

logger = logging.getLogger(__name__)

ATTRIBUTION_TYPES = {t.value for t in AttributionType}


@dataclass
class AttributionLine:
    """One ledger entry seen from either side of the attribution"""

    id: uuid.UUID
    counterparty: str  # income event name or payment payee
    date: date
    amount: Decimal
    percentage: Decimal


@dataclass
class AttributionSummary:
    entity_id: uuid.UUID
    total_amount: Decimal
    total_attributed: Decimal
    remaining_amount: Decimal
    lines: List[AttributionLine] = field(default_factory=list)


def attributed_total(payment: Payment) -> Decimal:
    return sum((a.amount for a in payment.attributions), ZERO)


class AttributionLedger:
    """
    Sole writer of income event balances.

    Every public mutation runs in one transaction covering the attribution
    rows and the income event's allocated/remaining amounts.
    """

    def __init__(self, db: Session):
        self.db = db
        self.payments = PaymentRepository(db)
        self.incomes = IncomeEventRepository(db)
        self.attributions = AttributionRepository(db)
        self.audit = AuditSink(db)

    def attribute(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        income_event_id: uuid.UUID,
        amount: Decimal,
        kind: str = AttributionType.MANUAL.value,
        member_id: Optional[str] = None,
        require_unattributed: bool = False,
    ) -> PaymentAttribution:
        """
        Earmark `amount` of an income event for a payment.

        Raises:
            InvalidError: amount is not positive or kind is unknown
            PaymentNotFoundError / IncomeEventNotFoundError: outside the household
            AlreadyAttributedError: require_unattributed and the payment has entries
            OverAttributedError: payment would be attributed beyond its amount
            InsufficientIncomeError: income event has less remaining than `amount`
        """
        amount = positive_money(amount, "Attribution amount")
        self._check_kind(kind)

        with transaction(self.db):
            payment = self._lock_payment(household_id, payment_id)
            if require_unattributed and payment.attributions:
                raise AlreadyAttributedError("Payment already has attributions")
            attribution = self._attribute(household_id, payment, income_event_id, amount, kind, member_id)

        record_attribution("create", kind)
        logger.info(
            "Attribution created",
            extra={
                "household_id": household_id,
                "payment_id": str(payment_id),
                "income_event_id": str(income_event_id),
                "amount": str(amount),
                "kind": kind,
                "step": "attribution_create",
            },
        )
        return attribution

    def remove_attribution(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        attribution_id: uuid.UUID,
        member_id: Optional[str] = None,
    ) -> None:
        """Delete an entry and give its amount back to the income event"""
        with transaction(self.db):
            attribution = self._get_attribution(household_id, payment_id, attribution_id)
            kind = attribution.attribution_type
            self._detach(household_id, attribution, member_id)

        record_attribution("remove", kind)
        logger.info(
            "Attribution removed",
            extra={
                "household_id": household_id,
                "payment_id": str(payment_id),
                "attribution_id": str(attribution_id),
                "step": "attribution_remove",
            },
        )

    def replace_attribution_amount(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        attribution_id: uuid.UUID,
        new_amount: Decimal,
        member_id: Optional[str] = None,
    ) -> PaymentAttribution:
        """Change an entry's amount as remove + recreate inside one transaction"""
        new_amount = positive_money(new_amount, "Attribution amount")

        with transaction(self.db):
            attribution = self._get_attribution(household_id, payment_id, attribution_id)
            payment = self._lock_payment(household_id, payment_id)
            income_event_id = attribution.income_event_id
            kind = attribution.attribution_type

            self._detach(household_id, attribution, member_id)
            replacement = self._attribute(household_id, payment, income_event_id, new_amount, kind, member_id)

        record_attribution("replace", kind)
        return replacement

    def split_payment(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        splits: Sequence[SplitItem],
        kind: str = AttributionType.MANUAL.value,
        member_id: Optional[str] = None,
    ) -> List[PaymentAttribution]:
        """Attribute a whole payment across several income events at once"""
        self._check_kind(kind)
        if not splits:
            raise InvalidError("At least one split is required")
        amounts = [positive_money(s.amount, "Attribution amount") for s in splits]

        with transaction(self.db):
            payment = self._lock_payment(household_id, payment_id)
            if payment.attributions:
                raise AlreadyAttributedError("Payment already has attributions")
            if sum(amounts, ZERO) != payment.amount:
                raise InvalidError("Total attribution amounts must equal payment amount")

            created = [
                self._attribute(household_id, payment, split.income_event_id, amount, kind, member_id)
                for split, amount in zip(splits, amounts)
            ]

        for _ in created:
            record_attribution("create", kind)
        return created

    def detach_all(self, household_id: str, payment: Payment, member_id: Optional[str] = None) -> int:
        """
        Release every attribution on a payment.

        Runs inside the caller's transaction; used when a payment is deleted
        or cancelled.
        """
        entries = list(payment.attributions)
        for attribution in entries:
            self._detach(household_id, attribution, member_id)
            record_attribution("remove", attribution.attribution_type)
        return len(entries)

    def auto_attribute_payment(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        member_id: Optional[str] = None,
    ) -> Optional[PaymentAttribution]:
        """
        Attribute one payment in full to the earliest income that covers it
        and arrives by the due date. Returns None when nothing fits.
        """
        payment = self._get_payment(household_id, payment_id)
        if payment.attributions:
            raise AlreadyAttributedError("Payment already has attributions")

        candidates = self.incomes.list_available(household_id, due_by=payment.due_date)
        income = next((i for i in candidates if i.remaining_amount >= payment.amount), None)
        if income is None:
            return None

        return self.attribute(
            household_id,
            payment.id,
            income.id,
            payment.amount,
            kind=AttributionType.AUTOMATIC.value,
            member_id=member_id,
            require_unattributed=True,
        )

    def validate_capacity(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        proposals: Sequence[SplitItem],
    ) -> CapacityCheck:
        """Dry-run a set of proposed attributions; nothing is written"""
        payment = self._get_payment(household_id, payment_id)
        errors: List[str] = []

        amounts = [to_money(p.amount) for p in proposals]
        total_proposed = sum(amounts, ZERO)

        if any(a <= 0 for a in amounts):
            errors.append("Attribution amounts must be positive")
        if attributed_total(payment) + total_proposed > payment.amount:
            errors.append("Total attributions exceed payment amount")

        requested: Dict[uuid.UUID, Decimal] = {}
        for proposal, amount in zip(proposals, amounts):
            requested[proposal.income_event_id] = requested.get(proposal.income_event_id, ZERO) + amount

        for income_event_id, amount in requested.items():
            income = self.incomes.get(household_id, income_event_id)
            if income is None:
                errors.append(f"Income event {income_event_id} not found")
            elif amount > income.remaining_amount:
                errors.append(f"Amount {amount} exceeds available income for {income.name}")

        return CapacityCheck(
            is_valid=not errors,
            errors=errors,
            total_proposed=total_proposed,
            payment_amount=payment.amount,
        )

    def suggest_attributions(self, household_id: str, payment_id: uuid.UUID) -> List[AttributionSuggestion]:
        payment = self._get_payment(household_id, payment_id)
        outstanding = payment.amount - attributed_total(payment)
        if outstanding <= 0:
            return []

        suggestions = [
            AttributionSuggestion(
                income_event_id=income.id,
                income_event_name=income.name,
                scheduled_date=income.scheduled_date,
                available_amount=income.remaining_amount,
                suggested_amount=min(income.remaining_amount, outstanding),
                confidence=suggestion_confidence(
                    income.remaining_amount,
                    payment.amount,
                    funds_before_due=income.scheduled_date <= payment.due_date,
                ),
            )
            for income in self.incomes.list_available(household_id)
        ]
        return rank_suggestions(suggestions)

    def payment_summary(self, household_id: str, payment_id: uuid.UUID) -> AttributionSummary:
        payment = self._get_payment(household_id, payment_id)
        total = attributed_total(payment)
        return AttributionSummary(
            entity_id=payment.id,
            total_amount=payment.amount,
            total_attributed=total,
            remaining_amount=payment.amount - total,
            lines=[
                AttributionLine(
                    id=a.id,
                    counterparty=a.income_event.name,
                    date=a.income_event.scheduled_date,
                    amount=a.amount,
                    percentage=percentage(a.amount, payment.amount),
                )
                for a in payment.attributions
            ],
        )

    def income_summary(self, household_id: str, income_event_id: uuid.UUID) -> AttributionSummary:
        income = self.incomes.get(household_id, income_event_id)
        if income is None:
            raise IncomeEventNotFoundError("Income event not found")
        return AttributionSummary(
            entity_id=income.id,
            total_amount=income.amount,
            total_attributed=income.allocated_amount,
            remaining_amount=income.remaining_amount,
            lines=[
                AttributionLine(
                    id=a.id,
                    counterparty=a.payment.payee,
                    date=a.payment.due_date,
                    amount=a.amount,
                    percentage=percentage(a.amount, income.amount),
                )
                for a in income.attributions
            ],
        )

    def history(self, household_id: str, limit: int = 50, offset: int = 0) -> List[PaymentAttribution]:
        return self.attributions.history(household_id, limit=limit, offset=offset)

    def _attribute(
        self,
        household_id: str,
        payment: Payment,
        income_event_id: uuid.UUID,
        amount: Decimal,
        kind: str,
        member_id: Optional[str],
    ) -> PaymentAttribution:
        income = self.incomes.get(household_id, income_event_id, lock=True)
        if income is None:
            raise IncomeEventNotFoundError("Income event not found")
        if attributed_total(payment) + amount > payment.amount:
            raise OverAttributedError("Attribution amount exceeds payment amount")
        if amount > income.remaining_amount:
            raise InsufficientIncomeError("Attribution amount exceeds available income")

        attribution = self.attributions.add(payment, income, amount, kind, member_id)
        self.incomes.adjust_balances(income, delta_allocated=amount, delta_remaining=-amount)
        self.audit.record(
            household_id, AuditAction.CREATE.value, "PaymentAttribution", attribution.id,
            None, attribution_snapshot(attribution), member_id,
        )
        return attribution

    def _detach(self, household_id: str, attribution: PaymentAttribution, member_id: Optional[str]) -> None:
        income: IncomeEvent = self.incomes.get(household_id, attribution.income_event_id, lock=True)
        if income is None:
            raise IncomeEventNotFoundError("Income event not found")
        before = attribution_snapshot(attribution)
        self.incomes.adjust_balances(income, delta_allocated=-attribution.amount, delta_remaining=attribution.amount)
        self.audit.record(
            household_id, AuditAction.DELETE.value, "PaymentAttribution", attribution.id,
            before, None, member_id,
        )
        self.attributions.delete(attribution)

    def _get_payment(self, household_id: str, payment_id: uuid.UUID) -> Payment:
        payment = self.payments.get(household_id, payment_id)
        if payment is None:
            raise PaymentNotFoundError("Payment not found")
        return payment

    def _lock_payment(self, household_id: str, payment_id: uuid.UUID) -> Payment:
        payment = self.payments.get(household_id, payment_id, lock=True)
        if payment is None:
            raise PaymentNotFoundError("Payment not found")
        return payment

    def _get_attribution(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        attribution_id: uuid.UUID,
    ) -> PaymentAttribution:
        attribution = self.attributions.get(household_id, payment_id, attribution_id)
        if attribution is None:
            raise AttributionNotFoundError("Attribution not found")
        return attribution

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in ATTRIBUTION_TYPES:
            raise InvalidError("Attribution type must be one of: manual, automatic")
