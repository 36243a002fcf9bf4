"""Payment lifecycle service - create, update, settle, revert and delete payments"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence
from sqlalchemy.orm import Session

from household_ledger.config import settings
from household_ledger.domain import lifecycle
from household_ledger.domain.exceptions import (
    CategoryInvalidError,
    HouseholdNotFoundError,
    InvalidError,
    OverAttributedError,
    PaymentNotFoundError,
)
from household_ledger.domain.models import AuditAction, PaymentData, PaymentStatus, PaymentType
from household_ledger.domain.money import positive_money
from household_ledger.domain.recurrence import compute_next_due_date, next_occurrence
from household_ledger.infrastructure.audit import AuditSink, payment_snapshot
from household_ledger.infrastructure.database.models import Payment
from household_ledger.infrastructure.database.repositories import (
    CategoryRepository,
    HouseholdRepository,
    PaymentRepository,
)
from household_ledger.infrastructure.database.session import transaction
from household_ledger.infrastructure.observability.metrics import payments_created_counter, record_settlement
from household_ledger.services.attributions import AttributionLedger

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "payee",
    "amount",
    "due_date",
    "payment_type",
    "frequency",
    "spending_category_id",
    "auto_pay_enabled",
    "notes",
}


class PaymentService:
    """Owns the payment state machine; every mutation runs in one transaction"""

    def __init__(self, db: Session, clock: Callable[[], date] = date.today):
        self.db = db
        self.clock = clock
        self.payments = PaymentRepository(db)
        self.categories = CategoryRepository(db)
        self.households = HouseholdRepository(db)
        self.ledger = AttributionLedger(db)
        self.audit = AuditSink(db)

    def get(self, household_id: str, payment_id: uuid.UUID) -> Payment:
        payment = self.payments.get(household_id, payment_id)
        if payment is None:
            raise PaymentNotFoundError("Payment not found")
        return payment

    def create(self, household_id: str, data: PaymentData, member_id: Optional[str] = None) -> Payment:
        """Create a scheduled payment; next_due_date is seeded from the recurrence"""
        with transaction(self.db):
            payment = self._create(household_id, data, member_id)
        payments_created_counter.inc()
        logger.info(
            "Payment created",
            extra={"household_id": household_id, "payment_id": str(payment.id), "step": "payment_create"},
        )
        return payment

    def bulk_create(
        self,
        household_id: str,
        items: Sequence[PaymentData],
        member_id: Optional[str] = None,
    ) -> List[Payment]:
        """
        Create payments in order, stopping at the first failure.

        Each item commits on its own; items created before a failure stay.
        """
        if not items:
            raise InvalidError("At least one payment is required")
        if len(items) > settings.bulk_create_max_items:
            raise InvalidError(f"Cannot create more than {settings.bulk_create_max_items} payments at once")
        return [self.create(household_id, item, member_id) for item in items]

    def update(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        changes: Dict[str, Any],
        member_id: Optional[str] = None,
    ) -> Payment:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        with transaction(self.db):
            payment = self._lock(household_id, payment_id)
            lifecycle.ensure_updatable(payment.status)
            before = payment_snapshot(payment)

            values = self._validate_changes(household_id, payment, changes)
            for name, value in values.items():
                setattr(payment, name, value)

            if {"due_date", "frequency", "payment_type"} & values.keys():
                payment.next_due_date = compute_next_due_date(
                    payment.due_date, payment.payment_type, payment.frequency
                )

            self.db.flush()
            self.audit.record(
                household_id, AuditAction.UPDATE.value, "Payment", payment.id,
                before, payment_snapshot(payment), member_id,
            )
        return payment

    def delete(self, household_id: str, payment_id: uuid.UUID, member_id: Optional[str] = None) -> None:
        """Remove a payment and its attributions, restoring income balances"""
        with transaction(self.db):
            payment = self._lock(household_id, payment_id)
            before = payment_snapshot(payment)
            released = self.ledger.detach_all(household_id, payment, member_id)
            self.payments.delete(payment)
            self.audit.record(
                household_id, AuditAction.DELETE.value, "Payment", payment_id, before, None, member_id,
            )
        logger.info(
            "Payment deleted",
            extra={
                "household_id": household_id,
                "payment_id": str(payment_id),
                "released_attributions": released,
                "step": "payment_delete",
            },
        )

    def settle(
        self,
        household_id: str,
        payment_id: uuid.UUID,
        paid_date: date,
        paid_amount: Decimal,
        member_id: Optional[str] = None,
    ) -> Payment:
        """
        Mark a payment paid (or partially paid).

        Recurring payments spawn their next occurrence in the same
        transaction. An occurrence spawns at most one successor, so
        settling again after a revert or a partial payment does not
        duplicate it.
        """
        with transaction(self.db):
            payment = self._lock(household_id, payment_id)
            lifecycle.ensure_settleable(payment.status)
            amount_paid = lifecycle.validate_settlement(paid_date, paid_amount, self.clock())
            before = payment_snapshot(payment)

            payment.paid_date = paid_date
            payment.paid_amount = amount_paid
            payment.status = lifecycle.settlement_status(payment.amount, amount_paid)
            self.db.flush()

            self.audit.record(
                household_id, AuditAction.UPDATE.value, "Payment", payment.id,
                before, payment_snapshot(payment), member_id,
            )

            spawned = None
            if payment.payment_type == PaymentType.RECURRING.value and not self.payments.has_spawned_occurrence(payment.id):
                spawned = self._spawn_next_occurrence(payment, member_id)

        record_settlement(payment.status)
        logger.info(
            "Payment settled",
            extra={
                "household_id": household_id,
                "payment_id": str(payment.id),
                "status": payment.status,
                "next_payment_id": str(spawned.id) if spawned else None,
                "step": "payment_settle",
            },
        )
        return payment

    def revert_settlement(self, household_id: str, payment_id: uuid.UUID, member_id: Optional[str] = None) -> Payment:
        """Undo a settlement; already spawned occurrences are kept"""
        with transaction(self.db):
            payment = self._lock(household_id, payment_id)
            lifecycle.ensure_revertible(payment.status)
            before = payment_snapshot(payment)

            payment.paid_date = None
            payment.paid_amount = None
            payment.status = lifecycle.reverted_status(payment.due_date, self.clock())
            self.db.flush()

            self.audit.record(
                household_id, AuditAction.UPDATE.value, "Payment", payment.id,
                before, payment_snapshot(payment), member_id,
            )
        record_settlement("reverted")
        return payment

    def cancel(self, household_id: str, payment_id: uuid.UUID, member_id: Optional[str] = None) -> Payment:
        """Cancel an unpaid payment and release its earmarked income"""
        with transaction(self.db):
            payment = self._lock(household_id, payment_id)
            lifecycle.ensure_updatable(payment.status)
            before = payment_snapshot(payment)

            self.ledger.detach_all(household_id, payment, member_id)
            payment.status = PaymentStatus.CANCELLED.value
            self.db.flush()

            self.audit.record(
                household_id, AuditAction.UPDATE.value, "Payment", payment.id,
                before, payment_snapshot(payment), member_id,
            )
        return payment

    def _create(self, household_id: str, data: PaymentData, member_id: Optional[str]) -> Payment:
        if self.households.get(household_id) is None:
            raise HouseholdNotFoundError("Household not found")
        data = lifecycle.validate_payment_data(data)
        self._require_category(household_id, data.spending_category_id)

        payment = Payment(
            household_id=household_id,
            payee=data.payee,
            amount=data.amount,
            due_date=data.due_date,
            payment_type=data.payment_type,
            frequency=data.frequency,
            next_due_date=compute_next_due_date(data.due_date, data.payment_type, data.frequency),
            status=PaymentStatus.SCHEDULED.value,
            spending_category_id=data.spending_category_id,
            auto_pay_enabled=data.auto_pay_enabled,
            notes=data.notes,
        )
        self.payments.add(payment)
        self.audit.record(
            household_id, AuditAction.CREATE.value, "Payment", payment.id,
            None, payment_snapshot(payment), member_id,
        )
        return payment

    def _spawn_next_occurrence(self, payment: Payment, member_id: Optional[str]) -> Payment:
        due_date = next_occurrence(payment.due_date, payment.frequency)
        successor = Payment(
            household_id=payment.household_id,
            payee=payment.payee,
            amount=payment.amount,
            due_date=due_date,
            payment_type=payment.payment_type,
            frequency=payment.frequency,
            next_due_date=compute_next_due_date(due_date, payment.payment_type, payment.frequency),
            status=PaymentStatus.SCHEDULED.value,
            spending_category_id=payment.spending_category_id,
            auto_pay_enabled=payment.auto_pay_enabled,
            notes=payment.notes,
            parent_payment_id=payment.id,
        )
        self.payments.add(successor)
        self.audit.record(
            payment.household_id, AuditAction.CREATE.value, "Payment", successor.id,
            None, payment_snapshot(successor), member_id,
        )
        return successor

    def _lock(self, household_id: str, payment_id: uuid.UUID) -> Payment:
        payment = self.payments.get(household_id, payment_id, lock=True)
        if payment is None:
            raise PaymentNotFoundError("Payment not found")
        return payment

    def _require_category(self, household_id: str, category_id: uuid.UUID) -> None:
        if self.categories.resolve_active_category(household_id, category_id) is None:
            raise CategoryInvalidError("The specified spending category does not exist or is not active")

    def _validate_changes(self, household_id: str, payment: Payment, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a partial update against the payment's current values"""
        values = dict(changes)
        for name in ("due_date", "payment_type", "spending_category_id", "auto_pay_enabled"):
            if name in values and values[name] is None:
                raise InvalidError(f"{name} cannot be null")

        if "payee" in values:
            payee = (values["payee"] or "").strip()
            if not payee:
                raise InvalidError("Payee is required")
            values["payee"] = payee

        if "amount" in values:
            values["amount"] = positive_money(values["amount"])
            attributed = sum((a.amount for a in payment.attributions), Decimal("0"))
            if values["amount"] < attributed:
                raise OverAttributedError("Payment amount cannot be lower than its attributed total")
            if payment.paid_amount is not None:
                # partial requires paid_amount < amount
                values["status"] = lifecycle.settlement_status(values["amount"], payment.paid_amount)

        if "payment_type" in values or "frequency" in values:
            payment_type = values.get("payment_type", payment.payment_type)
            frequency = values.get("frequency", payment.frequency)
            values["frequency"] = lifecycle.validate_payment_type(payment_type, frequency)

        if "spending_category_id" in values and values["spending_category_id"] != payment.spending_category_id:
            self._require_category(household_id, values["spending_category_id"])

        if "notes" in values:
            notes = values["notes"]
            values["notes"] = notes.strip() or None if notes else None

        return values
