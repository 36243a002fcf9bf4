"""Data access layer for payments, income events and attributions"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Query, Session
from household_ledger.infrastructure.database.models import (
    Household,
    IncomeEvent,
    Payment,
    PaymentAttribution,
    SpendingCategory,
)
from household_ledger.domain.exceptions import InsufficientIncomeError, InvalidError
from household_ledger.domain.money import ZERO, positive_money


class HouseholdRepository:
    """Repository for household scopes"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, household_id: str) -> Optional[Household]:
        return self.db.get(Household, household_id)

    def create(self, household_id: str, name: str) -> Household:
        household = Household(id=household_id, name=name)
        self.db.add(household)
        self.db.flush()
        return household

    def ids_with_scheduled_payments(self) -> List[str]:
        """Households the periodic scheduler should visit"""
        rows = (
            self.db.query(Payment.household_id)
            .filter(Payment.status == "scheduled")
            .distinct()
            .order_by(Payment.household_id)
            .all()
        )
        return [row[0] for row in rows]


class CategoryRepository:
    """Lookup into the spending category taxonomy"""

    def __init__(self, db: Session):
        self.db = db

    def resolve_active_category(self, household_id: str, category_id: uuid.UUID) -> Optional[SpendingCategory]:
        return (
            self.db.query(SpendingCategory)
            .filter(
                SpendingCategory.id == category_id,
                SpendingCategory.household_id == household_id,
                SpendingCategory.is_active.is_(True),
            )
            .first()
        )

    def create(self, household_id: str, name: str, is_active: bool = True) -> SpendingCategory:
        category = SpendingCategory(household_id=household_id, name=name, is_active=is_active)
        self.db.add(category)
        self.db.flush()
        return category


class PaymentRepository:
    """Repository for payments"""

    def __init__(self, db: Session):
        self.db = db

    def scoped(self, household_id: str) -> Query:
        return self.db.query(Payment).filter(Payment.household_id == household_id)

    def get(self, household_id: str, payment_id: uuid.UUID, lock: bool = False) -> Optional[Payment]:
        """Fetch payment within household; lock=True takes a row lock for the transaction"""
        query = self.scoped(household_id).filter(Payment.id == payment_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def add(self, payment: Payment) -> Payment:
        self.db.add(payment)
        self.db.flush()  # Get ID without committing
        return payment

    def delete(self, payment: Payment) -> None:
        self.db.delete(payment)
        self.db.flush()

    def has_spawned_occurrence(self, payment_id: uuid.UUID) -> bool:
        return (
            self.db.query(Payment.id).filter(Payment.parent_payment_id == payment_id).first()
            is not None
        )

    def list_unattributed_scheduled(self, household_id: str) -> List[Payment]:
        """Scheduled payments with no ledger entries, earliest obligation first"""
        return (
            self.scoped(household_id)
            .filter(Payment.status == "scheduled", ~Payment.attributions.any())
            .order_by(Payment.due_date.asc(), Payment.id.asc())
            .all()
        )


class IncomeEventRepository:
    """Repository for income events; balance writes go through adjust_balances only"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, household_id: str, income_event_id: uuid.UUID, lock: bool = False) -> Optional[IncomeEvent]:
        query = self.db.query(IncomeEvent).filter(
            IncomeEvent.id == income_event_id,
            IncomeEvent.household_id == household_id,
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def create(
        self,
        household_id: str,
        name: str,
        amount: Decimal,
        scheduled_date: date,
        status: str = "scheduled",
    ) -> IncomeEvent:
        total = positive_money(amount)
        income_event = IncomeEvent(
            household_id=household_id,
            name=name,
            amount=total,
            allocated_amount=ZERO,
            remaining_amount=total,
            scheduled_date=scheduled_date,
            status=status,
        )
        self.db.add(income_event)
        self.db.flush()
        return income_event

    def list_available(self, household_id: str, due_by: Optional[date] = None) -> List[IncomeEvent]:
        """Scheduled income with spare capacity, earliest funds first"""
        query = self.db.query(IncomeEvent).filter(
            IncomeEvent.household_id == household_id,
            IncomeEvent.status == "scheduled",
            IncomeEvent.remaining_amount > 0,
        )
        if due_by is not None:
            query = query.filter(IncomeEvent.scheduled_date <= due_by)
        return query.order_by(IncomeEvent.scheduled_date.asc(), IncomeEvent.id.asc()).all()

    def adjust_balances(self, income_event: IncomeEvent, delta_allocated: Decimal, delta_remaining: Decimal) -> None:
        """
        Apply a balance change to an income event.

        Deltas must cancel out so allocated + remaining stays equal to the total,
        and remaining may never drop below zero.
        """
        if delta_allocated + delta_remaining != 0:
            raise InvalidError("Balance adjustment must preserve the income total")
        new_remaining = income_event.remaining_amount + delta_remaining
        new_allocated = income_event.allocated_amount + delta_allocated
        if new_remaining < 0:
            raise InsufficientIncomeError("Attribution amount exceeds available income")
        if new_allocated < 0:
            raise InvalidError("Allocated amount cannot become negative")
        income_event.allocated_amount = new_allocated
        income_event.remaining_amount = new_remaining
        self.db.flush()


class AttributionRepository:
    """Repository for attribution ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, household_id: str, payment_id: uuid.UUID, attribution_id: uuid.UUID) -> Optional[PaymentAttribution]:
        return (
            self.db.query(PaymentAttribution)
            .join(Payment, PaymentAttribution.payment_id == Payment.id)
            .filter(
                PaymentAttribution.id == attribution_id,
                PaymentAttribution.payment_id == payment_id,
                Payment.household_id == household_id,
            )
            .first()
        )

    def add(
        self,
        payment: Payment,
        income_event: IncomeEvent,
        amount: Decimal,
        attribution_type: str,
        created_by: Optional[str],
    ) -> PaymentAttribution:
        attribution = PaymentAttribution(
            payment_id=payment.id,
            income_event_id=income_event.id,
            amount=amount,
            attribution_type=attribution_type,
            created_by=created_by,
        )
        payment.attributions.append(attribution)
        attribution.income_event = income_event
        self.db.flush()
        return attribution

    def delete(self, attribution: PaymentAttribution) -> None:
        attribution.payment.attributions.remove(attribution)
        self.db.delete(attribution)
        self.db.flush()

    def history(self, household_id: str, limit: int = 50, offset: int = 0) -> List[PaymentAttribution]:
        """Recent ledger entries for a household, newest first"""
        return (
            self.db.query(PaymentAttribution)
            .join(Payment, PaymentAttribution.payment_id == Payment.id)
            .filter(Payment.household_id == household_id)
            .order_by(PaymentAttribution.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
