"""Auto-attribution scheduler - commits the greedy plan through the ledger"""

import logging
import time
import uuid
from typing import List, Optional
from sqlalchemy.orm import Session

from household_ledger.domain.auto_attribution import covering_incomes, order_incomes, order_payments
from household_ledger.domain.exceptions import (
    AlreadyAttributedError,
    HouseholdNotFoundError,
    InsufficientIncomeError,
    OverAttributedError,
)
from household_ledger.domain.models import AttributionType, IncomeSnapshot, PaymentSnapshot
from household_ledger.infrastructure.database.repositories import (
    HouseholdRepository,
    IncomeEventRepository,
    PaymentRepository,
)
from household_ledger.infrastructure.observability.logging import log_auto_attribution
from household_ledger.infrastructure.observability.metrics import (
    auto_attribution_duration_histogram,
    auto_attribution_matched_counter,
    auto_attribution_skipped_counter,
)
from household_ledger.services.attributions import AttributionLedger

logger = logging.getLogger(__name__)


class AutoAttributionScheduler:
    """Best-effort reconciliation of unattributed scheduled payments"""

    def __init__(self, db: Session, ledger: Optional[AttributionLedger] = None):
        self.db = db
        self.households = HouseholdRepository(db)
        self.payments = PaymentRepository(db)
        self.incomes = IncomeEventRepository(db)
        self.ledger = ledger or AttributionLedger(db)

    def run(self, household_id: str, member_id: Optional[str] = None) -> int:
        """
        Run one greedy pass for a household.

        Flow:
        1. Snapshot unattributed scheduled payments and income with spare capacity
        2. Walk payments earliest due first; each tries the incomes whose tracked
           capacity covers it in full, earliest funds first
        3. Commit each match through the ledger in its own transaction

        Tracked capacity only shrinks after a successful commit. An income
        drained by a concurrent writer is passed over for the next one; a
        payment attributed concurrently is skipped. ConflictError propagates
        to the caller.

        Returns:
            Number of payments newly attributed
        """
        if self.households.get(household_id) is None:
            raise HouseholdNotFoundError("Household not found")

        start_time = time.time()

        payments = order_payments([
            PaymentSnapshot(id=p.id, due_date=p.due_date, amount=p.amount)
            for p in self.payments.list_unattributed_scheduled(household_id)
        ])
        incomes = order_incomes([
            IncomeSnapshot(id=i.id, scheduled_date=i.scheduled_date, remaining_amount=i.remaining_amount)
            for i in self.incomes.list_available(household_id)
        ])
        capacity = {i.id: i.remaining_amount for i in incomes}

        matched = 0
        skipped = 0
        for payment in payments:
            candidates = covering_incomes(payment, incomes, capacity)
            if not candidates:
                continue
            income_id = self._commit_first_fit(household_id, payment, candidates, member_id)
            if income_id is None:
                skipped += 1
                continue
            capacity[income_id] -= payment.amount
            matched += 1

        duration = time.time() - start_time
        auto_attribution_matched_counter.inc(matched)
        auto_attribution_duration_histogram.observe(duration)
        log_auto_attribution(household_id, matched, skipped, duration * 1000)
        return matched

    def _commit_first_fit(
        self,
        household_id: str,
        payment: PaymentSnapshot,
        candidates: List[IncomeSnapshot],
        member_id: Optional[str],
    ) -> Optional[uuid.UUID]:
        """Attribute against the first candidate that still commits; None if none does"""
        for income in candidates:
            try:
                self.ledger.attribute(
                    household_id,
                    payment.id,
                    income.id,
                    payment.amount,
                    kind=AttributionType.AUTOMATIC.value,
                    member_id=member_id,
                    require_unattributed=True,
                )
                return income.id
            except InsufficientIncomeError as e:
                auto_attribution_skipped_counter.inc()
                logger.warning(
                    f"Income no longer covers payment, trying next: {e}",
                    extra={"household_id": household_id, "payment_id": str(payment.id), "income_event_id": str(income.id)},
                )
            except (OverAttributedError, AlreadyAttributedError) as e:
                auto_attribution_skipped_counter.inc()
                logger.warning(
                    f"Planned attribution skipped: {e}",
                    extra={"household_id": household_id, "payment_id": str(payment.id)},
                )
                return None

        return None

