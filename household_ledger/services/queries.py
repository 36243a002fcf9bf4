"""Read-side payment queries: listing, upcoming, overdue and period summaries"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional
from sqlalchemy.orm import Query, Session

from household_ledger.config import settings
from household_ledger.domain.exceptions import HouseholdNotFoundError, InvalidError
from household_ledger.domain.lifecycle import OPEN_STATUSES, STATUSES, effective_status
from household_ledger.domain.models import PaymentFilters, PaymentStatus, PeriodSummary
from household_ledger.domain.money import ZERO
from household_ledger.infrastructure.database.models import Payment
from household_ledger.infrastructure.database.repositories import HouseholdRepository, PaymentRepository


@dataclass
class PaymentPage:
    items: List[Payment]
    total: int
    limit: int
    offset: int
    has_more: bool


class PaymentQueries:
    """Aggregations over payments; overdue is derived from (status, due_date, today)"""

    def __init__(self, db: Session, clock: Callable[[], date] = date.today):
        self.db = db
        self.clock = clock
        self.households = HouseholdRepository(db)
        self.payments = PaymentRepository(db)

    def status_of(self, payment: Payment) -> str:
        return effective_status(payment.status, payment.due_date, self.clock())

    def list_payments(self, household_id: str, filters: Optional[PaymentFilters] = None) -> PaymentPage:
        filters = filters or PaymentFilters(limit=settings.list_default_limit)
        if filters.status is not None and filters.status not in STATUSES:
            raise InvalidError("Status must be one of: scheduled, paid, overdue, cancelled, partial")
        limit = min(max(filters.limit, 1), settings.list_max_limit)
        offset = max(filters.offset, 0)

        query = self._scoped(household_id)
        if filters.start_date:
            query = query.filter(Payment.due_date >= filters.start_date)
        if filters.end_date:
            query = query.filter(Payment.due_date <= filters.end_date)
        if filters.category_id:
            query = query.filter(Payment.spending_category_id == filters.category_id)
        if filters.payment_type:
            query = query.filter(Payment.payment_type == filters.payment_type)
        if filters.search:
            query = query.filter(Payment.payee.ilike(f"%{filters.search.strip()}%"))

        if filters.overdue_only or filters.status == PaymentStatus.OVERDUE.value:
            query = self._overdue_filter(query)
        elif filters.status in OPEN_STATUSES:
            # Open payments already past due report as overdue, not as their stored status
            query = query.filter(
                Payment.status.in_(OPEN_STATUSES),
                Payment.due_date >= self.clock(),
            )
            if filters.status == PaymentStatus.PARTIAL.value:
                query = query.filter(Payment.status == PaymentStatus.PARTIAL.value)
            else:
                query = query.filter(Payment.status != PaymentStatus.PARTIAL.value)
        elif filters.status:
            query = query.filter(Payment.status == filters.status)

        total = query.count()
        items = (
            query.order_by(Payment.due_date.asc(), Payment.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return PaymentPage(items=items, total=total, limit=limit, offset=offset, has_more=offset + len(items) < total)

    def upcoming(self, household_id: str, days: Optional[int] = None) -> List[Payment]:
        """Open payments due between today and today + days"""
        days = settings.upcoming_default_days if days is None else days
        if days < 0:
            raise InvalidError("days must not be negative")
        today = self.clock()
        return (
            self._scoped(household_id)
            .filter(
                Payment.status.in_(OPEN_STATUSES),
                Payment.due_date >= today,
                Payment.due_date <= today + timedelta(days=days),
            )
            .order_by(Payment.due_date.asc(), Payment.id.asc())
            .all()
        )

    def overdue(self, household_id: str) -> List[Payment]:
        return (
            self._overdue_filter(self._scoped(household_id))
            .order_by(Payment.due_date.asc(), Payment.id.asc())
            .all()
        )

    def summary(self, household_id: str, start_date: date, end_date: date) -> PeriodSummary:
        """Totals and status counts for payments due within [start_date, end_date]"""
        if end_date < start_date:
            raise InvalidError("end_date must not be before start_date")
        payments = (
            self._scoped(household_id)
            .filter(Payment.due_date >= start_date, Payment.due_date <= end_date)
            .all()
        )

        counts = {status: 0 for status in sorted(STATUSES)}
        total_scheduled = ZERO
        total_paid = ZERO
        total_overdue = ZERO
        for payment in payments:
            status = self.status_of(payment)
            counts[status] += 1
            if status != PaymentStatus.CANCELLED.value:
                total_scheduled += payment.amount
            if payment.paid_amount is not None:
                total_paid += payment.paid_amount
            if status == PaymentStatus.OVERDUE.value:
                total_overdue += payment.amount - (payment.paid_amount or Decimal("0"))

        return PeriodSummary(
            start_date=start_date,
            end_date=end_date,
            total_scheduled=total_scheduled,
            total_paid=total_paid,
            total_overdue=total_overdue,
            counts_by_status=counts,
        )

    def _scoped(self, household_id: str) -> Query:
        self._require_household(household_id)
        return self.payments.scoped(household_id)

    def _overdue_filter(self, query: Query) -> Query:
        return query.filter(Payment.status.in_(OPEN_STATUSES), Payment.due_date < self.clock())

    def _require_household(self, household_id: str) -> None:
        if self.households.get(household_id) is None:
            raise HouseholdNotFoundError("Household not found")
