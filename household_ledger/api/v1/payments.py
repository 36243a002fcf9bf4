"""/v1/payments - payment lifecycle and query endpoints"""

import uuid
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response

from household_ledger.api.dependencies import (
    get_household_id,
    get_member_id,
    get_payment_queries,
    get_payment_service,
)
from household_ledger.api.v1.schemas import (
    BulkCreateRequest,
    BulkCreateResponse,
    MarkPaidRequest,
    PaginationSchema,
    PaymentCreateRequest,
    PaymentListResponse,
    PaymentResponse,
    PaymentUpdateRequest,
    PeriodSummaryResponse,
)
from household_ledger.config import settings
from household_ledger.domain.lifecycle import effective_status
from household_ledger.domain.models import PaymentFilters
from household_ledger.infrastructure.database.models import Payment
from household_ledger.services.payments import PaymentService
from household_ledger.services.queries import PaymentQueries

router = APIRouter()


def to_payment_response(payment: Payment) -> PaymentResponse:
    response = PaymentResponse.model_validate(payment)
    response.status = effective_status(payment.status, payment.due_date, date.today())
    return response


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def create_payment(
    request_body: PaymentCreateRequest,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.create(household_id, request_body.to_domain(), member_id)
    return to_payment_response(payment)


@router.post("/payments/bulk", response_model=BulkCreateResponse, status_code=201)
def bulk_create_payments(
    request_body: BulkCreateRequest,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    service: PaymentService = Depends(get_payment_service),
):
    """Create payments in order; stops at the first invalid item"""
    payments = service.bulk_create(household_id, [p.to_domain() for p in request_body.payments], member_id)
    return BulkCreateResponse(
        total_created=len(payments),
        payments=[to_payment_response(p) for p in payments],
    )


@router.get("/payments", response_model=PaymentListResponse)
def list_payments(
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[uuid.UUID] = None,
    payment_type: Optional[str] = None,
    search: Optional[str] = None,
    overdue_only: bool = False,
    limit: int = Query(settings.list_default_limit, ge=1, le=settings.list_max_limit),
    offset: int = Query(0, ge=0),
    household_id: str = Depends(get_household_id),
    queries: PaymentQueries = Depends(get_payment_queries),
):
    filters = PaymentFilters(
        status=status,
        start_date=start_date,
        end_date=end_date,
        category_id=category_id,
        payment_type=payment_type,
        search=search,
        overdue_only=overdue_only,
        limit=limit,
        offset=offset,
    )
    page = queries.list_payments(household_id, filters)
    return PaymentListResponse(
        payments=[to_payment_response(p) for p in page.items],
        pagination=PaginationSchema(
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
        ),
    )


@router.get("/payments/upcoming", response_model=List[PaymentResponse])
def upcoming_payments(
    days: int = Query(settings.upcoming_default_days, ge=0),
    household_id: str = Depends(get_household_id),
    queries: PaymentQueries = Depends(get_payment_queries),
):
    return [to_payment_response(p) for p in queries.upcoming(household_id, days)]


@router.get("/payments/overdue", response_model=List[PaymentResponse])
def overdue_payments(
    household_id: str = Depends(get_household_id),
    queries: PaymentQueries = Depends(get_payment_queries),
):
    return [to_payment_response(p) for p in queries.overdue(household_id)]


@router.get("/payments/summary", response_model=PeriodSummaryResponse)
def payment_summary(
    start_date: date,
    end_date: date,
    household_id: str = Depends(get_household_id),
    queries: PaymentQueries = Depends(get_payment_queries),
):
    summary = queries.summary(household_id, start_date, end_date)
    return PeriodSummaryResponse(
        start_date=summary.start_date,
        end_date=summary.end_date,
        total_scheduled=summary.total_scheduled,
        total_paid=summary.total_paid,
        total_overdue=summary.total_overdue,
        counts_by_status=summary.counts_by_status,
    )


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    service: PaymentService = Depends(get_payment_service),
):
    return to_payment_response(service.get(household_id, payment_id))


@router.patch("/payments/{payment_id}", response_model=PaymentResponse)
def update_payment(
    payment_id: uuid.UUID,
    request_body: PaymentUpdateRequest,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    service: PaymentService = Depends(get_payment_service),
):
    changes = request_body.model_dump(exclude_unset=True)
    payment = service.update(household_id, payment_id, changes, member_id)
    return to_payment_response(payment)


@router.delete("/payments/{payment_id}", status_code=204)
def delete_payment(
    payment_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    service: PaymentService = Depends(get_payment_service),
):
    """Delete a payment; attributed income is released first"""
    service.delete(household_id, payment_id, member_id)
    return Response(status_code=204)


@router.post("/payments/{payment_id}/mark-paid", response_model=PaymentResponse)
def mark_paid(
    payment_id: uuid.UUID,
    request_body: MarkPaidRequest,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    service: PaymentService = Depends(get_payment_service),
):
    """Settle a payment; recurring payments spawn their next occurrence"""
    payment = service.settle(
        household_id,
        payment_id,
        paid_date=request_body.paid_date,
        paid_amount=request_body.paid_amount,
        member_id=member_id,
    )
    return to_payment_response(payment)


@router.post("/payments/{payment_id}/revert-paid", response_model=PaymentResponse)
def revert_paid(
    payment_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    service: PaymentService = Depends(get_payment_service),
):
    return to_payment_response(service.revert_settlement(household_id, payment_id, member_id))


@router.post("/payments/{payment_id}/cancel", response_model=PaymentResponse)
def cancel_payment(
    payment_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    service: PaymentService = Depends(get_payment_service),
):
    return to_payment_response(service.cancel(household_id, payment_id, member_id))
