"""Attribution ledger endpoints - earmark income events against payments"""

import uuid
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response

from household_ledger.api.dependencies import (
    get_attribution_ledger,
    get_auto_attribution_scheduler,
    get_household_id,
    get_member_id,
    get_request_id,
)
from household_ledger.api.v1.schemas import (
    AttributionCreateRequest,
    AttributionResponse,
    AttributionSummaryResponse,
    AttributionUpdateRequest,
    AutoAttributeResponse,
    CapacityCheckRequest,
    CapacityCheckResponse,
    SplitPaymentRequest,
    SuggestionSchema,
)
from household_ledger.services.attributions import AttributionLedger
from household_ledger.services.auto_attribution import AutoAttributionScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/payments/auto-attribute", response_model=AutoAttributeResponse)
def auto_attribute_household(
    request: Request,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    scheduler: AutoAttributionScheduler = Depends(get_auto_attribution_scheduler),
):
    """
    Run the greedy scheduler for the whole household.

    Flow:
    1. Snapshot unattributed scheduled payments and income with spare capacity
    2. Match earliest payments to earliest income that covers them in full
    3. Commit each match, falling back to later income drained by other writers
    """
    matched = scheduler.run(household_id, member_id=member_id)
    logger.info(
        "Auto-attribution requested",
        extra={"request_id": get_request_id(request), "household_id": household_id, "matched": matched},
    )
    return AutoAttributeResponse(attributed_count=matched)


@router.get("/payments/{payment_id}/attributions", response_model=AttributionSummaryResponse)
def list_payment_attributions(
    payment_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    return AttributionSummaryResponse.model_validate(ledger.payment_summary(household_id, payment_id))


@router.post("/payments/{payment_id}/attributions", response_model=AttributionResponse, status_code=201)
def create_attribution(
    payment_id: uuid.UUID,
    request_body: AttributionCreateRequest,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    attribution = ledger.attribute(
        household_id,
        payment_id,
        request_body.income_event_id,
        request_body.amount,
        kind=request_body.attribution_type,
        member_id=member_id,
    )
    return AttributionResponse.model_validate(attribution)


@router.put("/payments/{payment_id}/attributions/{attribution_id}", response_model=AttributionResponse)
def replace_attribution(
    payment_id: uuid.UUID,
    attribution_id: uuid.UUID,
    request_body: AttributionUpdateRequest,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    """Change an attribution's amount; the entry gets a new id"""
    attribution = ledger.replace_attribution_amount(
        household_id, payment_id, attribution_id, request_body.amount, member_id
    )
    return AttributionResponse.model_validate(attribution)


@router.delete("/payments/{payment_id}/attributions/{attribution_id}", status_code=204)
def delete_attribution(
    payment_id: uuid.UUID,
    attribution_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    ledger.remove_attribution(household_id, payment_id, attribution_id, member_id)
    return Response(status_code=204)


@router.post(
    "/payments/{payment_id}/attributions/split",
    response_model=List[AttributionResponse],
    status_code=201,
)
def split_payment(
    payment_id: uuid.UUID,
    request_body: SplitPaymentRequest,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    created = ledger.split_payment(
        household_id,
        payment_id,
        [item.to_domain() for item in request_body.attributions],
        kind=request_body.attribution_type,
        member_id=member_id,
    )
    return [AttributionResponse.model_validate(a) for a in created]


@router.post("/payments/{payment_id}/attributions/validate", response_model=CapacityCheckResponse)
def validate_attributions(
    payment_id: uuid.UUID,
    request_body: CapacityCheckRequest,
    household_id: str = Depends(get_household_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    """Dry run; nothing is written"""
    check = ledger.validate_capacity(
        household_id, payment_id, [item.to_domain() for item in request_body.attributions]
    )
    return CapacityCheckResponse.model_validate(check)


@router.get("/payments/{payment_id}/attributions/suggestions", response_model=List[SuggestionSchema])
def suggest_attributions(
    payment_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    return [SuggestionSchema.model_validate(s) for s in ledger.suggest_attributions(household_id, payment_id)]


@router.post("/payments/{payment_id}/auto-attribute", response_model=Optional[AttributionResponse])
def auto_attribute_payment(
    payment_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    member_id: Optional[str] = Depends(get_member_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    """Attribute one payment in full; null when no income covers it by its due date"""
    attribution = ledger.auto_attribute_payment(household_id, payment_id, member_id)
    if attribution is None:
        return None
    return AttributionResponse.model_validate(attribution)


@router.get("/income-events/{income_event_id}/attributions", response_model=AttributionSummaryResponse)
def list_income_attributions(
    income_event_id: uuid.UUID,
    household_id: str = Depends(get_household_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    return AttributionSummaryResponse.model_validate(ledger.income_summary(household_id, income_event_id))


@router.get("/attributions/history", response_model=List[AttributionResponse])
def attribution_history(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    household_id: str = Depends(get_household_id),
    ledger: AttributionLedger = Depends(get_attribution_ledger),
):
    """Newest attributions first"""
    return [AttributionResponse.model_validate(a) for a in ledger.history(household_id, limit, offset)]
