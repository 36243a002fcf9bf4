"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from household_ledger.domain.models import PaymentData, SplitItem

PaymentTypeLiteral = Literal["once", "recurring", "variable"]
FrequencyLiteral = Literal["once", "weekly", "biweekly", "monthly", "quarterly", "annual"]
AttributionTypeLiteral = Literal["manual", "automatic"]


class PaymentCreateRequest(BaseModel):
    """Request body for POST /v1/payments"""

    payee: str = Field(..., min_length=1, description="Who gets paid")
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    due_date: date
    payment_type: PaymentTypeLiteral
    frequency: Optional[FrequencyLiteral] = None
    spending_category_id: uuid.UUID
    auto_pay_enabled: bool = False
    notes: Optional[str] = None

    def to_domain(self) -> PaymentData:
        return PaymentData(**self.model_dump())


class BulkCreateRequest(BaseModel):
    """Request body for POST /v1/payments/bulk"""

    payments: List[PaymentCreateRequest] = Field(..., min_length=1)


class PaymentUpdateRequest(BaseModel):
    """Request body for PATCH /v1/payments/{payment_id}; only sent fields change"""

    payee: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    due_date: Optional[date] = None
    payment_type: Optional[PaymentTypeLiteral] = None
    frequency: Optional[FrequencyLiteral] = None
    spending_category_id: Optional[uuid.UUID] = None
    auto_pay_enabled: Optional[bool] = None
    notes: Optional[str] = None


class MarkPaidRequest(BaseModel):
    """Request body for POST /v1/payments/{payment_id}/mark-paid"""

    paid_date: date
    paid_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class PaymentResponse(BaseModel):
    """Single payment; status is the effective status (overdue derived)"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    payee: str
    amount: Decimal
    due_date: date
    payment_type: str
    frequency: str
    next_due_date: Optional[date] = None
    status: str
    paid_date: Optional[date] = None
    paid_amount: Optional[Decimal] = None
    spending_category_id: uuid.UUID
    auto_pay_enabled: bool
    notes: Optional[str] = None
    parent_payment_id: Optional[uuid.UUID] = None


class BulkCreateResponse(BaseModel):
    total_created: int
    payments: List[PaymentResponse]


class PaginationSchema(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]
    pagination: PaginationSchema


class PeriodSummaryResponse(BaseModel):
    start_date: date
    end_date: date
    total_scheduled: Decimal
    total_paid: Decimal
    total_overdue: Decimal
    counts_by_status: Dict[str, int]


class AttributionCreateRequest(BaseModel):
    """Request body for POST /v1/payments/{payment_id}/attributions"""

    income_event_id: uuid.UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    attribution_type: AttributionTypeLiteral = "manual"


class AttributionUpdateRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class SplitItemSchema(BaseModel):
    income_event_id: uuid.UUID
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)

    def to_domain(self) -> SplitItem:
        return SplitItem(income_event_id=self.income_event_id, amount=self.amount)


class SplitPaymentRequest(BaseModel):
    attributions: List[SplitItemSchema] = Field(..., min_length=1)
    attribution_type: AttributionTypeLiteral = "manual"


class CapacityCheckRequest(BaseModel):
    attributions: List[SplitItemSchema]


class AttributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    payment_id: uuid.UUID
    income_event_id: uuid.UUID
    amount: Decimal
    attribution_type: str
    created_by: Optional[str] = None
    created_at: datetime


class AttributionLineSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    counterparty: str
    date: date
    amount: Decimal
    percentage: Decimal


class AttributionSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_id: uuid.UUID
    total_amount: Decimal
    total_attributed: Decimal
    remaining_amount: Decimal
    lines: List[AttributionLineSchema]


class SuggestionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    income_event_id: uuid.UUID
    income_event_name: str
    scheduled_date: date
    available_amount: Decimal
    suggested_amount: Decimal
    confidence: str


class CapacityCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    errors: List[str]
    total_proposed: Decimal
    payment_amount: Decimal


class AutoAttributeResponse(BaseModel):
    """Response for POST /v1/payments/auto-attribute"""

    attributed_count: int
