"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class PaymentType(str, Enum):
    ONCE = "once"
    RECURRING = "recurring"
    VARIABLE = "variable"


class Frequency(str, Enum):
    ONCE = "once"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class PaymentStatus(str, Enum):
    SCHEDULED = "scheduled"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class AttributionType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class PaymentData:
    """Fields accepted when creating a payment"""

    payee: str
    amount: Decimal
    due_date: date
    payment_type: str
    spending_category_id: uuid.UUID
    frequency: str = Frequency.ONCE.value
    auto_pay_enabled: bool = False
    notes: Optional[str] = None


@dataclass
class SplitItem:
    """One slice of a payment assigned to an income event"""

    income_event_id: uuid.UUID
    amount: Decimal


@dataclass
class PaymentSnapshot:
    """Minimal view of a payment used by the auto-attribution planner"""

    id: uuid.UUID
    due_date: date
    amount: Decimal


@dataclass
class IncomeSnapshot:
    """Minimal view of an income event used by the auto-attribution planner"""

    id: uuid.UUID
    scheduled_date: date
    remaining_amount: Decimal


@dataclass
class PlannedAttribution:
    """Output of the greedy planner: full payment amount against one income event"""

    payment_id: uuid.UUID
    income_event_id: uuid.UUID
    amount: Decimal


@dataclass
class CapacityCheck:
    """Result of a dry-run validation of proposed attributions"""

    is_valid: bool
    errors: List[str]
    total_proposed: Decimal
    payment_amount: Decimal


@dataclass
class AttributionSuggestion:
    income_event_id: uuid.UUID
    income_event_name: str
    scheduled_date: date
    available_amount: Decimal
    suggested_amount: Decimal
    confidence: str  # "high" | "medium" | "low"


@dataclass
class PaymentFilters:
    """Filters for listing payments"""

    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_id: Optional[uuid.UUID] = None
    payment_type: Optional[str] = None
    search: Optional[str] = None
    overdue_only: bool = False
    limit: int = 50
    offset: int = 0


@dataclass
class PeriodSummary:
    start_date: date
    end_date: date
    total_scheduled: Decimal
    total_paid: Decimal
    total_overdue: Decimal
    counts_by_status: Dict[str, int] = field(default_factory=dict)
