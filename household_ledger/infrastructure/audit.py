"""Audit sink - persists engine facts alongside the change that produced them"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from household_ledger.infrastructure.database.models import AuditLog, Payment, PaymentAttribution

logger = logging.getLogger(__name__)

PAYMENT_AUDIT_FIELDS = (
    "payee",
    "amount",
    "due_date",
    "payment_type",
    "frequency",
    "next_due_date",
    "status",
    "paid_date",
    "paid_amount",
    "spending_category_id",
    "auto_pay_enabled",
    "notes",
)


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def payment_snapshot(payment: Payment) -> Dict[str, Any]:
    return {name: _json_safe(getattr(payment, name)) for name in PAYMENT_AUDIT_FIELDS}


def attribution_snapshot(attribution: PaymentAttribution) -> Dict[str, Any]:
    return {
        "payment_id": str(attribution.payment_id),
        "income_event_id": str(attribution.income_event_id),
        "amount": str(attribution.amount),
        "attribution_type": attribution.attribution_type,
    }


class AuditSink:
    """Writes audit rows in the caller's transaction so they commit or roll back with it"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        household_id: str,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
        member_id: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            household_id=household_id,
            member_id=member_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            old_values=before or {},
            new_values=after or {},
        )
        self.db.add(entry)
        logger.info(
            "Audit fact recorded",
            extra={
                "household_id": household_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
            },
        )
        return entry
