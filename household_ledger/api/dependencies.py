"""Dependency injection for FastAPI endpoints"""

from typing import Optional
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from household_ledger.domain.exceptions import InvalidError
from household_ledger.infrastructure.database.session import get_db
from household_ledger.services.attributions import AttributionLedger
from household_ledger.services.auto_attribution import AutoAttributionScheduler
from household_ledger.services.payments import PaymentService
from household_ledger.services.queries import PaymentQueries


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_household_id(x_household_id: Optional[str] = Header(None)) -> str:
    """Household scope of the caller; every lookup is filtered by it"""
    household_id = (x_household_id or "").strip()
    if not household_id:
        raise InvalidError("X-Household-ID header is required")
    return household_id


def get_member_id(x_member_id: Optional[str] = Header(None)) -> Optional[str]:
    """Acting household member, recorded on attributions and audit entries"""
    return x_member_id.strip() if x_member_id and x_member_id.strip() else None


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


def get_payment_queries(db: Session = Depends(get_db)) -> PaymentQueries:
    return PaymentQueries(db)


def get_attribution_ledger(db: Session = Depends(get_db)) -> AttributionLedger:
    return AttributionLedger(db)


def get_auto_attribution_scheduler(db: Session = Depends(get_db)) -> AutoAttributionScheduler:
    return AutoAttributionScheduler(db)
