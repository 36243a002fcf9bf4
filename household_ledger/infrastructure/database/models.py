"""SQLAlchemy ORM models for payments, income events and the attribution ledger"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    Text,
    Uuid,
    CheckConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(12, 2, asdecimal=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Household(Base):
    """Tenant scope owning payments, income events and categories"""

    __tablename__ = "households"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SpendingCategory(Base):
    """Read-only lookup into the category taxonomy"""

    __tablename__ = "spending_categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    household_id = Column(Text, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class IncomeEvent(Base):
    """Expected or received inflow; balances are written only by the attribution ledger"""

    __tablename__ = "income_events"
    __table_args__ = (
        CheckConstraint("remaining_amount >= 0", name="ck_income_remaining_non_negative"),
        CheckConstraint("allocated_amount + remaining_amount = amount", name="ck_income_conservation"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    household_id = Column(Text, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    allocated_amount = Column(Money, nullable=False, default=0)
    remaining_amount = Column(Money, nullable=False)
    scheduled_date = Column(Date, nullable=False, index=True)
    status = Column(Text, nullable=False, default="scheduled")
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    attributions = relationship(
        "PaymentAttribution",
        back_populates="income_event",
        order_by="PaymentAttribution.created_at",
    )

    __mapper_args__ = {"version_id_col": version}


class Payment(Base):
    """Obligation to pay a payee a fixed amount by a due date"""

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_payment_amount_positive"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    household_id = Column(Text, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    payee = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    payment_type = Column(Text, nullable=False, default="once")
    frequency = Column(Text, nullable=False, default="once")
    next_due_date = Column(Date, nullable=True)
    status = Column(Text, nullable=False, default="scheduled", index=True)
    paid_date = Column(Date, nullable=True)
    paid_amount = Column(Money, nullable=True)
    spending_category_id = Column(Uuid(as_uuid=True), ForeignKey("spending_categories.id"), nullable=False)
    auto_pay_enabled = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    parent_payment_id = Column(
        Uuid(as_uuid=True), ForeignKey("payments.id", ondelete="SET NULL"), nullable=True, index=True
    )
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    spending_category = relationship("SpendingCategory")
    attributions = relationship(
        "PaymentAttribution",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentAttribution.created_at",
    )

    __mapper_args__ = {"version_id_col": version}


class PaymentAttribution(Base):
    """Ledger entry earmarking part of an income event for a payment"""

    __tablename__ = "payment_attributions"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_attribution_amount_positive"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    payment_id = Column(Uuid(as_uuid=True), ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    income_event_id = Column(
        Uuid(as_uuid=True), ForeignKey("income_events.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount = Column(Money, nullable=False)
    attribution_type = Column(Text, nullable=False, default="manual")
    created_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    payment = relationship("Payment", back_populates="attributions")
    income_event = relationship("IncomeEvent", back_populates="attributions")


class AuditLog(Base):
    """Audit facts emitted by the engine"""

    __tablename__ = "audit_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    household_id = Column(Text, nullable=False, index=True)
    member_id = Column(Text, nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=False)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
