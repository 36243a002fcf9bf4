"""Database session management with connection pooling"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError

from household_ledger.config import settings
from household_ledger.domain.exceptions import ConflictError
from household_ledger.infrastructure.observability.metrics import ledger_conflict_counter

logger = logging.getLogger(__name__)

# Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,  # Verify connections before using
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Postgres SQLSTATEs: serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
RETRYABLE_MESSAGES = ("could not serialize", "deadlock", "database is locked", "lock timeout")


def is_retryable_conflict(error: Exception) -> bool:
    """True for optimistic-lock mismatches and serialization/lock failures"""
    if isinstance(error, StaleDataError):
        return True
    if not isinstance(error, OperationalError):
        return False
    if getattr(error.orig, "pgcode", None) in RETRYABLE_SQLSTATES:
        return True
    message = str(error.orig).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGES)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work: commit on success, roll back on any failure.

    Version mismatches (optimistic locking) and serialization/lock failures
    surface as ConflictError so the caller can retry the whole operation.
    Other database errors (lost connections, outages) propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except (StaleDataError, OperationalError) as e:
        db.rollback()
        if not is_retryable_conflict(e):
            logger.error("Transaction failed", extra={"step": "transaction_error", "error": str(e)})
            raise
        ledger_conflict_counter.inc()
        logger.warning("Transaction conflict", extra={"step": "transaction_conflict", "error": str(e)})
        raise ConflictError("Concurrent modification detected, retry the operation") from e
    except Exception:
        db.rollback()
        raise
