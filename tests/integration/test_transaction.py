"""Integration tests for the transaction unit of work"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError
from household_ledger.domain.exceptions import ConflictError
from household_ledger.infrastructure.database.repositories import HouseholdRepository
from household_ledger.infrastructure.database.session import is_retryable_conflict, transaction


class PgError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


def operational_error(orig):
    return OperationalError("UPDATE income_events SET remaining_amount=?", {}, orig)


def test_stale_version_becomes_conflict(db):
    with pytest.raises(ConflictError) as exc_info:
        with transaction(db):
            raise StaleDataError("UPDATE statement on table 'payments' expected to update 1 row(s); 0 were matched")
    assert exc_info.value.retryable


@pytest.mark.parametrize("orig", [
    PgError("could not serialize access due to concurrent update", "40001"),
    PgError("deadlock detected", "40P01"),
    PgError("could not obtain lock on row in relation \"payments\"", "55P03"),
    Exception("database is locked"),
])
def test_lock_and_serialization_failures_become_conflict(db, orig):
    with pytest.raises(ConflictError):
        with transaction(db):
            raise operational_error(orig)


def test_connection_failure_propagates_unchanged(db):
    """Test an outage is not reported as a retryable conflict"""
    error = operational_error(Exception("could not connect to server: Connection refused"))

    with pytest.raises(OperationalError) as exc_info:
        with transaction(db):
            raise error

    assert exc_info.value is error
    assert not is_retryable_conflict(error)


def test_failure_rolls_back_pending_changes(db):
    with pytest.raises(OperationalError):
        with transaction(db):
            HouseholdRepository(db).create("household_lee", "Lee family")
            db.flush()
            raise operational_error(Exception("server closed the connection unexpectedly"))

    assert HouseholdRepository(db).get("household_lee") is None
