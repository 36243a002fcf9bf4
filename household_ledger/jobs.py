"""Periodic auto-attribution job; run from cron or a process scheduler"""

import argparse
import logging
import time
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from household_ledger.config import settings
from household_ledger.domain.exceptions import ConflictError
from household_ledger.infrastructure.database.repositories import HouseholdRepository
from household_ledger.infrastructure.database.session import SessionLocal
from household_ledger.infrastructure.observability.logging import setup_logging
from household_ledger.services.auto_attribution import AutoAttributionScheduler

logger = logging.getLogger(__name__)

SYSTEM_MEMBER_ID = "system:auto-attribution"


def run_auto_attribution(db: Session) -> Dict[str, int]:
    """Run one scheduler pass per household that has scheduled payments"""
    household_ids = HouseholdRepository(db).ids_with_scheduled_payments()
    scheduler = AutoAttributionScheduler(db)

    results = {}
    for household_id in household_ids:
        try:
            results[household_id] = scheduler.run(household_id, member_id=SYSTEM_MEMBER_ID)
        except ConflictError as e:
            # Picked up again on the next run
            logger.warning(f"Auto-attribution conflict: {e}", extra={"household_id": household_id})
            results[household_id] = 0
    return results


def run_once() -> Dict[str, int]:
    db = SessionLocal()
    try:
        results = run_auto_attribution(db)
        logger.info(
            "Auto-attribution job finished",
            extra={"households": len(results), "matched": sum(results.values())},
        )
        return results
    finally:
        db.close()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Attribute scheduled payments to available income")
    parser.add_argument(
        "--loop",
        action="store_true",
        help=f"keep running every {settings.auto_attribution_interval_seconds}s instead of once",
    )
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)
    run_once()
    while args.loop:
        time.sleep(settings.auto_attribution_interval_seconds)
        run_once()


if __name__ == "__main__":
    main()
