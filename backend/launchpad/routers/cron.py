"""Scheduler-facing routes, authenticated with the shared cron secret."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from launchpad.auth import verify_cron_secret
from launchpad.database import get_db
from launchpad.routers.admin import reconciliation_response
from launchpad.schemas.startup import ReconciliationOut
from launchpad.services import reconciliation_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/reconcile", response_model=ReconciliationOut, dependencies=[Depends(verify_cron_secret)])
def scheduled_reconciliation(db: Session = Depends(get_db)):
    """Hourly sweep: reset startups with an invalid status to pending."""
    result = reconciliation_service.reconcile(db)
    if result.repaired_count:
        logger.warning("Scheduled reconciliation repaired %d startups", result.repaired_count)
    return reconciliation_response(result)
