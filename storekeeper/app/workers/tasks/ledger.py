"""Periodic credit-ledger audit."""

from __future__ import annotations

import logging

from storekeeper.app.workers.celery_app import celery

logger = logging.getLogger(__name__)


@celery.task(name="storekeeper.app.workers.tasks.ledger.reconcile_credit_balances")
def reconcile_credit_balances() -> dict:
    """Compare every customer's tail balance with the sum of their entries."""
    from storekeeper.app.core.database import SessionLocal
    from storekeeper.app.services.ledger import reconcile_balances
    from storekeeper.app.services.notification_service import NotificationService

    db = SessionLocal()
    try:
        drifts = reconcile_balances(db)
    finally:
        db.close()

    for drift in drifts:
        logger.warning(
            "Credit balance drift for customer %s: ledger tail %s, entry sum %s",
            drift.customer_id, drift.tail_balance, drift.computed_balance,
        )
    if drifts:
        NotificationService().send_balance_drift(drifts)
    return {"checked": "ok", "drifts": len(drifts)}
