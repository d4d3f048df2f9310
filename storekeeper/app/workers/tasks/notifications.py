"""Async notification tasks."""

from __future__ import annotations

from storekeeper.app.workers.celery_app import celery


@celery.task(name="storekeeper.app.workers.tasks.notifications.send_low_stock_alert")
def send_low_stock_alert(products: list[dict]) -> dict:
    """Email the low-stock alert for ``products`` to the configured recipients."""
    from storekeeper.app.services.notification_service import NotificationService

    sent = NotificationService().send_low_stock(products)
    return {"status": "sent" if sent else "skipped", "recipients": sent}
