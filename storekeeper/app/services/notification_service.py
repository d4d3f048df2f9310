"""Low-stock and ledger notifications.

``notify_low_stock`` is what the sale engine and stock adjustments call after
they commit: it only queues a Celery task and never raises. The worker side
renders the templates below and mails them through ``EmailService``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from storekeeper.app.core.config import settings
from storekeeper.app.services.email_service import EmailService
from storekeeper.app.workers.tasks.notifications import send_low_stock_alert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LowStockProduct:
    id: str
    name: str
    quantity: str
    reorder_level: str

    def to_payload(self) -> dict[str, str]:
        return asdict(self)


class NotificationType(str, Enum):
    LOW_STOCK_ALERT = "LOW_STOCK_ALERT"
    LOW_STOCK_DIGEST = "LOW_STOCK_DIGEST"
    BALANCE_DRIFT = "BALANCE_DRIFT"


_TEMPLATES: dict[NotificationType, dict[str, str]] = {
    NotificationType.LOW_STOCK_ALERT: {
        "subject": "Low Stock Alert: {product_name}",
        "body": (
            "<h2>Low Stock Alert</h2>"
            "<p>Product <strong>{product_name}</strong> is at or below its "
            "reorder level ({reorder_level}). Current quantity: "
            "<strong>{quantity}</strong>.</p>"
        ),
    },
    NotificationType.LOW_STOCK_DIGEST: {
        "subject": "Low Stock Alert: {count} products running low",
        "body": "<h2>Low Stock Alert</h2><ul>{rows}</ul>",
    },
    NotificationType.BALANCE_DRIFT: {
        "subject": "Credit ledger drift on {count} customer(s)",
        "body": (
            "<h2>Credit Ledger Drift</h2>"
            "<p>The running balance no longer matches the entry totals for:</p>"
            "<ul>{rows}</ul>"
        ),
    },
}


def notify_low_stock(products: Sequence[LowStockProduct]) -> None:
    """Queue a low-stock alert. Failures are logged and dropped."""
    if not products or not settings.LOW_STOCK_ALERTS_ENABLED:
        return
    try:
        # No publish retries: a broker outage must not stall the caller
        send_low_stock_alert.apply_async(
            args=[[p.to_payload() for p in products]], retry=False
        )
    except Exception:
        logger.exception("Failed to dispatch low-stock alert for %d product(s)", len(products))
        return
    logger.info("Dispatched low-stock alert for %d product(s)", len(products))


class NotificationService:
    """Send typed notifications using predefined templates."""

    def __init__(self) -> None:
        self._email = EmailService()

    @staticmethod
    def render(notification_type: NotificationType, **kwargs: Any) -> tuple[str, str]:
        """Return ``(subject, body_html)`` for *notification_type*."""
        template = _TEMPLATES[notification_type]
        return template["subject"].format(**kwargs), template["body"].format(**kwargs)

    def _broadcast(self, notification_type: NotificationType, **kwargs: Any) -> int:
        recipients = settings.LOW_STOCK_ALERT_RECIPIENTS
        if not recipients:
            logger.info("No alert recipients configured, skipping %s", notification_type.value)
            return 0
        subject, body = self.render(notification_type, **kwargs)
        return self._email.send_all(recipients, subject, body)

    def send_low_stock(self, products: list[dict]) -> int:
        """Send one alert covering ``products``; returns recipients reached."""
        if not products:
            return 0
        if len(products) == 1:
            product = products[0]
            return self._broadcast(
                NotificationType.LOW_STOCK_ALERT,
                product_name=product["name"],
                quantity=product["quantity"],
                reorder_level=product["reorder_level"],
            )
        rows = "".join(
            f"<li>{p['name']}: {p['quantity']} left (reorder at {p['reorder_level']})</li>"
            for p in products
        )
        return self._broadcast(
            NotificationType.LOW_STOCK_DIGEST, count=len(products), rows=rows
        )

    def send_balance_drift(self, drifts: Sequence[Any]) -> int:
        rows = "".join(
            f"<li>{d.customer_name}: tail {d.tail_balance}, entries {d.computed_balance}</li>"
            for d in drifts
        )
        return self._broadcast(NotificationType.BALANCE_DRIFT, count=len(drifts), rows=rows)
