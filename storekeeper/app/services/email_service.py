"""SMTP delivery for store alerts."""

from __future__ import annotations

import logging
import re
import smtplib
from collections.abc import Iterable
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from storekeeper.app.core.config import settings

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")


class EmailService:
    """Mail one rendered alert to every recipient over a single connection."""

    def _build(self, to: str, subject: str, body_html: str, from_addr: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = to
        msg.attach(MIMEText(_TAG_RE.sub("", body_html), "plain"))
        msg.attach(MIMEText(body_html, "html"))
        return msg

    def send_all(
        self,
        recipients: Iterable[str],
        subject: str,
        body_html: str,
        from_addr: str | None = None,
    ) -> int:
        """Send the alert to each address. Returns how many were accepted."""
        recipients = [r for r in recipients if r]
        if not recipients:
            return 0
        if not settings.NOTIFICATION_ENABLED:
            logger.info("Notifications disabled, not mailing '%s'", subject)
            return 0

        sender = from_addr or settings.SMTP_USERNAME
        sent = 0
        try:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
                server.ehlo()
                if settings.SMTP_PORT != 25:
                    server.starttls()
                if settings.SMTP_USERNAME:
                    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                for to in recipients:
                    msg = self._build(to, subject, body_html, sender)
                    try:
                        server.sendmail(sender, [to], msg.as_string())
                        sent += 1
                    except smtplib.SMTPRecipientsRefused:
                        logger.warning("SMTP server refused %s for '%s'", to, subject)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to mail '%s'", subject)
        else:
            logger.info("Mailed '%s' to %d recipient(s)", subject, sent)
        return sent
