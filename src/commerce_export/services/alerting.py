"""Failure alerts: always logged, optionally mailed."""

import asyncio
import smtplib
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import Protocol

from loguru import logger

from commerce_export.core.config import Settings


@dataclass
class Alert:
    """A rendered failure alert."""

    subject: str
    body: str
    failed_types: list[str]


class Alerter(Protocol):
    async def send(self, failed_types: Sequence[str], details: str) -> Alert: ...


def build_alert(site: str, failed_types: Sequence[str], details: str, when: datetime | None = None) -> Alert:
    """Render the alert text with site identity and failing export type names.

    Args:
        site: Site or service identity.
        failed_types: Names of the export types that failed.
        details: Human-readable cause.
        when: Timestamp of the failure.

    Returns:
        Alert.
    """
    when = when or datetime.now(UTC)
    names = ", ".join(failed_types) or "(none)"
    subject = f"[{site or 'commerce-export'}] Export failure alert: {names}"
    body = "\n".join(
        [
            "Export failure alert",
            "",
            f"Type: {names}",
            f"Details: {details}",
            f"Time: {when.isoformat(timespec='seconds')}",
            f"Site: {site or 'unknown'}",
        ]
    )
    return Alert(subject=subject, body=body, failed_types=list(failed_types))


class FailureAlerter:
    """Logs every alert and mails it when notifications and SMTP are configured.

    Args:
        settings: Application settings (site identity, SMTP, recipients).
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def mail_enabled(self) -> bool:
        s = self.settings
        return bool(s.notifications_enabled and s.smtp_host and s.alert_recipient_list)

    async def send(self, failed_types: Sequence[str], details: str) -> Alert:
        site = self.settings.site_name or self.settings.site_url
        alert = build_alert(site, failed_types, details)
        logger.bind(alert=True).error("{} | {}", alert.subject, details)

        if self.mail_enabled:
            try:
                await asyncio.to_thread(self._mail, alert)
            except (OSError, smtplib.SMTPException) as exc:
                logger.warning("Could not mail failure alert: {}", exc)
        return alert

    def _mail(self, alert: Alert) -> None:
        message = EmailMessage()
        message["Subject"] = alert.subject
        message["From"] = self.settings.smtp_sender
        message["To"] = ", ".join(self.settings.alert_recipient_list)
        message.set_content(alert.body)

        with smtplib.SMTP(self.settings.smtp_host or "localhost", self.settings.smtp_port, timeout=30) as smtp:
            smtp.send_message(message)
        logger.info("Mailed failure alert to {}", message["To"])
