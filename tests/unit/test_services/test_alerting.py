"""Unit tests for failure alerts."""

import smtplib
from datetime import UTC, datetime
from unittest.mock import patch

from commerce_export.core.config import Settings
from commerce_export.services.alerting import FailureAlerter, build_alert


def _mail_settings(settings: Settings) -> Settings:
    return settings.model_copy(
        update={
            "notifications_enabled": True,
            "smtp_host": "smtp.example.com",
            "smtp_port": 2525,
            "alert_recipients": "ops@example.com, dev@example.com",
        }
    )


class TestBuildAlert:
    """Tests for alert rendering."""

    def test_body_lines(self) -> None:
        """The body names the failing types, the cause, the time, and the site."""
        when = datetime(2025, 3, 15, tzinfo=UTC)
        alert = build_alert("Test Shop", ["Web Sales", "Web Orders"], "Upload failed", when)

        assert alert.subject == "[Test Shop] Export failure alert: Web Sales, Web Orders"
        assert alert.body.splitlines() == [
            "Export failure alert",
            "",
            "Type: Web Sales, Web Orders",
            "Details: Upload failed",
            "Time: 2025-03-15T00:00:00+00:00",
            "Site: Test Shop",
        ]

    def test_empty_site_and_types(self) -> None:
        """Missing identity falls back to placeholders."""
        alert = build_alert("", [], "boom")
        assert alert.subject.startswith("[commerce-export]")
        assert "Type: (none)" in alert.body
        assert "Site: unknown" in alert.body


class TestFailureAlerter:
    """Tests for FailureAlerter delivery."""

    async def test_log_only_when_notifications_off(self, settings: Settings) -> None:
        """Disabled notifications never open an SMTP connection."""
        with patch("commerce_export.services.alerting.smtplib.SMTP") as smtp_cls:
            alert = await FailureAlerter(settings).send(["Web Sales"], "Upload failed")

        smtp_cls.assert_not_called()
        assert alert.failed_types == ["Web Sales"]
        assert "Test Shop" in alert.subject

    async def test_mails_recipients(self, settings: Settings) -> None:
        """Configured SMTP receives one message for all recipients."""
        with patch("commerce_export.services.alerting.smtplib.SMTP") as smtp_cls:
            await FailureAlerter(_mail_settings(settings)).send(["Web Sales"], "Upload failed")

        smtp_cls.assert_called_once_with("smtp.example.com", 2525, timeout=30)
        smtp = smtp_cls.return_value.__enter__.return_value
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "ops@example.com, dev@example.com"
        assert "Type: Web Sales" in message.get_content()

    async def test_smtp_failure_is_not_raised(self, settings: Settings) -> None:
        """A broken mail server only logs a warning."""
        with patch("commerce_export.services.alerting.smtplib.SMTP") as smtp_cls:
            smtp_cls.side_effect = smtplib.SMTPConnectError(421, "unavailable")
            alert = await FailureAlerter(_mail_settings(settings)).send(["Web Sales"], "Upload failed")

        assert alert.failed_types == ["Web Sales"]

    def test_mail_requires_recipients(self, settings: Settings) -> None:
        """Notifications without recipients stay log-only."""
        alerter = FailureAlerter(settings.model_copy(update={"notifications_enabled": True, "smtp_host": "h"}))
        assert alerter.mail_enabled is False
        assert FailureAlerter(_mail_settings(settings)).mail_enabled is True
