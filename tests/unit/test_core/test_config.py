"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from commerce_export.core.config import Settings, get_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self) -> None:
        """Defaults match the documented run policy."""
        settings = Settings(_env_file=None)
        assert settings.retry_delay_seconds == 3600
        assert settings.history_capacity == 1000
        assert settings.reference_timezone == "Europe/London"
        assert settings.s3_region == "eu-west-2"
        assert settings.enforce_idempotency is True

    def test_invalid_timezone_rejected(self) -> None:
        """An unknown IANA zone fails validation."""
        with pytest.raises(ValidationError, match="Unknown timezone"):
            Settings(_env_file=None, reference_timezone="Mars/Olympus")

    def test_invalid_export_time_rejected(self) -> None:
        """Default export time must be HH:MM."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, export_time="25:00")

    def test_s3_configured_requires_bucket_and_credentials(self) -> None:
        """Credentials alone are not enough."""
        settings = Settings(_env_file=None, s3_access_key_id="k", s3_secret_access_key="s")
        assert settings.s3_credentials_configured is True
        assert settings.s3_configured is False
        full = Settings(_env_file=None, s3_access_key_id="k", s3_secret_access_key="s", s3_bucket="b")
        assert full.s3_configured is True

    def test_alert_recipient_list(self) -> None:
        """Comma-separated recipients are split and stripped."""
        settings = Settings(_env_file=None, alert_recipients=" ops@example.com, ,dev@example.com ")
        assert settings.alert_recipient_list == ["ops@example.com", "dev@example.com"]

    def test_source_of_origin_prefers_site_name(self) -> None:
        """The site name wins over the URL."""
        assert Settings(_env_file=None, site_name="Shop", site_url="https://x").source_of_origin == "Shop"
        assert Settings(_env_file=None, site_url="https://x").source_of_origin == "https://x"

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Settings are loaded from environment variables."""
        monkeypatch.setenv("S3_BUCKET", "from-env")
        monkeypatch.setenv("RETRY_DELAY_SECONDS", "60")
        settings = get_settings()
        assert settings.s3_bucket == "from-env"
        assert settings.retry_delay_seconds == 60
