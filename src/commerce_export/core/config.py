"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
Export type definitions live in a separate JSON document (see ``export_types_file``)
and are validated by ``commerce_export.schemas.export_type``.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # State store (history ledger + retry state)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./commerce_export.db",
        description="Async SQLAlchemy connection string for the export state store",
    )

    # Export layout
    export_root: str = Field(
        default="./exports",
        description="Root directory for local CSV staging files",
    )
    export_types_file: str = Field(
        default="./export_types.json",
        description="JSON document holding the configured export types",
    )
    jobs_file: str = Field(
        default="./scheduled_jobs.json",
        description="JSON job table for the file-backed scheduler",
    )
    reference_timezone: str = Field(
        default="Europe/London",
        description="IANA timezone used for date ranges, filenames and schedules",
    )

    @field_validator("reference_timezone")
    @classmethod
    def validate_reference_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            msg = f"Unknown timezone: {v!r}"
            raise ValueError(msg) from exc
        return v

    @property
    def tz(self) -> ZoneInfo:
        """Reference timezone as a ZoneInfo instance."""
        return ZoneInfo(self.reference_timezone)

    # S3 object storage
    s3_bucket: str | None = Field(
        default=None,
        description="Destination bucket name",
    )
    s3_access_key_id: str | None = Field(
        default=None,
        description="S3 access key ID",
    )
    s3_secret_access_key: str | None = Field(
        default=None,
        description="S3 secret access key",
    )
    s3_region: str = Field(
        default="eu-west-2",
        description="S3 region",
    )
    s3_endpoint_url: str | None = Field(
        default=None,
        description="Custom endpoint for S3-compatible storage",
    )
    s3_key_prefix: str = Field(
        default="",
        description="Optional outer folder prepended to every object key",
    )

    @property
    def s3_credentials_configured(self) -> bool:
        """Whether both halves of the S3 credential pair are set."""
        return bool(self.s3_access_key_id and self.s3_secret_access_key)

    @property
    def s3_configured(self) -> bool:
        """Whether credentials and bucket are all present."""
        return self.s3_credentials_configured and bool(self.s3_bucket)

    # Site identity (alerts and the source-of-origin column)
    site_name: str = Field(
        default="",
        description="Human-readable store name",
    )
    site_url: str = Field(
        default="",
        description="Public URL of the store",
    )

    @property
    def source_of_origin(self) -> str:
        """Value written into the source-of-origin column."""
        return self.site_name or self.site_url

    # Alerting
    notifications_enabled: bool = Field(
        default=True,
        description="Email failure alerts when SMTP is configured",
    )
    smtp_host: str | None = Field(
        default=None,
        description="SMTP relay host for alert mail",
    )
    smtp_port: int = Field(
        default=25,
        description="SMTP relay port",
        gt=0,
    )
    smtp_sender: str = Field(
        default="commerce-export@localhost",
        description="From address for alert mail",
    )
    alert_recipients: str = Field(
        default="",
        description="Comma-separated list of alert mail recipients",
    )

    @property
    def alert_recipient_list(self) -> list[str]:
        """Parse alert recipients string into a list."""
        if not self.alert_recipients.strip():
            return []
        return [r.strip() for r in self.alert_recipients.split(",") if r.strip()]

    # Run policy
    retry_delay_seconds: int = Field(
        default=3600,
        description="Delay before a failed run is retried",
        gt=0,
    )
    run_timeout_seconds: float = Field(
        default=300.0,
        description="Upper bound for one complete export run",
        gt=0,
    )
    min_export_definitions: int = Field(
        default=1,
        description="Minimum number of configured export types required to run",
        ge=1,
    )
    history_capacity: int = Field(
        default=1000,
        description="Maximum number of history entries retained",
        gt=0,
    )
    enforce_idempotency: bool = Field(
        default=True,
        description="Skip automated exports that already completed for the same type and date",
    )

    # General cadence defaults
    export_frequency: str = Field(
        default="daily",
        description="Default export frequency (hourly, daily, weekly, monthly)",
        pattern=r"^(hourly|daily|weekly|monthly)$",
    )
    export_time: str = Field(
        default="02:00",
        description="Default time of day (HH:MM, 24h) for scheduled exports",
        pattern=r"^([01]\d|2[0-3]):[0-5]\d$",
    )

    # Upstream store (WooCommerce REST API)
    store_url: str | None = Field(
        default=None,
        description="Base URL of the WooCommerce store",
    )
    store_consumer_key: str | None = Field(
        default=None,
        description="WooCommerce REST API consumer key",
    )
    store_consumer_secret: str | None = Field(
        default=None,
        description="WooCommerce REST API consumer secret",
    )
    store_timeout: float = Field(
        default=30.0,
        description="Store API request timeout in seconds",
        gt=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit one JSON object per log line instead of text",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
