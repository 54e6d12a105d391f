"""Fixtures for CLI tests: an isolated environment and mocked S3."""

from collections.abc import Iterator
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from commerce_export.core.logging import setup_logging

CLI_BUCKET = "cli-bucket"


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every setting at a temporary directory and return it."""
    monkeypatch.chdir(tmp_path)
    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'state.db'}",
        "EXPORT_ROOT": str(tmp_path / "exports"),
        "EXPORT_TYPES_FILE": str(tmp_path / "export_types.json"),
        "JOBS_FILE": str(tmp_path / "jobs.json"),
        "REFERENCE_TIMEZONE": "Europe/London",
        "S3_BUCKET": CLI_BUCKET,
        "S3_ACCESS_KEY_ID": "testing",
        "S3_SECRET_ACCESS_KEY": "testing",
        "S3_REGION": "us-east-1",
        "SITE_NAME": "CLI Shop",
        "LOG_LEVEL": "WARNING",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    for key in ("LOG_DIR", "S3_ENDPOINT_URL", "STORE_URL", "NOTIFICATIONS_ENABLED"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


@pytest.fixture
def s3_client() -> Iterator:
    """Create a moto-mocked S3 client and bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=CLI_BUCKET)
        yield client


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """The CLI callback rebinds log sinks to the captured stream; put them back."""
    yield
    setup_logging("INFO")
