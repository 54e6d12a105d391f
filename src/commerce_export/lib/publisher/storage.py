"""S3 storage operations for export artifacts.

Provides boto3 client creation, a single-shot CSV upload, and the
``S3Uploader`` that validates a local file before any network call and
retries transient failures with linear backoff.
"""

import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import boto3
from boto3.exceptions import Boto3Error
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from commerce_export.lib.exporter.filenames import build_object_key
from commerce_export.lib.publisher.types import ClientInitError, ConnectionTestResult

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"

MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 2

_TRANSIENT_ERRORS = (ClientError, BotoCoreError, Boto3Error, OSError)

# Uploads already run off the event loop in a worker thread
_TRANSFER_CONFIG = TransferConfig(multipart_threshold=16 * 1024 * 1024, use_threads=False)


def create_s3_client(
    access_key_id: str,
    secret_access_key: str,
    region: str = "eu-west-2",
    endpoint_url: str | None = None,
) -> Any:
    """Create a boto3 S3 client.

    Args:
        access_key_id: Access key id.
        secret_access_key: Secret access key.
        region: Bucket region.
        endpoint_url: Optional endpoint for S3-compatible stores.

    Returns:
        Configured boto3 S3 client.

    Raises:
        ClientInitError: If credentials are missing or the client cannot be built.
    """
    if not access_key_id or not secret_access_key:
        raise ClientInitError("S3 credentials are not configured")

    config = Config(
        retries={"max_attempts": 1, "mode": "standard"},
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
    )
    try:
        return boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
            config=config,
        )
    except (BotoCoreError, ValueError) as exc:
        raise ClientInitError(f"Could not create S3 client: {exc}") from exc


def upload_csv(client: Any, bucket: str, key: str, file_path: Path) -> int:
    """Store one staged export CSV at ``key``.

    The object is served as UTF-8 CSV and downloads under the staged file's
    own name whatever the key prefix.  Transient errors propagate so
    ``S3Uploader`` can retry them.

    Returns:
        Number of bytes sent.
    """
    file_size = file_path.stat().st_size
    extra_args = {
        "ContentType": CSV_CONTENT_TYPE,
        "ContentDisposition": f'attachment; filename="{file_path.name}"',
    }
    client.upload_file(str(file_path), bucket, key, Config=_TRANSFER_CONFIG, ExtraArgs=extra_args)
    logger.debug("Sent {} bytes of {} to s3://{}/{}", file_size, file_path.name, bucket, key)
    return file_size


def _precondition_failure(bucket: str, filename: str, local_path: str | Path, directory: str) -> str | None:
    """Reason the upload must not be attempted, or None when it may proceed."""
    if not bucket:
        return "bucket is empty"
    if not filename:
        return "filename is empty"
    if not str(local_path):
        return "local path is empty"
    if not directory:
        return "directory is empty"
    path = Path(local_path)
    if not path.is_file():
        return f"file does not exist: {path}"
    if not os.access(path, os.R_OK):
        return f"file is not readable: {path}"
    if path.stat().st_size == 0:
        return f"file is empty: {path}"
    return None


class S3Uploader:
    """Uploads staged export files with bounded retry.

    Args:
        access_key_id: Access key id.
        secret_access_key: Secret access key.
        region: Bucket region.
        endpoint_url: Optional endpoint for S3-compatible stores.
        max_attempts: Upload attempts before giving up.
        sleep: Sleep function used between attempts.
        client: Pre-built client; skips lazy creation when given.
    """

    def __init__(
        self,
        access_key_id: str | None,
        secret_access_key: str | None,
        region: str = "eu-west-2",
        endpoint_url: str | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
        client: Any | None = None,
    ) -> None:
        self.access_key_id = access_key_id or ""
        self.secret_access_key = secret_access_key or ""
        self.region = region
        self.endpoint_url = endpoint_url
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "S3Uploader":
        """Build an uploader from application settings."""
        return cls(
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            **kwargs,
        )

    @property
    def client(self) -> Any:
        """The S3 client, created on first use.

        Raises:
            ClientInitError: If the client cannot be created.
        """
        if self._client is None:
            self._client = create_s3_client(
                self.access_key_id,
                self.secret_access_key,
                region=self.region,
                endpoint_url=self.endpoint_url,
            )
        return self._client

    def upload(
        self,
        bucket: str,
        filename: str,
        local_path: str | Path,
        directory: str,
        folder: str = "",
    ) -> bool:
        """Upload a local file to ``[folder/]directory/filename`` in ``bucket``.

        Preconditions are checked before any network call; a violation, or a
        client that cannot be created, fails immediately.  Otherwise the
        upload is attempted up to ``max_attempts`` times, sleeping
        ``attempt * 2`` seconds after each failed attempt but the last.

        Args:
            bucket: Target bucket.
            filename: Object filename.
            local_path: Staged file to upload.
            directory: Directory part of the object key.
            folder: Optional outer folder of the object key.

        Returns:
            True when the object was stored, False otherwise.
        """
        reason = _precondition_failure(bucket, filename, local_path, directory)
        if reason is not None:
            logger.error("Upload of {} refused: {}", filename or local_path, reason)
            return False

        try:
            client = self.client
        except ClientInitError as exc:
            logger.error("Upload of {} failed: {}", filename, exc)
            return False

        key = build_object_key(directory, filename, folder)
        path = Path(local_path)

        for attempt in range(1, self.max_attempts + 1):
            try:
                upload_csv(client, bucket, key, path)
            except _TRANSIENT_ERRORS as exc:
                logger.warning(
                    "Upload attempt {}/{} of s3://{}/{} failed: {}",
                    attempt,
                    self.max_attempts,
                    bucket,
                    key,
                    exc,
                )
                if attempt < self.max_attempts:
                    self._sleep(attempt * BACKOFF_SECONDS)
                continue
            logger.info("Uploaded s3://{}/{} on attempt {}", bucket, key, attempt)
            return True

        logger.error("Giving up on s3://{}/{} after {} attempts", bucket, key, self.max_attempts)
        return False

    def test_connection(self) -> ConnectionTestResult:
        """List accessible buckets as a lightweight capability check.

        Returns:
            ConnectionTestResult with a human-readable message.
        """
        try:
            response = self.client.list_buckets()
        except ClientInitError as exc:
            return ConnectionTestResult(success=False, message=str(exc))
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "Unknown")
            logger.warning("S3 connection test failed: {}", code)
            return ConnectionTestResult(success=False, message=f"S3 rejected the request: {code}")
        except BotoCoreError as exc:
            logger.warning("S3 connection test failed: {}", exc)
            return ConnectionTestResult(success=False, message=f"S3 connection failed: {exc}")

        buckets = [b["Name"] for b in response.get("Buckets", [])]
        return ConnectionTestResult(
            success=True,
            message=f"Connected to S3 ({len(buckets)} accessible buckets)",
            buckets=buckets,
        )
