"""Publisher library: public API for object-storage uploads.

Provides S3 client creation, single-shot CSV uploads, and the retrying uploader
used by the export runner.
"""

from commerce_export.lib.publisher.storage import (
    BACKOFF_SECONDS,
    MAX_ATTEMPTS,
    S3Uploader,
    create_s3_client,
    upload_csv,
)
from commerce_export.lib.publisher.types import ClientInitError, ConnectionTestResult

__all__ = [
    "BACKOFF_SECONDS",
    "MAX_ATTEMPTS",
    "ClientInitError",
    "ConnectionTestResult",
    "S3Uploader",
    "create_s3_client",
    "upload_csv",
]
