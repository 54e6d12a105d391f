"""ORM model registry. Import all models so metadata.create_all discovers them."""

from commerce_export.models.base import Base
from commerce_export.models.export_record import ExportRecordRow
from commerce_export.models.retry_state import RetryStateRow

__all__ = [
    "Base",
    "ExportRecordRow",
    "RetryStateRow",
]
