"""RetryStateRow model: the single pending-retry marker."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from commerce_export.models.base import Base


class RetryStateRow(Base):
    """Persisted retry marker.  At most one row exists (``id`` is always 1)."""

    __tablename__ = "retry_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    next_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
