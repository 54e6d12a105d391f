"""ExportRecordRow model: one append-only history ledger entry."""

from datetime import date, datetime

from sqlalchemy import BigInteger, Boolean, Date, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commerce_export.models.base import Base


class ExportRecordRow(Base):
    """Persisted history entry for a single export attempt.

    ``seq`` is a monotonically increasing surrogate key used to break ties
    between entries created within the same timestamp.
    """

    __tablename__ = "export_records"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    export_type: Mapped[str] = mapped_column(String(100), nullable=False)
    export_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    export_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    object_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    trigger: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    file_exists: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_export_records_lookup", "export_type", "date", "export_name"),
        Index("ix_export_records_created_at", "created_at"),
    )
