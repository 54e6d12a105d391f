"""Abstract interface for the upstream commerce data source."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from commerce_export.lib.datasource.types import Coupon, Customer, Order, Product


class DataSourceError(Exception):
    """Raised when the data source experiences a transport or service error.

    Args:
        source_name: Name of the failing data source.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the source.
    """

    def __init__(self, source_name: str, message: str, status_code: int | None = None) -> None:
        self.source_name = source_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{source_name}: {message}")


@dataclass
class SkippedEntity:
    """An upstream entity the source fetched but could not turn into a domain object."""

    entity_id: object
    reason: str


class CommerceDataSource(ABC):
    """Read-only access to store entities.

    Date bounds are timezone-aware and inclusive.  ``statuses=None`` means
    no status filter.

    Fetch methods accept an optional ``skipped`` list.  An adapter that fails
    to map a single entity drops it, appends a ``SkippedEntity`` there, and
    carries on with the rest of the collection.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Short name identifying this data source."""

    @abstractmethod
    async def check_available(self) -> None:
        """Verify the source is reachable.

        Raises:
            DataSourceError: If the source cannot be reached.
        """

    @abstractmethod
    async def fetch_orders(
        self,
        start: datetime | None,
        end: datetime | None,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Order]:
        """Orders created within ``[start, end]`` with a matching status."""

    async def count_orders(
        self,
        start: datetime | None,
        end: datetime | None,
        statuses: Sequence[str] | None,
    ) -> int:
        """Number of orders ``fetch_orders`` would return.

        Default implementation fetches and counts; adapters may override.
        """
        return len(await self.fetch_orders(start, end, statuses))

    @abstractmethod
    async def fetch_customers(self, skipped: list[SkippedEntity] | None = None) -> list[Customer]:
        """All customer accounts."""

    @abstractmethod
    async def fetch_products(
        self,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Product]:
        """Products with a matching status."""

    @abstractmethod
    async def fetch_coupons(
        self,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Coupon]:
        """Coupons with a matching status."""

    async def fetch_custom_rows(
        self,
        export_type_id: str,
        start: datetime | None,
        end: datetime | None,
    ) -> list[Mapping[str, Any]]:
        """Free-form rows for a custom export type.

        Raises:
            DataSourceError: If the source has no custom feed for the type.
        """
        msg = f"custom export {export_type_id!r} is not supported"
        raise DataSourceError(self.source_name, msg)
