"""Data source library: read-only access to the upstream commerce store.

Public API:
    - CommerceDataSource: Abstract source interface
    - DataSourceError: Transport or service failure, carries the source name
    - SkippedEntity: An entity the source could not map, with the reason
    - InMemoryDataSource: List-backed source for fixtures and dry runs
    - WooCommerceRestDataSource: WooCommerce REST API v3 adapter
"""

from commerce_export.lib.datasource.base import CommerceDataSource, DataSourceError, SkippedEntity
from commerce_export.lib.datasource.memory import InMemoryDataSource
from commerce_export.lib.datasource.types import (
    Address,
    Coupon,
    Customer,
    DownloadPermission,
    MetaEntry,
    Order,
    OrderItem,
    OrderNote,
    OrderSubItem,
    Product,
    Refund,
)
from commerce_export.lib.datasource.woocommerce import WooCommerceRestDataSource

__all__ = [
    "Address",
    "CommerceDataSource",
    "Coupon",
    "Customer",
    "DataSourceError",
    "DownloadPermission",
    "InMemoryDataSource",
    "MetaEntry",
    "Order",
    "OrderItem",
    "OrderNote",
    "OrderSubItem",
    "Product",
    "Refund",
    "SkippedEntity",
    "WooCommerceRestDataSource",
]
