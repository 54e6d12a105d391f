"""Domain entities read from the upstream commerce store.

Adapters parse their raw payloads into these shapes so extractors can build
rows without knowing where the data came from.  Monetary amounts are kept as
the store reports them (WooCommerce returns decimal strings).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

Amount = str | int | float | Decimal


@dataclass
class MetaEntry:
    """One key/value metadata pair attached to an entity."""

    key: str
    value: object


@dataclass
class Address:
    """Billing or shipping address block."""

    first_name: str = ""
    last_name: str = ""
    company: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = ""
    email: str = ""
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class OrderItem:
    """A product line within an order."""

    item_id: int
    name: str
    product_id: int = 0
    variation_id: int = 0
    sku: str = ""
    quantity: int = 0
    price: Amount = 0
    subtotal: Amount = 0
    subtotal_tax: Amount = 0
    total: Amount = 0
    total_tax: Amount = 0
    refunded: Amount = 0
    refunded_qty: int = 0
    meta: list[MetaEntry] = field(default_factory=list)


@dataclass
class OrderSubItem:
    """A shipping, fee, tax, or coupon line within an order."""

    item_id: int
    name: str
    total: Amount = 0
    total_tax: Amount = 0
    meta: list[MetaEntry] = field(default_factory=list)


@dataclass
class Refund:
    """A refund issued against an order."""

    refund_id: int
    amount: Amount
    date_created: datetime | None = None
    reason: str = ""
    meta: list[MetaEntry] = field(default_factory=list)


@dataclass
class OrderNote:
    """A customer-visible order note."""

    note_id: int
    content: str
    author: str = ""
    date_created: datetime | None = None


@dataclass
class DownloadPermission:
    """Access grant for a downloadable product bought in an order."""

    permission_id: int
    product_id: int
    user_id: int = 0
    downloads_remaining: int | str = ""
    access_expires: datetime | None = None
    meta: list[MetaEntry] = field(default_factory=list)


@dataclass
class Order:
    """A store order with its nested collections."""

    order_id: int
    date_created: datetime
    status: str
    number: str = ""
    currency: str = ""
    shipping_total: Amount = 0
    shipping_tax_total: Amount = 0
    fee_total: Amount = 0
    fee_tax_total: Amount = 0
    tax_total: Amount = 0
    discount_total: Amount = 0
    total: Amount = 0
    refunded_total: Amount = 0
    payment_method: str = ""
    payment_method_title: str = ""
    shipping_method: str = ""
    customer_id: int = 0
    customer_note: str = ""
    vat_number: str = ""
    billing: Address = field(default_factory=Address)
    shipping: Address = field(default_factory=Address)
    items: list[OrderItem] = field(default_factory=list)
    shipping_lines: list[OrderSubItem] = field(default_factory=list)
    fee_lines: list[OrderSubItem] = field(default_factory=list)
    tax_lines: list[OrderSubItem] = field(default_factory=list)
    coupon_lines: list[OrderSubItem] = field(default_factory=list)
    refunds: list[Refund] = field(default_factory=list)
    notes: list[OrderNote] = field(default_factory=list)
    download_permissions: list[DownloadPermission] = field(default_factory=list)
    meta: list[MetaEntry] = field(default_factory=list)


@dataclass
class Customer:
    """A registered customer account."""

    customer_id: int
    email: str = ""
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    date_registered: datetime | None = None
    billing: Address = field(default_factory=Address)
    shipping: Address = field(default_factory=Address)
    total_spent: Amount | None = None
    order_count: int | None = None
    meta: list[MetaEntry] = field(default_factory=list)


@dataclass
class Product:
    """A catalogue product."""

    product_id: int
    name: str
    sku: str = ""
    product_type: str = "simple"
    status: str = "publish"
    price: Amount = ""
    regular_price: Amount = ""
    sale_price: Amount = ""
    description: str = ""
    short_description: str = ""
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    stock_quantity: int | None = None
    stock_status: str = ""
    weight: str = ""
    length: str = ""
    width: str = ""
    height: str = ""
    meta: list[MetaEntry] = field(default_factory=list)


@dataclass
class Coupon:
    """A discount coupon definition."""

    coupon_id: int
    code: str
    discount_type: str = ""
    amount: Amount = 0
    description: str = ""
    status: str = "publish"
    date_expires: datetime | None = None
    usage_count: int = 0
    individual_use: bool = False
    product_ids: list[int] = field(default_factory=list)
    excluded_product_ids: list[int] = field(default_factory=list)
    product_categories: list[int] = field(default_factory=list)
    excluded_product_categories: list[int] = field(default_factory=list)
    usage_limit: int | None = None
    usage_limit_per_user: int | None = None
    limit_usage_to_x_items: int | None = None
    free_shipping: bool = False
    meta: list[MetaEntry] = field(default_factory=list)
