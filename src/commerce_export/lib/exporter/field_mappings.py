"""Default field mapping catalogue, default statuses, and mapping helpers."""

from collections.abc import Sequence

from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig, FieldMapping, Frequency

SOURCE_OF_ORIGIN_KEY = "source_of_origin"
SOURCE_OF_ORIGIN_COLUMN = "Source Of Origin"

_ORDER_FIELDS: list[tuple[str, str]] = [
    ("order_id", "Order ID"),
    ("order_number", "Order Number"),
    ("order_number_formatted", "Order Number (Formatted)"),
    ("order_date", "Order Date"),
    ("status", "Order Status"),
    ("shipping_total", "Shipping Total"),
    ("shipping_tax_total", "Shipping Tax Total"),
    ("fee_total", "Fee Total"),
    ("fee_tax_total", "Fee Tax Total"),
    ("tax_total", "Tax Total"),
    ("discount_total", "Discount Total"),
    ("order_total", "Order Total"),
    ("refunded_total", "Refunded Total"),
    ("order_currency", "Order Currency"),
    ("payment_method", "Payment Method"),
    ("payment_method_title", "Payment Method Title"),
    ("shipping_method", "Shipping Method"),
    ("customer_id", "Customer ID"),
    ("billing_first_name", "Billing First Name"),
    ("billing_last_name", "Billing Last Name"),
    ("billing_full_name", "Billing Full Name"),
    ("billing_company", "Billing Company"),
    ("vat_number", "VAT Number"),
    ("billing_email", "Billing Email"),
    ("billing_phone", "Billing Phone"),
    ("billing_address_1", "Billing Address 1"),
    ("billing_address_2", "Billing Address 2"),
    ("billing_postcode", "Billing Postcode"),
    ("billing_city", "Billing City"),
    ("billing_state", "Billing State"),
    ("billing_state_code", "Billing State Code"),
    ("billing_country", "Billing Country"),
    ("shipping_first_name", "Shipping First Name"),
    ("shipping_last_name", "Shipping Last Name"),
    ("shipping_full_name", "Shipping Full Name"),
    ("shipping_address_1", "Shipping Address 1"),
    ("shipping_address_2", "Shipping Address 2"),
    ("shipping_postcode", "Shipping Postcode"),
    ("shipping_city", "Shipping City"),
    ("shipping_state", "Shipping State"),
    ("shipping_state_code", "Shipping State Code"),
    ("shipping_country", "Shipping Country"),
    ("shipping_company", "Shipping Company"),
    ("customer_note", "Customer Note"),
    ("line_items", "Line Items"),
    ("shipping_items", "Shipping Items"),
    ("fee_items", "Fee Items"),
    ("tax_items", "Tax Items"),
    ("coupon_items", "Coupons"),
    ("refunds", "Refunds"),
    ("order_notes", "Order Notes"),
    ("download_permissions", "Download Permissions"),
    ("order_meta", "Order Meta"),
]

_ORDER_ITEM_FIELDS: list[tuple[str, str]] = [
    ("item_id", "Item ID"),
    ("item_product_id", "Product ID"),
    ("item_variation_id", "Variation ID"),
    ("item_name", "Item Name"),
    ("item_sku", "Item SKU"),
    ("item_quantity", "Quantity"),
    ("item_price", "Item Price"),
    ("item_subtotal", "Item Subtotal"),
    ("item_subtotal_tax", "Item Subtotal Tax"),
    ("item_total", "Item Total"),
    ("item_total_tax", "Item Total Tax"),
    ("item_refunded", "Item Refunded"),
    ("item_refunded_qty", "Item Refunded Quantity"),
    ("item_meta", "Item Meta"),
]

_CUSTOMER_FIELDS: list[tuple[str, str]] = [
    ("customer_id", "Customer ID"),
    ("first_name", "First Name"),
    ("last_name", "Last Name"),
    ("user_login", "Username"),
    ("email", "Email"),
    ("date_registered", "Date Registered"),
    ("billing_first_name", "Billing First Name"),
    ("billing_last_name", "Billing Last Name"),
    ("billing_full_name", "Billing Full Name"),
    ("billing_company", "Billing Company"),
    ("billing_email", "Billing Email"),
    ("billing_phone", "Billing Phone"),
    ("billing_address_1", "Billing Address 1"),
    ("billing_address_2", "Billing Address 2"),
    ("billing_postcode", "Billing Postcode"),
    ("billing_city", "Billing City"),
    ("billing_state", "Billing State"),
    ("billing_state_code", "Billing State Code"),
    ("billing_country", "Billing Country"),
    ("shipping_first_name", "Shipping First Name"),
    ("shipping_last_name", "Shipping Last Name"),
    ("shipping_full_name", "Shipping Full Name"),
    ("shipping_company", "Shipping Company"),
    ("shipping_address_1", "Shipping Address 1"),
    ("shipping_address_2", "Shipping Address 2"),
    ("shipping_postcode", "Shipping Postcode"),
    ("shipping_city", "Shipping City"),
    ("shipping_state", "Shipping State"),
    ("shipping_state_code", "Shipping State Code"),
    ("shipping_country", "Shipping Country"),
    ("total_spent", "Total Spent"),
    ("order_count", "Order Count"),
    ("customer_meta", "Customer Meta"),
]

_PRODUCT_FIELDS: list[tuple[str, str]] = [
    ("product_id", "Product ID"),
    ("product_name", "Product Name"),
    ("product_sku", "Product SKU"),
    ("product_type", "Product Type"),
    ("product_status", "Product Status"),
    ("product_price", "Product Price"),
    ("product_regular_price", "Product Regular Price"),
    ("product_sale_price", "Product Sale Price"),
    ("product_description", "Product Description"),
    ("product_short_description", "Product Short Description"),
    ("product_categories", "Product Categories"),
    ("product_tags", "Product Tags"),
    ("product_stock_quantity", "Stock Quantity"),
    ("product_stock_status", "Stock Status"),
    ("product_weight", "Weight"),
    ("product_dimensions", "Dimensions"),
    ("product_meta", "Product Meta"),
]

_COUPON_FIELDS: list[tuple[str, str]] = [
    ("coupon_id", "Coupon ID"),
    ("coupon_code", "Coupon Code"),
    ("coupon_type", "Discount Type"),
    ("coupon_amount", "Amount"),
    ("coupon_description", "Description"),
    ("coupon_date_expires", "Expiry Date"),
    ("coupon_usage_count", "Usage Count"),
    ("coupon_individual_use", "Individual Use"),
    ("coupon_product_ids", "Product IDs"),
    ("coupon_excluded_product_ids", "Excluded Product IDs"),
    ("coupon_product_categories", "Product Categories"),
    ("coupon_excluded_product_categories", "Excluded Product Categories"),
    ("coupon_usage_limit", "Usage Limit"),
    ("coupon_usage_limit_per_user", "Usage Limit Per User"),
    ("coupon_limit_usage_to_x_items", "Limit Usage To X Items"),
    ("coupon_free_shipping", "Free Shipping"),
    ("coupon_meta", "Coupon Meta"),
]


def _mappings(pairs: Sequence[tuple[str, str]]) -> list[FieldMapping]:
    return [FieldMapping(data_source=key, column_name=column) for key, column in pairs]


DEFAULT_FIELD_MAPPINGS: dict[ExportKind, list[FieldMapping]] = {
    ExportKind.ORDERS: _mappings(_ORDER_FIELDS + _ORDER_ITEM_FIELDS),
    ExportKind.CUSTOMERS: _mappings(_CUSTOMER_FIELDS),
    ExportKind.PRODUCTS: _mappings(_PRODUCT_FIELDS),
    ExportKind.COUPONS: _mappings(_COUPON_FIELDS),
    ExportKind.CUSTOM: [],
}

# None means "no status filter"
DEFAULT_STATUSES: dict[ExportKind, list[str] | None] = {
    ExportKind.ORDERS: ["completed", "processing", "on-hold"],
    ExportKind.CUSTOMERS: None,
    ExportKind.PRODUCTS: ["publish"],
    ExportKind.COUPONS: ["publish"],
    ExportKind.CUSTOM: None,
}


def resolve_statuses(export_type: ExportTypeConfig) -> list[str] | None:
    """Status allow-list for an export type, defaulting per kind when unset or empty."""
    if export_type.statuses:
        return list(export_type.statuses)
    defaults = DEFAULT_STATUSES[export_type.kind]
    return list(defaults) if defaults is not None else None


def apply_source_of_origin(mappings: Sequence[FieldMapping], include: bool) -> list[FieldMapping]:
    """Place the canonical source-of-origin mapping last when requested.

    Any user mapping that uses the canonical key, or advertises the canonical
    column under a different key, is dropped and replaced by the canonical
    entry at the end.  When ``include`` is false the mappings are returned
    unchanged.

    Args:
        mappings: Configured field mappings in order.
        include: Whether the export type asks for the source-of-origin column.

    Returns:
        New list of field mappings.
    """
    if not include:
        return list(mappings)
    canonical_column = SOURCE_OF_ORIGIN_COLUMN.casefold()
    kept = [
        m
        for m in mappings
        if m.data_source != SOURCE_OF_ORIGIN_KEY and m.column_name.strip().casefold() != canonical_column
    ]
    kept.append(FieldMapping(data_source=SOURCE_OF_ORIGIN_KEY, column_name=SOURCE_OF_ORIGIN_COLUMN))
    return kept


def default_export_types() -> list[ExportTypeConfig]:
    """Stock export definitions: one order-level and one line-item export."""
    order_level = [m for m in DEFAULT_FIELD_MAPPINGS[ExportKind.ORDERS] if not m.data_source.startswith("item_")]
    line_level = _mappings(
        [("order_id", "Order ID"), ("order_date", "Order Date"), ("status", "Order Status"), *_ORDER_ITEM_FIELDS]
    )
    return [
        ExportTypeConfig(
            id="web_sales",
            name="Web Sales",
            kind=ExportKind.ORDERS,
            frequency=Frequency.DAILY,
            time="01:30",
            s3_folder="WebsiteSales",
            file_prefix="WebSales",
            statuses=["processing", "completed"],
            field_mappings=order_level,
        ),
        ExportTypeConfig(
            id="web_sale_lines",
            name="Web Sale Lines",
            kind=ExportKind.ORDERS,
            frequency=Frequency.DAILY,
            time="01:30",
            s3_folder="WebsiteSaleLineItems",
            file_prefix="WebSaleLines",
            statuses=["processing", "completed"],
            field_mappings=line_level,
        ),
    ]
