"""Order extraction: one row per line item, or one order-level row."""

from collections.abc import Sequence
from datetime import datetime

from loguru import logger

from commerce_export.lib.datasource.base import CommerceDataSource, SkippedEntity
from commerce_export.lib.datasource.types import Order, OrderItem, OrderSubItem
from commerce_export.lib.exporter.compound import encode_compound
from commerce_export.lib.exporter.field_mappings import resolve_statuses
from commerce_export.lib.extractor.base import (
    BaseExtractor,
    ExtractionIssue,
    ExtractionResult,
    Row,
    address_fields,
    format_datetime,
    format_meta,
)
from commerce_export.schemas.export_type import ExportKind, ExportTypeConfig


def _sub_item_entries(lines: Sequence[OrderSubItem]) -> list[dict[str, object]]:
    """Shipping, fee, tax, and coupon lines share one entry shape."""
    return [
        {
            "item_id": line.item_id,
            "item_name": line.name,
            "item_total": line.total,
            "item_total_tax": line.total_tax,
            "item_meta": format_meta(line.meta),
        }
        for line in lines
    ]


class OrderExtractor(BaseExtractor):
    """Flattens orders and their nested collections into rows."""

    kind = ExportKind.ORDERS

    async def fetch(
        self,
        source: CommerceDataSource,
        export_type: ExportTypeConfig,
        start: datetime | None,
        end: datetime | None,
        skipped: list[SkippedEntity],
    ) -> Sequence[Order]:
        return await source.fetch_orders(start, end, resolve_statuses(export_type), skipped)

    def entity_id(self, entity: Order) -> object:
        return entity.order_id

    def build_rows(self, entity: Order, result: ExtractionResult) -> list[Row]:
        base = self.order_fields(entity)
        if not entity.items:
            return [base]

        rows: list[Row] = []
        for item in entity.items:
            try:
                item_row = self.item_fields(item)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Skipping item {} of order {}: {}", getattr(item, "item_id", "?"), entity.order_id, exc)
                result.issues.append(
                    ExtractionIssue(
                        entity_id=entity.order_id,
                        item_id=getattr(item, "item_id", None),
                        reason=str(exc) or type(exc).__name__,
                    )
                )
                continue
            rows.append({**base, **item_row})
        return rows

    def order_fields(self, order: Order) -> Row:
        """Order-level fields copied onto every row of the order."""
        row: Row = {
            "order_id": order.order_id,
            "order_number": order.number or order.order_id,
            "order_number_formatted": f"#{order.number or order.order_id}",
            "order_date": format_datetime(order.date_created, self.tz),
            "status": order.status,
            "shipping_total": order.shipping_total,
            "shipping_tax_total": order.shipping_tax_total,
            "fee_total": order.fee_total,
            "fee_tax_total": order.fee_tax_total,
            "tax_total": order.tax_total,
            "discount_total": order.discount_total,
            "order_total": order.total,
            "refunded_total": order.refunded_total,
            "order_currency": order.currency,
            "payment_method": order.payment_method,
            "payment_method_title": order.payment_method_title,
            "shipping_method": order.shipping_method,
            "customer_id": order.customer_id,
            "vat_number": order.vat_number,
            "customer_note": order.customer_note,
            "line_items": self.encode_line_items(order.items),
            "shipping_items": encode_compound(_sub_item_entries(order.shipping_lines)),
            "fee_items": encode_compound(_sub_item_entries(order.fee_lines)),
            "tax_items": encode_compound(_sub_item_entries(order.tax_lines)),
            "coupon_items": encode_compound(_sub_item_entries(order.coupon_lines)),
            "refunds": encode_compound(
                {
                    "refund_id": r.refund_id,
                    "refund_reason": r.reason,
                    "refund_amount": r.amount,
                    "refund_date": format_datetime(r.date_created, self.tz),
                    "refund_meta": format_meta(r.meta),
                }
                for r in order.refunds
            ),
            "order_notes": encode_compound(
                {
                    "note_id": n.note_id,
                    "note_author": n.author,
                    "note_date": format_datetime(n.date_created, self.tz),
                    "note_content": n.content,
                }
                for n in order.notes
            ),
            "download_permissions": encode_compound(
                {
                    "permission_id": p.permission_id,
                    "permission_product_id": p.product_id,
                    "permission_user_id": p.user_id,
                    "permission_downloads_remaining": p.downloads_remaining,
                    "permission_access_expires": format_datetime(p.access_expires, self.tz),
                    "permission_meta": format_meta(p.meta),
                }
                for p in order.download_permissions
            ),
            "order_meta": format_meta(order.meta),
        }
        row.update(address_fields("billing", order.billing))
        row.update(address_fields("shipping", order.shipping))
        return row

    def encode_line_items(self, items: Sequence[OrderItem]) -> str:
        """All line items of an order as one compound cell."""
        return encode_compound(self.line_item_entry(item) for item in items)

    def line_item_entry(self, item: OrderItem) -> Row:
        """One line item in the shape shared by the compound cell and item rows."""
        return {
            "item_id": item.item_id,
            "item_product_id": item.product_id,
            "item_name": item.name,
            "item_sku": item.sku,
            "item_quantity": item.quantity,
            "item_subtotal": item.subtotal,
            "item_subtotal_tax": item.subtotal_tax,
            "item_total": item.total,
            "item_total_tax": item.total_tax,
            "item_refunded": item.refunded,
            "item_refunded_qty": item.refunded_qty,
            "item_meta": format_meta(item.meta),
            "item_price": item.price,
        }

    def item_fields(self, item: OrderItem) -> Row:
        """Item-level fields for one line item row."""
        return {**self.line_item_entry(item), "item_variation_id": item.variation_id}
