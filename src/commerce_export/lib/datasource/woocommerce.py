"""WooCommerce REST API v3 data source."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar

import httpx
from loguru import logger

from commerce_export.lib.datasource.base import CommerceDataSource, DataSourceError, SkippedEntity
from commerce_export.lib.datasource.types import (
    Address,
    Coupon,
    Customer,
    MetaEntry,
    Order,
    OrderItem,
    OrderNote,
    OrderSubItem,
    Product,
    Refund,
)

_API_PATH = "/wp-json/wc/v3"
_PER_PAGE = 100

# Raised by the mappers on a malformed payload
_MAPPING_ERRORS = (AttributeError, KeyError, TypeError, ValueError)

_T = TypeVar("_T")


def _parse_datetime(value: str | None) -> datetime | None:
    """Parse a ``*_gmt`` timestamp (naive ISO 8601, UTC) into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_meta(raw: list[dict] | None) -> list[MetaEntry]:
    # Keys starting with "_" are private to the store
    entries = [m for m in raw or [] if not str(m.get("key", "")).startswith("_")]
    return [MetaEntry(key=m.get("key", ""), value=m.get("value")) for m in entries]


def _parse_address(raw: dict | None) -> Address:
    raw = raw or {}
    return Address(
        first_name=raw.get("first_name") or "",
        last_name=raw.get("last_name") or "",
        company=raw.get("company") or "",
        address_1=raw.get("address_1") or "",
        address_2=raw.get("address_2") or "",
        city=raw.get("city") or "",
        state=raw.get("state") or "",
        postcode=raw.get("postcode") or "",
        country=raw.get("country") or "",
        email=raw.get("email") or "",
        phone=raw.get("phone") or "",
    )


def _parse_sub_items(raw: list[dict] | None, name_key: str) -> list[OrderSubItem]:
    return [
        OrderSubItem(
            item_id=int(line.get("id") or 0),
            name=line.get(name_key) or "",
            total=line.get("total") or line.get("tax_total") or 0,
            total_tax=line.get("total_tax") or line.get("shipping_tax_total") or 0,
            meta=_parse_meta(line.get("meta_data")),
        )
        for line in raw or []
    ]


class WooCommerceRestDataSource(CommerceDataSource):
    """Reads store entities from a WooCommerce site over its REST API.

    Args:
        base_url: Store root URL, e.g. ``https://shop.example.com``.
        consumer_key: REST API consumer key.
        consumer_secret: REST API consumer secret.
        timeout: Per-request timeout in seconds.
        include_notes: Fetch customer-visible notes for each order (one extra
            request per order).
    """

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 30.0,
        include_notes: bool = True,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + _API_PATH,
            auth=(consumer_key, consumer_secret),
            timeout=timeout,
        )
        self._include_notes = include_notes

    @property
    def source_name(self) -> str:
        return "woocommerce"

    async def check_available(self) -> None:
        await self._request("", {})

    async def fetch_orders(
        self,
        start: datetime | None,
        end: datetime | None,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Order]:
        raw_orders = await self._fetch_all("/orders", self._order_params(start, end, statuses))
        orders: list[Order] = []
        for raw in raw_orders:
            order = self._map_one("order", raw, self._map_order, skipped)
            if order is None:
                continue
            if self._include_notes:
                try:
                    order.notes = await self._fetch_notes(order.order_id)
                except (DataSourceError, *_MAPPING_ERRORS) as exc:
                    self._skip("order", raw, exc, skipped)
                    continue
            orders.append(order)
        logger.debug("Fetched {} orders from {}", len(orders), self.source_name)
        return orders

    async def count_orders(
        self,
        start: datetime | None,
        end: datetime | None,
        statuses: Sequence[str] | None,
    ) -> int:
        params = self._order_params(start, end, statuses)
        params["per_page"] = 1
        response = await self._get("/orders", params)
        return int(response.headers.get("X-WP-Total", "0"))

    async def fetch_customers(self, skipped: list[SkippedEntity] | None = None) -> list[Customer]:
        raw_customers = await self._fetch_all("/customers", {"role": "customer"})
        return self._map_all("customer", raw_customers, self._map_customer, skipped)

    async def fetch_products(
        self,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Product]:
        params: dict[str, Any] = {}
        if statuses:
            params["status"] = ",".join(statuses)
        raw_products = await self._fetch_all("/products", params)
        return self._map_all("product", raw_products, self._map_product, skipped)

    async def fetch_coupons(
        self,
        statuses: Sequence[str] | None,
        skipped: list[SkippedEntity] | None = None,
    ) -> list[Coupon]:
        raw_coupons = await self._fetch_all("/coupons", {})
        coupons = self._map_all("coupon", raw_coupons, self._map_coupon, skipped)
        # The coupons endpoint has no status filter
        if statuses:
            coupons = [c for c in coupons if c.status in statuses]
        return coupons

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _map_all(
        self,
        kind: str,
        raw_entities: list[dict],
        mapper: Callable[[dict], _T],
        skipped: list[SkippedEntity] | None,
    ) -> list[_T]:
        mapped = (self._map_one(kind, raw, mapper, skipped) for raw in raw_entities)
        return [entity for entity in mapped if entity is not None]

    def _map_one(
        self,
        kind: str,
        raw: dict,
        mapper: Callable[[dict], _T],
        skipped: list[SkippedEntity] | None,
    ) -> _T | None:
        try:
            return mapper(raw)
        except _MAPPING_ERRORS as exc:
            self._skip(kind, raw, exc, skipped)
            return None

    def _skip(self, kind: str, raw: Any, exc: Exception, skipped: list[SkippedEntity] | None) -> None:
        entity_id = raw.get("id", "?") if isinstance(raw, dict) else "?"
        reason = str(exc) or type(exc).__name__
        logger.warning("Skipping {} {} from {}: {}", kind, entity_id, self.source_name, reason)
        if skipped is not None:
            skipped.append(SkippedEntity(entity_id=entity_id, reason=reason))

    @staticmethod
    def _order_params(
        start: datetime | None,
        end: datetime | None,
        statuses: Sequence[str] | None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"dates_are_gmt": "true", "orderby": "date", "order": "asc"}
        if start is not None:
            params["after"] = start.astimezone(UTC).replace(tzinfo=None).isoformat()
        if end is not None:
            params["before"] = end.astimezone(UTC).replace(tzinfo=None).isoformat()
        params["status"] = ",".join(statuses) if statuses else "any"
        return params

    async def _fetch_notes(self, order_id: int) -> list[OrderNote]:
        raw_notes = await self._fetch_all(f"/orders/{order_id}/notes", {"type": "customer"})
        return [
            OrderNote(
                note_id=int(n.get("id") or 0),
                content=n.get("note") or "",
                author=n.get("author") or "",
                date_created=_parse_datetime(n.get("date_created_gmt")),
            )
            for n in raw_notes
        ]

    async def _fetch_all(self, path: str, params: dict[str, Any]) -> list[dict]:
        """Walk every page of a collection endpoint."""
        results: list[dict] = []
        page = 1
        # Copy to avoid mutating the caller's dict
        params = {**params, "per_page": _PER_PAGE}

        while True:
            params["page"] = page
            response = await self._get(path, params)
            batch = self._decode(response, path)
            if not isinstance(batch, list):
                raise DataSourceError(self.source_name, f"Expected a list from {path}")
            results.extend(batch)

            total_pages = int(response.headers.get("X-WP-TotalPages", "1") or 1)
            if page >= total_pages or not batch:
                break
            page += 1

        return results

    async def _request(self, path: str, params: dict[str, Any]) -> Any:
        response = await self._get(path, params)
        return self._decode(response, path)

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        """Make an authenticated GET request against the REST namespace."""
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            logger.error(
                "WooCommerce API error: {} {} for {}",
                exc.response.status_code,
                exc.response.reason_phrase,
                path,
            )
            raise DataSourceError(
                self.source_name,
                f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            logger.error("WooCommerce request failed: {}", exc)
            raise DataSourceError(self.source_name, f"Request failed: {exc}") from exc

    def _decode(self, response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            logger.error("WooCommerce returned non-JSON response for {}", path)
            raise DataSourceError(self.source_name, f"Invalid JSON response for {path}") from exc

    def _map_order(self, raw: dict) -> Order:
        shipping_lines = _parse_sub_items(raw.get("shipping_lines"), "method_title")
        fee_lines = _parse_sub_items(raw.get("fee_lines"), "name")
        refunds = [
            Refund(
                refund_id=int(r.get("id") or 0),
                amount=str(r.get("total") or "0").lstrip("-"),
                reason=r.get("reason") or "",
            )
            for r in raw.get("refunds") or []
        ]
        meta = _parse_meta(raw.get("meta_data"))
        vat_number = next((str(m.value) for m in meta if m.key.lower() in {"vat_number", "vat number"}), "")

        return Order(
            order_id=int(raw["id"]),
            number=str(raw.get("number") or raw["id"]),
            date_created=_parse_datetime(raw.get("date_created_gmt")) or datetime.now(UTC),
            status=raw.get("status") or "",
            currency=raw.get("currency") or "",
            shipping_total=raw.get("shipping_total") or 0,
            shipping_tax_total=raw.get("shipping_tax") or 0,
            fee_total=sum(float(f.total or 0) for f in fee_lines),
            fee_tax_total=sum(float(f.total_tax or 0) for f in fee_lines),
            tax_total=raw.get("total_tax") or 0,
            discount_total=raw.get("discount_total") or 0,
            total=raw.get("total") or 0,
            refunded_total=sum(float(r.amount) for r in refunds),
            payment_method=raw.get("payment_method") or "",
            payment_method_title=raw.get("payment_method_title") or "",
            shipping_method=", ".join(s.name for s in shipping_lines),
            customer_id=int(raw.get("customer_id") or 0),
            customer_note=raw.get("customer_note") or "",
            vat_number=vat_number,
            billing=_parse_address(raw.get("billing")),
            shipping=_parse_address(raw.get("shipping")),
            items=[
                OrderItem(
                    item_id=int(li.get("id") or 0),
                    name=li.get("name") or "",
                    product_id=int(li.get("product_id") or 0),
                    variation_id=int(li.get("variation_id") or 0),
                    sku=li.get("sku") or "",
                    quantity=int(li.get("quantity") or 0),
                    price=li.get("price") or 0,
                    subtotal=li.get("subtotal") or 0,
                    subtotal_tax=li.get("subtotal_tax") or 0,
                    total=li.get("total") or 0,
                    total_tax=li.get("total_tax") or 0,
                    meta=_parse_meta(li.get("meta_data")),
                )
                for li in raw.get("line_items") or []
            ],
            shipping_lines=shipping_lines,
            fee_lines=fee_lines,
            tax_lines=_parse_sub_items(raw.get("tax_lines"), "label"),
            coupon_lines=[
                OrderSubItem(
                    item_id=int(c.get("id") or 0),
                    name=c.get("code") or "",
                    total=c.get("discount") or 0,
                    total_tax=c.get("discount_tax") or 0,
                    meta=_parse_meta(c.get("meta_data")),
                )
                for c in raw.get("coupon_lines") or []
            ],
            refunds=refunds,
            meta=meta,
        )

    def _map_customer(self, raw: dict) -> Customer:
        return Customer(
            customer_id=int(raw["id"]),
            email=raw.get("email") or "",
            username=raw.get("username") or "",
            first_name=raw.get("first_name") or "",
            last_name=raw.get("last_name") or "",
            date_registered=_parse_datetime(raw.get("date_created_gmt")),
            billing=_parse_address(raw.get("billing")),
            shipping=_parse_address(raw.get("shipping")),
            total_spent=raw.get("total_spent"),
            order_count=raw.get("orders_count"),
            meta=_parse_meta(raw.get("meta_data")),
        )

    def _map_product(self, raw: dict) -> Product:
        dimensions = raw.get("dimensions") or {}
        return Product(
            product_id=int(raw["id"]),
            name=raw.get("name") or "",
            sku=raw.get("sku") or "",
            product_type=raw.get("type") or "simple",
            status=raw.get("status") or "",
            price=raw.get("price") or "",
            regular_price=raw.get("regular_price") or "",
            sale_price=raw.get("sale_price") or "",
            description=raw.get("description") or "",
            short_description=raw.get("short_description") or "",
            categories=[c.get("name", "") for c in raw.get("categories") or []],
            tags=[t.get("name", "") for t in raw.get("tags") or []],
            stock_quantity=raw.get("stock_quantity"),
            stock_status=raw.get("stock_status") or "",
            weight=raw.get("weight") or "",
            length=dimensions.get("length") or "",
            width=dimensions.get("width") or "",
            height=dimensions.get("height") or "",
            meta=_parse_meta(raw.get("meta_data")),
        )

    def _map_coupon(self, raw: dict) -> Coupon:
        return Coupon(
            coupon_id=int(raw["id"]),
            code=raw.get("code") or "",
            discount_type=raw.get("discount_type") or "",
            amount=raw.get("amount") or 0,
            description=raw.get("description") or "",
            status=raw.get("status") or "publish",
            date_expires=_parse_datetime(raw.get("date_expires_gmt")),
            usage_count=int(raw.get("usage_count") or 0),
            individual_use=bool(raw.get("individual_use")),
            product_ids=list(raw.get("product_ids") or []),
            excluded_product_ids=list(raw.get("excluded_product_ids") or []),
            product_categories=list(raw.get("product_categories") or []),
            excluded_product_categories=list(raw.get("excluded_product_categories") or []),
            usage_limit=raw.get("usage_limit"),
            usage_limit_per_user=raw.get("usage_limit_per_user"),
            limit_usage_to_x_items=raw.get("limit_usage_to_x_items"),
            free_shipping=bool(raw.get("free_shipping")),
            meta=_parse_meta(raw.get("meta_data")),
        )
