# storefront/services/stores.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

import asyncpg

from ..db import queries
from ..errors import ProductUnavailable, StoreNotFound
from ..settings import settings
from .pricing import ZERO, ShippingConfig, lenient_amount, quantize_money, to_decimal

PRIMARY_LANG = "ar"
SECONDARY_LANG = "en"


@dataclass(frozen=True)
class LocalizedText:
    primary: str
    secondary: Optional[str] = None

    @classmethod
    def decode(cls, value: Any) -> "LocalizedText":
        """
        Accepts {"ar": .., "en": ..}, the same object JSON-encoded in a string,
        or a plain string.
        """
        if value is None:
            return cls("")
        if isinstance(value, str):
            s = value.strip()
            if s.startswith("{"):
                try:
                    value = json.loads(s)
                except json.JSONDecodeError:
                    return cls(value)
            else:
                return cls(value)
        if isinstance(value, dict):
            primary = value.get(PRIMARY_LANG) or ""
            secondary = value.get(SECONDARY_LANG) or None
            return cls(primary or secondary or "", secondary)
        return cls(str(value))

    def text(self, language: str = PRIMARY_LANG) -> str:
        if language == SECONDARY_LANG and self.secondary:
            return self.secondary
        return self.primary

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {PRIMARY_LANG: self.primary, SECONDARY_LANG: self.secondary}


@dataclass(frozen=True)
class BumpOffer:
    """One-time add-on offered at checkout, priced from the store settings only."""
    price: Decimal
    label: LocalizedText

    @classmethod
    def from_store_settings(cls, store_settings: Dict[str, Any], currency: str) -> Optional["BumpOffer"]:
        raw = store_settings.get("bump_offer") or {}
        if not isinstance(raw, dict) or not raw.get("enabled"):
            return None
        return cls(
            price=quantize_money(max(ZERO, lenient_amount(raw.get("price"))), currency),
            label=LocalizedText.decode(raw.get("label") or raw.get("product_name")),
        )

    def to_item_row(self, language: str) -> Dict[str, Any]:
        return {
            "product_id": None,
            "quantity": 1,
            "unit_price": self.price,
            "total_price": self.price,
            "product_snapshot": {
                "name": self.label.text(language),
                "variants": [],
                "bump_offer": True,
            },
        }


@dataclass
class Store:
    id: str
    currency: str
    shipping: ShippingConfig
    loyalty_enabled: bool = False
    redemption_rate: int = 100
    bump_offer: Optional[BumpOffer] = None
    name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Store":
        store_settings = row.get("settings") or {}
        if isinstance(store_settings, str):
            store_settings = json.loads(store_settings)
        rate = store_settings.get("loyalty_redemption_rate") or settings.loyalty_redemption_rate
        currency = (row.get("currency") or settings.default_currency).upper()
        return cls(
            id=str(row["id"]),
            currency=currency,
            shipping=ShippingConfig.from_store_settings(store_settings),
            loyalty_enabled=bool(store_settings.get("loyalty_program_enabled", False)),
            redemption_rate=int(rate),
            bump_offer=BumpOffer.from_store_settings(store_settings, currency),
            name=row.get("name"),
        )


async def load_store(conn: asyncpg.Connection, store_id: str) -> Store:
    row = await queries.fetch_store(conn, store_id)
    if not row:
        raise StoreNotFound()
    return Store.from_row(row)


# --- line pricing -------------------------------------------------------------
@dataclass
class PricedLine:
    product_id: str
    name: LocalizedText
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    variants: List[Dict[str, Any]] = field(default_factory=list)

    def to_item_row(self, language: str) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.line_total,
            "product_snapshot": {
                "name": self.name.text(language),
                "variants": [
                    {
                        "option_id": v["option_id"],
                        "variantName": v["variant_name"].text(language),
                        "optionLabel": v["option_label"].text(language),
                        "price_modifier": str(v["price_modifier"]),
                    }
                    for v in self.variants
                ],
            },
        }


async def price_lines(conn: asyncpg.Connection, store: Store,
                      lines: List[Dict[str, Any]]) -> List[PricedLine]:
    """
    Price cart lines from the catalog: product price plus the selected
    options' modifiers. Client-side prices are never trusted.
    """
    products = await queries.fetch_products(conn, store.id, [l["product_id"] for l in lines])
    option_ids = [oid for l in lines for oid in (l.get("option_ids") or [])]
    options = await queries.fetch_variant_options(conn, option_ids)

    # stock is per product, however the cart splits it into lines
    wanted: Dict[str, int] = {}
    for l in lines:
        wanted[l["product_id"]] = wanted.get(l["product_id"], 0) + int(l["quantity"])

    priced: List[PricedLine] = []
    for l in lines:
        pid = l["product_id"]
        product = products.get(pid)
        if not product or product.get("status", "active") != "active":
            raise ProductUnavailable(pid)
        qty = int(l["quantity"])
        if product.get("track_inventory") and (product.get("stock_quantity") or 0) < wanted[pid]:
            raise ProductUnavailable(pid)

        unit = to_decimal(product["price"])
        variants = []
        for oid in l.get("option_ids") or []:
            opt = options.get(oid)
            if not opt or str(opt["product_id"]) != pid:
                raise ProductUnavailable(pid)
            modifier = to_decimal(opt.get("price_modifier"))
            unit += modifier
            variants.append({
                "option_id": oid,
                "variant_name": LocalizedText.decode(opt.get("variant_name")),
                "option_label": LocalizedText.decode(opt.get("label")),
                "price_modifier": modifier,
            })

        unit = quantize_money(unit, store.currency)
        priced.append(PricedLine(
            product_id=pid,
            name=LocalizedText.decode(product.get("name")),
            unit_price=unit,
            quantity=qty,
            line_total=quantize_money(unit * qty, store.currency),
            variants=variants,
        ))
    return priced
