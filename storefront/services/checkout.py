# storefront/services/checkout.py
"""
Quote and place storefront orders.

A quote only reads. Placing an order re-prices everything inside a single
transaction. The coupon and customer rows are locked, the order and its items
(bump offer included) are inserted, the coupon redemption is counted and the
loyalty points are debited. Any failure rolls the whole sequence back.
"""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Tuple

import asyncpg

from ..db import get_pool, queries
from ..errors import CheckoutError, CouponError, EmptyCart, InsufficientPoints, RegionRequired
from ..logger import get_logger
from .coupons import redeem_coupon, validate_coupon
from .orders import _order_row_to_dict
from .pricing import (
    ZERO,
    Coupon,
    PriceBreakdown,
    line_subtotal,
    price_order,
    resolve_shipping,
)
from .stores import PricedLine, Store, load_store, price_lines

logger = get_logger("checkout")


def _order_number() -> str:
    return f"ORD-{str(int(time.time() * 1000))[-6:]}"


async def _loyalty_balance(conn: asyncpg.Connection, store: Store, phone: Optional[str],
                           for_update: bool = False) -> Tuple[Optional[Dict[str, Any]], int]:
    if not phone:
        return None, 0
    customer = await queries.find_customer(conn, store.id, phone, for_update=for_update)
    if not customer:
        return None, 0
    return customer, int(customer.get("loyalty_points") or 0)


async def _price(conn: asyncpg.Connection, store: Store, body, *, shipping,
                 loyalty_points: int, lock_coupon: bool, strict_coupon: bool):
    if not body.lines:
        raise EmptyCart()

    lines = await price_lines(conn, store, [l.model_dump() for l in body.lines])
    subtotal = line_subtotal((l.line_total for l in lines), store.currency)

    coupon: Optional[Coupon] = None
    coupon_error: Optional[CouponError] = None
    if body.coupon_code:
        try:
            coupon = await validate_coupon(conn, store.id, body.coupon_code, subtotal,
                                           for_update=lock_coupon)
        except CouponError as e:
            if strict_coupon:
                raise
            coupon_error = e

    if not (body.redeem_points and store.loyalty_enabled):
        loyalty_points = 0
    bump = store.bump_offer if body.bump_offer else None

    breakdown = price_order(
        subtotal, store.currency,
        coupon=coupon,
        shipping=shipping,
        loyalty_points=loyalty_points,
        redemption_rate=store.redemption_rate,
        bump_offer=bump.price if bump else ZERO,
    )
    return lines, breakdown, coupon, coupon_error, bump


def _line_out(line: PricedLine, language: str) -> Dict[str, Any]:
    return {
        "product_id": line.product_id,
        "name": line.name.text(language),
        "quantity": line.quantity,
        "unit_price": line.unit_price,
        "line_total": line.line_total,
    }


async def quote(store_id: str, body) -> Dict[str, Any]:
    """Price a cart without writing anything. Coupon problems are reported, not raised."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        store = await load_store(conn, store_id)
        region_required = False
        try:
            shipping = resolve_shipping(store.shipping, body.region, store.currency)
        except RegionRequired:
            # the summary shows free shipping until a region is picked
            shipping, region_required = ZERO, True

        _, points = await _loyalty_balance(conn, store, body.phone)
        lines, breakdown, _, coupon_error, bump = await _price(
            conn, store, body, shipping=shipping, loyalty_points=points,
            lock_coupon=False, strict_coupon=False,
        )

    out = _breakdown_dict(breakdown)
    out.update({
        "lines": [_line_out(l, body.language) for l in lines],
        "coupon_error": coupon_error.message if coupon_error else None,
        "coupon_error_code": coupon_error.code if coupon_error else None,
        "region_required": region_required,
        "bump_offer_label": bump.label.text(body.language) if bump else None,
    })
    return out


def _breakdown_dict(b: PriceBreakdown) -> Dict[str, Any]:
    return {
        "currency": b.currency,
        "subtotal": b.subtotal,
        "discount": b.discount,
        "points_discount": b.points_discount,
        "points_redeemed": b.points_redeemed,
        "bump_offer": b.bump_offer,
        "shipping": b.shipping,
        "total": b.total,
        "coupon_code": b.coupon_code,
    }


async def place_order(store_id: str, body) -> Dict[str, Any]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        store = await load_store(conn, store_id)
        # blocks before anything is written
        shipping = resolve_shipping(store.shipping, body.region, store.currency)

        try:
            async with conn.transaction():
                order, items = await _place(conn, store, body, shipping)
        except CheckoutError:
            raise
        except Exception:
            logger.exception("checkout failed for store %s; rolled back", store.id)
            raise

    logger.info(
        "order %s placed for store %s: total=%s %s coupon=%s",
        order["order_number"], store.id, order["total"], store.currency, order.get("coupon_code"),
    )
    return _order_row_to_dict(order, items)


async def _place(conn: asyncpg.Connection, store: Store, body, shipping) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    customer_in = body.customer
    customer, points = await _loyalty_balance(conn, store, customer_in.phone, for_update=True)

    lines, breakdown, coupon, _, bump = await _price(
        conn, store, body, shipping=shipping, loyalty_points=points,
        lock_coupon=True, strict_coupon=True,
    )

    city = body.region if store.shipping.type == "dynamic" else customer_in.city
    address = {
        "city": city,
        "full_address": customer_in.address,
        "region_id": body.region,
        "alt_phone": customer_in.alt_phone,
    }
    if customer:
        customer_id = str(customer["id"])
        await queries.record_customer_order(conn, customer_id, breakdown.total)
    else:
        customer_id = await queries.insert_customer(
            conn, store.id, customer_in.name, customer_in.phone, address, breakdown.total
        )

    order = await queries.insert_order(conn, {
        "store_id": store.id,
        "customer_id": customer_id,
        "order_number": _order_number(),
        "subtotal": breakdown.subtotal,
        "discount_amount": breakdown.discount,
        "points_discount": breakdown.points_discount,
        "shipping_cost": breakdown.shipping,
        "total": breakdown.total,
        "coupon_code": breakdown.coupon_code,
        "currency": store.currency,
        "customer_snapshot": {
            "name": customer_in.name,
            "phone": customer_in.phone,
            "alt_phone": customer_in.alt_phone,
            "city": city,
            "region_id": body.region,
            "address": customer_in.address,
        },
        "shipping_address": {
            "city": city,
            "address": customer_in.address,
            "region_id": body.region,
        },
        "notes": body.notes,
    })
    order_id = str(order["id"])

    items = [l.to_item_row(body.language) for l in lines]
    if bump:
        items.append(bump.to_item_row(body.language))
    await queries.insert_order_items(conn, order_id, items)

    if coupon:
        await redeem_coupon(conn, coupon)

    if breakdown.points_redeemed:
        balance = await queries.insert_loyalty_redemption(
            conn, store.id, customer_id, order_id, order["order_number"], breakdown.points_redeemed
        )
        if balance is None:
            raise InsufficientPoints()

    return order, items
