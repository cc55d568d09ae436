# storefront/services/coupons.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

import asyncpg

from ..db import get_pool, queries
from ..errors import CouponError, CouponUsageExceeded
from ..logger import get_logger
from .pricing import Coupon, check_coupon, compute_discount, normalize_code, quantize_money
from .stores import load_store

logger = get_logger("coupons")


async def find_coupon(conn: asyncpg.Connection, store_id: str, code: str,
                      for_update: bool = False) -> Optional[Coupon]:
    code = normalize_code(code)
    if not code:
        return None
    row = await queries.fetch_coupon(conn, store_id, code, for_update=for_update)
    return Coupon.from_row(row) if row else None


async def validate_coupon(conn: asyncpg.Connection, store_id: str, code: str,
                          subtotal: Decimal, *, for_update: bool = False,
                          now: Optional[datetime] = None) -> Coupon:
    """Fetch the active coupon for (store, code) and check it against the subtotal."""
    coupon = await find_coupon(conn, store_id, code, for_update=for_update)
    try:
        return check_coupon(coupon, subtotal, now=now)
    except CouponError as e:
        logger.info("coupon %r rejected for store %s: %s", normalize_code(code), store_id, e.code)
        raise


async def redeem_coupon(conn: asyncpg.Connection, coupon: Coupon) -> int:
    """Count one redemption. Must run in the transaction that created the order."""
    used = await queries.increment_coupon_usage(conn, coupon.id)
    if used is None:
        raise CouponUsageExceeded()
    return used


async def check_code(store_id: str, code: str, subtotal: Decimal) -> Dict[str, Any]:
    """Standalone validation used before the cart is submitted."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        store = await load_store(conn, store_id)
        subtotal = quantize_money(subtotal, store.currency)
        coupon = await validate_coupon(conn, store_id, code, subtotal)

    discount = compute_discount(coupon, subtotal, store.currency)
    return {
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount": discount,
        "currency": store.currency,
    }
