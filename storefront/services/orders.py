# storefront/services/orders.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..db import get_pool, queries
from ..errors import InvalidStatus, OrderNotFound
from ..logger import get_logger

logger = get_logger("orders")

# operators move orders by hand; any change between these is allowed
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


def _iso(ts) -> Optional[str]:
    return ts.isoformat() if ts else None


def _order_row_to_dict(row: Dict[str, Any], items: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Convert a flat Postgres order row into the nested shape routes expect."""
    out = {
        "id": str(row["id"]),
        "order_number": row.get("order_number"),
        "store_id": str(row["store_id"]),
        "customer_id": str(row["customer_id"]) if row.get("customer_id") else None,
        "status": row["status"],
        "amounts": {
            "subtotal": row["subtotal"],
            "discount": row.get("discount_amount") or 0,
            "points_discount": row.get("points_discount") or 0,
            "shipping": row.get("shipping_cost") or 0,
            "total": row["total"],
            "currency": row["currency"],
        },
        "coupon_code": row.get("coupon_code"),
        "shipping_address": row.get("shipping_address"),
        "notes": row.get("notes"),
        "created_at": _iso(row.get("created_at")),
        "updated_at": _iso(row.get("updated_at")),
    }
    if items is not None:
        out["items"] = [
            {
                "product_id": str(it["product_id"]) if it.get("product_id") else None,
                "quantity": it["quantity"],
                "unit_price": it["unit_price"],
                "total_price": it["total_price"],
                "product_snapshot": it.get("product_snapshot"),
            }
            for it in items
        ]
    return out


async def get_order(order_id: str) -> Dict[str, Any]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await queries.fetch_order(conn, order_id)
        if not row:
            raise OrderNotFound()
        items = await queries.fetch_order_items(conn, order_id)
    return _order_row_to_dict(row, items)


async def list_orders(store_id: str, status: Optional[str] = None, limit: int = 200) -> List[Dict[str, Any]]:
    if status is not None and status not in ORDER_STATUSES:
        raise InvalidStatus(status)
    pool = await get_pool()
    async with pool.acquire() as conn:
        rows = await queries.list_orders(conn, store_id, status=status, limit=limit)
    return [_order_row_to_dict(r) for r in rows]


async def update_status(order_id: str, status: str) -> Dict[str, Any]:
    if status not in ORDER_STATUSES:
        raise InvalidStatus(status)
    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await queries.update_order_status(conn, order_id, status)
    if not row:
        raise OrderNotFound()
    logger.info("order %s -> %s", row.get("order_number") or order_id, status)
    return _order_row_to_dict(row)
