"""SQL for stores, catalog, coupons, customers and orders.

Every function takes an open connection so callers decide the transaction
boundary.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import asyncpg


# --- stores & catalog ---------------------------------------------------------
async def fetch_store(conn: asyncpg.Connection, store_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "SELECT id, name, slug, currency, settings, status FROM stores WHERE id::text = $1",
        store_id,
    )
    return dict(row) if row else None


async def fetch_products(
    conn: asyncpg.Connection, store_id: str, product_ids: Sequence[str]
) -> Dict[str, Dict[str, Any]]:
    """Load products by id, keyed by id. Products of other stores are never returned."""
    if not product_ids:
        return {}
    rows = await conn.fetch(
        """
        SELECT id, name, price, status, stock_quantity, track_inventory
        FROM products
        WHERE store_id::text = $1 AND id::text = ANY($2::text[])
        """,
        store_id,
        list(product_ids),
    )
    return {str(r["id"]): dict(r) for r in rows}


async def fetch_variant_options(
    conn: asyncpg.Connection, option_ids: Sequence[str]
) -> Dict[str, Dict[str, Any]]:
    if not option_ids:
        return {}
    rows = await conn.fetch(
        """
        SELECT o.id, o.label, o.price_modifier, v.product_id, v.name AS variant_name
        FROM variant_options o
        JOIN product_variants v ON v.id = o.variant_id
        WHERE o.id::text = ANY($1::text[])
        """,
        list(option_ids),
    )
    return {str(r["id"]): dict(r) for r in rows}


# --- coupons ------------------------------------------------------------------
async def fetch_coupon(
    conn: asyncpg.Connection, store_id: str, code: str, for_update: bool = False
) -> Optional[Dict[str, Any]]:
    sql = """
        SELECT * FROM coupons
        WHERE store_id::text = $1 AND upper(code) = $2 AND is_active = true
    """
    if for_update:
        sql += " FOR UPDATE"
    row = await conn.fetchrow(sql, store_id, code)
    return dict(row) if row else None


async def increment_coupon_usage(conn: asyncpg.Connection, coupon_id: str) -> Optional[int]:
    """Count one redemption unless the cap is already reached. Returns the new count or None."""
    return await conn.fetchval(
        """
        UPDATE coupons
        SET used_count = used_count + 1, updated_at = NOW()
        WHERE id::text = $1
          AND (usage_limit IS NULL OR usage_limit = 0 OR used_count < usage_limit)
        RETURNING used_count
        """,
        coupon_id,
    )


# --- customers ----------------------------------------------------------------
async def find_customer(
    conn: asyncpg.Connection, store_id: str, phone: str, for_update: bool = False
) -> Optional[Dict[str, Any]]:
    sql = """
        SELECT id, name, phone, loyalty_points, total_orders, total_spent
        FROM customers
        WHERE store_id::text = $1 AND phone = $2
        LIMIT 1
    """
    if for_update:
        sql += " FOR UPDATE"
    row = await conn.fetchrow(sql, store_id, phone)
    return dict(row) if row else None


async def insert_customer(
    conn: asyncpg.Connection, store_id: str, name: str, phone: str,
    address: Dict[str, Any], total_spent,
) -> str:
    customer_id = await conn.fetchval(
        """
        INSERT INTO customers (store_id, name, phone, address, total_orders, total_spent)
        VALUES ($1::uuid, $2, $3, $4::jsonb, 1, $5)
        RETURNING id
        """,
        store_id, name, phone, address, total_spent,
    )
    return str(customer_id)


async def record_customer_order(conn: asyncpg.Connection, customer_id: str, total) -> None:
    await conn.execute(
        """
        UPDATE customers
        SET total_orders = COALESCE(total_orders, 0) + 1,
            total_spent  = COALESCE(total_spent, 0) + $2
        WHERE id::text = $1
        """,
        customer_id,
        total,
    )


async def insert_loyalty_redemption(
    conn: asyncpg.Connection, store_id: str, customer_id: str, order_id: str,
    order_number: str, points: int,
) -> Optional[int]:
    """Debit points unless the balance no longer covers them. Returns the new balance or None."""
    balance = await conn.fetchval(
        """
        UPDATE customers
        SET loyalty_points = loyalty_points - $2
        WHERE id::text = $1 AND loyalty_points >= $2
        RETURNING loyalty_points
        """,
        customer_id,
        points,
    )
    if balance is None:
        return None
    await conn.execute(
        """
        INSERT INTO loyalty_transactions (store_id, customer_id, order_id, points, type, description)
        VALUES ($1::uuid, $2::uuid, $3::uuid, $4, 'redeem', $5)
        """,
        store_id, customer_id, order_id, -points,
        f"Redeemed for Order #{order_number}",
    )
    return balance


# --- orders -------------------------------------------------------------------
async def insert_order(conn: asyncpg.Connection, order: Dict[str, Any]) -> Dict[str, Any]:
    row = await conn.fetchrow(
        """
        INSERT INTO orders (store_id, customer_id, order_number, status, subtotal,
                            discount_amount, points_discount, shipping_cost, total,
                            coupon_code, currency, customer_snapshot, shipping_address, notes)
        VALUES ($1::uuid, $2::uuid, $3, 'pending', $4, $5, $6, $7, $8, $9, $10,
                $11::jsonb, $12::jsonb, $13)
        RETURNING *
        """,
        order["store_id"],
        order["customer_id"],
        order["order_number"],
        order["subtotal"],
        order["discount_amount"],
        order["points_discount"],
        order["shipping_cost"],
        order["total"],
        order["coupon_code"],
        order["currency"],
        order["customer_snapshot"],
        order["shipping_address"],
        order.get("notes"),
    )
    return dict(row)


async def insert_order_items(
    conn: asyncpg.Connection, order_id: str, items: List[Dict[str, Any]]
) -> None:
    await conn.executemany(
        """
        INSERT INTO order_items (order_id, product_id, quantity, unit_price, total_price,
                                 product_snapshot)
        VALUES ($1::uuid, $2::uuid, $3, $4, $5, $6::jsonb)
        """,
        [
            (order_id, it["product_id"], it["quantity"], it["unit_price"],
             it["total_price"], it["product_snapshot"])
            for it in items
        ],
    )


async def fetch_order(conn: asyncpg.Connection, order_id: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow("SELECT * FROM orders WHERE id::text = $1", order_id)
    return dict(row) if row else None


async def fetch_order_items(conn: asyncpg.Connection, order_id: str) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM order_items WHERE order_id::text = $1 ORDER BY id", order_id
    )
    return [dict(r) for r in rows]


async def list_orders(
    conn: asyncpg.Connection, store_id: str, status: Optional[str] = None, limit: int = 200
) -> List[Dict[str, Any]]:
    if status:
        rows = await conn.fetch(
            """
            SELECT * FROM orders WHERE store_id::text = $1 AND status = $2
            ORDER BY created_at DESC LIMIT $3
            """,
            store_id, status, limit,
        )
    else:
        rows = await conn.fetch(
            "SELECT * FROM orders WHERE store_id::text = $1 ORDER BY created_at DESC LIMIT $2",
            store_id, limit,
        )
    return [dict(r) for r in rows]


async def update_order_status(
    conn: asyncpg.Connection, order_id: str, status: str
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        "UPDATE orders SET status = $2, updated_at = NOW() WHERE id::text = $1 RETURNING *",
        order_id,
        status,
    )
    return dict(row) if row else None
