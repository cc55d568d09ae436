# storefront/routes/orders.py
from __future__ import annotations
from typing import List, Optional
from fastapi import APIRouter, Query

from ..schemas.orders import OrderOut, StatusIn
from ..services.orders import get_order, list_orders, update_status


router = APIRouter(tags=["orders"])


@router.get("/stores/{store_id}/orders", response_model=List[OrderOut])
async def list_orders_endpoint(
    store_id: str,
    status: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=500),
):
    """Recent orders for the store dashboard, newest first."""
    return await list_orders(store_id, status=status, limit=limit)


@router.get("/orders/{order_id}", response_model=OrderOut)
async def get_order_endpoint(order_id: str):
    return await get_order(order_id)


@router.patch("/orders/{order_id}/status", response_model=OrderOut)
async def update_status_endpoint(order_id: str, body: StatusIn):
    return await update_status(order_id, body.status)
