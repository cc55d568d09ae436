# storefront/schemas/orders.py
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class OrderItemOut(BaseModel):
    product_id: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product_snapshot: Optional[Dict[str, Any]] = None


class AmountsOut(BaseModel):
    subtotal: Decimal
    discount: Decimal
    points_discount: Decimal
    shipping: Decimal
    total: Decimal
    currency: str


class OrderOut(BaseModel):
    id: str
    order_number: Optional[str] = None
    store_id: str
    customer_id: Optional[str] = None
    status: str
    amounts: AmountsOut
    coupon_code: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    items: Optional[List[OrderItemOut]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class StatusIn(BaseModel):
    status: str
