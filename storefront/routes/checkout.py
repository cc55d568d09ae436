# storefront/routes/checkout.py
from __future__ import annotations
from fastapi import APIRouter

from ..schemas.checkout import CheckoutIn, CouponCheckIn, CouponCheckOut, QuoteIn, QuoteOut
from ..schemas.orders import OrderOut
from ..services.checkout import place_order, quote
from ..services.coupons import check_code


router = APIRouter(prefix="/stores/{store_id}", tags=["checkout"])


@router.post("/coupons/validate", response_model=CouponCheckOut)
async def validate_coupon_endpoint(store_id: str, body: CouponCheckIn):
    """
    Check a code against the current subtotal. Coupon errors come back as
    400 with a specific message; the cart can still be checked out without it.
    """
    return await check_code(store_id, body.code, body.subtotal)


@router.post("/checkout/quote", response_model=QuoteOut)
async def quote_endpoint(store_id: str, body: QuoteIn):
    return await quote(store_id, body)


@router.post("/checkout", response_model=OrderOut, status_code=201)
async def checkout_endpoint(store_id: str, body: CheckoutIn):
    return await place_order(store_id, body)
