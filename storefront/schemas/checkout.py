# storefront/schemas/checkout.py
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class CartLineIn(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    option_ids: List[str] = Field(default_factory=list)


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=3, max_length=32)
    alt_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None


class QuoteIn(BaseModel):
    lines: List[CartLineIn]
    coupon_code: Optional[str] = None
    region: Optional[str] = None
    phone: Optional[str] = None          # looks up the loyalty balance
    redeem_points: bool = False
    bump_offer: bool = False             # add the store's one-time offer
    language: Literal["ar", "en"] = "ar"


class CheckoutIn(QuoteIn):
    customer: CustomerIn
    notes: Optional[str] = Field(None, max_length=2000)


class CouponCheckIn(BaseModel):
    code: str = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0)


class CouponCheckOut(BaseModel):
    code: str
    discount_type: Optional[str] = None
    discount: Decimal = Decimal("0")
    currency: Optional[str] = None


class LineOut(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class QuoteOut(BaseModel):
    currency: str
    lines: List[LineOut]
    subtotal: Decimal
    discount: Decimal
    points_discount: Decimal
    points_redeemed: int
    bump_offer: Decimal = Decimal("0")
    bump_offer_label: Optional[str] = None
    shipping: Decimal
    total: Decimal
    coupon_code: Optional[str] = None
    coupon_error: Optional[str] = None
    coupon_error_code: Optional[str] = None
    region_required: bool = False
