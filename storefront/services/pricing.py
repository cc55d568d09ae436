# storefront/services/pricing.py
"""
Checkout arithmetic: coupon eligibility, discount, shipping and totals.

Everything here is pure. Amounts are Decimals rounded half-up to the minor
unit of the currency passed in by the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Literal, Mapping, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..errors import (
    BelowMinimumOrder,
    CouponExpired,
    CouponNotFound,
    CouponUsageExceeded,
    InvalidAmount,
    RegionRequired,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# ISO 4217 exponents that differ from the usual two digits
_MINOR_DIGITS = {
    "JPY": 0, "KRW": 0, "VND": 0, "CLP": 0, "ISK": 0, "UGX": 0,
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
}


def minor_digits(currency: Optional[str]) -> int:
    return _MINOR_DIGITS.get((currency or "").upper(), 2)


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")


def quantize_money(amount: Any, currency: Optional[str]) -> Decimal:
    exp = Decimal(1).scaleb(-minor_digits(currency))
    return to_decimal(amount).quantize(exp, rounding=ROUND_HALF_UP)


def _require_non_negative(**amounts: Decimal) -> None:
    for name, value in amounts.items():
        if value < 0:
            raise InvalidAmount(name, value)


# --- Coupons ------------------------------------------------------------------
@dataclass
class Coupon:
    id: str
    store_id: str
    code: str
    discount_type: str                      # percentage | fixed
    discount_value: Decimal
    min_order_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    expires_at: Optional[datetime] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Coupon":
        """Build from a `coupons` row. Older rows use max_uses/times_used/min_purchase."""
        r = dict(row)
        minimum = r.get("min_order_amount", r.get("min_purchase"))
        limit = r.get("usage_limit", r.get("max_uses"))
        return cls(
            id=str(r["id"]),
            store_id=str(r["store_id"]),
            code=r["code"],
            discount_type=r.get("discount_type") or "fixed",
            discount_value=to_decimal(r.get("discount_value")),
            min_order_amount=None if minimum is None else to_decimal(minimum),
            usage_limit=None if limit is None else int(limit),
            used_count=int(r.get("used_count", r.get("times_used")) or 0),
            expires_at=r.get("expires_at"),
            is_active=bool(r.get("is_active", True)),
        )


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def check_coupon(coupon: Optional[Coupon], subtotal: Decimal,
                 now: Optional[datetime] = None) -> Coupon:
    """
    Apply the eligibility rules in order: exists and active, not expired,
    usage cap, minimum order. A zero or missing limit/minimum is not enforced.
    Returns the coupon untouched.
    """
    if coupon is None or not coupon.is_active:
        raise CouponNotFound()

    now = now or datetime.now(timezone.utc)
    expires_at = coupon.expires_at
    if expires_at is not None:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at < now:
            raise CouponExpired()

    if coupon.usage_limit and coupon.used_count >= coupon.usage_limit:
        raise CouponUsageExceeded()

    if coupon.min_order_amount and subtotal < coupon.min_order_amount:
        raise BelowMinimumOrder(coupon.min_order_amount)

    return coupon


def compute_discount(coupon: Coupon, subtotal: Decimal, currency: Optional[str]) -> Decimal:
    subtotal = to_decimal(subtotal)
    _require_non_negative(subtotal=subtotal)

    if coupon.discount_type == "percentage":
        raw = subtotal * coupon.discount_value / HUNDRED
    else:
        raw = coupon.discount_value

    discount = quantize_money(raw, currency)
    return max(ZERO, min(discount, subtotal))


# --- Shipping -----------------------------------------------------------------
class ShippingConfig(BaseModel):
    type: Literal["fixed", "dynamic"] = "fixed"
    fixed_price: Decimal = ZERO
    region_prices: Dict[str, Decimal] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("region_prices", "governorate_prices"),
    )

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_type_is_fixed(cls, v):
        return v if v in ("fixed", "dynamic") else "fixed"

    @field_validator("fixed_price", mode="before")
    @classmethod
    def _lenient_price(cls, v):
        return lenient_amount(v)

    @field_validator("region_prices", mode="before")
    @classmethod
    def _lenient_prices(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): lenient_amount(p) for k, p in v.items()}

    @classmethod
    def from_store_settings(cls, store_settings: Optional[Mapping[str, Any]]) -> "ShippingConfig":
        raw = (store_settings or {}).get("shipping") or {}
        return cls.model_validate(raw)


def lenient_amount(v: Any) -> Decimal:
    # store owners type these by hand; garbage counts as 0
    try:
        return to_decimal(v)
    except ValueError:
        return ZERO


def resolve_shipping(config: ShippingConfig, region: Optional[str],
                     currency: Optional[str]) -> Decimal:
    if config.type == "fixed":
        return quantize_money(config.fixed_price, currency)
    if not region:
        raise RegionRequired()
    return quantize_money(config.region_prices.get(region, ZERO), currency)


# --- Totals -------------------------------------------------------------------
def compose_total(subtotal: Decimal, discount: Decimal, shipping: Decimal,
                  currency: Optional[str] = None) -> Decimal:
    subtotal, discount, shipping = (to_decimal(subtotal), to_decimal(discount),
                                    to_decimal(shipping))
    _require_non_negative(subtotal=subtotal, discount=discount, shipping=shipping)
    total = max(ZERO, subtotal - discount + shipping)
    return quantize_money(total, currency) if currency else total


def compute_points_discount(points: int, rate: int, subtotal: Decimal, discount: Decimal,
                            currency: Optional[str]) -> Tuple[Decimal, int]:
    """Value of a loyalty balance, capped at what the coupon left of the subtotal.

    The discount is floored to the minor unit, so ``points_discount * rate <= points_used``.
    """
    if points <= 0 or rate <= 0:
        return ZERO, 0
    room = max(ZERO, to_decimal(subtotal) - to_decimal(discount))
    usable = min(points, int((room * rate).to_integral_value(rounding=ROUND_FLOOR)))
    exp = Decimal(1).scaleb(-minor_digits(currency))
    points_discount = (Decimal(usable) / Decimal(rate)).quantize(exp, rounding=ROUND_FLOOR)
    if points_discount <= 0:
        return ZERO, 0
    # charge only the points the floored discount is worth
    points_used = int((points_discount * rate).to_integral_value(rounding=ROUND_CEILING))
    return points_discount, points_used


def line_subtotal(line_totals: Iterable[Decimal], currency: Optional[str]) -> Decimal:
    return quantize_money(sum((to_decimal(t) for t in line_totals), ZERO), currency)


@dataclass
class PriceBreakdown:
    currency: str
    subtotal: Decimal
    discount: Decimal = ZERO
    points_discount: Decimal = ZERO
    points_redeemed: int = 0
    bump_offer: Decimal = ZERO
    shipping: Decimal = ZERO
    total: Decimal = ZERO
    coupon_code: Optional[str] = None


def price_order(subtotal: Decimal, currency: str, *,
                coupon: Optional[Coupon] = None,
                shipping: Decimal = ZERO,
                loyalty_points: int = 0,
                redemption_rate: int = 100,
                bump_offer: Decimal = ZERO) -> PriceBreakdown:
    """
    Combine an already-validated coupon, shipping, loyalty points and a bump
    offer into totals.

    The coupon and points apply to the cart subtotal only. The bump offer is
    added to the reported subtotal afterwards, so it is never discounted.
    """
    cart = quantize_money(subtotal, currency)
    bump_offer = quantize_money(bump_offer, currency)
    _require_non_negative(bump_offer=bump_offer)
    discount = compute_discount(coupon, cart, currency) if coupon else ZERO
    points_discount, points_used = compute_points_discount(
        loyalty_points, redemption_rate, cart, discount, currency
    )
    subtotal = cart + bump_offer
    total = compose_total(subtotal, discount + points_discount, shipping, currency)
    return PriceBreakdown(
        currency=currency,
        subtotal=subtotal,
        discount=discount,
        points_discount=points_discount,
        points_redeemed=points_used,
        bump_offer=bump_offer,
        shipping=quantize_money(shipping, currency),
        total=total,
        coupon_code=coupon.code if coupon else None,
    )
