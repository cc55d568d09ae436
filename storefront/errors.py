# storefront/errors.py
"""Checkout failures. Each carries a machine code, a user-facing message and an HTTP status."""
from __future__ import annotations


class CheckoutError(Exception):
    code = "checkout_error"
    status_code = 400
    message = "checkout failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class CouponError(CheckoutError):
    code = "invalid_coupon"


class CouponNotFound(CouponError):
    code = "coupon_not_found"
    message = "Coupon not found or inactive"


class CouponExpired(CouponError):
    code = "coupon_expired"
    message = "Coupon expired"


class CouponUsageExceeded(CouponError):
    code = "coupon_usage_exceeded"
    message = "Coupon usage limit reached"


class BelowMinimumOrder(CouponError):
    code = "below_minimum_order"

    def __init__(self, minimum):
        self.minimum = minimum
        super().__init__(f"Minimum order amount is {minimum}")


class RegionRequired(CheckoutError):
    code = "region_required"
    message = "Please select a region to calculate shipping"


class InvalidAmount(CheckoutError):
    code = "invalid_amount"

    def __init__(self, field: str, value):
        super().__init__(f"{field} must not be negative (got {value})")


class EmptyCart(CheckoutError):
    code = "empty_cart"
    message = "Cart is empty"


class ProductUnavailable(CheckoutError):
    code = "product_unavailable"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"product unavailable: {product_id}")


class InvalidStatus(CheckoutError):
    code = "invalid_status"

    def __init__(self, status: str):
        super().__init__(f"unknown order status: {status}")


class StoreNotFound(CheckoutError):
    code = "store_not_found"
    status_code = 404
    message = "store not found"


class OrderNotFound(CheckoutError):
    code = "order_not_found"
    status_code = 404
    message = "order not found"


class InsufficientPoints(CheckoutError):
    code = "insufficient_points"
    message = "Loyalty balance changed, please review your order"
