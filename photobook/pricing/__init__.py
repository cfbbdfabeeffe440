from photobook.pricing.calculator import (
    addons_total,
    base_discount,
    base_price,
    breakdown,
    coupon_discount,
    parse_amount,
    remaining_balance,
    subtotal_for_coupon,
    total,
)

__all__ = [
    "addons_total",
    "base_discount",
    "base_price",
    "breakdown",
    "coupon_discount",
    "parse_amount",
    "remaining_balance",
    "subtotal_for_coupon",
    "total",
]
