"""
Pricing calculator: turns a service, add-on selections and a coupon into totals.

Every function is pure and never raises. Missing inputs (no service yet,
no coupon) contribute zero, so the calculator can run on a half-filled
draft at any point in the flow.

Order of application:
    base price - base discount + add-ons   -> subtotal sent to the coupon validator
    subtotal - coupon discount, floored at 0 -> total price
"""

import re
from typing import Iterable, Optional, Union

from photobook.schemas.coupon_schema import CouponVerdict
from photobook.schemas.draft_schema import (
    AddonSelection,
    AppliedCoupon,
    PriceBreakdown,
    ServiceSnapshot,
)

CouponInput = Union[CouponVerdict, AppliedCoupon, None]


def base_price(service: Optional[ServiceSnapshot]) -> int:
    return service.base_price if service else 0


def base_discount(service: Optional[ServiceSnapshot]) -> int:
    return service.discount_value if service else 0


def addons_total(selections: Iterable[AddonSelection]) -> int:
    return sum(s.price_at_booking * s.quantity for s in selections)


def coupon_discount(coupon: CouponInput) -> int:
    """Discount carried by an applied coupon or a valid verdict, else 0."""
    if coupon is None:
        return 0
    if isinstance(coupon, CouponVerdict) and not coupon.valid:
        return 0
    return max(0, coupon.discount_amount)


def subtotal_for_coupon(
    service: Optional[ServiceSnapshot], selections: Iterable[AddonSelection]
) -> int:
    """Amount a coupon discounts against: after the base discount, before the coupon."""
    return base_price(service) - base_discount(service) + addons_total(selections)


def total(
    service: Optional[ServiceSnapshot],
    selections: Iterable[AddonSelection],
    coupon: CouponInput = None,
) -> int:
    """Final price. A coupon can never push the order below zero."""
    return max(0, subtotal_for_coupon(service, selections) - coupon_discount(coupon))


def remaining_balance(total_price: int, dp_amount: int) -> int:
    """Balance left after the down payment. Negative means overpayment and is kept as-is."""
    return total_price - dp_amount


def breakdown(
    service: Optional[ServiceSnapshot],
    selections: Iterable[AddonSelection],
    coupon: CouponInput = None,
) -> PriceBreakdown:
    """Compute every derived total in one pass."""
    selections = list(selections)
    return PriceBreakdown(
        service_base_price=base_price(service),
        base_discount=base_discount(service),
        addons_total=addons_total(selections),
        coupon_discount=coupon_discount(coupon),
        total_price=total(service, selections, coupon),
    )


def parse_amount(text: Union[str, int, None]) -> Optional[int]:
    """Parse a typed amount such as '150000', '150.000' or '1,500,000'.

    Dots and commas are only accepted as thousands separators; anything with
    a fractional part ('10000.50') is not a whole amount and returns None.
    """
    if text is None:
        return None
    if isinstance(text, int):
        return text
    cleaned = text.strip().replace(" ", "")
    if not cleaned:
        return None
    sign = -1 if cleaned.startswith("-") else 1
    groups = re.split(r"[.,]", cleaned.lstrip("+-"))
    if not all(g.isascii() and g.isdigit() for g in groups):
        return None
    if len(groups) > 1 and (len(groups[0]) > 3 or any(len(g) != 3 for g in groups[1:])):
        return None
    return sign * int("".join(groups))
