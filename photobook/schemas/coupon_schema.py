"""Coupon descriptors and validation verdicts."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CouponDescriptor(BaseModel):
    """Coupon as described by the validator and the suggestion lookup."""

    code: str
    discount_type: Literal["percentage", "fixed"]
    discount_value: int
    max_discount: Optional[int] = None
    min_purchase: Optional[int] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    is_active: bool = True
    description: Optional[str] = None


class CouponVerdict(BaseModel):
    """Result of a coupon validation round-trip.

    Either ``valid=False`` with a ``reason``, or ``valid=True`` with the
    canonical ``coupon`` and the ``discount_amount`` computed server-side.
    """

    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    coupon: Optional[CouponDescriptor] = None
    discount_amount: int = 0
    reason: Optional[str] = Field(default=None, alias="error")
