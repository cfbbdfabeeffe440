from photobook.schemas.booking_schema import (
    BookingPayload,
    BookingResponse,
    HandoffSettings,
    PaymentSettings,
)
from photobook.schemas.catalog_schema import Addon, Service
from photobook.schemas.coupon_schema import CouponDescriptor, CouponVerdict
from photobook.schemas.draft_schema import (
    AddonSelection,
    AppliedCoupon,
    Draft,
    PriceBreakdown,
    ProofFile,
    ServiceSnapshot,
    StepError,
)

__all__ = [
    "Addon",
    "AddonSelection",
    "AppliedCoupon",
    "BookingPayload",
    "BookingResponse",
    "CouponDescriptor",
    "CouponVerdict",
    "Draft",
    "HandoffSettings",
    "PaymentSettings",
    "PriceBreakdown",
    "ProofFile",
    "Service",
    "ServiceSnapshot",
    "StepError",
]
