from photobook.coupons.protocol import (
    ApplyResult,
    ApplyStatus,
    CouponApplication,
    CouponState,
)
from photobook.coupons.suggestions import SuggestionPoller

__all__ = [
    "ApplyResult",
    "ApplyStatus",
    "CouponApplication",
    "CouponState",
    "SuggestionPoller",
]
