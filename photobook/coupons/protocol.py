"""
Coupon application protocol.

Owns the coupon slice of the configurator: the code being typed, the
request in flight and the verdict. The discount itself lives on the
draft, so every transition here is mirrored into the DraftStore.

    NONE --apply--> PENDING --valid--> VALID --remove / service or add-on change--> NONE
                            \\-invalid-> INVALID --apply--> PENDING

Each validation request is tagged with a generation number and the
``(code, subtotal)`` it was issued for. A response that arrives after the
code was edited, the coupon was removed, or the subtotal moved is dropped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from photobook.draft.store import DraftStore
from photobook.logging_context import get_session_logger
from photobook.schemas.coupon_schema import CouponVerdict
from photobook.schemas.draft_schema import AppliedCoupon, Draft
from photobook.tools.booking_api import BookingApiError

logger = get_session_logger(__name__)


class CouponState(str, Enum):
    """Lifecycle of the coupon slice."""
    NONE = "none"
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"


class ApplyStatus(str, Enum):
    """Outcome of a single ``apply`` call."""
    APPLIED = "applied"
    INVALID = "invalid"
    EMPTY_CODE = "empty_code"
    ZERO_SUBTOTAL = "zero_subtotal"
    IN_FLIGHT = "in_flight"
    STALE = "stale"
    ERROR = "error"


@dataclass(frozen=True)
class ApplyResult:
    status: ApplyStatus
    message: Optional[str] = None
    discount_amount: int = 0

    @property
    def applied(self) -> bool:
        return self.status == ApplyStatus.APPLIED


class CouponValidator(Protocol):
    async def validate_coupon(self, code: str, total_amount: int) -> CouponVerdict: ...


class CouponApplication:
    """Orchestrates coupon validation round-trips and keeps the draft in sync."""

    def __init__(self, store: DraftStore, validator: CouponValidator) -> None:
        self._store = store
        self._validator = validator
        self._state = CouponState.VALID if store.draft.coupon else CouponState.NONE
        self._code_input = store.draft.coupon_code
        self._error: Optional[str] = None
        self._generation = 0
        self._unsubscribe = store.subscribe(self._on_draft_change)

    @property
    def state(self) -> CouponState:
        return self._state

    @property
    def code_input(self) -> str:
        return self._code_input

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_applying(self) -> bool:
        """True while a validation request is in flight; the apply action should be disabled."""
        return self._state == CouponState.PENDING

    def edit_code(self, code: str) -> None:
        """Record the code as typed. Editing while a check is pending cancels that check."""
        self._code_input = code.upper()
        if self._state == CouponState.PENDING:
            self._generation += 1
            self._state = CouponState.NONE
            logger.debug("Coupon code edited while pending; in-flight verdict will be dropped")

    async def apply(self, code: Optional[str] = None) -> ApplyResult:
        """Validate the typed code against the current subtotal and apply the verdict."""
        if code is not None:
            self.edit_code(code)
        if self._state == CouponState.PENDING:
            return ApplyResult(ApplyStatus.IN_FLIGHT, "A coupon check is already in progress")

        requested = self._code_input.strip()
        if not requested:
            self._error = "Enter a coupon code"
            return ApplyResult(ApplyStatus.EMPTY_CODE, self._error)

        subtotal = self._store.subtotal_for_coupon
        if subtotal <= 0:
            self._error = "Select a service first"
            return ApplyResult(ApplyStatus.ZERO_SUBTOTAL, self._error)

        self._generation += 1
        generation = self._generation
        self._state = CouponState.PENDING
        self._error = None
        logger.info("Validating coupon '%s' against subtotal %d", requested, subtotal)

        try:
            verdict = await self._validator.validate_coupon(requested, subtotal)
        except BookingApiError as e:
            if self._is_stale(generation, requested, subtotal):
                return self._drop_stale(generation, requested)
            logger.warning("Coupon validation for '%s' failed: %s", requested, e)
            self._state = CouponState.INVALID
            self._error = "Could not validate the coupon, please try again"
            return ApplyResult(ApplyStatus.ERROR, self._error)

        if self._is_stale(generation, requested, subtotal):
            return self._drop_stale(generation, requested)

        if not verdict.valid:
            if self._store.draft.coupon is not None:
                self._store.update(coupon=None)
            self._state = CouponState.INVALID
            self._error = verdict.reason or "Invalid coupon code"
            logger.info("Coupon '%s' rejected: %s", requested, self._error)
            return ApplyResult(ApplyStatus.INVALID, self._error)

        canonical = verdict.coupon.code if verdict.coupon else requested
        self._store.update(
            coupon=AppliedCoupon(code=canonical, discount_amount=verdict.discount_amount)
        )
        self._state = CouponState.VALID
        self._code_input = canonical
        logger.info("Coupon '%s' applied: -%d", canonical, verdict.discount_amount)
        return ApplyResult(ApplyStatus.APPLIED, discount_amount=verdict.discount_amount)

    def remove(self) -> None:
        """Drop any applied or pending coupon and clear the draft's discount."""
        self._generation += 1
        self._state = CouponState.NONE
        self._code_input = ""
        self._error = None
        if self._store.draft.coupon is not None:
            self._store.update(coupon=None)
            logger.info("Coupon removed")

    def close(self) -> None:
        self._unsubscribe()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _is_stale(self, generation: int, code: str, subtotal: int) -> bool:
        return (
            generation != self._generation
            or self._code_input.strip() != code
            or self._store.subtotal_for_coupon != subtotal
        )

    def _drop_stale(self, generation: int, code: str) -> ApplyResult:
        if generation == self._generation:
            self._state = CouponState.NONE
        logger.info("Discarding stale coupon verdict for '%s'", code)
        return ApplyResult(ApplyStatus.STALE)

    def _on_draft_change(self, previous: Draft, current: Draft) -> None:
        if self._state == CouponState.VALID and current.coupon is None:
            self._state = CouponState.NONE
            self._code_input = ""
            self._error = None
            logger.info("Applied coupon cleared by a selection change; re-apply required")
