"""
Submission pipeline: turns a completed draft into a booking.

1. Validate the last step of the flow.
2. Assemble the booking payload (customer, booking, finance, add-ons).
3. POST it as multipart with the proof-of-payment file.
4. Only after a confirmed success: reset the draft and flow, then render
   the hand-off message and its WhatsApp link.

Any failure before step 4 leaves the draft untouched, so a retry is safe.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Protocol
from zoneinfo import ZoneInfo

from photobook.config import HandoffConfig, PricingConfig, settings
from photobook.draft.store import DraftStore
from photobook.flow.state_machine import StepStateMachine
from photobook.flow.validators import is_outdoor
from photobook.logging_context import get_session_logger
from photobook.pricing.calculator import parse_amount
from photobook.schemas.booking_schema import (
    AddonLine,
    BookingBlock,
    BookingPayload,
    BookingResponse,
    CustomerBlock,
    FinanceBlock,
    HandoffSettings,
    PaymentRecord,
)
from photobook.schemas.draft_schema import Draft, ProofFile, StepError
from photobook.submission.handoff import (
    build_handoff_variables,
    build_whatsapp_link,
    render_handoff_message,
)
from photobook.tools.booking_api import BookingApiError

logger = get_session_logger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong while submitting the booking. Please try again."


class SubmissionError(Exception):
    """User-facing submission failure. The draft is left as it was."""

    def __init__(
        self,
        message: str,
        errors: Optional[list[StepError]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.status_code = status_code


@dataclass(frozen=True)
class SubmissionResult:
    booking_id: str
    message: str
    whatsapp_link: Optional[str]
    booking: BookingResponse


class BookingCreator(Protocol):
    async def create_booking(
        self, payload: BookingPayload, proof: Optional[ProofFile] = None
    ) -> BookingResponse: ...


def _padded_time(value: str) -> str:
    """'9:30' -> '09:30'; anything not shaped like H:MM is passed through stripped."""
    hours, sep, minutes = value.strip().partition(":")
    if sep and len(hours) == 1 and hours.isdigit():
        return f"0{hours}:{minutes}"
    return value.strip()


def build_payload(
    draft: Draft, today: date, pricing: PricingConfig = settings.pricing
) -> BookingPayload:
    """Serialize a draft into the booking-creation contract."""
    service_id = draft.service.id if draft.service else ""
    totals = draft.totals
    addons = [
        AddonLine(
            addon_id=a.addon_id,
            addon_name=a.name,
            quantity=a.quantity,
            price_at_booking=a.price_at_booking,
        )
        for a in draft.addons.values()
    ]
    return BookingPayload(
        customer=CustomerBlock(
            name=draft.name.strip(),
            whatsapp=draft.whatsapp.strip(),
            category=draft.service_name,
            service_id=service_id,
        ),
        booking=BookingBlock(
            date=f"{draft.date.strip()}T{_padded_time(draft.time)}",
            notes=draft.notes,
            location_link=draft.location_link if is_outdoor(draft.service_name) else "",
        ),
        finance=FinanceBlock(
            total_price=totals.total_price,
            payments=[
                PaymentRecord(
                    date=today.isoformat(),
                    amount=parse_amount(draft.dp_amount) or 0,
                    note=pricing.initial_payment_note,
                )
            ],
            service_base_price=totals.service_base_price,
            base_discount=totals.base_discount,
            addons_total=totals.addons_total,
            coupon_discount=totals.coupon_discount,
            coupon_code=draft.coupon_code,
        ),
        addons=addons or None,
    )


class SubmissionPipeline:
    """Runs one submission at a time against a store and its flow."""

    def __init__(
        self,
        store: DraftStore,
        flow: StepStateMachine,
        creator: BookingCreator,
        handoff: HandoffConfig = settings.handoff,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self._store = store
        self._flow = flow
        self._creator = creator
        self._whatsapp_number = handoff.whatsapp_number
        self._template = handoff.message_template
        self._clock = clock or (lambda: datetime.now(ZoneInfo(settings.timezone)).date())
        self._submitting = False

    @property
    def is_submitting(self) -> bool:
        """True while the upload is in flight; the submit action should be disabled."""
        return self._submitting

    def apply_handoff_settings(self, overrides: HandoffSettings) -> None:
        """Use the admin number and template configured on the backend, when present."""
        if overrides.whatsapp_admin_number:
            self._whatsapp_number = overrides.whatsapp_admin_number
        if overrides.whatsapp_message_template:
            self._template = overrides.whatsapp_message_template

    async def submit(self) -> SubmissionResult:
        """
        Submit the draft.

        Raises:
            SubmissionError: When validation fails, a submission is already
                running, or the backend call fails. The draft is unchanged.
        """
        if self._submitting:
            raise SubmissionError("A submission is already in progress")

        last_step = self._flow.total_steps
        if not self._flow.validate_step(last_step):
            raise SubmissionError(
                "Please fix the highlighted fields before submitting",
                errors=self._flow.errors_for(last_step),
            )

        draft = self._store.draft
        payload = build_payload(draft, self._clock())

        self._submitting = True
        try:
            booking = await self._creator.create_booking(payload, draft.proof_file)
        except BookingApiError as e:
            message = e.message if e.status_code is not None else GENERIC_FAILURE_MESSAGE
            logger.error("Booking submission failed: %s", e)
            raise SubmissionError(message, status_code=e.status_code) from e
        finally:
            self._submitting = False

        logger.info("Booking %s created for %s", booking.id, draft.name)
        self._store.reset()
        self._flow.reset()

        message = self._render_message(draft, booking.id)
        link = build_whatsapp_link(self._whatsapp_number, message) if self._whatsapp_number else None
        return SubmissionResult(
            booking_id=booking.id, message=message, whatsapp_link=link, booking=booking
        )

    def _render_message(self, draft: Draft, booking_id: str) -> str:
        variables = build_handoff_variables(
            customer_name=draft.name.strip(),
            service=draft.service_name,
            date=draft.date,
            time=draft.time,
            total_price=draft.totals.total_price,
            booking_id=booking_id,
        )
        return render_handoff_message(self._template, variables)
