"""
Booking configurator: one customer's booking session.

Wires the draft store, the step flow, the coupon protocol, the suggestion
poller and the submission pipeline around a single backend client, and
exposes the actions a front end binds to its controls.

Usage:
    async with BookingConfigurator(BookingApiClient(), JsonDraftCache("./data")) as cfg:
        await cfg.select_service("svc-1")
        cfg.next()
"""

from contextvars import Token
from dataclasses import replace
from datetime import date
from typing import Callable, Optional

from photobook.config import settings
from photobook.coupons import ApplyResult, CouponApplication, SuggestionPoller
from photobook.draft import DraftCache, DraftStore, JsonDraftCache, MemoryDraftCache, ProofFileError
from photobook.flow import DEFAULT_STEPS, StepDefinition, StepStateMachine, single_step
from photobook.logging_context import (
    bind_session,
    get_session_logger,
    new_session_id,
    release_session,
)
from photobook.pricing import calculator
from photobook.schemas import (
    Addon,
    AddonSelection,
    CouponDescriptor,
    Draft,
    PaymentSettings,
    Service,
    ServiceSnapshot,
)
from photobook.submission import SubmissionPipeline, SubmissionResult
from photobook.tools.booking_api import BookingApiClient, BookingApiError

logger = get_session_logger(__name__)


class BookingConfigurator:
    """Facade over one booking session. Call ``start`` before use and ``close`` after."""

    def __init__(
        self,
        api: BookingApiClient,
        cache: DraftCache,
        single_page: bool = False,
        clock: Optional[Callable[[], date]] = None,
        session_id: Optional[str] = None,
        owns_api: bool = False,
        poll_suggestions: bool = True,
    ) -> None:
        steps: tuple[StepDefinition, ...] = single_step() if single_page else DEFAULT_STEPS
        self.api = api
        self.session_id = session_id or new_session_id()
        self.store = DraftStore(cache)
        self.flow = StepStateMachine(self.store, steps, clock=clock)
        self.coupons = CouponApplication(self.store, api)
        self.suggestion_poller = SuggestionPoller(self.store, api)
        self.pipeline = SubmissionPipeline(self.store, self.flow, api, clock=clock)
        self.services: list[Service] = []
        self.addons: list[Addon] = []
        self.payment_settings: Optional[PaymentSettings] = None
        self._owns_api = owns_api
        self._poll_suggestions = poll_suggestions
        self._session_token: Optional[Token] = None

    async def __aenter__(self) -> "BookingConfigurator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """
        Load the catalog and settings, then begin suggestion polling.

        Raises:
            BookingApiError: If the service catalog cannot be loaded.
        """
        self._session_token = bind_session(self.session_id)
        self.services = await self.api.list_services()
        logger.info("Loaded %d active services", len(self.services))

        try:
            self.payment_settings = await self.api.get_payment_settings()
        except BookingApiError as e:
            logger.warning("Payment settings unavailable: %s", e)
        try:
            self.pipeline.apply_handoff_settings(await self.api.get_handoff_settings())
        except BookingApiError as e:
            logger.warning("Hand-off settings unavailable, using defaults: %s", e)

        restored = self.store.draft.service
        if restored is not None:
            await self._load_addons(restored.name)

        if self._poll_suggestions:
            self.suggestion_poller.start()

    async def close(self) -> None:
        await self.suggestion_poller.stop()
        self.coupons.close()
        if self._owns_api:
            await self.api.aclose()
        if self._session_token is not None:
            release_session(self._session_token)
            self._session_token = None

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def draft(self) -> Draft:
        return self.store.draft

    @property
    def current_step(self) -> int:
        return self.flow.current_step

    @property
    def suggestions(self) -> list[CouponDescriptor]:
        return self.suggestion_poller.suggestions

    @property
    def remaining_balance(self) -> int:
        draft = self.store.draft
        dp = calculator.parse_amount(draft.dp_amount) or 0
        return calculator.remaining_balance(draft.totals.total_price, dp)

    # ------------------------------------------------------------------ #
    # Step 1 and 2: selection
    # ------------------------------------------------------------------ #

    async def select_service(self, service_id: str) -> Draft:
        """Select a service and load its add-ons. Changing service clears add-ons and coupon."""
        service = next((s for s in self.services if s.id == service_id), None)
        if service is None:
            raise ValueError(f"Unknown service: {service_id}")
        draft = self.store.update(service=ServiceSnapshot.from_service(service))
        await self._load_addons(service.name)
        return draft

    def toggle_addon(self, addon_id: str) -> Draft:
        addons = self.store.draft.addons
        if addon_id in addons:
            del addons[addon_id]
        else:
            addons[addon_id] = AddonSelection.from_addon(self._find_addon(addon_id))
        return self.store.update(addons=addons)

    def set_addon_quantity(self, addon_id: str, quantity: int) -> Draft:
        """Set an add-on's quantity. Anything below 1 removes it.

        A selected add-on keeps the price it was picked at.
        """
        addons = self.store.draft.addons
        if quantity < 1:
            addons.pop(addon_id, None)
        elif addon_id in addons:
            addons[addon_id] = replace(addons[addon_id], quantity=quantity)
        else:
            addons[addon_id] = AddonSelection.from_addon(self._find_addon(addon_id), quantity)
        return self.store.update(addons=addons)

    # ------------------------------------------------------------------ #
    # Step 3 to 5: form fields
    # ------------------------------------------------------------------ #

    def set_schedule(
        self,
        date: Optional[str] = None,
        time: Optional[str] = None,
        location_link: Optional[str] = None,
    ) -> Draft:
        return self._update_given(date=date, time=time, location_link=location_link)

    def set_contact(
        self,
        name: Optional[str] = None,
        whatsapp: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Draft:
        return self._update_given(name=name, whatsapp=whatsapp, notes=notes)

    def set_payment(self, dp_amount: str) -> Draft:
        return self.store.update(dp_amount=dp_amount)

    def attach_proof(self, filename: str, content: bytes, content_type: str) -> bool:
        """Attach the transfer proof. A rejected file is reported as a field error."""
        try:
            self.store.attach_proof(filename, content, content_type)
        except ProofFileError as e:
            logger.info("Proof file '%s' rejected: %s", filename, e)
            self.flow.set_field_error("proof_file", str(e))
            return False
        self.flow.clear_field_error("proof_file")
        return True

    # ------------------------------------------------------------------ #
    # Coupons
    # ------------------------------------------------------------------ #

    async def apply_coupon(self, code: Optional[str] = None) -> ApplyResult:
        return await self.coupons.apply(code)

    def remove_coupon(self) -> None:
        self.coupons.remove()

    # ------------------------------------------------------------------ #
    # Navigation and submission
    # ------------------------------------------------------------------ #

    def next(self) -> int:
        return self.flow.next()

    def prev(self) -> int:
        return self.flow.prev()

    def go_to(self, step: int) -> int:
        return self.flow.go_to(step)

    async def submit(self) -> SubmissionResult:
        result = await self.pipeline.submit()
        self.addons = []
        return result

    def cancel(self) -> None:
        """Abandon the booking: clear the draft, its cache and the flow."""
        self.coupons.remove()
        self.store.reset()
        self.flow.reset()
        self.addons = []
        logger.info("Booking cancelled")

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    async def _load_addons(self, service_name: str) -> None:
        try:
            self.addons = await self.api.list_addons(service_name)
        except BookingApiError as e:
            logger.warning("Add-ons for '%s' unavailable: %s", service_name, e)
            self.addons = []

    def _find_addon(self, addon_id: str) -> Addon:
        for addon in self.addons:
            if addon.id == addon_id:
                return addon
        raise ValueError(f"Unknown add-on: {addon_id}")

    def _update_given(self, **fields: Optional[str]) -> Draft:
        given = {name: value for name, value in fields.items() if value is not None}
        if not given:
            return self.store.draft
        return self.store.update(**given)


def open_configurator(
    api_url: Optional[str] = None,
    single_page: bool = False,
    persist: bool = True,
) -> BookingConfigurator:
    """Build a configurator against the backend, keeping the draft on disk unless ``persist`` is off."""
    cache: DraftCache = JsonDraftCache(settings.draft.cache_dir) if persist else MemoryDraftCache()
    return BookingConfigurator(
        BookingApiClient(base_url=api_url),
        cache,
        single_page=single_page,
        owns_api=True,
    )
