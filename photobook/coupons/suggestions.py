"""
Background coupon suggestions.

A non-critical convenience: while no coupon is applied and the subtotal is
positive, the poller asks the backend which coupons the customer currently
qualifies for, every ``interval`` seconds and right after the subtotal
changes. Failures are logged and the previous list is kept.
"""

import asyncio
from typing import Optional, Protocol

from photobook.config import settings
from photobook.draft.store import DraftStore
from photobook.logging_context import get_session_logger
from photobook.pricing import calculator
from photobook.schemas.coupon_schema import CouponDescriptor
from photobook.schemas.draft_schema import Draft
from photobook.tools.booking_api import BookingApiError

logger = get_session_logger(__name__)


class CouponSuggester(Protocol):
    async def suggest_coupons(self, total_amount: int) -> list[CouponDescriptor]: ...


def _subtotal(draft: Draft) -> int:
    return calculator.subtotal_for_coupon(draft.service, draft.addons.values())


class SuggestionPoller:
    """Keeps ``suggestions`` fresh until ``stop`` is awaited."""

    def __init__(
        self,
        store: DraftStore,
        suggester: CouponSuggester,
        interval_sec: float = settings.coupons.suggestion_interval_sec,
    ) -> None:
        self._store = store
        self._suggester = suggester
        self._interval = interval_sec
        self._suggestions: list[CouponDescriptor] = []
        self._task: Optional[asyncio.Task] = None
        self._wake: Optional[asyncio.Event] = None
        self._unsubscribe = None

    @property
    def suggestions(self) -> list[CouponDescriptor]:
        return list(self._suggestions)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _eligible(self, draft: Draft) -> bool:
        return draft.coupon is None and _subtotal(draft) > 0

    async def refresh(self) -> list[CouponDescriptor]:
        """Fetch suggestions once. Suppressed (empty) when a coupon is applied or subtotal is 0."""
        draft = self._store.draft
        if not self._eligible(draft):
            self._suggestions = []
            return []

        subtotal = _subtotal(draft)
        try:
            result = await self._suggester.suggest_coupons(subtotal)
        except BookingApiError as e:
            logger.warning("Coupon suggestions unavailable: %s", e)
            return self.suggestions

        current = self._store.draft
        if not self._eligible(current) or _subtotal(current) != subtotal:
            logger.debug("Dropping suggestions fetched for outdated subtotal %d", subtotal)
            return self.suggestions

        self._suggestions = list(result)
        logger.debug("%d coupon suggestions for subtotal %d", len(result), subtotal)
        return self.suggestions

    def start(self) -> None:
        """Begin polling on the running event loop. Idempotent."""
        if self.running:
            return
        self._wake = asyncio.Event()
        self._unsubscribe = self._store.subscribe(self._on_draft_change)
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Coupon suggestion polling started every %.0fs", self._interval)

    async def stop(self) -> None:
        """Cancel polling. After this returns the poller never touches state again."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Coupon suggestion polling stopped")

    async def _run(self) -> None:
        assert self._wake is not None
        while True:
            self._wake.clear()
            await self.refresh()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def _on_draft_change(self, previous: Draft, current: Draft) -> None:
        moved = _subtotal(previous) != _subtotal(current)
        coupon_toggled = (previous.coupon is None) != (current.coupon is None)
        if (moved or coupon_toggled) and self._wake is not None:
            self._wake.set()
