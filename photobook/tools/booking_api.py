"""
Async HTTP gateway to the booking backend.

Wraps every external collaborator the configurator talks to: the service
and add-on catalog, coupon validation and suggestions, booking creation
and the settings endpoints. Transport errors, non-2xx statuses and
malformed bodies are all raised as BookingApiError so callers handle a
single failure type.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from photobook.config import settings
from photobook.schemas.booking_schema import (
    BookingPayload,
    BookingResponse,
    HandoffSettings,
    PaymentSettings,
)
from photobook.schemas.catalog_schema import Addon, Service
from photobook.schemas.coupon_schema import CouponDescriptor, CouponVerdict
from photobook.schemas.draft_schema import ProofFile

logger = logging.getLogger(__name__)


class BookingApiError(RuntimeError):
    """Raised when the backend is unreachable, rejects a request, or replies with garbage."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    """Extract the server-provided error text, falling back to the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    text = response.text.strip()
    return text or f"HTTP {response.status_code} {response.reason_phrase}"


class BookingApiClient:
    """Thin async client over the backend routes used by the configurator."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api.base_url,
            timeout=timeout or settings.api.timeout_sec,
            transport=transport,
        )

    async def __aenter__(self) -> "BookingApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Request %s %s failed: %s", method, url, e)
            raise BookingApiError(f"Could not reach the booking server: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(
                "Request %s %s returned %d: %s", method, url, response.status_code, message
            )
            raise BookingApiError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise BookingApiError(f"Malformed response from {url}") from e

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    async def list_services(self) -> list[Service]:
        """Return active services only."""
        data = await self._request("GET", "/api/services")
        try:
            services = [Service.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise BookingApiError(f"Malformed service catalog: {e}") from e
        return [s for s in services if s.is_active]

    async def list_addons(self, service_name: str) -> list[Addon]:
        """Return add-ons applicable to a service, already filtered server-side."""
        data = await self._request(
            "GET", "/api/addons", params={"active": "true", "category": service_name}
        )
        try:
            return [Addon.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise BookingApiError(f"Malformed add-on catalog: {e}") from e

    # ------------------------------------------------------------------ #
    # Coupons
    # ------------------------------------------------------------------ #

    async def validate_coupon(self, code: str, total_amount: int) -> CouponVerdict:
        data = await self._request(
            "POST", "/api/coupons/validate", json={"code": code, "totalAmount": total_amount}
        )
        try:
            return CouponVerdict.model_validate(data)
        except ValidationError as e:
            raise BookingApiError(f"Malformed coupon verdict: {e}") from e

    async def suggest_coupons(self, total_amount: int) -> list[CouponDescriptor]:
        data = await self._request(
            "POST", "/api/coupons/suggestions", json={"totalAmount": total_amount}
        )
        try:
            return [CouponDescriptor.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise BookingApiError(f"Malformed coupon suggestions: {e}") from e

    # ------------------------------------------------------------------ #
    # Bookings
    # ------------------------------------------------------------------ #

    async def create_booking(
        self, payload: BookingPayload, proof: Optional[ProofFile] = None
    ) -> BookingResponse:
        """POST the multipart booking: a ``data`` JSON part plus an optional ``proof`` file."""
        parts: dict[str, Any] = {
            "data": (
                None,
                payload.model_dump_json(by_alias=True, exclude_none=True),
                "application/json",
            ),
        }
        if proof is not None:
            parts["proof"] = (proof.filename, proof.content, proof.content_type)

        data = await self._request("POST", "/api/bookings", files=parts)
        try:
            return BookingResponse.model_validate(data)
        except ValidationError as e:
            raise BookingApiError(f"Malformed booking response: {e}") from e

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    async def get_handoff_settings(self) -> HandoffSettings:
        data = await self._request("GET", "/api/settings")
        try:
            return HandoffSettings.model_validate(data)
        except ValidationError as e:
            raise BookingApiError(f"Malformed settings: {e}") from e

    async def get_payment_settings(self) -> Optional[PaymentSettings]:
        """Bank details for the payment step. The backend may answer with a list."""
        data = await self._request("GET", "/api/payment-settings")
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            return None
        try:
            return PaymentSettings.model_validate(data)
        except ValidationError as e:
            raise BookingApiError(f"Malformed payment settings: {e}") from e
