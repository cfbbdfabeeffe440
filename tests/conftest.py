"""Shared test fixtures and helpers."""

import asyncio
import json
from datetime import date
from typing import Any, Optional

import httpx
import pytest

from photobook.config import settings
from photobook.draft import DraftStore, MemoryDraftCache
from photobook.flow import StepStateMachine
from photobook.schemas import AddonSelection, CouponDescriptor, CouponVerdict, ServiceSnapshot
from photobook.tools.booking_api import BookingApiClient, BookingApiError

TODAY = date(2025, 1, 10)
SESSION_DATE = "2025-02-14"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

SERVICES: list[dict[str, Any]] = [
    {
        "id": "svc-studio",
        "name": "Studio Portrait",
        "basePrice": 500000,
        "discountValue": 50000,
        "isActive": True,
        "benefits": ["1 hour session", "10 edited photos"],
    },
    {
        "id": "svc-outdoor",
        "name": "Outdoor Prewedding",
        "basePrice": 1500000,
        "discountValue": 0,
        "isActive": True,
    },
    {
        "id": "svc-retired",
        "name": "Retired Package",
        "basePrice": 100000,
        "isActive": False,
    },
]

ADDONS: list[dict[str, Any]] = [
    {"id": "add-album", "name": "Printed Album", "price": 100000},
    {"id": "add-mua", "name": "Make-up Artist", "price": 150000},
]

COUPONS: dict[str, dict[str, Any]] = {
    "HEMAT10": {
        "code": "HEMAT10",
        "discount_type": "percentage",
        "discount_value": 10,
        "max_discount": 100000,
        "min_purchase": 200000,
        "description": "10% off, up to Rp 100.000",
    },
    "POTONG75": {
        "code": "POTONG75",
        "discount_type": "fixed",
        "discount_value": 75000,
        "description": "Rp 75.000 off",
    },
    "BIGSPENDER": {
        "code": "BIGSPENDER",
        "discount_type": "fixed",
        "discount_value": 300000,
        "min_purchase": 2000000,
    },
}


def compute_discount(coupon: dict[str, Any], total_amount: int) -> int:
    """Server-side discount rule used by the fake backend."""
    if coupon["discount_type"] == "percentage":
        discount = round(total_amount * coupon["discount_value"] / 100)
        if coupon.get("max_discount"):
            discount = min(discount, coupon["max_discount"])
        return discount
    return min(coupon["discount_value"], total_amount)


class FakeBackend:
    """In-process booking backend served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.services = [dict(s) for s in SERVICES]
        self.addons = [dict(a) for a in ADDONS]
        self.coupons = {code: dict(c) for code, c in COUPONS.items()}
        self.settings: dict[str, Any] = {
            "whatsapp_admin_number": "0812-3456-7890",
            "whatsapp_message_template": (
                "Halo, saya {{customer_name}} booking {{service}} "
                "tanggal {{date}} jam {{time}}. ID: {{booking_id}}"
            ),
        }
        self.payment_settings: Any = [
            {"bank_name": "BCA", "account_name": "Studio Foto", "account_number": "1234567890"}
        ]
        self.booking_status = 201
        self.booking_body: Any = {"id": "BK-0001", "status": "pending"}
        self.requests: list[httpx.Request] = []

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        path = request.url.path

        if path == "/api/services":
            return httpx.Response(200, json=self.services)
        if path == "/api/addons":
            return httpx.Response(200, json=self.addons)
        if path == "/api/coupons/validate":
            body = json.loads(request.content)
            return self._validate(body["code"], body["totalAmount"])
        if path == "/api/coupons/suggestions":
            total = json.loads(request.content)["totalAmount"]
            eligible = [c for c in self.coupons.values() if (c.get("min_purchase") or 0) <= total]
            return httpx.Response(200, json=eligible)
        if path == "/api/bookings":
            return httpx.Response(self.booking_status, json=self.booking_body)
        if path == "/api/settings":
            return httpx.Response(200, json=self.settings)
        if path == "/api/payment-settings":
            return httpx.Response(200, json=self.payment_settings)
        return httpx.Response(404, json={"error": "Not found"})

    def _validate(self, code: str, total_amount: int) -> httpx.Response:
        coupon = self.coupons.get(code.upper())
        if coupon is None:
            return httpx.Response(200, json={"valid": False, "error": "Coupon not found"})
        if total_amount < (coupon.get("min_purchase") or 0):
            return httpx.Response(
                200,
                json={"valid": False, "error": f"Minimum purchase Rp {coupon['min_purchase']}"},
            )
        return httpx.Response(
            200,
            json={
                "valid": True,
                "coupon": coupon,
                "discount_amount": compute_discount(coupon, total_amount),
            },
        )


class GatedValidator:
    """Coupon validator whose responses are released manually."""

    def __init__(self, verdict: Optional[CouponVerdict] = None, error: Optional[Exception] = None):
        self.verdict = verdict or CouponVerdict(
            valid=True,
            coupon=CouponDescriptor(code="HEMAT10", discount_type="percentage", discount_value=10),
            discount_amount=45000,
        )
        self.error = error
        self.release = asyncio.Event()
        self.calls: list[tuple[str, int]] = []

    async def validate_coupon(self, code: str, total_amount: int) -> CouponVerdict:
        self.calls.append((code, total_amount))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.verdict


class FailingSuggester:
    def __init__(self) -> None:
        self.calls = 0

    async def suggest_coupons(self, total_amount: int) -> list[CouponDescriptor]:
        self.calls += 1
        raise BookingApiError("Could not reach the booking server: timeout")


STUDIO = ServiceSnapshot(id="svc-studio", name="Studio Portrait", base_price=500000, discount_value=50000)
OUTDOOR = ServiceSnapshot(id="svc-outdoor", name="Outdoor Prewedding", base_price=1500000, discount_value=0)
ALBUM = AddonSelection(addon_id="add-album", name="Printed Album", quantity=1, price_at_booking=100000)


def fill_valid_draft(store: DraftStore, service: ServiceSnapshot = STUDIO) -> None:
    """Bring a store to a state where every default step validates."""
    store.update(service=service)
    store.update(addons=[ALBUM])
    store.update(
        date=SESSION_DATE,
        time="10:30",
        location_link="https://maps.app.goo.gl/abc123",
        name="Budi Santoso",
        whatsapp="0812-3456-7890",
        notes="Family of four",
        dp_amount="100.000",
    )
    store.attach_proof("proof.png", PNG_BYTES, "image/png")


@pytest.fixture
def cache():
    return MemoryDraftCache()


@pytest.fixture
def store(cache):
    return DraftStore(cache, key=settings.draft.cache_key)


@pytest.fixture
def flow(store):
    return StepStateMachine(store, clock=lambda: TODAY)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(backend):
    return BookingApiClient(
        base_url="http://booking.test",
        transport=httpx.MockTransport(backend.handler),
    )
