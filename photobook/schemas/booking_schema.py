"""Booking-creation payload, backend responses and settings models."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CustomerBlock(BaseModel):
    name: str
    whatsapp: str
    category: str
    service_id: str = Field(serialization_alias="serviceId")


class BookingBlock(BaseModel):
    date: str
    notes: str = ""
    location_link: str = ""


class PaymentRecord(BaseModel):
    """A single payment entry; the configurator only ever sends the initial DP."""
    date: str
    amount: int
    note: str


class FinanceBlock(BaseModel):
    """Total plus the full breakdown so the server can audit the price."""
    total_price: int
    payments: list[PaymentRecord]
    service_base_price: int
    base_discount: int
    addons_total: int
    coupon_discount: int
    coupon_code: str = ""


class AddonLine(BaseModel):
    addon_id: str
    addon_name: str
    quantity: int
    price_at_booking: int


class BookingPayload(BaseModel):
    """JSON part of the multipart booking-creation request."""
    customer: CustomerBlock
    booking: BookingBlock
    finance: FinanceBlock
    addons: Optional[list[AddonLine]] = None


class BookingResponse(BaseModel):
    """Booking echoed back by the backend on success."""

    model_config = ConfigDict(extra="allow")

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)


class PaymentSettings(BaseModel):
    """Bank transfer details shown on the payment step."""
    bank_name: str = ""
    account_name: str = ""
    account_number: str = ""
    qris_image_url: Optional[str] = None


class HandoffSettings(BaseModel):
    """Admin WhatsApp number and message template from the backend settings."""

    model_config = ConfigDict(extra="ignore")

    whatsapp_admin_number: Optional[str] = None
    whatsapp_message_template: Optional[str] = None
