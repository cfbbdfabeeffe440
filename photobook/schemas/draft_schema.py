"""Draft aggregate and its value objects.

The Draft is mutated only through ``DraftStore.update``; the dataclasses
here carry no behaviour beyond construction and snapshot copying.
"""

from dataclasses import dataclass, field
from typing import Optional

from photobook.schemas.catalog_schema import Addon, Service


@dataclass(frozen=True)
class ServiceSnapshot:
    """Price fields copied from the catalog at selection time."""
    id: str
    name: str
    base_price: int
    discount_value: int

    @classmethod
    def from_service(cls, service: Service) -> "ServiceSnapshot":
        return cls(
            id=service.id,
            name=service.name,
            base_price=service.base_price,
            discount_value=service.discount_value,
        )


@dataclass(frozen=True)
class AddonSelection:
    """An add-on with its price frozen at selection time."""
    addon_id: str
    name: str
    quantity: int
    price_at_booking: int

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"Add-on quantity must be >= 1, got {self.quantity}")

    @classmethod
    def from_addon(cls, addon: Addon, quantity: int = 1) -> "AddonSelection":
        return cls(
            addon_id=addon.id,
            name=addon.name,
            quantity=quantity,
            price_at_booking=addon.price,
        )


@dataclass(frozen=True)
class AppliedCoupon:
    """Canonical code and discount from a valid verdict."""
    code: str
    discount_amount: int


@dataclass(frozen=True)
class ProofFile:
    """Uploaded proof-of-payment image."""
    filename: str
    content: bytes = field(repr=False)
    content_type: str


@dataclass(frozen=True)
class PriceBreakdown:
    """Derived totals. Always produced by the pricing calculator."""
    service_base_price: int = 0
    base_discount: int = 0
    addons_total: int = 0
    coupon_discount: int = 0
    total_price: int = 0


@dataclass
class Draft:
    """Full configuration state of one booking in progress."""

    # Step 1 and 2
    service: Optional[ServiceSnapshot] = None
    addons: dict[str, AddonSelection] = field(default_factory=dict)
    coupon: Optional[AppliedCoupon] = None

    # Step 3
    date: str = ""
    time: str = ""
    location_link: str = ""

    # Step 4
    name: str = ""
    whatsapp: str = ""
    notes: str = ""

    # Step 5
    dp_amount: str = ""
    proof_file: Optional[ProofFile] = None
    proof_preview: str = ""

    # Derived
    totals: PriceBreakdown = field(default_factory=PriceBreakdown)

    @property
    def coupon_code(self) -> str:
        return self.coupon.code if self.coupon else ""

    @property
    def service_name(self) -> str:
        return self.service.name if self.service else ""


@dataclass(frozen=True)
class StepError:
    """Field-level validation failure shown on a step."""
    field: str
    message: str
