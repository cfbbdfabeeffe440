"""Service and add-on catalog models as returned by the backend."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Service(BaseModel):
    """Photography service package."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    base_price: int = Field(alias="basePrice", ge=0)
    discount_value: int = Field(default=0, alias="discountValue", ge=0)
    is_active: bool = Field(default=True, alias="isActive")
    badge: Optional[str] = None
    benefits: list[str] = Field(default_factory=list)


class Addon(BaseModel):
    """Optional extra that can be booked alongside a service."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    price: int = Field(ge=0)
    description: Optional[str] = None
    is_active: bool = Field(default=True, alias="isActive")
