"""
Step rule set for the booking flow.

Field validators return an error message or None. Step rules combine them
against a Draft and return the StepError list for that step; they never
raise, so a failing step only blocks forward navigation.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

from photobook.config import PricingConfig, ValidationConfig, settings
from photobook.pricing.calculator import parse_amount
from photobook.schemas.draft_schema import Draft, StepError
from photobook.utils import format_price

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_PHONE_SHAPE = re.compile(r"^\+?[\d\s().-]+$")
_URL_ADAPTER = TypeAdapter(HttpUrl)


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule needs besides the draft."""
    today: date
    limits: ValidationConfig = field(default_factory=lambda: settings.validation)
    pricing: PricingConfig = field(default_factory=lambda: settings.pricing)


StepRule = Callable[[Draft, RuleContext], list[StepError]]


# ---------------------------------------------------------------------- #
# Field validators
# ---------------------------------------------------------------------- #

def validate_name(value: str, limits: ValidationConfig) -> Optional[str]:
    value = value.strip()
    if not value:
        return "Name is required"
    if len(value) < limits.min_name_length:
        return f"Name must be at least {limits.min_name_length} characters"
    if len(value) > limits.max_name_length:
        return f"Name must be at most {limits.max_name_length} characters"
    if not all(ch.isalpha() or ch.isspace() for ch in value):
        return "Name may only contain letters and spaces"
    return None


def validate_whatsapp(value: str, limits: ValidationConfig) -> Optional[str]:
    value = value.strip()
    if not value:
        return "WhatsApp number is required"
    if not _PHONE_SHAPE.match(value):
        return "WhatsApp number may only contain digits, spaces, dashes and a leading +"
    digits = re.sub(r"[^\d]", "", value)
    if len(digits) < limits.min_phone_digits:
        return f"WhatsApp number must have at least {limits.min_phone_digits} digits"
    if len(digits) > limits.max_phone_digits:
        return f"WhatsApp number must have at most {limits.max_phone_digits} digits"
    return None


def validate_date(value: str, today: date) -> Optional[str]:
    if not value.strip():
        return "Date is required"
    try:
        chosen = datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return "Date must be in YYYY-MM-DD format"
    if chosen < today:
        return "Date cannot be in the past"
    return None


def validate_time(value: str, slot_minutes: int) -> Optional[str]:
    if not value.strip():
        return "Time is required"
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        return "Time must be in HH:MM format"
    if int(match.group(2)) % slot_minutes:
        return f"Time must be on a {slot_minutes}-minute boundary"
    return None


def validate_location_link(value: str) -> Optional[str]:
    if not value.strip():
        return "Location link is required for outdoor sessions"
    try:
        _URL_ADAPTER.validate_python(value.strip())
    except ValidationError:
        return "Location link must be a valid URL"
    return None


def validate_notes(value: str, limits: ValidationConfig) -> Optional[str]:
    if len(value) > limits.max_notes_length:
        return f"Notes must be at most {limits.max_notes_length} characters"
    return None


def validate_dp_amount(value: str, total_price: int, pricing: PricingConfig) -> Optional[str]:
    if not value.strip():
        return "Down payment amount is required"
    amount = parse_amount(value)
    if amount is None:
        return "Down payment must be a whole number"
    if amount < pricing.min_dp_amount:
        return (
            f"Down payment must be at least {pricing.currency_label} "
            f"{format_price(pricing.min_dp_amount)}"
        )
    if amount > total_price:
        return "Down payment cannot exceed the total price"
    return None


def is_outdoor(service_name: str, keyword: str = settings.validation.outdoor_keyword) -> bool:
    return keyword.lower() in service_name.lower()


# ---------------------------------------------------------------------- #
# Step rules
# ---------------------------------------------------------------------- #

def _collect(*checks: tuple[str, Optional[str]]) -> list[StepError]:
    return [StepError(field=name, message=msg) for name, msg in checks if msg]


def service_rules(draft: Draft, ctx: RuleContext) -> list[StepError]:
    if draft.service is None:
        return [StepError(field="service_id", message="Please select a service")]
    return []


def addon_rules(draft: Draft, ctx: RuleContext) -> list[StepError]:
    return []


def schedule_rules(draft: Draft, ctx: RuleContext) -> list[StepError]:
    location_error = None
    if is_outdoor(draft.service_name, ctx.limits.outdoor_keyword):
        location_error = validate_location_link(draft.location_link)
    return _collect(
        ("date", validate_date(draft.date, ctx.today)),
        ("time", validate_time(draft.time, ctx.limits.slot_minutes)),
        ("location_link", location_error),
    )


def contact_rules(draft: Draft, ctx: RuleContext) -> list[StepError]:
    return _collect(
        ("name", validate_name(draft.name, ctx.limits)),
        ("whatsapp", validate_whatsapp(draft.whatsapp, ctx.limits)),
        ("notes", validate_notes(draft.notes, ctx.limits)),
    )


def payment_rules(draft: Draft, ctx: RuleContext) -> list[StepError]:
    proof_error = None if draft.proof_file is not None else "Proof of transfer is required"
    return _collect(
        ("dp_amount", validate_dp_amount(draft.dp_amount, draft.totals.total_price, ctx.pricing)),
        ("proof_file", proof_error),
    )
