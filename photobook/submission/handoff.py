"""Hand-off message rendering and WhatsApp deep links.

Templates use ``{{name}}`` placeholders drawn from a closed vocabulary.
Unknown placeholders render as empty text; the message is never sent from
here, only turned into a ``wa.me`` link for the customer to open.
"""

import logging
import re
from typing import Mapping
from urllib.parse import quote

from photobook.config import settings
from photobook.utils import format_long_date, format_price, to_whatsapp_number

logger = logging.getLogger(__name__)

ALLOWED_VARIABLES: frozenset[str] = frozenset(
    {"customer_name", "service", "date", "time", "total_price", "booking_id"}
)
REQUIRED_VARIABLES: tuple[str, ...] = ("customer_name", "service")

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


class TemplateError(ValueError):
    """Raised when a template cannot be rendered."""


def render_template(
    template: str,
    variables: Mapping[str, str],
    max_length: int = settings.handoff.max_template_length,
) -> str:
    """Substitute known placeholders. Unknown ones are logged and rendered empty."""
    if len(template) > max_length:
        raise TemplateError(f"Template exceeds maximum length of {max_length} characters")

    def _substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in ALLOWED_VARIABLES:
            logger.warning("Unknown variable in template: %s", name)
            return ""
        return str(variables.get(name, ""))

    return _PLACEHOLDER.sub(_substitute, template)


def validate_template(
    template: str, max_length: int = settings.handoff.max_template_length
) -> list[str]:
    """Return a list of problems; empty when the template is usable."""
    errors: list[str] = []
    found = _PLACEHOLDER.findall(template)
    for required in REQUIRED_VARIABLES:
        if required not in found:
            errors.append(f"Missing required variable: {required}")
    for name in found:
        if name not in ALLOWED_VARIABLES:
            errors.append(f"Unknown variable: {name}")
    if len(template) > max_length:
        errors.append(f"Template exceeds {max_length} character limit")
    return errors


def build_handoff_variables(
    customer_name: str,
    service: str,
    date: str,
    time: str,
    total_price: int,
    booking_id: str,
) -> dict[str, str]:
    """Display-formatted values for every allowed placeholder."""
    return {
        "customer_name": customer_name,
        "service": service,
        "date": format_long_date(date),
        "time": time,
        "total_price": format_price(total_price),
        "booking_id": booking_id,
    }


def build_fallback_message(variables: Mapping[str, str]) -> str:
    """Fixed-format message used when the configured template cannot be rendered."""
    return (
        f"Booking {variables.get('booking_id', '')}: "
        f"{variables.get('customer_name', '')}, {variables.get('service', '')} "
        f"on {variables.get('date', '')} at {variables.get('time', '')}. "
        f"Total {settings.pricing.currency_label} {variables.get('total_price', '')}"
    )


def render_handoff_message(template: str, variables: Mapping[str, str]) -> str:
    """Render ``template``, falling back to the fixed format on any template problem."""
    if not template:
        return build_fallback_message(variables)
    try:
        return render_template(template, variables)
    except TemplateError as e:
        logger.warning("Hand-off template unusable, using fallback: %s", e)
        return build_fallback_message(variables)


def build_whatsapp_link(phone_number: str, message: str) -> str:
    return f"https://wa.me/{to_whatsapp_number(phone_number)}?text={quote(message, safe='')}"
