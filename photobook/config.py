"""
Centralized configuration with environment variable overrides.

Endpoints, pricing floors, validation limits and hand-off settings are
configurable here. Nothing is hardcoded in the configurator logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from photobook.logging_context import SessionIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ApiConfig:
    """Booking backend endpoint settings."""

    base_url: str = os.getenv("BOOKING_API_URL", "http://localhost:3000")
    timeout_sec: float = _safe_float("BOOKING_API_TIMEOUT", "10.0")


@dataclass(frozen=True)
class PricingConfig:
    """Down-payment limits and payment record defaults."""

    min_dp_amount: int = _safe_int("MIN_DP_AMOUNT", "10000")
    initial_payment_note: str = os.getenv("INITIAL_PAYMENT_NOTE", "DP Awal")
    currency_label: str = os.getenv("CURRENCY_LABEL", "Rp")


@dataclass(frozen=True)
class ValidationConfig:
    """Limits applied by the step rule set."""

    min_name_length: int = _safe_int("MIN_NAME_LENGTH", "2")
    max_name_length: int = _safe_int("MAX_NAME_LENGTH", "100")
    min_phone_digits: int = _safe_int("MIN_PHONE_DIGITS", "10")
    max_phone_digits: int = _safe_int("MAX_PHONE_DIGITS", "15")
    max_notes_length: int = _safe_int("MAX_NOTES_LENGTH", "500")
    slot_minutes: int = _safe_int("SLOT_MINUTES", "30")
    outdoor_keyword: str = os.getenv("OUTDOOR_KEYWORD", "outdoor")


@dataclass(frozen=True)
class CouponConfig:
    """Coupon suggestion polling."""

    suggestion_interval_sec: float = _safe_float("COUPON_SUGGESTION_INTERVAL", "30.0")


@dataclass(frozen=True)
class DraftConfig:
    """Durable draft cache location."""

    cache_dir: str = os.getenv("DRAFT_CACHE_DIR", "./data/drafts")
    cache_key: str = os.getenv("DRAFT_CACHE_KEY", "bookingFormProgress")


@dataclass(frozen=True)
class HandoffConfig:
    """WhatsApp hand-off defaults, overridable by the backend settings."""

    whatsapp_number: str = os.getenv("HANDOFF_WHATSAPP_NUMBER", "")
    message_template: str = os.getenv(
        "HANDOFF_MESSAGE_TEMPLATE",
        "Halo, saya {{customer_name}} sudah booking {{service}} "
        "tanggal {{date}} jam {{time}}. Total Rp {{total_price}}. "
        "ID booking: {{booking_id}}",
    )
    max_template_length: int = _safe_int("HANDOFF_MAX_TEMPLATE_LENGTH", "500")


@dataclass(frozen=True)
class UploadConfig:
    """Proof-of-payment upload limits."""

    max_proof_bytes: int = _safe_int("PROOF_MAX_BYTES", str(5 * 1024 * 1024))
    allowed_types: tuple[str, ...] = (
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
    )


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    api: ApiConfig = field(default_factory=ApiConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    coupons: CouponConfig = field(default_factory=CouponConfig)
    draft: DraftConfig = field(default_factory=DraftConfig)
    handoff: HandoffConfig = field(default_factory=HandoffConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    timezone: str = os.getenv("BOOKING_TIMEZONE", "Asia/Jakarta")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.api.timeout_sec <= 0:
        raise ValueError(f"BOOKING_API_TIMEOUT must be > 0, got {config.api.timeout_sec}")
    if config.pricing.min_dp_amount < 0:
        raise ValueError(f"MIN_DP_AMOUNT must be >= 0, got {config.pricing.min_dp_amount}")
    if config.validation.min_name_length < 1:
        raise ValueError(
            f"MIN_NAME_LENGTH must be >= 1, got {config.validation.min_name_length}"
        )
    if config.validation.max_name_length < config.validation.min_name_length:
        raise ValueError(
            "MAX_NAME_LENGTH must be >= MIN_NAME_LENGTH, "
            f"got {config.validation.max_name_length}"
        )
    if not 1 <= config.validation.min_phone_digits <= config.validation.max_phone_digits:
        raise ValueError(
            "MIN_PHONE_DIGITS must be >= 1 and <= MAX_PHONE_DIGITS, "
            f"got {config.validation.min_phone_digits}..{config.validation.max_phone_digits}"
        )
    if not 1 <= config.validation.slot_minutes <= 60 or 60 % config.validation.slot_minutes:
        raise ValueError(
            f"SLOT_MINUTES must divide 60, got {config.validation.slot_minutes}"
        )
    if config.coupons.suggestion_interval_sec <= 0:
        raise ValueError(
            "COUPON_SUGGESTION_INTERVAL must be > 0, "
            f"got {config.coupons.suggestion_interval_sec}"
        )
    if config.upload.max_proof_bytes < 1:
        raise ValueError(f"PROOF_MAX_BYTES must be >= 1, got {config.upload.max_proof_bytes}")
    if config.handoff.max_template_length < 1:
        raise ValueError(
            "HANDOFF_MAX_TEMPLATE_LENGTH must be >= 1, "
            f"got {config.handoff.max_template_length}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: [%(session_id)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
    logger.info("Configuration loaded for API at '%s'", config.api.base_url)
    return config


# Singleton instance
settings = load_config()
