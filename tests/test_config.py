"""Tests for configuration loading and validation."""

import logging
from dataclasses import replace

import pytest

from photobook.config import (
    AppConfig,
    ApiConfig,
    CouponConfig,
    HandoffConfig,
    PricingConfig,
    UploadConfig,
    ValidationConfig,
    _validate_config,
    settings,
)
from photobook.logging_context import (
    NO_SESSION,
    SessionIdFilter,
    bind_session,
    get_session_logger,
    new_session_id,
    release_session,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_defaults(self):
        assert settings.pricing.min_dp_amount == 10000
        assert settings.pricing.initial_payment_note == "DP Awal"
        assert settings.draft.cache_key == "bookingFormProgress"
        assert settings.validation.slot_minutes == 30
        assert settings.upload.max_proof_bytes == 5 * 1024 * 1024

    def test_invalid_timeout(self):
        config = replace(AppConfig(), api=ApiConfig(base_url="http://x", timeout_sec=0))
        with pytest.raises(ValueError, match="BOOKING_API_TIMEOUT"):
            _validate_config(config)

    def test_negative_min_dp(self):
        config = replace(AppConfig(), pricing=PricingConfig(min_dp_amount=-1))
        with pytest.raises(ValueError, match="MIN_DP_AMOUNT"):
            _validate_config(config)

    def test_name_bounds_inverted(self):
        config = replace(
            AppConfig(), validation=ValidationConfig(min_name_length=10, max_name_length=5)
        )
        with pytest.raises(ValueError, match="MAX_NAME_LENGTH"):
            _validate_config(config)

    def test_phone_bounds_inverted(self):
        config = replace(
            AppConfig(), validation=ValidationConfig(min_phone_digits=16, max_phone_digits=15)
        )
        with pytest.raises(ValueError, match="MIN_PHONE_DIGITS"):
            _validate_config(config)

    @pytest.mark.parametrize("minutes", [0, 7, 90])
    def test_slot_must_divide_hour(self, minutes):
        config = replace(AppConfig(), validation=ValidationConfig(slot_minutes=minutes))
        with pytest.raises(ValueError, match="SLOT_MINUTES"):
            _validate_config(config)

    def test_invalid_suggestion_interval(self):
        config = replace(AppConfig(), coupons=CouponConfig(suggestion_interval_sec=0))
        with pytest.raises(ValueError, match="COUPON_SUGGESTION_INTERVAL"):
            _validate_config(config)

    def test_invalid_proof_limit(self):
        config = replace(AppConfig(), upload=UploadConfig(max_proof_bytes=0))
        with pytest.raises(ValueError, match="PROOF_MAX_BYTES"):
            _validate_config(config)

    def test_invalid_template_length(self):
        config = replace(AppConfig(), handoff=HandoffConfig(max_template_length=0))
        with pytest.raises(ValueError, match="HANDOFF_MAX_TEMPLATE_LENGTH"):
            _validate_config(config)

    def test_safe_int_parsing(self):
        from photobook.config import _safe_int

        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_int_rejects_garbage(self, monkeypatch):
        from photobook.config import _safe_int

        monkeypatch.setenv("PHOTOBOOK_TEST_INT", "ten")
        with pytest.raises(ValueError, match="PHOTOBOOK_TEST_INT"):
            _safe_int("PHOTOBOOK_TEST_INT", "1")

    def test_safe_float_parsing(self):
        from photobook.config import _safe_float

        assert _safe_float("NONEXISTENT_VAR_12345", "3.14") == pytest.approx(3.14)


class TestSessionLogging:
    @staticmethod
    def _record() -> logging.LogRecord:
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        SessionIdFilter().filter(record)
        return record

    def test_unbound_records_are_tagged_no_session(self):
        assert self._record().session_id == NO_SESSION

    def test_bind_and_release(self):
        token = bind_session("DRAFT-TEST01")
        assert self._record().session_id == "DRAFT-TEST01"
        release_session(token)
        assert self._record().session_id == NO_SESSION

    def test_explicit_extra_wins(self):
        token = bind_session("DRAFT-TEST01")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.session_id = "DRAFT-OTHER"
        SessionIdFilter().filter(record)
        release_session(token)
        assert record.session_id == "DRAFT-OTHER"

    def test_new_session_ids_are_distinct(self):
        first, second = new_session_id(), new_session_id()
        assert first.startswith("DRAFT-") and len(first) == 14
        assert first != second

    def test_session_logger_has_filter_once(self):
        logger = get_session_logger("photobook.tests.session")
        get_session_logger("photobook.tests.session")
        assert sum(isinstance(f, SessionIdFilter) for f in logger.filters) == 1
