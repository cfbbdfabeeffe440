"""Tests for the step rule set and field validators."""

from datetime import date

import pytest

from photobook.config import settings
from photobook.flow.validators import (
    RuleContext,
    contact_rules,
    is_outdoor,
    payment_rules,
    schedule_rules,
    service_rules,
    validate_date,
    validate_dp_amount,
    validate_location_link,
    validate_name,
    validate_time,
    validate_whatsapp,
)
from photobook.schemas import Draft, PriceBreakdown, ProofFile, ServiceSnapshot

from tests.conftest import PNG_BYTES, TODAY

CTX = RuleContext(today=TODAY)
LIMITS = settings.validation


def _draft(service_name: str = "Studio Indoor", **fields) -> Draft:
    service = ServiceSnapshot(id="svc", name=service_name, base_price=500000, discount_value=0)
    return Draft(service=service, **fields)


class TestNameValidation:
    @pytest.mark.parametrize("name", ["Budi Santoso", "Ani", "Siti Nur Aisyah"])
    def test_valid_names(self, name):
        assert validate_name(name, LIMITS) is None

    @pytest.mark.parametrize(
        "name, fragment",
        [
            ("", "required"),
            ("A", "at least"),
            ("A" * 101, "at most"),
            ("R2D2", "letters"),
            ("Budi_S", "letters"),
        ],
    )
    def test_invalid_names(self, name, fragment):
        assert fragment in validate_name(name, LIMITS)


class TestWhatsappValidation:
    @pytest.mark.parametrize("phone", ["081234567890", "+62 812-3456-7890", "(0812) 3456 7890"])
    def test_valid_numbers(self, phone):
        assert validate_whatsapp(phone, LIMITS) is None

    @pytest.mark.parametrize(
        "phone, fragment",
        [
            ("", "required"),
            ("0812abc", "may only contain"),
            ("0812345", "at least"),
            ("0812345678901234", "at most"),
        ],
    )
    def test_invalid_numbers(self, phone, fragment):
        assert fragment in validate_whatsapp(phone, LIMITS)


class TestScheduleValidation:
    def test_today_is_allowed(self):
        assert validate_date(TODAY.isoformat(), TODAY) is None

    def test_past_date_rejected(self):
        assert "past" in validate_date("2025-01-09", TODAY)

    def test_malformed_date_rejected(self):
        assert "YYYY-MM-DD" in validate_date("14/02/2025", TODAY)

    @pytest.mark.parametrize("value", ["09:00", "09:30", "23:30", "00:00"])
    def test_slot_times(self, value):
        assert validate_time(value, 30) is None

    @pytest.mark.parametrize("value", ["10:15", "10:45"])
    def test_off_slot_times(self, value):
        assert "30-minute" in validate_time(value, 30)

    @pytest.mark.parametrize("value", ["24:00", "10:60", "ten", "9:30", "9:00"])
    def test_malformed_times(self, value):
        assert "HH:MM" in validate_time(value, 30)

    def test_location_must_be_url(self):
        assert validate_location_link("https://maps.google.com/?q=monas") is None
        assert "valid URL" in validate_location_link("my backyard")

    def test_outdoor_match_is_case_insensitive(self):
        assert is_outdoor("Outdoor Session")
        assert is_outdoor("Prewedding OUTDOOR")
        assert not is_outdoor("Studio Indoor")


class TestStepRules:
    def test_service_required(self):
        errors = service_rules(Draft(), CTX)
        assert [e.field for e in errors] == ["service_id"]

    def test_outdoor_session_requires_location(self):
        draft = _draft("Outdoor Session", date="2025-02-14", time="10:00")
        errors = schedule_rules(draft, CTX)
        assert [e.field for e in errors] == ["location_link"]
        assert "required" in errors[0].message

    def test_indoor_session_skips_location(self):
        draft = _draft("Studio Indoor", date="2025-02-14", time="10:00")
        assert schedule_rules(draft, CTX) == []

    def test_contact_rules_collect_every_error(self):
        draft = _draft(name="", whatsapp="", notes="x" * 501)
        fields = {e.field for e in contact_rules(draft, CTX)}
        assert fields == {"name", "whatsapp", "notes"}

    def test_zero_down_payment_fails_with_proof_present(self):
        draft = _draft(
            dp_amount="0",
            proof_file=ProofFile("proof.png", PNG_BYTES, "image/png"),
            totals=PriceBreakdown(service_base_price=500000, total_price=500000),
        )
        errors = payment_rules(draft, CTX)
        assert [e.field for e in errors] == ["dp_amount"]
        assert "at least Rp 10.000" in errors[0].message

    def test_missing_proof(self):
        draft = _draft(dp_amount="50000", totals=PriceBreakdown(total_price=500000))
        errors = payment_rules(draft, CTX)
        assert [e.field for e in errors] == ["proof_file"]


class TestDownPayment:
    def test_accepts_dotted_amount(self):
        assert validate_dp_amount("150.000", 500000, settings.pricing) is None

    def test_exceeding_total_rejected(self):
        assert "exceed" in validate_dp_amount("600000", 500000, settings.pricing)

    def test_non_numeric_rejected(self):
        assert "number" in validate_dp_amount("lima puluh", 500000, settings.pricing)

    def test_fractional_amount_rejected(self):
        assert "whole number" in validate_dp_amount("10000.50", 500000, settings.pricing)

    def test_required(self):
        assert "required" in validate_dp_amount("", 500000, settings.pricing)

    def test_exact_minimum_allowed(self):
        assert validate_dp_amount("10000", 500000, settings.pricing) is None


class TestRuleContext:
    def test_defaults_to_settings(self):
        ctx = RuleContext(today=date(2030, 1, 1))
        assert ctx.limits == settings.validation
        assert ctx.pricing == settings.pricing
