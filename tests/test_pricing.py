"""Tests for the pricing calculator."""

import pytest

from photobook.pricing import calculator
from photobook.schemas import AddonSelection, AppliedCoupon, CouponVerdict, ServiceSnapshot

SERVICE = ServiceSnapshot(id="svc-1", name="Studio", base_price=500000, discount_value=50000)
TWO_ALBUMS = AddonSelection(addon_id="a-1", name="Album", quantity=2, price_at_booking=100000)


class TestComponents:
    def test_missing_service_contributes_zero(self):
        assert calculator.base_price(None) == 0
        assert calculator.base_discount(None) == 0

    def test_addons_total_multiplies_quantity(self):
        extra = AddonSelection(addon_id="a-2", name="MUA", quantity=1, price_at_booking=150000)
        assert calculator.addons_total([TWO_ALBUMS, extra]) == 350000

    def test_subtotal_excludes_coupon(self):
        assert calculator.subtotal_for_coupon(SERVICE, [TWO_ALBUMS]) == 650000

    def test_invalid_verdict_contributes_nothing(self):
        verdict = CouponVerdict(valid=False, discount_amount=99000, reason="expired")
        assert calculator.coupon_discount(verdict) == 0

    def test_valid_verdict_discount(self):
        verdict = CouponVerdict(valid=True, discount_amount=75000)
        assert calculator.coupon_discount(verdict) == 75000


class TestTotal:
    def test_fixed_coupon_total(self):
        coupon = AppliedCoupon(code="POTONG75", discount_amount=75000)
        assert calculator.total(SERVICE, [TWO_ALBUMS], coupon) == 575000

    def test_coupon_larger_than_subtotal_clamps_to_zero(self):
        coupon = AppliedCoupon(code="HUGE", discount_amount=700000)
        assert calculator.total(SERVICE, [TWO_ALBUMS], coupon) == 0

    def test_no_service_no_addons_is_zero(self):
        assert calculator.total(None, []) == 0

    def test_breakdown_fields(self):
        coupon = AppliedCoupon(code="POTONG75", discount_amount=75000)
        b = calculator.breakdown(SERVICE, [TWO_ALBUMS], coupon)
        assert b.service_base_price == 500000
        assert b.base_discount == 50000
        assert b.addons_total == 200000
        assert b.coupon_discount == 75000
        assert b.total_price == 575000

    def test_breakdown_accepts_generator(self):
        b = calculator.breakdown(SERVICE, (a for a in [TWO_ALBUMS]))
        assert b.addons_total == 200000
        assert b.total_price == 650000


class TestRemainingBalance:
    def test_positive_balance(self):
        assert calculator.remaining_balance(575000, 100000) == 475000

    def test_overpayment_is_not_clamped(self):
        assert calculator.remaining_balance(100000, 150000) == -50000


class TestParseAmount:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("150000", 150000),
            ("150.000", 150000),
            ("1,500,000", 1500000),
            (" 25 000 ", 25000),
            ("0", 0),
            ("-5000", -5000),
            (42, 42),
        ],
    )
    def test_numeric_inputs(self, text, expected):
        assert calculator.parse_amount(text) == expected

    @pytest.mark.parametrize(
        "text", ["", "   ", "abc", "12a", None, "١٢٣", "10000.50", "150,5", "1.50.000", "150."]
    )
    def test_non_numeric_inputs(self, text):
        assert calculator.parse_amount(text) is None
