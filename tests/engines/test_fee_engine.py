"""
Tests for settlement_engines.fees.

Fee breakdown, revenue gating and the signed total.
"""

from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from settlement_engines.fees import APP_FEE, LEAGUE_FEE, compute_fees, fee_rates_from_rows
from settlement_kernel.domain.entities import FeeRateConfig

RATES = FeeRateConfig(
    app_rate=Decimal("8"),
    league_rate=Decimal("10"),
    revenue_rate=Decimal("5"),
    revenue_app_rate=Decimal("2"),
)

money = st.decimals(min_value=-10**7, max_value=10**7, allow_nan=False, allow_infinity=False, places=2)
rate = st.decimals(min_value=0, max_value=100, allow_nan=False, allow_infinity=False, places=2)


class TestComputeFees:
    def test_reference_case(self):
        fees = compute_fees("333.33", "0", FeeRateConfig(app_rate=Decimal("8")))
        assert fees.app_fee == Decimal("26.67")
        assert fees.total_fees == Decimal("26.67")
        assert fees.total_fees_signed == Decimal("-26.67")

    def test_full_breakdown(self):
        fees = compute_fees("1000", "200", RATES)
        assert fees.app_fee == Decimal("80.00")
        assert fees.league_fee == Decimal("100.00")
        assert fees.revenue_fee == Decimal("10.00")
        assert fees.revenue_app_fee == Decimal("4.00")
        assert fees.total_fees == Decimal("194.00")

    def test_negative_revenue_is_gated(self):
        fees = compute_fees("1000", "-500", RATES)
        assert fees.revenue_fee == 0
        assert fees.revenue_app_fee == 0
        assert fees.total_fees == Decimal("180.00")

    def test_zero_rake_gives_zero_rake_fees(self):
        fees = compute_fees("0", "0", RATES)
        assert fees.total_fees == 0

    def test_logs_fees_computed(self, captured_logs):
        compute_fees("10", "-1", RATES)
        event = next(r for r in captured_logs() if r["message"] == "fees_computed")
        assert event["revenue_gated"] is True

    @given(rake=money, revenue=money, app=rate, league=rate, rev=rate, rev_app=rate)
    def test_signed_total_is_exact_negation(self, rake, revenue, app, league, rev, rev_app):
        fees = compute_fees(rake, revenue, FeeRateConfig(app, league, rev, rev_app))
        assert fees.total_fees_signed == -fees.total_fees

    @given(rake=money, revenue=st.decimals(max_value=0, min_value=-10**7, allow_nan=False, places=2), r=rate)
    def test_non_positive_revenue_never_charged(self, rake, revenue, r):
        fees = compute_fees(rake, revenue, FeeRateConfig(r, r, r, r))
        assert fees.revenue_fee == 0
        assert fees.revenue_app_fee == 0


class TestFeeRatesFromRows:
    def test_known_names(self):
        rates = fee_rates_from_rows({APP_FEE: "8", LEAGUE_FEE: 10, "unknown": 99})
        assert rates.app_rate == Decimal("8")
        assert rates.league_rate == Decimal("10")
        assert rates.revenue_rate == 0
