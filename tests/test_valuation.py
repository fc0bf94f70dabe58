"""Tests for finmetrics.metrics.valuation."""

from __future__ import annotations

import math
from typing import Any

import pytest

from finmetrics.data.models import FinancialSnapshot
from finmetrics.metrics.valuation import (
    ValuationMetrics,
    analyze_valuation,
    calculate_enterprise_value,
    calculate_justified_pb,
    calculate_justified_pe,
    calculate_pe_ratio,
    calculate_peg_ratio,
    compute_valuation,
    interpret_premium,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_snapshot(**overrides: Any) -> FinancialSnapshot:
    kwargs: dict[str, Any] = {
        "symbol": "TEST",
        "price": 20.0,
        "eps": 1.04,
        "market_cap": 2000.0,
        "dividend_rate": 0.3,
        "revenue": 1000.0,
        "ebitda": 200.0,
        "ebit": 150.0,
        "net_income": 104.0,
        "total_assets": 2000.0,
        "current_assets": 800.0,
        "total_liabilities": 1000.0,
        "cash": 150.0,
        "total_debt": 500.0,
        "total_equity": 1000.0,
        "operating_cash_flow": 180.0,
        "free_cash_flow": 120.0,
        "dividends_paid": -30.0,
        "shares_outstanding": 100.0,
        "historical_eps": (0.90, 1.04),
    }
    kwargs.update(overrides)
    return FinancialSnapshot(**kwargs)


@pytest.fixture()
def metrics() -> ValuationMetrics:
    return compute_valuation(_make_snapshot())


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


class TestPeRatio:

    def test_derived_from_eps(self) -> None:
        assert calculate_pe_ratio(_make_snapshot()) == pytest.approx(20 / 1.04)

    def test_reported_pe_wins(self) -> None:
        assert calculate_pe_ratio(_make_snapshot(pe=15.0)) == 15.0

    def test_negative_earnings(self) -> None:
        assert calculate_pe_ratio(_make_snapshot(eps=-1.0)) is None
        assert calculate_pe_ratio(_make_snapshot(pe=-8.0)) is None


class TestEnterpriseValue:

    def test_formula(self) -> None:
        assert calculate_enterprise_value(2000.0, 500.0, 150.0) == 2350.0

    def test_missing_debt_and_cash_treated_as_zero(self) -> None:
        assert calculate_enterprise_value(2000.0, None, None) == 2000.0

    def test_requires_market_cap(self) -> None:
        assert calculate_enterprise_value(None, 500.0, 150.0) is None


class TestJustifiedMultiples:

    def test_justified_pe(self) -> None:
        assert calculate_justified_pe(0.4, 0.10, 0.025) == pytest.approx(0.6 / 0.075)

    def test_justified_pb(self) -> None:
        assert calculate_justified_pb(0.15, 0.10, 0.025) == pytest.approx(0.125 / 0.075)

    def test_required_return_must_exceed_growth(self) -> None:
        assert calculate_justified_pe(0.4, 0.02, 0.025) is None
        assert calculate_justified_pb(0.15, 0.025, 0.025) is None

    def test_missing_inputs(self) -> None:
        assert calculate_justified_pe(None, 0.10, 0.025) is None
        assert calculate_justified_pb(None, 0.10, 0.025) is None


class TestPegRatio:

    def test_growth_in_percent(self) -> None:
        assert calculate_peg_ratio(20.0, 0.10) == pytest.approx(2.0)

    def test_non_positive_growth(self) -> None:
        assert calculate_peg_ratio(20.0, 0.0) is None
        assert calculate_peg_ratio(20.0, -0.05) is None


# ---------------------------------------------------------------------------
# compute_valuation
# ---------------------------------------------------------------------------


class TestComputeValuation:

    def test_price_multiples(self, metrics: ValuationMetrics) -> None:
        assert metrics.pe_ratio == pytest.approx(20 / 1.04)
        assert metrics.pb_ratio == pytest.approx(2.0)
        assert metrics.ps_ratio == pytest.approx(2.0)
        assert metrics.pcf_ratio == pytest.approx(20 / 1.8)
        assert metrics.earnings_yield == pytest.approx(1.04 / 20)

    def test_enterprise_multiples(self, metrics: ValuationMetrics) -> None:
        assert metrics.enterprise_value == pytest.approx(2350.0)
        assert metrics.ev_to_ebitda == pytest.approx(11.75)
        assert metrics.ev_to_sales == pytest.approx(2.35)
        assert metrics.ev_to_ebit == pytest.approx(2350 / 150)
        assert metrics.ev_to_fcf == pytest.approx(2350 / 120)
        assert metrics.price_to_fcf == pytest.approx(2000 / 120)

    def test_dividend_yield_from_rate(self, metrics: ValuationMetrics) -> None:
        assert metrics.dividend_yield == pytest.approx(0.015)

    def test_reported_dividend_yield_wins(self) -> None:
        metrics = compute_valuation(_make_snapshot(dividend_yield=0.02))
        assert metrics.dividend_yield == 0.02

    def test_peg_from_eps_history(self, metrics: ValuationMetrics) -> None:
        growth = 1.04 / 0.90 - 1
        assert metrics.peg_ratio == pytest.approx((20 / 1.04) / (growth * 100))

    def test_justified_multiples_default_cost_of_equity(self, metrics: ValuationMetrics) -> None:
        payout = 30 / 104
        assert metrics.justified_pe == pytest.approx((1 - payout) / 0.075)
        assert metrics.justified_pb == pytest.approx((0.104 - 0.025) / 0.075)

    def test_cost_of_equity_override(self) -> None:
        metrics = compute_valuation(_make_snapshot(), cost_of_equity=0.02)
        assert metrics.justified_pe is None
        assert metrics.justified_pb is None

    def test_asset_based(self, metrics: ValuationMetrics) -> None:
        assert metrics.tobins_q == pytest.approx(1.0)
        assert metrics.graham_number == pytest.approx(math.sqrt(22.5 * 1.04 * 10.0))
        assert metrics.net_current_asset_value == pytest.approx(-2.0)

    def test_forward_pe(self) -> None:
        metrics = compute_valuation(_make_snapshot(forward_eps=1.25))
        assert metrics.forward_pe == pytest.approx(16.0)

    def test_negative_ebitda(self) -> None:
        assert compute_valuation(_make_snapshot(ebitda=-5.0)).ev_to_ebitda is None

    def test_loss_making_company(self) -> None:
        metrics = compute_valuation(_make_snapshot(eps=-0.5))
        assert metrics.pe_ratio is None
        assert metrics.peg_ratio is None
        assert metrics.earnings_yield is None
        assert metrics.graham_number is None

    def test_empty_snapshot(self) -> None:
        metrics = compute_valuation(FinancialSnapshot())
        assert metrics.pe_ratio is None
        assert metrics.enterprise_value is None
        assert metrics.justified_pe is not None  # no dividends: payout 0


# ---------------------------------------------------------------------------
# Premium analysis
# ---------------------------------------------------------------------------


class TestInterpretPremium:

    def test_bands(self) -> None:
        assert "significantly overvalued" in interpret_premium(0.6, "P/E")
        assert "moderately overvalued" in interpret_premium(0.3, "P/E")
        assert interpret_premium(0.1, "P/E") == "P/E fairly valued (10.0% premium)"
        assert interpret_premium(-0.1, "P/E") == "P/E fairly valued (10.0% discount)"
        assert "moderately undervalued" in interpret_premium(-0.3, "P/E")
        assert "significantly undervalued" in interpret_premium(-0.6, "P/E")

    def test_missing(self) -> None:
        assert interpret_premium(None, "P/B") == "Insufficient data"


class TestAnalyzeValuation:

    def test_compares_pe_and_pb(self, metrics: ValuationMetrics) -> None:
        comparisons = analyze_valuation(metrics)
        assert [c.metric for c in comparisons] == ["P/E", "P/B"]
        pe = comparisons[0]
        assert pe.premium == pytest.approx((pe.actual - pe.justified) / pe.justified)
        assert "overvalued" in pe.interpretation

    def test_skips_missing_pairs(self) -> None:
        comparisons = analyze_valuation(ValuationMetrics(pe_ratio=15.0, pb_ratio=2.0, justified_pb=2.0))
        assert len(comparisons) == 1
        assert comparisons[0].metric == "P/B"
        assert comparisons[0].premium == pytest.approx(0.0)
