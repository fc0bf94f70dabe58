"""Tests for finmetrics.analysis.dcf."""

from __future__ import annotations

from typing import Any

import pytest

from finmetrics.analysis.dcf import (
    DCFInput,
    calculate_beta,
    calculate_capital_weights,
    calculate_cost_of_debt,
    calculate_cost_of_equity,
    calculate_dcf,
    calculate_effective_tax_rate,
    calculate_fcf_growth_rate,
    calculate_implied_growth_rate,
    calculate_simple_dcf,
    calculate_terminal_value,
    calculate_wacc,
    interpret_dcf,
    project_cash_flows,
    sensitivity_analysis,
)
from finmetrics.config import DCFConfig, SensitivityRange

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_input(**overrides: Any) -> DCFInput:
    kwargs: dict[str, Any] = {
        "price": 40.0,
        "market_cap": 4000.0,
        "shares_outstanding": 100.0,
        "total_debt": 1000.0,
        "cash": 200.0,
        "interest_expense": 50.0,
        "income_tax": 210.0,
        "pretax_income": 1000.0,
        "free_cash_flow": 121.0,
        "historical_fcf": (100.0, 110.0, 121.0),
        "beta": 1.2,
        "risk_free_rate": 0.04,
    }
    kwargs.update(overrides)
    return DCFInput(**kwargs)


# ---------------------------------------------------------------------------
# Cost of capital
# ---------------------------------------------------------------------------


class TestCostOfCapital:

    def test_capm(self) -> None:
        assert calculate_cost_of_equity(0.04, 1.2, 0.055) == pytest.approx(0.106)

    def test_capm_missing_beta(self) -> None:
        assert calculate_cost_of_equity(0.04, None, 0.055) is None

    def test_cost_of_debt(self) -> None:
        assert calculate_cost_of_debt(50.0, 1000.0) == pytest.approx(0.05)

    def test_cost_of_debt_without_debt(self) -> None:
        assert calculate_cost_of_debt(50.0, 0.0) is None

    def test_beta_from_returns(self) -> None:
        market = [0.01, -0.02, 0.03, 0.005]
        stock = [2 * r for r in market]
        assert calculate_beta(stock, market) == pytest.approx(2.0)

    def test_beta_of_series_against_itself(self) -> None:
        returns = [0.01, -0.02, 0.03, 0.005, -0.004]
        assert calculate_beta(returns, returns) == pytest.approx(1.0)

    def test_beta_flat_market(self) -> None:
        assert calculate_beta([0.01, 0.02], [0.01, 0.01]) is None

    def test_capital_weights(self) -> None:
        we, wd = calculate_capital_weights(4000.0, 1000.0)
        assert we == pytest.approx(0.8)
        assert wd == pytest.approx(0.2)

    def test_capital_weights_missing(self) -> None:
        assert calculate_capital_weights(None, 1000.0) == (None, None)
        assert calculate_capital_weights(0.0, 0.0) == (None, None)

    def test_wacc(self) -> None:
        wacc = calculate_wacc(0.106, 0.05, 0.21, 0.8, 0.2)
        assert wacc == pytest.approx(0.8 * 0.106 + 0.2 * 0.05 * 0.79)

    def test_wacc_defaults_missing_tax_rate(self) -> None:
        assert calculate_wacc(0.10, 0.05, None, 0.5, 0.5) == pytest.approx(
            0.5 * 0.10 + 0.5 * 0.05 * 0.79
        )

    def test_wacc_missing_cost_of_debt(self) -> None:
        assert calculate_wacc(0.10, None, 0.21, 1.0, 0.0) is None


class TestEffectiveTaxRate:

    def test_ratio(self) -> None:
        assert calculate_effective_tax_rate(250.0, 1000.0) == pytest.approx(0.25)

    def test_override(self) -> None:
        assert calculate_effective_tax_rate(250.0, 1000.0, override=0.3) == 0.3

    def test_out_of_range_uses_default(self) -> None:
        assert calculate_effective_tax_rate(-50.0, 1000.0) == 0.21
        assert calculate_effective_tax_rate(150.0, 100.0) == 0.21

    def test_undefined(self) -> None:
        assert calculate_effective_tax_rate(10.0, 0.0) is None
        assert calculate_effective_tax_rate(None, 100.0) is None


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


class TestFcfGrowthRate:

    def test_cagr_with_three_points(self) -> None:
        assert calculate_fcf_growth_rate([100.0, 110.0, 121.0]) == pytest.approx(0.10)

    def test_yoy_with_two_points(self) -> None:
        assert calculate_fcf_growth_rate([100.0, 120.0]) == pytest.approx(0.20)

    def test_falls_back_to_yoy_when_cagr_undefined(self) -> None:
        # Negative start makes CAGR undefined.
        assert calculate_fcf_growth_rate([-50.0, 100.0, 120.0]) == pytest.approx(0.20)

    def test_override(self) -> None:
        assert calculate_fcf_growth_rate([1.0], override=0.07) == 0.07

    def test_insufficient_history(self) -> None:
        assert calculate_fcf_growth_rate([100.0]) is None


class TestProjectCashFlows:

    def test_growth_fades_to_terminal(self) -> None:
        projections = project_cash_flows(121.0, 0.10, 0.025, 0.09, 5)
        rates = [p.growth_rate for p in projections]
        assert rates == pytest.approx([0.10, 0.085, 0.07, 0.055, 0.04])

    def test_compounding_and_discounting(self) -> None:
        projections = project_cash_flows(100.0, 0.10, 0.10, 0.10, 2)
        assert projections[0].fcf == pytest.approx(110.0)
        assert projections[1].fcf == pytest.approx(121.0)
        assert projections[1].discount_factor == pytest.approx(1 / 1.21)
        assert projections[1].present_value == pytest.approx(100.0)

    def test_years_numbered_from_one(self) -> None:
        projections = project_cash_flows(100.0, 0.05, 0.02, 0.08, 3)
        assert [p.year for p in projections] == [1, 2, 3]

    def test_missing_inputs(self) -> None:
        assert project_cash_flows(None, 0.05, 0.02, 0.08, 5) == []
        assert project_cash_flows(100.0, None, 0.02, 0.08, 5) == []
        assert project_cash_flows(100.0, 0.05, 0.02, None, 5) == []


class TestTerminalValue:

    def test_gordon_growth(self) -> None:
        assert calculate_terminal_value(100.0, 0.10, 0.02) == pytest.approx(1275.0)

    def test_undefined_when_wacc_not_above_growth(self) -> None:
        assert calculate_terminal_value(100.0, 0.02, 0.02) is None
        assert calculate_terminal_value(100.0, 0.01, 0.02) is None


class TestImpliedGrowth:

    def test_reverse_dcf(self) -> None:
        g = calculate_implied_growth_rate(100.0, 5.0, 0.10)
        assert g == pytest.approx(5.0 / 105.0)
        # The implied growth reproduces the price.
        assert 5.0 * (1 + g) / (0.10 - g) == pytest.approx(100.0)

    def test_missing(self) -> None:
        assert calculate_implied_growth_rate(100.0, None, 0.10) is None


# ---------------------------------------------------------------------------
# Full model
# ---------------------------------------------------------------------------


class TestCalculateDcf:

    def test_cost_of_capital_stages(self) -> None:
        result = calculate_dcf(_make_input(), DCFConfig())
        assert result.cost_of_equity == pytest.approx(0.106)
        assert result.cost_of_debt == pytest.approx(0.05)
        assert result.effective_tax_rate == pytest.approx(0.21)
        assert result.wacc == pytest.approx(0.0927)

    def test_valuation_chain(self) -> None:
        result = calculate_dcf(_make_input(), DCFConfig())
        assert len(result.projected_cash_flows) == 5
        assert result.fcf_growth_rate == pytest.approx(0.10)
        assert result.enterprise_value == pytest.approx(
            result.sum_of_pv_fcf + result.terminal_value_pv
        )
        assert result.equity_value == pytest.approx(result.enterprise_value - 800.0)
        assert result.intrinsic_value == pytest.approx(result.equity_value / 100.0)
        assert result.margin_of_safety == pytest.approx(
            (result.intrinsic_value - 40.0) / result.intrinsic_value
        )

    def test_target_price_prefers_analyst(self) -> None:
        result = calculate_dcf(_make_input(analyst_target_price=55.0), DCFConfig())
        assert result.target_price == 55.0
        assert result.upside_downside == pytest.approx(15.0 / 40.0)

    def test_target_price_falls_back_to_intrinsic(self) -> None:
        config = DCFConfig(use_analyst_target=False)
        result = calculate_dcf(_make_input(analyst_target_price=55.0), config)
        assert result.target_price == result.intrinsic_value

    def test_regression_beta_preferred(self) -> None:
        market = (0.01, -0.02, 0.03, 0.005)
        result = calculate_dcf(
            _make_input(stock_returns=tuple(1.5 * r for r in market), market_returns=market),
            DCFConfig(),
        )
        assert result.beta == pytest.approx(1.5)

    def test_debt_free_company_has_no_wacc(self) -> None:
        result = calculate_dcf(_make_input(total_debt=0.0), DCFConfig())
        assert result.wacc is None
        assert result.projected_cash_flows == []
        assert result.intrinsic_value is None
        assert result.margin_of_safety is None

    def test_terminal_value_undefined_when_wacc_below_growth(self) -> None:
        config = DCFConfig(terminal_growth_rate=0.12)
        result = calculate_dcf(_make_input(), config)
        assert result.projected_cash_flows
        assert result.terminal_value is None
        assert result.enterprise_value is None
        assert result.intrinsic_value is None

    def test_echoes_config(self) -> None:
        config = DCFConfig(projection_years=7, terminal_growth_rate=0.02)
        result = calculate_dcf(_make_input(), config)
        assert result.projection_years == 7
        assert result.terminal_growth_rate == 0.02
        assert len(result.projected_cash_flows) == 7


class TestSimpleDcf:

    def test_flat_growth_matches_gordon(self) -> None:
        value = calculate_simple_dcf(100.0, 0.02, 0.02, 0.10, 1, 0.0, 1.0)
        assert value == pytest.approx(100.0 * 1.02 / 0.08)

    def test_net_debt_and_shares(self) -> None:
        value = calculate_simple_dcf(100.0, 0.02, 0.02, 0.10, 1, 275.0, 10.0)
        assert value == pytest.approx(100.0)

    def test_wacc_not_above_growth(self) -> None:
        assert calculate_simple_dcf(100.0, 0.05, 0.03, 0.03, 5, 0.0, 1.0) is None


class TestSensitivity:

    def test_grid_shape_and_undefined_cells(self) -> None:
        grid = sensitivity_analysis(
            _make_input(),
            DCFConfig(),
            SensitivityRange(0.02, 0.08, 4),
            SensitivityRange(0.01, 0.04, 4),
        )
        assert len(grid.wacc_values) == 4
        assert len(grid.terminal_growth_values) == 4
        assert len(grid.enterprise_values) == 4
        assert all(len(row) == 4 for row in grid.enterprise_values)
        assert grid.enterprise_values[0][3] is None
        assert grid.enterprise_values[3][0] is not None

    def test_cells_use_their_own_growth(self) -> None:
        config = DCFConfig()
        grid = sensitivity_analysis(
            _make_input(),
            config,
            SensitivityRange(0.09, 0.09, 1),
            SensitivityRange(0.01, 0.03, 2),
        )
        low, high = grid.enterprise_values[0]
        assert low == pytest.approx(
            calculate_simple_dcf(121.0, 0.10, 0.01, 0.09, 5, 0.0, 1.0)
        )
        assert high == pytest.approx(
            calculate_simple_dcf(121.0, 0.10, 0.03, 0.09, 5, 0.0, 1.0)
        )
        assert high > low


class TestInterpretDcf:

    def test_deep_discount(self) -> None:
        result = interpret_dcf(250.0, 100.0, 0.6)
        assert result.valuation == "undervalued"
        assert result.confidence == "high"
        assert result.upside_percentage == pytest.approx(150.0)

    def test_modest_discount(self) -> None:
        result = interpret_dcf(125.0, 100.0, 0.2)
        assert result.valuation == "undervalued"
        assert result.confidence == "medium"

    def test_fair(self) -> None:
        assert interpret_dcf(100.0, 100.0, 0.0).valuation == "fairly valued"

    def test_overvalued(self) -> None:
        result = interpret_dcf(100.0, 120.0, -0.2)
        assert result.valuation == "overvalued"
        assert result.confidence == "medium"

    def test_deeply_overvalued(self) -> None:
        result = interpret_dcf(100.0, 150.0, -0.5)
        assert result.valuation == "overvalued"
        assert result.confidence == "high"

    def test_insufficient_data(self) -> None:
        result = interpret_dcf(None, 100.0, None)
        assert result.confidence == "low"
        assert result.upside_percentage is None
        assert "Insufficient" in result.recommendation
