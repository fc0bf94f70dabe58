"""Tests for finmetrics.analysis.risk."""

from __future__ import annotations

import math

import pandas as pd
import pytest

from finmetrics.analysis.risk import (
    RiskInput,
    RiskResult,
    calculate_annualized_return,
    calculate_cvar,
    calculate_dollar_var,
    calculate_max_drawdown,
    calculate_returns,
    calculate_risk,
    calculate_risk_score,
    calculate_sharpe_ratio,
    calculate_sortino_ratio,
    calculate_var,
    interpret_risk,
    risk_input_from_snapshot,
)
from finmetrics.config import RiskConfig
from finmetrics.data.models import FinancialSnapshot

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _prices_from_returns(returns: list[float], start: float = 100.0) -> tuple[float, ...]:
    prices = [start]
    for r in returns:
        prices.append(prices[-1] * (1 + r))
    return tuple(prices)


def _alternating(up: float, down: float, pairs: int) -> list[float]:
    return [up, down] * pairs


def _make_input(**overrides: object) -> RiskInput:
    stock = _prices_from_returns(_alternating(0.02, -0.01, 20))
    market = _prices_from_returns(_alternating(0.01, -0.005, 20))
    kwargs: dict[str, object] = {
        "prices": stock,
        "market_prices": market,
        "dates": tuple(f"2024-01-{i + 1:02d}" for i in range(len(stock))),
        "risk_free_rate": 0.0,
    }
    kwargs.update(overrides)
    return RiskInput(**kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


class TestReturns:

    def test_simple_returns(self) -> None:
        assert calculate_returns([100.0, 110.0, 99.0]) == pytest.approx([0.1, -0.1])

    def test_skips_non_positive_base(self) -> None:
        assert calculate_returns([0.0, 10.0, 11.0]) == pytest.approx([0.1])

    def test_too_short(self) -> None:
        assert calculate_returns([100.0]) == []


class TestMaxDrawdown:

    def test_largest_decline(self) -> None:
        prices = [100.0, 120.0, 90.0, 130.0, 117.0]
        assert calculate_max_drawdown(prices) == pytest.approx(-0.25)

    def test_recovery_after_trough(self) -> None:
        assert calculate_max_drawdown([100.0, 120.0, 80.0, 90.0]) == pytest.approx(-1 / 3)

    def test_rising_series(self) -> None:
        assert calculate_max_drawdown([1.0, 2.0, 3.0]) == 0.0

    def test_empty(self) -> None:
        assert calculate_max_drawdown([]) is None


class TestValueAtRisk:

    @pytest.fixture()
    def returns(self) -> list[float]:
        return [(i - 10) / 100 for i in range(20)]

    def test_var_percentile(self, returns: list[float]) -> None:
        # floor(20 * 0.05) = 1 -> second-worst return
        assert calculate_var(returns, 0.95) == pytest.approx(-0.09)

    def test_cvar_mean_of_tail(self, returns: list[float]) -> None:
        assert calculate_cvar(returns, 0.95) == pytest.approx(-0.095)

    def test_var_at_one_hundred_returns(self) -> None:
        returns = [(50 - i) / 1000 for i in range(100)]
        ordered = sorted(returns)
        assert calculate_var(returns, 0.95) == ordered[5]
        assert calculate_var(returns, 0.99) == ordered[1]
        assert calculate_cvar(returns, 0.95) == pytest.approx(sum(ordered[:6]) / 6)

    def test_short_series(self, returns: list[float]) -> None:
        assert calculate_var(returns[:19]) is None
        assert calculate_cvar(returns[:19]) is None

    def test_dollar_var(self) -> None:
        assert calculate_dollar_var(-0.05, -0.08, 1000.0) == pytest.approx(50.0)
        assert calculate_dollar_var(-0.05, -0.08, 1000.0, confidence=0.99) == pytest.approx(80.0)
        assert calculate_dollar_var(-0.05, -0.08, None) is None


class TestRatios:

    def test_sharpe(self) -> None:
        result = calculate_sharpe_ratio([0.01, 0.03], 0.0, 252)
        assert result == pytest.approx(2 * math.sqrt(252))

    def test_sharpe_subtracts_period_risk_free(self) -> None:
        result = calculate_sharpe_ratio([0.01, 0.03], 2.52, 252)
        assert result == pytest.approx((0.02 - 0.01) / 0.01 * math.sqrt(252))

    def test_sharpe_zero_volatility(self) -> None:
        assert calculate_sharpe_ratio([0.01, 0.01], 0.0) is None

    def test_sortino(self) -> None:
        down = math.sqrt(0.0001 / 2)
        expected = 0.005 / down * math.sqrt(252)
        assert calculate_sortino_ratio([0.02, -0.01], 0.0, 252) == pytest.approx(expected)

    def test_sortino_without_downside(self) -> None:
        assert calculate_sortino_ratio([0.01, 0.02], 0.0) is None

    def test_annualized_return(self) -> None:
        assert calculate_annualized_return(0.01, 12) == pytest.approx(1.01 ** 12 - 1)
        assert calculate_annualized_return(None, 12) is None


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TestCalculateRisk:

    def test_short_history_reports_supplied_beta_only(self) -> None:
        risk_input = RiskInput(prices=tuple(float(p) for p in range(100, 110)), supplied_beta=1.3)
        result = calculate_risk(risk_input, RiskConfig())
        assert result.data_points == 9
        assert result.beta == 1.3
        assert result.standard_deviation is None
        assert result.sharpe_ratio is None

    def test_short_history_without_supplied_beta_preference(self) -> None:
        risk_input = RiskInput(prices=(100.0, 101.0), supplied_beta=1.3)
        result = calculate_risk(risk_input, RiskConfig(use_supplied_beta=False))
        assert result.beta is None

    def test_regression_beta_and_correlation(self) -> None:
        result = calculate_risk(_make_input(), RiskConfig(use_supplied_beta=False))
        assert result.beta == pytest.approx(2.0)
        assert result.correlation == pytest.approx(1.0)
        assert result.r_squared == pytest.approx(1.0)

    def test_supplied_beta_preferred(self) -> None:
        result = calculate_risk(_make_input(supplied_beta=0.8), RiskConfig())
        assert result.beta == 0.8

    def test_moments(self) -> None:
        result = calculate_risk(_make_input(), RiskConfig())
        assert result.data_points == 40
        assert result.average_return == pytest.approx(0.005)
        assert result.standard_deviation == pytest.approx(0.015)
        assert result.annualized_volatility == pytest.approx(0.015 * math.sqrt(252))

    def test_win_rate(self) -> None:
        result = calculate_risk(_make_input(), RiskConfig())
        assert result.positive_returns == 20
        assert result.negative_returns == 20
        assert result.win_rate == pytest.approx(0.5)

    def test_tail_risk(self) -> None:
        result = calculate_risk(_make_input(position_value=10_000.0), RiskConfig())
        assert result.var_95 == pytest.approx(-0.01)
        assert result.var_99 == pytest.approx(-0.01)
        assert result.cvar_95 == pytest.approx(-0.01)
        assert result.dollar_var == pytest.approx(100.0)

    def test_tail_risk_matches_building_blocks(self) -> None:
        risk_input = _make_input()
        result = calculate_risk(risk_input, RiskConfig())
        returns = calculate_returns(risk_input.prices)
        assert result.var_95 == calculate_var(returns, 0.95)
        assert result.var_99 == calculate_var(returns, 0.99)
        assert result.cvar_95 == calculate_cvar(returns, 0.95)

    def test_dates(self) -> None:
        result = calculate_risk(_make_input(), RiskConfig())
        assert result.start_date == "2024-01-01"
        assert result.end_date == "2024-01-41"

    def test_mismatched_market_leaves_correlation_unset(self) -> None:
        risk_input = _make_input(market_prices=(100.0, 101.0, 102.0))
        result = calculate_risk(risk_input, RiskConfig(use_supplied_beta=False))
        assert result.beta is None
        assert result.correlation is None

    def test_min_data_points_configurable(self) -> None:
        risk_input = RiskInput(prices=_prices_from_returns(_alternating(0.02, -0.01, 3)))
        result = calculate_risk(risk_input, RiskConfig(min_data_points=5))
        assert result.standard_deviation is not None
        assert result.var_95 is None


class TestRiskInputFromSnapshot:

    def test_extracts_series(self) -> None:
        snapshot = FinancialSnapshot(
            symbol="X",
            beta=1.1,
            position_value=500.0,
            price_history=pd.DataFrame({
                "date": ["2024-01-01", "2024-01-02"],
                "close": [10.0, 11.0],
            }),
            market_price_history=pd.DataFrame({
                "date": ["2024-01-01", "2024-01-02"],
                "close": [100.0, 101.0],
            }),
        )
        risk_input = risk_input_from_snapshot(snapshot, 0.03)
        assert risk_input.prices == (10.0, 11.0)
        assert risk_input.market_prices == (100.0, 101.0)
        assert risk_input.dates == ("2024-01-01", "2024-01-02")
        assert risk_input.risk_free_rate == 0.03
        assert risk_input.supplied_beta == 1.1
        assert risk_input.position_value == 500.0

    def test_empty_histories(self) -> None:
        risk_input = risk_input_from_snapshot(FinancialSnapshot(), 0.04)
        assert risk_input.prices == ()
        assert risk_input.market_prices == ()
        assert risk_input.dates == ()


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestRiskScore:

    def test_mean_of_sub_scores(self) -> None:
        result = RiskResult(
            beta=1.0,
            annualized_volatility=0.25,
            max_drawdown=-0.25,
            sharpe_ratio=1.0,
            var_95=-0.05,
        )
        assert calculate_risk_score(result) == pytest.approx(50.0)

    def test_sub_scores_clamped(self) -> None:
        assert calculate_risk_score(RiskResult(beta=4.0)) == pytest.approx(100.0)
        assert calculate_risk_score(RiskResult(sharpe_ratio=5.0)) == pytest.approx(0.0)

    def test_no_data(self) -> None:
        assert calculate_risk_score(RiskResult()) is None


class TestInterpretRisk:

    def test_levels(self) -> None:
        assert interpret_risk(RiskResult(beta=0.2)).level == "very low"
        assert interpret_risk(RiskResult(beta=1.0)).level == "moderate"
        assert interpret_risk(RiskResult(beta=4.0)).level == "very high"

    def test_details(self) -> None:
        result = interpret_risk(RiskResult(beta=0.3, sharpe_ratio=1.5, max_drawdown=-0.3))
        assert any("Low beta" in d for d in result.details)
        assert any("Good risk-adjusted return" in d for d in result.details)
        assert any("High maximum drawdown" in d for d in result.details)

    def test_insufficient_data(self) -> None:
        result = interpret_risk(RiskResult())
        assert result.level == "moderate"
        assert result.score is None
        assert "Insufficient" in result.summary
