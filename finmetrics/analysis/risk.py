"""Risk and return statistics from price history.

Returns are simple period-over-period changes. Statistics are population
moments, annualized with the configured periods-per-year factor. Beta
and correlation are measured against a benchmark return series of the
same length.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from scipy.stats import linregress  # type: ignore[import-untyped]

from finmetrics.config import MIN_VAR_OBSERVATIONS, RiskConfig
from finmetrics.data.models import FinancialSnapshot
from finmetrics.kernel import (
    clamp,
    covariance,
    downside_deviation,
    mean,
    safe_divide,
    standard_deviation,
    variance,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskInput:
    """Price series consumed by the risk engine.

    Attributes:
        prices: Stock closes, chronological.
        market_prices: Benchmark closes over the same bars.
        dates: Bar dates aligned with prices.
        risk_free_rate: Annual decimal risk-free rate.
        supplied_beta: Pre-computed beta from the data provider.
        position_value: Position size for dollar VaR.
    """

    prices: tuple[float, ...] = ()
    market_prices: tuple[float, ...] = ()
    dates: tuple[str, ...] = ()
    risk_free_rate: float = 0.0
    supplied_beta: float | None = None
    position_value: float | None = None


@dataclass(frozen=True)
class RiskResult:
    """Risk analytics output. Statistics are None below the data floor."""

    beta: float | None = None
    standard_deviation: float | None = None
    annualized_volatility: float | None = None
    alpha: float | None = None
    sharpe_ratio: float | None = None
    sortino_ratio: float | None = None
    max_drawdown: float | None = None
    var_95: float | None = None
    var_99: float | None = None
    cvar_95: float | None = None
    dollar_var: float | None = None
    average_return: float | None = None
    annualized_return: float | None = None
    positive_returns: int = 0
    negative_returns: int = 0
    win_rate: float | None = None
    downside_deviation: float | None = None
    correlation: float | None = None
    r_squared: float | None = None
    data_points: int = 0
    start_date: str | None = None
    end_date: str | None = None


@dataclass(frozen=True)
class RiskInterpretation:
    """Risk level with a one-line summary and per-metric detail lines."""

    level: str
    score: float | None
    summary: str
    details: list[str] = field(default_factory=list)


def risk_input_from_snapshot(
    snapshot: FinancialSnapshot, risk_free_rate: float
) -> RiskInput:
    """Extract risk inputs from a snapshot's price histories."""
    history = snapshot.price_history
    market = snapshot.market_price_history
    return RiskInput(
        prices=tuple(snapshot.closes()),
        market_prices=tuple(float(v) for v in market["close"]) if not market.empty else (),
        dates=tuple(str(d) for d in history["date"]) if not history.empty else (),
        risk_free_rate=risk_free_rate,
        supplied_beta=snapshot.beta,
        position_value=snapshot.position_value,
    )


# === Building blocks ===


def calculate_returns(prices: Sequence[float]) -> list[float]:
    """Simple returns, skipping pairs whose previous price is not positive."""
    returns = []
    for prev, cur in zip(prices[:-1], prices[1:]):
        if prev > 0:
            returns.append((cur - prev) / prev)
    return returns


def calculate_max_drawdown(prices: Sequence[float]) -> float | None:
    """Largest peak-to-trough decline as a non-positive fraction.

    Returns:
        min((p - running_peak) / running_peak), 0.0 for a series that
        never falls, or None on empty input.
    """
    if len(prices) == 0:
        return None
    peak = prices[0]
    worst = 0.0
    for p in prices:
        if p > peak:
            peak = p
        if peak > 0:
            worst = min(worst, (p - peak) / peak)
    return worst


def _tail_index(n: int, confidence: float) -> int:
    return min(n - 1, math.floor(n * (1 - confidence)))


def calculate_var(
    returns: Sequence[float], confidence: float = 0.95
) -> float | None:
    """Historical VaR: the (1 - confidence) percentile of returns.

    Returns:
        Return at index floor(n * (1 - confidence)) of the sorted series,
        or None with fewer than MIN_VAR_OBSERVATIONS returns.
    """
    if len(returns) < MIN_VAR_OBSERVATIONS:
        return None
    ordered = sorted(returns)
    return ordered[_tail_index(len(ordered), confidence)]


def calculate_cvar(
    returns: Sequence[float], confidence: float = 0.95
) -> float | None:
    """Expected shortfall: mean of the returns up to and including VaR."""
    if len(returns) < MIN_VAR_OBSERVATIONS:
        return None
    ordered = sorted(returns)
    return mean(ordered[: _tail_index(len(ordered), confidence) + 1])


def calculate_dollar_var(
    var_95: float | None,
    var_99: float | None,
    position_value: float | None,
    confidence: float = 0.95,
) -> float | None:
    """VaR in currency units; uses VaR99 at confidence >= 0.99."""
    var_pct = var_99 if confidence >= 0.99 else var_95
    if var_pct is None or position_value is None:
        return None
    return abs(var_pct) * position_value


def calculate_sharpe_ratio(
    returns: Sequence[float], risk_free_rate: float, factor: float = 252
) -> float | None:
    """Annualized Sharpe: (mean - rf/f) / sd * sqrt(f)."""
    avg = mean(returns)
    sd = standard_deviation(returns)
    if avg is None or sd is None or sd == 0:
        return None
    return (avg - risk_free_rate / factor) / sd * math.sqrt(factor)


def calculate_sortino_ratio(
    returns: Sequence[float], risk_free_rate: float, factor: float = 252
) -> float | None:
    """Annualized Sortino with a per-period risk-free target."""
    target = risk_free_rate / factor
    avg = mean(returns)
    down = downside_deviation(returns, target)
    if avg is None or down is None or down == 0:
        return None
    return (avg - target) / down * math.sqrt(factor)


def calculate_annualized_return(average: float | None, factor: float) -> float | None:
    """Compound a mean period return over one year."""
    if average is None:
        return None
    return (1 + average) ** factor - 1


def _resolve_beta(
    stock_returns: list[float],
    market_returns: list[float],
    supplied: float | None,
    use_supplied: bool,
) -> float | None:
    if use_supplied and supplied is not None:
        return supplied
    if len(stock_returns) != len(market_returns) or len(stock_returns) < 2:
        return supplied
    return safe_divide(
        covariance(stock_returns, market_returns), variance(market_returns)
    )


def _correlation(
    stock_returns: list[float], market_returns: list[float]
) -> tuple[float | None, float | None]:
    """Pearson correlation and R-squared against the market."""
    if len(stock_returns) != len(market_returns) or len(stock_returns) < 2:
        return None, None
    sd_s = standard_deviation(stock_returns)
    sd_m = standard_deviation(market_returns)
    if not sd_s or not sd_m:
        return None, None
    result = linregress(market_returns, stock_returns)
    r = float(result.rvalue)
    if not math.isfinite(r):
        return None, None
    return r, r * r


def _win_rate(returns: list[float]) -> tuple[int, int, float | None]:
    positive = sum(1 for r in returns if r > 0)
    negative = sum(1 for r in returns if r < 0)
    total = positive + negative
    return positive, negative, (positive / total if total else None)


# === Engine ===


def calculate_risk(risk_input: RiskInput, config: RiskConfig) -> RiskResult:
    """Compute every risk statistic for a price history.

    Args:
        risk_input: Stock and benchmark prices.
        config: Sampling frequency, VaR confidence and data floor.

    Returns:
        RiskResult. With fewer than ``config.min_data_points`` returns only
        ``beta`` (supplied, when configured) and ``data_points`` are set.
    """
    stock_returns = calculate_returns(risk_input.prices)
    market_returns = calculate_returns(risk_input.market_prices)
    n = len(stock_returns)

    if n < config.min_data_points:
        logger.debug(
            "Risk history too short: %d returns (minimum %d)",
            n, config.min_data_points,
        )
        return RiskResult(
            beta=risk_input.supplied_beta if config.use_supplied_beta else None,
            data_points=n,
        )

    f = config.factor
    rf = risk_input.risk_free_rate

    beta = _resolve_beta(
        stock_returns, market_returns,
        risk_input.supplied_beta, config.use_supplied_beta,
    )
    sd = standard_deviation(stock_returns)
    volatility = None if sd is None else sd * math.sqrt(f)
    avg = mean(stock_returns)
    annual_return = calculate_annualized_return(avg, f)

    alpha = None
    market_annual = calculate_annualized_return(mean(market_returns), f)
    if beta is not None and annual_return is not None and market_annual is not None:
        alpha = annual_return - (rf + beta * (market_annual - rf))

    var_95 = calculate_var(stock_returns, 0.95)
    var_99 = calculate_var(stock_returns, 0.99)
    cvar_95 = calculate_cvar(stock_returns, 0.95)

    positive, negative, win_rate = _win_rate(stock_returns)
    correlation, r_squared = _correlation(stock_returns, market_returns)

    return RiskResult(
        beta=beta,
        standard_deviation=sd,
        annualized_volatility=volatility,
        alpha=alpha,
        sharpe_ratio=calculate_sharpe_ratio(stock_returns, rf, f),
        sortino_ratio=calculate_sortino_ratio(stock_returns, rf, f),
        max_drawdown=calculate_max_drawdown(risk_input.prices),
        var_95=var_95,
        var_99=var_99,
        cvar_95=cvar_95,
        dollar_var=calculate_dollar_var(
            var_95, var_99, risk_input.position_value, config.var_confidence
        ),
        average_return=avg,
        annualized_return=annual_return,
        positive_returns=positive,
        negative_returns=negative,
        win_rate=win_rate,
        downside_deviation=downside_deviation(stock_returns, rf / f),
        correlation=correlation,
        r_squared=r_squared,
        data_points=n,
        start_date=risk_input.dates[0] if risk_input.dates else None,
        end_date=risk_input.dates[-1] if risk_input.dates else None,
    )


# === Scoring ===


def calculate_risk_score(result: RiskResult) -> float | None:
    """Composite 0-100 risk score; higher means riskier.

    Sub-scores (each scaled by 100 and clamped to [0, 100]):
    |beta| / 2, volatility / 0.5, |drawdown| / 0.5, (3 - Sharpe) / 4 and
    |VaR95| / 0.10. The score is the mean of the available sub-scores.
    """
    parts: list[float] = []
    if result.beta is not None:
        parts.append(abs(result.beta) / 2)
    if result.annualized_volatility is not None:
        parts.append(result.annualized_volatility / 0.50)
    if result.max_drawdown is not None:
        parts.append(abs(result.max_drawdown) / 0.50)
    if result.sharpe_ratio is not None:
        parts.append((3 - result.sharpe_ratio) / 4)
    if result.var_95 is not None:
        parts.append(abs(result.var_95) / 0.10)
    if not parts:
        return None
    return sum(clamp(p * 100, 0.0, 100.0) for p in parts) / len(parts)


_RISK_LEVELS: list[tuple[float, str, str]] = [
    (20, "very low", "Very low risk; conservative holding"),
    (40, "low", "Low risk; volatility below the market average"),
    (60, "moderate", "Moderate risk; volatility in line with the market"),
    (80, "high", "High risk; volatility above the market average"),
]


def interpret_risk(result: RiskResult) -> RiskInterpretation:
    """Describe the risk profile behind a RiskResult."""
    score = calculate_risk_score(result)
    details: list[str] = []

    beta = result.beta
    if beta is not None:
        if beta < 0.5:
            details.append(f"Low beta ({beta:.2f}): moves far less than the market")
        elif beta < 1:
            details.append(f"Moderate beta ({beta:.2f}): moves somewhat less than the market")
        elif beta < 1.5:
            details.append(f"Elevated beta ({beta:.2f}): moves more than the market")
        else:
            details.append(f"High beta ({beta:.2f}): moves much more than the market")

    sharpe = result.sharpe_ratio
    if sharpe is not None:
        if sharpe > 2:
            quality = "Excellent"
        elif sharpe > 1:
            quality = "Good"
        elif sharpe > 0:
            quality = "Acceptable"
        else:
            quality = "Poor"
        details.append(f"{quality} risk-adjusted return (Sharpe {sharpe:.2f})")

    if result.max_drawdown is not None:
        dd = abs(result.max_drawdown)
        if dd < 0.10:
            severity = "Low"
        elif dd < 0.25:
            severity = "Moderate"
        elif dd < 0.40:
            severity = "High"
        else:
            severity = "Very high"
        details.append(f"{severity} maximum drawdown ({dd * 100:.1f}%)")

    if score is None:
        return RiskInterpretation(
            level="moderate",
            score=None,
            summary="Insufficient data to calculate risk metrics",
            details=details,
        )

    for upper, level, summary in _RISK_LEVELS:
        if score < upper:
            return RiskInterpretation(level, score, summary, details)
    return RiskInterpretation(
        "very high", score, "Very high risk; speculative holding", details
    )
