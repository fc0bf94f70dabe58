"""Composite 0-100 scores built from category metrics.

Each composite is a weighted mean of component scores. A component is a
metric mapped linearly onto 0-100 between a benchmark floor and ceiling
(inverted where lower values are better). Missing components are left
out and the remaining weights renormalized, so a company is scored on
whatever data it has rather than penalized for gaps.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from finmetrics.analysis.risk import RiskResult
from finmetrics.data.models import SectorMedians
from finmetrics.kernel import clamp, normalize_to_scale, safe_divide
from finmetrics.metrics.growth import GrowthMetrics
from finmetrics.metrics.leverage import LeverageMetrics
from finmetrics.metrics.liquidity import LiquidityMetrics
from finmetrics.metrics.profitability import ProfitabilityMetrics
from finmetrics.metrics.valuation import ValuationMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Benchmark:
    """Scoring range for one metric."""

    min: float
    max: float
    higher_is_better: bool = True


@dataclass(frozen=True)
class CompositeScores:
    """Composite scores, each in [0, 100] or None when unscorable."""

    profitability: float | None = None
    growth: float | None = None
    valuation: float | None = None
    risk: float | None = None
    health: float | None = None
    total: float | None = None


BENCHMARKS: dict[str, Benchmark] = {
    "gross_margin": Benchmark(0.0, 0.8),
    "operating_margin": Benchmark(-0.2, 0.4),
    "net_margin": Benchmark(-0.2, 0.3),
    "roe": Benchmark(-0.1, 0.4),
    "roic": Benchmark(-0.1, 0.3),
    "revenue_growth_yoy": Benchmark(-0.3, 0.5),
    "eps_growth_yoy": Benchmark(-0.5, 1.0),
    "fcf_growth": Benchmark(-0.5, 0.5),
    "revenue_3y_cagr": Benchmark(-0.1, 0.3),
    "pe_ratio": Benchmark(5.0, 50.0, higher_is_better=False),
    "pb_ratio": Benchmark(0.5, 10.0, higher_is_better=False),
    "peg_ratio": Benchmark(0.5, 3.0, higher_is_better=False),
    "ev_to_ebitda": Benchmark(3.0, 25.0, higher_is_better=False),
    "beta": Benchmark(0.5, 2.0, higher_is_better=False),
    "annualized_volatility": Benchmark(0.1, 0.6, higher_is_better=False),
    "sharpe_ratio": Benchmark(-0.5, 2.0),
    "current_ratio": Benchmark(0.5, 3.0),
    "quick_ratio": Benchmark(0.3, 2.5),
    "debt_to_equity": Benchmark(0.0, 3.0, higher_is_better=False),
    "interest_coverage": Benchmark(0.0, 20.0),
}

# Multiple / sector median, scored inversely.
RELATIVE_MULTIPLE = Benchmark(0.5, 2.0, higher_is_better=False)

PROFITABILITY_WEIGHTS = {
    "gross_margin": 0.2,
    "operating_margin": 0.2,
    "net_margin": 0.2,
    "roe": 0.2,
    "roic": 0.2,
}
GROWTH_WEIGHTS = {
    "revenue_growth_yoy": 0.3,
    "eps_growth_yoy": 0.3,
    "fcf_growth": 0.2,
    "revenue_3y_cagr": 0.2,
}
VALUATION_WEIGHTS = {
    "pe_ratio": 0.3,
    "pb_ratio": 0.25,
    "peg_ratio": 0.25,
    "ev_to_ebitda": 0.2,
}
RISK_WEIGHTS = {
    "beta": 0.35,
    "annualized_volatility": 0.35,
    "sharpe_ratio": 0.3,
}
HEALTH_WEIGHTS = {
    "current_ratio": 0.25,
    "quick_ratio": 0.25,
    "debt_to_equity": 0.25,
    "interest_coverage": 0.25,
}
TOTAL_WEIGHTS = {
    "profitability": 0.25,
    "growth": 0.2,
    "valuation": 0.2,
    "risk": 0.15,
    "health": 0.2,
}


def normalize_metric(value: float | None, benchmark: Benchmark) -> float | None:
    """Map a metric onto 0-100 within its benchmark range.

    Values outside the range are clamped to it first. Lower-is-better
    benchmarks are inverted.

    Returns:
        Score in [0, 100], or None for a missing or non-finite value.
    """
    if value is None or not math.isfinite(value):
        return None
    bounded = clamp(value, benchmark.min, benchmark.max)
    score = normalize_to_scale(bounded, benchmark.min, benchmark.max)
    return score if benchmark.higher_is_better else 100.0 - score


def weighted_score(
    components: Sequence[tuple[float | None, float]],
) -> float | None:
    """Weighted mean of (score, weight) pairs over present scores.

    Weights are renormalized over the components that have a score.

    Returns:
        Score clamped to [0, 100], or None if no component is present.
    """
    present = [(score, weight) for score, weight in components if score is not None]
    total_weight = sum(weight for _, weight in present)
    if not present or total_weight == 0:
        return None
    score = sum(s * w for s, w in present) / total_weight
    return clamp(score, 0.0, 100.0)


def _score(metrics: object, weights: dict[str, float]) -> float | None:
    return weighted_score([
        (normalize_metric(getattr(metrics, name), BENCHMARKS[name]), weight)
        for name, weight in weights.items()
    ])


def profitability_score(metrics: ProfitabilityMetrics) -> float | None:
    return _score(metrics, PROFITABILITY_WEIGHTS)


def growth_score(metrics: GrowthMetrics) -> float | None:
    return _score(metrics, GROWTH_WEIGHTS)


def _relative(value: float | None, median: float | None) -> float | None:
    if median is None or median <= 0:
        return None
    return normalize_metric(safe_divide(value, median), RELATIVE_MULTIPLE)


def valuation_score(
    metrics: ValuationMetrics, sector_medians: SectorMedians | None = None
) -> float | None:
    """Score multiples, cheaper scoring higher.

    Args:
        metrics: Valuation multiples.
        sector_medians: When given, P/E, P/B and EV/EBITDA are scored
            relative to their sector medians instead of absolute ranges.
            PEG is always scored on its absolute range.

    Returns:
        Score in [0, 100], or None.
    """
    if sector_medians is None:
        return _score(metrics, VALUATION_WEIGHTS)
    return weighted_score([
        (_relative(metrics.pe_ratio, sector_medians.pe), VALUATION_WEIGHTS["pe_ratio"]),
        (_relative(metrics.pb_ratio, sector_medians.pb), VALUATION_WEIGHTS["pb_ratio"]),
        (
            normalize_metric(metrics.peg_ratio, BENCHMARKS["peg_ratio"]),
            VALUATION_WEIGHTS["peg_ratio"],
        ),
        (
            _relative(metrics.ev_to_ebitda, sector_medians.ev_to_ebitda),
            VALUATION_WEIGHTS["ev_to_ebitda"],
        ),
    ])


def risk_score(result: RiskResult) -> float | None:
    """Score risk so that steadier, better-compensated stocks score higher."""
    return _score(result, RISK_WEIGHTS)


def health_score(
    liquidity: LiquidityMetrics, leverage: LeverageMetrics
) -> float | None:
    """Score balance-sheet health from liquidity and leverage."""
    return weighted_score([
        (normalize_metric(liquidity.current_ratio, BENCHMARKS["current_ratio"]), HEALTH_WEIGHTS["current_ratio"]),
        (normalize_metric(liquidity.quick_ratio, BENCHMARKS["quick_ratio"]), HEALTH_WEIGHTS["quick_ratio"]),
        (normalize_metric(leverage.debt_to_equity, BENCHMARKS["debt_to_equity"]), HEALTH_WEIGHTS["debt_to_equity"]),
        (
            normalize_metric(leverage.interest_coverage, BENCHMARKS["interest_coverage"]),
            HEALTH_WEIGHTS["interest_coverage"],
        ),
    ])


def total_score(
    profitability: float | None,
    growth: float | None,
    valuation: float | None,
    risk: float | None,
    health: float | None,
) -> float | None:
    return weighted_score([
        (profitability, TOTAL_WEIGHTS["profitability"]),
        (growth, TOTAL_WEIGHTS["growth"]),
        (valuation, TOTAL_WEIGHTS["valuation"]),
        (risk, TOTAL_WEIGHTS["risk"]),
        (health, TOTAL_WEIGHTS["health"]),
    ])


def compute_scores(
    profitability: ProfitabilityMetrics,
    growth: GrowthMetrics,
    valuation: ValuationMetrics,
    risk: RiskResult,
    liquidity: LiquidityMetrics,
    leverage: LeverageMetrics,
    sector_medians: SectorMedians | None = None,
) -> CompositeScores:
    """Compute every composite score and the weighted total.

    Returns:
        CompositeScores; any composite without data is None and drops
        out of the total.
    """
    scores = {
        "profitability": profitability_score(profitability),
        "growth": growth_score(growth),
        "valuation": valuation_score(valuation, sector_medians),
        "risk": risk_score(risk),
        "health": health_score(liquidity, leverage),
    }
    missing = [name for name, value in scores.items() if value is None]
    if missing:
        logger.debug("Composite scores without data: %s", ", ".join(missing))
    return CompositeScores(**scores, total=total_score(**scores))


def interpret_score(score: float | None) -> str:
    """Label a 0-100 score."""
    if score is None:
        return "Unknown"
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    if score >= 20:
        return "Poor"
    return "Very Poor"
