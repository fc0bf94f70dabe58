"""Growth metrics from chronological annual history.

All historical series are oldest first; the last element is the latest
fiscal year. Year-over-year changes are measured against the magnitude
of the prior value so a loss shrinking towards zero reads as growth.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from finmetrics.data.models import FinancialSnapshot
from finmetrics.interpretation import (
    Band,
    Interpretation,
    Level,
    MetricRule,
    above,
    always,
    between,
    interpret_metrics,
)
from finmetrics.kernel import (
    calculate_cagr,
    percentage_change,
    safe_divide,
    safe_multiply,
)

logger = logging.getLogger(__name__)

# Payout ratios above this are treated as one-off distributions.
MAX_PAYOUT_RATIO = 1.5


@dataclass(frozen=True)
class GrowthMetrics:
    """Growth outputs as decimals.

    Attributes:
        revenue_growth_yoy: Latest revenue vs prior year.
        eps_growth_yoy: Latest EPS vs prior year.
        dps_growth: Latest dividend per share vs prior; both positive.
        fcf_growth: Latest FCF vs prior; both positive.
        net_income_growth_yoy: Latest net income vs prior year.
        revenue_3y_cagr: Revenue CAGR over three years (4 data points).
        revenue_5y_cagr: Revenue CAGR over five years (6 data points).
        eps_3y_cagr: EPS CAGR over three years (4 data points).
        payout_ratio: |Dividends paid| / net income; 0 without dividends.
        retention_ratio: 1 - payout ratio.
        sustainable_growth_rate: ROE x retention.
        internal_growth_rate: ROA x retention.
    """

    revenue_growth_yoy: float | None = None
    eps_growth_yoy: float | None = None
    dps_growth: float | None = None
    fcf_growth: float | None = None
    net_income_growth_yoy: float | None = None
    revenue_3y_cagr: float | None = None
    revenue_5y_cagr: float | None = None
    eps_3y_cagr: float | None = None
    payout_ratio: float | None = None
    retention_ratio: float | None = None
    sustainable_growth_rate: float | None = None
    internal_growth_rate: float | None = None


def _yoy(series: Sequence[float]) -> float | None:
    if len(series) < 2:
        return None
    return percentage_change(series[-1], series[-2])


def _positive_yoy(series: Sequence[float]) -> float | None:
    if len(series) < 2 or series[-1] <= 0 or series[-2] <= 0:
        return None
    return percentage_change(series[-1], series[-2])


def _cagr(series: Sequence[float], years: int) -> float | None:
    if len(series) < years + 1:
        return None
    return calculate_cagr(series[-1], series[-1 - years], years)


def calculate_payout_ratio(
    dividends_paid: float | None, net_income: float | None
) -> float | None:
    """Share of net income paid out as dividends.

    Returns:
        0.0 when no dividends are paid; None when net income is not
        positive or the ratio exceeds MAX_PAYOUT_RATIO.
    """
    if not dividends_paid:
        return 0.0
    if net_income is None or net_income <= 0:
        return None
    ratio = abs(dividends_paid) / net_income
    if ratio > MAX_PAYOUT_RATIO:
        return None
    return ratio


def compute_growth(snapshot: FinancialSnapshot) -> GrowthMetrics:
    """Compute growth metrics for a single company.

    Args:
        snapshot: Company snapshot with historical series.

    Returns:
        GrowthMetrics; rates with too little history are None.
    """
    s = snapshot
    if len(s.historical_revenue) < 2:
        logger.debug("%s: fewer than 2 years of revenue history", s.symbol)

    payout = calculate_payout_ratio(s.dividends_paid, s.net_income)
    retention = None
    if payout is not None and 0 <= 1 - payout <= 1:
        retention = 1 - payout

    return GrowthMetrics(
        revenue_growth_yoy=_yoy(s.historical_revenue),
        eps_growth_yoy=_yoy(s.historical_eps),
        dps_growth=_positive_yoy(s.historical_dividends),
        fcf_growth=_positive_yoy(s.historical_fcf),
        net_income_growth_yoy=_yoy(s.historical_net_income),
        revenue_3y_cagr=_cagr(s.historical_revenue, 3),
        revenue_5y_cagr=_cagr(s.historical_revenue, 5),
        eps_3y_cagr=_cagr(s.historical_eps, 3),
        payout_ratio=payout,
        retention_ratio=retention,
        sustainable_growth_rate=safe_multiply(
            safe_divide(s.net_income, s.total_equity), retention
        ),
        internal_growth_rate=safe_multiply(
            safe_divide(s.net_income, s.total_assets), retention
        ),
    )


def _growth_rule(label: str, good: float, fair: float, missing: str | None = None) -> MetricRule:
    g, f = round(good * 100), round(fair * 100)
    return MetricRule(label, (
        Band(above(good), Level.GOOD, f"Strong {label}", f">= {g}%"),
        Band(above(fair), Level.NEUTRAL, f"Moderate {label}", f"{f}% - {g}%"),
        Band(above(0.0), Level.BAD, f"Weak {label}", f"< {f}%"),
        Band(always, Level.BAD, f"Declining {label}", "< 0%"),
    ), missing_message=missing)


_NO_HISTORY = "Insufficient history to calculate {}"

GROWTH_RULES: dict[str, MetricRule] = {
    "revenue_growth_yoy": _growth_rule(
        "revenue growth", 0.15, 0.05, _NO_HISTORY.format("revenue growth")
    ),
    "eps_growth_yoy": _growth_rule(
        "EPS growth", 0.15, 0.05, _NO_HISTORY.format("EPS growth")
    ),
    "dps_growth": _growth_rule("dividend growth", 0.15, 0.05),
    "fcf_growth": _growth_rule("free cash flow growth", 0.15, 0.05),
    "revenue_3y_cagr": _growth_rule("3-year revenue CAGR", 0.12, 0.05),
    "revenue_5y_cagr": _growth_rule("5-year revenue CAGR", 0.12, 0.05),
    "sustainable_growth_rate": _growth_rule("sustainable growth rate", 0.12, 0.05),
    "payout_ratio": MetricRule("payout ratio", (
        Band(lambda v: v == 0, Level.NEUTRAL, "No dividend; earnings are fully retained", "0%"),
        Band(between(0.30, 0.60), Level.GOOD, "Balanced split between dividends and reinvestment", "30% - 60%"),
        Band(between(0.20, 0.30), Level.NEUTRAL, "Modest dividend, most earnings retained", "20% - 30%"),
        Band(between(0.60, 0.80), Level.NEUTRAL, "Generous dividend with less left to reinvest", "60% - 80%"),
        Band(lambda v: v > 0.80, Level.BAD, "Dividend absorbs most earnings; may not be sustainable", "> 80%"),
        Band(always, Level.BAD, "Token dividend", "< 20%"),
    )),
}


def interpret_growth(metrics: GrowthMetrics) -> dict[str, Interpretation]:
    """Read each rated growth metric."""
    return interpret_metrics(metrics, GROWTH_RULES)


def is_growing(metrics: GrowthMetrics) -> bool:
    """True when both revenue and EPS grew over the last year."""
    return (metrics.revenue_growth_yoy or 0) > 0 and (metrics.eps_growth_yoy or 0) > 0


def growth_stage(metrics: GrowthMetrics) -> str:
    """Classify the company's life-cycle stage from growth and payout."""
    growth = metrics.revenue_growth_yoy or 0.0
    payout = metrics.payout_ratio or 0.0
    if growth >= 0.25 and payout < 0.20:
        return "High Growth"
    if growth >= 0.10 and payout < 0.40:
        return "Growth"
    if growth >= 0.05 and 0.40 <= payout <= 0.70:
        return "Mature Growth"
    if growth < 0.05 and payout > 0.60:
        return "Mature/Income"
    if growth < 0:
        return "Declining"
    return "Transitional"
