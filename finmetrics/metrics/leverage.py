"""Leverage metrics: capital structure and debt coverage."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from finmetrics.data.models import FinancialSnapshot
from finmetrics.interpretation import (
    Band,
    Interpretation,
    Level,
    MetricRule,
    above,
    always,
    at_most,
    below,
    between,
    category_score,
    interpret_metrics,
)
from finmetrics.kernel import safe_add, safe_divide

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeverageMetrics:
    """Leverage outputs.

    Attributes:
        debt_to_assets: Total debt / total assets.
        debt_to_equity: Total debt / total equity.
        financial_debt_to_equity: (Short-term + long-term debt) / equity.
        interest_coverage: EBIT / interest expense. None without interest.
        debt_service_coverage: Operating income / (interest + short-term
            debt).
        equity_multiplier: Total assets / total equity.
        debt_to_ebitda: Total debt / EBITDA, positive EBITDA only.
        net_debt_to_ebitda: (Debt - cash) / EBITDA, positive EBITDA only.
        debt_to_capital: Debt / (debt + equity).
        long_term_debt_ratio: Long-term debt / total assets.
        fixed_charge_coverage: (EBIT + interest) / interest.
        cash_flow_coverage: Operating cash flow / total debt.
        capital_gearing: Long-term debt / equity.
        debt_capacity_utilization: Debt / (4 x EBITDA).
    """

    debt_to_assets: float | None = None
    debt_to_equity: float | None = None
    financial_debt_to_equity: float | None = None
    interest_coverage: float | None = None
    debt_service_coverage: float | None = None
    equity_multiplier: float | None = None
    debt_to_ebitda: float | None = None
    net_debt_to_ebitda: float | None = None
    debt_to_capital: float | None = None
    long_term_debt_ratio: float | None = None
    fixed_charge_coverage: float | None = None
    cash_flow_coverage: float | None = None
    capital_gearing: float | None = None
    debt_capacity_utilization: float | None = None


def compute_leverage(snapshot: FinancialSnapshot) -> LeverageMetrics:
    """Compute leverage metrics for a single company.

    Args:
        snapshot: Company snapshot.

    Returns:
        LeverageMetrics. Coverage ratios are None for companies without
        interest expense; EBITDA multiples are None when EBITDA <= 0.
    """
    s = snapshot
    debt = s.total_debt
    equity = s.total_equity

    financial_debt = None
    if s.short_term_debt is not None or s.long_term_debt is not None:
        financial_debt = (s.short_term_debt or 0.0) + (s.long_term_debt or 0.0)

    interest = s.interest_expense if s.interest_expense else None
    if interest is None:
        logger.debug("%s: no interest expense, coverage ratios set to None", s.symbol)

    debt_service = (s.interest_expense or 0.0) + (s.short_term_debt or 0.0)

    ebitda = s.ebitda if s.ebitda is not None and s.ebitda > 0 else None
    net_debt = None if debt is None else debt - (s.cash or 0.0)

    return LeverageMetrics(
        debt_to_assets=safe_divide(debt, s.total_assets),
        debt_to_equity=safe_divide(debt, equity),
        financial_debt_to_equity=safe_divide(financial_debt, equity),
        interest_coverage=safe_divide(s.ebit, interest),
        debt_service_coverage=safe_divide(s.operating_income, debt_service),
        equity_multiplier=safe_divide(s.total_assets, equity),
        debt_to_ebitda=safe_divide(debt, ebitda),
        net_debt_to_ebitda=safe_divide(net_debt, ebitda),
        debt_to_capital=safe_divide(debt, safe_add(debt, equity)),
        long_term_debt_ratio=safe_divide(s.long_term_debt, s.total_assets),
        fixed_charge_coverage=safe_divide(safe_add(s.ebit, interest), interest),
        cash_flow_coverage=safe_divide(s.operating_cash_flow, debt),
        capital_gearing=safe_divide(s.long_term_debt, equity),
        debt_capacity_utilization=safe_divide(debt, None if ebitda is None else 4 * ebitda),
    )


LEVERAGE_RULES: dict[str, MetricRule] = {
    "debt_to_assets": MetricRule("debt-to-assets ratio", (
        Band(below(0.3), Level.GOOD, "Assets are financed mostly by equity", "< 0.3"),
        Band(at_most(0.6), Level.NEUTRAL, "Moderate reliance on debt financing", "0.3 - 0.6"),
        Band(always, Level.BAD, "Most assets are financed by debt", "> 0.6"),
    )),
    "debt_to_equity": MetricRule("debt-to-equity ratio", (
        Band(below(1.0), Level.GOOD, "Debt is smaller than shareholders' equity", "< 1.0"),
        Band(at_most(2.0), Level.NEUTRAL, "Debt moderately exceeds equity", "1.0 - 2.0"),
        Band(always, Level.BAD, "Debt is more than twice equity", "> 2.0"),
    )),
    "financial_debt_to_equity": MetricRule("financial debt-to-equity ratio", (
        Band(below(0.8), Level.GOOD, "Borrowings are small relative to equity", "< 0.8"),
        Band(at_most(1.5), Level.NEUTRAL, "Borrowings are moderate relative to equity", "0.8 - 1.5"),
        Band(always, Level.BAD, "Borrowings are heavy relative to equity", "> 1.5"),
    )),
    "interest_coverage": MetricRule("interest coverage", (
        Band(above(5.0), Level.GOOD, "Earnings cover interest many times over", ">= 5.0"),
        Band(above(2.5), Level.NEUTRAL, "Earnings cover interest comfortably", "2.5 - 5.0"),
        Band(above(1.5), Level.NEUTRAL, "Earnings cover interest with a thin cushion", "1.5 - 2.5"),
        Band(always, Level.BAD, "Earnings barely cover interest payments", "< 1.5"),
    ), missing_message="No interest expense reported, or insufficient data"),
    "debt_service_coverage": MetricRule("debt service coverage", (
        Band(above(2.0), Level.GOOD, "Operating income covers debt service twice over", ">= 2.0"),
        Band(above(1.25), Level.NEUTRAL, "Operating income covers debt service", "1.25 - 2.0"),
        Band(above(1.0), Level.NEUTRAL, "Debt service is only just covered", "1.0 - 1.25"),
        Band(always, Level.BAD, "Operating income does not cover debt service", "< 1.0"),
    )),
    "equity_multiplier": MetricRule("equity multiplier", (
        Band(between(1.0, 2.0), Level.GOOD, "Conservative balance sheet", "1.0 - 2.0"),
        Band(at_most(3.0), Level.NEUTRAL, "Moderate balance-sheet leverage", "2.0 - 3.0"),
        Band(always, Level.BAD, "Assets are highly leveraged on equity", "> 3.0"),
    )),
    "debt_to_ebitda": MetricRule("debt-to-EBITDA", (
        Band(below(3.0), Level.GOOD, "Debt could be repaid from under three years of EBITDA", "< 3.0"),
        Band(at_most(4.0), Level.NEUTRAL, "Debt load is manageable against EBITDA", "3.0 - 4.0"),
        Band(always, Level.BAD, "Debt load is heavy against EBITDA", "> 4.0"),
    ), missing_message="EBITDA is negative or unavailable"),
    "debt_to_capital": MetricRule("debt-to-capital", (
        Band(below(0.5), Level.GOOD, "Debt is under half of total capital", "< 0.5"),
        Band(at_most(1.0), Level.NEUTRAL, "Debt is over half of total capital", "0.5 - 1.0"),
        Band(always, Level.BAD, "Debt exceeds total capital", "> 1.0"),
    )),
    "debt_capacity_utilization": MetricRule("debt capacity utilization", (
        Band(below(0.5), Level.GOOD, "Well inside a 4x EBITDA borrowing capacity", "< 0.5"),
        Band(at_most(1.0), Level.NEUTRAL, "Using much of a 4x EBITDA borrowing capacity", "0.5 - 1.0"),
        Band(always, Level.BAD, "Borrowing beyond 4x EBITDA", "> 1.0"),
    )),
}


def interpret_leverage(metrics: LeverageMetrics) -> dict[str, Interpretation]:
    """Read each rated leverage metric."""
    return interpret_metrics(metrics, LEVERAGE_RULES)


def is_over_leveraged(metrics: LeverageMetrics) -> bool:
    """True when three or more rated leverage metrics read as bad."""
    readings = interpret_leverage(metrics).values()
    return sum(1 for r in readings if r.level is Level.BAD) >= 3


def leverage_health_rating(metrics: LeverageMetrics) -> str:
    """Label the leverage category score (Fair when unrated)."""
    score = category_score(interpret_leverage(metrics))
    if score is None:
        return "Fair"
    if score >= 80:
        return "Excellent"
    if score >= 65:
        return "Good"
    if score >= 50:
        return "Fair"
    if score >= 35:
        return "Poor"
    return "Critical"
