"""Cash flow metrics: free cash flow variants and cash sufficiency."""

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
    below,
    between,
    interpret_metrics,
)
from finmetrics.kernel import safe_divide
from finmetrics.metrics.profitability import tax_rate_or_default

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CashFlowMetrics:
    """Cash flow outputs.

    Attributes:
        operating_cash_flow: Cash from operations (currency).
        investing_cash_flow: Cash from investing (currency).
        financing_cash_flow: Cash from financing (currency).
        free_cash_flow: Reported FCF, else OCF - |capex|.
        fcff: Free cash flow to the firm: FCF plus after-tax interest.
        fcfe: Free cash flow to equity. Taken as FCF, which already
            reflects the company's actual debt service.
        cash_flow_adequacy: OCF / (|capex| + |short-term debt| +
            |dividends|).
        cash_reinvestment_ratio: (|capex| - depreciation) / OCF, with
            depreciation as EBITDA - EBIT.
        fcf_margin: FCF / revenue.
        fcf_per_share: FCF / shares outstanding.
    """

    operating_cash_flow: float | None = None
    investing_cash_flow: float | None = None
    financing_cash_flow: float | None = None
    free_cash_flow: float | None = None
    fcff: float | None = None
    fcfe: float | None = None
    cash_flow_adequacy: float | None = None
    cash_reinvestment_ratio: float | None = None
    fcf_margin: float | None = None
    fcf_per_share: float | None = None


def calculate_free_cash_flow(snapshot: FinancialSnapshot) -> float | None:
    """Reported FCF, or OCF - |capex| when both are non-zero."""
    s = snapshot
    if s.free_cash_flow is not None:
        return s.free_cash_flow
    if s.operating_cash_flow and s.capital_expenditures:
        return s.operating_cash_flow - abs(s.capital_expenditures)
    return None


def calculate_fcff(snapshot: FinancialSnapshot, fcf: float | None) -> float | None:
    """Add back after-tax interest to FCF.

    Requires EBIT so that the tax shield is measured against a real
    operating result; companies without interest expense get FCF back.
    """
    if fcf is None or snapshot.ebit is None:
        return None
    interest = snapshot.interest_expense
    if interest is None or interest <= 0:
        return fcf
    return fcf + interest * (1 - tax_rate_or_default(snapshot))


def _cash_flow_adequacy(s: FinancialSnapshot) -> float | None:
    if not s.operating_cash_flow:
        return None
    obligations = (
        abs(s.capital_expenditures or 0.0)
        + abs(s.short_term_debt or 0.0)
        + abs(s.dividends_paid or 0.0)
    )
    return safe_divide(s.operating_cash_flow, obligations)


def _cash_reinvestment_ratio(s: FinancialSnapshot) -> float | None:
    if not s.operating_cash_flow:
        return None
    depreciation = s.ebitda - s.ebit if s.ebitda and s.ebit else 0.0
    return (abs(s.capital_expenditures or 0.0) - depreciation) / s.operating_cash_flow


def compute_cashflow(snapshot: FinancialSnapshot) -> CashFlowMetrics:
    """Compute cash flow metrics for a single company.

    Args:
        snapshot: Company snapshot.

    Returns:
        CashFlowMetrics; metrics whose inputs are missing are None.
    """
    s = snapshot
    fcf = calculate_free_cash_flow(s)
    if fcf is None:
        logger.debug("%s: free cash flow unavailable", s.symbol)

    return CashFlowMetrics(
        operating_cash_flow=s.operating_cash_flow,
        investing_cash_flow=s.investing_cash_flow,
        financing_cash_flow=s.financing_cash_flow,
        free_cash_flow=fcf,
        fcff=calculate_fcff(s, fcf),
        fcfe=fcf,
        cash_flow_adequacy=_cash_flow_adequacy(s),
        cash_reinvestment_ratio=_cash_reinvestment_ratio(s),
        fcf_margin=safe_divide(fcf, s.revenue),
        fcf_per_share=safe_divide(fcf, s.shares_outstanding),
    )


def _positive_rule(label: str, good: str, bad: str) -> MetricRule:
    return MetricRule(label, (
        Band(lambda v: v > 0, Level.GOOD, good, "> 0"),
        Band(always, Level.BAD, bad, "<= 0"),
    ))


CASHFLOW_RULES: dict[str, MetricRule] = {
    "operating_cash_flow": _positive_rule(
        "operating cash flow",
        "Core operations generate cash",
        "Core operations consume cash",
    ),
    "free_cash_flow": _positive_rule(
        "free cash flow",
        "Cash is left over after capital spending",
        "Capital spending exceeds operating cash generation",
    ),
    "fcff": _positive_rule(
        "FCFF",
        "Cash is available to all capital providers",
        "No cash is available to capital providers",
    ),
    "fcfe": _positive_rule(
        "FCFE",
        "Cash is available to shareholders",
        "No cash is available to shareholders",
    ),
    "cash_flow_adequacy": MetricRule("cash flow adequacy", (
        Band(above(1.2), Level.GOOD, "Operating cash covers capex, debt and dividends with room to spare", ">= 1.2"),
        Band(above(0.8), Level.NEUTRAL, "Operating cash roughly covers capex, debt and dividends", "0.8 - 1.2"),
        Band(always, Level.BAD, "Operating cash falls short of capex, debt and dividends", "< 0.8"),
    )),
    "cash_reinvestment_ratio": MetricRule("cash reinvestment ratio", (
        Band(below(0), Level.BAD, "Capital spending trails depreciation; the asset base is shrinking", "< 0"),
        Band(between(0.20, 0.50), Level.GOOD, "Healthy reinvestment for growth", "20% - 50%"),
        Band(lambda v: 0.10 <= v < 0.20, Level.NEUTRAL, "Modest reinvestment", "10% - 20%"),
        Band(lambda v: 0.50 < v <= 0.70, Level.NEUTRAL, "Heavy reinvestment", "50% - 70%"),
        Band(lambda v: v > 0.70, Level.BAD, "Reinvestment absorbs most operating cash", "> 70%"),
        Band(always, Level.BAD, "Little cash is reinvested in the business", "< 10%"),
    )),
}


def interpret_cashflow(metrics: CashFlowMetrics) -> dict[str, Interpretation]:
    """Read each rated cash flow metric."""
    return interpret_metrics(metrics, CASHFLOW_RULES)


def has_healthy_cash_flow(metrics: CashFlowMetrics) -> bool:
    """True when operating cash flow, FCF and FCFE are all positive."""
    return (
        (metrics.operating_cash_flow or 0) > 0
        and (metrics.free_cash_flow or 0) > 0
        and (metrics.fcfe or 0) > 0
    )


def assess_cash_flow_quality(
    operating_cash_flow: float | None, net_income: float | None
) -> str:
    """Label earnings quality by how much of net income arrives as cash."""
    if operating_cash_flow is None or not net_income:
        return "Unknown"
    ratio = operating_cash_flow / net_income
    if ratio >= 1.2:
        return "High Quality"
    if ratio >= 0.8:
        return "Good Quality"
    if ratio >= 0.5:
        return "Moderate Quality"
    return "Low Quality"
