"""Liquidity metrics: short-term solvency and working-capital cycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from finmetrics.config import DAYS_PER_YEAR
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
    interpret_metrics,
)
from finmetrics.kernel import safe_divide, safe_subtract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidityMetrics:
    """Liquidity outputs.

    Attributes:
        current_ratio: Current assets / current liabilities.
        quick_ratio: (Current assets - inventory) / current liabilities.
        cash_ratio: (Cash + short-term investments) / current liabilities.
        days_sales_outstanding: Receivables / revenue * 365.
        days_inventory_outstanding: Inventory / COGS * 365. None for
            companies without inventory.
        days_payables_outstanding: Payables / COGS * 365.
        cash_conversion_cycle: DSO + DIO - DPO.
        absolute_liquidity_ratio: Cash / current liabilities.
        defensive_interval: Days of operating expenses covered by liquid
            assets.
        net_working_capital_ratio: (Current assets - current liabilities)
            / total assets.
        operating_cash_flow_ratio: Operating cash flow / current
            liabilities.
        cash_burn_rate: Monthly operating cash outflow; 0 when operating
            cash flow is positive.
    """

    current_ratio: float | None = None
    quick_ratio: float | None = None
    cash_ratio: float | None = None
    days_sales_outstanding: float | None = None
    days_inventory_outstanding: float | None = None
    days_payables_outstanding: float | None = None
    cash_conversion_cycle: float | None = None
    absolute_liquidity_ratio: float | None = None
    defensive_interval: float | None = None
    net_working_capital_ratio: float | None = None
    operating_cash_flow_ratio: float | None = None
    cash_burn_rate: float | None = None


def _days(numerator: float | None, denominator: float | None) -> float | None:
    ratio = safe_divide(numerator, denominator)
    return None if ratio is None else ratio * DAYS_PER_YEAR


def _defensive_interval(s: FinancialSnapshot) -> float | None:
    liquid = [v for v in (s.cash, s.net_receivables, s.short_term_investments) if v is not None]
    if not liquid:
        return None
    expenses = s.operating_expenses if s.operating_expenses is not None else s.cost_of_revenue
    if not expenses:
        return None
    return sum(liquid) / (expenses / DAYS_PER_YEAR)


def _cash_burn_rate(operating_cash_flow: float | None) -> float | None:
    if not operating_cash_flow:
        return None
    if operating_cash_flow > 0:
        return 0.0
    return abs(operating_cash_flow) / 12


def compute_liquidity(snapshot: FinancialSnapshot) -> LiquidityMetrics:
    """Compute liquidity metrics from the latest balance sheet.

    Args:
        snapshot: Company snapshot.

    Returns:
        LiquidityMetrics; metrics whose inputs are missing are None.
    """
    s = snapshot
    cl = s.current_liabilities

    dso = _days(s.net_receivables, s.revenue)
    dio = _days(s.inventory, s.cost_of_revenue) if s.inventory and s.cost_of_revenue else None
    dpo = _days(s.accounts_payable, s.cost_of_revenue) if s.cost_of_revenue else None
    ccc = None
    if dso is not None and dio is not None and dpo is not None:
        ccc = dso + dio - dpo
    else:
        logger.debug("%s: cash conversion cycle needs DSO, DIO and DPO", s.symbol)

    cash_total = None
    if s.cash is not None:
        cash_total = s.cash + (s.short_term_investments or 0.0)

    return LiquidityMetrics(
        current_ratio=safe_divide(s.current_assets, cl),
        quick_ratio=safe_divide(safe_subtract(s.current_assets, s.inventory or 0.0), cl),
        cash_ratio=safe_divide(cash_total, cl),
        days_sales_outstanding=dso,
        days_inventory_outstanding=dio,
        days_payables_outstanding=dpo,
        cash_conversion_cycle=ccc,
        absolute_liquidity_ratio=safe_divide(s.cash, cl),
        defensive_interval=_defensive_interval(s),
        net_working_capital_ratio=safe_divide(
            safe_subtract(s.current_assets, cl), s.total_assets
        ),
        operating_cash_flow_ratio=safe_divide(s.operating_cash_flow, cl),
        cash_burn_rate=_cash_burn_rate(s.operating_cash_flow),
    )


_NO_INVENTORY = "Not applicable without inventory, or insufficient data"

LIQUIDITY_RULES: dict[str, MetricRule] = {
    "current_ratio": MetricRule("current ratio", (
        Band(above(2.0), Level.GOOD, "Current assets cover short-term obligations twice over", ">= 2.0"),
        Band(above(1.0), Level.NEUTRAL, "Current assets cover current liabilities", "1.0 - 2.0"),
        Band(always, Level.BAD, "Current assets fall short of current liabilities", "< 1.0"),
    )),
    "quick_ratio": MetricRule("quick ratio", (
        Band(above(1.5), Level.GOOD, "Liquid assets cover obligations without selling inventory", ">= 1.5"),
        Band(above(1.0), Level.NEUTRAL, "Liquid assets cover current liabilities", "1.0 - 1.5"),
        Band(always, Level.BAD, "Depends on inventory or new financing to meet obligations", "< 1.0"),
    )),
    "cash_ratio": MetricRule("cash ratio", (
        Band(above(0.5), Level.GOOD, "Cash alone covers half of current liabilities", ">= 0.5"),
        Band(above(0.2), Level.NEUTRAL, "Cash is adequate for immediate needs", "0.2 - 0.5"),
        Band(always, Level.BAD, "Thin cash reserves against current liabilities", "< 0.2"),
    )),
    "days_sales_outstanding": MetricRule("DSO", (
        Band(at_most(30), Level.GOOD, "Receivables are collected quickly", "<= 30 days"),
        Band(at_most(60), Level.NEUTRAL, "Typical collection period", "30 - 60 days"),
        Band(always, Level.BAD, "Slow collection; check credit terms and customer quality", "> 60 days"),
    )),
    "days_inventory_outstanding": MetricRule("DIO", (
        Band(at_most(45), Level.GOOD, "Inventory turns over quickly", "<= 45 days"),
        Band(at_most(90), Level.NEUTRAL, "Typical inventory holding period", "45 - 90 days"),
        Band(always, Level.BAD, "Inventory sits long; possible overstock or weak demand", "> 90 days"),
    ), missing_message=_NO_INVENTORY),
    "days_payables_outstanding": MetricRule("DPO", (
        Band(between(30, 60), Level.GOOD, "Balanced supplier payment terms", "30 - 60 days"),
        Band(lambda v: 60 < v <= 90, Level.NEUTRAL, "Extended supplier terms help cash flow", "60 - 90 days"),
        Band(below(30), Level.BAD, "Suppliers are paid faster than necessary", "< 30 days"),
        Band(always, Level.BAD, "Very slow supplier payments may signal cash strain", "> 90 days"),
    ), missing_message=_NO_INVENTORY),
    "cash_conversion_cycle": MetricRule("cash conversion cycle", (
        Band(below(0), Level.GOOD, "Negative cycle: customers pay before suppliers are paid", "< 0 days"),
        Band(at_most(30), Level.GOOD, "Little working capital tied up in operations", "<= 30 days"),
        Band(at_most(60), Level.NEUTRAL, "Average cash conversion period", "30 - 60 days"),
        Band(always, Level.BAD, "Significant working capital tied up in operations", "> 60 days"),
    ), missing_message=_NO_INVENTORY),
    "operating_cash_flow_ratio": MetricRule("operating cash flow ratio", (
        Band(above(1.0), Level.GOOD, "Operating cash flow covers current liabilities", ">= 1.0"),
        Band(above(0.5), Level.NEUTRAL, "Operating cash flow covers half of current liabilities", "0.5 - 1.0"),
        Band(always, Level.BAD, "Operating cash flow is weak against current liabilities", "< 0.5"),
    )),
}


def interpret_liquidity(metrics: LiquidityMetrics) -> dict[str, Interpretation]:
    """Read each rated liquidity metric."""
    return interpret_metrics(metrics, LIQUIDITY_RULES)
