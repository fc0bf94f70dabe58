"""Profitability metrics, returns on capital and DuPont decomposition."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from finmetrics.analysis.dcf import calculate_effective_tax_rate
from finmetrics.config import DEFAULT_TAX_RATE
from finmetrics.data.models import FinancialSnapshot
from finmetrics.interpretation import (
    Band,
    Interpretation,
    Level,
    MetricRule,
    above,
    always,
    interpret_metrics,
)
from finmetrics.kernel import safe_divide, safe_multiply, safe_subtract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfitabilityMetrics:
    """Margins and returns, all as decimals except the currency amounts.

    Attributes:
        gross_margin: Gross profit / revenue.
        operating_margin: Operating income / revenue.
        ebitda_margin: EBITDA / revenue.
        net_margin: Net income / revenue.
        roa: Net income / total assets.
        roe: Net income / total equity.
        roic: NOPLAT / (debt + equity - cash), positive capital only.
        noplat: EBIT after tax (currency).
        roce: EBIT / (total assets - current liabilities).
        rona: Net income / (total assets - current liabilities).
        cash_roa: Operating cash flow / total assets.
        cash_roe: Operating cash flow / total equity.
        pretax_margin: Pretax income / revenue.
        ebit_margin: EBIT / revenue.
        operating_roa: Operating income / total assets.
        economic_profit: NOPLAT less a capital charge on invested capital
            (currency).
        spread_above_wacc: ROIC less the capital charge rate.
    """

    gross_margin: float | None = None
    operating_margin: float | None = None
    ebitda_margin: float | None = None
    net_margin: float | None = None
    roa: float | None = None
    roe: float | None = None
    roic: float | None = None
    noplat: float | None = None
    roce: float | None = None
    rona: float | None = None
    cash_roa: float | None = None
    cash_roe: float | None = None
    pretax_margin: float | None = None
    ebit_margin: float | None = None
    operating_roa: float | None = None
    economic_profit: float | None = None
    spread_above_wacc: float | None = None


@dataclass(frozen=True)
class DuPontMetrics:
    """Three- and five-factor ROE decomposition.

    ``roe`` is net margin x asset turnover x equity multiplier. Interest
    burden (EBT / EBIT) and tax burden (net income / EBT) extend it to
    the five-factor form with ``operating_margin`` as EBIT / revenue.
    """

    net_margin: float | None = None
    asset_turnover: float | None = None
    equity_multiplier: float | None = None
    roe: float | None = None
    operating_margin: float | None = None
    interest_burden: float | None = None
    tax_burden: float | None = None


def tax_rate_or_default(s: FinancialSnapshot) -> float:
    """Effective tax rate from the income statement, else the default rate."""
    rate = calculate_effective_tax_rate(s.income_tax, s.pretax_income)
    return DEFAULT_TAX_RATE if rate is None else rate


def calculate_noplat(snapshot: FinancialSnapshot) -> float | None:
    """EBIT x (1 - effective tax rate), falling back to the default rate."""
    return safe_multiply(snapshot.ebit, 1 - tax_rate_or_default(snapshot))


def invested_capital(snapshot: FinancialSnapshot) -> float | None:
    """Debt + equity - cash; None unless positive."""
    s = snapshot
    if s.total_debt is None and s.total_equity is None:
        return None
    capital = (s.total_debt or 0.0) + (s.total_equity or 0.0) - (s.cash or 0.0)
    return capital if capital > 0 else None


def _positive(value: float | None) -> float | None:
    return value if value is not None and value > 0 else None


def compute_profitability(
    snapshot: FinancialSnapshot, wacc: float = 0.10
) -> ProfitabilityMetrics:
    """Compute margins and returns on capital.

    Args:
        snapshot: Company snapshot.
        wacc: Capital charge rate for economic profit and ROIC spread.

    Returns:
        ProfitabilityMetrics.
    """
    s = snapshot
    noplat = calculate_noplat(s)
    capital = invested_capital(s)
    roic = safe_divide(noplat, capital)
    if roic is None:
        logger.debug("%s: ROIC undefined (NOPLAT %s, invested capital %s)", s.symbol, noplat, capital)

    capital_employed = _positive(safe_subtract(s.total_assets, s.current_liabilities))

    economic_profit = None
    if noplat is not None and capital is not None:
        economic_profit = noplat - capital * wacc

    return ProfitabilityMetrics(
        gross_margin=safe_divide(s.gross_profit, s.revenue),
        operating_margin=safe_divide(s.operating_income, s.revenue),
        ebitda_margin=safe_divide(s.ebitda, s.revenue),
        net_margin=safe_divide(s.net_income, s.revenue),
        roa=safe_divide(s.net_income, s.total_assets),
        roe=safe_divide(s.net_income, s.total_equity),
        roic=roic,
        noplat=noplat,
        roce=safe_divide(s.ebit, capital_employed),
        rona=safe_divide(s.net_income, capital_employed),
        cash_roa=safe_divide(s.operating_cash_flow, s.total_assets),
        cash_roe=safe_divide(s.operating_cash_flow, s.total_equity),
        pretax_margin=safe_divide(s.pretax_income, s.revenue),
        ebit_margin=safe_divide(s.ebit, s.revenue),
        operating_roa=safe_divide(s.operating_income, s.total_assets),
        economic_profit=economic_profit,
        spread_above_wacc=None if roic is None else roic - wacc,
    )


def compute_dupont(snapshot: FinancialSnapshot) -> DuPontMetrics:
    """Decompose ROE into margin, turnover and leverage."""
    s = snapshot
    net_margin = safe_divide(s.net_income, s.revenue)
    turnover = safe_divide(s.revenue, s.total_assets)
    multiplier = safe_divide(s.total_assets, s.total_equity)
    return DuPontMetrics(
        net_margin=net_margin,
        asset_turnover=turnover,
        equity_multiplier=multiplier,
        roe=safe_multiply(net_margin, turnover, multiplier),
        operating_margin=safe_divide(s.ebit, s.revenue),
        interest_burden=safe_divide(s.pretax_income, s.ebit),
        tax_burden=safe_divide(s.net_income, s.pretax_income),
    )


def _margin_rule(label: str, good: float, fair: float, noun: str) -> MetricRule:
    g, f = round(good * 100), round(fair * 100)
    return MetricRule(label, (
        Band(above(good), Level.GOOD, f"Strong {noun}", f">= {g}%"),
        Band(above(fair), Level.NEUTRAL, f"Moderate {noun}", f"{f}% - {g}%"),
        Band(above(0.0), Level.BAD, f"Thin {noun}", f"< {f}%"),
        Band(always, Level.BAD, f"Negative {noun}", "< 0%"),
    ))


PROFITABILITY_RULES: dict[str, MetricRule] = {
    "gross_margin": MetricRule("gross profit margin", (
        Band(above(0.40), Level.GOOD, "High gross margin points to pricing power", ">= 40%"),
        Band(above(0.20), Level.NEUTRAL, "Moderate gross margin; watch input costs", "20% - 40%"),
        Band(always, Level.BAD, "Low gross margin from price competition or high costs", "< 20%"),
    )),
    "operating_margin": _margin_rule("operating profit margin", 0.15, 0.05, "operating margin"),
    "ebitda_margin": _margin_rule("EBITDA margin", 0.20, 0.10, "EBITDA margin"),
    "net_margin": _margin_rule("net profit margin", 0.10, 0.03, "net margin"),
    "roa": _margin_rule("ROA", 0.08, 0.03, "return on assets"),
    "roe": _margin_rule("ROE", 0.15, 0.08, "return on equity"),
    "roic": _margin_rule("ROIC", 0.12, 0.06, "return on invested capital"),
    "noplat": MetricRule("NOPLAT", (
        Band(lambda v: v > 0, Level.GOOD, "Operations are profitable after tax", "> 0"),
        Band(always, Level.BAD, "Operations lose money after tax", "<= 0"),
    )),
}


def interpret_profitability(metrics: ProfitabilityMetrics) -> dict[str, Interpretation]:
    """Read each rated profitability metric."""
    return interpret_metrics(metrics, PROFITABILITY_RULES)
