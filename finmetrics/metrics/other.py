"""Per-share figures, operating and financial leverage, and distress scores.

Includes the Altman Z-score for bankruptcy risk and the Piotroski F-score
for fundamental strength. Year-over-year tests need ``prior_year`` data;
without it the F-score falls back to its three single-period tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from finmetrics.data.models import FinancialSnapshot, PriorYearData
from finmetrics.interpretation import (
    Band,
    Interpretation,
    Level,
    MetricRule,
    above,
    always,
    at_most,
    below,
    interpret,
    interpret_metrics,
)
from finmetrics.kernel import percentage_change, safe_divide, safe_subtract
from finmetrics.metrics.profitability import calculate_noplat, invested_capital

logger = logging.getLogger(__name__)

ALTMAN_SAFE = 2.99
ALTMAN_DISTRESS = 1.81


@dataclass(frozen=True)
class OtherMetrics:
    """Miscellaneous fundamentals.

    Attributes:
        effective_tax_rate: Income tax / pretax income, positive pretax
            income and a rate within [0, 1] only.
        working_capital: Current assets - current liabilities (currency).
        book_value_per_share: Equity / shares.
        sales_per_share: Revenue / shares.
        cash_flow_per_share: Operating cash flow / shares.
        operating_leverage: %change EBIT / %change revenue (DOL).
        financial_leverage: %change EPS / %change EBIT (DFL).
        altman_z_score: Five-factor Altman Z.
        altman_zone: "safe", "grey" or "distress".
        piotroski_f_score: Count of passed F-score tests.
        piotroski_strength: "strong", "moderate" or "weak".
        excess_roic: Company ROIC less the industry median ROIC.
    """

    effective_tax_rate: float | None = None
    working_capital: float | None = None
    book_value_per_share: float | None = None
    sales_per_share: float | None = None
    cash_flow_per_share: float | None = None
    operating_leverage: float | None = None
    financial_leverage: float | None = None
    altman_z_score: float | None = None
    altman_zone: str | None = None
    piotroski_f_score: int | None = None
    piotroski_strength: str | None = None
    excess_roic: float | None = None


def calculate_effective_tax_rate(
    income_tax: float | None, pretax_income: float | None
) -> float | None:
    """Income tax / pretax income; None unless pretax > 0 and 0 <= rate <= 1."""
    if pretax_income is None or pretax_income <= 0 or income_tax is None:
        return None
    rate = income_tax / pretax_income
    if rate < 0 or rate > 1:
        return None
    return rate


def calculate_operating_leverage(
    snapshot: FinancialSnapshot, prior: PriorYearData | None
) -> float | None:
    """Degree of operating leverage from year-over-year changes."""
    if prior is None:
        return None
    return safe_divide(
        percentage_change(snapshot.ebit, prior.ebit),
        percentage_change(snapshot.revenue, prior.revenue),
    )


def calculate_financial_leverage(
    snapshot: FinancialSnapshot, prior: PriorYearData | None
) -> float | None:
    """Degree of financial leverage from year-over-year changes."""
    if prior is None:
        return None
    return safe_divide(
        percentage_change(snapshot.eps, prior.eps),
        percentage_change(snapshot.ebit, prior.ebit),
    )


def calculate_altman_z_score(snapshot: FinancialSnapshot) -> float | None:
    """Altman Z for public manufacturers.

    Z = 1.2 WC/TA + 1.4 RE/TA + 3.3 EBIT/TA + 0.6 MCap/TL + 1.0 Sales/TA

    Returns:
        None unless total assets and total liabilities are positive and
        every component is available.
    """
    s = snapshot
    ta, tl = s.total_assets, s.total_liabilities
    if ta is None or ta <= 0 or tl is None or tl <= 0:
        return None
    components = (
        safe_divide(safe_subtract(s.current_assets, s.current_liabilities), ta),
        safe_divide(s.retained_earnings, ta),
        safe_divide(s.ebit, ta),
        safe_divide(s.market_cap, tl),
        safe_divide(s.revenue, ta),
    )
    if any(c is None for c in components):
        return None
    wc, re, ebit, mve, sales = components
    return 1.2 * wc + 1.4 * re + 3.3 * ebit + 0.6 * mve + 1.0 * sales  # type: ignore[operator]


def altman_zone(z_score: float | None) -> str | None:
    """Classify a Z-score as safe, grey or distress."""
    if z_score is None:
        return None
    if z_score > ALTMAN_SAFE:
        return "safe"
    if z_score >= ALTMAN_DISTRESS:
        return "grey"
    return "distress"


def _increased(current: float | None, previous: float | None) -> bool:
    return current is not None and previous is not None and current > previous


def piotroski_tests(
    snapshot: FinancialSnapshot, prior: PriorYearData | None
) -> dict[str, bool]:
    """Evaluate the Piotroski tests that the available data supports.

    Args:
        snapshot: Current-year snapshot.
        prior: Prior-year figures; without them only the three
            single-period tests are run.

    Returns:
        Test name to pass/fail, three or nine entries.
    """
    s = snapshot
    tests = {
        "positive_net_income": (s.net_income or 0) > 0,
        "positive_operating_cash_flow": (s.operating_cash_flow or 0) > 0,
        "cash_flow_exceeds_net_income": _increased(s.operating_cash_flow, s.net_income),
    }
    if prior is None:
        return tests

    current_leverage = safe_divide(s.total_debt, s.total_assets)
    prior_leverage = safe_divide(prior.total_debt, prior.total_assets)
    tests.update({
        "roa_increasing": _increased(
            safe_divide(s.net_income, s.total_assets),
            safe_divide(prior.net_income, prior.total_assets),
        ),
        "debt_to_assets_decreasing": _increased(prior_leverage, current_leverage),
        "current_ratio_increasing": _increased(
            safe_divide(s.current_assets, s.current_liabilities),
            safe_divide(prior.current_assets, prior.current_liabilities),
        ),
        "no_new_shares_issued": (
            s.shares_outstanding is not None
            and prior.shares_outstanding is not None
            and s.shares_outstanding <= prior.shares_outstanding
        ),
        "gross_margin_increasing": _increased(
            safe_divide(s.gross_profit, s.revenue),
            safe_divide(prior.gross_profit, prior.revenue),
        ),
        "asset_turnover_increasing": _increased(
            safe_divide(s.revenue, s.total_assets),
            safe_divide(prior.revenue, prior.total_assets),
        ),
    })
    return tests


def piotroski_strength(f_score: int | None) -> str | None:
    """Classify an F-score as strong (8+), moderate (3-7) or weak."""
    if f_score is None:
        return None
    if f_score >= 8:
        return "strong"
    if f_score >= 3:
        return "moderate"
    return "weak"


def calculate_excess_roic(
    snapshot: FinancialSnapshot, industry_roic: float | None
) -> float | None:
    """Company ROIC minus the industry median ROIC."""
    if industry_roic is None:
        return None
    roic = safe_divide(calculate_noplat(snapshot), invested_capital(snapshot))
    if roic is None:
        return None
    return roic - industry_roic


def compute_other(snapshot: FinancialSnapshot) -> OtherMetrics:
    """Compute per-share, leverage-degree and distress metrics.

    Args:
        snapshot: Company snapshot; ``prior_year`` enables DOL, DFL and
            the full nine-test F-score.

    Returns:
        OtherMetrics.
    """
    s = snapshot
    prior = s.prior_year
    if prior is None:
        logger.debug("%s: no prior-year data, F-score limited to 3 tests", s.symbol)

    z = calculate_altman_z_score(s)
    f_score = sum(piotroski_tests(s, prior).values())

    return OtherMetrics(
        effective_tax_rate=calculate_effective_tax_rate(s.income_tax, s.pretax_income),
        working_capital=safe_subtract(s.current_assets, s.current_liabilities),
        book_value_per_share=safe_divide(s.total_equity, s.shares_outstanding),
        sales_per_share=safe_divide(s.revenue, s.shares_outstanding),
        cash_flow_per_share=safe_divide(s.operating_cash_flow, s.shares_outstanding),
        operating_leverage=calculate_operating_leverage(s, prior),
        financial_leverage=calculate_financial_leverage(s, prior),
        altman_z_score=z,
        altman_zone=altman_zone(z),
        piotroski_f_score=f_score,
        piotroski_strength=piotroski_strength(f_score),
        excess_roic=calculate_excess_roic(s, s.industry_data.industry_roic),
    )


OTHER_RULES: dict[str, MetricRule] = {
    "effective_tax_rate": MetricRule("effective tax rate", (
        Band(below(0.15), Level.GOOD, "Low effective tax rate", "< 15%"),
        Band(at_most(0.25), Level.GOOD, "Effective tax rate near the corporate average", "15% - 25%"),
        Band(at_most(0.35), Level.NEUTRAL, "Above-average tax burden", "25% - 35%"),
        Band(always, Level.BAD, "Very high effective tax rate", "> 35%"),
    )),
    "operating_leverage": MetricRule("operating leverage", (
        Band(lambda v: v > 3, Level.BAD, "Very high operating leverage; profits swing with sales", "> 3.0"),
        Band(lambda v: v > 2, Level.NEUTRAL, "High operating leverage", "2.0 - 3.0"),
        Band(lambda v: v > 1, Level.GOOD, "Balanced cost structure", "1.0 - 2.0"),
        Band(always, Level.GOOD, "Mostly variable cost structure", "<= 1.0"),
    )),
    "financial_leverage": MetricRule("financial leverage", (
        Band(lambda v: v > 1.5, Level.BAD, "Interest burden amplifies earnings swings", "> 1.5"),
        Band(lambda v: v > 1, Level.NEUTRAL, "Moderate financial leverage", "1.0 - 1.5"),
        Band(always, Level.GOOD, "Conservative capital structure", "<= 1.0"),
    )),
    "altman_z_score": MetricRule("Altman Z-score", (
        Band(lambda v: v > ALTMAN_SAFE, Level.GOOD, "Safe zone: low bankruptcy risk", "> 2.99"),
        Band(above(ALTMAN_DISTRESS), Level.NEUTRAL, "Grey zone: moderate bankruptcy risk", "1.81 - 2.99"),
        Band(always, Level.BAD, "Distress zone: high bankruptcy risk", "< 1.81"),
    )),
    "piotroski_f_score": MetricRule("Piotroski F-score", (
        Band(above(8), Level.GOOD, "Strong fundamentals", "8 - 9"),
        Band(above(3), Level.NEUTRAL, "Mixed fundamentals", "3 - 7"),
        Band(always, Level.BAD, "Weak fundamentals", "0 - 2"),
    )),
    "excess_roic": MetricRule("excess ROIC", (
        Band(lambda v: v > 0.10, Level.GOOD, "Returns far above the industry", "> 10%"),
        Band(lambda v: v > 0, Level.GOOD, "Returns above the industry", "0% - 10%"),
        Band(lambda v: v > -0.05, Level.NEUTRAL, "Returns slightly below the industry", "-5% - 0%"),
        Band(always, Level.BAD, "Returns well below the industry", "< -5%"),
    ), missing_message="Industry ROIC or company ROIC unavailable"),
}


def interpret_working_capital(
    working_capital: float | None, current_liabilities: float | None
) -> Interpretation:
    """Read working capital relative to current liabilities."""
    ratio = None
    if working_capital is not None and current_liabilities is not None and current_liabilities > 0:
        ratio = working_capital / current_liabilities
    rule = MetricRule("working capital", (
        Band(below(0), Level.BAD, "Negative working capital; possible liquidity strain", "< 0"),
        Band(below(0.2), Level.BAD, "Thin working capital relative to obligations", "< 20% of CL"),
        Band(at_most(0.5), Level.NEUTRAL, "Adequate working capital", "20% - 50% of CL"),
        Band(always, Level.GOOD, "Strong working capital position", "> 50% of CL"),
    ))
    if working_capital is not None and working_capital < 0:
        return interpret(working_capital, rule)
    return interpret(ratio, rule)


def interpret_other(
    metrics: OtherMetrics, current_liabilities: float | None = None
) -> dict[str, Interpretation]:
    """Read each rated metric, plus working capital when CL is known."""
    readings = interpret_metrics(metrics, OTHER_RULES)
    readings["working_capital"] = interpret_working_capital(
        metrics.working_capital, current_liabilities
    )
    return readings
