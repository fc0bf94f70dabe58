"""Valuation multiples, enterprise value and justified multiples."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from finmetrics.config import DEFAULT_COST_OF_EQUITY, DEFAULT_LONG_TERM_GROWTH
from finmetrics.data.models import FinancialSnapshot
from finmetrics.kernel import percentage_change, safe_divide, safe_subtract
from finmetrics.metrics.growth import calculate_payout_ratio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValuationMetrics:
    """Market multiples.

    Attributes:
        pe_ratio: Reported P/E, else price / EPS; positive only.
        forward_pe: Reported forward P/E, else price / forward EPS;
            positive only.
        justified_pe: (1 - payout) / (r - g).
        pb_ratio: Price / book value per share.
        justified_pb: (ROE - g) / (r - g).
        ps_ratio: Market cap / revenue.
        pcf_ratio: Price / operating cash flow per share.
        enterprise_value: Market cap + debt - cash (currency).
        ev_to_ebitda: EV / EBITDA, positive EBITDA only.
        ev_to_sales: EV / revenue.
        ev_to_ebit: EV / EBIT.
        dividend_yield: Reported yield, else dividend rate / price.
        peg_ratio: P/E / (EPS growth in percent), positive growth only.
        earnings_yield: 1 / P/E.
        price_to_fcf: Market cap / free cash flow.
        ev_to_fcf: EV / free cash flow.
        tobins_q: Market cap / total assets, book assets standing in for
            replacement cost.
        graham_number: sqrt(22.5 x EPS x BVPS), positive EPS and BVPS only.
        net_current_asset_value: (Current assets - total liabilities) per
            share.
    """

    pe_ratio: float | None = None
    forward_pe: float | None = None
    justified_pe: float | None = None
    pb_ratio: float | None = None
    justified_pb: float | None = None
    ps_ratio: float | None = None
    pcf_ratio: float | None = None
    enterprise_value: float | None = None
    ev_to_ebitda: float | None = None
    ev_to_sales: float | None = None
    ev_to_ebit: float | None = None
    dividend_yield: float | None = None
    peg_ratio: float | None = None
    earnings_yield: float | None = None
    price_to_fcf: float | None = None
    ev_to_fcf: float | None = None
    tobins_q: float | None = None
    graham_number: float | None = None
    net_current_asset_value: float | None = None


@dataclass(frozen=True)
class ValuationComparison:
    """Actual multiple against its justified level."""

    metric: str
    actual: float
    justified: float
    premium: float | None
    interpretation: str


def _positive(value: float | None) -> float | None:
    return value if value is not None and value > 0 else None


def calculate_pe_ratio(snapshot: FinancialSnapshot) -> float | None:
    """Reported P/E, else price / EPS; None unless positive."""
    pe = snapshot.pe
    if pe is None:
        pe = safe_divide(snapshot.price, snapshot.eps)
    return _positive(pe)


def calculate_enterprise_value(
    market_cap: float | None, total_debt: float | None, cash: float | None
) -> float | None:
    """Market cap + debt - cash, treating missing debt or cash as zero."""
    if market_cap is None:
        return None
    return market_cap + (total_debt or 0.0) - (cash or 0.0)


def calculate_justified_pe(
    payout_ratio: float | None, required_return: float, growth: float
) -> float | None:
    """Gordon-growth P/E: (1 - payout) / (r - g); None unless r > g."""
    if payout_ratio is None or required_return <= growth:
        return None
    return (1 - payout_ratio) / (required_return - growth)


def calculate_justified_pb(
    roe: float | None, required_return: float, growth: float
) -> float | None:
    """Gordon-growth P/B: (ROE - g) / (r - g); None unless r > g."""
    if roe is None or required_return <= growth:
        return None
    return (roe - growth) / (required_return - growth)


def calculate_peg_ratio(
    pe_ratio: float | None, eps_growth: float | None
) -> float | None:
    """P/E divided by EPS growth expressed in percent.

    Returns:
        None unless both are present and growth is positive.
    """
    if pe_ratio is None or eps_growth is None or eps_growth <= 0:
        return None
    return pe_ratio / (eps_growth * 100)


def _graham_number(eps: float | None, bvps: float | None) -> float | None:
    if eps is None or bvps is None or eps <= 0 or bvps <= 0:
        return None
    return math.sqrt(22.5 * eps * bvps)


def compute_valuation(
    snapshot: FinancialSnapshot,
    cost_of_equity: float | None = None,
    long_term_growth: float = DEFAULT_LONG_TERM_GROWTH,
) -> ValuationMetrics:
    """Compute valuation multiples for a single company.

    Args:
        snapshot: Company snapshot.
        cost_of_equity: Required return for justified multiples. Falls
            back to DEFAULT_COST_OF_EQUITY.
        long_term_growth: Perpetual growth for justified multiples.

    Returns:
        ValuationMetrics.
    """
    s = snapshot
    r = cost_of_equity if cost_of_equity is not None else DEFAULT_COST_OF_EQUITY

    pe = calculate_pe_ratio(s)
    forward_pe = s.forward_pe if s.forward_pe is not None else safe_divide(s.price, s.forward_eps)
    bvps = safe_divide(s.total_equity, s.shares_outstanding)
    cfps = safe_divide(s.operating_cash_flow, s.shares_outstanding)
    ev = calculate_enterprise_value(s.market_cap, s.total_debt, s.cash)
    if ev is None:
        logger.debug("%s: enterprise value needs market cap", s.symbol)

    eps_growth = None
    if len(s.historical_eps) >= 2:
        eps_growth = percentage_change(s.historical_eps[-1], s.historical_eps[-2])

    dividend_yield = s.dividend_yield
    if dividend_yield is None:
        dividend_yield = safe_divide(s.dividend_rate, s.price)

    return ValuationMetrics(
        pe_ratio=pe,
        forward_pe=_positive(forward_pe),
        justified_pe=calculate_justified_pe(
            calculate_payout_ratio(s.dividends_paid, s.net_income), r, long_term_growth
        ),
        pb_ratio=safe_divide(s.price, bvps),
        justified_pb=calculate_justified_pb(
            safe_divide(s.net_income, s.total_equity), r, long_term_growth
        ),
        ps_ratio=safe_divide(s.market_cap, s.revenue),
        pcf_ratio=safe_divide(s.price, cfps),
        enterprise_value=ev,
        ev_to_ebitda=safe_divide(ev, _positive(s.ebitda)),
        ev_to_sales=safe_divide(ev, s.revenue),
        ev_to_ebit=safe_divide(ev, s.ebit),
        dividend_yield=dividend_yield,
        peg_ratio=calculate_peg_ratio(pe, eps_growth),
        earnings_yield=safe_divide(1.0, pe),
        price_to_fcf=safe_divide(s.market_cap, s.free_cash_flow),
        ev_to_fcf=safe_divide(ev, s.free_cash_flow),
        tobins_q=safe_divide(s.market_cap, s.total_assets),
        graham_number=_graham_number(s.eps, bvps),
        net_current_asset_value=safe_divide(
            safe_subtract(s.current_assets, s.total_liabilities), s.shares_outstanding
        ),
    )


def interpret_premium(premium: float | None, metric: str) -> str:
    """Describe a premium (positive) or discount to a justified multiple."""
    if premium is None:
        return "Insufficient data"
    pct = premium * 100
    if pct > 50:
        return f"{metric} significantly overvalued ({pct:.1f}% premium)"
    if pct > 20:
        return f"{metric} moderately overvalued ({pct:.1f}% premium)"
    if pct > -20:
        side = "premium" if pct >= 0 else "discount"
        return f"{metric} fairly valued ({abs(pct):.1f}% {side})"
    if pct > -50:
        return f"{metric} moderately undervalued ({abs(pct):.1f}% discount)"
    return f"{metric} significantly undervalued ({abs(pct):.1f}% discount)"


def analyze_valuation(metrics: ValuationMetrics) -> list[ValuationComparison]:
    """Compare P/E and P/B with their justified levels where both exist."""
    pairs = (
        ("P/E", metrics.pe_ratio, metrics.justified_pe),
        ("P/B", metrics.pb_ratio, metrics.justified_pb),
    )
    comparisons = []
    for name, actual, justified in pairs:
        if actual is None or justified is None:
            continue
        premium = safe_divide(actual - justified, justified)
        comparisons.append(
            ValuationComparison(
                metric=name,
                actual=actual,
                justified=justified,
                premium=premium,
                interpretation=interpret_premium(premium, name),
            )
        )
    return comparisons
