"""Industry structure: market share, concentration and relative valuation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from finmetrics.data.models import CompetitorRevenue, FinancialSnapshot
from finmetrics.kernel import safe_divide
from finmetrics.metrics.valuation import calculate_pe_ratio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndustryMetrics:
    """Industry position outputs.

    Attributes:
        industry_growth_rate: Industry revenue growth (pass-through).
        market_size: Addressable market size (pass-through).
        market_share: Company revenue / industry revenue.
        hhi_index: Herfindahl-Hirschman index on a 0-10000 scale.
        cr4: Combined share of the four largest participants.
        cr8: Combined share of the eight largest participants.
        industry_pe: Median industry P/E (pass-through).
        industry_roic: Median industry ROIC (pass-through).
        relative_valuation: Company P/E / industry P/E.
    """

    industry_growth_rate: float | None = None
    market_size: float | None = None
    market_share: float | None = None
    hhi_index: float | None = None
    cr4: float | None = None
    cr8: float | None = None
    industry_pe: float | None = None
    industry_roic: float | None = None
    relative_valuation: float | None = None


@dataclass(frozen=True)
class CompetitivePosition:
    """Company revenue rank among its competitors."""

    rank: int
    total_competitors: int
    percentile: float
    revenue_vs_median: float | None
    revenue_vs_average: float | None


def market_shares(
    competitors: Sequence[CompetitorRevenue], industry_revenue: float | None
) -> pd.Series:
    """Revenue share of each competitor, indexed by symbol.

    Args:
        competitors: Known industry participants.
        industry_revenue: Total industry revenue. When missing, the sum of
            the competitor revenues stands in for it.

    Returns:
        Non-negative shares sorted largest first; empty when no total is
        available.
    """
    revenues = pd.Series(
        [c.revenue for c in competitors],
        index=[c.symbol for c in competitors],
        dtype=float,
    )
    total = industry_revenue if industry_revenue is not None else revenues.sum()
    if revenues.empty or not total:
        return pd.Series(dtype=float)
    shares = revenues / total
    return shares[shares >= 0].sort_values(ascending=False)


def calculate_hhi(shares: pd.Series) -> float | None:
    """Sum of squared shares x 10000; None without shares."""
    if shares.empty:
        return None
    return float((shares ** 2).sum() * 10000)


def concentration_ratio(shares: pd.Series, top: int) -> float | None:
    """Combined share of the ``top`` largest participants."""
    if shares.empty:
        return None
    return float(shares.nlargest(top).sum())


def hhi_label(hhi: float | None) -> str:
    """Describe market concentration from the HHI."""
    if hhi is None:
        return "Unknown"
    if hhi < 1500:
        return "Competitive market"
    if hhi < 2500:
        return "Moderately concentrated"
    return "Highly concentrated"


def cr4_label(cr4: float | None) -> str:
    """Describe market concentration from the four-firm ratio."""
    if cr4 is None:
        return "Unknown"
    if cr4 < 0.4:
        return "Competitive"
    if cr4 < 0.6:
        return "Oligopoly"
    return "High concentration"


def market_share_label(share: float | None) -> str:
    """Describe the company's standing from its market share."""
    pct = (share or 0.0) * 100
    if pct >= 30:
        return "Market leader with dominant position"
    if pct >= 15:
        return "Strong market position"
    if pct >= 5:
        return "Moderate market presence"
    return "Small market participant"


def competitive_position(
    company_revenue: float, competitors: Sequence[CompetitorRevenue]
) -> CompetitivePosition | None:
    """Rank the company's revenue against its competitors.

    Returns:
        CompetitivePosition, or None without competitors.
    """
    if not competitors:
        return None
    revenues = pd.Series([c.revenue for c in competitors], dtype=float)
    ordered = revenues.sort_values(ascending=False).reset_index(drop=True)
    at_or_below = ordered[ordered <= company_revenue]
    rank = int(at_or_below.index[0]) + 1 if not at_or_below.empty else len(ordered) + 1
    total = len(ordered)
    median = float(ordered.median())
    average = float(ordered.mean())
    return CompetitivePosition(
        rank=rank,
        total_competitors=total,
        percentile=(total - rank + 1) / total * 100,
        revenue_vs_median=safe_divide(company_revenue - median, median),
        revenue_vs_average=safe_divide(company_revenue - average, average),
    )


def compute_industry(snapshot: FinancialSnapshot) -> IndustryMetrics:
    """Compute industry structure metrics for a single company.

    Args:
        snapshot: Company snapshot with ``industry_data``.

    Returns:
        IndustryMetrics; concentration measures are None without
        competitor revenues.
    """
    data = snapshot.industry_data
    shares = market_shares(data.competitor_revenues, data.industry_revenue)
    if shares.empty:
        logger.debug("%s: no competitor revenues, concentration skipped", snapshot.symbol)

    return IndustryMetrics(
        industry_growth_rate=data.industry_growth_rate,
        market_size=data.market_size,
        market_share=safe_divide(snapshot.revenue, data.industry_revenue),
        hhi_index=calculate_hhi(shares),
        cr4=concentration_ratio(shares, 4),
        cr8=concentration_ratio(shares, 8),
        industry_pe=data.industry_pe,
        industry_roic=data.industry_roic,
        relative_valuation=safe_divide(calculate_pe_ratio(snapshot), data.industry_pe),
    )


def interpret_industry(metrics: IndustryMetrics) -> dict[str, str]:
    """Label market share and concentration."""
    return {
        "market_share": market_share_label(metrics.market_share),
        "concentration": hhi_label(metrics.hhi_index),
        "competitiveness": cr4_label(metrics.cr4),
    }
