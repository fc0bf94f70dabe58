"""Tests for finmetrics.metrics.industry."""

from __future__ import annotations

import pytest

from finmetrics.data.loader import snapshot_from_dict
from finmetrics.data.models import CompetitorRevenue, FinancialSnapshot, IndustryData
from finmetrics.metrics.industry import (
    IndustryMetrics,
    calculate_hhi,
    competitive_position,
    compute_industry,
    concentration_ratio,
    cr4_label,
    hhi_label,
    interpret_industry,
    market_share_label,
    market_shares,
)

COMPETITORS = (
    CompetitorRevenue("AAA", 400.0),
    CompetitorRevenue("CCC", 200.0),
    CompetitorRevenue("BBB", 300.0),
    CompetitorRevenue("DDD", 100.0),
)


class TestMarketShares:

    def test_sorted_largest_first(self) -> None:
        shares = market_shares(COMPETITORS, 1000.0)
        assert list(shares.index) == ["AAA", "BBB", "CCC", "DDD"]
        assert shares["AAA"] == pytest.approx(0.4)

    def test_competitor_sum_stands_in_for_total(self) -> None:
        shares = market_shares(COMPETITORS, None)
        assert shares.sum() == pytest.approx(1.0)

    def test_no_competitors(self) -> None:
        assert market_shares((), 1000.0).empty

    def test_zero_total(self) -> None:
        assert market_shares(COMPETITORS, 0.0).empty


class TestConcentration:

    def test_hhi(self) -> None:
        shares = market_shares(COMPETITORS, 1000.0)
        assert calculate_hhi(shares) == pytest.approx(3000.0)

    def test_hhi_against_larger_industry(self) -> None:
        shares = market_shares(COMPETITORS, 2000.0)
        assert calculate_hhi(shares) == pytest.approx(750.0)

    def test_concentration_ratios(self) -> None:
        shares = market_shares(COMPETITORS, 2000.0)
        assert concentration_ratio(shares, 4) == pytest.approx(0.5)
        assert concentration_ratio(shares, 2) == pytest.approx(0.35)

    def test_duplicate_symbols_kept_separate(self) -> None:
        competitors = (CompetitorRevenue("", 50.0), CompetitorRevenue("", 50.0))
        shares = market_shares(competitors, 100.0)
        assert len(shares) == 2
        assert calculate_hhi(shares) == pytest.approx(5000.0)
        assert concentration_ratio(shares, 4) == pytest.approx(1.0)

    def test_loaded_competitors_without_symbols(self) -> None:
        snapshot = snapshot_from_dict({
            "revenue": 50,
            "industry": {
                "industryRevenue": 100,
                "competitorRevenues": [{"revenue": 50}, {"revenue": 30}, {"revenue": 20}],
            },
        })
        result = compute_industry(snapshot)
        assert result.hhi_index == pytest.approx(3800.0)
        assert result.cr4 == pytest.approx(1.0)

    def test_empty_shares(self) -> None:
        shares = market_shares((), None)
        assert calculate_hhi(shares) is None
        assert concentration_ratio(shares, 4) is None


class TestLabels:

    def test_hhi_label(self) -> None:
        assert hhi_label(1000.0) == "Competitive market"
        assert hhi_label(2000.0) == "Moderately concentrated"
        assert hhi_label(3000.0) == "Highly concentrated"
        assert hhi_label(None) == "Unknown"

    def test_cr4_label(self) -> None:
        assert cr4_label(0.3) == "Competitive"
        assert cr4_label(0.5) == "Oligopoly"
        assert cr4_label(0.8) == "High concentration"
        assert cr4_label(None) == "Unknown"

    def test_market_share_label(self) -> None:
        assert market_share_label(0.35) == "Market leader with dominant position"
        assert market_share_label(0.20) == "Strong market position"
        assert market_share_label(0.05) == "Moderate market presence"
        assert market_share_label(0.01) == "Small market participant"
        assert market_share_label(None) == "Small market participant"


class TestCompetitivePosition:

    def test_middle_of_the_pack(self) -> None:
        position = competitive_position(250.0, COMPETITORS)
        assert position is not None
        assert position.rank == 3
        assert position.total_competitors == 4
        assert position.percentile == pytest.approx(50.0)
        assert position.revenue_vs_median == pytest.approx(0.0)
        assert position.revenue_vs_average == pytest.approx(0.0)

    def test_leader(self) -> None:
        position = competitive_position(500.0, COMPETITORS)
        assert position is not None
        assert position.rank == 1
        assert position.percentile == pytest.approx(100.0)

    def test_smallest(self) -> None:
        position = competitive_position(50.0, COMPETITORS)
        assert position is not None
        assert position.rank == 5
        assert position.percentile == pytest.approx(0.0)
        assert position.revenue_vs_median == pytest.approx(-0.8)

    def test_no_competitors(self) -> None:
        assert competitive_position(250.0, ()) is None


class TestComputeIndustry:

    def test_full_data(self) -> None:
        snapshot = FinancialSnapshot(
            symbol="TEST",
            price=20.0,
            eps=1.0,
            revenue=1000.0,
            industry_data=IndustryData(
                industry_revenue=10000.0,
                industry_growth_rate=0.04,
                industry_pe=16.0,
                industry_roic=0.08,
                competitor_revenues=COMPETITORS,
            ),
        )
        result = compute_industry(snapshot)
        assert result.market_share == pytest.approx(0.1)
        assert result.hhi_index == pytest.approx(30.0)
        assert result.cr4 == pytest.approx(0.1)
        assert result.relative_valuation == pytest.approx(1.25)
        assert result.industry_growth_rate == 0.04
        assert result.industry_roic == 0.08

    def test_no_industry_data(self) -> None:
        result = compute_industry(FinancialSnapshot(symbol="TEST", revenue=1000.0))
        assert result == IndustryMetrics()


class TestInterpretIndustry:

    def test_labels(self) -> None:
        readings = interpret_industry(IndustryMetrics(market_share=0.2, hhi_index=3000.0, cr4=0.7))
        assert readings == {
            "market_share": "Strong market position",
            "concentration": "Highly concentrated",
            "competitiveness": "High concentration",
        }
