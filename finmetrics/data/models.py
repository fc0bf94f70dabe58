"""Input data models for the metrics engine."""

from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd

PRICE_COLUMNS: tuple[str, ...] = ("date", "open", "high", "low", "close", "volume")
BENCHMARK_COLUMNS: tuple[str, ...] = ("date", "close")


def empty_price_history() -> pd.DataFrame:
    """Price history frame with no rows."""
    return pd.DataFrame(columns=list(PRICE_COLUMNS))


def empty_benchmark_history() -> pd.DataFrame:
    """Benchmark history frame with no rows."""
    return pd.DataFrame(columns=list(BENCHMARK_COLUMNS))


@dataclass(frozen=True)
class MacroData:
    """Macroeconomic series values, in percent where the series is a rate."""

    gdp_growth_rate: float | None = None
    real_gdp: float | None = None
    nominal_gdp: float | None = None
    gdp_per_capita: float | None = None
    cpi: float | None = None
    ppi: float | None = None
    core_inflation: float | None = None
    inflation_rate: float | None = None
    federal_funds_rate: float | None = None
    treasury_10y: float | None = None
    treasury_2y: float | None = None
    treasury_3m: float | None = None
    treasury_30y: float | None = None
    breakeven_inflation_10y: float | None = None
    usd_index: float | None = None
    unemployment_rate: float | None = None
    wage_growth: float | None = None
    labor_productivity: float | None = None
    consumer_confidence: float | None = None
    business_confidence: float | None = None
    vix: float | None = None
    credit_spread: float | None = None


@dataclass(frozen=True)
class CompetitorRevenue:
    """Revenue of one industry participant."""

    symbol: str
    revenue: float


@dataclass(frozen=True)
class IndustryData:
    """Industry context for market-structure metrics.

    Attributes:
        industry_name: Industry label.
        sector_name: Sector label.
        industry_revenue: Total industry revenue.
        industry_growth_rate: Industry revenue growth (decimal).
        market_size: Addressable market size.
        industry_pe: Median industry P/E.
        industry_roic: Median industry ROIC (decimal).
        competitor_revenues: Revenues of the known industry participants.
    """

    industry_name: str = ""
    sector_name: str = ""
    industry_revenue: float | None = None
    industry_growth_rate: float | None = None
    market_size: float | None = None
    industry_pe: float | None = None
    industry_roic: float | None = None
    competitor_revenues: tuple[CompetitorRevenue, ...] = ()


@dataclass(frozen=True)
class TradeFXData:
    """Trade and currency inputs. Interest rates are in percent."""

    spot_rate: float | None = None
    spot_bid: float | None = None
    spot_ask: float | None = None
    forward_rate_1m: float | None = None
    forward_rate_3m: float | None = None
    forward_rate_6m: float | None = None
    forward_rate_1y: float | None = None
    domestic_rate: float | None = None
    foreign_rate: float | None = None
    export_price_index: float | None = None
    import_price_index: float | None = None
    exports: float | None = None
    imports: float | None = None
    domestic_price_level: float | None = None
    foreign_price_level: float | None = None
    fx_history: tuple[float, ...] = ()


@dataclass(frozen=True)
class PriorYearData:
    """Prior fiscal year figures for year-over-year tests."""

    revenue: float | None = None
    ebit: float | None = None
    eps: float | None = None
    net_income: float | None = None
    gross_profit: float | None = None
    total_assets: float | None = None
    total_debt: float | None = None
    current_assets: float | None = None
    current_liabilities: float | None = None
    shares_outstanding: float | None = None


@dataclass(frozen=True)
class SectorMedians:
    """Sector median multiples for relative valuation scoring."""

    pe: float | None = None
    pb: float | None = None
    peg: float | None = None
    ev_to_ebitda: float | None = None


@dataclass(frozen=True, eq=False)
class FinancialSnapshot:
    """Central data contract consumed by every calculator.

    The snapshot is never modified by the engine. Any numeric field may be
    None ("unknown"); calculators treat a missing field as missing, never
    as zero, unless a formula documents otherwise.

    Attributes:
        symbol: Stock ticker symbol.
        company_name: Company name.
        sector: Business sector.
        industry: Industry label.
        as_of: Snapshot timestamp (ISO-8601 string), echoed in the output.
        price_history: Daily bars sorted by date ascending.
            Columns: date, open, high, low, close, volume.
        market_price_history: Benchmark index bars sorted by date.
            Columns: date, close.
        historical_revenue: Annual revenue, oldest first.
        historical_net_income: Annual net income, oldest first.
        historical_eps: Annual EPS, oldest first.
        historical_dividends: Annual dividends per share, oldest first.
        historical_fcf: Annual free cash flow, oldest first.
        risk_free_rate: Decimal risk-free rate. Falls back to the 10Y
            treasury yield in ``macro`` when None.
        position_value: Position size for dollar VaR.
        stock_returns: Explicit return series for the DCF beta.
        market_returns: Benchmark returns paired with stock_returns.
    """

    symbol: str = ""
    company_name: str = ""
    sector: str = ""
    industry: str = ""
    as_of: str | None = None

    # Quote
    price: float | None = None
    previous_close: float | None = None
    volume: float | None = None
    average_volume: float | None = None
    market_cap: float | None = None
    beta: float | None = None
    pe: float | None = None
    eps: float | None = None
    forward_pe: float | None = None
    forward_eps: float | None = None
    dividend_rate: float | None = None
    dividend_yield: float | None = None
    analyst_target_price: float | None = None

    # Income statement
    revenue: float | None = None
    cost_of_revenue: float | None = None
    gross_profit: float | None = None
    operating_expenses: float | None = None
    operating_income: float | None = None
    ebitda: float | None = None
    ebit: float | None = None
    interest_expense: float | None = None
    pretax_income: float | None = None
    income_tax: float | None = None
    net_income: float | None = None

    # Balance sheet
    total_assets: float | None = None
    current_assets: float | None = None
    cash: float | None = None
    short_term_investments: float | None = None
    net_receivables: float | None = None
    inventory: float | None = None
    total_liabilities: float | None = None
    current_liabilities: float | None = None
    short_term_debt: float | None = None
    accounts_payable: float | None = None
    long_term_debt: float | None = None
    total_debt: float | None = None
    total_equity: float | None = None
    retained_earnings: float | None = None

    # Cash flow statement
    operating_cash_flow: float | None = None
    investing_cash_flow: float | None = None
    financing_cash_flow: float | None = None
    capital_expenditures: float | None = None
    free_cash_flow: float | None = None
    dividends_paid: float | None = None

    shares_outstanding: float | None = None

    # History
    historical_revenue: tuple[float, ...] = ()
    historical_net_income: tuple[float, ...] = ()
    historical_eps: tuple[float, ...] = ()
    historical_dividends: tuple[float, ...] = ()
    historical_fcf: tuple[float, ...] = ()
    price_history: pd.DataFrame = field(default_factory=empty_price_history)
    market_price_history: pd.DataFrame = field(
        default_factory=empty_benchmark_history
    )

    # Market context
    risk_free_rate: float | None = None
    position_value: float | None = None
    stock_returns: tuple[float, ...] | None = None
    market_returns: tuple[float, ...] | None = None

    # Collaborator data
    macro: MacroData = field(default_factory=MacroData)
    industry_data: IndustryData = field(default_factory=IndustryData)
    trade_fx: TradeFXData = field(default_factory=TradeFXData)
    prior_year: PriorYearData | None = None
    sector_medians: SectorMedians | None = None

    def closes(self) -> list[float]:
        """Closing prices in chronological order."""
        if self.price_history.empty:
            return []
        return [float(v) for v in self.price_history["close"]]
