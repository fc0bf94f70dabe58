"""DCF intrinsic value calculation.

Free cash flow discounted at WACC. The cost of equity comes from CAPM,
the cost of debt from interest expense over total debt. Starting FCF
growth fades linearly towards the terminal growth rate over the
projection horizon, and the terminal value uses the Gordon Growth Model
on the final projected year.

Every stage returns None on missing inputs and absence propagates
forward: no WACC means no projection, and no projection means no
valuation. The terminal value is undefined whenever WACC <= terminal
growth.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from finmetrics.config import DEFAULT_TAX_RATE, DCFConfig, SensitivityRange
from finmetrics.data.models import FinancialSnapshot
from finmetrics.kernel import (
    calculate_cagr,
    covariance,
    percentage_change,
    safe_divide,
    safe_subtract,
    variance,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DCFInput:
    """Company figures consumed by the DCF engine."""

    price: float | None = None
    market_cap: float | None = None
    shares_outstanding: float | None = None
    total_debt: float | None = None
    cash: float | None = None
    interest_expense: float | None = None
    income_tax: float | None = None
    pretax_income: float | None = None
    free_cash_flow: float | None = None
    historical_fcf: tuple[float, ...] = ()
    beta: float | None = None
    risk_free_rate: float | None = None
    analyst_target_price: float | None = None
    stock_returns: tuple[float, ...] | None = None
    market_returns: tuple[float, ...] | None = None


@dataclass(frozen=True)
class ProjectedCashFlow:
    """One explicitly projected year."""

    year: int
    fcf: float
    growth_rate: float
    discount_factor: float
    present_value: float


@dataclass(frozen=True)
class DCFResult:
    """DCF valuation output.

    Attributes:
        risk_free_rate: Risk-free rate used in CAPM.
        market_risk_premium: Configured equity risk premium.
        beta: Regression beta, or the supplied beta as fallback.
        cost_of_equity: CAPM required return.
        cost_of_debt: Interest expense / total debt.
        effective_tax_rate: Override, or income tax / pretax income with
            the default rate substituted when outside [0, 1].
        equity_weight: Market cap / (market cap + debt).
        debt_weight: Debt / (market cap + debt).
        wacc: Weighted average cost of capital.
        fcf_growth_rate: Starting FCF growth for the projection.
        projected_cash_flows: Projected years, chronological.
        sum_of_pv_fcf: Present value of the projected cash flows.
        terminal_value: Gordon growth value at the horizon. None if
            WACC <= terminal growth.
        terminal_value_pv: Terminal value discounted to today.
        enterprise_value: sum_of_pv_fcf + terminal_value_pv.
        equity_value: Enterprise value less net debt.
        intrinsic_value: Equity value per share.
        target_price: Analyst target if preferred and available, else
            intrinsic value.
        upside_downside: (target - price) / price.
        margin_of_safety: (intrinsic - price) / intrinsic.
        implied_growth_rate: Perpetual growth implied by the market price.
        terminal_growth_rate: Configured terminal growth.
        projection_years: Configured projection horizon.
    """

    risk_free_rate: float | None
    market_risk_premium: float
    beta: float | None
    cost_of_equity: float | None
    cost_of_debt: float | None
    effective_tax_rate: float | None
    equity_weight: float | None
    debt_weight: float | None
    wacc: float | None
    fcf_growth_rate: float | None
    projected_cash_flows: list[ProjectedCashFlow] = field(default_factory=list)
    sum_of_pv_fcf: float | None = None
    terminal_value: float | None = None
    terminal_value_pv: float | None = None
    enterprise_value: float | None = None
    equity_value: float | None = None
    intrinsic_value: float | None = None
    target_price: float | None = None
    upside_downside: float | None = None
    margin_of_safety: float | None = None
    implied_growth_rate: float | None = None
    terminal_growth_rate: float = 0.025
    projection_years: int = 5


@dataclass(frozen=True)
class SensitivityGrid:
    """Enterprise value over a (WACC, terminal growth) grid.

    ``enterprise_values[i][j]`` corresponds to ``wacc_values[i]`` and
    ``terminal_growth_values[j]``; None where WACC <= growth.
    """

    wacc_values: list[float]
    terminal_growth_values: list[float]
    enterprise_values: list[list[float | None]]


@dataclass(frozen=True)
class DCFInterpretation:
    """Qualitative reading of a DCF valuation."""

    valuation: str
    confidence: str
    upside_percentage: float | None
    recommendation: str


def dcf_input_from_snapshot(
    snapshot: FinancialSnapshot,
    free_cash_flow: float | None,
    risk_free_rate: float | None,
) -> DCFInput:
    """Extract DCF inputs from a snapshot.

    Args:
        snapshot: Company snapshot.
        free_cash_flow: Base-year FCF (supplied or derived upstream).
        risk_free_rate: Resolved decimal risk-free rate.

    Returns:
        DCFInput for calculate_dcf.
    """
    return DCFInput(
        price=snapshot.price,
        market_cap=snapshot.market_cap,
        shares_outstanding=snapshot.shares_outstanding,
        total_debt=snapshot.total_debt,
        cash=snapshot.cash,
        interest_expense=snapshot.interest_expense,
        income_tax=snapshot.income_tax,
        pretax_income=snapshot.pretax_income,
        free_cash_flow=free_cash_flow,
        historical_fcf=snapshot.historical_fcf,
        beta=snapshot.beta,
        risk_free_rate=risk_free_rate,
        analyst_target_price=snapshot.analyst_target_price,
        stock_returns=snapshot.stock_returns,
        market_returns=snapshot.market_returns,
    )


# === Cost of capital ===


def calculate_beta(
    stock_returns: Sequence[float], market_returns: Sequence[float]
) -> float | None:
    """Beta as cov(stock, market) / var(market)."""
    return safe_divide(
        covariance(stock_returns, market_returns), variance(market_returns)
    )


def _resolve_beta(dcf_input: DCFInput) -> float | None:
    if dcf_input.stock_returns and dcf_input.market_returns:
        beta = calculate_beta(dcf_input.stock_returns, dcf_input.market_returns)
        if beta is not None:
            return beta
    return dcf_input.beta


def calculate_cost_of_equity(
    risk_free_rate: float | None,
    beta: float | None,
    market_risk_premium: float,
) -> float | None:
    """CAPM: risk-free rate + beta * market risk premium."""
    if risk_free_rate is None or beta is None:
        return None
    return risk_free_rate + beta * market_risk_premium


def calculate_cost_of_debt(
    interest_expense: float | None, total_debt: float | None
) -> float | None:
    """Pre-tax cost of debt as interest expense / total debt."""
    return safe_divide(interest_expense, total_debt)


def calculate_effective_tax_rate(
    income_tax: float | None,
    pretax_income: float | None,
    override: float | None = None,
) -> float | None:
    """Tax rate for the WACC debt shield.

    Args:
        income_tax: Income tax expense.
        pretax_income: Income before tax.
        override: Fixed rate that bypasses the derivation.

    Returns:
        The override if set; otherwise income_tax / pretax_income, with
        DEFAULT_TAX_RATE substituted when the ratio falls outside [0, 1].
        None when the ratio cannot be formed.
    """
    if override is not None:
        return override
    rate = safe_divide(income_tax, pretax_income)
    if rate is None:
        return None
    if rate < 0 or rate > 1:
        return DEFAULT_TAX_RATE
    return rate


def calculate_capital_weights(
    market_cap: float | None, total_debt: float | None
) -> tuple[float | None, float | None]:
    """Market-value capital weights.

    Returns:
        (equity_weight, debt_weight); both None if either input is
        missing or the total capital is zero.
    """
    if market_cap is None or total_debt is None:
        return None, None
    total = market_cap + total_debt
    if total == 0:
        return None, None
    return market_cap / total, total_debt / total


def calculate_wacc(
    cost_of_equity: float | None,
    cost_of_debt: float | None,
    tax_rate: float | None,
    equity_weight: float | None,
    debt_weight: float | None,
) -> float | None:
    """WACC = We * Re + Wd * Rd * (1 - t).

    A missing tax rate falls back to DEFAULT_TAX_RATE; any other missing
    component makes the WACC undefined.
    """
    if (
        cost_of_equity is None
        or cost_of_debt is None
        or equity_weight is None
        or debt_weight is None
    ):
        return None
    t = DEFAULT_TAX_RATE if tax_rate is None else tax_rate
    return equity_weight * cost_of_equity + debt_weight * cost_of_debt * (1 - t)


# === Projection ===


def calculate_fcf_growth_rate(
    historical_fcf: Sequence[float], override: float | None = None
) -> float | None:
    """Starting FCF growth rate for the projection.

    Uses the override when set. Otherwise the CAGR from the first to the
    last historical value (at least 3 points), falling back to the latest
    year-over-year change (at least 2 points).

    Args:
        historical_fcf: Annual FCF, oldest first.
        override: Fixed growth rate.

    Returns:
        Growth rate as a decimal, or None with insufficient history.
    """
    if override is not None:
        return override
    n = len(historical_fcf)
    if n < 2:
        return None
    if n >= 3:
        cagr = calculate_cagr(historical_fcf[-1], historical_fcf[0], n - 1)
        if cagr is not None:
            return cagr
    return percentage_change(historical_fcf[-1], historical_fcf[-2])


def project_cash_flows(
    base_fcf: float | None,
    start_growth: float | None,
    terminal_growth: float,
    wacc: float | None,
    years: int,
) -> list[ProjectedCashFlow]:
    """Project FCF with growth fading linearly towards terminal growth.

    Year ``y`` grows at ``start - ((start - terminal) / years) * (y - 1)``
    and is discounted by ``1 / (1 + wacc) ** y``.

    Returns:
        One entry per year, or an empty list if any input is missing.
    """
    if base_fcf is None or start_growth is None or wacc is None:
        return []

    decline = (start_growth - terminal_growth) / years
    projections: list[ProjectedCashFlow] = []
    fcf = base_fcf
    for year in range(1, years + 1):
        growth = start_growth - decline * (year - 1)
        fcf = fcf * (1 + growth)
        discount_factor = 1 / (1 + wacc) ** year
        projections.append(
            ProjectedCashFlow(
                year=year,
                fcf=fcf,
                growth_rate=growth,
                discount_factor=discount_factor,
                present_value=fcf * discount_factor,
            )
        )
    return projections


def calculate_terminal_value(
    final_fcf: float | None, wacc: float | None, terminal_growth: float
) -> float | None:
    """Gordon growth terminal value; None whenever WACC <= growth."""
    if final_fcf is None or wacc is None or wacc <= terminal_growth:
        return None
    return safe_divide(final_fcf * (1 + terminal_growth), wacc - terminal_growth)


def present_value(future_value: float, rate: float, periods: float) -> float:
    """Discount a single future amount."""
    return future_value / (1 + rate) ** periods


def _enterprise_value(
    projections: list[ProjectedCashFlow],
    wacc: float | None,
    terminal_growth: float,
) -> tuple[float | None, float | None, float | None, float | None]:
    """Return (sum_pv, terminal_value, terminal_value_pv, enterprise_value)."""
    if not projections or wacc is None:
        return None, None, None, None
    sum_pv = sum(p.present_value for p in projections)
    tv = calculate_terminal_value(projections[-1].fcf, wacc, terminal_growth)
    if tv is None:
        return sum_pv, None, None, None
    tv_pv = present_value(tv, wacc, len(projections))
    return sum_pv, tv, tv_pv, sum_pv + tv_pv


def calculate_implied_growth_rate(
    price: float | None,
    fcf_per_share: float | None,
    wacc: float | None,
) -> float | None:
    """Perpetual growth implied by the current price (reverse DCF).

    Solves ``price = fcf * (1 + g) / (wacc - g)`` for g.
    """
    if price is None or fcf_per_share is None or wacc is None:
        return None
    return safe_divide(price * wacc - fcf_per_share, price + fcf_per_share)


# === Full model ===


def calculate_dcf(dcf_input: DCFInput, config: DCFConfig) -> DCFResult:
    """Run the full DCF pipeline.

    Args:
        dcf_input: Company figures.
        config: DCF assumptions.

    Returns:
        DCFResult with every intermediate stage. Stages whose inputs are
        missing are None.
    """
    beta = _resolve_beta(dcf_input)
    cost_of_equity = calculate_cost_of_equity(
        dcf_input.risk_free_rate, beta, config.market_risk_premium
    )
    cost_of_debt = calculate_cost_of_debt(
        dcf_input.interest_expense, dcf_input.total_debt
    )
    tax_rate = calculate_effective_tax_rate(
        dcf_input.income_tax, dcf_input.pretax_income, config.tax_rate_override
    )
    equity_weight, debt_weight = calculate_capital_weights(
        dcf_input.market_cap, dcf_input.total_debt
    )
    wacc = calculate_wacc(
        cost_of_equity, cost_of_debt, tax_rate, equity_weight, debt_weight
    )
    if wacc is None:
        logger.debug(
            "WACC undefined (cost of equity %s, cost of debt %s, weights %s/%s)",
            cost_of_equity, cost_of_debt, equity_weight, debt_weight,
        )

    growth = calculate_fcf_growth_rate(
        dcf_input.historical_fcf, config.fcf_growth_rate_override
    )
    projections = project_cash_flows(
        dcf_input.free_cash_flow,
        growth,
        config.terminal_growth_rate,
        wacc,
        config.projection_years,
    )
    sum_pv, tv, tv_pv, ev = _enterprise_value(
        projections, wacc, config.terminal_growth_rate
    )
    if projections and tv is None:
        logger.debug(
            "Terminal value undefined: WACC %.4f <= terminal growth %.4f",
            wacc, config.terminal_growth_rate,
        )

    net_debt = safe_subtract(dcf_input.total_debt, dcf_input.cash)
    equity_value = safe_subtract(ev, net_debt)
    intrinsic_value = safe_divide(equity_value, dcf_input.shares_outstanding)

    if config.use_analyst_target and dcf_input.analyst_target_price is not None:
        target_price = dcf_input.analyst_target_price
    else:
        target_price = intrinsic_value

    price = dcf_input.price
    upside = safe_divide(safe_subtract(target_price, price), price)
    margin_of_safety = safe_divide(safe_subtract(intrinsic_value, price), intrinsic_value)

    fcf_per_share = safe_divide(dcf_input.free_cash_flow, dcf_input.shares_outstanding)

    return DCFResult(
        risk_free_rate=dcf_input.risk_free_rate,
        market_risk_premium=config.market_risk_premium,
        beta=beta,
        cost_of_equity=cost_of_equity,
        cost_of_debt=cost_of_debt,
        effective_tax_rate=tax_rate,
        equity_weight=equity_weight,
        debt_weight=debt_weight,
        wacc=wacc,
        fcf_growth_rate=growth,
        projected_cash_flows=projections,
        sum_of_pv_fcf=sum_pv,
        terminal_value=tv,
        terminal_value_pv=tv_pv,
        enterprise_value=ev,
        equity_value=equity_value,
        intrinsic_value=intrinsic_value,
        target_price=target_price,
        upside_downside=upside,
        margin_of_safety=margin_of_safety,
        implied_growth_rate=calculate_implied_growth_rate(price, fcf_per_share, wacc),
        terminal_growth_rate=config.terminal_growth_rate,
        projection_years=config.projection_years,
    )


def calculate_simple_dcf(
    free_cash_flow: float,
    growth_rate: float,
    terminal_growth_rate: float,
    wacc: float,
    projection_years: int,
    net_debt: float,
    shares_outstanding: float,
) -> float | None:
    """One-shot intrinsic value per share from explicit assumptions.

    Returns:
        Intrinsic value per share, or None if WACC <= terminal growth or
        shares outstanding is zero.
    """
    if wacc <= terminal_growth_rate:
        return None
    projections = project_cash_flows(
        free_cash_flow, growth_rate, terminal_growth_rate, wacc, projection_years
    )
    _, _, _, ev = _enterprise_value(projections, wacc, terminal_growth_rate)
    if ev is None:
        return None
    return safe_divide(ev - net_debt, shares_outstanding)


def sensitivity_analysis(
    dcf_input: DCFInput,
    config: DCFConfig,
    wacc_range: SensitivityRange,
    growth_range: SensitivityRange,
) -> SensitivityGrid:
    """Enterprise value across a grid of WACC and terminal growth.

    Each cell re-runs the projection, terminal value and enterprise value
    with that cell's WACC and terminal growth; the starting FCF growth is
    shared across cells.

    Args:
        dcf_input: Company figures.
        config: DCF assumptions (growth override, projection years).
        wacc_range: WACC grid.
        growth_range: Terminal growth grid.

    Returns:
        SensitivityGrid with one row per WACC value.
    """
    wacc_values = wacc_range.values()
    growth_values = growth_range.values()
    start_growth = calculate_fcf_growth_rate(
        dcf_input.historical_fcf, config.fcf_growth_rate_override
    )

    matrix: list[list[float | None]] = []
    for wacc in wacc_values:
        row: list[float | None] = []
        for g in growth_values:
            if wacc <= g:
                row.append(None)
                continue
            projections = project_cash_flows(
                dcf_input.free_cash_flow, start_growth, g, wacc,
                config.projection_years,
            )
            row.append(_enterprise_value(projections, wacc, g)[3])
        matrix.append(row)

    return SensitivityGrid(
        wacc_values=wacc_values,
        terminal_growth_values=growth_values,
        enterprise_values=matrix,
    )


def interpret_dcf(
    intrinsic_value: float | None,
    current_price: float | None,
    margin_of_safety: float | None,
) -> DCFInterpretation:
    """Classify a valuation by its margin of safety.

    Bands: > 30% undervalued (high confidence above 50%), > 10%
    undervalued, > -10% fairly valued, > -30% overvalued, otherwise
    significantly overvalued.
    """
    if intrinsic_value is None or margin_of_safety is None:
        return DCFInterpretation(
            valuation="fairly valued",
            confidence="low",
            upside_percentage=None,
            recommendation="Insufficient data for DCF valuation",
        )

    upside = safe_divide(safe_subtract(intrinsic_value, current_price), current_price)
    upside_pct = None if upside is None else upside * 100
    mos_pct = margin_of_safety * 100

    if margin_of_safety > 0.30:
        valuation = "undervalued"
        confidence = "high" if margin_of_safety > 0.50 else "medium"
        recommendation = (
            f"Trading well below intrinsic value with a {mos_pct:.1f}% "
            "margin of safety; a candidate for purchase."
        )
    elif margin_of_safety > 0.10:
        valuation = "undervalued"
        confidence = "medium"
        recommendation = (
            f"Modestly below intrinsic value with a {mos_pct:.1f}% margin of safety."
        )
    elif margin_of_safety > -0.10:
        valuation = "fairly valued"
        confidence = "medium"
        recommendation = "Price is close to intrinsic value."
    elif margin_of_safety > -0.30:
        valuation = "overvalued"
        confidence = "medium"
        recommendation = (
            f"Price sits {abs(mos_pct):.1f}% above intrinsic value."
        )
    else:
        valuation = "overvalued"
        confidence = "high"
        recommendation = (
            f"Price sits {abs(mos_pct):.1f}% above intrinsic value; "
            "little valuation support."
        )

    return DCFInterpretation(
        valuation=valuation,
        confidence=confidence,
        upside_percentage=upside_pct,
        recommendation=recommendation,
    )
