"""Full metrics calculation for one company snapshot.

Runs every category calculator and the DCF, risk and technical engines,
reads each interpretable category through its rules, and rolls the
results into category and composite scores. The calculation is a pure
function of the snapshot and configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from finmetrics.analysis.dcf import (
    DCFInterpretation,
    DCFResult,
    SensitivityGrid,
    calculate_dcf,
    dcf_input_from_snapshot,
    interpret_dcf,
    sensitivity_analysis,
)
from finmetrics.analysis.risk import (
    RiskInterpretation,
    RiskResult,
    calculate_risk,
    interpret_risk,
    risk_input_from_snapshot,
)
from finmetrics.analysis.technical import TechnicalMetrics, calculate_technical
from finmetrics.config import DEFAULT_RISK_FREE_RATE, EngineConfig
from finmetrics.data.models import FinancialSnapshot
from finmetrics.interpretation import Interpretation, OutlookReading, category_score
from finmetrics.metrics.cashflow import CashFlowMetrics, compute_cashflow, interpret_cashflow
from finmetrics.metrics.efficiency import (
    EfficiencyMetrics,
    compute_efficiency,
    interpret_efficiency,
)
from finmetrics.metrics.growth import GrowthMetrics, compute_growth, interpret_growth
from finmetrics.metrics.industry import IndustryMetrics, compute_industry
from finmetrics.metrics.leverage import LeverageMetrics, compute_leverage, interpret_leverage
from finmetrics.metrics.liquidity import (
    LiquidityMetrics,
    compute_liquidity,
    interpret_liquidity,
)
from finmetrics.metrics.macro import (
    MacroMetrics,
    compute_macro,
    economic_health_score,
    interpret_macro,
)
from finmetrics.metrics.other import OtherMetrics, compute_other, interpret_other
from finmetrics.metrics.profitability import (
    DuPontMetrics,
    ProfitabilityMetrics,
    compute_dupont,
    compute_profitability,
    interpret_profitability,
)
from finmetrics.metrics.tradefx import TradeFXMetrics, compute_tradefx, interpret_tradefx
from finmetrics.metrics.valuation import (
    ValuationComparison,
    ValuationMetrics,
    analyze_valuation,
    compute_valuation,
)
from finmetrics.scoring import CompositeScores, compute_scores

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinancialMetrics:
    """Every computed metric, reading and score for one snapshot.

    Attributes:
        symbol: Ticker of the analysed company.
        as_of: Snapshot timestamp, echoed so that output is deterministic.
        risk_free_rate: Decimal risk-free rate actually used.
        interpretations: Category name to metric readings.
        category_scores: Category name to 0-100 score (None if unrated).
        scores: Composite scores and their weighted total.
    """

    symbol: str
    as_of: str | None
    risk_free_rate: float
    liquidity: LiquidityMetrics
    leverage: LeverageMetrics
    efficiency: EfficiencyMetrics
    profitability: ProfitabilityMetrics
    dupont: DuPontMetrics
    growth: GrowthMetrics
    cashflow: CashFlowMetrics
    valuation: ValuationMetrics
    other: OtherMetrics
    industry: IndustryMetrics
    tradefx: TradeFXMetrics
    macro: MacroMetrics
    dcf: DCFResult
    dcf_interpretation: DCFInterpretation
    sensitivity: SensitivityGrid
    risk: RiskResult
    risk_interpretation: RiskInterpretation
    technical: TechnicalMetrics
    interpretations: dict[str, dict[str, Interpretation]] = field(default_factory=dict)
    category_scores: dict[str, int | None] = field(default_factory=dict)
    macro_readings: dict[str, OutlookReading] = field(default_factory=dict)
    tradefx_readings: dict[str, OutlookReading] = field(default_factory=dict)
    valuation_comparisons: list[ValuationComparison] = field(default_factory=list)
    economic_health_score: int | None = None
    scores: CompositeScores = field(default_factory=CompositeScores)


def resolve_risk_free_rate(snapshot: FinancialSnapshot) -> float:
    """Snapshot rate, else the 10Y treasury yield, else the default."""
    if snapshot.risk_free_rate is not None:
        return snapshot.risk_free_rate
    if snapshot.macro.treasury_10y is not None:
        return snapshot.macro.treasury_10y / 100
    logger.debug(
        "%s: no risk-free rate or 10Y yield, using %.3f",
        snapshot.symbol, DEFAULT_RISK_FREE_RATE,
    )
    return DEFAULT_RISK_FREE_RATE


def calculate_all_metrics(
    snapshot: FinancialSnapshot, config: EngineConfig | None = None
) -> FinancialMetrics:
    """Compute every metric for one company.

    Args:
        snapshot: Company snapshot.
        config: Engine configuration. Defaults to EngineConfig().

    Returns:
        FinancialMetrics. Metrics lacking data are None and read as
        neutral "Insufficient data" interpretations.
    """
    config = config or EngineConfig()
    rf = resolve_risk_free_rate(snapshot)
    logger.debug("%s: calculating metrics (rf=%.4f)", snapshot.symbol, rf)

    # Category calculators
    liquidity = compute_liquidity(snapshot)
    leverage = compute_leverage(snapshot)
    efficiency = compute_efficiency(snapshot)
    profitability = compute_profitability(snapshot, config.economic_profit_wacc)
    dupont = compute_dupont(snapshot)
    growth = compute_growth(snapshot)
    cashflow = compute_cashflow(snapshot)
    other = compute_other(snapshot)
    industry = compute_industry(snapshot)
    tradefx = compute_tradefx(snapshot.trade_fx)
    macro = compute_macro(snapshot.macro)

    # Engines
    dcf_input = dcf_input_from_snapshot(snapshot, cashflow.free_cash_flow, rf)
    dcf = calculate_dcf(dcf_input, config.dcf)
    sensitivity = sensitivity_analysis(
        dcf_input, config.dcf, config.wacc_range, config.growth_range
    )
    risk = calculate_risk(risk_input_from_snapshot(snapshot, rf), config.risk)
    technical = calculate_technical(snapshot)

    valuation = compute_valuation(snapshot, cost_of_equity=dcf.cost_of_equity)

    interpretations = {
        "liquidity": interpret_liquidity(liquidity),
        "leverage": interpret_leverage(leverage),
        "efficiency": interpret_efficiency(efficiency),
        "profitability": interpret_profitability(profitability),
        "growth": interpret_growth(growth),
        "cashflow": interpret_cashflow(cashflow),
        "other": interpret_other(other, snapshot.current_liabilities),
    }
    category_scores = {
        name: category_score(readings) for name, readings in interpretations.items()
    }

    scores = compute_scores(
        profitability, growth, valuation, risk, liquidity, leverage,
        snapshot.sector_medians,
    )

    return FinancialMetrics(
        symbol=snapshot.symbol,
        as_of=snapshot.as_of,
        risk_free_rate=rf,
        liquidity=liquidity,
        leverage=leverage,
        efficiency=efficiency,
        profitability=profitability,
        dupont=dupont,
        growth=growth,
        cashflow=cashflow,
        valuation=valuation,
        other=other,
        industry=industry,
        tradefx=tradefx,
        macro=macro,
        dcf=dcf,
        dcf_interpretation=interpret_dcf(
            dcf.intrinsic_value, snapshot.price, dcf.margin_of_safety
        ),
        sensitivity=sensitivity,
        risk=risk,
        risk_interpretation=interpret_risk(risk),
        technical=technical,
        interpretations=interpretations,
        category_scores=category_scores,
        macro_readings=interpret_macro(macro),
        tradefx_readings=interpret_tradefx(tradefx),
        valuation_comparisons=analyze_valuation(valuation),
        economic_health_score=economic_health_score(macro),
        scores=scores,
    )
