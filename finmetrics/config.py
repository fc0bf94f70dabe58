"""Engine configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# US federal corporate rate, used when a company's own rate is unusable.
DEFAULT_TAX_RATE: float = 0.21

# Required return for justified multiples when no CAPM estimate exists.
DEFAULT_COST_OF_EQUITY: float = 0.10

# Used when neither the snapshot nor the 10Y treasury yield supplies one.
DEFAULT_RISK_FREE_RATE: float = 0.04

# Long-run nominal growth for justified multiples.
DEFAULT_LONG_TERM_GROWTH: float = 0.025

# Percentile VaR is meaningless on shorter return series.
MIN_VAR_OBSERVATIONS: int = 20

DAYS_PER_YEAR: int = 365


class ReturnPeriod(Enum):
    """Sampling frequency of a price history."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def annualization_factor(self) -> int:
        """Periods per year for this frequency."""
        return _ANNUALIZATION_FACTORS[self]


_ANNUALIZATION_FACTORS: dict[ReturnPeriod, int] = {
    ReturnPeriod.DAILY: 252,
    ReturnPeriod.WEEKLY: 52,
    ReturnPeriod.MONTHLY: 12,
}


@dataclass(frozen=True)
class DCFConfig:
    """DCF valuation parameters.

    Attributes:
        market_risk_premium: Expected market return over the risk-free rate.
        terminal_growth_rate: Perpetual growth after the projection horizon.
        projection_years: Number of explicitly projected years.
        tax_rate_override: Fixed tax rate; derived from the income
            statement when None.
        fcf_growth_rate_override: Fixed starting FCF growth; derived from
            historical FCF when None.
        use_analyst_target: Prefer the analyst consensus target over the
            intrinsic value when both exist.
    """

    market_risk_premium: float = 0.055
    terminal_growth_rate: float = 0.025
    projection_years: int = 5
    tax_rate_override: float | None = None
    fcf_growth_rate_override: float | None = None
    use_analyst_target: bool = True

    def __post_init__(self) -> None:
        if self.projection_years < 1:
            raise ValueError(
                f"projection_years must be >= 1, got {self.projection_years}"
            )


@dataclass(frozen=True)
class RiskConfig:
    """Risk analytics parameters.

    Attributes:
        return_period: Sampling frequency of the supplied price histories.
        annualization_factor: Explicit periods per year. Derived from
            return_period when None.
        var_confidence: Confidence level for dollar VaR.
        min_data_points: Minimum number of returns before any statistic
            is reported.
        use_supplied_beta: Prefer a pre-computed beta over regression.
    """

    return_period: ReturnPeriod = ReturnPeriod.DAILY
    annualization_factor: float | None = None
    var_confidence: float = 0.95
    min_data_points: int = 30
    use_supplied_beta: bool = True

    def __post_init__(self) -> None:
        if self.min_data_points < 1:
            raise ValueError(
                f"min_data_points must be >= 1, got {self.min_data_points}"
            )
        if not 0.0 < self.var_confidence < 1.0:
            raise ValueError(
                f"var_confidence must be in (0, 1), got {self.var_confidence}"
            )

    @property
    def factor(self) -> float:
        """Effective annualization factor."""
        if self.annualization_factor is not None:
            return self.annualization_factor
        return self.return_period.annualization_factor


@dataclass(frozen=True)
class SensitivityRange:
    """Evenly spaced parameter range for sensitivity grids."""

    min: float
    max: float
    steps: int

    def __post_init__(self) -> None:
        if self.steps < 1:
            raise ValueError(f"steps must be >= 1, got {self.steps}")

    def values(self) -> list[float]:
        """Return the grid points from min to max inclusive."""
        if self.steps == 1:
            return [self.min]
        step = (self.max - self.min) / (self.steps - 1)
        return [self.min + i * step for i in range(self.steps)]


@dataclass(frozen=True)
class EngineConfig:
    """Top-level configuration for a full metrics calculation."""

    dcf: DCFConfig = field(default_factory=DCFConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)

    # Sensitivity grid
    wacc_range: SensitivityRange = field(
        default_factory=lambda: SensitivityRange(0.06, 0.12, 7)
    )
    growth_range: SensitivityRange = field(
        default_factory=lambda: SensitivityRange(0.01, 0.04, 4)
    )

    # Capital charge for economic profit
    economic_profit_wacc: float = 0.10
