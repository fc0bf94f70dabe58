"""Macroeconomic context: yield curve measures and economy-wide readings.

All rates are in percent, as published in FRED series.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass

from finmetrics.data.models import MacroData
from finmetrics.interpretation import Outlook, OutlookReading
from finmetrics.kernel import safe_subtract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MacroMetrics(MacroData):
    """Macro inputs passed through, plus derived rate spreads.

    Attributes:
        yield_curve_slope: 10Y - 3M treasury yield.
        yield_curve_spread: 10Y - 2Y treasury yield; negative when
            inverted.
        term_premium: 10Y yield - fed funds rate.
        expected_real_rate: 10Y yield - 10Y breakeven inflation.
        real_interest_rate: Fed funds rate - inflation rate.
    """

    yield_curve_slope: float | None = None
    yield_curve_spread: float | None = None
    term_premium: float | None = None
    expected_real_rate: float | None = None
    real_interest_rate: float | None = None


def compute_macro(data: MacroData) -> MacroMetrics:
    """Derive rate spreads from a macro record."""
    if data.treasury_10y is None:
        logger.debug("no 10Y treasury yield, yield curve measures skipped")
    return MacroMetrics(
        **asdict(data),
        yield_curve_slope=safe_subtract(data.treasury_10y, data.treasury_3m),
        yield_curve_spread=safe_subtract(data.treasury_10y, data.treasury_2y),
        term_premium=safe_subtract(data.treasury_10y, data.federal_funds_rate),
        expected_real_rate=safe_subtract(data.treasury_10y, data.breakeven_inflation_10y),
        real_interest_rate=safe_subtract(data.federal_funds_rate, data.inflation_rate),
    )


def interpret_gdp_growth(growth: float | None) -> OutlookReading:
    if growth is None:
        return OutlookReading(None, Outlook.NEUTRAL, "GDP growth data unavailable")
    if growth >= 3:
        return OutlookReading(growth, Outlook.POSITIVE, f"Strong economic growth at {growth:.1f}%")
    if growth >= 1.5:
        return OutlookReading(growth, Outlook.NEUTRAL, f"Moderate economic growth at {growth:.1f}%")
    if growth >= 0:
        return OutlookReading(growth, Outlook.NEUTRAL, f"Slow economic growth at {growth:.1f}%")
    return OutlookReading(growth, Outlook.NEGATIVE, f"Economic contraction at {growth:.1f}%")


def interpret_unemployment(rate: float | None) -> OutlookReading:
    if rate is None:
        return OutlookReading(None, Outlook.NEUTRAL, "Unemployment data unavailable")
    if rate <= 4:
        return OutlookReading(rate, Outlook.POSITIVE, f"Full employment at {rate:.1f}%")
    if rate <= 6:
        return OutlookReading(rate, Outlook.NEUTRAL, f"Healthy labor market at {rate:.1f}%")
    if rate <= 8:
        return OutlookReading(rate, Outlook.NEGATIVE, f"Elevated unemployment at {rate:.1f}%")
    return OutlookReading(rate, Outlook.NEGATIVE, f"High unemployment at {rate:.1f}%")


def interpret_inflation(rate: float | None) -> OutlookReading:
    """Read year-over-year inflation against a 2% target."""
    if rate is None:
        return OutlookReading(None, Outlook.NEUTRAL, "Inflation data unavailable")
    if rate < 0:
        return OutlookReading(rate, Outlook.NEGATIVE, f"Deflation at {rate:.1f}%")
    if rate <= 2:
        return OutlookReading(rate, Outlook.POSITIVE, f"Inflation at target, {rate:.1f}%")
    if rate <= 3.5:
        return OutlookReading(rate, Outlook.NEUTRAL, f"Moderately elevated inflation at {rate:.1f}%")
    if rate <= 5:
        return OutlookReading(rate, Outlook.NEGATIVE, f"High inflation at {rate:.1f}%")
    return OutlookReading(rate, Outlook.NEGATIVE, f"Very high inflation at {rate:.1f}%")


def interpret_fed_funds_rate(rate: float | None) -> OutlookReading:
    if rate is None:
        return OutlookReading(None, Outlook.NEUTRAL, "Fed funds rate data unavailable")
    if rate <= 2:
        return OutlookReading(rate, Outlook.POSITIVE, f"Accommodative monetary policy at {rate:.2f}%")
    if rate <= 4:
        return OutlookReading(rate, Outlook.NEUTRAL, f"Neutral monetary policy at {rate:.2f}%")
    return OutlookReading(rate, Outlook.NEGATIVE, f"Restrictive monetary policy at {rate:.2f}%")


def interpret_treasury_10y(yield_10y: float | None) -> OutlookReading:
    if yield_10y is None:
        return OutlookReading(None, Outlook.NEUTRAL, "Treasury yield data unavailable")
    if yield_10y <= 3:
        return OutlookReading(yield_10y, Outlook.POSITIVE, f"Low long-term rates at {yield_10y:.2f}%")
    if yield_10y <= 4.5:
        return OutlookReading(yield_10y, Outlook.NEUTRAL, f"Moderate long-term rates at {yield_10y:.2f}%")
    return OutlookReading(yield_10y, Outlook.NEGATIVE, f"Elevated long-term rates at {yield_10y:.2f}%")


def interpret_consumer_confidence(confidence: float | None) -> OutlookReading:
    if confidence is None:
        return OutlookReading(None, Outlook.NEUTRAL, "Consumer confidence data unavailable")
    if confidence >= 90:
        return OutlookReading(confidence, Outlook.POSITIVE, f"High consumer confidence at {confidence:.1f}")
    if confidence >= 70:
        return OutlookReading(confidence, Outlook.NEUTRAL, f"Moderate consumer confidence at {confidence:.1f}")
    return OutlookReading(confidence, Outlook.NEGATIVE, f"Low consumer confidence at {confidence:.1f}")


def interpret_macro(metrics: MacroData) -> dict[str, OutlookReading]:
    """Read the headline macro indicators."""
    return {
        "gdp_growth_rate": interpret_gdp_growth(metrics.gdp_growth_rate),
        "unemployment_rate": interpret_unemployment(metrics.unemployment_rate),
        "inflation_rate": interpret_inflation(metrics.inflation_rate),
        "federal_funds_rate": interpret_fed_funds_rate(metrics.federal_funds_rate),
        "treasury_10y": interpret_treasury_10y(metrics.treasury_10y),
        "consumer_confidence": interpret_consumer_confidence(metrics.consumer_confidence),
    }


def _gdp_points(growth: float) -> int:
    if growth >= 3:
        return 25
    if growth >= 2:
        return 20
    if growth >= 1:
        return 15
    if growth >= 0:
        return 10
    return 0


def _unemployment_points(rate: float) -> int:
    if rate <= 4:
        return 25
    if rate <= 5:
        return 20
    if rate <= 6:
        return 15
    if rate <= 7:
        return 10
    return 5


def _inflation_points(macro: MacroData) -> int | None:
    rate = macro.inflation_rate
    if rate is None:
        # A CPI level without a rate of change earns a middling score.
        return 15 if macro.cpi is not None else None
    if rate < 0:
        return 5
    if rate <= 2:
        return 25
    if rate <= 3.5:
        return 15
    if rate <= 5:
        return 10
    return 5


def _confidence_points(confidence: float) -> int:
    if confidence >= 100:
        return 25
    if confidence >= 90:
        return 20
    if confidence >= 80:
        return 15
    if confidence >= 70:
        return 10
    return 5


def economic_health_score(macro: MacroData) -> int | None:
    """Composite 0-100 health score over the available indicators.

    Growth, unemployment, inflation and consumer confidence each earn up
    to 25 points; the total is scaled by the number of indicators present.

    Returns:
        Score rounded half up, or None when no indicator is available.
    """
    points = []
    if macro.gdp_growth_rate is not None:
        points.append(_gdp_points(macro.gdp_growth_rate))
    if macro.unemployment_rate is not None:
        points.append(_unemployment_points(macro.unemployment_rate))
    inflation = _inflation_points(macro)
    if inflation is not None:
        points.append(inflation)
    if macro.consumer_confidence is not None:
        points.append(_confidence_points(macro.consumer_confidence))
    if not points:
        return None
    return math.floor(sum(points) / (len(points) * 25) * 100 + 0.5)


def is_recession(macro: MacroData) -> bool:
    """True when GDP is contracting and unemployment exceeds 6%."""
    return (
        macro.gdp_growth_rate is not None
        and macro.gdp_growth_rate < 0
        and macro.unemployment_rate is not None
        and macro.unemployment_rate > 6
    )


def yield_curve_status(metrics: MacroMetrics) -> str:
    """Describe the 10Y-2Y curve shape."""
    spread = metrics.yield_curve_spread
    if spread is None:
        return "Unable to calculate yield curve"
    if spread < 0:
        return f"Inverted yield curve ({spread:.2f}%), a potential recession signal"
    return f"Normal yield curve ({spread:.2f}% spread)"
