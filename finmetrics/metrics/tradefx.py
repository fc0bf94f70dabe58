"""International trade and foreign-exchange metrics.

Interest rates arrive in percent (4.5 means 4.5%). Exchange rates are
quoted as units of domestic currency per unit of foreign currency.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from finmetrics.data.models import TradeFXData
from finmetrics.interpretation import Outlook, OutlookReading
from finmetrics.kernel import safe_divide, safe_multiply, safe_subtract

logger = logging.getLogger(__name__)

PIPS_PER_UNIT = 10_000
TRADING_DAYS = 252


@dataclass(frozen=True)
class TradeFXMetrics:
    """Trade and FX outputs.

    Attributes:
        terms_of_trade: Export price index / import price index x 100.
        trade_balance: Exports - imports.
        spot_spread: Ask - bid.
        spot_midpoint: (Bid + ask) / 2.
        forward_points_1m: (1M forward - spot) x 10000; likewise for the
            other tenors.
        implied_forward_1y: One-year forward from covered interest parity.
        cip_deviation: Quoted 1Y forward/spot less the parity ratio, in
            percent.
        uip_expected_rate: Spot rate one year ahead implied by uncovered
            interest parity.
        forward_premium: Annualized 1Y forward premium (+) or discount (-),
            in percent.
        carry_return: FX move to the 1Y forward plus the rate
            differential, in percent.
        interest_rate_differential: Domestic - foreign rate, in percent
            points.
        real_exchange_rate: Spot x foreign / domestic price level.
        ppp_rate: Domestic / foreign price level.
        ppp_deviation: Spot vs PPP rate, in percent.
        historical_volatility: Annualized std of daily log returns of
            ``fx_history``, in percent.
    """

    terms_of_trade: float | None = None
    trade_balance: float | None = None
    spot_spread: float | None = None
    spot_midpoint: float | None = None
    forward_points_1m: float | None = None
    forward_points_3m: float | None = None
    forward_points_6m: float | None = None
    forward_points_1y: float | None = None
    implied_forward_1y: float | None = None
    cip_deviation: float | None = None
    uip_expected_rate: float | None = None
    forward_premium: float | None = None
    carry_return: float | None = None
    interest_rate_differential: float | None = None
    real_exchange_rate: float | None = None
    ppp_rate: float | None = None
    ppp_deviation: float | None = None
    historical_volatility: float | None = None


# === Trade ===


def calculate_terms_of_trade(
    export_index: float | None, import_index: float | None
) -> float | None:
    ratio = safe_divide(export_index, import_index)
    return None if ratio is None else ratio * 100


# === Spot and forward ===


def calculate_spot_midpoint(bid: float | None, ask: float | None) -> float | None:
    if bid is None or ask is None:
        return None
    return (bid + ask) / 2


def calculate_forward_points(
    forward_rate: float | None, spot_rate: float | None
) -> float | None:
    """Forward minus spot, in pips."""
    diff = safe_subtract(forward_rate, spot_rate)
    return None if diff is None else diff * PIPS_PER_UNIT


def calculate_forward_rate(
    spot_rate: float | None,
    domestic_rate: float | None,
    foreign_rate: float | None,
    years: float = 1.0,
) -> float | None:
    """No-arbitrage forward rate with simple interest over ``years``.

    F = S x (1 + r_d t) / (1 + r_f t)
    """
    if spot_rate is None or domestic_rate is None or foreign_rate is None:
        return None
    domestic = 1 + domestic_rate / 100 * years
    foreign = 1 + foreign_rate / 100 * years
    if foreign == 0:
        return None
    return spot_rate * domestic / foreign


def calculate_cross_rate(rate_ab: float | None, rate_bc: float | None) -> float | None:
    """A/C rate from the A/B and B/C legs."""
    return safe_multiply(rate_ab, rate_bc)


def calculate_triangular_arbitrage(
    rate_ab: float | None, rate_bc: float | None, rate_ca: float | None
) -> float | None:
    """Round-trip gain in percent from converting A to B to C and back."""
    product = safe_multiply(rate_ab, rate_bc, rate_ca)
    return None if product is None else (product - 1) * 100


# === Interest parity ===


def calculate_cip_deviation(
    forward_rate: float | None,
    spot_rate: float | None,
    domestic_rate: float | None,
    foreign_rate: float | None,
) -> float | None:
    """Covered interest parity violation in percent; 0 when parity holds."""
    if forward_rate is None or domestic_rate is None or foreign_rate is None:
        return None
    ratio = safe_divide(forward_rate, spot_rate)
    if ratio is None:
        return None
    parity = (1 + domestic_rate / 100) / (1 + foreign_rate / 100)
    return (ratio - parity) * 100


def calculate_forward_premium(
    forward_rate: float | None, spot_rate: float | None, days: int = 360
) -> float | None:
    """Annualized forward premium in percent on a 360-day basis."""
    if forward_rate is None or not spot_rate or days == 0:
        return None
    return (forward_rate - spot_rate) / spot_rate * (360 / days) * 100


def calculate_carry_return(
    forward_rate: float | None,
    spot_rate: float | None,
    domestic_rate: float | None,
    foreign_rate: float | None,
) -> float | None:
    """Carry trade return in percent: FX return plus rate differential."""
    if forward_rate is None or domestic_rate is None or foreign_rate is None:
        return None
    fx_return = safe_divide(safe_subtract(forward_rate, spot_rate), spot_rate)
    if fx_return is None:
        return None
    return (fx_return + (domestic_rate - foreign_rate) / 100) * 100


# === Purchasing power parity ===


def calculate_real_exchange_rate(
    nominal_rate: float | None,
    foreign_price_level: float | None,
    domestic_price_level: float | None,
) -> float | None:
    return safe_multiply(
        nominal_rate, safe_divide(foreign_price_level, domestic_price_level)
    )


def calculate_ppp_deviation(
    actual_rate: float | None, ppp_rate: float | None
) -> float | None:
    """Percent by which the actual rate exceeds the PPP rate."""
    ratio = safe_divide(safe_subtract(actual_rate, ppp_rate), ppp_rate)
    return None if ratio is None else ratio * 100


def calculate_historical_volatility(rates: Sequence[float]) -> float | None:
    """Annualized volatility of log returns, in percent.

    Non-positive observations are skipped pairwise. Uses the population
    standard deviation scaled by sqrt(252).
    """
    arr = np.asarray(rates, dtype=float)
    if arr.size < 2:
        return None
    prev, curr = arr[:-1], arr[1:]
    valid = (prev > 0) & (curr > 0)
    if not valid.any():
        return None
    log_returns = np.log(curr[valid] / prev[valid])
    return float(log_returns.std(ddof=0) * np.sqrt(TRADING_DAYS) * 100)


def compute_tradefx(data: TradeFXData) -> TradeFXMetrics:
    """Compute trade and FX metrics from a trade/FX record.

    Args:
        data: Trade and exchange-rate inputs.

    Returns:
        TradeFXMetrics; metrics whose inputs are missing are None.
    """
    spot = data.spot_rate
    rd, rf = data.domestic_rate, data.foreign_rate
    if spot is None:
        logger.debug("no spot rate, FX metrics limited")

    ppp_rate = safe_divide(data.domestic_price_level, data.foreign_price_level)
    return TradeFXMetrics(
        terms_of_trade=calculate_terms_of_trade(
            data.export_price_index, data.import_price_index
        ),
        trade_balance=safe_subtract(data.exports, data.imports),
        spot_spread=safe_subtract(data.spot_ask, data.spot_bid),
        spot_midpoint=calculate_spot_midpoint(data.spot_bid, data.spot_ask),
        forward_points_1m=calculate_forward_points(data.forward_rate_1m, spot),
        forward_points_3m=calculate_forward_points(data.forward_rate_3m, spot),
        forward_points_6m=calculate_forward_points(data.forward_rate_6m, spot),
        forward_points_1y=calculate_forward_points(data.forward_rate_1y, spot),
        implied_forward_1y=calculate_forward_rate(spot, rd, rf, 1.0),
        cip_deviation=calculate_cip_deviation(data.forward_rate_1y, spot, rd, rf),
        uip_expected_rate=calculate_forward_rate(spot, rd, rf, 1.0),
        forward_premium=calculate_forward_premium(data.forward_rate_1y, spot),
        carry_return=calculate_carry_return(data.forward_rate_1y, spot, rd, rf),
        interest_rate_differential=safe_subtract(rd, rf),
        real_exchange_rate=calculate_real_exchange_rate(
            spot, data.foreign_price_level, data.domestic_price_level
        ),
        ppp_rate=ppp_rate,
        ppp_deviation=calculate_ppp_deviation(spot, ppp_rate),
        historical_volatility=calculate_historical_volatility(data.fx_history),
    )


# === Interpretation ===


def interpret_terms_of_trade(tot: float | None) -> OutlookReading:
    if tot is None:
        return OutlookReading(None, Outlook.NEUTRAL, "Terms of trade data unavailable")
    if tot > 100:
        return OutlookReading(tot, Outlook.POSITIVE, f"Favorable terms of trade at {tot:.1f}")
    if tot == 100:
        return OutlookReading(tot, Outlook.NEUTRAL, f"Balanced terms of trade at {tot:.1f}")
    return OutlookReading(tot, Outlook.NEGATIVE, f"Unfavorable terms of trade at {tot:.1f}")


def interpret_cip_deviation(deviation: float | None) -> OutlookReading:
    if deviation is None:
        return OutlookReading(None, Outlook.NEUTRAL, "CIP data unavailable")
    size = abs(deviation)
    if size < 0.1:
        return OutlookReading(deviation, Outlook.POSITIVE, f"CIP holds ({deviation:.3f}% deviation)")
    if size < 0.5:
        return OutlookReading(deviation, Outlook.NEUTRAL, f"Minor CIP deviation of {deviation:.3f}%")
    return OutlookReading(deviation, Outlook.NEGATIVE, f"Significant CIP violation of {deviation:.3f}%")


def interpret_ppp_deviation(deviation: float | None) -> OutlookReading:
    if deviation is None:
        return OutlookReading(None, Outlook.NEUTRAL, "PPP data unavailable")
    if deviation > 20:
        return OutlookReading(deviation, Outlook.NEGATIVE, f"Currency overvalued by {deviation:.1f}% vs PPP")
    if deviation > 10:
        return OutlookReading(deviation, Outlook.NEUTRAL, f"Currency moderately overvalued by {deviation:.1f}% vs PPP")
    if deviation < -20:
        return OutlookReading(deviation, Outlook.POSITIVE, f"Currency undervalued by {-deviation:.1f}% vs PPP")
    if deviation < -10:
        return OutlookReading(deviation, Outlook.NEUTRAL, f"Currency moderately undervalued by {-deviation:.1f}% vs PPP")
    return OutlookReading(deviation, Outlook.POSITIVE, f"Currency near PPP ({deviation:.1f}% deviation)")


def interpret_trade_balance(balance: float | None) -> OutlookReading:
    if balance is None:
        return OutlookReading(None, Outlook.NEUTRAL, "Trade balance data unavailable")
    if balance > 0:
        return OutlookReading(balance, Outlook.POSITIVE, f"Trade surplus of ${balance / 1e9:.1f}B")
    if balance < 0:
        return OutlookReading(balance, Outlook.NEGATIVE, f"Trade deficit of ${-balance / 1e9:.1f}B")
    return OutlookReading(balance, Outlook.NEUTRAL, "Balanced trade")


def interpret_tradefx(metrics: TradeFXMetrics) -> dict[str, OutlookReading]:
    """Read the headline trade and FX indicators."""
    return {
        "terms_of_trade": interpret_terms_of_trade(metrics.terms_of_trade),
        "trade_balance": interpret_trade_balance(metrics.trade_balance),
        "cip_deviation": interpret_cip_deviation(metrics.cip_deviation),
        "ppp_deviation": interpret_ppp_deviation(metrics.ppp_deviation),
    }
