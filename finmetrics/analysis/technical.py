"""Technical indicators over daily price history.

Price-only indicators take a chronological sequence of closes. Range and
volume indicators (ATR, stochastic, Williams %R, MFI) take a bars
DataFrame with ``high``, ``low``, ``close`` and ``volume`` columns. Every
indicator returns None when the history is too short.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from finmetrics.data.models import FinancialSnapshot
from finmetrics.kernel import mean, safe_divide, standard_deviation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram."""

    macd: float | None = None
    signal: float | None = None
    histogram: float | None = None


@dataclass(frozen=True)
class BollingerBands:
    """Bollinger bands around a simple moving average."""

    upper: float | None = None
    middle: float | None = None
    lower: float | None = None


@dataclass(frozen=True)
class TechnicalMetrics:
    """Latest value of each indicator."""

    rsi: float | None = None
    macd: float | None = None
    macd_signal: float | None = None
    macd_histogram: float | None = None
    fifty_day_ma: float | None = None
    two_hundred_day_ma: float | None = None
    bollinger_upper: float | None = None
    bollinger_middle: float | None = None
    bollinger_lower: float | None = None
    relative_volume: float | None = None
    atr: float | None = None
    stochastic_k: float | None = None
    williams_r: float | None = None
    mfi: float | None = None
    obv: float | None = None


def _finite(value: float) -> float | None:
    value = float(value)
    return value if math.isfinite(value) else None


# === Moving averages ===


def calculate_sma(prices: Sequence[float], period: int) -> float | None:
    """Mean of the last ``period`` prices."""
    if len(prices) < period:
        return None
    return mean(list(prices)[-period:])


def calculate_ema_series(
    prices: Sequence[float], period: int
) -> list[float | None]:
    """EMA at every position, seeded with the SMA of the first period.

    Returns:
        One value per price with None for the first ``period - 1``
        positions, or an empty list if there are fewer than ``period``
        prices.
    """
    values = list(prices)
    if len(values) < period:
        return []
    k = 2 / (period + 1)
    ema = sum(values[:period]) / period
    series: list[float | None] = [None] * (period - 1)
    series.append(ema)
    for p in values[period:]:
        ema = p * k + ema * (1 - k)
        series.append(ema)
    return series


def calculate_ema(prices: Sequence[float], period: int) -> float | None:
    """Latest exponential moving average."""
    series = calculate_ema_series(prices, period)
    return series[-1] if series else None


# === Momentum ===


def calculate_rsi(prices: Sequence[float], period: int = 14) -> float | None:
    """Relative Strength Index with Wilder smoothing.

    The first average gain/loss is the simple mean of the first
    ``period`` changes; later changes are smoothed as
    ``(avg * (period - 1) + x) / period``.

    Returns:
        RSI in [0, 100]; 100 when there are no losses. None with fewer
        than ``period + 1`` prices.
    """
    values = list(prices)
    if len(values) < period + 1:
        return None
    changes = np.diff(np.asarray(values, dtype=float))

    first = changes[:period]
    avg_gain = float(first[first > 0].sum()) / period
    avg_loss = float(-first[first < 0].sum()) / period
    for change in changes[period:]:
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return _finite(100 - 100 / (1 + rs))


def calculate_macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """MACD line with its signal line and histogram.

    Returns:
        MACDResult. All fields are None with fewer than
        ``slow + signal - 1`` prices; only ``macd`` is set when fewer
        than ``signal`` MACD values exist.
    """
    if len(prices) < slow + signal - 1:
        return MACDResult()

    fast_series = calculate_ema_series(prices, fast)
    slow_series = calculate_ema_series(prices, slow)
    macd_values = [
        f - s
        for f, s in zip(fast_series, slow_series)
        if f is not None and s is not None
    ]
    if not macd_values:
        return MACDResult()
    macd = macd_values[-1]
    if len(macd_values) < signal:
        return MACDResult(macd=macd)

    signal_value = calculate_ema(macd_values, signal)
    histogram = None if signal_value is None else macd - signal_value
    return MACDResult(macd=macd, signal=signal_value, histogram=histogram)


# === Volatility bands ===


def calculate_bollinger_bands(
    prices: Sequence[float], period: int = 20, k: float = 2.0
) -> BollingerBands:
    """SMA +/- k population standard deviations over the last period."""
    if len(prices) < period:
        return BollingerBands()
    window = list(prices)[-period:]
    middle = mean(window)
    sd = standard_deviation(window)
    if middle is None or sd is None:
        return BollingerBands(middle=middle)
    return BollingerBands(upper=middle + k * sd, middle=middle, lower=middle - k * sd)


def calculate_bollinger_band_width(
    prices: Sequence[float], period: int = 20, k: float = 2.0
) -> float | None:
    """(upper - lower) / middle."""
    bands = calculate_bollinger_bands(prices, period, k)
    if bands.upper is None or bands.lower is None:
        return None
    return safe_divide(bands.upper - bands.lower, bands.middle)


def calculate_bollinger_percent_b(
    price: float | None,
    prices: Sequence[float],
    period: int = 20,
    k: float = 2.0,
) -> float | None:
    """Position of price within the bands; None when the bands collapse."""
    bands = calculate_bollinger_bands(prices, period, k)
    if price is None or bands.upper is None or bands.lower is None:
        return None
    return safe_divide(price - bands.lower, bands.upper - bands.lower)


# === Volume ===


def calculate_relative_volume(
    volume: float | None, average_volume: float | None
) -> float | None:
    """Current volume over average volume."""
    return safe_divide(volume, average_volume)


def calculate_volume_ma(volumes: Sequence[float], period: int = 20) -> float | None:
    """Mean of the last ``period`` volumes."""
    return calculate_sma(volumes, period)


def calculate_obv(
    prices: Sequence[float], volumes: Sequence[float]
) -> float | None:
    """On-balance volume accumulated from the second bar."""
    if len(prices) < 2 or len(prices) != len(volumes):
        return None
    obv = 0.0
    for i in range(1, len(prices)):
        if prices[i] > prices[i - 1]:
            obv += volumes[i]
        elif prices[i] < prices[i - 1]:
            obv -= volumes[i]
    return obv


# === Range indicators (bars DataFrame) ===


def calculate_atr(bars: pd.DataFrame, period: int = 14) -> float | None:
    """Average True Range: mean of the last ``period`` true ranges."""
    if len(bars) < period + 1:
        return None
    high = bars["high"].astype(float)
    low = bars["low"].astype(float)
    prev_close = bars["close"].astype(float).shift(1)
    true_range = pd.concat(
        [high - low, (high - prev_close).abs(), (low - prev_close).abs()],
        axis=1,
    ).max(axis=1, skipna=False)
    return _finite(true_range.iloc[1:].tail(period).mean(skipna=False))


def _range_window(
    bars: pd.DataFrame, period: int
) -> tuple[float, float, float] | None:
    """(lowest low, highest high, last close) over the last period bars."""
    if len(bars) < period:
        return None
    window = bars.tail(period)
    lowest = _finite(window["low"].astype(float).min(skipna=False))
    highest = _finite(window["high"].astype(float).max(skipna=False))
    close = _finite(bars["close"].iloc[-1])
    if lowest is None or highest is None or close is None:
        return None
    return lowest, highest, close


def calculate_stochastic(bars: pd.DataFrame, period: int = 14) -> float | None:
    """Stochastic %K; 50 when the window has no range."""
    window = _range_window(bars, period)
    if window is None:
        return None
    lowest, highest, close = window
    if highest == lowest:
        return 50.0
    return (close - lowest) / (highest - lowest) * 100


def calculate_williams_r(bars: pd.DataFrame, period: int = 14) -> float | None:
    """Williams %R in [-100, 0]; -50 when the window has no range."""
    window = _range_window(bars, period)
    if window is None:
        return None
    lowest, highest, close = window
    if highest == lowest:
        return -50.0
    return (highest - close) / (highest - lowest) * -100


def calculate_mfi(bars: pd.DataFrame, period: int = 14) -> float | None:
    """Money Flow Index over the last ``period`` bars.

    Raw flow on a bar whose typical price rises counts as positive,
    otherwise negative. Returns 100 when there is no negative flow.
    """
    if len(bars) < period + 1:
        return None
    recent = bars.tail(period + 1)[["high", "low", "close", "volume"]].astype(float)
    if recent.isna().any().any():
        return None
    typical = (recent["high"] + recent["low"] + recent["close"]) / 3
    flow = (typical * recent["volume"]).iloc[1:]
    rising = (typical.diff() > 0).iloc[1:]
    positive = float(flow[rising].sum())
    negative = float(flow[~rising].sum())
    if negative == 0:
        return 100.0
    return 100 - 100 / (1 + positive / negative)


# === Readings ===


def interpret_rsi(rsi: float | None) -> str:
    if rsi is None:
        return "Unknown"
    if rsi >= 70:
        return "Overbought"
    if rsi <= 30:
        return "Oversold"
    if rsi >= 60:
        return "Bullish"
    if rsi <= 40:
        return "Bearish"
    return "Neutral"


def interpret_macd(macd: float | None, signal: float | None) -> str:
    if macd is None:
        return "Unknown"
    if signal is None:
        return "Bullish" if macd > 0 else "Bearish"
    if macd > signal:
        return "Strong Bullish" if macd > 0 else "Bullish Crossover"
    if macd < signal:
        return "Strong Bearish" if macd < 0 else "Bearish Crossover"
    return "Neutral"


def interpret_bollinger_position(
    price: float | None, upper: float | None, lower: float | None
) -> str:
    if price is None or upper is None or lower is None:
        return "Unknown"
    if price >= upper:
        return "Overbought (above upper band)"
    if price <= lower:
        return "Oversold (below lower band)"
    if price > (upper + lower) / 2:
        return "Above middle band"
    return "Below middle band"


def interpret_relative_volume(relative_volume: float | None) -> str:
    if relative_volume is None:
        return "Unknown"
    if relative_volume >= 2:
        return "Very High Volume"
    if relative_volume >= 1.5:
        return "High Volume"
    if relative_volume >= 0.7:
        return "Normal Volume"
    if relative_volume >= 0.5:
        return "Low Volume"
    return "Very Low Volume"


def calculate_technical(snapshot: FinancialSnapshot) -> TechnicalMetrics:
    """Compute every indicator from a snapshot's daily bars."""
    bars = snapshot.price_history
    closes = snapshot.closes()
    if len(closes) < 2:
        logger.debug("%s: no usable price history for indicators", snapshot.symbol)

    macd = calculate_macd(closes)
    bands = calculate_bollinger_bands(closes)
    volumes = (
        [float(v) for v in bars["volume"].fillna(0.0)] if not bars.empty else []
    )

    return TechnicalMetrics(
        rsi=calculate_rsi(closes),
        macd=macd.macd,
        macd_signal=macd.signal,
        macd_histogram=macd.histogram,
        fifty_day_ma=calculate_sma(closes, 50),
        two_hundred_day_ma=calculate_sma(closes, 200),
        bollinger_upper=bands.upper,
        bollinger_middle=bands.middle,
        bollinger_lower=bands.lower,
        relative_volume=calculate_relative_volume(
            snapshot.volume, snapshot.average_volume
        ),
        atr=calculate_atr(bars),
        stochastic_k=calculate_stochastic(bars),
        williams_r=calculate_williams_r(bars),
        mfi=calculate_mfi(bars),
        obv=calculate_obv(closes, volumes),
    )
