"""Technical analysis functions."""

import logging
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..domain.models import BollingerBands, IndicatorSet, MACDResult, SupportResistance

logger = logging.getLogger(__name__)

PriceSeries = Union[Sequence[float], np.ndarray, pd.Series]

SUPPORT_RESISTANCE_LOOKBACK = 60

STRONG_BUY = "strong_buy"
BUY = "buy"
HOLD = "hold"
SELL = "sell"
STRONG_SELL = "strong_sell"


def _as_array(data: Optional[PriceSeries]) -> np.ndarray:
    """Closing prices as a float array, oldest first."""
    if data is None:
        return np.array([], dtype=float)
    if isinstance(data, pd.DataFrame):
        data = data.iloc[:, 0]
    return np.asarray(data, dtype=float).ravel()


def compute_sma(data: PriceSeries, period: int) -> Optional[float]:
    """
    Simple moving average of the last ``period`` values.

    Returns:
        SMA value or None if insufficient data
    """
    values = _as_array(data)
    if period <= 0 or len(values) < period:
        return None
    return float(pd.Series(values).tail(period).mean())


def compute_rsi(data: PriceSeries, period: int = 14) -> Optional[float]:
    """
    Calculate Relative Strength Index with Wilder smoothing.

    The first ``period`` deltas seed the average gain/loss; every later
    delta decays both averages by (period-1)/period and adds 1/period of
    the gain or loss.

    Args:
        data: Closing prices
        period: RSI period (default: 14)

    Returns:
        RSI value (0-100) or None if insufficient data
    """
    values = _as_array(data)
    if period <= 0 or len(values) < period + 1:
        return None

    deltas = np.diff(values)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def compute_ema_series(values: PriceSeries, period: int) -> pd.Series:
    """
    Exponential moving average with k = 2/(period+1), seeded with the first value.
    """
    return pd.Series(_as_array(values)).ewm(span=period, adjust=False).mean()


def compute_macd(
    data: PriceSeries,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> Optional[MACDResult]:
    """
    Calculate MACD at the last data point.

    Args:
        data: Closing prices
        fast: Fast EMA period
        slow: Slow EMA period
        signal: Signal line EMA period

    Returns:
        MACDResult or None if fewer than ``slow + signal`` points
    """
    values = _as_array(data)
    if len(values) < slow + signal:
        return None

    macd_line = compute_ema_series(values, fast) - compute_ema_series(values, slow)
    signal_line = compute_ema_series(macd_line, signal)

    last_macd = float(macd_line.iloc[-1])
    last_signal = float(signal_line.iloc[-1])
    return MACDResult(
        macd_line=last_macd,
        signal_line=last_signal,
        histogram=last_macd - last_signal,
    )


def compute_bollinger_bands(
    data: PriceSeries,
    period: int = 20,
    multiplier: float = 2,
) -> Optional[BollingerBands]:
    """
    Bollinger Bands over the last ``period`` values (population std-dev).

    Returns:
        BollingerBands or None if insufficient data
    """
    values = _as_array(data)
    if period <= 0 or len(values) < period:
        return None

    window = values[-period:]
    middle = float(window.mean())
    std_dev = float(np.std(window))
    return BollingerBands(
        upper=middle + multiplier * std_dev,
        middle=middle,
        lower=middle - multiplier * std_dev,
    )


def compute_support_resistance(data: PriceSeries) -> SupportResistance:
    """Min/max over the last 60 closes; zeros for empty input."""
    values = _as_array(data)
    if len(values) == 0:
        return SupportResistance(support=0, resistance=0)

    recent = values[-SUPPORT_RESISTANCE_LOOKBACK:]
    return SupportResistance(support=float(recent.min()), resistance=float(recent.max()))


def _field(indicators: Any, snake: str, camel: Optional[str] = None) -> Any:
    if isinstance(indicators, Mapping):
        if snake in indicators:
            return indicators[snake]
        return indicators.get(camel) if camel else None
    return getattr(indicators, snake, None)


def _macd_parts(macd: Any):
    if macd is None:
        return None
    if isinstance(macd, MACDResult):
        return macd.macd_line, macd.signal_line, macd.histogram
    return macd.get("macdLine"), macd.get("signalLine"), macd.get("histogram")


def _band_parts(bands: Any):
    if bands is None:
        return None
    if isinstance(bands, BollingerBands):
        return bands.upper, bands.lower
    return bands.get("upper"), bands.get("lower")


def generate_recommendation(indicators: Union[IndicatorSet, Mapping[str, Any]]) -> str:
    """
    Turn an indicator snapshot into a discrete signal.

    Additive score: RSI +/-2 (oversold/overbought) or +/-1 (borderline),
    MACD histogram sign +/-1, MACD vs signal +/-1, price vs each SMA +/-1,
    price at/outside a Bollinger band +/-1. Missing indicators add 0.

    Returns:
        "strong_buy" (>=5), "buy" (>=2), "hold", "sell" (<=-2), "strong_sell" (<=-5)
    """
    score = 0
    rsi = _field(indicators, "rsi")
    price = _field(indicators, "price")

    if rsi is not None:
        if rsi < 30:
            score += 2
        elif rsi < 40:
            score += 1
        elif rsi > 70:
            score -= 2
        elif rsi > 60:
            score -= 1

    macd = _macd_parts(_field(indicators, "macd"))
    if macd:
        macd_line, signal_line, histogram = macd
        if histogram > 0:
            score += 1
        elif histogram < 0:
            score -= 1
        score += 1 if macd_line > signal_line else -1

    for name in ("sma20", "sma50", "sma200"):
        sma = _field(indicators, name)
        if price and sma:
            score += 1 if price > sma else -1

    bands = _band_parts(_field(indicators, "bollinger_bands", "bollingerBands"))
    if bands and price:
        upper, lower = bands
        if price <= lower:
            score += 1
        elif price >= upper:
            score -= 1

    if score >= 5:
        return STRONG_BUY
    if score >= 2:
        return BUY
    if score <= -5:
        return STRONG_SELL
    if score <= -2:
        return SELL
    return HOLD


def compute_indicator_set(data: PriceSeries) -> IndicatorSet:
    """Compute every indicator for the most recent close."""
    values = _as_array(data)
    levels = compute_support_resistance(values)
    return IndicatorSet(
        price=float(values[-1]) if len(values) else None,
        sma20=compute_sma(values, 20),
        sma50=compute_sma(values, 50),
        sma200=compute_sma(values, 200),
        rsi=compute_rsi(values),
        macd=compute_macd(values),
        bollinger_bands=compute_bollinger_bands(values),
        support=levels.support,
        resistance=levels.resistance,
    )
