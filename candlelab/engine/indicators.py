"""Indicator engine — SMA, EMA, RSI and MACD over a close-price series.

Every function returns a list the same length as its input, with None for
positions inside the warm-up region.
"""

import math
from typing import Any, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from candlelab.models.indicator import OSCILLATOR_INDICATORS, OVERLAY_INDICATORS
from candlelab.models.market import Bar, MACDSeries

DEFAULT_PARAMS: dict[str, dict[str, int]] = {
    "SMA": {"period": 20},
    "EMA": {"period": 20},
    "RSI": {"period": 14},
    "MACD": {"fast": 12, "slow": 26, "signal": 9},
}


def _to_list(values: np.ndarray) -> list[float | None]:
    """NaN -> None."""
    return [None if math.isnan(v) else float(v) for v in values]


def _as_array(values: Sequence[float | None]) -> np.ndarray:
    return np.array([np.nan if v is None else v for v in values], dtype=float)


# ─── Moving averages ──────────────────────────────────────────────────


def _sma_array(values: np.ndarray, period: int) -> np.ndarray:
    n = len(values)
    result = np.full(n, np.nan)
    if period <= 0:
        return result
    total = 0.0
    for i in range(n):
        total += values[i]
        if i >= period:
            total -= values[i - period]
        if i >= period - 1:
            result[i] = total / period
    return result


def _ema_array(values: np.ndarray, period: int) -> np.ndarray:
    """EMA seeded with the SMA of the first ``period`` values."""
    n = len(values)
    result = np.full(n, np.nan)
    if period <= 0 or n < period:
        return result
    k = 2.0 / (period + 1)

    seed = 0.0
    for j in range(period):
        seed += values[j]
    prev = seed / period
    result[period - 1] = prev

    for i in range(period, n):
        prev = values[i] * k + prev * (1 - k)
        result[i] = prev
    return result


def sma(values: Sequence[float], period: int) -> list[float | None]:
    """Simple moving average (rolling sum / period)."""
    return _to_list(_sma_array(np.asarray(values, dtype=float), period))


def ema(values: Sequence[float], period: int) -> list[float | None]:
    """Exponential moving average with k = 2 / (period + 1)."""
    return _to_list(_ema_array(np.asarray(values, dtype=float), period))


# ─── RSI (Wilder) ─────────────────────────────────────────────────────


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi(values: Sequence[float], period: int) -> list[float | None]:
    """Relative strength index.

    Average gain/loss are seeded with the plain mean of the first ``period``
    price changes (first value at index ``period``), then Wilder-smoothed:
    avg = (avg * (period - 1) + current) / period.
    """
    prices = np.asarray(values, dtype=float)
    n = len(prices)
    result = np.full(n, np.nan)
    if period <= 0 or n <= period:
        return _to_list(result)

    changes = np.diff(prices)
    gains = np.maximum(changes, 0.0)
    losses = np.maximum(-changes, 0.0)

    avg_gain = float(gains[:period].sum()) / period
    avg_loss = float(losses[:period].sum()) / period
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        # changes[i - 1] is the move from bar i-1 to bar i
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return _to_list(result)


# ─── MACD ─────────────────────────────────────────────────────────────


def macd(values: Sequence[float], fast: int = 12, slow: int = 26, signal_period: int = 9) -> MACDSeries:
    """Trend (fast EMA - slow EMA), signal line and histogram.

    The signal EMA runs over the trend line with undefined positions replaced
    by 0.0, then gets masked back to None wherever the trend is undefined.
    """
    prices = np.asarray(values, dtype=float)
    ema_fast = _ema_array(prices, fast)
    ema_slow = _ema_array(prices, slow)

    trend = ema_fast - ema_slow  # NaN wherever either side is NaN
    undefined = np.isnan(trend)
    signal = _ema_array(np.where(undefined, 0.0, trend), signal_period)
    signal[undefined] = np.nan
    histogram = trend - signal

    return MACDSeries(macd=_to_list(trend), signal=_to_list(signal), histogram=_to_list(histogram))


# ─── Named dispatch ───────────────────────────────────────────────────


def compute_indicator(kind: str, params: dict[str, Any], prices: Sequence[float]) -> dict[str, list[float | None]]:
    """Compute one indicator by name. Returns output_name -> series."""
    name = kind.upper()
    if name not in OVERLAY_INDICATORS | OSCILLATOR_INDICATORS:
        raise ValueError(f"Unknown indicator: {kind}")
    merged = {**DEFAULT_PARAMS[name], **params}

    if name == "SMA":
        return {"value": sma(prices, int(merged["period"]))}
    if name == "EMA":
        return {"value": ema(prices, int(merged["period"]))}
    if name == "RSI":
        return {"value": rsi(prices, int(merged["period"]))}

    result = macd(prices, int(merged["fast"]), int(merged["slow"]), int(merged["signal"]))
    return {"macd": result.macd, "signal": result.signal, "histogram": result.histogram}


class IndicatorEngine:
    """Compute indicator series over a bar list (display resolution)."""

    def __init__(self, bars: list[Bar]):
        self._bars = bars
        self._df = pd.DataFrame({
            "open": [b.open for b in bars],
            "high": [b.high for b in bars],
            "low": [b.low for b in bars],
            "close": [b.close for b in bars],
        })

    @property
    def closes(self) -> list[float]:
        return self._df["close"].tolist()

    def compute_series(self, name: str, params: dict[str, Any]) -> dict[str, list[float | None]]:
        """Compute indicator over the full bar array.

        Returns dict of output_name -> list[float|None], same length as bars.
        Unknown indicators yield a single all-None ``value`` series.
        """
        n = len(self._df)
        try:
            return compute_indicator(name, params, self._df["close"].to_numpy())
        except ValueError as e:
            logger.warning(f"Indicator {name} failed: {e}")
            return {"value": [None] * n}
