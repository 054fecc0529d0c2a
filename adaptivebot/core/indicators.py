"""Indicator library.

Every series function returns a list aligned index-for-index with its input.
Entries that cannot be computed yet are ``None``; nothing here raises on a
short input.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..utils.candle import Candle


@dataclass
class BollingerBand:
    upper: float
    middle: float
    lower: float


@dataclass
class MACDResult:
    macd_line: list[float]
    signal_line: list[float]
    histogram: list[float]


def moving_average(values: Sequence[float], period: int = 14) -> list[Optional[float]]:
    arr = np.asarray(values, dtype=np.float64)
    res: list[Optional[float]] = [None] * len(arr)
    if period <= 0 or len(arr) < period:
        return res
    csum = np.concatenate(([0.0], np.cumsum(arr)))
    for i in range(period - 1, len(arr)):
        res[i] = float((csum[i + 1] - csum[i + 1 - period]) / period)
    return res


def exponential_moving_average(values: Sequence[float], period: int = 14) -> list[float]:
    """Seeded with the first value, so defined from index 0."""
    k = 2 / (period + 1)
    res: list[float] = []
    for i, v in enumerate(values):
        if i == 0:
            res.append(float(v))
        else:
            res.append(float(v) * k + res[i - 1] * (1 - k))
    return res


def rsi(values: Sequence[float], period: int = 14) -> list[Optional[float]]:
    """Wilder RSI. First value at index ``period``; zero average loss gives 100."""
    n = len(values)
    out: list[Optional[float]] = [None] * n
    if n <= period:
        return out

    deltas = np.diff(np.asarray(values, dtype=np.float64))
    gains = np.maximum(deltas, 0.0)
    losses = np.maximum(-deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    out[period] = _rsi_value(avg_gain, avg_loss)
    for i in range(period + 1, n):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        out[i] = _rsi_value(avg_gain, avg_loss)
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return float(100 - (100 / (1 + avg_gain / avg_loss)))


def bollinger(values: Sequence[float], period: int = 20,
              mult: float = 2.0) -> list[Optional[BollingerBand]]:
    arr = np.asarray(values, dtype=np.float64)
    res: list[Optional[BollingerBand]] = [None] * len(arr)
    for i in range(period - 1, len(arr)):
        window = arr[i - period + 1:i + 1]
        mean = float(np.mean(window))
        std = float(np.std(window))         # population variance
        res[i] = BollingerBand(upper=mean + mult * std, middle=mean, lower=mean - mult * std)
    return res


def macd(values: Sequence[float], fast: int = 12, slow: int = 26, signal: int = 9) -> MACDResult:
    ema_fast = exponential_moving_average(values, fast)
    ema_slow = exponential_moving_average(values, slow)
    macd_line = [f - s for f, s in zip(ema_fast, ema_slow)]
    signal_line = exponential_moving_average(macd_line, signal)
    histogram = [m - s for m, s in zip(macd_line, signal_line)]
    return MACDResult(macd_line=macd_line, signal_line=signal_line, histogram=histogram)


def true_range(candles: Sequence[Candle]) -> list[Optional[float]]:
    """True range per candle; the first candle has no previous close."""
    tr: list[Optional[float]] = [None] * len(candles)
    for i in range(1, len(candles)):
        c, prev_close = candles[i], candles[i - 1].close
        tr[i] = max(c.high - c.low, abs(c.high - prev_close), abs(c.low - prev_close))
    return tr


def atr(candles: Sequence[Candle], period: int = 14) -> list[Optional[float]]:
    """Average true range, Wilder-smoothed after a simple-mean seed.

    ``atr[period]`` is the mean of the first ``period`` true ranges; every
    later entry folds in one more true range.
    """
    n = len(candles)
    out: list[Optional[float]] = [None] * n
    if n < period + 1:
        return out

    tr = true_range(candles)
    seed = sum(tr[1:period + 1]) / period
    out[period] = seed
    for i in range(period + 1, n):
        out[i] = (out[i - 1] * (period - 1) + tr[i]) / period
    return out


def rolling_volatility(closes: Sequence[float], period: int = 20) -> float:
    """Population stddev of the trailing window; 0.0 until ``period`` closes exist."""
    if len(closes) < period or period <= 0:
        return 0.0
    window = np.asarray(closes[-period:], dtype=np.float64)
    return float(np.std(window))

