"""
Technical indicators over close/high/low price arrays.

Definitions:
    Simple Moving Average:
        SMA_t = (1/N) * Σ_{i=t-N+1}^{t} P_i
        Undefined (NaN) for t < N-1.

    Relative Strength Index (Wilder):
        gain_i = max(P_i - P_{i-1}, 0), loss_i = max(P_{i-1} - P_i, 0)
        Seed: avg_gain = mean(gain_1..gain_N), avg_loss = mean(loss_1..loss_N)
        For t = N .. n-1:
            RSI_t = 100                                if avg_loss = 0
                    100 - 100 / (1 + avg_gain/avg_loss) otherwise
            then avg_x = (avg_x * (N-1) + x_t) / N  with x_t = gain/loss at step t
        The first N values are undefined (NaN).

    True Range / ATR:
        TR_t = max(H_t - L_t, |H_t - C_{t-1}|, |L_t - C_{t-1}|)
        where C_{-1} = L_0 (first bar uses its own low).
        ATR = SMA_N(TR)

    Momentum:
        MOM = (P_last - P_{last-N}) / P_{last-N} * 100
        0 when fewer than N+1 prices or the reference price is 0.

    Simple Returns:
        r_t = (P_t - P_{t-1}) / P_{t-1}
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd


def _as_array(values: Sequence[float] | np.ndarray | pd.Series) -> np.ndarray:
    return np.asarray(values, dtype=float)


def compute_sma(values: Sequence[float] | np.ndarray, period: int) -> np.ndarray:
    """
    Simple moving average with NaN until the window is filled.

    Parameters
    ----------
    values : Sequence[float] | np.ndarray
        Input series.
    period : int
        Window length.

    Returns
    -------
    np.ndarray
        Same length as ``values``.
    """
    arr = _as_array(values)
    if period <= 0:
        return np.full(arr.shape, np.nan)
    return pd.Series(arr).rolling(window=period, min_periods=period).mean().to_numpy()


def compute_rsi(closes: Sequence[float] | np.ndarray, period: int = 14) -> np.ndarray:
    """
    Wilder relative strength index.

    Parameters
    ----------
    closes : Sequence[float] | np.ndarray
        Close prices.
    period : int
        Smoothing period.

    Returns
    -------
    np.ndarray
        Same length as ``closes``; NaN for the first ``period`` entries.
    """
    arr = _as_array(closes)
    n = len(arr)
    rsi = np.full(n, np.nan)
    if n <= period or period <= 0:
        return rsi

    changes = np.diff(arr)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gain = gains[:period].sum() / period
    avg_loss = losses[:period].sum() / period

    for i in range(period, n):
        if avg_loss == 0:
            rsi[i] = 100.0
        else:
            rs = avg_gain / avg_loss
            rsi[i] = 100.0 - 100.0 / (1.0 + rs)

        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period

    return rsi


def compute_true_range(
    highs: Sequence[float] | np.ndarray,
    lows: Sequence[float] | np.ndarray,
    closes: Sequence[float] | np.ndarray,
) -> np.ndarray:
    """True range per bar; the first bar uses its own low as previous close."""
    high = _as_array(highs)
    low = _as_array(lows)
    close = _as_array(closes)
    if len(high) == 0:
        return np.array([], dtype=float)

    prev_close = np.empty_like(close)
    prev_close[0] = low[0]
    prev_close[1:] = close[:-1]

    return np.maximum.reduce([
        high - low,
        np.abs(high - prev_close),
        np.abs(low - prev_close),
    ])


def compute_atr(
    highs: Sequence[float] | np.ndarray,
    lows: Sequence[float] | np.ndarray,
    closes: Sequence[float] | np.ndarray,
    period: int = 14,
) -> np.ndarray:
    """Average true range as an SMA of true range."""
    return compute_sma(compute_true_range(highs, lows, closes), period)


def compute_momentum(closes: Sequence[float] | np.ndarray, period: int = 5) -> float:
    """Percent rate of change over ``period`` steps."""
    arr = _as_array(closes)
    if len(arr) < period + 1:
        return 0.0
    past = arr[-1 - period]
    if past == 0:
        return 0.0
    return float((arr[-1] - past) / past * 100)


def compute_simple_returns(prices: Sequence[float] | np.ndarray) -> np.ndarray:
    """Simple period-over-period returns; length ``len(prices) - 1``."""
    arr = _as_array(prices)
    if len(arr) < 2:
        return np.array([], dtype=float)
    return np.diff(arr) / arr[:-1]


def last_value(values: np.ndarray) -> float:
    """Last element of an indicator array, NaN when empty."""
    if len(values) == 0:
        return float("nan")
    return float(values[-1])
