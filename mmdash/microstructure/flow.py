"""
Order Flow Analytics.

Definitions:
    Cumulative Volume Delta:
        delta_t = buy_volume_t - sell_volume_t
        CVD_t = Σ_{i<=t} delta_i

    Large Trades:
        avg = mean(volume) over all intervals
        interval t is large if volume_t > avg * k (default k=2.0)
        ratio_t = volume_t / avg
        Reported sorted by ratio descending, truncated to ``limit``.

    Aggressor Flow:
        avg_buy_ratio = mean(buy_ratio)
        trend = bullish if avg_buy_ratio > 0.55, bearish if < 0.45, else neutral
        strength = min(100, |avg_buy_ratio - 0.5| * 200) for bullish/bearish, 50 for neutral
        consecutive_buy / consecutive_sell: run of buy-dominant (ratio > 0.5)
        or sell-dominant (ratio < 0.5) intervals counted back from the
        latest interval; a ratio of exactly 0.5 ends the run.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from mmdash.utils.config import FlowConfig
from mmdash.utils.logging import get_logger
from mmdash.utils.types import (
    CVDPoint,
    FlowAnalysis,
    FlowTrend,
    LargeTrade,
    TradeInterval,
)

logger = get_logger("microstructure.flow")


def compute_cvd_series(trades: Sequence[TradeInterval]) -> list[CVDPoint]:
    """
    Cumulative volume delta per interval.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals in ascending time order.

    Returns
    -------
    list[CVDPoint]
        One point per interval.
    """
    if not trades:
        return []

    deltas = np.array(
        [t.buy_sell.buy_volume - t.buy_sell.sell_volume for t in trades],
        dtype=float,
    )
    cvd = np.cumsum(deltas)
    return [
        CVDPoint(t.timestamp, float(d), float(c))
        for t, d, c in zip(trades, deltas, cvd)
    ]


def detect_large_trades(
    trades: Sequence[TradeInterval],
    threshold: float = 2.0,
    limit: int = 10,
) -> list[LargeTrade]:
    """
    Intervals whose volume exceeds ``threshold`` times the mean volume.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals.
    threshold : float
        Multiple of average volume that qualifies as large.
    limit : int
        Maximum number of intervals returned.

    Returns
    -------
    list[LargeTrade]
        Largest ratio first.
    """
    if not trades:
        return []

    volumes = np.array([t.volume for t in trades], dtype=float)
    avg_volume = float(volumes.mean())
    if avg_volume <= 0:
        return []

    cutoff = avg_volume * threshold
    large = [
        LargeTrade(
            timestamp=t.timestamp,
            volume=t.volume,
            avg_volume=avg_volume,
            ratio=t.volume / avg_volume,
            is_buy_dominant=t.buy_sell.buy_ratio > 0.5,
            price=t.ohlc.close,
        )
        for t in trades
        if t.volume > cutoff
    ]
    large.sort(key=lambda lt: lt.ratio, reverse=True)
    return large[:limit]


def _trailing_run(ratios: np.ndarray, buy_side: bool) -> int:
    count = 0
    for ratio in ratios[::-1]:
        if (ratio > 0.5) if buy_side else (ratio < 0.5):
            count += 1
        else:
            break
    return count


def analyze_aggressor_flow(
    trades: Sequence[TradeInterval],
    config: FlowConfig | None = None,
) -> FlowAnalysis:
    """
    Summarize aggressor-side order flow.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals in ascending time order.
    config : FlowConfig | None
        Bullish/bearish ratio boundaries. Uses defaults if None.

    Returns
    -------
    FlowAnalysis
        Neutral baseline with strength 0 for empty input.
    """
    if not trades:
        return FlowAnalysis()

    config = config or FlowConfig()

    ratios = np.array([t.buy_sell.buy_ratio for t in trades], dtype=float)
    total_buy = float(sum(t.buy_sell.buy_volume for t in trades))
    total_sell = float(sum(t.buy_sell.sell_volume for t in trades))
    avg_ratio = float(ratios.mean())

    if avg_ratio > config.bullish_ratio:
        trend = FlowTrend.BULLISH
        strength = min(100.0, (avg_ratio - 0.5) * 200)
    elif avg_ratio < config.bearish_ratio:
        trend = FlowTrend.BEARISH
        strength = min(100.0, (0.5 - avg_ratio) * 200)
    else:
        trend = FlowTrend.NEUTRAL
        strength = 50.0

    return FlowAnalysis(
        current_buy_ratio=float(ratios[-1]),
        avg_buy_ratio=avg_ratio,
        total_buy_volume=total_buy,
        total_sell_volume=total_sell,
        net_flow=total_buy - total_sell,
        trend=trend,
        trend_strength=strength,
        consecutive_buy=_trailing_run(ratios, buy_side=True),
        consecutive_sell=_trailing_run(ratios, buy_side=False),
    )
