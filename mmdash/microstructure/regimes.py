"""
Market Regime Classification.

Classifies the latest state of a price series into one discrete regime
using trend, oscillator and volatility indicators.

Definitions:
    Inputs:
        closes, highs, lows: per-interval prices filtered to finite positive values.
        At least ``sma_slow`` (default 15) intervals and positive closes
        are required; otherwise the regime is UNKNOWN with confidence 0.

    Indicators (latest values):
        SMA_fast = SMA_5(closes), SMA_slow = SMA_15(closes)
        RSI = Wilder RSI_14(closes); NaN treated as 50 for classification
        ATR = SMA_14(true range over all intervals)
        avg_ATR = mean of defined ATR values
        volatility_ratio = ATR / avg_ATR  if avg_ATR > 0, else 1
        range_pct = (max(highs) - min(lows)) / mean(closes) * 100
        sma_diff_pct = (SMA_fast - SMA_slow) / SMA_slow * 100

    Decision tree (first match wins):
        1. HIGH_VOLATILITY   volatility_ratio > 1.5
                             confidence = min(100, (ratio - 1) * 50 + 50)
        2. MEAN_REVERTING    RSI > 70 or RSI < 30
                             confidence = min(100, |RSI - 50| * 2)
        3. CONSOLIDATION     range_pct < 0.3
                             confidence = min(100, (0.3 - range_pct) * 200 + 50)
        4. TRENDING_BULL     sma_diff_pct > 0.1
           TRENDING_BEAR     sma_diff_pct < -0.1
                             confidence = min(100, |sma_diff_pct| * 50 + 50)
        5. UNKNOWN           confidence = 0

    Continuous metrics:
        trend_strength = clamp((SMA_fast - SMA_slow) / SMA_slow * 1000, -100, 100)
        momentum = percent change over the last 5 closes
        spread_anomaly = (last - mean) / mean over positive order book spreads,
        using only the first len(trades) order book rows
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from mmdash.features.indicators import (
    compute_atr,
    compute_momentum,
    compute_rsi,
    compute_sma,
    last_value,
)
from mmdash.ingest.payload_loader import parse_timestamp
from mmdash.utils.config import RegimeConfig
from mmdash.utils.logging import get_logger
from mmdash.utils.types import (
    OrderbookInterval,
    RegimeAnalysis,
    RegimeMetrics,
    RegimePoint,
    RegimeSignal,
    RegimeType,
    TradeInterval,
)

logger = get_logger("microstructure.regimes")


@dataclass(frozen=True)
class RegimeDescriptor:
    """Human-readable label and description of a regime."""
    label: str
    description: str


REGIME_DESCRIPTORS = {
    RegimeType.TRENDING_BULL: RegimeDescriptor(
        "Bullish Trend", "Strong upward momentum with SMA crossover"),
    RegimeType.TRENDING_BEAR: RegimeDescriptor(
        "Bearish Trend", "Strong downward momentum with SMA crossover"),
    RegimeType.MEAN_REVERTING: RegimeDescriptor(
        "Mean Reverting", "Price at extremes, likely to revert to mean"),
    RegimeType.HIGH_VOLATILITY: RegimeDescriptor(
        "High Volatility", "Elevated price swings and uncertainty"),
    RegimeType.CONSOLIDATION: RegimeDescriptor(
        "Consolidation", "Tight price range, low volatility"),
    RegimeType.UNKNOWN: RegimeDescriptor(
        "Unknown", "Insufficient data for regime detection"),
}


def describe_regime(regime: RegimeType) -> RegimeDescriptor:
    """Label and description for a regime type."""
    return REGIME_DESCRIPTORS.get(regime, REGIME_DESCRIPTORS[RegimeType.UNKNOWN])


def determine_regime(
    sma_fast: float,
    sma_slow: float,
    rsi: float,
    atr: float,
    avg_atr: float,
    price_range: float,
    avg_price: float,
    config: RegimeConfig | None = None,
) -> tuple[RegimeType, float]:
    """
    Apply the regime decision tree to latest indicator values.

    Parameters
    ----------
    sma_fast, sma_slow : float
        Latest fast and slow moving averages (NaN when undefined).
    rsi : float
        Latest RSI; NaN is treated as neutral (50).
    atr, avg_atr : float
        Latest and average true range.
    price_range : float
        Max high minus min low.
    avg_price : float
        Mean close.
    config : RegimeConfig | None
        Decision thresholds. Uses defaults if None.

    Returns
    -------
    tuple[RegimeType, float]
        Regime and confidence in [0, 100].
    """
    config = config or RegimeConfig()

    if not np.isfinite(rsi):
        rsi = 50.0
    if not np.isfinite(atr):
        atr = 0.0

    volatility_ratio = atr / avg_atr if avg_atr > 0 else 1.0
    range_pct = price_range / avg_price * 100 if avg_price > 0 else 0.0

    if volatility_ratio > config.volatility_threshold:
        return RegimeType.HIGH_VOLATILITY, min(100.0, (volatility_ratio - 1) * 50 + 50)

    if rsi > config.rsi_overbought or rsi < config.rsi_oversold:
        return RegimeType.MEAN_REVERTING, min(100.0, abs(rsi - 50) * 2)

    if range_pct < config.consolidation_threshold:
        return (
            RegimeType.CONSOLIDATION,
            min(100.0, (config.consolidation_threshold - range_pct) * 200 + 50),
        )

    if np.isfinite(sma_fast) and np.isfinite(sma_slow) and sma_slow != 0:
        sma_diff = (sma_fast - sma_slow) / sma_slow * 100
        if sma_diff > config.trend_threshold:
            return RegimeType.TRENDING_BULL, min(100.0, sma_diff * 50 + 50)
        if sma_diff < -config.trend_threshold:
            return RegimeType.TRENDING_BEAR, min(100.0, abs(sma_diff) * 50 + 50)

    return RegimeType.UNKNOWN, 0.0


def _spread_anomaly(orderbook: Sequence[OrderbookInterval] | None, n_trades: int) -> float:
    """Latest spread deviation over the order book rows paired with trades."""
    if not orderbook:
        return 0.0
    spreads = np.array([o.spread_bps.mean for o in orderbook[:n_trades]], dtype=float)
    spreads = spreads[spreads > 0]
    if len(spreads) == 0:
        return 0.0
    avg_spread = float(spreads.mean())
    return float((spreads[-1] - avg_spread) / avg_spread)


def _finite_or_zero(value: float) -> float:
    return float(value) if np.isfinite(value) else 0.0


def analyze_regime(
    trades: Sequence[TradeInterval],
    orderbook: Sequence[OrderbookInterval] | None = None,
    config: RegimeConfig | None = None,
) -> RegimeAnalysis:
    """
    Classify the current market regime.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals in ascending time order.
    orderbook : Sequence[OrderbookInterval] | None
        Order book intervals, used only for the spread anomaly metric.
    config : RegimeConfig | None
        Indicator periods and thresholds. Uses defaults if None.

    Returns
    -------
    RegimeAnalysis
        UNKNOWN with neutral metrics when data is insufficient.
    """
    config = config or RegimeConfig()
    timestamp = trades[-1].timestamp if trades else ""
    baseline = RegimeAnalysis(current=RegimeSignal(timestamp=timestamp))

    if len(trades) < config.sma_slow:
        return baseline

    closes = np.array([t.ohlc.close for t in trades], dtype=float)
    highs = np.array([t.ohlc.high for t in trades], dtype=float)
    lows = np.array([t.ohlc.low for t in trades], dtype=float)

    atr = compute_atr(highs, lows, closes, config.atr_period)

    closes = closes[np.isfinite(closes) & (closes > 0)]
    highs = highs[np.isfinite(highs) & (highs > 0)]
    lows = lows[np.isfinite(lows) & (lows > 0)]

    if len(closes) < config.sma_slow:
        return baseline

    sma_fast = last_value(compute_sma(closes, config.sma_fast))
    sma_slow = last_value(compute_sma(closes, config.sma_slow))
    rsi = last_value(compute_rsi(closes, config.rsi_period))
    latest_atr = last_value(atr)

    valid_atr = atr[np.isfinite(atr)]
    avg_atr = float(valid_atr.mean()) if len(valid_atr) > 0 else _finite_or_zero(latest_atr)

    avg_price = float(closes.mean())
    price_range = float(highs.max() - lows.min()) if len(highs) and len(lows) else 0.0

    regime, confidence = determine_regime(
        sma_fast, sma_slow, rsi, latest_atr, avg_atr, price_range, avg_price, config
    )

    if np.isfinite(sma_fast) and np.isfinite(sma_slow) and sma_slow != 0:
        trend_strength = float(np.clip((sma_fast - sma_slow) / sma_slow * 1000, -100, 100))
    else:
        trend_strength = 0.0

    if avg_atr > 0 and np.isfinite(latest_atr):
        volatility_ratio = latest_atr / avg_atr
    else:
        volatility_ratio = 1.0

    indicators = {
        "sma_fast": sma_fast,
        "sma_slow": sma_slow,
        "rsi": rsi,
        "atr": latest_atr,
        "volatility": volatility_ratio,
        "price_deviation": (closes[-1] - avg_price) / avg_price * 100 if avg_price > 0 else 0.0,
    }
    indicators = {k: float(v) for k, v in indicators.items() if np.isfinite(v)}

    return RegimeAnalysis(
        current=RegimeSignal(
            type=regime,
            confidence=float(confidence),
            timestamp=timestamp,
            indicators=indicators,
        ),
        metrics=RegimeMetrics(
            trend_strength=trend_strength,
            volatility_ratio=float(volatility_ratio),
            momentum=_finite_or_zero(compute_momentum(closes, config.momentum_period)),
            spread_anomaly=_finite_or_zero(_spread_anomaly(orderbook, len(trades))),
        ),
    )


def compute_regime_timeline(
    trades: Sequence[TradeInterval],
    orderbook: Sequence[OrderbookInterval] | None = None,
    window: int = 15,
    config: RegimeConfig | None = None,
) -> list[RegimePoint]:
    """
    Regime label at each step of a sliding window.

    For every index i >= window the classifier is re-run from scratch on
    trades[i - window : i + 1] and the aligned order book slice.
    Intervals without a timestamp are skipped.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals in ascending time order.
    orderbook : Sequence[OrderbookInterval] | None
        Order book intervals aligned with ``trades``.
    window : int
        Lookback length.
    config : RegimeConfig | None
        Classifier configuration.

    Returns
    -------
    list[RegimePoint]
        Empty when fewer than ``window`` intervals are available.
    """
    if len(trades) < window:
        return []

    timeline = []
    for i in range(window, len(trades)):
        timestamp = trades[i].timestamp
        if not timestamp:
            continue

        window_book = orderbook[i - window:i + 1] if orderbook else None
        analysis = analyze_regime(trades[i - window:i + 1], window_book, config)

        timeline.append(RegimePoint(
            timestamp=timestamp,
            time=parse_timestamp(timestamp),
            regime=analysis.current.type,
            confidence=analysis.current.confidence,
        ))

    logger.debug(f"Regime timeline: {len(timeline)} points from {len(trades)} intervals")
    return timeline
