"""
Market Microstructure Metrics.

Eight per-interval liquidity and informed-trading indicators computed
from trade and order book interval summaries. Every metric yields a
``MetricSeries``: the full history plus the latest value classified
against fixed warning/danger thresholds.

Definitions:
    Depth-to-Volume Ratio (DVR):
        DVR_t = (bid_depth_t + ask_depth_t) / volume_t
        Trades and order book are paired by index over min(len).
        Intervals with zero volume are skipped.
        Inverse status: low values signal thin books.

    Trade Intensity Index (TII):
        bps_t = |close_t - open_t| / open_t * 10000
        TII_t = trade_count_t / bps_t   if bps_t > 0.1
                trade_count_t * 10       otherwise
        Inverse status.

    Kyle's Lambda:
        For each t >= W (default W=5), over the W preceding intervals:
            x_i = net_volume_i
            y_i = (close_i - open_i) / open_i * 10000
            λ_t = |OLS slope of y on x|
        λ_t = 0 when all x in the window are identical.
        Timestamp is that of interval t.

    Amihud Illiquidity:
        ILLIQ_t = (|close_t - open_t| / open_t) / notional_t * 1e6
        0 when notional_t <= 0.

    Flow Persistence Index (FPI):
        dir_t = +1 if buy_ratio_t > 0.5 else -1
        run_t = run_{t-1} + 1 if dir_t = dir_{t-1} else 1
        CVD_t = Σ_{i<=t} net_volume_i
        FPI_t = min(1, run_t * |CVD_t| / Σ_{i<=t} volume_i), 0 if no volume.

    VPIN:
        For each t >= W (default W=10), over the W preceding intervals:
            VPIN_t = |ΣB - ΣS| / (ΣB + ΣS), 0 if no volume.

    Whale Activity Score (WAS):
        avg = mean(volume), thr = 3 * avg
        WAS_t = 0.5 * min(1, v_t / thr)
              + 0.3 * |buy_ratio_t - 0.5| * 2
              + 0.2 * min(1, (v_t / avg) / 5)

    Liquidity Stress Index (LSI):
        Baselines over the full sequences: avg spread, avg total depth,
        avg range volatility |high - low| / open.
        LSI_t = 0.3 * spread_t / avg_spread
              + 0.3 * max(0, 1 - depth_t / avg_depth)
              + 0.2 * |buy_ratio_t - 0.5| * 2
              + 0.2 * vol_t / avg_vol
        Paired by index over min(len).

    Every division by zero resolves to 0; no NaN or infinity reaches a
    history point or a status comparison.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy import stats

from mmdash.utils.config import MetricsConfig, ThresholdConfig
from mmdash.utils.logging import get_logger
from mmdash.utils.types import (
    HistoryPoint,
    MetricSeries,
    MetricStatus,
    MetricValue,
    OrderbookInterval,
    TradeInterval,
    TradeMetrics,
    Trend,
)

logger = get_logger("microstructure.metrics")

_DEFAULTS = MetricsConfig()


# Shared helpers

def _safe_divide(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    """Element-wise division with zero (and non-finite) results mapped to 0."""
    num = np.asarray(num, dtype=float)
    den = np.asarray(den, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.where(den != 0, num / np.where(den != 0, den, 1.0), 0.0)
    return np.where(np.isfinite(out), out, 0.0)


def _finite(value: float) -> float:
    value = float(value)
    return value if np.isfinite(value) else 0.0


def _threshold(name: str, thresholds: dict[str, ThresholdConfig] | None) -> ThresholdConfig:
    if thresholds is not None and name in thresholds:
        return thresholds[name]
    return _DEFAULTS.thresholds[name]


def classify_status(value: float, threshold: ThresholdConfig) -> MetricStatus:
    """
    Classify a value against warning/danger boundaries.

    Parameters
    ----------
    value : float
        Metric value.
    threshold : ThresholdConfig
        Boundaries. With ``inverse`` set, values *below* the boundaries
        are flagged; otherwise values *above* them are.

    Returns
    -------
    MetricStatus
        Danger is checked before warning.
    """
    value = _finite(value)
    if threshold.inverse:
        if value < threshold.danger:
            return MetricStatus.DANGER
        if value < threshold.warning:
            return MetricStatus.WARNING
        return MetricStatus.NORMAL

    if value > threshold.danger:
        return MetricStatus.DANGER
    if value > threshold.warning:
        return MetricStatus.WARNING
    return MetricStatus.NORMAL


def summarize_history(history: list[HistoryPoint], threshold: ThresholdConfig) -> MetricSeries:
    """
    Build a ``MetricSeries`` from computed history.

    Fewer than two points yields value 0, its threshold status and a
    stable trend. Otherwise the last two points set value and trend.
    """
    if len(history) < 2:
        return MetricSeries(
            current=MetricValue(0.0, classify_status(0.0, threshold), Trend.STABLE),
            history=history,
        )

    latest = history[-1].value
    previous = history[-2].value
    if latest > previous:
        trend = Trend.UP
    elif latest < previous:
        trend = Trend.DOWN
    else:
        trend = Trend.STABLE

    return MetricSeries(
        current=MetricValue(latest, classify_status(latest, threshold), trend),
        history=history,
    )


def _points(timestamps: Sequence[str], values: np.ndarray) -> list[HistoryPoint]:
    return [HistoryPoint(ts, _finite(v)) for ts, v in zip(timestamps, values)]


def _trade_arrays(trades: Sequence[TradeInterval]) -> dict[str, np.ndarray]:
    return {
        "open": np.array([t.ohlc.open for t in trades], dtype=float),
        "high": np.array([t.ohlc.high for t in trades], dtype=float),
        "low": np.array([t.ohlc.low for t in trades], dtype=float),
        "close": np.array([t.ohlc.close for t in trades], dtype=float),
        "volume": np.array([t.volume for t in trades], dtype=float),
        "notional": np.array([t.notional for t in trades], dtype=float),
        "trade_count": np.array([t.trade_count for t in trades], dtype=float),
        "buy_volume": np.array([t.buy_sell.buy_volume for t in trades], dtype=float),
        "sell_volume": np.array([t.buy_sell.sell_volume for t in trades], dtype=float),
        "buy_ratio": np.array([t.buy_sell.buy_ratio for t in trades], dtype=float),
        "net_volume": np.array([t.buy_sell.net_volume for t in trades], dtype=float),
    }


def _price_change_bps(arrays: dict[str, np.ndarray], signed: bool = False) -> np.ndarray:
    change = arrays["close"] - arrays["open"]
    if not signed:
        change = np.abs(change)
    return _safe_divide(change, arrays["open"]) * 10000


# Metrics

def compute_dvr(
    trades: Sequence[TradeInterval],
    orderbook: Sequence[OrderbookInterval],
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """
    Depth-to-volume ratio per paired interval.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals.
    orderbook : Sequence[OrderbookInterval]
        Order book intervals, paired with ``trades`` by index.
    thresholds : dict[str, ThresholdConfig] | None
        Threshold overrides keyed by metric name.

    Returns
    -------
    MetricSeries
        History stamped with trade timestamps.
    """
    history = []
    for trade, book in zip(trades, orderbook):
        if trade.volume == 0:
            continue
        history.append(HistoryPoint(trade.timestamp, _finite(book.total_depth / trade.volume)))
    return summarize_history(history, _threshold("dvr", thresholds))


def compute_tii(
    trades: Sequence[TradeInterval],
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """Trade intensity: trades per basis point of open-to-close move."""
    if not trades:
        return summarize_history([], _threshold("tii", thresholds))

    arrays = _trade_arrays(trades)
    bps = _price_change_bps(arrays)
    counts = arrays["trade_count"]
    values = np.where(bps > 0.1, _safe_divide(counts, bps), counts * 10)

    return summarize_history(
        _points([t.timestamp for t in trades], values),
        _threshold("tii", thresholds),
    )


def _window_slope(x: np.ndarray, y: np.ndarray) -> float:
    if len(x) < 2 or np.ptp(x) == 0:
        return 0.0
    result = stats.linregress(x, y)
    return _finite(abs(result.slope))


def compute_kyle_lambda(
    trades: Sequence[TradeInterval],
    window: int = 5,
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """
    Rolling Kyle's lambda: price impact per unit of signed volume.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals.
    window : int
        Number of preceding intervals regressed at each step.
    thresholds : dict[str, ThresholdConfig] | None
        Threshold overrides keyed by metric name.

    Returns
    -------
    MetricSeries
        One point per interval from index ``window`` onward.
    """
    threshold = _threshold("kyle_lambda", thresholds)
    if len(trades) <= window:
        return summarize_history([], threshold)

    arrays = _trade_arrays(trades)
    x = arrays["net_volume"]
    y = _price_change_bps(arrays, signed=True)

    history = []
    for i in range(window, len(trades)):
        lam = _window_slope(x[i - window:i], y[i - window:i])
        history.append(HistoryPoint(trades[i].timestamp, lam))

    return summarize_history(history, threshold)


def compute_amihud(
    trades: Sequence[TradeInterval],
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """Amihud illiquidity scaled per million of notional."""
    if not trades:
        return summarize_history([], _threshold("amihud", thresholds))

    arrays = _trade_arrays(trades)
    move = _safe_divide(np.abs(arrays["close"] - arrays["open"]), arrays["open"])
    notional = arrays["notional"]
    values = np.where(notional > 0, _safe_divide(move, notional) * 1_000_000, 0.0)

    return summarize_history(
        _points([t.timestamp for t in trades], values),
        _threshold("amihud", thresholds),
    )


def compute_fpi(
    trades: Sequence[TradeInterval],
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """
    Flow persistence index.

    Run length of same-direction intervals times absolute cumulative
    volume delta, normalized by cumulative volume and capped at 1. The
    run restarts at 1 whenever the dominant side flips.
    """
    if not trades:
        return summarize_history([], _threshold("fpi", thresholds))

    arrays = _trade_arrays(trades)
    directions = np.where(arrays["buy_ratio"] > 0.5, 1, -1)
    cvd = np.cumsum(arrays["net_volume"])
    cum_volume = np.cumsum(arrays["volume"])

    runs = np.empty(len(trades), dtype=float)
    run = 0
    last_dir = 0
    for i, direction in enumerate(directions):
        if direction == last_dir:
            run += 1
        else:
            run = 1
            last_dir = direction
        runs[i] = run

    fpi = np.where(cum_volume > 0, _safe_divide(runs * np.abs(cvd), cum_volume), 0.0)
    values = np.minimum(fpi, 1.0)

    return summarize_history(
        _points([t.timestamp for t in trades], values),
        _threshold("fpi", thresholds),
    )


def compute_vpin(
    trades: Sequence[TradeInterval],
    window: int = 10,
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """
    Volume-synchronized probability of informed trading.

    Each interval is one volume bucket; imbalance is measured over the
    ``window`` intervals preceding each step.
    """
    threshold = _threshold("vpin", thresholds)
    n = len(trades)
    if n <= window:
        return summarize_history([], threshold)

    arrays = _trade_arrays(trades)
    buy_cum = np.concatenate([[0.0], np.cumsum(arrays["buy_volume"])])
    sell_cum = np.concatenate([[0.0], np.cumsum(arrays["sell_volume"])])

    idx = np.arange(window, n)
    buys = buy_cum[idx] - buy_cum[idx - window]
    sells = sell_cum[idx] - sell_cum[idx - window]
    values = _safe_divide(np.abs(buys - sells), buys + sells)

    return summarize_history(
        _points([trades[i].timestamp for i in idx], values),
        threshold,
    )


def compute_was(
    trades: Sequence[TradeInterval],
    volume_multiple: float = 3.0,
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """
    Whale activity score.

    Blends size relative to a whale threshold (``volume_multiple`` times
    mean volume), side concentration and a volume-spike proxy.
    """
    if not trades:
        return summarize_history([], _threshold("was", thresholds))

    arrays = _trade_arrays(trades)
    volume = arrays["volume"]
    avg_volume = float(volume.mean())
    whale_threshold = avg_volume * volume_multiple

    large = np.minimum(1.0, _safe_divide(volume, np.full_like(volume, whale_threshold)))
    concentration = np.abs(arrays["buy_ratio"] - 0.5) * 2
    spike = np.minimum(1.0, _safe_divide(volume, np.full_like(volume, avg_volume)) / 5)

    values = large * 0.5 + concentration * 0.3 + spike * 0.2

    return summarize_history(
        _points([t.timestamp for t in trades], values),
        _threshold("was", thresholds),
    )


def compute_lsi(
    trades: Sequence[TradeInterval],
    orderbook: Sequence[OrderbookInterval],
    thresholds: dict[str, ThresholdConfig] | None = None,
) -> MetricSeries:
    """
    Liquidity stress index.

    Spread deviation, depth reduction, trading urgency and range
    volatility relative to whole-sample baselines. Baselines use every
    interval of each sequence; scoring pairs intervals over min(len).
    """
    threshold = _threshold("lsi", thresholds)
    n = min(len(trades), len(orderbook))
    if n == 0:
        return summarize_history([], threshold)

    arrays = _trade_arrays(trades)
    spreads = np.array([o.spread_bps.mean for o in orderbook], dtype=float)
    depths = np.array([o.total_depth for o in orderbook], dtype=float)
    range_vol = _safe_divide(np.abs(arrays["high"] - arrays["low"]), arrays["open"])

    avg_spread = float(spreads.mean())
    avg_depth = float(depths.mean())
    avg_vol = float(range_vol.mean())

    spread_dev = _safe_divide(spreads[:n], np.full(n, avg_spread))
    depth_reduction = np.where(avg_depth > 0, 1 - _safe_divide(depths[:n], np.full(n, avg_depth)), 0.0)
    urgency = np.abs(arrays["buy_ratio"][:n] - 0.5) * 2
    vol_spike = _safe_divide(range_vol[:n], np.full(n, avg_vol))

    values = (
        spread_dev * 0.3
        + np.maximum(depth_reduction, 0.0) * 0.3
        + urgency * 0.2
        + vol_spike * 0.2
    )

    return summarize_history(
        _points([trades[i].timestamp for i in range(n)], values),
        threshold,
    )


def compute_trade_metrics(
    trades: Sequence[TradeInterval],
    orderbook: Sequence[OrderbookInterval],
    config: MetricsConfig | None = None,
) -> TradeMetrics:
    """
    Compute all eight microstructure metrics.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals in ascending time order.
    orderbook : Sequence[OrderbookInterval]
        Order book intervals in ascending time order.
    config : MetricsConfig | None
        Windows and thresholds. Uses defaults if None.

    Returns
    -------
    TradeMetrics
        Baseline series (value 0, stable) for empty input.
    """
    config = config or _DEFAULTS
    thresholds = config.thresholds

    metrics = TradeMetrics(
        dvr=compute_dvr(trades, orderbook, thresholds),
        tii=compute_tii(trades, thresholds),
        kyle_lambda=compute_kyle_lambda(trades, config.lambda_window, thresholds),
        amihud=compute_amihud(trades, thresholds),
        fpi=compute_fpi(trades, thresholds),
        vpin=compute_vpin(trades, config.vpin_window, thresholds),
        was=compute_was(trades, config.was_volume_multiple, thresholds),
        lsi=compute_lsi(trades, orderbook, thresholds),
    )

    logger.debug(
        f"Computed trade metrics over {len(trades)} trade / {len(orderbook)} orderbook intervals"
    )
    return metrics
