"""
Return-Based Risk Analytics.

Definitions:
    Prices:
        p_t = close_t, keeping only finite positive closes. Fewer than two
        usable prices yields an all-zero RiskMetrics.

    Returns:
        r_t = (p_t - p_{t-1}) / p_{t-1}
        μ = mean(r), σ = population standard deviation of r (0 if n < 2)

    Value at Risk (parametric):
        VaR_c = -μ + σ * z_c      z_95 = 1.645, z_99 = 2.326
        Reported in percent.

    Conditional VaR (95%):
        k = floor(n * 0.05) + 1 lowest returns
        CVaR_95 = -mean(r_(1..k)), in percent.

    Sharpe:
        (μ * P - rf) / (σ * sqrt(P)),  P = 365, rf = 0.05
        0 when fewer than two returns or σ = 0.

    Sortino:
        D = sqrt(mean(r_t^2 for r_t < 0))
        (μ * P - rf) / (D * sqrt(P)); 0 when D = 0 or fewer than two returns.

    Drawdown:
        peak_t = max(p_0..p_t), DD_t = (peak_t - p_t) / peak_t
        max_drawdown = max(DD_t), current_drawdown = DD_last (percent)
        max_drawdown_duration = steps from the peak preceding the maximum
        drawdown point to that point.

    Performance:
        total_return = (p_last - p_first) / p_first * 100
        avg_return = μ * 100
        win_rate = count(r > 0) / n * 100

    Risk Level:
        score = 0.3 * vol/50 + 0.3 * VaR_95/5 + 0.4 * max_drawdown/20
        < 0.5 low, < 1.0 medium, < 1.5 high, otherwise extreme.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from mmdash.features.indicators import compute_simple_returns
from mmdash.utils.config import RiskConfig
from mmdash.utils.logging import get_logger
from mmdash.utils.types import (
    DrawdownPoint,
    RiskLevel,
    RiskMetrics,
    TradeInterval,
)

logger = get_logger("risk")


RISK_LEVEL_LABELS = {
    RiskLevel.LOW: "Low Risk",
    RiskLevel.MEDIUM: "Medium Risk",
    RiskLevel.HIGH: "High Risk",
    RiskLevel.EXTREME: "Extreme Risk",
}


@dataclass(frozen=True)
class DrawdownStats:
    """Scalar drawdown summary as fractions of peak."""
    max_drawdown: float
    current_drawdown: float
    duration: int


def _usable_closes(trades: Sequence[TradeInterval]) -> tuple[np.ndarray, list[str]]:
    """Finite positive closes and the timestamps of the intervals they came from."""
    closes = []
    timestamps = []
    for t in trades:
        if np.isfinite(t.ohlc.close) and t.ohlc.close > 0:
            closes.append(t.ohlc.close)
            timestamps.append(t.timestamp)
    return np.array(closes, dtype=float), timestamps


def _population_std(returns: np.ndarray) -> float:
    if len(returns) < 2:
        return 0.0
    return float(np.std(returns))


def compute_drawdown(prices: np.ndarray) -> DrawdownStats:
    """
    Single-pass drawdown statistics.

    Parameters
    ----------
    prices : np.ndarray
        Positive prices in time order.

    Returns
    -------
    DrawdownStats
        Fractions in [0, 1] plus the duration in steps.
    """
    if len(prices) == 0:
        return DrawdownStats(0.0, 0.0, 0)

    peak = prices[0]
    peak_index = 0
    duration = 0
    max_dd = 0.0
    max_dd_duration = 0
    drawdown = 0.0

    for i, price in enumerate(prices):
        if price > peak:
            peak = price
            peak_index = i
            duration = 0

        drawdown = (peak - price) / peak if peak > 0 else 0.0

        if drawdown > 0:
            duration = i - peak_index

        if drawdown > max_dd:
            max_dd = drawdown
            max_dd_duration = duration

    return DrawdownStats(float(max_dd), float(drawdown), int(max_dd_duration))


def compute_var(returns: np.ndarray, z: float) -> float:
    """Parametric value at risk as a fraction."""
    if len(returns) == 0:
        return 0.0
    return float(-returns.mean() + _population_std(returns) * z)


def compute_cvar(returns: np.ndarray, tail: float = 0.05) -> float:
    """Expected shortfall over the worst ``floor(n * tail) + 1`` returns, as a fraction."""
    if len(returns) == 0:
        return 0.0
    cutoff = math.floor(len(returns) * tail)
    worst = np.sort(returns)[:cutoff + 1]
    return float(-worst.mean())


def compute_sharpe(
    returns: np.ndarray,
    risk_free_rate: float = 0.05,
    periods: int = 365,
) -> float:
    """Annualized Sharpe ratio."""
    if len(returns) < 2:
        return 0.0
    vol = _population_std(returns)
    if vol == 0:
        return 0.0
    return float((returns.mean() * periods - risk_free_rate) / (vol * math.sqrt(periods)))


def compute_sortino(
    returns: np.ndarray,
    risk_free_rate: float = 0.05,
    periods: int = 365,
) -> float:
    """
    Annualized Sortino ratio.

    Downside deviation is the RMS of negative returns. A series with no
    negative returns has an undefined ratio, reported as 0.
    """
    if len(returns) < 2:
        return 0.0
    downside = returns[returns < 0]
    if len(downside) == 0:
        return 0.0
    down_dev = math.sqrt(float(np.mean(downside ** 2)))
    if down_dev == 0:
        return 0.0
    ratio = (returns.mean() * periods - risk_free_rate) / (down_dev * math.sqrt(periods))
    return float(ratio) if np.isfinite(ratio) else 0.0


def analyze_risk(
    trades: Sequence[TradeInterval],
    config: RiskConfig | None = None,
) -> RiskMetrics:
    """
    Compute risk statistics from interval closes.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals in ascending time order.
    config : RiskConfig | None
        Risk-free rate, annualization periods and z-scores. Uses defaults if None.

    Returns
    -------
    RiskMetrics
        All fields 0 when fewer than two positive closes exist.
    """
    config = config or RiskConfig()

    if len(trades) < 2:
        return RiskMetrics()

    prices, _ = _usable_closes(trades)
    if len(prices) < 2:
        return RiskMetrics()

    returns = compute_simple_returns(prices)
    if len(returns) == 0:
        return RiskMetrics()

    daily_vol = _population_std(returns)
    annual_vol = daily_vol * math.sqrt(config.trading_periods)
    drawdown = compute_drawdown(prices)

    metrics = RiskMetrics(
        var_95=compute_var(returns, config.z_95) * 100,
        var_99=compute_var(returns, config.z_99) * 100,
        cvar_95=compute_cvar(returns, config.cvar_tail) * 100,
        sharpe_ratio=compute_sharpe(returns, config.risk_free_rate, config.trading_periods),
        sortino_ratio=compute_sortino(returns, config.risk_free_rate, config.trading_periods),
        volatility=annual_vol * 100,
        daily_volatility=daily_vol * 100,
        max_drawdown=drawdown.max_drawdown * 100,
        current_drawdown=drawdown.current_drawdown * 100,
        max_drawdown_duration=drawdown.duration,
        total_return=float((prices[-1] - prices[0]) / prices[0] * 100),
        avg_return=float(returns.mean() * 100),
        win_rate=float((returns > 0).sum() / len(returns) * 100),
    )

    logger.debug(f"Risk over {len(prices)} closes: vol={metrics.volatility:.2f}%, "
                 f"maxDD={metrics.max_drawdown:.2f}%")
    return metrics


def compute_drawdown_series(trades: Sequence[TradeInterval]) -> list[DrawdownPoint]:
    """
    Per-step running peak and drawdown for charting.

    Each point carries the timestamp of the interval its close came from;
    intervals without a positive close are skipped.

    Parameters
    ----------
    trades : Sequence[TradeInterval]
        Trade intervals in ascending time order.

    Returns
    -------
    list[DrawdownPoint]
        Drawdown in percent. Empty when fewer than two positive closes exist.
    """
    if len(trades) < 2:
        return []

    prices, timestamps = _usable_closes(trades)
    if len(prices) < 2:
        return []

    peaks = np.maximum.accumulate(prices)
    drawdowns = np.where(peaks > 0, (peaks - prices) / peaks * 100, 0.0)

    return [
        DrawdownPoint(ts, float(p), float(pk), float(dd))
        for ts, p, pk, dd in zip(timestamps, prices, peaks, drawdowns)
    ]


def get_risk_level(metrics: RiskMetrics) -> RiskLevel:
    """Bucket a composite of volatility, VaR and max drawdown."""
    score = (
        (metrics.volatility / 50) * 0.3
        + (metrics.var_95 / 5) * 0.3
        + (metrics.max_drawdown / 20) * 0.4
    )

    if score < 0.5:
        return RiskLevel.LOW
    if score < 1.0:
        return RiskLevel.MEDIUM
    if score < 1.5:
        return RiskLevel.HIGH
    return RiskLevel.EXTREME


def format_risk_metric(value: float, kind: str = "number") -> str:
    """
    Format a risk figure for display.

    Parameters
    ----------
    value : float
        Value to format.
    kind : str
        ``percentage`` (signed, two decimals, % suffix), ``ratio``
        (two decimals) or ``number`` (no decimals).

    Returns
    -------
    str
        Formatted text; unknown kinds fall back to ``str(value)``.
    """
    if kind == "percentage":
        sign = "+" if value >= 0 else ""
        return f"{sign}{value:.2f}%"
    if kind == "ratio":
        return f"{value:.2f}"
    if kind == "number":
        return f"{value:.0f}"
    return str(value)
