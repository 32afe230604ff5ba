"""
Technical indicator module for MMDASH.

Provides moving averages, RSI, ATR, momentum and returns.
"""

from mmdash.features.indicators import (
    compute_sma,
    compute_rsi,
    compute_true_range,
    compute_atr,
    compute_momentum,
    compute_simple_returns,
    last_value,
)

__all__ = [
    "compute_sma",
    "compute_rsi",
    "compute_true_range",
    "compute_atr",
    "compute_momentum",
    "compute_simple_returns",
    "last_value",
]
