"""
Risk analytics module for MMDASH.

Provides VaR, CVaR, Sharpe/Sortino, volatility and drawdown statistics.
"""

from mmdash.risk.risk_metrics import (
    RISK_LEVEL_LABELS,
    DrawdownStats,
    analyze_risk,
    compute_cvar,
    compute_drawdown,
    compute_drawdown_series,
    compute_sharpe,
    compute_sortino,
    compute_var,
    format_risk_metric,
    get_risk_level,
)

__all__ = [
    "RISK_LEVEL_LABELS",
    "DrawdownStats",
    "analyze_risk",
    "compute_cvar",
    "compute_drawdown",
    "compute_drawdown_series",
    "compute_sharpe",
    "compute_sortino",
    "compute_var",
    "format_risk_metric",
    "get_risk_level",
]
