"""
Microstructure analysis module for MMDASH.

Module Structure:
    - metrics.py: Eight liquidity and informed-trading indicators
    - flow.py: Cumulative volume delta, large trades, aggressor flow
    - regimes.py: Regime classification and rolling timeline
    - analysis.py: Orchestration layer across all engines
"""

from mmdash.microstructure.metrics import (
    classify_status,
    summarize_history,
    compute_dvr,
    compute_tii,
    compute_kyle_lambda,
    compute_amihud,
    compute_fpi,
    compute_vpin,
    compute_was,
    compute_lsi,
    compute_trade_metrics,
)

from mmdash.microstructure.flow import (
    compute_cvd_series,
    detect_large_trades,
    analyze_aggressor_flow,
)

from mmdash.microstructure.regimes import (
    REGIME_DESCRIPTORS,
    RegimeDescriptor,
    describe_regime,
    determine_regime,
    analyze_regime,
    compute_regime_timeline,
)

from mmdash.microstructure.analysis import (
    AnalysisReport,
    MarketAnalyzer,
    analyze_market,
)

__all__ = [
    # Metrics
    "classify_status",
    "summarize_history",
    "compute_dvr",
    "compute_tii",
    "compute_kyle_lambda",
    "compute_amihud",
    "compute_fpi",
    "compute_vpin",
    "compute_was",
    "compute_lsi",
    "compute_trade_metrics",
    # Flow
    "compute_cvd_series",
    "detect_large_trades",
    "analyze_aggressor_flow",
    # Regimes
    "REGIME_DESCRIPTORS",
    "RegimeDescriptor",
    "describe_regime",
    "determine_regime",
    "analyze_regime",
    "compute_regime_timeline",
    # Orchestration
    "AnalysisReport",
    "MarketAnalyzer",
    "analyze_market",
]
