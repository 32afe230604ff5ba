"""
Utility modules for MMDASH.

Provides configuration, types, logging and export infrastructure.
"""

from mmdash.utils.config import (
    MMDashConfig,
    load_config,
    get_config,
    set_config,
)
from mmdash.utils.types import (
    MetricStatus,
    Trend,
    RegimeType,
    RiskLevel,
    FlowTrend,
    OHLC,
    BuySell,
    SpreadStats,
    TradeInterval,
    OrderbookInterval,
    MarketSnapshot,
    HistoryPoint,
    MetricValue,
    MetricSeries,
    TradeMetrics,
    RegimeSignal,
    RegimeMetrics,
    RegimeAnalysis,
    RegimePoint,
    RiskMetrics,
    DrawdownPoint,
    CVDPoint,
    LargeTrade,
    FlowAnalysis,
)
from mmdash.utils.logging import setup_logging, get_logger, set_market_context
from mmdash.utils.export import ReportExporter, export_report, sanitize_output_path

__all__ = [
    "MMDashConfig",
    "load_config",
    "get_config",
    "set_config",
    "MetricStatus",
    "Trend",
    "RegimeType",
    "RiskLevel",
    "FlowTrend",
    "OHLC",
    "BuySell",
    "SpreadStats",
    "TradeInterval",
    "OrderbookInterval",
    "MarketSnapshot",
    "HistoryPoint",
    "MetricValue",
    "MetricSeries",
    "TradeMetrics",
    "RegimeSignal",
    "RegimeMetrics",
    "RegimeAnalysis",
    "RegimePoint",
    "RiskMetrics",
    "DrawdownPoint",
    "CVDPoint",
    "LargeTrade",
    "FlowAnalysis",
    "setup_logging",
    "get_logger",
    "set_market_context",
    "ReportExporter",
    "export_report",
    "sanitize_output_path",
]
