"""
MMDASH: Market Monitoring Dashboard analytics

Microstructure, regime and risk analytics over exchange trade and
order book interval summaries.
"""

__version__ = "1.0.0"

from mmdash.utils.config import MMDashConfig, load_config, get_config
from mmdash.utils.types import TradeInterval, OrderbookInterval, MarketSnapshot

from mmdash.ingest import load_market_payload
from mmdash.clean import validate_snapshot
from mmdash.microstructure import analyze_market, compute_trade_metrics, analyze_regime
from mmdash.risk import analyze_risk

__all__ = [
    "__version__",
    "MMDashConfig",
    "load_config",
    "get_config",
    "TradeInterval",
    "OrderbookInterval",
    "MarketSnapshot",
    "load_market_payload",
    "validate_snapshot",
    "analyze_market",
    "compute_trade_metrics",
    "analyze_regime",
    "analyze_risk",
]
