"""
Market analysis orchestration.

Runs the microstructure, order flow, regime and risk engines over one
snapshot and collects their outputs into a single report. The engines
are independent; this layer only wires configuration into them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

import pandas as pd

from mmdash.microstructure.flow import (
    analyze_aggressor_flow,
    compute_cvd_series,
    detect_large_trades,
)
from mmdash.microstructure.metrics import compute_trade_metrics
from mmdash.microstructure.regimes import analyze_regime, compute_regime_timeline
from mmdash.risk.risk_metrics import (
    analyze_risk,
    compute_drawdown_series,
    get_risk_level,
)
from mmdash.utils.config import MMDashConfig, get_config
from mmdash.utils.logging import get_logger
from mmdash.utils.types import (
    CVDPoint,
    DrawdownPoint,
    FlowAnalysis,
    LargeTrade,
    MarketSnapshot,
    OrderbookInterval,
    RegimeAnalysis,
    RegimePoint,
    RiskLevel,
    RiskMetrics,
    TradeInterval,
    TradeMetrics,
    records_to_frame,
)

logger = get_logger("microstructure.analysis")


@dataclass
class AnalysisReport:
    """Combined output of every analytics engine for one snapshot."""
    metrics: TradeMetrics = field(default_factory=TradeMetrics)
    regime: RegimeAnalysis = field(default_factory=RegimeAnalysis)
    regime_timeline: list[RegimePoint] = field(default_factory=list)
    risk: RiskMetrics = field(default_factory=RiskMetrics)
    risk_level: RiskLevel = RiskLevel.LOW
    drawdown: list[DrawdownPoint] = field(default_factory=list)
    cvd: list[CVDPoint] = field(default_factory=list)
    large_trades: list[LargeTrade] = field(default_factory=list)
    flow: FlowAnalysis = field(default_factory=FlowAnalysis)
    exchange: str = ""
    symbol: str = ""

    def drawdown_frame(self) -> pd.DataFrame:
        return records_to_frame(self.drawdown)

    def cvd_frame(self) -> pd.DataFrame:
        return records_to_frame(self.cvd)

    def timeline_frame(self) -> pd.DataFrame:
        return records_to_frame(self.regime_timeline)

    def to_dict(self) -> dict[str, Any]:
        return {
            "exchange": self.exchange,
            "symbol": self.symbol,
            "metrics": self.metrics.to_dict(),
            "regime": self.regime.to_dict(),
            "regime_timeline": [p.to_dict() for p in self.regime_timeline],
            "risk": self.risk.to_dict(),
            "risk_level": self.risk_level.value,
            "drawdown": [vars(p).copy() for p in self.drawdown],
            "cvd": [vars(p).copy() for p in self.cvd],
            "large_trades": [vars(t).copy() for t in self.large_trades],
            "flow": self.flow.to_dict(),
        }


class MarketAnalyzer:
    """
    Runs all analytics engines with a shared configuration.

    Parameters
    ----------
    config : MMDashConfig | None
        Configuration object. Uses global config if None.
    """

    def __init__(self, config: MMDashConfig | None = None):
        self.config = config or get_config()

    def analyze(
        self,
        trades: Sequence[TradeInterval],
        orderbook: Sequence[OrderbookInterval],
    ) -> AnalysisReport:
        """
        Analyze one pair of trade and order book series.

        Parameters
        ----------
        trades : Sequence[TradeInterval]
            Trade intervals in ascending time order.
        orderbook : Sequence[OrderbookInterval]
            Order book intervals in ascending time order.

        Returns
        -------
        AnalysisReport
            Engine outputs; each engine falls back to its own baseline
            when the input is too short.
        """
        cfg = self.config

        risk = analyze_risk(trades, cfg.risk)
        report = AnalysisReport(
            metrics=compute_trade_metrics(trades, orderbook, cfg.metrics),
            regime=analyze_regime(trades, orderbook, cfg.regime),
            regime_timeline=compute_regime_timeline(
                trades, orderbook, cfg.regime.timeline_window, cfg.regime
            ),
            risk=risk,
            risk_level=get_risk_level(risk),
            drawdown=compute_drawdown_series(trades),
            cvd=compute_cvd_series(trades),
            large_trades=detect_large_trades(
                trades, cfg.flow.large_trade_threshold, cfg.flow.large_trade_limit
            ),
            flow=analyze_aggressor_flow(trades, cfg.flow),
        )

        logger.info(
            f"Analyzed {len(trades)} trade / {len(orderbook)} orderbook intervals: "
            f"regime={report.regime.current.type.value} "
            f"({report.regime.current.confidence:.0f}%), risk={report.risk_level.value}"
        )
        return report

    def analyze_snapshot(self, snapshot: MarketSnapshot) -> AnalysisReport:
        """Analyze a loaded snapshot, carrying over its exchange and symbol."""
        report = self.analyze(snapshot.trades, snapshot.orderbook)
        report.exchange = snapshot.exchange
        report.symbol = snapshot.symbol
        return report


def analyze_market(
    trades: Sequence[TradeInterval],
    orderbook: Sequence[OrderbookInterval],
    config: MMDashConfig | None = None,
) -> AnalysisReport:
    """Convenience function to run every engine once."""
    return MarketAnalyzer(config).analyze(trades, orderbook)
