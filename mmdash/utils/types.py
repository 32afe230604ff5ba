"""
Type definitions and data structures for MMDASH analytics.

Provides typed containers, enums and result records shared by the
microstructure, regime and risk engines. Input records are immutable;
result records are rebuilt on every call and expose ``to_dict`` for
JSON export and, for series, ``to_frame`` for tabular consumers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, TypeAlias

import pandas as pd


# Type aliases for clarity
Symbol: TypeAlias = str
Exchange: TypeAlias = str
RawTimestamp: TypeAlias = str


def _num(data: Mapping[str, Any] | None, key: str, default: float = 0.0) -> float:
    """Read a numeric field, substituting ``default`` for missing, null or non-finite values."""
    if not data:
        return default
    value = data.get(key)
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _int(data: Mapping[str, Any] | None, key: str, default: int = 0) -> int:
    return int(_num(data, key, float(default)))


class MetricStatus(Enum):
    """Threshold classification of a metric value."""
    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"


class Trend(Enum):
    """Direction of the latest metric change."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class RegimeType(Enum):
    """Discrete market regime label."""
    TRENDING_BULL = "trending_bull"
    TRENDING_BEAR = "trending_bear"
    MEAN_REVERTING = "mean_reverting"
    HIGH_VOLATILITY = "high_volatility"
    CONSOLIDATION = "consolidation"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> RegimeType:
        """Parse regime string to enum."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


class RiskLevel(Enum):
    """Composite risk bucket."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class FlowTrend(Enum):
    """Aggressor flow direction."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


# Input records

@dataclass(frozen=True)
class OHLC:
    """Open/high/low/close price bar."""
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> OHLC:
        return cls(
            open=_num(data, "open"),
            high=_num(data, "high"),
            low=_num(data, "low"),
            close=_num(data, "close"),
        )


@dataclass(frozen=True)
class BuySell:
    """Aggressor-side volume split for one interval."""
    buy_volume: float = 0.0
    sell_volume: float = 0.0
    buy_ratio: float = 0.5
    net_volume: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> BuySell:
        return cls(
            buy_volume=_num(data, "buy_volume"),
            sell_volume=_num(data, "sell_volume"),
            buy_ratio=_num(data, "buy_ratio", 0.5),
            net_volume=_num(data, "net_volume"),
        )


@dataclass(frozen=True)
class SpreadStats:
    """Spread statistics in basis points."""
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SpreadStats:
        return cls(
            mean=_num(data, "mean"),
            min=_num(data, "min"),
            max=_num(data, "max"),
        )


@dataclass(frozen=True)
class TradeInterval:
    """
    Aggregated trade activity over one time bucket.

    ``buy_sell.buy_volume + buy_sell.sell_volume`` is expected to match
    ``volume``; the engines never rely on it.
    """
    timestamp: RawTimestamp = ""
    ohlc: OHLC = field(default_factory=OHLC)
    volume: float = 0.0
    notional: float = 0.0
    vwap: float = 0.0
    trade_count: int = 0
    buy_sell: BuySell = field(default_factory=BuySell)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TradeInterval:
        """Build from an upstream payload record, applying field defaults."""
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            ohlc=OHLC.from_dict(data.get("ohlc")),
            volume=_num(data, "volume"),
            notional=_num(data, "notional"),
            vwap=_num(data, "vwap"),
            trade_count=_int(data, "trade_count"),
            buy_sell=BuySell.from_dict(data.get("buy_sell")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "ohlc": vars(self.ohlc).copy(),
            "volume": self.volume,
            "notional": self.notional,
            "vwap": self.vwap,
            "trade_count": self.trade_count,
            "buy_sell": vars(self.buy_sell).copy(),
        }


@dataclass(frozen=True)
class OrderbookInterval:
    """Aggregated order book state over one time bucket."""
    timestamp: RawTimestamp = ""
    mid_price: OHLC = field(default_factory=OHLC)
    spread_bps: SpreadStats = field(default_factory=SpreadStats)
    avg_bid_depth: float = 0.0
    avg_ask_depth: float = 0.0
    avg_imbalance: float = 0.0
    snapshot_count: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OrderbookInterval:
        """Build from an upstream payload record, applying field defaults."""
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            mid_price=OHLC.from_dict(data.get("mid_price")),
            spread_bps=SpreadStats.from_dict(data.get("spread_bps")),
            avg_bid_depth=_num(data, "avg_bid_depth"),
            avg_ask_depth=_num(data, "avg_ask_depth"),
            avg_imbalance=_num(data, "avg_imbalance"),
            snapshot_count=_int(data, "snapshot_count"),
        )

    @property
    def total_depth(self) -> float:
        return self.avg_bid_depth + self.avg_ask_depth

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "mid_price": vars(self.mid_price).copy(),
            "spread_bps": vars(self.spread_bps).copy(),
            "avg_bid_depth": self.avg_bid_depth,
            "avg_ask_depth": self.avg_ask_depth,
            "avg_imbalance": self.avg_imbalance,
            "snapshot_count": self.snapshot_count,
        }


@dataclass
class MarketSnapshot:
    """Trade and order book series for one exchange/symbol pair."""
    trades: list[TradeInterval] = field(default_factory=list)
    orderbook: list[OrderbookInterval] = field(default_factory=list)
    exchange: Exchange = ""
    symbol: Symbol = ""

    @property
    def n_trades(self) -> int:
        return len(self.trades)

    @property
    def n_orderbook(self) -> int:
        return len(self.orderbook)

    def __repr__(self) -> str:
        return (
            f"MarketSnapshot(exchange={self.exchange!r}, symbol={self.symbol!r}, "
            f"trades={self.n_trades}, orderbook={self.n_orderbook})"
        )


# Metric results

@dataclass(frozen=True)
class HistoryPoint:
    """One computed metric observation."""
    timestamp: RawTimestamp
    value: float


@dataclass(frozen=True)
class MetricValue:
    """Latest metric value with its status and direction."""
    value: float = 0.0
    status: MetricStatus = MetricStatus.NORMAL
    trend: Trend = Trend.STABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "status": self.status.value,
            "trend": self.trend.value,
        }


@dataclass
class MetricSeries:
    """Current value plus full history of one microstructure metric."""
    current: MetricValue = field(default_factory=MetricValue)
    history: list[HistoryPoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.history)

    @property
    def values(self) -> list[float]:
        return [p.value for p in self.history]

    def to_frame(self) -> pd.DataFrame:
        """History as a DataFrame with ``timestamp`` and ``value`` columns."""
        return pd.DataFrame(
            [(p.timestamp, p.value) for p in self.history],
            columns=["timestamp", "value"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current.to_dict(),
            "history": [{"timestamp": p.timestamp, "value": p.value} for p in self.history],
        }


METRIC_NAMES = ("dvr", "tii", "kyle_lambda", "amihud", "fpi", "vpin", "was", "lsi")


@dataclass
class TradeMetrics:
    """All eight microstructure metric series."""
    dvr: MetricSeries = field(default_factory=MetricSeries)
    tii: MetricSeries = field(default_factory=MetricSeries)
    kyle_lambda: MetricSeries = field(default_factory=MetricSeries)
    amihud: MetricSeries = field(default_factory=MetricSeries)
    fpi: MetricSeries = field(default_factory=MetricSeries)
    vpin: MetricSeries = field(default_factory=MetricSeries)
    was: MetricSeries = field(default_factory=MetricSeries)
    lsi: MetricSeries = field(default_factory=MetricSeries)

    def items(self) -> list[tuple[str, MetricSeries]]:
        return [(name, getattr(self, name)) for name in METRIC_NAMES]

    def summary(self) -> pd.DataFrame:
        """One row per metric with its current value, status and trend."""
        records = []
        for name, series in self.items():
            records.append({
                "metric": name,
                "value": series.current.value,
                "status": series.current.status.value,
                "trend": series.current.trend.value,
                "n_points": len(series),
            })
        return pd.DataFrame(records)

    def to_dict(self) -> dict[str, Any]:
        return {name: series.to_dict() for name, series in self.items()}


# Regime results

@dataclass(frozen=True)
class RegimeSignal:
    """Classified regime with the indicators that produced it."""
    type: RegimeType = RegimeType.UNKNOWN
    confidence: float = 0.0
    timestamp: RawTimestamp = ""
    indicators: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
            "indicators": dict(self.indicators),
        }


@dataclass(frozen=True)
class RegimeMetrics:
    """Continuous regime descriptors."""
    trend_strength: float = 0.0
    volatility_ratio: float = 1.0
    momentum: float = 0.0
    spread_anomaly: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "trend_strength": self.trend_strength,
            "volatility_ratio": self.volatility_ratio,
            "momentum": self.momentum,
            "spread_anomaly": self.spread_anomaly,
        }


@dataclass
class RegimeAnalysis:
    """Regime classifier output."""
    current: RegimeSignal = field(default_factory=RegimeSignal)
    metrics: RegimeMetrics = field(default_factory=RegimeMetrics)

    def to_dict(self) -> dict[str, Any]:
        return {"current": self.current.to_dict(), "metrics": self.metrics.to_dict()}


@dataclass(frozen=True)
class RegimePoint:
    """Regime label at one step of a rolling-window timeline."""
    timestamp: RawTimestamp
    time: pd.Timestamp
    regime: RegimeType
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "time": self.time.isoformat(),
            "regime": self.regime.value,
            "confidence": self.confidence,
        }


# Risk results

@dataclass(frozen=True)
class RiskMetrics:
    """
    Return-based risk statistics.

    Percent-valued fields: var_95, var_99, cvar_95, volatility,
    daily_volatility, max_drawdown, current_drawdown, total_return,
    avg_return, win_rate.
    """
    var_95: float = 0.0
    var_99: float = 0.0
    cvar_95: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    volatility: float = 0.0
    daily_volatility: float = 0.0
    max_drawdown: float = 0.0
    current_drawdown: float = 0.0
    max_drawdown_duration: int = 0
    total_return: float = 0.0
    avg_return: float = 0.0
    win_rate: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return dict(vars(self))


@dataclass(frozen=True)
class DrawdownPoint:
    """Running peak and drawdown at one close."""
    timestamp: RawTimestamp
    price: float
    peak: float
    drawdown: float


# Order flow results

@dataclass(frozen=True)
class CVDPoint:
    """Per-interval volume delta and its running sum."""
    timestamp: RawTimestamp
    delta: float
    cvd: float


@dataclass(frozen=True)
class LargeTrade:
    """Interval whose volume exceeds a multiple of the average."""
    timestamp: RawTimestamp
    volume: float
    avg_volume: float
    ratio: float
    is_buy_dominant: bool
    price: float


@dataclass(frozen=True)
class FlowAnalysis:
    """Aggressor-side order flow summary."""
    current_buy_ratio: float = 0.5
    avg_buy_ratio: float = 0.5
    total_buy_volume: float = 0.0
    total_sell_volume: float = 0.0
    net_flow: float = 0.0
    trend: FlowTrend = FlowTrend.NEUTRAL
    trend_strength: float = 0.0
    consecutive_buy: int = 0
    consecutive_sell: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = dict(vars(self))
        data["trend"] = self.trend.value
        return data


def records_to_frame(records: list[Any]) -> pd.DataFrame:
    """Flatten a list of simple frozen dataclasses into a DataFrame."""
    if not records:
        return pd.DataFrame()
    rows = []
    for record in records:
        row = {}
        for key, value in vars(record).items():
            row[key] = value.value if isinstance(value, Enum) else value
        rows.append(row)
    return pd.DataFrame(rows)
