"""
Pytest configuration and shared fixtures for the MMDASH test suite.

This file is automatically loaded by pytest and provides shared fixtures
that can be used across all test modules.
"""

import numpy as np
import pandas as pd
import pytest

from mmdash.utils.config import load_config, MMDashConfig
from mmdash.utils.types import (
    OHLC,
    BuySell,
    MarketSnapshot,
    OrderbookInterval,
    SpreadStats,
    TradeInterval,
)


def _timestamps(n: int) -> list[str]:
    index = pd.date_range("2024-01-15 09:00", periods=n, freq="min")
    return [f"{ts:%Y-%m-%d %H:%M:%S} KST" for ts in index]


def build_trade(
    close: float,
    open_: float | None = None,
    wick: float = 0.1,
    volume: float = 100.0,
    buy_ratio: float = 0.5,
    trade_count: int = 10,
    notional: float | None = None,
    timestamp: str = "2024-01-15 09:00:00 KST",
) -> TradeInterval:
    """Trade interval with a consistent buy/sell split."""
    open_ = close if open_ is None else open_
    buy_volume = volume * buy_ratio
    sell_volume = volume - buy_volume
    return TradeInterval(
        timestamp=timestamp,
        ohlc=OHLC(
            open=open_,
            high=max(open_, close) + wick,
            low=min(open_, close) - wick,
            close=close,
        ),
        volume=volume,
        notional=volume * close if notional is None else notional,
        vwap=close,
        trade_count=trade_count,
        buy_sell=BuySell(
            buy_volume=buy_volume,
            sell_volume=sell_volume,
            buy_ratio=buy_ratio,
            net_volume=buy_volume - sell_volume,
        ),
    )


def build_book(
    spread: float = 2.0,
    bid_depth: float = 500.0,
    ask_depth: float = 500.0,
    mid: float = 100.0,
    imbalance: float = 0.0,
    timestamp: str = "2024-01-15 09:00:00 KST",
) -> OrderbookInterval:
    return OrderbookInterval(
        timestamp=timestamp,
        mid_price=OHLC(open=mid, high=mid, low=mid, close=mid),
        spread_bps=SpreadStats(mean=spread, min=spread * 0.5, max=spread * 1.5),
        avg_bid_depth=bid_depth,
        avg_ask_depth=ask_depth,
        avg_imbalance=imbalance,
        snapshot_count=60,
    )


def bars_from_closes(closes, wick: float = 0.1, **kwargs) -> list[TradeInterval]:
    """Chain closes into bars whose open is the previous close."""
    stamps = _timestamps(len(closes))
    trades = []
    prev = None
    for close, ts in zip(closes, stamps):
        trades.append(build_trade(close, open_=prev, wick=wick, timestamp=ts, **kwargs))
        prev = close
    return trades


@pytest.fixture
def trade_factory():
    """Factory for single trade intervals."""
    return build_trade


@pytest.fixture
def book_factory():
    """Factory for single order book intervals."""
    return build_book


@pytest.fixture
def bars():
    """Factory turning a close-price list into chained trade intervals."""
    return bars_from_closes


@pytest.fixture
def config() -> MMDashConfig:
    """Load default configuration for tests."""
    return load_config()


@pytest.fixture
def sample_trades() -> list[TradeInterval]:
    """Sixty random-walk trade intervals."""
    np.random.seed(42)
    n = 60
    closes = 100 + np.cumsum(np.random.normal(0, 0.5, n))
    volumes = np.random.uniform(50, 150, n)
    ratios = np.random.uniform(0.3, 0.7, n)
    counts = np.random.randint(5, 50, n)
    wicks = np.random.uniform(0.05, 0.3, n)
    stamps = _timestamps(n)

    trades = []
    prev = closes[0]
    for i in range(n):
        trades.append(build_trade(
            float(closes[i]),
            open_=float(prev),
            wick=float(wicks[i]),
            volume=float(volumes[i]),
            buy_ratio=float(ratios[i]),
            trade_count=int(counts[i]),
            timestamp=stamps[i],
        ))
        prev = closes[i]
    return trades


@pytest.fixture
def sample_orderbook(sample_trades) -> list[OrderbookInterval]:
    """Order book intervals aligned with ``sample_trades``."""
    np.random.seed(7)
    n = len(sample_trades)
    spreads = np.random.uniform(1, 5, n)
    bids = np.random.uniform(200, 800, n)
    asks = np.random.uniform(200, 800, n)
    imbalances = np.random.uniform(-0.5, 0.5, n)

    return [
        build_book(
            spread=float(spreads[i]),
            bid_depth=float(bids[i]),
            ask_depth=float(asks[i]),
            mid=t.ohlc.close,
            imbalance=float(imbalances[i]),
            timestamp=t.timestamp,
        )
        for i, t in enumerate(sample_trades)
    ]


@pytest.fixture
def sample_snapshot(sample_trades, sample_orderbook) -> MarketSnapshot:
    return MarketSnapshot(
        trades=sample_trades,
        orderbook=sample_orderbook,
        exchange="upbit",
        symbol="KRW-BTC",
    )


@pytest.fixture
def sample_payload(sample_trades, sample_orderbook) -> dict:
    """Market-data response document as the proxy serves it."""
    return {
        "exchange": "upbit",
        "symbol": "KRW-BTC",
        "tradesSummary": [t.to_dict() for t in sample_trades],
        "orderbookSummary": [o.to_dict() for o in sample_orderbook],
        "anomalies": [],
    }
