"""
Market data payload ingestion.

Handles loading and parsing of the market-data response document
(``tradesSummary`` / ``orderbookSummary`` series) into typed interval
records, plus pandas views of those records.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from mmdash.utils.logging import get_logger
from mmdash.utils.types import (
    MarketSnapshot,
    OrderbookInterval,
    TradeInterval,
)

logger = get_logger("ingest")


# Trailing zone abbreviation such as " KST" or " UTC"
ZONE_SUFFIX_PATTERN = re.compile(r" [A-Z]{3,4}$")
FALLBACK_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})")


class TimestampParser:
    """
    Parses upstream interval timestamps into UTC pandas Timestamps.

    Upstream timestamps are local-time strings that may carry a trailing
    3-4 letter zone code. The code is stripped, the remainder parsed, and
    naive results are treated as UTC. Unparseable strings fall back to a
    ``YYYY-MM-DD HH:MM`` pattern match and finally to the current time.
    """

    def __init__(self, tz: str = "UTC"):
        self.tz = tz

    def parse_one(self, value: str | None) -> pd.Timestamp:
        """
        Parse a single timestamp string.

        Parameters
        ----------
        value : str | None
            Raw timestamp string.

        Returns
        -------
        pd.Timestamp
            Timezone-aware timestamp.
        """
        text = ZONE_SUFFIX_PATTERN.sub("", (value or "").strip())

        parsed = pd.to_datetime(text, errors="coerce") if text else pd.NaT
        if pd.isna(parsed):
            match = FALLBACK_PATTERN.search(text)
            if match is None:
                logger.debug(f"Unparseable timestamp {value!r}, using current time")
                return pd.Timestamp.now(tz=self.tz)
            year, month, day, hour, minute = (int(g) for g in match.groups())
            try:
                parsed = pd.Timestamp(year=year, month=month, day=day, hour=hour, minute=minute)
            except ValueError:
                logger.debug(f"Invalid date fields in {value!r}, using current time")
                return pd.Timestamp.now(tz=self.tz)

        return self._normalize(pd.Timestamp(parsed))

    def parse(self, values: Iterable[str]) -> pd.DatetimeIndex:
        """Parse a sequence of timestamp strings."""
        return pd.DatetimeIndex([self.parse_one(v) for v in values])

    def _normalize(self, ts: pd.Timestamp) -> pd.Timestamp:
        if ts.tzinfo is None:
            return ts.tz_localize(self.tz)
        return ts.tz_convert(self.tz)


_default_parser = TimestampParser()


def parse_timestamp(value: str | None) -> pd.Timestamp:
    """Parse one upstream timestamp with the default UTC parser."""
    return _default_parser.parse_one(value)


def parse_trades(records: Iterable[Mapping[str, Any]]) -> list[TradeInterval]:
    """Convert raw trade summary dictionaries into ``TradeInterval`` records."""
    return [TradeInterval.from_dict(r) for r in records]


def parse_orderbook(records: Iterable[Mapping[str, Any]]) -> list[OrderbookInterval]:
    """Convert raw order book summary dictionaries into ``OrderbookInterval`` records."""
    return [OrderbookInterval.from_dict(r) for r in records]


def _series(raw: Mapping[str, Any], *keys: str) -> list[Mapping[str, Any]]:
    for key in keys:
        if key in raw and raw[key] is not None:
            value = raw[key]
            if not isinstance(value, list):
                raise ValueError(f"Payload field '{key}' must be a list, got {type(value).__name__}")
            return value
    return []


def parse_market_payload(raw: Mapping[str, Any]) -> MarketSnapshot:
    """
    Build a ``MarketSnapshot`` from a decoded market-data response.

    Parameters
    ----------
    raw : Mapping[str, Any]
        Decoded JSON object with ``tradesSummary`` and ``orderbookSummary``
        lists (snake_case keys are accepted as well).

    Returns
    -------
    MarketSnapshot
        Parsed snapshot.

    Raises
    ------
    ValueError
        If ``raw`` is not a mapping or a series field is not a list.
    """
    if not isinstance(raw, Mapping):
        raise ValueError(f"Market payload must be a JSON object, got {type(raw).__name__}")

    trades = parse_trades(_series(raw, "tradesSummary", "trades_summary"))
    orderbook = parse_orderbook(_series(raw, "orderbookSummary", "orderbook_summary"))

    return MarketSnapshot(
        trades=trades,
        orderbook=orderbook,
        exchange=str(raw.get("exchange") or ""),
        symbol=str(raw.get("symbol") or ""),
    )


def load_market_payload(path: str | Path) -> MarketSnapshot:
    """
    Load a market-data JSON document from disk.

    Parameters
    ----------
    path : str | Path
        Path to the JSON file.

    Returns
    -------
    MarketSnapshot
        Parsed snapshot.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the document is not a market payload object.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Market payload not found: {path}")

    with open(path) as f:
        raw = json.load(f)

    snapshot = parse_market_payload(raw)
    logger.info(
        f"Loaded {snapshot.n_trades} trade and {snapshot.n_orderbook} orderbook "
        f"intervals from {path.name}"
    )
    return snapshot


def trades_to_frame(trades: list[TradeInterval], parser: TimestampParser | None = None) -> pd.DataFrame:
    """
    Flatten trade intervals into a DataFrame indexed by parsed timestamp.

    Columns: open, high, low, close, volume, notional, vwap, trade_count,
    buy_volume, sell_volume, buy_ratio, net_volume, raw_timestamp.
    """
    columns = [
        "open", "high", "low", "close", "volume", "notional", "vwap",
        "trade_count", "buy_volume", "sell_volume", "buy_ratio", "net_volume",
        "raw_timestamp",
    ]
    if not trades:
        return pd.DataFrame(columns=columns, index=pd.DatetimeIndex([], tz="UTC"))

    parser = parser or _default_parser
    df = pd.DataFrame({
        "open": [t.ohlc.open for t in trades],
        "high": [t.ohlc.high for t in trades],
        "low": [t.ohlc.low for t in trades],
        "close": [t.ohlc.close for t in trades],
        "volume": [t.volume for t in trades],
        "notional": [t.notional for t in trades],
        "vwap": [t.vwap for t in trades],
        "trade_count": np.array([t.trade_count for t in trades], dtype=np.int64),
        "buy_volume": [t.buy_sell.buy_volume for t in trades],
        "sell_volume": [t.buy_sell.sell_volume for t in trades],
        "buy_ratio": [t.buy_sell.buy_ratio for t in trades],
        "net_volume": [t.buy_sell.net_volume for t in trades],
        "raw_timestamp": [t.timestamp for t in trades],
    }, index=parser.parse(t.timestamp for t in trades))
    df.index.name = "datetime"
    return df


def orderbook_to_frame(orderbook: list[OrderbookInterval], parser: TimestampParser | None = None) -> pd.DataFrame:
    """
    Flatten order book intervals into a DataFrame indexed by parsed timestamp.

    Columns: mid_open, mid_high, mid_low, mid_close, spread_mean,
    spread_min, spread_max, bid_depth, ask_depth, imbalance,
    snapshot_count, raw_timestamp.
    """
    columns = [
        "mid_open", "mid_high", "mid_low", "mid_close", "spread_mean",
        "spread_min", "spread_max", "bid_depth", "ask_depth", "imbalance",
        "snapshot_count", "raw_timestamp",
    ]
    if not orderbook:
        return pd.DataFrame(columns=columns, index=pd.DatetimeIndex([], tz="UTC"))

    parser = parser or _default_parser
    df = pd.DataFrame({
        "mid_open": [o.mid_price.open for o in orderbook],
        "mid_high": [o.mid_price.high for o in orderbook],
        "mid_low": [o.mid_price.low for o in orderbook],
        "mid_close": [o.mid_price.close for o in orderbook],
        "spread_mean": [o.spread_bps.mean for o in orderbook],
        "spread_min": [o.spread_bps.min for o in orderbook],
        "spread_max": [o.spread_bps.max for o in orderbook],
        "bid_depth": [o.avg_bid_depth for o in orderbook],
        "ask_depth": [o.avg_ask_depth for o in orderbook],
        "imbalance": [o.avg_imbalance for o in orderbook],
        "snapshot_count": np.array([o.snapshot_count for o in orderbook], dtype=np.int64),
        "raw_timestamp": [o.timestamp for o in orderbook],
    }, index=parser.parse(o.timestamp for o in orderbook))
    df.index.name = "datetime"
    return df
