"""
Data ingestion module for MMDASH.

Provides loaders for market-data payloads.
"""

from mmdash.ingest.payload_loader import (
    TimestampParser,
    parse_timestamp,
    parse_trades,
    parse_orderbook,
    parse_market_payload,
    load_market_payload,
    trades_to_frame,
    orderbook_to_frame,
)

__all__ = [
    "TimestampParser",
    "parse_timestamp",
    "parse_trades",
    "parse_orderbook",
    "parse_market_payload",
    "load_market_payload",
    "trades_to_frame",
    "orderbook_to_frame",
]
