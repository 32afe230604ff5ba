"""
Unit tests for payload ingestion.

Run tests with: pytest tests/test_ingest.py -v
After installing package with: pip install -e .
"""

import json

import pandas as pd
import pytest

from mmdash.utils.types import OrderbookInterval, TradeInterval
from mmdash.ingest.payload_loader import (
    TimestampParser,
    load_market_payload,
    orderbook_to_frame,
    parse_market_payload,
    parse_timestamp,
    trades_to_frame,
)


class TestTimestampParser:
    """Tests for upstream timestamp parsing."""

    def test_strips_zone_suffix(self):
        ts = parse_timestamp("2024-01-15 09:30:00 KST")
        assert ts == pd.Timestamp("2024-01-15 09:30:00", tz="UTC")

    def test_iso_with_offset_converted_to_utc(self):
        ts = parse_timestamp("2024-01-15T09:30:00+09:00")
        assert ts == pd.Timestamp("2024-01-15 00:30:00", tz="UTC")

    def test_fallback_pattern(self):
        ts = parse_timestamp("bucket 2024-01-15 09:30 (partial)")
        assert ts == pd.Timestamp("2024-01-15 09:30", tz="UTC")

    def test_unparseable_uses_current_time(self):
        before = pd.Timestamp.now(tz="UTC")
        ts = parse_timestamp("not a time")
        after = pd.Timestamp.now(tz="UTC")
        assert before <= ts <= after

    def test_empty_uses_current_time(self):
        assert parse_timestamp("").tzinfo is not None
        assert parse_timestamp(None).tzinfo is not None

    def test_parse_many(self):
        index = TimestampParser().parse(["2024-01-15 09:00:00 KST", "2024-01-15 09:01:00 KST"])
        assert isinstance(index, pd.DatetimeIndex)
        assert index[1] - index[0] == pd.Timedelta(minutes=1)

    def test_custom_zone(self):
        ts = TimestampParser(tz="Asia/Seoul").parse_one("2024-01-15 09:30:00")
        assert str(ts.tz) == "Asia/Seoul"


class TestRecordParsing:
    """Tests for payload record defaults."""

    def test_trade_defaults(self):
        trade = TradeInterval.from_dict({"timestamp": "2024-01-15 09:00:00 KST"})

        assert trade.ohlc.close == 0.0
        assert trade.volume == 0.0
        assert trade.trade_count == 0
        assert trade.buy_sell.buy_ratio == 0.5

    def test_null_and_string_fields(self):
        trade = TradeInterval.from_dict({
            "timestamp": None,
            "volume": "12.5",
            "trade_count": None,
            "buy_sell": {"buy_ratio": None, "buy_volume": "bad"},
        })

        assert trade.timestamp == ""
        assert trade.volume == 12.5
        assert trade.trade_count == 0
        assert trade.buy_sell.buy_ratio == 0.5
        assert trade.buy_sell.buy_volume == 0.0

    def test_non_finite_fields_use_defaults(self):
        raw = json.loads(
            '{"tradesSummary": [{"trade_count": NaN, "volume": Infinity,'
            ' "buy_sell": {"buy_ratio": NaN}}],'
            ' "orderbookSummary": [{"snapshot_count": -Infinity}]}'
        )

        snapshot = parse_market_payload(raw)
        trade = snapshot.trades[0]

        assert trade.trade_count == 0
        assert trade.volume == 0.0
        assert trade.buy_sell.buy_ratio == 0.5
        assert snapshot.orderbook[0].snapshot_count == 0

    def test_orderbook_defaults(self):
        book = OrderbookInterval.from_dict({})
        assert book.total_depth == 0.0
        assert book.spread_bps.mean == 0.0

    def test_to_dict_round_trip(self, sample_trades):
        trade = sample_trades[0]
        assert TradeInterval.from_dict(trade.to_dict()) == trade


class TestParsePayload:
    """Tests for building snapshots from payload documents."""

    def test_camel_case_keys(self, sample_payload):
        snapshot = parse_market_payload(sample_payload)

        assert snapshot.n_trades == 60
        assert snapshot.n_orderbook == 60
        assert snapshot.exchange == "upbit"
        assert snapshot.symbol == "KRW-BTC"

    def test_snake_case_keys(self, sample_payload):
        raw = {
            "trades_summary": sample_payload["tradesSummary"],
            "orderbook_summary": sample_payload["orderbookSummary"],
        }
        snapshot = parse_market_payload(raw)
        assert snapshot.n_trades == 60
        assert snapshot.exchange == ""

    def test_missing_series(self):
        snapshot = parse_market_payload({"exchange": "bithumb"})
        assert snapshot.n_trades == 0
        assert snapshot.n_orderbook == 0

    def test_rejects_non_mapping(self):
        with pytest.raises(ValueError, match="JSON object"):
            parse_market_payload([1, 2, 3])

    def test_rejects_non_list_series(self):
        with pytest.raises(ValueError, match="must be a list"):
            parse_market_payload({"tradesSummary": {"a": 1}})


class TestLoadPayload:
    """Tests for loading payload files."""

    def test_load(self, tmp_path, sample_payload):
        path = tmp_path / "payload.json"
        path.write_text(json.dumps(sample_payload))

        snapshot = load_market_payload(path)

        assert snapshot.n_trades == 60
        assert snapshot.trades[0].timestamp == sample_payload["tradesSummary"][0]["timestamp"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_market_payload(tmp_path / "absent.json")


class TestFrames:
    """Tests for DataFrame views of interval records."""

    def test_trades_frame(self, sample_trades):
        df = trades_to_frame(sample_trades)

        assert len(df) == 60
        assert df.index.name == "datetime"
        assert str(df.index.tz) == "UTC"
        assert df.index.is_monotonic_increasing
        assert {"close", "buy_ratio", "net_volume", "raw_timestamp"}.issubset(df.columns)
        assert df["close"].iloc[-1] == sample_trades[-1].ohlc.close

    def test_orderbook_frame(self, sample_orderbook):
        df = orderbook_to_frame(sample_orderbook)

        assert len(df) == 60
        assert (df["spread_mean"] > 0).all()
        assert df["bid_depth"].iloc[0] == sample_orderbook[0].avg_bid_depth

    def test_empty_frames(self):
        assert trades_to_frame([]).empty
        assert orderbook_to_frame([]).empty
        assert isinstance(trades_to_frame([]).index, pd.DatetimeIndex)
