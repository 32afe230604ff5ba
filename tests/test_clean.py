"""
Unit tests for snapshot validation.

Run tests with: pytest tests/test_clean.py -v
After installing package with: pip install -e .
"""

import numpy as np
import pandas as pd
import pytest

from mmdash.utils.types import MarketSnapshot
from mmdash.ingest.payload_loader import orderbook_to_frame, trades_to_frame
from mmdash.clean.validator import (
    PriceValidator,
    RangeValidator,
    SnapshotValidator,
    TimestampValidator,
    ValidationResult,
    VolumeSplitValidator,
    validate_snapshot,
)


@pytest.fixture
def trades_df(sample_trades):
    return trades_to_frame(sample_trades)


class TestPriceValidator:
    """Tests for price bar checks."""

    def test_valid(self, trades_df):
        assert PriceValidator().validate(trades_df).is_valid

    def test_non_positive(self, trades_df):
        df = trades_df.copy()
        df.iloc[3, df.columns.get_loc("close")] = 0.0

        result = PriceValidator().validate(df)

        assert not result.is_valid
        assert "close: 1 non-positive values" in result.errors

    def test_inverted_bar(self, trades_df):
        df = trades_df.copy()
        df.iloc[0, df.columns.get_loc("high")] = df["low"].iloc[0] - 1

        result = PriceValidator().validate(df)

        assert any("high below low" in e for e in result.errors)

    def test_prefix(self, sample_orderbook):
        df = orderbook_to_frame(sample_orderbook)
        assert PriceValidator(prefix="mid_").validate(df).is_valid


class TestVolumeSplitValidator:
    """Tests for buy/sell volume consistency."""

    def test_valid(self, trades_df):
        assert VolumeSplitValidator().validate(trades_df).is_valid

    def test_mismatch(self, trades_df):
        df = trades_df.copy()
        df.iloc[0, df.columns.get_loc("buy_volume")] += 50

        result = VolumeSplitValidator().validate(df)

        assert not result.is_valid
        assert len(result.errors) == 2

    def test_missing_columns(self):
        assert VolumeSplitValidator().validate(pd.DataFrame({"volume": [1.0]})).is_valid


class TestRangeValidator:
    """Tests for bounded columns."""

    def test_out_of_range(self):
        df = pd.DataFrame({"buy_ratio": [0.2, 1.4, -0.1]})
        result = RangeValidator("buy_ratio", 0.0, 1.0).validate(df)

        assert not result
        assert "2 values outside" in result.errors[0]

    def test_unbounded_upper(self):
        df = pd.DataFrame({"volume": [0.0, 1e12]})
        assert RangeValidator("volume", 0.0, np.inf).validate(df)

    def test_absent_column(self):
        assert RangeValidator("x", 0, 1).validate(pd.DataFrame()).is_valid


class TestTimestampValidator:
    """Tests for timestamp ordering."""

    def test_sorted(self, trades_df):
        assert TimestampValidator().validate(trades_df).is_valid

    def test_unsorted(self, trades_df):
        result = TimestampValidator().validate(trades_df.iloc[::-1])
        assert "Timestamps not monotonically increasing" in result.errors

    def test_non_datetime_index(self):
        result = TimestampValidator().validate(pd.DataFrame({"a": [1]}))
        assert result.errors == ["Index is not DatetimeIndex"]


class TestSnapshotValidator:
    """Tests for whole-snapshot validation."""

    def test_sample_is_valid(self, sample_snapshot):
        stats = validate_snapshot(sample_snapshot)

        assert stats.is_valid
        assert stats.n_trades == 60
        assert stats.n_orderbook == 60
        assert stats.to_dict()["is_valid"] is True

    def test_reports_without_repairing(self, sample_snapshot, book_factory):
        bad_book = book_factory(imbalance=1.5, timestamp=sample_snapshot.orderbook[-1].timestamp)
        orderbook = sample_snapshot.orderbook[:-1] + [bad_book]
        snapshot = MarketSnapshot(trades=sample_snapshot.trades, orderbook=orderbook)

        stats = SnapshotValidator().validate(snapshot)

        assert not stats.is_valid
        assert stats.n_issues == 1
        assert "imbalance" in stats.orderbook_errors[0]
        assert snapshot.orderbook[-1].avg_imbalance == 1.5

    def test_issues_logged(self, sample_snapshot, trade_factory, caplog):
        trades = sample_snapshot.trades + [trade_factory(-5.0)]
        snapshot = MarketSnapshot(trades=trades, orderbook=sample_snapshot.orderbook)

        with caplog.at_level("WARNING", logger="mmdash"):
            stats = validate_snapshot(snapshot)

        assert stats.trade_errors
        assert any("trades:" in r.message for r in caplog.records)

    def test_empty_snapshot(self):
        stats = validate_snapshot(MarketSnapshot())
        assert stats.is_valid
        assert stats.n_trades == 0


class TestValidationResult:
    """Tests for the result container."""

    def test_truthiness(self):
        assert ValidationResult(True)
        assert not ValidationResult(False, ["x"])

    def test_repr(self):
        assert repr(ValidationResult(False, ["x"])) == "ValidationResult(valid=False, errors=['x'])"
