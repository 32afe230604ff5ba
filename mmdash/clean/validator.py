"""
Input validation for MMDASH market snapshots.

Validators inspect the tabular view of trade and order book intervals
and report inconsistencies. Nothing is repaired or dropped here: the
analytics engines tolerate imperfect input, so validation only surfaces
what an operator should know about the upstream feed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from mmdash.ingest.payload_loader import orderbook_to_frame, trades_to_frame
from mmdash.utils.logging import get_logger
from mmdash.utils.types import MarketSnapshot

logger = get_logger("clean")


class ValidationResult:
    """Container for validation results."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None):
        self.is_valid = is_valid
        self.errors = errors or []

    def __bool__(self) -> bool:
        return self.is_valid

    def __repr__(self) -> str:
        if self.is_valid:
            return "ValidationResult(valid=True)"
        return f"ValidationResult(valid=False, errors={self.errors})"


@dataclass
class ValidationStats:
    """Summary of validating one snapshot."""
    n_trades: int = 0
    n_orderbook: int = 0
    trade_errors: list[str] = field(default_factory=list)
    orderbook_errors: list[str] = field(default_factory=list)

    @property
    def n_issues(self) -> int:
        return len(self.trade_errors) + len(self.orderbook_errors)

    @property
    def is_valid(self) -> bool:
        return self.n_issues == 0

    def to_dict(self) -> dict:
        return {
            "n_trades": self.n_trades,
            "n_orderbook": self.n_orderbook,
            "trade_errors": list(self.trade_errors),
            "orderbook_errors": list(self.orderbook_errors),
            "is_valid": self.is_valid,
        }


class DataValidator(ABC):
    """Abstract base class for data validators."""

    @abstractmethod
    def validate(self, df: pd.DataFrame) -> ValidationResult:
        """Validate DataFrame and return result."""
        pass


class PriceValidator(DataValidator):
    """Validates that price bars are positive and internally ordered."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def validate(self, df: pd.DataFrame) -> ValidationResult:
        errors = []
        cols = [f"{self.prefix}{c}" for c in ("open", "high", "low", "close")]

        for col in cols:
            if col not in df.columns:
                continue
            non_positive = int((df[col] <= 0).sum())
            if non_positive > 0:
                errors.append(f"{col}: {non_positive} non-positive values")

        high, low = cols[1], cols[2]
        if high in df.columns and low in df.columns:
            inverted = int((df[high] < df[low]).sum())
            if inverted > 0:
                errors.append(f"{high} below {low} in {inverted} rows")

        return ValidationResult(len(errors) == 0, errors)


class VolumeSplitValidator(DataValidator):
    """Validates that buy and sell volume add up to total volume."""

    def __init__(self, tolerance: float = 0.01):
        self.tolerance = tolerance

    def validate(self, df: pd.DataFrame) -> ValidationResult:
        errors = []
        required = {"buy_volume", "sell_volume", "volume"}
        if not required.issubset(df.columns) or df.empty:
            return ValidationResult(True)

        split = df["buy_volume"] + df["sell_volume"]
        scale = np.maximum(df["volume"].abs(), 1.0)
        mismatched = int(((split - df["volume"]).abs() > self.tolerance * scale).sum())
        if mismatched > 0:
            errors.append(f"buy + sell volume differs from volume in {mismatched} rows")

        if "net_volume" in df.columns:
            net_off = int(((df["buy_volume"] - df["sell_volume"] - df["net_volume"]).abs()
                           > self.tolerance * scale).sum())
            if net_off > 0:
                errors.append(f"net_volume inconsistent with buy/sell split in {net_off} rows")

        return ValidationResult(len(errors) == 0, errors)


class RangeValidator(DataValidator):
    """Validates that a column stays within closed bounds."""

    def __init__(self, column: str, lower: float, upper: float):
        self.column = column
        self.lower = lower
        self.upper = upper

    def validate(self, df: pd.DataFrame) -> ValidationResult:
        if self.column not in df.columns:
            return ValidationResult(True)
        series = df[self.column]
        out_of_range = int(((series < self.lower) | (series > self.upper)).sum())
        if out_of_range > 0:
            return ValidationResult(False, [
                f"{self.column}: {out_of_range} values outside [{self.lower}, {self.upper}]"
            ])
        return ValidationResult(True)


class TimestampValidator(DataValidator):
    """Validates timestamp ordering."""

    def validate(self, df: pd.DataFrame) -> ValidationResult:
        errors = []

        if not isinstance(df.index, pd.DatetimeIndex):
            errors.append("Index is not DatetimeIndex")
            return ValidationResult(False, errors)

        if df.index.isna().any():
            na_count = df.index.isna().sum()
            errors.append(f"Found {na_count} null timestamps")

        if not df.index.is_monotonic_increasing:
            errors.append("Timestamps not monotonically increasing")

        return ValidationResult(len(errors) == 0, errors)


class SnapshotValidator:
    """
    Runs trade and order book validators over a ``MarketSnapshot``.

    Parameters
    ----------
    volume_tolerance : float
        Relative tolerance for the buy/sell volume split check.
    """

    def __init__(self, volume_tolerance: float = 0.01):
        self.trade_validators: list[DataValidator] = [
            PriceValidator(),
            VolumeSplitValidator(tolerance=volume_tolerance),
            RangeValidator("buy_ratio", 0.0, 1.0),
            RangeValidator("volume", 0.0, np.inf),
            TimestampValidator(),
        ]
        self.orderbook_validators: list[DataValidator] = [
            PriceValidator(prefix="mid_"),
            RangeValidator("bid_depth", 0.0, np.inf),
            RangeValidator("ask_depth", 0.0, np.inf),
            RangeValidator("imbalance", -1.0, 1.0),
            TimestampValidator(),
        ]

    @staticmethod
    def _run(validators: list[DataValidator], df: pd.DataFrame) -> list[str]:
        errors = []
        for validator in validators:
            result = validator.validate(df)
            if not result.is_valid:
                errors.extend(result.errors)
        return errors

    def validate_trades(self, df: pd.DataFrame) -> ValidationResult:
        """Validate a trades frame from ``trades_to_frame``."""
        errors = self._run(self.trade_validators, df)
        return ValidationResult(len(errors) == 0, errors)

    def validate_orderbook(self, df: pd.DataFrame) -> ValidationResult:
        """Validate an order book frame from ``orderbook_to_frame``."""
        errors = self._run(self.orderbook_validators, df)
        return ValidationResult(len(errors) == 0, errors)

    def validate(self, snapshot: MarketSnapshot) -> ValidationStats:
        """
        Validate both series of a snapshot.

        Parameters
        ----------
        snapshot : MarketSnapshot
            Snapshot to check.

        Returns
        -------
        ValidationStats
            Collected issues; each issue is also logged as a warning.
        """
        trade_result = self.validate_trades(trades_to_frame(snapshot.trades))
        book_result = self.validate_orderbook(orderbook_to_frame(snapshot.orderbook))

        stats = ValidationStats(
            n_trades=snapshot.n_trades,
            n_orderbook=snapshot.n_orderbook,
            trade_errors=trade_result.errors,
            orderbook_errors=book_result.errors,
        )

        for error in stats.trade_errors:
            logger.warning(f"trades: {error}")
        for error in stats.orderbook_errors:
            logger.warning(f"orderbook: {error}")

        if stats.n_trades and stats.n_orderbook and stats.n_trades != stats.n_orderbook:
            logger.info(
                f"Series lengths differ ({stats.n_trades} trades, {stats.n_orderbook} orderbook); "
                f"paired metrics use the shorter"
            )

        return stats


def validate_snapshot(snapshot: MarketSnapshot) -> ValidationStats:
    """Convenience function to validate a snapshot with default settings."""
    return SnapshotValidator().validate(snapshot)
