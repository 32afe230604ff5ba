"""
Input validation module for MMDASH.

Reports inconsistencies in trade and order book intervals.
"""

from mmdash.clean.validator import (
    ValidationResult,
    ValidationStats,
    DataValidator,
    PriceValidator,
    VolumeSplitValidator,
    RangeValidator,
    TimestampValidator,
    SnapshotValidator,
    validate_snapshot,
)

__all__ = [
    "ValidationResult",
    "ValidationStats",
    "DataValidator",
    "PriceValidator",
    "VolumeSplitValidator",
    "RangeValidator",
    "TimestampValidator",
    "SnapshotValidator",
    "validate_snapshot",
]
