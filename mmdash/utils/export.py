"""
Report export module for MMDASH.

Writes analysis reports as JSON and their tabular parts (metric
summary, drawdown, CVD, regime timeline) as CSV.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from mmdash.utils.config import MMDashConfig, get_config
from mmdash.utils.logging import get_logger

if TYPE_CHECKING:
    from mmdash.microstructure.analysis import AnalysisReport

logger = get_logger("export")


def sanitize_output_path(output_path: Path | str, base_dir: Path | None = None) -> Path:
    """
    Sanitize output path to prevent path traversal.

    Parameters
    ----------
    output_path : Path | str
        User-provided output path.
    base_dir : Path | None
        Expected base directory for outputs. If provided, the resolved
        path must lie within it.

    Returns
    -------
    Path
        Sanitized output path.

    Raises
    ------
    ValueError
        If the output path would escape base_dir or contains traversal
        segments.
    """
    output_path = Path(output_path)

    if base_dir is not None:
        base_dir = Path(base_dir).resolve()

        if output_path.is_absolute():
            resolved = output_path.resolve()
        else:
            resolved = (base_dir / output_path).resolve()

        try:
            resolved.relative_to(base_dir)
        except ValueError:
            raise ValueError(
                f"Security error: Output path '{output_path}' would escape "
                f"base directory '{base_dir}'"
            )

        return resolved

    if ".." in output_path.parts:
        raise ValueError(
            f"Security error: Path traversal detected in output path: '{output_path}'"
        )

    return output_path


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        return float(obj)
    if isinstance(obj, (pd.Timestamp, datetime)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _slug(text: str) -> str:
    cleaned = "".join(c if c.isalnum() or c in "-_" else "_" for c in text)
    return cleaned.strip("_") or "market"


class ReportExporter:
    """
    Exports analysis reports to the configured reports directory.

    Parameters
    ----------
    config : MMDashConfig | None
        Configuration object. Uses global config if None.
    """

    def __init__(self, config: MMDashConfig | None = None):
        self.config = config or get_config()

    def report_name(self, report: AnalysisReport) -> str:
        parts = [p for p in (report.exchange, report.symbol) if p]
        return _slug("_".join(parts)) if parts else "market"

    def export_json(self, report: AnalysisReport, output_path: Path | str) -> Path:
        """
        Write the full report as JSON.

        Parameters
        ----------
        report : AnalysisReport
            Report to write.
        output_path : Path | str
            Destination file.

        Returns
        -------
        Path
            Written file.
        """
        output_path = sanitize_output_path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            json.dump(report.to_dict(), f, indent=2, default=_json_default)

        logger.info(f"Wrote report to {output_path}")
        return output_path

    def export_tables(self, report: AnalysisReport, output_dir: Path | str) -> dict[str, Path]:
        """
        Write the tabular parts of a report as CSV files.

        Empty tables are skipped.

        Returns
        -------
        dict[str, Path]
            Table name to written file.
        """
        output_dir = sanitize_output_path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        prefix = self.report_name(report)

        tables = {
            "metric_summary": report.metrics.summary(),
            "drawdown": report.drawdown_frame(),
            "cvd": report.cvd_frame(),
            "regime_timeline": report.timeline_frame(),
        }

        exported = {}
        for name, df in tables.items():
            if df.empty:
                continue
            path = output_dir / f"{prefix}_{name}.csv"
            df.to_csv(path, index=False)
            exported[name] = path

        logger.info(f"Exported {len(exported)} tables to {output_dir}")
        return exported

    def export_all(self, report: AnalysisReport, output_dir: Path | str | None = None) -> dict[str, Path]:
        """Write JSON report and CSV tables into ``output_dir``."""
        output_dir = Path(output_dir) if output_dir is not None else self.config.output.reports_path
        exported = {"report": self.export_json(report, output_dir / f"{self.report_name(report)}_report.json")}
        exported.update(self.export_tables(report, output_dir))
        return exported


def export_report(report: AnalysisReport, output_path: Path | str) -> Path:
    """Convenience function to write a report as JSON."""
    return ReportExporter().export_json(report, output_path)
