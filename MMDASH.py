"""
MMDASH: Market Monitoring Dashboard analytics

Runs the analytics engines over a saved market-data payload.
Pipeline: ingestion → validation → analysis → export.

Usage:
    python MMDASH.py --input payload.json
    python MMDASH.py --input payload.json --output-dir results --verbose
    python MMDASH.py --input payload.json --no-export
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

pd.set_option("display.float_format", lambda x: f"{x:.4f}")
pd.set_option("display.max_columns", None)
pd.set_option("display.width", None)

from mmdash.utils.config import MMDashConfig, load_config, get_config
from mmdash.utils.logging import setup_logging, get_logger, set_market_context
from mmdash.utils.types import MarketSnapshot

from mmdash.ingest.payload_loader import load_market_payload
from mmdash.clean.validator import SnapshotValidator, ValidationStats
from mmdash.microstructure.analysis import AnalysisReport, MarketAnalyzer
from mmdash.microstructure.regimes import describe_regime
from mmdash.risk.risk_metrics import RISK_LEVEL_LABELS, format_risk_metric
from mmdash.utils.export import ReportExporter


class PipelineStage:
    """Base class for pipeline stages."""

    def __init__(self, name: str, config: MMDashConfig):
        self.name = name
        self.config = config
        self.logger = get_logger(f"pipeline.{name}")

    def run(self, data: Any) -> Any:
        """Execute pipeline stage."""
        raise NotImplementedError


class IngestionStage(PipelineStage):
    """Payload loading stage."""

    def __init__(self, config: MMDashConfig, input_path: Path):
        super().__init__("ingestion", config)
        self.input_path = input_path

    def run(self, data: Any = None) -> MarketSnapshot:
        self.logger.info(f"Loading payload {self.input_path}")
        return load_market_payload(self.input_path)


class ValidationStage(PipelineStage):
    """Input validation stage."""

    def __init__(self, config: MMDashConfig):
        super().__init__("validation", config)
        self.validator = SnapshotValidator()

    def run(self, data: MarketSnapshot) -> ValidationStats:
        stats = self.validator.validate(data)
        self.logger.info(f"Validation found {stats.n_issues} issues")
        return stats


class AnalysisStage(PipelineStage):
    """Analytics engines stage."""

    def __init__(self, config: MMDashConfig):
        super().__init__("analysis", config)
        self.analyzer = MarketAnalyzer(config)

    def run(self, data: MarketSnapshot) -> AnalysisReport:
        return self.analyzer.analyze_snapshot(data)


class ExportStage(PipelineStage):
    """Report export stage."""

    def __init__(self, config: MMDashConfig, output_dir: Path | None = None):
        super().__init__("export", config)
        self.output_dir = output_dir or config.output.reports_path
        self.exporter = ReportExporter(config)

    def run(self, data: AnalysisReport) -> dict[str, Path]:
        exported = self.exporter.export_all(data, self.output_dir)
        self.logger.info(f"Exported {len(exported)} files")
        return exported


class AnalysisPipeline:
    """
    Pipeline orchestrator.

    Coordinates ingestion → validation → analysis → export for one payload.
    """

    def __init__(
        self,
        input_path: Path,
        config: MMDashConfig | None = None,
        output_dir: Path | None = None,
    ):
        self.config = config or get_config()
        self.logger = get_logger("pipeline")
        self.stages = {
            "ingestion": IngestionStage(self.config, input_path),
            "validation": ValidationStage(self.config),
            "analysis": AnalysisStage(self.config),
            "export": ExportStage(self.config, output_dir),
        }
        self.results: dict[str, Any] = {}

    def run(self, export: bool = True) -> dict[str, Any]:
        """
        Execute the pipeline.

        Parameters
        ----------
        export : bool
            Write the report and tables.

        Returns
        -------
        dict[str, Any]
            Stage outputs keyed by ``snapshot``, ``validation``, ``report``
            and ``exported``.
        """
        start_time = datetime.now()

        snapshot = self.stages["ingestion"].run()
        self.results["snapshot"] = snapshot
        set_market_context(snapshot.exchange, snapshot.symbol)

        if snapshot.n_trades == 0:
            self.logger.warning("Payload contains no trade intervals")
            return self.results

        self.results["validation"] = self.stages["validation"].run(snapshot)
        self.results["report"] = self.stages["analysis"].run(snapshot)

        if export:
            self.results["exported"] = self.stages["export"].run(self.results["report"])

        elapsed = (datetime.now() - start_time).total_seconds()
        self.logger.info(f"Pipeline completed in {elapsed:.2f}s")
        return self.results


def format_summary(report: AnalysisReport) -> str:
    """Plain-text summary of a report for the console."""
    regime = report.regime.current
    descriptor = describe_regime(regime.type)
    risk = report.risk

    lines = [
        f"Market: {report.exchange or '-'}:{report.symbol or '-'}",
        "",
        "Microstructure metrics",
        report.metrics.summary().to_string(index=False),
        "",
        f"Regime: {descriptor.label} ({regime.confidence:.0f}%) - {descriptor.description}",
        f"  trend strength {report.regime.metrics.trend_strength:.2f}, "
        f"volatility ratio {report.regime.metrics.volatility_ratio:.2f}, "
        f"momentum {format_risk_metric(report.regime.metrics.momentum, 'percentage')}",
        "",
        f"Risk: {RISK_LEVEL_LABELS[report.risk_level]}",
        f"  VaR95 {format_risk_metric(risk.var_95, 'percentage')}  "
        f"VaR99 {format_risk_metric(risk.var_99, 'percentage')}  "
        f"CVaR95 {format_risk_metric(risk.cvar_95, 'percentage')}",
        f"  Sharpe {format_risk_metric(risk.sharpe_ratio, 'ratio')}  "
        f"Sortino {format_risk_metric(risk.sortino_ratio, 'ratio')}  "
        f"Vol {format_risk_metric(risk.volatility, 'percentage')}",
        f"  Max DD -{risk.max_drawdown:.2f}% over {format_risk_metric(risk.max_drawdown_duration, 'number')} "
        f"intervals, current -{risk.current_drawdown:.2f}%",
        "",
        f"Flow: {report.flow.trend.value} ({report.flow.trend_strength:.0f}), "
        f"net {report.flow.net_flow:.4f}, {len(report.large_trades)} large intervals",
    ]
    return "\n".join(lines)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="MMDASH: Market Monitoring Dashboard analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python MMDASH.py --input payload.json
    python MMDASH.py --input payload.json --output-dir results
        """,
    )

    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Path to market-data JSON payload",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration YAML file",
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for reports",
    )

    parser.add_argument(
        "--no-export",
        action="store_true",
        help="Skip writing report files",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.config:
        config = load_config(args.config)
    else:
        config = load_config()

    if args.verbose:
        config.logging.level = "DEBUG"

    setup_logging(config)
    logger = get_logger("main")

    output_dir = Path(args.output_dir) if args.output_dir else None
    pipeline = AnalysisPipeline(Path(args.input), config=config, output_dir=output_dir)

    try:
        results = pipeline.run(export=not args.no_export)
    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        raise

    if "report" not in results:
        logger.warning("Pipeline completed but no data was processed")
        return 1

    print(format_summary(results["report"]))
    return 0


if __name__ == "__main__":
    sys.exit(main())
