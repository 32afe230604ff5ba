"""
End-to-end tests: payload file → snapshot → report → exported files.

Run tests with: pytest tests/test_integration.py -v
After installing package with: pip install -e .
"""

import json

import pandas as pd
import pytest

from mmdash.utils.config import MMDashConfig
from mmdash.utils.types import RegimeType, RiskLevel
from mmdash.microstructure.analysis import AnalysisReport, MarketAnalyzer, analyze_market
from mmdash.utils.export import ReportExporter, export_report, sanitize_output_path

import MMDASH


@pytest.fixture
def payload_file(tmp_path, sample_payload):
    path = tmp_path / "payload.json"
    path.write_text(json.dumps(sample_payload))
    return path


class TestMarketAnalyzer:
    """Tests for running all engines together."""

    def test_report_contents(self, sample_trades, sample_orderbook, config):
        report = analyze_market(sample_trades, sample_orderbook, config)

        assert isinstance(report, AnalysisReport)
        assert len(report.metrics.tii) == 60
        assert len(report.regime_timeline) == 60 - config.regime.timeline_window
        assert len(report.cvd) == 60
        assert len(report.drawdown) == 60
        assert report.regime.current.type in RegimeType
        assert report.risk_level in RiskLevel

    def test_snapshot_metadata(self, sample_snapshot):
        report = MarketAnalyzer(MMDashConfig()).analyze_snapshot(sample_snapshot)

        assert report.exchange == "upbit"
        assert report.symbol == "KRW-BTC"

    def test_frames(self, sample_snapshot):
        report = MarketAnalyzer(MMDashConfig()).analyze_snapshot(sample_snapshot)

        assert list(report.cvd_frame().columns) == ["timestamp", "delta", "cvd"]
        assert "drawdown" in report.drawdown_frame().columns
        assert len(report.timeline_frame()) == len(report.regime_timeline)
        assert len(report.metrics.summary()) == 8


class TestExport:
    """Tests for writing reports."""

    def test_json_round_trip(self, tmp_path, sample_snapshot):
        report = MarketAnalyzer(MMDashConfig()).analyze_snapshot(sample_snapshot)

        path = export_report(report, tmp_path / "out" / "report.json")
        data = json.loads(path.read_text())

        assert data["exchange"] == "upbit"
        assert data["regime"]["current"]["type"] == report.regime.current.type.value
        assert data["risk"]["var_95"] == pytest.approx(report.risk.var_95)
        assert len(data["metrics"]["vpin"]["history"]) == len(report.metrics.vpin)

    def test_export_all(self, tmp_path, sample_snapshot):
        report = MarketAnalyzer(MMDashConfig()).analyze_snapshot(sample_snapshot)

        exported = ReportExporter(MMDashConfig()).export_all(report, tmp_path)

        assert set(exported) == {"report", "metric_summary", "drawdown", "cvd", "regime_timeline"}
        assert exported["report"].name == "upbit_KRW-BTC_report.json"
        summary = pd.read_csv(exported["metric_summary"])
        assert list(summary["metric"]) == [
            "dvr", "tii", "kyle_lambda", "amihud", "fpi", "vpin", "was", "lsi",
        ]

    def test_empty_tables_skipped(self, tmp_path):
        exported = ReportExporter(MMDashConfig()).export_tables(AnalysisReport(), tmp_path)
        assert set(exported) == {"metric_summary"}

    def test_path_traversal_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            sanitize_output_path("../escape.json")
        with pytest.raises(ValueError):
            sanitize_output_path("../escape.json", base_dir=tmp_path)
        assert sanitize_output_path("a/b.json", base_dir=tmp_path) == (tmp_path / "a" / "b.json").resolve()


class TestCommandLine:
    """Tests for the command-line entry point."""

    def test_main(self, tmp_path, payload_file, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        out_dir = tmp_path / "reports"

        code = MMDASH.main(["--input", str(payload_file), "--output-dir", str(out_dir)])

        assert code == 0
        assert (out_dir / "upbit_KRW-BTC_report.json").exists()
        assert "Microstructure metrics" in capsys.readouterr().out

    def test_no_export(self, tmp_path, payload_file, monkeypatch):
        monkeypatch.chdir(tmp_path)
        out_dir = tmp_path / "reports"

        code = MMDASH.main(["--input", str(payload_file), "--output-dir", str(out_dir), "--no-export"])

        assert code == 0
        assert not out_dir.exists()

    def test_empty_payload(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"tradesSummary": [], "orderbookSummary": []}))

        assert MMDASH.main(["--input", str(path), "--no-export"]) == 1

    def test_missing_payload(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(FileNotFoundError):
            MMDASH.main(["--input", str(tmp_path / "absent.json")])

    def test_pipeline_results(self, payload_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        results = MMDASH.AnalysisPipeline(payload_file, config=MMDashConfig()).run(export=False)

        assert results["snapshot"].n_trades == 60
        assert results["validation"].is_valid
        assert "exported" not in results

    def test_summary_text(self, sample_snapshot):
        report = MarketAnalyzer(MMDashConfig()).analyze_snapshot(sample_snapshot)
        text = MMDASH.format_summary(report)

        assert text.startswith("Market: upbit:KRW-BTC")
        assert "VaR95" in text
