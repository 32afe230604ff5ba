"""
Unit tests for configuration loading and logging setup.

Run tests with: pytest tests/test_config.py -v
After installing package with: pip install -e .
"""

import logging

import pytest
import yaml

from mmdash.utils.config import (
    MMDashConfig,
    ThresholdConfig,
    get_config,
    load_config,
    set_config,
)
from mmdash.utils.logging import get_logger, set_market_context, setup_logging


class TestLoadConfig:
    """Tests for YAML configuration loading."""

    def test_default_file_matches_builtin(self, config):
        assert config == MMDashConfig()

    def test_defaults(self, config):
        assert config.metrics.lambda_window == 5
        assert config.metrics.vpin_window == 10
        assert config.metrics.thresholds["dvr"] == ThresholdConfig(0.5, 0.2, inverse=True)
        assert config.regime.sma_slow == 15
        assert config.risk.trading_periods == 365
        assert config.flow.large_trade_threshold == 2.0

    def test_partial_override(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump({
            "metrics": {"vpin_window": 20, "thresholds": {"vpin": {"danger": 0.8}}},
            "risk": {"trading_periods": 252},
        }))

        config = load_config(path)

        assert config.metrics.vpin_window == 20
        assert config.metrics.lambda_window == 5
        assert config.metrics.thresholds["vpin"] == ThresholdConfig(0.4, 0.8)
        assert config.metrics.thresholds["dvr"].inverse
        assert config.risk.trading_periods == 252
        assert config.regime == MMDashConfig().regime

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == MMDashConfig()

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"risk": {"bogus": 1}}))
        with pytest.raises(TypeError):
            load_config(path)

    def test_reports_path(self, config):
        assert config.output.reports_path.parts[-2:] == ("output", "reports")


class TestGlobalConfig:
    """Tests for the global configuration accessor."""

    def test_set_and_get(self):
        original = get_config()
        custom = MMDashConfig()
        custom.risk.risk_free_rate = 0.0
        try:
            set_config(custom)
            assert get_config().risk.risk_free_rate == 0.0
        finally:
            set_config(original)


class TestLogging:
    """Tests for logger setup."""

    def test_namespaced_logger(self):
        assert get_logger("risk").name == "mmdash.risk"

    def test_setup_console_only(self):
        config = MMDashConfig()
        config.logging.level = "DEBUG"

        logger = setup_logging(config, log_to_file=False)

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_setup_with_file(self, tmp_path):
        config = MMDashConfig()
        config.logging.file = str(tmp_path / "logs" / "run.log")
        set_market_context()

        logger = setup_logging(config)
        get_logger("test").info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert "[-] hello" in (tmp_path / "logs" / "run.log").read_text()
        setup_logging(config, log_to_file=False)

    def test_market_context(self, tmp_path):
        config = MMDashConfig()
        config.logging.file = str(tmp_path / "run.log")

        logger = setup_logging(config)
        set_market_context("upbit", "KRW-BTC")
        try:
            get_logger("test").info("tagged")
            for handler in logger.handlers:
                handler.flush()
        finally:
            set_market_context()
            setup_logging(config, log_to_file=False)

        assert "[upbit:KRW-BTC] tagged" in (tmp_path / "run.log").read_text()
