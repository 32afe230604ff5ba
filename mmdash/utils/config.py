"""
Configuration management for MMDASH analytics.

Provides centralized configuration loading, validation, and access patterns.
Engine thresholds and windows default to the fixed dashboard constants; a
YAML file may override any of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class ThresholdConfig:
    """Warning/danger boundaries for one metric."""
    warning: float
    danger: float
    inverse: bool = False


def _default_thresholds() -> dict[str, ThresholdConfig]:
    return {
        "dvr": ThresholdConfig(warning=0.5, danger=0.2, inverse=True),
        "tii": ThresholdConfig(warning=50.0, danger=20.0, inverse=True),
        "kyle_lambda": ThresholdConfig(warning=1.0, danger=2.0),
        "amihud": ThresholdConfig(warning=0.5, danger=1.0),
        "fpi": ThresholdConfig(warning=0.3, danger=0.5),
        "vpin": ThresholdConfig(warning=0.4, danger=0.6),
        "was": ThresholdConfig(warning=0.7, danger=0.85),
        "lsi": ThresholdConfig(warning=1.5, danger=2.0),
    }


@dataclass
class MetricsConfig:
    """Microstructure metric parameters."""
    lambda_window: int = 5
    vpin_window: int = 10
    was_volume_multiple: float = 3.0
    thresholds: dict[str, ThresholdConfig] = field(default_factory=_default_thresholds)


@dataclass
class RegimeConfig:
    """Regime classifier parameters."""
    sma_fast: int = 5
    sma_slow: int = 15
    rsi_period: int = 14
    atr_period: int = 14
    momentum_period: int = 5
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    volatility_threshold: float = 1.5
    consolidation_threshold: float = 0.3
    trend_threshold: float = 0.1
    timeline_window: int = 15


@dataclass
class RiskConfig:
    """Risk engine parameters."""
    risk_free_rate: float = 0.05
    trading_periods: int = 365
    z_95: float = 1.645
    z_99: float = 2.326
    cvar_tail: float = 0.05


@dataclass
class FlowConfig:
    """Order flow parameters."""
    large_trade_threshold: float = 2.0
    large_trade_limit: int = 10
    bullish_ratio: float = 0.55
    bearish_ratio: float = 0.45


@dataclass
class OutputConfig:
    """Output directory configuration."""
    base_path: str = "output"
    reports: str = "reports"

    @property
    def reports_path(self) -> Path:
        return Path(self.base_path) / self.reports


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - [%(market)s] %(message)s"
    file: str = "logs/mmdash.log"


@dataclass
class MMDashConfig:
    """
    Master configuration container for MMDASH.

    Aggregates all sub-configurations into a single access point.
    """
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    regime: RegimeConfig = field(default_factory=RegimeConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    flow: FlowConfig = field(default_factory=FlowConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _parse_thresholds(data: dict[str, Any]) -> dict[str, ThresholdConfig]:
    """Merge threshold overrides onto the defaults."""
    thresholds = _default_thresholds()
    for name, values in data.items():
        base = thresholds.get(name)
        if base is None:
            thresholds[name] = ThresholdConfig(**values)
        else:
            thresholds[name] = ThresholdConfig(
                warning=values.get("warning", base.warning),
                danger=values.get("danger", base.danger),
                inverse=values.get("inverse", base.inverse),
            )
    return thresholds


def load_config(config_path: str | Path | None = None) -> MMDashConfig:
    """
    Load configuration from YAML file.

    Parameters
    ----------
    config_path : str | Path | None
        Path to configuration file. If None, uses ``config/default.yaml``
        at the project root, falling back to built-in defaults when that
        file is absent.

    Returns
    -------
    MMDashConfig
        Loaded configuration object.

    Raises
    ------
    FileNotFoundError
        If an explicitly specified config file does not exist.
    """
    explicit = config_path is not None
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = project_root / "config" / "default.yaml"

    config_path = Path(config_path)

    if not config_path.exists():
        if explicit:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        return MMDashConfig()

    with open(config_path) as f:
        raw_config = yaml.safe_load(f) or {}

    config = MMDashConfig()

    if "metrics" in raw_config:
        metrics = dict(raw_config["metrics"])
        thresholds = metrics.pop("thresholds", {})
        config.metrics = MetricsConfig(
            thresholds=_parse_thresholds(thresholds or {}),
            **metrics,
        )

    if "regime" in raw_config:
        config.regime = RegimeConfig(**raw_config["regime"])

    if "risk" in raw_config:
        config.risk = RiskConfig(**raw_config["risk"])

    if "flow" in raw_config:
        config.flow = FlowConfig(**raw_config["flow"])

    if "output" in raw_config:
        config.output = OutputConfig(**raw_config["output"])

    if "logging" in raw_config:
        config.logging = LoggingConfig(**raw_config["logging"])

    return config


_global_config: MMDashConfig | None = None


def get_config() -> MMDashConfig:
    """
    Get global configuration instance.

    Loads default configuration on first access.

    Returns
    -------
    MMDashConfig
        Global configuration object.
    """
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: MMDashConfig) -> None:
    """
    Set global configuration instance.

    Parameters
    ----------
    config : MMDashConfig
        Configuration to set as global.
    """
    global _global_config
    _global_config = config
