"""
Logging configuration for MMDASH.

All modules log under the ``mmdash`` logger namespace. Handlers installed
by ``setup_logging`` tag every record with the market currently being
analysed (``%(market)s``, ``exchange:symbol``) so log lines from several
runs sharing one file can be told apart.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from mmdash.utils.config import get_config, MMDashConfig

ROOT_LOGGER = "mmdash"
NO_MARKET = "-"


class MarketContextFilter(logging.Filter):
    """Injects the active market label into each record."""

    def __init__(self):
        super().__init__()
        self.market = NO_MARKET

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "market"):
            record.market = self.market
        return True


_market_filter = MarketContextFilter()


def set_market_context(exchange: str = "", symbol: str = "") -> None:
    """
    Set the market label attached to subsequent log records.

    Parameters
    ----------
    exchange : str
        Exchange name, e.g. ``upbit``.
    symbol : str
        Market symbol, e.g. ``KRW-BTC``.
    """
    parts = [p for p in (exchange, symbol) if p]
    _market_filter.market = ":".join(parts) if parts else NO_MARKET


def setup_logging(config: MMDashConfig | None = None, log_to_file: bool = True) -> logging.Logger:
    """
    Configure logging for MMDASH.

    Replaces (and closes) any handlers from a previous call.

    Parameters
    ----------
    config : MMDashConfig | None
        Configuration object. Uses global config if None.
    log_to_file : bool
        Attach a file handler at ``config.logging.file``.

    Returns
    -------
    logging.Logger
        The ``mmdash`` logger.
    """
    if config is None:
        config = get_config()

    log_config = config.logging
    level = getattr(logging, log_config.level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_config.format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        log_file = Path(log_config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(_market_filter)
        root_logger.addHandler(handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under the ``mmdash`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
