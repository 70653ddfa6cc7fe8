"""
Utils Package
=============

Utility modules for trade_gate.
"""
from .timeframe import (
    TimeframeSpec,
    TIMEFRAME_MINUTES,
    bar_open_time,
    bars_between,
)
from .logging_config import setup_logging, JSONFormatter

__all__ = [
    'TimeframeSpec',
    'TIMEFRAME_MINUTES',
    'bar_open_time',
    'bars_between',
    'setup_logging',
    'JSONFormatter',
]
