"""
Timeframe Utilities
===================

Provides timeframe-agnostic bar arithmetic:
- TimeframeSpec: Defines bar duration
- bar_open_time(): Floor a timestamp to its bar
- bars_between(): Bar age of a past timestamp

Usage:
    from trade_gate.utils.timeframe import bar_open_time, bars_between

    bar_open_time(pd.Timestamp("2025-01-01 10:37"), "15m")  # -> 10:30
    bars_between(signal_ts, now, "15m")                      # -> age in bars
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd


# Predefined timeframe mappings (minutes per bar)
TIMEFRAME_MINUTES: Dict[str, int] = {
    '1m': 1,
    '5m': 5,
    '15m': 15,
    '30m': 30,
    '1h': 60,
    '4h': 240,
    '1d': 1440,
    '1w': 10080,
}


@dataclass(frozen=True)
class TimeframeSpec:
    """Immutable timeframe specification."""
    name: str
    minutes: int

    @classmethod
    def from_string(cls, tf: str) -> TimeframeSpec:
        """
        Parse timeframe string like '15m', '1h', '1d'.

        Raises:
            ValueError: If timeframe is not recognized
        """
        tf_lower = tf.lower().strip()
        if tf_lower not in TIMEFRAME_MINUTES:
            valid = list(TIMEFRAME_MINUTES.keys())
            raise ValueError(f"Unknown timeframe: '{tf}'. Valid options: {valid}")
        return cls(name=tf_lower, minutes=TIMEFRAME_MINUTES[tf_lower])

    @property
    def delta(self) -> pd.Timedelta:
        return pd.Timedelta(minutes=self.minutes)

    def __str__(self) -> str:
        return self.name


def bar_open_time(ts: pd.Timestamp, timeframe: str) -> pd.Timestamp:
    """
    Open time of the bar containing ts.

    Weekly bars are anchored on Monday 00:00.
    """
    tf = TimeframeSpec.from_string(timeframe)
    ts = pd.Timestamp(ts)
    if tf.name == '1w':
        day = ts.normalize()
        return day - pd.Timedelta(days=day.weekday())
    return ts.floor(f"{tf.minutes}min")


def bars_between(start: Optional[pd.Timestamp], end: pd.Timestamp, timeframe: str) -> int:
    """
    Number of whole bars from start to end (0 if start is in the current bar).

    start=None or start in the future → 0.
    """
    if start is None:
        return 0
    tf = TimeframeSpec.from_string(timeframe)
    elapsed = bar_open_time(end, timeframe) - bar_open_time(start, timeframe)
    if elapsed <= pd.Timedelta(0):
        return 0
    return int(elapsed // tf.delta)
