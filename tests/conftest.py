# -*- coding: utf-8 -*-
"""
Shared fixtures
===============

StubIndicators: 테스트가 MA / 오실레이터 / 바 시각을 직접 지정하는 IndicatorProvider.
"""
from typing import Dict, Tuple

import numpy as np
import pandas as pd
import pytest

from trade_gate.config import ValidationSettings
from trade_gate.regime import MASnapshot
from trade_gate.types import MARole


SYMBOL = "EURUSD"
INCREMENT = 0.0001
NOW = pd.Timestamp("2025-01-06 10:07")
BAR = pd.Timestamp("2025-01-06 10:00")

# 강한 상승 정렬 (gap: 8 / 20 / 40 increments)
BULL_MAS = MASnapshot(very_fast=1.1008, fast=1.1000, medium=1.0980, slow=1.0940)
BULL_PRICE = 1.1010


class StubIndicators:
    """dict 기반 IndicatorProvider"""

    def __init__(self, increment: float = INCREMENT):
        self.increment = increment
        self.mas: Dict[Tuple[str, str, int], MASnapshot] = {}
        self.data: Dict[Tuple[str, str, str], np.ndarray] = {}
        self.times: Dict[Tuple[str, str], pd.DatetimeIndex] = {}
        self.bars: Dict[Tuple[str, str], pd.Timestamp] = {}

    # setup helpers
    def set_mas(self, symbol, timeframe, snapshot, shift=0):
        self.mas[(symbol, timeframe, shift)] = snapshot

    def set_series(self, symbol, timeframe, field, values):
        self.data[(symbol, timeframe, field)] = np.asarray(values, dtype=float)

    def set_times(self, symbol, timeframe, times):
        self.times[(symbol, timeframe)] = pd.DatetimeIndex(times)

    def set_bar(self, symbol, timeframe, bar_time):
        self.bars[(symbol, timeframe)] = pd.Timestamp(bar_time)

    # IndicatorProvider
    def moving_average(self, symbol, timeframe, role: MARole, shift=0):
        snap = self.mas.get((symbol, timeframe, shift))
        return np.nan if snap is None else getattr(snap, role.value)

    def oscillator(self, symbol, timeframe, shift=0):
        values = self.data.get((symbol, timeframe, 'oscillator'))
        if values is None or shift >= len(values):
            return np.nan
        return float(values[-1 - shift])

    def series(self, symbol, timeframe, field, count):
        values = self.data.get((symbol, timeframe, field))
        if values is None:
            return np.array([], dtype=float)
        return values[-count:]

    def bar_times(self, symbol, timeframe, count):
        times = self.times.get((symbol, timeframe))
        if times is None:
            return pd.DatetimeIndex([])
        return times[-count:]

    def bar_time(self, symbol, timeframe, shift=0):
        return self.bars.get((symbol, timeframe), pd.NaT)

    def price_increment(self, symbol):
        return self.increment


def install_bullish_market(stub: StubIndicators, symbol: str = SYMBOL, settings: ValidationSettings = None):
    """
    모든 게이트를 BUY 로 통과하는 시장 상태

    - MA 강한 상승 정렬 (STRONG trend, buy alignment 87.5)
    - RSI 40 → 50 상승 (momentum 56, band 50)
    - composite ≈ 68.4 ≥ regular_buy 65
    """
    settings = settings or ValidationSettings()
    for tf in set(settings.mtf_timeframes) | {settings.entry_timeframe}:
        stub.set_mas(symbol, tf, BULL_MAS)
        stub.set_series(symbol, tf, 'oscillator', [40, 42, 44, 46, 48, 50])
        stub.set_series(symbol, tf, 'close', [1.1004, 1.1006, 1.1008, 1.1009, 1.1011, BULL_PRICE])
    stub.set_bar(symbol, settings.tracking_timeframe, BAR)
    stub.set_bar(symbol, settings.entry_timeframe, BAR)
    return stub


@pytest.fixture
def stub():
    return StubIndicators()


@pytest.fixture
def bullish_stub():
    return install_bullish_market(StubIndicators())


@pytest.fixture
def settings():
    return ValidationSettings(symbol=SYMBOL)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TRADE_GATE_MAX_SPREAD", "TRADE_GATE_MAX_DAILY_TRADES", "TRADE_GATE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
