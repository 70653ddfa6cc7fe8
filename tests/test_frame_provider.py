# -*- coding: utf-8 -*-
"""
Frame Provider Tests
====================

FrameIndicatorProvider (pandas + talib) / PositionBook 테스트.
"""
import numpy as np
import pandas as pd
import pytest

from trade_gate.feeds import FrameIndicatorProvider, IndicatorPeriods, PositionBook, resample_ohlcv
from trade_gate.types import Direction, MARole, PositionDirection


def make_ohlcv(n=3 * 1440, start="2025-01-06", drift=0.00001, seed=7):
    """1분봉 합성 데이터 (완만한 상승 + 사인파)"""
    rng = np.random.default_rng(seed)
    idx = pd.date_range(start, periods=n, freq="1min")
    t = np.arange(n)
    close = 1.1 + drift * t + 0.002 * np.sin(t / 180.0) + rng.normal(0, 0.00005, n)
    open_ = np.concatenate([[close[0]], close[:-1]])
    high = np.maximum(open_, close) + 0.00005
    low = np.minimum(open_, close) - 0.00005
    volume = rng.integers(1, 100, n).astype(float)
    return pd.DataFrame({'open': open_, 'high': high, 'low': low, 'close': close, 'volume': volume}, index=idx)


@pytest.fixture
def provider():
    p = FrameIndicatorProvider(price_increments={"EURUSD": 0.0001})
    p.add_ohlcv("EURUSD", make_ohlcv(), timeframes=("15m", "1h"))
    return p


class TestResample:
    """resample_ohlcv()"""

    def test_hourly_aggregation(self):
        df = make_ohlcv(n=120)
        hourly = resample_ohlcv(df, "1h")
        assert len(hourly) == 2
        first = df.iloc[:60]
        assert hourly['open'].iloc[0] == first['open'].iloc[0]
        assert hourly['high'].iloc[0] == first['high'].max()
        assert hourly['low'].iloc[0] == first['low'].min()
        assert hourly['close'].iloc[0] == first['close'].iloc[-1]
        assert hourly['volume'].iloc[0] == pytest.approx(first['volume'].sum())
        assert hourly.index[0] == df.index[0]

    def test_invalid_timeframe(self):
        with pytest.raises(ValueError):
            resample_ohlcv(make_ohlcv(n=10), "7m")


class TestIndicators:
    """MA / RSI / series"""

    def test_latest_values_available(self, provider):
        for role in MARole:
            assert np.isfinite(provider.moving_average("EURUSD", "15m", role))
        osc = provider.oscillator("EURUSD", "15m")
        assert 0.0 <= osc <= 100.0

    def test_uptrend_ma_ordering(self):
        p = FrameIndicatorProvider()
        p.add_ohlcv("EURUSD", make_ohlcv(drift=0.0002), timeframes=("15m",))
        fast = p.moving_average("EURUSD", "15m", MARole.VERY_FAST)
        slow = p.moving_average("EURUSD", "15m", MARole.SLOW)
        assert fast > slow

    def test_warmup_is_nan(self, provider):
        periods = IndicatorPeriods()
        frame = provider.frames["EURUSD"]["15m"]
        assert np.isnan(frame['ma_slow'].iloc[periods.slow - 2])
        assert np.isfinite(frame['ma_slow'].iloc[periods.slow - 1])

    def test_series_chronological(self, provider):
        closes = provider.series("EURUSD", "15m", "close", 10)
        frame = provider.frames["EURUSD"]["15m"]
        assert len(closes) == 10
        np.testing.assert_allclose(closes, frame['close'].iloc[-10:].to_numpy())
        times = provider.bar_times("EURUSD", "15m", 10)
        assert times.is_monotonic_increasing
        assert times[-1] == provider.bar_time("EURUSD", "15m")

    def test_shift(self, provider):
        frame = provider.frames["EURUSD"]["1h"]
        assert provider.moving_average("EURUSD", "1h", MARole.MEDIUM, shift=1) == frame['ma_medium'].iloc[-2]
        assert provider.bar_time("EURUSD", "1h", shift=1) == frame.index[-2]

    def test_out_of_range_is_nan(self, provider):
        assert np.isnan(provider.moving_average("EURUSD", "15m", MARole.FAST, shift=10_000))
        assert pd.isna(provider.bar_time("EURUSD", "15m", shift=10_000))

    def test_unknown_symbol(self, provider):
        assert np.isnan(provider.moving_average("GBPUSD", "15m", MARole.FAST))
        assert np.isnan(provider.oscillator("GBPUSD", "15m"))
        assert len(provider.series("GBPUSD", "15m", "close", 10)) == 0
        assert len(provider.bar_times("GBPUSD", "15m", 10)) == 0
        assert pd.isna(provider.bar_time("GBPUSD", "15m"))

    def test_unknown_field(self, provider):
        assert len(provider.series("EURUSD", "15m", "vwap", 10)) == 0

    def test_price_increment(self, provider):
        assert provider.price_increment("EURUSD") == 0.0001
        assert provider.price_increment("USDJPY") == 0.0001  # default

    def test_rejects_non_datetime_index(self):
        p = FrameIndicatorProvider()
        df = make_ohlcv(n=10).reset_index(drop=True)
        with pytest.raises(ValueError):
            p.add_frame("EURUSD", "1m", df)


class TestReplayCursor:
    """set_time(): 마지막 완성 바 기준"""

    def test_cursor_uses_last_completed_bar(self, provider):
        provider.set_time(pd.Timestamp("2025-01-07 10:37"))
        assert provider.bar_time("EURUSD", "15m") == pd.Timestamp("2025-01-07 10:15")
        assert provider.bar_time("EURUSD", "1h") == pd.Timestamp("2025-01-07 09:00")

    def test_cursor_on_boundary(self, provider):
        provider.set_time(pd.Timestamp("2025-01-07 10:30"))
        assert provider.bar_time("EURUSD", "15m") == pd.Timestamp("2025-01-07 10:15")

    def test_series_stops_at_cursor(self, provider):
        provider.set_time(pd.Timestamp("2025-01-07 10:30"))
        times = provider.bar_times("EURUSD", "15m", 5)
        assert times[-1] == pd.Timestamp("2025-01-07 10:15")

    def test_before_data_is_nan(self, provider):
        provider.set_time(pd.Timestamp("2024-12-31"))
        assert np.isnan(provider.last_close("EURUSD", "15m"))
        assert len(provider.series("EURUSD", "15m", "close", 5)) == 0

    def test_clear_cursor(self, provider):
        provider.set_time(pd.Timestamp("2025-01-07 10:30"))
        provider.set_time(None)
        assert provider.bar_time("EURUSD", "15m") == provider.frames["EURUSD"]["15m"].index[-1]


class TestPositionBook:
    """메모리 포지션 장부"""

    def test_default_flat(self):
        book = PositionBook()
        assert book.position_direction("EURUSD") is PositionDirection.NONE
        assert book.realized_profit("EURUSD") == 0.0

    def test_fill_and_flip(self):
        book = PositionBook()
        assert book.apply_fill("EURUSD", Direction.BUY) is PositionDirection.LONG
        assert book.apply_fill("EURUSD", Direction.SELL) is PositionDirection.SHORT

    def test_flatten(self):
        book = PositionBook()
        book.apply_fill("EURUSD", Direction.BUY)
        book.flatten("EURUSD", profit=25.0)
        assert book.position_direction("EURUSD") is PositionDirection.NONE
        assert book.realized_profit("EURUSD") == 25.0
