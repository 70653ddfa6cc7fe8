# -*- coding: utf-8 -*-
"""
Frame Indicator Provider
========================

OHLCV DataFrame 기반 IndicatorProvider / ExecutionProvider 구현.
리플레이 / 테스트용.

- MA: EMA (talib.EMA), 기간은 IndicatorPeriods
- Oscillator: Wilder RSI (talib.RSI)
- Replay cursor: set_time(now) 이후 shift=0 은 now 시점 기준 마지막 완성 바
  (cursor 없으면 프레임의 마지막 바)

사용법:
```python
provider = FrameIndicatorProvider(price_increments={"EURUSD": 0.0001})
provider.add_ohlcv("EURUSD", df_1m, timeframes=("15m", "1h", "4h"))
provider.set_time(pd.Timestamp("2025-01-02 10:30"))
provider.moving_average("EURUSD", "15m", MARole.MEDIUM)
```
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional
import logging

import numpy as np
import pandas as pd
import talib

from ..types import Direction, MARole, PositionDirection
from ..utils.timeframe import TimeframeSpec

logger = logging.getLogger(__name__)


OHLCV_COLUMNS = ('open', 'high', 'low', 'close', 'volume')
MA_COLUMNS = {role: f"ma_{role.value}" for role in MARole}
DEFAULT_INCREMENT = 0.0001


@dataclass(frozen=True)
class IndicatorPeriods:
    """MA / RSI 기간"""
    very_fast: int = 5
    fast: int = 13
    medium: int = 34
    slow: int = 89
    rsi: int = 14

    def ma_period(self, role: MARole) -> int:
        return getattr(self, role.value)


def resample_ohlcv(df: pd.DataFrame, timeframe: str) -> pd.DataFrame:
    """하위 TF OHLCV → 상위 TF (bar open time 라벨)"""
    spec = TimeframeSpec.from_string(timeframe)
    rule = "W-MON" if timeframe == "1w" else f"{spec.minutes}min"
    kwargs = {'label': 'left', 'closed': 'left'}
    agg = {'open': 'first', 'high': 'max', 'low': 'min', 'close': 'last'}
    if 'volume' in df.columns:
        agg['volume'] = 'sum'
    out = df.resample(rule, **kwargs).agg(agg)
    return out.dropna(subset=['close'])


def attach_indicators(df: pd.DataFrame, periods: IndicatorPeriods) -> pd.DataFrame:
    """EMA 4개 + RSI 컬럼 추가"""
    out = df.copy()
    close = out['close'].astype(float).to_numpy()
    for role, column in MA_COLUMNS.items():
        out[column] = talib.EMA(close, timeperiod=periods.ma_period(role))
    out['oscillator'] = talib.RSI(close, timeperiod=periods.rsi)
    return out


class FrameIndicatorProvider:
    """
    (symbol, timeframe) → 지표 포함 DataFrame

    데이터 부족 / 범위 밖 shift 는 NaN (예외 X).
    """

    def __init__(
        self,
        periods: Optional[IndicatorPeriods] = None,
        price_increments: Optional[Dict[str, float]] = None,
    ):
        self.periods = periods or IndicatorPeriods()
        self.price_increments = dict(price_increments or {})
        self.frames: Dict[str, Dict[str, pd.DataFrame]] = {}
        self.cursor: Optional[pd.Timestamp] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def add_frame(self, symbol: str, timeframe: str, df: pd.DataFrame) -> None:
        """이미 해당 TF 인 OHLCV 프레임 등록"""
        TimeframeSpec.from_string(timeframe)
        if not isinstance(df.index, pd.DatetimeIndex):
            raise ValueError(f"Expected DatetimeIndex for {symbol} {timeframe}, got {type(df.index).__name__}")
        missing = [c for c in ('open', 'high', 'low', 'close') if c not in df.columns]
        if missing:
            raise ValueError(f"{symbol} {timeframe} frame missing columns: {missing}")
        frame = df.sort_index()
        if frame.index.tz is not None:
            frame = frame.tz_convert(None)
        self.frames.setdefault(symbol, {})[timeframe] = attach_indicators(frame, self.periods)
        logger.debug(f"[{symbol} {timeframe}] frame loaded: {len(frame)} bars")

    def add_ohlcv(self, symbol: str, df: pd.DataFrame, timeframes: Iterable[str]) -> None:
        """기본 TF 프레임을 timeframes 로 리샘플해서 등록"""
        for tf in timeframes:
            self.add_frame(symbol, tf, resample_ohlcv(df, tf))

    def set_time(self, now: Optional[pd.Timestamp]) -> None:
        self.cursor = None if now is None else pd.Timestamp(now)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _frame(self, symbol: str, timeframe: str) -> Optional[pd.DataFrame]:
        return self.frames.get(symbol, {}).get(timeframe)

    def _position(self, frame: pd.DataFrame, timeframe: str) -> int:
        """cursor 기준 마지막 완성 바 위치 (-1 = 없음)"""
        if self.cursor is None:
            return len(frame) - 1
        delta = TimeframeSpec.from_string(timeframe).delta
        return int(frame.index.searchsorted(self.cursor - delta, side='right')) - 1

    def _value(self, symbol: str, timeframe: str, column: str, shift: int) -> float:
        frame = self._frame(symbol, timeframe)
        if frame is None:
            return np.nan
        pos = self._position(frame, timeframe) - shift
        if pos < 0 or pos >= len(frame):
            return np.nan
        return float(frame[column].iat[pos])

    def _window(self, symbol: str, timeframe: str, count: int) -> Optional[pd.DataFrame]:
        frame = self._frame(symbol, timeframe)
        if frame is None or count <= 0:
            return None
        end = self._position(frame, timeframe) + 1
        if end <= 0:
            return None
        return frame.iloc[max(0, end - count):end]

    # ------------------------------------------------------------------
    # IndicatorProvider
    # ------------------------------------------------------------------

    def moving_average(self, symbol: str, timeframe: str, role: MARole, shift: int = 0) -> float:
        return self._value(symbol, timeframe, MA_COLUMNS[role], shift)

    def oscillator(self, symbol: str, timeframe: str, shift: int = 0) -> float:
        return self._value(symbol, timeframe, 'oscillator', shift)

    def series(self, symbol: str, timeframe: str, field: str, count: int) -> np.ndarray:
        window = self._window(symbol, timeframe, count)
        if window is None or field not in window.columns:
            return np.array([], dtype=float)
        return window[field].to_numpy(dtype=float)

    def bar_times(self, symbol: str, timeframe: str, count: int) -> pd.DatetimeIndex:
        window = self._window(symbol, timeframe, count)
        if window is None:
            return pd.DatetimeIndex([])
        return window.index

    def bar_time(self, symbol: str, timeframe: str, shift: int = 0) -> pd.Timestamp:
        frame = self._frame(symbol, timeframe)
        if frame is None:
            return pd.NaT
        pos = self._position(frame, timeframe) - shift
        if pos < 0 or pos >= len(frame):
            return pd.NaT
        return frame.index[pos]

    def price_increment(self, symbol: str) -> float:
        return self.price_increments.get(symbol, DEFAULT_INCREMENT)

    def last_close(self, symbol: str, timeframe: str) -> float:
        return self._value(symbol, timeframe, 'close', 0)


class PositionBook:
    """
    메모리 내 ExecutionProvider (종목별 순포지션 방향 + 실현 손익)
    """

    def __init__(self):
        self.positions: Dict[str, PositionDirection] = {}
        self.profits: Dict[str, float] = {}

    def position_direction(self, symbol: str) -> PositionDirection:
        return self.positions.get(symbol, PositionDirection.NONE)

    def realized_profit(self, symbol: str) -> float:
        return self.profits.get(symbol, 0.0)

    def apply_fill(self, symbol: str, direction: Direction) -> PositionDirection:
        """
        체결 반영: 반대 방향 체결이면 기존 포지션 청산 후 반전으로 처리
        """
        new = PositionDirection.LONG if direction is Direction.BUY else PositionDirection.SHORT
        old = self.position_direction(symbol)
        if old is not new:
            logger.debug(f"[{symbol}] position {old.value} -> {new.value}")
        self.positions[symbol] = new
        return new

    def flatten(self, symbol: str, profit: float = 0.0) -> None:
        self.positions[symbol] = PositionDirection.NONE
        self.profits[symbol] = self.profits.get(symbol, 0.0) + profit
