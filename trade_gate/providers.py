# -*- coding: utf-8 -*-
"""
Collaborator Interfaces
=======================

코어가 소비하는 외부 협력자 인터페이스.

- IndicatorProvider: 이동평균 / 오실레이터 / OHLCV 시계열
- ExecutionProvider: 현재 순포지션 방향 + 실현 손익

규약:
- shift=0 이 가장 최근 바, shift=1 이 직전 바
- series()는 시간순 (oldest first) 배열 반환
- 데이터 부족은 NaN / 빈 배열로 표현 (예외 X)
"""
from typing import Protocol

import numpy as np
import pandas as pd

from .types import MARole, PositionDirection


class IndicatorProvider(Protocol):

    def moving_average(self, symbol: str, timeframe: str, role: MARole, shift: int = 0) -> float:
        ...

    def oscillator(self, symbol: str, timeframe: str, shift: int = 0) -> float:
        ...

    def series(self, symbol: str, timeframe: str, field: str, count: int) -> np.ndarray:
        ...

    def bar_times(self, symbol: str, timeframe: str, count: int) -> pd.DatetimeIndex:
        ...

    def bar_time(self, symbol: str, timeframe: str, shift: int = 0) -> pd.Timestamp:
        ...

    def price_increment(self, symbol: str) -> float:
        ...


class ExecutionProvider(Protocol):

    def position_direction(self, symbol: str) -> PositionDirection:
        ...

    def realized_profit(self, symbol: str) -> float:
        ...
