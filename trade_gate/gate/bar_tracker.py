"""
Bar Tracking
============

tracking timeframe 기준 바 단위 거래 카운터.

새 바 (bar open time 변경) 감지 시 카운터 리셋.
카운터 증가는 record() 에서만 (검증은 읽기 전용).
"""
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from ..types import Direction


@dataclass
class BarTracking:
    """종목별 바 카운터"""
    last_bar_time: Optional[pd.Timestamp] = None
    trades_this_bar: int = 0
    buy_traded: bool = False
    sell_traded: bool = False

    def sync(self, bar_time: pd.Timestamp) -> bool:
        """
        현재 바 시각 반영

        Returns:
            새 바여서 카운터가 리셋되었는지
        """
        bar_time = pd.Timestamp(bar_time)
        if self.last_bar_time is not None and bar_time == self.last_bar_time:
            return False
        self.last_bar_time = bar_time
        self.trades_this_bar = 0
        self.buy_traded = False
        self.sell_traded = False
        return True

    def record(self, direction: Direction) -> None:
        self.trades_this_bar += 1
        if direction is Direction.BUY:
            self.buy_traded = True
        else:
            self.sell_traded = True

    def traded(self, direction: Direction) -> bool:
        return self.buy_traded if direction is Direction.BUY else self.sell_traded

    def exhausted(
        self,
        direction: Direction,
        max_per_bar: int,
        allow_same_direction: bool = False,
    ) -> Optional[str]:
        """
        바 한도 초과 여부

        Returns:
            거절 사유 (None이면 통과)
        """
        if self.trades_this_bar >= max_per_bar:
            return f"bar limit reached ({self.trades_this_bar}/{max_per_bar} trades this bar)"
        if not allow_same_direction and self.traded(direction):
            return f"{direction.name} already traded this bar"
        return None
