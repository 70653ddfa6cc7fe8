# -*- coding: utf-8 -*-
"""
Trade Ledger - Daily / Per-Instrument Trade Counters
====================================================

Validation Pipeline의 1차 자격 검사용 거래 카운터.

핵심 기능:
1. Daily trade count - 일일 전체 거래 수 (날짜 변경 시 리셋)
2. Per-instrument count - 종목별 일일 거래 수
3. Last traded bar - 종목별 마지막 진입 바
4. Realized profit - 실행 시스템이 보고한 종목별 실현 손익

사용법:
```python
ledger = TradeLedger()
ledger.record_trade("EURUSD", Direction.BUY, now, bar_time)
ledger.trades_today(now)          # 1
ledger.trades_for("EURUSD", now)  # 1
```
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import pandas as pd

from ..types import Direction


@dataclass
class DailyStats:
    """일일 통계"""
    date: date
    trades: int = 0
    per_symbol: Dict[str, int] = field(default_factory=dict)
    profit: float = 0.0


class TradeLedger:
    """거래 기록 장부 (단일 스레드 전용)"""

    def __init__(self):
        self.daily_stats: Optional[DailyStats] = None
        self.last_bar: Dict[str, pd.Timestamp] = {}
        self.realized_profit: Dict[str, float] = {}

    def _roll(self, now: pd.Timestamp) -> DailyStats:
        """날짜가 바뀌었으면 일일 통계 리셋"""
        today = pd.Timestamp(now).date()
        if self.daily_stats is None or self.daily_stats.date != today:
            self.daily_stats = DailyStats(date=today)
        return self.daily_stats

    def record_trade(
        self,
        symbol: str,
        direction: Direction,
        time: pd.Timestamp,
        bar_time: Optional[pd.Timestamp] = None,
        profit: float = 0.0,
    ) -> None:
        """진입 기록"""
        stats = self._roll(time)
        stats.trades += 1
        stats.per_symbol[symbol] = stats.per_symbol.get(symbol, 0) + 1
        if bar_time is not None:
            self.last_bar[symbol] = pd.Timestamp(bar_time)
        if profit:
            self.record_profit(symbol, profit, time)

    def record_profit(self, symbol: str, profit: float, time: Optional[pd.Timestamp] = None) -> None:
        """실현 손익 기록"""
        self.realized_profit[symbol] = self.realized_profit.get(symbol, 0.0) + profit
        if time is not None:
            self._roll(time).profit += profit

    def trades_today(self, now: pd.Timestamp) -> int:
        stats = self.daily_stats
        if stats is None or stats.date != pd.Timestamp(now).date():
            return 0
        return stats.trades

    def trades_for(self, symbol: str, now: pd.Timestamp) -> int:
        stats = self.daily_stats
        if stats is None or stats.date != pd.Timestamp(now).date():
            return 0
        return stats.per_symbol.get(symbol, 0)

    def last_trade_bar(self, symbol: str) -> Optional[pd.Timestamp]:
        return self.last_bar.get(symbol)

    def open_instruments(self, now: pd.Timestamp) -> List[str]:
        """오늘 거래한 종목 목록"""
        stats = self.daily_stats
        if stats is None or stats.date != pd.Timestamp(now).date():
            return []
        return sorted(s for s, n in stats.per_symbol.items() if n > 0)

    def format_status(self, now: pd.Timestamp) -> str:
        stats = self.daily_stats
        if stats is None or stats.date != pd.Timestamp(now).date():
            return f"Ledger ({pd.Timestamp(now).date()}): no trades"
        per = ", ".join(f"{s}={n}" for s, n in sorted(stats.per_symbol.items()))
        return f"Ledger ({stats.date}): {stats.trades} trades [{per}] PnL {stats.profit:+,.2f}"
