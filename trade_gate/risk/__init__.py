"""
Risk Module
===========

- trade_ledger: 일일 / 종목별 거래 카운터
"""
from .trade_ledger import TradeLedger, DailyStats

__all__ = [
    'TradeLedger',
    'DailyStats',
]
