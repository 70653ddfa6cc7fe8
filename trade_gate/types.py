# -*- coding: utf-8 -*-
"""
Core Types
==========

방향/분류 값은 문자열 대신 닫힌 Enum으로만 다룬다.
"""
from enum import Enum


class Direction(Enum):
    """진입 요청 방향"""
    BUY = "buy"
    SELL = "sell"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.BUY else -1

    @property
    def opposite(self) -> "Direction":
        return Direction.SELL if self is Direction.BUY else Direction.BUY


class PositionDirection(Enum):
    """실행 시스템이 보고하는 현재 순포지션 방향"""
    NONE = "none"
    LONG = "long"
    SHORT = "short"

    @property
    def trade_direction(self):
        """LONG → BUY, SHORT → SELL, NONE → None"""
        if self is PositionDirection.LONG:
            return Direction.BUY
        if self is PositionDirection.SHORT:
            return Direction.SELL
        return None


class SwingKind(Enum):
    PEAK = "peak"
    TROUGH = "trough"


class DivergenceDirection(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"

    @property
    def implied_direction(self) -> Direction:
        return Direction.BUY if self is DivergenceDirection.BULLISH else Direction.SELL

    def supports(self, direction: Direction) -> bool:
        return self.implied_direction is direction

    def contradicts(self, position: PositionDirection) -> bool:
        """기존 포지션이 다이버전스 방향과 반대인지"""
        held = position.trade_direction
        return held is not None and held is not self.implied_direction


class DivergenceCategory(Enum):
    REGULAR = "regular"  # 반전 신호
    HIDDEN = "hidden"    # 추세 지속 신호


class TrendStrength(Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NEUTRAL = "neutral"


class AlignmentLabel(Enum):
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    NEUTRAL = "neutral"
    SELL = "sell"
    STRONG_SELL = "strong_sell"


class SetupType(Enum):
    PULLBACK = "pullback"
    REGULAR = "regular"


class MARole(Enum):
    """이동평균 역할 (기간이 짧은 순)"""
    VERY_FAST = "very_fast"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"
