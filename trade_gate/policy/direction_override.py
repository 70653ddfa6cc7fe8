# -*- coding: utf-8 -*-
"""
Divergence Direction Override
=============================

강한 다이버전스가 나오면 "기존 방향으로만 추가 진입" 규칙을 일시 중단하고
다이버전스 방향 단일 진입만 강제.

상태:
- Inactive: 일반 규칙 (LONG 보유 → BUY만, SHORT 보유 → SELL만, 없음 → 둘 다)
- Active(direction, reason, since, trade_count): 강제 방향만 허용

전이:
- Inactive → Active:
    score ≥ activation_score (60)
    AND (포지션 없음 OR 포지션이 다이버전스 방향과 반대)
    AND 신호 timestamp > 저장된 activation_time (stale 신호 재발동 방지)
- Active → Inactive:
    실행 시스템이 보고한 실제 포지션 방향이 직전 관측값에서 바뀌었고,
    그 새 방향이 강제 방향과 일치할 때만 (override 적용 ≠ override 완료)

자동 만료 없음: 방향이 끝내 안 바뀌면 계속 Active.
"""
from dataclasses import dataclass
from typing import Optional
import logging

import pandas as pd

from ..anchor.divergence import DivergenceSignal
from ..types import Direction, PositionDirection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideConfig:
    """Override 설정"""
    activation_score: float = 60.0
    notice_every: int = 5  # 활성화 시 + N번째 거래마다 상태 알림


@dataclass
class DivergenceOverride:
    """Override 상태 (프로세스 시작 시 inactive)"""
    active: bool = False
    allow_buy: bool = True
    allow_sell: bool = True
    reason: str = ""
    activation_time: Optional[pd.Timestamp] = None  # 발동시킨 다이버전스의 timestamp
    activated_at: Optional[pd.Timestamp] = None     # 발동 시각 (host clock)
    trade_count: int = 0

    @property
    def forced_direction(self) -> Optional[Direction]:
        if not self.active:
            return None
        return Direction.BUY if self.allow_buy else Direction.SELL


@dataclass(frozen=True)
class DirectionPermission:
    """실행 시스템에 노출되는 (allow_buy, allow_sell) 쌍"""
    allow_buy: bool
    allow_sell: bool
    source: str  # 'override' | 'normal'
    reason: str = ""

    def allows(self, direction: Direction) -> bool:
        return self.allow_buy if direction is Direction.BUY else self.allow_sell


def normal_permission(position: PositionDirection) -> DirectionPermission:
    """기본 규칙: 보유 방향으로만 추가 진입"""
    if position is PositionDirection.LONG:
        return DirectionPermission(True, False, 'normal', "long position held")
    if position is PositionDirection.SHORT:
        return DirectionPermission(False, True, 'normal', "short position held")
    return DirectionPermission(True, True, 'normal', "flat")


class DirectionOverrideStateMachine:
    """
    Override 상태 머신

    사용법:
    1. 매 업데이트마다 evaluate(signal, position, now) → DirectionPermission
    2. 체결 시 record_trade(direction)

    override 객체는 외부 소유 (종목별 또는 전략 전체 공유).
    """

    def __init__(
        self,
        override: Optional[DivergenceOverride] = None,
        config: Optional[OverrideConfig] = None,
        symbol: str = "",
    ):
        self.override = override if override is not None else DivergenceOverride()
        self.config = config or OverrideConfig()
        self.symbol = symbol
        # 종목별 마지막 관측 포지션 방향 (override를 공유해도 관측은 종목 단위)
        self.last_known_direction: Optional[PositionDirection] = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def observe_position(self, current: PositionDirection, now: Optional[pd.Timestamp] = None) -> bool:
        """
        실제 포지션 방향 변화 관측

        Returns:
            이번 관측으로 override가 해제되었는지
        """
        ov = self.override
        previous = self.last_known_direction
        self.last_known_direction = current

        # 첫 관측은 baseline만 기록
        if previous is None or previous is current:
            return False

        logger.debug(f"[{self.symbol}] position direction {previous.value} -> {current.value}")

        if ov.active and current.trade_direction is ov.forced_direction:
            self.clear(f"direction flipped to {current.value}")
            return True
        return False

    def should_activate(self, signal: DivergenceSignal, position: PositionDirection) -> bool:
        ov = self.override
        if ov.active or not signal.exists:
            return False
        if signal.score < self.config.activation_score:
            return False
        if position is not PositionDirection.NONE and not signal.direction.contradicts(position):
            return False
        if signal.timestamp is None:
            return False
        if ov.activation_time is not None and signal.timestamp <= ov.activation_time:
            return False
        return True

    def activate(self, signal: DivergenceSignal, position: PositionDirection, now: pd.Timestamp) -> None:
        ov = self.override
        forced = signal.direction.implied_direction
        ov.active = True
        ov.allow_buy = forced is Direction.BUY
        ov.allow_sell = forced is Direction.SELL
        ov.activation_time = signal.timestamp
        ov.activated_at = pd.Timestamp(now)
        ov.trade_count = 0
        held = "flat" if position is PositionDirection.NONE else f"{position.value} held"
        ov.reason = f"{signal.label} divergence score {signal.score:.0f} ({held})"
        self._notice("activated")

    def clear(self, reason: str = "cleared") -> None:
        ov = self.override
        if not ov.active:
            return
        logger.info(
            f"[{self.symbol}] Direction override cleared: {reason} "
            f"(trades under override: {ov.trade_count})"
        )
        ov.active = False
        ov.allow_buy = True
        ov.allow_sell = True
        ov.reason = ""
        ov.trade_count = 0
        # activation_time 유지: 같은/이전 신호로 재발동 금지

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def evaluate(
        self,
        signal: DivergenceSignal,
        position: PositionDirection,
        now: pd.Timestamp,
    ) -> DirectionPermission:
        """
        허용 방향 결정

        순서: 포지션 변화 관측 → 발동 체크 → Active면 강제 방향, 아니면 일반 규칙
        """
        self.observe_position(position, now)

        if self.should_activate(signal, position):
            self.activate(signal, position, now)

        ov = self.override
        if ov.active:
            return DirectionPermission(ov.allow_buy, ov.allow_sell, 'override', ov.reason)
        return normal_permission(position)

    def record_trade(self, direction: Direction) -> None:
        """override 중 체결된 거래 카운트 (강제 방향 거래만)"""
        ov = self.override
        if not ov.active or direction is not ov.forced_direction:
            return
        ov.trade_count += 1
        if ov.trade_count % self.config.notice_every == 0:
            self._notice(f"{ov.trade_count} trades")

    def _notice(self, event: str) -> None:
        logger.info(f"[{self.symbol}] {self.status_text()} ({event})")

    def status_text(self) -> str:
        ov = self.override
        if not ov.active:
            return "Override: inactive"
        return (
            f"Override: ACTIVE force {ov.forced_direction.name} since {ov.activated_at} "
            f"- {ov.reason}, trades={ov.trade_count}"
        )
