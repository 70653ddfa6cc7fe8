# -*- coding: utf-8 -*-
"""
Validation Pipeline
===================

종목별 진입 검증 4단계. 순서대로 평가하고 첫 실패에서 중단.

1. bar_limit: tracking timeframe 새 바 감지 시 카운터 리셋, 바/방향 한도 체크
2. eligibility: 자본 / 일일 한도 / 종목 한도 / active set / 스프레드 / 같은 진입 바
   (NaN 스프레드, NaN 자본은 거절)
3. ranging: 추세 강도 NEUTRAL 거절, 정렬 신뢰도가 조정 임계치를 초과하지 못하면
   거절 (같은 값 포함), 가격이 medium MA 반대편이면 거절
4. entry_sensitivity: 셋업 × 방향별 임계치 vs 종합 점수

카운터 증가는 record_trade() 에서만. 같은 바에서 validate()를 반복 호출해도
결과와 카운터가 변하지 않음.

사용법:
```python
pipeline = ValidationPipeline("EURUSD", indicators, settings, ledger=ledger, divergence=tracker)
result = pipeline.validate(EntryRequest("EURUSD", Direction.BUY, 1.1012, 8, now))
if result.passed:
    ...  # 주문
    pipeline.record_trade(Direction.BUY, now)
```
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional
import logging

import numpy as np
import pandas as pd

from ..anchor.divergence import DivergenceTracker
from ..config.loader import ValidationSettings, validate_settings
from ..providers import IndicatorProvider
from ..regime.alignment import AlignmentScorer, read_snapshot
from ..regime.trend_strength import classify_trend_strength
from ..risk.trade_ledger import TradeLedger
from ..types import Direction, TrendStrength
from ..utils.timeframe import bar_open_time
from .bar_tracker import BarTracking
from .entry_score import EntrySensitivity

logger = logging.getLogger(__name__)


GATE_BAR_LIMIT = "bar_limit"
GATE_ELIGIBILITY = "eligibility"
GATE_RANGING = "ranging"
GATE_ENTRY = "entry_sensitivity"
GATE_DIRECTION = "direction"
GATE_PASSED = "passed"


@dataclass(frozen=True)
class EntryRequest:
    """진입 검증 요청"""
    symbol: str
    direction: Direction
    price: float
    spread: float  # price increments
    now: pd.Timestamp
    capital: Optional[float] = None
    active_symbols: Optional[FrozenSet[str]] = None  # None = 제한 없음


@dataclass
class ValidationResult:
    """검증 결과"""
    passed: bool
    gate: str
    reason: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def reject(cls, gate: str, reason: str, **details) -> "ValidationResult":
        return cls(False, gate, reason, details)

    def __str__(self) -> str:
        if self.passed:
            return "PASS"
        return f"REJECT [{self.gate}] {self.reason}"


class ValidationPipeline:
    """
    종목 1개의 검증 파이프라인

    BarTracking은 파이프라인 소유, TradeLedger는 엔진 전체 공유 가능.
    """

    def __init__(
        self,
        symbol: str,
        indicators: IndicatorProvider,
        settings: ValidationSettings,
        ledger: Optional[TradeLedger] = None,
        divergence: Optional[DivergenceTracker] = None,
        bars: Optional[BarTracking] = None,
    ):
        self.symbol = symbol
        self.indicators = indicators
        self.settings = validate_settings(settings)
        self.ledger = ledger if ledger is not None else TradeLedger()
        self.divergence = divergence
        self.bars = bars if bars is not None else BarTracking()
        self.alignment = AlignmentScorer(indicators, settings.alignment)
        self.entry = EntrySensitivity(indicators, settings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _bar_time(self, timeframe: str, now: pd.Timestamp) -> pd.Timestamp:
        """현재 바 open time (provider 값이 없으면 now 기준 계산)"""
        bar_time = self.indicators.bar_time(self.symbol, timeframe, 0)
        if bar_time is None or pd.isna(bar_time):
            return bar_open_time(now, timeframe)
        return pd.Timestamp(bar_time)

    def _reject(self, gate: str, reason: str, **details) -> ValidationResult:
        logger.info(f"[{self.symbol}] entry rejected at {gate}: {reason}")
        return ValidationResult.reject(gate, reason, **details)

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def check_bar_limit(self, request: EntryRequest) -> Optional[ValidationResult]:
        s = self.settings
        self.bars.sync(self._bar_time(s.tracking_timeframe, request.now))
        reason = self.bars.exhausted(request.direction, s.max_trades_per_bar, s.allow_same_direction_per_bar)
        if reason:
            return self._reject(GATE_BAR_LIMIT, reason, trades_this_bar=self.bars.trades_this_bar)
        return None

    def check_eligibility(self, request: EntryRequest) -> Optional[ValidationResult]:
        s = self.settings
        now = request.now

        if request.capital is not None and not np.isfinite(request.capital):
            return self._reject(GATE_ELIGIBILITY, "capital unavailable (NaN)")
        if request.capital is not None:
            others = [sym for sym in self.ledger.open_instruments(now) if sym != self.symbol]
            if others and request.capital < s.min_capital_for_additional:
                return self._reject(
                    GATE_ELIGIBILITY,
                    f"capital {request.capital:,.2f} < {s.min_capital_for_additional:,.2f} "
                    f"for additional instrument (trading {', '.join(others)})",
                )

        today = self.ledger.trades_today(now)
        if today >= s.max_daily_trades:
            return self._reject(GATE_ELIGIBILITY, f"daily trade limit reached ({today}/{s.max_daily_trades})")

        mine = self.ledger.trades_for(self.symbol, now)
        if mine >= s.max_trades_per_instrument:
            return self._reject(
                GATE_ELIGIBILITY,
                f"instrument trade limit reached ({mine}/{s.max_trades_per_instrument})",
            )

        if request.active_symbols is not None and self.symbol not in request.active_symbols:
            return self._reject(GATE_ELIGIBILITY, "instrument not in active set")

        if not np.isfinite(request.spread):
            return self._reject(GATE_ELIGIBILITY, "spread unavailable (NaN)")
        if request.spread > s.max_spread:
            return self._reject(GATE_ELIGIBILITY, f"spread {request.spread:g} > {s.max_spread:g}")

        if s.one_trade_per_entry_bar:
            entry_bar = self._bar_time(s.entry_timeframe, now)
            if self.ledger.last_trade_bar(self.symbol) == entry_bar:
                return self._reject(GATE_ELIGIBILITY, f"entry bar {entry_bar} already traded")

        return None

    def check_ranging(self, request: EntryRequest) -> Optional[ValidationResult]:
        s = self.settings
        tf = s.entry_timeframe
        snapshot = read_snapshot(self.indicators, self.symbol, tf, 0)

        trend = classify_trend_strength(
            snapshot,
            request.price,
            ranging_threshold_pct=s.ranging_threshold_pct,
            trending_threshold_pct=s.trending_threshold_pct,
            strong_trend_pct=s.strong_trend_pct,
        )
        if trend.strength is TrendStrength.NEUTRAL:
            return self._reject(GATE_RANGING, f"ranging market (MA gap {trend.gap_pct:.3f}%)")

        alignment = self.alignment.score(self.symbol, tf)
        confidence = alignment.confidence(request.direction)
        threshold = s.confidence_threshold(trend.strength)
        if not confidence > threshold:
            return self._reject(
                GATE_RANGING,
                f"{request.direction.name} alignment {confidence:.1f} <= {threshold:.0f} ({trend.strength.value} trend)",
                confidence=confidence,
                threshold=threshold,
            )

        medium = snapshot.medium
        if request.direction is Direction.BUY and not request.price > medium:
            return self._reject(GATE_RANGING, f"price {request.price} not above medium MA {medium:.5f}")
        if request.direction is Direction.SELL and not request.price < medium:
            return self._reject(GATE_RANGING, f"price {request.price} not below medium MA {medium:.5f}")

        return None

    def check_entry(self, request: EntryRequest) -> Optional[ValidationResult]:
        snapshot = read_snapshot(self.indicators, self.symbol, self.settings.entry_timeframe, 0)
        score = self.entry.evaluate(
            self.symbol,
            request.direction,
            request.price,
            snapshot,
            self.divergence,
            request.now,
        )
        if not score.passed:
            return self._reject(GATE_ENTRY, score.summary(), score=score.total, threshold=score.threshold)
        return None

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------

    def validate(self, request: EntryRequest) -> ValidationResult:
        """4단계 검증 (첫 실패에서 중단)"""
        if request.price is None or np.isnan(request.price) or request.price <= 0:
            return self._reject(GATE_ELIGIBILITY, "invalid price")

        for gate in (self.check_bar_limit, self.check_eligibility, self.check_ranging, self.check_entry):
            rejection = gate(request)
            if rejection is not None:
                return rejection

        logger.debug(f"[{self.symbol}] {request.direction.name} entry validated")
        return ValidationResult(True, GATE_PASSED)

    def record_trade(self, direction: Direction, time: pd.Timestamp, profit: float = 0.0) -> None:
        """체결 반영 (바 카운터 + 장부)"""
        s = self.settings
        self.bars.sync(self._bar_time(s.tracking_timeframe, time))
        self.bars.record(direction)
        self.ledger.record_trade(
            self.symbol,
            direction,
            time,
            bar_time=self._bar_time(s.entry_timeframe, time),
            profit=profit,
        )

    def format_status(self) -> str:
        b = self.bars
        return (
            f"Bar {b.last_bar_time}: {b.trades_this_bar}/{self.settings.max_trades_per_bar} "
            f"(buy={'Y' if b.buy_traded else 'N'}, sell={'Y' if b.sell_traded else 'N'})"
        )
