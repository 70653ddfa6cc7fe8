# -*- coding: utf-8 -*-
"""
Entry Engine
============

종목별 상태 (current divergence, bar tracker, override)를 소유하고
호스트 이벤트 (tick / timer / trade)를 코어 컴포넌트에 연결.

이벤트 흐름 (한 콜백 안에서 순서 고정):
    on_tick:  extract swings → classify divergence → tracker update → override evaluate
    check_entry: direction permission → ValidationPipeline (4 gates)
    on_trade: bar tracker + ledger + override trade counter
    on_timer: 전 종목 divergence 갱신 + 주기적 상태 로그

단일 스레드 전용 (lock / async 없음).
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional
import logging

import pandas as pd

from .anchor.divergence import DivergenceClassifier, DivergenceSignal, DivergenceTracker, format_divergence
from .config.loader import EngineConfig, ValidationSettings, load_engine_config, load_settings
from .gate.validation import GATE_DIRECTION, EntryRequest, ValidationPipeline, ValidationResult
from .policy.direction_override import (
    DirectionOverrideStateMachine,
    DirectionPermission,
    DivergenceOverride,
)
from .providers import ExecutionProvider, IndicatorProvider
from .regime.alignment import AlignmentScorer, format_alignment
from .risk.trade_ledger import TradeLedger
from .types import Direction

logger = logging.getLogger(__name__)


@dataclass
class InstrumentState:
    """종목 1개의 소유 상태"""
    symbol: str
    settings: ValidationSettings
    tracker: DivergenceTracker
    classifier: DivergenceClassifier
    pipeline: ValidationPipeline
    override: DirectionOverrideStateMachine
    permission: Optional[DirectionPermission] = None
    last_tick: Optional[pd.Timestamp] = field(default=None)


class EntryEngine:
    """
    다이버전스 기반 진입 게이트 엔진

    사용법:
    ```python
    engine = EntryEngine(provider, book, load_settings, symbols=["EURUSD"])
    permission = engine.on_tick("EURUSD", now)
    result = engine.check_entry(EntryRequest("EURUSD", Direction.BUY, price, spread, now))
    if result.passed:
        ...  # 주문
        engine.on_trade("EURUSD", Direction.BUY, now)
    ```
    """

    def __init__(
        self,
        indicators: IndicatorProvider,
        execution: ExecutionProvider,
        settings_for: Callable[[str], ValidationSettings],
        symbols: Iterable[str] = (),
        config: Optional[EngineConfig] = None,
        ledger: Optional[TradeLedger] = None,
    ):
        self.indicators = indicators
        self.execution = execution
        self.settings_for = settings_for
        self.config = config or EngineConfig()
        self.ledger = ledger if ledger is not None else TradeLedger()
        self.shared_override = DivergenceOverride() if self.config.override_scope == "strategy" else None
        self.instruments: Dict[str, InstrumentState] = {}
        self.timer_count = 0

        for symbol in tuple(symbols) or self.config.symbols:
            self.add_instrument(symbol)

    @classmethod
    def from_config(
        cls,
        indicators: IndicatorProvider,
        execution: ExecutionProvider,
        config_dir: Optional[Path] = None,
    ) -> "EntryEngine":
        config = load_engine_config(config_dir)
        return cls(
            indicators,
            execution,
            lambda symbol: load_settings(symbol, config_dir),
            config=config,
        )

    # ------------------------------------------------------------------
    # Instruments
    # ------------------------------------------------------------------

    def add_instrument(self, symbol: str) -> InstrumentState:
        if symbol in self.instruments:
            return self.instruments[symbol]
        settings = self.settings_for(symbol)
        tracker = DivergenceTracker(settings.divergence)
        state = InstrumentState(
            symbol=symbol,
            settings=settings,
            tracker=tracker,
            classifier=DivergenceClassifier(self.indicators, settings.divergence),
            pipeline=ValidationPipeline(
                symbol,
                self.indicators,
                settings,
                ledger=self.ledger,
                divergence=tracker,
            ),
            override=DirectionOverrideStateMachine(self.shared_override, settings.override, symbol),
        )
        self.instruments[symbol] = state
        logger.info(f"[{symbol}] instrument registered (override scope: {self.config.override_scope})")
        return state

    def state(self, symbol: str) -> InstrumentState:
        try:
            return self.instruments[symbol]
        except KeyError:
            raise KeyError(f"Unknown instrument: {symbol}") from None

    @property
    def active_symbols(self) -> frozenset:
        return frozenset(self.instruments)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_tick(self, symbol: str, now: pd.Timestamp) -> DirectionPermission:
        """extract → classify → tracker update → override evaluate"""
        state = self.state(symbol)
        now = pd.Timestamp(now)
        tf = state.settings.divergence_timeframe

        state.classifier.refresh(symbol, tf, state.tracker, now)
        signal = state.tracker.current
        if signal.exists and state.tracker.is_expired(now, tf):
            signal = DivergenceSignal.none()

        position = self.execution.position_direction(symbol)
        state.permission = state.override.evaluate(signal, position, now)
        state.last_tick = now
        return state.permission

    def check_entry(self, request: EntryRequest) -> ValidationResult:
        """방향 허용 여부 → 4단계 검증"""
        state = self.state(request.symbol)
        permission = state.permission
        if permission is None or state.last_tick != pd.Timestamp(request.now):
            permission = self.on_tick(request.symbol, request.now)

        if not permission.allows(request.direction):
            reason = f"{request.direction.name} not allowed ({permission.source}: {permission.reason})"
            logger.info(f"[{request.symbol}] entry rejected at {GATE_DIRECTION}: {reason}")
            return ValidationResult.reject(GATE_DIRECTION, reason, source=permission.source)

        return state.pipeline.validate(request)

    def on_trade(
        self,
        symbol: str,
        direction: Direction,
        time: pd.Timestamp,
        profit: Optional[float] = None,
    ) -> None:
        """
        체결 반영

        profit=None 이면 실행 시스템의 누적 실현 손익과 장부의 차이를 반영.
        """
        state = self.state(symbol)
        if profit is None:
            reported = self.execution.realized_profit(symbol)
            profit = reported - self.ledger.realized_profit.get(symbol, 0.0)
        state.pipeline.record_trade(direction, time, profit)
        state.override.record_trade(direction)
        logger.info(f"[{symbol}] {direction.name} trade recorded at {time}")

    def on_timer(self, now: pd.Timestamp) -> None:
        """전 종목 갱신 + N회마다 상태 로그"""
        self.timer_count += 1
        for symbol in self.instruments:
            self.on_tick(symbol, now)

        every = self.config.status_every
        if every and self.timer_count % every == 0:
            for symbol in self.instruments:
                logger.info(f"[{symbol}] {self.status(symbol, now)}")
            logger.info(self.ledger.format_status(now))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self, symbol: str, now: Optional[pd.Timestamp] = None) -> str:
        """운영자용 요약 (읽기 전용)"""
        state = self.state(symbol)
        now = pd.Timestamp(now) if now is not None else (state.last_tick or pd.Timestamp.now())
        s = state.settings
        alignment = AlignmentScorer(self.indicators, s.alignment).score(symbol, s.entry_timeframe)
        return " | ".join([
            format_divergence(state.tracker, now, s.divergence_timeframe),
            format_alignment(alignment),
            state.override.status_text(),
            state.pipeline.format_status(),
        ])
