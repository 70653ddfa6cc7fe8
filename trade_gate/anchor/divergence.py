# -*- coding: utf-8 -*-
"""
Price / Oscillator Divergence
=============================

스윙 포인트 기반 가격-오실레이터 다이버전스 감지 + 시간 감쇠 점수.

Types:
- Regular Bearish (REG↓): 가격 Higher High + OSC Lower High → 하락 반전
- Regular Bullish (REG↑): 가격 Lower Low + OSC Higher Low → 상승 반전
- Hidden Bearish (HID↓): 가격 Lower High + OSC Higher High → 하락 지속
- Hidden Bullish (HID↑): 가격 Higher Low + OSC Lower Low → 상승 지속

평가 순서: REG↓ → REG↑ → (둘 다 없을 때만) HID↓ → HID↑
한 번의 평가에서 신호는 최대 1개.

Current divergence (종목당 1개):
- 같은 방향 + 가격 레벨이 tolerance 이내 → confirmation 누적
- 그 외 → 교체
- 저장된 score 자체는 감쇠하지 않음. 방향 점수 요청 시에만 나이 감쇠 적용.
"""
from dataclasses import dataclass, replace
from typing import Optional, Tuple
import logging

import numpy as np
import pandas as pd

from ..providers import IndicatorProvider
from ..types import Direction, DivergenceCategory, DivergenceDirection, SwingKind
from ..utils.timeframe import bars_between
from .swing import SwingPoints, extract_swing_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DivergenceConfig:
    """다이버전스 설정"""
    # Swing extraction
    swing_radius: int = 3
    lookback_bars: int = 100
    strength_points: float = 10.0  # strength 1단계 = 10 price increments
    max_swing_strength: int = 5

    # Scoring
    max_score: float = 100.0
    regular_score_multiplier: float = 5.0  # OSC % 변화 × multiplier
    hidden_score: float = 40.0             # regular보다 낮은 고정 점수
    strength_bands: Tuple[float, float] = (40.0, 70.0)  # (→2, →3)

    # Accumulator
    price_tolerance_pct: float = 0.05

    # Age decay: (최대 바 나이, multiplier)
    age_buckets: Tuple[Tuple[int, float], ...] = (
        (3, 1.0),
        (10, 0.85),
        (20, 0.65),
        (40, 0.40),
    )
    very_old_multiplier: float = 0.20
    max_age_bars: int = 60

    neutral_score: float = 50.0


@dataclass
class DivergenceSignal:
    """다이버전스 신호 (current divergence로도 사용)"""
    exists: bool = False
    direction: Optional[DivergenceDirection] = None
    category: Optional[DivergenceCategory] = None
    timestamp: Optional[pd.Timestamp] = None  # 정의 스윙의 시각
    price: float = 0.0
    oscillator: float = 0.0
    strength: int = 0  # 1-3
    confirmations: int = 0
    score: float = 0.0  # 0 - max_score
    first_detected: Optional[pd.Timestamp] = None

    @classmethod
    def none(cls) -> "DivergenceSignal":
        return cls()

    @property
    def label(self) -> str:
        if not self.exists:
            return "NONE"
        prefix = "REG" if self.category is DivergenceCategory.REGULAR else "HID"
        arrow = "↑" if self.direction is DivergenceDirection.BULLISH else "↓"
        return f"{prefix}{arrow}"


def _strength_from_score(score: float, config: DivergenceConfig) -> int:
    mid, high = config.strength_bands
    if score >= high:
        return 3
    if score >= mid:
        return 2
    return 1


def _clamp_score(score: float, config: DivergenceConfig) -> float:
    return float(np.clip(score, 0.0, config.max_score))


def _make_signal(latest, direction, category, score, config) -> DivergenceSignal:
    score = _clamp_score(score, config)
    return DivergenceSignal(
        exists=True,
        direction=direction,
        category=category,
        timestamp=latest.timestamp,
        price=latest.price,
        oscillator=latest.oscillator,
        strength=_strength_from_score(score, config),
        confirmations=1,
        score=score,
    )


def _osc_pct_change(previous: float, latest: float) -> float:
    """OSC 변화율 (%), 기준값이 0 근처면 1로 바닥 처리"""
    return (latest - previous) / max(abs(previous), 1.0) * 100.0


def classify_divergence(
    swings: SwingPoints,
    config: Optional[DivergenceConfig] = None,
) -> DivergenceSignal:
    """
    최근 2개 고점 / 2개 저점으로 다이버전스 분류

    Returns:
        DivergenceSignal (없으면 DivergenceSignal.none())
    """
    config = config or DivergenceConfig()
    peaks = swings.latest_pair(SwingKind.PEAK)
    troughs = swings.latest_pair(SwingKind.TROUGH)

    # 1. Regular Bearish: 가격 HH + OSC LH
    if peaks is not None:
        latest, previous = peaks
        if latest.price > previous.price and latest.oscillator < previous.oscillator:
            drop = -_osc_pct_change(previous.oscillator, latest.oscillator)
            score = min(config.max_score, drop * config.regular_score_multiplier)
            return _make_signal(latest, DivergenceDirection.BEARISH, DivergenceCategory.REGULAR, score, config)

    # 2. Regular Bullish: 가격 LL + OSC HL
    if troughs is not None:
        latest, previous = troughs
        if latest.price < previous.price and latest.oscillator > previous.oscillator:
            rise = _osc_pct_change(previous.oscillator, latest.oscillator)
            score = min(config.max_score, rise * config.regular_score_multiplier)
            return _make_signal(latest, DivergenceDirection.BULLISH, DivergenceCategory.REGULAR, score, config)

    # 3. Hidden (regular 없을 때만)
    if peaks is not None:
        latest, previous = peaks
        if latest.price < previous.price and latest.oscillator > previous.oscillator:
            return _make_signal(latest, DivergenceDirection.BEARISH, DivergenceCategory.HIDDEN,
                                config.hidden_score, config)

    if troughs is not None:
        latest, previous = troughs
        if latest.price > previous.price and latest.oscillator < previous.oscillator:
            return _make_signal(latest, DivergenceDirection.BULLISH, DivergenceCategory.HIDDEN,
                                config.hidden_score, config)

    return DivergenceSignal.none()


class DivergenceTracker:
    """
    종목별 current divergence 누적기

    사용법:
    1. 매 평가마다 update(signal, now)
    2. 진입 판단 시 directional_score(direction, now, tf)
    """

    def __init__(self, config: Optional[DivergenceConfig] = None):
        self.config = config or DivergenceConfig()
        self.current = DivergenceSignal.none()

    def reset(self) -> None:
        self.current = DivergenceSignal.none()

    def _matches(self, signal: DivergenceSignal) -> bool:
        cur = self.current
        if not cur.exists or cur.direction is not signal.direction:
            return False
        tolerance = abs(cur.price) * self.config.price_tolerance_pct / 100.0
        return abs(signal.price - cur.price) <= tolerance

    def update(self, signal: DivergenceSignal, now: pd.Timestamp) -> DivergenceSignal:
        """
        새 감지 결과 반영

        - 빈 신호: 기존 유지
        - 같은 방향 + 가격 tolerance 이내: confirmation += 1 (같은 스윙 재감지는 제외),
          score는 큰 값, timestamp는 최신 값
        - 그 외: 교체
        """
        if not signal.exists:
            return self.current

        if self._matches(signal):
            cur = self.current
            same_swing = signal.timestamp is not None and signal.timestamp == cur.timestamp
            if not same_swing:
                cur.confirmations += 1
            if signal.score > cur.score:
                cur.score = signal.score
                cur.strength = signal.strength
                cur.category = signal.category
            if signal.timestamp is not None and (cur.timestamp is None or signal.timestamp > cur.timestamp):
                cur.timestamp = signal.timestamp
                cur.price = signal.price
                cur.oscillator = signal.oscillator
            return cur

        self.current = replace(signal, confirmations=1, first_detected=pd.Timestamp(now))
        logger.debug(
            f"New divergence {self.current.label} score={self.current.score:.1f} "
            f"price={self.current.price}"
        )
        return self.current

    def age_bars(self, now: pd.Timestamp, timeframe: str) -> int:
        cur = self.current
        ref = cur.timestamp if cur.timestamp is not None else cur.first_detected
        return bars_between(ref, now, timeframe)

    def decay_multiplier(self, age_bars: int) -> float:
        for max_age, multiplier in self.config.age_buckets:
            if age_bars <= max_age:
                return multiplier
        return self.config.very_old_multiplier

    def is_expired(self, now: pd.Timestamp, timeframe: str) -> bool:
        if not self.current.exists:
            return True
        return self.age_bars(now, timeframe) > self.config.max_age_bars

    def decayed_score(self, now: pd.Timestamp, timeframe: str) -> float:
        """나이 감쇠가 적용된 점수 (저장된 score는 변경하지 않음)"""
        if self.is_expired(now, timeframe):
            return 0.0
        return self.current.score * self.decay_multiplier(self.age_bars(now, timeframe))

    def directional_score(self, direction: Direction, now: pd.Timestamp, timeframe: str) -> float:
        """
        다이버전스가 해당 방향 진입을 지지하는 정도 (0-100, 중립 50)

        50 ± decayed/2
        """
        neutral = self.config.neutral_score
        decayed = self.decayed_score(now, timeframe)
        if decayed <= 0.0:
            return neutral
        shift = decayed / 2.0
        if self.current.direction.supports(direction):
            return neutral + shift
        return neutral - shift


class DivergenceClassifier:
    """
    IndicatorProvider에서 윈도우를 받아 extract → classify → tracker.update 수행
    """

    def __init__(self, indicators: IndicatorProvider, config: Optional[DivergenceConfig] = None):
        self.indicators = indicators
        self.config = config or DivergenceConfig()

    def evaluate(self, symbol: str, timeframe: str) -> DivergenceSignal:
        """현재 윈도우에서 새 다이버전스 감지 (tracker 반영 X)"""
        cfg = self.config
        closes = np.asarray(self.indicators.series(symbol, timeframe, 'close', cfg.lookback_bars), dtype=float)
        osc = np.asarray(self.indicators.series(symbol, timeframe, 'oscillator', cfg.lookback_bars), dtype=float)
        times = self.indicators.bar_times(symbol, timeframe, cfg.lookback_bars)

        n = min(len(closes), len(osc), len(times))
        if n < 2 * cfg.swing_radius + 1:
            logger.debug(f"[{symbol}] insufficient data for divergence ({n} bars)")
            return DivergenceSignal.none()

        point = self.indicators.price_increment(symbol)
        swings = extract_swing_points(
            closes[-n:],
            osc[-n:],
            cfg.swing_radius,
            timestamps=times[-n:],
            strength_unit=point * cfg.strength_points,
            max_strength=cfg.max_swing_strength,
        )
        return classify_divergence(swings, cfg)

    def refresh(
        self,
        symbol: str,
        timeframe: str,
        tracker: DivergenceTracker,
        now: pd.Timestamp,
    ) -> DivergenceSignal:
        """감지 + current divergence 갱신"""
        return tracker.update(self.evaluate(symbol, timeframe), now)


def format_divergence(tracker: DivergenceTracker, now: pd.Timestamp, timeframe: str) -> str:
    """Current divergence 요약 (상태 표시용)"""
    cur = tracker.current
    if not cur.exists:
        return "Divergence: none"
    age = tracker.age_bars(now, timeframe)
    expired = " EXPIRED" if tracker.is_expired(now, timeframe) else ""
    return (
        f"Divergence: {cur.label} score={cur.score:.0f} "
        f"(decayed {tracker.decayed_score(now, timeframe):.0f}, age {age} bars{expired}) "
        f"strength={cur.strength} conf={cur.confirmations} @ {cur.price}"
    )
