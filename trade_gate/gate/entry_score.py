# -*- coding: utf-8 -*-
"""
Entry Sensitivity Score
=======================

진입 셋업 분류 + 종합 점수.

셋업:
- PULLBACK: fast MA 근처 (proximity_pct 이내), medium MA 진입 방향 쪽,
  최근 N바에 fast MA 대비 retrace_pct 이상 진입 방향으로 벗어났다가 돌아옴
- REGULAR: 그 외

종합 점수 (0-100):
    w_mtf × MTF 정렬 평균
  + w_momentum × 오실레이터 기울기 점수
  + w_band × 과매수/과매도 밴드 점수
  - 반대 방향 다이버전스 (decayed) × penalty_weight

임계치는 셋업 × 방향별 (sell > buy 비대칭 유지).
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence
import logging

import numpy as np
import pandas as pd

from ..anchor.divergence import DivergenceTracker
from ..config.loader import ValidationSettings
from ..providers import IndicatorProvider
from ..regime.alignment import AlignmentScorer, MASnapshot
from ..types import Direction, SetupType

logger = logging.getLogger(__name__)

NEUTRAL = 50.0


@dataclass
class EntryScore:
    """종합 점수 결과"""
    setup: SetupType
    total: float
    threshold: float
    mtf: float = NEUTRAL
    momentum: float = NEUTRAL
    band: float = NEUTRAL
    penalty: float = 0.0
    mtf_detail: Dict[str, float] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.total >= self.threshold

    def summary(self) -> str:
        return (
            f"{self.setup.value} score {self.total:.1f} vs {self.threshold:.0f} "
            f"(mtf={self.mtf:.0f} mom={self.momentum:.0f} band={self.band:.0f} "
            f"penalty={self.penalty:.1f})"
        )


def classify_setup(
    direction: Direction,
    price: float,
    snapshot: MASnapshot,
    recent_closes: Sequence[float],
    *,
    proximity_pct: float,
    retrace_pct: float,
) -> SetupType:
    """
    PULLBACK / REGULAR 분류

    Args:
        direction: 진입 방향
        price: 현재가
        snapshot: 현재 MA
        recent_closes: 최근 종가 (과거 → 최신)
        proximity_pct: fast MA 근접 기준 (가격 대비 %)
        retrace_pct: 최근 이탈폭 기준 (fast MA 대비 %)
    """
    if not snapshot.is_valid or price <= 0:
        return SetupType.REGULAR

    closes = np.asarray(recent_closes, dtype=float)
    closes = closes[~np.isnan(closes)]
    if len(closes) == 0:
        return SetupType.REGULAR

    fast = snapshot.fast
    near_fast = abs(price - fast) / price * 100.0 <= proximity_pct
    if direction is Direction.BUY:
        trade_side = price > snapshot.medium
        excursion = (closes.max() - fast) / fast * 100.0
    else:
        trade_side = price < snapshot.medium
        excursion = (fast - closes.min()) / fast * 100.0

    if near_fast and trade_side and excursion >= retrace_pct:
        return SetupType.PULLBACK
    return SetupType.REGULAR


def momentum_score(oscillator: Sequence[float], direction: Direction, lookback: int, scale: float) -> float:
    """오실레이터 기울기 (최근 lookback 바 선형회귀) → 0-100, 중립 50"""
    values = np.asarray(oscillator, dtype=float)[-(lookback + 1):]
    if len(values) < 2 or np.isnan(values).any():
        return NEUTRAL
    slope = np.polyfit(np.arange(len(values)), values, 1)[0]
    return float(np.clip(NEUTRAL + direction.sign * slope * scale, 0.0, 100.0))


def band_score(oscillator: float, direction: Direction, overbought: float, oversold: float) -> float:
    """
    과매수/과매도 필터

    BUY: oversold 이하 100, overbought 이상 0, 사이는 선형
    SELL: 반대
    """
    if oscillator is None or np.isnan(oscillator):
        return NEUTRAL
    position = (oscillator - oversold) / (overbought - oversold)
    position = float(np.clip(position, 0.0, 1.0))
    if direction is Direction.BUY:
        return 100.0 * (1.0 - position)
    return 100.0 * position


def divergence_penalty(
    tracker: Optional[DivergenceTracker],
    direction: Direction,
    now: pd.Timestamp,
    timeframe: str,
    weight: float,
) -> float:
    """진입 방향과 반대인 다이버전스의 감쇠 점수 × weight"""
    if tracker is None or not tracker.current.exists:
        return 0.0
    if tracker.current.direction.supports(direction):
        return 0.0
    return tracker.decayed_score(now, timeframe) * weight


def composite_score(mtf: float, momentum: float, band: float, penalty: float, settings: ValidationSettings) -> float:
    total = (
        settings.weight_mtf_alignment * mtf
        + settings.weight_momentum * momentum
        + settings.weight_oscillator_band * band
        - penalty
    )
    return float(np.clip(total, 0.0, 100.0))


class EntrySensitivity:
    """
    IndicatorProvider 기반 진입 민감도 평가 (상태 없음)
    """

    def __init__(self, indicators: IndicatorProvider, settings: ValidationSettings):
        self.indicators = indicators
        self.settings = settings
        self.alignment = AlignmentScorer(indicators, settings.alignment)

    def mtf_alignment(self, symbol: str, direction: Direction) -> Dict[str, float]:
        """timeframe별 방향 신뢰도 (데이터 부족 timeframe 제외)"""
        detail = {}
        for tf in self.settings.mtf_timeframes:
            score = self.alignment.score(symbol, tf)
            if score.warning == "insufficient data":
                logger.debug(f"[{symbol} {tf}] skipped in MTF alignment: insufficient data")
                continue
            detail[tf] = score.confidence(direction)
        return detail

    def evaluate(
        self,
        symbol: str,
        direction: Direction,
        price: float,
        snapshot: MASnapshot,
        tracker: Optional[DivergenceTracker],
        now: pd.Timestamp,
    ) -> EntryScore:
        s = self.settings
        tf = s.entry_timeframe

        closes = self.indicators.series(symbol, tf, 'close', s.pullback_lookback)
        setup = classify_setup(
            direction,
            price,
            snapshot,
            closes,
            proximity_pct=s.pullback_proximity_pct,
            retrace_pct=s.pullback_retrace_pct,
        )

        detail = self.mtf_alignment(symbol, direction)
        mtf = float(np.mean(list(detail.values()))) if detail else NEUTRAL

        osc = self.indicators.series(symbol, tf, 'oscillator', s.momentum_lookback + 1)
        momentum = momentum_score(osc, direction, s.momentum_lookback, s.momentum_scale)
        band = band_score(self.indicators.oscillator(symbol, tf, 0), direction, s.overbought, s.oversold)
        penalty = divergence_penalty(tracker, direction, now, s.divergence_timeframe, s.divergence_penalty_weight)

        return EntryScore(
            setup=setup,
            total=composite_score(mtf, momentum, band, penalty, s),
            threshold=s.entry_threshold(setup, direction),
            mtf=mtf,
            momentum=momentum,
            band=band,
            penalty=penalty,
            mtf_detail=detail,
        )
