# -*- coding: utf-8 -*-
"""
Swing Point Extraction
======================

고정 길이 윈도우에서 스윙 고점(peak) / 저점(trough) 추출.

핵심 원리:
- radius R: 좌우 R개 바와 비교 (strict 비교, 동일가 허용 X)
- 각 스윙 포인트에 같은 인덱스의 오실레이터 값을 함께 기록
- strength: 좌/우 가격 차이 중 작은 쪽 / strength_unit, [1, max_strength]로 clamp

입력은 시간순 (oldest first), 출력은 최신순 (most-recent-first).
샘플 수가 2R+1 미만이면 빈 결과 (예외 X).
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..types import SwingKind


@dataclass(frozen=True)
class SwingPoint:
    """스윙 포인트 (생성 후 불변)"""
    timestamp: Optional[pd.Timestamp]
    price: float
    oscillator: float
    kind: SwingKind
    offset: int  # 0 = 가장 최근 샘플
    strength: int


@dataclass
class SwingPoints:
    """추출 결과 (최신순)"""
    peaks: List[SwingPoint] = field(default_factory=list)
    troughs: List[SwingPoint] = field(default_factory=list)

    def latest_pair(self, kind: SwingKind):
        """(latest, previous) 또는 None"""
        points = self.peaks if kind is SwingKind.PEAK else self.troughs
        if len(points) < 2:
            return None
        return points[0], points[1]

    def __len__(self) -> int:
        return len(self.peaks) + len(self.troughs)


def _strength(min_delta: float, strength_unit: float, max_strength: int) -> int:
    if strength_unit <= 0:
        return max_strength
    return int(np.clip(int(min_delta / strength_unit), 1, max_strength))


def extract_swing_points(
    prices: Sequence[float],
    oscillator: Sequence[float],
    radius: int,
    *,
    timestamps: Optional[Sequence[pd.Timestamp]] = None,
    strength_unit: float = 1.0,
    max_strength: int = 5,
) -> SwingPoints:
    """
    스윙 고점/저점 추출

    Args:
        prices: 가격 배열 (시간순)
        oscillator: 같은 길이의 오실레이터 배열
        radius: 좌우 비교 바 수 (R)
        timestamps: 각 샘플의 타임스탬프 (선택)
        strength_unit: strength 1단계에 해당하는 가격 폭
        max_strength: strength 상한

    Returns:
        SwingPoints (peaks, troughs 모두 최신순)
    """
    price = np.asarray(prices, dtype=float)
    osc = np.asarray(oscillator, dtype=float)
    if len(price) != len(osc):
        raise ValueError(f"prices/oscillator length mismatch: {len(price)} != {len(osc)}")

    n = len(price)
    result = SwingPoints()
    if radius < 1 or n < 2 * radius + 1:
        return result
    if timestamps is not None and len(timestamps) != n:
        return result

    for i in range(n - radius - 1, radius - 1, -1):
        p = price[i]
        if np.isnan(p) or np.isnan(osc[i]):
            continue

        left = price[i - radius:i]
        right = price[i + 1:i + radius + 1]
        if np.isnan(left).any() or np.isnan(right).any():
            continue

        ts = pd.Timestamp(timestamps[i]) if timestamps is not None else None

        if p > left.max() and p > right.max():
            delta = min(p - left.max(), p - right.max())
            result.peaks.append(SwingPoint(
                timestamp=ts,
                price=float(p),
                oscillator=float(osc[i]),
                kind=SwingKind.PEAK,
                offset=n - 1 - i,
                strength=_strength(delta, strength_unit, max_strength),
            ))
        elif p < left.min() and p < right.min():
            delta = min(left.min() - p, right.min() - p)
            result.troughs.append(SwingPoint(
                timestamp=ts,
                price=float(p),
                oscillator=float(osc[i]),
                kind=SwingKind.TROUGH,
                offset=n - 1 - i,
                strength=_strength(delta, strength_unit, max_strength),
            ))

    return result
