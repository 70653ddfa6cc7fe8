"""
Trend Strength Classification
=============================

Alignment와 같은 MA 간격을 쓰되, 가격 대비 % 기준의 더 엄격한 밴드로
STRONG / MODERATE / WEAK / NEUTRAL 분류.

- STRONG: |medium-slow| ≥ strong_trend_pct 이고 fast/medium 이 같은 방향
- MODERATE: |medium-slow| ≥ trending_threshold_pct
- WEAK: |medium-slow| ≥ ranging_threshold_pct
- NEUTRAL: 그 미만 (횡보장)
"""
from dataclasses import dataclass

from ..types import TrendStrength
from .alignment import MASnapshot


@dataclass(frozen=True)
class TrendAssessment:
    strength: TrendStrength
    direction_sign: int  # +1 상승, -1 하락, 0 없음
    gap_pct: float


def classify_trend_strength(
    snapshot: MASnapshot,
    price: float,
    *,
    ranging_threshold_pct: float,
    trending_threshold_pct: float,
    strong_trend_pct: float,
) -> TrendAssessment:
    """
    Args:
        snapshot: 현재 MA 4개
        price: 현재가 (% 환산 기준)
        ranging_threshold_pct: 이 미만이면 NEUTRAL
        trending_threshold_pct: MODERATE 하한
        strong_trend_pct: STRONG 하한
    """
    if not snapshot.is_valid or price <= 0:
        return TrendAssessment(TrendStrength.NEUTRAL, 0, 0.0)

    slow_gap = snapshot.medium - snapshot.slow
    fast_gap = snapshot.fast - snapshot.medium
    gap_pct = abs(slow_gap) / price * 100.0
    sign = (slow_gap > 0) - (slow_gap < 0)

    if gap_pct < ranging_threshold_pct:
        return TrendAssessment(TrendStrength.NEUTRAL, sign, gap_pct)

    if gap_pct >= strong_trend_pct and fast_gap * slow_gap > 0:
        strength = TrendStrength.STRONG
    elif gap_pct >= trending_threshold_pct:
        strength = TrendStrength.MODERATE
    else:
        strength = TrendStrength.WEAK

    return TrendAssessment(strength, sign, gap_pct)
