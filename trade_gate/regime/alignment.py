"""
Moving Average Alignment Scorer
===============================

4개 이동평균 (very-fast / fast / medium / slow)의 정렬 상태로
매수/매도 신뢰도를 각각 독립적으로 계산.

Gaps (price increment 단위, 부호 있음):
- g1 = very_fast - fast
- g2 = fast - medium
- g3 = medium - slow

Sub-rules (각 0-100, 방향 polarity 적용 후 가중합):
- separation: medium/slow 간격이 클수록 높음 (밴드)
- direction: medium이 slow 대비 올바른 쪽이면 최고, close band는 부분 점수
- momentum: fast/medium 간격 밴드 + 살짝 반대쪽이면 pullback 부분 점수
- stack: 세 간격이 모두 같은 방향이면 최고

Buffer zone:
- 간격 중 하나라도 buffer 미만이면 경고 + 두 신뢰도 모두 할인
- medium/slow 간격이 buffer 안이거나 직전 바 대비 크로스가 나면 critical

Usage:
```python
scorer = AlignmentScorer(indicators, AlignmentConfig())
score = scorer.score("EURUSD", "15m")
print(score.buy_confidence, score.sell_confidence, score.label)
```
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import logging
import math

from ..providers import IndicatorProvider
from ..types import AlignmentLabel, Direction, MARole

logger = logging.getLogger(__name__)


RULE_NAMES = ('separation', 'direction', 'momentum', 'stack')


@dataclass(frozen=True)
class AlignmentConfig:
    """정렬 점수 설정 (간격 단위: price increment)"""
    # Rule weights (합 = 1.0)
    weight_separation: float = 0.25
    weight_direction: float = 0.30
    weight_momentum: float = 0.25
    weight_stack: float = 0.20

    # Separation bands (medium - slow)
    separation_excellent: float = 50.0
    separation_good: float = 25.0
    separation_fair: float = 10.0

    # Direction close band
    direction_close_band: float = 5.0
    direction_close_score: float = 40.0

    # Momentum bands (fast - medium)
    momentum_strong: float = 30.0
    momentum_moderate: float = 15.0
    momentum_weak: float = 5.0
    momentum_pullback_band: float = 5.0
    momentum_pullback_score: float = 15.0

    # Buffer zone
    buffer_zone: float = 3.0
    buffer_discount: float = 0.7  # 신뢰도 × discount

    # Label thresholds (net bias)
    label_strong: float = 50.0
    label_normal: float = 20.0

    @property
    def weights(self) -> Dict[str, float]:
        return {
            'separation': self.weight_separation,
            'direction': self.weight_direction,
            'momentum': self.weight_momentum,
            'stack': self.weight_stack,
        }


@dataclass(frozen=True)
class MASnapshot:
    """한 시점의 이동평균 4개"""
    very_fast: float
    fast: float
    medium: float
    slow: float

    @property
    def is_valid(self) -> bool:
        return all(math.isfinite(v) for v in (self.very_fast, self.fast, self.medium, self.slow))

    def gaps(self, point: float) -> Tuple[float, float, float]:
        """(very_fast-fast, fast-medium, medium-slow) in increments"""
        point = point if point > 0 else 1.0
        return (
            (self.very_fast - self.fast) / point,
            (self.fast - self.medium) / point,
            (self.medium - self.slow) / point,
        )


@dataclass
class AlignmentScore:
    """정렬 점수 결과"""
    buy_confidence: float = 0.0
    sell_confidence: float = 0.0
    net_bias: float = 0.0
    label: AlignmentLabel = AlignmentLabel.NEUTRAL
    warning: str = ""
    is_critical: bool = False
    gaps: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    buy_rules: Dict[str, float] = field(default_factory=dict)
    sell_rules: Dict[str, float] = field(default_factory=dict)

    def confidence(self, direction: Direction) -> float:
        return self.buy_confidence if direction is Direction.BUY else self.sell_confidence


# =============================================================================
# Sub-rules (directed gap: polarity 적용 후 양수 = 요청 방향에 유리)
# =============================================================================

def separation_rule(d3: float, cfg: AlignmentConfig) -> float:
    if d3 >= cfg.separation_excellent:
        return 100.0
    if d3 >= cfg.separation_good:
        return 75.0
    if d3 >= cfg.separation_fair:
        return 50.0
    if d3 > 0:
        return 25.0
    return 0.0


def direction_rule(d3: float, cfg: AlignmentConfig) -> float:
    if d3 > cfg.direction_close_band:
        return 100.0
    if abs(d3) <= cfg.direction_close_band:
        return cfg.direction_close_score
    return 0.0


def momentum_rule(d2: float, cfg: AlignmentConfig) -> float:
    if d2 >= cfg.momentum_strong:
        return 100.0
    if d2 >= cfg.momentum_moderate:
        return 75.0
    if d2 >= cfg.momentum_weak:
        return 50.0
    if d2 > 0:
        return 30.0
    if d2 >= -cfg.momentum_pullback_band:
        return cfg.momentum_pullback_score
    return 0.0


def stack_rule(d1: float, d2: float, d3: float) -> float:
    ordered = sum(1 for d in (d1, d2, d3) if d > 0)
    return {3: 100.0, 2: 60.0, 1: 30.0}.get(ordered, 0.0)


def directional_rules(
    gaps: Tuple[float, float, float],
    direction: Direction,
    cfg: AlignmentConfig,
) -> Dict[str, float]:
    """한 방향 polarity로 4개 rule 점수 계산"""
    d1, d2, d3 = (g * direction.sign for g in gaps)
    return {
        'separation': separation_rule(d3, cfg),
        'direction': direction_rule(d3, cfg),
        'momentum': momentum_rule(d2, cfg),
        'stack': stack_rule(d1, d2, d3),
    }


def weighted_total(rules: Dict[str, float], cfg: AlignmentConfig) -> float:
    weights = cfg.weights
    return sum(rules[name] * weights[name] for name in RULE_NAMES)


def label_for_bias(net_bias: float, cfg: AlignmentConfig) -> AlignmentLabel:
    if net_bias >= cfg.label_strong:
        return AlignmentLabel.STRONG_BUY
    if net_bias >= cfg.label_normal:
        return AlignmentLabel.BUY
    if net_bias <= -cfg.label_strong:
        return AlignmentLabel.STRONG_SELL
    if net_bias <= -cfg.label_normal:
        return AlignmentLabel.SELL
    return AlignmentLabel.NEUTRAL


def _crossed(prev_gap: float, gap: float) -> bool:
    return (prev_gap > 0 > gap) or (prev_gap < 0 < gap)


def score_alignment(
    current: MASnapshot,
    point: float,
    cfg: Optional[AlignmentConfig] = None,
    previous: Optional[MASnapshot] = None,
) -> AlignmentScore:
    """
    정렬 점수 계산 (순수 함수)

    Args:
        current: 현재 바 MA
        point: price increment
        cfg: AlignmentConfig
        previous: 직전 바 MA (크로스 감지용, 선택)

    Returns:
        AlignmentScore
    """
    cfg = cfg or AlignmentConfig()
    if not current.is_valid:
        return AlignmentScore(warning="insufficient data")

    gaps = current.gaps(point)
    buy_rules = directional_rules(gaps, Direction.BUY, cfg)
    sell_rules = directional_rules(gaps, Direction.SELL, cfg)
    buy = weighted_total(buy_rules, cfg)
    sell = weighted_total(sell_rules, cfg)

    warnings = []
    critical = False

    # Buffer zone: 크로스오버 / whipsaw 위험
    names = ('very-fast/fast', 'fast/medium', 'medium/slow')
    tight = [name for name, g in zip(names, gaps) if abs(g) < cfg.buffer_zone]
    if tight:
        warnings.append(f"buffer zone: {', '.join(tight)} gap < {cfg.buffer_zone:g}")
        buy *= cfg.buffer_discount
        sell *= cfg.buffer_discount
        if 'medium/slow' in tight:
            critical = True

    if previous is not None and previous.is_valid:
        prev_gaps = previous.gaps(point)
        crossed = [name for name, pg, g in zip(names, prev_gaps, gaps) if _crossed(pg, g)]
        if crossed:
            warnings.append(f"crossover: {', '.join(crossed)}")
            critical = True

    net_bias = buy - sell
    return AlignmentScore(
        buy_confidence=buy,
        sell_confidence=sell,
        net_bias=net_bias,
        label=label_for_bias(net_bias, cfg),
        warning="; ".join(warnings),
        is_critical=critical,
        gaps=gaps,
        buy_rules=buy_rules,
        sell_rules=sell_rules,
    )


def read_snapshot(
    indicators: IndicatorProvider,
    symbol: str,
    timeframe: str,
    shift: int = 0,
) -> MASnapshot:
    return MASnapshot(
        very_fast=indicators.moving_average(symbol, timeframe, MARole.VERY_FAST, shift),
        fast=indicators.moving_average(symbol, timeframe, MARole.FAST, shift),
        medium=indicators.moving_average(symbol, timeframe, MARole.MEDIUM, shift),
        slow=indicators.moving_average(symbol, timeframe, MARole.SLOW, shift),
    )


class AlignmentScorer:
    """IndicatorProvider에서 MA를 읽어 score_alignment() 호출 (상태 없음)"""

    def __init__(self, indicators: IndicatorProvider, config: Optional[AlignmentConfig] = None):
        self.indicators = indicators
        self.config = config or AlignmentConfig()

    def score(self, symbol: str, timeframe: str) -> AlignmentScore:
        current = read_snapshot(self.indicators, symbol, timeframe, 0)
        previous = read_snapshot(self.indicators, symbol, timeframe, 1)
        result = score_alignment(
            current,
            self.indicators.price_increment(symbol),
            self.config,
            previous=previous,
        )
        if result.is_critical:
            logger.debug(f"[{symbol} {timeframe}] alignment critical: {result.warning}")
        return result


def format_alignment(score: AlignmentScore) -> str:
    """정렬 점수 요약"""
    line = (
        f"Alignment: BUY {score.buy_confidence:.0f} / SELL {score.sell_confidence:.0f} "
        f"bias={score.net_bias:+.0f} [{score.label.name}]"
    )
    if score.warning:
        flag = "CRITICAL" if score.is_critical else "WARN"
        line += f" {flag}: {score.warning}"
    return line
