# -*- coding: utf-8 -*-
"""
Alignment Scorer Tests
======================

4-MA 정렬 점수 / buffer zone / 크로스 감지 / 추세 강도.
"""
import numpy as np
import pytest

from trade_gate.regime import (
    AlignmentConfig,
    AlignmentScorer,
    MASnapshot,
    classify_trend_strength,
    format_alignment,
    score_alignment,
)
from trade_gate.regime.alignment import (
    direction_rule,
    momentum_rule,
    separation_rule,
    stack_rule,
    weighted_total,
)
from trade_gate.types import AlignmentLabel, Direction, TrendStrength

from conftest import BULL_MAS, StubIndicators

POINT = 0.0001


def snapshot_from_gaps(d1, d2, d3, slow=1.1000, point=POINT):
    """gap (increments) 로 MASnapshot 생성"""
    medium = slow + d3 * point
    fast = medium + d2 * point
    very_fast = fast + d1 * point
    return MASnapshot(very_fast=very_fast, fast=fast, medium=medium, slow=slow)


class TestSubRules:
    """각 sub-rule 밴드"""

    @pytest.mark.parametrize("d3,expected", [(60, 100), (50, 100), (30, 75), (10, 50), (3, 25), (0, 0), (-20, 0)])
    def test_separation(self, d3, expected):
        assert separation_rule(d3, AlignmentConfig()) == expected

    @pytest.mark.parametrize("d3,expected", [(6, 100), (5, 40), (-5, 40), (-6, 0)])
    def test_direction(self, d3, expected):
        assert direction_rule(d3, AlignmentConfig()) == expected

    @pytest.mark.parametrize("d2,expected", [(30, 100), (20, 75), (5, 50), (2, 30), (-3, 15), (-6, 0)])
    def test_momentum(self, d2, expected):
        assert momentum_rule(d2, AlignmentConfig()) == expected

    @pytest.mark.parametrize("gaps,expected", [((1, 1, 1), 100), ((1, 1, -1), 60), ((-1, -1, 1), 30), ((-1, -1, -1), 0)])
    def test_stack(self, gaps, expected):
        assert stack_rule(*gaps) == expected

    def test_default_weights_sum_to_one(self):
        assert sum(AlignmentConfig().weights.values()) == pytest.approx(1.0)


class TestScoreAlignment:
    """score_alignment() 순수 함수"""

    def test_perfect_bullish_stack(self):
        # 모든 gap 이 excellent 밴드 초과
        score = score_alignment(snapshot_from_gaps(60, 60, 60), POINT)
        assert score.buy_confidence >= 90
        assert score.sell_confidence <= 20
        assert score.label is AlignmentLabel.STRONG_BUY
        assert score.warning == ""
        assert not score.is_critical

    def test_perfect_bearish_stack(self):
        score = score_alignment(snapshot_from_gaps(-60, -60, -60), POINT)
        assert score.sell_confidence >= 90
        assert score.buy_confidence <= 20
        assert score.label is AlignmentLabel.STRONG_SELL

    def test_confidences_are_direction_dependent(self):
        score = score_alignment(snapshot_from_gaps(8, 20, 40), POINT)
        assert score.buy_rules != score.sell_rules
        assert score.buy_confidence == pytest.approx(87.5)
        assert score.net_bias == pytest.approx(score.buy_confidence - score.sell_confidence)

    def test_buffer_zone_discounts_both(self):
        cfg = AlignmentConfig()
        score = score_alignment(snapshot_from_gaps(40, 40, 2), POINT, cfg)

        assert score.warning != ""
        assert "medium/slow" in score.warning
        assert score.is_critical
        assert score.buy_confidence == pytest.approx(weighted_total(score.buy_rules, cfg) * cfg.buffer_discount)
        assert score.sell_confidence == pytest.approx(weighted_total(score.sell_rules, cfg) * cfg.buffer_discount)

    def test_fast_gap_buffer_is_warning_only(self):
        score = score_alignment(snapshot_from_gaps(1, 40, 40), POINT)
        assert "very-fast/fast" in score.warning
        assert not score.is_critical

    def test_crossover_is_critical(self):
        previous = snapshot_from_gaps(10, 10, -10)
        current = snapshot_from_gaps(10, 10, 20)
        score = score_alignment(current, POINT, previous=previous)
        assert score.is_critical
        assert "crossover" in score.warning

    def test_insufficient_data(self):
        score = score_alignment(MASnapshot(1.1, np.nan, 1.0, 0.9), POINT)
        assert score.buy_confidence == 0
        assert score.sell_confidence == 0
        assert score.label is AlignmentLabel.NEUTRAL
        assert score.warning == "insufficient data"

    def test_neutral_label(self):
        score = score_alignment(snapshot_from_gaps(0.5, -0.5, 4), POINT)
        assert score.label is AlignmentLabel.NEUTRAL

    def test_format_alignment(self):
        text = format_alignment(score_alignment(snapshot_from_gaps(40, 40, 2), POINT))
        assert text.startswith("Alignment: BUY")
        assert "CRITICAL" in text


class TestAlignmentScorer:
    """IndicatorProvider 경유"""

    def test_reads_current_and_previous(self):
        stub = StubIndicators()
        stub.set_mas("EURUSD", "15m", BULL_MAS)
        stub.set_mas("EURUSD", "15m", snapshot_from_gaps(8, 20, -5, slow=1.0990), shift=1)
        score = AlignmentScorer(stub).score("EURUSD", "15m")
        assert score.is_critical  # medium/slow 크로스
        assert score.buy_confidence > score.sell_confidence

    def test_missing_data(self):
        score = AlignmentScorer(StubIndicators()).score("EURUSD", "1h")
        assert score.warning == "insufficient data"


class TestTrendStrength:
    """classify_trend_strength(): 가격 대비 %"""

    KW = dict(ranging_threshold_pct=0.05, trending_threshold_pct=0.15, strong_trend_pct=0.30)

    def test_strong(self):
        result = classify_trend_strength(BULL_MAS, 1.1010, **self.KW)
        assert result.strength is TrendStrength.STRONG
        assert result.direction_sign == 1

    def test_strong_needs_fast_agreement(self):
        snap = MASnapshot(very_fast=1.0970, fast=1.0975, medium=1.0980, slow=1.0940)
        result = classify_trend_strength(snap, 1.1010, **self.KW)
        assert result.strength is TrendStrength.MODERATE

    def test_moderate(self):
        snap = MASnapshot(1.1000, 1.0995, 1.0980, 1.0960)  # 0.18%
        assert classify_trend_strength(snap, 1.1000, **self.KW).strength is TrendStrength.MODERATE

    def test_weak(self):
        snap = MASnapshot(1.1000, 1.0995, 1.0980, 1.0970)  # 0.09%
        assert classify_trend_strength(snap, 1.1000, **self.KW).strength is TrendStrength.WEAK

    def test_neutral(self):
        snap = MASnapshot(1.1000, 1.0995, 1.0980, 1.0978)  # 0.018%
        assert classify_trend_strength(snap, 1.1000, **self.KW).strength is TrendStrength.NEUTRAL

    def test_bearish_sign(self):
        snap = MASnapshot(1.0900, 1.0920, 1.0940, 1.0980)
        result = classify_trend_strength(snap, 1.0900, **self.KW)
        assert result.direction_sign == -1
        assert result.strength is TrendStrength.STRONG

    def test_invalid_is_neutral(self):
        snap = MASnapshot(np.nan, 1.0, 1.0, 1.0)
        assert classify_trend_strength(snap, 1.0, **self.KW).strength is TrendStrength.NEUTRAL
