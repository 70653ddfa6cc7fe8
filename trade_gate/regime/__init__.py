"""
Regime Module
=============

- alignment: 4-MA 정렬 기반 매수/매도 신뢰도
- trend_strength: MA 간격 기반 추세 강도 (횡보 판정)
"""
from .alignment import (
    AlignmentConfig,
    AlignmentScore,
    AlignmentScorer,
    MASnapshot,
    score_alignment,
    read_snapshot,
    format_alignment,
)
from .trend_strength import TrendAssessment, classify_trend_strength

__all__ = [
    'AlignmentConfig',
    'AlignmentScore',
    'AlignmentScorer',
    'MASnapshot',
    'score_alignment',
    'read_snapshot',
    'format_alignment',
    'TrendAssessment',
    'classify_trend_strength',
]
