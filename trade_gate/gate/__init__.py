"""
Gate Module
===========

- bar_tracker: 바 단위 거래 카운터
- entry_score: 셋업 분류 + 종합 진입 점수
- validation: 4단계 진입 검증 파이프라인
"""
from .bar_tracker import BarTracking
from .entry_score import (
    EntryScore,
    EntrySensitivity,
    classify_setup,
    momentum_score,
    band_score,
    divergence_penalty,
    composite_score,
)
from .validation import (
    EntryRequest,
    ValidationResult,
    ValidationPipeline,
    GATE_BAR_LIMIT,
    GATE_ELIGIBILITY,
    GATE_RANGING,
    GATE_ENTRY,
    GATE_DIRECTION,
    GATE_PASSED,
)

__all__ = [
    'BarTracking',
    'EntryScore',
    'EntrySensitivity',
    'classify_setup',
    'momentum_score',
    'band_score',
    'divergence_penalty',
    'composite_score',
    'EntryRequest',
    'ValidationResult',
    'ValidationPipeline',
    'GATE_BAR_LIMIT',
    'GATE_ELIGIBILITY',
    'GATE_RANGING',
    'GATE_ENTRY',
    'GATE_DIRECTION',
    'GATE_PASSED',
]
