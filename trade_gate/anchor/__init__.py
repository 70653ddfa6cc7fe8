"""
Anchor Layer - Swing Points + Divergence
========================================

- swing.py: 스윙 고점/저점 추출 (radius 기반)
- divergence.py: REG/HID 다이버전스 분류 + current divergence 누적 + 나이 감쇠
"""
from .swing import SwingPoint, SwingPoints, extract_swing_points
from .divergence import (
    DivergenceConfig,
    DivergenceSignal,
    DivergenceTracker,
    DivergenceClassifier,
    classify_divergence,
    format_divergence,
)

__all__ = [
    # Swing
    'SwingPoint',
    'SwingPoints',
    'extract_swing_points',

    # Divergence
    'DivergenceConfig',
    'DivergenceSignal',
    'DivergenceTracker',
    'DivergenceClassifier',
    'classify_divergence',
    'format_divergence',
]
