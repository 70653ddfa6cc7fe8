"""
Feeds Module
============

- frame_provider: DataFrame 기반 지표 제공자 + 메모리 포지션 장부
"""
from .frame_provider import (
    FrameIndicatorProvider,
    IndicatorPeriods,
    PositionBook,
    attach_indicators,
    resample_ohlcv,
)

__all__ = [
    'FrameIndicatorProvider',
    'IndicatorPeriods',
    'PositionBook',
    'attach_indicators',
    'resample_ohlcv',
]
