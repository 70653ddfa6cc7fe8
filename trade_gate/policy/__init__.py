"""
Policy Module
=============

- direction_override: 다이버전스 기반 방향 override 상태 머신
"""
from .direction_override import (
    OverrideConfig,
    DivergenceOverride,
    DirectionPermission,
    DirectionOverrideStateMachine,
    normal_permission,
)

__all__ = [
    'OverrideConfig',
    'DivergenceOverride',
    'DirectionPermission',
    'DirectionOverrideStateMachine',
    'normal_permission',
]
