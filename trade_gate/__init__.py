"""
Trade Gate - Divergence-Gated Entry Core
========================================

Core Components:
- anchor/: Swing points + RSI divergence (time-decayed score)
- regime/: 4-MA alignment scorer + trend strength
- gate/: Bar limits + 4-stage validation pipeline
- policy/: Divergence direction override state machine
- risk/: Daily / per-instrument trade ledger
- config/: YAML settings loader
- feeds/: DataFrame-backed indicator provider (replay / tests)
- engine.py: Per-instrument coordinator
"""
from .types import (
    Direction,
    PositionDirection,
    DivergenceDirection,
    DivergenceCategory,
    TrendStrength,
    AlignmentLabel,
    SetupType,
    MARole,
)
from .config import ConfigError, ValidationSettings, EngineConfig, load_settings
from .gate import EntryRequest, ValidationResult, ValidationPipeline
from .policy import DirectionPermission, DirectionOverrideStateMachine
from .engine import EntryEngine, InstrumentState

__version__ = "0.1.0"

__all__ = [
    'Direction',
    'PositionDirection',
    'DivergenceDirection',
    'DivergenceCategory',
    'TrendStrength',
    'AlignmentLabel',
    'SetupType',
    'MARole',
    'ConfigError',
    'ValidationSettings',
    'EngineConfig',
    'load_settings',
    'EntryRequest',
    'ValidationResult',
    'ValidationPipeline',
    'DirectionPermission',
    'DirectionOverrideStateMachine',
    'EntryEngine',
    'InstrumentState',
]
