"""
Config Module
=============

종목별 검증 파라미터 관리.
YAML 파일에서 설정 로드 + 환경변수 오버라이드 + 심볼 규칙 + 로드 시점 검증.
"""

from .loader import (
    ConfigError,
    ValidationSettings,
    EngineConfig,
    load_config,
    load_settings,
    load_engine_config,
    settings_from_dict,
    validate_settings,
    adjust_for_symbol,
    list_symbols,
)

__all__ = [
    'ConfigError',
    'ValidationSettings',
    'EngineConfig',
    'load_config',
    'load_settings',
    'load_engine_config',
    'settings_from_dict',
    'validate_settings',
    'adjust_for_symbol',
    'list_symbols',
]
