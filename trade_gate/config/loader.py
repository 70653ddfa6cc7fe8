"""
Config Loader
=============

YAML 기반 검증 파라미터 로더.

사용법:
    from trade_gate.config import load_settings

    # 심볼별 설정 로드 (default + symbol override + env + symbol 규칙)
    settings = load_settings("XAUUSD")
    print(settings.max_spread)                 # 금속은 기본값보다 넓음
    print(settings.alignment.weight_direction)  # 0.30

환경변수 오버라이드:
    TRADE_GATE_MAX_SPREAD=25          # 최대 스프레드 (increment)
    TRADE_GATE_MAX_DAILY_TRADES=10    # 일일 최대 거래 수

설정 오류 (가중치 합 ≠ 1.0, 범위 밖 임계치 등)는 로드 시점에 ConfigError.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..anchor.divergence import DivergenceConfig
from ..policy.direction_override import OverrideConfig
from ..regime.alignment import AlignmentConfig
from ..types import Direction, SetupType, TrendStrength
from ..utils.timeframe import TimeframeSpec

logger = logging.getLogger(__name__)


CONFIG_DIR = Path(__file__).parent.parent.parent / "config"
SYMBOLS_DIR_NAME = "symbols"

METAL_PREFIXES = ('XAU', 'XAG', 'XPT', 'XPD')
WEIGHT_TOLERANCE = 1e-6


class ConfigError(ValueError):
    """Configuration error"""
    pass


@dataclass(frozen=True)
class ValidationSettings:
    """종목별 검증 파라미터"""
    symbol: str = ""

    # Timeframes
    tracking_timeframe: str = "15m"   # bar 카운터 기준
    entry_timeframe: str = "15m"      # 정렬 / 추세 / 셋업 기준
    divergence_timeframe: str = "15m"
    mtf_timeframes: Tuple[str, ...] = ("15m", "1h", "4h")

    # Ranging / trending (가격 대비 %)
    ranging_threshold_pct: float = 0.05
    trending_threshold_pct: float = 0.15
    strong_trend_pct: float = 0.30

    # Alignment confidence threshold (추세 강도별 조정)
    min_alignment_confidence: float = 55.0
    strong_trend_adjust: float = -15.0
    moderate_trend_adjust: float = -5.0
    weak_trend_adjust: float = 10.0

    # Primary eligibility
    max_spread: float = 30.0  # price increments
    max_trades_per_instrument: int = 5
    max_daily_trades: int = 20
    min_capital_for_additional: float = 1000.0
    one_trade_per_entry_bar: bool = True

    # Bar limits
    max_trades_per_bar: int = 1
    allow_same_direction_per_bar: bool = False

    # Entry sensitivity (sell > buy)
    pullback_buy_threshold: float = 55.0
    pullback_sell_threshold: float = 65.0
    regular_buy_threshold: float = 65.0
    regular_sell_threshold: float = 75.0

    # Composite score
    weight_mtf_alignment: float = 0.45
    weight_momentum: float = 0.25
    weight_oscillator_band: float = 0.30
    divergence_penalty_weight: float = 0.5
    momentum_lookback: int = 5
    momentum_scale: float = 3.0
    overbought: float = 70.0
    oversold: float = 30.0

    # Pullback classification
    pullback_proximity_pct: float = 0.05
    pullback_retrace_pct: float = 0.10
    pullback_lookback: int = 10

    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    divergence: DivergenceConfig = field(default_factory=DivergenceConfig)
    override: OverrideConfig = field(default_factory=OverrideConfig)

    def entry_threshold(self, setup: SetupType, direction: Direction) -> float:
        if setup is SetupType.PULLBACK:
            return self.pullback_buy_threshold if direction is Direction.BUY else self.pullback_sell_threshold
        return self.regular_buy_threshold if direction is Direction.BUY else self.regular_sell_threshold

    def confidence_threshold(self, strength: TrendStrength) -> float:
        adjust = {
            TrendStrength.STRONG: self.strong_trend_adjust,
            TrendStrength.MODERATE: self.moderate_trend_adjust,
            TrendStrength.WEAK: self.weak_trend_adjust,
        }.get(strength, 0.0)
        return self.min_alignment_confidence + adjust


@dataclass(frozen=True)
class EngineConfig:
    """엔진 설정"""
    symbols: Tuple[str, ...] = ()
    override_scope: str = "instrument"  # 'instrument' | 'strategy'
    status_every: int = 12  # on_timer N회마다 상태 로그 (0 = 끔)


# =============================================================================
# YAML helpers
# =============================================================================

def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: Dict, override: Dict) -> Dict:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: Dict) -> Dict:
    if os.getenv("TRADE_GATE_MAX_SPREAD"):
        config.setdefault("validation", {})
        config["validation"]["max_spread"] = float(os.getenv("TRADE_GATE_MAX_SPREAD"))
    if os.getenv("TRADE_GATE_MAX_DAILY_TRADES"):
        config.setdefault("validation", {})
        config["validation"]["max_daily_trades"] = int(os.getenv("TRADE_GATE_MAX_DAILY_TRADES"))
    return config


def _tupleize(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_tupleize(v) for v in value)
    return value


def _build(cls, section: Optional[Dict[str, Any]], exclude: Tuple[str, ...] = ()):
    """dataclass 필드만 골라 인스턴스 생성 (리스트는 튜플로)"""
    section = section or {}
    names = {f.name for f in dataclasses.fields(cls)} - set(exclude)
    unknown = set(section) - names
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")
    kwargs = {k: _tupleize(v) for k, v in section.items() if k in names}
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigError(f"Invalid {cls.__name__} section: {e}") from e


# =============================================================================
# Symbol rules
# =============================================================================

def is_metal(symbol: str) -> bool:
    return symbol.upper().startswith(METAL_PREFIXES)


def is_yen_cross(symbol: str) -> bool:
    return "JPY" in symbol.upper()


def adjust_for_symbol(settings: ValidationSettings, symbol: str) -> ValidationSettings:
    """
    심볼 특성별 임계치 확장

    - 금속 (XAU/XAG/...): 추세 임계치 ×1.5, 스프레드 ×3
    - 엔 크로스 (*JPY*): 추세 임계치 ×1.25, 스프레드 ×1.5
    """
    if is_metal(symbol):
        threshold_mult, spread_mult = 1.5, 3.0
    elif is_yen_cross(symbol):
        threshold_mult, spread_mult = 1.25, 1.5
    else:
        return dataclasses.replace(settings, symbol=symbol)

    return dataclasses.replace(
        settings,
        symbol=symbol,
        ranging_threshold_pct=settings.ranging_threshold_pct * threshold_mult,
        trending_threshold_pct=settings.trending_threshold_pct * threshold_mult,
        strong_trend_pct=settings.strong_trend_pct * threshold_mult,
        pullback_proximity_pct=settings.pullback_proximity_pct * threshold_mult,
        max_spread=settings.max_spread * spread_mult,
    )


# =============================================================================
# Validation
# =============================================================================

def _check_weights(name: str, weights: List[float], errors: List[str]) -> None:
    if any(w < 0 for w in weights):
        errors.append(f"{name} weights must be non-negative: {weights}")
    if abs(sum(weights) - 1.0) > WEIGHT_TOLERANCE:
        errors.append(f"{name} weights must sum to 1.0 (got {sum(weights):.4f})")


def _check_score(name: str, value: float, errors: List[str]) -> None:
    if not 0.0 <= value <= 100.0:
        errors.append(f"{name} must be within [0, 100] (got {value})")


def validate_settings(settings: ValidationSettings) -> ValidationSettings:
    """
    설정 검증 (로드 시점 1회)

    Raises:
        ConfigError: 하나 이상의 규칙 위반 시 (전체 목록 포함)
    """
    errors: List[str] = []
    s = settings

    for tf in (s.tracking_timeframe, s.entry_timeframe, s.divergence_timeframe) + tuple(s.mtf_timeframes):
        try:
            TimeframeSpec.from_string(tf)
        except ValueError as e:
            errors.append(str(e))
    if not s.mtf_timeframes:
        errors.append("mtf_timeframes must not be empty")

    _check_weights("alignment", list(s.alignment.weights.values()), errors)
    _check_weights("entry score", [s.weight_mtf_alignment, s.weight_momentum, s.weight_oscillator_band], errors)

    for name in ('pullback_buy_threshold', 'pullback_sell_threshold',
                 'regular_buy_threshold', 'regular_sell_threshold',
                 'min_alignment_confidence', 'overbought', 'oversold'):
        _check_score(name, getattr(s, name), errors)
    for strength in (TrendStrength.STRONG, TrendStrength.MODERATE, TrendStrength.WEAK):
        _check_score(f"{strength.value} confidence threshold", s.confidence_threshold(strength), errors)

    if s.oversold >= s.overbought:
        errors.append(f"oversold ({s.oversold}) must be below overbought ({s.overbought})")
    if not 0 <= s.ranging_threshold_pct <= s.trending_threshold_pct <= s.strong_trend_pct:
        errors.append("expected 0 <= ranging_threshold_pct <= trending_threshold_pct <= strong_trend_pct")

    for name in ('max_trades_per_bar', 'max_trades_per_instrument', 'max_daily_trades',
                 'momentum_lookback', 'pullback_lookback'):
        if getattr(s, name) < 1:
            errors.append(f"{name} must be >= 1")
    for name in ('max_spread', 'min_capital_for_additional', 'divergence_penalty_weight',
                 'momentum_scale', 'pullback_proximity_pct', 'pullback_retrace_pct'):
        if getattr(s, name) < 0:
            errors.append(f"{name} must be >= 0")

    a = s.alignment
    if not 0.0 < a.buffer_discount <= 1.0:
        errors.append(f"alignment.buffer_discount must be within (0, 1] (got {a.buffer_discount})")
    if not a.separation_excellent >= a.separation_good >= a.separation_fair >= 0:
        errors.append("alignment separation bands must be descending and non-negative")
    if not a.momentum_strong >= a.momentum_moderate >= a.momentum_weak >= 0:
        errors.append("alignment momentum bands must be descending and non-negative")
    if a.buffer_zone < 0 or a.direction_close_band < 0 or a.momentum_pullback_band < 0:
        errors.append("alignment bands must be non-negative")

    d = s.divergence
    if d.max_score <= 0:
        errors.append("divergence.max_score must be > 0")
    if not 0 <= d.hidden_score <= d.max_score:
        errors.append("divergence.hidden_score must be within [0, max_score]")
    if d.swing_radius < 1 or d.lookback_bars < 2 * d.swing_radius + 1:
        errors.append("divergence.lookback_bars must cover at least 2*swing_radius+1 bars")
    ages = [age for age, _ in d.age_buckets]
    mults = [m for _, m in d.age_buckets] + [d.very_old_multiplier]
    if ages != sorted(ages) or mults != sorted(mults, reverse=True):
        errors.append("divergence.age_buckets must have ascending ages and non-increasing multipliers")

    _check_score("override.activation_score", s.override.activation_score, errors)
    if s.override.notice_every < 1:
        errors.append("override.notice_every must be >= 1")

    if errors:
        raise ConfigError(f"Invalid settings for '{s.symbol or 'default'}': " + "; ".join(errors))
    return settings


# =============================================================================
# Loaders
# =============================================================================

def load_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """기본 설정 로드"""
    config_dir = Path(config_dir) if config_dir else CONFIG_DIR
    return _apply_env_overrides(_load_yaml(config_dir / "default.yaml"))


def settings_from_dict(raw: Dict[str, Any], symbol: str = "") -> ValidationSettings:
    """dict → ValidationSettings (심볼 규칙 + 검증 포함)"""
    settings = _build(
        ValidationSettings,
        raw.get("validation"),
        exclude=('symbol', 'alignment', 'divergence', 'override'),
    )
    settings = dataclasses.replace(
        settings,
        alignment=_build(AlignmentConfig, raw.get("alignment")),
        divergence=_build(DivergenceConfig, raw.get("divergence")),
        override=_build(OverrideConfig, raw.get("override")),
    )
    if symbol:
        settings = adjust_for_symbol(settings, symbol)
    return validate_settings(settings)


def load_settings(symbol: str, config_dir: Optional[Path] = None) -> ValidationSettings:
    """심볼별 설정 로드 (default + symbol override + env + 심볼 규칙)"""
    config_dir = Path(config_dir) if config_dir else CONFIG_DIR
    base = _load_yaml(config_dir / "default.yaml")
    symbol_cfg = _load_yaml(config_dir / SYMBOLS_DIR_NAME / f"{symbol}.yaml")
    merged = _apply_env_overrides(_deep_merge(base, symbol_cfg))
    return settings_from_dict(merged, symbol)


def load_engine_config(config_dir: Optional[Path] = None) -> EngineConfig:
    engine = _build(EngineConfig, load_config(config_dir).get("engine"))
    if engine.override_scope not in ("instrument", "strategy"):
        raise ConfigError(f"engine.override_scope must be 'instrument' or 'strategy' (got {engine.override_scope!r})")
    return engine


def list_symbols(config_dir: Optional[Path] = None) -> List[str]:
    """engine.symbols + symbols/*.yaml 합집합"""
    config_dir = Path(config_dir) if config_dir else CONFIG_DIR
    symbols = set(load_engine_config(config_dir).symbols)
    symbols_dir = config_dir / SYMBOLS_DIR_NAME
    if symbols_dir.exists():
        symbols.update(f.stem for f in symbols_dir.glob("*.yaml"))
    return sorted(symbols)
