# replay_csv.py
# OHLC CSV 리플레이 - EntryEngine 게이트 통과/거절 통계
# - CSV: timestamp, open, high, low, close[, volume]
# - 엔진 tracking timeframe 바마다 on_tick → 방향 후보 → check_entry
# - 통과 시 PositionBook 에 체결 반영 (청산 모델 없음)
#
# 사용:
#   python scripts/replay_csv.py data/EURUSD_1m.csv --symbol EURUSD
#   python scripts/replay_csv.py data/XAUUSD_5m.csv --symbol XAUUSD --increment 0.01 --log-level DEBUG

from __future__ import annotations

import argparse
from collections import Counter
from pathlib import Path

import pandas as pd

from trade_gate.config import load_engine_config, load_settings
from trade_gate.engine import EntryEngine
from trade_gate.feeds import FrameIndicatorProvider, PositionBook
from trade_gate.gate import EntryRequest
from trade_gate.regime import AlignmentScorer
from trade_gate.types import Direction
from trade_gate.utils import TimeframeSpec, setup_logging


def load_csv(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    ts_col = next(c for c in df.columns if c.lower() in ('timestamp', 'time', 'datetime', 'date'))
    df.index = pd.to_datetime(df[ts_col])
    df = df.drop(columns=[ts_col])
    df.columns = [c.lower() for c in df.columns]
    return df.sort_index()


def pick_direction(engine: EntryEngine, symbol: str, permission) -> Direction | None:
    """강제 방향이 있으면 그 방향, 없으면 정렬 bias 쪽"""
    if permission.allow_buy != permission.allow_sell:
        return Direction.BUY if permission.allow_buy else Direction.SELL
    state = engine.state(symbol)
    score = AlignmentScorer(engine.indicators, state.settings.alignment).score(
        symbol, state.settings.entry_timeframe
    )
    if score.net_bias > 0:
        return Direction.BUY
    if score.net_bias < 0:
        return Direction.SELL
    return None


def main():
    parser = argparse.ArgumentParser(description="Replay OHLC CSV through the entry engine")
    parser.add_argument("csv", type=Path)
    parser.add_argument("--symbol", required=True)
    parser.add_argument("--increment", type=float, default=0.0001, help="price increment (point)")
    parser.add_argument("--spread", type=float, default=10.0, help="assumed spread in increments")
    parser.add_argument("--capital", type=float, default=10_000.0)
    parser.add_argument("--config-dir", type=Path, default=None)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(level=args.log_level, log_dir=None)

    settings = load_settings(args.symbol, args.config_dir)
    timeframes = sorted(
        {settings.tracking_timeframe, settings.entry_timeframe, settings.divergence_timeframe,
         *settings.mtf_timeframes},
        key=lambda tf: TimeframeSpec.from_string(tf).minutes,
    )

    provider = FrameIndicatorProvider(price_increments={args.symbol: args.increment})
    provider.add_ohlcv(args.symbol, load_csv(args.csv), timeframes)
    book = PositionBook()
    engine = EntryEngine(
        provider,
        book,
        lambda symbol: settings,
        symbols=[args.symbol],
        config=load_engine_config(args.config_dir),
    )

    tracking = provider.frames[args.symbol][settings.tracking_timeframe]
    delta = TimeframeSpec.from_string(settings.tracking_timeframe).delta
    outcomes: Counter = Counter()
    trades = 0

    print(f"[Replay] {args.symbol} {len(tracking):,} {settings.tracking_timeframe} bars "
          f"({tracking.index[0]} ~ {tracking.index[-1]})")

    for bar_open in tracking.index:
        now = bar_open + delta
        provider.set_time(now)
        engine.on_timer(now)
        permission = engine.state(args.symbol).permission

        direction = pick_direction(engine, args.symbol, permission)
        if direction is None:
            outcomes['no_direction'] += 1
            continue

        price = provider.last_close(args.symbol, settings.entry_timeframe)
        request = EntryRequest(
            args.symbol, direction, price, args.spread, now,
            capital=args.capital, active_symbols=engine.active_symbols,
        )
        result = engine.check_entry(request)
        outcomes[result.gate] += 1
        if result.passed:
            book.apply_fill(args.symbol, direction)
            engine.on_trade(args.symbol, direction, now)
            trades += 1

    print(f"\n[Gate Outcomes]")
    for gate, count in outcomes.most_common():
        print(f"  {gate:20s}: {count:6,d}")
    print(f"\n[Trades] {trades}")
    print(f"[Status] {engine.status(args.symbol)}")


if __name__ == "__main__":
    main()
