# -*- coding: utf-8 -*-
"""
Entry Engine Tests
==================

이벤트 흐름 (tick → permission → validation → trade) 통합 테스트.
"""
import logging

import pandas as pd
import pytest

from trade_gate.anchor import DivergenceSignal
from trade_gate.config import EngineConfig, ValidationSettings
from trade_gate.engine import EntryEngine
from trade_gate.feeds import PositionBook
from trade_gate.gate import GATE_BAR_LIMIT, GATE_DIRECTION, GATE_PASSED, EntryRequest
from trade_gate.types import DivergenceCategory, DivergenceDirection, Direction

from conftest import BAR, BULL_PRICE, NOW, SYMBOL, install_bullish_market


def settings_for(symbol):
    return ValidationSettings(symbol=symbol)


def strong_divergence(direction, score=75.0, ts=BAR):
    return DivergenceSignal(
        exists=True,
        direction=direction,
        category=DivergenceCategory.REGULAR,
        timestamp=ts,
        price=BULL_PRICE,
        confirmations=1,
        score=score,
        first_detected=ts,
    )


def buy_request(direction=Direction.BUY, symbol=SYMBOL, now=NOW):
    return EntryRequest(symbol, direction, BULL_PRICE, 10.0, now)


@pytest.fixture
def book():
    return PositionBook()


@pytest.fixture
def engine(bullish_stub, book):
    return EntryEngine(bullish_stub, book, settings_for, symbols=[SYMBOL])


class TestInstruments:
    """종목 등록"""

    def test_register_from_symbols(self, engine):
        assert engine.active_symbols == frozenset({SYMBOL})
        assert engine.state(SYMBOL).settings.symbol == SYMBOL

    def test_register_from_config(self, bullish_stub, book):
        engine = EntryEngine(bullish_stub, book, settings_for, config=EngineConfig(symbols=("EURUSD", "GBPUSD")))
        assert engine.active_symbols == frozenset({"EURUSD", "GBPUSD"})

    def test_add_instrument_is_idempotent(self, engine):
        state = engine.state(SYMBOL)
        assert engine.add_instrument(SYMBOL) is state

    def test_unknown_instrument(self, engine):
        with pytest.raises(KeyError):
            engine.on_tick("GBPUSD", NOW)


class TestTickAndEntry:
    """on_tick → check_entry → on_trade"""

    def test_flat_market_allows_both(self, engine):
        permission = engine.on_tick(SYMBOL, NOW)
        assert permission.source == 'normal'
        assert permission.allow_buy and permission.allow_sell

    def test_check_entry_passes(self, engine):
        engine.on_tick(SYMBOL, NOW)
        result = engine.check_entry(buy_request())
        assert result.passed
        assert result.gate == GATE_PASSED

    def test_check_entry_without_tick(self, engine):
        assert engine.check_entry(buy_request()).passed
        assert engine.state(SYMBOL).last_tick == NOW

    def test_position_rule_blocks_opposite(self, engine, book):
        book.apply_fill(SYMBOL, Direction.BUY)
        engine.on_tick(SYMBOL, NOW)
        result = engine.check_entry(buy_request(Direction.SELL))
        assert not result.passed
        assert result.gate == GATE_DIRECTION

    def test_trade_then_bar_limit(self, engine, book):
        assert engine.check_entry(buy_request()).passed
        book.apply_fill(SYMBOL, Direction.BUY)
        engine.on_trade(SYMBOL, Direction.BUY, NOW)

        result = engine.check_entry(buy_request(now=NOW + pd.Timedelta(minutes=1)))
        assert result.gate == GATE_BAR_LIMIT
        assert engine.ledger.trades_for(SYMBOL, NOW) == 1

    def test_realized_profit_synced_from_execution(self, engine, book):
        book.flatten(SYMBOL, 25.0)
        engine.on_trade(SYMBOL, Direction.BUY, NOW)
        assert engine.ledger.realized_profit[SYMBOL] == pytest.approx(25.0)

        # 새 실현 손익 없음 → 장부 변화 없음
        engine.on_trade(SYMBOL, Direction.BUY, NOW + pd.Timedelta(minutes=15))
        assert engine.ledger.realized_profit[SYMBOL] == pytest.approx(25.0)

        book.flatten(SYMBOL, -10.0)
        engine.on_trade(SYMBOL, Direction.SELL, NOW + pd.Timedelta(minutes=30))
        assert engine.ledger.realized_profit[SYMBOL] == pytest.approx(15.0)
        assert engine.ledger.daily_stats.profit == pytest.approx(15.0)

    def test_explicit_profit_argument(self, engine):
        engine.on_trade(SYMBOL, Direction.BUY, NOW, profit=7.5)
        assert engine.ledger.realized_profit[SYMBOL] == pytest.approx(7.5)


class TestOverrideFlow:
    """다이버전스 override 경유 흐름"""

    def test_bullish_divergence_forces_buy(self, engine):
        engine.state(SYMBOL).tracker.current = strong_divergence(DivergenceDirection.BULLISH)
        permission = engine.on_tick(SYMBOL, NOW)
        assert permission.source == 'override'
        assert (permission.allow_buy, permission.allow_sell) == (True, False)

        result = engine.check_entry(buy_request(Direction.SELL))
        assert result.gate == GATE_DIRECTION

    def test_trade_counted_and_flip_clears(self, engine, book):
        book.apply_fill(SYMBOL, Direction.BUY)
        engine.on_tick(SYMBOL, NOW)  # baseline LONG

        state = engine.state(SYMBOL)
        state.tracker.current = strong_divergence(DivergenceDirection.BEARISH, score=65.0)
        assert engine.on_tick(SYMBOL, NOW).source == 'override'

        engine.on_trade(SYMBOL, Direction.SELL, NOW)
        assert state.override.override.trade_count == 1

        book.apply_fill(SYMBOL, Direction.SELL)
        permission = engine.on_tick(SYMBOL, NOW + pd.Timedelta(minutes=15))
        assert permission.source == 'normal'
        assert not state.override.override.active

    def test_expired_divergence_does_not_activate(self, engine):
        old = BAR - pd.Timedelta(minutes=15 * 70)
        engine.state(SYMBOL).tracker.current = strong_divergence(DivergenceDirection.BULLISH, ts=old)
        assert engine.on_tick(SYMBOL, NOW).source == 'normal'

    def test_strategy_scope_shares_override(self, bullish_stub, book):
        install_bullish_market(bullish_stub, "GBPUSD")
        engine = EntryEngine(
            bullish_stub, book, settings_for,
            symbols=["EURUSD", "GBPUSD"],
            config=EngineConfig(override_scope="strategy"),
        )
        engine.state("EURUSD").tracker.current = strong_divergence(DivergenceDirection.BULLISH)
        engine.on_tick("EURUSD", NOW)

        permission = engine.on_tick("GBPUSD", NOW)
        assert permission.source == 'override'
        assert engine.state("GBPUSD").override.override is engine.state("EURUSD").override.override

    def test_instrument_scope_is_isolated(self, bullish_stub, book):
        install_bullish_market(bullish_stub, "GBPUSD")
        engine = EntryEngine(bullish_stub, book, settings_for, symbols=["EURUSD", "GBPUSD"])
        engine.state("EURUSD").tracker.current = strong_divergence(DivergenceDirection.BULLISH)
        engine.on_tick("EURUSD", NOW)
        assert engine.on_tick("GBPUSD", NOW).source == 'normal'


class TestTimerAndStatus:
    """on_timer / status"""

    def test_on_timer_refreshes_all(self, bullish_stub, book):
        install_bullish_market(bullish_stub, "GBPUSD")
        engine = EntryEngine(bullish_stub, book, settings_for, symbols=["EURUSD", "GBPUSD"])
        engine.on_timer(NOW)
        assert all(state.last_tick == NOW for state in engine.instruments.values())

    def test_periodic_status_log(self, bullish_stub, book, caplog):
        engine = EntryEngine(
            bullish_stub, book, settings_for,
            symbols=[SYMBOL],
            config=EngineConfig(status_every=2),
        )
        with caplog.at_level(logging.INFO, logger="trade_gate.engine"):
            engine.on_timer(NOW)
            assert "Divergence:" not in caplog.text
            engine.on_timer(NOW + pd.Timedelta(minutes=1))
        assert "Divergence:" in caplog.text
        assert "Ledger" in caplog.text

    def test_status_summary(self, engine):
        engine.on_tick(SYMBOL, NOW)
        text = engine.status(SYMBOL)
        assert "Divergence: none" in text
        assert "Alignment: BUY" in text
        assert "Override: inactive" in text
        assert "Bar " in text

    def test_status_is_read_only(self, engine):
        engine.on_tick(SYMBOL, NOW)
        state = engine.state(SYMBOL)
        before = (state.permission, state.last_tick, state.pipeline.bars.trades_this_bar)
        engine.status(SYMBOL, NOW)
        assert (state.permission, state.last_tick, state.pipeline.bars.trades_this_bar) == before
